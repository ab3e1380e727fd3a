"""Application logging utilities.

- One shared app logger (``filing_scout``) used everywhere
- Per-module log files under ./logs/ (override with FILING_SCOUT_LOG_DIR)
- UTC timestamp at start of each log line
- Daily log rotation

Call `get_logger(__name__)` from any module to get a child logger.
"""

from __future__ import annotations

import logging
import os
import time
from logging.handlers import TimedRotatingFileHandler


class _UTCFormatter(logging.Formatter):
    """Formatter that forces UTC timestamps."""

    converter = staticmethod(time.gmtime)


_APP_LOGGER_NAME = "filing_scout"
_LOG_FORMAT = "%(asctime)sZ %(levelname)s pid=%(process)d %(name)s: %(message)s"
_DATE_FORMAT = "%Y-%m-%dT%H:%M:%S"
_BACKUP_DAYS = 14


def _logs_dir() -> str:
    override = (os.getenv("FILING_SCOUT_LOG_DIR") or "").strip()
    if override:
        return override
    # project_root/logs
    return os.path.join(os.path.dirname(__file__), "logs")


def _sanitize_filename(name: str) -> str:
    # Convert e.g. "api.services.filing_index" -> "api_services_filing_index"
    name = (name or "app").strip() or "app"
    return "".join(ch if (ch.isalnum() or ch in {"-", "_"}) else "_" for ch in name)


def _formatter() -> logging.Formatter:
    return _UTCFormatter(fmt=_LOG_FORMAT, datefmt=_DATE_FORMAT)


def _rotating_file_handler(file_name: str, level: int) -> TimedRotatingFileHandler:
    os.makedirs(_logs_dir(), exist_ok=True)
    fh = TimedRotatingFileHandler(
        os.path.join(_logs_dir(), file_name),
        when="midnight",
        interval=1,
        backupCount=_BACKUP_DAYS,
        utc=True,
        encoding="utf-8",
    )
    fh.setLevel(level)
    fh.setFormatter(_formatter())
    return fh


def configure_app_logging(level_name: str = "INFO") -> logging.Logger:
    """Configure and return the root application logger.

    Safe to call multiple times.
    """

    level = getattr(logging, (level_name or "INFO").upper(), logging.INFO)
    app_logger = logging.getLogger(_APP_LOGGER_NAME)
    app_logger.setLevel(level)

    if getattr(app_logger, "_configured", False):
        return app_logger

    sh = logging.StreamHandler()
    sh.setLevel(level)
    sh.setFormatter(_formatter())

    app_logger.addHandler(sh)
    app_logger.addHandler(_rotating_file_handler("app.log", level))

    # Do not propagate to the global root logger (prevents double logging).
    app_logger.propagate = False
    app_logger._configured = True  # type: ignore[attr-defined]
    return app_logger


def set_log_level(level_name: str) -> logging.Logger:
    """Re-level the app logger, every existing child logger and their handlers.

    Module loggers are created at import time, so a level chosen later (e.g. a
    job's --log-level flag) has to be pushed down to them explicitly.
    """

    os.environ["LOG_LEVEL"] = str(level_name)
    app_logger = configure_app_logging(level_name)
    level = app_logger.level
    loggers = [app_logger] + [
        lg
        for name, lg in logging.Logger.manager.loggerDict.items()
        if name.startswith(_APP_LOGGER_NAME + ".") and isinstance(lg, logging.Logger)
    ]
    for lg in loggers:
        lg.setLevel(level)
        for h in lg.handlers:
            h.setLevel(level)
    return app_logger


def get_logger(module_name: str | None = None) -> logging.Logger:
    """Get a module-specific logger that writes to its own log file.

    Child records also reach the console handler of the app logger.

    Example:
        logger = get_logger(__name__)
    """

    base = configure_app_logging(os.getenv("LOG_LEVEL", "INFO"))

    child_name = module_name or "app"
    logger = logging.getLogger(f"{_APP_LOGGER_NAME}.{child_name}")

    if not getattr(logger, "_file_configured", False):
        logger.setLevel(base.level)
        logger.addHandler(
            _rotating_file_handler(_sanitize_filename(child_name) + ".log", base.level)
        )
        logger._file_configured = True  # type: ignore[attr-defined]

    return logger
