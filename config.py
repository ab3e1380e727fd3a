import os

from settings import SETTINGS


def _env_bool(name: str, default: bool) -> bool:
    v = os.getenv(name)
    if v is None:
        return default
    return v.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_int(name: str, default) -> int:
    v = (os.getenv(name) or "").strip()
    if not v:
        return int(default)
    try:
        return int(v)
    except ValueError:
        return int(default)


def _env_float(name: str, default) -> float:
    v = (os.getenv(name) or "").strip()
    if not v:
        return float(default)
    try:
        return float(v)
    except ValueError:
        return float(default)


class Config:
    """Base configuration loaded from environment variables.

    Defaults come from ``settings.SETTINGS``.
    """

    SECRET_KEY = os.getenv("SECRET_KEY", str(SETTINGS["SECRET_KEY"]))

    # Logging
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", str(SETTINGS["LOG_LEVEL"])).upper()
    SLOW_REQUEST_MS: int = _env_int("SLOW_REQUEST_MS", 250)

    # SEC EDGAR
    SEC_USER_AGENT: str = str(SETTINGS["SEC_USER_AGENT"])

    IDENTIFIER_INDEX_TTL_SECONDS: float = _env_float(
        "IDENTIFIER_INDEX_TTL_SECONDS", SETTINGS["IDENTIFIER_INDEX_TTL_SECONDS"]
    )
    LOCAL_TICKER_MAP_PATH: str = str(SETTINGS["LOCAL_TICKER_MAP_PATH"] or "")

    DOCUMENT_THROTTLE_SECONDS: float = _env_float(
        "DOCUMENT_THROTTLE_SECONDS", SETTINGS["DOCUMENT_THROTTLE_SECONDS"]
    )
    DOCUMENT_TIMEOUT_SECONDS: float = _env_float(
        "DOCUMENT_TIMEOUT_SECONDS", SETTINGS["DOCUMENT_TIMEOUT_SECONDS"]
    )
    MINING_DEADLINE_SECONDS: float = _env_float(
        "MINING_DEADLINE_SECONDS", SETTINGS["MINING_DEADLINE_SECONDS"]
    )
    PERSON_SEARCH_MAX_DOCUMENTS: int = _env_int(
        "PERSON_SEARCH_MAX_DOCUMENTS", SETTINGS["PERSON_SEARCH_MAX_DOCUMENTS"]
    )
    PERSON_SEARCH_DEADLINE_SECONDS: float = _env_float(
        "PERSON_SEARCH_DEADLINE_SECONDS", SETTINGS["PERSON_SEARCH_DEADLINE_SECONDS"]
    )

    DEFAULT_PAGE_SIZE: int = _env_int("DEFAULT_PAGE_SIZE", SETTINGS["DEFAULT_PAGE_SIZE"])
    MAX_PAGE_SIZE: int = _env_int("MAX_PAGE_SIZE", SETTINGS["MAX_PAGE_SIZE"])

    RESOLVER_DISAMBIGUATION_MARGIN: float = _env_float(
        "RESOLVER_DISAMBIGUATION_MARGIN", SETTINGS["RESOLVER_DISAMBIGUATION_MARGIN"]
    )
    RESOLVER_RELEVANCE_FLOOR: float = _env_float(
        "RESOLVER_RELEVANCE_FLOOR", SETTINGS["RESOLVER_RELEVANCE_FLOOR"]
    )
    RESOLVER_MAX_CANDIDATES: int = _env_int(
        "RESOLVER_MAX_CANDIDATES", SETTINGS["RESOLVER_MAX_CANDIDATES"]
    )
