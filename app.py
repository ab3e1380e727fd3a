import time

from flask import Flask, jsonify, request
from pydantic import ValidationError

from api.blueprint import create_api_blueprint
from api.schemas.api_responses import fail
from api.services.filings_service import FilingsService, create_filings_service
from config import Config
from logging_utils import configure_app_logging, get_logger
from utils.errors import FilingsError


def create_app(service: FilingsService | None = None) -> Flask:
    """Build the Flask app.

    `service` lets tests inject a FilingsService wired to fakes; by default
    one is created from the app config (no network I/O happens here).
    """

    app = Flask(__name__)
    app.config.from_object(Config)

    # Configure unified app logging (UTC timestamps, per-file logs, daily rotation)
    configure_app_logging(app.config.get("LOG_LEVEL", "INFO"))
    logger = get_logger(__name__)

    app.extensions["filings_service"] = service or create_filings_service(app.config)

    # --- slow request logging (opt-in by threshold; default 250ms) ---
    # Set to "0" to disable. Enriched pages are expected to be slow (throttled fetches).
    slow_ms = int(app.config.get("SLOW_REQUEST_MS", 250) or 0)

    @app.before_request
    def _start_timer():
        if slow_ms > 0:
            request.environ["_req_start_ns"] = time.perf_counter_ns()

    @app.after_request
    def _log_slow_requests(resp):
        if slow_ms <= 0:
            return resp

        start_ns = request.environ.get("_req_start_ns")
        if not start_ns:
            return resp

        elapsed_ms = (time.perf_counter_ns() - int(start_ns)) / 1_000_000.0
        if elapsed_ms >= slow_ms:
            # Keep it compact and stable for grepping.
            logger.warning(
                "SLOW_REQUEST ms=%.1f status=%s method=%s path=%s query=%s",
                elapsed_ms,
                getattr(resp, "status_code", "?"),
                request.method,
                request.path,
                request.query_string.decode("utf-8", errors="replace"),
            )
        return resp

    app.register_blueprint(create_api_blueprint())

    # Error handlers
    @app.errorhandler(FilingsError)
    def filings_error(e: FilingsError):
        if e.http_status >= 500:
            logger.warning("Upstream failure | path=%s code=%s err=%s", request.path, e.code, e)
        return jsonify(fail(e.message, code=e.code, details=e.details)), e.http_status

    @app.errorhandler(ValidationError)
    def validation_error(e: ValidationError):
        fields = sorted({".".join(str(p) for p in err.get("loc", ())) for err in e.errors()})
        return (
            jsonify(fail("Invalid query parameters.", code="invalid_request", details={"fields": fields})),
            400,
        )

    @app.errorhandler(404)
    def not_found(_err):
        return jsonify(fail("Not found.", code="not_found")), 404

    @app.errorhandler(500)
    def server_error(_err):
        logger.exception("Unhandled server error")
        return jsonify(fail("Internal server error.", code="internal_error")), 500

    return app


# NOTE: Do not instantiate the Flask app at import time.
# Tests inject a fake-backed FilingsService before calling create_app().
app: Flask | None = None


if __name__ == "__main__":
    app = create_app()
    get_logger(__name__).info("Starting Flask app")
    app.run(debug=True, use_reloader=False)
