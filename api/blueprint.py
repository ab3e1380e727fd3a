from flask import Blueprint, current_app, jsonify

from api.api_v1.blueprint import create_api_v1_blueprint
from api.schemas.api_responses import ok


def create_api_blueprint() -> Blueprint:
    """Create the main API blueprint.

    Keep this as the single registration point to avoid double-registering routes.
    """
    api_bp = Blueprint("api", __name__)

    @api_bp.get("/health")
    def health():
        # No upstream I/O: report what the identifier index already holds.
        index = current_app.extensions["filings_service"].index
        snap = index.peek()
        age = index.age_seconds()
        return jsonify(
            ok(
                {
                    "status": "ok",
                    "identifier_index": {
                        "loaded": snap is not None,
                        "records": len(snap) if snap is not None else 0,
                        "source": snap.source if snap is not None else None,
                        "age_seconds": round(age, 1) if age is not None else None,
                        "stale": index.is_stale(snap),
                    },
                }
            )
        )

    # Versioned API
    api_bp.register_blueprint(create_api_v1_blueprint())

    return api_bp
