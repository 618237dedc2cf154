"""System endpoints (health check)."""

from flask import Blueprint, current_app, jsonify

system_bp = Blueprint("system", __name__)


@system_bp.route("/health", methods=["GET"])
def health_check():
    """Simple health-check route reporting the storage backend state."""
    repo = current_app.extensions["attendee_repository"]
    try:
        storage_status = f"ok ({repo.ping()})"
    except Exception as e:  # pragma: no cover - best effort
        current_app.logger.warning("Storage ping failed: %s", e)
        storage_status = f"error: {str(e)}"

    return jsonify({
        "status": "ok",
        "storage": storage_status,
    }), 200
