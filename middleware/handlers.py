"""
Global Flask error handling middleware.

All exceptions (custom or unexpected) are returned as JSON payloads:
{
    "status": "error",
    "error": "ErrorClassName",
    "message": "Human readable (Arabic) message",
    "details": { ... optional context ... }
}
"""

import os
import traceback

from flask import jsonify
from werkzeug.exceptions import HTTPException

from middleware.errors import BaseAppError


def register_error_handlers(app):
    """Attach all JSON error handlers to a Flask app instance."""

    @app.errorhandler(BaseAppError)
    def handle_custom_error(err):
        """Handle custom, domain-specific errors."""
        if err.code >= 500:
            app.logger.error("%s: %s", err.__class__.__name__, err.message)
        else:
            app.logger.info("%s: %s", err.__class__.__name__, err.message)
        response = jsonify(err.to_dict())
        response.status_code = err.code
        return response

    @app.errorhandler(HTTPException)
    def handle_http_error(err):
        """Keep plain Werkzeug errors (404 routes, 405...) in the JSON shape."""
        payload = {
            "status": "error",
            "error": err.__class__.__name__,
            "message": err.description or err.name,
            "details": {},
        }
        return jsonify(payload), err.code

    @app.errorhandler(Exception)
    def handle_unexpected_error(err):
        """Catch-all handler for unexpected exceptions."""
        app.logger.exception("Unhandled error")
        details = {}
        if app.debug or os.getenv("FLASK_DEBUG") == "1":
            details["traceback"] = traceback.format_exc()

        payload = {
            "status": "error",
            "error": err.__class__.__name__,
            "message": "خطأ غير متوقع في الخادم",
            "details": details
        }
        return jsonify(payload), 500
