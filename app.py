import importlib
import os
import pkgutil

from flask import Blueprint, Flask

from config import settings
from config.log_setup import setup_logging
from repositories.attendee_repository import get_attendee_repository


def create_app(repository=None) -> Flask:
    """Flask application factory.

    ``repository`` overrides the process-wide attendee store (tests pass a
    fresh in-memory one).
    """
    setup_logging(settings.DEBUG_PRINT)

    app = Flask(__name__)
    app.secret_key = os.getenv("SECRET_KEY", "dev")
    app.json.ensure_ascii = False

    app.config.update(
        MAX_UPLOAD_BYTES=settings.MAX_UPLOAD_BYTES,
        INGEST_BATCH_SIZE=settings.INGEST_BATCH_SIZE,
        STORE_BATCH_SIZE=settings.STORE_BATCH_SIZE,
        STORE_BATCH_DELAY=settings.STORE_BATCH_DELAY,
        SHEET_READ_TIMEOUT=settings.SHEET_READ_TIMEOUT,
        ERROR_REPORT_LIMIT=settings.ERROR_REPORT_LIMIT,
        STORAGE_BACKEND=settings.STORAGE_BACKEND,
    )

    """Registration of error handlers."""
    from middleware.handlers import register_error_handlers
    register_error_handlers(app)

    app.extensions["attendee_repository"] = (
        repository if repository is not None else get_attendee_repository(settings.STORAGE_BACKEND)
    )

    # Auto-register all blueprints defined in routes/*.py
    from routes import __path__ as routes_path

    for _, module_name, _ in pkgutil.iter_modules(routes_path):
        module = importlib.import_module(f"routes.{module_name}")
        for attr_name in dir(module):
            obj = getattr(module, attr_name)
            if isinstance(obj, Blueprint):
                app.register_blueprint(obj)

    return app


if __name__ == "__main__":
    from os import getenv

    app = create_app()
    app.run(
        host="0.0.0.0",
        port=int(getenv("PORT", 5000)),
        debug=getenv("FLASK_DEBUG", "0") == "1",
        use_reloader=False,
    )
