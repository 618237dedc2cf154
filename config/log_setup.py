import logging
import sys


def setup_logging(debug: bool = False) -> None:
    """Configure root logging once for the app process."""

    level = logging.DEBUG if debug else logging.INFO
    logger = logging.getLogger()
    logger.setLevel(level)

    # Avoid stacking handlers when create_app() runs several times (tests)
    if any(getattr(h, "_webinar_handler", False) for h in logger.handlers):
        return

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(
        logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    console_handler._webinar_handler = True  # type: ignore[attr-defined]
    logger.addHandler(console_handler)

    # Silence noisy libraries
    logging.getLogger("pymongo").setLevel(logging.WARNING)
    logging.getLogger("werkzeug").setLevel(logging.WARNING)
