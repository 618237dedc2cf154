import os


def env_bool(key, default=False):
    return os.getenv(key, str(default)).lower() in ("1", "true", "yes", "on")


def env_int(key, default):
    try:
        return int(os.getenv(key, default))
    except (TypeError, ValueError):
        return default


def env_float(key, default):
    try:
        return float(os.getenv(key, default))
    except (TypeError, ValueError):
        return default


DEBUG_PRINT = env_bool("DEBUG_PRINT")

MAX_UPLOAD_BYTES = env_int("MAX_UPLOAD_BYTES", 10 * 1024 * 1024)
INGEST_BATCH_SIZE = env_int("INGEST_BATCH_SIZE", 100)
STORE_BATCH_SIZE = env_int("STORE_BATCH_SIZE", 50)
STORE_BATCH_DELAY = env_float("STORE_BATCH_DELAY", 0.01)
SHEET_READ_TIMEOUT = env_float("SHEET_READ_TIMEOUT", 60.0)
ERROR_REPORT_LIMIT = env_int("ERROR_REPORT_LIMIT", 50)

# "memory" (default) or "mongo"
STORAGE_BACKEND = os.getenv("STORAGE_BACKEND", "memory").strip().lower()

# Mongo backend
MONGO_DB_NAME = os.getenv("DB_NAME", "webinar_attendance").strip()
ATTENDEES_COLLECTION = os.getenv("ATTENDEES_COLLECTION", "attendees")
FILES_COLLECTION = os.getenv("FILES_COLLECTION", "files")
MONGO_TIMEOUT_MS = env_int("MONGO_TIMEOUT_MS", 5000)
