# config/database.py
"""MongoDB connection behind the optional ``mongo`` attendee storage backend."""
from __future__ import annotations

import os
from typing import Optional
from urllib.parse import quote_plus

from pymongo import MongoClient
from pymongo.collection import Collection
from pymongo.database import Database
from pymongo.server_api import ServerApi

from config import settings

APP_NAME = "webinar-attendance-cleaner"


def _build_mongo_uri() -> str:
    """
    Resolve the URI of the attendee database.

    ``TEST_MONGODB_URI`` wins over ``MONGODB_URI``; without either, an SRV
    URI is assembled from ``DB_USER`` / ``DB_PASSWORD`` / ``DB_HOST``.
    """
    for key in ("TEST_MONGODB_URI", "MONGODB_URI"):
        uri = os.getenv(key, "").strip()
        if uri:
            return uri

    user, pwd, host = (os.getenv(key, "").strip() for key in ("DB_USER", "DB_PASSWORD", "DB_HOST"))
    if not (user and pwd and host):
        raise RuntimeError(
            "STORAGE_BACKEND=mongo needs TEST_MONGODB_URI, MONGODB_URI or "
            "DB_USER/DB_PASSWORD/DB_HOST."
        )
    return (
        f"mongodb+srv://{user}:{quote_plus(pwd)}@{host}/{settings.MONGO_DB_NAME}"
        f"?retryWrites=true&w=majority"
    )


class MongoConnection:
    """
    Process-wide client for the attendee database.
    - Connects on first instantiation and pings so bad credentials fail at startup.
    - Hands out the ``attendees`` and ``files`` collections used by the repository.
    """

    _instance: Optional["MongoConnection"] = None

    def __new__(cls) -> "MongoConnection":
        if cls._instance is None:
            cls._instance = super().__new__(cls)
            cls._instance._connect()
        return cls._instance

    def _connect(self) -> None:
        self._client: MongoClient = MongoClient(
            _build_mongo_uri(),
            server_api=ServerApi("1"),
            appname=APP_NAME,
            serverSelectionTimeoutMS=settings.MONGO_TIMEOUT_MS,
        )
        self._db_name = settings.MONGO_DB_NAME
        self.ping()

    @property
    def client(self) -> MongoClient:
        return self._client

    @property
    def db(self) -> Database:
        return self._client[self._db_name]

    def collection(self, name: str) -> Collection:
        return self.db[name]

    def attendees(self) -> Collection:
        return self.collection(settings.ATTENDEES_COLLECTION)

    def files(self) -> Collection:
        return self.collection(settings.FILES_COLLECTION)

    def ping(self) -> None:
        """Round-trip to the server; raises when it is unreachable."""
        self._client.admin.command("ping")

    def close(self) -> None:
        if getattr(self, "_client", None) is not None:
            self._client.close()
        type(self)._instance = None


def get_mongodb() -> MongoConnection:
    """Return the shared connection, connecting on first use."""
    return MongoConnection()
