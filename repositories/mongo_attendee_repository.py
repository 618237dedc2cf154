from __future__ import annotations

import re
from typing import Any, Iterable, List, Mapping, Optional

from pymongo import ASCENDING, ReturnDocument
from pymongo.collection import Collection

from domain.models.attendee import AttendeeRecord, AttendeeStatus
from domain.models.file_descriptor import FileDescriptor
from repositories.attendee_repository import (
    AttendeeInput,
    build_record,
    merge_record,
    new_id,
    order_attendees,
    utcnow,
)

_SEARCH_KEYS = ("firstName", "lastName", "userName", "email", "country")


class MongoAttendeeRepository:
    """Attendee store backed by the ``attendees`` and ``files`` collections."""

    def __init__(
        self,
        collection: Optional[Collection] = None,
        files_collection: Optional[Collection] = None,
    ) -> None:
        if collection is None or files_collection is None:
            from config.database import get_mongodb

            mongodb = get_mongodb()
            collection = collection if collection is not None else mongodb.attendees()
            files_collection = (
                files_collection if files_collection is not None else mongodb.files()
            )
        self.collection: Collection = collection
        self.files: Collection = files_collection

    def ensure_indexes(self) -> None:
        """Create indexes used by attendee queries."""
        self.collection.create_index([("id", ASCENDING)], unique=True)
        self.collection.create_index([("email", ASCENDING)])
        self.files.create_index([("id", ASCENDING)], unique=True)

    def _hydrate(self, docs: Iterable[dict]) -> List[AttendeeRecord]:
        return [AttendeeRecord.from_mongo(doc) for doc in docs]

    def get(self, attendee_id: str) -> Optional[AttendeeRecord]:
        doc = self.collection.find_one({"id": attendee_id})
        return AttendeeRecord.from_mongo(doc) if doc else None

    def get_by_email(self, email: str) -> Optional[AttendeeRecord]:
        doc = self.collection.find_one({"email": email})
        return AttendeeRecord.from_mongo(doc) if doc else None

    def insert(self, data: AttendeeInput) -> AttendeeRecord:
        record = build_record(data, attendee_id=new_id(), created_at=utcnow())
        self.collection.insert_one(record.to_mongo())
        return record

    def bulk_insert(self, rows: Iterable[AttendeeInput]) -> List[AttendeeRecord]:
        records = [build_record(row, attendee_id=new_id(), created_at=utcnow()) for row in rows]
        if records:
            self.collection.insert_many([r.to_mongo() for r in records], ordered=True)
        return records

    def update(self, attendee_id: str, changes: Mapping[str, Any]) -> Optional[AttendeeRecord]:
        existing = self.get(attendee_id)
        if existing is None:
            return None
        merged = merge_record(existing, changes).to_mongo()
        merged.pop("id", None)
        doc = self.collection.find_one_and_update(
            {"id": attendee_id},
            {"$set": merged},
            return_document=ReturnDocument.AFTER,
        )
        return AttendeeRecord.from_mongo(doc) if doc else None

    def delete(self, attendee_id: str) -> bool:
        result = self.collection.delete_one({"id": attendee_id})
        return result.deleted_count > 0

    def all(self) -> List[AttendeeRecord]:
        return order_attendees(self._hydrate(self.collection.find({})))

    def search(self, query: str) -> List[AttendeeRecord]:
        if not query:
            return []
        pattern = {"$regex": re.escape(query), "$options": "i"}
        docs = self.collection.find({"$or": [{key: pattern} for key in _SEARCH_KEYS]})
        return order_attendees(self._hydrate(docs))

    def by_status(self, status: AttendeeStatus | str) -> List[AttendeeRecord]:
        status = AttendeeStatus(status)
        if status is AttendeeStatus.valid:
            query = {"hasErrors": False, "isDuplicate": False}
        elif status is AttendeeStatus.duplicate:
            query = {"isDuplicate": True}
        elif status is AttendeeStatus.error:
            query = {"hasErrors": True}
        else:
            query = {}
        return order_attendees(self._hydrate(self.collection.find(query)))

    def purge_by_file(self, file_id: str) -> bool:
        # Records carry no file attribution: the whole collection is cleared.
        self.collection.delete_many({})
        return True

    def create_file(self, **fields: Any) -> FileDescriptor:
        descriptor = FileDescriptor(id=new_id(), uploaded_at=utcnow(), **fields)
        self.files.insert_one(descriptor.to_mongo())
        return descriptor

    def get_file(self, file_id: str) -> Optional[FileDescriptor]:
        return FileDescriptor.from_mongo(self.files.find_one({"id": file_id}))

    def list_files(self) -> List[FileDescriptor]:
        files = [FileDescriptor.from_mongo(doc) for doc in self.files.find({})]
        return sorted(
            (f for f in files if f is not None),
            key=lambda f: f.uploaded_at,
            reverse=True,
        )

    def ping(self) -> str:
        from config.database import get_mongodb

        get_mongodb().ping()
        return "mongo"
