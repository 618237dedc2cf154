from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any, Iterable, List, Mapping, Optional, Protocol, Union

from domain.models.attendee import AttendeeRecord, AttendeeRow, AttendeeStatus
from domain.models.file_descriptor import FileDescriptor

SEARCH_FIELDS = ("first_name", "last_name", "user_name", "email", "country")
_OPTIONAL_TEXT_FIELDS = ("join_time", "leave_time", "is_guest", "country", "phone_number")

AttendeeInput = Union[AttendeeRow, Mapping[str, Any]]

# field name and camelCase alias both resolve to the alias (_FIELD_KEYS)
# or to the attribute name (_FIELD_NAMES)
_FIELD_KEYS: dict[str, str] = {}
_FIELD_NAMES: dict[str, str] = {}
for _name, _info in AttendeeRecord.model_fields.items():
    _alias = _info.alias or _name
    _FIELD_KEYS[_name] = _FIELD_KEYS[_alias] = _alias
    _FIELD_NAMES[_name] = _FIELD_NAMES[_alias] = _name


class AttendeeStorage(Protocol):
    """Operations every attendee store offers (memory, Mongo)."""

    def get(self, attendee_id: str) -> Optional[AttendeeRecord]: ...
    def get_by_email(self, email: str) -> Optional[AttendeeRecord]: ...
    def insert(self, data: AttendeeInput) -> AttendeeRecord: ...
    def bulk_insert(self, rows: Iterable[AttendeeInput]) -> List[AttendeeRecord]: ...
    def update(self, attendee_id: str, changes: Mapping[str, Any]) -> Optional[AttendeeRecord]: ...
    def delete(self, attendee_id: str) -> bool: ...
    def all(self) -> List[AttendeeRecord]: ...
    def search(self, query: str) -> List[AttendeeRecord]: ...
    def by_status(self, status: AttendeeStatus | str) -> List[AttendeeRecord]: ...
    def purge_by_file(self, file_id: str) -> bool: ...
    def create_file(self, **fields: Any) -> FileDescriptor: ...
    def get_file(self, file_id: str) -> Optional[FileDescriptor]: ...
    def list_files(self) -> List[FileDescriptor]: ...
    def ping(self) -> str: ...


# ---------------------------------------------------------------------------
# Helpers shared by the storage implementations
# ---------------------------------------------------------------------------

def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def new_id() -> str:
    return str(uuid.uuid4())


def to_record_keys(data: Mapping[str, Any]) -> dict[str, Any]:
    """Map snake_case or camelCase keys to the record aliases, dropping unknowns."""
    return {_FIELD_KEYS[k]: v for k, v in data.items() if k in _FIELD_KEYS}


def to_field_names(data: Mapping[str, Any]) -> dict[str, Any]:
    """Map snake_case or camelCase keys to record attribute names, dropping unknowns."""
    return {_FIELD_NAMES[k]: v for k, v in data.items() if k in _FIELD_NAMES}


def _sync_flags(payload: dict[str, Any]) -> None:
    # isDuplicate follows duplicateGroup, hasErrors follows errorMessages
    payload["duplicateGroup"] = payload.get("duplicateGroup") or None
    payload["isDuplicate"] = payload["duplicateGroup"] is not None
    payload["errorMessages"] = list(payload.get("errorMessages") or ())
    payload["hasErrors"] = bool(payload["errorMessages"])


def build_record(data: AttendeeInput, *, attendee_id: str, created_at: datetime) -> AttendeeRecord:
    """Create a stored record, backfilling optional fields and flags."""

    payload = data.to_payload() if isinstance(data, AttendeeRow) else to_record_keys(data)
    for name in _OPTIONAL_TEXT_FIELDS:
        alias = _FIELD_KEYS[name]
        if not payload.get(alias):
            payload[alias] = None
    _sync_flags(payload)
    payload["id"] = attendee_id
    payload["createdAt"] = created_at
    return AttendeeRecord.model_validate(payload)


def merge_record(existing: AttendeeRecord, changes: Mapping[str, Any]) -> AttendeeRecord:
    """Field-wise overwrite of ``existing``; id and created_at never change."""

    update = {
        alias: value
        for alias, value in to_record_keys(changes).items()
        if alias not in ("id", "createdAt")
    }
    payload = existing.model_dump(mode="python", by_alias=True)
    payload.update(update)
    _sync_flags(payload)
    return AttendeeRecord.model_validate(payload)


def ordering_key(record: AttendeeRecord) -> tuple:
    """Grouped records first (by group id, then age), ungrouped after by age."""
    if record.duplicate_group:
        return (0, record.duplicate_group, record.created_at)
    return (1, "", record.created_at)


def order_attendees(records: Iterable[AttendeeRecord]) -> List[AttendeeRecord]:
    # sorted() is stable: equal timestamps keep insertion order
    return sorted(records, key=ordering_key)


def matches_search(record: AttendeeRecord, query: str) -> bool:
    needle = query.lower()
    for name in SEARCH_FIELDS:
        value = getattr(record, name)
        if value and needle in value.lower():
            return True
    return False


# ---------------------------------------------------------------------------
# In-memory implementation
# ---------------------------------------------------------------------------

class MemoryAttendeeRepository:
    """Process-lifetime attendee store keyed by id."""

    def __init__(self) -> None:
        self._attendees: dict[str, AttendeeRecord] = {}
        self._files: dict[str, FileDescriptor] = {}

    def get(self, attendee_id: str) -> Optional[AttendeeRecord]:
        """Record by id, or None."""
        return self._attendees.get(attendee_id)

    def get_by_email(self, email: str) -> Optional[AttendeeRecord]:
        """First record whose stored email equals ``email`` exactly."""
        return next((r for r in self._attendees.values() if r.email == email), None)

    def insert(self, data: AttendeeInput) -> AttendeeRecord:
        """Store one row under a fresh id and creation time."""
        record = build_record(data, attendee_id=new_id(), created_at=utcnow())
        self._attendees[record.id] = record
        return record

    def bulk_insert(self, rows: Iterable[AttendeeInput]) -> List[AttendeeRecord]:
        """Insert rows in order; returns the stored records."""
        return [self.insert(row) for row in rows]

    def update(self, attendee_id: str, changes: Mapping[str, Any]) -> Optional[AttendeeRecord]:
        """Merge ``changes`` into a record; None when the id is unknown."""
        existing = self._attendees.get(attendee_id)
        if existing is None:
            return None
        updated = merge_record(existing, changes)
        self._attendees[attendee_id] = updated
        return updated

    def delete(self, attendee_id: str) -> bool:
        """Remove a record; False when nothing was stored under the id."""
        return self._attendees.pop(attendee_id, None) is not None

    def all(self) -> List[AttendeeRecord]:
        """Every record in ``ordering_key`` order: duplicate groups first, oldest first."""
        return order_attendees(self._attendees.values())

    def search(self, query: str) -> List[AttendeeRecord]:
        """Case-insensitive substring match over the ``SEARCH_FIELDS`` columns."""
        if not query:
            return []
        return [r for r in self.all() if matches_search(r, query)]

    def by_status(self, status: AttendeeStatus | str) -> List[AttendeeRecord]:
        """Records in the given status bucket, in ``all()`` order."""
        return [r for r in self.all() if r.matches_status(status)]

    def purge_by_file(self, file_id: str) -> bool:
        """Drop the attendees of an upload before it is re-ingested."""
        # Records carry no file attribution: the whole store is cleared.
        self._attendees.clear()
        return True

    def create_file(self, **fields: Any) -> FileDescriptor:
        """Record an uploaded file under a fresh id and upload time."""
        descriptor = FileDescriptor(id=new_id(), uploaded_at=utcnow(), **fields)
        self._files[descriptor.id] = descriptor
        return descriptor

    def get_file(self, file_id: str) -> Optional[FileDescriptor]:
        """File descriptor by id, or None."""
        return self._files.get(file_id)

    def list_files(self) -> List[FileDescriptor]:
        """Uploaded files, most recent first."""
        return sorted(self._files.values(), key=lambda f: f.uploaded_at, reverse=True)

    def ping(self) -> str:
        """Name of the backend; always reachable."""
        return "memory"


_default_repository: Optional[AttendeeStorage] = None


def get_attendee_repository(backend: str = "memory") -> AttendeeStorage:
    """Return the process-wide repository, creating it on first use."""
    global _default_repository
    if _default_repository is None:
        if backend == "mongo":
            from repositories.mongo_attendee_repository import MongoAttendeeRepository

            repo = MongoAttendeeRepository()
            repo.ensure_indexes()
            _default_repository = repo
        else:
            _default_repository = MemoryAttendeeRepository()
    return _default_repository
