"""Service layer for reviewing, editing and exporting ingested attendees."""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping, Optional

from domain.models.attendee import AttendeeRecord, AttendeeStatus
from domain.models.file_descriptor import FileDescriptor
from middleware.errors import InvalidFilterError, InvalidUpdateError, RecordNotFoundError
from repositories.attendee_repository import AttendeeStorage, to_field_names
from services.row_validator import validate_row
from utils.excel import build_attendee_workbook
from utils.normalization import normalize_email, parse_duration

logger = logging.getLogger(__name__)

# Flags computed by ingest; edits never set them directly.
_DERIVED_FIELDS = {"id", "created_at", "is_duplicate", "duplicate_group", "has_errors", "error_messages"}


def parse_status(value: Optional[str]) -> AttendeeStatus:
    if not value:
        return AttendeeStatus.all
    try:
        return AttendeeStatus(value.strip().lower())
    except ValueError:
        raise InvalidFilterError(details={"status": value}) from None


def list_attendees(
    repo: AttendeeStorage,
    *,
    search: Optional[str] = None,
    status: Optional[str] = None,
) -> List[AttendeeRecord]:
    """Search wins over the status filter when both are given."""
    if search:
        return repo.search(search)
    parsed = parse_status(status)
    if parsed is AttendeeStatus.all:
        return repo.all()
    return repo.by_status(parsed)


def get_attendee(repo: AttendeeStorage, attendee_id: str) -> AttendeeRecord:
    record = repo.get(attendee_id)
    if record is None:
        raise RecordNotFoundError(details={"id": attendee_id})
    return record


def _coerce_changes(changes: Mapping[str, Any]) -> Dict[str, Any]:
    coerced: Dict[str, Any] = {}
    for name, value in to_field_names(changes).items():
        if name in _DERIVED_FIELDS:
            continue
        if name == "email":
            coerced[name] = normalize_email(value)
        elif name == "session_duration":
            coerced[name] = parse_duration(value)
        elif value is None:
            coerced[name] = None
        else:
            coerced[name] = str(value)
    return coerced


def _dissolve_lone_group(repo: AttendeeStorage, group_id: Optional[str]) -> None:
    """Ungroup the last member of ``group_id`` once it has no partner left."""
    if not group_id:
        return
    members = [r for r in repo.by_status(AttendeeStatus.duplicate) if r.duplicate_group == group_id]
    if len(members) == 1:
        logger.info("Dissolving %s, one member left", group_id)
        repo.update(members[0].id, {"duplicate_group": None})


def update_attendee(
    repo: AttendeeStorage, attendee_id: str, changes: Mapping[str, Any]
) -> AttendeeRecord:
    """
    Merge ``changes`` into the stored record after re-validating the result.

    A rejected edit leaves the stored record untouched. An accepted edit
    clears the row's error flags. Duplicate flags stay as ingested unless
    the email changes: the record then leaves its group, and a group left
    with a single member is dissolved.
    """
    existing = get_attendee(repo, attendee_id)
    coerced = _coerce_changes(changes)

    candidate = existing.model_dump()
    candidate.update(coerced)
    outcome = validate_row(candidate)
    if not outcome.ok:
        logger.info("Rejected update for %s: %s", attendee_id, outcome.errors)
        raise InvalidUpdateError(outcome.errors)

    coerced["error_messages"] = []
    left_group = None
    if existing.duplicate_group and coerced.get("email", existing.email) != existing.email.lower():
        left_group = existing.duplicate_group
        coerced["duplicate_group"] = None

    updated = repo.update(attendee_id, coerced)
    if updated is None:
        raise RecordNotFoundError(details={"id": attendee_id})
    _dissolve_lone_group(repo, left_group)
    return updated


def delete_attendee(repo: AttendeeStorage, attendee_id: str) -> None:
    existing = get_attendee(repo, attendee_id)
    if not repo.delete(attendee_id):
        raise RecordNotFoundError(details={"id": attendee_id})
    _dissolve_lone_group(repo, existing.duplicate_group)


def collect_statistics(repo: AttendeeStorage, *, exclusive: bool = False) -> Dict[str, int]:
    """
    Repository-wide counts.

    Default counts overlap (an errored duplicate is in both ``duplicate`` and
    ``error``). ``exclusive`` puts each record in exactly one bucket, errors
    first, so the three buckets sum to the total.
    """
    records = repo.all()
    if exclusive:
        statuses = [r.status for r in records]
        valid = statuses.count(AttendeeStatus.valid)
        duplicate = statuses.count(AttendeeStatus.duplicate)
        error = statuses.count(AttendeeStatus.error)
    else:
        valid = sum(1 for r in records if r.matches_status(AttendeeStatus.valid))
        duplicate = sum(1 for r in records if r.is_duplicate)
        error = sum(1 for r in records if r.has_errors)
    return {
        "totalRecords": len(records),
        "validRecords": valid,
        "duplicateRecords": duplicate,
        "errorRecords": error,
    }


def export_valid_attendees(repo: AttendeeStorage) -> bytes:
    """XLSX bytes holding only valid (non-duplicate, error-free) records."""
    records = repo.by_status(AttendeeStatus.valid)
    logger.info("Exporting %d valid attendees", len(records))
    return build_attendee_workbook(records)


def list_files(repo: AttendeeStorage) -> List[FileDescriptor]:
    return repo.list_files()


def get_file(repo: AttendeeStorage, file_id: str) -> FileDescriptor:
    descriptor = repo.get_file(file_id)
    if descriptor is None:
        raise RecordNotFoundError(details={"fileId": file_id})
    return descriptor


def purge_file(repo: AttendeeStorage, file_id: str) -> None:
    """Drop the attendees of ``file_id``; records are not file-scoped, so all go."""
    get_file(repo, file_id)
    logger.warning("Purging all attendees (requested for file %s)", file_id)
    repo.purge_by_file(file_id)
