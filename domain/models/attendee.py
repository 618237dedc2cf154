from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import StrEnum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel


YES_MARKERS = ("نعم", "Yes")


class AttendeeStatus(StrEnum):
    valid = "valid"
    duplicate = "duplicate"
    error = "error"
    all = "all"


@dataclass
class AttendeeRow:
    """Decoded sheet row while it moves through the ingest pipeline."""

    row_index: int
    attended: str = ""
    user_name: str = ""
    first_name: str = ""
    last_name: str = ""
    email: str = ""
    registration_time: str = ""
    approval_status: str = ""
    join_time: str = ""
    leave_time: str = ""
    session_duration: Optional[int] = None
    is_guest: str = ""
    phone_number: str = ""
    country: str = ""
    is_duplicate: bool = False
    duplicate_group: Optional[str] = None
    has_errors: bool = False
    error_messages: list[str] = field(default_factory=list)

    @property
    def is_present(self) -> bool:
        return self.attended in YES_MARKERS

    def mark_invalid(self, messages: list[str]) -> None:
        self.has_errors = bool(messages)
        self.error_messages = list(messages)

    def mark_duplicate(self, group_id: str) -> None:
        self.is_duplicate = True
        self.duplicate_group = group_id

    def to_payload(self) -> dict[str, Any]:
        """Return the record fields (camelCase) without the sheet row index."""
        return {
            "attended": self.attended,
            "userName": self.user_name,
            "firstName": self.first_name,
            "lastName": self.last_name,
            "email": self.email,
            "registrationTime": self.registration_time,
            "approvalStatus": self.approval_status,
            "joinTime": self.join_time or None,
            "leaveTime": self.leave_time or None,
            "sessionDuration": self.session_duration,
            "isGuest": self.is_guest or None,
            "country": self.country or None,
            "phoneNumber": self.phone_number or None,
            "isDuplicate": self.is_duplicate,
            "duplicateGroup": self.duplicate_group,
            "hasErrors": self.has_errors,
            "errorMessages": list(self.error_messages),
        }


class AttendeeRecord(BaseModel):
    """Stored attendee. Frozen: edits go through the repository ``update``."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
    )

    id: str
    attended: str
    user_name: str
    first_name: str
    last_name: str
    email: str
    registration_time: str
    approval_status: str = ""
    join_time: Optional[str] = None
    leave_time: Optional[str] = None
    session_duration: Optional[int] = None
    is_guest: Optional[str] = None
    country: Optional[str] = None
    phone_number: Optional[str] = None
    is_duplicate: bool = False
    duplicate_group: Optional[str] = None
    has_errors: bool = False
    error_messages: tuple[str, ...] = Field(default_factory=tuple)
    created_at: datetime

    @field_validator("error_messages", mode="before")
    @classmethod
    def _none_to_empty(cls, v):
        if v is None:
            return ()
        return tuple(v)

    @field_validator("approval_status", mode="before")
    @classmethod
    def _approval_default(cls, v):
        return "" if v is None else v

    @property
    def status(self) -> AttendeeStatus:
        """Exclusive status: errors win over duplicates."""
        if self.has_errors:
            return AttendeeStatus.error
        if self.is_duplicate:
            return AttendeeStatus.duplicate
        return AttendeeStatus.valid

    def matches_status(self, status: AttendeeStatus | str) -> bool:
        status = AttendeeStatus(status)
        if status is AttendeeStatus.valid:
            return not self.has_errors and not self.is_duplicate
        if status is AttendeeStatus.duplicate:
            return self.is_duplicate
        if status is AttendeeStatus.error:
            return self.has_errors
        return True

    def to_api(self) -> dict[str, Any]:
        data = self.model_dump(mode="json", by_alias=True)
        data["errorMessages"] = list(self.error_messages)
        return data

    def to_mongo(self) -> dict:
        data = self.model_dump(mode="python", by_alias=True)
        data["errorMessages"] = list(self.error_messages)
        return data

    @classmethod
    def from_mongo(cls, doc: dict) -> "AttendeeRecord":
        payload = {k: v for k, v in doc.items() if k != "_id"}
        return cls.model_validate(payload)


@dataclass
class ErrorReportEntry:
    row_index: int
    messages: list[str]
    data: dict[str, Any]
    type: str = "بيانات غير صحيحة"

    def to_dict(self) -> dict[str, Any]:
        return {
            "rowIndex": self.row_index,
            "type": self.type,
            "messages": list(self.messages),
            "data": dict(self.data),
        }


@dataclass
class IngestStatistics:
    total: int = 0
    valid: int = 0
    duplicate: int = 0
    error: int = 0

    def to_dict(self) -> dict[str, int]:
        return {
            "totalRecords": self.total,
            "validRecords": self.valid,
            "duplicateRecords": self.duplicate,
            "errorRecords": self.error,
        }
