from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(eq=True)
class FileDescriptor:
    """One row per successful ingest, mirroring the stored representation."""

    id: str
    file_name: str
    file_size: int
    total_records: int = 0
    valid_records: int = 0
    duplicate_records: int = 0
    error_records: int = 0
    uploaded_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.file_size < 0:
            raise ValueError("file_size must be non-negative")

    # ----------------- Serialization helpers -----------------
    def to_mongo(self) -> dict:
        return {
            "id": self.id,
            "fileName": self.file_name,
            "fileSize": self.file_size,
            "totalRecords": self.total_records,
            "validRecords": self.valid_records,
            "duplicateRecords": self.duplicate_records,
            "errorRecords": self.error_records,
            "uploadedAt": self.uploaded_at,
        }

    @classmethod
    def from_mongo(cls, doc: dict | None) -> FileDescriptor | None:
        if not doc:
            return None
        return cls(
            id=doc.get("id", ""),
            file_name=doc.get("fileName", ""),
            file_size=int(doc.get("fileSize") or 0),
            total_records=int(doc.get("totalRecords") or 0),
            valid_records=int(doc.get("validRecords") or 0),
            duplicate_records=int(doc.get("duplicateRecords") or 0),
            error_records=int(doc.get("errorRecords") or 0),
            uploaded_at=doc.get("uploadedAt"),
        )

    def to_api(self) -> dict:
        doc = self.to_mongo()
        doc["uploadedAt"] = self.uploaded_at.isoformat() if self.uploaded_at else None
        return doc
