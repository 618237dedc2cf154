# services/ingest_service.py

"""Drive one uploaded report through the pipeline and into the repository."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Mapping, Optional

from config import settings as app_settings
from domain.models.attendee import AttendeeRow
from domain.models.file_descriptor import FileDescriptor
from middleware.errors import (
    BaseAppError,
    IngestTimeoutError,
    InputTooLargeError,
    StorageFailureError,
    UnexpectedError,
)
from repositories.attendee_repository import AttendeeStorage
from services.ingest_pipeline import run_pipeline
from utils.excel import Matrix, read_sheet_matrix

logger = logging.getLogger(__name__)

MIB = 1024 * 1024

SheetReader = Callable[[bytes, str], Matrix]


@dataclass
class IngestSettings:
    max_upload_bytes: int = app_settings.MAX_UPLOAD_BYTES
    batch_size: int = app_settings.INGEST_BATCH_SIZE
    store_batch_size: int = app_settings.STORE_BATCH_SIZE
    store_batch_delay: float = app_settings.STORE_BATCH_DELAY
    sheet_read_timeout: float = app_settings.SHEET_READ_TIMEOUT
    error_limit: int = app_settings.ERROR_REPORT_LIMIT

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> "IngestSettings":
        """Build settings from a Flask ``app.config``-like mapping."""
        defaults = cls()
        return cls(
            max_upload_bytes=int(config.get("MAX_UPLOAD_BYTES", defaults.max_upload_bytes)),
            batch_size=int(config.get("INGEST_BATCH_SIZE", defaults.batch_size)),
            store_batch_size=int(config.get("STORE_BATCH_SIZE", defaults.store_batch_size)),
            store_batch_delay=float(config.get("STORE_BATCH_DELAY", defaults.store_batch_delay)),
            sheet_read_timeout=float(config.get("SHEET_READ_TIMEOUT", defaults.sheet_read_timeout)),
            error_limit=int(config.get("ERROR_REPORT_LIMIT", defaults.error_limit)),
        )


def _round_mb(size: int) -> int:
    return int(size / MIB + 0.5)


def check_upload_size(file_size: int, max_size: int) -> None:
    """Reject payloads strictly larger than ``max_size`` bytes."""
    if file_size > max_size:
        logger.info("File too large: %d bytes (max: %d)", file_size, max_size)
        raise InputTooLargeError(
            f"حجم الملف كبير جداً ({_round_mb(file_size)}MB). "
            f"الحد الأقصى المسموح هو {_round_mb(max_size)}MB للحصول على أفضل أداء",
            details={"fileSize": file_size, "maxSize": max_size},
        )


def classify_ingest_error(exc: BaseException) -> BaseAppError:
    """Map an exception raised during ingest to the API error taxonomy."""

    if isinstance(exc, BaseAppError):
        return exc
    if isinstance(exc, (asyncio.TimeoutError, TimeoutError)):
        return IngestTimeoutError()
    if isinstance(exc, MemoryError):
        return InputTooLargeError()

    text = str(exc).lower()
    if "timeout" in text or "timed out" in text:
        return IngestTimeoutError()
    if "memory" in text or "heap" in text:
        return InputTooLargeError()
    return UnexpectedError(details={"reason": exc.__class__.__name__})


async def _read_matrix(
    data: bytes, file_name: str, read_sheet: SheetReader, timeout: float
) -> Matrix:
    return await asyncio.wait_for(asyncio.to_thread(read_sheet, data, file_name), timeout)


async def store_rows(
    repository: AttendeeStorage,
    rows: List[AttendeeRow],
    *,
    batch_size: int,
    delay: float,
) -> int:
    """Bulk insert ``rows`` in batches, pausing between batches.

    Rows stored before a failure stay stored.
    """
    batch_size = max(1, int(batch_size))
    total_batches = (len(rows) + batch_size - 1) // batch_size
    stored = 0
    for number, start in enumerate(range(0, len(rows), batch_size), start=1):
        batch = rows[start:start + batch_size]
        logger.debug("Storing batch %d/%d", number, total_batches)
        try:
            stored += len(repository.bulk_insert(batch))
        except Exception as exc:
            logger.exception("Storage failed after %d rows", stored)
            raise StorageFailureError(details={"stored": stored}) from exc
        if number < total_batches and delay > 0:
            await asyncio.sleep(delay)
    return stored


async def ingest_upload(
    data: bytes,
    file_name: str,
    *,
    repository: AttendeeStorage,
    settings: Optional[IngestSettings] = None,
    read_sheet: SheetReader = read_sheet_matrix,
) -> Dict[str, Any]:
    """
    Ingest one uploaded report.

    Returns ``{"fileId", "statistics", "errors", "message"}``; raises a
    :class:`BaseAppError` subclass on failure.
    """

    settings = settings or IngestSettings()
    file_size = len(data)
    logger.info("Starting to parse file: %s, size: %d bytes", file_name, file_size)
    check_upload_size(file_size, settings.max_upload_bytes)

    try:
        matrix = await _read_matrix(data, file_name, read_sheet, settings.sheet_read_timeout)
        logger.info("Raw data extracted, total rows: %d", len(matrix))

        result = await run_pipeline(
            matrix,
            batch_size=settings.batch_size,
            error_limit=settings.error_limit,
        )
        del matrix

        stats = result.statistics
        try:
            descriptor: FileDescriptor = repository.create_file(
                file_name=file_name,
                file_size=file_size,
                total_records=stats.total,
                valid_records=stats.valid,
                duplicate_records=stats.duplicate,
                error_records=stats.error,
            )
        except Exception as exc:
            logger.exception("Could not create file descriptor for %s", file_name)
            raise StorageFailureError() from exc
        logger.info("File record created with ID: %s", descriptor.id)

        stored = await store_rows(
            repository,
            result.rows,
            batch_size=settings.store_batch_size,
            delay=settings.store_batch_delay,
        )
        logger.info("Successfully stored %d attendees", stored)
    except BaseAppError:
        raise
    except Exception as exc:
        logger.exception("Critical error while processing %s", file_name)
        raise classify_ingest_error(exc) from exc

    return {
        "fileId": descriptor.id,
        "statistics": stats.to_dict(),
        "errors": [entry.to_dict() for entry in result.errors[: settings.error_limit]],
        "message": f"تم معالجة {stats.total} سجل بنجاح",
    }
