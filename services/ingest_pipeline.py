# services/ingest_pipeline.py
"""
================================================================================
Attendee Ingest Pipeline
================================================================================

Turns the raw 2-D cell matrix of a webinar report into decoded attendee rows.

Steps:
------
1. Locate the "Attendee Details" section (column-header row).
2. Skip short (< 6 cells) or blank rows.
3. Decode each row positionally into an :class:`AttendeeRow`.
4. Validate every row; invalid rows stay in the result and feed the
   error report.
5. Group duplicates by lowercased email.
6. Compute statistics.

Statistics are overlapping: an errored duplicate counts both as
``duplicate`` and as ``error``, so ``valid + duplicate + error`` may exceed
``total``.

No storage happens here; see ``services/ingest_service.py``.
================================================================================
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Sequence

from domain.models.attendee import AttendeeRow, ErrorReportEntry, IngestStatistics
from services.attendee_section import locate_attendee_section
from services.duplicates import group_duplicates
from services.row_validator import validate_row
from utils.dates import decode_timestamp
from utils.normalization import clean_text, is_blank_cell, normalize_email, parse_duration, trimmed

logger = logging.getLogger(__name__)

MIN_ROW_CELLS = 6
DEFAULT_BATCH_SIZE = 100
DEFAULT_ERROR_LIMIT = 50

# Column offsets inside the attendee section
COL_ATTENDED = 0
COL_USER_NAME = 1
COL_FIRST_NAME = 2
COL_LAST_NAME = 3
COL_EMAIL = 4
COL_REGISTRATION_TIME = 5
COL_APPROVAL_STATUS = 6
COL_JOIN_TIME = 7
COL_LEAVE_TIME = 8
COL_SESSION_DURATION = 9
COL_IS_GUEST = 10
COL_PHONE_NUMBER = 11
COL_COUNTRY = 12


@dataclass
class IngestResult:
    rows: list[AttendeeRow]
    errors: list[ErrorReportEntry]
    statistics: IngestStatistics
    header_row_index: int
    duplicate_groups: dict[str, list[AttendeeRow]] = field(default_factory=dict)


def _cell(cells: Sequence[object], index: int) -> object:
    return cells[index] if index < len(cells) else None


def is_attendee_row(cells: Sequence[object] | None) -> bool:
    """Rows shorter than six cells or made only of blanks are skipped."""
    if not cells or len(cells) < MIN_ROW_CELLS:
        return False
    return any(not is_blank_cell(cell) for cell in cells)


def decode_row(cells: Sequence[object], row_index: int) -> AttendeeRow:
    """Map one sheet row to an :class:`AttendeeRow` by column position."""

    return AttendeeRow(
        row_index=row_index,
        attended=trimmed(_cell(cells, COL_ATTENDED)),
        user_name=trimmed(_cell(cells, COL_USER_NAME)),
        first_name=trimmed(_cell(cells, COL_FIRST_NAME)),
        last_name=trimmed(_cell(cells, COL_LAST_NAME)),
        email=normalize_email(_cell(cells, COL_EMAIL)),
        registration_time=decode_timestamp(_cell(cells, COL_REGISTRATION_TIME)),
        approval_status=clean_text(_cell(cells, COL_APPROVAL_STATUS)),
        join_time=decode_timestamp(_cell(cells, COL_JOIN_TIME)),
        leave_time=decode_timestamp(_cell(cells, COL_LEAVE_TIME)),
        session_duration=parse_duration(_cell(cells, COL_SESSION_DURATION)),
        is_guest=clean_text(_cell(cells, COL_IS_GUEST)),
        phone_number=clean_text(_cell(cells, COL_PHONE_NUMBER)),
        country=clean_text(_cell(cells, COL_COUNTRY)),
    )


def check_row(row: AttendeeRow) -> bool:
    """Validate ``row`` in place and return whether it passed."""

    outcome = validate_row(row)
    if not outcome.ok:
        row.mark_invalid(outcome.errors)
    return outcome.ok


def report_entry(row: AttendeeRow) -> ErrorReportEntry:
    return ErrorReportEntry(
        row_index=row.row_index,
        messages=list(row.error_messages),
        data=row.to_payload(),
    )


def compute_statistics(rows: Sequence[AttendeeRow]) -> IngestStatistics:
    return IngestStatistics(
        total=len(rows),
        valid=sum(1 for r in rows if not r.has_errors and not r.is_duplicate),
        duplicate=sum(1 for r in rows if r.is_duplicate),
        error=sum(1 for r in rows if r.has_errors),
    )


async def run_pipeline(
    matrix: Sequence[Sequence[object]],
    *,
    batch_size: int = DEFAULT_BATCH_SIZE,
    error_limit: int = DEFAULT_ERROR_LIMIT,
) -> IngestResult:
    """Decode, validate and group the attendee section of ``matrix``."""

    header_row_index = locate_attendee_section(matrix)
    logger.info("Found 'Attendee Details' header at row %d", header_row_index)

    # Keep the sheet offset so row_index is the real 1-based sheet row.
    candidates = [
        (offset, cells)
        for offset, cells in enumerate(matrix[header_row_index + 1:])
        if is_attendee_row(cells)
    ]
    logger.info("Processing %d attendee rows", len(candidates))

    batch_size = max(1, int(batch_size))
    rows: list[AttendeeRow] = []

    for start in range(0, len(candidates), batch_size):
        for offset, cells in candidates[start:start + batch_size]:
            row = decode_row(cells, header_row_index + 2 + offset)
            check_row(row)
            rows.append(row)

        logger.debug("Processed %d/%d rows", len(rows), len(candidates))
        # Give the event loop a turn after every pair of batches
        if start > 0 and start % (batch_size * 2) == 0:
            await asyncio.sleep(0)

    groups = group_duplicates(rows)
    # Built after grouping so the report data carries the duplicate flags
    errors = [report_entry(row) for row in rows if row.has_errors]
    statistics = compute_statistics(rows)
    logger.info(
        "Ingest statistics: total=%d valid=%d duplicates=%d errors=%d groups=%d",
        statistics.total,
        statistics.valid,
        statistics.duplicate,
        statistics.error,
        len(groups),
    )

    return IngestResult(
        rows=rows,
        errors=errors[:error_limit],
        statistics=statistics,
        header_row_index=header_row_index,
        duplicate_groups=groups,
    )
