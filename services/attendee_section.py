# services/attendee_section.py
"""Locate the "Attendee Details" block inside a webinar report sheet."""

from __future__ import annotations

import logging
from typing import Sequence

from middleware.errors import MissingSectionError
from utils.normalization import trimmed

logger = logging.getLogger(__name__)

SECTION_MARKER = "Attendee Details"

# Column headers of the attendee block, positional order.
ARABIC_HEADERS = ("حضر", "اسم المستخدم", "الاسم الأول", "اسم العائلة", "البريد الإلكتروني")
ENGLISH_HEADERS = ("Attended", "User Name", "First Name", "Last Name", "Email")
HEADER_VOCABULARY = frozenset(ARABIC_HEADERS + ENGLISH_HEADERS)


def looks_like_header_row(row: Sequence[object]) -> bool:
    """True when any cell of ``row`` carries a known attendee column header."""
    cells = {trimmed(cell) for cell in row or ()}
    return bool(cells & HEADER_VOCABULARY)


def locate_attendee_section(matrix: Sequence[Sequence[object]]) -> int:
    """
    Return the zero-based index of the attendee column-header row.

    The header row sits immediately below the column-A cell containing
    ``Attendee Details``; data rows start one row further down. Raises
    :class:`MissingSectionError` when the marker is absent or is the last row.
    """

    for index, row in enumerate(matrix):
        if not row:
            continue
        if SECTION_MARKER in trimmed(row[0]):
            header_index = index + 1
            if header_index >= len(matrix):
                logger.info("'%s' marker found in the last row %d", SECTION_MARKER, index)
                break
            if not looks_like_header_row(matrix[header_index]):
                logger.warning(
                    "Row %d after '%s' does not match a known header vocabulary",
                    header_index,
                    SECTION_MARKER,
                )
            return header_index

    if logger.isEnabledFor(logging.DEBUG):
        for index, row in enumerate(list(matrix)[:10]):
            logger.debug("Row %d: %s", index, trimmed(row[0]) if row else "")
    raise MissingSectionError()


__all__ = [
    "ARABIC_HEADERS",
    "ENGLISH_HEADERS",
    "HEADER_VOCABULARY",
    "SECTION_MARKER",
    "locate_attendee_section",
    "looks_like_header_row",
]
