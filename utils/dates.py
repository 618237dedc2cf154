"""Utility helpers for working with date-like cell values."""

from __future__ import annotations

import math
from datetime import date as date_cls
from datetime import datetime, timedelta
from typing import Optional

from utils.normalization import _is_missing_value, as_text

_EXCEL_EPOCH = datetime(1899, 12, 30)
_MS_PER_DAY = 24 * 60 * 60 * 1000
TIMESTAMP_FORMAT = "%m/%d/%Y %H:%M"


def _is_excel_number(value: object) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def excel_serial_to_datetime(value: object) -> Optional[datetime]:
    """Convert an Excel serial number (days since 1899-12-30) to datetime.

    The fractional day is rounded to the nearest whole millisecond.
    """

    if not _is_excel_number(value):
        return None
    number = float(value)
    if math.isnan(number) or math.isinf(number):
        return None
    try:
        return _EXCEL_EPOCH + timedelta(milliseconds=round(number * _MS_PER_DAY))
    except OverflowError:
        return None


def _format_serial(number: float) -> str:
    dt = excel_serial_to_datetime(number)
    if dt is None:
        return as_text(number)
    return dt.strftime(TIMESTAMP_FORMAT)


def decode_timestamp(value: object) -> str:
    """
    Normalize registration/join/leave cells to ``MM/DD/YYYY HH:MM``.

    * empty and ``--`` yield ``""``
    * text already shaped like a date (contains ``/`` or ``-``) passes through
    * numbers greater than 1 are Excel serial dates
    * numeric text is decoded like a number; anything else is stringified
    """

    if _is_missing_value(value):
        return ""

    if isinstance(value, datetime):
        return value.strftime(TIMESTAMP_FORMAT)
    if isinstance(value, date_cls):
        return datetime(value.year, value.month, value.day).strftime(TIMESTAMP_FORMAT)

    if isinstance(value, str):
        if value == "" or value == "--":
            return ""
        if "/" in value or "-" in value:
            return value
        try:
            number = float(value)
        except ValueError:
            return value
        if math.isnan(number):
            return value
        value = number

    if _is_excel_number(value) and value > 1:
        return _format_serial(float(value))

    return as_text(value)


__all__ = ["TIMESTAMP_FORMAT", "decode_timestamp", "excel_serial_to_datetime"]
