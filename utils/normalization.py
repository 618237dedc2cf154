"""Cell value normalization shared by the ingest pipeline and the edit flow."""

from __future__ import annotations

import math
from typing import Optional

import pandas as pd

PLACEHOLDERS = frozenset({"", "--", "N/A", "null", "undefined"})


def _is_missing_value(value: object) -> bool:
    if value is None:
        return True
    try:
        return bool(pd.isna(value))
    except (TypeError, ValueError):
        # list-like values make pd.isna return an array
        return False


def as_text(value: object) -> str:
    """Stringify a raw cell value, rendering integral floats without ``.0``."""

    if _is_missing_value(value):
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def trimmed(value: object) -> str:
    return as_text(value).strip()


def clean_text(value: object) -> str:
    """Trim ``value`` and collapse placeholder values to an empty string."""

    text = trimmed(value)
    if text in PLACEHOLDERS:
        return ""
    return text


def normalize_email(value: object) -> str:
    return clean_text(value).lower()


def is_blank_cell(value: object) -> bool:
    return trimmed(value) == ""


def parse_duration(value: object) -> Optional[int]:
    """Return the integer part of ``value`` or ``None`` when it is not numeric."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)) and not _is_missing_value(value):
        number = float(value)
    else:
        text = clean_text(value)
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    if math.isnan(number) or math.isinf(number):
        return None
    return int(number)


__all__ = [
    "PLACEHOLDERS",
    "as_text",
    "clean_text",
    "is_blank_cell",
    "normalize_email",
    "parse_duration",
    "trimmed",
]
