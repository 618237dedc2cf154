"""Field-level validation for decoded attendee rows and edited records."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Any, Mapping

EMAIL_RE = re.compile(r"[^\s@]+@[^\s@]+\.[^\s@]+")
PHONE_RE = re.compile(r"\+?[0-9]+")
_WHITESPACE_RE = re.compile(r"\s+")

MSG_ATTENDED_REQUIRED = "حقل الحضور مطلوب"
MSG_USER_NAME_REQUIRED = "اسم المستخدم مطلوب"
MSG_FIRST_NAME_REQUIRED = "الاسم الأول مطلوب"
MSG_FIRST_NAME_PLACEHOLDER = "الاسم الأول لا يمكن أن يكون فارغاً أو '--'"
MSG_LAST_NAME_REQUIRED = "اسم العائلة مطلوب"
MSG_LAST_NAME_PLACEHOLDER = "اسم العائلة لا يمكن أن يكون فارغاً أو '--'"
MSG_EMAIL_INVALID = "البريد الإلكتروني غير صحيح - يجب أن يحتوي على @ و ."
MSG_REGISTRATION_REQUIRED = "وقت التسجيل مطلوب"
MSG_PHONE_DIGITS = "رقم الهاتف يجب أن يحتوي على أرقام فقط"


@dataclass
class ValidationOutcome:
    ok: bool
    errors: list[str] = field(default_factory=list)


def _value(row: Any, name: str) -> str:
    if isinstance(row, Mapping):
        raw = row.get(name)
    else:
        raw = getattr(row, name, None)
    return "" if raw is None else str(raw)


def _check_name(value: str, required_msg: str, placeholder_msg: str) -> str | None:
    if value == "":
        return required_msg
    if value.strip() in ("", "--"):
        return placeholder_msg
    return None


def is_valid_email(value: str) -> bool:
    return bool(value) and EMAIL_RE.fullmatch(value) is not None


def is_valid_phone(value: str) -> bool:
    compact = _WHITESPACE_RE.sub("", value or "")
    return not compact or PHONE_RE.fullmatch(compact) is not None


def validate_row(row: Any) -> ValidationOutcome:
    """
    Check a decoded row (or any object/mapping with snake_case attendee fields).

    Every rule runs; the outcome carries all messages in field order.
    """

    errors: list[str] = []

    if not _value(row, "attended").strip():
        errors.append(MSG_ATTENDED_REQUIRED)

    if not _value(row, "user_name").strip():
        errors.append(MSG_USER_NAME_REQUIRED)

    for name, required_msg, placeholder_msg in (
        ("first_name", MSG_FIRST_NAME_REQUIRED, MSG_FIRST_NAME_PLACEHOLDER),
        ("last_name", MSG_LAST_NAME_REQUIRED, MSG_LAST_NAME_PLACEHOLDER),
    ):
        problem = _check_name(_value(row, name), required_msg, placeholder_msg)
        if problem:
            errors.append(problem)

    if not is_valid_email(_value(row, "email")):
        errors.append(MSG_EMAIL_INVALID)

    if not _value(row, "registration_time").strip():
        errors.append(MSG_REGISTRATION_REQUIRED)

    if not is_valid_phone(_value(row, "phone_number")):
        errors.append(MSG_PHONE_DIGITS)

    return ValidationOutcome(ok=not errors, errors=errors)


__all__ = [
    "MSG_ATTENDED_REQUIRED",
    "MSG_EMAIL_INVALID",
    "MSG_FIRST_NAME_PLACEHOLDER",
    "MSG_FIRST_NAME_REQUIRED",
    "MSG_LAST_NAME_PLACEHOLDER",
    "MSG_LAST_NAME_REQUIRED",
    "MSG_PHONE_DIGITS",
    "MSG_REGISTRATION_REQUIRED",
    "MSG_USER_NAME_REQUIRED",
    "ValidationOutcome",
    "is_valid_email",
    "is_valid_phone",
    "validate_row",
]
