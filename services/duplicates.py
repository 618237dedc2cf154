"""Email-based duplicate grouping for ingested attendee rows."""

from __future__ import annotations

from typing import Iterable

from domain.models.attendee import AttendeeRow

GROUP_PREFIX = "duplicate-group-"


def group_duplicates(rows: Iterable[AttendeeRow]) -> dict[str, list[AttendeeRow]]:
    """
    Mark rows sharing a lowercased email and return ``{group_id: rows}``.

    Group numbers follow the first occurrence of each email in ``rows``, so
    identical input always yields identical group ids. Rows without an email
    are never grouped.
    """

    by_email: dict[str, list[AttendeeRow]] = {}
    for row in rows:
        key = (row.email or "").lower()
        if not key:
            continue
        by_email.setdefault(key, []).append(row)

    groups: dict[str, list[AttendeeRow]] = {}
    counter = 1
    for members in by_email.values():
        if len(members) < 2:
            continue
        group_id = f"{GROUP_PREFIX}{counter}"
        counter += 1
        for row in members:
            row.mark_duplicate(group_id)
        groups[group_id] = members
    return groups
