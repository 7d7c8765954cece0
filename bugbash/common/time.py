"""Common time utilities."""

from __future__ import annotations

import datetime as dt


def utcnow() -> dt.datetime:
    """Return an aware UTC timestamp suitable for DB defaults."""
    return dt.datetime.now(dt.UTC)


def parse_aware_iso(value: str, *, field: str) -> dt.datetime:
    """Parse an ISO-8601 timestamp that must carry an offset.

    A trailing ``Z`` is accepted as UTC.

    Raises
    ------
    ValueError
        If the value is not ISO-8601 or has no timezone information.

    """
    try:
        parsed = dt.datetime.fromisoformat(value)
    except ValueError as exc:
        msg = f"{field} must be an ISO-8601 timestamp, got: {value!r}"
        raise ValueError(msg) from exc
    if parsed.tzinfo is None:
        msg = (
            f"{field} must include timezone information, got naive datetime: "
            f"{value!r}. Use an offset such as '2021-11-01T12:00:00Z'."
        )
        raise ValueError(msg)
    return parsed.astimezone(dt.UTC)
