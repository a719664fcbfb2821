"""UTC datetime helpers shared by the key checks and the event pipeline.

Every instant the service compares or stores is timezone-aware UTC:

    from pulse.common.datetime_utils import utcnow, as_utc, parse_instant

    now = utcnow()                      # aware UTC
    expires = as_utc(row["expires_at"]) # naive values from the store → UTC
    when = parse_instant("2024-02-20T12:00:00Z")
"""

from __future__ import annotations

import math
from datetime import datetime, timezone


def utcnow() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_instant(value: str | int | float) -> datetime:
    """Parse a client-supplied instant.

    Accepts:
        • ISO-8601 strings — dates ("2024-01-01") or date-times, with or
          without offset ("Z" included). No offset means UTC.
        • Numbers — milliseconds since the Unix epoch.

    Raises:
        ValueError: If the value is not a finite, representable instant.
    """
    if isinstance(value, bool):
        raise ValueError("Boolean is not a timestamp")

    if isinstance(value, (int, float)):
        if not math.isfinite(value):
            raise ValueError(f"Non-finite timestamp: {value!r}")
        try:
            return datetime.fromtimestamp(value / 1000, tz=timezone.utc)
        except (OverflowError, OSError) as exc:
            raise ValueError(f"Timestamp out of range: {value!r}") from exc

    text = value.strip()
    if not text:
        raise ValueError("Empty timestamp")
    return as_utc(datetime.fromisoformat(text))
