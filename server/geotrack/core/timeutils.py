"""Instant parsing and formatting.

All instants inside the core are timezone-aware UTC datetimes. Local time only
appears in display labels.
"""

from __future__ import annotations

import math
from datetime import datetime, timezone, tzinfo
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def tzinfo_from_name(tz_name: str) -> tzinfo:
    """Create a tzinfo from an IANA timezone name.

    Raises:
        ValueError: If the name is unknown on this system.
    """
    if tz_name.upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError) as exc:
        raise ValueError(f"unknown timezone {tz_name!r}") from exc


def parse_instant(value: object) -> datetime:
    """Coerce a timestamp into an aware UTC datetime.

    Accepts a ``datetime`` (naive values are taken as UTC), epoch milliseconds
    as int/float, or ISO-8601 text (a trailing ``Z`` is understood).

    Raises:
        ValueError: If the value cannot be interpreted as an instant.
    """
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value.astimezone(timezone.utc)

    if isinstance(value, bool):
        raise ValueError(f"not a timestamp: {value!r}")

    if isinstance(value, (int, float)):
        try:
            if not math.isfinite(value):
                raise ValueError(f"not a finite timestamp: {value!r}")
            return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
        except (OverflowError, OSError) as exc:
            raise ValueError(f"timestamp out of range: {value!r}") from exc

    if isinstance(value, str):
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            dt = datetime.fromisoformat(text)
        except ValueError as exc:
            raise ValueError(f"cannot parse timestamp {value!r}") from exc
        return parse_instant(dt)

    raise ValueError(f"unsupported timestamp type: {type(value).__name__}")


def isoformat_utc(dt: datetime) -> str:
    """ISO-8601 UTC text with millisecond precision, e.g. ``2024-05-01T08:00:00.000Z``."""
    text = dt.astimezone(timezone.utc).isoformat(timespec="milliseconds")
    return text.replace("+00:00", "Z")


def elapsed_seconds(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds()


def time_label(dt: datetime, tz_name: str = "UTC") -> str:
    """Local wall-clock label ``HH:MM:SS`` used by speed series."""
    return dt.astimezone(tzinfo_from_name(tz_name)).strftime("%H:%M:%S")


def datetime_label(dt: datetime, tz_name: str = "UTC") -> str:
    return dt.astimezone(tzinfo_from_name(tz_name)).strftime("%Y-%m-%d %H:%M")
