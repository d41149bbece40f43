"""Point sanitizer — validates and normalizes raw location fixes.

Raw fixes arrive as loosely-typed mappings (JSON from a browser or a device).
This is the only place they are turned into ``PositionFix`` values; anything
that cannot be made sane is rejected with ``InvalidFixError``.
"""

from __future__ import annotations

import math
from datetime import datetime
from typing import Any, Mapping

from geotrack.core.geodesy import is_valid_coordinate
from geotrack.core.models import PositionFix
from geotrack.core.timeutils import parse_instant, utc_now

_LAT_KEYS = ("latitude", "lat")
_LON_KEYS = ("longitude", "lon", "lng")


class InvalidFixError(ValueError):
    """A raw fix has unusable coordinates or timestamp."""


def _first_present(data: Mapping[str, Any], keys: tuple[str, ...]) -> Any:
    for key in keys:
        if data.get(key) is not None:
            return data[key]
    return None


def _coerce_number(value: Any, name: str) -> float:
    if value is None:
        raise InvalidFixError(f"{name} is missing")
    if isinstance(value, bool):
        raise InvalidFixError(f"{name} is not numeric: {value!r}")
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        raise InvalidFixError(f"{name} is not numeric: {value!r}") from None
    if not math.isfinite(number):
        raise InvalidFixError(f"{name} is not finite: {value!r}")
    return number


def _optional_number(value: Any) -> float | None:
    """Best-effort float for optional fields; junk becomes None."""
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return None
    return number if math.isfinite(number) else None


def sanitize_fix(raw: Mapping[str, Any] | PositionFix, *, now: datetime | None = None) -> PositionFix:
    """Validate a raw fix and return a normalized ``PositionFix``.

    Args:
        raw: A mapping with ``latitude``/``longitude`` (or ``lat``/``lon``/``lng``,
            or a nested ``coords`` object), optional ``accuracy``, ``altitude``,
            ``speed``, ``battery`` and ``timestamp``. An existing ``PositionFix``
            is re-validated.
        now: Timestamp used when the fix carries none.

    Raises:
        InvalidFixError: If latitude/longitude are missing, non-numeric,
            non-finite or out of range, or the timestamp is unparseable.
    """
    if isinstance(raw, PositionFix):
        data: Mapping[str, Any] = {
            "latitude": raw.latitude,
            "longitude": raw.longitude,
            "accuracy": raw.accuracy,
            "altitude": raw.altitude,
            "speed": raw.speed,
            "battery": raw.battery,
            "timestamp": raw.timestamp,
        }
    elif isinstance(raw, Mapping):
        data = raw
        coords = raw.get("coords")
        if isinstance(coords, Mapping):
            data = {**coords, "timestamp": raw.get("timestamp"), "battery": raw.get("battery")}
    else:
        raise InvalidFixError(f"fix must be a mapping, got {type(raw).__name__}")

    lat = _coerce_number(_first_present(data, _LAT_KEYS), "latitude")
    lon = _coerce_number(_first_present(data, _LON_KEYS), "longitude")
    if not is_valid_coordinate(lat, lon):
        raise InvalidFixError(f"coordinate out of range: ({lat}, {lon})")

    ts_raw = data.get("timestamp")
    if ts_raw is None:
        timestamp = now or utc_now()
    else:
        try:
            timestamp = parse_instant(ts_raw)
        except ValueError as exc:
            raise InvalidFixError(str(exc)) from exc

    accuracy = _optional_number(data.get("accuracy"))
    speed = _optional_number(data.get("speed"))

    return PositionFix(
        latitude=lat,
        longitude=lon,
        timestamp=timestamp,
        accuracy=accuracy if accuracy is not None and accuracy >= 0 else 0.0,
        altitude=_optional_number(data.get("altitude")),
        speed=speed if speed is not None and speed >= 0 else None,
        battery=_optional_number(data.get("battery")),
    )
