"""Human-readable formatting for presentation boundaries.

The core works in seconds, meters and m/s / km/h numbers; these helpers turn
them into display strings for API responses.
"""

from __future__ import annotations

import math


def format_duration(seconds: float) -> str:
    """Format seconds as ``HH:MM:SS`` (hours are not wrapped at 24)."""
    if not math.isfinite(seconds) or seconds < 0:
        seconds = 0
    total = int(seconds)
    hours, rest = divmod(total, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def format_distance(meters: float) -> str:
    if meters < 1000:
        return f"{round(meters)} m"
    return f"{meters / 1000:.2f} km"


def format_speed(speed_mps: float) -> str:
    """Format a m/s speed as km/h text."""
    return format_speed_kmh(speed_mps * 3.6)


def format_speed_kmh(speed_kmh: float) -> str:
    return f"{speed_kmh:.1f} km/h"
