"""Trajectory cleaner — sorts, filters and backfills a recorded track."""

from __future__ import annotations

import copy
from dataclasses import replace

from geotrack.core.geodesy import distance_m
from geotrack.core.models import Track, TrackPoint
from geotrack.core.timeutils import elapsed_seconds


def backfill_speed(prev: TrackPoint, cur: TrackPoint) -> float:
    """Speed in m/s between two consecutive points; 0 when no time elapsed."""
    dt = elapsed_seconds(prev.timestamp, cur.timestamp)
    if dt <= 0:
        return 0.0
    return distance_m(prev, cur) / dt


def clean_track(track: Track) -> Track:
    """Return a cleaned copy of ``track``.

    The copy has its points sorted by timestamp (stable), points with
    missing or non-finite coordinates dropped, and every point after the
    first whose speed is missing or zero recomputed from its cleaned
    predecessor. The input is never modified. Applying it twice gives the
    same result as applying it once.
    """
    if not track.points:
        return track

    cleaned = copy.deepcopy(track)
    points = sorted(cleaned.points, key=lambda p: p.timestamp)
    points = [p for p in points if p.has_valid_position]

    for i in range(1, len(points)):
        cur = points[i]
        if not cur.speed:
            points[i] = replace(cur, speed=backfill_speed(points[i - 1], cur))

    cleaned.points = points
    return cleaned
