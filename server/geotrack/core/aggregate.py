"""Statistics aggregator — derives trip metrics from a trajectory.

Distances are recomputed from scratch here rather than read from the
track's running total: the session's ``Track.distance`` only counts admitted
points, while this is the full geometric length of the stored trajectory.
"""

from __future__ import annotations

from geotrack.core.geodesy import distance_m
from geotrack.core.models import Statistics, Track
from geotrack.core.timeutils import elapsed_seconds, time_label

MPS_TO_KMH = 3.6


def _total_distance_m(track: Track) -> float:
    total = 0.0
    prev = None
    for point in track.points:
        if not point.has_valid_position:
            continue
        if prev is not None:
            total += distance_m(prev, point)
        prev = point
    return total


def _elevation_change(track: Track) -> tuple[float, float]:
    """Sum (gain, loss) in meters over consecutive pairs with known altitude."""
    gain = 0.0
    loss = 0.0
    points = track.points
    for prev, cur in zip(points, points[1:]):
        if prev.altitude is None or cur.altitude is None:
            continue
        diff = cur.altitude - prev.altitude
        if diff > 0:
            gain += diff
        else:
            loss += -diff
    return gain, loss


def speed_series(track: Track, tz_name: str = "UTC") -> tuple[tuple[str, float], ...]:
    """Time-labelled speed series in km/h.

    A speed history attached by the live recording client is preferred over
    the per-point speeds, since it was sampled before admission filtering.
    """
    if track.speed_data is not None and track.speed_data.history:
        return tuple(zip(track.speed_data.time_labels, track.speed_data.history))
    return tuple(
        (time_label(p.timestamp, tz_name), p.speed * MPS_TO_KMH)
        for p in track.points
        if p.has_valid_speed
    )


def aggregate_statistics(track: Track, tz_name: str = "UTC") -> Statistics:
    """Compute the full ``Statistics`` block for a track.

    Tracks with fewer than two points yield all-zero statistics.
    """
    if len(track.points) < 2:
        return Statistics()

    duration_s = elapsed_seconds(track.points[0].timestamp, track.points[-1].timestamp)
    distance_km = _total_distance_m(track) / 1000.0

    speeds_mps = [p.speed for p in track.points if p.has_valid_speed]
    if speeds_mps:
        avg_speed_kmh = sum(speeds_mps) / len(speeds_mps) * MPS_TO_KMH
        max_speed_kmh = max(speeds_mps) * MPS_TO_KMH
    else:
        avg_speed_kmh = distance_km / (duration_s / 3600.0) if duration_s > 0 else 0.0
        max_speed_kmh = 0.0

    gain, loss = _elevation_change(track)

    return Statistics(
        distance_km=distance_km,
        duration_seconds=duration_s,
        avg_speed_kmh=avg_speed_kmh,
        max_speed_kmh=max_speed_kmh,
        elevation_gain_m=gain,
        elevation_loss_m=loss,
        speed_series=speed_series(track, tz_name),
    )
