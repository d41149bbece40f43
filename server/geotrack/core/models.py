"""GeoTrack — core internal data models.

These are plain dataclasses with no framework dependencies.
JSON payloads are converted to/from these at the storage and API boundaries.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import datetime
from types import MappingProxyType
from typing import Any, Mapping

from geotrack.core.formatters import format_duration
from geotrack.core.timeutils import isoformat_utc, parse_instant

# Fields owned by the recording session; a stop-time patch never overwrites them.
PROTECTED_TRACK_FIELDS = frozenset({
    "id", "start_time", "end_time", "points", "distance", "duration",
    "active", "statistics",
})


def _as_float(value: Any) -> float:
    """Lenient float for persisted data; unreadable values become NaN."""
    if value is None or isinstance(value, bool):
        return math.nan
    try:
        return float(value)
    except (TypeError, ValueError, OverflowError):
        return math.nan


def _as_optional_float(value: Any) -> float | None:
    if value is None:
        return None
    number = _as_float(value)
    return number if math.isfinite(number) else None


@dataclass(frozen=True)
class Coordinate:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class PositionFix:
    """One raw location sample, already checked by the sanitizer."""
    latitude: float
    longitude: float
    timestamp: datetime
    accuracy: float = 0.0
    altitude: float | None = None
    speed: float | None = None    # m/s as reported by the device
    battery: float | None = None


@dataclass(frozen=True)
class TrackPoint:
    """A stored element of a trajectory. ``speed`` is in m/s."""
    latitude: float
    longitude: float
    timestamp: datetime
    accuracy: float = 0.0
    altitude: float | None = None
    speed: float | None = None
    battery: float | None = None

    @classmethod
    def from_fix(cls, fix: PositionFix, speed: float) -> TrackPoint:
        return cls(
            latitude=fix.latitude,
            longitude=fix.longitude,
            timestamp=fix.timestamp,
            accuracy=fix.accuracy,
            altitude=fix.altitude,
            speed=speed,
            battery=fix.battery,
        )

    @property
    def has_valid_position(self) -> bool:
        return math.isfinite(self.latitude) and math.isfinite(self.longitude)

    @property
    def has_valid_speed(self) -> bool:
        return self.speed is not None and math.isfinite(self.speed)

    def to_dict(self) -> dict:
        return {
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "altitude": self.altitude,
            "timestamp": isoformat_utc(self.timestamp),
            "speed": self.speed,
            "battery": self.battery,
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TrackPoint:
        accuracy = _as_optional_float(data.get("accuracy"))
        return cls(
            latitude=_as_float(data.get("latitude")),
            longitude=_as_float(data.get("longitude")),
            timestamp=parse_instant(data["timestamp"]),
            accuracy=accuracy if accuracy is not None else 0.0,
            altitude=_as_optional_float(data.get("altitude")),
            speed=_as_optional_float(data.get("speed")),
            battery=_as_optional_float(data.get("battery")),
        )


@dataclass(frozen=True)
class SpeedData:
    """Live speed history sampled by the recording client (km/h)."""
    history: tuple[float, ...] = ()
    time_labels: tuple[str, ...] = ()

    def to_dict(self) -> dict:
        return {"history": list(self.history), "time_labels": list(self.time_labels)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> SpeedData:
        """Build from client data, keeping only complete (label, value) pairs.

        Samples whose value is missing or not a finite number are dropped.
        """
        history = data.get("history")
        labels = data.get("time_labels", data.get("timeLabels"))
        if not isinstance(history, (list, tuple)) or not isinstance(labels, (list, tuple)):
            return cls()
        pairs = []
        for label, value in zip(labels, history):
            kmh = _as_optional_float(value)
            if kmh is not None:
                pairs.append((str(label), kmh))
        return cls(
            history=tuple(kmh for _, kmh in pairs),
            time_labels=tuple(label for label, _ in pairs),
        )


@dataclass(frozen=True)
class Statistics:
    distance_km: float = 0.0
    duration_seconds: float = 0.0
    avg_speed_kmh: float = 0.0
    max_speed_kmh: float = 0.0
    elevation_gain_m: float = 0.0
    elevation_loss_m: float = 0.0
    speed_series: tuple[tuple[str, float], ...] = ()

    @property
    def duration_formatted(self) -> str:
        return format_duration(self.duration_seconds)

    def to_dict(self) -> dict:
        return {
            "distance_km": self.distance_km,
            "duration_seconds": self.duration_seconds,
            "avg_speed_kmh": self.avg_speed_kmh,
            "max_speed_kmh": self.max_speed_kmh,
            "elevation_gain_m": self.elevation_gain_m,
            "elevation_loss_m": self.elevation_loss_m,
            "speed_series": [[label, kmh] for label, kmh in self.speed_series],
        }

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Statistics:
        return cls(
            distance_km=float(data.get("distance_km", 0.0)),
            duration_seconds=float(data.get("duration_seconds", 0.0)),
            avg_speed_kmh=float(data.get("avg_speed_kmh", 0.0)),
            max_speed_kmh=float(data.get("max_speed_kmh", 0.0)),
            elevation_gain_m=float(data.get("elevation_gain_m", 0.0)),
            elevation_loss_m=float(data.get("elevation_loss_m", 0.0)),
            speed_series=tuple(
                (str(label), float(kmh)) for label, kmh in data.get("speed_series", [])
            ),
        )


@dataclass(frozen=True)
class TrackPatch:
    """Caller-supplied fields merged into a track when it is stopped."""
    name: str | None = None
    speed_data: SpeedData | None = None
    metadata: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        # Detach from the caller's dict so the patch cannot change after the fact.
        object.__setattr__(self, "metadata", MappingProxyType(dict(self.metadata)))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> TrackPatch:
        """Build a patch from a raw mapping.

        Protected track fields are dropped; unknown keys land in ``metadata``.
        """
        name = data.get("name")
        speed_raw = data.get("speed_data", data.get("speedData"))
        raw_metadata = data.get("metadata")
        metadata = dict(raw_metadata) if isinstance(raw_metadata, Mapping) else {}
        for key, value in data.items():
            if key in ("name", "speed_data", "speedData", "metadata"):
                continue
            if key in PROTECTED_TRACK_FIELDS:
                continue
            metadata[key] = value
        return cls(
            name=str(name) if name else None,
            speed_data=SpeedData.from_dict(speed_raw) if isinstance(speed_raw, Mapping) else None,
            metadata=metadata,
        )


@dataclass
class Track:
    """A recorded trip: ordered points plus aggregate metrics.

    ``distance`` is in meters and ``duration`` in seconds.
    """
    id: str
    name: str
    start_time: datetime
    end_time: datetime | None = None
    points: list[TrackPoint] = field(default_factory=list)
    distance: float = 0.0
    duration: float = 0.0
    active: bool = False
    statistics: Statistics | None = None
    speed_data: SpeedData | None = None
    metadata: dict[str, Any] = field(default_factory=dict)

    @property
    def last_point(self) -> TrackPoint | None:
        return self.points[-1] if self.points else None

    def with_patch(self, patch: TrackPatch) -> Track:
        """Return a copy of this track with the patch applied."""
        metadata = dict(self.metadata)
        metadata.update(patch.metadata)
        return replace(
            self,
            name=patch.name or self.name,
            speed_data=patch.speed_data if patch.speed_data is not None else self.speed_data,
            points=list(self.points),
            metadata=metadata,
        )

    def summary(self) -> dict:
        """Compact listing entry without the point list."""
        return {
            "id": self.id,
            "name": self.name,
            "start_time": isoformat_utc(self.start_time),
            "end_time": isoformat_utc(self.end_time) if self.end_time else None,
            "point_count": len(self.points),
            "distance": self.distance,
            "duration": self.duration,
            "active": self.active,
        }

    def to_dict(self) -> dict:
        data = self.summary()
        del data["point_count"]
        data["points"] = [p.to_dict() for p in self.points]
        data["statistics"] = self.statistics.to_dict() if self.statistics else None
        data["speed_data"] = self.speed_data.to_dict() if self.speed_data else None
        data["metadata"] = dict(self.metadata)
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Track:
        end_time = data.get("end_time")
        statistics = data.get("statistics")
        speed_data = data.get("speed_data")
        return cls(
            id=str(data["id"]),
            name=str(data.get("name", "")),
            start_time=parse_instant(data["start_time"]),
            end_time=parse_instant(end_time) if end_time else None,
            points=[TrackPoint.from_dict(p) for p in data.get("points", [])],
            distance=float(data.get("distance", 0.0)),
            duration=float(data.get("duration", 0.0)),
            active=bool(data.get("active", False)),
            statistics=Statistics.from_dict(statistics) if statistics else None,
            speed_data=SpeedData.from_dict(speed_data) if speed_data else None,
            metadata=dict(data.get("metadata") or {}),
        )
