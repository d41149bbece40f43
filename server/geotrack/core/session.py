"""Recording session — decides which fixes become track points.

This is the core business logic. It depends on the TrackStore protocol, not a
concrete implementation. One session owns at most one active track; callers
create a session per process (or per test) and pass it around explicitly.
"""

from __future__ import annotations

import enum
import uuid
from datetime import datetime
from typing import Any, Callable, Mapping

import structlog

from geotrack.core.aggregate import aggregate_statistics
from geotrack.core.cleaner import clean_track
from geotrack.core.geodesy import distance_m
from geotrack.core.models import PROTECTED_TRACK_FIELDS, PositionFix, Track, TrackPatch, TrackPoint
from geotrack.core.sanitizer import InvalidFixError, sanitize_fix
from geotrack.core.stats import RecordingStats
from geotrack.core.timeutils import datetime_label, elapsed_seconds, utc_now
from geotrack.storage.base import StoreError, TrackStore

log = structlog.get_logger()

# Admission filter: a fix closer than this to the last point, and sooner than
# MIN_INTERVAL_S after it, is GPS jitter and is dropped.
MIN_DISTANCE_M = 10.0
MIN_INTERVAL_S = 1.0


class SessionState(str, enum.Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PAUSED = "paused"
    STOPPED = "stopped"


def generate_track_id(now: datetime) -> str:
    """``track_<epoch ms>_<random suffix>``; unique in practice, not guaranteed."""
    return f"track_{int(now.timestamp() * 1000)}_{uuid.uuid4().hex[:9]}"


class RecordingSession:
    """Stateful recorder for a single active track."""

    def __init__(
        self,
        store: TrackStore,
        stats: RecordingStats | None = None,
        *,
        min_distance_m: float = MIN_DISTANCE_M,
        min_interval_s: float = MIN_INTERVAL_S,
        tz_name: str = "UTC",
        clock: Callable[[], datetime] = utc_now,
    ) -> None:
        self._store = store
        self._stats = stats if stats is not None else RecordingStats()
        self.min_distance_m = min_distance_m
        self.min_interval_s = min_interval_s
        self.tz_name = tz_name
        self._clock = clock
        self._paused = False
        self._finished = False

        # Pick up a recording interrupted by a restart.
        self._track = store.load_active()
        if self._track is not None and not self._track.active:
            self._track = None
        if self._track is not None:
            log.info("active_track_resumed", track_id=self._track.id,
                     points=len(self._track.points))

    @property
    def stats(self) -> RecordingStats:
        return self._stats

    @property
    def active_track(self) -> Track | None:
        return self._track

    @property
    def state(self) -> SessionState:
        if self._track is None:
            return SessionState.STOPPED if self._finished else SessionState.IDLE
        return SessionState.PAUSED if self._paused else SessionState.RECORDING

    def start(self, name: str = "") -> Track:
        """Begin a new track, finalizing any track that is still active."""
        if self._track is not None:
            log.info("implicit_stop", track_id=self._track.id)
            self.stop()

        now = self._clock()
        track = Track(
            id=generate_track_id(now),
            name=name or f"Trip {datetime_label(now, self.tz_name)}",
            start_time=now,
            active=True,
        )
        try:
            self._store.save_active(track)
        except StoreError:
            self._stats.record_store_error()
            log.error("active_track_save_failed", track_id=track.id, exc_info=True)
            raise

        self._track = track
        self._paused = False
        self._stats.record_track_started()
        log.info("track_started", track_id=track.id, name=track.name)
        return track

    def pause(self) -> bool:
        """Stop ingesting fixes without finalizing. Returns True if the state changed."""
        if self._track is None or self._paused:
            return False
        self._paused = True
        log.info("recording_paused", track_id=self._track.id)
        return True

    def resume(self) -> bool:
        if self._track is None or not self._paused:
            return False
        self._paused = False
        log.info("recording_resumed", track_id=self._track.id)
        return True

    def add_point(self, raw: Mapping[str, Any] | PositionFix) -> Track | None:
        """Offer one fix to the active track.

        Returns None when nothing is being recorded. Otherwise returns the
        active track, which is unchanged if the fix was invalid, out of order,
        filtered as jitter, or arrived while paused.

        Raises:
            StoreError: If the updated track could not be persisted. The point
                is not kept in memory in that case.
        """
        track = self._track
        if track is None:
            return None

        self._stats.record_fix_received()
        if self._paused:
            self._stats.record_ignored_paused()
            return track

        try:
            fix = sanitize_fix(raw, now=self._clock())
        except InvalidFixError as exc:
            self._stats.record_invalid()
            log.warning("fix_rejected", track_id=track.id, reason=str(exc))
            return track

        last = track.last_point
        if last is None:
            step_m = 0.0
            speed = 0.0
        else:
            step_m = distance_m(last, fix)
            dt = elapsed_seconds(last.timestamp, fix.timestamp)
            if dt < 0:
                self._stats.record_invalid()
                log.warning("fix_out_of_order", track_id=track.id, behind_s=round(-dt, 3))
                return track
            if step_m < self.min_distance_m and dt < self.min_interval_s:
                self._stats.record_filtered()
                log.debug("fix_filtered", track_id=track.id,
                          step_m=round(step_m, 2), dt_s=round(dt, 3))
                return track
            speed = step_m / dt if dt > 0 else 0.0

        prev_distance, prev_duration = track.distance, track.duration
        track.points.append(TrackPoint.from_fix(fix, speed))
        track.distance += step_m
        track.duration = elapsed_seconds(track.points[0].timestamp, track.points[-1].timestamp)

        try:
            self._store.save_active(track)
        except StoreError:
            track.points.pop()
            track.distance, track.duration = prev_distance, prev_duration
            self._stats.record_store_error()
            log.error("active_track_save_failed", track_id=track.id, exc_info=True)
            raise

        self._stats.record_accepted()
        return track

    def stop(self, patch: TrackPatch | Mapping[str, Any] | None = None) -> Track | None:
        """Finalize the active track and move it to history.

        The returned track is a new value: cleaned, with ``statistics``
        attached. Fields in ``patch`` are merged, except the protected ones
        the session owns.
        """
        track = self._track
        if track is None:
            return None

        if patch is None:
            patch = TrackPatch()
        elif not isinstance(patch, TrackPatch):
            ignored = sorted(PROTECTED_TRACK_FIELDS.intersection(patch))
            if ignored:
                log.warning("patch_fields_ignored", track_id=track.id, fields=ignored)
            patch = TrackPatch.from_dict(patch)

        finalized = track.with_patch(patch)
        finalized.active = False
        finalized.end_time = self._clock()
        finalized = clean_track(finalized)
        finalized.statistics = aggregate_statistics(finalized, self.tz_name)

        try:
            self._store.append_to_history(finalized)
            self._store.clear_active()
        except StoreError:
            self._stats.record_store_error()
            log.error("track_finalize_failed", track_id=track.id, exc_info=True)
            raise

        self._track = None
        self._paused = False
        self._finished = True
        self._stats.record_track_finished()
        log.info("track_stopped", track_id=finalized.id,
                 points=len(finalized.points),
                 distance_m=round(finalized.distance, 1),
                 duration_s=finalized.duration)
        return finalized
