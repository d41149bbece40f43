"""Recording counters.

Tracks in-memory counters of what the recording session did with incoming
fixes. No framework dependencies.
"""

from __future__ import annotations

import threading
import time


class RecordingStats:
    """Thread-safe counters for fix ingestion and track lifecycle.

    Every fix offered to an active session is counted in ``fixes_received``
    and ends up in exactly one of:
    - ``points_accepted``: stored as a track point;
    - ``fixes_filtered``: dropped by the admission filter (GPS jitter);
    - ``fixes_invalid``: rejected by the sanitizer or out of order;
    - ``fixes_ignored_paused``: arrived while the session was paused.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._started_at = time.time()

        self.fixes_received: int = 0
        self.points_accepted: int = 0
        self.fixes_filtered: int = 0
        self.fixes_invalid: int = 0
        self.fixes_ignored_paused: int = 0
        self.tracks_started: int = 0
        self.tracks_finished: int = 0
        self.store_errors: int = 0
        self.last_fix_at: float | None = None

    def record_fix_received(self) -> None:
        with self._lock:
            self.fixes_received += 1
            self.last_fix_at = time.time()

    def record_accepted(self) -> None:
        with self._lock:
            self.points_accepted += 1

    def record_filtered(self) -> None:
        with self._lock:
            self.fixes_filtered += 1

    def record_invalid(self) -> None:
        with self._lock:
            self.fixes_invalid += 1

    def record_ignored_paused(self) -> None:
        with self._lock:
            self.fixes_ignored_paused += 1

    def record_track_started(self) -> None:
        with self._lock:
            self.tracks_started += 1

    def record_track_finished(self) -> None:
        with self._lock:
            self.tracks_finished += 1

    def record_store_error(self) -> None:
        with self._lock:
            self.store_errors += 1

    def snapshot(self) -> dict:
        """Return a JSON-serializable snapshot of all counters."""
        now = time.time()
        with self._lock:
            return {
                "uptime_seconds": round(now - self._started_at, 1),
                "fixes_received": self.fixes_received,
                "points_accepted": self.points_accepted,
                "fixes_filtered": self.fixes_filtered,
                "fixes_invalid": self.fixes_invalid,
                "fixes_ignored_paused": self.fixes_ignored_paused,
                "tracks_started": self.tracks_started,
                "tracks_finished": self.tracks_finished,
                "store_errors": self.store_errors,
                "seconds_since_last_fix": (
                    round(now - self.last_fix_at, 1) if self.last_fix_at is not None else None
                ),
            }
