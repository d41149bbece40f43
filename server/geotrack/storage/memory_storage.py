"""In-process memory implementation of TrackStore."""

from __future__ import annotations

import copy
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from geotrack.core.models import Track


class MemoryTrackStore:
    """TrackStore backed by dicts. Zero dependencies, lost on restart.

    Tracks are copied on the way in and out so callers never share state
    with the store.
    """

    def __init__(self) -> None:
        self._active: Track | None = None
        self._history: dict[str, Track] = {}

    def save_active(self, track: Track) -> None:
        self._active = copy.deepcopy(track)

    def load_active(self) -> Track | None:
        return copy.deepcopy(self._active)

    def clear_active(self) -> None:
        self._active = None

    def append_to_history(self, track: Track) -> None:
        self._history[track.id] = copy.deepcopy(track)

    def list_history(self) -> list[Track]:
        tracks = [copy.deepcopy(t) for t in self._history.values()]
        tracks.sort(key=lambda t: t.start_time)
        return tracks

    def get_by_id(self, track_id: str) -> Track | None:
        return copy.deepcopy(self._history.get(track_id))

    def delete_by_id(self, track_id: str) -> bool:
        return self._history.pop(track_id, None) is not None
