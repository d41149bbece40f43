"""Storage interface (port) for persisting tracks."""

from __future__ import annotations

from typing import Protocol, TYPE_CHECKING

if TYPE_CHECKING:
    from geotrack.core.models import Track


class StoreError(RuntimeError):
    """The persistence layer failed; the operation did not complete."""


class TrackStore(Protocol):
    """Port: durable keyed storage for the active track and track history."""

    def save_active(self, track: Track) -> None: ...

    def load_active(self) -> Track | None: ...

    def clear_active(self) -> None: ...

    def append_to_history(self, track: Track) -> None: ...

    def list_history(self) -> list[Track]: ...

    def get_by_id(self, track_id: str) -> Track | None: ...

    def delete_by_id(self, track_id: str) -> bool: ...
