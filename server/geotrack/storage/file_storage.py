"""File-based storage implementation.

Stores tracks as JSON documents:
- ``active.json``: the track currently being recorded (at most one)
- ``history/<track_id>.json``: one file per finished track

Writes go to a temporary file first and are moved into place, so a crash
mid-write never leaves a truncated track behind.
"""

from __future__ import annotations

import json
import os
import re
from pathlib import Path

import structlog

from geotrack.core.models import Track
from geotrack.storage.base import StoreError

log = structlog.get_logger()

# Track ids become file names; anything else is refused.
_SAFE_ID = re.compile(r"^[A-Za-z0-9_.-]+$")


class FileTrackStore:
    """TrackStore backed by JSON files on disk."""

    def __init__(self, base_dir: str | Path) -> None:
        self._base_dir = Path(base_dir)
        self._history_dir = self._base_dir / "history"
        try:
            self._history_dir.mkdir(parents=True, exist_ok=True)
        except OSError as exc:
            raise StoreError(f"cannot create storage directory {self._base_dir}") from exc

    @property
    def _active_path(self) -> Path:
        return self._base_dir / "active.json"

    def _history_path(self, track_id: str) -> Path | None:
        if not _SAFE_ID.match(track_id) or track_id in (".", ".."):
            return None
        return self._history_dir / f"{track_id}.json"

    def _write_json(self, path: Path, track: Track) -> None:
        payload = json.dumps(track.to_dict(), separators=(",", ":"))
        tmp_path = path.with_suffix(".json.tmp")
        try:
            with open(tmp_path, "w", encoding="utf-8") as f:
                f.write(payload)
            os.replace(tmp_path, path)
        except OSError as exc:
            raise StoreError(f"cannot write {path}") from exc

    def _read_json(self, path: Path) -> Track | None:
        try:
            with open(path, encoding="utf-8") as f:
                data = json.load(f)
        except FileNotFoundError:
            return None
        except OSError as exc:
            raise StoreError(f"cannot read {path}") from exc
        except json.JSONDecodeError as exc:
            raise StoreError(f"corrupt track file {path}") from exc

        try:
            return Track.from_dict(data)
        except (KeyError, TypeError, ValueError) as exc:
            raise StoreError(f"invalid track record in {path}") from exc

    def save_active(self, track: Track) -> None:
        self._write_json(self._active_path, track)
        log.debug("active_track_written", track_id=track.id, points=len(track.points))

    def load_active(self) -> Track | None:
        return self._read_json(self._active_path)

    def clear_active(self) -> None:
        try:
            self._active_path.unlink(missing_ok=True)
        except OSError as exc:
            raise StoreError("cannot remove active track") from exc

    def append_to_history(self, track: Track) -> None:
        path = self._history_path(track.id)
        if path is None:
            raise StoreError(f"unsafe track id {track.id!r}")
        self._write_json(path, track)
        log.debug("history_track_written", track_id=track.id, path=str(path))

    def list_history(self) -> list[Track]:
        """All finished tracks, oldest first."""
        tracks = []
        for path in sorted(self._history_dir.glob("*.json")):
            track = self._read_json(path)
            if track is not None:
                tracks.append(track)
        tracks.sort(key=lambda t: t.start_time)
        return tracks

    def get_by_id(self, track_id: str) -> Track | None:
        path = self._history_path(track_id)
        if path is None:
            return None
        return self._read_json(path)

    def delete_by_id(self, track_id: str) -> bool:
        path = self._history_path(track_id)
        if path is None or not path.exists():
            return False
        try:
            path.unlink()
        except OSError as exc:
            raise StoreError(f"cannot delete {path}") from exc
        log.info("track_deleted", track_id=track_id)
        return True
