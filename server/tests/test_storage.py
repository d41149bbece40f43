"""Tests for the track stores."""

from __future__ import annotations

import math
from datetime import timedelta

import pytest

from conftest import T0
from geotrack.core.models import SpeedData, Statistics, Track, TrackPoint
from geotrack.storage.base import StoreError
from geotrack.storage.file_storage import FileTrackStore
from geotrack.storage.memory_storage import MemoryTrackStore


def sample_track(track_id: str = "track_1", start_offset: float = 0) -> Track:
    start = T0 + timedelta(seconds=start_offset)
    return Track(
        id=track_id,
        name="Sample",
        start_time=start,
        end_time=start + timedelta(seconds=60),
        points=[
            TrackPoint(latitude=45.0, longitude=4.0, accuracy=5.0, altitude=170.0,
                       timestamp=start, speed=0.0, battery=80.0),
            TrackPoint(latitude=45.001, longitude=4.0, timestamp=start + timedelta(seconds=30),
                       speed=3.7),
        ],
        distance=111.2,
        duration=30.0,
        statistics=Statistics(distance_km=0.1112, duration_seconds=30.0,
                              speed_series=(("08:00:00", 0.0), ("08:00:30", 13.32))),
        speed_data=SpeedData(history=(0.0, 13.32), time_labels=("08:00:00", "08:00:30")),
        metadata={"device": "phone"},
    )


@pytest.fixture(params=["file", "memory"])
def any_store(request, tmp_path):
    if request.param == "file":
        return FileTrackStore(tmp_path / "tracks")
    return MemoryTrackStore()


def test_active_round_trip(any_store):
    track = sample_track()
    track.active = True
    any_store.save_active(track)
    assert any_store.load_active() == track

    any_store.clear_active()
    assert any_store.load_active() is None
    # Clearing twice is fine.
    any_store.clear_active()


def test_history_listing_oldest_first(any_store):
    any_store.append_to_history(sample_track("track_b", start_offset=100))
    any_store.append_to_history(sample_track("track_a", start_offset=0))

    assert [t.id for t in any_store.list_history()] == ["track_a", "track_b"]


def test_get_and_delete(any_store):
    track = sample_track()
    any_store.append_to_history(track)

    assert any_store.get_by_id("track_1") == track
    assert any_store.get_by_id("missing") is None
    assert any_store.delete_by_id("track_1") is True
    assert any_store.delete_by_id("track_1") is False
    assert any_store.get_by_id("track_1") is None


def test_store_returns_copies(any_store):
    track = sample_track()
    any_store.append_to_history(track)
    track.points.clear()
    loaded = any_store.get_by_id(track.id)
    assert len(loaded.points) == 2


def test_file_store_rejects_unsafe_ids(tmp_path):
    store = FileTrackStore(tmp_path)
    assert store.get_by_id("../etc/passwd") is None
    assert store.delete_by_id("..") is False
    with pytest.raises(StoreError):
        store.append_to_history(sample_track("bad/id"))


def test_file_store_corrupt_file_raises(tmp_path):
    store = FileTrackStore(tmp_path)
    (tmp_path / "history" / "track_x.json").write_text("{not json")
    with pytest.raises(StoreError):
        store.get_by_id("track_x")


def test_file_store_invalid_record_raises(tmp_path):
    store = FileTrackStore(tmp_path)
    (tmp_path / "history" / "track_x.json").write_text('{"name": "no id"}')
    with pytest.raises(StoreError):
        store.get_by_id("track_x")


def test_file_store_tolerates_bad_persisted_coordinates(tmp_path):
    store = FileTrackStore(tmp_path)
    (tmp_path / "history" / "track_x.json").write_text(
        '{"id": "track_x", "start_time": "2024-05-01T08:00:00Z", "points": ['
        '{"latitude": "45.0", "longitude": 4.0, "timestamp": 1714550400000},'
        '{"latitude": null, "longitude": 4.0, "timestamp": 1714550410000}]}'
    )
    track = store.get_by_id("track_x")
    assert track.points[0].latitude == 45.0
    assert math.isnan(track.points[1].latitude)


def test_file_store_unwritable_directory(tmp_path):
    blocker = tmp_path / "blocker"
    blocker.write_text("")
    with pytest.raises(StoreError):
        FileTrackStore(blocker / "tracks")
