"""Tests for the recording and track API endpoints."""

from __future__ import annotations

import json
import xml.etree.ElementTree as ET

import pytest

import geotrack.main as main_module
from conftest import make_fix
from geotrack.storage.base import StoreError

NORTH_140M = 0.001259


async def post_json(client, url, payload=None):
    content = json.dumps(payload) if payload is not None else b""
    return await client.post(url, content=content, headers={"content-type": "application/json"})


async def record_trip(client, name="Trip & <Test>"):
    resp = await post_json(client, "/api/v1/session/start", {"name": name})
    assert resp.status_code == 201
    resp = await post_json(client, "/api/v1/session/points", {"fixes": [
        make_fix(48.8566, 2.3522, 0, altitude=35),
        make_fix(48.8566 + NORTH_140M, 2.3522, 10, altitude=38),
        make_fix(48.8566 + 2 * NORTH_140M, 2.3522, 20, altitude=36),
    ]})
    assert resp.status_code == 200
    resp = await post_json(client, "/api/v1/session/stop")
    assert resp.status_code == 200
    return resp.json()


@pytest.mark.asyncio
async def test_health(client):
    resp = await client.get("/api/v1/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert data["recording_state"] == "idle"
    assert "uptime_seconds" in data
    assert "disk_free_gb" in data
    assert set(data) == {
        "status", "version", "uptime_seconds", "recording_state",
        "storage_backend", "storage_writable", "disk_free_gb",
    }


@pytest.mark.asyncio
async def test_stats_empty(client):
    resp = await client.get("/api/v1/stats")
    assert resp.status_code == 200
    data = resp.json()
    assert data["fixes_received"] == 0
    assert data["tracks_started"] == 0


@pytest.mark.asyncio
async def test_config_endpoint(client):
    resp = await client.get("/api/v1/config")
    assert resp.status_code == 200
    assert resp.json() == {"min_distance_m": 10.0, "min_interval_s": 1.0, "timezone": "UTC"}


@pytest.mark.asyncio
async def test_session_state_idle(client):
    resp = await client.get("/api/v1/session")
    assert resp.json() == {"state": "idle", "track": None}


@pytest.mark.asyncio
async def test_start_with_empty_body(client):
    resp = await post_json(client, "/api/v1/session/start")
    assert resp.status_code == 201
    data = resp.json()
    assert data["active"] is True
    assert data["name"].startswith("Trip ")


@pytest.mark.asyncio
async def test_single_fix_and_jitter(client):
    await post_json(client, "/api/v1/session/start", {"name": "A"})

    resp = await post_json(client, "/api/v1/session/points", {"fix": make_fix(48.8566, 2.3522, 0)})
    assert resp.json()["accepted"] == 1

    jitter = make_fix(48.8566 + 2 / 111_195, 2.3522, 0.1)
    resp = await post_json(client, "/api/v1/session/points", {"fix": jitter})
    data = resp.json()
    assert data["accepted"] == 0
    assert data["points"] == 1
    assert data["track"]["point_count"] == 1

    resp = await client.get("/api/v1/session")
    data = resp.json()
    assert data["state"] == "recording"
    assert len(data["track"]["points"]) == 1


@pytest.mark.asyncio
async def test_points_without_active_track(client):
    resp = await post_json(client, "/api/v1/session/points", {"fix": make_fix(1, 2, 0)})
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_invalid_fix_is_not_an_error(client):
    await post_json(client, "/api/v1/session/start", {"name": "A"})
    resp = await post_json(client, "/api/v1/session/points", {"fix": {"latitude": "x", "longitude": 1}})
    assert resp.status_code == 200
    assert resp.json()["accepted"] == 0


@pytest.mark.asyncio
async def test_invalid_json(client):
    resp = await client.post(
        "/api/v1/session/points",
        content=b"not json at all",
        headers={"content-type": "application/json"},
    )
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_fixes_must_be_a_list(client):
    await post_json(client, "/api/v1/session/start", {"name": "A"})
    resp = await post_json(client, "/api/v1/session/points", {"fixes": {"latitude": 1}})
    assert resp.status_code == 400


@pytest.mark.asyncio
async def test_pause_and_resume(client):
    resp = await post_json(client, "/api/v1/session/pause")
    assert resp.status_code == 409

    await post_json(client, "/api/v1/session/start", {"name": "A"})
    resp = await post_json(client, "/api/v1/session/pause")
    assert resp.json() == {"state": "paused"}

    resp = await post_json(client, "/api/v1/session/points", {"fix": make_fix(1, 2, 0)})
    assert resp.json()["accepted"] == 0

    resp = await post_json(client, "/api/v1/session/resume")
    assert resp.json() == {"state": "recording"}


@pytest.mark.asyncio
async def test_stop_without_active_track(client):
    resp = await post_json(client, "/api/v1/session/stop")
    assert resp.status_code == 409


@pytest.mark.asyncio
async def test_full_trip(client):
    track = await record_trip(client)

    assert track["active"] is False
    assert len(track["points"]) == 3
    assert track["distance"] == pytest.approx(280, abs=5)
    assert track["duration"] == 20
    assert track["statistics"]["max_speed_kmh"] == pytest.approx(50.4, abs=2)
    assert track["statistics"]["elevation_gain_m"] == pytest.approx(3.0)
    assert track["statistics"]["elevation_loss_m"] == pytest.approx(2.0)

    resp = await client.get("/api/v1/tracks")
    data = resp.json()
    assert data["total"] == 1
    assert data["tracks"][0]["id"] == track["id"]
    assert data["tracks"][0]["point_count"] == 3

    resp = await client.get(f"/api/v1/tracks/{track['id']}")
    assert resp.status_code == 200
    assert resp.json() == track


@pytest.mark.asyncio
async def test_stop_with_patch(client):
    await post_json(client, "/api/v1/session/start", {"name": "A"})
    resp = await post_json(client, "/api/v1/session/stop", {"patch": {"name": "B", "active": True}})
    data = resp.json()
    assert data["name"] == "B"
    assert data["active"] is False


@pytest.mark.asyncio
async def test_stop_with_null_speed_samples(client):
    await post_json(client, "/api/v1/session/start", {"name": "A"})
    await post_json(client, "/api/v1/session/points", {"fixes": [
        make_fix(48.8566, 2.3522, 0),
        make_fix(48.8566 + NORTH_140M, 2.3522, 10),
    ]})
    resp = await post_json(client, "/api/v1/session/stop", {"patch": {
        "speed_data": {"history": [None, 12.5], "time_labels": ["a", "b"]},
    }})
    assert resp.status_code == 200
    track_id = resp.json()["id"]

    resp = await client.get(f"/api/v1/tracks/{track_id}")
    assert resp.status_code == 200
    assert resp.json()["speed_data"] == {"history": [12.5], "time_labels": ["b"]}

    resp = await client.get(f"/api/v1/tracks/{track_id}/statistics")
    assert resp.status_code == 200
    assert resp.json()["speed_series"] == [["b", 12.5]]


@pytest.mark.asyncio
async def test_statistics_endpoint(client):
    track = await record_trip(client)
    resp = await client.get(f"/api/v1/tracks/{track['id']}/statistics")
    assert resp.status_code == 200
    data = resp.json()
    assert data["duration_seconds"] == 20
    assert data["display"]["duration"] == "00:00:20"
    assert data["display"]["distance"] == "280 m"
    assert len(data["speed_series"]) == 3


@pytest.mark.asyncio
async def test_gpx_export(client):
    track = await record_trip(client)
    resp = await client.get(f"/api/v1/tracks/{track['id']}/gpx")
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("application/gpx+xml")
    assert "Trip &amp; &lt;Test&gt;" in resp.text

    root = ET.fromstring(resp.content)
    ns = {"gpx": "http://www.topografix.com/GPX/1/1"}
    assert len(root.findall("gpx:trk/gpx:trkseg/gpx:trkpt", ns)) == 3


@pytest.mark.asyncio
async def test_unknown_track_is_404(client):
    for url in ("/api/v1/tracks/nope", "/api/v1/tracks/nope/statistics", "/api/v1/tracks/nope/gpx"):
        resp = await client.get(url)
        assert resp.status_code == 404
    resp = await client.delete("/api/v1/tracks/nope")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_delete_track(client):
    track = await record_trip(client)
    resp = await client.delete(f"/api/v1/tracks/{track['id']}")
    assert resp.json() == {"deleted": True}
    resp = await client.get(f"/api/v1/tracks/{track['id']}")
    assert resp.status_code == 404


@pytest.mark.asyncio
async def test_store_failure_is_503(client, monkeypatch):
    def broken(track):
        raise StoreError("disk full")

    monkeypatch.setattr(main_module._store, "save_active", broken)
    resp = await post_json(client, "/api/v1/session/start", {"name": "A"})
    assert resp.status_code == 503
    assert main_module._session.stats.store_errors == 1
