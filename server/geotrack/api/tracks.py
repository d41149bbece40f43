"""Recording session and track history API endpoints.

This is the thin FastAPI adapter. It parses JSON requests, hands raw fixes to
the recording session, and serializes tracks back out.
"""

from __future__ import annotations

import json

import structlog
from fastapi import APIRouter, Request, Response
from fastapi.responses import JSONResponse

from geotrack.core.aggregate import aggregate_statistics
from geotrack.core.formatters import format_distance, format_speed_kmh
from geotrack.core.gpx import export_track_gpx
from geotrack.storage.base import StoreError

router = APIRouter(prefix="/api/v1")

log = structlog.get_logger()


def _error(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(content={"error": message}, status_code=status_code)


async def _json_body(request: Request) -> dict | JSONResponse:
    """Parse the request body; an empty body is an empty object."""
    body_bytes = await request.body()
    if not body_bytes.strip():
        return {}
    try:
        body = json.loads(body_bytes)
    except (json.JSONDecodeError, UnicodeDecodeError):
        return _error(400, "invalid JSON")
    if not isinstance(body, dict):
        return _error(400, "JSON body must be an object")
    return body


def _store_failed(exc: StoreError) -> JSONResponse:
    log.error("store_unavailable", error=str(exc))
    return _error(503, "track storage unavailable")


@router.get("/session")
async def get_session_state() -> dict:
    """Current recording state and the active track, if any."""
    from geotrack.main import get_session

    session = get_session()
    track = session.active_track
    return {
        "state": session.state.value,
        "track": track.to_dict() if track is not None else None,
    }


@router.post("/session/start")
async def start_recording(request: Request) -> JSONResponse:
    """Start a new track. Any track still recording is finalized first."""
    from geotrack.main import get_session

    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body

    try:
        track = get_session().start(str(body.get("name") or ""))
    except StoreError as exc:
        return _store_failed(exc)
    return JSONResponse(content=track.to_dict(), status_code=201)


@router.post("/session/points")
async def add_points(request: Request) -> JSONResponse:
    """Offer location fixes to the active track.

    Accepts either ``{"fix": {...}}`` or ``{"fixes": [{...}, ...]}``. Fixes the
    session drops (invalid, jitter, paused) are not errors; ``accepted`` tells
    how many became track points.
    """
    from geotrack.main import get_session

    session = get_session()
    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body

    if "fix" in body:
        fixes = [body["fix"]]
    else:
        fixes = body.get("fixes", [])
    if not isinstance(fixes, list):
        return _error(400, "fixes must be a list")

    track = session.active_track
    if track is None:
        return _error(409, "no active track")

    before = len(track.points)
    try:
        for fix in fixes:
            track = session.add_point(fix)
    except StoreError as exc:
        return _store_failed(exc)

    return JSONResponse(content={
        "state": session.state.value,
        "accepted": len(track.points) - before,
        "points": len(track.points),
        "distance": track.distance,
        "duration": track.duration,
        "track": track.summary(),
    })


@router.post("/session/pause")
async def pause_recording() -> JSONResponse:
    from geotrack.main import get_session

    session = get_session()
    if session.active_track is None:
        return _error(409, "no active track")
    session.pause()
    return JSONResponse(content={"state": session.state.value})


@router.post("/session/resume")
async def resume_recording() -> JSONResponse:
    from geotrack.main import get_session

    session = get_session()
    if session.active_track is None:
        return _error(409, "no active track")
    session.resume()
    return JSONResponse(content={"state": session.state.value})


@router.post("/session/stop")
async def stop_recording(request: Request) -> JSONResponse:
    """Finalize the active track. Optional body: ``{"patch": {...}}``."""
    from geotrack.main import get_session

    body = await _json_body(request)
    if isinstance(body, JSONResponse):
        return body
    patch = body.get("patch")
    if patch is not None and not isinstance(patch, dict):
        return _error(400, "patch must be an object")

    try:
        track = get_session().stop(patch)
    except StoreError as exc:
        return _store_failed(exc)
    if track is None:
        return _error(409, "no active track")
    return JSONResponse(content=track.to_dict())


@router.get("/tracks")
async def list_tracks() -> JSONResponse:
    """Finished tracks, oldest first, without their points."""
    from geotrack.main import get_store

    try:
        tracks = get_store().list_history()
    except StoreError as exc:
        return _store_failed(exc)
    summaries = [t.summary() for t in tracks]
    return JSONResponse(content={"tracks": summaries, "total": len(summaries)})


@router.get("/tracks/{track_id}")
async def get_track(track_id: str) -> JSONResponse:
    from geotrack.main import get_store

    try:
        track = get_store().get_by_id(track_id)
    except StoreError as exc:
        return _store_failed(exc)
    if track is None:
        return _error(404, "track not found")
    return JSONResponse(content=track.to_dict())


@router.get("/tracks/{track_id}/statistics")
async def get_track_statistics(track_id: str) -> JSONResponse:
    """Statistics of a finished track, with display strings for the UI."""
    from geotrack.main import get_session, get_store

    try:
        track = get_store().get_by_id(track_id)
    except StoreError as exc:
        return _store_failed(exc)
    if track is None:
        return _error(404, "track not found")

    stats = track.statistics or aggregate_statistics(track, get_session().tz_name)
    result = stats.to_dict()
    result["display"] = {
        "distance": format_distance(stats.distance_km * 1000),
        "duration": stats.duration_formatted,
        "avg_speed": format_speed_kmh(stats.avg_speed_kmh),
        "max_speed": format_speed_kmh(stats.max_speed_kmh),
        "elevation_gain": f"{stats.elevation_gain_m:.0f} m",
        "elevation_loss": f"{stats.elevation_loss_m:.0f} m",
    }
    return JSONResponse(content=result)


@router.get("/tracks/{track_id}/gpx")
async def get_track_gpx(track_id: str) -> Response:
    from geotrack.main import get_store

    try:
        gpx = export_track_gpx(get_store(), track_id)
    except StoreError as exc:
        return _store_failed(exc)
    if gpx is None:
        return _error(404, "track not found")
    return Response(
        content=gpx,
        media_type="application/gpx+xml",
        headers={"content-disposition": f'attachment; filename="{track_id}.gpx"'},
    )


@router.delete("/tracks/{track_id}")
async def delete_track(track_id: str) -> JSONResponse:
    from geotrack.main import get_store

    try:
        deleted = get_store().delete_by_id(track_id)
    except StoreError as exc:
        return _store_failed(exc)
    if not deleted:
        return _error(404, "track not found")
    return JSONResponse(content={"deleted": True})
