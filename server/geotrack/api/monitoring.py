"""Health check and monitoring endpoints."""

from __future__ import annotations

import shutil
from pathlib import Path

from fastapi import APIRouter

router = APIRouter(prefix="/api/v1")


@router.get("/health")
async def health() -> dict:
    """Basic health check."""
    from geotrack.main import get_config, get_session

    session = get_session()
    config = get_config()

    disk_free_gb = None
    storage_writable = True
    if config.storage.backend == "file":
        storage_path = Path(config.storage.base_dir)
        try:
            disk = shutil.disk_usage(storage_path if storage_path.exists() else ".")
            disk_free_gb = round(disk.free / (1024 ** 3), 1)
        except OSError:
            storage_writable = False

    snapshot = session.stats.snapshot()
    return {
        "status": "ok",
        "version": "0.1.0",
        "uptime_seconds": snapshot["uptime_seconds"],
        "recording_state": session.state.value,
        "storage_backend": config.storage.backend,
        "storage_writable": storage_writable,
        "disk_free_gb": disk_free_gb,
    }


@router.get("/stats")
async def stats() -> dict:
    """Fix ingestion counters.

    ``fixes_received`` splits into ``points_accepted``, ``fixes_filtered``
    (admission filter), ``fixes_invalid`` (sanitizer or out of order) and
    ``fixes_ignored_paused``.
    """
    from geotrack.main import get_session

    return get_session().stats.snapshot()


@router.get("/config")
async def get_client_config() -> dict:
    """Configuration endpoint for the location client.

    The client can use the thresholds to avoid sending fixes the server will
    filter out anyway.
    """
    from geotrack.main import get_config

    config = get_config()
    return {
        "min_distance_m": config.recording.min_distance_m,
        "min_interval_s": config.recording.min_interval_s,
        "timezone": config.recording.timezone,
    }
