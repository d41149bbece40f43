"""GeoTrack server — main entry point.

This is the only file that knows about concrete implementations.
It wires together the core, storage, and API layers.
"""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from geotrack.api.monitoring import router as monitoring_router
from geotrack.api.tracks import router as tracks_router
from geotrack.config import AppConfig, load_config
from geotrack.core.session import RecordingSession
from geotrack.core.stats import RecordingStats
from geotrack.storage.base import TrackStore
from geotrack.storage.file_storage import FileTrackStore
from geotrack.storage.memory_storage import MemoryTrackStore

log = structlog.get_logger()

# Module-level singletons (set during startup)
_session: RecordingSession | None = None
_store: TrackStore | None = None
_config: AppConfig | None = None


def get_session() -> RecordingSession:
    assert _session is not None, "Server not initialized"
    return _session


def get_store() -> TrackStore:
    assert _store is not None, "Server not initialized"
    return _store


def get_config() -> AppConfig:
    assert _config is not None, "Server not initialized"
    return _config


def setup_logging(config: AppConfig) -> None:
    """Configure structlog based on the logging config."""
    processors = [
        structlog.contextvars.merge_contextvars,
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
    ]

    if config.logging.format == "json":
        processors.append(structlog.processors.format_exc_info)
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(config.logging.level.upper()),
        ),
    )


def build_store(config: AppConfig) -> TrackStore:
    if config.storage.backend == "memory":
        return MemoryTrackStore()
    if config.storage.backend == "file":
        return FileTrackStore(base_dir=config.storage.base_dir)
    raise ValueError(f"unknown storage backend {config.storage.backend!r}")


def build_session(config: AppConfig, store: TrackStore) -> RecordingSession:
    return RecordingSession(
        store,
        RecordingStats(),
        min_distance_m=config.recording.min_distance_m,
        min_interval_s=config.recording.min_interval_s,
        tz_name=config.recording.timezone,
    )


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown."""
    global _session, _store, _config

    _config = load_config()
    setup_logging(_config)

    log.info("server_starting",
             env=_config.server.env,
             storage_backend=_config.storage.backend,
             storage_dir=_config.storage.base_dir)

    _store = build_store(_config)
    _session = build_session(_config, _store)

    log.info("server_started",
             host=_config.server.host,
             port=_config.server.port,
             state=_session.state.value)

    yield

    # Shutdown: an active track stays in the store and is resumed next start.
    if _session.active_track is not None:
        log.info("active_track_left_open", track_id=_session.active_track.id)
    log.info("server_stopped")


app = FastAPI(
    title="GeoTrack",
    description="GPS track recorder and trip statistics",
    version="0.1.0",
    lifespan=lifespan,
)

app.include_router(tracks_router)
app.include_router(monitoring_router)
