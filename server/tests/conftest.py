"""Shared test fixtures."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from httpx import ASGITransport, AsyncClient

import geotrack.main as main_module
from geotrack.config import AppConfig
from geotrack.core.session import RecordingSession
from geotrack.core.stats import RecordingStats
from geotrack.storage.file_storage import FileTrackStore
from geotrack.storage.memory_storage import MemoryTrackStore

T0 = datetime(2024, 5, 1, 8, 0, 0, tzinfo=timezone.utc)

PARIS = (48.8566, 2.3522)
LONDON = (51.5074, -0.1278)


class FakeClock:
    """Controllable replacement for ``utc_now``."""

    def __init__(self, start: datetime = T0) -> None:
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


def make_fix(lat: float, lon: float, seconds: float, **extra) -> dict:
    """A raw fix ``seconds`` after T0."""
    fix = {
        "latitude": lat,
        "longitude": lon,
        "accuracy": 5,
        "timestamp": (T0 + timedelta(seconds=seconds)).isoformat(),
    }
    fix.update(extra)
    return fix


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def store() -> MemoryTrackStore:
    return MemoryTrackStore()


@pytest.fixture
def session(store, clock) -> RecordingSession:
    return RecordingSession(store, RecordingStats(), clock=clock)


@pytest.fixture(autouse=True)
def _init_server(tmp_path):
    """Initialize server singletons for every test, using a temp directory."""
    config = AppConfig()
    config.storage.base_dir = str(tmp_path / "data")
    config.logging.level = "warning"

    store = FileTrackStore(base_dir=config.storage.base_dir)
    session = main_module.build_session(config, store)

    # Patch module-level singletons
    main_module._config = config
    main_module._store = store
    main_module._session = session

    yield

    # Cleanup
    main_module._config = None
    main_module._store = None
    main_module._session = None


@pytest.fixture
async def client():
    from geotrack.main import app

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as c:
        yield c
