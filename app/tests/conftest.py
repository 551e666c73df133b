"""Shared fixtures: in-memory SQLite store, mocked HTTP sources, API client."""

import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["LOG_TO_FILE"] = "false"
os.environ["SCHEDULER_ENABLED"] = "false"

from datetime import datetime, timedelta, timezone  # noqa: E402
from typing import Any, Dict  # noqa: E402

import httpx  # noqa: E402
import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402

from app.api.deps import get_db, get_ingestion_service  # noqa: E402
from app.core.config import DataSource  # noqa: E402
from app.core.db import build_engine  # noqa: E402
from app.ingestion.fetcher import JSONFetcher  # noqa: E402
from app.ingestion.registry import SourceRegistry  # noqa: E402
from app.main import app  # noqa: E402
from app.models.base import Base  # noqa: E402
from app.services.data_service import DataService  # noqa: E402
from app.services.ingestion_service import IngestionService  # noqa: E402

SOURCE1_URL = "https://data.test/source1.json"
SOURCE2_URL = "https://data.test/source2.json"

TEST_SOURCES = [
    DataSource(name="source1", url=SOURCE1_URL, type="json"),
    DataSource(name="source2", url=SOURCE2_URL, type="json"),
]


def mock_fetcher(routes: Dict[str, Any]) -> JSONFetcher:
    """JSONFetcher backed by an httpx MockTransport.

    Route values may be an httpx.Response, an exception to raise, or any
    JSON-serializable payload served with status 200. Unknown URLs get 404.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        value = routes.get(str(request.url))
        if value is None:
            return httpx.Response(404, json={"error": "not found"})
        if isinstance(value, Exception):
            raise value
        if isinstance(value, httpx.Response):
            return value
        return httpx.Response(200, json=value)

    return JSONFetcher(client=httpx.AsyncClient(transport=httpx.MockTransport(handler)), timeout=5.0)


class TickingClock:
    """Deterministic clock advancing one second per call."""

    def __init__(self):
        self.now = datetime(2025, 1, 1, tzinfo=timezone.utc)

    def __call__(self):
        self.now = self.now + timedelta(seconds=1)
        return self.now


@pytest.fixture
def engine():
    eng = build_engine("sqlite://")
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def db(engine):
    session = sessionmaker(bind=engine, autoflush=False, expire_on_commit=False)()
    yield session
    session.close()


@pytest.fixture
def clock():
    return TickingClock()


@pytest.fixture
def repository(db, clock):
    return DataService(db, clock=clock)


@pytest.fixture
def registry():
    return SourceRegistry(TEST_SOURCES)


@pytest.fixture
def source_payloads():
    """Payloads served by the mocked sources; tests may mutate before use."""
    return {
        SOURCE1_URL: [
            {
                "id": 7,
                "name": "Hotel X",
                "address": {"city": "Lyon", "country": "FR"},
                "isAvailable": "true",
                "priceForNight": "120.5",
            },
            {
                "id": 8,
                "name": "Grand Paris",
                "address": {"city": "Paris", "country": "FR"},
                "isAvailable": False,
                "priceForNight": 310,
            },
        ],
        SOURCE2_URL: [
            {"id": 3, "city": "Lisbon", "pricePerNight": "80", "priceSegment": "budget", "availability": False},
            {"id": 4, "city": "Paris", "pricePerNight": 150, "priceSegment": "mid", "availability": "true"},
        ],
    }


@pytest.fixture
def client(db, clock, registry, source_payloads):
    """TestClient sharing the test session; ingestion hits the mocked sources."""

    def override_db():
        yield db

    def override_ingestion_service():
        return IngestionService(
            DataService(db, clock=clock),
            registry=registry,
            fetcher=mock_fetcher(source_payloads),
            clock=clock,
        )

    app.dependency_overrides[get_db] = override_db
    app.dependency_overrides[get_ingestion_service] = override_ingestion_service
    yield TestClient(app)
    app.dependency_overrides.clear()
