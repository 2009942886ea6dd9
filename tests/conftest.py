"""Shared test fixtures."""

import httpx
import pytest
from fastapi.testclient import TestClient
from sqlmodel import Session, SQLModel, create_engine
from sqlmodel.pool import StaticPool

from app.core.config import settings
from app.core.database import get_session
from app.core.dependencies import get_http_client, get_token_cache
from app.main import app
from app.spotify.token import SpotifyTokenCache

AIRTABLE_TABLE_URL = "https://api.airtable.com/v0/appTEST/Address%20Collector"
SPOTIFY_TOKEN_URL = "https://accounts.spotify.com/api/token"
SPOTIFY_API_URL = "https://api.spotify.com/v1"


class FakeUpstream:
    """Routes outbound requests to canned responses and records them.

    Routes are matched by method and URL prefix; the most recently added
    route wins so tests can override defaults.
    """

    def __init__(self):
        self.requests: list[httpx.Request] = []
        self._routes: list[tuple[str, str, object]] = []

    def add(self, method: str, url_prefix: str, status_code: int = 200, json=None, handler=None):
        if handler is None:
            def handler(request, status_code=status_code, json=json):
                return httpx.Response(status_code, json=json if json is not None else {})
        self._routes.insert(0, (method, url_prefix, handler))

    def requests_to(self, method: str, url_prefix: str) -> list[httpx.Request]:
        return [
            r for r in self.requests
            if r.method == method and str(r.url).startswith(url_prefix)
        ]

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        for method, prefix, handler in self._routes:
            if request.method == method and str(request.url).startswith(prefix):
                return handler(request)
        return httpx.Response(404, json={"error": "no fake route"})


class FakeClock:
    def __init__(self, now: float = 1_000_000.0):
        self.now = now

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def anyio_backend():
    return "asyncio"


@pytest.fixture(name="engine")
def engine_fixture():
    """Create an in-memory SQLite database for testing."""
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture(name="session")
def session_fixture(engine):
    """Create a new database session for each test."""
    with Session(engine) as session:
        yield session


@pytest.fixture(name="configured")
def configured_fixture(monkeypatch):
    """Fill in Airtable and Spotify settings with test values."""
    monkeypatch.setattr(settings, "airtable_api_key", "keyTEST")
    monkeypatch.setattr(settings, "airtable_base_id", "appTEST")
    monkeypatch.setattr(settings, "airtable_table_name", "Address Collector")
    monkeypatch.setattr(settings, "spotify_client_id", "client-id")
    monkeypatch.setattr(settings, "spotify_client_secret", "client-secret")
    monkeypatch.setattr(settings, "spotify_refresh_token", "")
    monkeypatch.setattr(settings, "spotify_playlist_id", "playlist123")
    monkeypatch.setattr(settings, "outbox_max_attempts", 3)
    return settings


@pytest.fixture(name="upstream")
def upstream_fixture():
    """Fake Airtable and Spotify with a working token endpoint."""
    upstream = FakeUpstream()
    upstream.add(
        "POST",
        SPOTIFY_TOKEN_URL,
        json={"access_token": "access-1", "token_type": "Bearer", "expires_in": 3600},
    )
    return upstream


@pytest.fixture(name="clock")
def clock_fixture():
    return FakeClock()


@pytest.fixture(name="token_cache")
def token_cache_fixture(configured, clock):
    """Token cache holding the playlist owner's refresh token."""
    return SpotifyTokenCache(
        "client-id", "client-secret", refresh_token="owner-refresh", clock=clock
    )


@pytest.fixture(name="http")
async def http_fixture(upstream):
    async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as client:
        yield client


@pytest.fixture(name="client")
def client_fixture(session: Session, upstream: FakeUpstream, token_cache: SpotifyTokenCache):
    """Create a test client wired to the test database and fake upstreams."""

    def get_session_override():
        return session

    async def get_http_client_override():
        async with httpx.AsyncClient(transport=httpx.MockTransport(upstream)) as http:
            yield http

    app.dependency_overrides[get_session] = get_session_override
    app.dependency_overrides[get_http_client] = get_http_client_override
    app.dependency_overrides[get_token_cache] = lambda: token_cache
    client = TestClient(app)
    yield client
    app.dependency_overrides.clear()


@pytest.fixture(name="family_record")
def family_record_fixture():
    """Factory for Airtable records with a primary guest unless overridden."""

    def make(record_id: str = "recA", fields: dict | None = None) -> dict:
        base = {"First Name": "Alex", "Last Name": "Rivera", "Phone Number": "+1 (555) 123-4567"}
        base.update(fields or {})
        return {"id": record_id, "createdTime": "2025-01-01T00:00:00.000Z", "fields": base}

    return make
