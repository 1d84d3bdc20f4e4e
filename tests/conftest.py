"""pytest fixtures shared across all tests."""

from __future__ import annotations

from typing import Any

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import create_async_engine

from techfeed.core.config import Settings
from techfeed.core.context import AppContext
from techfeed.core.limiter import limiter
from techfeed.models.base import Base

# Use SQLite in-memory for tests — no PostgreSQL required.
# Each test function gets its own fresh DB to avoid cross-test pollution.
TEST_DB_URL = "sqlite+aiosqlite:///:memory:"


class FakeUpstream:
    """Canned responses for outbound HTTP (OAuth providers, news API)."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], tuple[int, Any]] = {}
        self.requests: list[httpx.Request] = []

    def add(self, method: str, url: str, json: Any = None, status_code: int = 200) -> None:
        self.routes[(method.upper(), url)] = (status_code, json)

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        key = (request.method, f"{request.url.scheme}://{request.url.host}{request.url.path}")
        if key not in self.routes:
            return httpx.Response(404, json={"message": "Not Found"})
        status_code, body = self.routes[key]
        return httpx.Response(status_code, json=body)

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        database_url=TEST_DB_URL,
        app_debug=True,
        session_secret="test-session-secret",
        news_api_key="test-news-key",
        google_client_id="google-client",
        google_client_secret="google-secret",
        github_client_id="github-client",
        github_client_secret="github-secret",
    )


@pytest.fixture
def upstream() -> FakeUpstream:
    return FakeUpstream()


@pytest_asyncio.fixture
async def engine():
    """Create a fresh in-memory SQLite engine per test function."""
    eng = create_async_engine(
        TEST_DB_URL,
        echo=False,
        connect_args={"check_same_thread": False},
    )
    async with eng.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield eng
    await eng.dispose()


@pytest_asyncio.fixture
async def app_context(settings, engine, upstream) -> AppContext:
    return AppContext.from_settings(settings, engine=engine, http_transport=upstream.transport)


@pytest_asyncio.fixture
async def db_session(app_context):
    """Yield an async session bound to the test engine."""
    async with app_context.session_factory() as session:
        yield session


@pytest_asyncio.fixture
async def client(app_context):
    """HTTPX async test client wired to the FastAPI app with a test context."""
    from techfeed.api.app import create_app

    app = create_app(context=app_context)
    limiter.enabled = False

    async with AsyncClient(
        transport=ASGITransport(app=app), base_url="http://test"
    ) as ac:
        yield ac

    limiter.enabled = True


@pytest_asyncio.fixture
async def signed_in(client):
    """The test client after registering and logging in as alice@example.com."""
    r = await client.post(
        "/register", json={"email": "alice@example.com", "password": "pw123", "name": "Alice"}
    )
    assert r.status_code == 201
    r = await client.post("/login", data={"email": "alice@example.com", "password": "pw123"})
    assert r.status_code == 303
    return client
