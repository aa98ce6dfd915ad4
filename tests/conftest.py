"""
Shared pytest fixtures for the asset producer test suite.

Provides application settings pointed at fake hosts, a factory of httpx
clients served by :class:`httpx.MockTransport`, and a FastAPI test
application with dependency overrides.
"""

from __future__ import annotations

from typing import Any, AsyncGenerator, Callable

import httpx
import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from asset_producer.config import Settings
from asset_producer.core.stats import StatsRecorder
from factories import NEXPOSE_HOST, PRODUCER_ENDPOINT


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def settings() -> Settings:
    """Return settings pointed at fake Nexpose and producer hosts."""
    return Settings(
        NEXPOSE_HOST=NEXPOSE_HOST,
        NEXPOSE_USERNAME="nxadmin",
        NEXPOSE_PASSWORD="nxpassword",
        NEXPOSE_PAGE_SIZE=1,
        NEXPOSE_ASSET_ENDPOINT="site",
        NEXPOSE_RETRY_MAX_ATTEMPTS=0,
        HTTP_PRODUCER_ENDPOINT=PRODUCER_ENDPOINT,
    )


@pytest.fixture()
def stats() -> StatsRecorder:
    return StatsRecorder()


@pytest_asyncio.fixture()
async def make_client() -> AsyncGenerator[Callable[..., httpx.AsyncClient], None]:
    """Return a factory of AsyncClients served by a handler; all are closed afterwards."""
    clients: list[httpx.AsyncClient] = []

    def _make(handler: Callable[[httpx.Request], Any]) -> httpx.AsyncClient:
        client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
        clients.append(client)
        return client

    yield _make

    for client in clients:
        await client.aclose()


@pytest_asyncio.fixture()
async def test_app() -> AsyncGenerator[Any, None]:
    """Return a FastAPI application whose handlers are replaced per test.

    Tests assign their fakes through ``test_app.dependency_overrides``; the
    overrides are cleared afterwards.
    """
    from asset_producer.main import create_app

    app = create_app()

    yield app

    app.dependency_overrides.clear()


@pytest_asyncio.fixture()
async def client(test_app: Any) -> AsyncGenerator[AsyncClient, None]:
    """Yield an httpx AsyncClient wired to the test FastAPI app."""
    transport = ASGITransport(app=test_app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
