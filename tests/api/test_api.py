"""
Tests for the HTTP surface: notification, dependency check and health.

Handlers are replaced through ``app.dependency_overrides`` with AsyncMocks,
so these tests only cover request parsing, status codes and responses.
"""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest
from httpx import AsyncClient

from asset_producer.api.deps import get_dependency_check_handler, get_notification_handler
from asset_producer.domain.errors import (
    AssetFetchError,
    NonSuccessStatusError,
    ScanEventNotFoundError,
    TransportError,
)
from asset_producer.domain.models import ScanType
from asset_producer.handlers import HandlerResult


def _override(app: Any, dependency: Any, handler: Any) -> None:
    app.dependency_overrides[dependency] = lambda: handler


# ---------------------------------------------------------------------------
# POST /notification
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_notification_returns_summary(test_app: Any, client: AsyncClient) -> None:
    """A processed notification answers 200 with the run summary."""
    handler = MagicMock()
    handler.handle = AsyncMock(
        return_value=HandlerResult(
            site_id="site67",
            scan_id="1",
            assets_fetched=3,
            assets_produced=2,
            validation_errors=[ScanEventNotFoundError(scan_id="1", asset_id=9)],
        )
    )
    _override(test_app, get_notification_handler, handler)

    response = await client.post("/notification", json={"siteID": "site67", "scanID": "1"})

    assert response.status_code == 200
    assert response.json() == {
        "site_id": "site67",
        "scan_id": "1",
        "assets_fetched": 3,
        "assets_produced": 2,
        "fetch_errors": 0,
        "validation_errors": 1,
        "producer_errors": 0,
    }
    scan_info = handler.handle.await_args.args[0]
    assert scan_info.site_id == "site67"
    assert scan_info.scan_type is None


@pytest.mark.asyncio
async def test_notification_parses_agent_window(test_app: Any, client: AsyncClient) -> None:
    handler = MagicMock()
    handler.handle = AsyncMock(return_value=HandlerResult(site_id="5", scan_id="7"))
    _override(test_app, get_notification_handler, handler)

    response = await client.post(
        "/notification",
        json={
            "siteID": "5",
            "scanID": "7",
            "scanType": "agent",
            "startTime": "2019-05-14T15:00:00Z",
            "endTime": "2019-05-14T16:00:00Z",
        },
    )

    assert response.status_code == 200
    scan_info = handler.handle.await_args.args[0]
    assert scan_info.scan_type is ScanType.AGENT
    assert scan_info.start_time is not None


@pytest.mark.asyncio
async def test_notification_first_page_failure(test_app: Any, client: AsyncClient) -> None:
    """A run that cannot fetch page 0 answers 502."""
    handler = MagicMock()
    handler.handle = AsyncMock(
        side_effect=AssetFetchError(
            site_id="site67", page=0, inner=NonSuccessStatusError(url="u", status_code=500)
        )
    )
    _override(test_app, get_notification_handler, handler)

    response = await client.post("/notification", json={"siteID": "site67", "scanID": "1"})

    assert response.status_code == 502
    assert "on page 0" in response.json()["detail"]


@pytest.mark.asyncio
async def test_notification_rejects_invalid_payload(test_app: Any, client: AsyncClient) -> None:
    """A payload without a scan id is rejected before the handler runs."""
    handler = MagicMock()
    handler.handle = AsyncMock()
    _override(test_app, get_notification_handler, handler)

    response = await client.post("/notification", json={"siteID": "site67"})

    assert response.status_code == 422
    handler.handle.assert_not_awaited()


# ---------------------------------------------------------------------------
# GET /dependencycheck and /health
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_dependency_check_ok(test_app: Any, client: AsyncClient) -> None:
    handler = MagicMock()
    handler.handle = AsyncMock(return_value=None)
    _override(test_app, get_dependency_check_handler, handler)

    response = await client.get("/dependencycheck")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


@pytest.mark.asyncio
async def test_dependency_check_unavailable(test_app: Any, client: AsyncClient) -> None:
    """An unreachable Nexpose answers 503."""
    handler = MagicMock()
    handler.handle = AsyncMock(side_effect=TransportError(url="https://nexpose.test/api/3"))
    _override(test_app, get_dependency_check_handler, handler)

    response = await client.get("/dependencycheck")

    assert response.status_code == 503
    assert "nexpose.test" in response.json()["detail"]


@pytest.mark.asyncio
async def test_health(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
