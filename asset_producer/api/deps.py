"""
Shared FastAPI dependency functions for the asset producer API.

The HTTP clients and the stats recorder live on ``app.state`` for the
lifetime of the process; handlers are built per request on top of them.
Tests replace :func:`get_notification_handler` and
:func:`get_dependency_check_handler` through ``app.dependency_overrides``.
"""

from __future__ import annotations

import httpx
from fastapi import Depends, Request

from asset_producer.config import Settings, get_settings
from asset_producer.core.stats import StatsRecorder
from asset_producer.fetcher import NexposeAssetFetcher
from asset_producer.handlers import DependencyCheckHandler, ScannedAssetProducerHandler
from asset_producer.producer import HTTPAssetProducer
from asset_producer.validator import NexposeAssetValidator


def get_nexpose_client(request: Request) -> httpx.AsyncClient:
    """Return the process-wide Nexpose client created at startup."""
    return request.app.state.nexpose_client


def get_producer_client(request: Request) -> httpx.AsyncClient:
    """Return the process-wide producer client created at startup."""
    return request.app.state.producer_client


def get_stats(request: Request) -> StatsRecorder:
    return request.app.state.stats


def get_notification_handler(
    settings: Settings = Depends(get_settings),
    nexpose_client: httpx.AsyncClient = Depends(get_nexpose_client),
    producer_client: httpx.AsyncClient = Depends(get_producer_client),
    stats: StatsRecorder = Depends(get_stats),
) -> ScannedAssetProducerHandler:
    """Assemble the handler that processes one scan notification.

    Returns:
        A :class:`ScannedAssetProducerHandler` wired to the shared clients.
    """
    return ScannedAssetProducerHandler(
        fetcher=NexposeAssetFetcher.from_settings(nexpose_client, settings),
        validator=NexposeAssetValidator(),
        producer=HTTPAssetProducer.from_settings(producer_client, settings),
        stats=stats,
    )


def get_dependency_check_handler(
    settings: Settings = Depends(get_settings),
    nexpose_client: httpx.AsyncClient = Depends(get_nexpose_client),
) -> DependencyCheckHandler:
    return DependencyCheckHandler(NexposeAssetFetcher.from_settings(nexpose_client, settings))
