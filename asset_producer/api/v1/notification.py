"""
Scan notification and dependency check endpoints.

``POST /notification`` is called once per completed Nexpose scan and runs
the whole fetch, validate and produce cycle before answering.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from asset_producer.api.deps import get_dependency_check_handler, get_notification_handler
from asset_producer.api.schemas.notification import DependencyStatus, NotificationSummary
from asset_producer.core.logging import get_logger
from asset_producer.domain.errors import AssetFetchError, AssetProducerError
from asset_producer.domain.models import ScanInfo
from asset_producer.handlers import DependencyCheckHandler, ScannedAssetProducerHandler

logger = get_logger(__name__)

router = APIRouter()


@router.post(
    "/notification",
    response_model=NotificationSummary,
    summary="Process a scan-completion notification",
)
async def handle_notification(
    scan_info: ScanInfo,
    handler: ScannedAssetProducerHandler = Depends(get_notification_handler),
) -> NotificationSummary:
    """Fetch, validate and produce every asset touched by the scan.

    Raises:
        HTTPException: *502 Bad Gateway* when the first page of assets
            cannot be retrieved from Nexpose.
    """
    try:
        result = await handler.handle(scan_info)
    except AssetFetchError as exc:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail=str(exc),
        ) from exc
    return NotificationSummary(**result.summary())


@router.get(
    "/dependencycheck",
    response_model=DependencyStatus,
    summary="Check that Nexpose is reachable",
)
async def dependency_check(
    handler: DependencyCheckHandler = Depends(get_dependency_check_handler),
) -> DependencyStatus:
    """Return ``ok`` when Nexpose answers, *503* otherwise."""
    try:
        await handler.handle()
    except AssetProducerError as exc:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
        ) from exc
    return DependencyStatus(status="ok")
