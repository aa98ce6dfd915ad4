"""
Aggregated APIRouter for API version 1.

All v1 endpoint routers are included here and exposed as a single ``router``
instance that is mounted by the FastAPI application in
``asset_producer.main``.  The notification endpoints keep the paths the
scan pipeline already calls, so no prefix is applied.
"""

from __future__ import annotations

from fastapi import APIRouter

from asset_producer.api.v1 import notification

router = APIRouter()

router.include_router(
    notification.router,
    tags=["notification"],
)
