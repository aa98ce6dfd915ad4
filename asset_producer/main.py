"""
Asset producer FastAPI application entry point.

Creates and configures the FastAPI app with:
- API v1 router (scan notification and dependency check)
- Health check endpoint
- Startup / shutdown lifecycle hooks for the shared HTTP clients
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from fastapi import FastAPI
from fastapi.responses import JSONResponse

from asset_producer import __version__
from asset_producer.api.v1.router import router as v1_router
from asset_producer.config import get_settings
from asset_producer.core.http import build_nexpose_client, build_producer_client
from asset_producer.core.logging import configure_logging, get_logger
from asset_producer.core.stats import StatsRecorder

# ── Constants ────────────────────────────────────────────────────────────────

_HEALTH_CHECK_PATH: str = "/health"


# ── Application Factory ─────────────────────────────────────────────────────

def create_app() -> FastAPI:
    """Build and return the configured FastAPI application instance.

    Returns:
        A fully configured ``FastAPI`` app ready to serve requests.
    """
    settings = get_settings()

    application = FastAPI(
        title=settings.APP_NAME,
        description=(
            "Produces the assets touched by each completed Nexpose scan "
            "to the downstream event stream."
        ),
        version=__version__,
        docs_url="/docs",
        redoc_url="/redoc" if settings.DEBUG else None,
        openapi_url="/openapi.json",
    )
    application.state.stats = StatsRecorder()

    # ── Routers ──────────────────────────────────────────────────────────

    application.include_router(v1_router)

    # ── Health Check ─────────────────────────────────────────────────────

    @application.get(
        _HEALTH_CHECK_PATH,
        tags=["health"],
        summary="Application health check",
        response_class=JSONResponse,
    )
    async def health_check() -> dict[str, Any]:
        """Return the current health status of the application.

        Returns:
            A JSON object with ``status``, ``app``, and ``timestamp`` fields.
        """
        return {
            "status": "healthy",
            "app": settings.APP_NAME,
            "version": __version__,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

    # ── Lifecycle Events ─────────────────────────────────────────────────

    @application.on_event("startup")
    async def on_startup() -> None:
        """Configure logging and open the Nexpose and producer clients."""
        configure_logging()
        logger = get_logger(__name__)
        application.state.nexpose_client = build_nexpose_client(settings)
        application.state.producer_client = build_producer_client(settings)
        logger.info(
            "Application starting (Nexpose %s, %s endpoint)",
            settings.NEXPOSE_HOST,
            settings.NEXPOSE_ASSET_ENDPOINT,
            extra={"action": "startup"},
        )

    @application.on_event("shutdown")
    async def on_shutdown() -> None:
        """Close the shared HTTP clients and their connection pools."""
        logger = get_logger(__name__)
        logger.info("Application shutting down", extra={"action": "shutdown"})
        for name in ("nexpose_client", "producer_client"):
            client = getattr(application.state, name, None)
            if client is not None:
                await client.aclose()

    return application


# ── Module-Level App Instance ────────────────────────────────────────────────

app: FastAPI = create_app()
