"""
Serve the asset producer with uvicorn.

Run with ``python -m asset_producer`` or the ``nexpose-asset-producer``
console script.  Bind address and port come from ``APP_HOST`` / ``APP_PORT``.
"""

from __future__ import annotations

from typing import Optional

import uvicorn

from asset_producer.config import Settings, get_settings


def run(settings: Optional[Settings] = None) -> None:
    settings = settings or get_settings()
    uvicorn.run(
        "asset_producer.main:app",
        host=settings.APP_HOST,
        port=settings.APP_PORT,
        log_level=(settings.LOG_LEVEL or ("debug" if settings.DEBUG else "info")).lower(),
    )


if __name__ == "__main__":
    run()
