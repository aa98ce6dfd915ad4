"""Entry-point handlers invoked by the HTTP surface."""

from asset_producer.handlers.dependency_check import DependencyCheckHandler
from asset_producer.handlers.scanned_assets import (
    FAILURE_DISPATCH,
    HandlerResult,
    ScannedAssetProducerHandler,
)

__all__: list[str] = [
    "DependencyCheckHandler",
    "FAILURE_DISPATCH",
    "HandlerResult",
    "ScannedAssetProducerHandler",
]
