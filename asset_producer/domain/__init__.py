"""
Asset producer domain package.

Re-exports the data model and the error taxonomy so that consumers can
import directly from ``asset_producer.domain``::

    from asset_producer.domain import Asset, AssetEvent, ScanInfo, ErrorKind
"""

from asset_producer.domain.errors import (
    AssetFetchError,
    AssetProducerError,
    ErrorKind,
    InvalidScanTimeError,
    MissingRequiredFieldsError,
    NonSuccessStatusError,
    ProducerDeliveryError,
    ResponseParseError,
    ResponseReadError,
    ScanEventNotFoundError,
    TransportError,
    UrlConstructionError,
)
from asset_producer.domain.models import (
    Asset,
    AssetEvent,
    AssetScanType,
    HistoryEvent,
    Page,
    ScanInfo,
    ScanType,
    SiteAssetsResponse,
)

__all__: list[str] = [
    # models
    "Asset",
    "AssetEvent",
    "AssetScanType",
    "HistoryEvent",
    "Page",
    "ScanInfo",
    "ScanType",
    "SiteAssetsResponse",
    # errors
    "AssetFetchError",
    "AssetProducerError",
    "ErrorKind",
    "InvalidScanTimeError",
    "MissingRequiredFieldsError",
    "NonSuccessStatusError",
    "ProducerDeliveryError",
    "ResponseParseError",
    "ResponseReadError",
    "ScanEventNotFoundError",
    "TransportError",
    "UrlConstructionError",
]
