"""Paginated asset retrieval from the Nexpose API."""

from asset_producer.fetcher.fetcher import AssetStream, NexposeAssetFetcher
from asset_producer.fetcher.requester import NexposePageRequester

__all__: list[str] = [
    "AssetStream",
    "NexposeAssetFetcher",
    "NexposePageRequester",
]
