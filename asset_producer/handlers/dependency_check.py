"""Dependency check: verifies that the Nexpose API can be reached."""

from __future__ import annotations

from asset_producer.core.logging import get_logger
from asset_producer.domain.errors import AssetProducerError
from asset_producer.fetcher.fetcher import NexposeAssetFetcher

logger = get_logger(__name__)


class DependencyCheckHandler:
    """Reports whether the external dependencies of the service respond."""

    def __init__(self, fetcher: NexposeAssetFetcher) -> None:
        self.fetcher = fetcher

    async def handle(self) -> None:
        """Call Nexpose once.

        Raises:
            AssetProducerError: Nexpose could not be reached or answered
                with a non-200 status.
        """
        try:
            await self.fetcher.check_dependencies()
        except AssetProducerError as exc:
            logger.warning(
                "Dependency check failed: %s",
                exc,
                extra={"action": "dependency_check_fail"},
            )
            raise
