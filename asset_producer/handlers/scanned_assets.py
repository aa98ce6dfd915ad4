"""
Handler for scan-completion notifications.

Coordinates a single run for one completed scan:

1. Fetch every asset of the scanned site (page 0 first, then all other
   pages concurrently).
2. Validate each asset against the scan that triggered the run.
3. Produce each valid asset event to the downstream stream.

Only a failure to fetch the first page aborts the run.  Failed pages,
rejected assets and failed deliveries are logged, counted and reported in
the :class:`HandlerResult`, but never stop the remaining work.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from asset_producer.core.logging import ScanLoggerAdapter, get_logger, scan_logger
from asset_producer.core.stats import (
    ASSET_FETCH_FAILURE,
    ASSET_VALIDATION_FAILURE,
    PRODUCER_FAILURE,
    TOTAL_ASSETS,
    TOTAL_ASSETS_PRODUCED,
    StatsRecorder,
    reason_tag,
    site_tag,
)
from asset_producer.domain.errors import (
    FETCH_ERROR_KINDS,
    VALIDATION_ERROR_KINDS,
    AssetFetchError,
    AssetProducerError,
    ErrorKind,
    ProducerDeliveryError,
)
from asset_producer.domain.models import Asset, ScanInfo
from asset_producer.fetcher.fetcher import NexposeAssetFetcher
from asset_producer.producer import HTTPAssetProducer
from asset_producer.validator import NexposeAssetValidator

logger = get_logger(__name__)

# ── Error dispatch ───────────────────────────────────────────────────────────

ACTION_ASSET_FETCH_FAIL: str = "asset_fetch_fail"
ACTION_ASSET_VALIDATE_FAIL: str = "asset_validate_fail"
ACTION_PRODUCER_FAILURE: str = "producer_failure"

FAILURE_DISPATCH: dict[ErrorKind, tuple[str, str]] = {
    ErrorKind.URL_CONSTRUCTION: (ACTION_ASSET_FETCH_FAIL, "url-construction"),
    ErrorKind.TRANSPORT: (ACTION_ASSET_FETCH_FAIL, "transport"),
    ErrorKind.NON_SUCCESS_STATUS: (ACTION_ASSET_FETCH_FAIL, "non-success-status"),
    ErrorKind.RESPONSE_READ: (ACTION_ASSET_FETCH_FAIL, "response-read"),
    ErrorKind.RESPONSE_PARSE: (ACTION_ASSET_FETCH_FAIL, "response-parse"),
    ErrorKind.ASSET_FETCH: (ACTION_ASSET_FETCH_FAIL, "asset-fetch"),
    ErrorKind.SCAN_EVENT_NOT_FOUND: (ACTION_ASSET_VALIDATE_FAIL, "scan-event-not-found"),
    ErrorKind.INVALID_SCAN_TIME: (ACTION_ASSET_VALIDATE_FAIL, "invalid-scan-time"),
    ErrorKind.MISSING_REQUIRED_FIELDS: (ACTION_ASSET_VALIDATE_FAIL, "missing-required-fields"),
    ErrorKind.PRODUCER_DELIVERY: (ACTION_PRODUCER_FAILURE, "producer-delivery"),
}
"""Log action and metric reason tag for every error kind."""


def failure_reason(error: AssetProducerError) -> str:
    """Return the metric reason tag for *error*.

    Page failures are tagged after the error that broke the page.
    """
    if isinstance(error, AssetFetchError) and isinstance(error.inner, AssetProducerError):
        return FAILURE_DISPATCH[error.inner.kind][1]
    return FAILURE_DISPATCH[error.kind][1]


@dataclass
class HandlerResult:
    """Outcome of one notification.

    Attributes:
        site_id:           Site that was scanned.
        scan_id:           Scan that triggered the run.
        assets_fetched:    Raw assets retrieved, before validation.
        assets_produced:   Asset events delivered downstream.
        fetch_errors:      One error per page that could not be fetched.
        validation_errors: One error per rejected asset.
        producer_errors:   One error per failed delivery.
    """

    site_id: str
    scan_id: str
    assets_fetched: int = 0
    assets_produced: int = 0
    fetch_errors: list[AssetProducerError] = field(default_factory=list)
    validation_errors: list[AssetProducerError] = field(default_factory=list)
    producer_errors: list[AssetProducerError] = field(default_factory=list)

    def summary(self) -> dict[str, Any]:
        """Return a JSON-friendly summary of the run."""
        return {
            "site_id": self.site_id,
            "scan_id": self.scan_id,
            "assets_fetched": self.assets_fetched,
            "assets_produced": self.assets_produced,
            "fetch_errors": len(self.fetch_errors),
            "validation_errors": len(self.validation_errors),
            "producer_errors": len(self.producer_errors),
        }


class ScannedAssetProducerHandler:
    """Fetches, validates and produces the assets of a completed scan."""

    def __init__(
        self,
        fetcher: NexposeAssetFetcher,
        validator: NexposeAssetValidator,
        producer: HTTPAssetProducer,
        stats: Optional[StatsRecorder] = None,
    ) -> None:
        self.fetcher = fetcher
        self.validator = validator
        self.producer = producer
        self.stats = stats or StatsRecorder()

    async def handle(self, scan_info: ScanInfo) -> HandlerResult:
        """Process the notification for a completed scan.

        Raises:
            AssetFetchError: The first page of assets could not be fetched.
        """
        site_id = scan_info.site_id
        result = HandlerResult(site_id=site_id, scan_id=scan_info.scan_id)
        log = scan_logger(logger, site_id, scan_info.scan_id)

        log.info(
            "Scan %s completed, fetching assets",
            scan_info.scan_id,
            extra={"action": "notification_received"},
        )

        # ── Fetch ─────────────────────────────────────────────────────────
        try:
            stream = await self.fetcher.fetch_assets(site_id)
        except AssetFetchError as exc:
            self._record_failure(exc, site_id, log)
            raise

        assets: list[Asset] = []
        async with stream:
            async for asset in stream.assets():
                assets.append(asset)
            async for error in stream.errors():
                result.fetch_errors.append(error)
                self._record_failure(error, site_id, log)

        result.assets_fetched = len(assets)
        self.stats.count(TOTAL_ASSETS, len(assets), site_tag(site_id))

        # ── Validate ──────────────────────────────────────────────────────
        events, validation_errors = self.validator.validate_assets(assets, scan_info)
        for error in validation_errors:
            result.validation_errors.append(error)
            self._record_failure(error, site_id, log)

        # ── Produce ───────────────────────────────────────────────────────
        for event in events:
            try:
                await self.producer.produce(event)
            except ProducerDeliveryError as exc:
                result.producer_errors.append(exc)
                self._record_failure(exc, site_id, log)
                continue
            result.assets_produced += 1

        self.stats.count(TOTAL_ASSETS_PRODUCED, result.assets_produced, site_tag(site_id))

        log.info(
            "Produced %d of %d fetched assets (%d page errors, %d rejected, %d delivery failures)",
            result.assets_produced,
            result.assets_fetched,
            len(result.fetch_errors),
            len(result.validation_errors),
            len(result.producer_errors),
            extra={"action": "notification_done"},
        )
        return result

    # -- Observability ------------------------------------------------------

    def _record_failure(
        self, error: AssetProducerError, site_id: str, log: ScanLoggerAdapter
    ) -> None:
        action, _ = FAILURE_DISPATCH[error.kind]
        reason = failure_reason(error)
        asset_id = getattr(error, "asset_id", "-")

        if error.kind in FETCH_ERROR_KINDS:
            self.stats.count(ASSET_FETCH_FAILURE, 1, site_tag(site_id), reason_tag(reason))
            log.error(
                "Failed to fetch page %s of assets: %s",
                getattr(error, "page", "-"),
                error,
                extra={"action": action},
            )
        elif error.kind in VALIDATION_ERROR_KINDS:
            self.stats.count(ASSET_VALIDATION_FAILURE, 1, site_tag(site_id), reason_tag(reason))
            log.warning(
                "Asset rejected (%s): %s",
                reason,
                error,
                extra={"action": action, "asset": asset_id},
            )
        else:
            self.stats.count(PRODUCER_FAILURE, 1, site_tag(site_id))
            log.error(
                "Failed to produce asset: %s",
                error,
                extra={"action": action, "asset": asset_id},
            )
