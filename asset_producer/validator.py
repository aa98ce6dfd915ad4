"""
Validation of fetched Nexpose assets against the scan that triggered a run.

An asset belongs to the scanned site, but that does not mean the scan
touched it.  For every asset the validator looks through its history for
the event that proves the triggering scan covered it:

* remote scans (automated, manual, scheduled, or no type given): a
  ``SCAN`` event whose ``scanId`` equals the triggering scan ID;
* agent scans: an ``AGENT-IMPORT`` event dated inside the scan window
  ``[start_time, end_time)``.

History is not assumed to be sorted and the first matching event wins.
Assets are validated independently: every asset ends up either as one
:class:`AssetEvent` or as one error, never both and never neither.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from asset_producer.core.logging import get_logger
from asset_producer.domain.errors import (
    AssetProducerError,
    InvalidScanTimeError,
    MissingRequiredFieldsError,
    ScanEventNotFoundError,
)
from asset_producer.domain.models import (
    HISTORY_TYPE_AGENT_IMPORT,
    HISTORY_TYPE_SCAN,
    Asset,
    AssetEvent,
    AssetScanType,
    HistoryEvent,
    ScanInfo,
    is_zero_time,
    parse_rfc3339,
)

logger = get_logger(__name__)


class NexposeAssetValidator:
    """Turns raw assets into asset events for a given scan."""

    def validate_assets(
        self, assets: list[Asset], scan_info: ScanInfo
    ) -> tuple[list[AssetEvent], list[AssetProducerError]]:
        """Validate every asset against *scan_info*.

        Args:
            assets:    Assets fetched for ``scan_info.site_id``.
            scan_info: Description of the completed scan.

        Returns:
            The valid asset events and one error per rejected asset.  The
            two lists together always account for every input asset.
        """
        events: list[AssetEvent] = []
        errors: list[AssetProducerError] = []
        for asset in assets:
            try:
                scan_time, scan_type = self.resolve_scan_time_and_type(asset, scan_info)
                events.append(self.to_asset_event(asset, scan_time, scan_type))
            except (ScanEventNotFoundError, InvalidScanTimeError, MissingRequiredFieldsError) as exc:
                errors.append(exc)
        return events, errors

    def resolve_scan_time_and_type(
        self, asset: Asset, scan_info: ScanInfo
    ) -> tuple[datetime, AssetScanType]:
        """Find when *asset* was scanned by the scan described in *scan_info*.

        Raises:
            InvalidScanTimeError:   The matching SCAN event has a bad date.
            ScanEventNotFoundError: No history event matches the scan.
        """
        if scan_info.is_agent_scan:
            scan_time = self._find_agent_import(asset, scan_info)
            if scan_time is not None:
                return scan_time, AssetScanType.LOCAL
        else:
            scan_time = self._find_remote_scan(asset, scan_info)
            if scan_time is not None:
                return scan_time, AssetScanType.REMOTE

        logger.debug(
            "No matching events: scan %s, %d history events",
            scan_info.scan_id,
            len(asset.history),
            extra={"action": "no_valid_events", "site": scan_info.site_id, "asset": asset.id},
        )
        raise ScanEventNotFoundError(
            scan_id=scan_info.scan_id,
            asset_id=asset.id,
            asset_ip=asset.ip,
            asset_hostname=asset.hostname,
        )

    def to_asset_event(
        self,
        asset: Asset,
        scan_time: datetime,
        scan_type: AssetScanType = AssetScanType.UNKNOWN,
    ) -> AssetEvent:
        """Convert *asset* into the event delivered downstream.

        Raises:
            MissingRequiredFieldsError: The asset has no ID, or neither an
                IP address nor a hostname.
            InvalidScanTimeError: *scan_time* is missing or zero.
        """
        if asset.id == 0 or (not asset.ip and not asset.hostname):
            raise MissingRequiredFieldsError(
                asset_id=asset.id,
                asset_ip=asset.ip,
                asset_hostname=asset.hostname,
                scan_time=scan_time,
            )
        if is_zero_time(scan_time):
            raise InvalidScanTimeError(
                scan_time=scan_time,
                asset_id=asset.id,
                asset_ip=asset.ip,
                asset_hostname=asset.hostname,
                inner=ValueError("scan time is zero"),
            )
        return AssetEvent(
            id=asset.id,
            ip=asset.ip,
            hostname=asset.hostname,
            scan_time=scan_time,
            scan_type=scan_type,
        )

    # -- Matching -----------------------------------------------------------

    def _find_remote_scan(self, asset: Asset, scan_info: ScanInfo) -> Optional[datetime]:
        for event in asset.history:
            if event.type != HISTORY_TYPE_SCAN:
                self._log_skipped(event, scan_info, asset, "not_scan_event")
                continue
            if event.scan_id is None or str(event.scan_id) != scan_info.scan_id:
                self._log_skipped(event, scan_info, asset, "invalid_scan_event")
                continue
            return self._parse_scan_time(event, asset, scan_info)
        return None

    def _find_agent_import(self, asset: Asset, scan_info: ScanInfo) -> Optional[datetime]:
        start, end = scan_info.start_time, scan_info.end_time
        if start is None or end is None:
            logger.warning(
                "Agent scan %s has no scan window",
                scan_info.scan_id,
                extra={"action": "missing_scan_window", "site": scan_info.site_id, "asset": asset.id},
            )
            return None
        for event in asset.history:
            if event.type != HISTORY_TYPE_AGENT_IMPORT:
                self._log_skipped(event, scan_info, asset, "not_agent_import_event")
                continue
            try:
                imported_at = parse_rfc3339(event.date or "")
            except ValueError:
                self._log_skipped(event, scan_info, asset, "invalid_agent_import_event")
                continue
            if is_zero_time(imported_at) or not start <= imported_at < end:
                self._log_skipped(event, scan_info, asset, "agent_import_outside_window")
                continue
            return imported_at
        return None

    @staticmethod
    def _parse_scan_time(event: HistoryEvent, asset: Asset, scan_info: ScanInfo) -> datetime:
        try:
            scan_time = parse_rfc3339(event.date or "")
        except ValueError as exc:
            raise InvalidScanTimeError(
                scan_id=scan_info.scan_id,
                scan_time=None,
                asset_id=asset.id,
                asset_ip=asset.ip,
                asset_hostname=asset.hostname,
                inner=exc,
            ) from exc
        if is_zero_time(scan_time):
            raise InvalidScanTimeError(
                scan_id=scan_info.scan_id,
                scan_time=scan_time,
                asset_id=asset.id,
                asset_ip=asset.ip,
                asset_hostname=asset.hostname,
                inner=ValueError("scan time is zero"),
            )
        return scan_time

    @staticmethod
    def _log_skipped(event: HistoryEvent, scan_info: ScanInfo, asset: Asset, action: str) -> None:
        logger.debug(
            "Skipped %s event: date %s, scan %s | desired scan %s",
            event.type or "untyped",
            event.date,
            event.scan_id,
            scan_info.scan_id,
            extra={"action": action, "site": scan_info.site_id, "asset": asset.id},
        )
