"""
Error taxonomy for the asset producer.

Every failure the fetcher, validator or producer can report is an instance
of :class:`AssetProducerError`.  Each concrete class carries a class-level
:class:`ErrorKind` tag plus the payload fields relevant to its kind, so
callers choose log shapes and metric tags by looking up ``error.kind``
instead of inspecting concrete types.

All payload fields are optional; ``str()`` works on an error built without
any arguments.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Optional


class ErrorKind(str, Enum):
    """Closed set of error kinds raised or collected by the core."""

    URL_CONSTRUCTION = "url_construction"
    TRANSPORT = "transport"
    NON_SUCCESS_STATUS = "non_success_status"
    RESPONSE_READ = "response_read"
    RESPONSE_PARSE = "response_parse"
    ASSET_FETCH = "asset_fetch"
    SCAN_EVENT_NOT_FOUND = "scan_event_not_found"
    INVALID_SCAN_TIME = "invalid_scan_time"
    MISSING_REQUIRED_FIELDS = "missing_required_fields"
    PRODUCER_DELIVERY = "producer_delivery"


class AssetProducerError(Exception):
    """Base class for every error of the asset producer."""

    kind: ErrorKind

    def __str__(self) -> str:
        return self.describe()

    def describe(self) -> str:
        raise NotImplementedError


# ---------------------------------------------------------------------------
# Page retrieval errors
# ---------------------------------------------------------------------------


class UrlConstructionError(AssetProducerError):
    """The configured host or the site identifier produced an unusable URL."""

    kind = ErrorKind.URL_CONSTRUCTION

    def __init__(
        self,
        url: str = "",
        site_id: str = "",
        inner: Optional[BaseException] = None,
    ) -> None:
        super().__init__(url, site_id, inner)
        self.url = url
        self.site_id = site_id
        self.inner = inner

    def describe(self) -> str:
        return f"error parsing Nexpose URL ({self.url}) for site {self.site_id}: {self.inner}"


class TransportError(AssetProducerError):
    """The HTTP call itself failed (connection error, timeout, ...)."""

    kind = ErrorKind.TRANSPORT

    def __init__(self, url: str = "", inner: Optional[BaseException] = None) -> None:
        super().__init__(url, inner)
        self.url = url
        self.inner = inner

    def describe(self) -> str:
        return f"error making an HTTP request to Nexpose with URL {self.url}: {self.inner}"


class NonSuccessStatusError(AssetProducerError):
    """Nexpose answered with a status code outside of the 2xx range."""

    kind = ErrorKind.NON_SUCCESS_STATUS

    def __init__(self, url: str = "", status_code: int = 0) -> None:
        super().__init__(url, status_code)
        self.url = url
        self.status_code = status_code

    def describe(self) -> str:
        return f"Nexpose returned bad response code {self.status_code} from {self.url}"


class ResponseReadError(AssetProducerError):
    """The response body could not be read completely."""

    kind = ErrorKind.RESPONSE_READ

    def __init__(self, url: str = "", inner: Optional[BaseException] = None) -> None:
        super().__init__(url, inner)
        self.url = url
        self.inner = inner

    def describe(self) -> str:
        return f"error reading Nexpose response from {self.url}: {self.inner}"


class ResponseParseError(AssetProducerError):
    """The response body was not the JSON document we expected."""

    kind = ErrorKind.RESPONSE_PARSE

    def __init__(self, url: str = "", inner: Optional[BaseException] = None) -> None:
        super().__init__(url, inner)
        self.url = url
        self.inner = inner

    def describe(self) -> str:
        return f"error parsing Nexpose response from {self.url}: {self.inner}"


class AssetFetchError(AssetProducerError):
    """A page of assets for a site could not be retrieved.

    Wraps one of the page retrieval errors above together with the site and
    the zero-based page index it happened on.
    """

    kind = ErrorKind.ASSET_FETCH

    def __init__(
        self,
        site_id: str = "",
        page: int = 0,
        inner: Optional[BaseException] = None,
    ) -> None:
        super().__init__(site_id, page, inner)
        self.site_id = site_id
        self.page = page
        self.inner = inner

    def describe(self) -> str:
        return (
            f"error fetching assets site: {self.site_id}, on page {self.page}, "
            f"from Nexpose. {self.inner}"
        )


# ---------------------------------------------------------------------------
# Validation errors
# ---------------------------------------------------------------------------


class ScanEventNotFoundError(AssetProducerError):
    """The asset belongs to the scanned site but was not part of the scan."""

    kind = ErrorKind.SCAN_EVENT_NOT_FOUND

    def __init__(
        self,
        scan_id: str = "",
        asset_id: int = 0,
        asset_ip: str = "",
        asset_hostname: str = "",
    ) -> None:
        super().__init__(scan_id, asset_id, asset_ip, asset_hostname)
        self.scan_id = scan_id
        self.asset_id = asset_id
        self.asset_ip = asset_ip
        self.asset_hostname = asset_hostname

    def describe(self) -> str:
        return (
            f"Asset was not scanned during the scan with ScanID: {self.scan_id}, "
            f"AssetID: {self.asset_id}, IP: {self.asset_ip}, Hostname: {self.asset_hostname}"
        )


class InvalidScanTimeError(AssetProducerError):
    """The matching history event carries an unparsable or zero timestamp."""

    kind = ErrorKind.INVALID_SCAN_TIME

    def __init__(
        self,
        scan_id: str = "",
        scan_time: Optional[datetime] = None,
        asset_id: int = 0,
        asset_ip: str = "",
        asset_hostname: str = "",
        inner: Optional[BaseException] = None,
    ) -> None:
        super().__init__(scan_id, scan_time, asset_id, asset_ip, asset_hostname, inner)
        self.scan_id = scan_id
        self.scan_time = scan_time
        self.asset_id = asset_id
        self.asset_ip = asset_ip
        self.asset_hostname = asset_hostname
        self.inner = inner

    def describe(self) -> str:
        return (
            f"Invalid scan time. ScanID: {self.scan_id}, ScanTime: {self.scan_time}, "
            f"AssetID: {self.asset_id}, IP: {self.asset_ip}, "
            f"Hostname: {self.asset_hostname}, Error: {self.inner}"
        )


class MissingRequiredFieldsError(AssetProducerError):
    """The asset has no identifier, or neither an IP nor a hostname."""

    kind = ErrorKind.MISSING_REQUIRED_FIELDS

    def __init__(
        self,
        asset_id: int = 0,
        asset_ip: str = "",
        asset_hostname: str = "",
        scan_time: Optional[datetime] = None,
    ) -> None:
        super().__init__(asset_id, asset_ip, asset_hostname, scan_time)
        self.asset_id = asset_id
        self.asset_ip = asset_ip
        self.asset_hostname = asset_hostname
        self.scan_time = scan_time

    def describe(self) -> str:
        return (
            f"required fields are missing. ID: {self.asset_id}, IP: {self.asset_ip}, "
            f"Hostname: {self.asset_hostname}, ScanTime: {self.scan_time}"
        )


# ---------------------------------------------------------------------------
# Delivery errors
# ---------------------------------------------------------------------------


class ProducerDeliveryError(AssetProducerError):
    """An asset event could not be delivered to the downstream stream."""

    kind = ErrorKind.PRODUCER_DELIVERY

    def __init__(
        self,
        asset_id: int = 0,
        endpoint: str = "",
        status_code: Optional[int] = None,
        inner: Optional[BaseException] = None,
        body: str = "",
    ) -> None:
        super().__init__(asset_id, endpoint, status_code, inner)
        self.asset_id = asset_id
        self.endpoint = endpoint
        self.status_code = status_code
        self.inner = inner
        self.body = body

    def describe(self) -> str:
        if self.status_code is not None:
            return (
                f"unexpected response from http producer {self.endpoint} for asset "
                f"{self.asset_id}: {self.status_code} {self.body}"
            ).rstrip()
        return f"error producing asset {self.asset_id} to {self.endpoint}: {self.inner}"


# ---------------------------------------------------------------------------
# Kind lookup tables
# ---------------------------------------------------------------------------

FETCH_ERROR_KINDS: frozenset[ErrorKind] = frozenset(
    {
        ErrorKind.URL_CONSTRUCTION,
        ErrorKind.TRANSPORT,
        ErrorKind.NON_SUCCESS_STATUS,
        ErrorKind.RESPONSE_READ,
        ErrorKind.RESPONSE_PARSE,
        ErrorKind.ASSET_FETCH,
    }
)
"""Kinds that originate from retrieving pages of assets."""

VALIDATION_ERROR_KINDS: frozenset[ErrorKind] = frozenset(
    {
        ErrorKind.SCAN_EVENT_NOT_FOUND,
        ErrorKind.INVALID_SCAN_TIME,
        ErrorKind.MISSING_REQUIRED_FIELDS,
    }
)
"""Kinds that reject a single asset during validation."""
