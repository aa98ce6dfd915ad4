"""
Pydantic v2 models for Nexpose asset payloads and the events produced from them.

The Nexpose models mirror the JSON returned by the site assets and asset
search endpoints (camelCase keys are mapped through aliases).  Unknown keys
are ignored so that the full Nexpose asset document can be decoded without
declaring every field.
"""

from __future__ import annotations

import re
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    field_serializer,
    field_validator,
    model_validator,
)

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------

HISTORY_TYPE_SCAN: str = "SCAN"
HISTORY_TYPE_AGENT_IMPORT: str = "AGENT-IMPORT"

_RFC3339_RE = re.compile(
    r"^(?P<date>\d{4}-\d{2}-\d{2})[Tt]"
    r"(?P<time>\d{2}:\d{2}:\d{2})"
    r"(?:\.(?P<fraction>\d+))?"
    r"(?P<offset>[Zz]|[+-]\d{2}:\d{2})$"
)


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------


def parse_rfc3339(value: str) -> datetime:
    """Parse an RFC 3339 timestamp into an aware :class:`datetime`.

    Fractional seconds of any precision are accepted and truncated to
    microseconds.

    Raises:
        ValueError: If *value* is not an RFC 3339 date-time.
    """
    match = _RFC3339_RE.match(value or "")
    if match is None:
        raise ValueError(f"cannot parse {value!r} as an RFC 3339 timestamp")
    fraction = (match.group("fraction") or "").ljust(6, "0")[:6]
    offset = match.group("offset")
    if offset in ("Z", "z"):
        offset = "+00:00"
    return datetime.fromisoformat(
        f"{match.group('date')}T{match.group('time')}.{fraction}{offset}"
    )


def is_zero_time(value: Optional[datetime]) -> bool:
    """Return ``True`` for a missing timestamp or ``0001-01-01T00:00:00``."""
    if value is None:
        return True
    return value.replace(tzinfo=None) == datetime.min


def ensure_utc(value: datetime) -> datetime:
    """Read naive timestamps as UTC and convert aware ones to UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def format_rfc3339(value: datetime) -> str:
    """Render *value* as an RFC 3339 UTC timestamp with a ``Z`` suffix."""
    return ensure_utc(value).isoformat().replace("+00:00", "Z")


# ---------------------------------------------------------------------------
# Enumerations
# ---------------------------------------------------------------------------


class ScanType(str, Enum):
    """Kind of Nexpose scan that triggered a run.

    Attributes:
        AUTOMATED: Remote scan started by an automated trigger.
        MANUAL:    Remote scan started by an operator.
        SCHEDULED: Remote scan started by a site schedule.
        AGENT:     Results imported from Insight agents.
    """

    AUTOMATED = "automated"
    MANUAL = "manual"
    SCHEDULED = "scheduled"
    AGENT = "agent"


class AssetScanType(str, Enum):
    """How an asset event was observed, as reported downstream."""

    REMOTE = "remote"
    LOCAL = "local"
    UNKNOWN = "unknown"


# ---------------------------------------------------------------------------
# Nexpose payloads
# ---------------------------------------------------------------------------


class HistoryEvent(BaseModel):
    """One lifecycle entry of an asset (scan, agent import, creation, ...).

    Attributes:
        type: Event tag, e.g. ``"SCAN"``, ``"AGENT-IMPORT"``, ``"CREATE"``.
        scan_id: Scan identifier, present for scan events.
        date: Raw timestamp string; parsed lazily by the validator so that a
            malformed date rejects one asset rather than a whole page.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    type: str = ""
    scan_id: Optional[int] = Field(default=None, alias="scanId")
    date: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value


class Asset(BaseModel):
    """Raw asset record returned by Nexpose for a site.

    Attributes:
        id: Nexpose asset identifier, unique within a site.
        ip: Primary IPv4 or IPv6 address.
        hostname: Primary host name (local or FQDN).
        history: Lifecycle events in the order Nexpose returned them.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    id: int = 0
    ip: str = ""
    hostname: str = Field(default="", alias="hostName")
    history: list[HistoryEvent] = Field(default_factory=list)

    @field_validator("id", mode="before")
    @classmethod
    def none_as_zero(cls, value: Any) -> Any:
        return 0 if value is None else value

    @field_validator("ip", "hostname", mode="before")
    @classmethod
    def none_as_empty(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("history", mode="before")
    @classmethod
    def none_as_no_history(cls, value: Any) -> Any:
        return [] if value is None else value


class Page(BaseModel):
    """Pagination details returned alongside a batch of assets.

    Attributes:
        number:          Zero-based index of the returned page.
        size:            Maximum size of the returned page.
        total_pages:     Total number of pages available.
        total_resources: Total number of assets across all pages.
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    number: int = 0
    size: int = 0
    total_pages: int = Field(default=0, alias="totalPages")
    total_resources: int = Field(default=0, alias="totalResources")

    @field_validator("number", "size", "total_pages", "total_resources", mode="before")
    @classmethod
    def none_as_zero(cls, value: Any) -> Any:
        return 0 if value is None else value


class SiteAssetsResponse(BaseModel):
    """Envelope of one page of the site assets (or asset search) response."""

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    page: Page
    resources: list[Asset] = Field(default_factory=list)
    links: list[dict[str, Any]] = Field(default_factory=list)

    @field_validator("resources", "links", mode="before")
    @classmethod
    def none_as_empty_list(cls, value: Any) -> Any:
        return [] if value is None else value


# ---------------------------------------------------------------------------
# Inbound and outbound events
# ---------------------------------------------------------------------------


class ScanInfo(BaseModel):
    """Notification payload describing the completed scan.

    Attributes:
        site_id:    Nexpose site that was scanned.
        scan_id:    Identifier of the completed scan.
        scan_type:  Optional scan type; ``None`` is treated as a remote scan.
        start_time: Start of the agent-import window (agent scans only).
        end_time:   End of the agent-import window (agent scans only).
    """

    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    site_id: str = Field(..., alias="siteID")
    scan_id: str = Field(..., alias="scanID")
    scan_type: Optional[ScanType] = Field(default=None, alias="scanType")
    start_time: Optional[datetime] = Field(default=None, alias="startTime")
    end_time: Optional[datetime] = Field(default=None, alias="endTime")

    @field_validator("site_id", "scan_id", mode="before")
    @classmethod
    def coerce_identifier(cls, value: Any) -> Any:
        """Nexpose identifiers are numeric; accept them as numbers or strings."""
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @field_validator("scan_type", mode="before")
    @classmethod
    def normalise_scan_type(cls, value: Any) -> Any:
        if isinstance(value, str):
            value = value.strip().lower()
            return value or None
        return value

    @field_validator("start_time", "end_time", mode="after")
    @classmethod
    def as_utc(cls, value: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(value) if value is not None else None

    @property
    def is_agent_scan(self) -> bool:
        return self.scan_type is ScanType.AGENT


class AssetEvent(BaseModel):
    """Validated asset event handed to the producer.

    An instance can only exist with a non-zero ``id``, at least one of
    ``ip`` / ``hostname``, and a non-zero ``scan_time``; construction raises
    a :class:`pydantic.ValidationError` otherwise.
    """

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    id: int
    ip: str = ""
    hostname: str = ""
    scan_time: datetime = Field(..., alias="scanTime")
    scan_type: AssetScanType = Field(default=AssetScanType.UNKNOWN, alias="scanType")

    @model_validator(mode="after")
    def validate_required_fields(self) -> "AssetEvent":
        if self.id == 0:
            raise ValueError("asset event requires a non-zero id")
        if not self.ip and not self.hostname:
            raise ValueError("asset event requires an ip or a hostname")
        if is_zero_time(self.scan_time):
            raise ValueError("asset event requires a non-zero scan time")
        return self

    @field_serializer("scan_time")
    def serialise_scan_time(self, value: datetime) -> str:
        return format_rfc3339(value)

    def to_payload(self) -> dict[str, Any]:
        """Return the JSON document delivered downstream.

        Empty ``ip`` / ``hostname`` values are omitted.
        """
        payload: dict[str, Any] = self.model_dump(mode="json", by_alias=True)
        for key in ("ip", "hostname"):
            if not payload.get(key):
                payload.pop(key, None)
        return payload
