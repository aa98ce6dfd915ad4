"""
Tests for the Nexpose payload models and the asset event.

Covers alias handling, tolerant decoding of Nexpose documents, the
RFC 3339 helpers, and the rules enforced when an AssetEvent is built.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from pydantic import ValidationError

from asset_producer.domain.models import (
    Asset,
    AssetEvent,
    AssetScanType,
    ScanInfo,
    ScanType,
    SiteAssetsResponse,
    format_rfc3339,
    is_zero_time,
    parse_rfc3339,
)
from factories import asset_payload, page_payload, scan_event

SCAN_TIME = datetime(2019, 5, 14, 15, 3, 47, tzinfo=timezone.utc)


# ---------------------------------------------------------------------------
# Time helpers
# ---------------------------------------------------------------------------

def test_parse_rfc3339_utc() -> None:
    """A Z-suffixed timestamp parses into an aware UTC datetime."""
    assert parse_rfc3339("2019-05-14T15:03:47Z") == SCAN_TIME


def test_parse_rfc3339_offset_and_fraction() -> None:
    """Offsets are honoured and long fractions are truncated to microseconds."""
    parsed = parse_rfc3339("2019-05-14T17:03:47.123456789+02:00")
    assert parsed == SCAN_TIME + timedelta(microseconds=123456)
    assert parsed.utcoffset() == timedelta(hours=2)


@pytest.mark.parametrize(
    "value",
    ["", "not a date", "2019-05-14", "2019-05-14T15:03:47", "2019-13-14T15:03:47Z"],
)
def test_parse_rfc3339_rejects_invalid(value: str) -> None:
    """Anything that is not a full RFC 3339 date-time raises ValueError."""
    with pytest.raises(ValueError):
        parse_rfc3339(value)


def test_is_zero_time() -> None:
    """Missing and year-one timestamps count as zero."""
    assert is_zero_time(None)
    assert is_zero_time(parse_rfc3339("0001-01-01T00:00:00Z"))
    assert not is_zero_time(SCAN_TIME)


def test_format_rfc3339_uses_z_suffix() -> None:
    """Timestamps are rendered in UTC with a Z suffix."""
    local = SCAN_TIME.astimezone(timezone(timedelta(hours=-5)))
    assert format_rfc3339(local) == "2019-05-14T15:03:47Z"


# ---------------------------------------------------------------------------
# Nexpose payloads
# ---------------------------------------------------------------------------

def test_site_assets_response_decodes_camel_case() -> None:
    """Page metadata and asset fields are read through their Nexpose names."""
    payload = page_payload(
        0, 2, [asset_payload(123, ip="10.0.0.1", hostname="web01", history=[scan_event(1)])]
    )
    response = SiteAssetsResponse.model_validate(payload)

    assert response.page.total_pages == 2
    assert response.page.total_resources == 2
    asset = response.resources[0]
    assert asset.id == 123
    assert asset.hostname == "web01"
    assert asset.history[0].type == "SCAN"
    assert asset.history[0].scan_id == 1


def test_asset_tolerates_nulls_and_unknown_fields() -> None:
    """Null fields decode as empty values and unknown keys are ignored."""
    asset = Asset.model_validate(
        {"id": 7, "ip": None, "hostName": None, "history": None, "os": "Linux"}
    )
    assert asset.ip == ""
    assert asset.hostname == ""
    assert asset.history == []


def test_null_identity_and_event_type_decode_as_zero_values() -> None:
    """A null id or event type decodes as the zero value instead of failing."""
    asset = Asset.model_validate(
        {"id": None, "ip": "10.0.0.9", "history": [{"type": None, "date": "2019-05-14T15:03:47Z"}]}
    )
    assert asset.id == 0
    assert asset.history[0].type == ""


def test_null_page_metadata_decodes_as_zero() -> None:
    response = SiteAssetsResponse.model_validate(
        {"page": {"number": None, "size": None, "totalPages": None, "totalResources": None}}
    )
    assert response.page.total_pages == 0
    assert response.page.total_resources == 0


def test_site_assets_response_requires_page() -> None:
    """A document without page metadata is rejected."""
    with pytest.raises(ValidationError):
        SiteAssetsResponse.model_validate({"resources": []})


def test_scan_info_from_notification_payload() -> None:
    """ScanInfo accepts numeric identifiers and normalises the scan type."""
    info = ScanInfo.model_validate(
        {
            "siteID": 67,
            "scanID": "1",
            "scanType": "Agent",
            "startTime": "2019-05-14T15:00:00Z",
            "endTime": "2019-05-14T16:00:00+01:00",
        }
    )
    assert info.site_id == "67"
    assert info.scan_type is ScanType.AGENT
    assert info.is_agent_scan
    assert info.end_time == datetime(2019, 5, 14, 15, 0, tzinfo=timezone.utc)


def test_scan_info_empty_scan_type_is_remote() -> None:
    """An empty scan type means the default remote lookup."""
    info = ScanInfo.model_validate({"siteID": "1", "scanID": "2", "scanType": ""})
    assert info.scan_type is None
    assert not info.is_agent_scan


def test_scan_info_rejects_unknown_scan_type() -> None:
    with pytest.raises(ValidationError):
        ScanInfo.model_validate({"siteID": "1", "scanID": "2", "scanType": "passive"})


# ---------------------------------------------------------------------------
# AssetEvent
# ---------------------------------------------------------------------------

def test_asset_event_payload() -> None:
    """The payload uses the downstream field names and an RFC 3339 time."""
    event = AssetEvent(
        id=123,
        ip="10.0.0.1",
        hostname="web01",
        scan_time=SCAN_TIME,
        scan_type=AssetScanType.REMOTE,
    )
    assert event.to_payload() == {
        "id": 123,
        "ip": "10.0.0.1",
        "hostname": "web01",
        "scanTime": "2019-05-14T15:03:47Z",
        "scanType": "remote",
    }


def test_asset_event_payload_omits_empty_identity() -> None:
    """An empty hostname is left out of the payload."""
    event = AssetEvent(id=1, ip="10.0.0.1", scan_time=SCAN_TIME)
    payload = event.to_payload()
    assert "hostname" not in payload
    assert payload["scanType"] == "unknown"


@pytest.mark.parametrize(
    "fields",
    [
        {"id": 0, "ip": "10.0.0.1", "scan_time": SCAN_TIME},
        {"id": 1, "ip": "", "hostname": "", "scan_time": SCAN_TIME},
        {"id": 1, "ip": "10.0.0.1", "scan_time": datetime.min},
    ],
)
def test_asset_event_requires_id_identity_and_time(fields: dict) -> None:
    """An AssetEvent cannot exist without an id, an identity and a scan time."""
    with pytest.raises(ValidationError):
        AssetEvent(**fields)


def test_asset_event_is_frozen() -> None:
    event = AssetEvent(id=1, ip="10.0.0.1", scan_time=SCAN_TIME)
    with pytest.raises(ValidationError):
        event.id = 2
