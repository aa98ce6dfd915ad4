"""
Builders for Nexpose payloads and a Nexpose stub for httpx.MockTransport.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional, Union

import httpx

NEXPOSE_HOST: str = "https://nexpose.test"
PRODUCER_ENDPOINT: str = "http://producer.test/events"


# ---------------------------------------------------------------------------
# Payload builders
# ---------------------------------------------------------------------------

def scan_event(scan_id: int, date: Optional[str] = "2019-05-14T15:03:47Z") -> dict[str, Any]:
    return {"type": "SCAN", "scanId": scan_id, "date": date}


def agent_import_event(date: Optional[str]) -> dict[str, Any]:
    return {"type": "AGENT-IMPORT", "date": date}


def asset_payload(
    asset_id: int,
    ip: str = "",
    hostname: str = "",
    history: Optional[list[dict[str, Any]]] = None,
) -> dict[str, Any]:
    return {
        "id": asset_id,
        "ip": ip,
        "hostName": hostname,
        "history": history or [],
    }


def page_payload(
    number: int,
    total_pages: int,
    resources: list[dict[str, Any]],
    size: int = 1,
    total_resources: Optional[int] = None,
) -> dict[str, Any]:
    return {
        "page": {
            "number": number,
            "size": size,
            "totalPages": total_pages,
            "totalResources": (
                total_resources if total_resources is not None else total_pages * size
            ),
        },
        "resources": resources,
        "links": [{"href": f"{NEXPOSE_HOST}/api/3/sites/1/assets", "rel": "self"}],
    }


# ---------------------------------------------------------------------------
# Nexpose stub
# ---------------------------------------------------------------------------

PageOutcome = Union[dict[str, Any], int, str, Exception]


class NexposeStub:
    """Serves canned pages of assets keyed by the ``page`` query parameter.

    A page outcome is either a JSON payload, a bare status code, a raw text
    body, or an exception raised by the transport.  Missing pages answer 404.
    """

    def __init__(
        self,
        pages: Optional[dict[int, PageOutcome]] = None,
        delay: float = 0.0,
        api_status: int = 200,
    ) -> None:
        self.pages: dict[int, PageOutcome] = pages or {}
        self.delay = delay
        self.api_status = api_status
        self.requests: list[httpx.Request] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        if request.url.path == "/api/3":
            return httpx.Response(self.api_status, json={"links": []})

        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            page = int(request.url.params.get("page", "0"))
            outcome = self.pages.get(page, 404)
        finally:
            self.in_flight -= 1

        if isinstance(outcome, Exception):
            raise outcome
        if isinstance(outcome, int):
            return httpx.Response(outcome)
        if isinstance(outcome, str):
            return httpx.Response(200, text=outcome)
        return httpx.Response(200, json=outcome)

    @property
    def requested_pages(self) -> list[int]:
        return [
            int(request.url.params["page"])
            for request in self.requests
            if "page" in request.url.params
        ]
