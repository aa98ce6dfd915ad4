"""
Single-page retrieval of a site's assets from the Nexpose API.

Two endpoints can serve a page of assets:

* ``site``   -- ``GET /api/3/sites/{id}/assets`` returns every asset of the
  site (https://help.rapid7.com/insightvm/en-us/api/index.html#operation/getSiteAssets).
* ``search`` -- ``POST /api/3/assets/search`` with a filter on the site and
  a recent ``last-scan-date``, which keeps large sites small
  (https://help.rapid7.com/insightvm/en-us/api/index.html#operation/findAssets).

Both take the zero-based ``page`` index and the ``size`` of a page as query
parameters.  The requester issues exactly one HTTP call per page; retries
are the business of the client's transport.
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Callable, Optional
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from asset_producer.config import ASSET_ENDPOINT_SEARCH, ASSET_ENDPOINT_SITE
from asset_producer.core.logging import get_logger
from asset_producer.domain.errors import (
    NonSuccessStatusError,
    ResponseParseError,
    ResponseReadError,
    TransportError,
    UrlConstructionError,
)
from asset_producer.domain.models import SiteAssetsResponse

logger = get_logger(__name__)

# ── Constants ────────────────────────────────────────────────────────────────

BASE_PATH: str = "/api/3"
SITES_PATH: str = "/sites"
ASSETS_PATH: str = "/assets"
SEARCH_PATH: str = "/search"

PAGE_QUERY_PARAM: str = "page"  # The index of the page (zero-based) to retrieve.
SIZE_QUERY_PARAM: str = "size"  # The number of records per page to retrieve.

MATCH_ALL: str = "all"
SCAN_DATE_FIELD: str = "last-scan-date"
SITE_ID_FIELD: str = "site-id"
IS_ON_OR_AFTER_OPERATOR: str = "is-on-or-after"
IN_OPERATOR: str = "in"

_SUPPORTED_SCHEMES: frozenset[str] = frozenset({"http", "https"})


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class NexposePageRequester:
    """Builds, sends and decodes the request for one page of site assets.

    Attributes:
        host:          Scheme and host (optionally a path prefix) of Nexpose.
        page_size:     Default number of assets per page.
        endpoint:      ``"site"`` or ``"search"``.
        lookback_days: Age limit of ``last-scan-date`` for ``search``.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        host: str,
        page_size: int,
        endpoint: str = ASSET_ENDPOINT_SITE,
        lookback_days: int = 1,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._client = client
        self.host = host
        self.page_size = page_size
        self.endpoint = endpoint
        self.lookback_days = lookback_days
        self._clock = clock

    # -- URL and request construction ---------------------------------------

    def _base_url(self, site_id: str) -> str:
        try:
            base = httpx.URL(self.host)
        except (httpx.InvalidURL, TypeError, ValueError) as exc:
            raise UrlConstructionError(url=str(self.host), site_id=site_id, inner=exc) from exc
        if base.scheme not in _SUPPORTED_SCHEMES or not base.host:
            raise UrlConstructionError(
                url=str(self.host),
                site_id=site_id,
                inner=ValueError("host must be an absolute http(s) URL"),
            )
        return str(base).rstrip("/")

    def assets_url(self, site_id: str) -> str:
        """Return the URL (without pagination parameters) for *site_id*."""
        base = self._base_url(site_id)
        if self.endpoint == ASSET_ENDPOINT_SEARCH:
            return f"{base}{BASE_PATH}{ASSETS_PATH}{SEARCH_PATH}"
        if not site_id or not site_id.strip():
            raise UrlConstructionError(
                url=f"{base}{BASE_PATH}{SITES_PATH}/",
                site_id=site_id,
                inner=ValueError("site id is empty"),
            )
        return f"{base}{BASE_PATH}{SITES_PATH}/{quote(site_id, safe='')}{ASSETS_PATH}"

    def search_body(self, site_id: str) -> dict[str, Any]:
        """Return the asset search filter for *site_id*.

        Only assets whose last scan is on or after ``lookback_days`` ago are
        returned, which trims long-lived sites down to the recently scanned
        hosts.
        """
        since = (self._clock() - timedelta(days=self.lookback_days)).strftime("%Y-%m-%d")
        return {
            "filters": [
                {
                    "field": SCAN_DATE_FIELD,
                    "operator": IS_ON_OR_AFTER_OPERATOR,
                    "value": since,
                },
                {
                    "field": SITE_ID_FIELD,
                    "operator": IN_OPERATOR,
                    "values": [site_id],
                },
            ],
            "match": MATCH_ALL,
        }

    def build_request(
        self, site_id: str, page: int, size: Optional[int] = None
    ) -> httpx.Request:
        """Build the HTTP request for one page of *site_id*'s assets.

        Raises:
            UrlConstructionError: If the host or site produce an invalid URL.
        """
        url = self.assets_url(site_id)
        params = {
            PAGE_QUERY_PARAM: str(page),
            SIZE_QUERY_PARAM: str(size if size is not None else self.page_size),
        }
        try:
            if self.endpoint == ASSET_ENDPOINT_SEARCH:
                return self._client.build_request(
                    "POST", url, params=params, json=self.search_body(site_id)
                )
            return self._client.build_request("GET", url, params=params)
        except (httpx.InvalidURL, ValueError) as exc:
            raise UrlConstructionError(url=url, site_id=site_id, inner=exc) from exc

    # -- Execution ----------------------------------------------------------

    async def fetch_page(
        self, site_id: str, page: int, size: Optional[int] = None
    ) -> SiteAssetsResponse:
        """Retrieve and decode one page of assets.

        Args:
            site_id: Nexpose site identifier.
            page:    Zero-based page index.
            size:    Page size; defaults to :attr:`page_size`.

        Returns:
            The decoded page envelope with its assets.

        Raises:
            UrlConstructionError:  The request URL could not be built.
            TransportError:        The HTTP call failed (network, timeout).
            NonSuccessStatusError: Nexpose answered with a non-2xx status.
            ResponseReadError:     The response body could not be read.
            ResponseParseError:    The body was not the expected JSON.
        """
        request = self.build_request(site_id, page, size)
        url = str(request.url)
        logger.debug(
            "Requesting assets page %d: %s %s",
            page,
            request.method,
            url,
            extra={"action": "fetch_page", "site": site_id},
        )

        try:
            response = await self._client.send(request, stream=True)
        except httpx.TransportError as exc:
            raise TransportError(url=url, inner=exc) from exc

        try:
            if not response.is_success:
                raise NonSuccessStatusError(url=url, status_code=response.status_code)
            try:
                body = await response.aread()
            except (httpx.HTTPError, httpx.StreamError) as exc:
                raise ResponseReadError(url=url, inner=exc) from exc
        finally:
            await response.aclose()

        try:
            return SiteAssetsResponse.model_validate_json(body)
        except ValidationError as exc:
            raise ResponseParseError(url=url, inner=exc) from exc

    async def check_api(self) -> None:
        """Call ``GET /api/3``, an endpoint every Nexpose user can reach.

        Raises:
            TransportError:        The HTTP call failed.
            NonSuccessStatusError: Nexpose answered with anything but 200.
        """
        url = f"{self._base_url('')}{BASE_PATH}"
        try:
            response = await self._client.get(url)
        except httpx.TransportError as exc:
            raise TransportError(url=url, inner=exc) from exc
        if response.status_code != httpx.codes.OK:
            raise NonSuccessStatusError(url=url, status_code=response.status_code)
