"""
Concurrent, paginated retrieval of every asset of a Nexpose site.

The first page is fetched inline because it is the only way to learn how
many pages exist; if it fails the whole retrieval fails.  Every remaining
page is then fetched by its own :class:`asyncio.Task`.  A failing page
never cancels its siblings: its error is emitted on the stream's error
channel and the other pages still deliver their assets.  Once every page
task has finished, both channels of the :class:`AssetStream` are closed.

Usage::

    fetcher = NexposeAssetFetcher(requester)

    async with await fetcher.fetch_assets("42") as stream:
        async for asset in stream.assets():
            ...
        async for error in stream.errors():
            ...

    # or, eagerly:
    assets, errors = await fetcher.fetch_all_assets("42")
"""

from __future__ import annotations

import asyncio
import contextlib
from types import TracebackType
from typing import Any, AsyncIterator, Coroutine, Optional

from asset_producer.config import Settings
from asset_producer.core.logging import get_logger
from asset_producer.domain.errors import AssetFetchError, AssetProducerError
from asset_producer.domain.models import Asset, Page, SiteAssetsResponse
from asset_producer.fetcher.requester import NexposePageRequester

logger = get_logger(__name__)

_CLOSED: Any = object()


class AssetStream:
    """Two independently terminating channels of fetched assets and errors.

    Both channels are unbounded, so a consumer may drain them in any order
    (or concurrently).  Each iterator ends once every page task has
    finished.  There is no ordering between pages; assets of one page are
    emitted in the order Nexpose returned them.

    Attributes:
        site_id:         Site the assets belong to.
        total_pages:     Page count reported by the first page.
        total_resources: Asset count reported by the first page.
    """

    def __init__(self, site_id: str, page: Page) -> None:
        self.site_id = site_id
        self.total_pages = page.total_pages
        self.total_resources = page.total_resources
        self._assets: asyncio.Queue[Any] = asyncio.Queue()
        self._errors: asyncio.Queue[Any] = asyncio.Queue()
        self._supervisor: Optional[asyncio.Task[None]] = None
        self._cancelled = False
        self._closed = False

    # -- producer side ------------------------------------------------------

    def start(self, fan_out: Coroutine[Any, Any, None]) -> None:
        self._supervisor = asyncio.create_task(
            fan_out, name=f"fetch-assets-site-{self.site_id}"
        )
        # A task cancelled before its first step never runs its finally block.
        self._supervisor.add_done_callback(lambda _: self.close())

    def emit_page(self, response: SiteAssetsResponse) -> None:
        for asset in response.resources:
            self._assets.put_nowait(asset)

    def emit_error(self, error: AssetFetchError) -> None:
        self._errors.put_nowait(error)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._assets.put_nowait(_CLOSED)
        self._errors.put_nowait(_CLOSED)

    # -- consumer side ------------------------------------------------------

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def closed(self) -> bool:
        return self._closed

    async def assets(self) -> AsyncIterator[Asset]:
        """Yield fetched assets until every page task has finished."""
        async for item in self._drain(self._assets):
            yield item

    async def errors(self) -> AsyncIterator[AssetFetchError]:
        """Yield one :class:`AssetFetchError` per failed page."""
        async for item in self._drain(self._errors):
            yield item

    @staticmethod
    async def _drain(queue: asyncio.Queue[Any]) -> AsyncIterator[Any]:
        while True:
            item = await queue.get()
            if item is _CLOSED:
                # Leave the marker in place for later iterations.
                queue.put_nowait(_CLOSED)
                return
            yield item

    def cancel(self) -> None:
        """Stop scheduling pages and abort the in-flight page requests."""
        self._cancelled = True
        if self._supervisor is not None and not self._supervisor.done():
            self._supervisor.cancel()

    async def wait_closed(self) -> None:
        """Wait for the page tasks to finish without cancelling them."""
        if self._supervisor is None:
            return
        await asyncio.wait({self._supervisor})
        if not self._supervisor.cancelled() and self._supervisor.exception() is not None:
            raise self._supervisor.exception()  # type: ignore[misc]

    async def __aenter__(self) -> "AssetStream":
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc: Optional[BaseException],
        tb: Optional[TracebackType],
    ) -> None:
        if not self._closed:
            self.cancel()
        await self.wait_closed()


class NexposeAssetFetcher:
    """Fetches all assets of a site by fanning out one task per page.

    Attributes:
        page_size:            Number of assets requested per page.
        max_concurrent_pages: Optional bound on concurrently running page
                              requests; ``None`` runs every page at once.
    """

    def __init__(
        self,
        requester: NexposePageRequester,
        page_size: Optional[int] = None,
        max_concurrent_pages: Optional[int] = None,
    ) -> None:
        self._requester = requester
        self.page_size = page_size if page_size is not None else requester.page_size
        self.max_concurrent_pages = max_concurrent_pages

    @classmethod
    def from_settings(cls, client: Any, settings: Settings) -> "NexposeAssetFetcher":
        """Build a fetcher (and its page requester) from application settings."""
        requester = NexposePageRequester(
            client,
            host=settings.NEXPOSE_HOST,
            page_size=settings.NEXPOSE_PAGE_SIZE,
            endpoint=settings.NEXPOSE_ASSET_ENDPOINT,
            lookback_days=settings.NEXPOSE_SEARCH_LOOKBACK_DAYS,
        )
        return cls(
            requester,
            page_size=settings.NEXPOSE_PAGE_SIZE,
            max_concurrent_pages=settings.NEXPOSE_MAX_CONCURRENT_PAGES,
        )

    # -- Public API ---------------------------------------------------------

    async def fetch_assets(self, site_id: str) -> AssetStream:
        """Start retrieving every asset of *site_id*.

        Page 0 is fetched before this coroutine returns; the remaining pages
        are fetched in the background and delivered through the returned
        stream.

        Raises:
            AssetFetchError: If page 0 cannot be retrieved (``page == 0``).
        """
        try:
            first_page = await self._requester.fetch_page(site_id, 0, self.page_size)
        except AssetProducerError as exc:
            raise AssetFetchError(site_id=site_id, page=0, inner=exc) from exc

        stream = AssetStream(site_id, first_page.page)
        stream.emit_page(first_page)
        logger.info(
            "Fetched page 0 of %d (%d assets in site)",
            first_page.page.total_pages,
            first_page.page.total_resources,
            extra={"action": "fetch_first_page", "site": site_id},
        )
        stream.start(self._fan_out(stream))
        return stream

    async def fetch_all_assets(
        self, site_id: str
    ) -> tuple[list[Asset], list[AssetFetchError]]:
        """Retrieve every asset of *site_id* and return them with page errors.

        Raises:
            AssetFetchError: If page 0 cannot be retrieved.
        """
        stream = await self.fetch_assets(site_id)
        async with stream:
            assets = [asset async for asset in stream.assets()]
            errors = [error async for error in stream.errors()]
        return assets, errors

    async def check_dependencies(self) -> None:
        """Verify that Nexpose is reachable with the configured client."""
        await self._requester.check_api()

    # -- Internal helpers ---------------------------------------------------

    async def _fan_out(self, stream: AssetStream) -> None:
        """Run one task per remaining page and close the stream afterwards.

        The join collects every outcome; a failed page is reported on the
        stream and never aborts the others.
        """
        site_id = stream.site_id
        slots: Optional[asyncio.Semaphore] = (
            asyncio.Semaphore(self.max_concurrent_pages)
            if self.max_concurrent_pages
            else None
        )
        tasks: dict[int, asyncio.Task[None]] = {}
        try:
            for page in range(1, stream.total_pages):
                if stream.cancelled:
                    logger.info(
                        "Retrieval cancelled, %d of %d pages not scheduled",
                        stream.total_pages - page,
                        stream.total_pages,
                        extra={"action": "fetch_cancelled", "site": site_id},
                    )
                    break
                tasks[page] = asyncio.create_task(
                    self._fetch_page_into(stream, page, slots),
                    name=f"fetch-assets-site-{site_id}-page-{page}",
                )

            results = await asyncio.gather(*tasks.values(), return_exceptions=True)
            for page, result in zip(tasks, results):
                if isinstance(result, Exception):
                    stream.emit_error(AssetFetchError(site_id=site_id, page=page, inner=result))
        except asyncio.CancelledError:
            for task in tasks.values():
                task.cancel()
            await asyncio.gather(*tasks.values(), return_exceptions=True)
            raise
        finally:
            stream.close()

    async def _fetch_page_into(
        self,
        stream: AssetStream,
        page: int,
        slots: Optional[asyncio.Semaphore],
    ) -> None:
        async with slots if slots is not None else contextlib.nullcontext():
            if stream.cancelled:
                return
            try:
                response = await self._requester.fetch_page(stream.site_id, page, self.page_size)
            except AssetProducerError as exc:
                stream.emit_error(AssetFetchError(site_id=stream.site_id, page=page, inner=exc))
                return
        stream.emit_page(response)
