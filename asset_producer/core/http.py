"""
HTTP client construction for the Nexpose API and the downstream producer.

Retries live here and nowhere else: the page requester and the producer
issue each request exactly once and rely on :class:`RetryTransport` to
retry transient Nexpose failures (selected 5xx responses and timeouts)
with a fixed, jittered backoff.
"""

from __future__ import annotations

import asyncio
import random
from typing import Awaitable, Callable, Iterable, Optional

import httpx

from asset_producer.config import Settings
from asset_producer.core.logging import get_logger

logger = get_logger(__name__)

# ── Constants ────────────────────────────────────────────────────────────────

_MAX_CONNECTIONS: int = 100
_DEFAULT_RETRY_STATUS_CODES: tuple[int, ...] = (500, 502, 504)


class RetryTransport(httpx.AsyncBaseTransport):
    """Async transport decorator that retries transient failures.

    A request is re-sent when the wrapped transport raises
    :class:`httpx.TimeoutException` or answers with one of
    ``retry_status_codes``, up to ``max_attempts`` additional times.  Between
    attempts it sleeps ``backoff`` seconds, jittered by +/- ``jitter``
    percent.  Any other exception propagates immediately.

    Attributes:
        max_attempts:       Number of retries after the first attempt.
        backoff:            Base delay between attempts, in seconds.
        jitter:             Fraction of ``backoff`` applied as random jitter.
        retry_status_codes: Response codes that trigger a retry.
    """

    def __init__(
        self,
        transport: httpx.AsyncBaseTransport,
        max_attempts: int = 3,
        backoff: float = 0.05,
        jitter: float = 0.25,
        retry_status_codes: Iterable[int] = _DEFAULT_RETRY_STATUS_CODES,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._transport = transport
        self.max_attempts = max(max_attempts, 0)
        self.backoff = max(backoff, 0.0)
        self.jitter = max(jitter, 0.0)
        self.retry_status_codes = frozenset(retry_status_codes)
        self._sleep = sleep

    def backoff_delay(self) -> float:
        """Return the delay before the next attempt, jitter included."""
        spread = self.backoff * self.jitter
        return max(self.backoff + random.uniform(-spread, spread), 0.0)

    async def handle_async_request(self, request: httpx.Request) -> httpx.Response:
        attempt = 0
        while True:
            try:
                response = await self._transport.handle_async_request(request)
            except httpx.TimeoutException as exc:
                if attempt >= self.max_attempts:
                    raise
                reason = f"timeout: {exc}"
            else:
                if (
                    response.status_code not in self.retry_status_codes
                    or attempt >= self.max_attempts
                ):
                    return response
                reason = f"status {response.status_code}"
                await response.aclose()

            attempt += 1
            logger.debug(
                "Retrying %s %s (attempt %d of %d) after %s",
                request.method,
                request.url,
                attempt,
                self.max_attempts,
                reason,
                extra={"action": "http_retry"},
            )
            await self._sleep(self.backoff_delay())

    async def aclose(self) -> None:
        await self._transport.aclose()


def build_nexpose_client(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Build the authenticated, retrying client used to talk to Nexpose.

    Args:
        settings:  Application settings (credentials, timeout, retry policy).
        transport: Underlying transport; defaults to a pooled
                   :class:`httpx.AsyncHTTPTransport`.  Tests pass an
                   :class:`httpx.MockTransport` here.

    Returns:
        An :class:`httpx.AsyncClient`; the caller owns and must close it.
    """
    base_transport = transport or httpx.AsyncHTTPTransport(
        limits=httpx.Limits(max_connections=_MAX_CONNECTIONS),
    )
    retrying = RetryTransport(
        base_transport,
        max_attempts=settings.NEXPOSE_RETRY_MAX_ATTEMPTS,
        backoff=settings.NEXPOSE_RETRY_BACKOFF_MS / 1000.0,
        jitter=settings.NEXPOSE_RETRY_JITTER,
        retry_status_codes=settings.NEXPOSE_RETRY_STATUS_CODES,
    )
    return httpx.AsyncClient(
        transport=retrying,
        auth=httpx.BasicAuth(settings.NEXPOSE_USERNAME, settings.NEXPOSE_PASSWORD),
        timeout=httpx.Timeout(settings.NEXPOSE_REQUEST_TIMEOUT_MS / 1000.0),
        headers={"Accept": "application/json"},
    )


def build_producer_client(
    settings: Settings,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> httpx.AsyncClient:
    """Build the client used to deliver asset events downstream."""
    return httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(settings.HTTP_PRODUCER_TIMEOUT_MS / 1000.0),
    )
