"""
HTTP producer that forwards validated asset events to the event stream.

Each event is delivered with a single ``POST`` of its JSON payload::

    {"id": 123, "ip": "10.0.0.1", "hostname": "web01",
     "scanTime": "2019-05-14T15:03:47Z", "scanType": "remote"}

Any 2xx answer counts as delivered.  Delivery is never retried here.
"""

from __future__ import annotations

import httpx

from asset_producer.config import Settings
from asset_producer.core.logging import get_logger
from asset_producer.domain.errors import ProducerDeliveryError
from asset_producer.domain.models import AssetEvent

logger = get_logger(__name__)

_MAX_ERROR_BODY_CHARS: int = 512


class HTTPAssetProducer:
    """Delivers asset events to a streaming appliance over HTTP.

    Attributes:
        endpoint: URL the events are posted to.
    """

    def __init__(self, client: httpx.AsyncClient, endpoint: str) -> None:
        self._client = client
        self.endpoint = endpoint

    @classmethod
    def from_settings(cls, client: httpx.AsyncClient, settings: Settings) -> "HTTPAssetProducer":
        return cls(client, settings.HTTP_PRODUCER_ENDPOINT)

    async def produce(self, event: AssetEvent) -> None:
        """Deliver *event* downstream.

        Raises:
            ProducerDeliveryError: The request failed or was not answered
                with a 2xx status.
        """
        try:
            response = await self._client.post(
                self.endpoint,
                json=event.to_payload(),
                headers={"Content-Type": "application/json"},
            )
        except httpx.HTTPError as exc:
            raise ProducerDeliveryError(
                asset_id=event.id, endpoint=self.endpoint, inner=exc
            ) from exc

        if not response.is_success:
            raise ProducerDeliveryError(
                asset_id=event.id,
                endpoint=self.endpoint,
                status_code=response.status_code,
                body=response.text[:_MAX_ERROR_BODY_CHARS],
            )

        logger.debug(
            "Produced asset event",
            extra={"action": "asset_produced", "asset": event.id},
        )
