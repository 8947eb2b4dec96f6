"""
Heartbeat Client

Fire-and-forget liveness reports to the service status aggregator.
Delivery failures are logged at debug level and never raised.
"""

import logging
from typing import Optional

import httpx

logger = logging.getLogger(__name__)

SERVICE_NAME = "sim"


class HeartbeatClient:
    """POSTs {service, message} to the heartbeat sink"""

    def __init__(
        self,
        url: Optional[str],
        timeout_seconds: float = 2.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url
        self.timeout_seconds = timeout_seconds
        self._transport = transport
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def enabled(self) -> bool:
        return bool(self.url)

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=self.timeout_seconds, transport=self._transport)
        return self._client

    async def send(self, message: str) -> bool:
        """
        Report status to the sink.

        Returns:
            True if the sink accepted the heartbeat, False otherwise
        """
        if not self.enabled:
            return False

        try:
            response = await self._get_client().post(
                self.url, json={"service": SERVICE_NAME, "message": message}
            )
            response.raise_for_status()
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            logger.debug(f"Heartbeat '{message}' not delivered: {e}")
            return False

        return True

    async def close(self):
        if self._client is not None:
            await self._client.aclose()
            self._client = None
