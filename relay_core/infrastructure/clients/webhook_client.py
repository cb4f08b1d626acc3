"""HTTP implementation of WebhookClient."""

import time
from typing import Mapping

import httpx
import structlog

from relay_core.core.config import settings
from relay_core.core.metrics import track_webhook_latency
from relay_core.domain.entities import DeliveryResult
from relay_core.domain.interfaces import WebhookClient

logger = structlog.get_logger(__name__)

# Bytes of the receiver's response body kept for diagnostics
RESPONSE_EXCERPT_LENGTH = 200


class HttpWebhookClient(WebhookClient):
    """
    HTTP client for tenant webhook endpoints.

    Makes exactly one POST per call. Retrying is the dispatcher's job, so
    transport errors and timeouts come back as a failed DeliveryResult.
    """

    def __init__(
        self,
        timeout: float | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self._timeout = timeout or settings.webhook_request_timeout
        self._transport = transport

    async def post(
        self,
        url: str,
        body: bytes,
        headers: Mapping[str, str],
    ) -> DeliveryResult:
        start = time.perf_counter()

        try:
            with track_webhook_latency():
                async with httpx.AsyncClient(
                    timeout=self._timeout,
                    transport=self._transport,
                ) as client:
                    response = await client.post(url, content=body, headers=dict(headers))

        except httpx.TimeoutException:
            logger.warning("webhook_timeout", url=url)
            return DeliveryResult(
                status_code=None,
                duration_ms=self._elapsed_ms(start),
                error=f"Request timed out after {self._timeout}s",
            )
        except httpx.HTTPError as e:
            logger.warning("webhook_transport_error", url=url, error=str(e))
            return DeliveryResult(
                status_code=None,
                duration_ms=self._elapsed_ms(start),
                error=str(e) or e.__class__.__name__,
            )

        result = DeliveryResult(
            status_code=response.status_code,
            duration_ms=self._elapsed_ms(start),
        )

        if not result.success:
            logger.warning(
                "webhook_rejected",
                url=url,
                status_code=response.status_code,
                response=response.text[:RESPONSE_EXCERPT_LENGTH],
            )

        return result

    @staticmethod
    def _elapsed_ms(start: float) -> int:
        return int((time.perf_counter() - start) * 1000)
