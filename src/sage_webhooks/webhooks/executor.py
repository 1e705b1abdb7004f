"""
Webhook delivery executor.

Performs one bounded-time delivery attempt to one endpoint and reports
the outcome to the registry's health policy.
"""

import asyncio
import logging
import time

import httpx

from sage_webhooks.core.config import DEFAULT_USER_AGENT
from sage_webhooks.webhooks.models import (
    WebhookDeliveryResult,
    WebhookEndpoint,
    WebhookPayload,
)
from sage_webhooks.webhooks.registry import EndpointRegistry
from sage_webhooks.webhooks.signing import sign

logger = logging.getLogger(__name__)

HEADER_ID = "X-Webhook-Id"
HEADER_SIGNATURE = "X-Webhook-Signature"
HEADER_TIMESTAMP = "X-Webhook-Timestamp"


class DeliveryExecutor:
    """
    Single-attempt webhook sender.

    The whole request (connect, send, receive) is bounded by
    ``timeout_ms``; on expiry the request is cancelled, which releases
    its connection back to the client. A client whose own httpx timeout
    fires first reports the same timeout error.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        registry: EndpointRegistry,
        timeout_ms: int = 30000,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self._client = client
        self._registry = registry
        self.timeout_ms = timeout_ms
        self.user_agent = user_agent

    def build_headers(self, payload: WebhookPayload, signature: str) -> dict[str, str]:
        return {
            "Content-Type": "application/json",
            HEADER_ID: payload.id,
            HEADER_SIGNATURE: signature,
            HEADER_TIMESTAMP: payload.timestamp,
            "User-Agent": self.user_agent,
        }

    async def attempt(
        self,
        endpoint: WebhookEndpoint,
        payload: WebhookPayload,
    ) -> WebhookDeliveryResult:
        """
        Deliver ``payload`` to ``endpoint`` once.

        Never raises: transport errors, timeouts and non-2xx responses
        all come back as a failed result.
        """
        body = payload.to_bytes()
        headers = self.build_headers(payload, sign(body, endpoint.secret))

        start_time = time.monotonic()
        try:
            response = await asyncio.wait_for(
                self._client.post(endpoint.url, content=body, headers=headers),
                timeout=self.timeout_ms / 1000,
            )
        except (asyncio.TimeoutError, httpx.TimeoutException):
            result = WebhookDeliveryResult(
                success=False,
                duration=_elapsed_ms(start_time),
                error=f"Request timed out after {self.timeout_ms}ms",
            )
        except httpx.HTTPError as e:
            result = WebhookDeliveryResult(
                success=False,
                duration=_elapsed_ms(start_time),
                error=str(e) or type(e).__name__,
            )
        except Exception as e:
            logger.error(f"Webhook delivery error for {endpoint.url}: {e}")
            result = WebhookDeliveryResult(
                success=False,
                duration=_elapsed_ms(start_time),
                error=str(e) or type(e).__name__,
            )
        else:
            duration = _elapsed_ms(start_time)
            if 200 <= response.status_code < 300:
                result = WebhookDeliveryResult(
                    success=True,
                    duration=duration,
                    status_code=response.status_code,
                )
            else:
                result = WebhookDeliveryResult(
                    success=False,
                    duration=duration,
                    status_code=response.status_code,
                    error=f"HTTP {response.status_code}: {response.reason_phrase}",
                )

        if result.success:
            self._registry.record_success(endpoint.id)
            logger.debug(
                f"Webhook delivered to {endpoint.url} "
                f"(status={result.status_code}, time={result.duration:.0f}ms)"
            )
        else:
            self._registry.record_failure(endpoint.id)
            logger.debug(f"Webhook attempt to {endpoint.url} failed: {result.error}")

        return result


def _elapsed_ms(start_time: float) -> float:
    return (time.monotonic() - start_time) * 1000
