"""
Webhook retry orchestration.

Wraps the executor with bounded retries and exponential backoff for one
endpoint within one trigger.
"""

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Awaitable, Callable

from sage_webhooks.core.config import WebhookConfig
from sage_webhooks.webhooks.executor import DeliveryExecutor
from sage_webhooks.webhooks.models import (
    WebhookDeliveryResult,
    WebhookEndpoint,
    WebhookPayload,
)

logger = logging.getLogger(__name__)

# 4xx statuses that may succeed later
RETRYABLE_CLIENT_ERRORS = frozenset({408, 429})


@dataclass(slots=True)
class RetryPolicy:
    """Retry configuration.

    Attributes:
        retry_attempts: Retries after the initial attempt (N+1 attempts total)
        retry_delay_ms: Base delay; attempt k waits retry_delay_ms * 2**(k-1)
        jitter: Randomize each delay by +/- this fraction (0 disables)
        retry_client_errors: Retry 4xx responses other than 408/429
    """

    retry_attempts: int = 3
    retry_delay_ms: int = 1000
    jitter: float = 0.0
    retry_client_errors: bool = True

    @classmethod
    def from_config(cls, config: WebhookConfig) -> "RetryPolicy":
        return cls(
            retry_attempts=config.retry_attempts,
            retry_delay_ms=config.retry_delay_ms,
            jitter=config.retry_jitter,
            retry_client_errors=config.retry_client_errors,
        )

    def delay_ms(self, attempt: int) -> float:
        """Backoff before ``attempt`` (0-based). No delay before the first."""
        if attempt <= 0:
            return 0.0
        delay = self.retry_delay_ms * 2 ** (attempt - 1)
        if self.jitter:
            delay *= random.uniform(1 - self.jitter, 1 + self.jitter)
        return delay

    def is_terminal(self, result: WebhookDeliveryResult) -> bool:
        """Whether a failed result should end the retry sequence early."""
        if self.retry_client_errors or result.status_code is None:
            return False
        return (
            400 <= result.status_code < 500
            and result.status_code not in RETRYABLE_CLIENT_ERRORS
        )


class RetryOrchestrator:
    """
    Bounded retry around single delivery attempts.

    Attempts within one sequence are strictly sequential. The sequence
    always runs every attempt, even if the endpoint gets
    auto-disabled part way through.
    """

    def __init__(
        self,
        executor: DeliveryExecutor,
        policy: RetryPolicy | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ):
        self.executor = executor
        self.policy = policy or RetryPolicy()
        self._sleep = sleep

    async def deliver_with_retry(
        self,
        endpoint: WebhookEndpoint,
        payload: WebhookPayload,
    ) -> WebhookDeliveryResult:
        """
        Deliver with retries. Never raises.

        Returns:
            The first successful result, or the last attempt's result
            when every attempt fails
        """
        total_attempts = self.policy.retry_attempts + 1
        result = WebhookDeliveryResult(
            success=False, duration=0.0, error="No delivery attempted", attempts=0
        )

        for attempt in range(total_attempts):
            delay = self.policy.delay_ms(attempt)
            if delay > 0:
                await self._sleep(delay / 1000)

            result = await self.executor.attempt(endpoint, payload)
            result.attempts = attempt + 1

            if result.success:
                return result

            if self.policy.is_terminal(result):
                logger.warning(
                    f"Webhook delivery to {endpoint.id} rejected with "
                    f"{result.status_code}, not retrying",
                    extra={"endpoint_id": endpoint.id, "status_code": result.status_code},
                )
                break

            if attempt < total_attempts - 1:
                logger.warning(
                    f"Webhook delivery failed, retrying "
                    f"(endpoint={endpoint.id}, attempt={attempt + 1}): {result.error}",
                    extra={
                        "endpoint_id": endpoint.id,
                        "attempt": attempt + 1,
                        "error": result.error,
                    },
                )

        logger.error(
            f"Webhook delivery failed after retries "
            f"(endpoint={endpoint.id}, url={endpoint.url}): {result.error}",
            extra={
                "endpoint_id": endpoint.id,
                "url": endpoint.url,
                "error": result.error,
            },
        )
        return result
