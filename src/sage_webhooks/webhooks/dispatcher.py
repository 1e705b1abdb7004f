"""
Webhook event dispatcher.

Resolves the endpoints subscribed to an event and delivers one shared
payload to all of them concurrently.
"""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from sage_webhooks.webhooks.models import (
    WebhookDeliveryResult,
    WebhookEndpoint,
    WebhookEvent,
    WebhookPayload,
)
from sage_webhooks.webhooks.registry import EndpointRegistry
from sage_webhooks.webhooks.retry import RetryOrchestrator

logger = logging.getLogger(__name__)

DEADLINE_EXCEEDED = "Dispatch deadline exceeded"


@dataclass
class DispatchStats:
    """Running counters across triggers."""

    triggers: int = 0
    deliveries: int = 0
    succeeded: int = 0
    failed: int = 0

    def record(self, results: dict[str, WebhookDeliveryResult]) -> None:
        self.triggers += 1
        self.deliveries += len(results)
        for result in results.values():
            if result.success:
                self.succeeded += 1
            else:
                self.failed += 1

    def to_dict(self) -> dict[str, int]:
        return {
            "triggers": self.triggers,
            "deliveries": self.deliveries,
            "succeeded": self.succeeded,
            "failed": self.failed,
        }


class EventDispatcher:
    """
    Fans a triggered event out to every subscribed endpoint.

    ``trigger`` returns once every endpoint's full retry sequence has
    finished, so its latency is bounded by the slowest endpoint. Pass
    ``deadline_ms`` or use ``trigger_in_background`` when the caller
    cannot wait that long.

    Example:
        dispatcher = EventDispatcher(registry, orchestrator)
        results = await dispatcher.trigger(
            WebhookEvent.PAYMENT_SUCCEEDED, {"amount": 100}
        )
    """

    def __init__(self, registry: EndpointRegistry, orchestrator: RetryOrchestrator):
        self.registry = registry
        self.orchestrator = orchestrator
        self.stats = DispatchStats()
        self._background: set[asyncio.Task] = set()

    async def trigger(
        self,
        event: WebhookEvent | str,
        data: Any,
        deadline_ms: int | None = None,
    ) -> dict[str, WebhookDeliveryResult]:
        """
        Deliver an event to all matching endpoints.

        Args:
            event: Event type (enum member or tag string)
            data: Event body, shared by every delivery
            deadline_ms: Optional bound on the whole call; endpoints still
                in flight when it expires are cancelled and reported failed

        Returns:
            Delivery result per endpoint id. Empty if nothing is subscribed.

        Raises:
            ValueError: If ``event`` is not a known event type
        """
        event = WebhookEvent.parse(event)
        endpoints = self.registry.endpoints_for(event)

        if not endpoints:
            logger.debug(f"No webhook endpoints for event {event.value}")
            return {}

        payload = WebhookPayload.create(event, data)

        logger.info(
            f"Triggering webhook event {event.value} "
            f"(payload={payload.id}, endpoints={len(endpoints)})",
            extra={
                "event": event.value,
                "payload_id": payload.id,
                "endpoint_count": len(endpoints),
            },
        )

        if deadline_ms is None:
            outcomes = await asyncio.gather(
                *(self.orchestrator.deliver_with_retry(e, payload) for e in endpoints)
            )
            results = {e.id: r for e, r in zip(endpoints, outcomes)}
        else:
            results = await self._deliver_with_deadline(endpoints, payload, deadline_ms)

        self.stats.record(results)
        return results

    async def _deliver_with_deadline(
        self,
        endpoints: list[WebhookEndpoint],
        payload: WebhookPayload,
        deadline_ms: int,
    ) -> dict[str, WebhookDeliveryResult]:
        tasks = {
            e.id: asyncio.create_task(self.orchestrator.deliver_with_retry(e, payload))
            for e in endpoints
        }
        _, pending = await asyncio.wait(tasks.values(), timeout=deadline_ms / 1000)

        for task in pending:
            task.cancel()
        if pending:
            await asyncio.gather(*pending, return_exceptions=True)
            logger.warning(
                f"Webhook dispatch for {payload.type.value} hit its {deadline_ms}ms "
                f"deadline with {len(pending)} endpoint(s) unfinished"
            )

        results: dict[str, WebhookDeliveryResult] = {}
        for endpoint_id, task in tasks.items():
            if task in pending:
                results[endpoint_id] = WebhookDeliveryResult(
                    success=False,
                    duration=float(deadline_ms),
                    error=DEADLINE_EXCEEDED,
                    attempts=0,
                )
            else:
                results[endpoint_id] = task.result()
        return results

    def trigger_in_background(self, event: WebhookEvent | str, data: Any) -> asyncio.Task:
        """
        Fire-and-forget variant of ``trigger``.

        Must be called from a running event loop. The returned task can
        be awaited for the results; failures are logged.
        """
        task = asyncio.create_task(self.trigger(event, data))
        self._background.add(task)
        task.add_done_callback(self._on_background_done)
        return task

    def _on_background_done(self, task: asyncio.Task) -> None:
        self._background.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error(f"Background webhook trigger failed: {exc}")
