"""
Webhook Service - Programmatic API for webhook management and delivery.

Provides:
- Endpoint management (register, update, delete, get, list)
- Event triggering with per-endpoint results
- HTTP client lifecycle
"""

import logging
import threading
from typing import Any

import httpx

from sage_webhooks.core.config import WebhookConfig, get_config
from sage_webhooks.webhooks.dispatcher import EventDispatcher
from sage_webhooks.webhooks.executor import DeliveryExecutor
from sage_webhooks.webhooks.models import (
    WebhookDeliveryResult,
    WebhookEndpoint,
    WebhookEvent,
)
from sage_webhooks.webhooks.registry import EndpointRegistry
from sage_webhooks.webhooks.retry import RetryOrchestrator, RetryPolicy
from sage_webhooks.webhooks.storage import InMemoryEndpointStore, JsonFileEndpointStore

logger = logging.getLogger(__name__)


class WebhookService:
    """
    Webhook management and delivery service.

    Wires the registry, executor, retry orchestrator and dispatcher
    together and owns the shared HTTP client.

    Example:
        async with WebhookService(config) as service:
            endpoint = service.register_webhook(
                url="https://api.example.com/webhook",
                events=["payment.succeeded"],
            )
            results = await service.trigger(
                WebhookEvent.PAYMENT_SUCCEEDED, {"amount": 100}
            )
    """

    def __init__(
        self,
        config: WebhookConfig | None = None,
        registry: EndpointRegistry | None = None,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize webhook service.

        Args:
            config: Delivery configuration (global config if omitted)
            registry: Endpoint registry; built from config.storage_path if omitted
            client: HTTP client to use; the service creates and owns one if omitted
        """
        self.config = (config or get_config()).validate()

        if registry is None:
            store = (
                JsonFileEndpointStore(self.config.storage_path)
                if self.config.storage_path
                else InMemoryEndpointStore()
            )
            registry = EndpointRegistry(store, default_secret=self.config.signing_secret)
        self.registry = registry

        self._client = client
        self._owns_client = client is None
        self._dispatcher: EventDispatcher | None = None
        self._started = False

    async def start(self) -> None:
        """Start the webhook service."""
        if self._started:
            return

        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=httpx.Timeout(self.config.timeout_ms / 1000),
                follow_redirects=False,
            )

        executor = DeliveryExecutor(
            client=self._client,
            registry=self.registry,
            timeout_ms=self.config.timeout_ms,
            user_agent=self.config.user_agent,
        )
        orchestrator = RetryOrchestrator(executor, RetryPolicy.from_config(self.config))
        self._dispatcher = EventDispatcher(self.registry, orchestrator)

        self._started = True
        logger.info(
            f"WebhookService started (retry_attempts={self.config.retry_attempts}, "
            f"timeout_ms={self.config.timeout_ms})"
        )

    async def stop(self) -> None:
        """Stop the webhook service."""
        if not self._started:
            return

        self.registry.flush()

        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None

        self._dispatcher = None
        self._started = False
        logger.info("WebhookService stopped")

    async def __aenter__(self) -> "WebhookService":
        await self.start()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.stop()

    @property
    def dispatcher(self) -> EventDispatcher | None:
        return self._dispatcher

    # =========================================================================
    # ENDPOINT MANAGEMENT
    # =========================================================================

    def register_webhook(
        self,
        url: str,
        events: list[str | WebhookEvent],
        secret: str | None = None,
    ) -> WebhookEndpoint:
        """Register a new webhook endpoint."""
        return self.registry.register(url, events, secret)

    def update_webhook(
        self,
        endpoint_id: str,
        *,
        url: str | None = None,
        events: list[str | WebhookEvent] | None = None,
        active: bool | None = None,
    ) -> WebhookEndpoint | None:
        """Update url, events or active flag of an endpoint."""
        return self.registry.update(endpoint_id, url=url, events=events, active=active)

    def reactivate_webhook(self, endpoint_id: str) -> WebhookEndpoint | None:
        """Re-enable an endpoint. The failure count is left as is."""
        return self.registry.update(endpoint_id, active=True)

    def delete_webhook(self, endpoint_id: str) -> bool:
        return self.registry.delete(endpoint_id)

    def get_webhook(self, endpoint_id: str) -> WebhookEndpoint | None:
        return self.registry.get(endpoint_id)

    def list_webhooks(self) -> list[WebhookEndpoint]:
        return self.registry.list()

    # =========================================================================
    # DELIVERY
    # =========================================================================

    async def trigger(
        self,
        event: WebhookEvent | str,
        data: Any,
        deadline_ms: int | None = None,
    ) -> dict[str, WebhookDeliveryResult]:
        """
        Deliver an event to every active endpoint subscribed to it.

        Starts the service if needed. Never raises for delivery problems;
        inspect each result's ``success`` flag.
        """
        if not self._started:
            await self.start()
        return await self._dispatcher.trigger(event, data, deadline_ms=deadline_ms)

    async def trigger_in_background(self, event: WebhookEvent | str, data: Any):
        """Start delivery without waiting for it. Returns the asyncio task."""
        if not self._started:
            await self.start()
        return self._dispatcher.trigger_in_background(event, data)

    def stats(self) -> dict[str, int]:
        """Endpoint health and delivery counters."""
        endpoints = self.registry.list()
        counters = self._dispatcher.stats.to_dict() if self._dispatcher else {}
        return {
            "endpoints": len(endpoints),
            "active": sum(1 for e in endpoints if e.active),
            "disabled": sum(1 for e in endpoints if not e.active),
            **counters,
        }


# =============================================================================
# GLOBAL INSTANCE
# =============================================================================

_webhook_service: WebhookService | None = None
_service_lock = threading.Lock()


def get_webhook_service(
    config: WebhookConfig | None = None,
) -> WebhookService:
    """
    Get or create the global webhook service instance.

    Intended for the CLI; library callers should construct and inject
    their own WebhookService.

    Args:
        config: Optional configuration (only used on first call)
    """
    global _webhook_service

    if _webhook_service is None:
        with _service_lock:
            if _webhook_service is None:
                _webhook_service = WebhookService(config)

    return _webhook_service


def reset_webhook_service() -> None:
    """Reset the global webhook service (for testing)."""
    global _webhook_service
    with _service_lock:
        _webhook_service = None
