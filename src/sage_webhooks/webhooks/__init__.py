"""
SAGE Webhooks - Outbound event notification.

Provides webhook delivery for lead, project and payment events:
- Register endpoint URLs for specific event types
- HMAC-SHA256 signed payloads
- Automatic retries with exponential backoff
- Auto-disable of endpoints that keep failing

Example:
    from sage_webhooks.webhooks import WebhookEvent, WebhookService

    async with WebhookService() as service:
        endpoint = service.register_webhook(
            url="https://example.com/webhook",
            events=["payment.succeeded"],
            secret="my-secret-key",
        )
        results = await service.trigger(
            WebhookEvent.PAYMENT_SUCCEEDED, {"amount": 100}
        )
        results[endpoint.id].success
"""

from sage_webhooks.webhooks.dispatcher import DispatchStats, EventDispatcher
from sage_webhooks.webhooks.executor import DeliveryExecutor
from sage_webhooks.webhooks.models import (
    WebhookDeliveryResult,
    WebhookEndpoint,
    WebhookEvent,
    WebhookPayload,
)
from sage_webhooks.webhooks.registry import FAILURE_THRESHOLD, EndpointRegistry
from sage_webhooks.webhooks.retry import RetryOrchestrator, RetryPolicy
from sage_webhooks.webhooks.service import (
    WebhookService,
    get_webhook_service,
    reset_webhook_service,
)
from sage_webhooks.webhooks.signing import generate_secret, sign, verify
from sage_webhooks.webhooks.storage import (
    EndpointStore,
    InMemoryEndpointStore,
    JsonFileEndpointStore,
)

__all__ = [
    # Models
    "WebhookEvent",
    "WebhookEndpoint",
    "WebhookPayload",
    "WebhookDeliveryResult",
    # Signing
    "sign",
    "verify",
    "generate_secret",
    # Storage
    "EndpointStore",
    "InMemoryEndpointStore",
    "JsonFileEndpointStore",
    # Delivery
    "EndpointRegistry",
    "FAILURE_THRESHOLD",
    "DeliveryExecutor",
    "RetryOrchestrator",
    "RetryPolicy",
    "EventDispatcher",
    "DispatchStats",
    # Service
    "WebhookService",
    "get_webhook_service",
    "reset_webhook_service",
]
