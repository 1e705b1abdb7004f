"""
Webhook endpoint registry.

Catalog of subscriber endpoints, their event subscriptions, secrets and
health state. Also owns the auto-disable policy: an endpoint whose
consecutive failed delivery attempts reach FAILURE_THRESHOLD is
deactivated and stays so until an operator reactivates it.
"""

from __future__ import annotations

import logging
import threading
from datetime import datetime, timezone

from sage_webhooks.webhooks.models import WebhookEndpoint, WebhookEvent
from sage_webhooks.webhooks.signing import generate_secret
from sage_webhooks.webhooks.storage import EndpointStore, InMemoryEndpointStore

logger = logging.getLogger(__name__)

FAILURE_THRESHOLD = 10


def validate_url(url: str) -> str:
    """Validate that an endpoint URL is an absolute http(s) URL."""
    if not url:
        raise ValueError("URL cannot be empty")
    if not url.startswith(("http://", "https://")):
        raise ValueError(f"Webhook URL must start with http:// or https://: {url!r}")
    return url


class EndpointRegistry:
    """
    Registry of webhook endpoints.

    Every read-modify-write runs under one lock, so concurrent
    deliveries to the same endpoint never lose a failure increment.

    Example:
        registry = EndpointRegistry()
        endpoint = registry.register(
            "https://example.com/hooks",
            [WebhookEvent.PAYMENT_SUCCEEDED],
        )
        registry.endpoints_for(WebhookEvent.PAYMENT_SUCCEEDED)
    """

    def __init__(
        self,
        store: EndpointStore | None = None,
        default_secret: str = "",
        failure_threshold: int = FAILURE_THRESHOLD,
    ):
        """
        Initialize the registry.

        Args:
            store: Endpoint storage (in-memory if not given)
            default_secret: Secret used when register() gets none;
                empty means generate one per endpoint
            failure_threshold: Consecutive failed attempts before auto-disable
        """
        self._store = store if store is not None else InMemoryEndpointStore()
        self._default_secret = default_secret
        self.failure_threshold = failure_threshold
        self._lock = threading.Lock()

    # =========================================================================
    # CRUD
    # =========================================================================

    def register(
        self,
        url: str,
        events: list[str | WebhookEvent],
        secret: str | None = None,
    ) -> WebhookEndpoint:
        """
        Register a new endpoint.

        Args:
            url: Destination URL
            events: Event types to subscribe to
            secret: Shared signing secret (generated if omitted)

        Returns:
            The created endpoint, active with a zero failure count

        Raises:
            ValueError: If the URL or an event type is invalid
        """
        endpoint = WebhookEndpoint.create(
            url=validate_url(url),
            events=events,
            secret=secret or self._default_secret or generate_secret(),
        )

        with self._lock:
            self._store.upsert(endpoint)

        logger.info(
            f"Registered webhook endpoint {endpoint.id} for {url}",
            extra={
                "endpoint_id": endpoint.id,
                "url": url,
                "events": [e.value for e in endpoint.events],
            },
        )
        return endpoint

    def update(
        self,
        endpoint_id: str,
        *,
        url: str | None = None,
        events: list[str | WebhookEvent] | None = None,
        active: bool | None = None,
    ) -> WebhookEndpoint | None:
        """Partially update an endpoint. The id and secret cannot change."""
        if url is not None:
            validate_url(url)
        parsed_events = (
            [WebhookEvent.parse(e) for e in events] if events is not None else None
        )

        with self._lock:
            endpoint = self._store.get(endpoint_id)
            if endpoint is None:
                return None

            if url is not None:
                endpoint.url = url
            if parsed_events is not None:
                endpoint.events = parsed_events
            if active is not None:
                endpoint.active = active

            self._store.upsert(endpoint)

        logger.info(f"Updated webhook endpoint {endpoint_id}")
        return endpoint

    def delete(self, endpoint_id: str) -> bool:
        """Remove an endpoint. Returns False if it was not registered."""
        with self._lock:
            deleted = self._store.delete(endpoint_id)
        if deleted:
            logger.info(f"Deleted webhook endpoint {endpoint_id}")
        return deleted

    def get(self, endpoint_id: str) -> WebhookEndpoint | None:
        with self._lock:
            return self._store.get(endpoint_id)

    def list(self) -> list[WebhookEndpoint]:
        with self._lock:
            return self._store.list()

    def endpoints_for(self, event: WebhookEvent) -> list[WebhookEndpoint]:
        """Active endpoints subscribed to ``event``, in registration order."""
        with self._lock:
            return [e for e in self._store.list() if e.should_deliver(event)]

    # =========================================================================
    # HEALTH
    # =========================================================================

    def flush(self) -> None:
        """Persist health updates the store has buffered."""
        with self._lock:
            self._store.flush()

    def record_success(self, endpoint_id: str) -> None:
        """Reset the failure count and stamp the last successful delivery."""
        with self._lock:
            endpoint = self._store.get(endpoint_id)
            if endpoint is None:
                return
            endpoint.failure_count = 0
            endpoint.last_triggered_at = datetime.now(timezone.utc)
            self._store.update_health(endpoint)

    def record_failure(self, endpoint_id: str) -> None:
        """
        Count one failed delivery attempt.

        Deactivates the endpoint when the count reaches the threshold.
        The transition happens once; later failures only increment.
        """
        with self._lock:
            endpoint = self._store.get(endpoint_id)
            if endpoint is None:
                return

            endpoint.failure_count += 1
            tripped = endpoint.active and endpoint.failure_count >= self.failure_threshold
            if tripped:
                endpoint.active = False
                self._store.upsert(endpoint)
            else:
                self._store.update_health(endpoint)

        if tripped:
            logger.warning(
                f"Webhook endpoint {endpoint.id} disabled after "
                f"{endpoint.failure_count} consecutive failures ({endpoint.url})",
                extra={
                    "endpoint_id": endpoint.id,
                    "url": endpoint.url,
                    "failure_count": endpoint.failure_count,
                },
            )
