"""
Endpoint storage.

The registry keeps endpoints behind a small storage interface so a
relational or document store can be substituted without touching
delivery logic. Two implementations are provided:

- InMemoryEndpointStore: process-local dict (lost on restart)
- JsonFileEndpointStore: JSON file, rewritten on registration changes;
  health updates are buffered until flush()
"""

from __future__ import annotations

import json
import logging
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol, runtime_checkable

from sage_webhooks.webhooks.models import WebhookEndpoint

logger = logging.getLogger(__name__)


@runtime_checkable
class EndpointStore(Protocol):
    """
    Protocol for endpoint persistence keyed by endpoint id.

    Implementations need not be thread-safe; the registry serializes
    every call under its own lock.
    """

    def get(self, endpoint_id: str) -> WebhookEndpoint | None:
        """Return the endpoint, or None if absent."""
        ...

    def list(self) -> list[WebhookEndpoint]:
        """Return all endpoints in insertion order."""
        ...

    def upsert(self, endpoint: WebhookEndpoint) -> None:
        """Insert or replace an endpoint."""
        ...

    def delete(self, endpoint_id: str) -> bool:
        """Delete an endpoint. Returns False if it did not exist."""
        ...

    def update_health(self, endpoint: WebhookEndpoint) -> None:
        """Record a changed failure count or delivery time.

        Called once per delivery attempt; may be buffered until flush().
        """
        ...

    def flush(self) -> None:
        """Persist buffered health updates."""
        ...


class InMemoryEndpointStore:
    """Dict-backed store. Registrations and health state are lost on restart."""

    def __init__(self) -> None:
        self._endpoints: dict[str, WebhookEndpoint] = {}

    def get(self, endpoint_id: str) -> WebhookEndpoint | None:
        return self._endpoints.get(endpoint_id)

    def list(self) -> list[WebhookEndpoint]:
        return list(self._endpoints.values())

    def upsert(self, endpoint: WebhookEndpoint) -> None:
        self._endpoints[endpoint.id] = endpoint

    def delete(self, endpoint_id: str) -> bool:
        return self._endpoints.pop(endpoint_id, None) is not None

    def update_health(self, endpoint: WebhookEndpoint) -> None:
        self._endpoints[endpoint.id] = endpoint

    def flush(self) -> None:
        pass


class JsonFileEndpointStore(InMemoryEndpointStore):
    """
    JSON-file store.

    Loads the file on construction and rewrites it after every upsert
    or delete. Health updates only mark the store dirty; they reach the
    file on the next upsert, delete or flush(). A missing or unreadable
    file starts empty.
    """

    def __init__(self, path: Path) -> None:
        super().__init__()
        self.path = Path(path)
        self._dirty = False
        self._load()

    def upsert(self, endpoint: WebhookEndpoint) -> None:
        super().upsert(endpoint)
        self._save()

    def delete(self, endpoint_id: str) -> bool:
        deleted = super().delete(endpoint_id)
        if deleted:
            self._save()
        return deleted

    def update_health(self, endpoint: WebhookEndpoint) -> None:
        super().update_health(endpoint)
        self._dirty = True

    def flush(self) -> None:
        if self._dirty:
            self._save()

    def _load(self) -> None:
        """Load endpoints from the file."""
        if not self.path.exists():
            return

        try:
            data = json.loads(self.path.read_text())
            if not isinstance(data, dict):
                raise ValueError(f"expected a JSON object, got {type(data).__name__}")
            for endpoint_data in data.get("endpoints", []):
                endpoint = WebhookEndpoint.from_dict(endpoint_data)
                self._endpoints[endpoint.id] = endpoint
            logger.info(f"Loaded {len(self._endpoints)} webhook endpoints from {self.path}")
        except (OSError, ValueError, KeyError, TypeError, AttributeError) as e:
            self._endpoints.clear()
            logger.error(f"Failed to load webhook endpoints from {self.path}: {e}")

    def _save(self) -> None:
        """Write all endpoints to the file."""
        data = {
            "endpoints": [endpoint.to_dict() for endpoint in self._endpoints.values()],
            "saved_at": datetime.now(timezone.utc).isoformat(),
        }
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self.path.write_text(json.dumps(data, indent=2))
            self._dirty = False
        except OSError as e:
            logger.error(f"Failed to save webhook endpoints to {self.path}: {e}")
