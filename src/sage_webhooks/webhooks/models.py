"""
Webhook data models.

Provides:
- WebhookEvent: Event types that can trigger webhooks
- WebhookEndpoint: Registered subscriber and its health state
- WebhookPayload: Event envelope shared by every delivery of one trigger
- WebhookDeliveryResult: Outcome of delivering one trigger to one endpoint
"""

import json
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any
from uuid import uuid4


class WebhookEvent(str, Enum):
    """Events that can trigger webhooks.

    Closed set: add new tags, never repurpose existing ones.
    """

    # Leads
    LEAD_CREATED = "lead.created"
    LEAD_UPDATED = "lead.updated"
    LEAD_CONVERTED = "lead.converted"

    # Clients
    CLIENT_CREATED = "client.created"

    # Projects
    PROJECT_CREATED = "project.created"
    PROJECT_UPDATED = "project.updated"
    PROJECT_STATUS_CHANGED = "project.status_changed"
    MILESTONE_COMPLETED = "milestone.completed"
    DELIVERABLE_UPLOADED = "deliverable.uploaded"

    # Payments
    PAYMENT_SUCCEEDED = "payment.succeeded"
    PAYMENT_FAILED = "payment.failed"

    @classmethod
    def parse(cls, value: "str | WebhookEvent") -> "WebhookEvent":
        """Convert a tag string to a WebhookEvent, raising ValueError if unknown."""
        if isinstance(value, WebhookEvent):
            return value
        try:
            return cls(value)
        except ValueError:
            valid = ", ".join(e.value for e in cls)
            raise ValueError(f"Unknown event type: {value!r}. Valid events: {valid}") from None


def _isoformat(value: datetime) -> str:
    """ISO-8601 UTC with millisecond precision and a Z suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )


def _parse_datetime(value: str) -> datetime:
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


@dataclass
class WebhookEndpoint:
    """
    Registered webhook endpoint.

    Stores URL, secret and event filters, plus the health state used
    by the auto-disable policy.
    """

    id: str
    url: str
    secret: str
    events: list[WebhookEvent]
    active: bool
    created_at: datetime
    last_triggered_at: datetime | None = None
    failure_count: int = 0

    @classmethod
    def create(
        cls,
        url: str,
        events: list[str | WebhookEvent],
        secret: str,
    ) -> "WebhookEndpoint":
        """Create a new, active endpoint."""
        return cls(
            id=str(uuid4()),
            url=url,
            secret=secret,
            events=[WebhookEvent.parse(e) for e in events],
            active=True,
            created_at=datetime.now(timezone.utc),
        )

    def should_deliver(self, event: WebhookEvent) -> bool:
        """Check if this endpoint should receive an event."""
        return self.active and event in self.events

    def to_dict(self, include_secret: bool = True) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "url": self.url,
            "secret": self.secret if include_secret else "********",
            "events": [e.value for e in self.events],
            "active": self.active,
            "created_at": self.created_at.isoformat(),
            "last_triggered_at": (
                self.last_triggered_at.isoformat() if self.last_triggered_at else None
            ),
            "failure_count": self.failure_count,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "WebhookEndpoint":
        """Create from dictionary."""
        return cls(
            id=data["id"],
            url=data["url"],
            secret=data["secret"],
            events=[WebhookEvent(e) for e in data["events"]],
            active=data.get("active", True),
            created_at=_parse_datetime(data["created_at"]),
            last_triggered_at=(
                _parse_datetime(data["last_triggered_at"])
                if data.get("last_triggered_at")
                else None
            ),
            failure_count=data.get("failure_count", 0),
        )


@dataclass(frozen=True)
class WebhookPayload:
    """
    Event envelope sent to every endpoint matched by one trigger.

    The id and timestamp are fixed at creation, so all attempts and
    retries of a trigger carry the same values. Receivers de-duplicate
    on ``id``.
    """

    id: str
    type: WebhookEvent
    timestamp: str
    data: Any

    @classmethod
    def create(cls, event: WebhookEvent, data: Any) -> "WebhookPayload":
        return cls(
            id=str(uuid4()),
            type=event,
            timestamp=_isoformat(datetime.now(timezone.utc)),
            data=data,
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "type": self.type.value,
            "timestamp": self.timestamp,
            "data": self.data,
        }

    def to_bytes(self) -> bytes:
        """Canonical body: the exact bytes that are signed and transmitted."""
        return json.dumps(
            self.to_dict(),
            separators=(",", ":"),
            ensure_ascii=False,
            default=str,
        ).encode("utf-8")


@dataclass
class WebhookDeliveryResult:
    """Outcome of delivering one trigger to one endpoint.

    ``duration`` covers the last attempt only, in milliseconds.
    """

    success: bool
    duration: float
    status_code: int | None = None
    error: str | None = None
    attempts: int = 1

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for serialization."""
        result: dict[str, Any] = {
            "success": self.success,
            "duration": round(self.duration, 3),
            "attempts": self.attempts,
        }
        if self.status_code is not None:
            result["status_code"] = self.status_code
        if self.error is not None:
            result["error"] = self.error
        return result
