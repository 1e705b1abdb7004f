"""
Typed convenience triggers, one per event type.

Each helper only fixes the event tag; delivery semantics are those of
WebhookService.trigger.
"""

from typing import TYPE_CHECKING, Any, TypedDict

from sage_webhooks.webhooks.models import WebhookDeliveryResult, WebhookEvent

if TYPE_CHECKING:
    from sage_webhooks.webhooks.service import WebhookService

DeliveryResults = dict[str, WebhookDeliveryResult]


class LeadCreatedData(TypedDict, total=False):
    """Data for lead.created."""

    id: str
    email: str
    name: str
    projectAddress: str
    recommendedTier: int


class PaymentSucceededData(TypedDict):
    """Data for payment.succeeded."""

    id: str
    projectId: str
    amount: int
    currency: str
    tier: int
    customerEmail: str


class ProjectStatusChangedData(TypedDict):
    """Data for project.status_changed."""

    id: str
    name: str
    clientId: str
    previousStatus: str
    newStatus: str


class MilestoneCompletedData(TypedDict):
    """Data for milestone.completed."""

    id: str
    projectId: str
    name: str
    completedAt: str


class DeliverableUploadedData(TypedDict):
    """Data for deliverable.uploaded."""

    id: str
    projectId: str
    name: str
    fileUrl: str
    category: str


async def trigger_lead_created(
    service: "WebhookService", lead: LeadCreatedData
) -> DeliveryResults:
    return await service.trigger(WebhookEvent.LEAD_CREATED, lead)


async def trigger_lead_updated(
    service: "WebhookService", lead: dict[str, Any]
) -> DeliveryResults:
    return await service.trigger(WebhookEvent.LEAD_UPDATED, lead)


async def trigger_lead_converted(
    service: "WebhookService", lead: dict[str, Any]
) -> DeliveryResults:
    return await service.trigger(WebhookEvent.LEAD_CONVERTED, lead)


async def trigger_client_created(
    service: "WebhookService", client: dict[str, Any]
) -> DeliveryResults:
    return await service.trigger(WebhookEvent.CLIENT_CREATED, client)


async def trigger_project_created(
    service: "WebhookService", project: dict[str, Any]
) -> DeliveryResults:
    return await service.trigger(WebhookEvent.PROJECT_CREATED, project)


async def trigger_project_updated(
    service: "WebhookService", project: dict[str, Any]
) -> DeliveryResults:
    return await service.trigger(WebhookEvent.PROJECT_UPDATED, project)


async def trigger_project_status_changed(
    service: "WebhookService", project: ProjectStatusChangedData
) -> DeliveryResults:
    return await service.trigger(WebhookEvent.PROJECT_STATUS_CHANGED, project)


async def trigger_milestone_completed(
    service: "WebhookService", milestone: MilestoneCompletedData
) -> DeliveryResults:
    return await service.trigger(WebhookEvent.MILESTONE_COMPLETED, milestone)


async def trigger_payment_succeeded(
    service: "WebhookService", payment: PaymentSucceededData
) -> DeliveryResults:
    return await service.trigger(WebhookEvent.PAYMENT_SUCCEEDED, payment)


async def trigger_payment_failed(
    service: "WebhookService", payment: dict[str, Any]
) -> DeliveryResults:
    return await service.trigger(WebhookEvent.PAYMENT_FAILED, payment)


async def trigger_deliverable_uploaded(
    service: "WebhookService", deliverable: DeliverableUploadedData
) -> DeliveryResults:
    return await service.trigger(WebhookEvent.DELIVERABLE_UPLOADED, deliverable)
