"""Shared test fixtures."""

import httpx
import pytest

from sage_webhooks.core.config import reset_config
from sage_webhooks.webhooks import (
    EndpointRegistry,
    WebhookEvent,
    WebhookPayload,
    reset_webhook_service,
)


def _mock_client(handler) -> httpx.AsyncClient:
    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def make_client():
    """Factory for AsyncClients answered by a handler instead of the network."""
    return _mock_client


@pytest.fixture(autouse=True)
def _reset_globals(monkeypatch):
    """Keep global config/service and WEBHOOK_* env vars out of each test."""
    for var in (
        "WEBHOOK_SIGNING_SECRET",
        "WEBHOOK_RETRY_ATTEMPTS",
        "WEBHOOK_RETRY_DELAY_MS",
        "WEBHOOK_TIMEOUT_MS",
        "WEBHOOK_RETRY_JITTER",
        "WEBHOOK_RETRY_CLIENT_ERRORS",
        "WEBHOOK_USER_AGENT",
        "WEBHOOK_STORAGE",
    ):
        monkeypatch.delenv(var, raising=False)
    reset_config()
    reset_webhook_service()
    yield
    reset_config()
    reset_webhook_service()


@pytest.fixture
def registry():
    return EndpointRegistry()


@pytest.fixture
def payload():
    return WebhookPayload.create(WebhookEvent.PAYMENT_SUCCEEDED, {"amount": 100})
