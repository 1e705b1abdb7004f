"""Tests for event dispatch and fan-out."""

import asyncio

import httpx
import pytest

from sage_webhooks.webhooks.dispatcher import DEADLINE_EXCEEDED, EventDispatcher
from sage_webhooks.webhooks.executor import DeliveryExecutor
from sage_webhooks.webhooks.models import WebhookEvent
from sage_webhooks.webhooks.registry import FAILURE_THRESHOLD
from sage_webhooks.webhooks.retry import RetryOrchestrator, RetryPolicy


def build_dispatcher(registry, client, **policy):
    executor = DeliveryExecutor(client, registry, timeout_ms=5000)
    orchestrator = RetryOrchestrator(executor, RetryPolicy(**policy))
    return EventDispatcher(registry, orchestrator)


class TestEventDispatcher:
    """Tests for EventDispatcher.trigger."""

    @pytest.mark.asyncio
    async def test_no_subscribers(self, registry, make_client):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200)

        registry.register("https://example.com/hook", ["lead.created"])

        async with make_client(handler) as client:
            dispatcher = build_dispatcher(registry, client)
            results = await dispatcher.trigger(WebhookEvent.PAYMENT_SUCCEEDED, {})

        assert results == {}
        assert calls == []
        assert dispatcher.stats.triggers == 0

    @pytest.mark.asyncio
    async def test_accepts_tag_string(self, registry, make_client):
        endpoint = registry.register("https://example.com/hook", ["lead.created"])

        async with make_client(lambda request: httpx.Response(200)) as client:
            results = await build_dispatcher(registry, client).trigger(
                "lead.created", {"id": "lead-1"}
            )

        assert list(results) == [endpoint.id]
        assert results[endpoint.id].success is True

    @pytest.mark.asyncio
    async def test_unknown_event_raises(self, registry, make_client):
        async with make_client(lambda request: httpx.Response(200)) as client:
            with pytest.raises(ValueError):
                await build_dispatcher(registry, client).trigger("lead.deleted", {})

    @pytest.mark.asyncio
    async def test_one_payload_shared_across_endpoints(self, registry, make_client):
        bodies = {}

        def handler(request):
            bodies[str(request.url)] = (request.headers["X-Webhook-Id"], request.content)
            return httpx.Response(200)

        for i in range(3):
            registry.register(f"https://example.com/{i}", ["project.created"])

        async with make_client(handler) as client:
            await build_dispatcher(registry, client).trigger(
                WebhookEvent.PROJECT_CREATED, {"id": "p1"}
            )

        assert len(bodies) == 3
        assert len(set(bodies.values())) == 1

    @pytest.mark.asyncio
    async def test_fan_out_independence(self, registry, make_client):
        """A failing endpoint's retries do not delay a healthy one."""
        served_at = {}
        loop = asyncio.get_running_loop()
        start = loop.time()

        def handler(request):
            served_at.setdefault(request.url.host, []).append(loop.time() - start)
            if request.url.host == "bad.example.com":
                return httpx.Response(500)
            return httpx.Response(200)

        bad = registry.register("https://bad.example.com/hook", ["payment.succeeded"])
        good = registry.register("https://good.example.com/hook", ["payment.succeeded"])

        async with make_client(handler) as client:
            dispatcher = build_dispatcher(
                registry, client, retry_attempts=3, retry_delay_ms=100
            )
            results = await dispatcher.trigger(WebhookEvent.PAYMENT_SUCCEEDED, {})
        elapsed = loop.time() - start

        assert results[good.id].success is True
        assert results[good.id].attempts == 1
        assert results[bad.id].success is False
        assert results[bad.id].attempts == 4
        assert len(served_at["bad.example.com"]) == 4
        # bad backs off 100 + 200 + 400ms; good is served before the first retry
        assert elapsed >= 0.65
        assert served_at["good.example.com"][0] < 0.1

    @pytest.mark.asyncio
    async def test_circuit_breaker_excludes_endpoint(self, registry, make_client):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(500)

        endpoint = registry.register("https://example.com/hook", ["payment.failed"])

        async with make_client(handler) as client:
            dispatcher = build_dispatcher(registry, client, retry_attempts=4, retry_delay_ms=0)
            first = await dispatcher.trigger(WebhookEvent.PAYMENT_FAILED, {})
            second = await dispatcher.trigger(WebhookEvent.PAYMENT_FAILED, {})
            third = await dispatcher.trigger(WebhookEvent.PAYMENT_FAILED, {})

        assert first[endpoint.id].success is False
        assert second[endpoint.id].success is False
        assert endpoint.failure_count == FAILURE_THRESHOLD
        assert endpoint.active is False
        assert third == {}
        assert len(calls) == FAILURE_THRESHOLD

    @pytest.mark.asyncio
    async def test_deadline(self, registry, make_client):
        async def handler(request):
            if request.url.host == "slow.example.com":
                await asyncio.sleep(5)
            return httpx.Response(200)

        slow = registry.register("https://slow.example.com/hook", ["lead.updated"])
        fast = registry.register("https://fast.example.com/hook", ["lead.updated"])

        async with make_client(handler) as client:
            dispatcher = build_dispatcher(registry, client)
            results = await dispatcher.trigger(
                WebhookEvent.LEAD_UPDATED, {}, deadline_ms=100
            )

        assert results[fast.id].success is True
        assert results[slow.id].success is False
        assert results[slow.id].error == DEADLINE_EXCEEDED
        assert list(results) == [slow.id, fast.id]

    @pytest.mark.asyncio
    async def test_trigger_in_background(self, registry, make_client):
        endpoint = registry.register("https://example.com/hook", ["client.created"])

        async with make_client(lambda request: httpx.Response(200)) as client:
            dispatcher = build_dispatcher(registry, client)
            task = dispatcher.trigger_in_background(WebhookEvent.CLIENT_CREATED, {})
            assert isinstance(task, asyncio.Task)
            results = await task

        assert results[endpoint.id].success is True

    @pytest.mark.asyncio
    async def test_stats(self, registry, make_client):
        def handler(request):
            return httpx.Response(200 if request.url.host == "ok.example.com" else 400)

        registry.register("https://ok.example.com/hook", ["lead.converted"])
        registry.register("https://no.example.com/hook", ["lead.converted"])

        async with make_client(handler) as client:
            dispatcher = build_dispatcher(registry, client, retry_attempts=0)
            await dispatcher.trigger(WebhookEvent.LEAD_CONVERTED, {})
            await dispatcher.trigger(WebhookEvent.LEAD_CONVERTED, {})

        assert dispatcher.stats.to_dict() == {
            "triggers": 2,
            "deliveries": 4,
            "succeeded": 2,
            "failed": 2,
        }
