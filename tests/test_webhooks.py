"""Tests for background webhook delivery."""

from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import uuid4

import httpx
import pytest

from litestar_automation.core.types import WebhookDeliveryStatus
from litestar_automation.engine.webhooks import WebhookDispatcher

if TYPE_CHECKING:
    from collections.abc import Callable

    from litestar_automation.config import AutomationConfig
    from litestar_automation.engine.local import InMemoryWorkflowStore


def scripted(*outcomes: int | Exception) -> tuple[list[httpx.Request], Callable[[httpx.Request], httpx.Response]]:
    """Build a transport handler answering with the given statuses or raising the given errors, in order."""
    requests: list[httpx.Request] = []
    remaining = list(outcomes)

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        outcome = remaining.pop(0) if len(remaining) > 1 else remaining[0]
        if isinstance(outcome, Exception):
            raise outcome
        return httpx.Response(outcome)

    return requests, handler


async def deliver_once(
    store: InMemoryWorkflowStore,
    config: AutomationConfig,
    handler: Callable[[httpx.Request], httpx.Response],
) -> WebhookDispatcher:
    """Submit one delivery through a mock transport and wait for it."""
    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        dispatcher = WebhookDispatcher(store, config, client=client)
        await dispatcher.submit(
            url="https://hooks.example.com/deal",
            method="POST",
            headers={"Content-Type": "application/json"},
            content=b'{"id": "d_1"}',
            action_id=uuid4(),
        )
        await dispatcher.aclose()
    return dispatcher


@pytest.mark.unit
class TestWebhookDelivery:
    """Tests for WebhookDispatcher."""

    async def test_success(self, store: InMemoryWorkflowStore, automation_config: AutomationConfig) -> None:
        """Test a 2xx response marks the delivery delivered after one attempt."""
        requests, handler = scripted(204)

        dispatcher = await deliver_once(store, automation_config, handler)

        [delivery] = store.deliveries
        assert delivery.status == WebhookDeliveryStatus.DELIVERED
        assert delivery.attempts == 1
        assert delivery.response_status == 204
        assert delivery.error is None
        assert delivery.completed_at is not None
        assert requests[0].content == b'{"id": "d_1"}'
        assert dispatcher.pending_count == 0

    async def test_retries_server_errors(
        self, store: InMemoryWorkflowStore, automation_config: AutomationConfig
    ) -> None:
        """Test 5xx responses are retried until success."""
        requests, handler = scripted(503, 502, 200)

        await deliver_once(store, automation_config, handler)

        [delivery] = store.deliveries
        assert len(requests) == 3
        assert delivery.status == WebhookDeliveryStatus.DELIVERED
        assert delivery.attempts == 3

    async def test_gives_up_after_max_retries(
        self, store: InMemoryWorkflowStore, automation_config: AutomationConfig
    ) -> None:
        """Test persistent 5xx responses fail the delivery after the retry budget."""
        requests, handler = scripted(500)

        await deliver_once(store, automation_config, handler)

        [delivery] = store.deliveries
        assert len(requests) == automation_config.webhook_max_retries + 1
        assert delivery.status == WebhookDeliveryStatus.FAILED
        assert delivery.response_status == 500
        assert delivery.error == "HTTP 500"

    async def test_client_errors_are_not_retried(
        self, store: InMemoryWorkflowStore, automation_config: AutomationConfig
    ) -> None:
        """Test a 4xx response fails the delivery immediately."""
        requests, handler = scripted(404)

        await deliver_once(store, automation_config, handler)

        [delivery] = store.deliveries
        assert len(requests) == 1
        assert delivery.status == WebhookDeliveryStatus.FAILED
        assert delivery.attempts == 1
        assert delivery.error == "HTTP 404"

    async def test_transport_errors_are_retried(
        self, store: InMemoryWorkflowStore, automation_config: AutomationConfig
    ) -> None:
        """Test connection errors are retried."""
        requests, handler = scripted(httpx.ConnectError("connection refused"), 200)

        await deliver_once(store, automation_config, handler)

        [delivery] = store.deliveries
        assert len(requests) == 2
        assert delivery.status == WebhookDeliveryStatus.DELIVERED

    async def test_transport_error_exhaustion(
        self, store: InMemoryWorkflowStore, automation_config: AutomationConfig
    ) -> None:
        """Test a delivery that never connects fails with the transport error."""
        _, handler = scripted(httpx.ConnectError("connection refused"))

        await deliver_once(store, automation_config, handler)

        [delivery] = store.deliveries
        assert delivery.status == WebhookDeliveryStatus.FAILED
        assert delivery.response_status is None
        assert delivery.error is not None
        assert delivery.error.startswith("ConnectError")

    async def test_malformed_url_fails_without_retry(
        self, store: InMemoryWorkflowStore, automation_config: AutomationConfig
    ) -> None:
        """Test a URL that cannot be parsed ends the delivery as failed after one attempt."""
        requests, handler = scripted(200)

        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            dispatcher = WebhookDispatcher(store, automation_config, client=client)
            await dispatcher.submit(
                url="http://[::1",
                method="POST",
                headers={},
                content=b"{}",
                action_id=uuid4(),
            )
            await dispatcher.drain()

        [delivery] = store.deliveries
        assert requests == []
        assert delivery.status == WebhookDeliveryStatus.FAILED
        assert delivery.attempts == 1
        assert delivery.response_status is None
        assert delivery.error is not None
        assert delivery.completed_at is not None

    async def test_submit_returns_pending_entry(
        self, store: InMemoryWorkflowStore, automation_config: AutomationConfig
    ) -> None:
        """Test submit records a pending entry before anything is sent."""
        _, handler = scripted(200)
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            dispatcher = WebhookDispatcher(store, automation_config, client=client)
            workflow_id = uuid4()
            delivery = await dispatcher.submit(
                url="https://hooks.example.com/x",
                method="POST",
                headers={},
                content="{}",
                action_id=uuid4(),
                workflow_id=workflow_id,
            )

            assert delivery.status == WebhookDeliveryStatus.PENDING
            assert delivery.attempts == 0
            assert delivery.workflow_id == workflow_id
            assert dispatcher.pending_count == 1

            await dispatcher.aclose()
            assert not client.is_closed

        assert delivery.status == WebhookDeliveryStatus.DELIVERED
        assert dispatcher.pending_count == 0
