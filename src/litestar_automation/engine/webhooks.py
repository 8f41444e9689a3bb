"""Bounded outbound webhook delivery.

SEND_WEBHOOK actions hand their request to a WebhookDispatcher and report success as
soon as the delivery is scheduled. The dispatcher sends requests in the background
through one shared ``httpx.AsyncClient``, bounds how many are in flight, retries transport
errors and 5xx responses with exponential backoff, and keeps a delivery log entry per call.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

import httpx

from litestar_automation.config import AutomationConfig
from litestar_automation.core.models import WebhookDelivery
from litestar_automation.core.types import WebhookDeliveryStatus

if TYPE_CHECKING:
    from collections.abc import Mapping
    from uuid import UUID

    from litestar_automation.core.protocols import WorkflowStore

__all__ = ["WebhookDispatcher"]

logger = logging.getLogger(__name__)


class WebhookDispatcher:
    """Schedules and delivers outbound webhook requests.

    Attributes:
        store: Store receiving delivery log entries.
        config: Timeout, retry and concurrency settings.
        client: The HTTP client used for every request.
        _semaphore: Bounds the number of requests in flight.
        _pending: Delivery tasks that have not finished yet.
    """

    def __init__(
        self,
        store: WorkflowStore,
        config: AutomationConfig | None = None,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            store: The workflow store.
            config: Engine settings. Defaults are used when omitted.
            client: HTTP client to send requests with. When omitted the dispatcher
                creates one with the configured timeout and connection limits and closes
                it in ``aclose``.
        """
        self.store = store
        self.config = config or AutomationConfig()
        self._owns_client = client is None
        self.client = client or httpx.AsyncClient(
            timeout=httpx.Timeout(self.config.webhook_timeout),
            limits=httpx.Limits(
                max_connections=self.config.webhook_max_concurrency,
                max_keepalive_connections=self.config.webhook_max_concurrency,
            ),
        )
        self._semaphore = asyncio.Semaphore(self.config.webhook_max_concurrency)
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def pending_count(self) -> int:
        """Number of deliveries still in progress."""
        return len(self._pending)

    async def submit(
        self,
        *,
        url: str,
        method: str,
        headers: Mapping[str, str],
        content: bytes | str,
        action_id: UUID,
        workflow_id: UUID | None = None,
        execution_id: UUID | None = None,
    ) -> WebhookDelivery:
        """Record a pending delivery and start sending it in the background.

        Args:
            url: Target URL.
            method: HTTP method.
            headers: Request headers.
            content: Request body.
            action_id: The SEND_WEBHOOK action producing the call.
            workflow_id: The workflow running the action.
            execution_id: The run producing the call.

        Returns:
            The pending delivery log entry.
        """
        delivery = WebhookDelivery(
            url=url,
            method=method,
            action_id=action_id,
            workflow_id=workflow_id,
            execution_id=execution_id,
            created_at=datetime.now(timezone.utc),
        )
        await self.store.save_webhook_delivery(delivery)

        task = asyncio.create_task(self._deliver(delivery, dict(headers), content))
        self._pending.add(task)
        task.add_done_callback(self._on_done)
        return delivery

    async def drain(self) -> None:
        """Wait until every scheduled delivery has finished."""
        while self._pending:
            await asyncio.gather(*self._pending, return_exceptions=True)

    async def aclose(self) -> None:
        """Wait for pending deliveries, then close the HTTP client if this dispatcher created it."""
        await self.drain()
        if self._owns_client:
            await self.client.aclose()

    def _on_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        if (exc := task.exception()) is not None:
            logger.error("Webhook delivery task crashed", exc_info=exc, extra={"error": str(exc)})

    async def _deliver(self, delivery: WebhookDelivery, headers: dict[str, str], content: bytes | str) -> None:
        attempts_allowed = self.config.webhook_max_retries + 1
        log_fields = {
            "delivery_id": str(delivery.id),
            "action_id": str(delivery.action_id),
            "workflow_id": str(delivery.workflow_id) if delivery.workflow_id else None,
            "execution_id": str(delivery.execution_id) if delivery.execution_id else None,
        }

        for attempt in range(1, attempts_allowed + 1):
            delivery.attempts = attempt
            retryable = False
            try:
                async with self._semaphore:
                    response = await self.client.request(
                        delivery.method,
                        delivery.url,
                        headers=headers,
                        content=content,
                    )
            except httpx.HTTPError as e:
                delivery.response_status = None
                delivery.error = f"{type(e).__name__}: {e}"
                retryable = True
            except (httpx.InvalidURL, ValueError) as e:
                # Malformed URL.
                delivery.response_status = None
                delivery.error = f"{type(e).__name__}: {e}"
            else:
                delivery.response_status = response.status_code
                if response.is_server_error:
                    delivery.error = f"HTTP {response.status_code}"
                    retryable = True
                elif response.is_client_error:
                    delivery.error = f"HTTP {response.status_code}"
                else:
                    delivery.error = None
                    delivery.status = WebhookDeliveryStatus.DELIVERED
                    delivery.completed_at = datetime.now(timezone.utc)
                    await self.store.save_webhook_delivery(delivery)
                    logger.debug("Webhook delivered", extra={**log_fields, "status_code": response.status_code})
                    return

            if not retryable or attempt == attempts_allowed:
                break

            logger.warning(
                "Webhook attempt failed, retrying",
                extra={**log_fields, "attempt": attempt, "error": delivery.error},
            )
            await self.store.save_webhook_delivery(delivery)
            await asyncio.sleep(self.config.webhook_retry_backoff * (2 ** (attempt - 1)))

        delivery.status = WebhookDeliveryStatus.FAILED
        delivery.completed_at = datetime.now(timezone.utc)
        await self.store.save_webhook_delivery(delivery)
        logger.error(
            "Webhook delivery failed",
            extra={**log_fields, "attempts": delivery.attempts, "error": delivery.error, "url": delivery.url},
        )
