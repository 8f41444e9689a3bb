"""Pytest configuration and shared fixtures for litestar-automation tests."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

import httpx
import pytest

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from litestar_automation.adapters import InMemoryCrmServices, InMemoryEntityAdapter, InMemoryTaggableEntityAdapter
    from litestar_automation.config import AutomationConfig
    from litestar_automation.engine.actions import ActionRunner
    from litestar_automation.engine.assignment import AssignmentResolver
    from litestar_automation.engine.dispatcher import TriggerDispatcher
    from litestar_automation.engine.executor import WorkflowExecutor
    from litestar_automation.engine.local import InMemoryWorkflowStore
    from litestar_automation.engine.registry import EntityAdapterRegistry
    from litestar_automation.engine.webhooks import WebhookDispatcher


class MockEventBus:
    """Mock event bus for testing."""

    def __init__(self) -> None:
        """Initialize mock event bus."""
        self.events: list[tuple[str, dict[str, Any]]] = []

    async def emit(self, event_type: str, **kwargs: Any) -> None:
        """Emit an event."""
        self.events.append((event_type, kwargs))

    @property
    def event_types(self) -> list[str]:
        """Names of the emitted events, in order."""
        return [event_type for event_type, _ in self.events]


class RecordingTransport:
    """httpx transport handler recording requests and answering with a fixed status."""

    def __init__(self, status_code: int = 200) -> None:
        self.status_code = status_code
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return httpx.Response(self.status_code, json={"ok": self.status_code < 400})


@pytest.fixture
def automation_config() -> AutomationConfig:
    """Create engine settings without webhook retry delays.

    Returns:
        AutomationConfig instance
    """
    from litestar_automation.config import AutomationConfig

    return AutomationConfig(system_user_id="system", webhook_retry_backoff=0)


@pytest.fixture
def store() -> InMemoryWorkflowStore:
    """Create an empty in-memory workflow store.

    Returns:
        InMemoryWorkflowStore instance
    """
    from litestar_automation.engine.local import InMemoryWorkflowStore

    return InMemoryWorkflowStore()


@pytest.fixture
def services() -> InMemoryCrmServices:
    """Create recording CRM services.

    Returns:
        InMemoryCrmServices instance
    """
    from litestar_automation.adapters import InMemoryCrmServices

    return InMemoryCrmServices()


@pytest.fixture
def contacts() -> InMemoryTaggableEntityAdapter:
    """Create a taggable contacts adapter with a single contact.

    Returns:
        InMemoryTaggableEntityAdapter for "contacts"
    """
    from litestar_automation.adapters import InMemoryTaggableEntityAdapter

    return InMemoryTaggableEntityAdapter(
        "contacts",
        {
            "c_1": {
                "id": "c_1",
                "firstName": "Ada",
                "lastName": "Lovelace",
                "email": "ada@example.com",
                "region": "EMEA",
                "ownerId": None,
            }
        },
    )


@pytest.fixture
def deals() -> InMemoryEntityAdapter:
    """Create a deals adapter with a single deal.

    Returns:
        InMemoryEntityAdapter for "deals"
    """
    from litestar_automation.adapters import InMemoryEntityAdapter

    return InMemoryEntityAdapter(
        "deals",
        {"d_1": {"id": "d_1", "title": "Big deal", "stage": "PROPOSAL", "amount": 50000, "ownerId": "u1"}},
    )


@pytest.fixture
def registry(contacts: InMemoryTaggableEntityAdapter, deals: InMemoryEntityAdapter) -> EntityAdapterRegistry:
    """Create an adapter registry holding the contacts and deals adapters.

    Args:
        contacts: Contacts adapter fixture
        deals: Deals adapter fixture

    Returns:
        EntityAdapterRegistry instance
    """
    from litestar_automation.engine.registry import EntityAdapterRegistry

    return EntityAdapterRegistry([contacts, deals])


@pytest.fixture
def webhook_transport() -> RecordingTransport:
    """Create a webhook transport answering 200.

    Returns:
        RecordingTransport instance
    """
    return RecordingTransport()


@pytest.fixture
async def webhooks(
    store: InMemoryWorkflowStore,
    automation_config: AutomationConfig,
    webhook_transport: RecordingTransport,
) -> AsyncIterator[WebhookDispatcher]:
    """Create a webhook dispatcher sending through a mock transport.

    Args:
        store: Workflow store fixture
        automation_config: Engine settings fixture
        webhook_transport: Mock transport fixture

    Yields:
        WebhookDispatcher instance
    """
    from litestar_automation.engine.webhooks import WebhookDispatcher

    async with httpx.AsyncClient(transport=httpx.MockTransport(webhook_transport)) as client:
        dispatcher = WebhookDispatcher(store, automation_config, client=client)
        yield dispatcher
        await dispatcher.aclose()


@pytest.fixture
def resolver(
    store: InMemoryWorkflowStore,
    registry: EntityAdapterRegistry,
    services: InMemoryCrmServices,
) -> AssignmentResolver:
    """Create an assignment resolver.

    Returns:
        AssignmentResolver instance
    """
    from litestar_automation.engine.assignment import AssignmentResolver

    return AssignmentResolver(store, registry, services)


@pytest.fixture
def runner(
    registry: EntityAdapterRegistry,
    services: InMemoryCrmServices,
    resolver: AssignmentResolver,
    webhooks: WebhookDispatcher,
    automation_config: AutomationConfig,
) -> ActionRunner:
    """Create an action runner wired to the in-memory collaborators.

    Returns:
        ActionRunner instance
    """
    from litestar_automation.engine.actions import ActionRunner

    return ActionRunner(registry, services, resolver, webhooks, automation_config)


@pytest.fixture
def mock_event_bus() -> MockEventBus:
    """Create mock event bus.

    Returns:
        MockEventBus instance
    """
    return MockEventBus()


@pytest.fixture
def executor(store: InMemoryWorkflowStore, runner: ActionRunner, mock_event_bus: MockEventBus) -> WorkflowExecutor:
    """Create a workflow executor with an event bus.

    Args:
        store: Workflow store fixture
        runner: Action runner fixture
        mock_event_bus: Mock event bus fixture

    Returns:
        WorkflowExecutor instance
    """
    from litestar_automation.engine.executor import WorkflowExecutor

    return WorkflowExecutor(store, runner, event_bus=mock_event_bus)


@pytest.fixture
def dispatcher(store: InMemoryWorkflowStore, executor: WorkflowExecutor) -> TriggerDispatcher:
    """Create a trigger dispatcher.

    Args:
        store: Workflow store fixture
        executor: Workflow executor fixture

    Returns:
        TriggerDispatcher instance
    """
    from litestar_automation.engine.dispatcher import TriggerDispatcher

    return TriggerDispatcher(store, executor)


# Pytest configuration
def pytest_configure(config: Any) -> None:
    """Configure pytest with custom markers.

    Args:
        config: Pytest config object
    """
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests")
