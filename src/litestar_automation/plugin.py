"""Litestar plugin for workflow automation.

This module provides the AutomationPlugin, which assembles the automation engine and
makes its entry points available to route handlers through dependency injection.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from litestar.di import Provide
from litestar.plugins import InitPluginProtocol

from litestar_automation.adapters import InMemoryCrmServices
from litestar_automation.config import AutomationConfig
from litestar_automation.engine.actions import ActionRunner
from litestar_automation.engine.assignment import AssignmentResolver
from litestar_automation.engine.dispatcher import TriggerDispatcher
from litestar_automation.engine.executor import WorkflowExecutor
from litestar_automation.engine.local import InMemoryWorkflowStore
from litestar_automation.engine.registry import EntityAdapterRegistry
from litestar_automation.engine.webhooks import WebhookDispatcher

if TYPE_CHECKING:
    import httpx
    from litestar.config.app import AppConfig

    from litestar_automation.core.protocols import CrmServices, EntityAdapter, EventBus, WorkflowStore

__all__ = ["AutomationPlugin", "AutomationPluginConfig"]


@dataclass
class AutomationPluginConfig:
    """Configuration for the AutomationPlugin.

    Attributes:
        store: Workflow store. Defaults to an in-memory store.
        services: CRM services used by actions. Defaults to in-memory services.
        adapters: Entity adapters to register, one per supported entity kind.
        settings: Engine settings.
        event_bus: Optional event bus receiving ``execution.*`` events.
        http_client: Optional HTTP client for webhooks. When omitted the webhook
            dispatcher creates and closes its own.
        dependency_key_dispatcher: The key used for dependency injection of the
            TriggerDispatcher. Defaults to "workflow_dispatcher".
        dependency_key_executor: The key used for dependency injection of the
            WorkflowExecutor. Defaults to "workflow_executor".
    """

    store: WorkflowStore | None = None
    services: CrmServices | None = None
    adapters: list[EntityAdapter] = field(default_factory=list)
    settings: AutomationConfig = field(default_factory=AutomationConfig)
    event_bus: EventBus | None = None
    http_client: httpx.AsyncClient | None = None
    dependency_key_dispatcher: str = "workflow_dispatcher"
    dependency_key_executor: str = "workflow_executor"


class AutomationPlugin(InitPluginProtocol):
    """Litestar plugin wiring the automation engine into an application.

    On shutdown the plugin waits for background workflow runs and webhook deliveries,
    then closes the webhook HTTP client.

    Example:
        Dispatching from a route handler::

            from litestar import Litestar, patch

            from litestar_automation import (
                AutomationPlugin,
                AutomationPluginConfig,
                ExecutionContext,
                TriggerDispatcher,
                TriggerType,
            )


            @patch("/deals/{deal_id:str}")
            async def update_deal(deal_id: str, data: dict, workflow_dispatcher: TriggerDispatcher) -> dict:
                before, after = await deals.update(deal_id, data)
                await workflow_dispatcher.dispatch(
                    TriggerType.RECORD_UPDATED,
                    ExecutionContext(entity_type="deals", entity_id=deal_id, entity=after, previous_values=before),
                )
                return after


            app = Litestar(
                route_handlers=[update_deal],
                plugins=[AutomationPlugin(AutomationPluginConfig(adapters=[DealAdapter()]))],
            )
    """

    __slots__ = ("_config", "_dispatcher", "_executor", "_webhooks")

    def __init__(self, config: AutomationPluginConfig | None = None) -> None:
        """Initialize the plugin.

        Args:
            config: Optional configuration for the plugin.
        """
        self._config = config or AutomationPluginConfig()
        self._dispatcher: TriggerDispatcher | None = None
        self._executor: WorkflowExecutor | None = None
        self._webhooks: WebhookDispatcher | None = None

    @property
    def dispatcher(self) -> TriggerDispatcher:
        """Get the trigger dispatcher.

        Raises:
            RuntimeError: If accessed before plugin initialization.
        """
        if self._dispatcher is None:
            msg = "AutomationPlugin has not been initialized. Access dispatcher after app startup."
            raise RuntimeError(msg)
        return self._dispatcher

    @property
    def executor(self) -> WorkflowExecutor:
        """Get the workflow executor.

        Raises:
            RuntimeError: If accessed before plugin initialization.
        """
        if self._executor is None:
            msg = "AutomationPlugin has not been initialized. Access executor after app startup."
            raise RuntimeError(msg)
        return self._executor

    def on_app_init(self, app_config: AppConfig) -> AppConfig:
        """Build the engine and register its dependency providers and shutdown hook.

        Args:
            app_config: The Litestar application configuration.

        Returns:
            The modified application configuration.
        """
        config = self._config
        store = config.store or InMemoryWorkflowStore()
        services = config.services or InMemoryCrmServices()
        registry = EntityAdapterRegistry(config.adapters)

        self._webhooks = WebhookDispatcher(store, config.settings, client=config.http_client)
        runner = ActionRunner(
            registry,
            services,
            AssignmentResolver(store, registry, services),
            self._webhooks,
            config.settings,
        )
        self._executor = WorkflowExecutor(store, runner, event_bus=config.event_bus)
        self._dispatcher = TriggerDispatcher(store, self._executor)

        def provide_dispatcher() -> TriggerDispatcher:
            return self._dispatcher  # type: ignore[return-value]

        def provide_executor() -> WorkflowExecutor:
            return self._executor  # type: ignore[return-value]

        app_config.dependencies[config.dependency_key_dispatcher] = Provide(
            provide_dispatcher,
            sync_to_thread=False,
        )
        app_config.dependencies[config.dependency_key_executor] = Provide(
            provide_executor,
            sync_to_thread=False,
        )
        app_config.signature_namespace.update(
            {"TriggerDispatcher": TriggerDispatcher, "WorkflowExecutor": WorkflowExecutor}
        )
        app_config.on_shutdown.append(self._shutdown)
        return app_config

    async def _shutdown(self, *_: Any) -> None:
        if self._dispatcher is not None:
            await self._dispatcher.drain()
        if self._webhooks is not None:
            await self._webhooks.aclose()
