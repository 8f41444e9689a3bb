"""Workflow automation runtime.

This module provides the pieces that run workflows: the entity adapter registry, owner
resolution, webhook delivery, the action runner, the workflow executor, the trigger
dispatcher and an in-memory store.
"""

from __future__ import annotations

from litestar_automation.engine.actions import ActionRunner
from litestar_automation.engine.assignment import AssignmentResolver
from litestar_automation.engine.dispatcher import TriggerDispatcher, trigger_matches, workflow_matches
from litestar_automation.engine.executor import WorkflowExecutor
from litestar_automation.engine.local import InMemoryWorkflowStore
from litestar_automation.engine.registry import EntityAdapterRegistry
from litestar_automation.engine.webhooks import WebhookDispatcher

__all__ = [
    "ActionRunner",
    "AssignmentResolver",
    "EntityAdapterRegistry",
    "InMemoryWorkflowStore",
    "TriggerDispatcher",
    "WebhookDispatcher",
    "WorkflowExecutor",
    "trigger_matches",
    "workflow_matches",
]
