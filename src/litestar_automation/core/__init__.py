"""Core domain module for litestar-automation.

This module exports the building blocks shared by the engine and the persistence layer:
types, records, typed action configurations, the execution context, collaborator
protocols, and the pure condition and template evaluators.
"""

from __future__ import annotations

from litestar_automation.core.actions import (
    ActionConfig,
    AssignOwnerConfig,
    ConditionBranchConfig,
    CreateActivityConfig,
    CreateTaskConfig,
    SendEmailConfig,
    SendWebhookConfig,
    TagConfig,
    UpdateFieldConfig,
    WaitDelayConfig,
    parse_action_config,
)
from litestar_automation.core.conditions import evaluate_condition, evaluate_conditions
from litestar_automation.core.context import ExecutionContext
from litestar_automation.core.models import (
    Action,
    ActionResult,
    AssignmentRule,
    Condition,
    Execution,
    Trigger,
    WebhookDelivery,
    Workflow,
)
from litestar_automation.core.protocols import (
    CrmServices,
    EntityAdapter,
    EventBus,
    TaggableEntityAdapter,
    WorkflowStore,
)
from litestar_automation.core.templates import get_field_value, render_template
from litestar_automation.core.types import (
    ActionResultStatus,
    ActionType,
    ActivityType,
    AssignmentMethod,
    BranchType,
    ConditionOperator,
    ExecutionStatus,
    Snapshot,
    TaskPriority,
    TriggerType,
    WebhookDeliveryStatus,
    WorkflowStatus,
)

__all__ = [
    "Action",
    "ActionConfig",
    "ActionResult",
    "ActionResultStatus",
    "ActionType",
    "ActivityType",
    "AssignOwnerConfig",
    "AssignmentMethod",
    "AssignmentRule",
    "BranchType",
    "Condition",
    "ConditionBranchConfig",
    "ConditionOperator",
    "CreateActivityConfig",
    "CreateTaskConfig",
    "CrmServices",
    "EntityAdapter",
    "EventBus",
    "Execution",
    "ExecutionContext",
    "ExecutionStatus",
    "SendEmailConfig",
    "SendWebhookConfig",
    "Snapshot",
    "TagConfig",
    "TaggableEntityAdapter",
    "TaskPriority",
    "Trigger",
    "TriggerType",
    "UpdateFieldConfig",
    "WaitDelayConfig",
    "WebhookDelivery",
    "WebhookDeliveryStatus",
    "Workflow",
    "WorkflowStatus",
    "WorkflowStore",
    "evaluate_condition",
    "evaluate_conditions",
    "get_field_value",
    "parse_action_config",
    "render_template",
]
