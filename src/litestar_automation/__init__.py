"""Litestar Automation - trigger-condition-action workflows for CRM records.

This package provides a workflow automation engine that reacts to record lifecycle
events, evaluates declarative conditions against an entity snapshot and runs an ordered
chain of side-effecting actions, with owner assignment rules and a Litestar plugin.

Key Features:
    - Record created/updated, field changed, stage changed, date based and manual triggers
    - Condition operators over heterogeneous JSON-like values that fail closed
    - Email, task, field update, webhook, owner, tag and activity actions
    - Specific user, round robin, territory and load-balanced owner assignment
    - Auditable execution ledger with per-action results

Example:
    >>> from litestar_automation import evaluate_conditions
    >>>
    >>> evaluate_conditions(
    ...     [{"field": "amount", "operator": "greater_than", "value": 1000}],
    ...     {"amount": "2500"},
    ... )
    True
"""

from __future__ import annotations

from litestar_automation.__metadata__ import __project__, __version__
from litestar_automation.config import AutomationConfig
from litestar_automation.core.conditions import evaluate_conditions
from litestar_automation.core.context import ExecutionContext
from litestar_automation.core.models import Action, AssignmentRule, Condition, Execution, Trigger, Workflow
from litestar_automation.core.templates import render_template
from litestar_automation.core.types import (
    ActionType,
    AssignmentMethod,
    ExecutionStatus,
    TriggerType,
    WorkflowStatus,
)
from litestar_automation.engine.dispatcher import TriggerDispatcher
from litestar_automation.engine.executor import WorkflowExecutor
from litestar_automation.exceptions import (
    ActionConfigError,
    AutomationError,
    EntityAdapterNotFoundError,
    WorkflowNotFoundError,
)
from litestar_automation.plugin import AutomationPlugin, AutomationPluginConfig

__all__ = (
    "Action",
    "ActionConfigError",
    "ActionType",
    "AssignmentMethod",
    "AssignmentRule",
    "AutomationConfig",
    "AutomationError",
    "AutomationPlugin",
    "AutomationPluginConfig",
    "Condition",
    "EntityAdapterNotFoundError",
    "Execution",
    "ExecutionContext",
    "ExecutionStatus",
    "Trigger",
    "TriggerDispatcher",
    "TriggerType",
    "Workflow",
    "WorkflowExecutor",
    "WorkflowNotFoundError",
    "WorkflowStatus",
    "__project__",
    "__version__",
    "evaluate_conditions",
    "render_template",
)
