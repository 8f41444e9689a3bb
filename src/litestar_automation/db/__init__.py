"""Database persistence layer for litestar-automation.

This module provides SQLAlchemy models, advanced-alchemy repositories and a
``WorkflowStore`` implementation persisting workflows, the execution ledger, assignment
rules and webhook deliveries.
"""

from __future__ import annotations

from litestar_automation.db.models import (
    AssignmentRuleModel,
    WebhookDeliveryModel,
    WorkflowActionModel,
    WorkflowExecutionModel,
    WorkflowModel,
    WorkflowTriggerModel,
)
from litestar_automation.db.repositories import (
    AssignmentRuleRepository,
    WebhookDeliveryRepository,
    WorkflowExecutionRepository,
    WorkflowRepository,
)
from litestar_automation.db.store import SQLAlchemyWorkflowStore

__all__ = [
    "AssignmentRuleModel",
    "AssignmentRuleRepository",
    "SQLAlchemyWorkflowStore",
    "WebhookDeliveryModel",
    "WebhookDeliveryRepository",
    "WorkflowActionModel",
    "WorkflowExecutionModel",
    "WorkflowExecutionRepository",
    "WorkflowModel",
    "WorkflowRepository",
    "WorkflowTriggerModel",
]
