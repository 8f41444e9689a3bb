"""Local in-memory workflow store.

This module provides an in-process implementation of the ``WorkflowStore`` protocol,
suitable for development, testing and single-instance deployments.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import TYPE_CHECKING

from litestar_automation.core.types import ExecutionStatus

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from litestar_automation.core.models import AssignmentRule, Execution, WebhookDelivery, Workflow
    from litestar_automation.core.types import TriggerType

__all__ = ["InMemoryWorkflowStore"]


class InMemoryWorkflowStore:
    """Dictionary-backed store for workflows, executions, rules and webhook deliveries.

    Records are held by reference, so callers observe counter and cursor updates on the
    objects they registered.

    Attributes:
        _workflows: Map of workflow ids to workflows.
        _executions: Map of execution ids to execution records, in insertion order.
        _rules: Map of assignment rule ids to rules.
        _deliveries: Map of delivery ids to webhook delivery log entries.
        _rotation_locks: Per-rule locks serializing round-robin cursor updates.
    """

    def __init__(self) -> None:
        """Initialize an empty store."""
        self._workflows: dict[UUID, Workflow] = {}
        self._executions: dict[UUID, Execution] = {}
        self._rules: dict[UUID, AssignmentRule] = {}
        self._deliveries: dict[UUID, WebhookDelivery] = {}
        self._rotation_locks: defaultdict[UUID, asyncio.Lock] = defaultdict(asyncio.Lock)

    def add_workflow(self, workflow: Workflow) -> Workflow:
        """Register or replace a workflow definition.

        Args:
            workflow: The workflow to store.

        Returns:
            The stored workflow.
        """
        self._workflows[workflow.id] = workflow
        return workflow

    def add_assignment_rule(self, rule: AssignmentRule) -> AssignmentRule:
        """Register or replace an assignment rule."""
        self._rules[rule.id] = rule
        return rule

    @property
    def deliveries(self) -> list[WebhookDelivery]:
        """Webhook delivery log entries, oldest first."""
        return list(self._deliveries.values())

    async def list_active_workflows(self, entity_type: str, trigger_type: TriggerType) -> list[Workflow]:
        matches = [
            workflow
            for workflow in self._workflows.values()
            if workflow.is_active
            and workflow.entity_type == entity_type
            and any(trigger.trigger_type == trigger_type for trigger in workflow.triggers)
        ]
        return sorted(matches, key=lambda workflow: workflow.run_order)

    async def get_workflow(self, workflow_id: UUID) -> Workflow | None:
        return self._workflows.get(workflow_id)

    async def has_completed_execution(self, workflow_id: UUID, entity_type: str, entity_id: str) -> bool:
        return any(
            execution.workflow_id == workflow_id
            and execution.entity_type == entity_type
            and execution.entity_id == entity_id
            and execution.status == ExecutionStatus.COMPLETED
            for execution in self._executions.values()
        )

    async def create_execution(self, execution: Execution) -> Execution:
        self._executions[execution.id] = execution
        return execution

    async def finish_execution(self, execution: Execution) -> Execution:
        self._executions[execution.id] = execution
        return execution

    async def get_execution(self, execution_id: UUID) -> Execution | None:
        return self._executions.get(execution_id)

    async def list_executions(self, workflow_id: UUID) -> list[Execution]:
        return [execution for execution in self._executions.values() if execution.workflow_id == workflow_id]

    async def list_entity_executions(self, entity_type: str, entity_id: str) -> list[Execution]:
        """Every execution that targeted a record, oldest first."""
        matches = [
            execution
            for execution in self._executions.values()
            if execution.entity_type == entity_type and execution.entity_id == entity_id
        ]
        return sorted(matches, key=lambda execution: execution.started_at)

    async def record_workflow_run(self, workflow_id: UUID, executed_at: datetime) -> None:
        workflow = self._workflows.get(workflow_id)
        if workflow is None:
            return
        workflow.total_executions += 1
        workflow.last_executed_at = executed_at

    async def get_assignment_rule(self, rule_id: UUID) -> AssignmentRule | None:
        return self._rules.get(rule_id)

    async def advance_rotation(self, rule_id: UUID, pool_size: int) -> int | None:
        """Move a rule's round-robin cursor under the rule's lock.

        Args:
            rule_id: The assignment rule.
            pool_size: Current size of the candidate pool. Must be positive.

        Returns:
            The new cursor, or None if the rule does not exist.
        """
        async with self._rotation_locks[rule_id]:
            rule = self._rules.get(rule_id)
            if rule is None:
                return None
            rule.last_assigned_index = (rule.last_assigned_index + 1) % pool_size
            return rule.last_assigned_index

    async def save_webhook_delivery(self, delivery: WebhookDelivery) -> WebhookDelivery:
        self._deliveries[delivery.id] = delivery
        return delivery
