"""Concrete data models for litestar-automation.

This module provides the dataclass records the engine works with: workflow definitions
(workflow, trigger, action), the execution ledger (execution, action result), assignment
rules and webhook deliveries. Stores convert their persisted rows into these records.
"""

from __future__ import annotations

import dataclasses
from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any
from uuid import UUID, uuid4

from litestar_automation.core.types import (
    ActionResultStatus,
    AssignmentMethod,
    BranchType,
    ExecutionStatus,
    TriggerType,
    WebhookDeliveryStatus,
    WorkflowStatus,
)

__all__ = [
    "Action",
    "ActionResult",
    "AssignmentRule",
    "Condition",
    "Execution",
    "Trigger",
    "WebhookDelivery",
    "Workflow",
]


@dataclass(frozen=True)
class Condition:
    """A single ``(field, operator, value)`` predicate over an entity snapshot.

    Attributes:
        field: Name of the entity field to read.
        operator: One of the ``ConditionOperator`` values. Unknown operators never match.
        value: The comparison value. ``in``/``not_in`` expect a list.
    """

    field: str
    operator: str
    value: Any = None

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> Condition:
        """Build a condition from its stored JSON form.

        Args:
            data: Mapping with ``field``, ``operator`` and optional ``value`` keys.

        Returns:
            The condition.
        """
        return cls(
            field=str(data.get("field", "")),
            operator=str(data.get("operator", "")),
            value=data.get("value"),
        )

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the stored JSON form."""
        return {"field": self.field, "operator": self.operator, "value": self.value}


@dataclass
class Trigger:
    """An event kind that makes a workflow eligible, with optional narrowing.

    Attributes:
        trigger_type: The event kind.
        field: Field watched by FIELD_CHANGED/STAGE_CHANGED triggers.
        from_value: Required previous value, compared as a string.
        to_value: Required new value, compared as a string.
        conditions: Extra conditions ANDed on top of the value transition check.
        date_field: Date field for DATE_BASED triggers.
        offset_days: Day offset for DATE_BASED triggers.
        offset_direction: ``"before"`` or ``"after"`` for DATE_BASED triggers.
        id: Identifier of the trigger.
    """

    trigger_type: TriggerType
    field: str | None = None
    from_value: str | None = None
    to_value: str | None = None
    conditions: list[Condition] = dataclasses.field(default_factory=list)
    date_field: str | None = None
    offset_days: int | None = None
    offset_direction: str | None = None
    id: UUID = dataclasses.field(default_factory=uuid4)


@dataclass
class Action:
    """One step of a workflow's ordered action chain.

    Attributes:
        action_type: Kind of action. Stored as a string so unrecognized kinds survive
            a round trip and are reported as skipped.
        position: Execution order within the workflow. Ties are allowed.
        config: The stored configuration blob, parsed per kind at execution time.
        parent_action_id: Parent condition branch, reserved for branch children.
        branch_type: Branch side of a child action.
        id: Identifier of the action.
    """

    action_type: str
    position: int = 0
    config: dict[str, Any] = field(default_factory=dict)
    parent_action_id: UUID | None = None
    branch_type: BranchType | None = None
    id: UUID = field(default_factory=uuid4)


@dataclass
class Workflow:
    """A trigger-condition-action rule for one entity kind.

    Attributes:
        name: Display name.
        entity_type: Entity kind the workflow reacts to.
        status: Lifecycle status; only ACTIVE workflows are dispatched.
        run_once: Run at most once to completion per record.
        run_order: Ordering among workflows matching the same event.
        triggers: Events that make the workflow eligible.
        actions: Actions to run, ordered by ``position``.
        description: Optional description.
        total_executions: Number of finalized runs.
        last_executed_at: When the last run finalized.
        id: Identifier of the workflow.
    """

    name: str
    entity_type: str
    status: WorkflowStatus = WorkflowStatus.DRAFT
    run_once: bool = False
    run_order: int = 0
    triggers: list[Trigger] = field(default_factory=list)
    actions: list[Action] = field(default_factory=list)
    description: str | None = None
    total_executions: int = 0
    last_executed_at: datetime | None = None
    id: UUID = field(default_factory=uuid4)

    @property
    def is_active(self) -> bool:
        """Whether the workflow is eligible for dispatch."""
        return self.status == WorkflowStatus.ACTIVE

    def ordered_actions(self) -> list[Action]:
        """Actions sorted by position, keeping definition order among equal positions."""
        return sorted(self.actions, key=lambda action: action.position)


@dataclass(frozen=True)
class ActionResult:
    """Outcome of one action within a run.

    Attributes:
        action_id: Identifier of the action.
        action_type: Kind of the action.
        status: success, failed or skipped.
        result: Optional payload describing what the action did.
        error: Error message for failed actions.
    """

    action_id: UUID
    action_type: str
    status: ActionResultStatus
    result: Any = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the JSON form stored on the execution record."""
        data: dict[str, Any] = {
            "actionId": str(self.action_id),
            "actionType": str(self.action_type),
            "status": str(self.status),
        }
        if self.result is not None:
            data["result"] = self.result
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> ActionResult:
        """Rebuild a result from its stored JSON form."""
        return cls(
            action_id=UUID(str(data["actionId"])),
            action_type=str(data["actionType"]),
            status=ActionResultStatus(data["status"]),
            result=data.get("result"),
            error=data.get("error"),
        )


@dataclass
class Execution:
    """Audit record of one workflow run for one target record.

    Created in ``running`` state and moved exactly once to ``completed`` or ``failed``.

    Attributes:
        workflow_id: The workflow that ran.
        trigger_type: The event kind that started the run.
        entity_type: Entity kind of the target record.
        entity_id: Identifier of the target record.
        triggered_by: The user who caused the run, if any.
        status: Current status of the run.
        actions_executed: Number of actions that succeeded.
        action_results: Results in execution order.
        error_message: Why the run failed.
        started_at: When the run started.
        completed_at: When the run reached a terminal state.
        id: Identifier of the execution.
    """

    workflow_id: UUID
    trigger_type: TriggerType
    entity_type: str
    entity_id: str
    started_at: datetime
    triggered_by: str | None = None
    status: ExecutionStatus = ExecutionStatus.RUNNING
    actions_executed: int = 0
    action_results: list[ActionResult] = field(default_factory=list)
    error_message: str | None = None
    completed_at: datetime | None = None
    id: UUID = field(default_factory=uuid4)

    @property
    def is_finished(self) -> bool:
        """Whether the run reached a terminal state."""
        return self.status != ExecutionStatus.RUNNING


@dataclass
class AssignmentRule:
    """Policy for choosing the owner of a record.

    Attributes:
        name: Display name.
        entity_type: Entity kind the rule applies to.
        method: Assignment strategy.
        is_active: Inactive rules are never applied.
        priority: Ordering among rules for the same entity kind, lowest first.
        assign_to_user_id: Target of SPECIFIC_USER rules.
        team_id: Team whose members form the pool when ``user_ids`` is empty.
        user_ids: Candidate pool for ROUND_ROBIN and LOAD_BALANCED rules.
        territory_field: Entity field read by TERRITORY rules.
        territory_map: Field value to user id map for TERRITORY rules.
        conditions: Conditions used when selecting a rule for a record.
        last_assigned_index: Persisted ROUND_ROBIN cursor, meaningful modulo the pool size.
        description: Optional description.
        id: Identifier of the rule.
    """

    name: str
    entity_type: str
    method: AssignmentMethod
    is_active: bool = True
    priority: int = 0
    assign_to_user_id: str | None = None
    team_id: str | None = None
    user_ids: list[str] = field(default_factory=list)
    territory_field: str | None = None
    territory_map: dict[str, str] = field(default_factory=dict)
    conditions: list[Condition] = field(default_factory=list)
    last_assigned_index: int = 0
    description: str | None = None
    id: UUID = field(default_factory=uuid4)


@dataclass
class WebhookDelivery:
    """Delivery log entry for one outbound webhook.

    Attributes:
        url: Target URL.
        method: HTTP method.
        action_id: The SEND_WEBHOOK action that produced the call.
        workflow_id: The workflow that ran the action.
        execution_id: The run that produced the call, if known.
        status: pending, delivered or failed.
        attempts: Number of requests made so far.
        response_status: Status code of the last response, if one was received.
        error: Last error message.
        created_at: When the delivery was scheduled.
        completed_at: When the delivery reached a terminal state.
        id: Identifier of the delivery.
    """

    url: str
    method: str
    action_id: UUID
    created_at: datetime
    workflow_id: UUID | None = None
    execution_id: UUID | None = None
    status: WebhookDeliveryStatus = WebhookDeliveryStatus.PENDING
    attempts: int = 0
    response_status: int | None = None
    error: str | None = None
    completed_at: datetime | None = None
    id: UUID = field(default_factory=uuid4)
