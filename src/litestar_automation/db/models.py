"""SQLAlchemy models for automation persistence.

This module defines the database models backing the SQLAlchemy workflow store:
- WorkflowModel: Workflow definitions and their run statistics
- WorkflowTriggerModel: Events that make a workflow eligible
- WorkflowActionModel: Ordered actions of a workflow
- WorkflowExecutionModel: The execution ledger, one row per run
- AssignmentRuleModel: Owner assignment policies and their round-robin cursor
- WebhookDeliveryModel: Delivery log of outbound webhooks
"""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from advanced_alchemy.base import UUIDAuditBase
from sqlalchemy import JSON, DateTime, Enum, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import Mapped, mapped_column, relationship

from litestar_automation.core.types import (
    AssignmentMethod,
    BranchType,
    ExecutionStatus,
    TriggerType,
    WebhookDeliveryStatus,
    WorkflowStatus,
)

__all__ = [
    "AssignmentRuleModel",
    "WebhookDeliveryModel",
    "WorkflowActionModel",
    "WorkflowExecutionModel",
    "WorkflowModel",
    "WorkflowTriggerModel",
]


# Cross-database JSON type: uses JSONB for PostgreSQL, JSON for others (SQLite, MySQL, etc.)
JSONType = JSON().with_variant(JSONB, "postgresql")


class WorkflowModel(UUIDAuditBase):
    """Persisted workflow definition.

    Attributes:
        name: Display name.
        description: Optional description.
        entity_type: Entity kind the workflow reacts to.
        status: Lifecycle status.
        run_once: Run at most once to completion per record.
        run_order: Ordering among workflows matching the same event.
        total_executions: Number of finalized runs.
        last_executed_at: When the last run finalized.
        triggers: The workflow's triggers.
        actions: The workflow's actions, ordered by position.
    """

    __tablename__ = "automation_workflows"
    __table_args__ = (Index("ix_automation_workflows_entity_status", "entity_type", "status"),)

    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    entity_type: Mapped[str] = mapped_column(String(100))
    status: Mapped[WorkflowStatus] = mapped_column(
        Enum(WorkflowStatus, native_enum=False, length=50),
        default=WorkflowStatus.DRAFT,
    )
    run_once: Mapped[bool] = mapped_column(default=False)
    run_order: Mapped[int] = mapped_column(Integer, default=0)
    total_executions: Mapped[int] = mapped_column(Integer, default=0)
    last_executed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    # Relationships
    triggers: Mapped[list[WorkflowTriggerModel]] = relationship(
        back_populates="workflow",
        lazy="selectin",
        cascade="all, delete-orphan",
    )
    actions: Mapped[list[WorkflowActionModel]] = relationship(
        back_populates="workflow",
        lazy="selectin",
        cascade="all, delete-orphan",
        order_by="WorkflowActionModel.position",
    )


class WorkflowTriggerModel(UUIDAuditBase):
    """Persisted workflow trigger.

    Attributes:
        workflow_id: Foreign key to the workflow.
        trigger_type: The event kind.
        field: Field watched by change triggers.
        from_value: Required previous value.
        to_value: Required new value.
        conditions: Extra conditions as ``{field, operator, value}`` objects.
        date_field: Date field for date-based triggers.
        offset_days: Day offset for date-based triggers.
        offset_direction: ``before`` or ``after`` for date-based triggers.
    """

    __tablename__ = "automation_workflow_triggers"
    __table_args__ = (Index("ix_automation_workflow_triggers_workflow_type", "workflow_id", "trigger_type"),)

    workflow_id: Mapped[UUID] = mapped_column(ForeignKey("automation_workflows.id", ondelete="CASCADE"))
    trigger_type: Mapped[TriggerType] = mapped_column(Enum(TriggerType, native_enum=False, length=50))
    field: Mapped[str | None] = mapped_column(String(255), nullable=True)
    from_value: Mapped[str | None] = mapped_column(String(255), nullable=True)
    to_value: Mapped[str | None] = mapped_column(String(255), nullable=True)
    conditions: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    date_field: Mapped[str | None] = mapped_column(String(255), nullable=True)
    offset_days: Mapped[int | None] = mapped_column(Integer, nullable=True)
    offset_direction: Mapped[str | None] = mapped_column(String(20), nullable=True)

    # Relationships
    workflow: Mapped[WorkflowModel] = relationship(back_populates="triggers")


class WorkflowActionModel(UUIDAuditBase):
    """Persisted workflow action.

    The action kind is stored as plain text so rows written by newer versions with
    unknown kinds still load; the runner reports them as skipped.

    Attributes:
        workflow_id: Foreign key to the workflow.
        action_type: Kind of action.
        position: Execution order within the workflow.
        config: Configuration blob, keyed in camelCase.
        parent_action_id: Parent condition branch of a child action.
        branch_type: Branch side of a child action.
    """

    __tablename__ = "automation_workflow_actions"
    __table_args__ = (Index("ix_automation_workflow_actions_workflow_position", "workflow_id", "position"),)

    workflow_id: Mapped[UUID] = mapped_column(ForeignKey("automation_workflows.id", ondelete="CASCADE"))
    action_type: Mapped[str] = mapped_column(String(50))
    position: Mapped[int] = mapped_column(Integer, default=0)
    config: Mapped[dict[str, Any]] = mapped_column(JSONType, default=dict)
    parent_action_id: Mapped[UUID | None] = mapped_column(
        ForeignKey("automation_workflow_actions.id", ondelete="CASCADE"),
        nullable=True,
    )
    branch_type: Mapped[BranchType | None] = mapped_column(
        Enum(BranchType, native_enum=False, length=10),
        nullable=True,
    )

    # Relationships
    workflow: Mapped[WorkflowModel] = relationship(back_populates="actions")


class WorkflowExecutionModel(UUIDAuditBase):
    """One workflow run for one record.

    Attributes:
        workflow_id: Foreign key to the workflow.
        trigger_type: The event kind that started the run.
        triggered_by: The user who caused the run.
        entity_type: Entity kind of the target record.
        entity_id: Identifier of the target record.
        status: running, completed or failed.
        actions_executed: Number of actions that succeeded.
        action_results: Per-action results in execution order.
        error_message: Why the run failed.
        started_at: When the run started.
        completed_at: When the run reached a terminal state.
    """

    __tablename__ = "automation_workflow_executions"
    __table_args__ = (
        Index("ix_automation_executions_workflow_id", "workflow_id"),
        Index("ix_automation_executions_entity", "entity_type", "entity_id"),
        Index("ix_automation_executions_status", "status"),
    )

    workflow_id: Mapped[UUID] = mapped_column(ForeignKey("automation_workflows.id", ondelete="CASCADE"))
    trigger_type: Mapped[TriggerType] = mapped_column(Enum(TriggerType, native_enum=False, length=50))
    triggered_by: Mapped[str | None] = mapped_column(String(255), nullable=True)
    entity_type: Mapped[str] = mapped_column(String(100))
    entity_id: Mapped[str] = mapped_column(String(255))
    status: Mapped[ExecutionStatus] = mapped_column(
        Enum(ExecutionStatus, native_enum=False, length=50),
        default=ExecutionStatus.RUNNING,
    )
    actions_executed: Mapped[int] = mapped_column(Integer, default=0)
    action_results: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    error_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True))
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class AssignmentRuleModel(UUIDAuditBase):
    """Persisted owner assignment policy.

    Attributes:
        name: Display name.
        description: Optional description.
        entity_type: Entity kind the rule applies to.
        is_active: Inactive rules are never applied.
        priority: Ordering among rules for the same entity kind.
        method: Assignment strategy.
        assign_to_user_id: Target of specific-user rules.
        team_id: Team whose members form the pool when ``user_ids`` is empty.
        user_ids: Candidate pool.
        territory_field: Entity field read by territory rules.
        territory_map: Field value to user id map.
        conditions: Conditions used when selecting a rule for a record.
        last_assigned_index: Round-robin cursor.
    """

    __tablename__ = "automation_assignment_rules"
    __table_args__ = (Index("ix_automation_assignment_rules_entity_active", "entity_type", "is_active"),)

    name: Mapped[str] = mapped_column(String(255))
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    entity_type: Mapped[str] = mapped_column(String(100))
    is_active: Mapped[bool] = mapped_column(default=True)
    priority: Mapped[int] = mapped_column(Integer, default=0)
    method: Mapped[AssignmentMethod] = mapped_column(Enum(AssignmentMethod, native_enum=False, length=50))
    assign_to_user_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    team_id: Mapped[str | None] = mapped_column(String(255), nullable=True)
    user_ids: Mapped[list[str]] = mapped_column(JSONType, default=list)
    territory_field: Mapped[str | None] = mapped_column(String(255), nullable=True)
    territory_map: Mapped[dict[str, str]] = mapped_column(JSONType, default=dict)
    conditions: Mapped[list[dict[str, Any]]] = mapped_column(JSONType, default=list)
    last_assigned_index: Mapped[int] = mapped_column(Integer, default=0)


class WebhookDeliveryModel(UUIDAuditBase):
    """Delivery log entry of one outbound webhook.

    Attributes:
        action_id: The action that produced the call.
        workflow_id: The workflow that ran the action.
        execution_id: The run that produced the call.
        url: Target URL.
        method: HTTP method.
        status: pending, delivered or failed.
        attempts: Number of requests made.
        response_status: Status code of the last response.
        error: Last error message.
        completed_at: When the delivery reached a terminal state.
    """

    __tablename__ = "automation_webhook_deliveries"
    __table_args__ = (Index("ix_automation_webhook_deliveries_status", "status"),)

    action_id: Mapped[UUID] = mapped_column(Uuid)
    workflow_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    execution_id: Mapped[UUID | None] = mapped_column(Uuid, nullable=True)
    url: Mapped[str] = mapped_column(Text)
    method: Mapped[str] = mapped_column(String(10))
    status: Mapped[WebhookDeliveryStatus] = mapped_column(
        Enum(WebhookDeliveryStatus, native_enum=False, length=50),
        default=WebhookDeliveryStatus.PENDING,
    )
    attempts: Mapped[int] = mapped_column(Integer, default=0)
    response_status: Mapped[int | None] = mapped_column(Integer, nullable=True)
    error: Mapped[str | None] = mapped_column(Text, nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
