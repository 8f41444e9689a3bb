"""Repository implementations for automation persistence.

This module provides async repositories over the automation models using
advanced-alchemy's repository pattern.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from advanced_alchemy.filters import LimitOffset, OrderBy
from advanced_alchemy.repository import SQLAlchemyAsyncRepository
from sqlalchemy import and_, select, update

from litestar_automation.core.types import ExecutionStatus, WebhookDeliveryStatus, WorkflowStatus
from litestar_automation.db.models import (
    AssignmentRuleModel,
    WebhookDeliveryModel,
    WorkflowExecutionModel,
    WorkflowModel,
    WorkflowTriggerModel,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from litestar_automation.core.types import TriggerType

__all__ = [
    "AssignmentRuleRepository",
    "WebhookDeliveryRepository",
    "WorkflowExecutionRepository",
    "WorkflowRepository",
]


class WorkflowRepository(SQLAlchemyAsyncRepository[WorkflowModel]):
    """Repository for workflow definitions.

    Triggers and actions are loaded together with their workflow.
    """

    model_type = WorkflowModel

    async def list_active_for_trigger(
        self,
        entity_type: str,
        trigger_type: TriggerType,
    ) -> Sequence[WorkflowModel]:
        """List active workflows for an entity kind having a trigger of the given kind.

        Args:
            entity_type: The entity kind.
            trigger_type: The trigger kind.

        Returns:
            Matching workflows ordered by run order, then creation time.
        """
        stmt = (
            select(WorkflowModel)
            .where(
                and_(
                    WorkflowModel.entity_type == entity_type,
                    WorkflowModel.status == WorkflowStatus.ACTIVE,
                    WorkflowModel.triggers.any(WorkflowTriggerModel.trigger_type == trigger_type),
                )
            )
            .order_by(WorkflowModel.run_order, WorkflowModel.created_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def record_run(self, workflow_id: UUID, executed_at: datetime) -> None:
        """Increment the run counter and set the last run time in one statement.

        Args:
            workflow_id: The workflow.
            executed_at: When the run finalized.
        """
        stmt = (
            update(WorkflowModel)
            .where(WorkflowModel.id == workflow_id)
            .values(total_executions=WorkflowModel.total_executions + 1, last_executed_at=executed_at)
            .execution_options(synchronize_session=False)
        )
        await self.session.execute(stmt)


class WorkflowExecutionRepository(SQLAlchemyAsyncRepository[WorkflowExecutionModel]):
    """Repository for the execution ledger."""

    model_type = WorkflowExecutionModel

    async def has_completed(self, workflow_id: UUID, entity_type: str, entity_id: str) -> bool:
        """Check whether a workflow completed a run for a record.

        Args:
            workflow_id: The workflow.
            entity_type: Entity kind of the record.
            entity_id: Identifier of the record.

        Returns:
            True if a completed execution exists.
        """
        stmt = (
            select(WorkflowExecutionModel.id)
            .where(
                and_(
                    WorkflowExecutionModel.workflow_id == workflow_id,
                    WorkflowExecutionModel.entity_type == entity_type,
                    WorkflowExecutionModel.entity_id == entity_id,
                    WorkflowExecutionModel.status == ExecutionStatus.COMPLETED,
                )
            )
            .limit(1)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None

    async def find_by_workflow(
        self,
        workflow_id: UUID,
        status: ExecutionStatus | None = None,
        limit: int = 100,
        offset: int = 0,
    ) -> tuple[Sequence[WorkflowExecutionModel], int]:
        """Find executions of a workflow, newest first.

        Args:
            workflow_id: The workflow.
            status: Optional status filter.
            limit: Maximum number of results.
            offset: Number of results to skip.

        Returns:
            Tuple of (executions, total_count).
        """
        conditions = [WorkflowExecutionModel.workflow_id == workflow_id]

        if status:
            conditions.append(WorkflowExecutionModel.status == status)

        return await self.list_and_count(
            *conditions,
            LimitOffset(limit=limit, offset=offset),
            OrderBy(field_name="started_at", sort_order="desc"),
        )

    async def find_by_entity(self, entity_type: str, entity_id: str) -> Sequence[WorkflowExecutionModel]:
        """Find every execution that targeted a record, oldest first."""
        stmt = (
            select(WorkflowExecutionModel)
            .where(
                and_(
                    WorkflowExecutionModel.entity_type == entity_type,
                    WorkflowExecutionModel.entity_id == entity_id,
                )
            )
            .order_by(WorkflowExecutionModel.started_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()


class AssignmentRuleRepository(SQLAlchemyAsyncRepository[AssignmentRuleModel]):
    """Repository for assignment rules."""

    model_type = AssignmentRuleModel

    async def list_active(self, entity_type: str) -> Sequence[AssignmentRuleModel]:
        """List active rules for an entity kind, lowest priority value first.

        Args:
            entity_type: The entity kind.

        Returns:
            Active assignment rules.
        """
        stmt = (
            select(AssignmentRuleModel)
            .where(
                and_(
                    AssignmentRuleModel.entity_type == entity_type,
                    AssignmentRuleModel.is_active == True,  # noqa: E712
                )
            )
            .order_by(AssignmentRuleModel.priority, AssignmentRuleModel.created_at)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()

    async def advance_rotation(self, rule_id: UUID, pool_size: int) -> int | None:
        """Advance the round-robin cursor with a single UPDATE ... RETURNING.

        The read, the modulo step and the write happen in one statement, so concurrent
        resolutions of the same rule never observe the same cursor.

        Args:
            rule_id: The rule.
            pool_size: Current candidate pool size. Must be positive.

        Returns:
            The new cursor, or None if the rule does not exist.
        """
        stmt = (
            update(AssignmentRuleModel)
            .where(AssignmentRuleModel.id == rule_id)
            .values(last_assigned_index=(AssignmentRuleModel.last_assigned_index + 1) % pool_size)
            .returning(AssignmentRuleModel.last_assigned_index)
            .execution_options(synchronize_session=False)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none()


class WebhookDeliveryRepository(SQLAlchemyAsyncRepository[WebhookDeliveryModel]):
    """Repository for the webhook delivery log."""

    model_type = WebhookDeliveryModel

    async def find_failed(self, limit: int = 100) -> Sequence[WebhookDeliveryModel]:
        """Find failed deliveries, newest first.

        Args:
            limit: Maximum number of results.

        Returns:
            Failed delivery log entries.
        """
        stmt = (
            select(WebhookDeliveryModel)
            .where(WebhookDeliveryModel.status == WebhookDeliveryStatus.FAILED)
            .order_by(WebhookDeliveryModel.created_at.desc())
            .limit(limit)
        )
        result = await self.session.execute(stmt)
        return result.scalars().all()
