"""SQLAlchemy-backed workflow store.

This module provides a ``WorkflowStore`` implementation over the automation models.
Every operation opens its own session from an ``async_sessionmaker``, so concurrent
background runs never share a session.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from advanced_alchemy.filters import OrderBy

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

if TYPE_CHECKING:
    from datetime import datetime
    from uuid import UUID

    from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

    from litestar_automation.core.types import TriggerType

__all__ = ["SQLAlchemyWorkflowStore"]


def _to_workflow(model: WorkflowModel) -> Workflow:
    return Workflow(
        id=model.id,
        name=model.name,
        description=model.description,
        entity_type=model.entity_type,
        status=model.status,
        run_once=model.run_once,
        run_order=model.run_order,
        total_executions=model.total_executions,
        last_executed_at=model.last_executed_at,
        triggers=[
            Trigger(
                id=trigger.id,
                trigger_type=trigger.trigger_type,
                field=trigger.field,
                from_value=trigger.from_value,
                to_value=trigger.to_value,
                conditions=[Condition.from_dict(c) for c in trigger.conditions or []],
                date_field=trigger.date_field,
                offset_days=trigger.offset_days,
                offset_direction=trigger.offset_direction,
            )
            for trigger in model.triggers
        ],
        actions=[
            Action(
                id=action.id,
                action_type=action.action_type,
                position=action.position,
                config=dict(action.config or {}),
                parent_action_id=action.parent_action_id,
                branch_type=action.branch_type,
            )
            for action in model.actions
        ],
    )


def _to_execution(model: WorkflowExecutionModel) -> Execution:
    return Execution(
        id=model.id,
        workflow_id=model.workflow_id,
        trigger_type=model.trigger_type,
        triggered_by=model.triggered_by,
        entity_type=model.entity_type,
        entity_id=model.entity_id,
        status=model.status,
        actions_executed=model.actions_executed,
        action_results=[ActionResult.from_dict(r) for r in model.action_results or []],
        error_message=model.error_message,
        started_at=model.started_at,
        completed_at=model.completed_at,
    )


def _to_rule(model: AssignmentRuleModel) -> AssignmentRule:
    return AssignmentRule(
        id=model.id,
        name=model.name,
        description=model.description,
        entity_type=model.entity_type,
        is_active=model.is_active,
        priority=model.priority,
        method=model.method,
        assign_to_user_id=model.assign_to_user_id,
        team_id=model.team_id,
        user_ids=list(model.user_ids or []),
        territory_field=model.territory_field,
        territory_map=dict(model.territory_map or {}),
        conditions=[Condition.from_dict(c) for c in model.conditions or []],
        last_assigned_index=model.last_assigned_index,
    )


def _to_delivery(model: WebhookDeliveryModel) -> WebhookDelivery:
    return WebhookDelivery(
        id=model.id,
        url=model.url,
        method=model.method,
        action_id=model.action_id,
        workflow_id=model.workflow_id,
        execution_id=model.execution_id,
        status=model.status,
        attempts=model.attempts,
        response_status=model.response_status,
        error=model.error,
        created_at=model.created_at,
        completed_at=model.completed_at,
    )


class SQLAlchemyWorkflowStore:
    """Workflow store persisting to a relational database.

    Attributes:
        session_maker: Factory for the per-operation sessions.

    Example:
        >>> engine = create_async_engine("postgresql+asyncpg://localhost/crm")
        >>> store = SQLAlchemyWorkflowStore(async_sessionmaker(engine, expire_on_commit=False))
        >>> await store.save_workflow(workflow)
    """

    def __init__(self, session_maker: async_sessionmaker[AsyncSession]) -> None:
        """Initialize the store.

        Args:
            session_maker: Session factory. Sessions should not expire on commit.
        """
        self.session_maker = session_maker

    async def save_workflow(self, workflow: Workflow) -> Workflow:
        """Insert a workflow definition with its triggers and actions.

        Args:
            workflow: The workflow to persist.

        Returns:
            The workflow as stored.
        """
        model = WorkflowModel(
            id=workflow.id,
            name=workflow.name,
            description=workflow.description,
            entity_type=workflow.entity_type,
            status=workflow.status,
            run_once=workflow.run_once,
            run_order=workflow.run_order,
            total_executions=workflow.total_executions,
            last_executed_at=workflow.last_executed_at,
            triggers=[
                WorkflowTriggerModel(
                    id=trigger.id,
                    trigger_type=trigger.trigger_type,
                    field=trigger.field,
                    from_value=trigger.from_value,
                    to_value=trigger.to_value,
                    conditions=[c.to_dict() for c in trigger.conditions],
                    date_field=trigger.date_field,
                    offset_days=trigger.offset_days,
                    offset_direction=trigger.offset_direction,
                )
                for trigger in workflow.triggers
            ],
            actions=[
                WorkflowActionModel(
                    id=action.id,
                    action_type=str(action.action_type),
                    position=action.position,
                    config=dict(action.config),
                    parent_action_id=action.parent_action_id,
                    branch_type=action.branch_type,
                )
                for action in workflow.actions
            ],
        )
        async with self.session_maker() as session:
            repo = WorkflowRepository(session=session)
            await repo.add(model, auto_commit=True)
        return workflow

    async def save_assignment_rule(self, rule: AssignmentRule) -> AssignmentRule:
        """Insert an assignment rule."""
        model = AssignmentRuleModel(
            id=rule.id,
            name=rule.name,
            description=rule.description,
            entity_type=rule.entity_type,
            is_active=rule.is_active,
            priority=rule.priority,
            method=rule.method,
            assign_to_user_id=rule.assign_to_user_id,
            team_id=rule.team_id,
            user_ids=list(rule.user_ids),
            territory_field=rule.territory_field,
            territory_map=dict(rule.territory_map),
            conditions=[c.to_dict() for c in rule.conditions],
            last_assigned_index=rule.last_assigned_index,
        )
        async with self.session_maker() as session:
            await AssignmentRuleRepository(session=session).add(model, auto_commit=True)
        return rule

    async def list_active_workflows(self, entity_type: str, trigger_type: TriggerType) -> list[Workflow]:
        async with self.session_maker() as session:
            models = await WorkflowRepository(session=session).list_active_for_trigger(entity_type, trigger_type)
            return [_to_workflow(model) for model in models]

    async def get_workflow(self, workflow_id: UUID) -> Workflow | None:
        async with self.session_maker() as session:
            model = await WorkflowRepository(session=session).get_one_or_none(id=workflow_id)
            return _to_workflow(model) if model is not None else None

    async def has_completed_execution(self, workflow_id: UUID, entity_type: str, entity_id: str) -> bool:
        async with self.session_maker() as session:
            return await WorkflowExecutionRepository(session=session).has_completed(
                workflow_id, entity_type, entity_id
            )

    async def create_execution(self, execution: Execution) -> Execution:
        model = WorkflowExecutionModel(
            id=execution.id,
            workflow_id=execution.workflow_id,
            trigger_type=execution.trigger_type,
            triggered_by=execution.triggered_by,
            entity_type=execution.entity_type,
            entity_id=execution.entity_id,
            status=execution.status,
            actions_executed=execution.actions_executed,
            action_results=[r.to_dict() for r in execution.action_results],
            started_at=execution.started_at,
        )
        async with self.session_maker() as session:
            await WorkflowExecutionRepository(session=session).add(model, auto_commit=True)
        return execution

    async def finish_execution(self, execution: Execution) -> Execution:
        async with self.session_maker() as session:
            repo = WorkflowExecutionRepository(session=session)
            model = await repo.get(execution.id)
            model.status = execution.status
            model.actions_executed = execution.actions_executed
            model.action_results = [r.to_dict() for r in execution.action_results]
            model.error_message = execution.error_message
            model.completed_at = execution.completed_at
            await repo.update(model, auto_commit=True)
        return execution

    async def get_execution(self, execution_id: UUID) -> Execution | None:
        async with self.session_maker() as session:
            model = await WorkflowExecutionRepository(session=session).get_one_or_none(id=execution_id)
            return _to_execution(model) if model is not None else None

    async def list_executions(self, workflow_id: UUID) -> list[Execution]:
        async with self.session_maker() as session:
            models = await WorkflowExecutionRepository(session=session).list(
                WorkflowExecutionModel.workflow_id == workflow_id,
                OrderBy(field_name="started_at", sort_order="asc"),
            )
            return [_to_execution(model) for model in models]

    async def list_entity_executions(self, entity_type: str, entity_id: str) -> list[Execution]:
        """Every execution that targeted a record, oldest first."""
        async with self.session_maker() as session:
            models = await WorkflowExecutionRepository(session=session).find_by_entity(entity_type, entity_id)
            return [_to_execution(model) for model in models]

    async def record_workflow_run(self, workflow_id: UUID, executed_at: datetime) -> None:
        async with self.session_maker() as session:
            await WorkflowRepository(session=session).record_run(workflow_id, executed_at)
            await session.commit()

    async def get_assignment_rule(self, rule_id: UUID) -> AssignmentRule | None:
        async with self.session_maker() as session:
            model = await AssignmentRuleRepository(session=session).get_one_or_none(id=rule_id)
            return _to_rule(model) if model is not None else None

    async def list_assignment_rules(self, entity_type: str) -> list[AssignmentRule]:
        """Active assignment rules for an entity kind, lowest priority value first."""
        async with self.session_maker() as session:
            models = await AssignmentRuleRepository(session=session).list_active(entity_type)
            return [_to_rule(model) for model in models]

    async def advance_rotation(self, rule_id: UUID, pool_size: int) -> int | None:
        async with self.session_maker() as session:
            index = await AssignmentRuleRepository(session=session).advance_rotation(rule_id, pool_size)
            await session.commit()
            return index

    async def save_webhook_delivery(self, delivery: WebhookDelivery) -> WebhookDelivery:
        async with self.session_maker() as session:
            repo = WebhookDeliveryRepository(session=session)
            model = await repo.get_one_or_none(id=delivery.id)
            is_new = model is None
            if model is None:
                model = WebhookDeliveryModel(id=delivery.id, created_at=delivery.created_at)
            model.action_id = delivery.action_id
            model.workflow_id = delivery.workflow_id
            model.execution_id = delivery.execution_id
            model.url = delivery.url
            model.method = delivery.method
            model.status = delivery.status
            model.attempts = delivery.attempts
            model.response_status = delivery.response_status
            model.error = delivery.error
            model.completed_at = delivery.completed_at
            if is_new:
                await repo.add(model, auto_commit=True)
            else:
                await repo.update(model, auto_commit=True)
        return delivery

    async def list_failed_deliveries(self, limit: int = 100) -> list[WebhookDelivery]:
        """Failed webhook deliveries, newest first."""
        async with self.session_maker() as session:
            models = await WebhookDeliveryRepository(session=session).find_failed(limit)
            return [_to_delivery(model) for model in models]
