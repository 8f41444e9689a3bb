"""Integration tests for the database persistence layer.

Tests the SQLAlchemy models, repositories and SQLAlchemyWorkflowStore using an async
SQLite database.
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import TYPE_CHECKING
from uuid import uuid4

import pytest
from advanced_alchemy.base import UUIDAuditBase
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

from litestar_automation.adapters import InMemoryCrmServices, InMemoryEntityAdapter
from litestar_automation.config import AutomationConfig
from litestar_automation.core.context import ExecutionContext
from litestar_automation.core.models import (
    Action,
    AssignmentRule,
    Condition,
    Execution,
    Trigger,
    WebhookDelivery,
    Workflow,
)
from litestar_automation.core.types import (
    ActionResultStatus,
    ActionType,
    AssignmentMethod,
    BranchType,
    ExecutionStatus,
    TriggerType,
    WebhookDeliveryStatus,
    WorkflowStatus,
)
from litestar_automation.db.repositories import WorkflowExecutionRepository
from litestar_automation.db.store import SQLAlchemyWorkflowStore
from litestar_automation.engine.actions import ActionRunner
from litestar_automation.engine.assignment import AssignmentResolver
from litestar_automation.engine.dispatcher import TriggerDispatcher
from litestar_automation.engine.executor import WorkflowExecutor
from litestar_automation.engine.registry import EntityAdapterRegistry
from litestar_automation.engine.webhooks import WebhookDispatcher

if TYPE_CHECKING:
    from collections.abc import AsyncIterator
    from pathlib import Path


# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture
async def session_maker(tmp_path: Path) -> AsyncIterator[async_sessionmaker[AsyncSession]]:
    """Create a session factory over a fresh SQLite database file."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'automation.db'}", echo=False)

    async with engine.begin() as conn:
        await conn.run_sync(UUIDAuditBase.metadata.create_all)

    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)

    await engine.dispose()


@pytest.fixture
def db_store(session_maker: async_sessionmaker[AsyncSession]) -> SQLAlchemyWorkflowStore:
    """Create a workflow store over the test database."""
    return SQLAlchemyWorkflowStore(session_maker)


def proposal_workflow(**overrides: object) -> Workflow:
    """Build an active deals workflow reacting to a DISCOVERY to PROPOSAL move."""
    workflow = Workflow(
        name="Proposal follow-up",
        entity_type="deals",
        status=WorkflowStatus.ACTIVE,
        triggers=[
            Trigger(
                trigger_type=TriggerType.STAGE_CHANGED,
                from_value="DISCOVERY",
                to_value="PROPOSAL",
                conditions=[Condition("amount", "greater_than", 1000)],
            )
        ],
        actions=[
            Action(ActionType.CREATE_TASK, position=0, config={"title": "Follow up on {{title}}"}),
            Action(ActionType.UPDATE_FIELD, position=1, config={"field": "followUp", "value": True}),
        ],
    )
    for key, value in overrides.items():
        setattr(workflow, key, value)
    return workflow


# =============================================================================
# Store Tests
# =============================================================================


@pytest.mark.integration
class TestWorkflowPersistence:
    """Tests for workflow definitions."""

    async def test_round_trip(self, db_store: SQLAlchemyWorkflowStore) -> None:
        """Test a workflow is loaded back with its triggers and actions."""
        workflow = await db_store.save_workflow(proposal_workflow())

        loaded = await db_store.get_workflow(workflow.id)

        assert loaded is not None
        assert loaded.name == "Proposal follow-up"
        assert loaded.status == WorkflowStatus.ACTIVE
        [trigger] = loaded.triggers
        assert trigger.trigger_type == TriggerType.STAGE_CHANGED
        assert trigger.to_value == "PROPOSAL"
        assert trigger.conditions == [Condition("amount", "greater_than", 1000)]
        assert [action.action_type for action in loaded.ordered_actions()] == ["CREATE_TASK", "UPDATE_FIELD"]
        assert loaded.actions[1].config == {"field": "followUp", "value": True}

    async def test_branch_children_round_trip(self, db_store: SQLAlchemyWorkflowStore) -> None:
        """Test a branch child keeps its parent and branch side."""
        branch = Action(ActionType.CONDITION_BRANCH, position=0, config={"conditions": []})
        child = Action(
            ActionType.CREATE_TASK,
            position=1,
            parent_action_id=branch.id,
            branch_type=BranchType.FALSE,
        )
        workflow = await db_store.save_workflow(proposal_workflow(actions=[branch, child]))

        loaded = await db_store.get_workflow(workflow.id)

        assert loaded is not None
        loaded_child = next(action for action in loaded.actions if action.id == child.id)
        assert loaded_child.parent_action_id == branch.id
        assert loaded_child.branch_type == BranchType.FALSE
        assert next(action for action in loaded.actions if action.id == branch.id).branch_type is None

    async def test_get_unknown_workflow(self, db_store: SQLAlchemyWorkflowStore) -> None:
        """Test an unknown id yields None."""
        assert await db_store.get_workflow(uuid4()) is None

    async def test_list_active_workflows(self, db_store: SQLAlchemyWorkflowStore) -> None:
        """Test only active workflows with a trigger of the kind are listed, in run order."""
        late = await db_store.save_workflow(proposal_workflow(name="late", run_order=5))
        early = await db_store.save_workflow(proposal_workflow(name="early", run_order=1))
        await db_store.save_workflow(proposal_workflow(name="paused", status=WorkflowStatus.PAUSED))
        await db_store.save_workflow(proposal_workflow(name="contacts", entity_type="contacts"))

        workflows = await db_store.list_active_workflows("deals", TriggerType.STAGE_CHANGED)

        assert [w.id for w in workflows] == [early.id, late.id]
        assert await db_store.list_active_workflows("deals", TriggerType.RECORD_CREATED) == []

    async def test_record_workflow_run(self, db_store: SQLAlchemyWorkflowStore) -> None:
        """Test run statistics are incremented."""
        workflow = await db_store.save_workflow(proposal_workflow())

        await db_store.record_workflow_run(workflow.id, datetime.now(timezone.utc))
        await db_store.record_workflow_run(workflow.id, datetime.now(timezone.utc))

        loaded = await db_store.get_workflow(workflow.id)
        assert loaded is not None
        assert loaded.total_executions == 2
        assert loaded.last_executed_at is not None


@pytest.mark.integration
class TestExecutionLedger:
    """Tests for execution records."""

    async def test_create_and_finish(self, db_store: SQLAlchemyWorkflowStore) -> None:
        """Test an execution moves from running to completed."""
        workflow = await db_store.save_workflow(proposal_workflow())
        execution = await db_store.create_execution(
            Execution(
                workflow_id=workflow.id,
                trigger_type=TriggerType.MANUAL,
                entity_type="deals",
                entity_id="d_1",
                started_at=datetime.now(timezone.utc),
            )
        )
        assert not await db_store.has_completed_execution(workflow.id, "deals", "d_1")

        execution.status = ExecutionStatus.COMPLETED
        execution.actions_executed = 2
        execution.completed_at = datetime.now(timezone.utc)
        await db_store.finish_execution(execution)

        loaded = await db_store.get_execution(execution.id)
        assert loaded is not None
        assert loaded.status == ExecutionStatus.COMPLETED
        assert loaded.actions_executed == 2
        assert await db_store.has_completed_execution(workflow.id, "deals", "d_1")
        assert not await db_store.has_completed_execution(workflow.id, "deals", "d_2")

    async def test_find_by_workflow(
        self,
        db_store: SQLAlchemyWorkflowStore,
        session_maker: async_sessionmaker[AsyncSession],
    ) -> None:
        """Test paging and status filtering of a workflow's executions."""
        workflow = await db_store.save_workflow(proposal_workflow())
        for index, status in enumerate([ExecutionStatus.COMPLETED, ExecutionStatus.FAILED, ExecutionStatus.COMPLETED]):
            await db_store.create_execution(
                Execution(
                    workflow_id=workflow.id,
                    trigger_type=TriggerType.MANUAL,
                    entity_type="deals",
                    entity_id=f"d_{index}",
                    status=status,
                    started_at=datetime(2026, 1, 1 + index, tzinfo=timezone.utc),
                )
            )

        async with session_maker() as session:
            repo = WorkflowExecutionRepository(session=session)
            completed, total = await repo.find_by_workflow(workflow.id, status=ExecutionStatus.COMPLETED)
            page, _ = await repo.find_by_workflow(workflow.id, limit=1)

        assert total == 2
        assert {execution.entity_id for execution in completed} == {"d_0", "d_2"}
        assert [execution.entity_id for execution in page] == ["d_2"]

    async def test_list_entity_executions(self, db_store: SQLAlchemyWorkflowStore) -> None:
        """Test a record's executions are listed across workflows, oldest first."""
        first = await db_store.save_workflow(proposal_workflow(name="first"))
        second = await db_store.save_workflow(proposal_workflow(name="second"))
        for day, (workflow, entity_id) in enumerate([(second, "d_1"), (first, "d_1"), (first, "d_2")], start=1):
            await db_store.create_execution(
                Execution(
                    workflow_id=workflow.id,
                    trigger_type=TriggerType.MANUAL,
                    entity_type="deals",
                    entity_id=entity_id,
                    started_at=datetime(2026, 1, day, tzinfo=timezone.utc),
                )
            )

        executions = await db_store.list_entity_executions("deals", "d_1")

        assert [execution.workflow_id for execution in executions] == [second.id, first.id]
        assert await db_store.list_entity_executions("contacts", "d_1") == []


@pytest.mark.integration
class TestAssignmentRules:
    """Tests for assignment rule persistence."""

    async def test_advance_rotation(self, db_store: SQLAlchemyWorkflowStore) -> None:
        """Test the cursor wraps around the pool size."""
        rule = await db_store.save_assignment_rule(
            AssignmentRule(
                name="Rotation",
                entity_type="deals",
                method=AssignmentMethod.ROUND_ROBIN,
                user_ids=["u1", "u2", "u3"],
            )
        )

        cursors = [await db_store.advance_rotation(rule.id, 3) for _ in range(4)]

        assert cursors == [1, 2, 0, 1]
        loaded = await db_store.get_assignment_rule(rule.id)
        assert loaded is not None
        assert loaded.last_assigned_index == 1
        assert loaded.user_ids == ["u1", "u2", "u3"]

    async def test_advance_unknown_rule(self, db_store: SQLAlchemyWorkflowStore) -> None:
        """Test advancing an unknown rule yields None."""
        assert await db_store.advance_rotation(uuid4(), 3) is None

    async def test_concurrent_round_robin_picks_each_candidate_once(
        self, db_store: SQLAlchemyWorkflowStore
    ) -> None:
        """Test simultaneous resolutions never hand the same candidate out twice."""
        pool = ["u1", "u2", "u3", "u4"]
        rule = await db_store.save_assignment_rule(
            AssignmentRule(
                name="Rotation",
                entity_type="deals",
                method=AssignmentMethod.ROUND_ROBIN,
                user_ids=pool,
                last_assigned_index=2,
            )
        )
        services = InMemoryCrmServices()
        resolver = AssignmentResolver(db_store, EntityAdapterRegistry(), services)
        context = ExecutionContext(entity_type="deals", entity_id="d_1")

        picks = await asyncio.gather(*(resolver.resolve(rule, context) for _ in pool))

        assert sorted(picks) == pool
        loaded = await db_store.get_assignment_rule(rule.id)
        assert loaded is not None
        assert loaded.last_assigned_index == 2

    async def test_list_assignment_rules(self, db_store: SQLAlchemyWorkflowStore) -> None:
        """Test active rules are listed by priority."""
        low = await db_store.save_assignment_rule(
            AssignmentRule(name="low", entity_type="deals", method=AssignmentMethod.SPECIFIC_USER, priority=5)
        )
        high = await db_store.save_assignment_rule(
            AssignmentRule(name="high", entity_type="deals", method=AssignmentMethod.SPECIFIC_USER, priority=1)
        )
        await db_store.save_assignment_rule(
            AssignmentRule(name="off", entity_type="deals", method=AssignmentMethod.SPECIFIC_USER, is_active=False)
        )

        rules = await db_store.list_assignment_rules("deals")

        assert [rule.id for rule in rules] == [high.id, low.id]


@pytest.mark.integration
class TestWebhookDeliveries:
    """Tests for webhook delivery log persistence."""

    async def test_insert_then_update(self, db_store: SQLAlchemyWorkflowStore) -> None:
        """Test a delivery entry is inserted and later updated in place."""
        delivery = WebhookDelivery(
            url="https://hooks.example.com/x",
            method="POST",
            action_id=uuid4(),
            created_at=datetime.now(timezone.utc),
        )
        await db_store.save_webhook_delivery(delivery)
        assert await db_store.list_failed_deliveries() == []

        delivery.status = WebhookDeliveryStatus.FAILED
        delivery.attempts = 3
        delivery.error = "HTTP 503"
        await db_store.save_webhook_delivery(delivery)

        [failed] = await db_store.list_failed_deliveries()
        assert failed.id == delivery.id
        assert failed.attempts == 3
        assert failed.error == "HTTP 503"


# =============================================================================
# Engine Integration
# =============================================================================


@pytest.mark.integration
class TestEngineWithDatabase:
    """Tests running the engine against the SQLAlchemy store."""

    async def test_dispatch_end_to_end(self, db_store: SQLAlchemyWorkflowStore) -> None:
        """Test a stage change runs a persisted workflow and records the execution."""
        deals = InMemoryEntityAdapter("deals", {"d_1": {"title": "Big deal", "stage": "PROPOSAL", "amount": 5000}})
        services = InMemoryCrmServices()
        registry = EntityAdapterRegistry([deals])
        config = AutomationConfig(webhook_retry_backoff=0)
        webhooks = WebhookDispatcher(db_store, config)
        runner = ActionRunner(registry, services, AssignmentResolver(db_store, registry, services), webhooks, config)
        executor = WorkflowExecutor(db_store, runner)
        dispatcher = TriggerDispatcher(db_store, executor)
        workflow = await db_store.save_workflow(proposal_workflow(run_once=True))
        context = ExecutionContext(
            entity_type="deals",
            entity_id="d_1",
            entity=dict(deals.records["d_1"]),
            previous_values={"stage": "DISCOVERY"},
            actor_id="u_actor",
        )

        started = await dispatcher.dispatch(TriggerType.STAGE_CHANGED, context)
        await dispatcher.drain()
        again = await dispatcher.dispatch(TriggerType.STAGE_CHANGED, context)
        await dispatcher.drain()
        await webhooks.aclose()

        assert started == [workflow.id]
        assert again == []
        assert services.tasks[0].title == "Follow up on Big deal"
        assert deals.records["d_1"]["followUp"] is True

        [execution] = await db_store.list_executions(workflow.id)
        assert execution.status == ExecutionStatus.COMPLETED
        assert execution.actions_executed == 2
        assert [r.status for r in execution.action_results] == [ActionResultStatus.SUCCESS] * 2
        assert execution.triggered_by == "u_actor"

        loaded = await db_store.get_workflow(workflow.id)
        assert loaded is not None
        assert loaded.total_executions == 1

    async def test_run_once_concurrent_dispatches(self, db_store: SQLAlchemyWorkflowStore) -> None:
        """Test two simultaneous dispatches for one record produce a single run."""
        deals = InMemoryEntityAdapter("deals", {"d_1": {"title": "Big deal", "stage": "PROPOSAL", "amount": 5000}})
        services = InMemoryCrmServices()
        registry = EntityAdapterRegistry([deals])
        config = AutomationConfig(webhook_retry_backoff=0)
        webhooks = WebhookDispatcher(db_store, config)
        runner = ActionRunner(registry, services, AssignmentResolver(db_store, registry, services), webhooks, config)
        dispatcher = TriggerDispatcher(db_store, WorkflowExecutor(db_store, runner))
        workflow = await db_store.save_workflow(proposal_workflow(run_once=True))
        context = ExecutionContext(
            entity_type="deals",
            entity_id="d_1",
            entity=dict(deals.records["d_1"]),
            previous_values={"stage": "DISCOVERY"},
        )

        results = await asyncio.gather(
            dispatcher.dispatch(TriggerType.STAGE_CHANGED, context),
            dispatcher.dispatch(TriggerType.STAGE_CHANGED, context),
        )
        await dispatcher.drain()
        await webhooks.aclose()

        assert sorted(results, key=len) == [[], [workflow.id]]
        assert len(services.tasks) == 1
        [execution] = await db_store.list_executions(workflow.id)
        assert execution.status == ExecutionStatus.COMPLETED
