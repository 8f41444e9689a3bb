"""Workflow run orchestration.

This module provides the WorkflowExecutor, which runs one workflow for one record:
it opens an execution record, runs the top-level actions in position order, stops at the
first failed action, and finalizes the execution record and the workflow statistics.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import TYPE_CHECKING

from litestar_automation.core.models import Execution
from litestar_automation.core.types import ActionResultStatus, ExecutionStatus
from litestar_automation.exceptions import WorkflowNotFoundError

if TYPE_CHECKING:
    from uuid import UUID

    from litestar_automation.core.context import ExecutionContext
    from litestar_automation.core.models import Workflow
    from litestar_automation.core.protocols import EventBus, WorkflowStore
    from litestar_automation.core.types import TriggerType
    from litestar_automation.engine.actions import ActionRunner

__all__ = ["WorkflowExecutor"]

logger = logging.getLogger(__name__)


class WorkflowExecutor:
    """Runs workflows and keeps their execution ledger.

    Attributes:
        store: Store holding workflows and execution records.
        runner: Runs individual actions.
        event_bus: Optional event bus receiving ``execution.*`` events.
    """

    def __init__(self, store: WorkflowStore, runner: ActionRunner, event_bus: EventBus | None = None) -> None:
        """Initialize the executor.

        Args:
            store: The workflow store.
            runner: The action runner.
            event_bus: Optional event bus implementing ``emit``.
        """
        self.store = store
        self.runner = runner
        self.event_bus = event_bus

    async def execute_workflow(
        self,
        workflow_id: UUID,
        trigger_type: TriggerType,
        context: ExecutionContext,
        triggered_by: str | None = None,
    ) -> UUID:
        """Run a workflow by id, regardless of its triggers.

        Used for manual invocation and by external schedulers driving date-based triggers.

        Args:
            workflow_id: The workflow to run.
            trigger_type: The event kind recorded on the execution.
            context: The record to run against.
            triggered_by: The user starting the run. Defaults to the context's actor.

        Returns:
            The id of the execution record.

        Raises:
            WorkflowNotFoundError: If the workflow does not exist.

        Example:
            >>> execution_id = await executor.execute_workflow(
            ...     workflow.id,
            ...     TriggerType.MANUAL,
            ...     ExecutionContext(entity_type="contacts", entity_id="c_1", entity=contact),
            ...     triggered_by="user_1",
            ... )
        """
        workflow = await self.store.get_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFoundError(workflow_id)
        execution = await self.run(workflow, trigger_type, context, triggered_by)
        return execution.id

    async def run(
        self,
        workflow: Workflow,
        trigger_type: TriggerType,
        context: ExecutionContext,
        triggered_by: str | None = None,
    ) -> Execution:
        """Run a loaded workflow for the record in ``context``.

        The execution record moves from ``running`` to ``completed`` when every action
        succeeded or was skipped, and to ``failed`` when an action failed or the run
        raised. Actions after a failed action are neither run nor recorded. Child actions
        of condition branches are not run.

        Args:
            workflow: The workflow to run.
            trigger_type: The event kind that started the run.
            context: The record to run against.
            triggered_by: The user starting the run. Defaults to the context's actor.

        Returns:
            The finalized execution record.

        Raises:
            Exception: Anything escaping the action loop, after the execution record has
                been marked ``failed``.
        """
        execution = await self.store.create_execution(
            Execution(
                workflow_id=workflow.id,
                trigger_type=trigger_type,
                entity_type=context.entity_type,
                entity_id=context.entity_id,
                triggered_by=triggered_by or context.actor_id,
                started_at=datetime.now(timezone.utc),
            )
        )
        log_fields = {
            "workflow_id": str(workflow.id),
            "execution_id": str(execution.id),
            "trigger_type": str(trigger_type),
            "entity_type": context.entity_type,
            "entity_id": context.entity_id,
        }
        await self._emit("execution.started", execution)

        try:
            await self._run_actions(workflow, execution, context)
        except Exception as e:
            logger.exception("Workflow run raised", extra={**log_fields, "error": str(e)})
            execution.status = ExecutionStatus.FAILED
            execution.error_message = str(e) or type(e).__name__
            execution.completed_at = datetime.now(timezone.utc)
            await self.store.finish_execution(execution)
            await self._emit("execution.failed", execution)
            raise

        if execution.status == ExecutionStatus.RUNNING:
            execution.status = ExecutionStatus.COMPLETED
        execution.completed_at = datetime.now(timezone.utc)
        await self.store.finish_execution(execution)
        await self.store.record_workflow_run(workflow.id, execution.completed_at)

        logger.info(
            "Workflow run finished",
            extra={**log_fields, "status": str(execution.status), "actions_executed": execution.actions_executed},
        )
        await self._emit(
            "execution.completed" if execution.status == ExecutionStatus.COMPLETED else "execution.failed",
            execution,
        )
        return execution

    async def _run_actions(self, workflow: Workflow, execution: Execution, context: ExecutionContext) -> None:
        for action in workflow.ordered_actions():
            if action.parent_action_id is not None:
                continue

            result = await self.runner.execute(
                action,
                context,
                workflow_id=workflow.id,
                execution_id=execution.id,
            )
            execution.action_results.append(result)

            if result.status == ActionResultStatus.FAILED:
                execution.status = ExecutionStatus.FAILED
                execution.error_message = result.error
                return
            if result.status == ActionResultStatus.SUCCESS:
                execution.actions_executed += 1

    async def _emit(self, event_type: str, execution: Execution) -> None:
        if self.event_bus is None:
            return
        await self.event_bus.emit(
            event_type,
            execution_id=execution.id,
            workflow_id=execution.workflow_id,
            entity_type=execution.entity_type,
            entity_id=execution.entity_id,
            status=execution.status,
        )
