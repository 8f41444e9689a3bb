"""Trigger matching and fire-and-forget dispatch.

CRM write paths call :meth:`TriggerDispatcher.dispatch` after committing a change. The
dispatcher selects the active workflows whose triggers match the change and starts their
runs as background tasks, so the write path never waits for, or fails because of,
automation side effects.
"""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from litestar_automation.core.conditions import evaluate_conditions
from litestar_automation.core.templates import stringify
from litestar_automation.core.types import TriggerType

if TYPE_CHECKING:
    from collections.abc import Mapping
    from typing import Any
    from uuid import UUID

    from litestar_automation.core.context import ExecutionContext
    from litestar_automation.core.models import Trigger, Workflow
    from litestar_automation.core.protocols import WorkflowStore
    from litestar_automation.engine.executor import WorkflowExecutor

__all__ = ["TriggerDispatcher", "trigger_matches", "workflow_matches"]

logger = logging.getLogger(__name__)


def _stage_value(values: Mapping[str, Any] | None, field: str | None) -> str:
    if not values:
        return ""
    if field:
        return stringify(values.get(field))
    return stringify(values.get("stage") or values.get("stageId"))


def _transition_matches(trigger: Trigger, previous: str, current: str) -> bool:
    if previous == current:
        return False
    if trigger.from_value and previous != trigger.from_value:
        return False
    return not (trigger.to_value and current != trigger.to_value)


def trigger_matches(trigger: Trigger, trigger_type: TriggerType, context: ExecutionContext) -> bool:
    """Check whether one trigger fires for a change.

    FIELD_CHANGED triggers with a ``field`` require that field's text form to differ
    between the previous and current values. STAGE_CHANGED triggers read ``field`` when
    set, else ``stage`` falling back to ``stageId``, and likewise require a change. Both
    narrow on ``from_value``/``to_value`` when set. The trigger's extra conditions are
    then evaluated against the current snapshot.

    Args:
        trigger: The trigger to check.
        trigger_type: The kind of event being dispatched.
        context: The change.

    Returns:
        True if the trigger fires.
    """
    if trigger.trigger_type != trigger_type:
        return False

    if trigger_type == TriggerType.FIELD_CHANGED and trigger.field:
        previous = stringify(context.previous(trigger.field))
        current = stringify(context.get(trigger.field))
        if not _transition_matches(trigger, previous, current):
            return False
    elif trigger_type == TriggerType.STAGE_CHANGED:
        previous = _stage_value(context.previous_values, trigger.field)
        current = _stage_value(context.entity, trigger.field)
        if not _transition_matches(trigger, previous, current):
            return False

    return evaluate_conditions(trigger.conditions, context.entity)


def workflow_matches(workflow: Workflow, trigger_type: TriggerType, context: ExecutionContext) -> bool:
    """Check whether any of a workflow's triggers of this kind fires for a change."""
    return any(trigger_matches(trigger, trigger_type, context) for trigger in workflow.triggers)


class TriggerDispatcher:
    """Entry point called by CRM write paths.

    Attributes:
        store: Store holding workflows and execution records.
        executor: Runs matched workflows.
        _tasks: Background runs that have not finished yet.
        _in_flight: ``(workflow, entity kind, entity id)`` keys of running run-once workflows.
    """

    def __init__(self, store: WorkflowStore, executor: WorkflowExecutor) -> None:
        """Initialize the dispatcher.

        Args:
            store: The workflow store.
            executor: The workflow executor.
        """
        self.store = store
        self.executor = executor
        self._tasks: set[asyncio.Task[None]] = set()
        self._in_flight: set[tuple[UUID, str, str]] = set()

    @property
    def pending_count(self) -> int:
        """Number of background runs still in progress."""
        return len(self._tasks)

    async def dispatch(self, trigger_type: TriggerType, context: ExecutionContext) -> list[UUID]:
        """Start background runs of every active workflow matching a change.

        Workflows are considered in run order. Run-once workflows are skipped for records
        they already completed a run for, or are currently running for. Errors raised
        while matching are logged and dropped.

        Args:
            trigger_type: The kind of event.
            context: The change, including the snapshot after the write.

        Returns:
            Ids of the workflows whose runs were started.

        Example:
            >>> await dispatcher.dispatch(
            ...     TriggerType.STAGE_CHANGED,
            ...     ExecutionContext(
            ...         entity_type="deals",
            ...         entity_id="deal_1",
            ...         entity={"stage": "PROPOSAL"},
            ...         previous_values={"stage": "DISCOVERY"},
            ...     ),
            ... )
        """
        started: list[UUID] = []
        log_fields = {
            "trigger_type": str(trigger_type),
            "entity_type": context.entity_type,
            "entity_id": context.entity_id,
        }
        try:
            workflows = await self.store.list_active_workflows(context.entity_type, trigger_type)
            for workflow in workflows:
                if not workflow_matches(workflow, trigger_type, context):
                    continue
                key = (workflow.id, context.entity_type, context.entity_id)
                if workflow.run_once and not await self._claim(key):
                    logger.debug("Skipping run-once workflow", extra={**log_fields, "workflow_id": str(workflow.id)})
                    continue
                self._start(workflow, trigger_type, context, key)
                started.append(workflow.id)
        except Exception as e:
            logger.exception("Workflow trigger matching failed", extra={**log_fields, "error": str(e)})
        return started

    async def drain(self) -> None:
        """Wait until every background run has finished."""
        while self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)

    async def _claim(self, key: tuple[UUID, str, str]) -> bool:
        """Reserve a run-once key, returning False if it is in flight or already completed.

        The key is added before the store is consulted so concurrent dispatches for the same
        record cannot both pass the check.
        """
        if key in self._in_flight:
            return False
        self._in_flight.add(key)
        try:
            completed = await self.store.has_completed_execution(*key)
        except BaseException:
            self._in_flight.discard(key)
            raise
        if completed:
            self._in_flight.discard(key)
        return not completed

    def _start(
        self,
        workflow: Workflow,
        trigger_type: TriggerType,
        context: ExecutionContext,
        key: tuple[UUID, str, str],
    ) -> None:
        task = asyncio.create_task(self._run(workflow, trigger_type, context, key))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _run(
        self,
        workflow: Workflow,
        trigger_type: TriggerType,
        context: ExecutionContext,
        key: tuple[UUID, str, str],
    ) -> None:
        try:
            await self.executor.run(workflow, trigger_type, context)
        except Exception as e:
            logger.exception(
                "Background workflow run failed",
                extra={
                    "workflow_id": str(workflow.id),
                    "trigger_type": str(trigger_type),
                    "entity_type": context.entity_type,
                    "entity_id": context.entity_id,
                    "error": str(e),
                },
            )
        finally:
            self._in_flight.discard(key)
