"""Action execution.

This module provides the ActionRunner, which performs one workflow action against the
record in an execution context and reports the outcome as an ActionResult. Errors raised
by side effects never escape the runner; they become ``failed`` results so the executor
can stop the chain without exception-based control flow.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING, Any

from litestar.serialization import encode_json

from litestar_automation.config import AutomationConfig
from litestar_automation.core.actions import (
    AssignOwnerConfig,
    ConditionBranchConfig,
    CreateActivityConfig,
    CreateTaskConfig,
    SendEmailConfig,
    SendWebhookConfig,
    TagConfig,
    UpdateFieldConfig,
    WaitDelayConfig,
    parse_action_config,
)
from litestar_automation.core.conditions import evaluate_conditions
from litestar_automation.core.models import ActionResult
from litestar_automation.core.protocols import TaggableEntityAdapter
from litestar_automation.core.templates import get_field_value, render_template
from litestar_automation.core.types import ActionResultStatus, ActionType

if TYPE_CHECKING:
    from uuid import UUID

    from litestar_automation.core.actions import ActionConfig
    from litestar_automation.core.context import ExecutionContext
    from litestar_automation.core.models import Action
    from litestar_automation.core.protocols import CrmServices
    from litestar_automation.engine.assignment import AssignmentResolver
    from litestar_automation.engine.registry import EntityAdapterRegistry
    from litestar_automation.engine.webhooks import WebhookDispatcher

__all__ = ["ActionRunner"]

logger = logging.getLogger(__name__)


class ActionRunner:
    """Runs single workflow actions.

    Attributes:
        registry: Entity adapters used for field updates and tag mutations.
        services: CRM write paths for tasks, activities, email logs and tags.
        resolver: Owner resolution for ASSIGN_OWNER actions.
        webhooks: Background delivery for SEND_WEBHOOK actions.
        config: Engine settings.
    """

    def __init__(
        self,
        registry: EntityAdapterRegistry,
        services: CrmServices,
        resolver: AssignmentResolver,
        webhooks: WebhookDispatcher,
        config: AutomationConfig | None = None,
    ) -> None:
        self.registry = registry
        self.services = services
        self.resolver = resolver
        self.webhooks = webhooks
        self.config = config or AutomationConfig()

    async def execute(
        self,
        action: Action,
        context: ExecutionContext,
        *,
        workflow_id: UUID | None = None,
        execution_id: UUID | None = None,
    ) -> ActionResult:
        """Run one action against the record in ``context``.

        Args:
            action: The action to run.
            context: The record the workflow runs for.
            workflow_id: The workflow owning the action, recorded on webhook deliveries.
            execution_id: The current run, recorded on webhook deliveries.

        Returns:
            The action outcome. Unknown action kinds are ``skipped``; any error raised by
            the configuration parser or a collaborator yields a ``failed`` result.
        """
        try:
            action_type = ActionType(action.action_type)
        except ValueError:
            logger.debug(
                "Skipping unknown action type",
                extra={"action_id": str(action.id), "action_type": action.action_type},
            )
            return ActionResult(action.id, action.action_type, ActionResultStatus.SKIPPED)

        try:
            config = parse_action_config(action_type, action.config)
            return await self._dispatch(action, action_type, config, context, workflow_id, execution_id)
        except Exception as e:
            logger.warning(
                "Workflow action failed",
                extra={
                    "workflow_id": str(workflow_id) if workflow_id else None,
                    "execution_id": str(execution_id) if execution_id else None,
                    "action_id": str(action.id),
                    "action_type": str(action_type),
                    "entity_type": context.entity_type,
                    "entity_id": context.entity_id,
                    "error": str(e),
                },
            )
            return ActionResult(action.id, action_type, ActionResultStatus.FAILED, error=str(e) or type(e).__name__)

    async def _dispatch(
        self,
        action: Action,
        action_type: ActionType,
        config: ActionConfig,
        context: ExecutionContext,
        workflow_id: UUID | None,
        execution_id: UUID | None,
    ) -> ActionResult:
        result: Any = None
        status = ActionResultStatus.SUCCESS

        match config:
            case SendEmailConfig():
                result = await self._send_email(config, context)
            case CreateTaskConfig():
                result = await self._create_task(config, context)
            case UpdateFieldConfig():
                await self.registry.get(context.entity_type).update_field(context.entity_id, config.field, config.value)
            case SendWebhookConfig():
                result = await self._send_webhook(action, config, context, workflow_id, execution_id)
            case AssignOwnerConfig():
                result = await self._assign_owner(config, context)
            case TagConfig():
                result = await self._mutate_tag(action_type, config, context)
            case CreateActivityConfig():
                result = await self._create_activity(config, context)
            case WaitDelayConfig():
                # delays are not scheduled
                status = ActionResultStatus.SKIPPED
            case ConditionBranchConfig():
                result = {"conditionsMet": evaluate_conditions(config.conditions, context.entity)}

        return ActionResult(action.id, action_type, status, result=result)

    async def _send_email(self, config: SendEmailConfig, context: ExecutionContext) -> dict[str, Any]:
        recipient = get_field_value(context.entity, config.to_field)
        email_id = await self.services.log_outbound_email(
            subject=render_template(config.subject, context.entity),
            body=render_template(config.body, context.entity),
            from_email=self.config.email_from,
            to_emails=[recipient] if recipient else [],
            related_type=context.entity_type,
            related_id=context.entity_id,
        )
        return {"emailLogId": email_id, "to": recipient or None}

    async def _create_task(self, config: CreateTaskConfig, context: ExecutionContext) -> dict[str, Any]:
        due_date = None
        if config.due_in_days:
            due_date = datetime.now(timezone.utc) + timedelta(days=config.due_in_days)

        task_id = await self.services.create_task(
            title=render_template(config.title, context.entity),
            description=render_template(config.description, context.entity) if config.description else None,
            priority=config.priority,
            assignee_id=config.assignee_id or context.actor_id or self.config.system_user_id,
            due_date=due_date,
            related_type=context.entity_type,
            related_id=context.entity_id,
        )
        return {"taskId": task_id}

    async def _send_webhook(
        self,
        action: Action,
        config: SendWebhookConfig,
        context: ExecutionContext,
        workflow_id: UUID | None,
        execution_id: UUID | None,
    ) -> dict[str, Any]:
        if config.body_template is not None:
            content: bytes | str = render_template(config.body_template, context.entity)
        else:
            content = encode_json(context.entity)

        delivery = await self.webhooks.submit(
            url=config.url,
            method=config.method,
            headers={"Content-Type": "application/json", **config.headers},
            content=content,
            action_id=action.id,
            workflow_id=workflow_id,
            execution_id=execution_id,
        )
        return {"deliveryId": str(delivery.id)}

    async def _assign_owner(self, config: AssignOwnerConfig, context: ExecutionContext) -> dict[str, Any]:
        owner_id = await self.resolver.owner_for(config, context)
        if owner_id:
            adapter = self.registry.get(context.entity_type)
            await adapter.update_field(context.entity_id, self.config.owner_field, owner_id)
        return {"ownerId": owner_id}

    async def _mutate_tag(
        self,
        action_type: ActionType,
        config: TagConfig,
        context: ExecutionContext,
    ) -> dict[str, Any] | None:
        adapter = self.registry.find(context.entity_type)
        if not config.tag_name or not isinstance(adapter, TaggableEntityAdapter):
            return None

        if action_type == ActionType.ADD_TAG:
            tag_id = await self.services.upsert_tag(config.tag_name)
            await adapter.connect_tag(context.entity_id, tag_id)
            return {"tagId": tag_id}

        found = await self.services.find_tag(config.tag_name)
        if found is None:
            return None
        await adapter.disconnect_tag(context.entity_id, found)
        return {"tagId": found}

    async def _create_activity(self, config: CreateActivityConfig, context: ExecutionContext) -> dict[str, Any]:
        activity_id = await self.services.create_activity(
            activity_type=config.activity_type,
            title=render_template(config.activity_title, context.entity),
            description=render_template(config.description, context.entity) if config.description else None,
            user_id=context.actor_id or self.config.system_user_id,
            related_type=context.entity_type,
            related_id=context.entity_id,
        )
        return {"activityId": activity_id}
