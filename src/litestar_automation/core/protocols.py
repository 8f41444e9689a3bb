"""Core protocols for litestar-automation.

This module defines the Protocol-based interfaces of the engine's collaborators: the
per-entity adapters that read and patch CRM records, the CRM services actions write to,
the store holding workflows, executions and assignment rules, and the optional event bus.
Using Protocol allows any persistence or CRM backend to plug in by duck typing.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from litestar_automation.core.models import AssignmentRule, Execution, WebhookDelivery, Workflow
    from litestar_automation.core.types import Snapshot, TriggerType


__all__ = ["CrmServices", "EntityAdapter", "EventBus", "TaggableEntityAdapter", "WorkflowStore"]


@runtime_checkable
class EntityAdapter(Protocol):
    """Capability interface for one CRM entity kind.

    One adapter is registered per supported entity kind. The engine never switches on
    entity kind strings; anything kind-specific goes through the adapter.

    Attributes:
        entity_type: The entity kind served, e.g. ``"contacts"``.

    Example:
        >>> class DealAdapter:
        ...     entity_type = "deals"
        ...
        ...     async def get_snapshot(self, entity_id: str) -> dict | None:
        ...         return await deals.get(entity_id)
        ...
        ...     async def update_field(self, entity_id: str, field: str, value: Any) -> None:
        ...         await deals.patch(entity_id, {field: value})
        ...
        ...     async def count_owned_records(self, user_id: str) -> int:
        ...         return await deals.count(owner_id=user_id)
    """

    entity_type: str

    async def get_snapshot(self, entity_id: str) -> Snapshot | None:
        """Load the current field values of a record.

        Args:
            entity_id: The record id.

        Returns:
            The snapshot, or None if the record does not exist.
        """
        ...

    async def update_field(self, entity_id: str, field: str, value: Any) -> None:
        """Patch a single field of a record.

        Args:
            entity_id: The record id.
            field: The field to write.
            value: The new value.
        """
        ...

    async def count_owned_records(self, user_id: str) -> int:
        """Count records of this kind currently owned by a user.

        Args:
            user_id: The candidate owner.

        Returns:
            Number of owned records.
        """
        ...


@runtime_checkable
class TaggableEntityAdapter(EntityAdapter, Protocol):
    """Entity adapter for kinds that carry tags (contacts)."""

    async def connect_tag(self, entity_id: str, tag_id: str) -> None:
        """Attach a tag to a record."""
        ...

    async def disconnect_tag(self, entity_id: str, tag_id: str) -> None:
        """Detach a tag from a record."""
        ...


class CrmServices(Protocol):
    """CRM write paths used by workflow actions, and team lookups used by assignment."""

    async def create_task(
        self,
        *,
        title: str,
        description: str | None,
        priority: str,
        assignee_id: str,
        due_date: datetime | None,
        related_type: str,
        related_id: str,
    ) -> str:
        """Create a task linked to a record and return its id."""
        ...

    async def create_activity(
        self,
        *,
        activity_type: str,
        title: str,
        description: str | None,
        user_id: str,
        related_type: str,
        related_id: str,
    ) -> str:
        """Create an activity log entry linked to a record and return its id."""
        ...

    async def log_outbound_email(
        self,
        *,
        subject: str,
        body: str,
        from_email: str,
        to_emails: Sequence[str],
        related_type: str,
        related_id: str,
    ) -> str:
        """Record an outbound email for delivery and return the log entry id."""
        ...

    async def upsert_tag(self, name: str) -> str:
        """Return the id of the tag with this name, creating it if needed."""
        ...

    async def find_tag(self, name: str) -> str | None:
        """Return the id of the tag with this name, or None."""
        ...

    async def resolve_team_members(self, team_id: str) -> list[str]:
        """Return the user ids of a team's members."""
        ...


class WorkflowStore(Protocol):
    """Persistence for workflows, executions, assignment rules and webhook deliveries."""

    async def list_active_workflows(self, entity_type: str, trigger_type: TriggerType) -> list[Workflow]:
        """Active workflows for an entity kind having a trigger of this kind, ordered by run order."""
        ...

    async def get_workflow(self, workflow_id: UUID) -> Workflow | None:
        """Load a workflow with its triggers and actions."""
        ...

    async def has_completed_execution(self, workflow_id: UUID, entity_type: str, entity_id: str) -> bool:
        """Whether the workflow already completed a run for this record."""
        ...

    async def create_execution(self, execution: Execution) -> Execution:
        """Persist a new execution record in running state."""
        ...

    async def finish_execution(self, execution: Execution) -> Execution:
        """Persist the terminal state of an execution record."""
        ...

    async def get_execution(self, execution_id: UUID) -> Execution | None:
        """Load an execution record."""
        ...

    async def list_executions(self, workflow_id: UUID) -> list[Execution]:
        """Execution records of a workflow, oldest first."""
        ...

    async def list_entity_executions(self, entity_type: str, entity_id: str) -> list[Execution]:
        """Execution records that targeted one record, oldest first."""
        ...

    async def record_workflow_run(self, workflow_id: UUID, executed_at: datetime) -> None:
        """Increment the workflow's run counter and set its last run time."""
        ...

    async def get_assignment_rule(self, rule_id: UUID) -> AssignmentRule | None:
        """Load an assignment rule."""
        ...

    async def advance_rotation(self, rule_id: UUID, pool_size: int) -> int | None:
        """Atomically move a rule's round-robin cursor to ``(cursor + 1) % pool_size``.

        Returns:
            The new cursor, or None if the rule does not exist.
        """
        ...

    async def save_webhook_delivery(self, delivery: WebhookDelivery) -> WebhookDelivery:
        """Insert or update a webhook delivery log entry."""
        ...


class EventBus(Protocol):
    """Receiver of execution lifecycle events."""

    async def emit(self, event_type: str, **kwargs: Any) -> None:
        """Publish an event."""
        ...
