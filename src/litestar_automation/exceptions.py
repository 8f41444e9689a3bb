"""Exception hierarchy for litestar-automation."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from uuid import UUID

__all__ = (
    "ActionConfigError",
    "AutomationError",
    "EntityAdapterNotFoundError",
    "WorkflowNotFoundError",
)


class AutomationError(Exception):
    """Base exception for all litestar-automation errors.

    All exceptions raised by litestar-automation inherit from this class so callers
    can catch every automation-related error with a single except clause.
    """


class WorkflowNotFoundError(AutomationError):
    """Raised when a workflow is requested by id and does not exist.

    Attributes:
        workflow_id: The id of the workflow that was not found.
    """

    def __init__(self, workflow_id: str | UUID) -> None:
        """Initialize the exception with workflow details.

        Args:
            workflow_id: The id of the workflow that was not found.
        """
        self.workflow_id = workflow_id
        super().__init__(f"Workflow '{workflow_id}' not found")


class EntityAdapterNotFoundError(AutomationError):
    """Raised when no adapter is registered for an entity kind.

    Actions that read or patch the triggering record (update field, assign owner,
    tag mutations) and load-balanced assignment need an adapter for the entity kind.

    Attributes:
        entity_type: The entity kind that has no adapter.
    """

    def __init__(self, entity_type: str) -> None:
        """Initialize the exception with the entity kind.

        Args:
            entity_type: The entity kind that has no adapter.
        """
        self.entity_type = entity_type
        super().__init__(f"No entity adapter registered for '{entity_type}'")


class ActionConfigError(AutomationError):
    """Raised when an action's stored configuration is missing required keys or is malformed.

    Attributes:
        action_type: The action kind whose configuration is invalid.
        reason: What is wrong with the configuration.
    """

    def __init__(self, action_type: str, reason: str) -> None:
        """Initialize the exception with configuration details.

        Args:
            action_type: The action kind whose configuration is invalid.
            reason: What is wrong with the configuration.
        """
        self.action_type = action_type
        self.reason = reason
        super().__init__(f"Invalid {action_type} configuration: {reason}")

