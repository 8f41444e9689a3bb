"""Execution context for workflow dispatch and runs.

This module provides the ExecutionContext dataclass, which describes the record a
workflow is triggered for and carries it through matching and every action.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

__all__ = ["ExecutionContext"]


@dataclass
class ExecutionContext:
    """The entity mutation a workflow reacts to.

    Attributes:
        entity_type: Entity kind of the record, e.g. ``"contacts"`` or ``"deals"``.
        entity_id: Identifier of the record.
        entity: Snapshot of the record's field values after the write.
        previous_values: Field values before the write, for change-based triggers.
        actor_id: The user who performed the triggering write, if any.

    Example:
        >>> context = ExecutionContext(
        ...     entity_type="deals",
        ...     entity_id="deal_1",
        ...     entity={"stage": "PROPOSAL", "title": "Big deal"},
        ...     previous_values={"stage": "DISCOVERY"},
        ...     actor_id="user_1",
        ... )
        >>> context.get("stage")
        'PROPOSAL'
        >>> context.previous("stage")
        'DISCOVERY'
    """

    entity_type: str
    entity_id: str
    entity: dict[str, Any] = field(default_factory=dict)
    previous_values: dict[str, Any] | None = None
    actor_id: str | None = None

    def get(self, key: str, default: Any = None) -> Any:
        """Read a field from the current entity snapshot.

        Args:
            key: The field name.
            default: Value returned when the field is absent.

        Returns:
            The field value, or the default.
        """
        return self.entity.get(key, default)

    def previous(self, key: str, default: Any = None) -> Any:
        """Read a field from the values before the write.

        Args:
            key: The field name.
            default: Value returned when the field or the previous values are absent.

        Returns:
            The previous field value, or the default.
        """
        if not self.previous_values:
            return default
        return self.previous_values.get(key, default)
