"""Core type definitions for litestar-automation.

This module defines the enums and type aliases shared by the domain records, the
execution engine and the persistence layer. Values are the exact strings stored in
workflow definitions and execution records.
"""

from __future__ import annotations

from enum import StrEnum
from typing import Any, TypeAlias

__all__ = [
    "ActionResultStatus",
    "ActionType",
    "ActivityType",
    "AssignmentMethod",
    "BranchType",
    "ConditionOperator",
    "ExecutionStatus",
    "Snapshot",
    "TaskPriority",
    "TriggerType",
    "WebhookDeliveryStatus",
    "WorkflowStatus",
]


class WorkflowStatus(StrEnum):
    """Lifecycle status of a workflow definition.

    Attributes:
        DRAFT: Being edited, never dispatched.
        ACTIVE: Eligible for dispatch.
        PAUSED: Temporarily not dispatched.
        ARCHIVED: Retired, kept for its execution history.
    """

    DRAFT = "DRAFT"
    ACTIVE = "ACTIVE"
    PAUSED = "PAUSED"
    ARCHIVED = "ARCHIVED"


class TriggerType(StrEnum):
    """Entity lifecycle events a workflow can react to.

    Attributes:
        RECORD_CREATED: A record of the workflow's entity kind was created.
        RECORD_UPDATED: A record was updated.
        FIELD_CHANGED: A specific field changed value.
        STAGE_CHANGED: The record moved to another pipeline stage.
        DATE_BASED: Invoked by an external scheduler relative to a date field.
        MANUAL: Invoked directly by a user or API call.
    """

    RECORD_CREATED = "RECORD_CREATED"
    RECORD_UPDATED = "RECORD_UPDATED"
    FIELD_CHANGED = "FIELD_CHANGED"
    STAGE_CHANGED = "STAGE_CHANGED"
    DATE_BASED = "DATE_BASED"
    MANUAL = "MANUAL"


class ActionType(StrEnum):
    """Kinds of side-effecting steps a workflow can run."""

    SEND_EMAIL = "SEND_EMAIL"
    CREATE_TASK = "CREATE_TASK"
    UPDATE_FIELD = "UPDATE_FIELD"
    SEND_WEBHOOK = "SEND_WEBHOOK"
    ASSIGN_OWNER = "ASSIGN_OWNER"
    ADD_TAG = "ADD_TAG"
    REMOVE_TAG = "REMOVE_TAG"
    CREATE_ACTIVITY = "CREATE_ACTIVITY"
    WAIT_DELAY = "WAIT_DELAY"
    CONDITION_BRANCH = "CONDITION_BRANCH"


class BranchType(StrEnum):
    """Which side of a condition branch a child action belongs to."""

    TRUE = "TRUE"
    FALSE = "FALSE"


class ExecutionStatus(StrEnum):
    """Status of one workflow run.

    Attributes:
        RUNNING: The run is in progress.
        COMPLETED: Every action ran without failure.
        FAILED: An action failed or the run raised.
    """

    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class ActionResultStatus(StrEnum):
    """Outcome of a single action."""

    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class AssignmentMethod(StrEnum):
    """Strategy an assignment rule uses to pick an owner.

    Attributes:
        SPECIFIC_USER: Always the configured user.
        ROUND_ROBIN: Cycle through the candidate pool with a persisted cursor.
        TERRITORY: Map a field value of the record to a user.
        LOAD_BALANCED: The candidate owning the fewest records of the entity kind.
    """

    SPECIFIC_USER = "SPECIFIC_USER"
    ROUND_ROBIN = "ROUND_ROBIN"
    TERRITORY = "TERRITORY"
    LOAD_BALANCED = "LOAD_BALANCED"


class ConditionOperator(StrEnum):
    """Operators understood by the condition evaluator."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    CONTAINS = "contains"
    NOT_CONTAINS = "not_contains"
    STARTS_WITH = "starts_with"
    ENDS_WITH = "ends_with"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    GREATER_THAN_OR_EQUALS = "greater_than_or_equals"
    LESS_THAN_OR_EQUALS = "less_than_or_equals"
    IS_EMPTY = "is_empty"
    IS_NOT_EMPTY = "is_not_empty"
    IN = "in"
    NOT_IN = "not_in"


class TaskPriority(StrEnum):
    """Priority of tasks created by workflows."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"
    URGENT = "URGENT"


class ActivityType(StrEnum):
    """Sub-type of activity log entries created by workflows."""

    NOTE = "NOTE"
    CALL = "CALL"
    EMAIL = "EMAIL"
    MEETING = "MEETING"
    TASK = "TASK"


class WebhookDeliveryStatus(StrEnum):
    """Delivery state of an outbound webhook."""

    PENDING = "pending"
    DELIVERED = "delivered"
    FAILED = "failed"


Snapshot: TypeAlias = dict[str, Any]
"""Materialized field values of the record a workflow runs against."""
