"""Typed action configurations.

Workflow actions store a free-form configuration blob keyed in camelCase. Before an
action runs, the blob is parsed into one frozen dataclass per action kind, so the runner
dispatches on a closed set of config types instead of looking up loose string keys.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any, TypeAlias

from litestar_automation.core.models import Condition
from litestar_automation.core.types import ActionType, ActivityType, TaskPriority
from litestar_automation.exceptions import ActionConfigError

__all__ = [
    "ActionConfig",
    "AssignOwnerConfig",
    "ConditionBranchConfig",
    "CreateActivityConfig",
    "CreateTaskConfig",
    "SendEmailConfig",
    "SendWebhookConfig",
    "TagConfig",
    "UpdateFieldConfig",
    "WaitDelayConfig",
    "parse_action_config",
]


def _optional_str(raw: Mapping[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if value is None or value == "":
        return None
    return str(value)


def _required_str(action_type: ActionType, raw: Mapping[str, Any], key: str) -> str:
    value = _optional_str(raw, key)
    if value is None:
        raise ActionConfigError(action_type, f"'{key}' is required")
    return value


def _optional_number(action_type: ActionType, raw: Mapping[str, Any], key: str) -> float | None:
    value = raw.get(key)
    if value is None or value == "":
        return None
    try:
        return float(value)
    except (TypeError, ValueError) as e:
        raise ActionConfigError(action_type, f"'{key}' must be a number, got {value!r}") from e


@dataclass(frozen=True)
class SendEmailConfig:
    """Configuration of a SEND_EMAIL action.

    Attributes:
        to_field: Dot path of the recipient address on the entity.
        subject: Subject template.
        body: Body template.
    """

    to_field: str = "email"
    subject: str = "Workflow Email"
    body: str = ""

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> SendEmailConfig:
        return cls(
            to_field=_optional_str(raw, "toField") or "email",
            subject=_optional_str(raw, "subject") or "Workflow Email",
            body=_optional_str(raw, "body") or "",
        )


@dataclass(frozen=True)
class CreateTaskConfig:
    """Configuration of a CREATE_TASK action.

    Attributes:
        title: Title template.
        description: Optional description template.
        due_in_days: Days from now until the task is due.
        assignee_id: Explicit assignee; falls back to the actor, then the system user.
        priority: Task priority.
    """

    title: str = "Workflow Task"
    description: str | None = None
    due_in_days: float | None = None
    assignee_id: str | None = None
    priority: str = TaskPriority.MEDIUM

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> CreateTaskConfig:
        return cls(
            title=_optional_str(raw, "title") or "Workflow Task",
            description=_optional_str(raw, "description"),
            due_in_days=_optional_number(ActionType.CREATE_TASK, raw, "dueInDays"),
            assignee_id=_optional_str(raw, "assigneeId"),
            priority=_optional_str(raw, "priority") or TaskPriority.MEDIUM,
        )


@dataclass(frozen=True)
class UpdateFieldConfig:
    """Configuration of an UPDATE_FIELD action.

    Attributes:
        field: Field to patch on the triggering record.
        value: Literal value written to the field.
    """

    field: str
    value: Any = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> UpdateFieldConfig:
        return cls(field=_required_str(ActionType.UPDATE_FIELD, raw, "field"), value=raw.get("value"))


@dataclass(frozen=True)
class SendWebhookConfig:
    """Configuration of a SEND_WEBHOOK action.

    Attributes:
        url: Target URL.
        method: HTTP method.
        headers: Extra request headers.
        body_template: Body template; the raw entity snapshot is sent as JSON when absent.
    """

    url: str
    method: str = "POST"
    headers: dict[str, str] = field(default_factory=dict)
    body_template: str | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> SendWebhookConfig:
        headers = raw.get("headers") or {}
        if not isinstance(headers, Mapping):
            raise ActionConfigError(ActionType.SEND_WEBHOOK, "'headers' must be an object")
        return cls(
            url=_required_str(ActionType.SEND_WEBHOOK, raw, "url"),
            method=(_optional_str(raw, "method") or "POST").upper(),
            headers={str(k): str(v) for k, v in headers.items()},
            body_template=_optional_str(raw, "bodyTemplate"),
        )


@dataclass(frozen=True)
class AssignOwnerConfig:
    """Configuration of an ASSIGN_OWNER action.

    Attributes:
        user_id: Assign this user directly.
        assignment_rule_id: Otherwise resolve the owner through this assignment rule.
    """

    user_id: str | None = None
    assignment_rule_id: str | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> AssignOwnerConfig:
        return cls(
            user_id=_optional_str(raw, "userId"),
            assignment_rule_id=_optional_str(raw, "assignmentRuleId"),
        )


@dataclass(frozen=True)
class TagConfig:
    """Configuration of ADD_TAG and REMOVE_TAG actions."""

    tag_name: str | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> TagConfig:
        return cls(tag_name=_optional_str(raw, "tagName"))


@dataclass(frozen=True)
class CreateActivityConfig:
    """Configuration of a CREATE_ACTIVITY action.

    Attributes:
        activity_type: Sub-type of the activity entry.
        activity_title: Title template.
        description: Optional description template.
    """

    activity_type: str = ActivityType.NOTE
    activity_title: str = "Workflow Activity"
    description: str | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> CreateActivityConfig:
        return cls(
            activity_type=_optional_str(raw, "activityType") or ActivityType.NOTE,
            activity_title=_optional_str(raw, "activityTitle") or "Workflow Activity",
            description=_optional_str(raw, "description"),
        )


@dataclass(frozen=True)
class WaitDelayConfig:
    """Configuration of a WAIT_DELAY action. Parsed for validation only, delays are not scheduled."""

    amount: float | None = None
    unit: str | None = None

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> WaitDelayConfig:
        return cls(
            amount=_optional_number(ActionType.WAIT_DELAY, raw, "delayAmount"),
            unit=_optional_str(raw, "delayUnit"),
        )


@dataclass(frozen=True)
class ConditionBranchConfig:
    """Configuration of a CONDITION_BRANCH action."""

    conditions: tuple[Condition, ...] = ()

    @classmethod
    def from_raw(cls, raw: Mapping[str, Any]) -> ConditionBranchConfig:
        conditions = raw.get("conditions") or []
        if not isinstance(conditions, list):
            raise ActionConfigError(ActionType.CONDITION_BRANCH, "'conditions' must be a list")
        return cls(conditions=tuple(Condition.from_dict(c) for c in conditions if isinstance(c, Mapping)))


ActionConfig: TypeAlias = (
    SendEmailConfig
    | CreateTaskConfig
    | UpdateFieldConfig
    | SendWebhookConfig
    | AssignOwnerConfig
    | TagConfig
    | CreateActivityConfig
    | WaitDelayConfig
    | ConditionBranchConfig
)
"""Union of every typed action configuration."""

_PARSERS: dict[ActionType, Any] = {
    ActionType.SEND_EMAIL: SendEmailConfig.from_raw,
    ActionType.CREATE_TASK: CreateTaskConfig.from_raw,
    ActionType.UPDATE_FIELD: UpdateFieldConfig.from_raw,
    ActionType.SEND_WEBHOOK: SendWebhookConfig.from_raw,
    ActionType.ASSIGN_OWNER: AssignOwnerConfig.from_raw,
    ActionType.ADD_TAG: TagConfig.from_raw,
    ActionType.REMOVE_TAG: TagConfig.from_raw,
    ActionType.CREATE_ACTIVITY: CreateActivityConfig.from_raw,
    ActionType.WAIT_DELAY: WaitDelayConfig.from_raw,
    ActionType.CONDITION_BRANCH: ConditionBranchConfig.from_raw,
}


def parse_action_config(action_type: ActionType, raw: Mapping[str, Any] | None) -> ActionConfig:
    """Parse a stored configuration blob into the typed config for its action kind.

    Args:
        action_type: The action kind.
        raw: The stored blob. ``None`` is treated as an empty configuration.

    Returns:
        The typed configuration.

    Raises:
        ActionConfigError: If the blob is not an object or misses a required key.
    """
    if raw is None:
        raw = {}
    if not isinstance(raw, Mapping):
        raise ActionConfigError(action_type, "configuration must be an object")
    return _PARSERS[action_type](raw)
