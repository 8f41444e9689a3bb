"""Condition evaluation over entity snapshots.

Conditions are ``(field, operator, value)`` triples combined with AND. Evaluation never
raises for type mismatches: a comparison that cannot be made is simply false, so a
malformed rule never matches instead of breaking the caller. The evaluator is shared by
workflow triggers, condition branches and any other rule consumer (SLA policies, saved
view filters).
"""

from __future__ import annotations

import math
from collections.abc import Callable, Iterable, Mapping
from decimal import Decimal
from typing import Any

from litestar_automation.core.models import Condition
from litestar_automation.core.templates import stringify
from litestar_automation.core.types import ConditionOperator

__all__ = ["evaluate_condition", "evaluate_conditions", "to_number"]


def to_number(value: Any) -> float:
    """Coerce a snapshot value to a number.

    Args:
        value: Any JSON-like value.

    Returns:
        The numeric value, or NaN when the value is not numeric. Booleans, ``None``,
        blank strings and containers are not numeric.
    """
    if isinstance(value, bool) or value is None:
        return math.nan
    if isinstance(value, int | float | Decimal):
        return float(value)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return math.nan
        try:
            return float(text)
        except ValueError:
            return math.nan
    return math.nan


def _same(left: Any, right: Any) -> bool:
    # true must not equal 1
    if isinstance(left, bool) is not isinstance(right, bool):
        return False
    return bool(left == right)


def _is_empty(value: Any) -> bool:
    return value is None or value == ""


def _text_pair(field_value: Any, compare_value: Any) -> tuple[str, str]:
    return stringify(field_value).lower(), stringify(compare_value).lower()


def _contains(field_value: Any, compare_value: Any) -> bool:
    haystack, needle = _text_pair(field_value, compare_value)
    return needle in haystack


def _starts_with(field_value: Any, compare_value: Any) -> bool:
    text, prefix = _text_pair(field_value, compare_value)
    return text.startswith(prefix)


def _ends_with(field_value: Any, compare_value: Any) -> bool:
    text, suffix = _text_pair(field_value, compare_value)
    return text.endswith(suffix)


def _in(field_value: Any, compare_value: Any) -> bool:
    return isinstance(compare_value, list | tuple) and any(_same(field_value, item) for item in compare_value)


def _not_in(field_value: Any, compare_value: Any) -> bool:
    if not isinstance(compare_value, list | tuple):
        return True
    return not any(_same(field_value, item) for item in compare_value)


_OPERATORS: dict[str, Callable[[Any, Any], bool]] = {
    ConditionOperator.EQUALS: _same,
    ConditionOperator.NOT_EQUALS: lambda a, b: not _same(a, b),
    ConditionOperator.CONTAINS: _contains,
    ConditionOperator.NOT_CONTAINS: lambda a, b: not _contains(a, b),
    ConditionOperator.STARTS_WITH: _starts_with,
    ConditionOperator.ENDS_WITH: _ends_with,
    ConditionOperator.GREATER_THAN: lambda a, b: to_number(a) > to_number(b),
    ConditionOperator.LESS_THAN: lambda a, b: to_number(a) < to_number(b),
    ConditionOperator.GREATER_THAN_OR_EQUALS: lambda a, b: to_number(a) >= to_number(b),
    ConditionOperator.LESS_THAN_OR_EQUALS: lambda a, b: to_number(a) <= to_number(b),
    ConditionOperator.IS_EMPTY: lambda a, _: _is_empty(a),
    ConditionOperator.IS_NOT_EMPTY: lambda a, _: not _is_empty(a),
    ConditionOperator.IN: _in,
    ConditionOperator.NOT_IN: _not_in,
}


def evaluate_condition(condition: Condition | Mapping[str, Any], entity: Mapping[str, Any]) -> bool:
    """Evaluate a single condition against an entity snapshot.

    Args:
        condition: A Condition or its stored mapping form.
        entity: The entity snapshot.

    Returns:
        True if the condition holds. Unknown operators and type mismatches yield False.
    """
    if not isinstance(condition, Condition):
        condition = Condition.from_dict(condition)

    operator = _OPERATORS.get(condition.operator)
    if operator is None:
        return False
    return operator(entity.get(condition.field), condition.value)


def evaluate_conditions(
    conditions: Iterable[Condition | Mapping[str, Any]] | None,
    entity: Mapping[str, Any],
) -> bool:
    """Evaluate conditions with AND semantics.

    Args:
        conditions: Conditions or their stored mapping forms. Empty or None is vacuously true.
        entity: The entity snapshot.

    Returns:
        True if every condition holds.

    Example:
        >>> evaluate_conditions([], {"name": "anything"})
        True
        >>> evaluate_conditions(
        ...     [{"field": "name", "operator": "contains", "value": "ACME"}],
        ...     {"name": "acme corp"},
        ... )
        True
    """
    return all(evaluate_condition(condition, entity) for condition in conditions or ())
