"""Placeholder substitution for action text fields.

Subjects, bodies, titles and webhook payloads may reference the triggering record with
``{{field}}`` or ``{{object.field}}`` placeholders. Placeholders that cannot be resolved
are left in the output verbatim. There is no escaping and no nested evaluation.
"""

from __future__ import annotations

import re
from collections.abc import Mapping
from typing import Any

__all__ = ["get_field_value", "render_template", "stringify"]

_PLACEHOLDER = re.compile(r"\{\{(\w+)(?:\.(\w+))?\}\}")


def stringify(value: Any) -> str:
    """Render a snapshot value the way it appears in text.

    ``None`` becomes the empty string, booleans are lower-case and integral floats
    drop their fractional part, so ``5.0`` renders as ``"5"``.

    Args:
        value: Any JSON-like value.

    Returns:
        The text form of the value.
    """
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def render_template(template: str, entity: Mapping[str, Any]) -> str:
    """Substitute ``{{name}}`` and ``{{name.sub}}`` placeholders from an entity snapshot.

    Args:
        template: Text containing placeholders.
        entity: The entity snapshot.

    Returns:
        The rendered text.

    Example:
        >>> render_template("Hi {{firstName}}", {"firstName": "Ann"})
        'Hi Ann'
        >>> render_template("{{company.name}}", {"company": {"name": "Acme"}})
        'Acme'
        >>> render_template("{{missing}}", {})
        '{{missing}}'
    """

    def _substitute(match: re.Match[str]) -> str:
        name, sub = match.group(1), match.group(2)
        value = entity.get(name)
        if sub is not None:
            if not isinstance(value, Mapping):
                return match.group(0)
            value = value.get(sub)
        if value is None:
            return match.group(0)
        return stringify(value)

    return _PLACEHOLDER.sub(_substitute, template)


def get_field_value(entity: Mapping[str, Any], path: str) -> str:
    """Read a dot-separated path from an entity snapshot as text.

    Args:
        entity: The entity snapshot.
        path: Field path such as ``"email"`` or ``"contact.email"``.

    Returns:
        The value as text, or the empty string when any segment is missing.
    """
    value: Any = entity
    for part in path.split("."):
        if not isinstance(value, Mapping):
            return ""
        value = value.get(part)
    return stringify(value)
