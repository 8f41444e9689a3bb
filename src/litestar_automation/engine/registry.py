"""Entity adapter registry.

This module provides a registry mapping entity kinds (``"contacts"``, ``"deals"``, ...)
to the adapters that read and patch their records.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from litestar_automation.exceptions import EntityAdapterNotFoundError

if TYPE_CHECKING:
    from collections.abc import Iterable

    from litestar_automation.core.protocols import EntityAdapter

__all__ = ["EntityAdapterRegistry"]


class EntityAdapterRegistry:
    """Registry for storing and retrieving entity adapters by entity kind.

    Attributes:
        _adapters: Map of entity kinds to their adapters.
    """

    def __init__(self, adapters: Iterable[EntityAdapter] = ()) -> None:
        """Initialize the registry.

        Args:
            adapters: Adapters to register immediately.
        """
        self._adapters: dict[str, EntityAdapter] = {}
        for adapter in adapters:
            self.register(adapter)

    def register(self, adapter: EntityAdapter) -> None:
        """Register an adapter under its entity kind, replacing any previous one.

        Args:
            adapter: The adapter to register.

        Example:
            >>> registry = EntityAdapterRegistry()
            >>> registry.register(ContactAdapter())
        """
        self._adapters[adapter.entity_type] = adapter

    def get(self, entity_type: str) -> EntityAdapter:
        """Retrieve the adapter for an entity kind.

        Args:
            entity_type: The entity kind.

        Returns:
            The registered adapter.

        Raises:
            EntityAdapterNotFoundError: If no adapter is registered for the kind.
        """
        if entity_type not in self._adapters:
            raise EntityAdapterNotFoundError(entity_type)
        return self._adapters[entity_type]

    def find(self, entity_type: str) -> EntityAdapter | None:
        """Retrieve the adapter for an entity kind, or None."""
        return self._adapters.get(entity_type)

    def has_adapter(self, entity_type: str) -> bool:
        """Check if an adapter is registered for an entity kind."""
        return entity_type in self._adapters

    def unregister(self, entity_type: str) -> None:
        """Remove the adapter for an entity kind, if any."""
        self._adapters.pop(entity_type, None)

    def entity_types(self) -> list[str]:
        """List the registered entity kinds."""
        return list(self._adapters)
