"""Tests for the entity adapter registry and the in-memory adapters."""

from __future__ import annotations

import pytest

from litestar_automation.adapters import InMemoryEntityAdapter, InMemoryTaggableEntityAdapter
from litestar_automation.core.protocols import EntityAdapter, TaggableEntityAdapter
from litestar_automation.engine.registry import EntityAdapterRegistry
from litestar_automation.exceptions import EntityAdapterNotFoundError


@pytest.mark.unit
class TestEntityAdapterRegistry:
    """Tests for EntityAdapterRegistry."""

    def test_register_and_get(self) -> None:
        """Test adapters are keyed by entity kind."""
        deals = InMemoryEntityAdapter("deals")
        registry = EntityAdapterRegistry()

        registry.register(deals)

        assert registry.get("deals") is deals
        assert registry.find("deals") is deals
        assert registry.has_adapter("deals")
        assert registry.entity_types() == ["deals"]

    def test_get_unknown_raises(self) -> None:
        """Test get raises for unregistered kinds while find returns None."""
        registry = EntityAdapterRegistry()

        with pytest.raises(EntityAdapterNotFoundError, match="leads") as exc_info:
            registry.get("leads")

        assert exc_info.value.entity_type == "leads"
        assert registry.find("leads") is None

    def test_register_replaces(self) -> None:
        """Test registering the same kind twice keeps the latest adapter."""
        first, second = InMemoryEntityAdapter("deals"), InMemoryEntityAdapter("deals")
        registry = EntityAdapterRegistry([first, second])

        assert registry.get("deals") is second

    def test_unregister(self) -> None:
        """Test an adapter can be removed."""
        registry = EntityAdapterRegistry([InMemoryEntityAdapter("deals")])

        registry.unregister("deals")

        assert not registry.has_adapter("deals")


@pytest.mark.unit
class TestInMemoryAdapters:
    """Tests for the dictionary-backed adapters."""

    def test_protocol_conformance(self) -> None:
        """Test only the taggable adapter satisfies the taggable protocol."""
        plain = InMemoryEntityAdapter("deals")
        taggable = InMemoryTaggableEntityAdapter("contacts")

        assert isinstance(plain, EntityAdapter)
        assert not isinstance(plain, TaggableEntityAdapter)
        assert isinstance(taggable, TaggableEntityAdapter)

    async def test_snapshot_is_a_copy(self) -> None:
        """Test snapshots do not alias stored records."""
        deals = InMemoryEntityAdapter("deals", {"d_1": {"stage": "NEW"}})

        snapshot = await deals.get_snapshot("d_1")
        assert snapshot == {"stage": "NEW"}
        snapshot["stage"] = "WON"

        assert deals.records["d_1"]["stage"] == "NEW"
        assert await deals.get_snapshot("missing") is None

    async def test_count_owned_records(self) -> None:
        """Test owned records are counted through the owner field."""
        deals = InMemoryEntityAdapter(
            "deals",
            {"a": {"owner": "u1"}, "b": {"owner": "u1"}, "c": {"owner": "u2"}},
            owner_field="owner",
        )

        assert await deals.count_owned_records("u1") == 2
        assert await deals.count_owned_records("u3") == 0

    async def test_update_unknown_record(self) -> None:
        """Test patching an unknown record raises LookupError."""
        deals = InMemoryEntityAdapter("deals")

        with pytest.raises(LookupError, match="d_9"):
            await deals.update_field("d_9", "stage", "WON")
