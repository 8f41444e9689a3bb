"""Owner resolution for assignment rules.

This module provides the AssignmentResolver, which turns an assignment rule and the
record being processed into a candidate owner id using one of four strategies.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from uuid import UUID

from litestar_automation.core.templates import stringify
from litestar_automation.core.types import ActionType, AssignmentMethod
from litestar_automation.exceptions import ActionConfigError

if TYPE_CHECKING:
    from litestar_automation.core.actions import AssignOwnerConfig
    from litestar_automation.core.context import ExecutionContext
    from litestar_automation.core.models import AssignmentRule
    from litestar_automation.core.protocols import CrmServices, WorkflowStore
    from litestar_automation.engine.registry import EntityAdapterRegistry

__all__ = ["AssignmentResolver"]

logger = logging.getLogger(__name__)


class AssignmentResolver:
    """Resolves the owner of a record from an assignment rule.

    Attributes:
        store: Store holding assignment rules and their round-robin cursors.
        registry: Entity adapters, used to count owned records for load balancing.
        services: CRM services, used to expand team references into user ids.
    """

    def __init__(self, store: WorkflowStore, registry: EntityAdapterRegistry, services: CrmServices) -> None:
        """Initialize the resolver.

        Args:
            store: The workflow store.
            registry: The entity adapter registry.
            services: The CRM services.
        """
        self.store = store
        self.registry = registry
        self.services = services

    async def resolve(self, rule: AssignmentRule, context: ExecutionContext) -> str | None:
        """Pick an owner for the record in ``context`` according to ``rule``.

        Args:
            rule: The assignment rule to apply.
            context: The record being assigned.

        Returns:
            The chosen user id, or None when the rule yields no candidate.

        Example:
            >>> rule = AssignmentRule(
            ...     name="Sales rotation",
            ...     entity_type="contacts",
            ...     method=AssignmentMethod.ROUND_ROBIN,
            ...     user_ids=["u1", "u2", "u3"],
            ... )
            >>> await resolver.resolve(rule, context)
            'u2'
        """
        if rule.method == AssignmentMethod.SPECIFIC_USER:
            return rule.assign_to_user_id
        if rule.method == AssignmentMethod.ROUND_ROBIN:
            return await self._round_robin(rule)
        if rule.method == AssignmentMethod.TERRITORY:
            return self._territory(rule, context)
        if rule.method == AssignmentMethod.LOAD_BALANCED:
            return await self._load_balanced(rule, context)
        logger.debug("Unknown assignment method", extra={"rule_id": str(rule.id), "method": str(rule.method)})
        return None

    async def owner_for(self, config: AssignOwnerConfig, context: ExecutionContext) -> str | None:
        """Resolve the owner requested by an ASSIGN_OWNER action.

        An explicit user id wins. Otherwise the referenced rule is applied when it exists
        and is active.

        Args:
            config: The action configuration.
            context: The record being assigned.

        Returns:
            The owner id, or None.

        Raises:
            ActionConfigError: If the rule reference is not a valid id.
        """
        if config.user_id:
            return config.user_id
        if not config.assignment_rule_id:
            return None

        try:
            rule_id = UUID(config.assignment_rule_id)
        except ValueError as e:
            reason = f"invalid assignmentRuleId {config.assignment_rule_id!r}"
            raise ActionConfigError(ActionType.ASSIGN_OWNER, reason) from e

        rule = await self.store.get_assignment_rule(rule_id)
        if rule is None or not rule.is_active:
            return None
        return await self.resolve(rule, context)

    async def candidate_pool(self, rule: AssignmentRule) -> list[str]:
        """The rule's user ids, or its team's members when the list is empty."""
        if rule.user_ids:
            return list(rule.user_ids)
        if rule.team_id:
            return list(await self.services.resolve_team_members(rule.team_id))
        return []

    async def _round_robin(self, rule: AssignmentRule) -> str | None:
        pool = await self.candidate_pool(rule)
        if not pool:
            return None

        index = await self.store.advance_rotation(rule.id, len(pool))
        if index is None:
            # rule not held by the store
            index = (rule.last_assigned_index + 1) % len(pool)
        rule.last_assigned_index = index
        return pool[index]

    @staticmethod
    def _territory(rule: AssignmentRule, context: ExecutionContext) -> str | None:
        if not rule.territory_field:
            return None
        key = stringify(context.get(rule.territory_field))
        return rule.territory_map.get(key) or None

    async def _load_balanced(self, rule: AssignmentRule, context: ExecutionContext) -> str | None:
        pool = await self.candidate_pool(rule)
        if not pool:
            return None

        adapter = self.registry.get(context.entity_type)
        loads = [(user_id, await adapter.count_owned_records(user_id)) for user_id in pool]
        loads.sort(key=lambda load: load[1])
        return loads[0][0]
