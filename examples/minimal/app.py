"""Minimal example of litestar-automation integration.

This example wires the AutomationPlugin into a tiny CRM with contacts and deals held in
memory. Moving a deal to PROPOSAL creates a follow-up task, and new contacts from EMEA
are tagged and assigned round robin.

Run with:
    cd examples/minimal
    litestar run

Or:
    uvicorn app:app --reload
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from litestar import Controller, Litestar, get, patch, post
from litestar.exceptions import NotFoundException

from litestar_automation import (
    Action,
    ActionType,
    AssignmentMethod,
    AssignmentRule,
    AutomationConfig,
    AutomationPlugin,
    AutomationPluginConfig,
    Condition,
    ExecutionContext,
    Trigger,
    TriggerDispatcher,
    TriggerType,
    Workflow,
    WorkflowExecutor,
    WorkflowStatus,
)
from litestar_automation.adapters import InMemoryCrmServices, InMemoryEntityAdapter, InMemoryTaggableEntityAdapter
from litestar_automation.engine import InMemoryWorkflowStore

# =============================================================================
# CRM Data
# =============================================================================

contacts = InMemoryTaggableEntityAdapter("contacts")
deals = InMemoryEntityAdapter(
    "deals",
    {"deal_1": {"id": "deal_1", "title": "Acme renewal", "stage": "DISCOVERY", "amount": 12000}},
)
services = InMemoryCrmServices()

# =============================================================================
# Workflow Definitions
# =============================================================================

store = InMemoryWorkflowStore()

emea_rotation = store.add_assignment_rule(
    AssignmentRule(
        name="EMEA rotation",
        entity_type="contacts",
        method=AssignmentMethod.ROUND_ROBIN,
        user_ids=["alice", "bob", "carol"],
    )
)

store.add_workflow(
    Workflow(
        name="Proposal follow-up",
        description="Create a follow-up task when a deal reaches the proposal stage",
        entity_type="deals",
        status=WorkflowStatus.ACTIVE,
        triggers=[Trigger(trigger_type=TriggerType.STAGE_CHANGED, from_value="DISCOVERY", to_value="PROPOSAL")],
        actions=[
            Action(
                ActionType.CREATE_TASK,
                position=0,
                config={"title": "Follow up on {{title}}", "dueInDays": 3, "priority": "HIGH"},
            ),
            Action(
                ActionType.CREATE_ACTIVITY,
                position=1,
                config={"activityType": "NOTE", "activityTitle": "{{title}} moved to proposal"},
            ),
        ],
    )
)

store.add_workflow(
    Workflow(
        name="EMEA onboarding",
        entity_type="contacts",
        status=WorkflowStatus.ACTIVE,
        run_once=True,
        triggers=[
            Trigger(
                trigger_type=TriggerType.RECORD_CREATED,
                conditions=[Condition(field="region", operator="equals", value="EMEA")],
            )
        ],
        actions=[
            Action(ActionType.ADD_TAG, position=0, config={"tagName": "emea"}),
            Action(ActionType.ASSIGN_OWNER, position=1, config={"assignmentRuleId": str(emea_rotation.id)}),
            Action(
                ActionType.SEND_EMAIL,
                position=2,
                config={"subject": "Welcome {{firstName}}", "body": "Hi {{firstName}}, thanks for reaching out."},
            ),
        ],
    )
)


# =============================================================================
# API Controllers
# =============================================================================


class ContactController(Controller):
    """REST API for contacts."""

    path = "/contacts"
    tags = ["Contacts"]

    @post("/")
    async def create_contact(self, data: dict[str, Any], workflow_dispatcher: TriggerDispatcher) -> dict[str, Any]:
        """Create a contact and run creation workflows."""
        contact_id = f"contact_{len(contacts.records) + 1}"
        contacts.records[contact_id] = {"id": contact_id, **data}
        await workflow_dispatcher.dispatch(
            TriggerType.RECORD_CREATED,
            ExecutionContext(entity_type="contacts", entity_id=contact_id, entity=dict(contacts.records[contact_id])),
        )
        return contacts.records[contact_id]

    @get("/{contact_id:str}")
    async def get_contact(self, contact_id: str) -> dict[str, Any]:
        """Get a contact with its tags."""
        snapshot = await contacts.get_snapshot(contact_id)
        if snapshot is None:
            raise NotFoundException(f"Contact '{contact_id}' not found")
        return {**snapshot, "tags": sorted(contacts.tags[contact_id])}


class DealController(Controller):
    """REST API for deals."""

    path = "/deals"
    tags = ["Deals"]

    @patch("/{deal_id:str}")
    async def update_deal(
        self,
        deal_id: str,
        data: dict[str, Any],
        workflow_dispatcher: TriggerDispatcher,
    ) -> dict[str, Any]:
        """Update a deal and run update and stage change workflows."""
        before = await deals.get_snapshot(deal_id)
        if before is None:
            raise NotFoundException(f"Deal '{deal_id}' not found")
        deals.records[deal_id].update(data)
        context = ExecutionContext(
            entity_type="deals",
            entity_id=deal_id,
            entity=dict(deals.records[deal_id]),
            previous_values=before,
        )
        await workflow_dispatcher.dispatch(TriggerType.RECORD_UPDATED, context)
        if before.get("stage") != data.get("stage", before.get("stage")):
            await workflow_dispatcher.dispatch(TriggerType.STAGE_CHANGED, context)
        return deals.records[deal_id]


class AutomationController(Controller):
    """REST API for workflow runs and their side effects."""

    path = "/automation"
    tags = ["Automation"]

    @post("/workflows/{workflow_id:uuid}/run")
    async def run_workflow(
        self,
        workflow_id: UUID,
        data: dict[str, Any],
        workflow_executor: WorkflowExecutor,
    ) -> dict[str, Any]:
        """Run a workflow manually against a record."""
        entity_type, entity_id = data["entityType"], data["entityId"]
        adapter = contacts if entity_type == "contacts" else deals
        snapshot = await adapter.get_snapshot(entity_id)
        if snapshot is None:
            raise NotFoundException(f"{entity_type} record '{entity_id}' not found")
        execution_id = await workflow_executor.execute_workflow(
            workflow_id,
            TriggerType.MANUAL,
            ExecutionContext(entity_type=entity_type, entity_id=entity_id, entity=snapshot),
            triggered_by=data.get("userId"),
        )
        execution = await workflow_executor.store.get_execution(execution_id)
        return {
            "execution_id": str(execution_id),
            "status": execution.status.value if execution else None,
            "actions_executed": execution.actions_executed if execution else 0,
        }

    @get("/workflows/{workflow_id:uuid}/executions")
    async def list_executions(self, workflow_id: UUID, workflow_executor: WorkflowExecutor) -> list[dict[str, Any]]:
        """List the execution ledger of a workflow."""
        executions = await workflow_executor.store.list_executions(workflow_id)
        return [
            {
                "id": str(e.id),
                "entity": f"{e.entity_type}/{e.entity_id}",
                "status": e.status.value,
                "actions_executed": e.actions_executed,
                "results": [r.to_dict() for r in e.action_results],
                "error": e.error_message,
            }
            for e in executions
        ]

    @get("/tasks")
    async def list_tasks(self) -> list[dict[str, Any]]:
        """List tasks created by workflows."""
        return [
            {"id": t.id, "title": t.title, "assignee": t.assignee_id, "related": f"{t.related_type}/{t.related_id}"}
            for t in services.tasks
        ]


# =============================================================================
# Application
# =============================================================================

# Configure the plugin
plugin_config = AutomationPluginConfig(
    store=store,
    services=services,
    adapters=[contacts, deals],
    settings=AutomationConfig(email_from="crm@example.com"),
)

# Create the Litestar application
app = Litestar(
    route_handlers=[ContactController, DealController, AutomationController],
    plugins=[AutomationPlugin(config=plugin_config)],
    debug=True,
)


# =============================================================================
# Health Check (for testing)
# =============================================================================


@get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint."""
    return {"status": "healthy"}


# Add health check to app
app.register(health_check)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="0.0.0.0", port=8000)
