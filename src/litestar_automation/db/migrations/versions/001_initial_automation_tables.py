"""Initial automation tables.

Revision ID: 001_initial_automation
Revises:
Create Date: 2026-10-18
"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001_initial_automation"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

JSONType = sa.JSON().with_variant(postgresql.JSONB(), "postgresql")


def _audit_columns() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def upgrade() -> None:
    """Create automation tables."""
    op.create_table(
        "automation_workflows",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("run_once", sa.Boolean(), nullable=False),
        sa.Column("run_order", sa.Integer(), nullable=False),
        sa.Column("total_executions", sa.Integer(), nullable=False),
        sa.Column("last_executed_at", sa.DateTime(timezone=True), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_automation_workflows_entity_status",
        "automation_workflows",
        ["entity_type", "status"],
    )

    op.create_table(
        "automation_workflow_triggers",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("workflow_id", sa.Uuid(), nullable=False),
        sa.Column("trigger_type", sa.String(length=50), nullable=False),
        sa.Column("field", sa.String(length=255), nullable=True),
        sa.Column("from_value", sa.String(length=255), nullable=True),
        sa.Column("to_value", sa.String(length=255), nullable=True),
        sa.Column("conditions", JSONType, nullable=False),
        sa.Column("date_field", sa.String(length=255), nullable=True),
        sa.Column("offset_days", sa.Integer(), nullable=True),
        sa.Column("offset_direction", sa.String(length=20), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["workflow_id"], ["automation_workflows.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_automation_workflow_triggers_workflow_type",
        "automation_workflow_triggers",
        ["workflow_id", "trigger_type"],
    )

    op.create_table(
        "automation_workflow_actions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("workflow_id", sa.Uuid(), nullable=False),
        sa.Column("action_type", sa.String(length=50), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("config", JSONType, nullable=False),
        sa.Column("parent_action_id", sa.Uuid(), nullable=True),
        sa.Column("branch_type", sa.String(length=10), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["workflow_id"], ["automation_workflows.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["parent_action_id"], ["automation_workflow_actions.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_automation_workflow_actions_workflow_position",
        "automation_workflow_actions",
        ["workflow_id", "position"],
    )

    op.create_table(
        "automation_workflow_executions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("workflow_id", sa.Uuid(), nullable=False),
        sa.Column("trigger_type", sa.String(length=50), nullable=False),
        sa.Column("triggered_by", sa.String(length=255), nullable=True),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("entity_id", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("actions_executed", sa.Integer(), nullable=False),
        sa.Column("action_results", JSONType, nullable=False),
        sa.Column("error_message", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_audit_columns(),
        sa.ForeignKeyConstraint(["workflow_id"], ["automation_workflows.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_automation_executions_workflow_id", "automation_workflow_executions", ["workflow_id"])
    op.create_index(
        "ix_automation_executions_entity",
        "automation_workflow_executions",
        ["entity_type", "entity_id"],
    )
    op.create_index("ix_automation_executions_status", "automation_workflow_executions", ["status"])

    op.create_table(
        "automation_assignment_rules",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("entity_type", sa.String(length=100), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False),
        sa.Column("priority", sa.Integer(), nullable=False),
        sa.Column("method", sa.String(length=50), nullable=False),
        sa.Column("assign_to_user_id", sa.String(length=255), nullable=True),
        sa.Column("team_id", sa.String(length=255), nullable=True),
        sa.Column("user_ids", JSONType, nullable=False),
        sa.Column("territory_field", sa.String(length=255), nullable=True),
        sa.Column("territory_map", JSONType, nullable=False),
        sa.Column("conditions", JSONType, nullable=False),
        sa.Column("last_assigned_index", sa.Integer(), nullable=False),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_automation_assignment_rules_entity_active",
        "automation_assignment_rules",
        ["entity_type", "is_active"],
    )

    op.create_table(
        "automation_webhook_deliveries",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("action_id", sa.Uuid(), nullable=False),
        sa.Column("workflow_id", sa.Uuid(), nullable=True),
        sa.Column("execution_id", sa.Uuid(), nullable=True),
        sa.Column("url", sa.Text(), nullable=False),
        sa.Column("method", sa.String(length=10), nullable=False),
        sa.Column("status", sa.String(length=50), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False),
        sa.Column("response_status", sa.Integer(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        *_audit_columns(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_automation_webhook_deliveries_status", "automation_webhook_deliveries", ["status"])


def downgrade() -> None:
    """Drop automation tables."""
    op.drop_table("automation_webhook_deliveries")
    op.drop_table("automation_assignment_rules")
    op.drop_table("automation_workflow_executions")
    op.drop_table("automation_workflow_actions")
    op.drop_table("automation_workflow_triggers")
    op.drop_table("automation_workflows")
