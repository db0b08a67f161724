"""Initial schema for Toolgate

Revision ID: 20261019_000000
Revises: None
Create Date: 2026-10-19 00:00:00.000000

Creates the tables persisted by the execution core:
- tg_metrics: versioned metric definitions and their execution policy
- tg_metric_executions: one row per metric run (pending/running/completed/failed)
- tg_integration_connections: integrations connected per organization
- tg_org_policies: organization policy rules
- tg_permission_grants: access granted per organization or user

Revision format: YYYYMMDD_HHMMSS_description

"""

from typing import Sequence, Union

import sqlalchemy as sa
from sqlalchemy.dialects.postgresql import JSONB

from alembic import op

# revision identifiers, used by Alembic.
revision: str = "20261019_000000"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create all execution core tables."""

    op.create_table(
        "tg_metrics",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("org_id", sa.String(128), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("integration_id", sa.String(64), nullable=False),
        sa.Column("capability_id", sa.String(128), nullable=True),
        sa.Column("resource", sa.String(128), nullable=False),
        sa.Column("definition", JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("execution_mode", sa.String(32), nullable=False, server_default="on_demand"),
        sa.Column("execution_policy", JSONB(), nullable=False, server_default=sa.text("'{}'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_tg_metrics_org_id", "org_id"),
        sa.Index("ix_tg_metrics_execution_mode", "execution_mode"),
    )

    op.create_table(
        "tg_metric_executions",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("metric_id", sa.String(64), nullable=False),
        sa.Column("status", sa.String(32), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("result", JSONB(), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.Column("triggered_by", sa.String(64), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_tg_metric_executions_metric_id", "metric_id"),
        # Terminal states always carry their payload.
        sa.CheckConstraint(
            "status <> 'completed' OR result IS NOT NULL",
            name="ck_tg_metric_executions_completed_result",
        ),
        sa.CheckConstraint(
            "status <> 'failed' OR error IS NOT NULL",
            name="ck_tg_metric_executions_failed_error",
        ),
    )

    op.create_table(
        "tg_integration_connections",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("org_id", sa.String(128), nullable=False),
        sa.Column("integration_id", sa.String(64), nullable=False),
        sa.Column("encrypted_credentials", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("org_id", "integration_id", name="uq_tg_connection_org_integration"),
        sa.Index("ix_tg_integration_connections_org_id", "org_id"),
    )

    op.create_table(
        "tg_org_policies",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("org_id", sa.String(128), nullable=False),
        sa.Column("name", sa.String(256), nullable=False),
        sa.Column("rules", JSONB(), nullable=False, server_default=sa.text("'[]'::jsonb")),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.Index("ix_tg_org_policies_org_id", "org_id"),
    )

    op.create_table(
        "tg_permission_grants",
        sa.Column("id", sa.String(64), nullable=False),
        sa.Column("org_id", sa.String(128), nullable=False),
        sa.Column("user_id", sa.String(128), nullable=True),
        sa.Column("integration", sa.String(64), nullable=False),
        sa.Column("capability", sa.String(128), nullable=False),
        sa.Column("access", sa.String(16), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("org_id", "user_id", "integration", "capability", "access", name="uq_tg_permission_grant"),
        sa.Index("ix_tg_permission_grants_org_id", "org_id"),
        sa.Index("ix_tg_permission_grants_user_id", "user_id"),
    )


def downgrade() -> None:
    """Drop all execution core tables."""
    op.drop_table("tg_permission_grants")
    op.drop_table("tg_org_policies")
    op.drop_table("tg_integration_connections")
    op.drop_table("tg_metric_executions")
    op.drop_table("tg_metrics")
