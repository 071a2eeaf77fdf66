"""create ingestion tables

Revision ID: 20261019_0001
Revises:
Create Date: 2026-10-19 09:00:00
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "20261019_0001"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.create_table(
        "source_connections",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", sa.String(length=32), nullable=False),
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("config", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_source_connections"),
    )
    op.create_index("ix_source_connections_org_id", "source_connections", ["org_id"], unique=False)
    op.create_index("ix_source_connections_org_type", "source_connections", ["org_id", "type"], unique=False)

    op.create_table(
        "raw_events",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source_connection_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("event_type", sa.String(length=120), nullable=False),
        sa.Column("payload", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("dedupe_hash", sa.String(length=64), nullable=False),
        sa.Column("received_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_raw_events"),
        sa.UniqueConstraint("org_id", "dedupe_hash", name="uq_raw_events_org_dedupe_hash"),
    )
    op.create_index(
        "ix_raw_events_org_connection_received",
        "raw_events",
        ["org_id", "source_connection_id", "received_at"],
        unique=False,
    )

    op.create_table(
        "field_mappings",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source_connection_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("target", sa.String(length=64), nullable=False),
        sa.Column("mapping", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_field_mappings"),
        sa.UniqueConstraint(
            "org_id",
            "source_connection_id",
            "target",
            name="uq_field_mappings_org_connection_target",
        ),
    )

    op.create_table(
        "metric_values",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("metric_key", sa.String(length=120), nullable=False),
        sa.Column("occurred_on", sa.Date(), nullable=False),
        sa.Column("value_num", sa.Float(), nullable=True),
        sa.Column("value_text", sa.Text(), nullable=True),
        sa.Column("source", sa.String(length=255), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_metric_values"),
    )
    op.create_index(
        "ix_metric_values_org_metric_occurred",
        "metric_values",
        ["org_id", "metric_key", "occurred_on"],
        unique=False,
    )

    op.create_table(
        "source_runs",
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("org_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("source_connection_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("rows_in", sa.Integer(), nullable=False),
        sa.Column("rows_valid", sa.Integer(), nullable=False),
        sa.Column("rows_invalid", sa.Integer(), nullable=False),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("finished_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("error", sa.Text(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_source_runs"),
    )
    op.create_index(
        "ix_source_runs_org_connection_started",
        "source_runs",
        ["org_id", "source_connection_id", "started_at"],
        unique=False,
    )
    op.create_index("ix_source_runs_status", "source_runs", ["status"], unique=False)


def downgrade() -> None:
    op.drop_index("ix_source_runs_status", table_name="source_runs")
    op.drop_index("ix_source_runs_org_connection_started", table_name="source_runs")
    op.drop_table("source_runs")
    op.drop_index("ix_metric_values_org_metric_occurred", table_name="metric_values")
    op.drop_table("metric_values")
    op.drop_table("field_mappings")
    op.drop_index("ix_raw_events_org_connection_received", table_name="raw_events")
    op.drop_table("raw_events")
    op.drop_index("ix_source_connections_org_type", table_name="source_connections")
    op.drop_index("ix_source_connections_org_id", table_name="source_connections")
    op.drop_table("source_connections")
