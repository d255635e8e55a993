"""create ships and sync_status tables

Revision ID: 0001_ships_sync_status
Revises:
Create Date: 2026-10-18 09:00:00.000000
"""

from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision = "0001_ships_sync_status"
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "ships",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("fleetyards_id", sa.String(length=36), nullable=False, comment="FleetYards UUID"),
        sa.Column("slug", sa.String(length=200), nullable=False),
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("sc_identifier", sa.String(length=200), nullable=True),
        sa.Column("manufacturer_name", sa.String(length=200), nullable=False),
        sa.Column("manufacturer_code", sa.String(length=50), nullable=False),
        sa.Column("manufacturer_slug", sa.String(length=200), nullable=False),
        sa.Column("classification", sa.String(length=100), nullable=False),
        sa.Column("classification_label", sa.String(length=100), nullable=False),
        sa.Column("focus", sa.String(length=200), nullable=False),
        sa.Column("size", sa.String(length=50), nullable=False),
        sa.Column("production_status", sa.String(length=100), nullable=False),
        sa.Column("crew_min", sa.Integer(), nullable=False),
        sa.Column("crew_max", sa.Integer(), nullable=False),
        sa.Column("cargo", sa.Float(), nullable=False),
        sa.Column("length", sa.Float(), nullable=False),
        sa.Column("beam", sa.Float(), nullable=False),
        sa.Column("height", sa.Float(), nullable=False),
        sa.Column("mass", sa.Float(), nullable=False),
        sa.Column("scm_speed", sa.Float(), nullable=True),
        sa.Column("hydrogen_fuel_tank_size", sa.Float(), nullable=True),
        sa.Column("quantum_fuel_tank_size", sa.Float(), nullable=True),
        sa.Column("pledge_price", sa.Float(), nullable=True),
        sa.Column("price", sa.Float(), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("store_url", sa.String(length=500), nullable=True),
        sa.Column("images", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("synced_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("sync_version", sa.Integer(), nullable=False),
        sa.Column("fleetyards_updated_at", sa.String(length=64), nullable=False, comment="Upstream updatedAt, used for delta filtering"),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("fleetyards_id"),
    )
    op.create_index("ix_ships_slug", "ships", ["slug"])
    op.create_index("ix_ships_manufacturer_slug", "ships", ["manufacturer_slug"])
    op.create_index("ix_ships_classification", "ships", ["classification"])
    op.create_index("ix_ships_size", "ships", ["size"])
    op.create_index("ix_ships_production_status", "ships", ["production_status"])
    op.create_index("ix_ships_sync_version", "ships", ["sync_version"])
    op.create_index("ix_ships_manufacturer_size", "ships", ["manufacturer_slug", "size"])
    # Backs the ranked search in ShipStorage.find_ships
    op.execute(
        "CREATE INDEX ix_ships_search ON ships "
        "USING GIN (to_tsvector('english', name || ' ' || manufacturer_name))"
    )

    op.create_table(
        "sync_status",
        sa.Column("run_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("type", sa.String(length=50), nullable=False),
        sa.Column("sync_version", sa.Integer(), nullable=False),
        sa.Column("last_sync_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("ship_count", sa.Integer(), nullable=False),
        sa.Column("new_ships", sa.Integer(), nullable=False),
        sa.Column("updated_ships", sa.Integer(), nullable=False),
        sa.Column("unchanged_ships", sa.Integer(), nullable=False),
        sa.Column("skipped_ships", sa.Integer(), nullable=False),
        sa.Column("duration_ms", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("errors", postgresql.JSONB(astext_type=sa.Text()), nullable=False),
        sa.Column("pages_processed", sa.Integer(), nullable=False),
        sa.PrimaryKeyConstraint("run_id"),
    )
    op.create_index("ix_sync_status_type_last_sync_at", "sync_status", ["type", "last_sync_at"])


def downgrade() -> None:
    op.drop_index("ix_sync_status_type_last_sync_at", table_name="sync_status")
    op.drop_table("sync_status")
    op.execute("DROP INDEX IF EXISTS ix_ships_search")
    op.drop_index("ix_ships_manufacturer_size", table_name="ships")
    op.drop_index("ix_ships_sync_version", table_name="ships")
    op.drop_index("ix_ships_production_status", table_name="ships")
    op.drop_index("ix_ships_size", table_name="ships")
    op.drop_index("ix_ships_classification", table_name="ships")
    op.drop_index("ix_ships_manufacturer_slug", table_name="ships")
    op.drop_index("ix_ships_slug", table_name="ships")
    op.drop_table("ships")
