"""Inventory counts and receipts

Revision ID: 002
Revises: 001
Create Date: 2026-10-17

Physical count snapshots and completed deliveries, the two inputs to
actual usage (start + received - end).
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "inventory_counts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("store_id", postgresql.UUID(as_uuid=True)),
        sa.Column("count_date", sa.TIMESTAMP, nullable=False),
        sa.Column("applied", sa.Boolean, server_default="false"),
        sa.Column("note", sa.Text),
        sa.Column("created_at", sa.TIMESTAMP, server_default=sa.func.now()),
    )
    op.create_index(
        "idx_inventory_counts_store_date", "inventory_counts", ["store_id", "count_date"]
    )

    op.create_table(
        "inventory_count_lines",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "inventory_count_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("inventory_counts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "inventory_item_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("inventory_items.id"),
            nullable=False,
        ),
        sa.Column("storage_location", sa.String(50), nullable=False, server_default="default"),
        sa.Column("qty", sa.Numeric(12, 4), nullable=False, server_default="0"),
        sa.Column(
            "unit_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("units.id"),
            nullable=False,
        ),
        sa.UniqueConstraint(
            "inventory_count_id", "inventory_item_id", "storage_location",
            name="uq_count_lines_item_location",
        ),
    )
    op.create_index(
        "idx_count_lines_count", "inventory_count_lines", ["inventory_count_id"]
    )

    op.create_table(
        "receipts",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("store_id", postgresql.UUID(as_uuid=True)),
        sa.Column("status", sa.String(20), nullable=False, server_default="draft"),
        sa.Column("received_at", sa.TIMESTAMP, nullable=False, server_default=sa.func.now()),
    )
    op.create_index(
        "idx_receipts_store_received", "receipts", ["store_id", "received_at"]
    )

    op.create_table(
        "receipt_lines",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "receipt_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("receipts.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "inventory_item_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("inventory_items.id"),
            nullable=False,
        ),
        sa.Column("received_qty", sa.Numeric(12, 4), nullable=False),
        sa.Column(
            "unit_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("units.id"),
            nullable=False,
        ),
        sa.Column("price_each", sa.Numeric(12, 4), nullable=False, server_default="0"),
    )
    op.create_index("idx_receipt_lines_receipt", "receipt_lines", ["receipt_id"])


def downgrade() -> None:
    op.drop_index("idx_receipt_lines_receipt", table_name="receipt_lines")
    op.drop_table("receipt_lines")
    op.drop_index("idx_receipts_store_received", table_name="receipts")
    op.drop_table("receipts")
    op.drop_index("idx_count_lines_count", table_name="inventory_count_lines")
    op.drop_table("inventory_count_lines")
    op.drop_index("idx_inventory_counts_store_date", table_name="inventory_counts")
    op.drop_table("inventory_counts")
