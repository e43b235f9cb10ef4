"""Daily menu item sales and theoretical usage runs

Revision ID: 003
Revises: 002
Create Date: 2026-10-17
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "003"
down_revision: Union[str, None] = "002"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "daily_menu_item_sales",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "menu_item_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("menu_items.id"),
            nullable=False,
        ),
        sa.Column("store_id", postgresql.UUID(as_uuid=True)),
        sa.Column("sales_date", sa.Date, nullable=False),
        sa.Column("qty_sold", sa.Numeric(12, 3), nullable=False, server_default="0"),
        sa.Column("net_sales", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.UniqueConstraint(
            "store_id", "menu_item_id", "sales_date", name="uq_daily_sales_store_item_date"
        ),
    )
    op.create_index("idx_daily_sales_date", "daily_menu_item_sales", ["sales_date"])

    op.create_table(
        "theoretical_usage_runs",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("store_id", postgresql.UUID(as_uuid=True)),
        sa.Column("period_start", sa.Date, nullable=False),
        sa.Column("period_end", sa.Date, nullable=False),
        sa.Column("status", sa.String(20), nullable=False, server_default="processing"),
        sa.Column("total_menu_items_sold", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("total_revenue", sa.Numeric(12, 2), nullable=False, server_default="0"),
        sa.Column("total_theoretical_cost", sa.Numeric(12, 4), nullable=False, server_default="0"),
        sa.Column("error_log", postgresql.JSONB),
        sa.Column("created_at", sa.TIMESTAMP, server_default=sa.func.now()),
        sa.Column("completed_at", sa.TIMESTAMP),
    )
    op.create_index(
        "idx_usage_runs_store_period",
        "theoretical_usage_runs",
        ["store_id", "period_start", "period_end"],
    )

    op.create_table(
        "theoretical_usage_lines",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "run_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("theoretical_usage_runs.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "inventory_item_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("inventory_items.id"),
            nullable=False,
        ),
        sa.Column("required_qty_base_unit", sa.Numeric(16, 6), nullable=False),
        sa.Column("base_unit_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("units.id")),
        sa.Column("cost_at_sale", sa.Numeric(12, 4), nullable=False, server_default="0"),
        sa.Column("source_menu_items", postgresql.JSONB),
        sa.UniqueConstraint("run_id", "inventory_item_id", name="uq_usage_lines_run_item"),
    )


def downgrade() -> None:
    op.drop_table("theoretical_usage_lines")
    op.drop_index("idx_usage_runs_store_period", table_name="theoretical_usage_runs")
    op.drop_table("theoretical_usage_runs")
    op.drop_index("idx_daily_sales_date", table_name="daily_menu_item_sales")
    op.drop_table("daily_menu_item_sales")
