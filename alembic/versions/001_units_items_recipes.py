"""Units, inventory items, recipes, components and menu items

Revision ID: 001
Revises:
Create Date: 2026-10-17

Creates the tables the costing engine reads:
- units
- inventory_items
- recipes
- recipe_components
- menu_items
"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table(
        "units",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False),
        sa.Column("abbreviation", sa.String(20), nullable=False, unique=True),
        sa.Column("kind", sa.String(10), nullable=False),
        sa.Column("to_base_ratio", sa.Numeric(18, 12), nullable=False),
        sa.Column("system", sa.String(10), nullable=False, server_default="both"),
        sa.CheckConstraint("kind IN ('weight', 'volume', 'count')", name="ck_units_kind"),
        sa.CheckConstraint("to_base_ratio > 0", name="ck_units_ratio_positive"),
    )

    op.create_table(
        "inventory_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column(
            "unit_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("units.id"),
            nullable=False,
        ),
        sa.Column("price_per_unit", sa.Numeric(12, 4), nullable=False, server_default="0"),
        sa.Column("yield_percent", sa.Numeric(5, 2), server_default="95"),
        sa.Column("category", sa.String(50)),
        sa.Column("storage_location", sa.String(50)),
        sa.Column("is_active", sa.Boolean, server_default="true"),
        sa.Column("updated_at", sa.TIMESTAMP, server_default=sa.func.now()),
    )

    op.create_table(
        "recipes",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False, unique=True),
        sa.Column("yield_qty", sa.Numeric(12, 4), nullable=False),
        sa.Column(
            "yield_unit_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("units.id"),
            nullable=False,
        ),
        sa.Column("waste_percent", sa.Numeric(5, 2), nullable=False, server_default="0"),
        sa.Column("computed_cost", sa.Numeric(12, 4), nullable=False, server_default="0"),
        sa.Column("computed_cost_at", sa.TIMESTAMP),
        sa.Column("can_be_ingredient", sa.Boolean, server_default="false"),
        sa.Column("is_active", sa.Boolean, server_default="true"),
        sa.Column("created_at", sa.TIMESTAMP, server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP, server_default=sa.func.now()),
    )

    # component_id points at inventory_items or recipes depending on component_type
    op.create_table(
        "recipe_components",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column(
            "recipe_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("recipes.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("component_type", sa.String(20), nullable=False),
        sa.Column("component_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("qty", sa.Numeric(12, 4), nullable=False),
        sa.Column(
            "unit_id",
            postgresql.UUID(as_uuid=True),
            sa.ForeignKey("units.id"),
            nullable=False,
        ),
        sa.Column("yield_override", sa.Numeric(5, 2)),
        sa.Column("sort_order", sa.Integer, nullable=False, server_default="0"),
        sa.CheckConstraint(
            "component_type IN ('inventory_item', 'recipe')", name="ck_recipe_components_type"
        ),
    )
    op.create_index(
        "idx_recipe_components_recipe", "recipe_components", ["recipe_id"]
    )
    op.create_index(
        "idx_recipe_components_component", "recipe_components", ["component_type", "component_id"]
    )

    op.create_table(
        "menu_items",
        sa.Column("id", postgresql.UUID(as_uuid=True), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("recipe_id", postgresql.UUID(as_uuid=True), sa.ForeignKey("recipes.id")),
        sa.Column("portion_of_recipe", sa.Numeric(10, 6), nullable=False, server_default="1"),
        sa.Column("price", sa.Numeric(10, 2), nullable=False, server_default="0"),
        sa.Column("category", sa.String(50)),
        sa.Column("is_active", sa.Boolean, server_default="true"),
        sa.Column("created_at", sa.TIMESTAMP, server_default=sa.func.now()),
        sa.Column("updated_at", sa.TIMESTAMP, server_default=sa.func.now()),
    )


def downgrade() -> None:
    op.drop_table("menu_items")
    op.drop_index("idx_recipe_components_component", table_name="recipe_components")
    op.drop_index("idx_recipe_components_recipe", table_name="recipe_components")
    op.drop_table("recipe_components")
    op.drop_table("recipes")
    op.drop_table("inventory_items")
    op.drop_table("units")
