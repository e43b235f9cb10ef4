"""Pydantic schemas for recipe costing and usage explosion."""

from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, Field


# ============================================================================
# Cost Calculation Schemas
# ============================================================================


class ComponentCostLine(BaseModel):
    """Cost contribution of one recipe component."""

    component_id: UUID
    component_type: str  # 'inventory_item' | 'recipe'
    name: str
    qty: Decimal
    unit: str
    base_qty: Decimal = Field(..., description="Quantity in base units (lb, fl oz, each)")
    yield_percent: Optional[Decimal] = None  # inventory_item only
    price_per_base_unit: Decimal = Field(..., description="Yield-adjusted cost per base unit")
    cost: Decimal
    sub_recipe: Optional["RecipeCostBreakdown"] = None


class RecipeCostBreakdown(BaseModel):
    """Full cost breakdown for a recipe."""

    recipe_id: UUID
    recipe_name: str
    yield_qty: Decimal
    yield_unit: str
    yield_base_qty: Decimal
    components: list[ComponentCostLine] = []
    subtotal: Decimal = Decimal("0")
    waste_percent: Decimal = Decimal("0")
    waste_cost: Decimal = Decimal("0")
    total_cost: Decimal = Decimal("0")
    cost_per_yield_unit: Optional[Decimal] = None  # None when yield is not positive
    cost_per_base_unit: Optional[Decimal] = None


ComponentCostLine.model_rebuild()


class RecipeCostRefresh(BaseModel):
    """Cached costs written back by a refresh."""

    recipe_id: UUID
    computed_cost: Decimal
    computed_cost_at: Optional[datetime] = None
    refreshed: dict[UUID, Decimal] = Field(
        default_factory=dict, description="Every recipe refreshed, including dependents"
    )


# ============================================================================
# Usage Explosion Schemas
# ============================================================================


class ItemUsage(BaseModel):
    """Base-unit quantity of one inventory item."""

    inventory_item_id: UUID
    item_name: str
    qty: Decimal
    base_unit: str


class RecipeUsageResponse(BaseModel):
    """Raw inventory consumed by producing a number of batches of a recipe."""

    recipe_id: UUID
    recipe_name: str
    multiplier: Decimal
    apply_yield: bool = False
    items: list[ItemUsage] = []

