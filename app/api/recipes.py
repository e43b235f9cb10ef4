"""Recipe costing and usage endpoints."""
from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.recipe import Recipe
from app.schemas.recipe import (
    ItemUsage,
    RecipeCostBreakdown,
    RecipeCostRefresh,
    RecipeUsageResponse,
)
from app.services.cost_calculator import calculate_recipe_cost, refresh_dependent_costs
from app.services.costing_context import load_costing_context
from app.services.usage_explosion import explode_usage

router = APIRouter(prefix="/recipes", tags=["recipes"])


@router.get("/{recipe_id}/cost", response_model=RecipeCostBreakdown)
def get_recipe_cost(recipe_id: UUID, db: Session = Depends(get_db)):
    """Get the cost breakdown for one batch of a recipe.

    Sub-recipes are costed recursively and included as nested breakdowns.
    """
    ctx = load_costing_context(db)
    return calculate_recipe_cost(ctx, recipe_id)


@router.post("/{recipe_id}/cost/refresh", response_model=RecipeCostRefresh)
def refresh_recipe_cost(recipe_id: UUID, db: Session = Depends(get_db)):
    """Recompute and store the cached cost of a recipe and every recipe using it."""
    refreshed = refresh_dependent_costs(db, recipe_id)
    recipe = db.query(Recipe).filter(Recipe.id == recipe_id).first()
    return RecipeCostRefresh(
        recipe_id=recipe_id,
        computed_cost=refreshed[recipe_id],
        computed_cost_at=recipe.computed_cost_at,
        refreshed=refreshed,
    )


@router.get("/{recipe_id}/usage", response_model=RecipeUsageResponse)
def get_recipe_usage(
    recipe_id: UUID,
    multiplier: Decimal = Query(Decimal("1"), gt=0, description="Number of batches"),
    apply_yield: bool = Query(False, description="Report as-purchased quantities"),
    db: Session = Depends(get_db),
):
    """Explode a recipe into the raw inventory items it consumes."""
    ctx = load_costing_context(db)
    recipe = ctx.recipe(recipe_id)
    usage = explode_usage(ctx, recipe_id, multiplier, apply_yield=apply_yield)

    items = []
    for item_id, qty in usage.items():
        item = ctx.item(item_id)
        base_unit = ctx.units.base_unit(ctx.units.get(item.unit_id).kind)
        items.append(
            ItemUsage(
                inventory_item_id=item_id,
                item_name=item.name,
                qty=qty,
                base_unit=base_unit.abbreviation if base_unit else "",
            )
        )
    items.sort(key=lambda i: i.item_name)

    return RecipeUsageResponse(
        recipe_id=recipe.id,
        recipe_name=recipe.name,
        multiplier=multiplier,
        apply_yield=apply_yield,
        items=items,
    )
