"""Cost calculation service for recipes.

A recipe's cost is the sum of its components' contributions, grossed up by
the recipe's waste percent:

- inventory item: base_qty * price_per_base_unit / (yield / 100)
- sub-recipe: base_qty * (sub-recipe total cost / sub-recipe base yield)

Costs are computed against a CostingContext and never touch the database.
Writing the result back to Recipe.computed_cost is a separate step
(refresh_recipe_cost) serialized per recipe.
"""
import logging
import threading
import weakref
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.recipe import Recipe
from app.schemas.recipe import ComponentCostLine, RecipeCostBreakdown
from app.services.costing_context import CostingContext, ItemInfo, load_costing_context
from app.services.errors import CostingError, MissingReferenceError
from app.services.recipe_tree import (
    HUNDRED,
    ComponentType,
    effective_yield,
    enter_recipe,
    recipe_yield_base_quantity,
    resolve_components,
    yield_fraction,
)
from app.services.units import base_quantity

logger = logging.getLogger(__name__)

# One writer per recipe within this process; the row lock covers other processes.
# Entries vanish once no writer holds the lock.
_recipe_locks: "weakref.WeakValueDictionary[UUID, threading.Lock]" = weakref.WeakValueDictionary()
_recipe_locks_guard = threading.Lock()


def _recipe_lock(recipe_id: UUID) -> threading.Lock:
    with _recipe_locks_guard:
        lock = _recipe_locks.get(recipe_id)
        if lock is None:
            lock = threading.Lock()
            _recipe_locks[recipe_id] = lock
        return lock


def price_per_base_unit(ctx: CostingContext, item: ItemInfo) -> Decimal:
    """As-purchased item price per base unit (lb, fl oz, each)."""
    unit = ctx.units.get(item.unit_id, referenced_by=f"item {item.name}")
    return item.price_per_unit / unit.to_base_ratio


def effective_price_per_base_unit(
    ctx: CostingContext,
    item: ItemInfo,
    yield_percent: Optional[Decimal] = None,
) -> Decimal:
    """Item price per base unit, inflated by yield loss.

    A yield of 0 leaves the raw price untouched rather than dividing by zero.
    """
    if yield_percent is None:
        yield_percent = item.yield_percent
    return price_per_base_unit(ctx, item) / yield_fraction(yield_percent)


def calculate_recipe_cost(
    ctx: CostingContext,
    recipe_id: UUID,
    _path: tuple[UUID, ...] = (),
) -> RecipeCostBreakdown:
    """Calculate the full cost breakdown for a recipe.

    Sub-recipes are costed recursively and memoized on the context.

    Raises:
        CyclicRecipeError: If the recipe reaches itself through sub-recipes
        MissingReferenceError: If a unit, item or sub-recipe does not exist
        UnitKindMismatch: If a component unit cannot convert to its target's unit
        InvalidRecipeYield: If a sub-recipe has a non-positive yield
    """
    path = enter_recipe(recipe_id, _path)

    if recipe_id in ctx.cost_memo:
        return ctx.cost_memo[recipe_id]

    recipe = ctx.recipe(recipe_id)
    yield_unit = ctx.units.get(recipe.yield_unit_id, referenced_by=f"recipe {recipe.name}")
    yield_base_qty = base_quantity(recipe.yield_qty, yield_unit)

    lines = []
    subtotal = Decimal("0")

    for resolved in resolve_components(ctx, recipe):
        component = resolved.component
        unit = ctx.units.get(component.unit_id)

        if resolved.component_type is ComponentType.INVENTORY_ITEM:
            item = resolved.target
            yield_percent = effective_yield(component, item)
            price_per_base = effective_price_per_base_unit(ctx, item, yield_percent)
            cost = resolved.base_qty * price_per_base
            lines.append(
                ComponentCostLine(
                    component_id=item.id,
                    component_type=ComponentType.INVENTORY_ITEM.value,
                    name=item.name,
                    qty=component.qty,
                    unit=unit.abbreviation,
                    base_qty=resolved.base_qty,
                    yield_percent=yield_percent,
                    price_per_base_unit=price_per_base,
                    cost=cost,
                )
            )
        elif resolved.component_type is ComponentType.RECIPE:
            sub_recipe = resolved.target
            sub_breakdown = calculate_recipe_cost(ctx, sub_recipe.id, path)
            cost_per_base = sub_breakdown.total_cost / recipe_yield_base_quantity(ctx, sub_recipe)
            cost = resolved.base_qty * cost_per_base
            lines.append(
                ComponentCostLine(
                    component_id=sub_recipe.id,
                    component_type=ComponentType.RECIPE.value,
                    name=sub_recipe.name,
                    qty=component.qty,
                    unit=unit.abbreviation,
                    base_qty=resolved.base_qty,
                    price_per_base_unit=cost_per_base,
                    cost=cost,
                    sub_recipe=sub_breakdown,
                )
            )
        else:
            raise ValueError(f"Unknown component type: {resolved.component_type!r}")

        subtotal += cost

    total_cost = subtotal * (1 + recipe.waste_percent / HUNDRED)

    breakdown = RecipeCostBreakdown(
        recipe_id=recipe.id,
        recipe_name=recipe.name,
        yield_qty=recipe.yield_qty,
        yield_unit=yield_unit.abbreviation,
        yield_base_qty=yield_base_qty,
        components=lines,
        subtotal=subtotal,
        waste_percent=recipe.waste_percent,
        waste_cost=total_cost - subtotal,
        total_cost=total_cost,
        cost_per_yield_unit=total_cost / recipe.yield_qty if recipe.yield_qty > 0 else None,
        cost_per_base_unit=total_cost / yield_base_qty if yield_base_qty > 0 else None,
    )
    ctx.cost_memo[recipe_id] = breakdown
    return breakdown


def compute_recipe_cost(ctx: CostingContext, recipe_id: UUID) -> Decimal:
    """Total cost of one batch of a recipe."""
    return calculate_recipe_cost(ctx, recipe_id).total_cost


def _write_cost(db: Session, recipe_id: UUID, cost: Decimal) -> Recipe:
    """Store a computed cost on the recipe row under the recipe's locks."""
    with _recipe_lock(recipe_id):
        recipe = (
            db.query(Recipe)
            .filter(Recipe.id == recipe_id)
            .with_for_update()
            .first()
        )
        if recipe is None:
            raise MissingReferenceError("Recipe", recipe_id)
        recipe.computed_cost = cost
        recipe.computed_cost_at = datetime.utcnow()
        db.commit()
    logger.info(f"Updated cached cost for recipe {recipe.name}: {cost:.4f}")
    return recipe


def refresh_recipe_cost(
    db: Session,
    recipe_id: UUID,
    ctx: Optional[CostingContext] = None,
) -> Decimal:
    """Recompute a recipe's cost and store it in Recipe.computed_cost.

    Returns:
        The newly stored cost
    """
    if ctx is None:
        ctx = load_costing_context(db)
    cost = compute_recipe_cost(ctx, recipe_id)
    _write_cost(db, recipe_id, cost)
    return cost


def _dependents_in_order(ctx: CostingContext, recipe_id: UUID) -> list[UUID]:
    """recipe_id plus every recipe that uses it, each after all it depends on."""
    order: list[UUID] = []
    visited: set[UUID] = set()

    def visit(current: UUID, path: tuple[UUID, ...]):
        path = enter_recipe(current, path)
        if current in visited:
            return
        visited.add(current)
        for parent_id in ctx.recipes_using(current):
            visit(parent_id, path)
        order.append(current)

    visit(recipe_id, ())
    # Post-order lists parents first
    order.reverse()
    return order


def refresh_dependent_costs(db: Session, recipe_id: UUID) -> dict[UUID, Decimal]:
    """Refresh a recipe's cached cost and that of every recipe that uses it.

    Recipes are refreshed children before parents.

    Returns:
        {recipe_id: new cost} for every refreshed recipe
    """
    ctx = load_costing_context(db)
    ctx.recipe(recipe_id)

    refreshed: dict[UUID, Decimal] = {}
    for current in _dependents_in_order(ctx, recipe_id):
        refreshed[current] = refresh_recipe_cost(db, current, ctx)

    if len(refreshed) > 1:
        logger.info(f"Refreshed {len(refreshed)} recipe costs starting from {recipe_id}")
    return refreshed


def recompute_all_recipe_costs(db: Session) -> tuple[dict[UUID, Decimal], dict[UUID, str]]:
    """Refresh the cached cost of every active recipe.

    A recipe that cannot be costed is recorded and skipped; the rest of the
    batch still runs.

    Returns:
        Tuple of ({recipe_id: cost}, {recipe_id: error message})
    """
    ctx = load_costing_context(db)
    active_ids = [
        recipe_id for (recipe_id,) in db.query(Recipe.id).filter(Recipe.is_active == True).all()
    ]

    updated: dict[UUID, Decimal] = {}
    failed: dict[UUID, str] = {}
    for recipe_id in active_ids:
        try:
            updated[recipe_id] = refresh_recipe_cost(db, recipe_id, ctx)
        except CostingError as e:
            logger.warning(f"Could not cost recipe {recipe_id}: {e}")
            failed[recipe_id] = str(e)

    logger.info(f"Recomputed {len(updated)} recipe costs, {len(failed)} failed")
    return updated, failed
