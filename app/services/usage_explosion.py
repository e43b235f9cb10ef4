"""Explode recipes into the raw inventory they consume.

explode_usage walks a recipe tree and returns, per inventory item, the total
quantity in the base unit of the item's unit kind. A sub-recipe component of
q base units, from a sub-recipe yielding Y base units, recurses with
multiplier * q / Y.
"""
import logging
from decimal import Decimal
from typing import Iterable, Mapping
from uuid import UUID

from app.services.costing_context import CostingContext
from app.services.recipe_tree import (
    ComponentType,
    effective_yield,
    enter_recipe,
    recipe_yield_base_quantity,
    resolve_components,
    yield_fraction,
)
from app.services.units import to_decimal

logger = logging.getLogger(__name__)

Usage = dict[UUID, Decimal]


def merge_usage(usages: Iterable[Mapping[UUID, Decimal]]) -> Usage:
    """Sum several usage maps item by item."""
    merged: Usage = {}
    for usage in usages:
        for item_id, qty in usage.items():
            merged[item_id] = merged.get(item_id, Decimal("0")) + qty
    return merged


def scale_usage(usage: Mapping[UUID, Decimal], factor) -> Usage:
    factor = to_decimal(factor)
    return {item_id: qty * factor for item_id, qty in usage.items()}


def explode_usage(
    ctx: CostingContext,
    recipe_id: UUID,
    multiplier=1,
    apply_yield: bool = False,
) -> Usage:
    """Raw inventory consumed by producing multiplier batches of a recipe.

    Args:
        ctx: Costing context holding the recipe tree
        recipe_id: Recipe to explode
        multiplier: Number of batches (may be fractional)
        apply_yield: Divide each item line by its yield fraction, giving the
            as-purchased quantity instead of the usable quantity

    Returns:
        {inventory_item_id: base-unit quantity}

    Raises:
        CyclicRecipeError: If the recipe reaches itself through sub-recipes
        MissingReferenceError: If a unit, item or sub-recipe does not exist
        UnitKindMismatch: If a component unit cannot convert to its target's unit
        InvalidRecipeYield: If a sub-recipe has a non-positive yield
    """
    usage: Usage = {}
    _explode(ctx, recipe_id, to_decimal(multiplier), apply_yield, (), usage)
    return usage


def _explode(
    ctx: CostingContext,
    recipe_id: UUID,
    multiplier: Decimal,
    apply_yield: bool,
    path: tuple[UUID, ...],
    usage: Usage,
) -> None:
    path = enter_recipe(recipe_id, path)
    recipe = ctx.recipe(recipe_id)

    for resolved in resolve_components(ctx, recipe):
        if resolved.component_type is ComponentType.INVENTORY_ITEM:
            item = resolved.target
            qty = resolved.base_qty * multiplier
            if apply_yield:
                qty = qty / yield_fraction(effective_yield(resolved.component, item))
            usage[item.id] = usage.get(item.id, Decimal("0")) + qty
        elif resolved.component_type is ComponentType.RECIPE:
            sub_recipe = resolved.target
            sub_multiplier = multiplier * resolved.base_qty / recipe_yield_base_quantity(ctx, sub_recipe)
            _explode(ctx, sub_recipe.id, sub_multiplier, apply_yield, path, usage)
        else:
            raise ValueError(f"Unknown component type: {resolved.component_type!r}")
