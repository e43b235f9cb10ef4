"""Shared recursive descent over recipe component trees.

Both the cost engine and the usage explosion walk the same graph:
a recipe's components are either inventory items (leaves) or other recipes.
This module holds the pieces they share: component dispatch, unit-kind
checks, yield handling, and the cycle guard.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import TYPE_CHECKING, Iterator, Optional, Union
from uuid import UUID

from app.services.errors import CyclicRecipeError, InvalidRecipeYield, UnitKindMismatch
from app.services.units import base_quantity

if TYPE_CHECKING:
    from app.services.costing_context import (
        ComponentInfo, CostingContext, ItemInfo, RecipeInfo,
    )

logger = logging.getLogger(__name__)

HUNDRED = Decimal("100")


class ComponentType(str, Enum):
    """What a recipe component points at."""
    INVENTORY_ITEM = "inventory_item"
    RECIPE = "recipe"


@dataclass(frozen=True)
class ResolvedComponent:
    """A component with its target looked up and its quantity in base units."""

    component: "ComponentInfo"
    target: Union["ItemInfo", "RecipeInfo"]
    base_qty: Decimal

    @property
    def component_type(self) -> ComponentType:
        return self.component.component_type


def enter_recipe(recipe_id: UUID, path: tuple[UUID, ...]) -> tuple[UUID, ...]:
    """Push recipe_id onto the current recursion path.

    The path is immutable, so each branch of the descent carries its own
    copy and sibling sub-recipes never see each other's entries.

    Raises:
        CyclicRecipeError: If recipe_id is already on the path
    """
    if recipe_id in path:
        error = CyclicRecipeError(recipe_id, path)
        logger.warning(str(error))
        raise error
    return path + (recipe_id,)


def component_base_quantity(
    ctx: "CostingContext",
    component: "ComponentInfo",
    native_unit_id: UUID,
    referenced_by: str,
) -> Decimal:
    """Convert a component quantity to base units of its target's unit kind.

    Raises:
        UnitKindMismatch: If the component unit measures a different kind
            than the item's unit or the sub-recipe's yield unit
    """
    unit = ctx.units.get(component.unit_id, referenced_by=referenced_by)
    native = ctx.units.get(native_unit_id, referenced_by=referenced_by)
    if unit.kind != native.kind:
        raise UnitKindMismatch(unit.abbreviation, native.abbreviation, referenced_by)
    return base_quantity(component.qty, unit)


def recipe_yield_base_quantity(ctx: "CostingContext", recipe: "RecipeInfo") -> Decimal:
    """Recipe yield expressed in base units of its yield unit's kind.

    Raises:
        InvalidRecipeYield: If the yield is zero or negative
    """
    unit = ctx.units.get(recipe.yield_unit_id, referenced_by=f"recipe {recipe.name}")
    yield_base = base_quantity(recipe.yield_qty, unit)
    if yield_base <= 0:
        raise InvalidRecipeYield(recipe.id, recipe.yield_qty)
    return yield_base


def effective_yield(component: "ComponentInfo", item: "ItemInfo") -> Decimal:
    """Yield percent for an inventory line: the override if set, else the item's."""
    if component.yield_override is not None:
        return component.yield_override
    return item.yield_percent


def yield_fraction(yield_percent: Optional[Decimal]) -> Decimal:
    """Usable fraction for a yield percent. 0% (or unset) means no adjustment."""
    if yield_percent is None or yield_percent <= 0:
        return Decimal("1")
    return yield_percent / HUNDRED


def resolve_components(ctx: "CostingContext", recipe: "RecipeInfo") -> Iterator[ResolvedComponent]:
    """Yield each component of recipe with its target and base quantity."""
    referenced_by = f"recipe {recipe.name}"
    for component in recipe.components:
        if component.component_type is ComponentType.INVENTORY_ITEM:
            target = ctx.item(component.component_id, referenced_by=referenced_by)
            native_unit_id = target.unit_id
        elif component.component_type is ComponentType.RECIPE:
            target = ctx.recipe(component.component_id, referenced_by=referenced_by)
            native_unit_id = target.yield_unit_id
        else:
            raise ValueError(f"Unknown component type: {component.component_type!r}")

        base_qty = component_base_quantity(ctx, component, native_unit_id, referenced_by)
        yield ResolvedComponent(component=component, target=target, base_qty=base_qty)
