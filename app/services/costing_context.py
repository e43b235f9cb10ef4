"""Request-scoped snapshot of the tables the costing engines read.

Units, inventory items, recipes and components are loaded once with one
query per table and frozen into plain records. The recursive engines only
ever look things up here; nothing is queried mid-recursion.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Iterable, Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.config import get_settings
from app.models.inventory import InventoryItem
from app.models.recipe import Recipe, RecipeComponent
from app.models.unit import Unit
from app.services.errors import MissingReferenceError
from app.services.recipe_tree import ComponentType
from app.services.units import UnitInfo, UnitRegistry, to_decimal, unit_info_from_model

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ItemInfo:
    id: UUID
    name: str
    unit_id: UUID
    price_per_unit: Decimal
    yield_percent: Decimal


@dataclass(frozen=True)
class ComponentInfo:
    id: UUID
    recipe_id: UUID
    component_type: ComponentType
    component_id: UUID
    qty: Decimal
    unit_id: UUID
    yield_override: Optional[Decimal] = None
    sort_order: int = 0


@dataclass(frozen=True)
class RecipeInfo:
    id: UUID
    name: str
    yield_qty: Decimal
    yield_unit_id: UUID
    waste_percent: Decimal = Decimal("0")
    components: tuple[ComponentInfo, ...] = ()


@dataclass
class CostingContext:
    """Lookup maps for one request or report.

    Also holds the per-request memo of sub-recipe cost breakdowns, so a
    sub-recipe shared by several parents is costed once.
    """

    units: UnitRegistry
    items: dict[UUID, ItemInfo]
    recipes: dict[UUID, RecipeInfo]
    cost_memo: dict = field(default_factory=dict)

    @classmethod
    def from_records(
        cls,
        units: Iterable[UnitInfo],
        items: Iterable[ItemInfo],
        recipes: Iterable[RecipeInfo],
    ) -> "CostingContext":
        return cls(
            units=UnitRegistry(units),
            items={item.id: item for item in items},
            recipes={recipe.id: recipe for recipe in recipes},
        )

    def item(self, item_id: UUID, referenced_by: Optional[str] = None) -> ItemInfo:
        item = self.items.get(item_id)
        if item is None:
            logger.warning(f"Inventory item {item_id} not found (referenced by {referenced_by})")
            raise MissingReferenceError("InventoryItem", item_id, referenced_by)
        return item

    def recipe(self, recipe_id: UUID, referenced_by: Optional[str] = None) -> RecipeInfo:
        recipe = self.recipes.get(recipe_id)
        if recipe is None:
            logger.warning(f"Recipe {recipe_id} not found (referenced by {referenced_by})")
            raise MissingReferenceError("Recipe", recipe_id, referenced_by)
        return recipe

    def recipes_using(self, recipe_id: UUID) -> list[UUID]:
        """Ids of recipes that list recipe_id directly as a sub-recipe."""
        return [
            recipe.id
            for recipe in self.recipes.values()
            if any(
                c.component_type is ComponentType.RECIPE and c.component_id == recipe_id
                for c in recipe.components
            )
        ]


def _component_info(row: RecipeComponent) -> ComponentInfo:
    try:
        component_type = ComponentType(row.component_type)
    except ValueError:
        raise ValueError(
            f"Recipe component {row.id} has unknown component_type {row.component_type!r}"
        )
    return ComponentInfo(
        id=row.id,
        recipe_id=row.recipe_id,
        component_type=component_type,
        component_id=row.component_id,
        qty=to_decimal(row.qty),
        unit_id=row.unit_id,
        yield_override=to_decimal(row.yield_override) if row.yield_override is not None else None,
        sort_order=row.sort_order or 0,
    )


def load_costing_context(db: Session) -> CostingContext:
    """Load every unit, item, recipe and component into a CostingContext.

    Raises:
        ValueError: If a component row has an unrecognized component_type
    """
    default_yield = get_settings().DEFAULT_YIELD_PERCENT
    units = [unit_info_from_model(u) for u in db.query(Unit).all()]

    items = [
        ItemInfo(
            id=row.id,
            name=row.name,
            unit_id=row.unit_id,
            price_per_unit=to_decimal(row.price_per_unit or 0),
            yield_percent=to_decimal(
                row.yield_percent if row.yield_percent is not None else default_yield
            ),
        )
        for row in db.query(InventoryItem).all()
    ]

    components_by_recipe: dict[UUID, list[ComponentInfo]] = {}
    for row in db.query(RecipeComponent).all():
        components_by_recipe.setdefault(row.recipe_id, []).append(_component_info(row))

    recipes = []
    for row in db.query(Recipe).all():
        components = sorted(components_by_recipe.get(row.id, []), key=lambda c: c.sort_order)
        recipes.append(
            RecipeInfo(
                id=row.id,
                name=row.name,
                yield_qty=to_decimal(row.yield_qty),
                yield_unit_id=row.yield_unit_id,
                waste_percent=to_decimal(row.waste_percent or 0),
                components=tuple(components),
            )
        )

    ctx = CostingContext.from_records(units, items, recipes)
    logger.debug(
        f"Loaded costing context: {len(ctx.units)} units, {len(ctx.items)} items, "
        f"{len(ctx.recipes)} recipes"
    )
    return ctx
