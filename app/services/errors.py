"""Errors raised by the costing and usage engines.

All of these are local to a single recipe/item computation. Callers decide
whether to abort a whole report or skip the offending line.
"""
from decimal import Decimal
from typing import Optional, Sequence
from uuid import UUID


class CostingError(Exception):
    """Base class for recipe costing and usage errors."""


class CyclicRecipeError(CostingError):
    """Raised when the sub-recipe graph loops back on itself."""

    def __init__(self, recipe_id: UUID, path: Sequence[UUID]):
        self.recipe_id = recipe_id
        self.path = list(path)
        chain = " -> ".join(str(p) for p in [*self.path, recipe_id])
        super().__init__(f"Circular recipe reference detected: {chain}")


class MissingReferenceError(CostingError):
    """Raised when a unit, item, recipe or menu item id no longer exists."""

    def __init__(self, entity: str, entity_id: UUID, referenced_by: Optional[str] = None):
        self.entity = entity
        self.entity_id = entity_id
        self.referenced_by = referenced_by
        message = f"{entity} {entity_id} not found"
        if referenced_by:
            message += f" (referenced by {referenced_by})"
        super().__init__(message)


class UnitKindMismatch(CostingError):
    """Raised when converting between units of different kinds."""

    def __init__(self, from_unit: str, to_unit: str, context: str = ""):
        self.from_unit = from_unit
        self.to_unit = to_unit
        self.context = context
        message = f"Cannot convert '{from_unit}' to '{to_unit}'"
        if context:
            message += f" for {context}"
        super().__init__(message)


class InvalidRecipeYield(CostingError):
    """Raised when a sub-recipe has no positive yield to divide its cost by."""

    def __init__(self, recipe_id: UUID, yield_qty: Decimal):
        self.recipe_id = recipe_id
        self.yield_qty = yield_qty
        super().__init__(f"Recipe {recipe_id} has non-positive yield {yield_qty}")
