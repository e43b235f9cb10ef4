"""SQLAlchemy models for the recipe costing service."""
from sqlalchemy.orm import declarative_base

Base = declarative_base()

# Import all models to register them with Base.metadata
from .unit import Unit
from .inventory import InventoryItem, InventoryCount, InventoryCountLine, Receipt, ReceiptLine
from .recipe import Recipe, RecipeComponent, MenuItem
from .sales import DailyMenuItemSales, TheoreticalUsageRun, TheoreticalUsageLine

__all__ = [
    "Base",
    "Unit",
    "InventoryItem",
    "InventoryCount",
    "InventoryCountLine",
    "Receipt",
    "ReceiptLine",
    "Recipe",
    "RecipeComponent",
    "MenuItem",
    "DailyMenuItemSales",
    "TheoreticalUsageRun",
    "TheoreticalUsageLine",
]
