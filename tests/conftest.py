"""Test fixtures and configuration."""
import uuid
from datetime import date, datetime
from decimal import Decimal

import pytest
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.models import Base
from app.models.inventory import (
    InventoryCount, InventoryCountLine, InventoryItem, Receipt, ReceiptLine,
)
from app.models.recipe import MenuItem, Recipe, RecipeComponent
from app.models.sales import DailyMenuItemSales
from app.services.units import seed_default_units


# Patch SQLite type compiler to handle PostgreSQL-specific types (JSONB).
# This lets us reuse the same ORM models with an in-memory SQLite test database.
from sqlalchemy.dialects.sqlite.base import SQLiteTypeCompiler

SQLiteTypeCompiler.visit_JSONB = lambda self, type_, **kw: "TEXT"


@pytest.fixture(scope="function")
def engine():
    """Create an in-memory SQLite engine for testing."""
    # Use check_same_thread=False for compatibility with FastAPI TestClient
    # Use StaticPool to ensure all connections use the same in-memory database
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )

    @event.listens_for(engine, "connect")
    def _set_sqlite_pragma(dbapi_conn, connection_record):
        cursor = dbapi_conn.cursor()
        cursor.execute("PRAGMA foreign_keys=OFF")
        cursor.close()

    # Create all tables
    Base.metadata.create_all(engine)

    yield engine

    # Clean up
    Base.metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture
def db(engine):
    """Create a test database session."""
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.rollback()
    session.close()


# ---------------------------------------------------------------------------
# Factory helpers
# ---------------------------------------------------------------------------

def make_uuid():
    return uuid.uuid4()


@pytest.fixture
def units(db):
    """Seed the default unit table; returns {abbreviation: Unit}."""
    return {unit.abbreviation: unit for unit in seed_default_units(db)}


@pytest.fixture
def item_factory(db, units):
    """Factory to create test inventory items."""
    def _create(name="Test Item", unit="lb", price_per_unit=Decimal("1"), **kwargs):
        item = InventoryItem(
            id=kwargs.pop("id", make_uuid()),
            name=name,
            unit_id=units[unit].id if isinstance(unit, str) else unit.id,
            price_per_unit=Decimal(str(price_per_unit)),
            yield_percent=Decimal(str(kwargs.pop("yield_percent", 100))),
            is_active=kwargs.pop("is_active", True),
            **kwargs,
        )
        db.add(item)
        db.flush()
        return item
    return _create


@pytest.fixture
def recipe_factory(db, units):
    """Factory to create test recipes."""
    def _create(name="Test Recipe", yield_qty=1, yield_unit="each", **kwargs):
        recipe = Recipe(
            id=kwargs.pop("id", make_uuid()),
            name=name,
            yield_qty=Decimal(str(yield_qty)),
            yield_unit_id=units[yield_unit].id if isinstance(yield_unit, str) else yield_unit.id,
            waste_percent=Decimal(str(kwargs.pop("waste_percent", 0))),
            computed_cost=Decimal("0"),
            is_active=kwargs.pop("is_active", True),
            created_at=datetime.utcnow(),
            updated_at=datetime.utcnow(),
            **kwargs,
        )
        db.add(recipe)
        db.flush()
        return recipe
    return _create


@pytest.fixture
def component_factory(db, units):
    """Factory to add an inventory item or sub-recipe line to a recipe."""
    def _create(recipe, target, qty=1, unit="lb", **kwargs):
        component = RecipeComponent(
            id=kwargs.pop("id", make_uuid()),
            recipe_id=recipe.id,
            component_type="recipe" if isinstance(target, Recipe) else "inventory_item",
            component_id=target.id,
            qty=Decimal(str(qty)),
            unit_id=units[unit].id if isinstance(unit, str) else unit.id,
            sort_order=kwargs.pop("sort_order", len(recipe.components)),
            **kwargs,
        )
        db.add(component)
        db.flush()
        db.refresh(recipe)
        return component
    return _create


@pytest.fixture
def menu_item_factory(db):
    """Factory to create test menu items."""
    def _create(name="Test Menu Item", recipe=None, portion_of_recipe=1, price=10, **kwargs):
        menu_item = MenuItem(
            id=kwargs.pop("id", make_uuid()),
            name=name,
            recipe_id=recipe.id if recipe else None,
            portion_of_recipe=Decimal(str(portion_of_recipe)),
            price=Decimal(str(price)),
            **kwargs,
        )
        db.add(menu_item)
        db.flush()
        return menu_item
    return _create


@pytest.fixture
def sale_factory(db):
    """Factory to create daily menu item sales."""
    def _create(menu_item, qty_sold=1, sales_date=None, net_sales=0, **kwargs):
        sale = DailyMenuItemSales(
            id=kwargs.pop("id", make_uuid()),
            menu_item_id=menu_item.id,
            sales_date=sales_date or date(2026, 3, 10),
            qty_sold=Decimal(str(qty_sold)),
            net_sales=Decimal(str(net_sales)),
            **kwargs,
        )
        db.add(sale)
        db.flush()
        return sale
    return _create


@pytest.fixture
def count_factory(db, units):
    """Factory to create an inventory count from (item, qty[, unit]) tuples."""
    def _create(count_date, lines=(), **kwargs):
        count = InventoryCount(
            id=kwargs.pop("id", make_uuid()),
            count_date=count_date,
            **kwargs,
        )
        for i, line in enumerate(lines):
            item, qty = line[0], line[1]
            unit_id = units[line[2]].id if len(line) > 2 else item.unit_id
            count.lines.append(
                InventoryCountLine(
                    id=make_uuid(),
                    inventory_item_id=item.id,
                    storage_location=line[3] if len(line) > 3 else f"loc-{i}",
                    qty=Decimal(str(qty)),
                    unit_id=unit_id,
                )
            )
        db.add(count)
        db.flush()
        return count
    return _create


@pytest.fixture
def receipt_factory(db, units):
    """Factory to create a receipt from (item, qty[, unit]) tuples."""
    def _create(received_at, lines=(), status="completed", **kwargs):
        receipt = Receipt(
            id=kwargs.pop("id", make_uuid()),
            received_at=received_at,
            status=status,
            **kwargs,
        )
        for line in lines:
            item, qty = line[0], line[1]
            unit_id = units[line[2]].id if len(line) > 2 else item.unit_id
            receipt.lines.append(
                ReceiptLine(
                    id=make_uuid(),
                    inventory_item_id=item.id,
                    received_qty=Decimal(str(qty)),
                    unit_id=unit_id,
                )
            )
        db.add(receipt)
        db.flush()
        return receipt
    return _create
