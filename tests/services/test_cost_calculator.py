"""Tests for app/services/cost_calculator.py - recipe cost calculation."""
import threading
import time
import uuid
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest

from app.models.recipe import Recipe
from app.services.cost_calculator import (
    calculate_recipe_cost,
    compute_recipe_cost,
    effective_price_per_base_unit,
    recompute_all_recipe_costs,
    refresh_dependent_costs,
    refresh_recipe_cost,
    _recipe_lock,
    _recipe_locks,
    _write_cost,
)
from app.services.costing_context import load_costing_context
from app.services.errors import (
    CyclicRecipeError,
    InvalidRecipeYield,
    MissingReferenceError,
    UnitKindMismatch,
)

from tests.builders import context, item, line, recipe


# ============================================================================
# effective_price_per_base_unit
# ============================================================================


class TestEffectivePrice:
    def test_yield_inflates_price(self):
        flour = item("Flour", price="2", yield_percent="95")
        price = effective_price_per_base_unit(context([flour]), flour)
        assert abs(price - Decimal("2.1053")) < Decimal("0.0001")

    def test_price_converted_to_base_unit(self):
        # $16 per ounce-priced item -> $256/lb at 100% yield
        saffron = item("Saffron", price="16", unit="oz", yield_percent="100")
        assert effective_price_per_base_unit(context([saffron]), saffron) == Decimal("256")

    def test_zero_yield_is_raw_price(self):
        herbs = item("Herbs", price="3", yield_percent="0")
        assert effective_price_per_base_unit(context([herbs]), herbs) == Decimal("3")

    def test_override_beats_item_yield(self):
        onion = item("Onion", price="1", yield_percent="100")
        price = effective_price_per_base_unit(context([onion]), onion, Decimal("50"))
        assert price == Decimal("2")


# ============================================================================
# calculate_recipe_cost / compute_recipe_cost
# ============================================================================


class TestComputeRecipeCost:
    def test_pizza_dough(self):
        """166.5 lb of ingredients at $2/lb and 95% yield."""
        quantities = {"Flour": 100, "Water": 60, "Salt": 2, "Yeast": "1.5", "Olive Oil": 2, "Sugar": 1}
        items = {name: item(name) for name in quantities}
        dough = recipe(
            "Pizza Dough",
            [line(items[name], qty) for name, qty in quantities.items()],
            yield_qty="166.5",
            yield_unit="lb",
        )

        cost = compute_recipe_cost(context(items.values(), [dough]), dough.id)

        assert abs(cost - Decimal("350.53")) < Decimal("0.01")

    def test_mixed_units_convert_to_base(self):
        butter = item("Butter", price="4", unit="lb", yield_percent="100")
        cookies = recipe("Cookies", [line(butter, 8, unit="oz")])
        assert compute_recipe_cost(context([butter], [cookies]), cookies.id) == Decimal("2")

    def test_yield_override_used(self):
        onion = item("Onion", price="1", yield_percent="100")
        soup = recipe("Soup", [line(onion, 10, yield_override=50)])
        assert compute_recipe_cost(context([onion], [soup]), soup.id) == Decimal("20")

    def test_zero_yield_item_is_finite(self):
        herbs = item("Herbs", price="3", yield_percent="0")
        garnish = recipe("Garnish", [line(herbs, 2)])
        assert compute_recipe_cost(context([herbs], [garnish]), garnish.id) == Decimal("6")

    def test_waste_percent_grosses_up(self):
        rice = item("Rice", price="1", yield_percent="100")
        pilaf = recipe("Pilaf", [line(rice, 10)], waste_percent="10")
        breakdown = calculate_recipe_cost(context([rice], [pilaf]), pilaf.id)
        assert breakdown.subtotal == Decimal("10")
        assert breakdown.waste_cost == Decimal("1")
        assert breakdown.total_cost == Decimal("11")

    def test_empty_recipe_costs_zero(self):
        empty = recipe("Empty")
        assert compute_recipe_cost(context([], [empty]), empty.id) == Decimal("0")

    def test_sub_recipe_cost_per_base_unit(self):
        # Sauce: 1 gal (128 fl oz) of tomatoes costs $12.80 -> $0.10/fl oz
        tomatoes = item("Tomatoes", price="12.80", unit="each", yield_percent="100")
        sauce = recipe("Sauce", [line(tomatoes, 1, unit="each")], yield_qty="1", yield_unit="gal")
        pizza = recipe("Pizza", [line(sauce, 1, unit="cup")])

        breakdown = calculate_recipe_cost(context([tomatoes], [sauce, pizza]), pizza.id)

        assert breakdown.total_cost == Decimal("0.8")
        sauce_line = breakdown.components[0]
        assert sauce_line.component_type == "recipe"
        assert sauce_line.base_qty == Decimal("8")
        assert sauce_line.sub_recipe.recipe_name == "Sauce"

    def test_breakdown_per_unit_costs(self):
        flour = item("Flour", price="1", yield_percent="100")
        bread = recipe("Bread", [line(flour, 10)], yield_qty="5", yield_unit="lb")
        breakdown = calculate_recipe_cost(context([flour], [bread]), bread.id)
        assert breakdown.cost_per_yield_unit == Decimal("2")
        assert breakdown.cost_per_base_unit == Decimal("2")

    def test_top_level_zero_yield_has_no_per_unit_cost(self):
        flour = item("Flour", price="1", yield_percent="100")
        bread = recipe("Bread", [line(flour, 10)], yield_qty="0", yield_unit="lb")
        breakdown = calculate_recipe_cost(context([flour], [bread]), bread.id)
        assert breakdown.total_cost == Decimal("10")
        assert breakdown.cost_per_yield_unit is None

    @pytest.mark.parametrize("smaller,larger", [(1, 2), ("0.5", "0.6"), (10, 100)])
    def test_monotonic_in_component_qty(self, smaller, larger):
        sugar = item("Sugar")
        small = recipe("Small", [line(sugar, smaller)])
        large = recipe("Large", [line(sugar, larger)])
        ctx = context([sugar], [small, large])
        assert compute_recipe_cost(ctx, large.id) > compute_recipe_cost(ctx, small.id)

    def test_shared_sub_recipe_memoized(self):
        stock = recipe("Stock", [], yield_unit="qt")
        soup = recipe("Soup", [line(stock, 1, unit="qt"), line(stock, 2, unit="qt")])
        ctx = context([], [stock, soup])
        calculate_recipe_cost(ctx, soup.id)
        assert stock.id in ctx.cost_memo


class TestCostErrors:
    def test_two_recipe_cycle(self):
        a_id, b_id = uuid.uuid4(), uuid.uuid4()
        a_ref = recipe("A", recipe_id=a_id)
        b = recipe("B", [line(a_ref, 1, unit="each")], recipe_id=b_id)
        a = recipe("A", [line(b, 1, unit="each")], recipe_id=a_id)

        with pytest.raises(CyclicRecipeError) as exc_info:
            compute_recipe_cost(context([], [a, b]), a.id)
        assert exc_info.value.recipe_id == a_id
        assert exc_info.value.path == [a_id, b_id]

    def test_self_reference(self):
        a_id = uuid.uuid4()
        a = recipe("A", [line(recipe("A", recipe_id=a_id), 1, unit="each")], recipe_id=a_id)
        with pytest.raises(CyclicRecipeError):
            compute_recipe_cost(context([], [a]), a.id)

    def test_diamond_is_not_a_cycle(self):
        salt = item("Salt", price="1", yield_percent="100")
        base = recipe("Base", [line(salt, 1)])
        left = recipe("Left", [line(base, 1, unit="each")])
        right = recipe("Right", [line(base, 1, unit="each")])
        top = recipe("Top", [line(left, 1, unit="each"), line(right, 1, unit="each")])
        ctx = context([salt], [base, left, right, top])
        assert compute_recipe_cost(ctx, top.id) == Decimal("2")

    def test_missing_item(self):
        ghost = item("Ghost")
        soup = recipe("Soup", [line(ghost, 1)])
        with pytest.raises(MissingReferenceError) as exc_info:
            compute_recipe_cost(context([], [soup]), soup.id)
        assert exc_info.value.entity == "InventoryItem"
        assert exc_info.value.entity_id == ghost.id

    def test_missing_sub_recipe(self):
        ghost = recipe("Ghost")
        soup = recipe("Soup", [line(ghost, 1, unit="each")])
        with pytest.raises(MissingReferenceError):
            compute_recipe_cost(context([], [soup]), soup.id)

    def test_missing_recipe(self):
        with pytest.raises(MissingReferenceError):
            compute_recipe_cost(context(), uuid.uuid4())

    def test_component_unit_kind_mismatch(self):
        flour = item("Flour", unit="lb")
        bread = recipe("Bread", [line(flour, 2, unit="cup")])
        with pytest.raises(UnitKindMismatch):
            compute_recipe_cost(context([flour], [bread]), bread.id)

    def test_sub_recipe_unit_kind_mismatch(self):
        sauce = recipe("Sauce", yield_unit="gal")
        pasta = recipe("Pasta", [line(sauce, 1, unit="lb")])
        with pytest.raises(UnitKindMismatch):
            compute_recipe_cost(context([], [sauce, pasta]), pasta.id)

    def test_sub_recipe_zero_yield(self):
        sauce = recipe("Sauce", yield_qty="0", yield_unit="qt")
        pasta = recipe("Pasta", [line(sauce, 1, unit="qt")])
        with pytest.raises(InvalidRecipeYield):
            compute_recipe_cost(context([], [sauce, pasta]), pasta.id)


# ============================================================================
# Database-backed context and write-back
# ============================================================================


class TestDatabaseBackedCosting:
    def test_load_context_and_cost(self, db, item_factory, recipe_factory, component_factory):
        flour = item_factory(name="Flour", unit="lb", price_per_unit=2, yield_percent=95)
        water = item_factory(name="Water", unit="lb", price_per_unit=2, yield_percent=95)
        dough = recipe_factory(name="Pizza Dough", yield_qty="166.5", yield_unit="lb")
        component_factory(dough, flour, qty=100, unit="lb")
        component_factory(dough, water, qty=60, unit="lb")

        ctx = load_costing_context(db)
        cost = compute_recipe_cost(ctx, dough.id)

        assert abs(cost - Decimal("336.84")) < Decimal("0.01")

    def test_unknown_component_type_rejected_on_load(self, db, recipe_factory, component_factory, item_factory):
        salt = item_factory(name="Salt")
        soup = recipe_factory(name="Soup")
        component = component_factory(soup, salt, qty=1, unit="lb")
        component.component_type = "garnish"
        db.flush()

        with pytest.raises(ValueError, match="garnish"):
            load_costing_context(db)

    def test_deleting_recipe_deletes_components(self, db, recipe_factory, component_factory, item_factory):
        from app.models.recipe import RecipeComponent

        salt = item_factory(name="Salt")
        soup = recipe_factory(name="Soup")
        component_factory(soup, salt, qty=1, unit="lb")

        db.delete(soup)
        db.flush()

        assert db.query(RecipeComponent).count() == 0

    def test_refresh_writes_cached_cost(self, db, item_factory, recipe_factory, component_factory):
        rice = item_factory(name="Rice", price_per_unit=3, yield_percent=100)
        pilaf = recipe_factory(name="Pilaf", yield_unit="lb", yield_qty=2)
        component_factory(pilaf, rice, qty=2, unit="lb")

        cost = refresh_recipe_cost(db, pilaf.id)

        db.expire_all()
        stored = db.query(Recipe).filter(Recipe.id == pilaf.id).one()
        assert cost == Decimal("6")
        assert stored.computed_cost == Decimal("6")
        assert stored.computed_cost_at is not None

    def test_refresh_dependents_children_first(self, db, item_factory, recipe_factory, component_factory):
        cocoa = item_factory(name="Cocoa", price_per_unit=10, yield_percent=100)
        syrup = recipe_factory(name="Chocolate Syrup", yield_qty=1, yield_unit="lb")
        component_factory(syrup, cocoa, qty=1, unit="lb")
        mocha = recipe_factory(name="Mocha", yield_qty=1, yield_unit="each")
        component_factory(mocha, syrup, qty=2, unit="oz")
        tray = recipe_factory(name="Mocha Tray", yield_qty=1, yield_unit="each")
        component_factory(tray, mocha, qty=4, unit="each")

        refreshed = refresh_dependent_costs(db, syrup.id)

        assert list(refreshed) == [syrup.id, mocha.id, tray.id]
        assert refreshed[mocha.id] == Decimal("1.25")
        assert refreshed[tray.id] == Decimal("5")

    def test_refresh_missing_recipe(self, db, units):
        with pytest.raises(MissingReferenceError):
            refresh_dependent_costs(db, uuid.uuid4())

    def test_recompute_all_skips_failures(self, db, item_factory, recipe_factory, component_factory):
        salt = item_factory(name="Salt", price_per_unit=1, yield_percent=100)
        good = recipe_factory(name="Good")
        component_factory(good, salt, qty=1, unit="lb")
        bad = recipe_factory(name="Bad")
        component_factory(bad, bad, qty=1, unit="each")

        updated, failed = recompute_all_recipe_costs(db)

        assert updated == {good.id: Decimal("1")}
        assert bad.id in failed
        assert "Circular" in failed[bad.id]

    def test_recipe_lock_is_per_recipe(self):
        first, second = uuid.uuid4(), uuid.uuid4()
        assert _recipe_lock(first) is _recipe_lock(first)
        assert _recipe_lock(first) is not _recipe_lock(second)

    def test_recipe_lock_dropped_after_missing_recipe(self, db, units):
        missing = uuid.uuid4()
        with pytest.raises(MissingReferenceError):
            _write_cost(db, missing, Decimal("1"))
        assert missing not in _recipe_locks

    def test_writes_to_same_recipe_are_serialized(self):
        """Two threads storing a cost for one recipe never overlap their commits."""
        events = []

        def slow_commit():
            events.append("begin")
            time.sleep(0.05)
            events.append("end")

        db = MagicMock()
        db.query.return_value.filter.return_value.with_for_update.return_value.first.return_value = (
            SimpleNamespace(name="Syrup", computed_cost=None, computed_cost_at=None)
        )
        db.commit.side_effect = slow_commit

        recipe_id = uuid.uuid4()
        threads = [
            threading.Thread(target=_write_cost, args=(db, recipe_id, Decimal("1")))
            for _ in range(2)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert events == ["begin", "end", "begin", "end"]
