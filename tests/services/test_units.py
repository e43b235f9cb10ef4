"""Tests for app/services/units.py - unit registry and conversions."""
import uuid
from decimal import Decimal

import pytest

from app.models.unit import Unit
from app.services.errors import MissingReferenceError, UnitKindMismatch
from app.services.units import (
    DEFAULT_UNITS,
    UnitInfo,
    UnitKind,
    UnitRegistry,
    base_quantity,
    convert,
    normalize_unit,
    seed_default_units,
)


def _registry():
    return UnitRegistry(
        UnitInfo(id=uuid.uuid4(), name=name, abbreviation=abbr, kind=kind, to_base_ratio=ratio)
        for name, abbr, kind, ratio, _system in DEFAULT_UNITS
    )


@pytest.fixture
def registry():
    return _registry()


class TestNormalizeUnit:
    @pytest.mark.parametrize("raw,expected", [
        ("LB", "lb"),
        ("  Oz ", "oz"),
        ("FL_OZ", "fl oz"),
        ("fl-oz", "fl oz"),
    ])
    def test_normalizes(self, raw, expected):
        assert normalize_unit(raw) == expected


class TestBaseQuantity:
    def test_ounces_to_pounds(self, registry):
        assert registry.base_quantity(16, registry.find("oz")) == Decimal("1")

    def test_cups_to_fluid_ounces(self, registry):
        assert base_quantity(2, registry.find("cup")) == Decimal("16")

    def test_dozen_to_each(self, registry):
        assert base_quantity(Decimal("1.5"), registry.find("dz")) == Decimal("18")


class TestConvert:
    def test_gallon_to_quarts(self, registry):
        assert convert(1, registry.find("gal"), registry.find("qt")) == Decimal("4")

    def test_pounds_to_ounces(self, registry):
        assert registry.convert(2, registry.find("lb"), registry.find("oz")) == Decimal("32")

    def test_accepts_unit_ids(self, registry):
        lb, oz = registry.find("lb"), registry.find("oz")
        assert registry.convert(8, oz.id, lb.id) == Decimal("0.5")

    def test_cross_kind_raises(self, registry):
        with pytest.raises(UnitKindMismatch) as exc_info:
            convert(1, registry.find("lb"), registry.find("cup"))
        assert exc_info.value.from_unit == "lb"
        assert exc_info.value.to_unit == "cup"

    @pytest.mark.parametrize("abbr", ["oz", "kg", "g", "cup", "tbsp", "tsp", "ml", "gal", "dz"])
    def test_round_trip_through_base(self, registry, abbr):
        unit = registry.find(abbr)
        base = registry.base_unit(unit.kind)
        qty = Decimal("3.75")
        there = convert(qty, unit, base)
        back = convert(there, base, unit)
        assert abs(back - qty) < Decimal("1e-9")


class TestUnitRegistry:
    def test_find_is_case_insensitive(self, registry):
        assert registry.find("FL OZ").abbreviation == "fl oz"

    def test_find_unknown_returns_none(self, registry):
        assert registry.find("furlong") is None

    def test_get_unknown_raises(self, registry):
        missing = uuid.uuid4()
        with pytest.raises(MissingReferenceError) as exc_info:
            registry.get(missing, referenced_by="recipe Soup")
        assert exc_info.value.entity_id == missing
        assert "recipe Soup" in str(exc_info.value)

    @pytest.mark.parametrize("kind,abbr", [
        (UnitKind.WEIGHT, "lb"),
        (UnitKind.VOLUME, "fl oz"),
        (UnitKind.COUNT, "each"),
    ])
    def test_base_units(self, registry, kind, abbr):
        assert registry.base_unit(kind).abbreviation == abbr

    def test_convert_to_item_unit(self, registry):
        class Item:
            name = "Butter"
            unit_id = registry.find("lb").id

        assert registry.convert_to_item_unit(8, registry.find("oz").id, Item) == Decimal("0.5")

    def test_convert_to_item_unit_kind_mismatch(self, registry):
        class Item:
            name = "Milk"
            unit_id = registry.find("gal").id

        with pytest.raises(UnitKindMismatch, match="item Milk"):
            registry.convert_to_item_unit(1, registry.find("lb").id, Item)


class TestSeedDefaultUnits:
    def test_seeds_all_defaults(self, db):
        created = seed_default_units(db)
        assert len(created) == len(DEFAULT_UNITS)
        assert db.query(Unit).count() == len(DEFAULT_UNITS)

    def test_idempotent(self, db):
        seed_default_units(db)
        assert seed_default_units(db) == []
        assert db.query(Unit).count() == len(DEFAULT_UNITS)

    def test_skips_existing_abbreviation(self, db):
        db.add(Unit(name="pound", abbreviation="LB", kind="weight", to_base_ratio=1, system="imperial"))
        db.flush()
        created = seed_default_units(db)
        assert "lb" not in {u.abbreviation for u in created}
