"""Unit registry for normalizing recipe, count and receipt quantities.

Every unit belongs to one kind and converts to that kind's base unit with a
fixed ratio:
- Weight: pound (lb)
- Volume: fluid ounce (fl oz)
- Count: each

Units of different kinds are never convertible. The unit table is reference
data: loaded once per request into a UnitRegistry and only read afterwards.
"""
import logging
from dataclasses import dataclass
from decimal import Decimal
from enum import Enum
from typing import Iterable, Optional, Union
from uuid import UUID

from sqlalchemy.orm import Session

from app.models.unit import Unit
from app.services.errors import MissingReferenceError, UnitKindMismatch

logger = logging.getLogger(__name__)


class UnitKind(str, Enum):
    """Measurement kinds. Conversion only happens within a kind."""
    WEIGHT = "weight"
    VOLUME = "volume"
    COUNT = "count"


# Canonical unit per kind (to_base_ratio == 1)
BASE_UNIT_ABBREVIATIONS: dict[UnitKind, str] = {
    UnitKind.WEIGHT: "lb",
    UnitKind.VOLUME: "fl oz",
    UnitKind.COUNT: "each",
}

# (name, abbreviation, kind, to_base_ratio, system)
DEFAULT_UNITS: list[tuple[str, str, UnitKind, Decimal, str]] = [
    # Weight (base: pound)
    ("pound", "lb", UnitKind.WEIGHT, Decimal("1"), "imperial"),
    ("ounce", "oz", UnitKind.WEIGHT, Decimal("0.0625"), "imperial"),
    ("kilogram", "kg", UnitKind.WEIGHT, Decimal("2.20462262"), "metric"),
    ("gram", "g", UnitKind.WEIGHT, Decimal("0.00220462262"), "metric"),
    # Volume (base: fluid ounce)
    ("fluid ounce", "fl oz", UnitKind.VOLUME, Decimal("1"), "imperial"),
    ("cup", "cup", UnitKind.VOLUME, Decimal("8"), "imperial"),
    ("pint", "pt", UnitKind.VOLUME, Decimal("16"), "imperial"),
    ("quart", "qt", UnitKind.VOLUME, Decimal("32"), "imperial"),
    ("gallon", "gal", UnitKind.VOLUME, Decimal("128"), "imperial"),
    ("tablespoon", "tbsp", UnitKind.VOLUME, Decimal("0.5"), "imperial"),
    ("teaspoon", "tsp", UnitKind.VOLUME, Decimal("0.16666667"), "imperial"),
    ("liter", "l", UnitKind.VOLUME, Decimal("33.8140227"), "metric"),
    ("milliliter", "ml", UnitKind.VOLUME, Decimal("0.0338140227"), "metric"),
    # Count (base: each)
    ("each", "each", UnitKind.COUNT, Decimal("1"), "both"),
    ("dozen", "dz", UnitKind.COUNT, Decimal("12"), "both"),
    ("bag", "bag", UnitKind.COUNT, Decimal("1"), "both"),
    ("bottle", "bottle", UnitKind.COUNT, Decimal("1"), "both"),
]


def to_decimal(value) -> Decimal:
    """Coerce a float/int/str/Decimal column value to Decimal without float noise."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def normalize_unit(unit: str) -> str:
    """Normalize unit string for lookup.

    Args:
        unit: Raw unit abbreviation (e.g., "FL_OZ", " Lb ")

    Returns:
        Normalized lowercase unit string
    """
    return unit.lower().strip().replace("-", " ").replace("_", " ")


@dataclass(frozen=True)
class UnitInfo:
    """Immutable snapshot of a unit row."""

    id: UUID
    name: str
    abbreviation: str
    kind: UnitKind
    to_base_ratio: Decimal


def base_quantity(qty, unit: UnitInfo) -> Decimal:
    """Express qty (in unit) in the base unit of unit.kind."""
    return to_decimal(qty) * unit.to_base_ratio


def convert(qty, from_unit: UnitInfo, to_unit: UnitInfo) -> Decimal:
    """Convert qty from one unit to another of the same kind.

    Raises:
        UnitKindMismatch: If the units measure different kinds
    """
    if from_unit.kind != to_unit.kind:
        raise UnitKindMismatch(from_unit.abbreviation, to_unit.abbreviation)
    return base_quantity(qty, from_unit) / to_unit.to_base_ratio


class UnitRegistry:
    """Lookup and conversion over a fixed set of units."""

    def __init__(self, units: Iterable[UnitInfo]):
        self._by_id: dict[UUID, UnitInfo] = {}
        self._by_abbreviation: dict[str, UnitInfo] = {}
        for unit in units:
            self._by_id[unit.id] = unit
            self._by_abbreviation.setdefault(normalize_unit(unit.abbreviation), unit)

    def __len__(self) -> int:
        return len(self._by_id)

    def __iter__(self):
        return iter(self._by_id.values())

    def get(self, unit_id: UUID, referenced_by: Optional[str] = None) -> UnitInfo:
        unit = self._by_id.get(unit_id)
        if unit is None:
            raise MissingReferenceError("Unit", unit_id, referenced_by)
        return unit

    def find(self, abbreviation: str) -> Optional[UnitInfo]:
        """Find a unit by abbreviation (case/whitespace insensitive)."""
        return self._by_abbreviation.get(normalize_unit(abbreviation))

    def base_unit(self, kind: UnitKind) -> Optional[UnitInfo]:
        """Return the canonical unit for a kind, if it is registered."""
        canonical = self.find(BASE_UNIT_ABBREVIATIONS[kind])
        if canonical is not None and canonical.kind == kind:
            return canonical
        for unit in self._by_id.values():
            if unit.kind == kind and unit.to_base_ratio == 1:
                return unit
        return None

    def _resolve(self, unit: Union[UnitInfo, UUID]) -> UnitInfo:
        return unit if isinstance(unit, UnitInfo) else self.get(unit)

    def base_quantity(self, qty, unit: Union[UnitInfo, UUID]) -> Decimal:
        return base_quantity(qty, self._resolve(unit))

    def convert(self, qty, from_unit: Union[UnitInfo, UUID], to_unit: Union[UnitInfo, UUID]) -> Decimal:
        return convert(qty, self._resolve(from_unit), self._resolve(to_unit))

    def convert_to_item_unit(self, qty, unit_id: UUID, item) -> Decimal:
        """Convert a quantity into an inventory item's own unit.

        Raises:
            UnitKindMismatch: If unit_id is not the same kind as the item's unit
        """
        from_unit = self.get(unit_id, referenced_by=f"item {item.name}")
        item_unit = self.get(item.unit_id, referenced_by=f"item {item.name}")
        if from_unit.kind != item_unit.kind:
            raise UnitKindMismatch(from_unit.abbreviation, item_unit.abbreviation, f"item {item.name}")
        return convert(qty, from_unit, item_unit)


def unit_info_from_model(unit: Unit) -> UnitInfo:
    """Freeze a Unit row into a UnitInfo."""
    return UnitInfo(
        id=unit.id,
        name=unit.name,
        abbreviation=unit.abbreviation,
        kind=UnitKind(unit.kind),
        to_base_ratio=to_decimal(unit.to_base_ratio),
    )


def seed_default_units(db: Session) -> list[Unit]:
    """Insert any DEFAULT_UNITS not already present (matched by abbreviation).

    Returns:
        The newly created Unit rows
    """
    existing = {normalize_unit(abbr) for (abbr,) in db.query(Unit.abbreviation).all()}

    created = []
    for name, abbreviation, kind, ratio, system in DEFAULT_UNITS:
        if normalize_unit(abbreviation) in existing:
            continue
        unit = Unit(
            name=name,
            abbreviation=abbreviation,
            kind=kind.value,
            to_base_ratio=ratio,
            system=system,
        )
        db.add(unit)
        created.append(unit)

    if created:
        db.flush()
        logger.info(f"Seeded {len(created)} default units")
    return created
