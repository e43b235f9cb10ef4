"""Units API for the unit table and conversions."""

from decimal import Decimal
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from app.database import get_db
from app.models.unit import Unit
from app.schemas.unit import ConversionResponse, UnitResponse, UnitsByKind
from app.services.units import (
    BASE_UNIT_ABBREVIATIONS,
    UnitKind,
    UnitRegistry,
    unit_info_from_model,
)

router = APIRouter(prefix="/units", tags=["units"])


@router.get("", response_model=UnitsByKind)
def get_units(db: Session = Depends(get_db)):
    """Get all units grouped by kind.

    Every unit converts to its kind's base unit:
    - weight: pound (lb)
    - volume: fluid ounce (fl oz)
    - count: each
    """
    units = db.query(Unit).order_by(Unit.kind, Unit.to_base_ratio).all()

    grouped: dict[str, list[UnitResponse]] = {kind.value: [] for kind in UnitKind}
    for unit in units:
        grouped.setdefault(unit.kind, []).append(UnitResponse.model_validate(unit))

    return UnitsByKind(
        weight=grouped[UnitKind.WEIGHT.value],
        volume=grouped[UnitKind.VOLUME.value],
        count=grouped[UnitKind.COUNT.value],
        base_units={kind.value: abbr for kind, abbr in BASE_UNIT_ABBREVIATIONS.items()},
    )


@router.get("/convert", response_model=ConversionResponse)
def convert_units(
    qty: Decimal = Query(...),
    from_unit_id: UUID = Query(...),
    to_unit_id: UUID = Query(...),
    db: Session = Depends(get_db),
):
    """Convert a quantity between two units of the same kind.

    Returns 422 if the units measure different kinds, 404 if either is unknown.
    """
    registry = UnitRegistry(unit_info_from_model(u) for u in db.query(Unit).all())
    from_unit = registry.get(from_unit_id)
    to_unit = registry.get(to_unit_id)

    return ConversionResponse(
        qty=qty,
        from_unit=from_unit.abbreviation,
        to_unit=to_unit.abbreviation,
        result=registry.convert(qty, from_unit, to_unit),
    )
