"""Pydantic schemas for units and conversions."""

from decimal import Decimal
from uuid import UUID

from pydantic import BaseModel, ConfigDict


class UnitResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    name: str
    abbreviation: str
    kind: str
    to_base_ratio: Decimal
    system: str


class UnitsByKind(BaseModel):
    """Units grouped by kind, with each kind's base unit abbreviation."""

    weight: list[UnitResponse] = []
    volume: list[UnitResponse] = []
    count: list[UnitResponse] = []
    base_units: dict[str, str] = {}


class ConversionResponse(BaseModel):
    qty: Decimal
    from_unit: str
    to_unit: str
    result: Decimal
