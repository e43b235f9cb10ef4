"""Pydantic schemas for variance and theoretical usage reports."""

from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator


class VarianceLine(BaseModel):
    """Theoretical vs actual usage of one inventory item, in its base unit."""

    inventory_item_id: UUID
    item_name: str
    base_unit: Optional[str] = None
    theoretical_usage: Decimal
    actual_usage: Decimal
    variance_units: Decimal = Field(..., description="actual - theoretical; positive means overuse")
    variance_cost: Decimal
    variance_percent: Decimal = Field(..., description="variance / theoretical * 100, 0 when theoretical is 0")


class SkippedSale(BaseModel):
    """A sales record left out of theoretical usage."""

    sale_id: Optional[str] = None
    menu_item_id: Optional[str] = None
    error: str


class VarianceReport(BaseModel):
    """Variance lines for a period plus how they were derived."""

    period_start: date
    period_end: date
    store_id: Optional[UUID] = None
    start_count_id: Optional[UUID] = None
    end_count_id: Optional[UUID] = None
    actual_usage_available: bool = False
    lines: list[VarianceLine] = []
    total_theoretical_cost: Decimal = Decimal("0")
    total_actual_cost: Decimal = Decimal("0")
    total_variance_cost: Decimal = Decimal("0")
    errors: list[SkippedSale] = []


# ============================================================================
# Theoretical Usage Runs
# ============================================================================


class TheoreticalUsageRequest(BaseModel):
    """Request to compute and store theoretical usage for a period."""

    store_id: Optional[UUID] = None
    period_start: date
    period_end: date

    @model_validator(mode="after")
    def check_period(self):
        if self.period_end < self.period_start:
            raise ValueError("period_end must not be before period_start")
        return self


class TheoreticalUsageLineResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    inventory_item_id: UUID
    required_qty_base_unit: Decimal
    base_unit_id: Optional[UUID] = None
    cost_at_sale: Decimal
    source_menu_items: Optional[list[dict]] = None


class TheoreticalUsageRunResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    store_id: Optional[UUID] = None
    period_start: date
    period_end: date
    status: str
    total_menu_items_sold: Decimal
    total_revenue: Decimal
    total_theoretical_cost: Decimal
    error_log: Optional[list[dict]] = None
    created_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    lines: list[TheoreticalUsageLineResponse] = []
