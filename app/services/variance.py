"""Variance reconciliation: theoretical vs actual inventory usage.

For every item with non-zero theoretical or actual usage in a period:

    variance_units   = actual - theoretical
    variance_cost    = variance_units * price per base unit
    variance_percent = variance_units / theoretical * 100   (0 if theoretical is 0)

All quantities are in the base unit of the item's unit kind.
"""
import logging
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session

from app.config import get_settings
from app.schemas.reports import SkippedSale, VarianceLine, VarianceReport
from app.services.actual_usage import calculate_actual_usage
from app.services.cost_calculator import price_per_base_unit
from app.services.costing_context import CostingContext, load_costing_context
from app.services.theoretical_usage import calculate_theoretical_usage

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def _as_date(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def _variance_percent(variance_units: Decimal, theoretical: Decimal, places: int) -> Decimal:
    if theoretical <= 0:
        return ZERO
    return (variance_units / theoretical * 100).quantize(Decimal(1).scaleb(-places))


def build_variance_report(
    db: Session,
    period_start,
    period_end,
    store_id: Optional[UUID] = None,
    ctx: Optional[CostingContext] = None,
    apply_yield: Optional[bool] = None,
) -> VarianceReport:
    """Reconcile theoretical against actual usage for a period.

    Sales that cannot be exploded are reported under errors and left out.
    With fewer than two count snapshots actual usage is 0 for every item and
    actual_usage_available is False.
    """
    settings = get_settings()
    if apply_yield is None:
        apply_yield = settings.THEORETICAL_USAGE_APPLY_YIELD
    if ctx is None:
        ctx = load_costing_context(db)

    theoretical = calculate_theoretical_usage(
        db, ctx, period_start, period_end, store_id=store_id, apply_yield=apply_yield
    )
    actual = calculate_actual_usage(db, ctx, period_start, period_end, store_id=store_id)

    lines = []
    total_theoretical = total_actual = total_variance = ZERO
    for item_id in set(theoretical.usage) | set(actual.usage):
        theoretical_qty = theoretical.usage.get(item_id, ZERO)
        actual_qty = actual.usage.get(item_id, ZERO)
        if theoretical_qty == 0 and actual_qty == 0:
            continue

        item = ctx.item(item_id)
        price = price_per_base_unit(ctx, item)
        variance_units = actual_qty - theoretical_qty
        variance_cost = variance_units * price
        base_unit = ctx.units.base_unit(ctx.units.get(item.unit_id).kind)

        lines.append(
            VarianceLine(
                inventory_item_id=item_id,
                item_name=item.name,
                base_unit=base_unit.abbreviation if base_unit else None,
                theoretical_usage=theoretical_qty,
                actual_usage=actual_qty,
                variance_units=variance_units,
                variance_cost=variance_cost,
                variance_percent=_variance_percent(
                    variance_units, theoretical_qty, settings.VARIANCE_PERCENT_PLACES
                ),
            )
        )
        total_theoretical += theoretical_qty * price
        total_actual += actual_qty * price
        total_variance += variance_cost

    lines.sort(key=lambda line: line.item_name)

    logger.info(
        f"Variance report {period_start}..{period_end}: {len(lines)} items, "
        f"variance cost {total_variance:.2f}"
    )

    return VarianceReport(
        period_start=_as_date(period_start),
        period_end=_as_date(period_end),
        store_id=store_id,
        start_count_id=actual.start_count.id if actual.start_count else None,
        end_count_id=actual.end_count.id if actual.end_count else None,
        actual_usage_available=actual.available,
        lines=lines,
        total_theoretical_cost=total_theoretical,
        total_actual_cost=total_actual,
        total_variance_cost=total_variance,
        errors=[SkippedSale(**error) for error in theoretical.errors],
    )


def compute_variance(
    db: Session,
    period_start,
    period_end,
    store_id: Optional[UUID] = None,
) -> list[VarianceLine]:
    """Variance lines for a period, one per item with any usage."""
    return build_variance_report(db, period_start, period_end, store_id).lines
