"""Theoretical usage: what recorded sales should have consumed.

Each sales record is exploded through its menu item's recipe with
multiplier = qty_sold * portion_of_recipe and summed per inventory item.
A sale that fails (cycle, missing reference, unit mismatch, bad yield) is
skipped and reported; every other sale still counts.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from app.config import get_settings
from app.models.sales import DailyMenuItemSales, TheoreticalUsageLine, TheoreticalUsageRun
from app.services.cost_calculator import price_per_base_unit
from app.services.costing_context import CostingContext, load_costing_context
from app.services.errors import CostingError, MissingReferenceError
from app.services.usage_explosion import explode_usage
from app.services.units import to_decimal

logger = logging.getLogger(__name__)


@dataclass
class TheoreticalUsage:
    """Aggregated theoretical usage over a period."""

    usage: dict[UUID, Decimal] = field(default_factory=dict)
    # item_id -> menu_item_id -> {menu_item_id, menu_item_name, qty_sold}
    sources: dict[UUID, dict[UUID, dict]] = field(default_factory=dict)
    errors: list[dict] = field(default_factory=list)
    total_menu_items_sold: Decimal = Decimal("0")
    total_revenue: Decimal = Decimal("0")
    sales_count: int = 0


def _load_sales(
    db: Session,
    period_start: date,
    period_end: date,
    store_id: Optional[UUID] = None,
) -> list[DailyMenuItemSales]:
    query = (
        db.query(DailyMenuItemSales)
        .options(joinedload(DailyMenuItemSales.menu_item))
        .filter(DailyMenuItemSales.sales_date >= period_start)
        .filter(DailyMenuItemSales.sales_date <= period_end)
    )
    if store_id is not None:
        query = query.filter(DailyMenuItemSales.store_id == store_id)
    return query.order_by(DailyMenuItemSales.sales_date).all()


def _as_date(value) -> date:
    return value.date() if isinstance(value, datetime) else value


def calculate_theoretical_usage(
    db: Session,
    ctx: CostingContext,
    period_start,
    period_end,
    store_id: Optional[UUID] = None,
    apply_yield: bool = False,
) -> TheoreticalUsage:
    """Sum the exploded usage of every sale in [period_start, period_end].

    Sales of menu items with no recipe (retail) are skipped silently.
    """
    result = TheoreticalUsage()

    for sale in _load_sales(db, _as_date(period_start), _as_date(period_end), store_id):
        qty_sold = to_decimal(sale.qty_sold or 0)
        result.sales_count += 1
        result.total_menu_items_sold += qty_sold
        result.total_revenue += to_decimal(sale.net_sales or 0)

        if qty_sold <= 0:
            continue

        menu_item = sale.menu_item
        try:
            if menu_item is None:
                raise MissingReferenceError("MenuItem", sale.menu_item_id, f"sale {sale.id}")
            if menu_item.recipe_id is None:
                continue
            multiplier = qty_sold * to_decimal(menu_item.portion_of_recipe or 1)
            sale_usage = explode_usage(ctx, menu_item.recipe_id, multiplier, apply_yield=apply_yield)
        except CostingError as e:
            logger.warning(f"Skipping sale {sale.id} ({sale.sales_date}): {e}")
            result.errors.append({
                "sale_id": str(sale.id),
                "menu_item_id": str(sale.menu_item_id),
                "error": str(e),
            })
            continue

        for item_id, qty in sale_usage.items():
            result.usage[item_id] = result.usage.get(item_id, Decimal("0")) + qty
            sources = result.sources.setdefault(item_id, {})
            source = sources.setdefault(menu_item.id, {
                "menu_item_id": str(menu_item.id),
                "menu_item_name": menu_item.name,
                "qty_sold": Decimal("0"),
            })
            source["qty_sold"] += qty_sold

    return result


def run_theoretical_usage(
    db: Session,
    store_id: Optional[UUID],
    period_start: date,
    period_end: date,
    apply_yield: Optional[bool] = None,
) -> TheoreticalUsageRun:
    """Compute theoretical usage for a period and persist it as a run.

    The run is committed as 'processing' first, then filled in and marked
    'completed'. If anything unexpected fails, it is marked 'failed' and the
    error re-raised.
    """
    if apply_yield is None:
        apply_yield = get_settings().THEORETICAL_USAGE_APPLY_YIELD

    run = TheoreticalUsageRun(
        store_id=store_id,
        period_start=period_start,
        period_end=period_end,
        status="processing",
    )
    db.add(run)
    db.commit()
    run_id = run.id
    logger.info(f"Starting theoretical usage run {run_id} for {period_start}..{period_end}")

    try:
        ctx = load_costing_context(db)
        result = calculate_theoretical_usage(
            db, ctx, period_start, period_end, store_id=store_id, apply_yield=apply_yield
        )

        total_cost = Decimal("0")
        for item_id, qty in result.usage.items():
            item = ctx.item(item_id)
            cost = qty * price_per_base_unit(ctx, item)
            total_cost += cost
            base_unit = ctx.units.base_unit(ctx.units.get(item.unit_id).kind)
            run.lines.append(
                TheoreticalUsageLine(
                    inventory_item_id=item_id,
                    required_qty_base_unit=qty,
                    base_unit_id=base_unit.id if base_unit else None,
                    cost_at_sale=cost,
                    source_menu_items=[
                        {**source, "qty_sold": float(source["qty_sold"])}
                        for source in result.sources.get(item_id, {}).values()
                    ],
                )
            )

        run.total_menu_items_sold = result.total_menu_items_sold
        run.total_revenue = result.total_revenue
        run.total_theoretical_cost = total_cost
        run.error_log = result.errors or None
        run.status = "completed"
        run.completed_at = datetime.utcnow()
        db.commit()
    except Exception as e:
        logger.error(f"Theoretical usage run {run_id} failed: {e}")
        db.rollback()
        failed = db.get(TheoreticalUsageRun, run_id)
        if failed is not None:
            failed.status = "failed"
            failed.error_log = [{"error": str(e)}]
            failed.completed_at = datetime.utcnow()
            db.commit()
        raise

    logger.info(
        f"Completed theoretical usage run {run_id}: {len(run.lines)} items, "
        f"{len(result.errors)} skipped sales, cost {total_cost:.2f}"
    )
    return run
