"""Actual usage from physical counts and receipts.

actual = starting on hand + received between the counts - ending on hand

Each store is balanced against its own pair of counts, and only receipts that
arrived after the opening count and by the closing count are added, so the
identity holds whichever counts bound the period. Count and receipt lines are
converted into the base unit of each item's unit kind, so actual and
theoretical usage are directly comparable.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, time
from decimal import Decimal
from typing import Optional
from uuid import UUID

from sqlalchemy.orm import Session, selectinload

from app.models.inventory import InventoryCount, Receipt
from app.services.costing_context import CostingContext

logger = logging.getLogger(__name__)

Snapshots = tuple[InventoryCount, InventoryCount]


@dataclass
class ActualUsage:
    """Actual usage per item plus the count pairs it was derived from."""

    usage: dict[UUID, Decimal] = field(default_factory=dict)
    snapshots: dict[Optional[UUID], Snapshots] = field(default_factory=dict)  # store_id -> (opening, closing)
    received: dict[UUID, Decimal] = field(default_factory=dict)

    @property
    def available(self) -> bool:
        return bool(self.snapshots)

    @property
    def start_count(self) -> Optional[InventoryCount]:
        """Opening count, when a single store was reconciled."""
        if len(self.snapshots) != 1:
            return None
        return next(iter(self.snapshots.values()))[0]

    @property
    def end_count(self) -> Optional[InventoryCount]:
        if len(self.snapshots) != 1:
            return None
        return next(iter(self.snapshots.values()))[1]


def period_bounds(period_start, period_end) -> tuple[datetime, datetime]:
    """Inclusive datetime bounds; bare dates cover the whole day."""
    if not isinstance(period_start, datetime):
        period_start = datetime.combine(period_start, time.min)
    if not isinstance(period_end, datetime):
        period_end = datetime.combine(period_end, time.max)
    return period_start, period_end


def counted_store_ids(db: Session) -> list[Optional[UUID]]:
    """Every store with at least one inventory count (None for unassigned counts)."""
    return [store_id for (store_id,) in db.query(InventoryCount.store_id).distinct().all()]


def select_count_snapshots(
    db: Session,
    period_start,
    period_end,
    store_id: Optional[UUID] = None,
) -> tuple[Optional[InventoryCount], Optional[InventoryCount]]:
    """Pick one store's opening and closing counts for a period.

    Only counts of store_id are considered; None selects counts recorded
    without a store. Opening: the latest count at or before period_start, or
    if there is none, the earliest count inside the period. Closing: the
    latest count at or before period_end. Returns (None, None) when these are
    not two distinct counts.
    """
    start, end = period_bounds(period_start, period_end)

    query = (
        db.query(InventoryCount)
        .options(selectinload(InventoryCount.lines))
        .filter(InventoryCount.store_id == store_id)
    )

    opening = (
        query.filter(InventoryCount.count_date <= start)
        .order_by(InventoryCount.count_date.desc())
        .first()
    )
    if opening is None:
        opening = (
            query.filter(InventoryCount.count_date >= start)
            .filter(InventoryCount.count_date <= end)
            .order_by(InventoryCount.count_date.asc())
            .first()
        )

    closing = (
        query.filter(InventoryCount.count_date <= end)
        .order_by(InventoryCount.count_date.desc())
        .first()
    )

    if opening is None or closing is None or opening.id == closing.id:
        return None, None
    return opening, closing


def count_on_hand(ctx: CostingContext, count: InventoryCount) -> dict[UUID, Decimal]:
    """Base-unit on-hand quantity per item, summed across storage locations."""
    on_hand: dict[UUID, Decimal] = {}
    for line in count.lines:
        item = ctx.item(line.inventory_item_id, referenced_by=f"count {count.id}")
        qty = ctx.units.convert_to_item_unit(line.qty, line.unit_id, item)
        qty = ctx.units.base_quantity(qty, item.unit_id)
        on_hand[item.id] = on_hand.get(item.id, Decimal("0")) + qty
    return on_hand


def received_between(
    db: Session,
    ctx: CostingContext,
    opening: InventoryCount,
    closing: InventoryCount,
    store_id: Optional[UUID] = None,
) -> dict[UUID, Decimal]:
    """Base-unit quantity per item on completed receipts between two counts.

    A receipt stamped at the opening count's time is already on hand in that
    count; one stamped at the closing count's time is not yet used.
    """
    query = (
        db.query(Receipt)
        .options(selectinload(Receipt.lines))
        .filter(Receipt.status == "completed")
        .filter(Receipt.store_id == store_id)
        .filter(Receipt.received_at > opening.count_date)
        .filter(Receipt.received_at <= closing.count_date)
    )

    received: dict[UUID, Decimal] = {}
    for receipt in query.all():
        for line in receipt.lines:
            item = ctx.item(line.inventory_item_id, referenced_by=f"receipt {receipt.id}")
            qty = ctx.units.convert_to_item_unit(line.received_qty, line.unit_id, item)
            qty = ctx.units.base_quantity(qty, item.unit_id)
            received[item.id] = received.get(item.id, Decimal("0")) + qty
    return received


def _add(into: dict[UUID, Decimal], quantities: dict[UUID, Decimal]) -> None:
    for item_id, qty in quantities.items():
        into[item_id] = into.get(item_id, Decimal("0")) + qty


def calculate_actual_usage(
    db: Session,
    ctx: CostingContext,
    period_start,
    period_end,
    store_id: Optional[UUID] = None,
) -> ActualUsage:
    """Actual usage per item over [period_start, period_end].

    With store_id None every store that has counts is balanced separately and
    the results are summed. Items absent from a count are taken as zero on
    hand. If any of those stores lacks two distinct count snapshots the usage
    map is empty and available is False.
    """
    store_ids = [store_id] if store_id is not None else counted_store_ids(db)

    snapshots: dict[Optional[UUID], Snapshots] = {}
    for current in store_ids:
        opening, closing = select_count_snapshots(db, period_start, period_end, current)
        if opening is None:
            logger.warning(
                f"Fewer than two inventory counts for store {current} in "
                f"{period_start}..{period_end}; actual usage unavailable"
            )
            return ActualUsage()
        snapshots[current] = (opening, closing)

    if not snapshots:
        logger.warning(f"No inventory counts for {period_start}..{period_end}; actual usage unavailable")
        return ActualUsage()

    usage: dict[UUID, Decimal] = {}
    received: dict[UUID, Decimal] = {}
    for current, (opening, closing) in snapshots.items():
        store_received = received_between(db, ctx, opening, closing, current)
        _add(usage, count_on_hand(ctx, opening))
        _add(usage, store_received)
        _add(usage, {item_id: -qty for item_id, qty in count_on_hand(ctx, closing).items()})
        _add(received, store_received)

    return ActualUsage(usage=usage, snapshots=snapshots, received=received)
