"""Daily sales and theoretical usage run models."""
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, Date, TIMESTAMP,
    ForeignKey, Numeric, UniqueConstraint, Index
)
from sqlalchemy.dialects.postgresql import UUID, JSONB
from sqlalchemy.orm import relationship

from . import Base


class DailyMenuItemSales(Base):
    """Units of a menu item sold at a store on one day."""

    __tablename__ = "daily_menu_item_sales"
    __table_args__ = (
        UniqueConstraint("store_id", "menu_item_id", "sales_date", name="uq_daily_sales_store_item_date"),
        Index("idx_daily_sales_date", "sales_date"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    menu_item_id = Column(UUID(as_uuid=True), ForeignKey("menu_items.id"), nullable=False)
    store_id = Column(UUID(as_uuid=True))
    sales_date = Column(Date, nullable=False)
    qty_sold = Column(Numeric(12, 3), nullable=False, default=0)
    net_sales = Column(Numeric(12, 2), nullable=False, default=0)

    # Relationships
    menu_item = relationship("MenuItem")

    def __repr__(self):
        return f"<DailyMenuItemSales(menu_item_id={self.menu_item_id}, date={self.sales_date}, qty={self.qty_sold})>"


class TheoreticalUsageRun(Base):
    """One theoretical usage computation over a sales period."""

    __tablename__ = "theoretical_usage_runs"
    __table_args__ = (
        Index("idx_usage_runs_store_period", "store_id", "period_start", "period_end"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    store_id = Column(UUID(as_uuid=True))
    period_start = Column(Date, nullable=False)
    period_end = Column(Date, nullable=False)
    status = Column(String(20), nullable=False, default="processing")  # 'processing', 'completed', 'failed'
    total_menu_items_sold = Column(Numeric(14, 3), nullable=False, default=0)  # Fractional portions allowed
    total_revenue = Column(Numeric(12, 2), nullable=False, default=0)
    total_theoretical_cost = Column(Numeric(12, 4), nullable=False, default=0)
    error_log = Column(JSONB)  # [{sale_id, menu_item_id, error}]
    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    completed_at = Column(TIMESTAMP)

    # Relationships
    lines = relationship("TheoreticalUsageLine", back_populates="run", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<TheoreticalUsageRun(status='{self.status}', {self.period_start}..{self.period_end})>"


class TheoreticalUsageLine(Base):
    """Base-unit quantity of one inventory item the period's sales should have used."""

    __tablename__ = "theoretical_usage_lines"
    __table_args__ = (
        UniqueConstraint("run_id", "inventory_item_id", name="uq_usage_lines_run_item"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    run_id = Column(
        UUID(as_uuid=True), ForeignKey("theoretical_usage_runs.id", ondelete="CASCADE"), nullable=False
    )
    inventory_item_id = Column(UUID(as_uuid=True), ForeignKey("inventory_items.id"), nullable=False)
    required_qty_base_unit = Column(Numeric(16, 6), nullable=False)
    base_unit_id = Column(UUID(as_uuid=True), ForeignKey("units.id"))
    cost_at_sale = Column(Numeric(12, 4), nullable=False, default=0)
    source_menu_items = Column(JSONB)  # [{menu_item_id, menu_item_name, qty_sold}]

    # Relationships
    run = relationship("TheoreticalUsageRun", back_populates="lines")
    inventory_item = relationship("InventoryItem")

    def __repr__(self):
        return f"<TheoreticalUsageLine(item_id={self.inventory_item_id}, qty={self.required_qty_base_unit})>"
