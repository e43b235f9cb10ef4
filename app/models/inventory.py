"""InventoryItem, InventoryCount and Receipt models."""
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, Boolean, Text, TIMESTAMP,
    ForeignKey, Numeric, UniqueConstraint, Index
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from app.config import get_settings

from . import Base


class InventoryItem(Base):
    """Raw items that are purchased, counted and used in recipes."""

    __tablename__ = "inventory_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    unit_id = Column(UUID(as_uuid=True), ForeignKey("units.id"), nullable=False)  # Natural purchase/storage unit
    price_per_unit = Column(Numeric(12, 4), nullable=False, default=0)  # Cost of one unit_id
    yield_percent = Column(Numeric(5, 2), default=lambda: get_settings().DEFAULT_YIELD_PERCENT)  # Usable % (0-100)
    category = Column(String(50))
    storage_location = Column(String(50))  # 'walk-in', 'dry storage', ...
    is_active = Column(Boolean, default=True)
    updated_at = Column(TIMESTAMP, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    unit = relationship("Unit")

    def __repr__(self):
        return f"<InventoryItem(name='{self.name}')>"


class InventoryCount(Base):
    """A physical count session; its lines are an on-hand snapshot."""

    __tablename__ = "inventory_counts"
    __table_args__ = (
        Index("idx_inventory_counts_store_date", "store_id", "count_date"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    store_id = Column(UUID(as_uuid=True))
    count_date = Column(TIMESTAMP, nullable=False)  # Official inventory date
    applied = Column(Boolean, default=False)  # Applied to on-hand quantities
    note = Column(Text)
    created_at = Column(TIMESTAMP, default=datetime.utcnow)

    # Relationships
    lines = relationship("InventoryCountLine", back_populates="count", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<InventoryCount(count_date={self.count_date})>"


class InventoryCountLine(Base):
    """Counted quantity of one item at one storage location."""

    __tablename__ = "inventory_count_lines"
    __table_args__ = (
        UniqueConstraint(
            "inventory_count_id", "inventory_item_id", "storage_location",
            name="uq_count_lines_item_location",
        ),
        Index("idx_count_lines_count", "inventory_count_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    inventory_count_id = Column(
        UUID(as_uuid=True), ForeignKey("inventory_counts.id", ondelete="CASCADE"), nullable=False
    )
    inventory_item_id = Column(UUID(as_uuid=True), ForeignKey("inventory_items.id"), nullable=False)
    storage_location = Column(String(50), nullable=False, default="default")
    qty = Column(Numeric(12, 4), nullable=False, default=0)  # In unit_id
    unit_id = Column(UUID(as_uuid=True), ForeignKey("units.id"), nullable=False)

    # Relationships
    count = relationship("InventoryCount", back_populates="lines")
    inventory_item = relationship("InventoryItem")

    def __repr__(self):
        return f"<InventoryCountLine(item_id={self.inventory_item_id}, qty={self.qty})>"


class Receipt(Base):
    """Goods received from a vendor delivery."""

    __tablename__ = "receipts"
    __table_args__ = (
        Index("idx_receipts_store_received", "store_id", "received_at"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    store_id = Column(UUID(as_uuid=True))
    status = Column(String(20), nullable=False, default="draft")  # 'draft', 'completed'
    received_at = Column(TIMESTAMP, nullable=False, default=datetime.utcnow)

    # Relationships
    lines = relationship("ReceiptLine", back_populates="receipt", cascade="all, delete-orphan")

    def __repr__(self):
        return f"<Receipt(status='{self.status}', received_at={self.received_at})>"


class ReceiptLine(Base):
    """Quantity of one item received on a receipt."""

    __tablename__ = "receipt_lines"
    __table_args__ = (
        Index("idx_receipt_lines_receipt", "receipt_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    receipt_id = Column(UUID(as_uuid=True), ForeignKey("receipts.id", ondelete="CASCADE"), nullable=False)
    inventory_item_id = Column(UUID(as_uuid=True), ForeignKey("inventory_items.id"), nullable=False)
    received_qty = Column(Numeric(12, 4), nullable=False)  # In unit_id
    unit_id = Column(UUID(as_uuid=True), ForeignKey("units.id"), nullable=False)
    price_each = Column(Numeric(12, 4), nullable=False, default=0)

    # Relationships
    receipt = relationship("Receipt", back_populates="lines")
    inventory_item = relationship("InventoryItem")

    def __repr__(self):
        return f"<ReceiptLine(item_id={self.inventory_item_id}, received_qty={self.received_qty})>"
