"""Unit model."""
import uuid

from sqlalchemy import Column, String, Numeric, CheckConstraint
from sqlalchemy.dialects.postgresql import UUID

from . import Base


class Unit(Base):
    """Measurement units, each convertible to its kind's base unit."""

    __tablename__ = "units"
    __table_args__ = (
        CheckConstraint("kind IN ('weight', 'volume', 'count')", name="ck_units_kind"),
        CheckConstraint("to_base_ratio > 0", name="ck_units_ratio_positive"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(50), nullable=False)
    abbreviation = Column(String(20), nullable=False, unique=True)  # 'lb', 'oz', 'fl oz', 'tsp', 'each'
    kind = Column(String(10), nullable=False)  # 'weight' | 'volume' | 'count'
    to_base_ratio = Column(Numeric(18, 12), nullable=False)  # 1 unit = ratio base units (lb, fl oz, each)
    system = Column(String(10), nullable=False, default="both")  # 'imperial' | 'metric' | 'both'

    def __repr__(self):
        return f"<Unit(abbreviation='{self.abbreviation}', kind='{self.kind}')>"
