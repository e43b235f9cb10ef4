"""Recipe, RecipeComponent, and MenuItem models."""
import uuid
from datetime import datetime

from sqlalchemy import (
    Column, String, Integer, Boolean, TIMESTAMP,
    ForeignKey, Numeric, Index
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from . import Base


class Recipe(Base):
    """Batch recipes with yields and a cached cost."""

    __tablename__ = "recipes"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False, unique=True)
    yield_qty = Column(Numeric(12, 4), nullable=False)
    yield_unit_id = Column(UUID(as_uuid=True), ForeignKey("units.id"), nullable=False)
    waste_percent = Column(Numeric(5, 2), nullable=False, default=0)  # Batch-level loss applied to total cost
    computed_cost = Column(Numeric(12, 4), nullable=False, default=0)  # Derived cache, see cost_calculator
    computed_cost_at = Column(TIMESTAMP)
    can_be_ingredient = Column(Boolean, default=False)  # May appear as a sub-recipe
    is_active = Column(Boolean, default=True)
    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    yield_unit = relationship("Unit")
    components = relationship(
        "RecipeComponent",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="RecipeComponent.sort_order",
    )
    menu_items = relationship("MenuItem", back_populates="recipe")

    def __repr__(self):
        return f"<Recipe(name='{self.name}')>"


class RecipeComponent(Base):
    """One line of a recipe: an inventory item or another recipe.

    component_id points at inventory_items.id or recipes.id depending on
    component_type, so it carries no foreign key.
    """

    __tablename__ = "recipe_components"
    __table_args__ = (
        Index("idx_recipe_components_recipe", "recipe_id"),
        Index("idx_recipe_components_component", "component_type", "component_id"),
    )

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    recipe_id = Column(UUID(as_uuid=True), ForeignKey("recipes.id", ondelete="CASCADE"), nullable=False)
    component_type = Column(String(20), nullable=False)  # 'inventory_item' | 'recipe'
    component_id = Column(UUID(as_uuid=True), nullable=False)
    qty = Column(Numeric(12, 4), nullable=False)  # In unit_id
    unit_id = Column(UUID(as_uuid=True), ForeignKey("units.id"), nullable=False)
    yield_override = Column(Numeric(5, 2))  # Replaces item yield_percent; inventory_item only
    sort_order = Column(Integer, nullable=False, default=0)

    # Relationships
    recipe = relationship("Recipe", back_populates="components")
    unit = relationship("Unit")

    def __repr__(self):
        return (
            f"<RecipeComponent(recipe_id={self.recipe_id}, "
            f"{self.component_type}={self.component_id}, qty={self.qty})>"
        )


class MenuItem(Base):
    """Items sold to customers; each portion consumes part of a recipe batch."""

    __tablename__ = "menu_items"

    id = Column(UUID(as_uuid=True), primary_key=True, default=uuid.uuid4)
    name = Column(String(100), nullable=False)
    recipe_id = Column(UUID(as_uuid=True), ForeignKey("recipes.id"))  # Nullable for retail
    portion_of_recipe = Column(Numeric(10, 6), nullable=False, default=1)  # Batches consumed per unit sold
    price = Column(Numeric(10, 2), nullable=False, default=0)
    category = Column(String(50))
    is_active = Column(Boolean, default=True)
    created_at = Column(TIMESTAMP, default=datetime.utcnow)
    updated_at = Column(TIMESTAMP, default=datetime.utcnow, onupdate=datetime.utcnow)

    # Relationships
    recipe = relationship("Recipe", back_populates="menu_items")

    def __repr__(self):
        return f"<MenuItem(name='{self.name}', price=${self.price})>"
