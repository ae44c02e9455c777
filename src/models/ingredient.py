"""
Ingredient model for purchasable raw materials.

An ingredient is priced per one metric unit (kg, g, l or ml). Recipe rows
reference ingredients and are converted into the ingredient's unit before
the price is applied.
"""

from sqlalchemy import Column, String, Float, Index, CheckConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel


class Ingredient(BaseModel):
    """
    Ingredient model representing a purchasable raw material.

    Attributes:
        name: Ingredient name (e.g., "Flour", "Whole Milk")
        category: Free-text category (e.g., "Dry goods", "Dairy")
        unit: Metric unit the price refers to ("kg", "g", "l", "ml")
        price_per_unit: Currency amount charged for exactly 1 of ``unit``
    """

    __tablename__ = "ingredients"

    name = Column(String(200), nullable=False, index=True)
    category = Column(String(100), nullable=False, default="")
    unit = Column(String(20), nullable=False)
    price_per_unit = Column(Float, nullable=False, default=0.0)

    # Rows using this ingredient
    composition_rows = relationship(
        "CompositionRow", back_populates="ingredient", passive_deletes=True
    )

    # Resale products selling this ingredient
    resale_products = relationship("Product", back_populates="linked_ingredient")

    __table_args__ = (
        Index("idx_ingredient_category", "category"),
        CheckConstraint("price_per_unit >= 0", name="ck_ingredient_price_non_negative"),
    )

    def __repr__(self) -> str:
        """String representation of ingredient."""
        return (
            f"Ingredient(id={self.id}, name='{self.name}', "
            f"price_per_unit={self.price_per_unit}/{self.unit})"
        )
