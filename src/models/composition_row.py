"""
CompositionRow model: one line of a recipe product.

A row references either an ingredient (quantity measured in ``unit``) or
another product (quantity is a plain multiplier). Product references may form
cycles. The schema has no acyclicity constraint; every consumer must be
cycle-safe.
"""

from sqlalchemy import (
    Column,
    Integer,
    Float,
    String,
    ForeignKey,
    Index,
    CheckConstraint,
)
from sqlalchemy.orm import relationship

from .base import BaseModel


class CompositionRow(BaseModel):
    """
    Composition row linking a recipe product to an ingredient or a sub-product.

    Attributes:
        product_id: Owning recipe product
        ingredient_id: Referenced ingredient (exclusive with linked_product_id)
        linked_product_id: Referenced sub-product (exclusive with ingredient_id)
        quantity: Amount in ``unit``, or sub-product multiplier
        unit: Metric unit of an ingredient row (ignored for sub-product rows)
        sort_order: Display order only
    """

    __tablename__ = "composition_rows"

    product_id = Column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=False, index=True
    )
    ingredient_id = Column(
        Integer, ForeignKey("ingredients.id", ondelete="CASCADE"), nullable=True, index=True
    )
    linked_product_id = Column(
        Integer, ForeignKey("products.id", ondelete="CASCADE"), nullable=True, index=True
    )

    quantity = Column(Float, nullable=False)
    unit = Column(String(20), nullable=False, default="")
    sort_order = Column(Integer, nullable=False, default=0)

    # Relationships
    product = relationship(
        "Product", foreign_keys=[product_id], back_populates="composition_rows"
    )
    ingredient = relationship("Ingredient", back_populates="composition_rows")
    linked_product = relationship(
        "Product", foreign_keys=[linked_product_id], back_populates="used_in_rows"
    )

    __table_args__ = (
        Index("idx_composition_row_order", "product_id", "sort_order"),
        # Exactly one reference must be set
        CheckConstraint(
            "(ingredient_id IS NOT NULL AND linked_product_id IS NULL) OR "
            "(ingredient_id IS NULL AND linked_product_id IS NOT NULL)",
            name="ck_composition_row_exactly_one_reference",
        ),
        CheckConstraint("quantity > 0", name="ck_composition_row_quantity_positive"),
        CheckConstraint("sort_order >= 0", name="ck_composition_row_sort_order_non_negative"),
    )

    def to_record(self):
        """Detached CompositionRow DTO for the cost engine."""
        from src.services.dto import CompositionRow as CompositionRowRecord

        return CompositionRowRecord(
            id=self.id,
            product_id=self.product_id,
            quantity=self.quantity,
            unit=self.unit or "",
            ingredient_id=self.ingredient_id,
            linked_product_id=self.linked_product_id,
            sort_order=self.sort_order,
        )

    def to_line(self):
        """Tagged IngredientLine / SubRecipeLine for this row."""
        return self.to_record().to_line()

    def __repr__(self) -> str:
        """String representation of composition row."""
        target = (
            f"ingredient_id={self.ingredient_id}"
            if self.ingredient_id is not None
            else f"linked_product_id={self.linked_product_id}"
        )
        return f"CompositionRow(id={self.id}, product_id={self.product_id}, {target})"
