"""
Product model for sellable items.

A product is either a direct resale of one ingredient or a recipe composed of
CompositionRow lines. Selling prices are kept for margin calculations only;
they play no part in cost resolution.
"""

from sqlalchemy import Column, String, Float, Integer, ForeignKey, Index, CheckConstraint
from sqlalchemy.orm import relationship

from .base import BaseModel
from .enums import ProductKind


class Product(BaseModel):
    """
    Product model representing a sellable item.

    Attributes:
        name: Product name
        category: Free-text category, also used to pick margin thresholds
        kind: "resale" or "recipe" (see ProductKind)
        selling_price_dinein: Selling price for dine-in
        selling_price_delivery: Selling price for delivery
        linked_ingredient_id: Ingredient sold by a resale product (None for recipes)
    """

    __tablename__ = "products"

    name = Column(String(200), nullable=False, index=True)
    category = Column(String(100), nullable=False, default="")
    kind = Column(String(20), nullable=False, default=ProductKind.RECIPE.value)

    selling_price_dinein = Column(Float, nullable=False, default=0.0)
    selling_price_delivery = Column(Float, nullable=False, default=0.0)

    linked_ingredient_id = Column(
        Integer, ForeignKey("ingredients.id", ondelete="SET NULL"), nullable=True, index=True
    )

    # Relationships
    linked_ingredient = relationship("Ingredient", back_populates="resale_products")
    composition_rows = relationship(
        "CompositionRow",
        foreign_keys="CompositionRow.product_id",
        back_populates="product",
        cascade="all, delete-orphan",
        order_by="CompositionRow.sort_order",
    )
    used_in_rows = relationship(
        "CompositionRow",
        foreign_keys="CompositionRow.linked_product_id",
        back_populates="linked_product",
        passive_deletes=True,
    )

    __table_args__ = (
        Index("idx_product_category", "category"),
        CheckConstraint("kind IN ('resale', 'recipe')", name="ck_product_kind_valid"),
        CheckConstraint(
            "selling_price_dinein >= 0 AND selling_price_delivery >= 0",
            name="ck_product_selling_prices_non_negative",
        ),
    )

    @property
    def is_resale(self) -> bool:
        """True if the product is sold as its linked ingredient."""
        return self.kind == ProductKind.RESALE

    def __repr__(self) -> str:
        """String representation of product."""
        return f"Product(id={self.id}, name='{self.name}', kind='{self.kind}')"
