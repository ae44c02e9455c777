"""
Database models package.

This package contains the SQLAlchemy ORM models for the ingredient and
product catalogue.
"""

from .base import Base, BaseModel
from .enums import MarginHealth, ProductKind
from .ingredient import Ingredient
from .product import Product
from .composition_row import CompositionRow

__all__ = [
    "Base",
    "BaseModel",
    "Ingredient",
    "Product",
    "CompositionRow",
    "ProductKind",
    "MarginHealth",
]
