"""Pytest configuration and fixtures for service layer tests."""

from collections import defaultdict

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, scoped_session

from src.models.base import Base
from src.models.enums import ProductKind
from src.services.database import get_session_factory  # noqa: F401
from src.services.dto import CompositionRow, IngredientRecord, ProductRecord


@pytest.fixture(scope="function")
def test_db():
    """Provide a clean test database for each test function.

    This fixture:
    1. Creates an in-memory SQLite database
    2. Creates all tables
    3. Points the global session factory at it
    4. Drops all tables after the test completes
    """
    import src.models  # noqa: F401  (registers every table on Base.metadata)

    engine = create_engine("sqlite:///:memory:", echo=False)
    Base.metadata.create_all(engine)

    session_factory = sessionmaker(bind=engine, expire_on_commit=False)
    Session = scoped_session(session_factory)

    # Monkey-patch the global session factory for tests
    import src.services.database as db_module

    original_get_session = db_module.get_session_factory
    db_module.get_session_factory = lambda: Session

    yield Session

    Session.remove()
    Base.metadata.drop_all(engine)
    engine.dispose()

    db_module.get_session_factory = original_get_session


class RowStore:
    """In-memory row store; calling it returns one product's rows.

    Every call is counted so tests can check how often rows are fetched.
    """

    def __init__(self):
        self.rows = defaultdict(list)
        self.calls = defaultdict(int)
        self._next_id = 1

    def ingredient(self, product_id, ingredient_id, quantity, unit):
        row = CompositionRow(
            id=self._next_id,
            product_id=product_id,
            ingredient_id=ingredient_id,
            quantity=quantity,
            unit=unit,
        )
        self._next_id += 1
        self.rows[product_id].append(row)
        return row

    def sub_recipe(self, product_id, linked_product_id, multiplier=1):
        row = CompositionRow(
            id=self._next_id,
            product_id=product_id,
            linked_product_id=linked_product_id,
            quantity=multiplier,
        )
        self._next_id += 1
        self.rows[product_id].append(row)
        return row

    def __call__(self, product_id):
        self.calls[product_id] += 1
        return list(self.rows.get(product_id, []))


@pytest.fixture
def row_store():
    """Provide an empty in-memory row store."""
    return RowStore()


def make_ingredient(ingredient_id, unit, price, name=None):
    return IngredientRecord(
        id=ingredient_id, name=name or f"Ingredient {ingredient_id}", unit=unit, price_per_unit=price
    )


def make_recipe(product_id, name=None, **kwargs):
    return ProductRecord(
        id=product_id, name=name or f"Recipe {product_id}", kind=ProductKind.RECIPE, **kwargs
    )


def make_resale(product_id, linked_ingredient_id, name=None, **kwargs):
    return ProductRecord(
        id=product_id,
        name=name or f"Resale {product_id}",
        kind=ProductKind.RESALE,
        linked_ingredient_id=linked_ingredient_id,
        **kwargs,
    )


@pytest.fixture
def bakery(row_store):
    """Provide a small catalogue exercising every kind of row.

    Ingredients:
    - 1 Flour, 1.20 per kg
    - 2 Milk, 0.90 per l
    - 3 Sugar, 0.50 per kg
    - 4 Soda can, 2.50 per l

    Products:
    - 10 Soda (resale of ingredient 4)
    - 11 Batter: 200 g flour + 0.5 l milk = 0.69
    - 12 Syrup: 2 kg sugar = 1.00
    - 13 Cake: 3x Syrup + 1 kg sugar = 3.50
    """

    class Bakery:
        pass

    data = Bakery()
    data.rows_of = row_store
    data.ingredients = [
        make_ingredient(1, "kg", 1.20, "Flour"),
        make_ingredient(2, "l", 0.90, "Milk"),
        make_ingredient(3, "kg", 0.50, "Sugar"),
        make_ingredient(4, "l", 2.50, "Soda can"),
    ]
    data.soda = make_resale(10, 4, "Soda")
    data.batter = make_recipe(11, "Batter")
    data.syrup = make_recipe(12, "Syrup")
    data.cake = make_recipe(13, "Cake")
    data.products = [data.soda, data.batter, data.syrup, data.cake]

    row_store.ingredient(11, 1, 200, "g")
    row_store.ingredient(11, 2, 0.5, "l")
    row_store.ingredient(12, 3, 2, "kg")
    row_store.sub_recipe(13, 12, 3)
    row_store.ingredient(13, 3, 1, "kg")

    data.ingredients_by_id = {i.id: i for i in data.ingredients}
    data.products_by_id = {p.id: p for p in data.products}
    return data
