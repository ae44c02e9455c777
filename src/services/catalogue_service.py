"""
Catalogue Service - persistence for ingredients, products and recipe rows.

This module provides functions for:
- Creating ingredients and updating their prices
- Creating resale and recipe products
- Adding and removing composition rows (ingredient lines, sub-recipe lines)
- Fetching rows for one product (the ``rows_of`` capability of the cost engine)
- Loading the whole catalogue and costing it in one session

Every function accepts an optional ``session``. Without one it opens its own
``session_scope()``; with one, the caller owns the transaction. Results are
returned as DTOs from ``src.services.dto`` so they stay usable after the
session closes.
"""

import logging
from typing import Any, Callable, List, Optional, Tuple

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from src.models import CompositionRow, Ingredient, Product, ProductKind
from src.services.cost_calculator import calculate_cost_report
from src.services.catalogue_validation_service import would_create_cycle
from src.services.database import session_scope
from src.services.dto import (
    CompositionRow as CompositionRowRecord,
    CostReport,
    IngredientRecord,
    ProductRecord,
)
from src.services.exceptions import (
    CompositionRowNotFound,
    DatabaseError,
    IngredientNotFound,
    ProductNotFound,
    ValidationError,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.services.unit_converter import normalize_unit
from src.utils.validators import (
    sanitize_string,
    validate_composition_row_data,
    validate_ingredient_data,
    validate_non_negative_number,
    validate_product_data,
)

logger = get_service_logger(__name__)


def _run(impl: Callable[[Session], Any], session: Optional[Session], action: str) -> Any:
    """Run ``impl`` in the caller's session or a new one, wrapping database errors."""
    try:
        if session is not None:
            return impl(session)
        with session_scope() as s:
            return impl(s)
    except SQLAlchemyError as e:
        raise DatabaseError(f"Failed to {action}", e)


def _ingredient_record(ingredient: Ingredient) -> IngredientRecord:
    return IngredientRecord(
        id=ingredient.id,
        name=ingredient.name,
        unit=ingredient.unit,
        price_per_unit=ingredient.price_per_unit,
        category=ingredient.category or "",
    )


def _product_record(product: Product) -> ProductRecord:
    return ProductRecord(
        id=product.id,
        name=product.name,
        kind=ProductKind(product.kind),
        category=product.category or "",
        selling_price_dinein=product.selling_price_dinein or 0.0,
        selling_price_delivery=product.selling_price_delivery or 0.0,
        linked_ingredient_id=product.linked_ingredient_id,
    )


def _get_ingredient(s: Session, ingredient_id: int) -> Ingredient:
    ingredient = s.get(Ingredient, ingredient_id)
    if ingredient is None:
        raise IngredientNotFound(ingredient_id)
    return ingredient


def _get_recipe_product(s: Session, product_id: int) -> Product:
    """Fetch a product that may own composition rows."""
    product = s.get(Product, product_id)
    if product is None:
        raise ProductNotFound(product_id)
    if product.kind != ProductKind.RECIPE.value:
        raise ValidationError(
            [f"Product {product_id}: Only recipe products have composition rows"]
        )
    return product


def _next_sort_order(s: Session, product_id: int) -> int:
    orders = [
        row.sort_order
        for row in s.query(CompositionRow).filter(CompositionRow.product_id == product_id)
    ]
    return max(orders) + 1 if orders else 0


# =============================================================================
# Ingredients
# =============================================================================


def create_ingredient(data: dict, session: Optional[Session] = None) -> IngredientRecord:
    """
    Create a new ingredient.

    Args:
        data: Dictionary with name, unit, price_per_unit and optional category
        session: Optional database session

    Returns:
        The created ingredient

    Raises:
        ValidationError: If data validation fails
        DatabaseError: If database operation fails
    """
    is_valid, errors = validate_ingredient_data(data)
    if not is_valid:
        raise ValidationError(errors)

    def _impl(s: Session) -> IngredientRecord:
        ingredient = Ingredient(
            name=sanitize_string(data["name"]),
            category=sanitize_string(data.get("category")) or "",
            unit=normalize_unit(data["unit"]),
            price_per_unit=float(data["price_per_unit"]),
        )
        s.add(ingredient)
        s.flush()
        return _ingredient_record(ingredient)

    record = _run(_impl, session, "create ingredient")
    log_operation(logger, "create_ingredient", "success", ingredient_id=record.id)
    return record


def update_ingredient_price(
    ingredient_id: int, price: float, session: Optional[Session] = None
) -> IngredientRecord:
    """
    Set the price of one unit of an ingredient.

    Args:
        ingredient_id: Ingredient to update
        price: New non-negative price per unit
        session: Optional database session

    Returns:
        The updated ingredient

    Raises:
        IngredientNotFound: If the ingredient doesn't exist
        ValidationError: If the price is negative or not a number
        DatabaseError: If database operation fails
    """
    is_valid, error = validate_non_negative_number(price, "Price per unit")
    if not is_valid:
        raise ValidationError([error])

    def _impl(s: Session) -> IngredientRecord:
        ingredient = _get_ingredient(s, ingredient_id)
        ingredient.price_per_unit = float(price)
        s.flush()
        return _ingredient_record(ingredient)

    record = _run(_impl, session, f"update ingredient {ingredient_id}")
    log_operation(
        logger, "update_ingredient_price", "success", ingredient_id=ingredient_id, price=price
    )
    return record


def get_all_ingredients(session: Optional[Session] = None) -> List[IngredientRecord]:
    """
    Get all ingredients ordered by name.

    Raises:
        DatabaseError: If database operation fails
    """

    def _impl(s: Session) -> List[IngredientRecord]:
        ingredients = s.query(Ingredient).order_by(Ingredient.name, Ingredient.id).all()
        return [_ingredient_record(i) for i in ingredients]

    return _run(_impl, session, "retrieve ingredients")


# =============================================================================
# Products
# =============================================================================


def create_product(data: dict, session: Optional[Session] = None) -> ProductRecord:
    """
    Create a new product.

    Args:
        data: Dictionary with name, kind ("resale" or "recipe") and optional
              category, selling_price_dinein, selling_price_delivery and
              linked_ingredient_id (required for resale products)
        session: Optional database session

    Returns:
        The created product

    Raises:
        ValidationError: If data validation fails
        IngredientNotFound: If the linked ingredient doesn't exist
        DatabaseError: If database operation fails
    """
    is_valid, errors = validate_product_data(data)
    if not is_valid:
        raise ValidationError(errors)

    kind = ProductKind(getattr(data["kind"], "value", data["kind"]))
    linked_ingredient_id = data.get("linked_ingredient_id")

    def _impl(s: Session) -> ProductRecord:
        if linked_ingredient_id is not None:
            _get_ingredient(s, linked_ingredient_id)

        product = Product(
            name=sanitize_string(data["name"]),
            category=sanitize_string(data.get("category")) or "",
            kind=kind.value,
            selling_price_dinein=float(data.get("selling_price_dinein") or 0.0),
            selling_price_delivery=float(data.get("selling_price_delivery") or 0.0),
            linked_ingredient_id=linked_ingredient_id,
        )
        s.add(product)
        s.flush()
        return _product_record(product)

    record = _run(_impl, session, "create product")
    log_operation(logger, "create_product", "success", product_id=record.id, kind=kind.value)
    return record


def get_all_products(session: Optional[Session] = None) -> List[ProductRecord]:
    """
    Get all products ordered by name.

    Raises:
        DatabaseError: If database operation fails
    """

    def _impl(s: Session) -> List[ProductRecord]:
        products = s.query(Product).order_by(Product.name, Product.id).all()
        return [_product_record(p) for p in products]

    return _run(_impl, session, "retrieve products")


# =============================================================================
# Composition Rows
# =============================================================================


def add_ingredient_row(
    product_id: int,
    ingredient_id: int,
    quantity: float,
    unit: str,
    sort_order: Optional[int] = None,
    session: Optional[Session] = None,
) -> CompositionRowRecord:
    """
    Add an ingredient line to a recipe product.

    Args:
        product_id: Recipe product receiving the row
        ingredient_id: Ingredient consumed
        quantity: Positive amount measured in ``unit``
        unit: Metric unit of ``quantity``
        sort_order: Position in the recipe (default: after the last row)
        session: Optional database session

    Returns:
        The created row

    Raises:
        ProductNotFound: If the product doesn't exist
        IngredientNotFound: If the ingredient doesn't exist
        ValidationError: If the product is not a recipe or the row data is invalid
        DatabaseError: If database operation fails
    """
    is_valid, errors = validate_composition_row_data(
        {
            "ingredient_id": ingredient_id,
            "quantity": quantity,
            "unit": unit,
            "sort_order": sort_order,
        }
    )
    if not is_valid:
        raise ValidationError(errors)

    def _impl(s: Session) -> CompositionRowRecord:
        _get_recipe_product(s, product_id)
        _get_ingredient(s, ingredient_id)

        row = CompositionRow(
            product_id=product_id,
            ingredient_id=ingredient_id,
            quantity=float(quantity),
            unit=normalize_unit(unit),
            sort_order=sort_order if sort_order is not None else _next_sort_order(s, product_id),
        )
        s.add(row)
        s.flush()
        return row.to_record()

    record = _run(_impl, session, f"add ingredient row to product {product_id}")
    log_operation(
        logger,
        "add_ingredient_row",
        "success",
        product_id=product_id,
        row_id=record.id,
        ingredient_id=ingredient_id,
    )
    return record


def add_sub_recipe_row(
    product_id: int,
    linked_product_id: int,
    multiplier: float = 1.0,
    sort_order: Optional[int] = None,
    session: Optional[Session] = None,
) -> CompositionRowRecord:
    """
    Add a sub-recipe line using ``multiplier`` units of another product.

    Rows closing a reference cycle are stored; the cost engine tolerates
    them. A WARNING is logged so the catalogue can be fixed.

    Args:
        product_id: Recipe product receiving the row
        linked_product_id: Product used as a component
        multiplier: Positive number of component units
        sort_order: Position in the recipe (default: after the last row)
        session: Optional database session

    Returns:
        The created row

    Raises:
        ProductNotFound: If either product doesn't exist
        ValidationError: If the product is not a recipe or the row data is invalid
        DatabaseError: If database operation fails
    """
    is_valid, errors = validate_composition_row_data(
        {
            "linked_product_id": linked_product_id,
            "quantity": multiplier,
            "sort_order": sort_order,
        }
    )
    if not is_valid:
        raise ValidationError(errors)

    def _impl(s: Session) -> Tuple[CompositionRowRecord, bool]:
        _get_recipe_product(s, product_id)
        if s.get(Product, linked_product_id) is None:
            raise ProductNotFound(linked_product_id)

        creates_cycle = would_create_cycle(
            product_id,
            linked_product_id,
            lambda pid: get_composition_rows(pid, session=s),
        )

        row = CompositionRow(
            product_id=product_id,
            linked_product_id=linked_product_id,
            quantity=float(multiplier),
            unit="",
            sort_order=sort_order if sort_order is not None else _next_sort_order(s, product_id),
        )
        s.add(row)
        s.flush()
        return row.to_record(), creates_cycle

    record, creates_cycle = _run(_impl, session, f"add sub-recipe row to product {product_id}")
    if creates_cycle:
        log_operation(
            logger,
            "add_sub_recipe_row",
            "creates_cycle",
            level=logging.WARNING,
            product_id=product_id,
            linked_product_id=linked_product_id,
            row_id=record.id,
        )
    else:
        log_operation(
            logger,
            "add_sub_recipe_row",
            "success",
            product_id=product_id,
            linked_product_id=linked_product_id,
            row_id=record.id,
        )
    return record


def remove_composition_row(row_id: int, session: Optional[Session] = None) -> None:
    """
    Delete one composition row.

    Raises:
        CompositionRowNotFound: If the row doesn't exist
        DatabaseError: If database operation fails
    """

    def _impl(s: Session) -> None:
        row = s.get(CompositionRow, row_id)
        if row is None:
            raise CompositionRowNotFound(row_id)
        s.delete(row)
        s.flush()

    _run(_impl, session, f"remove composition row {row_id}")
    log_operation(logger, "remove_composition_row", "success", row_id=row_id)


def get_composition_rows(
    product_id: int, session: Optional[Session] = None
) -> List[CompositionRowRecord]:
    """
    Get the rows of one product, ordered by sort_order.

    This is the ``rows_of`` capability handed to the cost engine. An unknown
    product simply has no rows.

    Raises:
        DatabaseError: If database operation fails
    """

    def _impl(s: Session) -> List[CompositionRowRecord]:
        rows = (
            s.query(CompositionRow)
            .filter(CompositionRow.product_id == product_id)
            .order_by(CompositionRow.sort_order, CompositionRow.id)
            .all()
        )
        return [row.to_record() for row in rows]

    return _run(_impl, session, f"retrieve composition rows for product {product_id}")


# =============================================================================
# Whole Catalogue
# =============================================================================


def load_catalogue(
    session: Optional[Session] = None,
) -> Tuple[List[IngredientRecord], List[ProductRecord]]:
    """
    Load every ingredient and product.

    Returns:
        Tuple of (ingredients, products), each ordered by id

    Raises:
        DatabaseError: If database operation fails
    """

    def _impl(s: Session) -> Tuple[List[IngredientRecord], List[ProductRecord]]:
        ingredients = s.query(Ingredient).order_by(Ingredient.id).all()
        products = s.query(Product).order_by(Product.id).all()
        return (
            [_ingredient_record(i) for i in ingredients],
            [_product_record(p) for p in products],
        )

    return _run(_impl, session, "load catalogue")


def calculate_catalogue_costs(
    session: Optional[Session] = None, memoize: bool = True
) -> CostReport:
    """
    Cost every product in the stored catalogue.

    The catalogue and its rows are read in a single session so the Cost Map
    reflects one consistent snapshot.

    Args:
        session: Optional database session
        memoize: Reuse row fetches and finished sub-results within the run

    Returns:
        CostReport with the Cost Map and diagnostics

    Raises:
        DatabaseError: If the catalogue cannot be loaded
    """

    def _impl(s: Session) -> CostReport:
        ingredients, products = load_catalogue(session=s)
        return calculate_cost_report(
            products,
            ingredients,
            lambda product_id: get_composition_rows(product_id, session=s),
            memoize=memoize,
        )

    return _run(_impl, session, "calculate catalogue costs")
