"""
Input validation functions for the Recipe COGS Engine catalogue.

This module provides validation functions for catalogue inputs including:
- Numeric validation (positive, non-negative, ranges)
- String validation (length, required fields)
- Unit and product kind validation
- Whole-record validation for ingredients, products and composition rows
"""

import math
from typing import Any, Optional, Tuple

from .constants import (
    MAX_CATEGORY_LENGTH,
    MAX_NAME_LENGTH,
    MAX_PRICE,
    MAX_QUANTITY,
    METRIC_UNITS,
    PRODUCT_KINDS,
    PRODUCT_KIND_RECIPE,
    PRODUCT_KIND_RESALE,
    UNIT_ALIASES,
    ERROR_REQUIRED_FIELD,
    ERROR_INVALID_NUMBER,
    ERROR_INVALID_POSITIVE,
    ERROR_INVALID_NON_NEGATIVE,
    ERROR_INVALID_UNIT,
    ERROR_INVALID_KIND,
)


def _to_number(value: Any) -> Optional[float]:
    """Parse a finite float, or None. Booleans are not numbers here."""
    if isinstance(value, bool):
        return None
    try:
        num_value = float(value)
    except (ValueError, TypeError):
        return None
    if not math.isfinite(num_value):
        return None
    return num_value


def validate_required_string(value: Optional[str], field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a string field is not empty.

    Args:
        value: The string value to validate
        field_name: Name of the field for error messages

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value is None or (isinstance(value, str) and value.strip() == ""):
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    return True, ""


def validate_string_length(
    value: Optional[str], max_length: int, field_name: str = "Field"
) -> Tuple[bool, str]:
    """
    Validate that a string doesn't exceed maximum length.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if value and len(value) > max_length:
        return False, f"{field_name}: Must be {max_length} characters or less"
    return True, ""


def validate_positive_number(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value is a finite positive number (> 0).

    Returns:
        Tuple of (is_valid, error_message)
    """
    num_value = _to_number(value)
    if num_value is None:
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if num_value <= 0:
        return False, f"{field_name}: {ERROR_INVALID_POSITIVE}"
    return True, ""


def validate_non_negative_number(value: Any, field_name: str = "Field") -> Tuple[bool, str]:
    """
    Validate that a value is a finite non-negative number (>= 0).

    Returns:
        Tuple of (is_valid, error_message)
    """
    num_value = _to_number(value)
    if num_value is None:
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if num_value < 0:
        return False, f"{field_name}: {ERROR_INVALID_NON_NEGATIVE}"
    return True, ""


def validate_number_range(
    value: Any, min_value: float, max_value: float, field_name: str = "Field"
) -> Tuple[bool, str]:
    """
    Validate that a number is within a specified range (inclusive).

    Returns:
        Tuple of (is_valid, error_message)
    """
    num_value = _to_number(value)
    if num_value is None:
        return False, f"{field_name}: {ERROR_INVALID_NUMBER}"
    if num_value < min_value or num_value > max_value:
        return False, f"{field_name}: Must be between {min_value} and {max_value}"
    return True, ""


def validate_unit(unit: Optional[str], field_name: str = "Unit") -> Tuple[bool, str]:
    """
    Validate that a unit is one of the supported metric units.

    Matching is case-insensitive and accepts known aliases (e.g. "lt").

    Returns:
        Tuple of (is_valid, error_message)
    """
    if not unit or not isinstance(unit, str):
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"

    key = unit.strip().lower()
    if UNIT_ALIASES.get(key, key) not in METRIC_UNITS:
        return False, f"{field_name}: {ERROR_INVALID_UNIT}"

    return True, ""


def validate_product_kind(kind: Any, field_name: str = "Kind") -> Tuple[bool, str]:
    """
    Validate that a product kind is "resale" or "recipe".

    Returns:
        Tuple of (is_valid, error_message)
    """
    value = getattr(kind, "value", kind)
    if not value:
        return False, f"{field_name}: {ERROR_REQUIRED_FIELD}"
    if value not in PRODUCT_KINDS:
        return False, f"{field_name}: {ERROR_INVALID_KIND}"
    return True, ""


def validate_ingredient_data(data: dict) -> Tuple[bool, list]:
    """
    Validate all fields for an ingredient.

    Args:
        data: Dictionary with name, unit, price_per_unit and optional category

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []

    is_valid, error = validate_required_string(data.get("name"), "Name")
    if not is_valid:
        errors.append(error)
    else:
        is_valid, error = validate_string_length(data.get("name"), MAX_NAME_LENGTH, "Name")
        if not is_valid:
            errors.append(error)

    is_valid, error = validate_string_length(
        data.get("category"), MAX_CATEGORY_LENGTH, "Category"
    )
    if not is_valid:
        errors.append(error)

    is_valid, error = validate_unit(data.get("unit"), "Unit")
    if not is_valid:
        errors.append(error)

    is_valid, error = validate_non_negative_number(data.get("price_per_unit"), "Price per unit")
    if is_valid:
        is_valid, error = validate_number_range(
            data.get("price_per_unit"), 0, MAX_PRICE, "Price per unit"
        )
    if not is_valid:
        errors.append(error)

    return len(errors) == 0, errors


def validate_product_data(data: dict) -> Tuple[bool, list]:
    """
    Validate all fields for a product.

    Resale products must name the ingredient they sell; recipe products
    must not.

    Args:
        data: Dictionary with name, kind and optional category, selling prices
              and linked_ingredient_id

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []

    is_valid, error = validate_required_string(data.get("name"), "Name")
    if not is_valid:
        errors.append(error)
    else:
        is_valid, error = validate_string_length(data.get("name"), MAX_NAME_LENGTH, "Name")
        if not is_valid:
            errors.append(error)

    is_valid, error = validate_string_length(
        data.get("category"), MAX_CATEGORY_LENGTH, "Category"
    )
    if not is_valid:
        errors.append(error)

    kind = data.get("kind")
    is_valid, error = validate_product_kind(kind, "Kind")
    if not is_valid:
        errors.append(error)

    for field_name, label in (
        ("selling_price_dinein", "Dine-in price"),
        ("selling_price_delivery", "Delivery price"),
    ):
        if data.get(field_name) is not None:
            is_valid, error = validate_non_negative_number(data.get(field_name), label)
            if not is_valid:
                errors.append(error)

    kind_value = getattr(kind, "value", kind)
    linked = data.get("linked_ingredient_id")
    if kind_value == PRODUCT_KIND_RESALE and linked is None:
        errors.append(f"Linked ingredient: {ERROR_REQUIRED_FIELD}")
    elif kind_value == PRODUCT_KIND_RECIPE and linked is not None:
        errors.append("Linked ingredient: Only resale products sell an ingredient")

    return len(errors) == 0, errors


def validate_composition_row_data(data: dict) -> Tuple[bool, list]:
    """
    Validate all fields for a composition row.

    Ingredient rows need a metric unit; sub-recipe rows use ``quantity`` as a
    multiplier and ignore the unit.

    Args:
        data: Dictionary with quantity and exactly one of ingredient_id or
              linked_product_id (plus unit for ingredient rows)

    Returns:
        Tuple of (is_valid, list_of_errors)
    """
    errors = []

    has_ingredient = data.get("ingredient_id") is not None
    has_product = data.get("linked_product_id") is not None
    if has_ingredient == has_product:
        errors.append("Reference: Must reference exactly one of an ingredient or a product")

    is_valid, error = validate_positive_number(data.get("quantity"), "Quantity")
    if is_valid:
        is_valid, error = validate_number_range(data.get("quantity"), 0, MAX_QUANTITY, "Quantity")
    if not is_valid:
        errors.append(error)

    if has_ingredient and not has_product:
        is_valid, error = validate_unit(data.get("unit"), "Unit")
        if not is_valid:
            errors.append(error)

    if data.get("sort_order") is not None:
        is_valid, error = validate_non_negative_number(data.get("sort_order"), "Sort order")
        if not is_valid:
            errors.append(error)

    return len(errors) == 0, errors


def sanitize_string(value: Optional[str]) -> Optional[str]:
    """
    Strip whitespace and convert empty strings to None.

    Args:
        value: The string value to sanitize

    Returns:
        Sanitized string or None
    """
    if value is None:
        return None
    stripped = value.strip()
    return stripped if stripped else None
