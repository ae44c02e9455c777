"""
Metric unit conversion for ingredient costing.

This module provides:
- Unit family detection (weight, volume)
- Compatibility checks between two unit symbols
- Conversion of a quantity between units of the same family

Conversion Strategy:
- Weight units convert through kilograms (base unit)
- Volume units convert through liters (base unit)
- Weight and volume never convert into each other
"""

from typing import Optional

from src.services.exceptions import IncompatibleUnits, InvalidUnit
from src.utils.constants import UNIT_ALIASES, VOLUME_TO_L, WEIGHT_TO_KG


def normalize_unit(unit: str) -> str:
    """
    Normalize a unit symbol for table lookups.

    Args:
        unit: Unit symbol as stored (e.g., " KG", "lt")

    Returns:
        Lower-cased, trimmed symbol with aliases resolved ("kg", "l")
    """
    if not isinstance(unit, str):
        return ""
    symbol = unit.strip().lower()
    return UNIT_ALIASES.get(symbol, symbol)


def get_conversion_table(unit: str) -> Optional[dict]:
    """
    Get the factor table for the family a unit belongs to.

    Args:
        unit: Unit symbol

    Returns:
        Factor table dict, or None if the unit is not metric
    """
    symbol = normalize_unit(unit)

    if symbol in WEIGHT_TO_KG:
        return WEIGHT_TO_KG
    elif symbol in VOLUME_TO_L:
        return VOLUME_TO_L

    return None


def get_unit_type(unit: str) -> str:
    """
    Determine the family of a unit.

    Returns:
        "weight", "volume", or "unknown"
    """
    symbol = normalize_unit(unit)

    if symbol in WEIGHT_TO_KG:
        return "weight"
    elif symbol in VOLUME_TO_L:
        return "volume"

    return "unknown"


def is_metric_unit(unit: str) -> bool:
    """Return True if the unit is one of kg, g, l, ml."""
    return get_unit_type(unit) != "unknown"


def units_compatible(from_unit: str, to_unit: str) -> bool:
    """
    Check if two units are metric and belong to the same family.

    Args:
        from_unit: First unit
        to_unit: Second unit

    Returns:
        True if units can be converted into each other
    """
    from_type = get_unit_type(from_unit)
    to_type = get_unit_type(to_unit)

    if from_type == "unknown" or to_type == "unknown":
        return False

    return from_type == to_type


def convert_units(value: float, from_unit: str, to_unit: str) -> float:
    """
    Convert a quantity between two units of the same family.

    Args:
        value: Quantity to convert
        from_unit: Source unit (e.g., "g")
        to_unit: Target unit (e.g., "kg")

    Returns:
        The converted quantity; ``value`` itself when the symbols are equal

    Raises:
        InvalidUnit: If either symbol is not a metric unit
        IncompatibleUnits: If the units belong to different families

    Example:
        >>> convert_units(200, "g", "kg")
        0.2
    """
    if from_unit == to_unit:
        return value

    for unit in (from_unit, to_unit):
        if not is_metric_unit(unit):
            raise InvalidUnit(unit)

    if not units_compatible(from_unit, to_unit):
        raise IncompatibleUnits(from_unit, to_unit)

    conversion_table = get_conversion_table(from_unit)
    from_symbol = normalize_unit(from_unit)
    to_symbol = normalize_unit(to_unit)

    if from_symbol == to_symbol:
        return value

    # value -> base unit -> target unit
    base_value = value * conversion_table[from_symbol]
    return base_value / conversion_table[to_symbol]

