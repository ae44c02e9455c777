"""Services package - Business logic layer for the Recipe COGS Engine.

Architecture:
- Cost engine: Pure functions over in-memory lookup tables plus a row-fetch
  capability (unit_converter, cost_resolver, cost_calculator)
- Persistence: Stateless functions managed via session_scope()
- Exceptions: Consistent error handling via ServiceError hierarchy

Service Modules:
- unit_converter: Metric weight/volume conversion
- cost_resolver: Cost of one unit of one product
- cost_calculator: Cost Map for a whole catalogue
- catalogue_validation_service: Reference cycle and data quality checks
- margin_service: Margin percentages and health bands
- catalogue_service: Ingredient, product and composition row persistence

Infrastructure:
- exceptions: Custom exception classes for service layer errors
- database: Session management and database utilities
- logging_utils: Service logger naming and structured operation logs
"""

from . import (
    database,
    unit_converter,
    cost_resolver,
    cost_calculator,
    catalogue_validation_service,
    margin_service,
    catalogue_service,
)

from .exceptions import (
    ServiceError,
    UnitConversionError,
    InvalidUnit,
    IncompatibleUnits,
    IngredientNotFound,
    ProductNotFound,
    CompositionRowNotFound,
    ValidationError,
    DatabaseError,
)

from .unit_converter import convert_units, is_metric_unit, units_compatible
from .cost_resolver import CostResolver, resolve_cost
from .cost_calculator import calculate_all, calculate_cost_report, round_currency

__all__ = [
    # Modules
    "database",
    "unit_converter",
    "cost_resolver",
    "cost_calculator",
    "catalogue_validation_service",
    "margin_service",
    "catalogue_service",
    # Exceptions
    "ServiceError",
    "UnitConversionError",
    "InvalidUnit",
    "IncompatibleUnits",
    "IngredientNotFound",
    "ProductNotFound",
    "CompositionRowNotFound",
    "ValidationError",
    "DatabaseError",
    # Cost engine
    "convert_units",
    "is_metric_unit",
    "units_compatible",
    "CostResolver",
    "resolve_cost",
    "calculate_all",
    "calculate_cost_report",
    "round_currency",
]
