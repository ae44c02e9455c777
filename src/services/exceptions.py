"""Service layer exception classes for the Recipe COGS Engine.

Exception Hierarchy:
    ServiceError (base)
    ├── UnitConversionError
    │   ├── InvalidUnit
    │   └── IncompatibleUnits
    ├── IngredientNotFound
    ├── ProductNotFound
    ├── CompositionRowNotFound
    ├── ValidationError
    └── DatabaseError

The cost resolver catches UnitConversionError internally and never lets it
escape a batch; the other exceptions are raised by catalogue operations.
"""


class ServiceError(Exception):
    """Base exception for all service layer errors.

    All service-specific exceptions should inherit from this class.
    """

    pass


class UnitConversionError(ServiceError):
    """Base class for failures of the metric unit converter."""

    pass


class InvalidUnit(UnitConversionError):
    """Raised when a unit symbol is not a recognized metric unit.

    Args:
        unit: The unrecognized unit symbol

    Example:
        >>> raise InvalidUnit("cup")
        InvalidUnit: Invalid unit: 'cup'
    """

    def __init__(self, unit: str):
        self.unit = unit
        super().__init__(f"Invalid unit: '{unit}'")


class IncompatibleUnits(UnitConversionError):
    """Raised when two metric units belong to different families.

    Args:
        from_unit: Source unit symbol
        to_unit: Target unit symbol

    Example:
        >>> raise IncompatibleUnits("kg", "ml")
        IncompatibleUnits: Incompatible units: kg -> ml
    """

    def __init__(self, from_unit: str, to_unit: str):
        self.from_unit = from_unit
        self.to_unit = to_unit
        super().__init__(f"Incompatible units: {from_unit} -> {to_unit}")


class IngredientNotFound(ServiceError):
    """Raised when an ingredient cannot be found by ID."""

    def __init__(self, ingredient_id: int):
        self.ingredient_id = ingredient_id
        super().__init__(f"Ingredient with ID {ingredient_id} not found")


class ProductNotFound(ServiceError):
    """Raised when a product cannot be found by ID.

    Example:
        >>> raise ProductNotFound(123)
        ProductNotFound: Product with ID 123 not found
    """

    def __init__(self, product_id: int):
        self.product_id = product_id
        super().__init__(f"Product with ID {product_id} not found")


class CompositionRowNotFound(ServiceError):
    """Raised when a composition row cannot be found by ID."""

    def __init__(self, row_id: int):
        self.row_id = row_id
        super().__init__(f"Composition row with ID {row_id} not found")


class ValidationError(ServiceError):
    """Raised when data validation fails."""

    def __init__(self, errors: list):
        self.errors = errors
        error_msg = "; ".join(errors)
        super().__init__(f"Validation failed: {error_msg}")


class DatabaseError(ServiceError):
    """Raised when a database operation fails."""

    def __init__(self, message: str, original_error: Exception = None):
        self.original_error = original_error
        super().__init__(f"Database error: {message}")
