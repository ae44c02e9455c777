"""Data Transfer Objects for the costing services.

These dataclasses carry catalogue data into the cost engine without tying it
to the database layer. The resolver only reads attributes, so ORM instances
with the same fields can be passed wherever a record is expected.

Composition rows are stored in one shape with two optional references. Use
``CompositionRow.to_line()`` to get the tagged variant the resolver works on:

    row = CompositionRow(id=1, product_id=10, ingredient_id=3, quantity=200, unit="g")
    row.to_line()   # IngredientLine(row_id=1, ingredient_id=3, quantity=200, unit='g')

    row = CompositionRow(id=2, product_id=10, linked_product_id=11, quantity=3)
    row.to_line()   # SubRecipeLine(row_id=2, product_id=11, multiplier=3)
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Union

from src.models.enums import ProductKind


@dataclass(frozen=True)
class IngredientRecord:
    """Purchasable raw material priced per one ``unit``."""

    id: Any
    name: str
    unit: str
    price_per_unit: float
    category: str = ""


@dataclass(frozen=True)
class ProductRecord:
    """Sellable product; ``linked_ingredient_id`` is only set for resale products."""

    id: Any
    name: str
    kind: ProductKind
    category: str = ""
    selling_price_dinein: float = 0.0
    selling_price_delivery: float = 0.0
    linked_ingredient_id: Optional[Any] = None


@dataclass(frozen=True)
class IngredientLine:
    """Recipe line consuming ``quantity`` of an ingredient, measured in ``unit``."""

    row_id: Any
    ingredient_id: Any
    quantity: float
    unit: str


@dataclass(frozen=True)
class SubRecipeLine:
    """Recipe line using ``multiplier`` units of another product."""

    row_id: Any
    product_id: Any
    multiplier: float


CompositionLine = Union[IngredientLine, SubRecipeLine]


@dataclass(frozen=True)
class CompositionRow:
    """
    One stored line of a recipe product.

    Exactly one of ``ingredient_id`` or ``linked_product_id`` should be set.
    ``quantity`` is measured in ``unit`` for ingredient rows and is a plain
    multiplier for sub-recipe rows (``unit`` is ignored there).
    """

    id: Any
    product_id: Any
    quantity: float
    unit: str = ""
    ingredient_id: Optional[Any] = None
    linked_product_id: Optional[Any] = None
    sort_order: int = 0

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "CompositionRow":
        """
        Build a row from a plain mapping, e.g. a database driver row.

        Raises:
            KeyError: If "id", "product_id" or "quantity" is missing
        """
        return cls(
            id=data["id"],
            product_id=data["product_id"],
            quantity=data["quantity"],
            unit=data.get("unit") or "",
            ingredient_id=data.get("ingredient_id"),
            linked_product_id=data.get("linked_product_id"),
            sort_order=data.get("sort_order") or 0,
        )

    def to_line(self) -> CompositionLine:
        """
        Convert the stored row into its tagged variant.

        Raises:
            ValueError: If neither or both references are set
        """
        has_ingredient = self.ingredient_id is not None
        has_product = self.linked_product_id is not None

        if has_ingredient == has_product:
            raise ValueError(
                f"Composition row {self.id} must reference exactly one of "
                f"an ingredient or a product"
            )

        if has_ingredient:
            return IngredientLine(
                row_id=self.id,
                ingredient_id=self.ingredient_id,
                quantity=self.quantity,
                unit=self.unit,
            )
        return SubRecipeLine(
            row_id=self.id,
            product_id=self.linked_product_id,
            multiplier=self.quantity,
        )


def to_composition_line(row: Any) -> CompositionLine:
    """
    Coerce whatever a row store returned into a tagged line.

    Accepts IngredientLine / SubRecipeLine as-is, plain mappings, and any
    object with a ``to_line()`` method (CompositionRow, ORM rows).

    Raises:
        AttributeError, KeyError, ValueError: If the row is malformed
    """
    if isinstance(row, (IngredientLine, SubRecipeLine)):
        return row
    if isinstance(row, Mapping):
        row = CompositionRow.from_mapping(row)
    return row.to_line()


def row_identifier(row: Any) -> Any:
    """Best-effort id of a stored row, for diagnostics."""
    if isinstance(row, (IngredientLine, SubRecipeLine)):
        return row.row_id
    if isinstance(row, Mapping):
        return row.get("id")
    return getattr(row, "id", None)


# Diagnostic reasons recorded by the resolver and the validation pass
ISSUE_MISSING_INGREDIENT = "missing_ingredient"
ISSUE_MISSING_PRODUCT = "missing_product"
ISSUE_MISSING_LINKED_INGREDIENT = "missing_linked_ingredient"
ISSUE_UNEXPECTED_LINKED_INGREDIENT = "unexpected_linked_ingredient"
ISSUE_UNIT_FALLBACK = "unit_fallback"
ISSUE_UNIT_MISMATCH = "unit_mismatch"
ISSUE_CYCLE = "cycle"
ISSUE_ROW_FETCH_FAILED = "row_fetch_failed"
ISSUE_MALFORMED_ROW = "malformed_row"
ISSUE_INVALID_QUANTITY = "invalid_quantity"
ISSUE_INVALID_PRICE = "invalid_price"
ISSUE_OVERFLOW = "overflow"
ISSUE_INVALID_UNIT = "invalid_unit"


@dataclass(frozen=True)
class CostIssue:
    """
    One degraded or suspicious spot in the catalogue.

    Attributes:
        product_id: Product whose cost (or row) is affected
        row_id: Composition row involved, or None for product-level issues
        reason: One of the ISSUE_* codes
        message: Human readable description
    """

    product_id: Any
    row_id: Optional[Any]
    reason: str
    message: str = ""

    def sort_key(self) -> tuple:
        """Deterministic ordering key that tolerates mixed id types."""
        return (str(self.product_id), str(self.row_id), self.reason, self.message)


@dataclass
class CostReport:
    """Cost Map for a catalogue plus the diagnostics gathered while computing it.

    Attributes:
        costs: Product id -> cost of one unit, rounded to currency precision
        issues: De-duplicated diagnostics, sorted by product, row and reason
    """

    costs: Dict[Any, float] = field(default_factory=dict)
    issues: List[CostIssue] = field(default_factory=list)

    @property
    def degraded_product_ids(self) -> List[Any]:
        """Ids of products whose cost was computed through a degraded path."""
        seen = dict.fromkeys(issue.product_id for issue in self.issues)
        return list(seen)

    def issues_for(self, product_id: Any) -> List[CostIssue]:
        """Diagnostics recorded against one product."""
        return [issue for issue in self.issues if issue.product_id == product_id]
