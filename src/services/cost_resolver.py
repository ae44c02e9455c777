"""
Cost resolution for a single product.

This module provides:
- resolve_cost(): cost of producing one unit of a product
- CostResolver: the same computation with per-batch caches of fetched rows
  and fully resolved sub-recipe costs

Resolution rules:
- Resale products cost their linked ingredient's price_per_unit
- Recipe products cost the sum of their composition lines:
  ingredient lines convert the quantity into the ingredient's unit and
  multiply by its price; sub-recipe lines multiply the sub-product's cost
- The product graph may contain cycles. A path-local guard holds the ids
  being resolved on the current branch; meeting one of them again
  contributes 0. Each sub-recipe frame receives its own copy of the
  guard, so sibling branches sharing a descendant do not affect each other.

Catalogue data is end-user edited, so bad data never raises: missing
references, failed row fetches and unit mismatches degrade to a 0 (or
unconverted) contribution and are recorded as CostIssue diagnostics. A
recipe whose total leaves the float range costs 0.
"""

import logging
import math
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Set, Tuple

from src.models.enums import ProductKind
from src.services.dto import (
    ISSUE_CYCLE,
    ISSUE_INVALID_PRICE,
    ISSUE_INVALID_QUANTITY,
    ISSUE_MALFORMED_ROW,
    ISSUE_MISSING_INGREDIENT,
    ISSUE_MISSING_LINKED_INGREDIENT,
    ISSUE_MISSING_PRODUCT,
    ISSUE_OVERFLOW,
    ISSUE_ROW_FETCH_FAILED,
    ISSUE_UNIT_FALLBACK,
    CostIssue,
    IngredientLine,
    row_identifier,
    to_composition_line,
)
from src.services.exceptions import UnitConversionError
from src.services.logging_utils import get_service_logger, log_operation
from src.services.unit_converter import convert_units

logger = get_service_logger(__name__)

RowFetcher = Callable[[Any], Iterable[Any]]


def _as_amount(value: Any) -> Optional[float]:
    """Return value as a finite, non-negative float, or None."""
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(amount) or amount < 0:
        return None
    return amount


class _Frame:
    """A recipe product whose rows are being summed on the resolution stack."""

    def __init__(self, product: Any, guard: Set[Any], rows: List[Any]):
        self.product = product
        self.guard = guard
        self.rows = iter(rows)
        self.total = 0.0
        self.truncated = False
        self.overflowed = False
        # (row_id, multiplier) of the sub-recipe row waiting for its cost
        self.pending: Optional[Tuple[Any, float]] = None


class CostResolver:
    """
    Resolves product costs against fixed ingredient and product lookup tables.

    One instance is meant to live for one batch. With ``memoize`` enabled it
    fetches each product's rows at most once and reuses sub-recipe costs, but
    only for products whose resolution completed without hitting the cycle
    guard anywhere below them; those values do not depend on the path they
    were reached from.

    Sub-recipes are walked with an explicit stack of frames, so nesting depth
    is bounded by memory rather than the interpreter's recursion limit.

    Args:
        ingredients_by_id: Ingredient id -> ingredient (``unit``, ``price_per_unit``)
        products_by_id: Product id -> product (``id``, ``kind``, ``linked_ingredient_id``)
        rows_of: Callable returning a product's composition rows (may do I/O)
        memoize: Cache fetched rows and resolved costs for the instance lifetime
        issues: Optional list that diagnostics are appended to
    """

    def __init__(
        self,
        ingredients_by_id: Mapping[Any, Any],
        products_by_id: Mapping[Any, Any],
        rows_of: RowFetcher,
        memoize: bool = True,
        issues: Optional[List[CostIssue]] = None,
    ):
        if ingredients_by_id is None:
            raise ValueError("ingredients_by_id is required")
        if products_by_id is None:
            raise ValueError("products_by_id is required")
        if rows_of is None:
            raise ValueError("rows_of is required")

        self.ingredients_by_id = ingredients_by_id
        self.products_by_id = products_by_id
        self.rows_of = rows_of
        self.memoize = memoize
        self.issues = issues if issues is not None else []

        self._seen_issues: Set[CostIssue] = set(self.issues)
        self._rows_cache: Dict[Any, List[Any]] = {}
        self._cost_cache: Dict[Any, float] = {}

    def resolve(self, product: Any, path_guard: Optional[Iterable[Any]] = None) -> float:
        """
        Compute the cost of producing one unit of ``product``.

        Args:
            product: Product to resolve
            path_guard: Product ids already being resolved by the caller;
                        empty for a top-level call

        Returns:
            Unrounded, finite, non-negative cost
        """
        cost, _ = self._resolve(product, set(path_guard or ()))
        return cost

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _resolve(self, product: Any, path_guard: Set[Any]) -> Tuple[float, bool]:
        """Return (cost, truncated); truncated means the guard cut a cycle below."""
        if product.id in path_guard:
            self._record(product.id, None, ISSUE_CYCLE, "Product is already being resolved")
            return 0.0, True

        if self.memoize and product.id in self._cost_cache:
            return self._cost_cache[product.id], False

        if product.kind == ProductKind.RESALE:
            return self._remember(product.id, self._resale_cost(product), False)

        stack = [self._open(product, path_guard)]
        result: Optional[Tuple[float, bool]] = None

        while stack:
            frame = stack[-1]
            if result is not None:
                self._take_sub_cost(frame, *result)
                result = None

            sub_product = self._advance(frame)
            if sub_product is not None:
                # Each sub-recipe gets its own copy of the guard
                stack.append(self._open(sub_product, frame.guard))
                continue

            stack.pop()
            cost = 0.0 if frame.overflowed else frame.total
            result = self._remember(frame.product.id, cost, frame.truncated)

        return result

    def _open(self, product: Any, path_guard: Set[Any]) -> _Frame:
        guard = set(path_guard)
        guard.add(product.id)
        return _Frame(product, guard, self._fetch_rows(product.id))

    def _advance(self, frame: _Frame) -> Optional[Any]:
        """Sum rows until a sub-recipe needs resolving; return it, or None when done."""
        product_id = frame.product.id

        for row in frame.rows:
            try:
                line = to_composition_line(row)
            except (AttributeError, KeyError, ValueError) as e:
                self._record(product_id, row_identifier(row), ISSUE_MALFORMED_ROW, str(e))
                continue

            if isinstance(line, IngredientLine):
                self._add(frame, line.row_id, self._ingredient_line_cost(product_id, line))
                continue

            sub_product = self.products_by_id.get(line.product_id)
            if sub_product is None:
                self._record(
                    product_id,
                    line.row_id,
                    ISSUE_MISSING_PRODUCT,
                    f"Product {line.product_id} not found",
                )
                continue

            multiplier = _as_amount(line.multiplier)
            if multiplier is None:
                self._record(
                    product_id,
                    line.row_id,
                    ISSUE_INVALID_QUANTITY,
                    f"Invalid multiplier {line.multiplier!r}",
                )
                continue

            if sub_product.id in frame.guard:
                self._record(
                    product_id,
                    line.row_id,
                    ISSUE_CYCLE,
                    f"Product {sub_product.id} is already being resolved on this path",
                )
                frame.truncated = True
                continue

            if self.memoize and sub_product.id in self._cost_cache:
                self._add(frame, line.row_id, self._cost_cache[sub_product.id] * multiplier)
                continue

            if sub_product.kind == ProductKind.RESALE:
                cost, _ = self._remember(sub_product.id, self._resale_cost(sub_product), False)
                self._add(frame, line.row_id, cost * multiplier)
                continue

            frame.pending = (line.row_id, multiplier)
            return sub_product

        return None

    def _take_sub_cost(self, frame: _Frame, cost: float, truncated: bool) -> None:
        row_id, multiplier = frame.pending
        frame.pending = None
        frame.truncated = frame.truncated or truncated
        self._add(frame, row_id, cost * multiplier)

    def _add(self, frame: _Frame, row_id: Any, amount: float) -> None:
        if frame.overflowed:
            return
        total = frame.total + amount
        if not math.isfinite(total):
            frame.overflowed = True
            self._record(
                frame.product.id,
                row_id,
                ISSUE_OVERFLOW,
                "Cost exceeds the representable range",
            )
            return
        frame.total = total

    def _remember(self, product_id: Any, cost: float, truncated: bool) -> Tuple[float, bool]:
        # Path-dependent values are never cached
        if self.memoize and not truncated:
            self._cost_cache[product_id] = cost
        return cost, truncated

    def _resale_cost(self, product: Any) -> float:
        linked_id = getattr(product, "linked_ingredient_id", None)
        ingredient = self.ingredients_by_id.get(linked_id) if linked_id is not None else None
        if ingredient is None:
            self._record(
                product.id,
                None,
                ISSUE_MISSING_LINKED_INGREDIENT,
                f"Linked ingredient {linked_id} not found",
            )
            return 0.0

        # One resale unit is exactly one unit of the ingredient
        return self._price_of(ingredient, product.id, None)

    def _ingredient_line_cost(self, product_id: Any, line: IngredientLine) -> float:
        ingredient = self.ingredients_by_id.get(line.ingredient_id)
        if ingredient is None:
            self._record(
                product_id,
                line.row_id,
                ISSUE_MISSING_INGREDIENT,
                f"Ingredient {line.ingredient_id} not found",
            )
            return 0.0

        quantity = _as_amount(line.quantity)
        if quantity is None:
            self._record(
                product_id,
                line.row_id,
                ISSUE_INVALID_QUANTITY,
                f"Invalid quantity {line.quantity!r}",
            )
            return 0.0

        price = self._price_of(ingredient, product_id, line.row_id)

        try:
            quantity = convert_units(quantity, line.unit, ingredient.unit)
        except UnitConversionError as e:
            # Lenient path: price the raw quantity as if it were in the ingredient's unit
            self._record(product_id, line.row_id, ISSUE_UNIT_FALLBACK, str(e))

        return quantity * price

    def _price_of(self, ingredient: Any, product_id: Any, row_id: Any) -> float:
        price = _as_amount(ingredient.price_per_unit)
        if price is None:
            self._record(
                product_id,
                row_id,
                ISSUE_INVALID_PRICE,
                f"Invalid price {ingredient.price_per_unit!r} for ingredient {ingredient.id}",
            )
            return 0.0
        return price

    def _fetch_rows(self, product_id: Any) -> List[Any]:
        if self.memoize and product_id in self._rows_cache:
            return self._rows_cache[product_id]

        try:
            rows = list(self.rows_of(product_id) or [])
        except Exception as e:
            log_operation(
                logger,
                operation="fetch_rows",
                outcome="failed",
                level=logging.WARNING,
                product_id=product_id,
                error=str(e),
            )
            self._record(product_id, None, ISSUE_ROW_FETCH_FAILED, str(e))
            rows = []

        if self.memoize:
            self._rows_cache[product_id] = rows
        return rows

    def _record(self, product_id: Any, row_id: Any, reason: str, message: str) -> None:
        issue = CostIssue(product_id=product_id, row_id=row_id, reason=reason, message=message)
        if issue in self._seen_issues:
            return
        self._seen_issues.add(issue)
        self.issues.append(issue)
        log_operation(
            logger,
            operation="resolve_cost",
            outcome=reason,
            level=logging.DEBUG,
            product_id=product_id,
            row_id=row_id,
            detail=message,
        )


def resolve_cost(
    product: Any,
    ingredients_by_id: Mapping[Any, Any],
    products_by_id: Mapping[Any, Any],
    rows_of: RowFetcher,
    path_guard: Optional[Iterable[Any]] = None,
    *,
    issues: Optional[List[CostIssue]] = None,
) -> float:
    """
    Compute the cost of producing one unit of a product.

    Transaction boundary: none of its own. Any I/O happens inside ``rows_of``.

    Args:
        product: Product to resolve (normally present in ``products_by_id``)
        ingredients_by_id: Ingredient id -> ingredient
        products_by_id: Product id -> product
        rows_of: Callable returning a product's composition rows
        path_guard: Product ids already on the current path (empty at top level)
        issues: Optional list that receives CostIssue diagnostics

    Returns:
        Unrounded, finite, non-negative cost

    Raises:
        ValueError: If a lookup table or ``rows_of`` is None

    Example:
        If Cake uses 0.2 kg of flour (1.20/kg) and 3x Frosting (1.00 each),
        resolve_cost(cake, ...) returns 0.24 + 3.00 = 3.24
    """
    resolver = CostResolver(
        ingredients_by_id, products_by_id, rows_of, memoize=False, issues=issues
    )
    return resolver.resolve(product, path_guard)
