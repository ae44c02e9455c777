"""
Catalogue validation pass.

The cost resolver turns bad catalogue data into degraded numbers instead of
errors. This module is the strict counterpart, used to
surface the problems behind those numbers so they can be shown to the user.

This module provides:
- find_reference_cycles(): sub-recipe reference cycles
- would_create_cycle(): pre-check before adding a sub-recipe row
- validate_catalogue(): full report of dangling references, unit mismatches,
  invalid prices/quantities, malformed rows and cycles

Nothing here raises for bad data; problems are returned as CostIssue entries
using the same reason codes as the resolver's diagnostics.
"""

import logging
import math
from collections import deque
from typing import Any, Dict, Iterable, List, Optional, Tuple

from src.models.enums import ProductKind
from src.services.cost_resolver import RowFetcher
from src.services.dto import (
    ISSUE_CYCLE,
    ISSUE_INVALID_PRICE,
    ISSUE_INVALID_QUANTITY,
    ISSUE_INVALID_UNIT,
    ISSUE_MALFORMED_ROW,
    ISSUE_MISSING_INGREDIENT,
    ISSUE_MISSING_LINKED_INGREDIENT,
    ISSUE_MISSING_PRODUCT,
    ISSUE_ROW_FETCH_FAILED,
    ISSUE_UNEXPECTED_LINKED_INGREDIENT,
    ISSUE_UNIT_MISMATCH,
    CostIssue,
    IngredientLine,
    SubRecipeLine,
    row_identifier,
    to_composition_line,
)
from src.services.logging_utils import get_service_logger, log_operation
from src.services.unit_converter import is_metric_unit, units_compatible

logger = get_service_logger(__name__)

# DFS colours
_WHITE, _GRAY, _BLACK = 0, 1, 2
_DONE = object()


def _is_positive(value: Any) -> bool:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(amount) and amount > 0


def _is_valid_price(value: Any) -> bool:
    try:
        amount = float(value)
    except (TypeError, ValueError):
        return False
    return math.isfinite(amount) and amount >= 0


class _RowCache:
    """Fetches each product's rows once and remembers fetch failures."""

    def __init__(self, rows_of: RowFetcher):
        self.rows_of = rows_of
        self._rows: Dict[Any, List[Any]] = {}
        self.failures: Dict[Any, str] = {}

    def get(self, product_id: Any) -> List[Any]:
        if product_id not in self._rows:
            try:
                self._rows[product_id] = list(self.rows_of(product_id) or [])
            except Exception as e:
                self.failures[product_id] = str(e)
                self._rows[product_id] = []
        return self._rows[product_id]

    def sub_recipe_ids(self, product_id: Any) -> List[Any]:
        """Referenced product ids, in row order, skipping malformed rows."""
        targets = []
        for row in self.get(product_id):
            try:
                line = to_composition_line(row)
            except (AttributeError, KeyError, ValueError):
                continue
            if isinstance(line, SubRecipeLine):
                targets.append(line.product_id)
        return targets


def _canonical_cycle(path: List[Any]) -> Tuple[Any, ...]:
    """Rotate a cycle so the id with the smallest string form comes first."""
    start = min(range(len(path)), key=lambda i: str(path[i]))
    return tuple(path[start:] + path[:start])


def _find_cycles(product_ids: List[Any], rows: _RowCache) -> List[List[Any]]:
    known = set(product_ids)
    colour = {product_id: _WHITE for product_id in product_ids}
    path: List[Any] = []
    found: Dict[Tuple[Any, ...], None] = {}

    for root in sorted(product_ids, key=str):
        if colour[root] != _WHITE:
            continue

        colour[root] = _GRAY
        path.append(root)
        pending = [iter(rows.sub_recipe_ids(root))]

        while pending:
            target = next(pending[-1], _DONE)
            if target is _DONE:
                pending.pop()
                colour[path.pop()] = _BLACK
                continue
            if target not in known:
                continue
            if colour[target] == _GRAY:
                # Back edge closes a cycle
                cycle = path[path.index(target):]
                found.setdefault(_canonical_cycle(cycle), None)
            elif colour[target] == _WHITE:
                colour[target] = _GRAY
                path.append(target)
                pending.append(iter(rows.sub_recipe_ids(target)))

    return sorted((list(cycle) for cycle in found), key=lambda c: [str(i) for i in c])


def find_reference_cycles(products: Iterable[Any], rows_of: RowFetcher) -> List[List[Any]]:
    """
    Find sub-recipe reference cycles in a catalogue.

    Each cycle closed by a back edge of a depth-first search over the
    product -> sub-product edges is reported once, rotated so its smallest
    id (by string form) comes first. References to unknown products are
    ignored here; validate_catalogue() reports them separately.

    Args:
        products: All products of the catalogue
        rows_of: Callable returning a product's composition rows

    Returns:
        List of cycles, each a list of product ids in reference order

    Example:
        If A uses B and B uses A:
        find_reference_cycles([a, b], rows_of) returns [[a.id, b.id]]
    """
    product_ids = list(
        dict.fromkeys(product.id for product in products if product.kind != ProductKind.RESALE)
    )
    return _find_cycles(product_ids, _RowCache(rows_of))


def would_create_cycle(product_id: Any, linked_product_id: Any, rows_of: RowFetcher) -> bool:
    """
    Check if adding a sub-recipe row product_id -> linked_product_id closes a cycle.

    Args:
        product_id: Product that would receive the sub-recipe row
        linked_product_id: Product that would be referenced
        rows_of: Callable returning a product's composition rows; errors propagate

    Returns:
        True if the new row would make product_id (indirectly) reference itself

    Algorithm:
        Breadth-first traversal from linked_product_id with visited tracking
    """
    if product_id == linked_product_id:
        return True

    visited = set()
    queue = deque([linked_product_id])

    while queue:
        current_id = queue.popleft()

        if current_id in visited:
            continue
        if current_id == product_id:
            return True

        visited.add(current_id)

        for row in rows_of(current_id) or []:
            try:
                line = to_composition_line(row)
            except (AttributeError, KeyError, ValueError):
                continue
            if isinstance(line, SubRecipeLine):
                queue.append(line.product_id)

    return False


def _check_ingredient_line(
    product_id: Any, line: IngredientLine, ingredients_by_id: Dict[Any, Any]
) -> Optional[CostIssue]:
    ingredient = ingredients_by_id.get(line.ingredient_id)
    if ingredient is None:
        return CostIssue(
            product_id,
            line.row_id,
            ISSUE_MISSING_INGREDIENT,
            f"Ingredient {line.ingredient_id} not found",
        )
    if not _is_positive(line.quantity):
        return CostIssue(
            product_id, line.row_id, ISSUE_INVALID_QUANTITY, f"Invalid quantity {line.quantity!r}"
        )
    if line.unit != ingredient.unit and not units_compatible(line.unit, ingredient.unit):
        return CostIssue(
            product_id,
            line.row_id,
            ISSUE_UNIT_MISMATCH,
            f"Row unit '{line.unit}' cannot be converted to '{ingredient.unit}' "
            f"(ingredient {ingredient.id})",
        )
    return None


def _check_sub_recipe_line(
    product_id: Any, line: SubRecipeLine, products_by_id: Dict[Any, Any]
) -> Optional[CostIssue]:
    if line.product_id not in products_by_id:
        return CostIssue(
            product_id, line.row_id, ISSUE_MISSING_PRODUCT, f"Product {line.product_id} not found"
        )
    if not _is_positive(line.multiplier):
        return CostIssue(
            product_id,
            line.row_id,
            ISSUE_INVALID_QUANTITY,
            f"Invalid multiplier {line.multiplier!r}",
        )
    return None


def validate_catalogue(
    products: Iterable[Any],
    ingredients: Iterable[Any],
    rows_of: RowFetcher,
) -> List[CostIssue]:
    """
    Strictly validate a catalogue for costing problems.

    Checks:
        - ingredients: price must be finite and >= 0, unit must be metric
        - resale products: linked ingredient must be set and exist
        - recipe products: no linked ingredient; every row references exactly
          one existing ingredient or product with a positive quantity, and
          ingredient rows use a unit convertible to the ingredient's unit
        - sub-recipe references must not form cycles
        - row fetches must succeed

    Args:
        products: All products of the catalogue
        ingredients: All ingredients of the catalogue
        rows_of: Callable returning a product's composition rows

    Returns:
        Sorted list of CostIssue entries; empty when the catalogue is clean.
        Ingredient-level issues carry product_id=None.
    """
    products = list(products)
    ingredients = list(ingredients)
    ingredients_by_id = {ingredient.id: ingredient for ingredient in ingredients}
    products_by_id = {product.id: product for product in products}
    rows = _RowCache(rows_of)
    issues: List[CostIssue] = []

    for ingredient in ingredients:
        if not _is_valid_price(ingredient.price_per_unit):
            issues.append(
                CostIssue(
                    None,
                    None,
                    ISSUE_INVALID_PRICE,
                    f"Ingredient {ingredient.id} has invalid price {ingredient.price_per_unit!r}",
                )
            )
        if not is_metric_unit(ingredient.unit):
            issues.append(
                CostIssue(
                    None,
                    None,
                    ISSUE_INVALID_UNIT,
                    f"Ingredient {ingredient.id} has non-metric unit '{ingredient.unit}'",
                )
            )

    for product in products:
        linked_id = getattr(product, "linked_ingredient_id", None)

        if product.kind == ProductKind.RESALE:
            if linked_id is None or linked_id not in ingredients_by_id:
                issues.append(
                    CostIssue(
                        product.id,
                        None,
                        ISSUE_MISSING_LINKED_INGREDIENT,
                        f"Linked ingredient {linked_id} not found",
                    )
                )
            continue

        if linked_id is not None:
            issues.append(
                CostIssue(
                    product.id,
                    None,
                    ISSUE_UNEXPECTED_LINKED_INGREDIENT,
                    f"Recipe product links ingredient {linked_id}",
                )
            )

        for row in rows.get(product.id):
            try:
                line = to_composition_line(row)
            except (AttributeError, KeyError, ValueError) as e:
                issues.append(CostIssue(product.id, row_identifier(row), ISSUE_MALFORMED_ROW, str(e)))
                continue

            if isinstance(line, IngredientLine):
                issue = _check_ingredient_line(product.id, line, ingredients_by_id)
            else:
                issue = _check_sub_recipe_line(product.id, line, products_by_id)
            if issue is not None:
                issues.append(issue)

        if product.id in rows.failures:
            issues.append(
                CostIssue(product.id, None, ISSUE_ROW_FETCH_FAILED, rows.failures[product.id])
            )

    recipe_ids = [p.id for p in products if p.kind != ProductKind.RESALE]
    for cycle in _find_cycles(list(dict.fromkeys(recipe_ids)), rows):
        path = " -> ".join(str(product_id) for product_id in cycle + [cycle[0]])
        issues.append(CostIssue(cycle[0], None, ISSUE_CYCLE, f"Reference cycle: {path}"))

    issues = sorted(dict.fromkeys(issues), key=CostIssue.sort_key)

    log_operation(
        logger,
        operation="validate_catalogue",
        outcome="clean" if not issues else "issues_found",
        level=logging.INFO if not issues else logging.WARNING,
        product_count=len(products),
        issue_count=len(issues),
    )
    return issues
