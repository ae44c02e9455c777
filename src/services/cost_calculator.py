"""
Batch cost calculation for a product catalogue.

This module provides functions for:
- Computing the Cost Map (product id -> cost of one unit) for a whole catalogue
- Computing the same map together with degraded-path diagnostics
- Rounding currency amounts half-up to the configured precision

Each product is resolved from a fresh, empty path guard, so the result does
not depend on the order of the input list. A product whose data is broken
gets a degraded cost and never stops the rest of the batch.
"""

import logging
import math
from decimal import Context, Decimal, ROUND_HALF_UP
from typing import Any, Dict, Iterable, List, Optional

from src.services.cost_resolver import CostResolver, RowFetcher
from src.services.dto import CostIssue, CostReport
from src.services.logging_utils import get_service_logger, log_operation
from src.utils.config import get_config

logger = get_service_logger(__name__)


def round_currency(value: float, precision: Optional[int] = None) -> float:
    """Round a currency amount half-up.

    The float is read through its shortest repr, so binary noise such as
    0.30000000000000004 rounds to 0.30 rather than drifting.

    Args:
        value: Amount to round
        precision: Decimal places (default: configured currency precision)

    Returns:
        Rounded amount as float

    Raises:
        ValueError: If value is infinite or NaN

    Example:
        >>> round_currency(0.125)
        0.13
    """
    if not math.isfinite(value):
        raise ValueError(f"Cannot round non-finite amount {value!r}")
    if precision is None:
        precision = get_config().currency_precision

    amount = Decimal(str(value))
    quantum = Decimal(1).scaleb(-precision)
    # Enough digits for any finite float at this precision
    context = Context(prec=max(amount.adjusted(), 0) + precision + 2)
    return float(amount.quantize(quantum, rounding=ROUND_HALF_UP, context=context))


def _index_by_id(records: List[Any], label: str) -> Dict[Any, Any]:
    """Build an id lookup table; later records win on duplicate ids."""
    index: Dict[Any, Any] = {}
    for record in records:
        if record.id in index:
            log_operation(
                logger,
                operation="index_catalogue",
                outcome=f"duplicate_{label}_id",
                level=logging.WARNING,
                record_id=record.id,
            )
        index[record.id] = record
    return index


def calculate_cost_report(
    products: Iterable[Any],
    ingredients: Iterable[Any],
    rows_of: RowFetcher,
    *,
    memoize: bool = True,
) -> CostReport:
    """Compute the Cost Map and diagnostics for a catalogue.

    Transaction boundary: none of its own. Row fetches happen through
    ``rows_of``; one resolver (and its caches) lives for this call only.

    Args:
        products: All products to cost
        ingredients: All ingredients products may reference
        rows_of: Callable returning a product's composition rows
        memoize: Reuse fetched rows and path-independent sub-recipe costs

    Returns:
        CostReport with rounded costs keyed by product id and sorted,
        de-duplicated diagnostics

    Raises:
        ValueError: If products, ingredients or rows_of is None
    """
    if products is None:
        raise ValueError("products is required")
    if ingredients is None:
        raise ValueError("ingredients is required")

    products = list(products)
    ingredients_by_id = _index_by_id(list(ingredients), "ingredient")
    products_by_id = _index_by_id(products, "product")

    issues: List[CostIssue] = []
    resolver = CostResolver(
        ingredients_by_id, products_by_id, rows_of, memoize=memoize, issues=issues
    )

    costs: Dict[Any, float] = {}
    for product in products:
        cost = resolver.resolve(product)
        costs[product.id] = round_currency(cost)

    report = CostReport(costs=costs, issues=sorted(issues, key=CostIssue.sort_key))

    log_operation(
        logger,
        operation="calculate_all",
        outcome="success",
        product_count=len(costs),
        issue_count=len(report.issues),
    )
    return report


def calculate_all(
    products: Iterable[Any],
    ingredients: Iterable[Any],
    rows_of: RowFetcher,
) -> Dict[Any, float]:
    """Compute the cost of one unit of every product in a catalogue.

    Args:
        products: All products to cost
        ingredients: All ingredients products may reference
        rows_of: Callable returning a product's composition rows

    Returns:
        Dict mapping product id -> cost rounded to 2 decimal places

    Example:
        If Cake is 200 g of flour at 1.20/kg plus 0.5 l of milk at 0.90/l,
        calculate_all([cake], [flour, milk], rows_of) returns {cake.id: 0.69}
    """
    return calculate_cost_report(products, ingredients, rows_of).costs
