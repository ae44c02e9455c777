"""
Margin calculations on top of a Cost Map.

Turns product costs into per-channel selling margins and a green/yellow/red
health band, using per-category thresholds with application defaults.
"""

from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from src.models.enums import MarginHealth
from src.utils.constants import DEFAULT_GREEN_MARGIN_MIN, DEFAULT_YELLOW_MARGIN_MIN


@dataclass(frozen=True)
class MarginThreshold:
    """Minimum margins (percent) for the green and yellow bands of one category."""

    category: str
    green_min: float = DEFAULT_GREEN_MARGIN_MIN
    yellow_min: float = DEFAULT_YELLOW_MARGIN_MIN


@dataclass
class ProductMargin:
    """Margin figures for one product across both selling channels.

    Attributes:
        product_id: The product ID
        cost: Cost of one unit (0 when absent from the Cost Map)
        margin_dinein: Dine-in margin in percent
        margin_delivery: Delivery margin in percent
        health_dinein: Health band for dine-in
        health_delivery: Health band for delivery
    """

    product_id: Any
    cost: float
    margin_dinein: float
    margin_delivery: float
    health_dinein: MarginHealth
    health_delivery: MarginHealth


def margin_percent(selling_price: float, cost: float) -> float:
    """
    Gross margin as a percentage of the selling price.

    Returns:
        (selling_price - cost) / selling_price * 100, or 0.0 when the
        selling price is not positive

    Example:
        >>> margin_percent(10.0, 3.0)
        70.0
    """
    if selling_price is None or selling_price <= 0:
        return 0.0
    return (selling_price - cost) / selling_price * 100


def classify_margin(margin: float, threshold: Optional[MarginThreshold] = None) -> MarginHealth:
    """
    Place a margin in its health band.

    Args:
        margin: Margin in percent
        threshold: Category thresholds; application defaults when None

    Returns:
        GREEN at or above green_min, YELLOW at or above yellow_min, else RED
    """
    green_min = threshold.green_min if threshold else DEFAULT_GREEN_MARGIN_MIN
    yellow_min = threshold.yellow_min if threshold else DEFAULT_YELLOW_MARGIN_MIN

    if margin >= green_min:
        return MarginHealth.GREEN
    if margin >= yellow_min:
        return MarginHealth.YELLOW
    return MarginHealth.RED


def _channel(selling_price: float, cost: float, threshold: Optional[MarginThreshold]):
    margin = margin_percent(selling_price, cost)
    # No selling price means the channel cannot be healthy
    if not selling_price or selling_price <= 0:
        return margin, MarginHealth.RED
    return margin, classify_margin(margin, threshold)


def evaluate_product_margins(
    products: Iterable[Any],
    cost_map: Mapping[Any, float],
    thresholds: Optional[Iterable[MarginThreshold]] = None,
) -> List[ProductMargin]:
    """
    Compute margins and health for every product.

    Args:
        products: Products with selling_price_dinein, selling_price_delivery, category
        cost_map: Product id -> cost, as returned by calculate_all()
        thresholds: Per-category thresholds; categories without one use defaults

    Returns:
        One ProductMargin per product, in input order
    """
    by_category: Dict[str, MarginThreshold] = {t.category: t for t in thresholds or []}
    results = []

    for product in products:
        cost = cost_map.get(product.id, 0.0)
        threshold = by_category.get(getattr(product, "category", None))

        margin_dinein, health_dinein = _channel(product.selling_price_dinein, cost, threshold)
        margin_delivery, health_delivery = _channel(
            product.selling_price_delivery, cost, threshold
        )

        results.append(
            ProductMargin(
                product_id=product.id,
                cost=cost,
                margin_dinein=margin_dinein,
                margin_delivery=margin_delivery,
                health_dinein=health_dinein,
                health_delivery=health_delivery,
            )
        )

    return results
