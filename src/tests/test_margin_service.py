"""Tests for margin calculations on top of the Cost Map."""

import pytest

from conftest import make_recipe
from src.models.enums import MarginHealth
from src.services.margin_service import (
    MarginThreshold,
    classify_margin,
    evaluate_product_margins,
    margin_percent,
)


class TestMarginPercent:
    """Test gross margin percentage."""

    def test_basic_margin(self):
        assert margin_percent(10.0, 3.0) == pytest.approx(70.0)

    def test_cost_above_price_is_negative(self):
        assert margin_percent(2.0, 3.0) == pytest.approx(-50.0)

    def test_zero_or_missing_price(self):
        assert margin_percent(0, 1.0) == 0.0
        assert margin_percent(None, 1.0) == 0.0
        assert margin_percent(-5, 1.0) == 0.0


class TestClassifyMargin:
    """Test health bands."""

    def test_default_bands(self):
        assert classify_margin(65.0) == MarginHealth.GREEN
        assert classify_margin(64.99) == MarginHealth.YELLOW
        assert classify_margin(45.0) == MarginHealth.YELLOW
        assert classify_margin(44.99) == MarginHealth.RED

    def test_custom_threshold(self):
        threshold = MarginThreshold(category="Drinks", green_min=80, yellow_min=70)

        assert classify_margin(75.0, threshold) == MarginHealth.YELLOW
        assert classify_margin(69.0, threshold) == MarginHealth.RED
        assert classify_margin(80.0, threshold) == MarginHealth.GREEN


class TestEvaluateProductMargins:
    """Test per-product margin evaluation."""

    def test_both_channels(self):
        product = make_recipe(1, selling_price_dinein=10.0, selling_price_delivery=5.0)

        [result] = evaluate_product_margins([product], {1: 3.0})

        assert result.product_id == 1
        assert result.cost == 3.0
        assert result.margin_dinein == pytest.approx(70.0)
        assert result.health_dinein == MarginHealth.GREEN
        assert result.margin_delivery == pytest.approx(40.0)
        assert result.health_delivery == MarginHealth.RED

    def test_category_threshold_applies(self):
        drink = make_recipe(1, category="Drinks", selling_price_dinein=10.0)
        food = make_recipe(2, category="Food", selling_price_dinein=10.0)
        thresholds = [MarginThreshold(category="Drinks", green_min=80, yellow_min=60)]

        results = evaluate_product_margins([drink, food], {1: 3.0, 2: 3.0}, thresholds)

        assert results[0].health_dinein == MarginHealth.YELLOW
        assert results[1].health_dinein == MarginHealth.GREEN

    def test_missing_selling_price_is_red(self):
        product = make_recipe(1)

        [result] = evaluate_product_margins([product], {1: 0.0})

        assert result.margin_dinein == 0.0
        assert result.health_dinein == MarginHealth.RED
        assert result.health_delivery == MarginHealth.RED

    def test_product_missing_from_cost_map(self):
        product = make_recipe(1, selling_price_dinein=4.0, selling_price_delivery=4.0)

        [result] = evaluate_product_margins([product], {})

        assert result.cost == 0.0
        assert result.margin_dinein == pytest.approx(100.0)
