"""
Tests for catalogue persistence.

Tests cover:
- Ingredient and product creation with validation
- Composition row management
- Row fetching as the cost engine's rows_of
- Costing the stored catalogue end to end
"""

import logging

import pytest
from sqlalchemy import text

from src.models.enums import ProductKind
from src.services import catalogue_service
from src.services.dto import ISSUE_CYCLE, IngredientLine, SubRecipeLine
from src.services.exceptions import (
    CompositionRowNotFound,
    DatabaseError,
    IngredientNotFound,
    ProductNotFound,
    ValidationError,
)


@pytest.fixture
def stored_bakery(test_db):
    """Store the bakery catalogue used across the costing tests."""
    flour = catalogue_service.create_ingredient(
        {"name": "Flour", "unit": "kg", "price_per_unit": 1.20, "category": "Dry goods"}
    )
    milk = catalogue_service.create_ingredient(
        {"name": "Milk", "unit": "L", "price_per_unit": 0.90, "category": "Dairy"}
    )
    sugar = catalogue_service.create_ingredient(
        {"name": "Sugar", "unit": "kg", "price_per_unit": 0.50}
    )
    soda_can = catalogue_service.create_ingredient(
        {"name": "Soda can", "unit": "lt", "price_per_unit": 2.50}
    )

    soda = catalogue_service.create_product(
        {"name": "Soda", "kind": "resale", "linked_ingredient_id": soda_can.id}
    )
    batter = catalogue_service.create_product({"name": "Batter", "kind": "recipe"})
    syrup = catalogue_service.create_product({"name": "Syrup", "kind": ProductKind.RECIPE})
    cake = catalogue_service.create_product(
        {"name": "Cake", "kind": "recipe", "selling_price_dinein": 12.0}
    )

    catalogue_service.add_ingredient_row(batter.id, flour.id, 200, "g")
    catalogue_service.add_ingredient_row(batter.id, milk.id, 0.5, "l")
    catalogue_service.add_ingredient_row(syrup.id, sugar.id, 2, "kg")
    catalogue_service.add_sub_recipe_row(cake.id, syrup.id, 3)
    catalogue_service.add_ingredient_row(cake.id, sugar.id, 1, "kg")

    class Stored:
        pass

    data = Stored()
    data.flour, data.milk, data.sugar, data.soda_can = flour, milk, sugar, soda_can
    data.soda, data.batter, data.syrup, data.cake = soda, batter, syrup, cake
    return data


class TestIngredients:
    """Test ingredient operations."""

    def test_create_ingredient(self, test_db):
        ingredient = catalogue_service.create_ingredient(
            {"name": "  Flour ", "unit": "KG", "price_per_unit": "1.20", "category": "Dry"}
        )

        assert ingredient.id is not None
        assert ingredient.name == "Flour"
        assert ingredient.unit == "kg"
        assert ingredient.price_per_unit == 1.20
        assert ingredient.category == "Dry"

    def test_unit_alias_is_normalized(self, test_db):
        ingredient = catalogue_service.create_ingredient(
            {"name": "Oil", "unit": "lt", "price_per_unit": 3}
        )
        assert ingredient.unit == "l"

    def test_create_ingredient_validation(self, test_db):
        with pytest.raises(ValidationError) as exc_info:
            catalogue_service.create_ingredient({"name": "", "unit": "cup", "price_per_unit": -1})

        assert len(exc_info.value.errors) == 3
        assert catalogue_service.get_all_ingredients() == []

    def test_update_ingredient_price(self, test_db):
        ingredient = catalogue_service.create_ingredient(
            {"name": "Milk", "unit": "l", "price_per_unit": 0.90}
        )

        updated = catalogue_service.update_ingredient_price(ingredient.id, 1.10)

        assert updated.price_per_unit == 1.10
        assert catalogue_service.get_all_ingredients()[0].price_per_unit == 1.10

    def test_update_price_not_found(self, test_db):
        with pytest.raises(IngredientNotFound):
            catalogue_service.update_ingredient_price(999, 1.0)

    def test_update_price_rejects_negative(self, test_db):
        ingredient = catalogue_service.create_ingredient(
            {"name": "Milk", "unit": "l", "price_per_unit": 0.90}
        )
        with pytest.raises(ValidationError):
            catalogue_service.update_ingredient_price(ingredient.id, -0.5)

    def test_get_all_ingredients_ordered_by_name(self, test_db):
        for name in ("Sugar", "Butter", "Flour"):
            catalogue_service.create_ingredient({"name": name, "unit": "kg", "price_per_unit": 1})

        names = [i.name for i in catalogue_service.get_all_ingredients()]
        assert names == ["Butter", "Flour", "Sugar"]


class TestProducts:
    """Test product operations."""

    def test_create_resale_product(self, test_db):
        ingredient = catalogue_service.create_ingredient(
            {"name": "Water", "unit": "l", "price_per_unit": 0.40}
        )
        product = catalogue_service.create_product(
            {
                "name": "Water bottle",
                "kind": "resale",
                "linked_ingredient_id": ingredient.id,
                "selling_price_dinein": 2.0,
                "selling_price_delivery": 2.5,
            }
        )

        assert product.kind == ProductKind.RESALE
        assert product.linked_ingredient_id == ingredient.id
        assert product.selling_price_delivery == 2.5

    def test_resale_requires_linked_ingredient(self, test_db):
        with pytest.raises(ValidationError):
            catalogue_service.create_product({"name": "Water", "kind": "resale"})

    def test_resale_linked_ingredient_must_exist(self, test_db):
        with pytest.raises(IngredientNotFound):
            catalogue_service.create_product(
                {"name": "Water", "kind": "resale", "linked_ingredient_id": 42}
            )
        assert catalogue_service.get_all_products() == []

    def test_invalid_kind(self, test_db):
        with pytest.raises(ValidationError):
            catalogue_service.create_product({"name": "Thing", "kind": "bundle"})

    def test_get_all_products(self, stored_bakery):
        names = [p.name for p in catalogue_service.get_all_products()]
        assert names == ["Batter", "Cake", "Soda", "Syrup"]


class TestCompositionRows:
    """Test composition row management."""

    def test_rows_are_ordered(self, stored_bakery):
        rows = catalogue_service.get_composition_rows(stored_bakery.batter.id)

        assert [r.sort_order for r in rows] == [0, 1]
        assert [r.ingredient_id for r in rows] == [stored_bakery.flour.id, stored_bakery.milk.id]
        assert isinstance(rows[0].to_line(), IngredientLine)

    def test_sub_recipe_row_shape(self, stored_bakery):
        rows = catalogue_service.get_composition_rows(stored_bakery.cake.id)
        line = rows[0].to_line()

        assert isinstance(line, SubRecipeLine)
        assert line.product_id == stored_bakery.syrup.id
        assert line.multiplier == 3

    def test_explicit_sort_order(self, stored_bakery):
        row = catalogue_service.add_ingredient_row(
            stored_bakery.batter.id, stored_bakery.sugar.id, 10, "g", sort_order=0
        )
        rows = catalogue_service.get_composition_rows(stored_bakery.batter.id)

        assert row.sort_order == 0
        # Ties on sort_order fall back to insertion order
        assert rows[-1].id != row.id
        assert rows[1].id == row.id

    def test_unknown_product_has_no_rows(self, test_db):
        assert catalogue_service.get_composition_rows(12345) == []

    def test_rows_only_on_recipes(self, stored_bakery):
        with pytest.raises(ValidationError):
            catalogue_service.add_ingredient_row(
                stored_bakery.soda.id, stored_bakery.flour.id, 1, "kg"
            )

    def test_missing_references(self, stored_bakery):
        with pytest.raises(ProductNotFound):
            catalogue_service.add_ingredient_row(999, stored_bakery.flour.id, 1, "kg")
        with pytest.raises(IngredientNotFound):
            catalogue_service.add_ingredient_row(stored_bakery.batter.id, 999, 1, "kg")
        with pytest.raises(ProductNotFound):
            catalogue_service.add_sub_recipe_row(stored_bakery.cake.id, 999)

    def test_row_validation(self, stored_bakery):
        with pytest.raises(ValidationError):
            catalogue_service.add_ingredient_row(
                stored_bakery.batter.id, stored_bakery.flour.id, 0, "kg"
            )
        with pytest.raises(ValidationError):
            catalogue_service.add_ingredient_row(
                stored_bakery.batter.id, stored_bakery.flour.id, 1, "cup"
            )
        with pytest.raises(ValidationError):
            catalogue_service.add_sub_recipe_row(
                stored_bakery.cake.id, stored_bakery.syrup.id, multiplier=-2
            )

    def test_cycle_is_stored_with_warning(self, stored_bakery, caplog):
        with caplog.at_level(logging.WARNING):
            row = catalogue_service.add_sub_recipe_row(
                stored_bakery.syrup.id, stored_bakery.cake.id
            )

        assert row.id is not None
        assert "add_sub_recipe_row: creates_cycle" in caplog.text

    def test_remove_composition_row(self, stored_bakery):
        rows = catalogue_service.get_composition_rows(stored_bakery.batter.id)

        catalogue_service.remove_composition_row(rows[0].id)

        remaining = catalogue_service.get_composition_rows(stored_bakery.batter.id)
        assert [r.id for r in remaining] == [rows[1].id]

    def test_remove_missing_row(self, test_db):
        with pytest.raises(CompositionRowNotFound):
            catalogue_service.remove_composition_row(999)

    def test_database_errors_are_wrapped(self, test_db):
        test_db.execute(text("DROP TABLE composition_rows"))

        with pytest.raises(DatabaseError) as exc_info:
            catalogue_service.get_composition_rows(1)
        assert exc_info.value.original_error is not None


class TestCatalogueCosts:
    """Test costing the stored catalogue."""

    def test_load_catalogue(self, stored_bakery):
        ingredients, products = catalogue_service.load_catalogue()

        assert [i.name for i in ingredients] == ["Flour", "Milk", "Sugar", "Soda can"]
        assert [p.name for p in products] == ["Soda", "Batter", "Syrup", "Cake"]

    def test_calculate_catalogue_costs(self, stored_bakery):
        report = catalogue_service.calculate_catalogue_costs()

        assert report.costs == {
            stored_bakery.soda.id: 2.50,
            stored_bakery.batter.id: 0.69,
            stored_bakery.syrup.id: 1.00,
            stored_bakery.cake.id: 3.50,
        }
        assert report.issues == []

    def test_price_update_flows_into_costs(self, stored_bakery):
        catalogue_service.update_ingredient_price(stored_bakery.sugar.id, 1.00)

        report = catalogue_service.calculate_catalogue_costs()

        assert report.costs[stored_bakery.syrup.id] == 2.00
        assert report.costs[stored_bakery.cake.id] == 7.00

    def test_stored_cycle_terminates(self, stored_bakery):
        catalogue_service.add_sub_recipe_row(stored_bakery.syrup.id, stored_bakery.cake.id)

        report = catalogue_service.calculate_catalogue_costs(memoize=False)

        # Syrup = 1.00 + Cake(3 x Syrup(cut) + 0.50)
        assert report.costs[stored_bakery.syrup.id] == 1.50
        # Cake = 3 x Syrup(1.00 + Cake(cut)) + 0.50
        assert report.costs[stored_bakery.cake.id] == 3.50
        assert {i.reason for i in report.issues} == {ISSUE_CYCLE}
