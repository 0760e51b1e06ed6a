"""
Ingredient and storage location master data tests.
"""

from decimal import Decimal

import pytest

from backoffice.errors import ConflictError, NotFoundError, ValidationError
from backoffice.services import ingredient_service, location_service, stock_service


class TestIngredients:

    def test_prepared_cost_forced_to_zero(self, db_session):
        sauce = ingredient_service.create_ingredient(
            {"name": "Tomato Sauce", "unit": "ml", "is_prepared": True, "cost_per_unit": "5"}
        )
        assert Decimal(sauce.cost_per_unit) == Decimal("0")

    def test_cost_defaults_to_zero(self, db_session):
        salt = ingredient_service.create_ingredient({"name": "Salt", "unit": "g"})
        assert Decimal(salt.cost_per_unit) == Decimal("0")
        assert salt.is_prepared is False

    def test_missing_unit(self, db_session):
        with pytest.raises(ValidationError):
            ingredient_service.create_ingredient({"name": "Salt"})

    def test_negative_cost(self, db_session):
        with pytest.raises(ValidationError):
            ingredient_service.create_ingredient({"name": "Salt", "unit": "g", "cost_per_unit": "-1"})

    def test_unknown_field(self, db_session):
        with pytest.raises(ValidationError):
            ingredient_service.create_ingredient({"name": "Salt", "unit": "g", "stock": "5"})

    def test_duplicate_name(self, flour):
        with pytest.raises(ConflictError):
            ingredient_service.create_ingredient({"name": "Flour", "unit": "g"})

    def test_prepared_cost_not_user_editable(self, dough):
        dough = ingredient_service.update_ingredient(dough.id, {"cost_per_unit": "9"})
        assert Decimal(dough.cost_per_unit) == Decimal("0")

    def test_switch_to_purchased_requires_cost(self, dough):
        with pytest.raises(ValidationError):
            ingredient_service.update_ingredient(dough.id, {"is_prepared": False})
        dough = ingredient_service.update_ingredient(dough.id, {"is_prepared": False, "cost_per_unit": "0.5"})
        assert Decimal(dough.cost_per_unit) == Decimal("0.5")

    def test_search(self, flour, water, dough):
        assert [i.name for i in ingredient_service.list_ingredients(search="ou")] == ["Dough", "Flour"]
        assert [i.name for i in ingredient_service.list_ingredients(is_prepared=True)] == ["Dough"]

    def test_delete_unreferenced(self, flour):
        flour_id = flour.id
        ingredient_service.delete_ingredient(flour_id)
        with pytest.raises(NotFoundError):
            ingredient_service.get_ingredient(flour_id)

    def test_delete_with_stock_conflicts(self, kitchen, flour):
        stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="1")
        with pytest.raises(ConflictError) as exc_info:
            ingredient_service.delete_ingredient(flour.id)
        assert "stock holdings" in str(exc_info.value)

    def test_delete_recipe_input_conflicts(self, dough_recipe, water):
        with pytest.raises(ConflictError):
            ingredient_service.delete_ingredient(water.id)


class TestLocations:

    def test_create_defaults(self, db_session):
        shelf = location_service.create_location({"name": "Dry Shelf", "type": "SHELF"})
        assert shelf.is_active is True

    def test_invalid_type(self, db_session):
        with pytest.raises(ValidationError):
            location_service.create_location({"name": "Bar", "type": "BAR"})

    def test_duplicate_name(self, kitchen):
        with pytest.raises(ConflictError):
            location_service.create_location({"name": "Kitchen", "type": "STORAGE"})

    def test_inactive_hidden_from_default_list(self, kitchen, walk_in):
        location_service.update_location(walk_in.id, {"is_active": False})
        assert [loc.name for loc in location_service.list_locations()] == ["Kitchen"]
        assert len(location_service.list_locations(include_inactive=True)) == 2
