"""
Stock ledger tests.

Verifies:
- Adding holdings and aggregating them per ingredient/location
- Set / adjust never produce a negative quantity
- FEFO consumption order and all-or-nothing deductions
- Every mutation leaves a ledger event
"""

from datetime import date
from decimal import Decimal

import pytest

from backoffice.extensions import db
from backoffice.errors import ConflictError, InsufficientStockError, NotFoundError, ValidationError
from backoffice.models import StockHolding, StockLedgerEvent
from backoffice.services import location_service, stock_service
from conftest import available


# =============================================================================
# ADD / AGGREGATE
# =============================================================================


class TestAddHolding:

    def test_flour_scenario_aggregate_equals_added_quantity(self, kitchen, flour):
        stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="5000")
        assert available(flour, kitchen) == Decimal("5000")

    def test_unit_cost_defaults_to_ingredient_cost(self, kitchen, flour):
        holding = stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="10")
        assert Decimal(holding.unit_cost) == Decimal("0.01")

    def test_explicit_unit_cost_and_dates(self, kitchen, flour):
        holding = stock_service.add_holding(
            ingredient_id=flour.id,
            location_id=kitchen.id,
            quantity="10",
            unit_cost="0.02",
            purchase_date="2026-01-01",
            expiry_date="2026-03-01",
        )
        assert Decimal(holding.unit_cost) == Decimal("0.02")
        assert holding.expiry_date == date(2026, 3, 1)

    def test_separate_batches_are_never_merged(self, kitchen, flour):
        stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="100")
        stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="200")
        holdings = stock_service.list_holdings(ingredient_id=flour.id, location_id=kitchen.id)
        assert [Decimal(h.quantity) for h in holdings] == [Decimal("100"), Decimal("200")]
        assert available(flour, kitchen) == Decimal("300")

    @pytest.mark.parametrize("quantity", ["0", "-5", "abc", None, True])
    def test_rejects_non_positive_or_malformed_quantity(self, kitchen, flour, quantity):
        with pytest.raises(ValidationError):
            stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity=quantity)

    def test_unknown_ingredient(self, kitchen):
        with pytest.raises(NotFoundError):
            stock_service.add_holding(ingredient_id=99999, location_id=kitchen.id, quantity="1")

    def test_inactive_location_rejected(self, kitchen, flour):
        location_service.update_location(kitchen.id, {"is_active": False})
        with pytest.raises(ConflictError):
            stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="1")

    def test_writes_ledger_event(self, db_session, kitchen, flour):
        holding = stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="42")
        ev = db_session.query(StockLedgerEvent).filter_by(holding_id=holding.id).one()
        assert ev.event_type == "stock.added"
        assert Decimal(ev.quantity_delta) == Decimal("42")


class TestAggregate:

    def test_aggregate_equals_sum_of_holdings_per_location(self, kitchen, walk_in, flour, water):
        stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="100")
        stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="250.5")
        stock_service.add_holding(ingredient_id=flour.id, location_id=walk_in.id, quantity="1000")

        rows = {r["name"]: r for r in stock_service.aggregate_by_ingredient(kitchen.id)}
        assert rows["Flour"]["total_quantity"] == Decimal("350.5")
        assert rows["Water"]["total_quantity"] == Decimal("0")

        everywhere = {r["name"]: r for r in stock_service.aggregate_by_ingredient()}
        assert everywhere["Flour"]["total_quantity"] == Decimal("1350.5")

    def test_total_value_is_quantity_times_ingredient_cost(self, kitchen, flour):
        stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="100", unit_cost="0.01")
        stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="100", unit_cost="0.03")
        row = next(r for r in stock_service.aggregate_by_ingredient(kitchen.id) if r["name"] == "Flour")
        assert row["cost_per_unit"] == Decimal("0.01")
        assert row["total_value"] == Decimal("2")
        assert row["acquisition_value"] == Decimal("4")

    def test_unknown_location(self, db_session):
        with pytest.raises(NotFoundError):
            stock_service.aggregate_by_ingredient(99999)


# =============================================================================
# SET / ADJUST / DELETE
# =============================================================================


class TestCorrections:

    def test_set_quantity_overwrites(self, db_session, kitchen, flour):
        holding = stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="500")
        stock_service.set_holding_quantity(holding.id, "120")
        assert available(flour, kitchen) == Decimal("120")

    def test_set_quantity_to_zero_allowed(self, kitchen, flour):
        holding = stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="500")
        stock_service.set_holding_quantity(holding.id, "0")
        assert available(flour, kitchen) == Decimal("0")

    def test_set_negative_rejected(self, kitchen, flour):
        holding = stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="500")
        with pytest.raises(ValidationError):
            stock_service.set_holding_quantity(holding.id, "-1")

    def test_adjust_adds_and_subtracts(self, kitchen, flour):
        holding = stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="500")
        stock_service.adjust_holding_quantity(holding.id, "25")
        stock_service.adjust_holding_quantity(holding.id, "-125")
        assert available(flour, kitchen) == Decimal("400")

    def test_adjust_below_zero_rejected_and_unchanged(self, db_session, kitchen, flour):
        holding = stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="50")
        with pytest.raises(ValidationError):
            stock_service.adjust_holding_quantity(holding.id, "-50.0001")
        db_session.expire_all()
        assert Decimal(stock_service.get_holding(holding.id).quantity) == Decimal("50")

    def test_adjust_zero_rejected(self, kitchen, flour):
        holding = stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="50")
        with pytest.raises(ValidationError):
            stock_service.adjust_holding_quantity(holding.id, "0")

    def test_delete_holding(self, db_session, kitchen, flour):
        holding = stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="50")
        holding_id = holding.id
        stock_service.delete_holding(holding_id)
        assert db_session.get(StockHolding, holding_id) is None
        ev = db_session.query(StockLedgerEvent).filter_by(event_type="stock.deleted").one()
        assert Decimal(ev.quantity_delta) == Decimal("-50")

    def test_missing_holding(self, db_session):
        with pytest.raises(NotFoundError):
            stock_service.set_holding_quantity(99999, "1")


# =============================================================================
# CONSUMPTION
# =============================================================================


class TestConsumption:

    def _consume(self, ingredient, location, quantity):
        consumed = stock_service._consume_inner(
            ingredient=ingredient,
            location_id=location.id,
            quantity=Decimal(quantity),
            event_type="test.consumed",
            entity_type="test",
        )
        db.session.commit()
        return consumed

    def test_fefo_order(self, kitchen, flour):
        late = stock_service.add_holding(
            ingredient_id=flour.id, location_id=kitchen.id, quantity="100", expiry_date="2026-12-31"
        )
        no_expiry = stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="100")
        early = stock_service.add_holding(
            ingredient_id=flour.id, location_id=kitchen.id, quantity="100", expiry_date="2026-06-30"
        )

        consumed = self._consume(flour, kitchen, "150")

        assert [c.holding_id for c in consumed] == [early.id, late.id]
        assert [c.quantity for c in consumed] == [Decimal("100"), Decimal("50")]
        assert Decimal(stock_service.get_holding(no_expiry.id).quantity) == Decimal("100")

    def test_consumption_carries_batch_costs(self, kitchen, flour):
        stock_service.add_holding(
            ingredient_id=flour.id, location_id=kitchen.id, quantity="10", unit_cost="1", expiry_date="2026-01-01"
        )
        stock_service.add_holding(
            ingredient_id=flour.id, location_id=kitchen.id, quantity="10", unit_cost="2", expiry_date="2026-02-01"
        )
        consumed = self._consume(flour, kitchen, "15")
        assert sum(c.cost for c in consumed) == Decimal("20")

    def test_insufficient_raises_without_touching_rows(self, db_session, kitchen, flour):
        stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="100")

        with pytest.raises(InsufficientStockError) as exc_info:
            self._consume(flour, kitchen, "300")

        db_session.rollback()
        assert exc_info.value.required == Decimal("300")
        assert exc_info.value.available == Decimal("100")
        assert available(flour, kitchen) == Decimal("100")

    def test_other_locations_not_consumed(self, kitchen, walk_in, flour):
        stock_service.add_holding(ingredient_id=flour.id, location_id=walk_in.id, quantity="1000")
        stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="10")
        with pytest.raises(InsufficientStockError):
            self._consume(flour, kitchen, "20")


class TestAvailability:

    def test_ensure_available_names_short_ingredient(self, kitchen, flour, water):
        stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="1000")
        stock_service.add_holding(ingredient_id=water.id, location_id=kitchen.id, quantity="10")

        with pytest.raises(InsufficientStockError) as exc_info:
            stock_service.ensure_available([(flour, Decimal("500")), (water, Decimal("50"))], kitchen.id)
        assert exc_info.value.ingredient_name == "Water"

    def test_check_availability_rows(self, kitchen, flour):
        stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="100")
        rows = stock_service.check_availability([(flour, Decimal("150"))], kitchen.id)
        assert rows[0]["available"] == Decimal("100")
        assert rows[0]["sufficient"] is False
