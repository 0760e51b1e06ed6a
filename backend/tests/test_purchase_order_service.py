"""
Purchase order lifecycle tests: creation totals, approval, receiving into
stock (partial and full), and the guards around each transition.
"""

from decimal import Decimal

import pytest

from backoffice.errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from backoffice.models import StockHolding, StockLedgerEvent
from backoffice.services import ingredient_service, purchase_order_service, supplier_service
from conftest import available


@pytest.fixture
def mill(db_session):
    return supplier_service.create_supplier({"name": "Stone Mill", "contact_email": "orders@stonemill.test"})


@pytest.fixture
def flour_order(mill, flour, manager_actor):
    """Two 25 kg sacks of flour at 50.00 each."""
    return purchase_order_service.create_purchase_order(
        supplier_id=mill.id,
        actor=manager_actor,
        order_date="2026-10-01",
        invoice_number="INV-100",
        items=[{
            "ingredient_id": flour.id,
            "ordered_quantity": "2",
            "ordered_unit": "sack",
            "base_units_per_order_unit": "25000",
            "unit_cost": "50",
        }],
    )


def _approved(po, actor):
    return purchase_order_service.approve_purchase_order(po.id, actor)


class TestCreate:

    def test_draft_with_totals(self, flour_order):
        assert flour_order.status == "DRAFT"
        assert Decimal(flour_order.total_cost) == Decimal("100")
        item = flour_order.items[0]
        assert Decimal(item.total_item_cost) == Decimal("100")
        assert Decimal(item.received_quantity) == Decimal("0")
        assert item.ordered_unit == "sack"

    def test_ordered_unit_defaults_to_ingredient_unit(self, mill, water):
        po = purchase_order_service.create_purchase_order(
            supplier_id=mill.id,
            items=[{"ingredient_id": water.id, "ordered_quantity": "10", "unit_cost": "0.001"}],
        )
        assert po.items[0].ordered_unit == "ml"

    def test_requires_items(self, mill):
        with pytest.raises(ValidationError):
            purchase_order_service.create_purchase_order(supplier_id=mill.id, items=[])

    def test_prepared_ingredient_cannot_be_ordered(self, mill, dough):
        with pytest.raises(ValidationError):
            purchase_order_service.create_purchase_order(
                supplier_id=mill.id,
                items=[{"ingredient_id": dough.id, "ordered_quantity": "1", "unit_cost": "1"}],
            )

    def test_delivery_before_order_rejected(self, mill, flour):
        with pytest.raises(ValidationError):
            purchase_order_service.create_purchase_order(
                supplier_id=mill.id,
                order_date="2026-10-10",
                expected_delivery_date="2026-10-01",
                items=[{"ingredient_id": flour.id, "ordered_quantity": "1", "unit_cost": "1"}],
            )

    def test_duplicate_invoice_number(self, flour_order, mill, flour):
        with pytest.raises(ConflictError):
            purchase_order_service.create_purchase_order(
                supplier_id=mill.id,
                invoice_number="INV-100",
                items=[{"ingredient_id": flour.id, "ordered_quantity": "1", "unit_cost": "1"}],
            )

    def test_unknown_supplier(self, flour):
        with pytest.raises(NotFoundError):
            purchase_order_service.create_purchase_order(
                supplier_id=99999,
                items=[{"ingredient_id": flour.id, "ordered_quantity": "1", "unit_cost": "1"}],
            )

    def test_supplier_with_orders_cannot_be_deleted(self, flour_order, mill):
        with pytest.raises(ConflictError):
            supplier_service.delete_supplier(mill.id)


class TestTransitions:

    def test_submit_then_approve(self, flour_order, manager_actor):
        po = purchase_order_service.submit_purchase_order(flour_order.id, manager_actor)
        assert po.status == "SUBMITTED"
        po = _approved(po, manager_actor)
        assert po.status == "APPROVED"
        assert po.approved_by_user_id == manager_actor.user_id
        assert po.approved_at is not None

    def test_submit_twice_is_invalid(self, flour_order, manager_actor):
        purchase_order_service.submit_purchase_order(flour_order.id, manager_actor)
        with pytest.raises(InvalidTransitionError):
            purchase_order_service.submit_purchase_order(flour_order.id, manager_actor)

    def test_receive_draft_is_invalid(self, flour_order, kitchen, manager_actor, flour):
        with pytest.raises(InvalidTransitionError):
            purchase_order_service.receive_purchase_order(
                flour_order.id, location_id=kitchen.id, actor=manager_actor
            )
        assert available(flour, kitchen) == Decimal("0")

    def test_cancel(self, flour_order, manager_actor):
        po = purchase_order_service.cancel_purchase_order(flour_order.id, manager_actor)
        assert po.status == "CANCELLED"
        with pytest.raises(InvalidTransitionError):
            _approved(po, manager_actor)

    def test_partially_received_cannot_be_set_directly(self, flour_order, manager_actor):
        with pytest.raises(InvalidTransitionError):
            purchase_order_service.update_purchase_order_status(
                flour_order.id, status="PARTIALLY_RECEIVED", actor=manager_actor
            )

    def test_status_received_needs_location(self, flour_order, manager_actor):
        _approved(flour_order, manager_actor)
        with pytest.raises(ValidationError):
            purchase_order_service.update_purchase_order_status(
                flour_order.id, status="RECEIVED", actor=manager_actor
            )


class TestReceive:

    def test_partial_then_full_receipt(self, db_session, flour_order, kitchen, manager_actor, flour):
        _approved(flour_order, manager_actor)
        item_id = flour_order.items[0].id

        po = purchase_order_service.receive_purchase_order(
            flour_order.id,
            location_id=kitchen.id,
            actor=manager_actor,
            lines=[{"item_id": item_id, "quantity": "1", "expiry_date": "2027-01-31"}],
        )
        assert po.status == "PARTIALLY_RECEIVED"
        assert available(flour, kitchen) == Decimal("25000")

        holding = db_session.query(StockHolding).filter_by(purchase_order_item_id=item_id).one()
        assert holding.source == "PURCHASE_ORDER"
        assert Decimal(holding.unit_cost) == Decimal("0.002")
        db_session.expire_all()
        assert Decimal(ingredient_service.get_ingredient(flour.id).cost_per_unit) == Decimal("0.002")

        po = purchase_order_service.receive_purchase_order(
            flour_order.id, location_id=kitchen.id, actor=manager_actor
        )
        assert po.status == "RECEIVED"
        assert po.received_at is not None
        assert po.actual_delivery_date is not None
        assert available(flour, kitchen) == Decimal("50000")

    def test_over_receipt_rejected(self, flour_order, kitchen, manager_actor, flour):
        _approved(flour_order, manager_actor)
        with pytest.raises(ValidationError):
            purchase_order_service.receive_purchase_order(
                flour_order.id,
                location_id=kitchen.id,
                actor=manager_actor,
                lines=[{"item_id": flour_order.items[0].id, "quantity": "3"}],
            )
        assert available(flour, kitchen) == Decimal("0")

    def test_foreign_item_rejected(self, flour_order, kitchen, manager_actor):
        _approved(flour_order, manager_actor)
        with pytest.raises(ValidationError):
            purchase_order_service.receive_purchase_order(
                flour_order.id,
                location_id=kitchen.id,
                actor=manager_actor,
                lines=[{"item_id": 99999, "quantity": "1"}],
            )

    def test_received_order_is_terminal(self, flour_order, kitchen, manager_actor):
        _approved(flour_order, manager_actor)
        purchase_order_service.receive_purchase_order(flour_order.id, location_id=kitchen.id, actor=manager_actor)
        with pytest.raises(InvalidTransitionError):
            purchase_order_service.receive_purchase_order(
                flour_order.id, location_id=kitchen.id, actor=manager_actor
            )

    def test_receipt_writes_ledger_events(self, db_session, flour_order, kitchen, manager_actor):
        _approved(flour_order, manager_actor)
        purchase_order_service.receive_purchase_order(flour_order.id, location_id=kitchen.id, actor=manager_actor)
        events = db_session.query(StockLedgerEvent).filter_by(event_type="purchase_order.received").all()
        assert len(events) == 1
        assert events[0].purchase_order_id == flour_order.id
        assert Decimal(events[0].quantity_delta) == Decimal("50000")

    def test_cancel_after_partial_keeps_stock(self, flour_order, kitchen, manager_actor, flour):
        _approved(flour_order, manager_actor)
        purchase_order_service.receive_purchase_order(
            flour_order.id,
            location_id=kitchen.id,
            actor=manager_actor,
            lines=[{"item_id": flour_order.items[0].id, "quantity": "1"}],
        )
        po = purchase_order_service.cancel_purchase_order(flour_order.id, manager_actor)
        assert po.status == "CANCELLED"
        assert available(flour, kitchen) == Decimal("25000")


class TestList:

    def test_filter_by_status(self, flour_order, mill, water, manager_actor):
        other = purchase_order_service.create_purchase_order(
            supplier_id=mill.id,
            items=[{"ingredient_id": water.id, "ordered_quantity": "10", "unit_cost": "0.001"}],
        )
        _approved(other, manager_actor)

        orders, total = purchase_order_service.list_purchase_orders(status="APPROVED")
        assert total == 1
        assert [po.id for po in orders] == [other.id]

        _, total = purchase_order_service.list_purchase_orders(supplier_id=mill.id)
        assert total == 2

    def test_invalid_status(self, db_session):
        with pytest.raises(ValidationError):
            purchase_order_service.list_purchase_orders(status="SHIPPED")
