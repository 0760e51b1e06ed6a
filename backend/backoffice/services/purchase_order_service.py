# Overview: Service-layer operations for purchase orders; encapsulates business logic and database work.

"""
Purchase Order Service

WHY: Purchases are the main way raw ingredients enter stock. Receiving a
purchase order writes the stock holdings itself, so the ledger cannot drift
from what was actually delivered.

LIFECYCLE:
1. DRAFT: created with its item lines
2. SUBMITTED: sent to the supplier
3. APPROVED: confirmed (a DRAFT may be approved directly)
4. PARTIALLY_RECEIVED: some lines delivered
5. RECEIVED: every line fully delivered (terminal)
6. CANCELLED: from any non-terminal status (terminal); stock already
   received stays in the ledger

RECEIVING:
- quantities are given in the ordered unit; each received line becomes a
  StockHolding of received * base_units_per_order_unit at
  unit_cost / base_units_per_order_unit
- omitting lines receives everything still outstanding
- receiving more than is outstanding on a line is rejected
- a purchased ingredient's cost_per_unit follows its latest received cost

CONCURRENCY:
PurchaseOrder carries a version column; a concurrent writer loses with a
ConflictError instead of double-receiving.
"""

from __future__ import annotations

from datetime import date
from decimal import Decimal

from ..errors import ConflictError, InvalidTransitionError, NotFoundError, ValidationError
from ..extensions import db
from ..models import PurchaseOrder, PurchaseOrderItem
from ..models.inventory import HOLDING_SOURCE_PURCHASE_ORDER
from ..models.purchasing import (
    PO_APPROVED,
    PO_CANCELLED,
    PO_DRAFT,
    PO_PARTIALLY_RECEIVED,
    PO_RECEIVED,
    PO_STATUSES,
    PO_SUBMITTED,
    PO_TERMINAL_STATUSES,
)
from ..quantities import ZERO, parse_cost, parse_quantity, quantize_cost
from ..time_utils import parse_iso_date, utcnow
from .auth_service import Actor
from .concurrency import atomic, lock_for_update
from .ingredient_service import get_ingredient
from .ledger_service import append_ledger_event
from .location_service import get_active_location
from .stock_service import _add_holding_inner
from .supplier_service import get_supplier


RECEIVABLE_STATUSES = {PO_APPROVED, PO_PARTIALLY_RECEIVED}


def _parse_date(value, field: str) -> date | None:
    if value is None or isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 date")
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date")


def get_purchase_order(po_id: int) -> PurchaseOrder:
    po = db.session.get(PurchaseOrder, po_id)
    if not po:
        raise NotFoundError(f"Purchase order {po_id} not found")
    return po


def list_purchase_orders(
    *,
    status: str | None = None,
    supplier_id: int | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[PurchaseOrder], int]:
    q = db.session.query(PurchaseOrder)
    if status:
        if status not in PO_STATUSES:
            raise ValidationError(f"Invalid status. Must be one of: {', '.join(sorted(PO_STATUSES))}")
        q = q.filter(PurchaseOrder.status == status)
    if supplier_id is not None:
        q = q.filter(PurchaseOrder.supplier_id == supplier_id)

    total = q.count()
    orders = (
        q.order_by(PurchaseOrder.order_date.desc(), PurchaseOrder.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return orders, total


def _build_items(raw_items) -> list[PurchaseOrderItem]:
    if not isinstance(raw_items, list) or not raw_items:
        raise ValidationError("items must be a non-empty list")

    items = []
    for idx, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{idx}] must be an object")
        ingredient_id = raw.get("ingredient_id")
        if ingredient_id is None:
            raise ValidationError(f"items[{idx}].ingredient_id is required")
        ingredient = get_ingredient(ingredient_id)
        if ingredient.is_prepared:
            raise ValidationError(f"{ingredient.name} is a prepared ingredient and cannot be purchased")

        quantity = parse_quantity(raw.get("ordered_quantity"), f"items[{idx}].ordered_quantity")
        unit_cost = parse_cost(raw.get("unit_cost"), f"items[{idx}].unit_cost")
        factor = raw.get("base_units_per_order_unit", 1)
        factor = parse_quantity(factor, f"items[{idx}].base_units_per_order_unit")
        ordered_unit = (raw.get("ordered_unit") or ingredient.unit).strip()

        items.append(PurchaseOrderItem(
            ingredient_id=ingredient.id,
            ordered_quantity=quantity,
            ordered_unit=ordered_unit,
            base_units_per_order_unit=factor,
            unit_cost=unit_cost,
            total_item_cost=quantize_cost(quantity * unit_cost),
            received_quantity=ZERO,
        ))
    return items


def create_purchase_order(
    *,
    supplier_id: int,
    items: list[dict],
    actor: Actor | None = None,
    order_date=None,
    expected_delivery_date=None,
    invoice_number: str | None = None,
    notes: str | None = None,
) -> PurchaseOrder:
    """
    Create a DRAFT purchase order with computed line and order totals.

    Raises:
        ValidationError: no items, bad quantities/costs/dates
        NotFoundError: unknown supplier or ingredient
        ConflictError: invoice_number already used
    """
    supplier = get_supplier(supplier_id)
    order_dt = _parse_date(order_date, "order_date") or utcnow().date()
    expected_dt = _parse_date(expected_delivery_date, "expected_delivery_date")
    if expected_dt and expected_dt < order_dt:
        raise ValidationError("expected_delivery_date cannot be before order_date")

    invoice_number = (invoice_number or "").strip() or None
    if invoice_number and db.session.query(PurchaseOrder.id).filter_by(invoice_number=invoice_number).first():
        raise ConflictError(f"Invoice number '{invoice_number}' is already used by another purchase order")

    lines = _build_items(items)

    po = PurchaseOrder(
        supplier_id=supplier.id,
        status=PO_DRAFT,
        order_date=order_dt,
        expected_delivery_date=expected_dt,
        invoice_number=invoice_number,
        notes=notes,
        total_cost=quantize_cost(sum((line.total_item_cost for line in lines), ZERO)),
        created_by_user_id=actor.user_id if actor else None,
    )
    po.items = lines

    with atomic():
        db.session.add(po)
        db.session.flush()
        append_ledger_event(
            event_type="purchase_order.created",
            entity_type="purchase_order",
            entity_id=po.id,
            actor_user_id=actor.user_id if actor else None,
            purchase_order_id=po.id,
            note=f"{supplier.name}: {len(lines)} item(s)",
        )
    return po


def _locked_po(po_id: int) -> PurchaseOrder:
    po = lock_for_update(db.session.query(PurchaseOrder).filter_by(id=po_id)).first()
    if not po:
        raise NotFoundError(f"Purchase order {po_id} not found")
    return po


def _require_status(po: PurchaseOrder, allowed: set[str], target: str) -> None:
    if po.status not in allowed:
        raise InvalidTransitionError(
            f"Cannot move purchase order {po.id} to {target} from {po.status}",
            current_status=po.status,
            target_status=target,
        )


def _record_po_event(po: PurchaseOrder, event_type: str, actor: Actor | None, note: str | None = None) -> None:
    append_ledger_event(
        event_type=event_type,
        entity_type="purchase_order",
        entity_id=po.id,
        actor_user_id=actor.user_id if actor else None,
        purchase_order_id=po.id,
        note=note,
    )


def submit_purchase_order(po_id: int, actor: Actor | None = None) -> PurchaseOrder:
    """DRAFT -> SUBMITTED."""
    get_purchase_order(po_id)
    with atomic():
        po = _locked_po(po_id)
        _require_status(po, {PO_DRAFT}, PO_SUBMITTED)
        po.status = PO_SUBMITTED
        db.session.flush()
        _record_po_event(po, "purchase_order.submitted", actor)
    return po


def approve_purchase_order(po_id: int, actor: Actor) -> PurchaseOrder:
    """DRAFT or SUBMITTED -> APPROVED, recording the approver."""
    get_purchase_order(po_id)
    with atomic():
        po = _locked_po(po_id)
        _require_status(po, {PO_DRAFT, PO_SUBMITTED}, PO_APPROVED)
        po.status = PO_APPROVED
        po.approved_by_user_id = actor.user_id
        po.approved_at = utcnow()
        db.session.flush()
        _record_po_event(po, "purchase_order.approved", actor)
    return po


def cancel_purchase_order(po_id: int, actor: Actor | None = None) -> PurchaseOrder:
    """Any non-terminal status -> CANCELLED. Already received stock stays."""
    get_purchase_order(po_id)
    with atomic():
        po = _locked_po(po_id)
        _require_status(po, PO_STATUSES - PO_TERMINAL_STATUSES, PO_CANCELLED)
        po.status = PO_CANCELLED
        po.cancelled_at = utcnow()
        db.session.flush()
        _record_po_event(po, "purchase_order.cancelled", actor)
    return po


def _plan_receipt(po: PurchaseOrder, lines) -> list[tuple[PurchaseOrderItem, Decimal, date | None]]:
    """Resolve requested receipt lines into (item, quantity, expiry) triples."""
    items_by_id = {item.id: item for item in po.items}

    if lines is None:
        return [
            (item, item.outstanding_quantity, None)
            for item in po.items
            if item.outstanding_quantity > ZERO
        ]

    if not isinstance(lines, list) or not lines:
        raise ValidationError("lines must be a non-empty list")

    plan = []
    seen: set[int] = set()
    for idx, raw in enumerate(lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"lines[{idx}] must be an object")
        item_id = raw.get("item_id")
        item = items_by_id.get(item_id)
        if item is None:
            raise ValidationError(f"lines[{idx}].item_id does not belong to purchase order {po.id}")
        if item_id in seen:
            raise ValidationError(f"Item {item_id} listed more than once")
        seen.add(item_id)

        quantity = parse_quantity(raw.get("quantity"), f"lines[{idx}].quantity")
        if quantity > item.outstanding_quantity:
            raise ValidationError(
                f"Cannot receive {quantity} {item.ordered_unit} of item {item.id}: "
                f"only {item.outstanding_quantity} outstanding"
            )
        plan.append((item, quantity, _parse_date(raw.get("expiry_date"), f"lines[{idx}].expiry_date")))
    return plan


def receive_purchase_order(
    po_id: int,
    *,
    location_id: int,
    actor: Actor,
    lines: list[dict] | None = None,
) -> PurchaseOrder:
    """
    Receive some or all outstanding quantities into stock at location_id.

    Raises:
        InvalidTransitionError: PO is not APPROVED or PARTIALLY_RECEIVED
        ValidationError: bad lines, over-receipt, nothing to receive
        NotFoundError / ConflictError: unknown or inactive location
    """
    get_active_location(location_id)
    get_purchase_order(po_id)

    with atomic():
        po = _locked_po(po_id)
        _require_status(po, RECEIVABLE_STATUSES, PO_RECEIVED)
        plan = _plan_receipt(po, lines)
        if not plan:
            raise ValidationError("Nothing to receive")

        today = utcnow().date()
        for item, quantity, expiry in plan:
            factor = Decimal(item.base_units_per_order_unit)
            base_cost = Decimal(item.unit_cost) / factor
            _add_holding_inner(
                ingredient=item.ingredient,
                location_id=location_id,
                quantity=quantity * factor,
                unit_cost=base_cost,
                purchase_date=today,
                expiry_date=expiry,
                source=HOLDING_SOURCE_PURCHASE_ORDER,
                purchase_order_item_id=item.id,
                purchase_order_id=po.id,
                actor_user_id=actor.user_id,
                event_type="purchase_order.received",
                note=f"PO {po.id} item {item.id}",
            )
            item.received_quantity = Decimal(item.received_quantity or 0) + quantity
            if not item.ingredient.is_prepared:
                item.ingredient.cost_per_unit = quantize_cost(base_cost)

        if all(item.outstanding_quantity <= ZERO for item in po.items):
            po.status = PO_RECEIVED
            po.actual_delivery_date = today
            po.received_at = utcnow()
        else:
            po.status = PO_PARTIALLY_RECEIVED
        db.session.flush()
    return po


def update_purchase_order_status(
    po_id: int,
    *,
    status: str,
    actor: Actor,
    location_id: int | None = None,
) -> PurchaseOrder:
    """
    Status PATCH dispatcher.

    RECEIVED receives everything outstanding and needs location_id.
    PARTIALLY_RECEIVED can only be reached by receiving specific lines.
    """
    if status not in PO_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(sorted(PO_STATUSES))}")

    if status == PO_SUBMITTED:
        return submit_purchase_order(po_id, actor)
    if status == PO_APPROVED:
        return approve_purchase_order(po_id, actor)
    if status == PO_CANCELLED:
        return cancel_purchase_order(po_id, actor)
    if status == PO_RECEIVED:
        if location_id is None:
            raise ValidationError("location_id is required to receive a purchase order")
        return receive_purchase_order(po_id, location_id=location_id, actor=actor)

    po = get_purchase_order(po_id)
    raise InvalidTransitionError(
        f"Cannot set purchase order {po_id} to {status} directly",
        current_status=po.status,
        target_status=status,
    )
