# Overview: Service-layer operations for the stock ledger; encapsulates business logic and database work.

"""
Stock Ledger Service

WHY: Stock on hand is the sum of StockHolding batches. Every path that
changes stock (manual entry, purchase receipt, prep completion, waste) goes
through this module so the invariants live in one place.

INVARIANTS:
- No holding quantity is ever negative (checked here and by a DB CHECK).
- Aggregate stock for an ingredient == sum of its holdings' quantities.
- Every mutation appends a StockLedgerEvent in the same transaction.
- Quantities are Decimal, quantized to 4 places, never float.

CONSUMPTION ORDER (FEFO):
Deductions draw from holdings at one location in this order:
    1. earliest expiry_date first (holdings without expiry last)
    2. oldest purchase_date first (holdings without purchase date last)
    3. lowest id first
Drained holdings stay at quantity 0 as history.

DESIGN:
- Public functions validate, mutate and commit.
- _inner functions mutate and flush only; callers that compose several
  mutations (prep completion, PO receipt, waste) own the transaction.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

from sqlalchemy import case

from ..errors import InsufficientStockError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Ingredient, StockHolding
from ..models.inventory import HOLDING_SOURCE_MANUAL, HOLDING_SOURCES
from ..quantities import (
    ZERO,
    parse_cost,
    parse_decimal,
    parse_quantity,
    quantize_cost,
    quantize_quantity,
)
from ..time_utils import parse_iso_date
from .concurrency import atomic, lock_for_update
from .ingredient_service import get_ingredient
from .ledger_service import append_ledger_event
from .location_service import get_active_location, get_location


@dataclass(frozen=True)
class Consumption:
    """One holding drawn down by a deduction."""
    holding_id: int
    quantity: Decimal
    unit_cost: Decimal

    @property
    def cost(self) -> Decimal:
        return self.quantity * self.unit_cost


def _parse_date(value, field: str) -> date | None:
    if value is None or isinstance(value, date):
        return value
    if not isinstance(value, str):
        raise ValidationError(f"{field} must be an ISO-8601 date")
    try:
        return parse_iso_date(value)
    except ValueError:
        raise ValidationError(f"{field} must be an ISO-8601 date")


def get_holding(holding_id: int) -> StockHolding:
    holding = db.session.get(StockHolding, holding_id)
    if not holding:
        raise NotFoundError(f"Stock holding {holding_id} not found")
    return holding


def list_holdings(
    *,
    ingredient_id: int | None = None,
    location_id: int | None = None,
    non_empty: bool = False,
) -> list[StockHolding]:
    q = db.session.query(StockHolding)
    if ingredient_id is not None:
        q = q.filter(StockHolding.ingredient_id == ingredient_id)
    if location_id is not None:
        q = q.filter(StockHolding.location_id == location_id)
    if non_empty:
        q = q.filter(StockHolding.quantity > 0)
    return q.order_by(StockHolding.ingredient_id.asc(), StockHolding.id.asc()).all()


# =============================================================================
# WRITES
# =============================================================================


def _add_holding_inner(
    *,
    ingredient: Ingredient,
    location_id: int,
    quantity: Decimal,
    unit_cost: Decimal,
    purchase_date: date | None = None,
    expiry_date: date | None = None,
    source: str = HOLDING_SOURCE_MANUAL,
    purchase_order_item_id: int | None = None,
    prep_task_id: int | None = None,
    purchase_order_id: int | None = None,
    actor_user_id: int | None = None,
    event_type: str = "stock.added",
    note: str | None = None,
) -> StockHolding:
    """Create a holding and its ledger event (no commit)."""
    if source not in HOLDING_SOURCES:
        raise ValidationError(f"Invalid holding source: {source}")

    holding = StockHolding(
        ingredient_id=ingredient.id,
        location_id=location_id,
        quantity=quantize_quantity(quantity),
        unit_cost=quantize_cost(unit_cost),
        purchase_date=purchase_date,
        expiry_date=expiry_date,
        source=source,
        purchase_order_item_id=purchase_order_item_id,
        prep_task_id=prep_task_id,
    )
    db.session.add(holding)
    db.session.flush()

    append_ledger_event(
        event_type=event_type,
        entity_type="stock_holding",
        entity_id=holding.id,
        ingredient_id=ingredient.id,
        location_id=location_id,
        holding_id=holding.id,
        quantity_delta=holding.quantity,
        actor_user_id=actor_user_id,
        prep_task_id=prep_task_id,
        purchase_order_id=purchase_order_id,
        note=note,
    )
    return holding


def add_holding(
    *,
    ingredient_id: int,
    location_id: int,
    quantity,
    unit_cost=None,
    purchase_date=None,
    expiry_date=None,
    actor_user_id: int | None = None,
) -> StockHolding:
    """
    Record a new batch of stock at a location. Never merges with existing rows.

    unit_cost defaults to the ingredient's current cost_per_unit.

    Raises:
        ValidationError: quantity <= 0, bad cost or dates
        NotFoundError: unknown ingredient or location
        ConflictError: inactive location
    """
    qty = parse_quantity(quantity, "quantity")
    cost = parse_cost(unit_cost, "unit_cost") if unit_cost is not None else None
    purchase_dt = _parse_date(purchase_date, "purchase_date")
    expiry_dt = _parse_date(expiry_date, "expiry_date")

    ingredient = get_ingredient(ingredient_id)
    get_active_location(location_id)

    with atomic():
        holding = _add_holding_inner(
            ingredient=ingredient,
            location_id=location_id,
            quantity=qty,
            unit_cost=cost if cost is not None else Decimal(ingredient.cost_per_unit or 0),
            purchase_date=purchase_dt,
            expiry_date=expiry_dt,
            actor_user_id=actor_user_id,
        )
    return holding


def set_holding_quantity(holding_id: int, new_quantity, *, actor_user_id: int | None = None) -> StockHolding:
    """
    Overwrite a holding's quantity (a physical count correction).

    Raises ValidationError if new_quantity < 0.
    """
    qty = parse_quantity(new_quantity, "quantity", allow_zero=True)
    holding = get_holding(holding_id)

    with atomic():
        delta = qty - Decimal(holding.quantity)
        holding.quantity = qty
        db.session.flush()
        append_ledger_event(
            event_type="stock.set",
            entity_type="stock_holding",
            entity_id=holding.id,
            ingredient_id=holding.ingredient_id,
            location_id=holding.location_id,
            holding_id=holding.id,
            quantity_delta=delta,
            actor_user_id=actor_user_id,
            note=f"Set to {qty}",
        )
    return holding


def adjust_holding_quantity(holding_id: int, delta, *, actor_user_id: int | None = None) -> StockHolding:
    """
    Add (or subtract, with a negative delta) to a holding's quantity.

    Raises:
        ValidationError: delta is zero, or the result would be negative
            (the holding is left unchanged)
    """
    change = quantize_quantity(parse_decimal(delta, "adjustment"))
    if change == ZERO:
        raise ValidationError("adjustment must not be zero")

    holding = get_holding(holding_id)
    new_quantity = Decimal(holding.quantity) + change
    if new_quantity < ZERO:
        raise ValidationError(
            f"Adjustment would make quantity negative (current {holding.quantity}, adjustment {change})"
        )

    with atomic():
        holding.quantity = new_quantity
        db.session.flush()
        append_ledger_event(
            event_type="stock.adjusted",
            entity_type="stock_holding",
            entity_id=holding.id,
            ingredient_id=holding.ingredient_id,
            location_id=holding.location_id,
            holding_id=holding.id,
            quantity_delta=change,
            actor_user_id=actor_user_id,
        )
    return holding


def delete_holding(holding_id: int, *, actor_user_id: int | None = None) -> None:
    """Remove a holding entirely. Meant for correcting data-entry mistakes."""
    holding = get_holding(holding_id)

    with atomic():
        append_ledger_event(
            event_type="stock.deleted",
            entity_type="stock_holding",
            entity_id=holding.id,
            ingredient_id=holding.ingredient_id,
            location_id=holding.location_id,
            holding_id=holding.id,
            quantity_delta=-Decimal(holding.quantity),
            actor_user_id=actor_user_id,
            note="Holding deleted",
        )
        db.session.delete(holding)


# =============================================================================
# READS
# =============================================================================


def get_available_quantity(ingredient_id: int, location_id: int) -> Decimal:
    """Sum of holdings for one ingredient at one location."""
    holdings = (
        db.session.query(StockHolding.quantity)
        .filter(
            StockHolding.ingredient_id == ingredient_id,
            StockHolding.location_id == location_id,
        )
        .all()
    )
    total = sum((Decimal(q) for (q,) in holdings), ZERO)
    return quantize_quantity(total)


def ensure_available(requirements: list[tuple[Ingredient, Decimal]], location_id: int) -> None:
    """
    Pre-flight check for a multi-ingredient deduction.

    Raises InsufficientStockError for the first ingredient that is short.
    Performs no writes.
    """
    for ingredient, required in requirements:
        available = get_available_quantity(ingredient.id, location_id)
        if available < required:
            raise InsufficientStockError(
                ingredient_id=ingredient.id,
                ingredient_name=ingredient.name,
                location_id=location_id,
                required=required,
                available=available,
                unit=ingredient.unit,
            )


def check_availability(requirements: list[tuple[Ingredient, Decimal]], location_id: int) -> list[dict]:
    """Per-ingredient required/available/sufficient rows, for previews."""
    rows = []
    for ingredient, required in requirements:
        available = get_available_quantity(ingredient.id, location_id)
        rows.append({
            "ingredient": ingredient,
            "required": required,
            "available": available,
            "sufficient": available >= required,
        })
    return rows


def aggregate_by_ingredient(location_id: int | None = None) -> list[dict]:
    """
    Stock totals per ingredient, including ingredients with no holdings.

    total_value is total_quantity * the ingredient's cost_per_unit.
    acquisition_value sums quantity * unit_cost over the holdings.
    Pure read.
    """
    if location_id is not None:
        get_location(location_id)

    q = db.session.query(StockHolding)
    if location_id is not None:
        q = q.filter(StockHolding.location_id == location_id)

    totals: dict[int, Decimal] = {}
    values: dict[int, Decimal] = {}
    for holding in q.all():
        qty = Decimal(holding.quantity)
        totals[holding.ingredient_id] = totals.get(holding.ingredient_id, ZERO) + qty
        values[holding.ingredient_id] = values.get(holding.ingredient_id, ZERO) + qty * Decimal(holding.unit_cost)

    result = []
    for ingredient in db.session.query(Ingredient).order_by(Ingredient.name.asc()).all():
        total_quantity = quantize_quantity(totals.get(ingredient.id, ZERO))
        cost_per_unit = Decimal(ingredient.cost_per_unit or 0)
        result.append({
            "ingredient_id": ingredient.id,
            "name": ingredient.name,
            "unit": ingredient.unit,
            "is_prepared": ingredient.is_prepared,
            "cost_per_unit": cost_per_unit,
            "total_quantity": total_quantity,
            "total_value": quantize_cost(total_quantity * cost_per_unit),
            "acquisition_value": quantize_cost(values.get(ingredient.id, ZERO)),
        })
    return result


# =============================================================================
# CONSUMPTION
# =============================================================================


def _fefo_holdings(ingredient_id: int, location_id: int) -> list[StockHolding]:
    q = (
        db.session.query(StockHolding)
        .filter(
            StockHolding.ingredient_id == ingredient_id,
            StockHolding.location_id == location_id,
            StockHolding.quantity > 0,
        )
        .order_by(
            case((StockHolding.expiry_date.is_(None), 1), else_=0),
            StockHolding.expiry_date.asc(),
            case((StockHolding.purchase_date.is_(None), 1), else_=0),
            StockHolding.purchase_date.asc(),
            StockHolding.id.asc(),
        )
    )
    return lock_for_update(q).all()


def _consume_inner(
    *,
    ingredient: Ingredient,
    location_id: int,
    quantity: Decimal,
    event_type: str,
    entity_type: str,
    entity_id: int | None = None,
    actor_user_id: int | None = None,
    prep_task_id: int | None = None,
    waste_record_id: int | None = None,
    note: str | None = None,
) -> list[Consumption]:
    """
    Draw quantity of ingredient from its holdings at location in FEFO order (no commit).

    Raises InsufficientStockError without touching any row if the holdings
    cannot cover the full quantity.
    """
    remaining = quantize_quantity(quantity)
    holdings = _fefo_holdings(ingredient.id, location_id)

    available = sum((Decimal(h.quantity) for h in holdings), ZERO)
    if available < remaining:
        raise InsufficientStockError(
            ingredient_id=ingredient.id,
            ingredient_name=ingredient.name,
            location_id=location_id,
            required=remaining,
            available=quantize_quantity(available),
            unit=ingredient.unit,
        )

    consumed: list[Consumption] = []
    for holding in holdings:
        if remaining <= ZERO:
            break
        on_hand = Decimal(holding.quantity)
        take = min(on_hand, remaining)
        holding.quantity = on_hand - take
        remaining -= take
        consumed.append(Consumption(holding_id=holding.id, quantity=take, unit_cost=Decimal(holding.unit_cost)))

    db.session.flush()

    for item in consumed:
        append_ledger_event(
            event_type=event_type,
            entity_type=entity_type,
            entity_id=entity_id if entity_id is not None else item.holding_id,
            ingredient_id=ingredient.id,
            location_id=location_id,
            holding_id=item.holding_id,
            quantity_delta=-item.quantity,
            actor_user_id=actor_user_id,
            prep_task_id=prep_task_id,
            waste_record_id=waste_record_id,
            note=note,
        )
    return consumed
