# Overview: Service-layer operations for waste records.

"""
Waste Service

Recording waste takes the quantity out of stock at the location (FEFO, same
as a prep run) and stores what it cost at acquisition. The stock deduction
and the record are one transaction: no record without the deduction and
vice versa.

Quantities are in the ingredient's base unit; other units are rejected
rather than converted.
"""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from ..errors import ValidationError
from ..extensions import db
from ..models import WasteRecord
from ..models.inventory import WASTE_REASONS
from ..quantities import ZERO, parse_quantity, quantize_cost
from .auth_service import Actor
from .concurrency import atomic
from .ingredient_service import get_ingredient
from .location_service import get_location
from .stock_service import _consume_inner


def record_waste(
    *,
    ingredient_id: int,
    location_id: int,
    quantity,
    reason: str,
    actor: Actor,
    unit: str | None = None,
    notes: str | None = None,
) -> WasteRecord:
    """
    Write off stock.

    Raises:
        ValidationError: quantity <= 0, unknown reason, unit mismatch
        NotFoundError: unknown ingredient or location
        InsufficientStockError: not enough on hand at the location
    """
    qty = parse_quantity(quantity, "quantity")
    if reason not in WASTE_REASONS:
        raise ValidationError(f"Invalid reason. Must be one of: {', '.join(sorted(WASTE_REASONS))}")

    ingredient = get_ingredient(ingredient_id)
    get_location(location_id)
    if unit and unit.strip() != ingredient.unit:
        raise ValidationError(f"unit must be {ingredient.unit} for {ingredient.name}")

    with atomic():
        record = WasteRecord(
            ingredient_id=ingredient.id,
            location_id=location_id,
            quantity=qty,
            unit=ingredient.unit,
            reason=reason,
            notes=notes,
            cost_value=ZERO,
            recorded_by_user_id=actor.user_id,
        )
        db.session.add(record)
        db.session.flush()

        consumed = _consume_inner(
            ingredient=ingredient,
            location_id=location_id,
            quantity=qty,
            event_type="waste.recorded",
            entity_type="waste_record",
            entity_id=record.id,
            actor_user_id=actor.user_id,
            waste_record_id=record.id,
            note=reason,
        )
        record.cost_value = quantize_cost(sum((c.cost for c in consumed), ZERO))
    return record


def list_waste_records(
    *,
    ingredient_id: int | None = None,
    location_id: int | None = None,
    reason: str | None = None,
    from_date: datetime | None = None,
    to_date: datetime | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[WasteRecord], int]:
    q = db.session.query(WasteRecord)
    if ingredient_id is not None:
        q = q.filter(WasteRecord.ingredient_id == ingredient_id)
    if location_id is not None:
        q = q.filter(WasteRecord.location_id == location_id)
    if reason:
        q = q.filter(WasteRecord.reason == reason)
    if from_date:
        q = q.filter(WasteRecord.recorded_at >= from_date)
    if to_date:
        q = q.filter(WasteRecord.recorded_at <= to_date)

    total = q.count()
    records = (
        q.order_by(WasteRecord.recorded_at.desc(), WasteRecord.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return records, total


def total_waste_cost(records: list[WasteRecord]) -> Decimal:
    return quantize_cost(sum((Decimal(r.cost_value) for r in records), ZERO))
