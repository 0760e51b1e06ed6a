# Overview: Service-layer operations for the stock ledger audit trail.

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Optional

from ..extensions import db
from ..models import StockLedgerEvent
"""
Stock Ledger Event Invariants (authoritative)

- Append-only audit log for stock mutations.
- No domain/business logic here; callers decide what happened.
- Events are written inside the same DB transaction as the mutation they record.
- occurred_at is business time; created_at is system time (DB default).
"""


def append_ledger_event(
    *,
    event_type: str,
    entity_type: str,
    entity_id: int,
    ingredient_id: int | None = None,
    location_id: int | None = None,
    holding_id: int | None = None,
    quantity_delta: Decimal | None = None,
    actor_user_id: int | None = None,
    prep_task_id: int | None = None,
    purchase_order_id: int | None = None,
    waste_record_id: int | None = None,
    occurred_at: Optional[datetime] = None,
    note: Optional[str] = None,
) -> StockLedgerEvent:
    """
    Append-only stock ledger event.

    - No domain logic here.
    - No deletes/updates of existing events.
    - Flushes but never commits; the caller owns the transaction.
    """
    ev = StockLedgerEvent(
        event_type=event_type,
        entity_type=entity_type,
        entity_id=entity_id,
        ingredient_id=ingredient_id,
        location_id=location_id,
        holding_id=holding_id,
        quantity_delta=quantity_delta,
        actor_user_id=actor_user_id,
        prep_task_id=prep_task_id,
        purchase_order_id=purchase_order_id,
        waste_record_id=waste_record_id,
        occurred_at=occurred_at,  # if None, db default applies
        note=note[:255] if note else None,
    )
    db.session.add(ev)
    db.session.flush()
    return ev


def list_ledger_events(
    *,
    ingredient_id: int | None = None,
    location_id: int | None = None,
    event_type: str | None = None,
    prep_task_id: int | None = None,
    purchase_order_id: int | None = None,
    as_of: datetime | None = None,
    limit: int = 100,
    offset: int = 0,
) -> tuple[list[StockLedgerEvent], int]:
    """
    Read the stock ledger, newest first.

    As-of filtering is inclusive: occurred_at <= as_of.
    """
    q = db.session.query(StockLedgerEvent)
    if ingredient_id is not None:
        q = q.filter(StockLedgerEvent.ingredient_id == ingredient_id)
    if location_id is not None:
        q = q.filter(StockLedgerEvent.location_id == location_id)
    if event_type:
        q = q.filter(StockLedgerEvent.event_type == event_type)
    if prep_task_id is not None:
        q = q.filter(StockLedgerEvent.prep_task_id == prep_task_id)
    if purchase_order_id is not None:
        q = q.filter(StockLedgerEvent.purchase_order_id == purchase_order_id)
    if as_of is not None:
        q = q.filter(StockLedgerEvent.occurred_at <= as_of)

    total = q.count()
    events = (
        q.order_by(StockLedgerEvent.occurred_at.desc(), StockLedgerEvent.id.desc())
        .limit(limit)
        .offset(offset)
        .all()
    )
    return events, total
