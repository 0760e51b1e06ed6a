from __future__ import annotations

from ..extensions import db
from ..quantities import decimal_str
from ..time_utils import to_utc_z


class StockLedgerEvent(db.Model):
    """
    Append-only audit trail for every stock mutation.

    One row per holding touched. Rows are written inside the same
    transaction as the mutation they describe and never updated.
    """
    __tablename__ = "stock_ledger_events"
    __table_args__ = (
        db.Index("ix_stock_ledger_events_ingredient_occurred", "ingredient_id", "occurred_at"),
        db.Index("ix_stock_ledger_events_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    event_type = db.Column(db.String(64), nullable=False, index=True)
    entity_type = db.Column(db.String(64), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)

    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=True)
    location_id = db.Column(db.Integer, db.ForeignKey("storage_locations.id"), nullable=True)
    # Plain integer: holdings may be deleted as corrections while history stays
    holding_id = db.Column(db.Integer, nullable=True)
    quantity_delta = db.Column(db.Numeric(14, 4), nullable=True)

    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    prep_task_id = db.Column(db.Integer, db.ForeignKey("prep_tasks.id"), nullable=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=True)
    waste_record_id = db.Column(db.Integer, db.ForeignKey("waste_records.id"), nullable=True)

    note = db.Column(db.String(255), nullable=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "event_type": self.event_type,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "ingredient_id": self.ingredient_id,
            "location_id": self.location_id,
            "holding_id": self.holding_id,
            "quantity_delta": decimal_str(self.quantity_delta),
            "actor_user_id": self.actor_user_id,
            "prep_task_id": self.prep_task_id,
            "purchase_order_id": self.purchase_order_id,
            "waste_record_id": self.waste_record_id,
            "note": self.note,
            "occurred_at": to_utc_z(self.occurred_at),
            "created_at": to_utc_z(self.created_at),
        }
