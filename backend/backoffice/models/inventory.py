from __future__ import annotations

from ..extensions import db
from ..quantities import decimal_str
from ..time_utils import to_iso_date, to_utc_z


HOLDING_SOURCE_MANUAL = "MANUAL"
HOLDING_SOURCE_PURCHASE_ORDER = "PURCHASE_ORDER"
HOLDING_SOURCE_PREP_TASK = "PREP_TASK"

HOLDING_SOURCES = {HOLDING_SOURCE_MANUAL, HOLDING_SOURCE_PURCHASE_ORDER, HOLDING_SOURCE_PREP_TASK}

WASTE_REASONS = {"SPOILAGE", "PREPARATION", "ACCIDENT", "CLIENT_RETURN", "OTHER"}


class Ingredient(db.Model):
    """
    Ingredient master data.

    PURCHASED vs PREPARED:
    - Purchased ingredients carry a supplier-driven cost_per_unit.
    - Prepared ingredients (is_prepared=True) are produced by prep recipes.
      Their cost starts at 0 and is recomputed from completed prep runs.

    unit is the base unit every quantity for this ingredient is expressed in.
    """
    __tablename__ = "ingredients"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_ingredients_name"),
        db.Index("ix_ingredients_is_prepared", "is_prepared"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    unit = db.Column(db.String(32), nullable=False)

    cost_per_unit = db.Column(db.Numeric(14, 6), nullable=False, default=0)
    is_prepared = db.Column(db.Boolean, nullable=False, default=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Ingredient id={self.id} name={self.name!r} unit={self.unit}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "unit": self.unit,
            "cost_per_unit": decimal_str(self.cost_per_unit),
            "is_prepared": self.is_prepared,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockHolding(db.Model):
    """
    One batch of an ingredient sitting at one storage location.

    Holdings are never merged: each receipt, manual entry or prep output is
    its own row so expiry and acquisition cost stay per batch. A holding
    drained to zero stays as history.

    version_id guards against lost updates between concurrent writers.
    """
    __tablename__ = "stock_holdings"
    __table_args__ = (
        db.CheckConstraint("quantity >= 0", name="quantity_non_negative"),
        db.Index("ix_stock_holdings_ingredient_location", "ingredient_id", "location_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("storage_locations.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(14, 4), nullable=False, default=0)
    # Acquisition cost per base unit of the ingredient
    unit_cost = db.Column(db.Numeric(14, 6), nullable=False, default=0)

    purchase_date = db.Column(db.Date, nullable=True)
    expiry_date = db.Column(db.Date, nullable=True)

    source = db.Column(db.String(32), nullable=False, default=HOLDING_SOURCE_MANUAL)
    purchase_order_item_id = db.Column(db.Integer, db.ForeignKey("purchase_order_items.id"), nullable=True)
    prep_task_id = db.Column(db.Integer, db.ForeignKey("prep_tasks.id"), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    ingredient = db.relationship("Ingredient", backref=db.backref("holdings", lazy=True))
    location = db.relationship("StorageLocation", backref=db.backref("holdings", lazy=True))

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return (
            f"<StockHolding id={self.id} ingredient_id={self.ingredient_id} "
            f"location_id={self.location_id} quantity={self.quantity}>"
        )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ingredient_id": self.ingredient_id,
            "ingredient_name": self.ingredient.name if self.ingredient else None,
            "unit": self.ingredient.unit if self.ingredient else None,
            "location_id": self.location_id,
            "location_name": self.location.name if self.location else None,
            "quantity": decimal_str(self.quantity),
            "unit_cost": decimal_str(self.unit_cost),
            "purchase_date": to_iso_date(self.purchase_date),
            "expiry_date": to_iso_date(self.expiry_date),
            "source": self.source,
            "purchase_order_item_id": self.purchase_order_item_id,
            "prep_task_id": self.prep_task_id,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class WasteRecord(db.Model):
    """
    Stock written off as waste.

    Recording waste consumes holdings at the location the same way a prep
    run does; cost_value is the acquisition cost of what was consumed.
    """
    __tablename__ = "waste_records"
    __table_args__ = (
        db.Index("ix_waste_records_recorded_at", "recorded_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("storage_locations.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(14, 4), nullable=False)
    unit = db.Column(db.String(32), nullable=False)
    reason = db.Column(db.String(32), nullable=False)
    notes = db.Column(db.Text, nullable=True)
    cost_value = db.Column(db.Numeric(14, 6), nullable=False, default=0)

    recorded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    recorded_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    ingredient = db.relationship("Ingredient", backref=db.backref("waste_records", lazy=True))
    location = db.relationship("StorageLocation")
    recorded_by = db.relationship("User")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ingredient_id": self.ingredient_id,
            "ingredient_name": self.ingredient.name if self.ingredient else None,
            "location_id": self.location_id,
            "quantity": decimal_str(self.quantity),
            "unit": self.unit,
            "reason": self.reason,
            "notes": self.notes,
            "cost_value": decimal_str(self.cost_value),
            "recorded_by_user_id": self.recorded_by_user_id,
            "recorded_at": to_utc_z(self.recorded_at),
        }
