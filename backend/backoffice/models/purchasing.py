from __future__ import annotations

from ..extensions import db
from ..quantities import decimal_str
from ..time_utils import to_iso_date, to_utc_z


PO_DRAFT = "DRAFT"
PO_SUBMITTED = "SUBMITTED"
PO_APPROVED = "APPROVED"
PO_PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
PO_RECEIVED = "RECEIVED"
PO_CANCELLED = "CANCELLED"

PO_STATUSES = {PO_DRAFT, PO_SUBMITTED, PO_APPROVED, PO_PARTIALLY_RECEIVED, PO_RECEIVED, PO_CANCELLED}
PO_TERMINAL_STATUSES = {PO_RECEIVED, PO_CANCELLED}


class Supplier(db.Model):
    """Vendors we buy ingredients from."""
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_suppliers_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    contact_name = db.Column(db.String(255), nullable=True)
    contact_phone = db.Column(db.String(64), nullable=True)
    contact_email = db.Column(db.String(255), nullable=True)
    address = db.Column(db.Text, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Supplier id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "contact_name": self.contact_name,
            "contact_phone": self.contact_phone,
            "contact_email": self.contact_email,
            "address": self.address,
            "notes": self.notes,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PurchaseOrder(db.Model):
    """
    Supplier purchase order.

    LIFECYCLE:
    DRAFT -> SUBMITTED -> APPROVED -> PARTIALLY_RECEIVED -> RECEIVED
    DRAFT may be approved directly. Any non-terminal status may be CANCELLED.

    Receiving creates stock holdings for the received quantities, so stock
    on hand always reflects what came through the door.
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.UniqueConstraint("invoice_number", name="uq_purchase_orders_invoice_number"),
        db.Index("ix_purchase_orders_status", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)

    status = db.Column(db.String(32), nullable=False, default=PO_DRAFT)
    order_date = db.Column(db.Date, nullable=False)
    expected_delivery_date = db.Column(db.Date, nullable=True)
    actual_delivery_date = db.Column(db.Date, nullable=True)

    # NULLs do not collide under the unique constraint
    invoice_number = db.Column(db.String(64), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    total_cost = db.Column(db.Numeric(14, 6), nullable=False, default=0)

    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    approved_at = db.Column(db.DateTime(timezone=True), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)
    cancelled_at = db.Column(db.DateTime(timezone=True), nullable=True)

    version_id = db.Column(db.Integer, nullable=False, default=1)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    supplier = db.relationship("Supplier", backref=db.backref("purchase_orders", lazy=True))
    items = db.relationship(
        "PurchaseOrderItem",
        back_populates="purchase_order",
        cascade="all, delete-orphan",
        order_by="PurchaseOrderItem.id",
        lazy="selectin",
    )

    __mapper_args__ = {"version_id_col": version_id}

    def __repr__(self) -> str:
        return f"<PurchaseOrder id={self.id} supplier_id={self.supplier_id} status={self.status}>"

    def to_dict(self, include_items: bool = True) -> dict:
        data = {
            "id": self.id,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier.name if self.supplier else None,
            "status": self.status,
            "order_date": to_iso_date(self.order_date),
            "expected_delivery_date": to_iso_date(self.expected_delivery_date),
            "actual_delivery_date": to_iso_date(self.actual_delivery_date),
            "invoice_number": self.invoice_number,
            "notes": self.notes,
            "total_cost": decimal_str(self.total_cost),
            "created_by_user_id": self.created_by_user_id,
            "approved_by_user_id": self.approved_by_user_id,
            "approved_at": to_utc_z(self.approved_at),
            "received_at": to_utc_z(self.received_at),
            "cancelled_at": to_utc_z(self.cancelled_at),
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class PurchaseOrderItem(db.Model):
    """
    One ordered ingredient line.

    ordered_quantity, unit_cost and received_quantity are in the ordered
    unit (e.g. "case"). base_units_per_order_unit converts to the
    ingredient's base unit when the line is received into stock.
    """
    __tablename__ = "purchase_order_items"
    __table_args__ = (
        db.Index("ix_purchase_order_items_po", "purchase_order_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)

    ordered_quantity = db.Column(db.Numeric(14, 4), nullable=False)
    ordered_unit = db.Column(db.String(32), nullable=False)
    base_units_per_order_unit = db.Column(db.Numeric(14, 4), nullable=False, default=1)
    unit_cost = db.Column(db.Numeric(14, 6), nullable=False)
    total_item_cost = db.Column(db.Numeric(14, 6), nullable=False)
    received_quantity = db.Column(db.Numeric(14, 4), nullable=False, default=0)

    purchase_order = db.relationship("PurchaseOrder", back_populates="items")
    ingredient = db.relationship("Ingredient", lazy="joined")

    @property
    def outstanding_quantity(self):
        return self.ordered_quantity - (self.received_quantity or 0)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "ingredient_id": self.ingredient_id,
            "ingredient_name": self.ingredient.name if self.ingredient else None,
            "ordered_quantity": decimal_str(self.ordered_quantity),
            "ordered_unit": self.ordered_unit,
            "base_units_per_order_unit": decimal_str(self.base_units_per_order_unit),
            "unit_cost": decimal_str(self.unit_cost),
            "total_item_cost": decimal_str(self.total_item_cost),
            "received_quantity": decimal_str(self.received_quantity),
            "outstanding_quantity": decimal_str(self.outstanding_quantity),
        }
