# Overview: Service-layer operations for suppliers.

from __future__ import annotations

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError
from ..extensions import db
from ..models import PurchaseOrder, Supplier
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import atomic


SUPPLIER_POLICY = ModelValidationPolicy(
    writable_fields={"name", "contact_name", "contact_phone", "contact_email", "address", "notes"},
    required_on_create={"name"},
)


def get_supplier(supplier_id: int) -> Supplier:
    supplier = db.session.get(Supplier, supplier_id)
    if not supplier:
        raise NotFoundError(f"Supplier {supplier_id} not found")
    return supplier


def list_suppliers(*, search: str | None = None) -> list[Supplier]:
    q = db.session.query(Supplier)
    if search:
        q = q.filter(Supplier.name.ilike(f"%{search.strip()}%"))
    return q.order_by(Supplier.name.asc()).all()


def create_supplier(payload: dict) -> Supplier:
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=False)

    if db.session.query(Supplier).filter_by(name=patch["name"]).first():
        raise ConflictError(f"Supplier '{patch['name']}' already exists")

    supplier = Supplier(**patch)
    try:
        with atomic():
            db.session.add(supplier)
    except IntegrityError:
        raise ConflictError(f"Supplier '{patch['name']}' already exists")
    return supplier


def update_supplier(supplier_id: int, payload: dict) -> Supplier:
    supplier = get_supplier(supplier_id)
    patch = validate_payload(model=Supplier, payload=payload, policy=SUPPLIER_POLICY, partial=True)

    if "name" in patch and patch["name"] != supplier.name:
        if db.session.query(Supplier).filter_by(name=patch["name"]).first():
            raise ConflictError(f"Supplier '{patch['name']}' already exists")

    with atomic():
        for key, value in patch.items():
            setattr(supplier, key, value)
    return supplier


def delete_supplier(supplier_id: int) -> None:
    """Suppliers with purchase orders are kept for history."""
    supplier = get_supplier(supplier_id)
    po_count = db.session.query(PurchaseOrder).filter_by(supplier_id=supplier.id).count()
    if po_count:
        raise ConflictError(
            f"Cannot delete supplier {supplier.name}: {po_count} purchase order(s) reference it"
        )
    with atomic():
        db.session.delete(supplier)
