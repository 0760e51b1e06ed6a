# Overview: Flask API routes for purchase order operations; parses input and returns JSON responses.

"""
Purchase Order Routes

SECURITY: All routes require authentication.
- View: any staff member
- Create, status changes: OWNER / MANAGER / FINANCIAL
- Receive: OWNER / MANAGER / FINANCIAL / COOK (whoever is at the back door)
"""

from flask import Blueprint, request, current_app, g

from ..decorators import require_auth, require_role
from ..errors import BackofficeError
from ..models.auth import KITCHEN_ROLES, PURCHASING_ROLES
from ..responses import error_response, fail, ok
from ..services import purchase_order_service
from ..validation import first_present


purchase_orders_bp = Blueprint("purchase_orders", __name__, url_prefix="/api/purchase-orders")

RECEIVING_ROLES = tuple(sorted(set(PURCHASING_ROLES) | set(KITCHEN_ROLES)))


@purchase_orders_bp.get("")
@require_auth
def list_purchase_orders_route():
    """
    Query parameters:
    - status, supplier_id: optional filters
    - limit (default 100, max 500), offset
    """
    limit = max(1, min(request.args.get("limit", 100, type=int), 500))
    offset = max(0, request.args.get("offset", 0, type=int))
    try:
        orders, total = purchase_order_service.list_purchase_orders(
            status=request.args.get("status"),
            supplier_id=request.args.get("supplier_id", type=int),
            limit=limit,
            offset=offset,
        )
    except BackofficeError as e:
        return error_response(e)
    return ok({
        "items": [po.to_dict(include_items=False) for po in orders],
        "count": total,
        "limit": limit,
        "offset": offset,
    })


@purchase_orders_bp.post("")
@require_auth
@require_role(*PURCHASING_ROLES)
def create_purchase_order_route():
    """
    Request body:
    {
        "supplier_id": 1,                   // required
        "order_date": "2026-03-01",         // optional, defaults to today
        "expected_delivery_date": "...",    // optional
        "invoice_number": "INV-42",         // optional, unique
        "notes": "...",
        "items": [                          // required, at least one
            {"ingredient_id": 1, "ordered_quantity": "2", "ordered_unit": "sack",
             "base_units_per_order_unit": "25000", "unit_cost": "40.00"}
        ]
    }
    """
    data = request.get_json(silent=True) or {}
    supplier_id = first_present(data, "supplier_id", "supplierId")
    if supplier_id is None:
        return fail("supplier_id is required", 400)

    try:
        po = purchase_order_service.create_purchase_order(
            supplier_id=supplier_id,
            items=data.get("items"),
            actor=g.actor,
            order_date=first_present(data, "order_date", "orderDate"),
            expected_delivery_date=first_present(data, "expected_delivery_date", "expectedDeliveryDate"),
            invoice_number=first_present(data, "invoice_number", "invoiceNumber"),
            notes=data.get("notes"),
        )
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create purchase order")
        return fail("Internal server error", 500)
    return ok(po.to_dict(), 201)


@purchase_orders_bp.get("/<int:po_id>")
@require_auth
def get_purchase_order_route(po_id: int):
    try:
        po = purchase_order_service.get_purchase_order(po_id)
    except BackofficeError as e:
        return error_response(e)
    return ok(po.to_dict())


@purchase_orders_bp.patch("/<int:po_id>/status")
@require_auth
@require_role(*PURCHASING_ROLES)
def update_purchase_order_status_route(po_id: int):
    """
    Request body:
    {"status": "SUBMITTED|APPROVED|CANCELLED|RECEIVED", "location_id": 1}

    location_id is required for RECEIVED (receives everything outstanding).
    """
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not isinstance(status, str) or not status.strip():
        return fail("status is required", 400)

    try:
        po = purchase_order_service.update_purchase_order_status(
            po_id,
            status=status.strip().upper(),
            actor=g.actor,
            location_id=first_present(data, "location_id", "locationId"),
        )
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update purchase order status")
        return fail("Internal server error", 500)
    return ok(po.to_dict())


@purchase_orders_bp.post("/<int:po_id>/receive")
@require_auth
@require_role(*RECEIVING_ROLES)
def receive_purchase_order_route(po_id: int):
    """
    Receive stock against the order.

    Request body:
    {
        "location_id": 1,                     // required
        "lines": [                            // optional; omit to receive all outstanding
            {"item_id": 7, "quantity": "1", "expiry_date": "2026-06-01"}
        ]
    }
    """
    data = request.get_json(silent=True) or {}
    location_id = first_present(data, "location_id", "locationId")
    if location_id is None:
        return fail("location_id is required", 400)

    try:
        po = purchase_order_service.receive_purchase_order(
            po_id,
            location_id=location_id,
            actor=g.actor,
            lines=data.get("lines"),
        )
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to receive purchase order")
        return fail("Internal server error", 500)

    current_app.logger.info(
        "Purchase order %s received at location %s by user %s (status=%s)",
        po.id, location_id, g.actor.user_id, po.status,
    )
    return ok(po.to_dict())
