# Overview: Flask API routes for supplier operations; parses input and returns JSON responses.

from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_role
from ..errors import BackofficeError
from ..models.auth import PURCHASING_ROLES
from ..responses import error_response, fail, ok
from ..services import supplier_service


suppliers_bp = Blueprint("suppliers", __name__, url_prefix="/api/suppliers")


@suppliers_bp.get("")
@require_auth
def list_suppliers_route():
    suppliers = supplier_service.list_suppliers(search=request.args.get("search"))
    return ok([s.to_dict() for s in suppliers])


@suppliers_bp.post("")
@require_auth
@require_role(*PURCHASING_ROLES)
def create_supplier_route():
    """
    Request body:
    {"name": "Mill Co", "contact_name": "...", "contact_phone": "...",
     "contact_email": "...", "address": "...", "notes": "..."}
    """
    data = request.get_json(silent=True) or {}
    try:
        supplier = supplier_service.create_supplier(data)
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create supplier")
        return fail("Internal server error", 500)
    return ok(supplier.to_dict(), 201)


@suppliers_bp.get("/<int:supplier_id>")
@require_auth
def get_supplier_route(supplier_id: int):
    try:
        supplier = supplier_service.get_supplier(supplier_id)
    except BackofficeError as e:
        return error_response(e)
    return ok(supplier.to_dict())


@suppliers_bp.put("/<int:supplier_id>")
@require_auth
@require_role(*PURCHASING_ROLES)
def update_supplier_route(supplier_id: int):
    data = request.get_json(silent=True) or {}
    try:
        supplier = supplier_service.update_supplier(supplier_id, data)
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update supplier")
        return fail("Internal server error", 500)
    return ok(supplier.to_dict())


@suppliers_bp.delete("/<int:supplier_id>")
@require_auth
@require_role(*PURCHASING_ROLES)
def delete_supplier_route(supplier_id: int):
    try:
        supplier_service.delete_supplier(supplier_id)
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete supplier")
        return fail("Internal server error", 500)
    return ok({"id": supplier_id, "deleted": True})
