# Overview: Flask API routes for storage locations.

from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_role
from ..errors import BackofficeError
from ..models.auth import MANAGEMENT_ROLES
from ..responses import error_response, fail, ok
from ..services import location_service
from ..validation import parse_bool_arg


locations_bp = Blueprint("locations", __name__, url_prefix="/api/storage-locations")


@locations_bp.get("")
@require_auth
def list_locations_route():
    try:
        locations = location_service.list_locations(
            include_inactive=parse_bool_arg(request.args.get("include_inactive"), "include_inactive"),
        )
    except BackofficeError as e:
        return error_response(e)
    return ok([loc.to_dict() for loc in locations])


@locations_bp.post("")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def create_location_route():
    """
    Request body:
    {"name": "Walk-in", "type": "STORAGE|FREEZER|SHELF|WORKSTATION_STORAGE", "description": "..."}
    """
    data = request.get_json(silent=True) or {}
    try:
        location = location_service.create_location(data)
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create storage location")
        return fail("Internal server error", 500)
    return ok(location.to_dict(), 201)


@locations_bp.patch("/<int:location_id>")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def update_location_route(location_id: int):
    data = request.get_json(silent=True) or {}
    try:
        location = location_service.update_location(location_id, data)
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update storage location")
        return fail("Internal server error", 500)
    return ok(location.to_dict())
