# Overview: Flask API routes for waste records; parses input and returns JSON responses.

from flask import Blueprint, request, current_app, g

from ..decorators import require_auth
from ..errors import BackofficeError
from ..quantities import decimal_str
from ..responses import error_response, fail, ok
from ..services import waste_service
from ..time_utils import parse_iso_datetime
from ..validation import first_present


waste_bp = Blueprint("waste", __name__, url_prefix="/api/waste")


@waste_bp.get("")
@require_auth
def list_waste_route():
    """
    Query parameters:
    - ingredient_id, location_id, reason: optional filters
    - from_date, to_date: ISO-8601, inclusive
    - limit (default 100, max 500), offset
    """
    limit = max(1, min(request.args.get("limit", 100, type=int), 500))
    offset = max(0, request.args.get("offset", 0, type=int))

    try:
        from_date = parse_iso_datetime(request.args.get("from_date"))
        to_date = parse_iso_datetime(request.args.get("to_date"))
    except ValueError:
        return fail("Invalid date format", 400)

    try:
        records, total = waste_service.list_waste_records(
            ingredient_id=request.args.get("ingredient_id", type=int),
            location_id=request.args.get("location_id", type=int),
            reason=request.args.get("reason"),
            from_date=from_date,
            to_date=to_date,
            limit=limit,
            offset=offset,
        )
    except BackofficeError as e:
        return error_response(e)

    return ok({
        "items": [r.to_dict() for r in records],
        "count": total,
        "page_cost_value": decimal_str(waste_service.total_waste_cost(records)),
        "limit": limit,
        "offset": offset,
    })


@waste_bp.post("")
@require_auth
def record_waste_route():
    """
    Request body:
    {
        "ingredient_id": 1,       // required
        "location_id": 1,         // required
        "quantity": "250",        // required, > 0, ingredient base unit
        "reason": "SPOILAGE",     // SPOILAGE | PREPARATION | ACCIDENT | CLIENT_RETURN | OTHER
        "unit": "g",              // optional, must match the ingredient unit
        "notes": "..."
    }
    """
    data = request.get_json(silent=True) or {}
    ingredient_id = first_present(data, "ingredient_id", "ingredientId")
    location_id = first_present(data, "location_id", "locationId")
    if ingredient_id is None:
        return fail("ingredient_id is required", 400)
    if location_id is None:
        return fail("location_id is required", 400)
    if not data.get("reason"):
        return fail("reason is required", 400)

    try:
        record = waste_service.record_waste(
            ingredient_id=ingredient_id,
            location_id=location_id,
            quantity=data.get("quantity"),
            reason=str(data["reason"]).strip().upper(),
            actor=g.actor,
            unit=data.get("unit"),
            notes=data.get("notes"),
        )
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record waste")
        return fail("Internal server error", 500)

    current_app.logger.info(
        "Waste recorded: %s x %s at location %s (%s, cost %s)",
        record.ingredient_id, record.quantity, record.location_id, record.reason, record.cost_value,
    )
    return ok(record.to_dict(), 201)
