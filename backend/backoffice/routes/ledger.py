# Overview: Flask API routes for the stock ledger audit trail.

from flask import Blueprint, request

from ..decorators import require_auth, require_role
from ..errors import BackofficeError
from ..models.auth import PURCHASING_ROLES
from ..responses import error_response, fail, ok
from ..services import ledger_service
from ..time_utils import parse_iso_datetime


ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.get("")
@require_auth
@require_role(*PURCHASING_ROLES)
def list_ledger_route():
    """
    Read stock ledger events, newest first.

    Query parameters:
    - ingredient_id, location_id, event_type, prep_task_id, purchase_order_id
    - as_of: ISO-8601 (inclusive)
    - limit (default 100, max 500), offset
    """
    limit = max(1, min(request.args.get("limit", 100, type=int), 500))
    offset = max(0, request.args.get("offset", 0, type=int))
    try:
        as_of = parse_iso_datetime(request.args.get("as_of"))
    except ValueError:
        return fail("Invalid as_of format", 400)

    try:
        events, total = ledger_service.list_ledger_events(
            ingredient_id=request.args.get("ingredient_id", type=int),
            location_id=request.args.get("location_id", type=int),
            event_type=request.args.get("event_type"),
            prep_task_id=request.args.get("prep_task_id", type=int),
            purchase_order_id=request.args.get("purchase_order_id", type=int),
            as_of=as_of,
            limit=limit,
            offset=offset,
        )
    except BackofficeError as e:
        return error_response(e)

    return ok({
        "items": [ev.to_dict() for ev in events],
        "count": total,
        "limit": limit,
        "offset": offset,
    })
