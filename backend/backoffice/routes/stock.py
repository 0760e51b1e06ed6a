# Overview: Flask API routes for stock holding operations; parses input and returns JSON responses.

"""
Stock Holding Routes

- GET    /api/stock-holdings?ingredient_id=&location_id=&non_empty=
- POST   /api/stock-holdings          add a batch (any staff)
- PATCH  /api/stock-holdings/<id>     {quantity} sets, {adjustment} adjusts
- DELETE /api/stock-holdings/<id>     MANAGER / OWNER, corrections only
"""

from flask import Blueprint, request, current_app, g

from ..decorators import require_auth, require_role
from ..errors import BackofficeError
from ..models.auth import MANAGEMENT_ROLES
from ..responses import error_response, fail, ok
from ..services import stock_service
from ..validation import first_present, parse_bool_arg


stock_bp = Blueprint("stock", __name__, url_prefix="/api/stock-holdings")


@stock_bp.get("")
@require_auth
def list_holdings_route():
    try:
        holdings = stock_service.list_holdings(
            ingredient_id=request.args.get("ingredient_id", type=int),
            location_id=request.args.get("location_id", type=int),
            non_empty=parse_bool_arg(request.args.get("non_empty"), "non_empty"),
        )
    except BackofficeError as e:
        return error_response(e)
    return ok([h.to_dict() for h in holdings])


@stock_bp.post("")
@require_auth
def create_holding_route():
    """
    Record a new batch.

    Request body:
    {
        "ingredient_id": 1,          // required
        "location_id": 1,            // required
        "quantity": "5000",          // required, > 0, ingredient base unit
        "unit_cost": "0.01",         // optional, defaults to ingredient cost
        "purchase_date": "2026-01-31",  // optional
        "expiry_date": "2026-02-28"     // optional
    }
    """
    data = request.get_json(silent=True) or {}

    ingredient_id = first_present(data, "ingredient_id", "ingredientId")
    location_id = first_present(data, "location_id", "locationId")
    quantity = data.get("quantity")

    if ingredient_id is None:
        return fail("ingredient_id is required", 400)
    if location_id is None:
        return fail("location_id is required", 400)
    if quantity is None:
        return fail("quantity is required", 400)

    try:
        holding = stock_service.add_holding(
            ingredient_id=ingredient_id,
            location_id=location_id,
            quantity=quantity,
            unit_cost=first_present(data, "unit_cost", "costAtAcquisition"),
            purchase_date=first_present(data, "purchase_date", "purchaseDate"),
            expiry_date=first_present(data, "expiry_date", "expiryDate"),
            actor_user_id=g.actor.user_id,
        )
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create stock holding")
        return fail("Internal server error", 500)

    return ok(holding.to_dict(), 201)


@stock_bp.patch("/<int:holding_id>")
@require_auth
def update_holding_route(holding_id: int):
    """
    Correct a holding.

    Request body (exactly one):
    {"quantity": "1200"}     // overwrite, >= 0
    {"adjustment": "-50"}    // add/subtract, non-zero, result >= 0
    """
    data = request.get_json(silent=True) or {}
    has_quantity = "quantity" in data
    has_adjustment = "adjustment" in data

    if has_quantity == has_adjustment:
        return fail("Provide exactly one of quantity or adjustment", 400)

    try:
        if has_quantity:
            holding = stock_service.set_holding_quantity(
                holding_id, data["quantity"], actor_user_id=g.actor.user_id
            )
        else:
            holding = stock_service.adjust_holding_quantity(
                holding_id, data["adjustment"], actor_user_id=g.actor.user_id
            )
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update stock holding")
        return fail("Internal server error", 500)

    return ok(holding.to_dict())


@stock_bp.delete("/<int:holding_id>")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def delete_holding_route(holding_id: int):
    try:
        stock_service.delete_holding(holding_id, actor_user_id=g.actor.user_id)
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete stock holding")
        return fail("Internal server error", 500)
    return ok({"id": holding_id, "deleted": True})
