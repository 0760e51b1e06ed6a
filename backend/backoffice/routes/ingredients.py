# Overview: Flask API routes for ingredient operations; parses input and returns JSON responses.

"""
Ingredient Routes

- GET    /api/ingredients?is_prepared=&search=
- POST   /api/ingredients                      KITCHEN or PURCHASING roles
- GET    /api/ingredients/stock?location_id=   aggregated stock per ingredient
- GET    /api/ingredients/<id>
- PATCH  /api/ingredients/<id>                 KITCHEN or PURCHASING roles
- DELETE /api/ingredients/<id>                 MANAGER / OWNER; 409 while referenced
"""

from flask import Blueprint, request, current_app

from ..decorators import require_auth, require_role
from ..errors import BackofficeError
from ..models.auth import KITCHEN_ROLES, MANAGEMENT_ROLES, PURCHASING_ROLES
from ..quantities import decimal_str
from ..responses import error_response, fail, ok
from ..services import ingredient_service, stock_service
from ..validation import parse_bool_arg


ingredients_bp = Blueprint("ingredients", __name__, url_prefix="/api/ingredients")

INGREDIENT_EDITORS = tuple(sorted(set(KITCHEN_ROLES) | set(PURCHASING_ROLES)))


def _serialize_stock_row(row: dict) -> dict:
    return {
        "ingredient_id": row["ingredient_id"],
        "name": row["name"],
        "unit": row["unit"],
        "is_prepared": row["is_prepared"],
        "cost_per_unit": decimal_str(row["cost_per_unit"]),
        "total_quantity": decimal_str(row["total_quantity"]),
        "total_value": decimal_str(row["total_value"]),
        "acquisition_value": decimal_str(row["acquisition_value"]),
    }


@ingredients_bp.get("")
@require_auth
def list_ingredients_route():
    raw_prepared = request.args.get("is_prepared")
    try:
        is_prepared = parse_bool_arg(raw_prepared, "is_prepared") if raw_prepared else None
        ingredients = ingredient_service.list_ingredients(
            is_prepared=is_prepared,
            search=request.args.get("search"),
        )
    except BackofficeError as e:
        return error_response(e)
    return ok([i.to_dict() for i in ingredients])


@ingredients_bp.post("")
@require_auth
@require_role(*INGREDIENT_EDITORS)
def create_ingredient_route():
    """
    Request body:
    {
        "name": "Flour",          // required, unique
        "unit": "g",              // required base unit
        "cost_per_unit": "0.01",  // optional; forced to 0 when is_prepared
        "is_prepared": false,     // optional
        "description": "..."      // optional
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        ingredient = ingredient_service.create_ingredient(data)
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create ingredient")
        return fail("Internal server error", 500)
    return ok(ingredient.to_dict(), 201)


@ingredients_bp.get("/stock")
@require_auth
def ingredient_stock_route():
    """Stock totals per ingredient, all locations or one (location_id)."""
    try:
        rows = stock_service.aggregate_by_ingredient(request.args.get("location_id", type=int))
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to aggregate ingredient stock")
        return fail("Internal server error", 500)
    return ok([_serialize_stock_row(r) for r in rows])


@ingredients_bp.get("/<int:ingredient_id>")
@require_auth
def get_ingredient_route(ingredient_id: int):
    try:
        ingredient = ingredient_service.get_ingredient(ingredient_id)
    except BackofficeError as e:
        return error_response(e)
    return ok(ingredient.to_dict())


@ingredients_bp.patch("/<int:ingredient_id>")
@require_auth
@require_role(*INGREDIENT_EDITORS)
def update_ingredient_route(ingredient_id: int):
    data = request.get_json(silent=True) or {}
    try:
        ingredient = ingredient_service.update_ingredient(ingredient_id, data)
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update ingredient")
        return fail("Internal server error", 500)
    return ok(ingredient.to_dict())


@ingredients_bp.delete("/<int:ingredient_id>")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def delete_ingredient_route(ingredient_id: int):
    try:
        ingredient_service.delete_ingredient(ingredient_id)
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete ingredient")
        return fail("Internal server error", 500)
    return ok({"id": ingredient_id, "deleted": True})
