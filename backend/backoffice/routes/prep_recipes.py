# Overview: Flask API routes for prep recipe operations; parses input and returns JSON responses.

"""
Prep Recipe Routes

SECURITY: All routes require authentication.
- Read, requirements preview, execute: any staff member
- Create, update: OWNER / MANAGER / COOK
- Delete: OWNER / MANAGER (409 while tasks reference the recipe)
"""

from flask import Blueprint, request, current_app, g

from ..decorators import require_auth, require_role
from ..errors import BackofficeError
from ..models.auth import KITCHEN_ROLES, MANAGEMENT_ROLES
from ..quantities import decimal_str
from ..responses import error_response, fail, ok
from ..services import prep_recipe_service, prep_task_service
from ..validation import first_present


prep_recipes_bp = Blueprint("prep_recipes", __name__, url_prefix="/api/prep-recipes")


def _serialize_preview(preview: dict) -> dict:
    return {
        "recipe_id": preview["recipe_id"],
        "target_quantity": decimal_str(preview["target_quantity"]),
        "location_id": preview["location_id"],
        "can_run": preview["can_run"],
        "estimated_cost": decimal_str(preview["estimated_cost"]),
        "estimated_labor_time": decimal_str(preview["estimated_labor_time"]),
        "inputs": [
            {
                "ingredient_id": row["ingredient"].id,
                "ingredient_name": row["ingredient"].name,
                "unit": row["ingredient"].unit,
                "required": decimal_str(row["required"]),
                "available": decimal_str(row["available"]),
                "sufficient": row["sufficient"],
            }
            for row in preview["inputs"]
        ],
    }


@prep_recipes_bp.get("")
@require_auth
def list_prep_recipes_route():
    recipes = prep_recipe_service.list_prep_recipes(
        output_ingredient_id=request.args.get("output_ingredient_id", type=int),
    )
    return ok([r.to_dict() for r in recipes])


@prep_recipes_bp.post("")
@require_auth
@require_role(*KITCHEN_ROLES)
def create_prep_recipe_route():
    """
    Request body:
    {
        "name": "Dough",                    // required, unique
        "output_ingredient_id": 3,          // required, prepared ingredient
        "output_quantity": "1000",          // required, > 0
        "inputs": [                         // required, at least one
            {"ingredient_id": 1, "quantity": "600"},
            {"ingredient_id": 2, "quantity": "400"}
        ],
        "estimated_labor_time": 30,         // optional, minutes
        "description": "...", "notes": "..."
    }
    """
    data = request.get_json(silent=True) or {}
    try:
        recipe = prep_recipe_service.create_prep_recipe(
            name=data.get("name"),
            output_ingredient_id=first_present(data, "output_ingredient_id", "outputIngredientId"),
            output_quantity=first_present(data, "output_quantity", "outputQuantity"),
            inputs=data.get("inputs"),
            estimated_labor_time=first_present(data, "estimated_labor_time", "estimatedLaborTime"),
            description=data.get("description"),
            notes=data.get("notes"),
        )
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create prep recipe")
        return fail("Internal server error", 500)
    return ok(recipe.to_dict(), 201)


@prep_recipes_bp.get("/<int:recipe_id>")
@require_auth
def get_prep_recipe_route(recipe_id: int):
    try:
        recipe = prep_recipe_service.get_prep_recipe(recipe_id)
    except BackofficeError as e:
        return error_response(e)
    return ok(recipe.to_dict())


@prep_recipes_bp.patch("/<int:recipe_id>")
@require_auth
@require_role(*KITCHEN_ROLES)
def update_prep_recipe_route(recipe_id: int):
    """Partial update; "inputs" replaces every input line."""
    data = request.get_json(silent=True) or {}
    try:
        recipe = prep_recipe_service.update_prep_recipe(recipe_id, data)
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update prep recipe")
        return fail("Internal server error", 500)
    return ok(recipe.to_dict())


@prep_recipes_bp.delete("/<int:recipe_id>")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def delete_prep_recipe_route(recipe_id: int):
    try:
        prep_recipe_service.delete_prep_recipe(recipe_id)
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete prep recipe")
        return fail("Internal server error", 500)
    return ok({"id": recipe_id, "deleted": True})


@prep_recipes_bp.get("/<int:recipe_id>/requirements")
@require_auth
def prep_recipe_requirements_route(recipe_id: int):
    """
    Preview a run.

    Query parameters:
    - quantity: target output quantity (required)
    - location_id: where the run would happen (required)
    """
    quantity = request.args.get("quantity")
    location_id = request.args.get("location_id", type=int)
    if not quantity:
        return fail("quantity is required", 400)
    if location_id is None:
        return fail("location_id is required", 400)

    try:
        preview = prep_recipe_service.preview_requirements(recipe_id, quantity, location_id)
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to preview prep recipe requirements")
        return fail("Internal server error", 500)
    return ok(_serialize_preview(preview))


@prep_recipes_bp.post("/<int:recipe_id>/execute")
@require_auth
def execute_prep_recipe_route(recipe_id: int):
    """
    Run the recipe immediately as the current user.

    Request body:
    {"quantity_run": "500", "location_id": 1, "notes": "..."}

    Returns:
        201 with the completed prep task
    """
    data = request.get_json(silent=True) or {}
    quantity_run = first_present(data, "quantity_run", "quantityRun", "quantity")
    location_id = first_present(data, "location_id", "locationId")
    if quantity_run is None:
        return fail("quantity_run is required", 400)
    if location_id is None:
        return fail("location_id is required", 400)

    try:
        task = prep_task_service.execute_prep_recipe(
            recipe_id=recipe_id,
            quantity_run=quantity_run,
            location_id=location_id,
            actor=g.actor,
            notes=data.get("notes"),
        )
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to execute prep recipe")
        return fail("Internal server error", 500)

    current_app.logger.info(
        "Prep recipe %s executed by user %s as task %s (quantity_run=%s)",
        recipe_id, g.actor.user_id, task.id, task.quantity_run,
    )
    return ok(task.to_dict(), 201)
