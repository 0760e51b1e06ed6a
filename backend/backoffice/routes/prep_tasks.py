# Overview: Flask API routes for prep task operations; parses input and returns JSON responses.

"""
Prep Task Routes

SECURITY: All routes require authentication.
- Create, delete: MANAGER / OWNER
- Assign / unassign / cancel (PATCH status ASSIGNED, PENDING, CANCELLED):
  MANAGER / OWNER
- Claim, start, complete, report problem: any staff member; start,
  complete and report problem are further limited to the assignee or a
  manager by the service

Request bodies accept snake_case or camelCase keys (prepRecipeId,
targetQuantity, locationId, assignedToUserId, quantityRun).
"""

from flask import Blueprint, request, current_app, g

from ..decorators import require_auth, require_role
from ..errors import BackofficeError, ValidationError
from ..models.auth import MANAGEMENT_ROLES
from ..models.prep import TASK_ASSIGNED, TASK_CANCELLED, TASK_COMPLETED, TASK_PENDING
from ..responses import error_response, fail, ok
from ..services import prep_task_service
from ..validation import first_present, parse_bool_arg


prep_tasks_bp = Blueprint("prep_tasks", __name__, url_prefix="/api/prep-tasks")

MANAGER_ONLY_TARGETS = {TASK_ASSIGNED, TASK_PENDING, TASK_CANCELLED}


@prep_tasks_bp.post("")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def create_prep_task_route():
    """
    Create a prep task.

    Request body:
    {
        "prep_recipe_id": 1,         // required
        "target_quantity": "500",    // required, > 0
        "location_id": 1,            // required
        "notes": "...",              // optional
        "assigned_to_user_id": 3     // optional -> status ASSIGNED
    }

    Returns:
        201 with the created task
    """
    data = request.get_json(silent=True) or {}

    recipe_id = first_present(data, "prep_recipe_id", "prepRecipeId", "recipe_id")
    target_quantity = first_present(data, "target_quantity", "targetQuantity")
    location_id = first_present(data, "location_id", "locationId")

    if recipe_id is None:
        return fail("prep_recipe_id is required", 400)
    if target_quantity is None:
        return fail("target_quantity is required", 400)
    if location_id is None:
        return fail("location_id is required", 400)

    try:
        task = prep_task_service.create_prep_task(
            recipe_id=recipe_id,
            target_quantity=target_quantity,
            location_id=location_id,
            actor=g.actor,
            notes=data.get("notes"),
            assigned_to_user_id=first_present(data, "assigned_to_user_id", "assignedToUserId"),
        )
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create prep task")
        return fail("Internal server error", 500)

    return ok(task.to_dict(), 201)


@prep_tasks_bp.get("")
@require_auth
def list_prep_tasks_route():
    """
    List prep tasks.

    Query parameters:
    - status: comma-separated statuses (e.g. PENDING,ASSIGNED)
    - assignedToUserId / assigned_to_user_id: me | unassigned | <user id>
    - includeCompleted / include_completed: include COMPLETED and CANCELLED
      when no status filter is given (default false)
    - location_id, recipe_id: optional filters
    """
    args = request.args
    status_raw = args.get("status")
    statuses = [s.strip().upper() for s in status_raw.split(",") if s.strip()] if status_raw else None

    try:
        tasks = prep_task_service.list_prep_tasks(
            actor=g.actor,
            statuses=statuses,
            assigned_to=first_present(args, "assignedToUserId", "assigned_to_user_id"),
            include_completed=parse_bool_arg(
                first_present(args, "includeCompleted", "include_completed"),
                "includeCompleted",
            ),
            location_id=args.get("location_id", type=int),
            recipe_id=args.get("recipe_id", type=int),
        )
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list prep tasks")
        return fail("Internal server error", 500)

    return ok([t.to_dict() for t in tasks])


@prep_tasks_bp.get("/<int:task_id>")
@require_auth
def get_prep_task_route(task_id: int):
    try:
        task = prep_task_service.get_prep_task(task_id)
    except BackofficeError as e:
        return error_response(e)
    return ok(task.to_dict())


@prep_tasks_bp.patch("/<int:task_id>")
@require_auth
def update_prep_task_route(task_id: int):
    """
    Drive the task state machine.

    Request body:
    {
        "status": "IN_PROGRESS",       // required target status
        "quantity_run": "500",         // required for COMPLETED
        "assigned_to_user_id": 3,      // required for ASSIGNED
        "notes": "..."                 // optional, used with PROBLEM
    }
    """
    data = request.get_json(silent=True) or {}
    status = data.get("status")
    if not isinstance(status, str) or not status.strip():
        return fail("status is required", 400)
    status = status.strip().upper()

    if status in MANAGER_ONLY_TARGETS and not g.actor.is_manager:
        return fail("Permission denied", 403, required_roles=sorted(MANAGEMENT_ROLES))

    try:
        task = prep_task_service.apply_status_change(
            task_id,
            status=status,
            actor=g.actor,
            quantity_run=first_present(data, "quantity_run", "quantityRun", "actualQuantityRun"),
            assigned_to_user_id=first_present(data, "assigned_to_user_id", "assignedToUserId"),
            notes=data.get("notes"),
        )
    except ValidationError as e:
        return error_response(e)
    except BackofficeError as e:
        current_app.logger.info("Prep task %s change to %s rejected: %s", task_id, status, e)
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update prep task")
        return fail("Internal server error", 500)

    if status == TASK_COMPLETED:
        current_app.logger.info(
            "Prep task %s completed by user %s (quantity_run=%s)",
            task.id, g.actor.user_id, task.quantity_run,
        )
    return ok(task.to_dict())


@prep_tasks_bp.delete("/<int:task_id>")
@require_auth
@require_role(*MANAGEMENT_ROLES)
def delete_prep_task_route(task_id: int):
    try:
        prep_task_service.delete_prep_task(task_id)
    except BackofficeError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to delete prep task")
        return fail("Internal server error", 500)
    return ok({"id": task_id, "deleted": True})
