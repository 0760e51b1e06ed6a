# Overview: Service-layer operations for prep tasks; encapsulates business logic and database work.

"""
Prep Task Service

WHY: A prep task is the only way prepared ingredients come into stock. It
tracks who is doing the work, and on completion it moves stock: inputs out,
output in, all in one transaction.

LIFECYCLE:
1. PENDING: created without an assignee; anyone may claim it
2. ASSIGNED: a manager handed it to someone
3. IN_PROGRESS: claimed (from PENDING) or started (from ASSIGNED)
4. COMPLETED: inputs consumed, output produced (terminal)
5. CANCELLED: dropped before completion, no stock effect (terminal)
6. PROBLEM: flagged as unable to complete, no stock effect (terminal)

    PENDING --claim--> IN_PROGRESS --complete--> COMPLETED
    PENDING <--reassign--> ASSIGNED --start--> IN_PROGRESS
    any non-terminal --cancel--> CANCELLED
    any non-terminal --report_problem--> PROBLEM

COMPLETION (quantity_run = R):
- required inputs = recipe inputs scaled by R / output_quantity
- pre-flight availability check at the task's location, before any write
- one transaction: guarded status flip, FEFO deduction of each input,
  output holding of R at cost (consumed input cost / R), prepared
  ingredient cost recomputed
- any failure rolls back all of it; a second completion is an invalid
  transition and never touches stock

CONCURRENCY:
Every status change is a guarded UPDATE ... WHERE status IN (expected).
Two concurrent completions cannot both flip the row, so stock moves once.

ACTOR:
Operations that care who is acting take an explicit Actor. Only the
assignee or a manager may start or complete an assigned task.
"""

from __future__ import annotations

from decimal import Decimal

from ..errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from ..extensions import db
from ..models import Ingredient, PrepTask, StockHolding, StockLedgerEvent
from ..models.inventory import HOLDING_SOURCE_PREP_TASK
from ..models.prep import (
    TASK_ASSIGNED,
    TASK_CANCELLED,
    TASK_COMPLETED,
    TASK_IN_PROGRESS,
    TASK_PENDING,
    TASK_PROBLEM,
    TASK_STATUSES,
    TASK_TERMINAL_STATUSES,
)
from ..quantities import ZERO, parse_quantity, quantize_cost
from ..time_utils import utcnow
from .auth_service import Actor, get_active_user
from .concurrency import atomic, guarded_transition
from .ledger_service import append_ledger_event
from .location_service import get_active_location
from .prep_recipe_service import compute_required_inputs, get_prep_recipe
from .stock_service import _add_holding_inner, _consume_inner, ensure_available


NON_TERMINAL_STATUSES = TASK_STATUSES - TASK_TERMINAL_STATUSES

# Filter keywords for assigned_to in list_prep_tasks
ASSIGNED_TO_ME = "me"
ASSIGNED_TO_NOBODY = "unassigned"


def get_prep_task(task_id: int) -> PrepTask:
    task = db.session.get(PrepTask, task_id)
    if not task:
        raise NotFoundError(f"Prep task {task_id} not found")
    return task


def list_prep_tasks(
    *,
    actor: Actor | None = None,
    statuses: list[str] | None = None,
    assigned_to: str | int | None = None,
    include_completed: bool = False,
    location_id: int | None = None,
    recipe_id: int | None = None,
) -> list[PrepTask]:
    """
    List prep tasks, newest first.

    statuses: explicit status filter. Without it, COMPLETED and CANCELLED
        tasks are hidden unless include_completed is set.
    assigned_to: "me" (requires actor), "unassigned", or a user id.
    """
    q = db.session.query(PrepTask)

    if statuses:
        invalid = [s for s in statuses if s not in TASK_STATUSES]
        if invalid:
            raise ValidationError(f"Invalid status filter: {', '.join(invalid)}")
        q = q.filter(PrepTask.status.in_(statuses))
    elif not include_completed:
        q = q.filter(PrepTask.status.notin_([TASK_COMPLETED, TASK_CANCELLED]))

    if assigned_to == ASSIGNED_TO_ME:
        if actor is None:
            raise ValidationError("assigned_to=me requires an authenticated user")
        q = q.filter(PrepTask.assigned_to_user_id == actor.user_id)
    elif assigned_to == ASSIGNED_TO_NOBODY:
        q = q.filter(PrepTask.assigned_to_user_id.is_(None))
    elif assigned_to is not None:
        try:
            assignee_id = int(assigned_to)
        except (TypeError, ValueError):
            raise ValidationError("assigned_to must be 'me', 'unassigned' or a user id")
        q = q.filter(PrepTask.assigned_to_user_id == assignee_id)

    if location_id is not None:
        q = q.filter(PrepTask.location_id == location_id)
    if recipe_id is not None:
        q = q.filter(PrepTask.recipe_id == recipe_id)

    return q.order_by(PrepTask.created_at.desc(), PrepTask.id.desc()).all()


def _resolve_assignee(user_id) -> int:
    if isinstance(user_id, bool):
        raise ValidationError("assigned_to_user_id must be a user id")
    try:
        user_id = int(user_id)
    except (TypeError, ValueError):
        raise ValidationError("assigned_to_user_id must be a user id")
    user = get_active_user(user_id)
    if not user:
        raise NotFoundError(f"Active user {user_id} not found")
    return user.id


def _require_assignee_or_manager(task: PrepTask, actor: Actor, action: str) -> None:
    if actor.is_manager:
        return
    if task.assigned_to_user_id != actor.user_id:
        raise PermissionDeniedError(f"Only the assignee or a manager can {action} prep task {task.id}")


def _record_task_event(task: PrepTask, event_type: str, actor: Actor | None, note: str | None = None) -> None:
    append_ledger_event(
        event_type=event_type,
        entity_type="prep_task",
        entity_id=task.id,
        location_id=task.location_id,
        actor_user_id=actor.user_id if actor else None,
        prep_task_id=task.id,
        note=note,
    )


def _transition(task_id: int, expected: set[str], values: dict) -> PrepTask:
    return guarded_transition(
        PrepTask,
        task_id,
        expected_statuses=expected,
        values=values,
        label="prep task",
    )


# =============================================================================
# CREATE / ASSIGN / START
# =============================================================================


def create_prep_task(
    *,
    recipe_id: int,
    target_quantity,
    location_id: int,
    actor: Actor | None = None,
    notes: str | None = None,
    assigned_to_user_id: int | None = None,
) -> PrepTask:
    """
    Create a prep task. With an assignee it starts ASSIGNED, otherwise PENDING.

    Raises:
        ValidationError: target_quantity <= 0
        NotFoundError: recipe, location or assignee missing
        ConflictError: inactive location
    """
    target = parse_quantity(target_quantity, "target_quantity")
    recipe = get_prep_recipe(recipe_id)
    get_active_location(location_id)
    assignee_id = _resolve_assignee(assigned_to_user_id) if assigned_to_user_id is not None else None

    now = utcnow()
    task = PrepTask(
        recipe_id=recipe.id,
        location_id=location_id,
        target_quantity=target,
        notes=notes,
        status=TASK_ASSIGNED if assignee_id else TASK_PENDING,
        assigned_to_user_id=assignee_id,
        assigned_at=now if assignee_id else None,
        created_by_user_id=actor.user_id if actor else None,
    )

    with atomic():
        db.session.add(task)
        db.session.flush()
        _record_task_event(task, "prep_task.created", actor, note=f"{recipe.name} x {target}")
    return task


def claim_prep_task(task_id: int, actor: Actor) -> PrepTask:
    """PENDING -> IN_PROGRESS, assigned to the claiming user."""
    get_prep_task(task_id)
    now = utcnow()
    with atomic():
        task = _transition(task_id, {TASK_PENDING}, {
            "status": TASK_IN_PROGRESS,
            "assigned_to_user_id": actor.user_id,
            "assigned_at": now,
            "started_at": now,
        })
        _record_task_event(task, "prep_task.claimed", actor)
    return task


def start_prep_task(task_id: int, actor: Actor) -> PrepTask:
    """ASSIGNED -> IN_PROGRESS. Assignee or manager only."""
    task = get_prep_task(task_id)
    if task.status != TASK_ASSIGNED:
        raise InvalidTransitionError(
            f"Cannot start prep task {task_id} from {task.status}",
            current_status=task.status,
            target_status=TASK_IN_PROGRESS,
        )
    _require_assignee_or_manager(task, actor, "start")

    with atomic():
        task = _transition(task_id, {TASK_ASSIGNED}, {
            "status": TASK_IN_PROGRESS,
            "started_at": utcnow(),
        })
        _record_task_event(task, "prep_task.started", actor)
    return task


def reassign_prep_task(task_id: int, user_id: int | None, actor: Actor | None = None) -> PrepTask:
    """
    Hand the task to someone else, or back to the pool.

    user_id None: PENDING with assignee and assigned_at cleared.
    Otherwise: ASSIGNED to that (active) user with a fresh assigned_at.
    Only PENDING and ASSIGNED tasks can be reassigned.
    """
    get_prep_task(task_id)
    assignee_id = _resolve_assignee(user_id) if user_id is not None else None

    if assignee_id is None:
        values = {"status": TASK_PENDING, "assigned_to_user_id": None, "assigned_at": None}
    else:
        values = {"status": TASK_ASSIGNED, "assigned_to_user_id": assignee_id, "assigned_at": utcnow()}

    with atomic():
        task = _transition(task_id, {TASK_PENDING, TASK_ASSIGNED}, values)
        _record_task_event(
            task,
            "prep_task.reassigned",
            actor,
            note=f"Assigned to user {assignee_id}" if assignee_id else "Unassigned",
        )
    return task


# =============================================================================
# COMPLETION
# =============================================================================


def _recompute_prepared_cost(ingredient: Ingredient) -> None:
    """
    Weighted average acquisition cost over the ingredient's non-empty holdings.

    Leaves cost_per_unit unchanged when nothing is on hand.
    """
    rows = (
        db.session.query(StockHolding.quantity, StockHolding.unit_cost)
        .filter(StockHolding.ingredient_id == ingredient.id, StockHolding.quantity > 0)
        .all()
    )
    total_qty = sum((Decimal(q) for q, _ in rows), ZERO)
    if total_qty <= ZERO:
        return
    total_value = sum((Decimal(q) * Decimal(c) for q, c in rows), ZERO)
    ingredient.cost_per_unit = quantize_cost(total_value / total_qty)


def _complete_inner(task: PrepTask, quantity_run: Decimal, actor: Actor) -> PrepTask:
    """
    Flip IN_PROGRESS -> COMPLETED and move the stock (no commit).

    The caller has already run the pre-flight availability check and owns
    the transaction.
    """
    recipe = task.recipe
    requirements = compute_required_inputs(recipe, quantity_run)
    task_id = task.id
    location_id = task.location_id

    task = _transition(task_id, {TASK_IN_PROGRESS}, {
        "status": TASK_COMPLETED,
        "quantity_run": quantity_run,
        "completed_at": utcnow(),
        "executed_by_user_id": actor.user_id,
    })

    total_cost = ZERO
    for ingredient, required in requirements:
        if required <= ZERO:
            continue
        consumed = _consume_inner(
            ingredient=ingredient,
            location_id=location_id,
            quantity=required,
            event_type="prep.input_consumed",
            entity_type="prep_task",
            entity_id=task_id,
            actor_user_id=actor.user_id,
            prep_task_id=task_id,
        )
        total_cost += sum((c.cost for c in consumed), ZERO)

    if quantity_run > ZERO:
        output = recipe.output_ingredient
        _add_holding_inner(
            ingredient=output,
            location_id=location_id,
            quantity=quantity_run,
            unit_cost=total_cost / quantity_run,
            purchase_date=utcnow().date(),
            source=HOLDING_SOURCE_PREP_TASK,
            prep_task_id=task_id,
            actor_user_id=actor.user_id,
            event_type="prep.output_produced",
            note=f"Prep task {task_id}",
        )
        db.session.flush()
        _recompute_prepared_cost(output)

    _record_task_event(task, "prep_task.completed", actor, note=f"Ran {quantity_run}")
    return task


def complete_prep_task(task_id: int, quantity_run, actor: Actor) -> PrepTask:
    """
    IN_PROGRESS -> COMPLETED, consuming inputs and producing output atomically.

    Raises:
        ValidationError: quantity_run < 0
        InvalidTransitionError: task is not IN_PROGRESS (incl. already completed)
        PermissionDeniedError: actor is neither assignee nor manager
        InsufficientStockError: an input is short at the task location;
            nothing is written
    """
    run = parse_quantity(quantity_run, "quantity_run", allow_zero=True)
    task = get_prep_task(task_id)
    if task.status != TASK_IN_PROGRESS:
        raise InvalidTransitionError(
            f"Cannot complete prep task {task_id} from {task.status}",
            current_status=task.status,
            target_status=TASK_COMPLETED,
        )
    _require_assignee_or_manager(task, actor, "complete")

    ensure_available(compute_required_inputs(task.recipe, run), task.location_id)

    with atomic():
        task = _complete_inner(task, run, actor)
    return task


def execute_prep_recipe(
    *,
    recipe_id: int,
    quantity_run,
    location_id: int,
    actor: Actor,
    notes: str | None = None,
) -> PrepTask:
    """
    Run a recipe right now: create a task already in progress for the actor
    and complete it, in one transaction.
    """
    run = parse_quantity(quantity_run, "quantity_run")
    recipe = get_prep_recipe(recipe_id)
    get_active_location(location_id)

    ensure_available(compute_required_inputs(recipe, run), location_id)

    now = utcnow()
    with atomic():
        task = PrepTask(
            recipe_id=recipe.id,
            location_id=location_id,
            target_quantity=run,
            notes=notes,
            status=TASK_IN_PROGRESS,
            assigned_to_user_id=actor.user_id,
            assigned_at=now,
            started_at=now,
            created_by_user_id=actor.user_id,
        )
        db.session.add(task)
        db.session.flush()
        _record_task_event(task, "prep_task.created", actor, note=f"Executed {recipe.name} x {run}")
        task = _complete_inner(task, run, actor)
    return task


# =============================================================================
# CANCEL / PROBLEM / DELETE
# =============================================================================


def cancel_prep_task(task_id: int, actor: Actor | None = None) -> PrepTask:
    """Any non-terminal status -> CANCELLED. No stock effects."""
    get_prep_task(task_id)
    with atomic():
        task = _transition(task_id, NON_TERMINAL_STATUSES, {"status": TASK_CANCELLED})
        _record_task_event(task, "prep_task.cancelled", actor)
    return task


def report_problem(task_id: int, notes: str | None, actor: Actor) -> PrepTask:
    """Any non-terminal status -> PROBLEM, optionally replacing the notes. Assignee or manager only."""
    task = get_prep_task(task_id)
    _require_assignee_or_manager(task, actor, "report a problem on")
    values = {"status": TASK_PROBLEM}
    if notes:
        values["notes"] = notes
    with atomic():
        task = _transition(task_id, NON_TERMINAL_STATUSES, values)
        _record_task_event(task, "prep_task.problem", actor, note=notes)
    return task


def delete_prep_task(task_id: int) -> None:
    """
    Delete a task that never moved stock and is not being worked on.

    Only PENDING, CANCELLED and PROBLEM tasks can be deleted.
    """
    task = get_prep_task(task_id)
    if task.status not in {TASK_PENDING, TASK_CANCELLED, TASK_PROBLEM}:
        raise ConflictError(f"Cannot delete prep task {task_id} in status {task.status}")
    with atomic():
        # Ledger history outlives the task; entity_id still names it
        db.session.query(StockLedgerEvent).filter(StockLedgerEvent.prep_task_id == task_id).update(
            {"prep_task_id": None}, synchronize_session=False
        )
        db.session.delete(task)


# =============================================================================
# PATCH DISPATCH
# =============================================================================


def apply_status_change(
    task_id: int,
    *,
    status: str,
    actor: Actor,
    quantity_run=None,
    assigned_to_user_id=None,
    notes: str | None = None,
) -> PrepTask:
    """
    Map a requested target status onto the matching operation.

        ASSIGNED    -> reassign to assigned_to_user_id
        PENDING     -> reassign to nobody
        IN_PROGRESS -> claim (from PENDING) or start (from ASSIGNED)
        COMPLETED   -> complete with quantity_run
        CANCELLED   -> cancel
        PROBLEM     -> report_problem
    """
    if status not in TASK_STATUSES:
        raise ValidationError(f"Invalid status. Must be one of: {', '.join(sorted(TASK_STATUSES))}")

    if status == TASK_ASSIGNED:
        if assigned_to_user_id is None:
            raise ValidationError("assigned_to_user_id is required to assign a task")
        return reassign_prep_task(task_id, assigned_to_user_id, actor)
    if status == TASK_PENDING:
        return reassign_prep_task(task_id, None, actor)
    if status == TASK_IN_PROGRESS:
        task = get_prep_task(task_id)
        if task.status == TASK_PENDING:
            return claim_prep_task(task_id, actor)
        return start_prep_task(task_id, actor)
    if status == TASK_COMPLETED:
        if quantity_run is None:
            raise ValidationError("quantity_run is required to complete a task")
        return complete_prep_task(task_id, quantity_run, actor)
    if status == TASK_CANCELLED:
        return cancel_prep_task(task_id, actor)
    return report_problem(task_id, notes, actor)
