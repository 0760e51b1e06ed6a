# Overview: Service-layer operations for prep recipes; encapsulates business logic and database work.

"""
Prep Recipe Service

A prep recipe says: these input quantities yield output_quantity of one
prepared ingredient. Requirements for any other target are a straight
linear scale of the inputs (compute_required_inputs), used both for the
preview shown before a run and for the actual deduction at completion.

VALIDATION (create and update):
- name unique and non-blank
- output ingredient exists and is_prepared
- output_quantity > 0
- at least one input; each input quantity > 0, no duplicate ingredients,
  the output ingredient is not one of its own inputs
- estimated_labor_time (minutes) >= 0 when given

Updating inputs replaces the whole list.

ROUNDING:
Each requirement is quantized to 4 decimal places per run (half-up).
Repeated fractional runs therefore drift from the exact total by up to
0.0001 per input per run; a 1 -> 3 recipe run three times at target 1
deducts 0.9999, not 1. Runs whose scale factor divides the inputs exactly
are not affected.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import Ingredient, PrepRecipe, PrepRecipeInput, PrepTask
from ..quantities import ZERO, parse_quantity, quantize_cost, quantize_quantity
from .concurrency import atomic
from .ingredient_service import get_ingredient
from .location_service import get_location
from .stock_service import check_availability


def get_prep_recipe(recipe_id: int) -> PrepRecipe:
    recipe = db.session.get(PrepRecipe, recipe_id)
    if not recipe:
        raise NotFoundError(f"Prep recipe {recipe_id} not found")
    return recipe


def list_prep_recipes(*, output_ingredient_id: int | None = None) -> list[PrepRecipe]:
    q = db.session.query(PrepRecipe)
    if output_ingredient_id is not None:
        q = q.filter(PrepRecipe.output_ingredient_id == output_ingredient_id)
    return q.order_by(PrepRecipe.name.asc()).all()


def compute_required_inputs(recipe: PrepRecipe, target_output_quantity) -> list[tuple[Ingredient, Decimal]]:
    """
    Scale every input linearly: required = input_qty * target / output_quantity.

    Pure; results are quantized to 4 decimal places.
    """
    target = Decimal(target_output_quantity)
    output_quantity = Decimal(recipe.output_quantity)
    if output_quantity <= ZERO:
        raise ValidationError(f"Prep recipe {recipe.name} has a non-positive output quantity")
    return [
        (line.ingredient, quantize_quantity(Decimal(line.quantity) * target / output_quantity))
        for line in recipe.inputs
    ]


def _parse_labor_time(value) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise ValidationError("estimated_labor_time must be a whole number of minutes")
    try:
        minutes = int(value)
    except ValueError:
        raise ValidationError("estimated_labor_time must be a whole number of minutes")
    if minutes < 0:
        raise ValidationError("estimated_labor_time must be >= 0")
    return minutes


def _resolve_output_ingredient(ingredient_id) -> Ingredient:
    if ingredient_id is None:
        raise ValidationError("output_ingredient_id is required")
    ingredient = get_ingredient(ingredient_id)
    if not ingredient.is_prepared:
        raise ValidationError(f"Output ingredient {ingredient.name} must be a prepared ingredient")
    return ingredient


def _build_inputs(raw_inputs, output_ingredient_id: int) -> list[PrepRecipeInput]:
    if not isinstance(raw_inputs, list) or not raw_inputs:
        raise ValidationError("inputs must be a non-empty list")

    lines: list[PrepRecipeInput] = []
    seen: set[int] = set()
    for position, raw in enumerate(raw_inputs):
        if not isinstance(raw, dict):
            raise ValidationError("Each input must be an object with ingredient_id and quantity")
        ingredient_id = raw.get("ingredient_id")
        if ingredient_id is None:
            raise ValidationError(f"inputs[{position}].ingredient_id is required")
        quantity = parse_quantity(raw.get("quantity"), f"inputs[{position}].quantity")

        ingredient = get_ingredient(ingredient_id)
        if ingredient.id == output_ingredient_id:
            raise ValidationError(f"{ingredient.name} cannot be an input of its own recipe")
        if ingredient.id in seen:
            raise ValidationError(f"Duplicate input ingredient: {ingredient.name}")
        seen.add(ingredient.id)

        lines.append(PrepRecipeInput(ingredient_id=ingredient.id, quantity=quantity, position=position))
    return lines


def _name_taken(name: str, *, exclude_id: int | None = None) -> bool:
    q = db.session.query(PrepRecipe.id).filter(PrepRecipe.name == name)
    if exclude_id is not None:
        q = q.filter(PrepRecipe.id != exclude_id)
    return q.first() is not None


def create_prep_recipe(
    *,
    name: str,
    output_ingredient_id: int,
    output_quantity,
    inputs: list[dict],
    estimated_labor_time=None,
    description: str | None = None,
    notes: str | None = None,
) -> PrepRecipe:
    """
    Create a prep recipe with its input lines.

    Raises:
        ValidationError: any rule listed in the module docstring
        NotFoundError: unknown output or input ingredient
        ConflictError: name already used
    """
    name = (name or "").strip()
    if not name:
        raise ValidationError("name is required")
    out_qty = parse_quantity(output_quantity, "output_quantity")
    labor = _parse_labor_time(estimated_labor_time)
    output_ingredient = _resolve_output_ingredient(output_ingredient_id)
    lines = _build_inputs(inputs, output_ingredient.id)

    if _name_taken(name):
        raise ConflictError(f"Prep recipe '{name}' already exists")

    recipe = PrepRecipe(
        name=name,
        description=description,
        output_ingredient_id=output_ingredient.id,
        output_quantity=out_qty,
        estimated_labor_time=labor,
        notes=notes,
    )
    recipe.inputs = lines
    try:
        with atomic():
            db.session.add(recipe)
    except IntegrityError:
        raise ConflictError(f"Prep recipe '{name}' already exists")
    return recipe


def update_prep_recipe(recipe_id: int, data: dict) -> PrepRecipe:
    """
    Partial update. Keys absent from data are left alone; "inputs", when
    present, replaces every input line.

    Everything is validated before the recipe is touched.
    """
    recipe = get_prep_recipe(recipe_id)

    allowed = {"name", "description", "output_ingredient_id", "output_quantity", "inputs",
               "estimated_labor_time", "notes"}
    unknown = set(data) - allowed
    if unknown:
        raise ValidationError(f"Field not allowed: {', '.join(sorted(unknown))}")

    changes: dict = {}
    if "name" in data:
        name = (data["name"] or "").strip()
        if not name:
            raise ValidationError("name cannot be blank")
        if _name_taken(name, exclude_id=recipe.id):
            raise ConflictError(f"Prep recipe '{name}' already exists")
        changes["name"] = name
    if "output_quantity" in data:
        changes["output_quantity"] = parse_quantity(data["output_quantity"], "output_quantity")
    if "estimated_labor_time" in data:
        changes["estimated_labor_time"] = _parse_labor_time(data["estimated_labor_time"])
    if "output_ingredient_id" in data:
        changes["output_ingredient_id"] = _resolve_output_ingredient(data["output_ingredient_id"]).id
    for key in ("description", "notes"):
        if key in data:
            changes[key] = data[key]

    output_id = changes.get("output_ingredient_id", recipe.output_ingredient_id)
    new_lines = None
    if "inputs" in data:
        new_lines = _build_inputs(data["inputs"], output_id)
    elif any(line.ingredient_id == output_id for line in recipe.inputs):
        raise ValidationError("The output ingredient cannot also be an input")

    with atomic():
        for key, value in changes.items():
            setattr(recipe, key, value)
        if new_lines is not None:
            # Old lines must be gone before new ones hit the unique constraint
            recipe.inputs.clear()
            db.session.flush()
            recipe.inputs.extend(new_lines)
    return recipe


def delete_prep_recipe(recipe_id: int) -> None:
    """
    Delete a recipe that no prep task references.

    Raises ConflictError when tasks exist; task history is never orphaned.
    """
    recipe = get_prep_recipe(recipe_id)
    task_count = db.session.query(PrepTask).filter_by(recipe_id=recipe.id).count()
    if task_count:
        raise ConflictError(
            f"Cannot delete prep recipe {recipe.name}: {task_count} prep task(s) reference it"
        )
    with atomic():
        db.session.delete(recipe)


def preview_requirements(recipe_id: int, target_quantity, location_id: int) -> dict:
    """
    Required vs available per input for a hypothetical run, plus an
    estimated cost at current ingredient costs. No writes.
    """
    recipe = get_prep_recipe(recipe_id)
    target = parse_quantity(target_quantity, "quantity")
    get_location(location_id)

    rows = check_availability(compute_required_inputs(recipe, target), location_id)
    estimated_cost = sum(
        (row["required"] * Decimal(row["ingredient"].cost_per_unit or 0) for row in rows),
        ZERO,
    )
    labor = None
    if recipe.estimated_labor_time is not None:
        labor = quantize_quantity(Decimal(recipe.estimated_labor_time) * target / Decimal(recipe.output_quantity))

    return {
        "recipe_id": recipe.id,
        "target_quantity": target,
        "location_id": location_id,
        "inputs": rows,
        "can_run": all(row["sufficient"] for row in rows),
        "estimated_cost": quantize_cost(estimated_cost),
        "estimated_labor_time": labor,
    }
