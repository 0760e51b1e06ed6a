# Overview: Service-layer operations for ingredient master data.

"""
Ingredient Service

PURCHASED vs PREPARED:
- Purchased ingredients carry a cost_per_unit set by the user (or updated
  from supplier invoices).
- Prepared ingredients start at cost 0; the value is recomputed whenever a
  prep task produces them (see prep_task_service).
- Flipping a prepared ingredient back to purchased requires a cost in the
  same request.

DELETION:
An ingredient that anything refers to (holdings, recipes, purchase order
lines, waste) cannot be deleted. The check runs before the DELETE so the
caller gets a ConflictError naming the reference instead of an FK failure.
"""

from __future__ import annotations

from decimal import Decimal

from sqlalchemy.exc import IntegrityError

from ..errors import ConflictError, NotFoundError, ValidationError
from ..extensions import db
from ..models import (
    Ingredient,
    PrepRecipe,
    PrepRecipeInput,
    PurchaseOrderItem,
    StockHolding,
    WasteRecord,
)
from ..validation import ModelValidationPolicy, validate_payload
from .concurrency import atomic


INGREDIENT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "description", "unit", "cost_per_unit", "is_prepared"},
    required_on_create={"name", "unit"},
)


def get_ingredient(ingredient_id: int) -> Ingredient:
    ingredient = db.session.get(Ingredient, ingredient_id)
    if not ingredient:
        raise NotFoundError(f"Ingredient {ingredient_id} not found")
    return ingredient


def list_ingredients(*, is_prepared: bool | None = None, search: str | None = None) -> list[Ingredient]:
    q = db.session.query(Ingredient)
    if is_prepared is not None:
        q = q.filter(Ingredient.is_prepared.is_(is_prepared))
    if search:
        q = q.filter(Ingredient.name.ilike(f"%{search.strip()}%"))
    return q.order_by(Ingredient.name.asc()).all()


def _check_cost(patch: dict) -> None:
    cost = patch.get("cost_per_unit")
    if cost is not None and cost < 0:
        raise ValidationError("cost_per_unit must be >= 0")


def create_ingredient(payload: dict) -> Ingredient:
    """
    Create an ingredient.

    A prepared ingredient's cost is always stored as 0 on creation.
    """
    patch = validate_payload(model=Ingredient, payload=payload, policy=INGREDIENT_POLICY, partial=False)
    _check_cost(patch)

    if db.session.query(Ingredient).filter_by(name=patch["name"]).first():
        raise ConflictError(f"Ingredient '{patch['name']}' already exists")

    if patch.get("is_prepared"):
        patch["cost_per_unit"] = Decimal("0")
    elif patch.get("cost_per_unit") is None:
        patch["cost_per_unit"] = Decimal("0")

    ingredient = Ingredient(**patch)
    try:
        with atomic():
            db.session.add(ingredient)
    except IntegrityError:
        raise ConflictError(f"Ingredient '{patch['name']}' already exists")
    return ingredient


def update_ingredient(ingredient_id: int, payload: dict) -> Ingredient:
    ingredient = get_ingredient(ingredient_id)
    patch = validate_payload(model=Ingredient, payload=payload, policy=INGREDIENT_POLICY, partial=True)
    _check_cost(patch)

    if "name" in patch and patch["name"] != ingredient.name:
        if db.session.query(Ingredient).filter_by(name=patch["name"]).first():
            raise ConflictError(f"Ingredient '{patch['name']}' already exists")

    becomes_prepared = patch.get("is_prepared") is True and not ingredient.is_prepared
    becomes_purchased = patch.get("is_prepared") is False and ingredient.is_prepared

    if becomes_prepared:
        patch["cost_per_unit"] = Decimal("0")
    elif becomes_purchased:
        if patch.get("cost_per_unit") is None:
            raise ValidationError("cost_per_unit is required when switching to a purchased ingredient")
    elif ingredient.is_prepared and patch.get("is_prepared") is not False:
        # Prepared costs are derived from prep runs
        patch.pop("cost_per_unit", None)

    if patch.get("is_prepared") is False and ingredient.is_prepared:
        producing = db.session.query(PrepRecipe.id).filter_by(output_ingredient_id=ingredient.id).first()
        if producing:
            raise ConflictError(
                f"Ingredient {ingredient.name} is the output of a prep recipe and must stay prepared"
            )

    with atomic():
        for key, value in patch.items():
            setattr(ingredient, key, value)
    return ingredient


def _reference_blockers(ingredient_id: int) -> list[str]:
    checks = [
        ("stock holdings", db.session.query(StockHolding.id).filter_by(ingredient_id=ingredient_id)),
        ("prep recipe inputs", db.session.query(PrepRecipeInput.id).filter_by(ingredient_id=ingredient_id)),
        ("prep recipe outputs", db.session.query(PrepRecipe.id).filter_by(output_ingredient_id=ingredient_id)),
        ("purchase order items", db.session.query(PurchaseOrderItem.id).filter_by(ingredient_id=ingredient_id)),
        ("waste records", db.session.query(WasteRecord.id).filter_by(ingredient_id=ingredient_id)),
    ]
    return [label for label, q in checks if q.first() is not None]


def delete_ingredient(ingredient_id: int) -> None:
    """
    Delete an unreferenced ingredient.

    Raises:
        NotFoundError: ingredient does not exist
        ConflictError: ingredient is still referenced
    """
    ingredient = get_ingredient(ingredient_id)
    blockers = _reference_blockers(ingredient.id)
    if blockers:
        raise ConflictError(
            f"Cannot delete ingredient {ingredient.name}: referenced by {', '.join(blockers)}"
        )
    with atomic():
        db.session.delete(ingredient)
