from __future__ import annotations

from ..extensions import db
from ..quantities import decimal_str
from ..time_utils import to_utc_z


# Prep task statuses
TASK_PENDING = "PENDING"
TASK_ASSIGNED = "ASSIGNED"
TASK_IN_PROGRESS = "IN_PROGRESS"
TASK_COMPLETED = "COMPLETED"
TASK_CANCELLED = "CANCELLED"
TASK_PROBLEM = "PROBLEM"

TASK_STATUSES = {
    TASK_PENDING,
    TASK_ASSIGNED,
    TASK_IN_PROGRESS,
    TASK_COMPLETED,
    TASK_CANCELLED,
    TASK_PROBLEM,
}
TASK_TERMINAL_STATUSES = {TASK_COMPLETED, TASK_CANCELLED, TASK_PROBLEM}


class PrepRecipe(db.Model):
    """
    Static definition of a prep: N input ingredients -> one prepared output.

    output_quantity is the yield for one run of the listed input quantities.
    Requirements for any other target scale linearly (see
    prep_recipe_service.compute_required_inputs).
    """
    __tablename__ = "prep_recipes"
    __table_args__ = (
        db.UniqueConstraint("name", name="uq_prep_recipes_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)

    output_ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)
    output_quantity = db.Column(db.Numeric(14, 4), nullable=False)

    # Minutes for one run at output_quantity
    estimated_labor_time = db.Column(db.Integer, nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    output_ingredient = db.relationship("Ingredient", backref=db.backref("produced_by_recipes", lazy=True))
    inputs = db.relationship(
        "PrepRecipeInput",
        back_populates="recipe",
        cascade="all, delete-orphan",
        order_by="PrepRecipeInput.position",
        lazy="selectin",
    )

    def __repr__(self) -> str:
        return f"<PrepRecipe id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "output_ingredient_id": self.output_ingredient_id,
            "output_ingredient": self.output_ingredient.to_dict() if self.output_ingredient else None,
            "output_quantity": decimal_str(self.output_quantity),
            "estimated_labor_time": self.estimated_labor_time,
            "notes": self.notes,
            "inputs": [line.to_dict() for line in self.inputs],
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class PrepRecipeInput(db.Model):
    __tablename__ = "prep_recipe_inputs"
    __table_args__ = (
        db.UniqueConstraint("recipe_id", "ingredient_id", name="uq_prep_recipe_inputs_recipe_ingredient"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey("prep_recipes.id"), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey("ingredients.id"), nullable=False, index=True)
    quantity = db.Column(db.Numeric(14, 4), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    recipe = db.relationship("PrepRecipe", back_populates="inputs")
    ingredient = db.relationship("Ingredient", lazy="joined")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "ingredient_id": self.ingredient_id,
            "ingredient_name": self.ingredient.name if self.ingredient else None,
            "unit": self.ingredient.unit if self.ingredient else None,
            "quantity": decimal_str(self.quantity),
        }


class PrepTask(db.Model):
    """
    A unit of prep work over a recipe at a location.

    LIFECYCLE:
    PENDING -> IN_PROGRESS (claim)
    PENDING <-> ASSIGNED (reassign)
    ASSIGNED -> IN_PROGRESS (start)
    IN_PROGRESS -> COMPLETED (complete; consumes inputs, produces output)
    any non-terminal -> CANCELLED | PROBLEM

    COMPLETED, CANCELLED and PROBLEM are terminal. Status changes go through
    guarded UPDATEs (WHERE status = expected) so concurrent attempts cannot
    both succeed.
    """
    __tablename__ = "prep_tasks"
    __table_args__ = (
        db.Index("ix_prep_tasks_status", "status"),
        db.Index("ix_prep_tasks_assigned_to", "assigned_to_user_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    recipe_id = db.Column(db.Integer, db.ForeignKey("prep_recipes.id"), nullable=False, index=True)
    location_id = db.Column(db.Integer, db.ForeignKey("storage_locations.id"), nullable=False, index=True)

    target_quantity = db.Column(db.Numeric(14, 4), nullable=False)
    quantity_run = db.Column(db.Numeric(14, 4), nullable=True)

    status = db.Column(db.String(16), nullable=False, default=TASK_PENDING)
    notes = db.Column(db.Text, nullable=True)

    assigned_to_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    executed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    assigned_at = db.Column(db.DateTime(timezone=True), nullable=True)
    started_at = db.Column(db.DateTime(timezone=True), nullable=True)
    completed_at = db.Column(db.DateTime(timezone=True), nullable=True)
    updated_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
        onupdate=db.func.now(),
    )

    recipe = db.relationship("PrepRecipe", backref=db.backref("tasks", lazy=True))
    location = db.relationship("StorageLocation")
    assigned_to = db.relationship("User", foreign_keys=[assigned_to_user_id])
    executed_by = db.relationship("User", foreign_keys=[executed_by_user_id])
    created_by = db.relationship("User", foreign_keys=[created_by_user_id])

    @property
    def is_terminal(self) -> bool:
        return self.status in TASK_TERMINAL_STATUSES

    def __repr__(self) -> str:
        return f"<PrepTask id={self.id} recipe_id={self.recipe_id} status={self.status}>"

    def to_dict(self) -> dict:
        recipe = self.recipe
        return {
            "id": self.id,
            "recipe_id": self.recipe_id,
            "recipe_name": recipe.name if recipe else None,
            "output_ingredient_id": recipe.output_ingredient_id if recipe else None,
            "output_unit": recipe.output_ingredient.unit if recipe and recipe.output_ingredient else None,
            "location_id": self.location_id,
            "location_name": self.location.name if self.location else None,
            "target_quantity": decimal_str(self.target_quantity),
            "quantity_run": decimal_str(self.quantity_run),
            "status": self.status,
            "notes": self.notes,
            "assigned_to_user_id": self.assigned_to_user_id,
            "assigned_to_name": self.assigned_to.name if self.assigned_to else None,
            "executed_by_user_id": self.executed_by_user_id,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "assigned_at": to_utc_z(self.assigned_at),
            "started_at": to_utc_z(self.started_at),
            "completed_at": to_utc_z(self.completed_at),
            "updated_at": to_utc_z(self.updated_at),
        }
