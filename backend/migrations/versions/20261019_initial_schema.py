"""Initial back-office schema: users, locations, ingredients, stock, prep, purchasing, ledger

Revision ID: 20261019_initial
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261019_initial"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
    ]


def upgrade():
    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("username", sa.String(64), nullable=False),
        sa.Column("password_hash", sa.String(255), nullable=False),
        sa.Column("role", sa.String(32), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("last_login_at", sa.DateTime(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_users"),
        sa.UniqueConstraint("username", name="uq_users_username"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("users", schema=None) as batch_op:
        batch_op.create_index("ix_users_role", ["role"], unique=False)

    op.create_table(
        "session_tokens",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("user_id", sa.Integer(), nullable=False),
        sa.Column("token_hash", sa.String(64), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("last_used_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("expires_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("is_revoked", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        sa.Column("revoked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("revoked_reason", sa.String(255), nullable=True),
        sa.Column("user_agent", sa.String(255), nullable=True),
        sa.Column("ip_address", sa.String(64), nullable=True),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], name="fk_session_tokens_user_id_users"),
        sa.PrimaryKeyConstraint("id", name="pk_session_tokens"),
        sa.UniqueConstraint("token_hash", name="uq_session_tokens_token_hash"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("session_tokens", schema=None) as batch_op:
        batch_op.create_index("ix_session_tokens_user_id", ["user_id"], unique=False)

    op.create_table(
        "storage_locations",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(120), nullable=False),
        sa.Column("type", sa.String(32), nullable=False, server_default="STORAGE"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_storage_locations"),
        sa.UniqueConstraint("name", name="uq_storage_locations_name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "ingredients",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("cost_per_unit", sa.Numeric(14, 6), nullable=False, server_default=sa.text("0")),
        sa.Column("is_prepared", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_ingredients"),
        sa.UniqueConstraint("name", name="uq_ingredients_name"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("ingredients", schema=None) as batch_op:
        batch_op.create_index("ix_ingredients_is_prepared", ["is_prepared"], unique=False)

    op.create_table(
        "suppliers",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("contact_name", sa.String(255), nullable=True),
        sa.Column("contact_phone", sa.String(64), nullable=True),
        sa.Column("contact_email", sa.String(255), nullable=True),
        sa.Column("address", sa.Text(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_suppliers"),
        sa.UniqueConstraint("name", name="uq_suppliers_name"),
        sqlite_autoincrement=True,
    )

    op.create_table(
        "purchase_orders",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("supplier_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(32), nullable=False, server_default="DRAFT"),
        sa.Column("order_date", sa.Date(), nullable=False),
        sa.Column("expected_delivery_date", sa.Date(), nullable=True),
        sa.Column("actual_delivery_date", sa.Date(), nullable=True),
        sa.Column("invoice_number", sa.String(64), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("total_cost", sa.Numeric(14, 6), nullable=False, server_default=sa.text("0")),
        sa.Column("created_by_user_id", sa.Integer(), nullable=True),
        sa.Column("approved_by_user_id", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("received_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("cancelled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"], name="fk_purchase_orders_supplier_id_suppliers"),
        sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"], name="fk_purchase_orders_created_by_user_id_users"),
        sa.ForeignKeyConstraint(["approved_by_user_id"], ["users.id"], name="fk_purchase_orders_approved_by_user_id_users"),
        sa.PrimaryKeyConstraint("id", name="pk_purchase_orders"),
        sa.UniqueConstraint("invoice_number", name="uq_purchase_orders_invoice_number"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("purchase_orders", schema=None) as batch_op:
        batch_op.create_index("ix_purchase_orders_status", ["status"], unique=False)
        batch_op.create_index("ix_purchase_orders_supplier_id", ["supplier_id"], unique=False)

    op.create_table(
        "purchase_order_items",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("purchase_order_id", sa.Integer(), nullable=False),
        sa.Column("ingredient_id", sa.Integer(), nullable=False),
        sa.Column("ordered_quantity", sa.Numeric(14, 4), nullable=False),
        sa.Column("ordered_unit", sa.String(32), nullable=False),
        sa.Column("base_units_per_order_unit", sa.Numeric(14, 4), nullable=False, server_default=sa.text("1")),
        sa.Column("unit_cost", sa.Numeric(14, 6), nullable=False),
        sa.Column("total_item_cost", sa.Numeric(14, 6), nullable=False),
        sa.Column("received_quantity", sa.Numeric(14, 4), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["purchase_order_id"], ["purchase_orders.id"], name="fk_purchase_order_items_purchase_order_id_purchase_orders"),
        sa.ForeignKeyConstraint(["ingredient_id"], ["ingredients.id"], name="fk_purchase_order_items_ingredient_id_ingredients"),
        sa.PrimaryKeyConstraint("id", name="pk_purchase_order_items"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("purchase_order_items", schema=None) as batch_op:
        batch_op.create_index("ix_purchase_order_items_po", ["purchase_order_id"], unique=False)
        batch_op.create_index("ix_purchase_order_items_ingredient_id", ["ingredient_id"], unique=False)

    op.create_table(
        "prep_recipes",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("output_ingredient_id", sa.Integer(), nullable=False),
        sa.Column("output_quantity", sa.Numeric(14, 4), nullable=False),
        sa.Column("estimated_labor_time", sa.Integer(), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        *_timestamps(),
        sa.ForeignKeyConstraint(["output_ingredient_id"], ["ingredients.id"], name="fk_prep_recipes_output_ingredient_id_ingredients"),
        sa.PrimaryKeyConstraint("id", name="pk_prep_recipes"),
        sa.UniqueConstraint("name", name="uq_prep_recipes_name"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("prep_recipes", schema=None) as batch_op:
        batch_op.create_index("ix_prep_recipes_output_ingredient_id", ["output_ingredient_id"], unique=False)

    op.create_table(
        "prep_recipe_inputs",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("recipe_id", sa.Integer(), nullable=False),
        sa.Column("ingredient_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 4), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.ForeignKeyConstraint(["recipe_id"], ["prep_recipes.id"], name="fk_prep_recipe_inputs_recipe_id_prep_recipes"),
        sa.ForeignKeyConstraint(["ingredient_id"], ["ingredients.id"], name="fk_prep_recipe_inputs_ingredient_id_ingredients"),
        sa.PrimaryKeyConstraint("id", name="pk_prep_recipe_inputs"),
        sa.UniqueConstraint("recipe_id", "ingredient_id", name="uq_prep_recipe_inputs_recipe_ingredient"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("prep_recipe_inputs", schema=None) as batch_op:
        batch_op.create_index("ix_prep_recipe_inputs_recipe_id", ["recipe_id"], unique=False)
        batch_op.create_index("ix_prep_recipe_inputs_ingredient_id", ["ingredient_id"], unique=False)

    op.create_table(
        "prep_tasks",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("recipe_id", sa.Integer(), nullable=False),
        sa.Column("location_id", sa.Integer(), nullable=False),
        sa.Column("target_quantity", sa.Numeric(14, 4), nullable=False),
        sa.Column("quantity_run", sa.Numeric(14, 4), nullable=True),
        sa.Column("status", sa.String(16), nullable=False, server_default="PENDING"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("assigned_to_user_id", sa.Integer(), nullable=True),
        sa.Column("executed_by_user_id", sa.Integer(), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["recipe_id"], ["prep_recipes.id"], name="fk_prep_tasks_recipe_id_prep_recipes"),
        sa.ForeignKeyConstraint(["location_id"], ["storage_locations.id"], name="fk_prep_tasks_location_id_storage_locations"),
        sa.ForeignKeyConstraint(["assigned_to_user_id"], ["users.id"], name="fk_prep_tasks_assigned_to_user_id_users"),
        sa.ForeignKeyConstraint(["executed_by_user_id"], ["users.id"], name="fk_prep_tasks_executed_by_user_id_users"),
        sa.ForeignKeyConstraint(["created_by_user_id"], ["users.id"], name="fk_prep_tasks_created_by_user_id_users"),
        sa.PrimaryKeyConstraint("id", name="pk_prep_tasks"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("prep_tasks", schema=None) as batch_op:
        batch_op.create_index("ix_prep_tasks_status", ["status"], unique=False)
        batch_op.create_index("ix_prep_tasks_assigned_to", ["assigned_to_user_id"], unique=False)
        batch_op.create_index("ix_prep_tasks_recipe_id", ["recipe_id"], unique=False)
        batch_op.create_index("ix_prep_tasks_location_id", ["location_id"], unique=False)

    op.create_table(
        "stock_holdings",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("ingredient_id", sa.Integer(), nullable=False),
        sa.Column("location_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 4), nullable=False, server_default=sa.text("0")),
        sa.Column("unit_cost", sa.Numeric(14, 6), nullable=False, server_default=sa.text("0")),
        sa.Column("purchase_date", sa.Date(), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        sa.Column("source", sa.String(32), nullable=False, server_default="MANUAL"),
        sa.Column("purchase_order_item_id", sa.Integer(), nullable=True),
        sa.Column("prep_task_id", sa.Integer(), nullable=True),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("quantity >= 0", name="ck_stock_holdings_quantity_non_negative"),
        sa.ForeignKeyConstraint(["ingredient_id"], ["ingredients.id"], name="fk_stock_holdings_ingredient_id_ingredients"),
        sa.ForeignKeyConstraint(["location_id"], ["storage_locations.id"], name="fk_stock_holdings_location_id_storage_locations"),
        sa.ForeignKeyConstraint(["purchase_order_item_id"], ["purchase_order_items.id"], name="fk_stock_holdings_purchase_order_item_id_purchase_order_items"),
        sa.ForeignKeyConstraint(["prep_task_id"], ["prep_tasks.id"], name="fk_stock_holdings_prep_task_id_prep_tasks"),
        sa.PrimaryKeyConstraint("id", name="pk_stock_holdings"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("stock_holdings", schema=None) as batch_op:
        batch_op.create_index("ix_stock_holdings_ingredient_location", ["ingredient_id", "location_id"], unique=False)
        batch_op.create_index("ix_stock_holdings_ingredient_id", ["ingredient_id"], unique=False)
        batch_op.create_index("ix_stock_holdings_location_id", ["location_id"], unique=False)

    op.create_table(
        "waste_records",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("ingredient_id", sa.Integer(), nullable=False),
        sa.Column("location_id", sa.Integer(), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 4), nullable=False),
        sa.Column("unit", sa.String(32), nullable=False),
        sa.Column("reason", sa.String(32), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("cost_value", sa.Numeric(14, 6), nullable=False, server_default=sa.text("0")),
        sa.Column("recorded_by_user_id", sa.Integer(), nullable=False),
        sa.Column("recorded_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["ingredient_id"], ["ingredients.id"], name="fk_waste_records_ingredient_id_ingredients"),
        sa.ForeignKeyConstraint(["location_id"], ["storage_locations.id"], name="fk_waste_records_location_id_storage_locations"),
        sa.ForeignKeyConstraint(["recorded_by_user_id"], ["users.id"], name="fk_waste_records_recorded_by_user_id_users"),
        sa.PrimaryKeyConstraint("id", name="pk_waste_records"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("waste_records", schema=None) as batch_op:
        batch_op.create_index("ix_waste_records_recorded_at", ["recorded_at"], unique=False)
        batch_op.create_index("ix_waste_records_ingredient_id", ["ingredient_id"], unique=False)
        batch_op.create_index("ix_waste_records_location_id", ["location_id"], unique=False)

    op.create_table(
        "stock_ledger_events",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("event_type", sa.String(64), nullable=False),
        sa.Column("entity_type", sa.String(64), nullable=False),
        sa.Column("entity_id", sa.Integer(), nullable=False),
        sa.Column("ingredient_id", sa.Integer(), nullable=True),
        sa.Column("location_id", sa.Integer(), nullable=True),
        sa.Column("holding_id", sa.Integer(), nullable=True),
        sa.Column("quantity_delta", sa.Numeric(14, 4), nullable=True),
        sa.Column("actor_user_id", sa.Integer(), nullable=True),
        sa.Column("prep_task_id", sa.Integer(), nullable=True),
        sa.Column("purchase_order_id", sa.Integer(), nullable=True),
        sa.Column("waste_record_id", sa.Integer(), nullable=True),
        sa.Column("note", sa.String(255), nullable=True),
        sa.Column("occurred_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("(CURRENT_TIMESTAMP)"), nullable=False),
        sa.ForeignKeyConstraint(["ingredient_id"], ["ingredients.id"], name="fk_stock_ledger_events_ingredient_id_ingredients"),
        sa.ForeignKeyConstraint(["location_id"], ["storage_locations.id"], name="fk_stock_ledger_events_location_id_storage_locations"),
        sa.ForeignKeyConstraint(["actor_user_id"], ["users.id"], name="fk_stock_ledger_events_actor_user_id_users"),
        sa.ForeignKeyConstraint(["prep_task_id"], ["prep_tasks.id"], name="fk_stock_ledger_events_prep_task_id_prep_tasks"),
        sa.ForeignKeyConstraint(["purchase_order_id"], ["purchase_orders.id"], name="fk_stock_ledger_events_purchase_order_id_purchase_orders"),
        sa.ForeignKeyConstraint(["waste_record_id"], ["waste_records.id"], name="fk_stock_ledger_events_waste_record_id_waste_records"),
        sa.PrimaryKeyConstraint("id", name="pk_stock_ledger_events"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("stock_ledger_events", schema=None) as batch_op:
        batch_op.create_index("ix_stock_ledger_events_ingredient_occurred", ["ingredient_id", "occurred_at"], unique=False)
        batch_op.create_index("ix_stock_ledger_events_entity", ["entity_type", "entity_id"], unique=False)
        batch_op.create_index("ix_stock_ledger_events_event_type", ["event_type"], unique=False)


def downgrade():
    for table in (
        "stock_ledger_events",
        "waste_records",
        "stock_holdings",
        "prep_tasks",
        "prep_recipe_inputs",
        "prep_recipes",
        "purchase_order_items",
        "purchase_orders",
        "suppliers",
        "ingredients",
        "storage_locations",
        "session_tokens",
        "users",
    ):
        op.drop_table(table)
