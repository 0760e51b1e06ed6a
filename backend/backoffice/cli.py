# Overview: Flask CLI command groups for bootstrap, inspection, and maintenance.

# backend/backoffice/cli.py
# Commands Legend (run from the backend directory):
# Prereqs:
# - Activate your virtualenv.
# - Set FLASK_APP to wsgi.py (PowerShell: $env:FLASK_APP="wsgi.py").
# - Use: python -m flask <group> <command> [options]
#
# Schema:
# - python -m flask db upgrade
#   Apply Alembic migrations (preferred for persistent databases).
#
# System bootstrap/repair:
# - python -m flask system init [--password "Password123!"]
#   Idempotent bootstrap: creates tables, a default storage location, and owner/manager/cook users.
# - python -m flask system reset-db --yes
#   DEV/TEST only: drop and recreate all tables (deletes all data).
# - python -m flask system seed-demo
#   Flour + Water -> Dough demo: ingredients, stock, and a recipe at the default location.
#
# User inspection/bootstrap:
# - python -m flask users list
#   List all users with role and active status.
# - python -m flask users create --name "Ana" --username ana --password "Password123!" --role COOK
#   Create a user (prompts if options are omitted).
# - python -m flask users deactivate --username ana
#   Deactivate a user and revoke all of their sessions.
#
# Storage locations:
# - python -m flask locations list [--all]
# - python -m flask locations create --name "Walk-in" --type FREEZER

import click
from flask.cli import with_appcontext

from .errors import BackofficeError
from .extensions import db
from .models import Ingredient, PrepRecipe, StorageLocation, User
from .models.auth import ROLES, ROLE_COOK, ROLE_MANAGER, ROLE_OWNER
from .models.locations import LOCATION_TYPES
from .services import ingredient_service, location_service, prep_recipe_service, stock_service
from .services.auth_service import create_user, PasswordValidationError
from .services.session_service import revoke_all_user_sessions


DEFAULT_LOCATION_NAME = "Main Kitchen"


@click.group('system')
def system_group():
    """System bootstrap and repair commands."""


@system_group.command('init')
@click.option('--password', default='Password123!', help='Password for the default users')
@with_appcontext
def init_system(password):
    """
    Initialize the back-office: schema, default location, default users.

    Creates (when missing):
    - All tables
    - Storage location "Main Kitchen"
    - Users: owner (OWNER), manager (MANAGER), cook (COOK)

    SECURITY: Change passwords immediately in production!
    """
    click.echo("START Initializing back-office...")

    db.create_all()
    click.echo("PASS Schema ready")

    location = db.session.query(StorageLocation).filter_by(name=DEFAULT_LOCATION_NAME).first()
    if not location:
        location = location_service.create_location({"name": DEFAULT_LOCATION_NAME, "type": "STORAGE"})
        click.echo(f"PASS Created storage location: {location.name} (ID: {location.id})")
    else:
        click.echo(f"PASS Using existing storage location: {location.name} (ID: {location.id})")

    defaults = [
        ("Owner", "owner", ROLE_OWNER),
        ("Manager", "manager", ROLE_MANAGER),
        ("Cook", "cook", ROLE_COOK),
    ]
    for name, username, role in defaults:
        if db.session.query(User).filter_by(username=username).first():
            click.echo(f"PASS User '{username}' already exists")
            continue
        try:
            create_user(name=name, username=username, password=password, role=role)
        except PasswordValidationError as e:
            click.echo(f"FAIL Password validation failed: {str(e)}")
            return
        click.echo(f"PASS Created user: {username} ({role})")

    click.echo("DONE Back-office initialized")


@system_group.command('reset-db')
@click.option('--yes', is_flag=True, help='Skip confirmation')
@with_appcontext
def reset_db(yes):
    """
    DANGER: Drop all tables and recreate schema.

    This will DELETE ALL DATA!
    """
    if not yes:
        click.confirm("WARN This will DELETE ALL DATA. Are you sure?", abort=True)

    click.echo("DELETE  Dropping all tables...")
    db.drop_all()

    click.echo("BUILD  Creating all tables...")
    db.create_all()

    click.echo("PASS Database reset complete. Run 'python -m flask system init' to initialize.")


@system_group.command('seed-demo')
@with_appcontext
def seed_demo():
    """
    Seed the Flour + Water -> Dough demo.

    Flour 1000 g @ 0.002, Water 1000 ml @ 0.0005, Dough recipe
    (600 g Flour + 400 ml Water -> 1000 g Dough) at "Main Kitchen".
    """
    location = db.session.query(StorageLocation).filter_by(name=DEFAULT_LOCATION_NAME).first()
    if not location:
        click.echo("FAIL No default location. Run 'python -m flask system init' first.")
        return

    def ensure_ingredient(name: str, unit: str, cost: str | None, prepared: bool) -> Ingredient:
        existing = db.session.query(Ingredient).filter_by(name=name).first()
        if existing:
            click.echo(f"PASS Using existing ingredient: {name}")
            return existing
        payload = {"name": name, "unit": unit, "is_prepared": prepared}
        if cost is not None:
            payload["cost_per_unit"] = cost
        ingredient = ingredient_service.create_ingredient(payload)
        click.echo(f"PASS Created ingredient: {name} ({unit})")
        return ingredient

    try:
        flour = ensure_ingredient("Flour", "g", "0.002", False)
        water = ensure_ingredient("Water", "ml", "0.0005", False)
        dough = ensure_ingredient("Dough", "g", None, True)

        for ingredient in (flour, water):
            if stock_service.get_available_quantity(ingredient.id, location.id) == 0:
                stock_service.add_holding(ingredient_id=ingredient.id, location_id=location.id, quantity="1000")
                click.echo(f"PASS Stocked 1000 {ingredient.unit} of {ingredient.name}")

        if not db.session.query(PrepRecipe).filter_by(name="Dough").first():
            prep_recipe_service.create_prep_recipe(
                name="Dough",
                output_ingredient_id=dough.id,
                output_quantity="1000",
                inputs=[
                    {"ingredient_id": flour.id, "quantity": "600"},
                    {"ingredient_id": water.id, "quantity": "400"},
                ],
                estimated_labor_time=30,
            )
            click.echo("PASS Created recipe: Dough (600 g Flour + 400 ml Water -> 1000 g)")
    except BackofficeError as e:
        click.echo(f"FAIL Seeding failed: {str(e)}")
        return

    click.echo("DONE Demo data ready")


@click.group('users')
def users_group():
    """User inspection and bootstrap commands."""


@users_group.command('create')
@click.option('--name', prompt=True, help='Display name')
@click.option('--username', prompt=True, help='Username')
@click.option('--password', prompt=True, hide_input=True, confirmation_prompt=True, help='Password')
@click.option('--role', type=click.Choice(sorted(ROLES)), prompt=True, help='Role')
@with_appcontext
def create_user_cli(name, username, password, role):
    """
    Create a new user.

    Password must meet strength requirements:
    - Minimum 8 characters
    - At least one uppercase letter
    - At least one lowercase letter
    - At least one digit
    - At least one special character
    """
    try:
        user = create_user(name=name, username=username, password=password, role=role)
    except PasswordValidationError as e:
        click.echo(f"FAIL Password validation failed: {str(e)}")
        click.echo("Requirements: 8+ chars, uppercase, lowercase, digit, special char")
        return
    except BackofficeError as e:
        click.echo(f"FAIL Failed to create user: {str(e)}")
        return

    click.echo(f"PASS Created user: {user.username} (ID: {user.id}) with role '{user.role}'")
    click.echo("SECURITY Password securely hashed with bcrypt")


@users_group.command('list')
@with_appcontext
def list_users():
    """List all users with their role."""
    users = db.session.query(User).order_by(User.id.asc()).all()

    if not users:
        click.echo("No users found.")
        return

    click.echo("\n" + "="*80)
    click.echo(f"{'ID':<5} {'Username':<20} {'Name':<25} {'Role':<12} {'Active'}")
    click.echo("="*80)

    for user in users:
        active_str = "Yes" if user.is_active else "No"
        click.echo(f"{user.id:<5} {user.username:<20} {user.name:<25} {user.role:<12} {active_str}")

    click.echo("="*80 + "\n")


@users_group.command('deactivate')
@click.option('--username', prompt=True, help='Username')
@with_appcontext
def deactivate_user_cli(username):
    """Deactivate a user and revoke every active session."""
    user = db.session.query(User).filter_by(username=username).first()
    if not user:
        click.echo(f"FAIL User '{username}' not found")
        return

    user.is_active = False
    db.session.commit()
    revoked = revoke_all_user_sessions(user.id)
    click.echo(f"PASS Deactivated '{username}' ({revoked} session(s) revoked)")


@click.group('locations')
def locations_group():
    """Storage location commands."""


@locations_group.command('create')
@click.option('--name', prompt=True, help='Location name')
@click.option('--type', 'location_type', type=click.Choice(sorted(LOCATION_TYPES)), default='STORAGE', show_default=True)
@click.option('--description', help='Optional description')
@with_appcontext
def create_location_cli(name, location_type, description):
    try:
        location = location_service.create_location(
            {"name": name, "type": location_type, "description": description}
        )
    except BackofficeError as e:
        click.echo(f"FAIL Failed to create location: {str(e)}")
        return
    click.echo(f"PASS Created storage location: {location.name} (ID: {location.id}, {location.type})")


@locations_group.command('list')
@click.option('--all', 'show_all', is_flag=True, help='Show inactive locations too')
@with_appcontext
def list_locations_cli(show_all):
    locations = location_service.list_locations(include_inactive=show_all)

    if not locations:
        click.echo("No storage locations found.")
        return

    click.echo("\n" + "="*70)
    click.echo(f"{'ID':<5} {'Name':<30} {'Type':<15} {'Active'}")
    click.echo("="*70)

    for location in locations:
        active_str = "Yes" if location.is_active else "No"
        click.echo(f"{location.id:<5} {location.name:<30} {location.type:<15} {active_str}")

    click.echo("="*70 + "\n")


def register_commands(app):
    """Register all CLI commands with Flask app."""
    app.cli.add_command(system_group)
    app.cli.add_command(users_group)
    app.cli.add_command(locations_group)
