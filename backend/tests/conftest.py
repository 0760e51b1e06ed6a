"""
Pytest fixtures for back-office backend tests.

Provides test database setup, staff users with tokens, a kitchen location,
and the Flour + Water -> Dough recipe used across the prep tests.
"""

from decimal import Decimal

import pytest
from backoffice import create_app
from backoffice.config import TestingConfig
from backoffice.extensions import db
from backoffice.models.auth import ROLE_COOK, ROLE_FINANCIAL, ROLE_MANAGER, ROLE_OWNER, ROLE_SERVER
from backoffice.services import ingredient_service, location_service, prep_recipe_service, stock_service
from backoffice.services.auth_service import Actor, create_user


PASSWORD = "Password123!"


@pytest.fixture(scope='session')
def app():
    """Create application for testing."""
    app = create_app(TestingConfig)

    with app.app_context():
        db.create_all()
        yield app
        db.drop_all()


@pytest.fixture(scope='function')
def client(app):
    """Create test client."""
    return app.test_client()


@pytest.fixture(scope='function')
def db_session(app):
    """Create fresh database for each test."""
    with app.app_context():
        # Clear all data but keep schema
        meta = db.metadata
        for table in reversed(meta.sorted_tables):
            db.session.execute(table.delete())
        db.session.commit()

        yield db.session

        # Cleanup after test
        db.session.rollback()


# =============================================================================
# USERS
# =============================================================================


@pytest.fixture(scope='function')
def owner(db_session):
    return create_user(name="Olga Owner", username="owner", password=PASSWORD, role=ROLE_OWNER)


@pytest.fixture(scope='function')
def manager(db_session):
    return create_user(name="Mia Manager", username="manager", password=PASSWORD, role=ROLE_MANAGER)


@pytest.fixture(scope='function')
def cook(db_session):
    return create_user(name="Carl Cook", username="cook", password=PASSWORD, role=ROLE_COOK)


@pytest.fixture(scope='function')
def second_cook(db_session):
    return create_user(name="Cora Cook", username="cook2", password=PASSWORD, role=ROLE_COOK)


@pytest.fixture(scope='function')
def server(db_session):
    return create_user(name="Sam Server", username="server", password=PASSWORD, role=ROLE_SERVER)


@pytest.fixture(scope='function')
def financial(db_session):
    return create_user(name="Fay Finance", username="finance", password=PASSWORD, role=ROLE_FINANCIAL)


@pytest.fixture(scope='function')
def manager_actor(manager):
    return Actor.from_user(manager)


@pytest.fixture(scope='function')
def cook_actor(cook):
    return Actor.from_user(cook)


@pytest.fixture(scope='function')
def second_cook_actor(second_cook):
    return Actor.from_user(second_cook)


# =============================================================================
# KITCHEN DATA
# =============================================================================


@pytest.fixture(scope='function')
def kitchen(db_session):
    """Active storage location "Kitchen"."""
    return location_service.create_location({"name": "Kitchen", "type": "STORAGE"})


@pytest.fixture(scope='function')
def walk_in(db_session):
    return location_service.create_location({"name": "Walk-in", "type": "STORAGE"})


@pytest.fixture(scope='function')
def flour(db_session):
    return ingredient_service.create_ingredient({"name": "Flour", "unit": "g", "cost_per_unit": "0.01"})


@pytest.fixture(scope='function')
def water(db_session):
    return ingredient_service.create_ingredient({"name": "Water", "unit": "ml", "cost_per_unit": "0.001"})


@pytest.fixture(scope='function')
def dough(db_session):
    return ingredient_service.create_ingredient({"name": "Dough", "unit": "g", "is_prepared": True})


@pytest.fixture(scope='function')
def dough_recipe(flour, water, dough):
    """600 g Flour + 400 ml Water -> 1000 g Dough."""
    return prep_recipe_service.create_prep_recipe(
        name="Dough",
        output_ingredient_id=dough.id,
        output_quantity="1000",
        inputs=[
            {"ingredient_id": flour.id, "quantity": "600"},
            {"ingredient_id": water.id, "quantity": "400"},
        ],
        estimated_labor_time=30,
    )


@pytest.fixture(scope='function')
def stocked_kitchen(kitchen, flour, water):
    """5000 g Flour and 5000 ml Water on hand in the kitchen."""
    stock_service.add_holding(ingredient_id=flour.id, location_id=kitchen.id, quantity="5000")
    stock_service.add_holding(ingredient_id=water.id, location_id=kitchen.id, quantity="5000")
    return kitchen


def available(ingredient, location) -> Decimal:
    """Aggregate stock of ingredient at location."""
    return stock_service.get_available_quantity(ingredient.id, location.id)


# =============================================================================
# AUTH HELPERS
# =============================================================================


def get_auth_token(client, username: str, password: str = PASSWORD) -> str:
    """Helper to get auth token for a user."""
    response = client.post('/api/auth/login', json={
        'username': username,
        'password': password
    })
    if response.status_code == 200:
        return response.json['data']['token']
    return None


def auth_headers(token: str) -> dict:
    """Helper to create Authorization headers."""
    return {'Authorization': f'Bearer {token}'}


@pytest.fixture(scope='function')
def owner_headers(client, owner):
    return auth_headers(get_auth_token(client, "owner"))


@pytest.fixture(scope='function')
def manager_headers(client, manager):
    return auth_headers(get_auth_token(client, "manager"))


@pytest.fixture(scope='function')
def cook_headers(client, cook):
    return auth_headers(get_auth_token(client, "cook"))


@pytest.fixture(scope='function')
def second_cook_headers(client, second_cook):
    return auth_headers(get_auth_token(client, "cook2"))


@pytest.fixture(scope='function')
def server_headers(client, server):
    return auth_headers(get_auth_token(client, "server"))


@pytest.fixture(scope='function')
def financial_headers(client, financial):
    return auth_headers(get_auth_token(client, "finance"))
