"""
Authorization tests for the back-office API.

Verifies:
- Unauthenticated requests return 401
- Server role denied kitchen and management operations (403)
- Cook role denied management and purchasing operations (403)
- Revoked and deactivated sessions stop working
"""

import pytest

from backoffice.services import prep_task_service, stock_service
from backoffice.services.session_service import revoke_all_user_sessions
from conftest import auth_headers, get_auth_token


# =============================================================================
# UNAUTHENTICATED ACCESS (401)
# =============================================================================


class TestUnauthenticatedAccess:
    """All protected endpoints return 401 without a token."""

    @pytest.mark.parametrize(
        "method,path",
        [
            ("GET", "/api/auth/me"),
            ("GET", "/api/storage-locations"),
            ("POST", "/api/storage-locations"),
            ("GET", "/api/ingredients"),
            ("GET", "/api/ingredients/stock"),
            ("GET", "/api/stock-holdings"),
            ("POST", "/api/stock-holdings"),
            ("GET", "/api/prep-recipes"),
            ("POST", "/api/prep-recipes/1/execute"),
            ("GET", "/api/prep-tasks"),
            ("POST", "/api/prep-tasks"),
            ("PATCH", "/api/prep-tasks/1"),
            ("GET", "/api/suppliers"),
            ("GET", "/api/purchase-orders"),
            ("POST", "/api/purchase-orders/1/receive"),
            ("GET", "/api/waste"),
            ("POST", "/api/waste"),
            ("GET", "/api/ledger"),
        ],
    )
    def test_requires_auth(self, client, db_session, method, path):
        resp = getattr(client, method.lower())(path)
        assert resp.status_code == 401, f"{method} {path} returned {resp.status_code}"
        assert resp.json["success"] is False

    def test_garbage_token(self, client, db_session):
        resp = client.get("/api/prep-tasks", headers=auth_headers("not-a-token"))
        assert resp.status_code == 401

    def test_health_is_public(self, client, db_session):
        resp = client.get("/health")
        assert resp.status_code == 200
        assert resp.json["data"]["database"]["status"] == "healthy"


# =============================================================================
# LOGIN / SESSION
# =============================================================================


class TestLogin:

    def test_login_returns_token_and_user(self, client, cook):
        resp = client.post("/api/auth/login", json={"username": "cook", "password": "Password123!"})
        assert resp.status_code == 200
        assert resp.json["data"]["user"]["role"] == "COOK"
        assert resp.json["data"]["token"]

    def test_wrong_password(self, client, cook):
        resp = client.post("/api/auth/login", json={"username": "cook", "password": "nope"})
        assert resp.status_code == 401

    def test_logout_revokes_token(self, client, cook):
        headers = auth_headers(get_auth_token(client, "cook"))
        assert client.post("/api/auth/logout", headers=headers).status_code == 200
        assert client.get("/api/auth/me", headers=headers).status_code == 401

    def test_revoked_sessions_rejected(self, client, cook, cook_headers):
        revoke_all_user_sessions(cook.id)
        assert client.get("/api/auth/me", headers=cook_headers).status_code == 401


# =============================================================================
# SERVER DENIED KITCHEN OPERATIONS (403)
# =============================================================================


class TestServerDenied:
    """Server role can read but not run the kitchen."""

    def test_can_list_tasks(self, client, server_headers):
        resp = client.get("/api/prep-tasks", headers=server_headers)
        assert resp.status_code == 200

    def test_cannot_create_prep_task(self, client, server_headers, dough_recipe, kitchen):
        resp = client.post(
            "/api/prep-tasks",
            json={"prep_recipe_id": dough_recipe.id, "target_quantity": "500", "location_id": kitchen.id},
            headers=server_headers,
        )
        assert resp.status_code == 403
        assert resp.json["required_roles"] == ["MANAGER", "OWNER"]

    def test_cannot_create_recipe(self, client, server_headers, flour, dough):
        resp = client.post(
            "/api/prep-recipes",
            json={
                "name": "Roux",
                "output_ingredient_id": dough.id,
                "output_quantity": "1",
                "inputs": [{"ingredient_id": flour.id, "quantity": "1"}],
            },
            headers=server_headers,
        )
        assert resp.status_code == 403

    def test_cannot_create_ingredient(self, client, server_headers):
        resp = client.post("/api/ingredients", json={"name": "Salt", "unit": "g"}, headers=server_headers)
        assert resp.status_code == 403

    def test_cannot_view_ledger(self, client, server_headers):
        resp = client.get("/api/ledger", headers=server_headers)
        assert resp.status_code == 403


# =============================================================================
# COOK DENIED MANAGEMENT / PURCHASING (403)
# =============================================================================


class TestCookDenied:

    def test_cannot_create_location(self, client, cook_headers):
        resp = client.post("/api/storage-locations", json={"name": "Freezer", "type": "FREEZER"}, headers=cook_headers)
        assert resp.status_code == 403

    def test_cannot_assign_task(self, client, cook_headers, cook, dough_recipe, kitchen, manager_actor):
        task = prep_task_service.create_prep_task(
            recipe_id=dough_recipe.id, target_quantity="500", location_id=kitchen.id, actor=manager_actor
        )
        resp = client.patch(
            f"/api/prep-tasks/{task.id}",
            json={"status": "ASSIGNED", "assigned_to_user_id": cook.id},
            headers=cook_headers,
        )
        assert resp.status_code == 403

    def test_cannot_create_supplier(self, client, cook_headers):
        resp = client.post("/api/suppliers", json={"name": "Mill"}, headers=cook_headers)
        assert resp.status_code == 403

    def test_cannot_delete_holding(self, client, cook_headers, stocked_kitchen):
        holding = stock_service.list_holdings()[0]
        resp = client.delete(f"/api/stock-holdings/{holding.id}", headers=cook_headers)
        assert resp.status_code == 403

    def test_financial_can_view_ledger(self, client, financial_headers):
        resp = client.get("/api/ledger", headers=financial_headers)
        assert resp.status_code == 200
