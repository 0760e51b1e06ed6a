"""
Prep task API tests: envelope shape, status codes and the PATCH state machine
driven over HTTP.
"""

from decimal import Decimal

import pytest

from conftest import available


def _create_task(client, headers, recipe, location, **extra):
    body = {"prep_recipe_id": recipe.id, "target_quantity": "500", "location_id": location.id}
    body.update(extra)
    return client.post("/api/prep-tasks", json=body, headers=headers)


class TestCreateTask:

    def test_manager_creates_pending_task(self, client, manager_headers, dough_recipe, kitchen):
        resp = _create_task(client, manager_headers, dough_recipe, kitchen)
        assert resp.status_code == 201
        assert resp.json["success"] is True
        task = resp.json["data"]
        assert task["status"] == "PENDING"
        assert task["recipe_name"] == "Dough"
        assert Decimal(task["target_quantity"]) == Decimal("500")

    def test_camel_case_body(self, client, manager_headers, dough_recipe, kitchen, cook):
        resp = client.post(
            "/api/prep-tasks",
            json={
                "prepRecipeId": dough_recipe.id,
                "targetQuantity": "250",
                "locationId": kitchen.id,
                "assignedToUserId": cook.id,
            },
            headers=manager_headers,
        )
        assert resp.status_code == 201
        assert resp.json["data"]["status"] == "ASSIGNED"
        assert resp.json["data"]["assigned_to_user_id"] == cook.id

    @pytest.mark.parametrize("missing", ["prep_recipe_id", "target_quantity", "location_id"])
    def test_missing_field(self, client, manager_headers, dough_recipe, kitchen, missing):
        body = {"prep_recipe_id": dough_recipe.id, "target_quantity": "500", "location_id": kitchen.id}
        del body[missing]
        resp = client.post("/api/prep-tasks", json=body, headers=manager_headers)
        assert resp.status_code == 400
        assert resp.json == {"success": False, "error": f"{missing} is required"}

    def test_zero_target(self, client, manager_headers, dough_recipe, kitchen):
        resp = _create_task(client, manager_headers, dough_recipe, kitchen, target_quantity="0")
        assert resp.status_code == 400
        assert resp.json["success"] is False

    def test_unknown_recipe(self, client, manager_headers, kitchen):
        resp = client.post(
            "/api/prep-tasks",
            json={"prep_recipe_id": 99999, "target_quantity": "1", "location_id": kitchen.id},
            headers=manager_headers,
        )
        assert resp.status_code == 404


class TestTaskFlow:

    def test_claim_and_complete(self, client, manager_headers, cook_headers, dough_recipe, stocked_kitchen,
                                flour, water, dough):
        task_id = _create_task(client, manager_headers, dough_recipe, stocked_kitchen).json["data"]["id"]

        resp = client.patch(f"/api/prep-tasks/{task_id}", json={"status": "in_progress"}, headers=cook_headers)
        assert resp.status_code == 200
        assert resp.json["data"]["status"] == "IN_PROGRESS"
        assert resp.json["data"]["assigned_to_name"] == "Carl Cook"

        resp = client.patch(
            f"/api/prep-tasks/{task_id}",
            json={"status": "COMPLETED", "quantityRun": "500"},
            headers=cook_headers,
        )
        assert resp.status_code == 200
        assert resp.json["data"]["status"] == "COMPLETED"
        assert Decimal(resp.json["data"]["quantity_run"]) == Decimal("500")
        assert available(flour, stocked_kitchen) == Decimal("4700")
        assert available(water, stocked_kitchen) == Decimal("4800")
        assert available(dough, stocked_kitchen) == Decimal("500")

    def test_second_completion_conflicts(self, client, manager_headers, cook_headers, dough_recipe,
                                         stocked_kitchen, dough):
        task_id = _create_task(client, manager_headers, dough_recipe, stocked_kitchen).json["data"]["id"]
        client.patch(f"/api/prep-tasks/{task_id}", json={"status": "IN_PROGRESS"}, headers=cook_headers)
        body = {"status": "COMPLETED", "quantity_run": "500"}
        assert client.patch(f"/api/prep-tasks/{task_id}", json=body, headers=cook_headers).status_code == 200

        resp = client.patch(f"/api/prep-tasks/{task_id}", json=body, headers=cook_headers)

        assert resp.status_code == 409
        assert available(dough, stocked_kitchen) == Decimal("500")

    def test_insufficient_stock_details(self, client, manager_headers, cook_headers, dough_recipe, kitchen,
                                        flour, water):
        client.post(
            "/api/stock-holdings",
            json={"ingredient_id": flour.id, "location_id": kitchen.id, "quantity": "100"},
            headers=manager_headers,
        )
        task_id = _create_task(client, manager_headers, dough_recipe, kitchen).json["data"]["id"]
        client.patch(f"/api/prep-tasks/{task_id}", json={"status": "IN_PROGRESS"}, headers=cook_headers)

        resp = client.patch(
            f"/api/prep-tasks/{task_id}",
            json={"status": "COMPLETED", "quantity_run": "500"},
            headers=cook_headers,
        )

        assert resp.status_code == 409
        assert resp.json["success"] is False
        details = resp.json["details"]
        assert details["ingredient_name"] == "Flour"
        assert Decimal(details["required"]) == Decimal("300")
        assert Decimal(details["available"]) == Decimal("100")
        assert available(flour, kitchen) == Decimal("100")

        resp = client.get(f"/api/prep-tasks/{task_id}", headers=cook_headers)
        assert resp.json["data"]["status"] == "IN_PROGRESS"

    def test_other_cook_cannot_complete(self, client, manager_headers, cook_headers, second_cook_headers,
                                        dough_recipe, stocked_kitchen):
        task_id = _create_task(client, manager_headers, dough_recipe, stocked_kitchen).json["data"]["id"]
        client.patch(f"/api/prep-tasks/{task_id}", json={"status": "IN_PROGRESS"}, headers=cook_headers)

        resp = client.patch(
            f"/api/prep-tasks/{task_id}",
            json={"status": "COMPLETED", "quantity_run": "500"},
            headers=second_cook_headers,
        )
        assert resp.status_code == 403

    def test_server_cannot_flag_cook_task_as_problem(self, client, manager_headers, server_headers, dough_recipe,
                                                     kitchen, cook):
        task_id = _create_task(
            client, manager_headers, dough_recipe, kitchen, assigned_to_user_id=cook.id
        ).json["data"]["id"]

        resp = client.patch(f"/api/prep-tasks/{task_id}", json={"status": "PROBLEM"}, headers=server_headers)

        assert resp.status_code == 403
        resp = client.get(f"/api/prep-tasks/{task_id}", headers=manager_headers)
        assert resp.json["data"]["status"] == "ASSIGNED"

    def test_assignee_reports_problem(self, client, manager_headers, cook_headers, dough_recipe, kitchen, cook):
        task_id = _create_task(
            client, manager_headers, dough_recipe, kitchen, assigned_to_user_id=cook.id
        ).json["data"]["id"]

        resp = client.patch(
            f"/api/prep-tasks/{task_id}", json={"status": "PROBLEM", "notes": "oven down"}, headers=cook_headers
        )

        assert resp.status_code == 200
        assert resp.json["data"]["status"] == "PROBLEM"

    def test_unassign_returns_to_pool(self, client, manager_headers, dough_recipe, kitchen, cook):
        task_id = _create_task(
            client, manager_headers, dough_recipe, kitchen, assigned_to_user_id=cook.id
        ).json["data"]["id"]

        resp = client.patch(f"/api/prep-tasks/{task_id}", json={"status": "PENDING"}, headers=manager_headers)

        assert resp.status_code == 200
        assert resp.json["data"]["status"] == "PENDING"
        assert resp.json["data"]["assigned_to_user_id"] is None
        assert resp.json["data"]["assigned_at"] is None

    def test_missing_status(self, client, manager_headers, dough_recipe, kitchen):
        task_id = _create_task(client, manager_headers, dough_recipe, kitchen).json["data"]["id"]
        resp = client.patch(f"/api/prep-tasks/{task_id}", json={}, headers=manager_headers)
        assert resp.status_code == 400

    def test_unknown_task(self, client, manager_headers, db_session):
        resp = client.patch("/api/prep-tasks/99999", json={"status": "CANCELLED"}, headers=manager_headers)
        assert resp.status_code == 404


class TestListAndDelete:

    def test_list_filters(self, client, manager_headers, cook_headers, dough_recipe, stocked_kitchen):
        open_id = _create_task(client, manager_headers, dough_recipe, stocked_kitchen).json["data"]["id"]
        done = client.post(
            f"/api/prep-recipes/{dough_recipe.id}/execute",
            json={"quantity_run": "100", "location_id": stocked_kitchen.id},
            headers=cook_headers,
        )
        assert done.status_code == 201
        done_id = done.json["data"]["id"]

        resp = client.get("/api/prep-tasks", headers=cook_headers)
        assert [t["id"] for t in resp.json["data"]] == [open_id]

        resp = client.get("/api/prep-tasks?includeCompleted=true", headers=cook_headers)
        assert {t["id"] for t in resp.json["data"]} == {open_id, done_id}

        resp = client.get("/api/prep-tasks?assignedToUserId=me&includeCompleted=true", headers=cook_headers)
        assert [t["id"] for t in resp.json["data"]] == [done_id]

        resp = client.get("/api/prep-tasks?status=pending", headers=cook_headers)
        assert [t["id"] for t in resp.json["data"]] == [open_id]

    def test_bad_include_completed(self, client, cook_headers):
        resp = client.get("/api/prep-tasks?includeCompleted=maybe", headers=cook_headers)
        assert resp.status_code == 400

    def test_delete(self, client, manager_headers, dough_recipe, kitchen):
        task_id = _create_task(client, manager_headers, dough_recipe, kitchen).json["data"]["id"]
        resp = client.delete(f"/api/prep-tasks/{task_id}", headers=manager_headers)
        assert resp.status_code == 200
        assert resp.json["data"] == {"id": task_id, "deleted": True}
        assert client.get(f"/api/prep-tasks/{task_id}", headers=manager_headers).status_code == 404


class TestRecipeEndpoints:

    def test_requirements_preview(self, client, cook_headers, dough_recipe, stocked_kitchen):
        resp = client.get(
            f"/api/prep-recipes/{dough_recipe.id}/requirements?quantity=500&location_id={stocked_kitchen.id}",
            headers=cook_headers,
        )
        assert resp.status_code == 200
        data = resp.json["data"]
        assert data["can_run"] is True
        required = {row["ingredient_name"]: Decimal(row["required"]) for row in data["inputs"]}
        assert required == {"Flour": Decimal("300"), "Water": Decimal("200")}
        assert Decimal(data["estimated_cost"]) == Decimal("3.2")

    def test_requirements_needs_quantity(self, client, cook_headers, dough_recipe, kitchen):
        resp = client.get(
            f"/api/prep-recipes/{dough_recipe.id}/requirements?location_id={kitchen.id}", headers=cook_headers
        )
        assert resp.status_code == 400

    def test_cook_creates_recipe(self, client, cook_headers, flour, water, dough):
        resp = client.post(
            "/api/prep-recipes",
            json={
                "name": "Wet Dough",
                "output_ingredient_id": dough.id,
                "output_quantity": "1000",
                "estimated_labor_time": 20,
                "inputs": [
                    {"ingredient_id": flour.id, "quantity": "500"},
                    {"ingredient_id": water.id, "quantity": "500"},
                ],
            },
            headers=cook_headers,
        )
        assert resp.status_code == 201
        assert len(resp.json["data"]["inputs"]) == 2

    def test_delete_recipe_in_use_conflicts(self, client, manager_headers, dough_recipe, kitchen):
        _create_task(client, manager_headers, dough_recipe, kitchen)
        resp = client.delete(f"/api/prep-recipes/{dough_recipe.id}", headers=manager_headers)
        assert resp.status_code == 409
