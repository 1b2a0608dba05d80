"""Smoke tests for the HTTP surface."""

import pytest
from fastapi.testclient import TestClient

from app.main import app

HEADERS = {"X-Coach-Id": "coach-1"}


@pytest.fixture
def client(db_session):
    return TestClient(app)


def _create_program(client, **overrides):
    body = {
        "plan_type": "training",
        "client_id": "client-1",
        "effective_from": "2026-03-02",
        "name": "Fuerza",
        "attributes": {"total_weeks": 3},
    }
    body.update(overrides)
    response = client.post("/api/plans", json=body, headers=HEADERS)
    assert response.status_code == 201, response.text
    return response.json()


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_missing_coach_header(client):
    response = client.get("/api/plans", params={"client_id": "client-1", "plan_type": "macro"})
    assert response.status_code == 401


def test_plan_lifecycle_over_http(client):
    first = _create_program(client)
    second = _create_program(client, name="Fuerza II")
    assert first["status"] == "draft"
    assert first["attributes"] == {"total_weeks": 3}

    assert client.post(f"/api/plans/{first['id']}/activate", headers=HEADERS).json()["status"] == "active"
    assert client.post(f"/api/plans/{second['id']}/activate", headers=HEADERS).status_code == 200

    active = client.get(
        "/api/plans/active", params={"client_id": "client-1", "plan_type": "training"}, headers=HEADERS
    ).json()
    assert active["id"] == second["id"]

    listed = client.get("/api/plans", params={"client_id": "client-1", "plan_type": "training"}, headers=HEADERS)
    assert [plan["id"] for plan in listed.json()] == [second["id"], first["id"]]

    response = client.delete(f"/api/plans/{second['id']}", headers=HEADERS)
    assert response.status_code == 409
    assert response.json()["error"] == "invalid_transition"

    assert client.delete(f"/api/plans/{first['id']}", headers=HEADERS).status_code == 204


def test_validation_error_body(client):
    response = client.post(
        "/api/plans",
        json={
            "plan_type": "macro",
            "client_id": "client-1",
            "effective_from": "2026-03-10",
            "effective_to": "2026-03-01",
        },
        headers=HEADERS,
    )
    assert response.status_code == 422
    assert response.json() == {
        "error": "validation_error",
        "detail": "effective_to (2026-03-01) is before effective_from (2026-03-10)",
        "path": "effective_to",
    }


def test_unknown_plan_is_404(client):
    response = client.get("/api/plans/nope", headers=HEADERS)
    assert response.status_code == 404
    assert response.json()["error"] == "not_found"


def test_program_matrix_flow(client):
    program = _create_program(client)
    program_id = program["id"]

    columns = client.post(f"/api/programs/{program_id}/columns/bootstrap", headers=HEADERS).json()
    reps = next(column for column in columns if column["key"] == "reps")
    days = client.put(f"/api/programs/{program_id}/days", json={"days": ["Torso", "Pierna"]}, headers=HEADERS).json()
    exercise = client.post(
        f"/api/days/{days[0]['id']}/exercises", json={"name": "Dominadas", "sets": 4}, headers=HEADERS
    ).json()

    response = client.put(
        "/api/cells",
        json={"exercise_id": exercise["id"], "column_id": reps["id"], "week_index": 2, "value": "6-8"},
        headers=HEADERS,
    )
    assert response.status_code == 200, response.text

    response = client.put(
        "/api/cells",
        json={"exercise_id": exercise["id"], "column_id": reps["id"], "week_index": 9, "value": "6"},
        headers=HEADERS,
    )
    assert response.status_code == 422
    assert response.json()["path"] == "week_index"

    full = client.get(f"/api/programs/{program_id}/full", headers=HEADERS).json()
    assert [day["name"] for day in full["days"]] == ["Torso", "Pierna"]
    assert full["exercises"][0]["sets"] == 4
    assert full["cells"] == [
        {"exercise_id": exercise["id"], "column_id": reps["id"], "week_index": 2, "value": "6-8"}
    ]


def test_integer_cell_value_stored_as_written(client):
    program = _create_program(client)
    columns = client.post(f"/api/programs/{program['id']}/columns/bootstrap", headers=HEADERS).json()
    weight = next(column for column in columns if column["key"] == "weight")
    days = client.put(f"/api/programs/{program['id']}/days", json={"days": ["Torso"]}, headers=HEADERS).json()
    exercise = client.post(f"/api/days/{days[0]['id']}/exercises", json={"name": "Sentadilla"}, headers=HEADERS).json()

    response = client.put(
        "/api/cells",
        json={"exercise_id": exercise["id"], "column_id": weight["id"], "week_index": 1, "value": 70},
        headers=HEADERS,
    )
    assert response.status_code == 200, response.text

    full = client.get(f"/api/programs/{program['id']}/full", headers=HEADERS).json()
    assert full["cells"][0]["value"] == "70"


@pytest.mark.parametrize(
    ("plan_type", "attributes", "path"),
    [
        ("training", {"total_weeks": "many"}, "total_weeks"),
        ("macro", {"kcal": "lots"}, "kcal"),
        ("macro", {"protein_g": -5}, "protein_g"),
        ("diet", {"diet_type": "keto"}, "diet_type"),
    ],
)
def test_malformed_attributes_are_422(client, plan_type, attributes, path):
    response = client.post(
        "/api/plans",
        json={"plan_type": plan_type, "client_id": "client-1", "effective_from": "2026-03-02", "attributes": attributes},
        headers=HEADERS,
    )
    assert response.status_code == 422
    assert response.json()["error"] == "validation_error"
    assert response.json()["path"] == path


def test_numeric_string_attribute_is_coerced(client):
    program = _create_program(client, attributes={"total_weeks": "4"})
    assert program["attributes"] == {"total_weeks": 4}


@pytest.mark.parametrize("key", ["name", "status", "effective_from", "client_id"])
def test_header_fields_rejected_in_attributes(client, key):
    response = client.post(
        "/api/plans",
        json={
            "plan_type": "training",
            "client_id": "client-1",
            "effective_from": "2026-03-02",
            "name": "Fuerza",
            "attributes": {key: "2026-03-09"},
        },
        headers=HEADERS,
    )
    assert response.status_code == 422


def test_update_rejects_window_in_attributes(client):
    program = _create_program(client)
    response = client.patch(
        f"/api/plans/{program['id']}", json={"attributes": {"effective_to": "2026-04-01"}}, headers=HEADERS
    )
    assert response.status_code == 422

    response = client.patch(f"/api/plans/{program['id']}", json={"attributes": {"total_weeks": 0}}, headers=HEADERS)
    assert response.status_code == 422
    assert response.json()["path"] == "total_weeks"


def test_diet_structure_flow(client):
    plan = client.post(
        "/api/plans",
        json={"plan_type": "diet", "client_id": "client-1", "effective_from": "2026-03-01"},
        headers=HEADERS,
    ).json()

    meals = [{"name": "Desayuno", "options": [{"name": "A", "items": [{"food_name": "Yogur"}]}]}]
    response = client.put(f"/api/diet-plans/{plan['id']}/structure", json={"meals": meals}, headers=HEADERS)
    assert response.status_code == 200, response.text
    assert response.json()["meals"][0]["options"][0]["items"][0]["name"] == "Yogur"

    meals[0]["options"][0]["items"].append({"quantity_value": 2})
    response = client.put(f"/api/diet-plans/{plan['id']}/structure", json={"meals": meals}, headers=HEADERS)
    assert response.status_code == 422
    assert response.json()["path"] == "meals[0].options[0].items[1]"


def test_schedule_flow(client):
    program = _create_program(client)
    days = client.put(f"/api/programs/{program['id']}/days", json={"days": ["Torso"]}, headers=HEADERS).json()

    strength = client.post(
        "/api/schedule/strength",
        json={"client_id": "client-1", "program_id": program["id"], "day_id": days[0]["id"], "date": "2026-03-09"},
        headers=HEADERS,
    )
    assert strength.status_code == 201, strength.text
    cardio = client.post(
        "/api/schedule/cardio",
        json={
            "client_id": "client-1",
            "date": "2026-03-10",
            "name": "Rodaje",
            "structure": {"blocks": [{"type": "continuous", "duration": 40}]},
        },
        headers=HEADERS,
    )
    assert cardio.status_code == 201, cardio.text

    done = client.post(
        f"/api/schedule/cardio/{cardio.json()['id']}/complete",
        json={"completed": True, "results": {"rpe": 5}},
        headers=HEADERS,
    )
    assert done.json()["is_completed"] is True

    items = client.get(
        "/api/schedule",
        params={"client_id": "client-1", "start_date": "2026-03-09", "end_date": "2026-03-15"},
        headers=HEADERS,
    ).json()
    assert [(item["kind"], item["date"]) for item in items] == [("strength", "2026-03-09"), ("cardio", "2026-03-10")]
    assert items[0]["day_name"] == "Torso"

    assert client.delete(f"/api/schedule/strength/{strength.json()['id']}", headers=HEADERS).status_code == 204
