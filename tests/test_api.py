"""Tests de los endpoints HTTP con el TestClient de FastAPI"""

from models import LoggedActivity
from tests.conftest import headers_for, make_activity, make_category


def create_category(client, headers, name="Salud"):
    response = client.post("/point-categories", json={"name": name, "color": "#10b981"}, headers=headers)
    assert response.status_code == 201
    return response.json()


def create_activity(client, headers, category_id, **overrides):
    body = {
        "name": "Correr",
        "point_category_id": category_id,
        "kind": "fixed",
        "scoring_method": "multiplier",
        "base_points": 10,
        "focus_levels": {"low": 0.5, "medium": 1.0, "good": 1.5, "zen": 2.0},
    }
    body.update(overrides)
    return client.post("/activities", json=body, headers=headers)


def test_health(client):
    assert client.get("/").json()["status"] == "ok"


def test_requires_token(client):
    assert client.get("/point-categories").status_code == 401
    bad = {"Authorization": "Bearer no-es-un-token"}
    assert client.get("/point-categories", headers=bad).status_code == 401


def test_full_logging_flow(client, auth_headers):
    category = create_category(client, auth_headers)
    response = create_activity(client, auth_headers, category["id"])
    assert response.status_code == 201
    activity = response.json()
    assert activity["focus_levels"]["good"] == 1.5

    response = client.post("/activities/log", json={
        "activity_id": activity["id"],
        "date": "2024-01-15",
        "focus_level": "good",
        "notes": "¡Buena carrera!",
    }, headers=auth_headers)
    assert response.status_code == 201
    logged = response.json()["logged_activity"]
    assert logged["points_earned"] == 15
    assert logged["activity"]["name"] == "Correr"
    assert logged["activity"]["point_category"] == {"id": category["id"], "name": "Salud", "color": "#10b981"}

    stats = client.get("/point-categories", headers=auth_headers).json()
    assert stats["total_points"] == 15
    assert stats["categories"][0]["activity_count"] == 1


def test_log_time_based_activity(client, auth_headers):
    category = create_category(client, auth_headers)
    activity = create_activity(client, auth_headers, category["id"], name="Programar",
                               kind="time_based", base_points=None).json()

    response = client.post("/activities/log", json={
        "activity_id": activity["id"],
        "date": "2024-01-15",
        "start_time": "09:00",
        "end_time": "10:30",
        "focus_level": "zen",
    }, headers=auth_headers)
    assert response.status_code == 201
    assert response.json()["logged_activity"]["points_earned"] == 180


def test_log_numeric_focus_level(client, auth_headers):
    category = create_category(client, auth_headers)
    activity = create_activity(client, auth_headers, category["id"]).json()

    response = client.post("/activities/log", json={
        "activity_id": activity["id"],
        "date": "2024-01-15",
        "focus_level": 1735356260,
    }, headers=auth_headers)
    assert response.status_code == 201
    logged = response.json()["logged_activity"]
    assert logged["focus_level"] == "1735356260"
    assert logged["points_earned"] == 10


def test_log_malformed_focus_level(client, auth_headers):
    category = create_category(client, auth_headers)
    activity = create_activity(client, auth_headers, category["id"]).json()

    for focus_level, stored in (("x" * 200, "x" * 200), (["good"], '["good"]'), (True, "true")):
        response = client.post("/activities/log", json={
            "activity_id": activity["id"],
            "date": "2024-01-15",
            "focus_level": focus_level,
        }, headers=auth_headers)
        assert response.status_code == 201
        logged = response.json()["logged_activity"]
        assert logged["focus_level"] == stored
        assert logged["points_earned"] == 10


def test_fixed_points_with_fractional_values(client, auth_headers):
    category = create_category(client, auth_headers)
    response = create_activity(client, auth_headers, category["id"], scoring_method="fixed_points")
    assert response.status_code == 400

    response = client.post("/points/calculate", json={
        "scoring_method": "fixed_points",
        "focus_levels": {"low": 8, "medium": 12, "good": 12.9, "zen": 25},
        "focus_level": "good",
    }, headers=auth_headers)
    assert response.status_code == 400


def test_log_missing_fields(client, auth_headers):
    response = client.post("/activities/log", json={"focus_level": "good"}, headers=auth_headers)
    assert response.status_code == 400


def test_log_foreign_activity(client, db, user, other_user):
    category = make_category(db, other_user)
    activity = make_activity(db, other_user, category)
    response = client.post("/activities/log", json={
        "activity_id": activity.id, "date": "2024-01-15", "focus_level": "good",
    }, headers=headers_for(user))
    assert response.status_code == 404


def test_duplicate_activity_name(client, auth_headers):
    health = create_category(client, auth_headers, "Salud")
    work = create_category(client, auth_headers, "Trabajo")
    assert create_activity(client, auth_headers, health["id"]).status_code == 201
    assert create_activity(client, auth_headers, health["id"]).status_code == 409
    assert create_activity(client, auth_headers, work["id"]).status_code == 201


def test_invalid_scoring_method(client, auth_headers):
    category = create_category(client, auth_headers)
    response = create_activity(client, auth_headers, category["id"], scoring_method="bonus")
    assert response.status_code == 400


def test_update_activity(client, auth_headers):
    category = create_category(client, auth_headers)
    activity = create_activity(client, auth_headers, category["id"]).json()

    response = client.put(f"/activities/{activity['id']}", json={
        "name": "Correr",
        "point_category_id": category["id"],
        "kind": "fixed",
        "scoring_method": "fixed_points",
        "base_points": 5,
        "focus_levels": {"low": 8, "medium": 12, "good": 18, "zen": 25},
    }, headers=auth_headers)
    assert response.status_code == 200
    assert response.json()["scoring_method"] == "fixed_points"


def test_list_activities(client, auth_headers):
    category = create_category(client, auth_headers)
    activity = create_activity(client, auth_headers, category["id"]).json()
    client.post("/activities/log", json={
        "activity_id": activity["id"], "date": "2024-01-15", "focus_level": "low",
    }, headers=auth_headers)

    response = client.get("/activities", params={"categoryId": category["id"]}, headers=auth_headers)
    assert response.status_code == 200
    items = response.json()["activities"]
    assert items[0]["logged_activities_count"] == 1

    assert client.get("/activities", headers=auth_headers).status_code == 400


def test_delete_activity_cascade(client, auth_headers, session_factory):
    category = create_category(client, auth_headers)
    activity = create_activity(client, auth_headers, category["id"]).json()
    client.post("/activities/log", json={
        "activity_id": activity["id"], "date": "2024-01-15", "focus_level": "zen",
    }, headers=auth_headers)

    response = client.delete(f"/activities/{activity['id']}", headers=auth_headers)
    assert response.status_code == 409

    response = client.delete(
        f"/activities/{activity['id']}", params={"deleteLoggedActivities": "true"}, headers=auth_headers
    )
    assert response.status_code == 200
    assert response.json()["deleted_logged_activities"] == 1

    session = session_factory()
    try:
        assert session.query(LoggedActivity).count() == 0
    finally:
        session.close()

    response = client.delete(f"/activities/{activity['id']}", headers=auth_headers)
    assert response.status_code == 404


def test_benchmarks_achieved(client, auth_headers):
    category = create_category(client, auth_headers)
    client.post(f"/point-categories/{category['id']}/benchmarks",
                json={"name": "Oro", "points_required": 50}, headers=auth_headers)
    client.post(f"/point-categories/{category['id']}/benchmarks",
                json={"name": "Bronce", "points_required": 10}, headers=auth_headers)
    activity = create_activity(client, auth_headers, category["id"]).json()
    client.post("/activities/log", json={
        "activity_id": activity["id"], "date": "2024-01-15", "focus_level": "good",
    }, headers=auth_headers)

    benchmarks = client.get("/point-categories", headers=auth_headers).json()["categories"][0]["benchmarks"]
    assert [(b["name"], b["achieved"]) for b in benchmarks] == [("Bronce", True), ("Oro", False)]


def test_points_preview(client, auth_headers):
    response = client.post("/points/calculate", json={
        "kind": "time_based",
        "scoring_method": "multiplier",
        "focus_levels": {"low": 0.5, "medium": 1.0, "good": 1.5, "zen": 2.0},
        "start_time": "09:00",
        "end_time": "10:30",
        "focus_level": "zen",
    }, headers=auth_headers)
    assert response.status_code == 200
    assert response.json() == {"focus_level": "zen", "duration_minutes": 90, "points": 180}

    response = client.post("/points/calculate", json={
        "kind": "time_based", "start_time": "nueve", "end_time": "10:00",
    }, headers=auth_headers)
    assert response.status_code == 400


def test_recent_activity_and_weekly_data(client, auth_headers):
    category = create_category(client, auth_headers)
    activity = create_activity(client, auth_headers, category["id"]).json()
    client.post("/activities/log", json={
        "activity_id": activity["id"], "date": "2024-01-15", "start_time": "07:30", "focus_level": "medium",
    }, headers=auth_headers)

    recent = client.get("/recent-activity", headers=auth_headers).json()["activities"]
    assert recent[0]["name"] == "Correr"
    assert recent[0]["time"] == "07:30"
    assert recent[0]["category_name"] == "Salud"

    weekly = client.get("/dashboard/weekly-data", headers=auth_headers).json()
    assert len(weekly["current_week"]) == 7
    assert set(weekly) == {"current_week", "previous_week", "current_month", "previous_month"}
