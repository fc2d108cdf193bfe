"""HTTP tests for the task and periodic task routes."""

import pytest
from fastapi.testclient import TestClient

from family_tasks.main import create_app
from tests.unit.mocks import InMemoryBackend


@pytest.fixture
def client(tmp_path):
    app = create_app(InMemoryBackend(), media_root=str(tmp_path / "uploads"), generate_on_startup=False)
    with TestClient(app) as test_client:
        yield test_client


def _create_task(client, **overrides):
    body = {"title": "Trip", "startDate": "2024-01-28", "endDate": "2024-02-03"}
    body.update(overrides)
    response = client.post("/api/tasks", json=body)
    assert response.status_code == 200
    return response.json()["data"]


def _create_rule(client, **overrides):
    body = {"title": "Bins", "periodicType": "weekly", "weekDays": [0, 2], "startDate": "2024-01-01"}
    body.update(overrides)
    response = client.post("/api/periodic-tasks", json=body)
    assert response.status_code == 200
    return response.json()["data"]


@pytest.mark.unit
class TestHealth:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json() == {"status": "healthy"}


@pytest.mark.unit
class TestTaskRoutes:
    def test_create_and_get(self, client):
        task = _create_task(client, executorIds=["m1"])

        assert task["status"] == "pending"
        assert task["executorStatuses"] == [{"memberId": "m1", "status": "pending"}]

        response = client.get(f"/api/tasks/{task['id']}")
        assert response.json() == {"success": True, "data": task}

    def test_create_validation_error_is_400(self, client):
        response = client.post("/api/tasks", json={"title": "", "startDate": "2024-01-01", "endDate": "2024-01-01"})

        assert response.status_code == 400
        body = response.json()
        assert body["success"] is False
        assert "Title cannot be empty" in body["error"]

    def test_null_executor_ids_is_unassigned(self, client):
        task = _create_task(client, executorIds=None)

        assert task["executorIds"] == []
        assert task["executorStatuses"] == []

    def test_create_without_body_is_400(self, client):
        response = client.post("/api/tasks")

        assert response.status_code == 400

    def test_unknown_task_is_404(self, client):
        response = client.get("/api/tasks/missing")

        assert response.status_code == 404
        assert response.json()["success"] is False

    def test_by_date_and_by_month(self, client):
        task = _create_task(client)
        _create_task(client, title="Later", startDate="2024-02-04", endDate="2024-02-10")

        by_date = client.get("/api/tasks/by-date", params={"date": "2024-02-01"}).json()["data"]
        assert [t["id"] for t in by_date] == [task["id"]]

        by_month = client.get("/api/tasks/by-month", params={"year": 2024, "month": 1}).json()["data"]
        assert [t["id"] for t in by_month] == [task["id"]]

    def test_by_date_requires_valid_date(self, client):
        assert client.get("/api/tasks/by-date").status_code == 400
        assert client.get("/api/tasks/by-date", params={"date": "2024-02-30"}).status_code == 400

    def test_by_month_rejects_bad_month(self, client):
        assert client.get("/api/tasks/by-month", params={"year": 2024, "month": 13}).status_code == 400

    def test_by_executor(self, client):
        mine = _create_task(client, executorIds=["m1"])
        shared = _create_task(client, title="Shared")
        _create_task(client, title="Other", executorIds=["m2"])

        data = client.get("/api/tasks/by-executor/m1", params={"date": "2024-02-01"}).json()["data"]

        assert {t["id"] for t in data} == {mine["id"], shared["id"]}

    def test_update_moves_index(self, client):
        task = _create_task(client)

        response = client.put(f"/api/tasks/{task['id']}", json={"endDate": "2024-01-31"})

        assert response.status_code == 200
        assert client.get("/api/tasks/by-month", params={"year": 2024, "month": 2}).json()["data"] == []

    def test_update_inverted_span_is_400(self, client):
        task = _create_task(client)

        response = client.put(f"/api/tasks/{task['id']}", json={"startDate": "2024-03-01"})

        assert response.status_code == 400

    def test_delete(self, client):
        task = _create_task(client)

        assert client.delete(f"/api/tasks/{task['id']}").json() == {"success": True}
        assert client.delete(f"/api/tasks/{task['id']}").status_code == 404

    def test_status_routes(self, client):
        task = _create_task(client, executorIds=["m1", "m2"])

        client.put(f"/api/tasks/{task['id']}/executor/m1/status", json={"status": "completed"})
        response = client.put(f"/api/tasks/{task['id']}/executor/m2/status", json={"status": "completed"})
        assert response.json()["data"]["status"] == "completed"

        other = _create_task(client, title="Solo")
        response = client.put(f"/api/tasks/{other['id']}/status", json={"status": "completed"})
        assert response.json()["data"]["status"] == "completed"

    def test_invalid_status_is_400(self, client):
        task = _create_task(client)

        response = client.put(f"/api/tasks/{task['id']}/status", json={"status": "done"})

        assert response.status_code == 400

    def test_attach_and_remove_media(self, client):
        task = _create_task(client)
        image = f"{task['id']}/drawing.png"

        attached = client.post(f"/api/tasks/{task['id']}/images", json={"imagePath": image}).json()["data"]
        assert attached["images"] == [image]

        recorded = client.put(f"/api/tasks/{task['id']}/audio", json={"audioPath": f"{task['id']}/note.webm"})
        assert recorded.json()["data"]["audioPath"] == f"{task['id']}/note.webm"

        removed = client.request("DELETE", f"/api/tasks/{task['id']}/images", json={"imagePath": image})
        assert removed.json()["data"]["images"] == []
        assert "audioPath" not in client.delete(f"/api/tasks/{task['id']}/audio").json()["data"]

    def test_attach_media_outside_root_is_400(self, client):
        task = _create_task(client)

        response = client.post(f"/api/tasks/{task['id']}/images", json={"imagePath": "../../etc/passwd"})

        assert response.status_code == 400

    def test_remove_audio_without_recording_is_404(self, client):
        task = _create_task(client)

        assert client.delete(f"/api/tasks/{task['id']}/audio").status_code == 404


@pytest.mark.unit
class TestPeriodicTaskRoutes:
    def test_create_reports_schedule(self, client):
        rule = _create_rule(client)

        assert rule["id"].startswith("pt_")
        assert rule["state"] == "active"
        assert rule["scheduleText"] == "every Monday, Wednesday"
        assert rule["weekDays"] == [0, 2]

    def test_weekly_without_days_is_400(self, client):
        response = client.post(
            "/api/periodic-tasks",
            json={"title": "Bins", "periodicType": "weekly", "startDate": "2024-01-01"},
        )

        assert response.status_code == 400
        assert "weekday" in response.json()["error"]

    def test_list_update_toggle_delete(self, client):
        rule = _create_rule(client)

        assert [r["id"] for r in client.get("/api/periodic-tasks").json()["data"]] == [rule["id"]]

        updated = client.put(f"/api/periodic-tasks/{rule['id']}", json={"title": "Recycling"}).json()["data"]
        assert updated["title"] == "Recycling"

        toggled = client.put(f"/api/periodic-tasks/{rule['id']}/toggle", json={"isActive": False}).json()["data"]
        assert toggled["isActive"] is False
        assert toggled["state"] == "inactive"

        assert client.delete(f"/api/periodic-tasks/{rule['id']}").json() == {"success": True}
        assert client.get(f"/api/periodic-tasks/{rule['id']}").status_code == 404

    def test_generate_range_and_stats(self, client):
        rule = _create_rule(client)

        response = client.post(
            "/api/periodic-tasks/generate-range",
            json={"startDate": "2024-01-01", "endDate": "2024-01-07"},
        )
        assert response.json()["data"] == {"startDate": "2024-01-01", "endDate": "2024-01-07", "generated": 2}

        generated = client.get(f"/api/periodic-tasks/{rule['id']}/generated-tasks").json()["data"]
        assert sorted(t["startDate"] for t in generated) == ["2024-01-01", "2024-01-03"]

        stats = client.get(f"/api/periodic-tasks/{rule['id']}/stats").json()["data"]
        assert stats["stats"] == {"totalGenerated": 2, "completed": 0, "pending": 2}
        assert stats["task"]["currentRepeatCount"] == 2

    def test_generate_range_rejects_inverted(self, client):
        response = client.post(
            "/api/periodic-tasks/generate-range",
            json={"startDate": "2024-01-07", "endDate": "2024-01-01"},
        )

        assert response.status_code == 400

    def test_generate_today_and_for_rule(self, client):
        rule = _create_rule(client, periodicType="daily", weekDays=None)

        assert client.post("/api/periodic-tasks/generate-today").json()["data"] == {"generatedCount": 1}
        assert client.post(f"/api/periodic-tasks/{rule['id']}/generate").json()["data"] == {"generated": False}

    def test_generate_for_unknown_rule_is_404(self, client):
        assert client.post("/api/periodic-tasks/pt_missing/generate").status_code == 404

    def test_upcoming(self, client):
        rule = _create_rule(client)

        response = client.get(f"/api/periodic-tasks/{rule['id']}/upcoming", params={"after": "2024-01-01", "limit": 3})

        assert response.json()["data"] == ["2024-01-03", "2024-01-08", "2024-01-10"]
