"""Integration tests for analytics endpoints."""
import csv
import io
import pytest


@pytest.fixture
def task(task_directory):
    project = task_directory.add_project("user123", "Website")
    return task_directory.add_task("user123", "Write copy", project_id=project.id)


async def create_entry(app_client, headers, task_id, start, end):
    response = await app_client.post(
        "/time-entries",
        json={"task_id": task_id, "start_time": start, "end_time": end},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()["data"]


@pytest.mark.asyncio
class TestAnalyticsEndpoints:
    """Tests for dashboard, chart and report endpoints."""

    async def test_dashboard(self, app_client, auth_headers, task):
        started = await app_client.post(f"/time-entries/tasks/{task.id}/start", headers=auth_headers)
        assert started.status_code == 201

        response = await app_client.get("/analytics/dashboard?period=7", headers=auth_headers)

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["summary"]["total_tasks"] == 1
        assert data["summary"]["projects_count"] == 1
        assert data["summary"]["total_time_spent"] >= 0
        assert len(data["charts"]["weekday_stats"]) == 7

    async def test_dashboard_requires_auth(self, app_client):
        response = await app_client.get("/analytics/dashboard")

        assert response.status_code == 401

    async def test_time_chart_by_month(self, app_client, auth_headers, task):
        await create_entry(app_client, auth_headers, task.id, "2024-01-05T10:00:00Z", "2024-01-05T10:01:40Z")
        await create_entry(app_client, auth_headers, task.id, "2024-01-15T10:00:00Z", "2024-01-15T10:03:20Z")
        await create_entry(app_client, auth_headers, task.id, "2024-01-25T10:00:00Z", "2024-01-25T10:05:00Z")
        await create_entry(app_client, auth_headers, task.id, "2024-02-05T10:00:00Z", "2024-02-05T10:00:50Z")

        response = await app_client.get(
            "/analytics/time-chart",
            params={"from": "2024-01-01T00:00:00Z", "to": "2024-02-29T23:59:59Z", "group_by": "month"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["time_data"] == [
            {"period": "2024-01", "total_time": 600, "tasks_count": 1},
            {"period": "2024-02", "total_time": 50, "tasks_count": 1},
        ]
        assert data["summary"]["total_time"] == 650
        assert data["summary"]["start"] == "2024-01-01"
        assert data["summary"]["end"] == "2024-02-29"

    async def test_time_chart_inverted_window(self, app_client, auth_headers):
        response = await app_client.get(
            "/analytics/time-chart",
            params={"from": "2024-02-01T00:00:00Z", "to": "2024-01-01T00:00:00Z"},
            headers=auth_headers,
        )

        assert response.status_code == 400
        assert response.json()["success"] is False

    async def test_time_chart_invalid_group_by(self, app_client, auth_headers):
        response = await app_client.get("/analytics/time-chart?group_by=year", headers=auth_headers)

        assert response.status_code == 422

    async def test_project_report(self, app_client, auth_headers, task):
        await create_entry(app_client, auth_headers, task.id, "2024-01-05T10:00:00Z", "2024-01-05T11:00:00Z")

        response = await app_client.get(
            "/analytics/projects",
            params={"from": "2024-01-01T00:00:00Z", "to": "2024-01-31T00:00:00Z"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["projects"][0]["name"] == "Website"
        assert data["projects"][0]["total_time_spent"] == 3600
        assert data["summary"]["total_projects"] == 1

    async def test_export_csv(self, app_client, auth_headers, task):
        await create_entry(app_client, auth_headers, task.id, "2024-01-05T10:00:00Z", "2024-01-05T11:00:00Z")

        response = await app_client.get(
            "/analytics/export/csv",
            params={"from": "2024-01-01T00:00:00Z", "to": "2024-01-31T00:00:00Z"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.headers["content-type"].startswith("text/csv")
        assert "attachment" in response.headers["content-disposition"]
        rows = list(csv.reader(io.StringIO(response.content.decode("utf-8-sig"))))
        assert rows[0][0] == "Task title"
        assert rows[1][0] == "Write copy"
        assert rows[1][6] == "60"

    async def test_export_csv_grouped(self, app_client, auth_headers, task):
        await create_entry(app_client, auth_headers, task.id, "2024-01-05T10:00:00Z", "2024-01-05T11:00:00Z")

        response = await app_client.get(
            "/analytics/export/csv",
            params={"from": "2024-01-01T00:00:00Z", "to": "2024-01-31T00:00:00Z", "group_by": "day"},
            headers=auth_headers,
        )

        rows = list(csv.reader(io.StringIO(response.content.decode("utf-8-sig"))))
        assert rows == [["Period", "Total time (min)", "Tasks"], ["2024-01-05", "60", "1"]]

    async def test_export_pdf(self, app_client, auth_headers, task):
        await create_entry(app_client, auth_headers, task.id, "2024-01-05T10:00:00Z", "2024-01-05T11:00:00Z")

        response = await app_client.get(
            "/analytics/export/pdf",
            params={"from": "2024-01-01T00:00:00Z", "to": "2024-01-31T00:00:00Z"},
            headers=auth_headers,
        )

        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert response.content.startswith(b"%PDF")

    async def test_export_with_ukrainian_locale(self, app_client, auth_headers, task, monkeypatch):
        from timeledger.config import settings

        monkeypatch.setattr(settings, "report_locale", "uk")
        await create_entry(app_client, auth_headers, task.id, "2024-01-05T10:00:00Z", "2024-01-05T11:00:00Z")
        params = {"from": "2024-01-01T00:00:00Z", "to": "2024-01-31T00:00:00Z"}

        pdf = await app_client.get("/analytics/export/pdf", params=params, headers=auth_headers)
        report = await app_client.get("/analytics/export/csv", params=params, headers=auth_headers)

        assert pdf.status_code == 200
        assert pdf.content.startswith(b"%PDF")
        rows = list(csv.reader(io.StringIO(report.content.decode("utf-8-sig"))))
        assert rows[0][0] == "Назва завдання"

    async def test_export_unknown_format(self, app_client, auth_headers):
        response = await app_client.get("/analytics/export/xlsx", headers=auth_headers)

        assert response.status_code == 422


@pytest.mark.asyncio
class TestHealthEndpoints:
    """Tests for root and health endpoints."""

    async def test_root(self, app_client):
        response = await app_client.get("/")

        assert response.status_code == 200
        assert response.json()["status"] == "ok"

    async def test_health(self, app_client):
        response = await app_client.get("/health")

        assert response.json() == {"status": "healthy"}
