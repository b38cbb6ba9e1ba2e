"""
HTTP tests for the locate tracker routes.
"""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from core import ApplicationException
from locates.interfaces import locates_router
from shared.api.middleware import CorrelationIDMiddleware, application_exception_handler


def build_app(engine=None) -> FastAPI:
    app = FastAPI()
    app.add_middleware(CorrelationIDMiddleware)
    app.add_exception_handler(ApplicationException, application_exception_handler)
    app.include_router(locates_router)
    if engine is not None:
        app.state.engine = engine
    return app


@pytest.fixture
def client(engine):
    with TestClient(build_app(engine)) as test_client:
        response = test_client.post("/locate-tracker/refresh")
        assert response.status_code == 200
        yield test_client


def test_engine_missing_returns_503():
    with TestClient(build_app()) as test_client:
        response = test_client.get("/locate-tracker/dashboard")
    assert response.status_code == 503


class TestDashboard:
    def test_refresh_reports_record_count(self, client):
        body = client.post("/locate-tracker/refresh").json()
        assert body["record_count"] == 6
        assert body["refreshed_at"].startswith("2025-01-06T09:00:00")

    def test_dashboard_buckets_and_countdowns(self, client):
        body = client.get("/locate-tracker/dashboard").json()

        assert [r["id"] for r in body["needs_call"]] == ["wo-2", "wo-1"]
        assert [r["id"] for r in body["in_progress"]] == ["wo-4", "wo-3"]
        assert [r["id"] for r in body["completed"]] == ["wo-5"]
        assert body["in_progress"][0]["countdown"] == {
            "text": "3h 40m", "urgency": "normal", "color": "#10b981",
        }
        assert body["completed"][0]["countdown"]["text"] == "EXPIRED"
        assert body["needs_call"][1]["address"] == {
            "street": "45 Oak Ave", "city": "Austin", "state": "TX", "zip": "78701",
        }
        assert body["summary"]["emergency_in_progress"] == 1

    def test_dashboard_filters(self, client):
        body = client.get("/locate-tracker/dashboard", params={"search": "austin"}).json()
        assert [r["id"] for r in body["needs_call"]] == ["wo-1"]
        assert len(body["in_progress"]) == 2

    def test_invalid_filter_is_422(self, client):
        response = client.get("/locate-tracker/dashboard", params={"call_type": "URGENT"})
        assert response.status_code == 422
        assert "correlation_id" in response.json()

    def test_refresh_failure_is_502(self, client, fake_api):
        fake_api.fail_fetch = True
        response = client.post("/locate-tracker/refresh")
        assert response.status_code == 502
        assert response.json()["detail"] == "Locates API: upstream unavailable"


class TestSelection:
    def test_toggle_and_clear(self, client):
        response = client.post("/locate-tracker/selection/needs_call/toggle", json={"id": "wo-1"})
        assert response.json()["selection"]["needs_call"] == ["wo-1"]

        response = client.post("/locate-tracker/selection/needs_call/clear")
        assert response.json()["selection"]["needs_call"] == []

    def test_toggle_id_outside_bucket_is_422(self, client):
        response = client.post("/locate-tracker/selection/needs_call/toggle", json={"id": "wo-3"})
        assert response.status_code == 422

    def test_select_all_visible_bucket(self, client):
        response = client.post("/locate-tracker/selection/needs_call/select-all")
        assert response.json()["selection"]["needs_call"] == ["wo-1", "wo-2"]

    def test_select_all_ignores_ids_not_in_bucket(self, client):
        response = client.post(
            "/locate-tracker/selection/in_progress/select-all",
            json={"ids": ["wo-3", "wo-1", "ghost"]},
        )
        assert response.json()["selection"]["in_progress"] == ["wo-3"]

    def test_unknown_bucket_is_422(self, client):
        response = client.post("/locate-tracker/selection/archived/clear")
        assert response.status_code == 422


class TestActions:
    def test_mark_called(self, client, fake_api):
        response = client.post("/locate-tracker/work-orders/wo-1/call", json={"call_type": "EMERGENCY"})

        assert response.status_code == 200
        assert response.json()["message"] == "1 marked called"
        assert fake_api.calls[-2][:3] == ("call", "wo-1", "EMERGENCY")

    def test_mark_called_unknown_record_is_404(self, client):
        response = client.post("/locate-tracker/work-orders/ghost/call")
        assert response.status_code == 404

    def test_bulk_delete_requires_confirmation(self, client, fake_api):
        client.post("/locate-tracker/selection/needs_call/select-all")

        response = client.post("/locate-tracker/selection/needs_call/delete", json={"confirmed": False})

        assert response.status_code == 422
        assert fake_api.count("delete") == 0

    def test_bulk_delete_partial(self, client, fake_api):
        client.post("/locate-tracker/selection/needs_call/select-all")
        fake_api.fail_ids = {"wo-2"}

        response = client.post("/locate-tracker/selection/needs_call/delete", json={"confirmed": True})

        body = response.json()
        assert body["status"] == "partial"
        assert body["message"] == "1 deleted, 1 failed"
        assert body["failed_ids"] == ["wo-2"]
        assert client.get("/locate-tracker/selection").json()["selection"]["needs_call"] == []


class TestTaggingRoutes:
    def test_single_tag_flow(self, client, fake_api):
        opened = client.post("/locate-tracker/tagging/open", json={"mode": "single", "id": "wo-1"}).json()
        assert opened["open"] is True
        assert opened["form"]["name"] == "Dana Field"

        client.patch("/locate-tracker/tagging/form", json={"tags": "gas, water"})
        response = client.post("/locate-tracker/tagging/submit")

        assert response.json()["message"] == "1 tagged"
        assert fake_api.count("tag") == 1
        assert client.get("/locate-tracker/tagging").json()["open"] is False

    def test_blank_name_rejected_without_call(self, client, fake_api):
        client.post("/locate-tracker/tagging/open", json={"mode": "single", "id": "wo-1"})
        client.patch("/locate-tracker/tagging/form", json={"name": "  "})

        response = client.post("/locate-tracker/tagging/submit")

        assert response.status_code == 422
        assert response.json()["details"] == {"missing_fields": ["name"]}
        assert fake_api.count("tag") == 0

    def test_bulk_open_without_selection_is_422(self, client):
        response = client.post("/locate-tracker/tagging/open", json={"mode": "bulk"})
        assert response.status_code == 422

    def test_single_open_requires_id(self, client):
        response = client.post("/locate-tracker/tagging/open", json={"mode": "single"})
        assert response.status_code == 422

    def test_cancel_closes_dialog(self, client):
        client.post("/locate-tracker/tagging/open", json={"mode": "single", "id": "wo-2"})
        assert client.post("/locate-tracker/tagging/cancel").json()["open"] is False
