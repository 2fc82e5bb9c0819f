"""Route tests for the retention API."""

from unittest.mock import patch

import pytest


class TestRetentionEndpoints:
    @pytest.fixture(autouse=True)
    def _load_routes(self):
        from api import app

        self.paths = app.openapi()["paths"]

    @pytest.mark.parametrize("path, method", [
        ("/api/v1/retention/config", "get"),
        ("/api/v1/retention/config", "put"),
        ("/api/v1/retention/stats", "get"),
        ("/api/v1/retention/cleanup", "post"),
        ("/api/v1/retention/status", "get"),
        ("/health", "get"),
    ])
    def test_endpoint_registered(self, path, method):
        assert method in self.paths.get(path, {})

    def test_no_unversioned_retention_routes(self):
        assert not any(p.startswith("/retention") for p in self.paths)


class TestRetentionRoutes:

    @pytest.fixture(autouse=True)
    def _client(self, memory_store):
        from fastapi.testclient import TestClient
        from api import app

        self.store = memory_store
        self.client = TestClient(app, raise_server_exceptions=False)

    def test_get_config_defaults(self):
        resp = self.client.get("/api/v1/retention/config")
        assert resp.status_code == 200
        assert resp.json() == {"retention_days": 90, "enabled": True, "last_run": None}

    def test_put_config_saves_policy(self):
        resp = self.client.put("/api/v1/retention/config", json={"retention_days": 30, "enabled": False})

        assert resp.status_code == 200
        assert resp.json()["retention_days"] == 30
        assert self.store.stored_policy() == {"retention_days": 30, "enabled": False, "last_run": None}

    def test_put_config_accepts_camel_case(self):
        resp = self.client.put("/api/v1/retention/config", json={"retentionDays": 12, "enabled": True})

        assert resp.status_code == 200
        assert self.store.stored_policy()["retention_days"] == 12

    def test_put_config_preserves_last_run(self):
        self.store.set_policy(30, True, last_run="2026-06-01T00:00:00+00:00")

        self.client.put("/api/v1/retention/config", json={"retention_days": 60, "enabled": True})

        assert self.store.stored_policy()["last_run"] == "2026-06-01T00:00:00+00:00"

    def test_put_config_does_not_run_cleanup(self):
        self.store.add(400)

        self.client.put("/api/v1/retention/config", json={"retention_days": 1, "enabled": True})

        assert len(self.store.records) == 1

    @pytest.mark.parametrize("days", [0, 366, -1])
    def test_put_config_rejects_out_of_range(self, days):
        resp = self.client.put("/api/v1/retention/config", json={"retention_days": days, "enabled": True})

        assert resp.status_code == 422
        assert self.store.stored_policy() is None

    def test_put_config_store_unavailable(self):
        self.store.available = False

        resp = self.client.put("/api/v1/retention/config", json={"retention_days": 30, "enabled": True})

        assert resp.status_code == 503
        body = resp.json()
        assert body["error_code"] == "RET_6002"
        assert body["message"] == "Could not save configuration."

    def test_put_config_read_failure_keeps_stored_policy(self):
        from database import StoreUnavailable

        self.store.set_policy(30, False, last_run="2026-06-01T00:00:00+00:00")
        before = self.store.stored_policy()

        with patch("system_config.get_system_config", side_effect=StoreUnavailable("connection reset")):
            resp = self.client.put("/api/v1/retention/config", json={"retention_days": 60, "enabled": True})

        assert resp.status_code == 503
        assert resp.json()["error_code"] == "RET_6002"
        assert self.store.stored_policy() == before

    def test_put_config_replaces_unreadable_policy(self):
        self.store.config["data_retention_policy"] = '{"enabled": false}'

        resp = self.client.put("/api/v1/retention/config", json={"retention_days": 60, "enabled": True})

        assert resp.status_code == 200
        assert self.store.stored_policy() == {"retention_days": 60, "enabled": True, "last_run": None}

    def test_stats(self):
        self.store.set_policy(30, False)
        for age in (10, 40, 90):
            self.store.add(age)

        resp = self.client.get("/api/v1/retention/stats")

        assert resp.status_code == 200
        body = resp.json()
        assert body["total_records"] == 3
        assert body["records_to_delete"] == 2
        assert body["oldest_record"] is not None

    def test_stats_empty(self):
        resp = self.client.get("/api/v1/retention/stats")
        assert resp.json() == {
            "total_records": 0,
            "oldest_record": None,
            "newest_record": None,
            "records_to_delete": 0,
        }

    def test_cleanup(self):
        self.store.set_policy(30, True)
        for age in (10, 40, 90):
            self.store.add(age)

        resp = self.client.post("/api/v1/retention/cleanup")

        assert resp.status_code == 200
        assert resp.json() == {"deleted_count": 2, "error": None}
        assert len(self.store.records) == 1

    def test_cleanup_failure_surfaces_error(self):
        self.store.available = False

        resp = self.client.post("/api/v1/retention/cleanup")

        assert resp.status_code == 500
        body = resp.json()
        assert body["error_code"] == "RET_6003"
        assert "Database not available" in body["message"]
        assert body["details"]["deleted_count"] == 0

    def test_status_reflects_manual_run(self):
        self.client.post("/api/v1/retention/cleanup")

        resp = self.client.get("/api/v1/retention/status")

        assert resp.status_code == 200
        body = resp.json()
        assert body["running"] is False
        assert body["last_result"] == {"deleted_count": 0}


class TestHealth:

    def test_unhealthy_database(self):
        from fastapi.testclient import TestClient
        from api import app

        with patch("api.get_db_manager", side_effect=Exception("connection refused")):
            resp = TestClient(app).get("/health")

        assert resp.status_code == 503
        assert resp.json()["error_code"] == "DB_5001"

    def test_healthy_database(self):
        from fastapi.testclient import TestClient
        from api import app

        with patch("api.get_db_manager") as mock_db:
            mock_db.return_value.health_check.return_value = {"status": "healthy", "total_detections": 3}
            resp = TestClient(app).get("/health")

        assert resp.status_code == 200
        assert resp.json()["database"]["total_detections"] == 3
