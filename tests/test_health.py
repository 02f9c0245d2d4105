"""Tests for the /health endpoint."""

from __future__ import annotations

from unittest.mock import MagicMock

from fastapi.testclient import TestClient

from readgood.refresh.guard import CycleState
from readgood.storage.schema import init_db
from readgood.web.app import create_app


class TestHealthEndpoint:
    def test_healthy_response(self, tmp_path):
        db_path = str(tmp_path / "test.db")
        init_db(db_path)
        app = create_app(db_path)
        client = TestClient(app)

        resp = client.get("/health")
        assert resp.status_code == 200
        data = resp.json()
        assert data["status"] == "healthy"
        assert data["database"] == "ok"
        assert data["refresh"] == "disabled"

    def test_reports_refresh_state(self, tmp_path):
        db_path = str(tmp_path / "test.db")
        init_db(db_path)
        coordinator = MagicMock()
        coordinator.state = CycleState.FAILED
        client = TestClient(create_app(db_path, coordinator))

        assert client.get("/health").json()["refresh"] == "failed"

    def test_unhealthy_when_db_missing(self, tmp_path):
        db_path = str(tmp_path / "nonexistent" / "missing.db")
        app = create_app(db_path)
        client = TestClient(app, raise_server_exceptions=False)

        resp = client.get("/health")
        assert resp.status_code == 503
        data = resp.json()
        assert data["status"] == "unhealthy"
        assert data["database"] == "error"
        assert "detail" in data

    def test_health_not_under_api_prefix(self, tmp_path):
        db_path = str(tmp_path / "test.db")
        init_db(db_path)
        client = TestClient(create_app(db_path))

        assert client.get("/health").status_code == 200
        resp = client.get("/api/v1/health")
        assert resp.status_code != 200
