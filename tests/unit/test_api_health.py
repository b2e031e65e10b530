"""Tests for health check route."""

from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from inkwell.api.main import create_app


@pytest.fixture()
def client() -> TestClient:
    return TestClient(create_app())


class TestHealthEndpoint:
    def test_health_returns_ok(self, client: TestClient) -> None:
        response = client.get("/api/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "ok"
        assert data["version"] == "0.1.0"

    def test_health_reports_environment(self, client: TestClient) -> None:
        data = client.get("/api/health").json()
        assert "environment" in data
        assert "quota_persistence" in data
