"""
Tests for the health endpoint and HTTP middlewares.
"""

from unittest.mock import AsyncMock

import pytest

from rest_api.routers.public import health
from shared.config.settings import settings


class TestHealth:

    def test_all_ok_with_realtime_disabled(self, client, monkeypatch):
        monkeypatch.setattr(health, "check_database", lambda: True)

        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "ok", "database": "ok", "redis": "disabled"}

    def test_database_down_is_503(self, client, monkeypatch):
        monkeypatch.setattr(health, "check_database", lambda: False)

        response = client.get("/api/health")

        assert response.status_code == 503
        assert response.json()["database"] == "error"

    def test_redis_down_is_degraded(self, client, monkeypatch):
        monkeypatch.setattr(settings, "realtime_enabled", True)
        monkeypatch.setattr(health, "check_database", lambda: True)
        monkeypatch.setattr(health, "check_redis", AsyncMock(return_value=False))

        response = client.get("/api/health")

        assert response.status_code == 200
        assert response.json() == {"status": "degraded", "database": "ok", "redis": "error"}


class TestMiddlewares:

    @pytest.fixture(autouse=True)
    def healthy(self, monkeypatch):
        monkeypatch.setattr(health, "check_database", lambda: True)

    def test_request_id_generated(self, client):
        response = client.get("/api/health")
        assert len(response.headers["X-Request-ID"]) == 32

    def test_request_id_echoed(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "counter-7.abc"})
        assert response.headers["X-Request-ID"] == "counter-7.abc"

    def test_unsafe_request_id_replaced(self, client):
        response = client.get("/api/health", headers={"X-Request-ID": "bad id with spaces"})
        assert response.headers["X-Request-ID"] != "bad id with spaces"

    def test_security_headers(self, client):
        response = client.get("/api/health")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
        assert response.headers["Cache-Control"] == "no-store"
        assert "default-src 'none'" in response.headers["Content-Security-Policy"]
        assert "Strict-Transport-Security" not in response.headers

    def test_hsts_in_production(self, client, monkeypatch):
        monkeypatch.setattr(settings, "environment", "production")
        response = client.get("/api/health")
        assert response.headers["Strict-Transport-Security"].startswith("max-age=")

    def test_non_json_body_rejected(self, client, customer_headers):
        response = client.post(
            "/api/orders",
            content="items=1",
            headers={**customer_headers, "Content-Type": "application/x-www-form-urlencoded"},
        )
        assert response.status_code == 415
