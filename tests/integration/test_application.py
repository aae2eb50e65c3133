"""Integration tests for the assembled LocalMart application in ``app.py``."""

import logging

import pytest
from fastapi.testclient import TestClient

OWNER = {"X-User-Id": "owner-001", "X-User-Role": "shop_owner"}


@pytest.fixture()
def client():
    from app import app

    return TestClient(app, raise_server_exceptions=False)


class TestHealth:
    def test_health(self, client):
        response = client.get("/api/health")
        assert response.status_code == 200
        assert response.json() == {"success": True, "status": "ok", "environment": "test"}


class TestRequestId:
    def test_generated_when_absent(self, client):
        response = client.get("/api/health")
        assert len(response.headers["X-Request-Id"]) == 36

    def test_echoed_when_given(self, client):
        response = client.get("/api/health", headers={"X-Request-Id": "req-123"})
        assert response.headers["X-Request-Id"] == "req-123"

    def test_request_is_logged_with_its_id(self, client, caplog):
        with caplog.at_level(logging.INFO, logger="app"):
            client.get("/api/health", headers={"X-Request-Id": "req-456"})

        assert "Request served" in caplog.text
        assert "req-456" in caplog.text


class TestRouting:
    def test_routers_are_mounted_under_api(self, client):
        response = client.post("/api/shops", json={"name": "Sharma General Store"}, headers=OWNER)
        assert response.status_code == 201

        shop_id = response.json()["data"]["id"]
        shop = client.get(f"/api/shops/{shop_id}").json()["data"]
        assert shop["ownerId"] == "owner-001"

    def test_cors_is_enabled(self, client):
        response = client.get("/api/health", headers={"Origin": "http://localhost:3000"})
        assert "access-control-allow-origin" in response.headers


class TestErrorHandling:
    def test_domain_errors(self, client):
        response = client.get("/api/products/prod-missing")
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Product not found"}

    def test_missing_identity(self, client):
        response = client.get("/api/orders")
        assert response.status_code == 401
        assert response.json() == {"success": False, "message": "Not authorized to access this route"}

    def test_unhandled_errors_become_500(self, client, monkeypatch):
        def unavailable(*args, **kwargs):
            raise RuntimeError("database unavailable")

        monkeypatch.setattr("marketplace.api.routes.load", unavailable)

        response = client.get("/api/shops/shop-001")
        assert response.status_code == 500
        assert response.json() == {"success": False, "message": "Server Error"}
