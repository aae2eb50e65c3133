"""Integration tests for the notification endpoints via TestClient."""

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from protean import UnitOfWork

from marketplace.api import notification_router
from marketplace.api.errors import install_error_handlers
from marketplace.notification.emitter import NotificationEmitter

CUSTOMER = {"X-User-Id": "cust-001"}
ADMIN = {"X-User-Id": "admin-001", "X-User-Role": "admin"}


@pytest.fixture()
def client():
    app = FastAPI()
    install_error_handlers(app)
    app.include_router(notification_router, prefix="/api")
    return TestClient(app)


@pytest.fixture()
def notification_ids():
    with UnitOfWork():
        emitter = NotificationEmitter()
        return [
            emitter.order_status("cust-001", "ord-001", "ORD2610180001", "confirmed").id,
            emitter.order_status("cust-001", "ord-001", "ORD2610180001", "preparing").id,
            emitter.generic("cust-002", "Welcome", "Thanks for joining LocalMart").id,
        ]


class TestListNotifications:
    def test_list(self, client, notification_ids):
        response = client.get("/api/notifications", headers=CUSTOMER)
        assert response.status_code == 200

        body = response.json()
        assert body["success"] is True
        assert body["pagination"]["totalItems"] == 2
        first = body["data"][0]
        assert first["type"] == "order_status"
        assert first["channels"] == ["email", "push"]
        assert first["data"] == {"order_id": "ord-001"}
        assert first["isRead"] is False

    def test_pages_default_to_twenty(self, client):
        emitter = NotificationEmitter()
        for index in range(25):
            emitter.generic("cust-003", f"Offer {index}", "Fresh stock today")

        headers = {"X-User-Id": "cust-003"}
        first = client.get("/api/notifications", headers=headers).json()
        assert len(first["data"]) == 20
        assert first["pagination"]["totalPages"] == 2

        second = client.get("/api/notifications", params={"page": 2}, headers=headers).json()
        assert len(second["data"]) == 5
        assert second["pagination"]["hasPrevPage"] is True

    def test_page_size_is_capped(self, client):
        response = client.get("/api/notifications", params={"limit": 101}, headers=CUSTOMER)
        assert response.status_code == 400
        assert "limit" in response.json()["errors"]

    def test_requires_identity(self, client):
        assert client.get("/api/notifications").status_code == 401

    def test_unread_only(self, client, notification_ids):
        client.put(f"/api/notifications/{notification_ids[0]}/read", headers=CUSTOMER)
        body = client.get("/api/notifications", params={"unread_only": True}, headers=CUSTOMER).json()
        assert [item["id"] for item in body["data"]] == [notification_ids[1]]


class TestNotificationCommands:
    def test_unread_count(self, client, notification_ids):
        response = client.get("/api/notifications/unread-count", headers=CUSTOMER)
        assert response.json() == {"success": True, "data": {"unreadCount": 2}}

    def test_mark_read(self, client, notification_ids):
        response = client.put(f"/api/notifications/{notification_ids[0]}/read", headers=CUSTOMER)
        assert response.status_code == 200
        assert response.json()["data"]["isRead"] is True

    def test_mark_read_of_someone_else(self, client, notification_ids):
        response = client.put(f"/api/notifications/{notification_ids[2]}/read", headers=CUSTOMER)
        assert response.status_code == 404
        assert response.json() == {"success": False, "message": "Notification not found"}

    def test_mark_all_read(self, client, notification_ids):
        response = client.put("/api/notifications/mark-all-read", headers=CUSTOMER)
        assert response.json() == {"success": True, "message": "2 notifications marked as read"}

    def test_delete_read(self, client, notification_ids):
        client.put(f"/api/notifications/{notification_ids[0]}/read", headers=CUSTOMER)

        response = client.delete("/api/notifications/delete-read", headers=CUSTOMER)
        assert response.json() == {"success": True, "message": "1 read notifications deleted"}
        assert client.get("/api/notifications", headers=CUSTOMER).json()["pagination"]["totalItems"] == 1

    def test_delete(self, client, notification_ids):
        response = client.delete(f"/api/notifications/{notification_ids[1]}", headers=CUSTOMER)
        assert response.json() == {"success": True, "message": "Notification deleted"}

    def test_dispatch_is_admin_only(self, client, notification_ids):
        assert client.post("/api/notifications/dispatch", headers=CUSTOMER).status_code == 403

        response = client.post("/api/notifications/dispatch", headers=ADMIN)
        assert response.status_code == 200
        assert response.json()["data"] == {"sent": 3, "failed": 0}
