"""Tests for the notification settings and delete routes."""

from unittest.mock import AsyncMock
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from chapterhub.notifications.models import NotificationSettings
from chapterhub.notifications.service import NotificationService

from tests.helpers import auth_headers


@pytest.fixture
def notification_service(client: TestClient) -> AsyncMock:
    service = AsyncMock(spec=NotificationService)
    client.app.state.notification_service = service
    return service


def test_settings_default(client, notification_service, reader):
    notification_service.get_preferences.return_value = NotificationSettings(
        user_id=reader.id
    )

    response = client.get("/v1/notifications/settings", headers=auth_headers(reader))

    assert response.status_code == 200
    data = response.json()
    assert data["comment_replies"] is True
    assert data["comment_mentions"] is True
    assert data["email_notifications"] is False
    notification_service.get_preferences.assert_awaited_once_with(reader.id)


def test_update_sends_only_changed_flags(client, notification_service, reader):
    notification_service.update_preferences.return_value = NotificationSettings(
        user_id=reader.id, comment_reactions=False
    )

    response = client.patch(
        "/v1/notifications/settings",
        json={"comment_reactions": False},
        headers=auth_headers(reader),
    )

    assert response.status_code == 200
    assert response.json()["comment_reactions"] is False
    notification_service.update_preferences.assert_awaited_once_with(
        reader.id, {"comment_reactions": False}
    )


def test_update_rejects_unknown_flags(client, notification_service, reader):
    response = client.patch(
        "/v1/notifications/settings",
        json={"newsletter": True},
        headers=auth_headers(reader),
    )

    assert response.status_code == 422
    notification_service.update_preferences.assert_not_awaited()


def test_delete_notification(client, notification_service, reader):
    notification_service.delete_notification.return_value = True
    notification_id = uuid4()

    response = client.delete(
        f"/v1/notifications/{notification_id}", headers=auth_headers(reader)
    )

    assert response.status_code == 204
    notification_service.delete_notification.assert_awaited_once_with(
        reader.id, notification_id
    )


def test_delete_missing_notification(client, notification_service, reader):
    notification_service.delete_notification.return_value = False

    response = client.delete(
        f"/v1/notifications/{uuid4()}", headers=auth_headers(reader)
    )

    assert response.status_code == 404


def test_settings_require_login(client, notification_service):
    response = client.get("/v1/notifications/settings")

    assert response.status_code == 401
