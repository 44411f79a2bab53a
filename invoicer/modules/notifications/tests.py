"""
Tests de las preferencias de notificación
"""

import pytest

from invoicer.common.exceptions import ValidationError
from invoicer.modules.notifications.models import EmailFrequency, NotificationPreferences
from invoicer.modules.notifications.schemas import NotificationPreferencesUpdate
from invoicer.modules.notifications.service import NotificationPreferencesService


class TestNotificationPreferences:

    def test_defaults_when_never_saved(self, client, auth_headers, db_session):
        response = client.get("/notifications/preferences", headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["id"] is None
        assert data["email_frequency"] == "immediate"
        assert data["invoice_notifications"] is True
        assert data["marketing_tips"] is False
        assert db_session.query(NotificationPreferences).count() == 0

    def test_partial_update(self, client, auth_headers):
        response = client.put(
            "/notifications/preferences", json={"email_frequency": "weekly"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["id"] is not None
        assert response.json()["email_frequency"] == "weekly"

        client.put("/notifications/preferences", json={"marketing_tips": True}, headers=auth_headers)
        data = client.get("/notifications/preferences", headers=auth_headers).json()
        assert data["email_frequency"] == "weekly"
        assert data["marketing_tips"] is True

    @pytest.mark.parametrize("payload", [
        {"email_frequency": "monthly"},
        {"email_frequency": "IMMEDIATE"},
        {"sms": True},
    ])
    def test_invalid_values_rejected(self, client, auth_headers, payload):
        response = client.put("/notifications/preferences", json=payload, headers=auth_headers)
        assert response.status_code == 422

    def test_null_rejected(self, db_session, owner):
        with pytest.raises(ValidationError):
            NotificationPreferencesService(db_session).update_preferences(
                owner.id, NotificationPreferencesUpdate(client_activity=None)
            )

    def test_preferences_are_per_user(self, db_session, owner, other_owner):
        service = NotificationPreferencesService(db_session)
        service.update_preferences(owner.id, NotificationPreferencesUpdate(email_frequency=EmailFrequency.DAILY))

        assert service.get_preferences(owner.id).email_frequency == EmailFrequency.DAILY
        assert service.get_preferences(other_owner.id).email_frequency == EmailFrequency.IMMEDIATE

    def test_requires_authentication(self, client):
        assert client.get("/notifications/preferences").status_code in (401, 403)
