import logging
from uuid import UUID

from sqlalchemy.orm import Session

from invoicer.common.crud import store_errors
from invoicer.common.exceptions import ValidationError
from invoicer.modules.notifications.models import EmailFrequency, NotificationPreferences
from invoicer.modules.notifications.schemas import NotificationPreferencesUpdate

logger = logging.getLogger(__name__)

# Valores de un usuario que nunca guardó preferencias
DEFAULT_PREFERENCES = {
    "invoice_notifications": True,
    "client_activity": True,
    "project_updates": True,
    "marketing_tips": False,
    "email_frequency": EmailFrequency.IMMEDIATE,
}


class NotificationPreferencesService:
    """Preferencias de notificación (una fila por usuario, creada al primer guardado)"""

    def __init__(self, db: Session):
        self.db = db

    def _find(self, owner_id: UUID):
        return self.db.query(NotificationPreferences).filter(NotificationPreferences.user_id == owner_id).first()

    def get_preferences(self, owner_id: UUID) -> NotificationPreferences:
        """Preferencias guardadas o, si no hay, los valores por defecto sin persistir"""
        with store_errors(self.db, "consultar preferencias de notificación"):
            preferences = self._find(owner_id)
        if preferences is None:
            return NotificationPreferences(user_id=owner_id, **DEFAULT_PREFERENCES)
        return preferences

    def update_preferences(self, owner_id: UUID, data: NotificationPreferencesUpdate) -> NotificationPreferences:
        changes = data.model_dump(exclude_unset=True)
        for field, value in changes.items():
            if value is None:
                raise ValidationError(f"{field} no puede ser nulo")

        with store_errors(self.db, "guardar preferencias de notificación"):
            preferences = self._find(owner_id)
            if preferences is None:
                preferences = NotificationPreferences(user_id=owner_id, **{**DEFAULT_PREFERENCES, **changes})
                self.db.add(preferences)
            else:
                for field, value in changes.items():
                    setattr(preferences, field, value)
            self.db.commit()
            self.db.refresh(preferences)

        logger.info(f"Notification preferences saved for user {owner_id}")
        return preferences
