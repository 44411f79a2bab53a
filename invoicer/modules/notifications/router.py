from fastapi import APIRouter

from invoicer.dependencies.dbDependecies import db_dependency
from invoicer.modules.auth.dependencies import current_user_dependency
from invoicer.modules.notifications.schemas import NotificationPreferencesOut, NotificationPreferencesUpdate
from invoicer.modules.notifications.service import NotificationPreferencesService


notifications_router = APIRouter()

@notifications_router.get("/preferences", response_model=NotificationPreferencesOut)
async def get_notification_preferences(db: db_dependency, current_user: current_user_dependency):
    """
    Preferencias de notificación del usuario actual (valores por defecto si nunca se guardaron).
    """
    return NotificationPreferencesService(db).get_preferences(current_user.id)

@notifications_router.put("/preferences", response_model=NotificationPreferencesOut)
async def save_notification_preferences(
    preferences: NotificationPreferencesUpdate,
    db: db_dependency,
    current_user: current_user_dependency
):
    return NotificationPreferencesService(db).update_preferences(current_user.id, preferences)
