from pydantic import BaseModel
from typing import Optional
from uuid import UUID
from datetime import datetime

from invoicer.modules.notifications.models import EmailFrequency


class NotificationPreferencesUpdate(BaseModel):
    """Actualización parcial: solo se tocan los campos enviados"""
    invoice_notifications: Optional[bool] = None
    client_activity: Optional[bool] = None
    project_updates: Optional[bool] = None
    marketing_tips: Optional[bool] = None
    email_frequency: Optional[EmailFrequency] = None

    class Config:
        extra = "forbid"


class NotificationPreferencesOut(BaseModel):
    id: Optional[UUID] = None
    invoice_notifications: bool
    client_activity: bool
    project_updates: bool
    marketing_tips: bool
    email_frequency: EmailFrequency
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True
