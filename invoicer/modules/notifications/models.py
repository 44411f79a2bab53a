from invoicer.database.database import Base
from sqlalchemy import Boolean, Column, Enum, UniqueConstraint
from invoicer.common.mixins import BaseMixin
from invoicer.modules.documents.models import enum_values
import enum


class EmailFrequency(enum.Enum):
    IMMEDIATE = "immediate"
    DAILY = "daily"
    WEEKLY = "weekly"


class NotificationPreferences(Base, BaseMixin):
    """Qué avisos recibe el usuario y con qué frecuencia"""
    __tablename__ = "notification_preferences"

    invoice_notifications = Column(Boolean, nullable=False, default=True)
    client_activity = Column(Boolean, nullable=False, default=True)
    project_updates = Column(Boolean, nullable=False, default=True)
    marketing_tips = Column(Boolean, nullable=False, default=False)
    email_frequency = Column(
        Enum(EmailFrequency, name="email_frequency", values_callable=enum_values),
        nullable=False,
        default=EmailFrequency.IMMEDIATE
    )

    __table_args__ = (
        UniqueConstraint("user_id", name="uq_notification_preferences_user"),
    )
