from sqlalchemy import Column, String, Boolean, DateTime, Uuid
from uuid import uuid4
from invoicer.database.database import Base
from invoicer.common.mixins import TimestampMixin

class User(Base, TimestampMixin):
    """Usuario de la aplicación: dueño de clientes, proyectos y documentos"""
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid4)
    email = Column(String, unique=True, nullable=False)
    password = Column(String, nullable=False)
    full_name = Column(String(200), nullable=True)
    first_name = Column(String(100), nullable=True)
    last_name = Column(String(100), nullable=True)
    phone = Column(String(50), nullable=True)
    is_active = Column(Boolean, default=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
    last_password_change = Column(DateTime(timezone=True), nullable=True)
