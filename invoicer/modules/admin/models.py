from sqlalchemy import Column, String, Boolean, DateTime, Uuid
from uuid import uuid4
from invoicer.database.database import Base
from invoicer.common.mixins import TimestampMixin


class AdminUser(Base, TimestampMixin):
    """Administrador del back-office; credenciales separadas de los usuarios"""
    __tablename__ = "admin_users"

    id = Column(Uuid, primary_key=True, default=uuid4)
    username = Column(String(100), unique=True, nullable=False, index=True)
    email = Column(String(255), unique=True, nullable=False)
    password_hash = Column(String(64), nullable=False)  # sha256 hex de password + salt
    salt = Column(String(64), nullable=False)
    role = Column(String(20), nullable=False, default="admin")  # admin, superadmin
    is_active = Column(Boolean, nullable=False, default=True)
    last_login = Column(DateTime(timezone=True), nullable=True)
