"""
Common mixins for owner-scoped models
"""
from sqlalchemy import Column, DateTime, ForeignKey, Uuid
from sqlalchemy.orm import declared_attr
from sqlalchemy.sql import func
from uuid import uuid4


class OwnerMixin:
    """Mixin for models owned by exactly one user; every query filters on user_id"""

    @declared_attr
    def user_id(cls):
        return Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)


class TimestampMixin:
    """Mixin for models that need timestamp tracking"""

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)


class BaseMixin(OwnerMixin, TimestampMixin):
    """Combines owner and timestamp functionality for most business models"""

    id = Column(Uuid, primary_key=True, default=uuid4, index=True)
