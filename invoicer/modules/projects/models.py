from invoicer.database.database import Base
from sqlalchemy import Column, String, Boolean, Date, Enum, JSON, Numeric, Text, Uuid
from invoicer.common.mixins import BaseMixin
from invoicer.modules.documents.models import enum_values
import enum


class ProjectStatus(enum.Enum):
    ACTIVE = "active"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"
    CANCELLED = "cancelled"


class Project(Base, BaseMixin):
    __tablename__ = "projects"

    # Opcional; sin FK para respetar la política de borrado de clientes
    client_id = Column(Uuid, nullable=True, index=True)

    name = Column(String(200), nullable=False)
    description = Column(Text, nullable=True)
    status = Column(
        Enum(ProjectStatus, name="project_status", values_callable=enum_values),
        nullable=False,
        default=ProjectStatus.ACTIVE
    )
    start_date = Column(Date, nullable=True)
    end_date = Column(Date, nullable=True)
    budget = Column(Numeric(15, 2), nullable=True)
    currency = Column(String(3), nullable=False, default="USD")
    hourly_rate = Column(Numeric(15, 2), nullable=True)
    is_fixed_price = Column(Boolean, nullable=False, default=False)
    tags = Column(JSON, nullable=False, default=list)
