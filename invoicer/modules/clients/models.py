from invoicer.database.database import Base
from sqlalchemy import Column, String, Enum, Text
from invoicer.common.mixins import BaseMixin
from invoicer.modules.documents.models import enum_values
import enum


class ClientStatus(enum.Enum):
    ACTIVE = "active"
    INACTIVE = "inactive"
    ARCHIVED = "archived"


class Client(Base, BaseMixin):
    __tablename__ = "clients"

    business_name = Column(String(200), nullable=False, index=True)
    contact_name = Column(String(200), nullable=True)
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)
    address = Column(String(500), nullable=True)
    city = Column(String(100), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(100), nullable=True)
    tax_id = Column(String(50), nullable=True)
    notes = Column(Text, nullable=True)
    status = Column(
        Enum(ClientStatus, name="client_status", values_callable=enum_values),
        nullable=False,
        default=ClientStatus.ACTIVE
    )

    def __repr__(self):
        return f"<Client(id={self.id}, business_name='{self.business_name}')>"
