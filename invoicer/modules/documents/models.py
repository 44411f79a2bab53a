from invoicer.database.database import Base
from sqlalchemy import Column, Integer, String, Date, ForeignKey, Numeric, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import declared_attr
from datetime import date
from uuid import uuid4
from invoicer.common.mixins import OwnerMixin, TimestampMixin
import enum


class DocumentType(enum.Enum):
    INVOICE = "invoice"
    QUOTE = "quote"
    RECEIPT = "receipt"


def enum_values(enum_class):
    """Persistir el value del enum (no el nombre) y rechazar valores desconocidos al leer."""
    return [member.value for member in enum_class]


class DocumentSequence(Base, OwnerMixin):
    """Contador de numeración por usuario y tipo de documento"""
    __tablename__ = "document_sequences"

    id = Column(Uuid, primary_key=True, default=uuid4)
    document_type = Column(String(20), nullable=False)
    current_number = Column(Integer, nullable=False, default=0)

    __table_args__ = (
        UniqueConstraint("user_id", "document_type", name="uq_sequence_user_type"),
    )


class BillableDocumentMixin(OwnerMixin, TimestampMixin):
    """Columnas comunes de facturas y cotizaciones"""

    id = Column(Uuid, primary_key=True, default=uuid4)

    # Sin FK a nivel de base de datos: la política de borrado de clientes se aplica en el servicio
    client_id = Column(Uuid, nullable=False, index=True)

    @declared_attr
    def project_id(cls):
        return Column(Uuid, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True, index=True)

    reference = Column(String(100), nullable=True)
    issue_date = Column(Date, nullable=False, default=date.today)
    currency = Column(String(3), nullable=False, default="USD")
    notes = Column(Text, nullable=True)
    terms = Column(Text, nullable=True)
    footer = Column(Text, nullable=True)

    # Document-level rates (0-1)
    tax_rate = Column(Numeric(7, 4), nullable=True)
    discount_rate = Column(Numeric(7, 4), nullable=True)

    # Totals (calculated)
    subtotal = Column(Numeric(15, 2), nullable=False, default=0)
    tax_amount = Column(Numeric(15, 2), nullable=False, default=0)
    discount_amount = Column(Numeric(15, 2), nullable=False, default=0)
    total_amount = Column(Numeric(15, 2), nullable=False, default=0)


class LineItemMixin:
    """Columnas comunes de las líneas de factura / cotización"""

    id = Column(Uuid, primary_key=True, default=uuid4)
    description = Column(String(500), nullable=False)
    quantity = Column(Numeric(12, 3), nullable=False)
    unit_price = Column(Numeric(15, 2), nullable=False)
    tax_rate = Column(Numeric(7, 4), nullable=True)
    discount_rate = Column(Numeric(7, 4), nullable=True)
    amount = Column(Numeric(15, 2), nullable=False)
    position = Column(Integer, nullable=False, default=0)
