from invoicer.database.database import Base
from sqlalchemy import Column, String, ForeignKey, Numeric, Enum, Date, Text, UniqueConstraint, Uuid
from datetime import date
from uuid import uuid4
from invoicer.common.mixins import OwnerMixin, TimestampMixin
from invoicer.modules.documents.models import enum_values
import enum


class PaymentMethod(enum.Enum):
    CASH = "cash"                    # Efectivo
    BANK_TRANSFER = "bank_transfer"  # Transferencia
    CREDIT_CARD = "credit_card"      # Tarjeta
    PAYPAL = "paypal"
    OTHER = "other"                  # Otro


class Receipt(Base, OwnerMixin, TimestampMixin):
    __tablename__ = "receipts"

    id = Column(Uuid, primary_key=True, default=uuid4)

    # References (client sin FK: ver política de borrado de clientes)
    client_id = Column(Uuid, nullable=False, index=True)
    invoice_id = Column(Uuid, ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True, index=True)
    quote_id = Column(Uuid, ForeignKey("quotes.id", ondelete="SET NULL"), nullable=True, index=True)

    receipt_number = Column(String(50), nullable=False)
    reference = Column(String(100), nullable=True)
    date = Column(Date, nullable=False, default=date.today)
    amount = Column(Numeric(15, 2), nullable=False)
    currency = Column(String(3), nullable=False, default="USD")
    payment_method = Column(
        Enum(PaymentMethod, name="payment_method", values_callable=enum_values),
        nullable=False,
        default=PaymentMethod.BANK_TRANSFER
    )
    payment_reference = Column(String(100), nullable=True)
    notes = Column(Text, nullable=True)

    __table_args__ = (
        UniqueConstraint("user_id", "receipt_number", name="uq_receipt_user_number"),
    )

    @property
    def number(self) -> str:
        return self.receipt_number
