from invoicer.database.database import Base
from sqlalchemy import Column, String, DateTime, ForeignKey, Enum, Date, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from invoicer.modules.documents.models import BillableDocumentMixin, LineItemMixin, enum_values
import enum


class InvoiceStatus(enum.Enum):
    DRAFT = "draft"          # Borrador, editable
    SENT = "sent"            # Enviada al cliente
    VIEWED = "viewed"        # Vista por el cliente
    PAID = "paid"            # Pagada completamente
    OVERDUE = "overdue"      # Vencida sin pago
    CANCELLED = "cancelled"  # Anulada


class Invoice(Base, BillableDocumentMixin):
    __tablename__ = "invoices"

    invoice_number = Column(String(50), nullable=False)
    status = Column(
        Enum(InvoiceStatus, name="invoice_status", values_callable=enum_values),
        nullable=False,
        default=InvoiceStatus.DRAFT
    )
    due_date = Column(Date, nullable=True)

    sent_at = Column(DateTime(timezone=True), nullable=True)
    paid_at = Column(DateTime(timezone=True), nullable=True)
    cancelled_at = Column(DateTime(timezone=True), nullable=True)

    # Relationships
    items = relationship(
        "InvoiceItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceItem.position"
    )

    __table_args__ = (
        UniqueConstraint("user_id", "invoice_number", name="uq_invoice_user_number"),
    )

    @property
    def number(self) -> str:
        return self.invoice_number


class InvoiceItem(Base, LineItemMixin):
    __tablename__ = "invoice_items"

    invoice_id = Column(Uuid, ForeignKey("invoices.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    invoice = relationship("Invoice", back_populates="items")
