from invoicer.database.database import Base
from sqlalchemy import Column, String, DateTime, ForeignKey, Enum, Date, UniqueConstraint, Uuid
from sqlalchemy.orm import relationship
from invoicer.modules.documents.models import BillableDocumentMixin, LineItemMixin, enum_values
import enum


class QuoteStatus(enum.Enum):
    DRAFT = "draft"
    SENT = "sent"
    VIEWED = "viewed"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    EXPIRED = "expired"


class Quote(Base, BillableDocumentMixin):
    __tablename__ = "quotes"

    quote_number = Column(String(50), nullable=False)
    status = Column(
        Enum(QuoteStatus, name="quote_status", values_callable=enum_values),
        nullable=False,
        default=QuoteStatus.DRAFT
    )
    expiry_date = Column(Date, nullable=True)

    sent_at = Column(DateTime(timezone=True), nullable=True)
    accepted_at = Column(DateTime(timezone=True), nullable=True)
    # Factura generada al convertir la cotización
    converted_invoice_id = Column(Uuid, ForeignKey("invoices.id", ondelete="SET NULL"), nullable=True)

    # Relationships
    items = relationship(
        "QuoteItem",
        back_populates="quote",
        cascade="all, delete-orphan",
        order_by="QuoteItem.position"
    )

    __table_args__ = (
        UniqueConstraint("user_id", "quote_number", name="uq_quote_user_number"),
    )

    @property
    def number(self) -> str:
        return self.quote_number


class QuoteItem(Base, LineItemMixin):
    __tablename__ = "quote_items"

    quote_id = Column(Uuid, ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False, index=True)

    # Relationships
    quote = relationship("Quote", back_populates="items")
