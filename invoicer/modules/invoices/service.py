import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from sqlalchemy import func

from invoicer.common.crud import store_errors
from invoicer.modules.documents.lifecycle import INVOICE_LIFECYCLE
from invoicer.modules.documents.models import DocumentType
from invoicer.modules.documents.service import BillableDocumentService
from invoicer.modules.documents.totals import ZERO
from invoicer.modules.invoices.models import Invoice, InvoiceItem, InvoiceStatus
from invoicer.modules.invoices.schemas import InvoiceList, InvoiceOut, InvoicePaymentStatus
from invoicer.modules.quotes.models import Quote
from invoicer.modules.receipts.models import Receipt

logger = logging.getLogger(__name__)

# Estados desde los que una factura puede vencer
OVERDUE_SOURCES = (InvoiceStatus.SENT, InvoiceStatus.VIEWED)
# Estados que admiten recibos de pago
PAYABLE_STATUSES = (
    InvoiceStatus.SENT, InvoiceStatus.VIEWED, InvoiceStatus.OVERDUE, InvoiceStatus.PAID
)


class InvoiceService(BillableDocumentService):
    model = Invoice
    item_model = InvoiceItem
    document_type = DocumentType.INVOICE
    lifecycle = INVOICE_LIFECYCLE
    number_field = "invoice_number"
    date_field = "due_date"
    draft_status = InvoiceStatus.DRAFT
    sent_status = InvoiceStatus.SENT

    def _default_limit_date(self, owner_id: UUID, issue_date: date) -> Optional[date]:
        return self.add_days(issue_date, self.company.payment_terms_days(owner_id))

    def create_invoice(self, owner_id: UUID, invoice_data) -> Invoice:
        return self.create_document(owner_id, invoice_data)

    def list_invoices(
        self,
        owner_id: UUID,
        limit: int,
        offset: int,
        status: Optional[InvoiceStatus] = None,
        client_id: Optional[UUID] = None,
        search: Optional[str] = None
    ) -> InvoiceList:
        invoices, total = self.list_documents(owner_id, limit, offset, status, client_id, search)
        return InvoiceList(
            items=[InvoiceOut.model_validate(invoice) for invoice in invoices],
            total=total,
            limit=limit,
            offset=offset
        )

    def _before_delete(self, owner_id: UUID, invoice: Invoice) -> None:
        # Los recibos y cotizaciones convertidas sobreviven sin la referencia
        self.db.query(Receipt).filter(
            Receipt.user_id == owner_id, Receipt.invoice_id == invoice.id
        ).update({Receipt.invoice_id: None}, synchronize_session=False)
        self.db.query(Quote).filter(
            Quote.user_id == owner_id, Quote.converted_invoice_id == invoice.id
        ).update({Quote.converted_invoice_id: None}, synchronize_session=False)

    # ===== ESTADOS =====

    def mark_sent(self, owner_id: UUID, invoice_id: UUID) -> Invoice:
        return self.transition(owner_id, invoice_id, InvoiceStatus.SENT, stamp="sent_at")

    def mark_viewed(self, owner_id: UUID, invoice_id: UUID) -> Invoice:
        return self.transition(owner_id, invoice_id, InvoiceStatus.VIEWED)

    def mark_paid(self, owner_id: UUID, invoice_id: UUID) -> Invoice:
        return self.transition(owner_id, invoice_id, InvoiceStatus.PAID, stamp="paid_at")

    def mark_overdue(self, owner_id: UUID, invoice_id: UUID, today: Optional[date] = None) -> Invoice:
        return self.transition(owner_id, invoice_id, InvoiceStatus.OVERDUE, today=today)

    def cancel(self, owner_id: UUID, invoice_id: UUID) -> Invoice:
        return self.transition(owner_id, invoice_id, InvoiceStatus.CANCELLED, stamp="cancelled_at")

    def refresh_overdue(self, owner_id: UUID, today: Optional[date] = None) -> List[Invoice]:
        """Marcar como vencidas las facturas enviadas cuya fecha de pago ya pasó"""
        return self._refresh_past_due(owner_id, OVERDUE_SOURCES, InvoiceStatus.OVERDUE, today)

    # ===== PAGOS =====

    def amount_paid(self, owner_id: UUID, invoice_id: UUID) -> Decimal:
        paid = self.db.query(func.coalesce(func.sum(Receipt.amount), 0)).filter(
            Receipt.user_id == owner_id,
            Receipt.invoice_id == invoice_id
        ).scalar()
        return Decimal(str(paid or 0))

    def payment_status(self, owner_id: UUID, invoice_id: UUID) -> InvoicePaymentStatus:
        invoice = self.get_document(owner_id, invoice_id)
        with store_errors(self.db, "consultar pagos de factura"):
            paid = self.amount_paid(owner_id, invoice.id)
        total = Decimal(invoice.total_amount or 0)
        return InvoicePaymentStatus(
            invoice_id=invoice.id,
            total_amount=total,
            amount_paid=paid,
            balance_due=max(ZERO, total - paid)
        )

    def settle(self, owner_id: UUID, invoice: Invoice) -> bool:
        """
        Pasa la factura a pagada si los recibos cubren el total.
        No hace commit; se usa dentro de la transacción del recibo.
        """
        if invoice.status == InvoiceStatus.PAID:
            return False
        if self.amount_paid(owner_id, invoice.id) < Decimal(invoice.total_amount or 0):
            return False

        self.lifecycle.transition(invoice, InvoiceStatus.PAID)
        invoice.paid_at = datetime.now(timezone.utc)
        logger.info(f"Invoice {invoice.invoice_number} fully paid for user {owner_id}")
        return True

    # ===== CONVERSIÓN =====

    def create_from_quote(self, owner_id: UUID, quote: Quote) -> Invoice:
        """Factura en borrador con las líneas, tasas y montos de la cotización"""
        payload = {
            "client_id": quote.client_id,
            "project_id": quote.project_id,
            "reference": quote.quote_number,
            "currency": quote.currency,
            "notes": quote.notes,
            "terms": quote.terms,
            "footer": quote.footer,
            "tax_rate": quote.tax_rate,
            "discount_rate": quote.discount_rate,
            "tax_amount": quote.tax_amount if quote.tax_rate is None else None,
            "discount_amount": quote.discount_amount if quote.discount_rate is None else None,
            "items": [
                {
                    "description": item.description,
                    "quantity": item.quantity,
                    "unit_price": item.unit_price,
                    "tax_rate": item.tax_rate,
                    "discount_rate": item.discount_rate,
                }
                for item in quote.items
            ],
        }
        return self.create_document(owner_id, payload)
