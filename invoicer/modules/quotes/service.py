import logging
from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID

from invoicer.common.crud import store_errors
from invoicer.common.exceptions import ConflictError, InvalidTransition
from invoicer.core.config import settings
from invoicer.modules.documents.lifecycle import QUOTE_LIFECYCLE
from invoicer.modules.documents.models import DocumentType
from invoicer.modules.documents.service import BillableDocumentService
from invoicer.modules.invoices.models import Invoice
from invoicer.modules.invoices.service import InvoiceService
from invoicer.modules.quotes.models import Quote, QuoteItem, QuoteStatus
from invoicer.modules.quotes.schemas import QuoteList, QuoteOut

logger = logging.getLogger(__name__)

EXPIRY_SOURCES = (QuoteStatus.SENT, QuoteStatus.VIEWED)


class QuoteService(BillableDocumentService):
    model = Quote
    item_model = QuoteItem
    document_type = DocumentType.QUOTE
    lifecycle = QUOTE_LIFECYCLE
    number_field = "quote_number"
    date_field = "expiry_date"
    draft_status = QuoteStatus.DRAFT
    sent_status = QuoteStatus.SENT

    def _default_limit_date(self, owner_id: UUID, issue_date: date) -> Optional[date]:
        return self.add_days(issue_date, settings.QUOTE_VALIDITY_DAYS)

    def create_quote(self, owner_id: UUID, quote_data) -> Quote:
        return self.create_document(owner_id, quote_data)

    def list_quotes(
        self,
        owner_id: UUID,
        limit: int,
        offset: int,
        status: Optional[QuoteStatus] = None,
        client_id: Optional[UUID] = None,
        search: Optional[str] = None
    ) -> QuoteList:
        quotes, total = self.list_documents(owner_id, limit, offset, status, client_id, search)
        return QuoteList(
            items=[QuoteOut.model_validate(quote) for quote in quotes],
            total=total,
            limit=limit,
            offset=offset
        )

    # ===== ESTADOS =====

    def mark_sent(self, owner_id: UUID, quote_id: UUID) -> Quote:
        return self.transition(owner_id, quote_id, QuoteStatus.SENT, stamp="sent_at")

    def mark_viewed(self, owner_id: UUID, quote_id: UUID) -> Quote:
        return self.transition(owner_id, quote_id, QuoteStatus.VIEWED)

    def accept(self, owner_id: UUID, quote_id: UUID) -> Quote:
        return self.transition(owner_id, quote_id, QuoteStatus.ACCEPTED, stamp="accepted_at")

    def reject(self, owner_id: UUID, quote_id: UUID) -> Quote:
        return self.transition(owner_id, quote_id, QuoteStatus.REJECTED)

    def mark_expired(self, owner_id: UUID, quote_id: UUID, today: Optional[date] = None) -> Quote:
        return self.transition(owner_id, quote_id, QuoteStatus.EXPIRED, today=today)

    def refresh_expired(self, owner_id: UUID, today: Optional[date] = None) -> List[Quote]:
        """Expirar cotizaciones enviadas cuya vigencia ya terminó"""
        return self._refresh_past_due(owner_id, EXPIRY_SOURCES, QuoteStatus.EXPIRED, today)

    # ===== CONVERSIÓN =====

    def convert_to_invoice(self, owner_id: UUID, quote_id: UUID) -> Tuple[Quote, Invoice]:
        """
        Crear una factura en borrador a partir de una cotización aceptada.

        La cotización queda enlazada a la factura; convertirla de nuevo
        lanza ConflictError.
        """
        quote = self.get_document(owner_id, quote_id)
        if quote.status != QuoteStatus.ACCEPTED:
            raise InvalidTransition(
                quote.status.value, "converted",
                "Solo se pueden convertir cotizaciones aceptadas"
            )
        if quote.converted_invoice_id is not None:
            raise ConflictError("La cotización ya fue convertida en factura")

        invoices = InvoiceService(self.db)
        invoice = invoices.create_from_quote(owner_id, quote)

        with store_errors(self.db, "enlazar cotización con factura"):
            linked = self.db.query(Quote).filter(
                Quote.id == quote.id,
                Quote.user_id == owner_id,
                Quote.converted_invoice_id.is_(None)
            ).update({Quote.converted_invoice_id: invoice.id}, synchronize_session=False)

            if not linked:
                # Otra petición convirtió la cotización primero
                self.db.delete(invoice)
                self.db.commit()
                raise ConflictError("La cotización ya fue convertida en factura")

            self.db.commit()
            self.db.refresh(quote)
            self.db.refresh(invoice)

        logger.info(f"Quote {quote.quote_number} converted to invoice {invoice.invoice_number} for user {owner_id}")
        return quote, invoice
