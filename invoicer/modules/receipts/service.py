import logging
from typing import Optional, Tuple
from uuid import UUID

from sqlalchemy.orm import Session

from invoicer.common.crud import OwnedCrud, store_errors
from invoicer.common.exceptions import InvalidTransition, NotFound, ValidationError
from invoicer.modules.clients.service import ClientService
from invoicer.modules.company.service import CompanyService
from invoicer.modules.documents.models import DocumentType
from invoicer.modules.documents.numbering import DocumentNumberingService
from invoicer.modules.documents.service import export_document_pdf
from invoicer.modules.invoices.models import Invoice
from invoicer.modules.invoices.service import PAYABLE_STATUSES, InvoiceService
from invoicer.modules.quotes.models import Quote
from invoicer.modules.quotes.service import QuoteService
from invoicer.modules.receipts.models import PaymentMethod, Receipt
from invoicer.modules.receipts.schemas import ReceiptCreate, ReceiptList, ReceiptOut, ReceiptUpdate

logger = logging.getLogger(__name__)


class ReceiptCrud(OwnedCrud):
    model = Receipt
    search_fields = ("receipt_number", "reference", "payment_reference")
    order_by = ("-date", "-created_at")


class ReceiptService:
    """Recibos de pago; pueden saldar la factura enlazada"""

    def __init__(self, db: Session):
        self.db = db
        self.crud = ReceiptCrud(db)
        self.numbering = DocumentNumberingService(db)
        self.invoices = InvoiceService(db)

    def get_receipt(self, owner_id: UUID, receipt_id: UUID) -> Receipt:
        with store_errors(self.db, "consultar recibo"):
            receipt = self.crud.get_by_id(owner_id, receipt_id)
        if not receipt:
            raise NotFound("Recibo no encontrado")
        return receipt

    def list_receipts(
        self,
        owner_id: UUID,
        limit: int = 100,
        offset: int = 0,
        search: Optional[str] = None,
        client_id: Optional[UUID] = None,
        invoice_id: Optional[UUID] = None,
        payment_method: Optional[PaymentMethod] = None
    ) -> ReceiptList:
        with store_errors(self.db, "listar recibos"):
            receipts, total = self.crud.get_many(
                owner_id,
                limit=limit,
                offset=offset,
                search=search,
                client_id=client_id,
                invoice_id=invoice_id,
                payment_method=payment_method
            )
        return ReceiptList(
            items=[ReceiptOut.model_validate(r) for r in receipts],
            total=total,
            limit=limit,
            offset=offset
        )

    def next_number(self, owner_id: UUID) -> str:
        with store_errors(self.db, "calcular siguiente número"):
            return self.numbering.peek_next_number(owner_id, DocumentType.RECEIPT)

    def _linked_documents(
        self,
        owner_id: UUID,
        receipt_data: ReceiptCreate
    ) -> Tuple[UUID, Optional[Invoice], Optional[Quote]]:
        """Resuelve cliente, factura y cotización; todos deben ser del usuario y coincidir"""
        invoice = None
        quote = None

        if receipt_data.invoice_id:
            invoice = self.invoices.get_document(owner_id, receipt_data.invoice_id)
            if invoice.status not in PAYABLE_STATUSES:
                raise InvalidTransition(
                    invoice.status.value, "paid",
                    f"No se pueden registrar pagos de una factura en estado {invoice.status.value}"
                )
        if receipt_data.quote_id:
            quote = QuoteService(self.db).get_document(owner_id, receipt_data.quote_id)

        client_id = receipt_data.client_id or (invoice or quote).client_id
        for document in (invoice, quote):
            if document is not None and document.client_id != client_id:
                raise ValidationError("El documento enlazado pertenece a otro cliente")

        ClientService(self.db).get_client(owner_id, client_id)
        return client_id, invoice, quote

    def create_receipt(self, owner_id: UUID, receipt_data: ReceiptCreate) -> Receipt:
        """
        Registrar un pago.

        Si el recibo enlaza una factura y la suma de sus recibos alcanza el
        total, la factura pasa a pagada en la misma transacción.
        """
        client_id, invoice, quote = self._linked_documents(owner_id, receipt_data)

        payload = receipt_data.model_dump(exclude={"receipt_number"})
        payload["client_id"] = client_id
        if not payload.get("date"):
            payload.pop("date", None)
        if payload.get("currency"):
            payload["currency"] = payload["currency"].upper()
        elif invoice is not None:
            payload["currency"] = invoice.currency
        else:
            payload["currency"] = CompanyService(self.db).default_currency(owner_id)

        def build(number: str) -> Receipt:
            receipt = Receipt(**payload, user_id=owner_id, receipt_number=number)
            self.db.add(receipt)
            self.db.flush()
            if invoice is not None:
                self.invoices.settle(owner_id, invoice)
            return receipt

        receipt = self.numbering.create_with_number(
            owner_id, DocumentType.RECEIPT, receipt_data.receipt_number, build, "crear recibo"
        )
        logger.info(f"Receipt {receipt.receipt_number} for {receipt.amount} created for user {owner_id}")
        return receipt

    def update_receipt(self, owner_id: UUID, receipt_id: UUID, receipt_data: ReceiptUpdate) -> Receipt:
        receipt = self.get_receipt(owner_id, receipt_id)
        update = receipt_data.model_dump(exclude_unset=True)
        number = update.pop("receipt_number", None)

        for field in ("date", "amount", "currency", "payment_method"):
            if field in update and update[field] is None:
                raise ValidationError(f"{field} no puede ser nulo")
        if "currency" in update:
            update["currency"] = update["currency"].upper()

        with store_errors(self.db, "actualizar recibo"):
            if number is not None and number != receipt.receipt_number:
                receipt.receipt_number = self.numbering.ensure_available(
                    owner_id, DocumentType.RECEIPT, number, exclude_id=receipt.id
                )
            for field, value in update.items():
                setattr(receipt, field, value)
            self.db.flush()

            if "amount" in update and receipt.invoice_id:
                invoice = self.invoices.get_document(owner_id, receipt.invoice_id)
                self.invoices.settle(owner_id, invoice)

            self.db.commit()
            self.db.refresh(receipt)

        return receipt

    def delete_receipt(self, owner_id: UUID, receipt_id: UUID) -> None:
        """Eliminar un recibo; el estado de la factura enlazada no se revierte"""
        with store_errors(self.db, "eliminar recibo"):
            deleted = self.crud.delete(owner_id, receipt_id)
        if not deleted:
            raise NotFound("Recibo no encontrado")
        logger.info(f"Receipt {receipt_id} deleted for user {owner_id}")

    def export_pdf(self, owner_id: UUID, receipt_id: UUID) -> Tuple[str, bytes]:
        receipt = self.get_receipt(owner_id, receipt_id)
        return export_document_pdf(self.db, owner_id, receipt, DocumentType.RECEIPT)
