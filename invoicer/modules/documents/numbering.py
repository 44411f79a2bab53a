"""
Numeración secuencial de documentos por usuario y tipo.

La unicidad la garantiza la restricción única (user_id, número) de cada
tabla; el contador solo propone candidatos. create_with_number() reintenta
con un número nuevo cuando otra sesión se adelantó.
"""

import logging
from typing import Callable, Optional, TypeVar
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from invoicer.common.crud import store_errors
from invoicer.common.exceptions import ConflictError, ValidationError
from invoicer.core.config import settings
from invoicer.modules.documents.models import DocumentSequence, DocumentType
from invoicer.modules.invoices.models import Invoice
from invoicer.modules.quotes.models import Quote
from invoicer.modules.receipts.models import Receipt

logger = logging.getLogger(__name__)

T = TypeVar("T")

NUMBER_COLUMNS = {
    DocumentType.INVOICE: (Invoice, "invoice_number"),
    DocumentType.QUOTE: (Quote, "quote_number"),
    DocumentType.RECEIPT: (Receipt, "receipt_number"),
}


def number_prefix(document_type: DocumentType) -> str:
    return {
        DocumentType.INVOICE: settings.INVOICE_NUMBER_PREFIX,
        DocumentType.QUOTE: settings.QUOTE_NUMBER_PREFIX,
        DocumentType.RECEIPT: settings.RECEIPT_NUMBER_PREFIX,
    }[document_type]


def format_number(document_type: DocumentType, sequence: int) -> str:
    """Ej: INV-0012"""
    return f"{number_prefix(document_type)}{sequence:0{settings.DOCUMENT_NUMBER_PADDING}d}"


class DocumentNumberingService:
    """Genera y valida números de documento únicos por usuario"""

    def __init__(self, db: Session):
        self.db = db

    def is_taken(
        self,
        owner_id: UUID,
        document_type: DocumentType,
        number: str,
        exclude_id: Optional[UUID] = None
    ) -> bool:
        model, column = NUMBER_COLUMNS[document_type]
        query = self.db.query(model.id).filter(
            model.user_id == owner_id,
            getattr(model, column) == number
        )
        if exclude_id:
            query = query.filter(model.id != exclude_id)
        return query.first() is not None

    def ensure_available(
        self,
        owner_id: UUID,
        document_type: DocumentType,
        number: str,
        exclude_id: Optional[UUID] = None
    ) -> str:
        """Valida un número explícito; no lo reescribe"""
        number = (number or "").strip()
        if not number:
            raise ValidationError("El número de documento no puede estar vacío")
        if self.is_taken(owner_id, document_type, number, exclude_id):
            raise ConflictError(f"El número {number} ya existe")
        return number

    def _sequence(self, owner_id: UUID, document_type: DocumentType, lock: bool) -> DocumentSequence:
        query = self.db.query(DocumentSequence).filter(
            DocumentSequence.user_id == owner_id,
            DocumentSequence.document_type == document_type.value
        )
        if lock:
            query = query.with_for_update()
        sequence = query.first()

        if not sequence:
            sequence = DocumentSequence(
                user_id=owner_id,
                document_type=document_type.value,
                current_number=0
            )
            if lock:
                self.db.add(sequence)
                self.db.flush()
        return sequence

    def _first_free(self, owner_id: UUID, document_type: DocumentType, start: int) -> int:
        candidate = start + 1
        while self.is_taken(owner_id, document_type, format_number(document_type, candidate)):
            candidate += 1
        return candidate

    def next_number(self, owner_id: UUID, document_type: DocumentType) -> str:
        """
        Reserva el siguiente número del usuario para el tipo dado.

        Salta números ya usados (p.ej. asignados manualmente). El contador
        queda en la transacción actual; el llamador hace commit junto con el
        documento.
        """
        sequence = self._sequence(owner_id, document_type, lock=True)
        candidate = self._first_free(owner_id, document_type, sequence.current_number)
        sequence.current_number = candidate
        self.db.flush()
        return format_number(document_type, candidate)

    def peek_next_number(self, owner_id: UUID, document_type: DocumentType) -> str:
        """Número que recibiría el próximo documento, sin reservarlo"""
        sequence = self._sequence(owner_id, document_type, lock=False)
        return format_number(
            document_type,
            self._first_free(owner_id, document_type, sequence.current_number or 0)
        )

    def create_with_number(
        self,
        owner_id: UUID,
        document_type: DocumentType,
        explicit_number: Optional[str],
        build: Callable[[str], T],
        action: str
    ) -> T:
        """
        Crea un documento dentro de un ciclo de reintentos.

        build(number) debe agregar el documento (y sus líneas) a la sesión sin
        hacer commit. Un número explícito en conflicto lanza ConflictError; un
        número generado en conflicto se descarta y se deriva otro.
        """
        max_attempts = max(1, settings.DOCUMENT_NUMBER_MAX_ATTEMPTS)

        for attempt in range(1, max_attempts + 1):
            with store_errors(self.db, action):
                try:
                    if explicit_number is not None:
                        number = self.ensure_available(owner_id, document_type, explicit_number)
                    else:
                        number = self.next_number(owner_id, document_type)

                    document = build(number)
                    self.db.commit()
                    self.db.refresh(document)
                    return document

                except IntegrityError as e:
                    self.db.rollback()
                    if explicit_number is not None:
                        raise ConflictError(f"El número {explicit_number} ya existe")
                    logger.warning(
                        f"Number collision creating {document_type.value} for user {owner_id} "
                        f"(attempt {attempt}/{max_attempts}): {e.orig}"
                    )

        logger.error(f"Could not allocate a {document_type.value} number for user {owner_id}")
        raise ConflictError("No fue posible asignar un número de documento único, intente de nuevo")
