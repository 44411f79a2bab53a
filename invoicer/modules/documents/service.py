"""
Servicio base de documentos facturables (facturas y cotizaciones).

Reúne lo que ambos comparten: numeración con reintentos, cálculo de
totales, validación de referencias del mismo usuario, transiciones de
estado, exportación a PDF y envío por correo.
"""

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from pydantic import BaseModel
from sqlalchemy import or_
from sqlalchemy.orm import Session, selectinload

from invoicer.common.crud import store_errors
from invoicer.common.exceptions import NotFound, TransientError, ValidationError
from invoicer.database.database import get_owner_query
from invoicer.modules.clients.service import ClientService
from invoicer.modules.company.service import CompanyService
from invoicer.modules.documents.lifecycle import StatusLifecycle
from invoicer.modules.documents.models import DocumentType
from invoicer.modules.documents.numbering import DocumentNumberingService
from invoicer.modules.documents.pdf import document_filename, render_document_pdf
from invoicer.modules.documents.schemas import SendDocumentRequest
from invoicer.modules.documents.totals import DocumentTotals, compute_line_amount, compute_totals
from invoicer.modules.email.tasks import queue_document_email
from invoicer.modules.projects.service import ProjectService

logger = logging.getLogger(__name__)

DOCUMENT_LABELS = {
    DocumentType.INVOICE: "Factura",
    DocumentType.QUOTE: "Cotización",
    DocumentType.RECEIPT: "Recibo",
}

REQUIRED_FIELDS = ("client_id", "issue_date", "currency")


def export_document_pdf(db: Session, owner_id: UUID, document, document_type: DocumentType) -> Tuple[str, bytes]:
    """Renderiza el PDF de cualquier documento del usuario y arma el nombre de archivo"""
    client = ClientService(db).find_client(owner_id, document.client_id)
    company = CompanyService(db).find_profile(owner_id)
    pdf = render_document_pdf(document, document_type, client, company)
    filename = document_filename(client.business_name if client else None, document_type, document.number)
    return filename, pdf


def email_document(
    db: Session,
    owner_id: UUID,
    document,
    document_type: DocumentType,
    request: SendDocumentRequest
) -> Optional[str]:
    """Encola el correo con el PDF adjunto; retorna el id de la tarea"""
    client = ClientService(db).find_client(owner_id, document.client_id)
    recipient = resolve_recipient(client, request)
    company = CompanyService(db).find_profile(owner_id)
    company_name = company.company_name if company else "Invoicer"
    label = DOCUMENT_LABELS[document_type]

    filename, pdf = export_document_pdf(db, owner_id, document, document_type)
    context = {
        "document_label": label,
        "document_number": document.number,
        "client_name": client.contact_name or client.business_name if client else "",
        "company_name": company_name,
        "issue_date": str(getattr(document, "issue_date", None) or getattr(document, "date", "")),
        "due_date": str(getattr(document, "due_date", None) or getattr(document, "expiry_date", None) or ""),
        "currency": document.currency,
        "total": str(getattr(document, "total_amount", None) or getattr(document, "amount", "")),
        "message": request.message,
    }

    try:
        task_id = queue_document_email(
            to_email=recipient,
            subject=request.subject or f"{label} {document.number} - {company_name}",
            context=context,
            filename=filename,
            pdf_bytes=pdf
        )
    except Exception as e:
        logger.error(f"Could not queue email for {document_type.value} {document.id}: {str(e)}")
        raise TransientError("No fue posible encolar el correo, intente de nuevo")

    logger.info(f"Email for {document_type.value} {document.id} queued (task {task_id})")
    return task_id


def resolve_recipient(client, request: SendDocumentRequest) -> str:
    recipient = request.to_email or (client.email if client else None)
    if not recipient:
        raise ValidationError("El cliente no tiene email; indique to_email")
    return str(recipient)


class BillableDocumentService:
    """Operaciones comunes; las subclases fijan modelo, tipo y máquina de estados"""

    model = None
    item_model = None
    document_type: DocumentType = None
    lifecycle: StatusLifecycle = None
    number_field: str = None
    date_field: str = None  # due_date / expiry_date
    draft_status = None
    sent_status = None

    def __init__(self, db: Session):
        self.db = db
        self.numbering = DocumentNumberingService(db)
        self.clients = ClientService(db)
        self.company = CompanyService(db)

    @property
    def label(self) -> str:
        return DOCUMENT_LABELS[self.document_type]

    # ===== CONSULTAS =====

    def _query(self, owner_id: UUID):
        return get_owner_query(self.db, self.model, owner_id)

    def get_document(self, owner_id: UUID, document_id: UUID):
        with store_errors(self.db, f"consultar {self.document_type.value}"):
            document = self._query(owner_id).filter(self.model.id == document_id).first()
        if not document:
            raise NotFound(f"{self.label} no encontrada")
        return document

    def list_documents(
        self,
        owner_id: UUID,
        limit: int = 100,
        offset: int = 0,
        status=None,
        client_id: Optional[UUID] = None,
        search: Optional[str] = None
    ) -> Tuple[List[Any], int]:
        with store_errors(self.db, f"listar {self.document_type.value}"):
            query = self._query(owner_id).options(selectinload(self.model.items))
            if status is not None:
                query = query.filter(self.model.status == status)
            if client_id:
                query = query.filter(self.model.client_id == client_id)
            if search:
                search_term = f"%{search}%"
                query = query.filter(or_(
                    getattr(self.model, self.number_field).ilike(search_term),
                    self.model.reference.ilike(search_term)
                ))

            total = query.count()
            documents = query.order_by(
                self.model.issue_date.desc(), self.model.created_at.desc()
            ).offset(offset).limit(limit).all()

        return documents, total

    def next_number(self, owner_id: UUID) -> str:
        with store_errors(self.db, "calcular siguiente número"):
            return self.numbering.peek_next_number(owner_id, self.document_type)

    # ===== TOTALES =====

    def _build_items(self, items: List[Dict[str, Any]]) -> List[Any]:
        built = []
        for position, item in enumerate(items):
            built.append(self.item_model(
                description=item["description"],
                quantity=item["quantity"],
                unit_price=item["unit_price"],
                tax_rate=item.get("tax_rate"),
                discount_rate=item.get("discount_rate"),
                amount=compute_line_amount(
                    item["quantity"], item["unit_price"],
                    tax_rate=item.get("tax_rate"), discount_rate=item.get("discount_rate")
                ),
                position=position
            ))
        return built

    def recalculate(self, document) -> DocumentTotals:
        """Recalcula montos de líneas y totales; la tasa manda sobre el monto guardado"""
        totals = compute_totals(
            document.items,
            tax_rate=document.tax_rate,
            tax_amount=document.tax_amount if document.tax_rate is None else None,
            discount_rate=document.discount_rate,
            discount_amount=document.discount_amount if document.discount_rate is None else None,
        )
        for item, amount in zip(document.items, totals.line_amounts):
            item.amount = amount

        document.subtotal = totals.subtotal
        document.tax_amount = totals.tax_amount
        document.discount_amount = totals.discount_amount
        document.total_amount = totals.total
        return totals

    @staticmethod
    def _normalize_amounts(data: Dict[str, Any]) -> None:
        """Un monto explícito reemplaza a la tasa; quitar una tasa deja el monto en 0"""
        for kind in ("tax", "discount"):
            amount_key, rate_key = f"{kind}_amount", f"{kind}_rate"
            if data.get(amount_key) is not None:
                data[rate_key] = None
            elif amount_key in data:
                data[amount_key] = 0
            elif rate_key in data and data[rate_key] is None:
                data[amount_key] = 0

    # ===== CREACIÓN / EDICIÓN =====

    def _validate_references(self, owner_id: UUID, client_id: Optional[UUID], project_id: Optional[UUID]) -> None:
        if client_id is not None:
            self.clients.get_client(owner_id, client_id)
        if project_id is not None:
            ProjectService(self.db).get_project(owner_id, project_id)

    def _default_limit_date(self, owner_id: UUID, issue_date: date) -> Optional[date]:
        return None

    def _check_dates(self, issue_date: date, limit_date: Optional[date]) -> None:
        if limit_date is not None and issue_date is not None and limit_date < issue_date:
            raise ValidationError(f"{self.date_field} no puede ser anterior a la fecha de emisión")

    def create_document(self, owner_id: UUID, data: Any):
        """
        Crear documento en borrador.

        Si el payload trae número se usa tal cual (ConflictError si existe);
        si no, se genera uno y se reintenta ante colisiones.
        """
        payload = data.model_dump() if isinstance(data, BaseModel) else dict(data)
        items = payload.pop("items", None) or []
        explicit_number = payload.pop(self.number_field, None)

        self._validate_references(owner_id, payload.get("client_id"), payload.get("project_id"))
        self._normalize_amounts(payload)
        for key in ("tax_amount", "discount_amount"):
            if payload.get(key) is None:
                payload.pop(key, None)

        # Valores por defecto del perfil de empresa
        profile = self.company.find_profile(owner_id)
        payload["issue_date"] = payload.get("issue_date") or date.today()
        payload["currency"] = (payload.get("currency") or self.company.default_currency(owner_id)).upper()
        if profile:
            payload["terms"] = payload.get("terms") or profile.default_terms
            payload["footer"] = payload.get("footer") or profile.default_footer
        if payload.get(self.date_field) is None:
            payload[self.date_field] = self._default_limit_date(owner_id, payload["issue_date"])
        self._check_dates(payload["issue_date"], payload[self.date_field])

        def build(number: str):
            document = self.model(**payload, user_id=owner_id)
            setattr(document, self.number_field, number)
            document.status = self.draft_status
            document.items = self._build_items(items)
            self.recalculate(document)
            self.db.add(document)
            self.db.flush()
            return document

        document = self.numbering.create_with_number(
            owner_id, self.document_type, explicit_number, build, f"crear {self.document_type.value}"
        )
        logger.info(
            f"{self.document_type.value} {document.number} created for user {owner_id}: "
            f"total {document.total_amount}"
        )
        return document

    def update_document(self, owner_id: UUID, document_id: UUID, data: BaseModel):
        """Editar campos y líneas; el estado solo cambia con transiciones"""
        document = self.get_document(owner_id, document_id)
        if self.lifecycle.is_terminal(document.status):
            raise ValidationError(
                f"No se puede editar una {self.label.lower()} en estado {document.status.value}"
            )

        update = data.model_dump(exclude_unset=True)
        items = update.pop("items", None)
        number = update.pop(self.number_field, None)

        for field in REQUIRED_FIELDS:
            if field in update and update[field] is None:
                raise ValidationError(f"{field} no puede ser nulo")

        self._validate_references(owner_id, update.get("client_id"), update.get("project_id"))
        self._normalize_amounts(update)
        if "currency" in update:
            update["currency"] = update["currency"].upper()

        self._check_dates(
            update.get("issue_date", document.issue_date),
            update.get(self.date_field, getattr(document, self.date_field))
        )

        with store_errors(self.db, f"actualizar {self.document_type.value}"):
            if number is not None and number != document.number:
                number = self.numbering.ensure_available(
                    owner_id, self.document_type, number, exclude_id=document.id
                )
                setattr(document, self.number_field, number)

            for field, value in update.items():
                setattr(document, field, value)

            if items is not None:
                document.items = self._build_items(items)

            self.recalculate(document)
            self.db.commit()
            self.db.refresh(document)

        return document

    def _before_delete(self, owner_id: UUID, document) -> None:
        pass

    def delete_document(self, owner_id: UUID, document_id: UUID) -> None:
        document = self.get_document(owner_id, document_id)
        with store_errors(self.db, f"eliminar {self.document_type.value}"):
            self._before_delete(owner_id, document)
            self.db.delete(document)
            self.db.commit()
        logger.info(f"{self.document_type.value} {document_id} deleted for user {owner_id}")

    # ===== ESTADOS =====

    def transition(
        self,
        owner_id: UUID,
        document_id: UUID,
        target,
        today: Optional[date] = None,
        stamp: Optional[str] = None
    ):
        """Aplica una transición; si es inválida el documento queda intacto"""
        document = self.get_document(owner_id, document_id)
        with store_errors(self.db, f"cambiar estado de {self.document_type.value}"):
            self.lifecycle.transition(document, target, today)
            if stamp:
                setattr(document, stamp, datetime.now(timezone.utc))
            self.db.commit()
            self.db.refresh(document)
        return document

    def _refresh_past_due(self, owner_id: UUID, sources, target, today: Optional[date] = None) -> List[Any]:
        """Pasa a `target` todos los documentos en `sources` cuya fecha límite ya venció"""
        today = today or date.today()
        limit_column = getattr(self.model, self.date_field)

        with store_errors(self.db, f"actualizar vencimientos de {self.document_type.value}"):
            documents = self._query(owner_id).filter(
                self.model.status.in_(list(sources)),
                limit_column.isnot(None),
                limit_column < today
            ).all()
            for document in documents:
                self.lifecycle.transition(document, target, today)
            self.db.commit()

        if documents:
            logger.info(f"{len(documents)} {self.document_type.value}(s) moved to {target.value} for user {owner_id}")
        return documents

    # ===== PDF / EMAIL =====

    def export_pdf(self, owner_id: UUID, document_id: UUID) -> Tuple[str, bytes]:
        document = self.get_document(owner_id, document_id)
        return export_document_pdf(self.db, owner_id, document, self.document_type)

    def send_document(self, owner_id: UUID, document_id: UUID, request: SendDocumentRequest):
        """
        Marca el documento como enviado (si está en borrador) y opcionalmente
        encola el correo con el PDF. Un documento ya enviado solo puede
        reenviarse por correo.
        """
        document = self.get_document(owner_id, document_id)
        if request.send_email:
            resolve_recipient(self.clients.find_client(owner_id, document.client_id), request)

        if document.status == self.draft_status or not request.send_email:
            document = self.transition(owner_id, document_id, self.sent_status, stamp="sent_at")

        if request.send_email:
            email_document(self.db, owner_id, document, self.document_type, request)

        return document

    @staticmethod
    def add_days(start: date, days: int) -> date:
        return start + timedelta(days=days)
