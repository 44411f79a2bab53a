"""
Router para el módulo de Facturas

Todos los endpoints requieren autenticación y están scoped por el usuario.
Los cambios de estado se hacen solo con los endpoints de transición.
"""

from fastapi import APIRouter, Query, status
from fastapi.responses import Response
from datetime import date
from typing import Optional
from uuid import UUID

from invoicer.core.config import settings
from invoicer.dependencies.dbDependecies import db_dependency
from invoicer.modules.auth.dependencies import current_user_dependency
from invoicer.modules.documents.models import DocumentType
from invoicer.modules.documents.schemas import NextNumberOut, RefreshStatusOut, SendDocumentRequest
from invoicer.modules.invoices.models import InvoiceStatus
from invoicer.modules.invoices.service import InvoiceService
from invoicer.modules.invoices.schemas import (
    InvoiceCreate, InvoiceUpdate, InvoiceOut, InvoiceList, InvoicePaymentStatus
)

router = APIRouter(
    prefix="/invoices",
    tags=["Invoices"],
    responses={404: {"description": "Not found"}}
)


@router.post("/", response_model=InvoiceOut, status_code=status.HTTP_201_CREATED)
async def create_invoice(invoice_data: InvoiceCreate, db: db_dependency, current_user: current_user_dependency):
    """
    Crear una factura en borrador

    - **invoice_number**: opcional; si no se envía se usa el siguiente de la secuencia
    - **items**: líneas con cantidad, precio unitario y tasas opcionales
    - **tax_amount / discount_amount**: montos explícitos que reemplazan a las tasas
    """
    return InvoiceService(db).create_invoice(current_user.id, invoice_data)


@router.get("/", response_model=InvoiceList)
async def list_invoices(
    db: db_dependency,
    current_user: current_user_dependency,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    status: Optional[InvoiceStatus] = Query(None, description="Estado de la factura"),
    client_id: Optional[UUID] = Query(None, description="Filtrar por cliente"),
    search: Optional[str] = Query(None, description="Buscar por número o referencia")
):
    """Listar facturas del usuario"""
    return InvoiceService(db).list_invoices(current_user.id, limit, offset, status, client_id, search)


@router.get("/next-number", response_model=NextNumberOut)
async def next_invoice_number(db: db_dependency, current_user: current_user_dependency):
    """Número que recibirá la próxima factura (no lo reserva)"""
    return NextNumberOut(
        document_type=DocumentType.INVOICE.value,
        next_number=InvoiceService(db).next_number(current_user.id)
    )


@router.post("/refresh-overdue", response_model=RefreshStatusOut)
async def refresh_overdue_invoices(
    db: db_dependency,
    current_user: current_user_dependency,
    today: Optional[date] = Query(None, description="Fecha de referencia (por defecto hoy)")
):
    """Marcar como vencidas las facturas enviadas con fecha de pago pasada"""
    invoices = InvoiceService(db).refresh_overdue(current_user.id, today)
    return RefreshStatusOut(updated=len(invoices), ids=[invoice.id for invoice in invoices])


@router.get("/{invoice_id}", response_model=InvoiceOut)
async def get_invoice(invoice_id: UUID, db: db_dependency, current_user: current_user_dependency):
    """Obtener una factura con sus líneas"""
    return InvoiceService(db).get_document(current_user.id, invoice_id)


@router.patch("/{invoice_id}", response_model=InvoiceOut)
async def update_invoice(
    invoice_id: UUID,
    invoice_data: InvoiceUpdate,
    db: db_dependency,
    current_user: current_user_dependency
):
    """
    Actualizar una factura

    Si se envían items reemplazan a todas las líneas y los totales se
    recalculan. Las facturas pagadas o anuladas no se pueden editar.
    """
    return InvoiceService(db).update_document(current_user.id, invoice_id, invoice_data)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(invoice_id: UUID, db: db_dependency, current_user: current_user_dependency):
    """Eliminar una factura y sus líneas"""
    InvoiceService(db).delete_document(current_user.id, invoice_id)


@router.get("/{invoice_id}/payments", response_model=InvoicePaymentStatus)
async def get_invoice_payments(invoice_id: UUID, db: db_dependency, current_user: current_user_dependency):
    """Total pagado y saldo pendiente según los recibos"""
    return InvoiceService(db).payment_status(current_user.id, invoice_id)


# ===== TRANSICIONES DE ESTADO =====

@router.post("/{invoice_id}/send", response_model=InvoiceOut)
async def send_invoice(
    invoice_id: UUID,
    db: db_dependency,
    current_user: current_user_dependency,
    request: Optional[SendDocumentRequest] = None
):
    """Marcar como enviada y, opcionalmente, enviar el PDF por email"""
    return InvoiceService(db).send_document(current_user.id, invoice_id, request or SendDocumentRequest())


@router.post("/{invoice_id}/viewed", response_model=InvoiceOut)
async def mark_invoice_viewed(invoice_id: UUID, db: db_dependency, current_user: current_user_dependency):
    return InvoiceService(db).mark_viewed(current_user.id, invoice_id)


@router.post("/{invoice_id}/paid", response_model=InvoiceOut)
async def mark_invoice_paid(invoice_id: UUID, db: db_dependency, current_user: current_user_dependency):
    return InvoiceService(db).mark_paid(current_user.id, invoice_id)


@router.post("/{invoice_id}/overdue", response_model=InvoiceOut)
async def mark_invoice_overdue(invoice_id: UUID, db: db_dependency, current_user: current_user_dependency):
    """Solo si la fecha de pago ya pasó"""
    return InvoiceService(db).mark_overdue(current_user.id, invoice_id)


@router.post("/{invoice_id}/cancel", response_model=InvoiceOut)
async def cancel_invoice(invoice_id: UUID, db: db_dependency, current_user: current_user_dependency):
    return InvoiceService(db).cancel(current_user.id, invoice_id)


@router.get("/{invoice_id}/pdf")
async def download_invoice_pdf(invoice_id: UUID, db: db_dependency, current_user: current_user_dependency):
    """Descargar el PDF de la factura"""
    filename, pdf = InvoiceService(db).export_pdf(current_user.id, invoice_id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
