"""
Router para el módulo de Cotizaciones
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
from invoicer.modules.invoices.schemas import InvoiceOut
from invoicer.modules.quotes.models import QuoteStatus
from invoicer.modules.quotes.service import QuoteService
from invoicer.modules.quotes.schemas import (
    QuoteCreate, QuoteUpdate, QuoteOut, QuoteList, QuoteConversionOut
)

router = APIRouter(
    prefix="/quotes",
    tags=["Quotes"],
    responses={404: {"description": "Not found"}}
)


@router.post("/", response_model=QuoteOut, status_code=status.HTTP_201_CREATED)
async def create_quote(quote_data: QuoteCreate, db: db_dependency, current_user: current_user_dependency):
    """
    Crear una cotización en borrador

    - **quote_number**: opcional; si no se envía se usa el siguiente de la secuencia
    - **expiry_date**: opcional; por defecto QUOTE_VALIDITY_DAYS días tras la emisión
    """
    return QuoteService(db).create_quote(current_user.id, quote_data)


@router.get("/", response_model=QuoteList)
async def list_quotes(
    db: db_dependency,
    current_user: current_user_dependency,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    status: Optional[QuoteStatus] = Query(None, description="Estado de la cotización"),
    client_id: Optional[UUID] = Query(None, description="Filtrar por cliente"),
    search: Optional[str] = Query(None, description="Buscar por número o referencia")
):
    """Listar cotizaciones del usuario"""
    return QuoteService(db).list_quotes(current_user.id, limit, offset, status, client_id, search)


@router.get("/next-number", response_model=NextNumberOut)
async def next_quote_number(db: db_dependency, current_user: current_user_dependency):
    return NextNumberOut(
        document_type=DocumentType.QUOTE.value,
        next_number=QuoteService(db).next_number(current_user.id)
    )


@router.post("/refresh-expired", response_model=RefreshStatusOut)
async def refresh_expired_quotes(
    db: db_dependency,
    current_user: current_user_dependency,
    today: Optional[date] = Query(None, description="Fecha de referencia (por defecto hoy)")
):
    """Expirar las cotizaciones enviadas cuya vigencia terminó"""
    quotes = QuoteService(db).refresh_expired(current_user.id, today)
    return RefreshStatusOut(updated=len(quotes), ids=[quote.id for quote in quotes])


@router.get("/{quote_id}", response_model=QuoteOut)
async def get_quote(quote_id: UUID, db: db_dependency, current_user: current_user_dependency):
    return QuoteService(db).get_document(current_user.id, quote_id)


@router.patch("/{quote_id}", response_model=QuoteOut)
async def update_quote(
    quote_id: UUID,
    quote_data: QuoteUpdate,
    db: db_dependency,
    current_user: current_user_dependency
):
    """Actualizar una cotización que no esté aceptada, rechazada ni expirada"""
    return QuoteService(db).update_document(current_user.id, quote_id, quote_data)


@router.delete("/{quote_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_quote(quote_id: UUID, db: db_dependency, current_user: current_user_dependency):
    QuoteService(db).delete_document(current_user.id, quote_id)


# ===== TRANSICIONES DE ESTADO =====

@router.post("/{quote_id}/send", response_model=QuoteOut)
async def send_quote(
    quote_id: UUID,
    db: db_dependency,
    current_user: current_user_dependency,
    request: Optional[SendDocumentRequest] = None
):
    """Marcar como enviada y, opcionalmente, enviar el PDF por email"""
    return QuoteService(db).send_document(current_user.id, quote_id, request or SendDocumentRequest())


@router.post("/{quote_id}/viewed", response_model=QuoteOut)
async def mark_quote_viewed(quote_id: UUID, db: db_dependency, current_user: current_user_dependency):
    return QuoteService(db).mark_viewed(current_user.id, quote_id)


@router.post("/{quote_id}/accept", response_model=QuoteOut)
async def accept_quote(quote_id: UUID, db: db_dependency, current_user: current_user_dependency):
    return QuoteService(db).accept(current_user.id, quote_id)


@router.post("/{quote_id}/reject", response_model=QuoteOut)
async def reject_quote(quote_id: UUID, db: db_dependency, current_user: current_user_dependency):
    return QuoteService(db).reject(current_user.id, quote_id)


@router.post("/{quote_id}/expire", response_model=QuoteOut)
async def expire_quote(quote_id: UUID, db: db_dependency, current_user: current_user_dependency):
    """Solo si la fecha de vigencia ya pasó"""
    return QuoteService(db).mark_expired(current_user.id, quote_id)


@router.post("/{quote_id}/convert", response_model=QuoteConversionOut, status_code=status.HTTP_201_CREATED)
async def convert_quote(quote_id: UUID, db: db_dependency, current_user: current_user_dependency):
    """Crear una factura en borrador a partir de una cotización aceptada"""
    quote, invoice = QuoteService(db).convert_to_invoice(current_user.id, quote_id)
    return QuoteConversionOut(
        quote=QuoteOut.model_validate(quote),
        invoice=InvoiceOut.model_validate(invoice)
    )


@router.get("/{quote_id}/pdf")
async def download_quote_pdf(quote_id: UUID, db: db_dependency, current_user: current_user_dependency):
    filename, pdf = QuoteService(db).export_pdf(current_user.id, quote_id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
