"""
Router para el módulo de Recibos
"""

from fastapi import APIRouter, Query, status
from fastapi.responses import Response
from typing import Optional
from uuid import UUID

from invoicer.core.config import settings
from invoicer.dependencies.dbDependecies import db_dependency
from invoicer.modules.auth.dependencies import current_user_dependency
from invoicer.modules.documents.models import DocumentType
from invoicer.modules.documents.schemas import NextNumberOut
from invoicer.modules.receipts.models import PaymentMethod
from invoicer.modules.receipts.service import ReceiptService
from invoicer.modules.receipts.schemas import ReceiptCreate, ReceiptUpdate, ReceiptOut, ReceiptList

router = APIRouter(
    prefix="/receipts",
    tags=["Receipts"],
    responses={404: {"description": "Not found"}}
)


@router.post("/", response_model=ReceiptOut, status_code=status.HTTP_201_CREATED)
async def create_receipt(receipt_data: ReceiptCreate, db: db_dependency, current_user: current_user_dependency):
    """
    Registrar un pago

    - **invoice_id**: factura que se paga (debe estar enviada, vista, vencida o pagada)
    - **amount**: monto recibido; al cubrir el total la factura pasa a pagada
    """
    return ReceiptService(db).create_receipt(current_user.id, receipt_data)


@router.get("/", response_model=ReceiptList)
async def list_receipts(
    db: db_dependency,
    current_user: current_user_dependency,
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    search: Optional[str] = Query(None, description="Buscar por número o referencia"),
    client_id: Optional[UUID] = Query(None),
    invoice_id: Optional[UUID] = Query(None),
    payment_method: Optional[PaymentMethod] = Query(None)
):
    """Listar recibos del usuario"""
    return ReceiptService(db).list_receipts(
        current_user.id, limit, offset, search, client_id, invoice_id, payment_method
    )


@router.get("/next-number", response_model=NextNumberOut)
async def next_receipt_number(db: db_dependency, current_user: current_user_dependency):
    return NextNumberOut(
        document_type=DocumentType.RECEIPT.value,
        next_number=ReceiptService(db).next_number(current_user.id)
    )


@router.get("/{receipt_id}", response_model=ReceiptOut)
async def get_receipt(receipt_id: UUID, db: db_dependency, current_user: current_user_dependency):
    return ReceiptService(db).get_receipt(current_user.id, receipt_id)


@router.patch("/{receipt_id}", response_model=ReceiptOut)
async def update_receipt(
    receipt_id: UUID,
    receipt_data: ReceiptUpdate,
    db: db_dependency,
    current_user: current_user_dependency
):
    return ReceiptService(db).update_receipt(current_user.id, receipt_id, receipt_data)


@router.delete("/{receipt_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_receipt(receipt_id: UUID, db: db_dependency, current_user: current_user_dependency):
    ReceiptService(db).delete_receipt(current_user.id, receipt_id)


@router.get("/{receipt_id}/pdf")
async def download_receipt_pdf(receipt_id: UUID, db: db_dependency, current_user: current_user_dependency):
    """Descargar el PDF del recibo"""
    filename, pdf = ReceiptService(db).export_pdf(current_user.id, receipt_id)
    return Response(
        content=pdf,
        media_type="application/pdf",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'}
    )
