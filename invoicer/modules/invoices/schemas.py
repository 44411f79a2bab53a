from pydantic import BaseModel, Field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from invoicer.modules.documents.schemas import (
    DocumentCreateBase, DocumentOutBase, DocumentUpdateBase
)
from invoicer.modules.invoices.models import InvoiceStatus


class InvoiceCreate(DocumentCreateBase):
    """
    Crear factura en borrador.

    Si no se envía invoice_number se asigna el siguiente de la secuencia.
    Si no se envía due_date se calcula con los días de pago del perfil.
    """
    invoice_number: Optional[str] = Field(None, min_length=1, max_length=50)
    due_date: Optional[date] = None


class InvoiceUpdate(DocumentUpdateBase):
    invoice_number: Optional[str] = Field(None, min_length=1, max_length=50)
    due_date: Optional[date] = None


class InvoiceOut(DocumentOutBase):
    invoice_number: str
    status: InvoiceStatus
    due_date: Optional[date] = None
    paid_at: Optional[datetime] = None
    cancelled_at: Optional[datetime] = None


class InvoiceList(BaseModel):
    items: List[InvoiceOut]
    total: int
    limit: int
    offset: int


class InvoicePaymentStatus(BaseModel):
    """Saldo de una factura según sus recibos"""
    invoice_id: UUID
    total_amount: Decimal
    amount_paid: Decimal
    balance_due: Decimal
