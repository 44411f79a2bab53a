from pydantic import BaseModel, Field, model_validator
from datetime import date as date_type, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from invoicer.modules.receipts.models import PaymentMethod


class ReceiptCreate(BaseModel):
    """
    Registrar un pago.

    client_id puede omitirse si se envía invoice_id o quote_id; se toma el
    cliente del documento.
    """
    client_id: Optional[UUID] = None
    invoice_id: Optional[UUID] = None
    quote_id: Optional[UUID] = None
    receipt_number: Optional[str] = Field(None, min_length=1, max_length=50)
    reference: Optional[str] = Field(None, max_length=100)
    date: Optional[date_type] = None
    amount: Decimal = Field(..., gt=0, description="Monto recibido")
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    payment_method: PaymentMethod = PaymentMethod.BANK_TRANSFER
    payment_reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None

    @model_validator(mode='after')
    def require_client_or_document(self):
        if not (self.client_id or self.invoice_id or self.quote_id):
            raise ValueError('Debe indicar client_id, invoice_id o quote_id')
        return self

    class Config:
        extra = "forbid"


class ReceiptUpdate(BaseModel):
    receipt_number: Optional[str] = Field(None, min_length=1, max_length=50)
    reference: Optional[str] = Field(None, max_length=100)
    date: Optional[date_type] = None
    amount: Optional[Decimal] = Field(None, gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    payment_method: Optional[PaymentMethod] = None
    payment_reference: Optional[str] = Field(None, max_length=100)
    notes: Optional[str] = None

    class Config:
        extra = "forbid"


class ReceiptOut(BaseModel):
    id: UUID
    client_id: UUID
    invoice_id: Optional[UUID] = None
    quote_id: Optional[UUID] = None
    receipt_number: str
    reference: Optional[str] = None
    date: date_type
    amount: Decimal
    currency: str
    payment_method: PaymentMethod
    payment_reference: Optional[str] = None
    notes: Optional[str] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ReceiptList(BaseModel):
    items: List[ReceiptOut]
    total: int
    limit: int
    offset: int
