from pydantic import BaseModel, EmailStr, Field
from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID


# Line Item Schemas
class LineItemCreate(BaseModel):
    description: str = Field(..., min_length=1, max_length=500)
    quantity: Decimal = Field(..., gt=0, description="Cantidad debe ser mayor a 0")
    unit_price: Decimal = Field(..., ge=0, description="Precio unitario sin impuestos")
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=1, description="Tasa entre 0 y 1 (0.19 = 19%)")
    discount_rate: Optional[Decimal] = Field(None, ge=0, le=1)

    class Config:
        extra = "forbid"


class LineItemOut(BaseModel):
    id: UUID
    description: str
    quantity: Decimal
    unit_price: Decimal
    tax_rate: Optional[Decimal] = None
    discount_rate: Optional[Decimal] = None
    amount: Decimal
    position: int

    class Config:
        from_attributes = True


class NextNumberOut(BaseModel):
    document_type: str
    next_number: str


class SendDocumentRequest(BaseModel):
    """Marcar como enviado y, opcionalmente, enviar el PDF por email"""
    send_email: bool = False
    to_email: Optional[EmailStr] = None  # Por defecto el email del cliente
    subject: Optional[str] = Field(None, max_length=200)
    message: Optional[str] = Field(None, max_length=5000)


# Campos comunes de facturas y cotizaciones
class DocumentCreateBase(BaseModel):
    client_id: UUID
    project_id: Optional[UUID] = None
    reference: Optional[str] = Field(None, max_length=100)
    issue_date: Optional[date] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    notes: Optional[str] = None
    terms: Optional[str] = None
    footer: Optional[str] = None
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    discount_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    tax_amount: Optional[Decimal] = Field(None, ge=0, description="Monto explícito; reemplaza a tax_rate")
    discount_amount: Optional[Decimal] = Field(None, ge=0, description="Monto explícito; reemplaza a discount_rate")
    items: List[LineItemCreate] = Field(default_factory=list)

    class Config:
        extra = "forbid"


class DocumentUpdateBase(BaseModel):
    """Actualización parcial; si se envían items reemplazan a todas las líneas"""
    client_id: Optional[UUID] = None
    project_id: Optional[UUID] = None
    reference: Optional[str] = Field(None, max_length=100)
    issue_date: Optional[date] = None
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    notes: Optional[str] = None
    terms: Optional[str] = None
    footer: Optional[str] = None
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    discount_rate: Optional[Decimal] = Field(None, ge=0, le=1)
    tax_amount: Optional[Decimal] = Field(None, ge=0)
    discount_amount: Optional[Decimal] = Field(None, ge=0)
    items: Optional[List[LineItemCreate]] = None

    class Config:
        extra = "forbid"


class DocumentOutBase(BaseModel):
    id: UUID
    client_id: UUID
    project_id: Optional[UUID] = None
    reference: Optional[str] = None
    issue_date: date
    currency: str
    notes: Optional[str] = None
    terms: Optional[str] = None
    footer: Optional[str] = None
    tax_rate: Optional[Decimal] = None
    discount_rate: Optional[Decimal] = None
    subtotal: Decimal
    tax_amount: Decimal
    discount_amount: Decimal
    total_amount: Decimal
    items: List[LineItemOut] = []
    sent_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class RefreshStatusOut(BaseModel):
    updated: int
    ids: List[UUID]
