from pydantic import BaseModel, EmailStr, Field, field_validator
from decimal import Decimal
from typing import Optional, List
from uuid import UUID
from datetime import datetime

from invoicer.modules.clients.models import ClientStatus


class ClientBase(BaseModel):
    business_name: str = Field(..., min_length=1, max_length=200)
    contact_name: Optional[str] = Field(None, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    tax_id: Optional[str] = Field(None, max_length=50)
    notes: Optional[str] = None

    @field_validator('email', mode='before')
    @classmethod
    def empty_email_as_none(cls, v):
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    @field_validator('business_name')
    @classmethod
    def strip_business_name(cls, v):
        if v is not None and not v.strip():
            raise ValueError('La razón social es obligatoria')
        return v.strip() if v else v


class ClientCreate(ClientBase):
    status: ClientStatus = ClientStatus.ACTIVE

    class Config:
        extra = "forbid"


class ClientUpdate(ClientBase):
    business_name: Optional[str] = Field(None, min_length=1, max_length=200)
    status: Optional[ClientStatus] = None

    class Config:
        extra = "forbid"


class ClientOut(ClientBase):
    id: UUID
    status: ClientStatus
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class ClientList(BaseModel):
    items: List[ClientOut]
    total: int
    limit: int
    offset: int


class ClientSummary(BaseModel):
    """Resumen de facturación de un cliente"""
    client: ClientOut
    project_count: int
    invoice_count: int
    quote_count: int
    receipt_count: int
    total_invoiced: Decimal
    total_received: Decimal
    outstanding: Decimal
