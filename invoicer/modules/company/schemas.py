from pydantic import BaseModel, EmailStr, Field, field_validator
from typing import Optional
from uuid import UUID
from datetime import datetime


class CompanyProfileUpdate(BaseModel):
    company_name: str = Field(..., min_length=1, max_length=200)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    address: Optional[str] = Field(None, max_length=500)
    city: Optional[str] = Field(None, max_length=100)
    postal_code: Optional[str] = Field(None, max_length=20)
    country: Optional[str] = Field(None, max_length=100)
    tax_id: Optional[str] = Field(None, max_length=50)
    website: Optional[str] = Field(None, max_length=255)
    default_currency: str = Field("USD", min_length=3, max_length=3)
    default_payment_terms_days: int = Field(30, ge=0, le=365)
    default_terms: Optional[str] = None
    default_footer: Optional[str] = None

    @field_validator('email', mode='before')
    @classmethod
    def empty_email_as_none(cls, v):
        if isinstance(v, str) and v.strip() == "":
            return None
        return v

    @field_validator('default_currency')
    @classmethod
    def upper_currency(cls, v):
        return v.upper()

    class Config:
        extra = "forbid"


class CompanyProfileOut(BaseModel):
    id: UUID
    company_name: str
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    country: Optional[str] = None
    tax_id: Optional[str] = None
    website: Optional[str] = None
    default_currency: str
    default_payment_terms_days: int
    default_terms: Optional[str] = None
    default_footer: Optional[str] = None
    updated_at: datetime

    class Config:
        from_attributes = True
