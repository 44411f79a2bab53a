from pydantic import BaseModel, Field
from datetime import date, datetime
from typing import List, Optional
from uuid import UUID

from invoicer.modules.documents.schemas import (
    DocumentCreateBase, DocumentOutBase, DocumentUpdateBase
)
from invoicer.modules.invoices.schemas import InvoiceOut
from invoicer.modules.quotes.models import QuoteStatus


class QuoteCreate(DocumentCreateBase):
    """Si no se envía expiry_date vence QUOTE_VALIDITY_DAYS después de la emisión"""
    quote_number: Optional[str] = Field(None, min_length=1, max_length=50)
    expiry_date: Optional[date] = None


class QuoteUpdate(DocumentUpdateBase):
    quote_number: Optional[str] = Field(None, min_length=1, max_length=50)
    expiry_date: Optional[date] = None


class QuoteOut(DocumentOutBase):
    quote_number: str
    status: QuoteStatus
    expiry_date: Optional[date] = None
    accepted_at: Optional[datetime] = None
    converted_invoice_id: Optional[UUID] = None


class QuoteList(BaseModel):
    items: List[QuoteOut]
    total: int
    limit: int
    offset: int


class QuoteConversionOut(BaseModel):
    quote: QuoteOut
    invoice: InvoiceOut
