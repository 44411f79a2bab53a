from pydantic import BaseModel, EmailStr, Field
from datetime import date, datetime
from decimal import Decimal
from typing import Dict, List, Literal, Optional
from uuid import UUID

AdminRole = Literal["admin", "superadmin"]


class AdminLogin(BaseModel):
    username: str = Field(..., min_length=1, max_length=100)
    password: str = Field(..., min_length=1)


class AdminUserOut(BaseModel):
    """Administrador sin hash ni salt"""
    id: UUID
    username: str
    email: str
    role: str
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime

    class Config:
        from_attributes = True


class AdminTokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    admin: AdminUserOut


class AdminUserCreate(BaseModel):
    username: str = Field(..., min_length=3, max_length=100)
    email: EmailStr
    password: str = Field(..., min_length=8, max_length=128)
    role: AdminRole = "admin"

    class Config:
        extra = "forbid"


class AdminUserUpdate(BaseModel):
    email: Optional[EmailStr] = None
    role: Optional[AdminRole] = None
    is_active: Optional[bool] = None

    class Config:
        extra = "forbid"


class AdminPasswordChange(BaseModel):
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=8, max_length=128)


class AdminStats(BaseModel):
    """Métricas globales de la plataforma"""
    total_users: int
    active_users: int
    total_clients: int
    total_projects: int
    total_invoices: int
    total_quotes: int
    total_receipts: int
    total_invoiced: Decimal
    total_received: Decimal
    invoices_by_status: Dict[str, int]
    quotes_by_status: Dict[str, int]


class AppUserOut(BaseModel):
    id: UUID
    email: str
    full_name: Optional[str] = None
    is_active: bool
    last_login: Optional[datetime] = None
    created_at: datetime
    client_count: int = 0
    invoice_count: int = 0


class AppUserList(BaseModel):
    items: List[AppUserOut]
    total: int
    limit: int
    offset: int


class AdminDocumentOut(BaseModel):
    """Fila de documento para los listados globales"""
    id: UUID
    user_id: UUID
    user_email: Optional[str] = None
    client_name: Optional[str] = None
    number: str
    status: Optional[str] = None
    issue_date: date
    currency: str
    total_amount: Decimal


class AdminDocumentList(BaseModel):
    items: List[AdminDocumentOut]
    total: int
    limit: int
    offset: int
