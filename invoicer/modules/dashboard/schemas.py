from pydantic import BaseModel
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID


class MonthlyRevenue(BaseModel):
    month: str  # YYYY-MM
    amount: Decimal


class RecentDocument(BaseModel):
    id: UUID
    number: str
    client_id: UUID
    client_name: Optional[str] = None
    status: str
    issue_date: date
    currency: str
    total_amount: Decimal


class DashboardSummary(BaseModel):
    total_clients: int
    active_projects: int
    total_invoices: int
    total_quotes: int
    total_receipts: int
    total_invoiced: Decimal
    total_received: Decimal
    outstanding: Decimal
    overdue_amount: Decimal
    invoices_by_status: Dict[str, int]
    quotes_by_status: Dict[str, int]
    revenue_by_month: List[MonthlyRevenue]
    recent_invoices: List[RecentDocument]
    recent_quotes: List[RecentDocument]
