import logging
from collections import defaultdict
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from invoicer.common.crud import store_errors
from invoicer.database.database import get_owner_query
from invoicer.modules.clients.models import Client
from invoicer.modules.dashboard.schemas import DashboardSummary, MonthlyRevenue, RecentDocument
from invoicer.modules.documents.totals import ZERO
from invoicer.modules.invoices.models import Invoice, InvoiceStatus
from invoicer.modules.projects.models import Project, ProjectStatus
from invoicer.modules.quotes.models import Quote
from invoicer.modules.receipts.models import Receipt

logger = logging.getLogger(__name__)

BILLED_EXCLUDED = (InvoiceStatus.DRAFT, InvoiceStatus.CANCELLED)
RECENT_LIMIT = 5


def month_keys(today: date, months: int) -> List[str]:
    """Últimos `months` meses en formato YYYY-MM, del más antiguo al actual"""
    keys = []
    year, month = today.year, today.month
    for _ in range(months):
        keys.append(f"{year:04d}-{month:02d}")
        month -= 1
        if month == 0:
            year, month = year - 1, 12
    return list(reversed(keys))


class DashboardService:
    """Métricas del usuario calculadas sobre sus propios documentos"""

    def __init__(self, db: Session):
        self.db = db

    def _count(self, owner_id: UUID, model, *criteria) -> int:
        return get_owner_query(self.db, model, owner_id).filter(*criteria).count()

    def _sum(self, owner_id: UUID, column, *criteria) -> Decimal:
        value = self.db.query(func.coalesce(func.sum(column), 0)).filter(
            column.class_.user_id == owner_id, *criteria
        ).scalar()
        return Decimal(str(value or 0))

    def _by_status(self, owner_id: UUID, model) -> Dict[str, int]:
        rows = self.db.query(model.status, func.count(model.id)).filter(
            model.user_id == owner_id
        ).group_by(model.status).all()
        return {status.value: count for status, count in rows}

    def _revenue_by_month(self, owner_id: UUID, today: date, months: int) -> List[MonthlyRevenue]:
        keys = month_keys(today, months)
        start = date(int(keys[0][:4]), int(keys[0][5:]), 1)
        rows = self.db.query(Receipt.date, Receipt.amount).filter(
            Receipt.user_id == owner_id,
            Receipt.date >= start,
            Receipt.date <= today
        ).all()

        totals = defaultdict(lambda: ZERO)
        for receipt_date, amount in rows:
            totals[receipt_date.strftime("%Y-%m")] += Decimal(amount)
        return [MonthlyRevenue(month=key, amount=totals[key]) for key in keys]

    def _recent(self, owner_id: UUID, model, number_column) -> List[RecentDocument]:
        rows = self.db.query(model, Client.business_name).outerjoin(
            Client, Client.id == model.client_id
        ).filter(model.user_id == owner_id).order_by(
            model.created_at.desc()
        ).limit(RECENT_LIMIT).all()

        return [
            RecentDocument(
                id=document.id,
                number=getattr(document, number_column.key),
                client_id=document.client_id,
                client_name=client_name,
                status=document.status.value,
                issue_date=document.issue_date,
                currency=document.currency,
                total_amount=document.total_amount
            )
            for document, client_name in rows
        ]

    def get_summary(self, owner_id: UUID, today: Optional[date] = None, months: int = 12) -> DashboardSummary:
        today = today or date.today()

        with store_errors(self.db, "calcular dashboard"):
            total_invoiced = self._sum(owner_id, Invoice.total_amount, Invoice.status.notin_(BILLED_EXCLUDED))
            total_received = self._sum(owner_id, Receipt.amount)

            summary = DashboardSummary(
                total_clients=self._count(owner_id, Client),
                active_projects=self._count(owner_id, Project, Project.status == ProjectStatus.ACTIVE),
                total_invoices=self._count(owner_id, Invoice),
                total_quotes=self._count(owner_id, Quote),
                total_receipts=self._count(owner_id, Receipt),
                total_invoiced=total_invoiced,
                total_received=total_received,
                outstanding=max(ZERO, total_invoiced - total_received),
                overdue_amount=self._sum(owner_id, Invoice.total_amount, Invoice.status == InvoiceStatus.OVERDUE),
                invoices_by_status=self._by_status(owner_id, Invoice),
                quotes_by_status=self._by_status(owner_id, Quote),
                revenue_by_month=self._revenue_by_month(owner_id, today, months),
                recent_invoices=self._recent(owner_id, Invoice, Invoice.invoice_number),
                recent_quotes=self._recent(owner_id, Quote, Quote.quote_number)
            )

        return summary
