"""
Tests del dashboard del usuario
"""

from datetime import date
from decimal import Decimal

import pytest

from invoicer.modules.clients.schemas import ClientCreate
from invoicer.modules.clients.service import ClientService
from invoicer.modules.dashboard.service import DashboardService, month_keys
from invoicer.modules.invoices.schemas import InvoiceCreate
from invoicer.modules.invoices.service import InvoiceService
from invoicer.modules.quotes.schemas import QuoteCreate
from invoicer.modules.quotes.service import QuoteService
from invoicer.modules.receipts.schemas import ReceiptCreate
from invoicer.modules.receipts.service import ReceiptService


def test_month_keys_cross_year():
    assert month_keys(date(2025, 2, 14), 4) == ["2024-11", "2024-12", "2025-01", "2025-02"]


@pytest.fixture
def activity(db_session, owner, other_owner):
    """Tres facturas del usuario (borrador, enviada y vencida) y ruido de otro usuario"""
    acme = ClientService(db_session).create_client(owner.id, ClientCreate(business_name="Acme Inc"))
    invoices = InvoiceService(db_session)

    def invoice(price, due):
        return invoices.create_invoice(owner.id, InvoiceCreate(
            client_id=acme.id,
            issue_date=date(2025, 1, 1),
            due_date=due,
            items=[{"description": "Servicio", "quantity": 1, "unit_price": price}]
        ))

    invoice(999, date(2025, 1, 31))
    sent = invoice(300, date(2025, 3, 31))
    invoices.mark_sent(owner.id, sent.id)
    late = invoice(200, date(2025, 1, 31))
    invoices.mark_sent(owner.id, late.id)
    invoices.mark_overdue(owner.id, late.id, today=date(2025, 2, 15))

    ReceiptService(db_session).create_receipt(owner.id, ReceiptCreate(
        invoice_id=sent.id, amount=Decimal("100"), date=date(2025, 2, 10)
    ))
    QuoteService(db_session).create_quote(owner.id, QuoteCreate(
        client_id=acme.id, items=[{"description": "Propuesta", "quantity": 1, "unit_price": 50}]
    ))

    globex = ClientService(db_session).create_client(other_owner.id, ClientCreate(business_name="Globex"))
    other = invoices.create_invoice(other_owner.id, InvoiceCreate(
        client_id=globex.id, items=[{"description": "Ajeno", "quantity": 1, "unit_price": 5000}]
    ))
    invoices.mark_sent(other_owner.id, other.id)


class TestDashboardSummary:

    def test_totals(self, db_session, owner, activity):
        summary = DashboardService(db_session).get_summary(owner.id, today=date(2025, 2, 20), months=3)

        assert summary.total_clients == 1
        assert summary.total_invoices == 3
        assert summary.total_quotes == 1
        assert summary.total_receipts == 1
        assert summary.total_invoiced == Decimal("500")
        assert summary.total_received == Decimal("100")
        assert summary.outstanding == Decimal("400")
        assert summary.overdue_amount == Decimal("200")
        assert summary.invoices_by_status == {"draft": 1, "sent": 1, "overdue": 1}
        assert summary.quotes_by_status == {"draft": 1}

    def test_revenue_by_month(self, db_session, owner, activity):
        summary = DashboardService(db_session).get_summary(owner.id, today=date(2025, 2, 20), months=3)
        assert [(m.month, m.amount) for m in summary.revenue_by_month] == [
            ("2024-12", Decimal("0")),
            ("2025-01", Decimal("0")),
            ("2025-02", Decimal("100")),
        ]

    def test_recent_documents(self, db_session, owner, activity):
        summary = DashboardService(db_session).get_summary(owner.id, today=date(2025, 2, 20))
        assert len(summary.recent_invoices) == 3
        assert {doc.client_name for doc in summary.recent_invoices} == {"Acme Inc"}
        assert summary.recent_quotes[0].number == "QT-0001"

    def test_endpoint_is_scoped(self, client, other_headers, activity):
        response = client.get("/dashboard/summary", params={"months": 6}, headers=other_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total_invoices"] == 1
        assert Decimal(data["total_invoiced"]) == Decimal("5000")
        assert len(data["revenue_by_month"]) == 6

    def test_months_bounds(self, client, auth_headers):
        assert client.get("/dashboard/summary", params={"months": 0}, headers=auth_headers).status_code == 422
