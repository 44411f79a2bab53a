"""
Tests para el módulo de Cotizaciones

- Ciclo de vida: borrador, enviada, vista, aceptada / rechazada / expirada
- Conversión de cotización aceptada a factura en borrador
- Expiración masiva por fecha de vigencia
"""

from datetime import date
from decimal import Decimal

import pytest

from invoicer.common.exceptions import ConflictError, InvalidTransition
from invoicer.modules.clients.schemas import ClientCreate
from invoicer.modules.clients.service import ClientService
from invoicer.modules.invoices.models import InvoiceStatus
from invoicer.modules.quotes.models import QuoteStatus
from invoicer.modules.quotes.schemas import QuoteCreate
from invoicer.modules.quotes.service import QuoteService


@pytest.fixture
def acme(db_session, owner):
    return ClientService(db_session).create_client(owner.id, ClientCreate(business_name="Acme Inc"))


@pytest.fixture
def quote(db_session, owner, acme):
    return QuoteService(db_session).create_quote(owner.id, QuoteCreate(
        client_id=acme.id,
        issue_date=date(2025, 1, 1),
        expiry_date=date(2025, 1, 15),
        discount_amount=Decimal("30"),
        tax_rate=Decimal("0.19"),
        notes="Incluye dos rondas de cambios",
        items=[
            {"description": "Diseño", "quantity": 1, "unit_price": 500},
            {"description": "Maquetación", "quantity": 10, "unit_price": 25, "discount_rate": "0.1"},
        ]
    ))


def accepted(db_session, owner, quote):
    service = QuoteService(db_session)
    service.mark_sent(owner.id, quote.id)
    return service.accept(owner.id, quote.id)


class TestQuoteLifecycle:

    def test_created_as_draft(self, quote):
        assert quote.status == QuoteStatus.DRAFT
        assert quote.quote_number == "QT-0001"
        assert quote.subtotal == Decimal("725.00")

    def test_default_expiry(self, db_session, owner, acme):
        created = QuoteService(db_session).create_quote(owner.id, QuoteCreate(
            client_id=acme.id, issue_date=date(2025, 3, 1),
            items=[{"description": "X", "quantity": 1, "unit_price": 1}]
        ))
        assert created.expiry_date == date(2025, 3, 31)

    def test_accept_requires_sent(self, db_session, owner, quote):
        with pytest.raises(InvalidTransition):
            QuoteService(db_session).accept(owner.id, quote.id)
        db_session.refresh(quote)
        assert quote.status == QuoteStatus.DRAFT

    def test_accept_stamps_date(self, db_session, owner, quote):
        result = accepted(db_session, owner, quote)
        assert result.status == QuoteStatus.ACCEPTED
        assert result.accepted_at is not None

    def test_rejected_is_terminal(self, db_session, owner, quote):
        service = QuoteService(db_session)
        service.mark_sent(owner.id, quote.id)
        service.mark_viewed(owner.id, quote.id)
        service.reject(owner.id, quote.id)
        with pytest.raises(InvalidTransition):
            service.accept(owner.id, quote.id)

    def test_expire_guard(self, db_session, owner, quote):
        service = QuoteService(db_session)
        service.mark_sent(owner.id, quote.id)
        with pytest.raises(InvalidTransition):
            service.mark_expired(owner.id, quote.id, today=date(2025, 1, 10))
        assert service.mark_expired(owner.id, quote.id, today=date(2025, 1, 16)).status == QuoteStatus.EXPIRED

    def test_refresh_expired(self, db_session, owner, acme, quote):
        service = QuoteService(db_session)
        service.mark_sent(owner.id, quote.id)
        draft = service.create_quote(owner.id, QuoteCreate(
            client_id=acme.id, issue_date=date(2025, 1, 1), expiry_date=date(2025, 1, 2),
            items=[{"description": "X", "quantity": 1, "unit_price": 1}]
        ))

        expired = service.refresh_expired(owner.id, today=date(2025, 2, 1))

        assert [q.id for q in expired] == [quote.id]
        db_session.refresh(draft)
        assert draft.status == QuoteStatus.DRAFT


class TestQuoteConversion:

    def test_convert_accepted_quote(self, db_session, owner, quote):
        accepted(db_session, owner, quote)

        converted, invoice = QuoteService(db_session).convert_to_invoice(owner.id, quote.id)

        assert converted.converted_invoice_id == invoice.id
        assert invoice.status == InvoiceStatus.DRAFT
        assert invoice.invoice_number == "INV-0001"
        assert invoice.reference == quote.quote_number
        assert invoice.client_id == quote.client_id
        assert invoice.notes == quote.notes
        assert [item.description for item in invoice.items] == ["Diseño", "Maquetación"]
        assert invoice.discount_amount == quote.discount_amount
        assert invoice.tax_rate == quote.tax_rate
        assert invoice.total_amount == quote.total_amount

    def test_convert_twice_conflicts(self, db_session, owner, quote):
        accepted(db_session, owner, quote)
        service = QuoteService(db_session)
        service.convert_to_invoice(owner.id, quote.id)

        with pytest.raises(ConflictError):
            service.convert_to_invoice(owner.id, quote.id)

    def test_convert_requires_accepted(self, db_session, owner, quote):
        QuoteService(db_session).mark_sent(owner.id, quote.id)
        with pytest.raises(InvalidTransition):
            QuoteService(db_session).convert_to_invoice(owner.id, quote.id)


class TestQuoteApi:

    def test_full_flow(self, client, auth_headers, acme):
        created = client.post("/quotes/", json={
            "client_id": str(acme.id),
            "items": [{"description": "Auditoría", "quantity": 1, "unit_price": "800"}]
        }, headers=auth_headers)
        assert created.status_code == 201
        quote_id = created.json()["id"]

        assert client.post(f"/quotes/{quote_id}/send", headers=auth_headers).json()["status"] == "sent"
        assert client.post(f"/quotes/{quote_id}/accept", headers=auth_headers).json()["status"] == "accepted"

        response = client.post(f"/quotes/{quote_id}/convert", headers=auth_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["quote"]["converted_invoice_id"] == data["invoice"]["id"]
        assert data["invoice"]["status"] == "draft"
        assert Decimal(data["invoice"]["total_amount"]) == Decimal("800.00")

        response = client.post(f"/quotes/{quote_id}/convert", headers=auth_headers)
        assert response.status_code == 409

    def test_convert_draft_quote(self, client, auth_headers, acme):
        quote_id = client.post("/quotes/", json={
            "client_id": str(acme.id),
            "items": [{"description": "X", "quantity": 1, "unit_price": 1}]
        }, headers=auth_headers).json()["id"]
        response = client.post(f"/quotes/{quote_id}/convert", headers=auth_headers)
        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"

    def test_pdf_filename(self, client, auth_headers, acme):
        quote_id = client.post("/quotes/", json={
            "client_id": str(acme.id),
            "items": [{"description": "X", "quantity": 1, "unit_price": 1}]
        }, headers=auth_headers).json()["id"]
        response = client.get(f"/quotes/{quote_id}/pdf", headers=auth_headers)
        assert response.status_code == 200
        assert 'filename="acme-inc-quote-QT-0001.pdf"' in response.headers["content-disposition"]

    def test_other_owner_cannot_convert(self, client, auth_headers, other_headers, acme):
        quote_id = client.post("/quotes/", json={
            "client_id": str(acme.id),
            "items": [{"description": "X", "quantity": 1, "unit_price": 1}]
        }, headers=auth_headers).json()["id"]
        assert client.post(f"/quotes/{quote_id}/convert", headers=other_headers).status_code == 404
