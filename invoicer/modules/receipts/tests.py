"""
Tests para el módulo de Recibos

- Un recibo que cubre el total salda la factura en la misma transacción
- Solo se registran pagos de facturas enviadas, vistas, vencidas o pagadas
- El documento enlazado debe ser del mismo cliente y usuario
"""

from decimal import Decimal

import pytest

from invoicer.common.exceptions import InvalidTransition, NotFound, ValidationError
from invoicer.modules.clients.schemas import ClientCreate
from invoicer.modules.clients.service import ClientService
from invoicer.modules.invoices.models import InvoiceStatus
from invoicer.modules.invoices.schemas import InvoiceCreate
from invoicer.modules.invoices.service import InvoiceService
from invoicer.modules.receipts.models import PaymentMethod
from invoicer.modules.receipts.schemas import ReceiptCreate, ReceiptUpdate
from invoicer.modules.receipts.service import ReceiptService


@pytest.fixture
def acme(db_session, owner):
    return ClientService(db_session).create_client(owner.id, ClientCreate(business_name="Acme Inc"))


@pytest.fixture
def sent_invoice(db_session, owner, acme):
    service = InvoiceService(db_session)
    invoice = service.create_invoice(owner.id, InvoiceCreate(
        client_id=acme.id,
        currency="EUR",
        tax_rate=Decimal("0.1"),
        items=[{"description": "Desarrollo", "quantity": 2, "unit_price": 100}]
    ))
    return service.mark_sent(owner.id, invoice.id)


class TestReceiptSettlement:

    def test_full_payment_settles_invoice(self, db_session, owner, sent_invoice):
        receipt = ReceiptService(db_session).create_receipt(
            owner.id, ReceiptCreate(invoice_id=sent_invoice.id, amount=Decimal("220.00"))
        )

        assert receipt.receipt_number == "RCT-0001"
        assert receipt.client_id == sent_invoice.client_id
        assert receipt.currency == "EUR"
        db_session.refresh(sent_invoice)
        assert sent_invoice.status == InvoiceStatus.PAID
        assert sent_invoice.paid_at is not None

    def test_partial_payments_accumulate(self, db_session, owner, sent_invoice):
        service = ReceiptService(db_session)
        service.create_receipt(owner.id, ReceiptCreate(invoice_id=sent_invoice.id, amount=Decimal("100")))
        db_session.refresh(sent_invoice)
        assert sent_invoice.status == InvoiceStatus.SENT

        service.create_receipt(owner.id, ReceiptCreate(invoice_id=sent_invoice.id, amount=Decimal("120")))
        db_session.refresh(sent_invoice)
        assert sent_invoice.status == InvoiceStatus.PAID

    def test_overdue_invoice_can_be_paid(self, db_session, owner, acme):
        service = InvoiceService(db_session)
        invoice = service.create_invoice(owner.id, InvoiceCreate(
            client_id=acme.id,
            issue_date="2025-01-01",
            due_date="2025-01-31",
            items=[{"description": "X", "quantity": 1, "unit_price": 50}]
        ))
        service.mark_sent(owner.id, invoice.id)
        service.refresh_overdue(owner.id, today=service.add_days(invoice.due_date, 1))

        ReceiptService(db_session).create_receipt(owner.id, ReceiptCreate(invoice_id=invoice.id, amount=Decimal("50")))
        db_session.refresh(invoice)
        assert invoice.status == InvoiceStatus.PAID

    def test_raising_amount_settles(self, db_session, owner, sent_invoice):
        service = ReceiptService(db_session)
        receipt = service.create_receipt(owner.id, ReceiptCreate(invoice_id=sent_invoice.id, amount=Decimal("20")))

        service.update_receipt(owner.id, receipt.id, ReceiptUpdate(amount=Decimal("220")))

        db_session.refresh(sent_invoice)
        assert sent_invoice.status == InvoiceStatus.PAID

    def test_delete_does_not_revert_paid(self, db_session, owner, sent_invoice):
        service = ReceiptService(db_session)
        receipt = service.create_receipt(owner.id, ReceiptCreate(invoice_id=sent_invoice.id, amount=Decimal("220")))

        service.delete_receipt(owner.id, receipt.id)

        db_session.refresh(sent_invoice)
        assert sent_invoice.status == InvoiceStatus.PAID
        with pytest.raises(NotFound):
            service.get_receipt(owner.id, receipt.id)


class TestReceiptValidation:

    def test_draft_invoice_rejected(self, db_session, owner, acme):
        draft = InvoiceService(db_session).create_invoice(owner.id, InvoiceCreate(
            client_id=acme.id, items=[{"description": "X", "quantity": 1, "unit_price": 10}]
        ))
        with pytest.raises(InvalidTransition):
            ReceiptService(db_session).create_receipt(owner.id, ReceiptCreate(invoice_id=draft.id, amount=Decimal("10")))

    def test_client_mismatch_rejected(self, db_session, owner, sent_invoice):
        globex = ClientService(db_session).create_client(owner.id, ClientCreate(business_name="Globex"))
        with pytest.raises(ValidationError):
            ReceiptService(db_session).create_receipt(owner.id, ReceiptCreate(
                client_id=globex.id, invoice_id=sent_invoice.id, amount=Decimal("10")
            ))

    def test_invoice_of_other_owner(self, db_session, other_owner, sent_invoice):
        with pytest.raises(NotFound):
            ReceiptService(db_session).create_receipt(
                other_owner.id, ReceiptCreate(invoice_id=sent_invoice.id, amount=Decimal("10"))
            )

    def test_standalone_receipt_uses_company_currency(self, db_session, owner, acme):
        receipt = ReceiptService(db_session).create_receipt(owner.id, ReceiptCreate(
            client_id=acme.id, amount=Decimal("75"), payment_method=PaymentMethod.CASH
        ))
        assert receipt.currency == "USD"
        assert receipt.invoice_id is None

    def test_null_amount_on_update(self, db_session, owner, acme):
        service = ReceiptService(db_session)
        receipt = service.create_receipt(owner.id, ReceiptCreate(client_id=acme.id, amount=Decimal("75")))
        with pytest.raises(ValidationError):
            service.update_receipt(owner.id, receipt.id, ReceiptUpdate(amount=None))


class TestReceiptApi:

    def test_requires_client_or_document(self, client, auth_headers):
        response = client.post("/receipts/", json={"amount": "10"}, headers=auth_headers)
        assert response.status_code == 422

    def test_zero_amount_rejected(self, client, auth_headers, acme):
        response = client.post("/receipts/", json={"client_id": str(acme.id), "amount": "0"}, headers=auth_headers)
        assert response.status_code == 422

    def test_create_list_and_pdf(self, client, auth_headers, sent_invoice):
        response = client.post("/receipts/", json={
            "invoice_id": str(sent_invoice.id),
            "amount": "220",
            "payment_reference": "TRX-991"
        }, headers=auth_headers)
        assert response.status_code == 201
        receipt = response.json()

        assert client.get(f"/invoices/{sent_invoice.id}", headers=auth_headers).json()["status"] == "paid"

        data = client.get("/receipts/", params={"invoice_id": str(sent_invoice.id)}, headers=auth_headers).json()
        assert data["total"] == 1
        data = client.get("/receipts/", params={"search": "TRX"}, headers=auth_headers).json()
        assert data["items"][0]["id"] == receipt["id"]

        response = client.get(f"/receipts/{receipt['id']}/pdf", headers=auth_headers)
        assert response.status_code == 200
        assert 'filename="acme-inc-receipt-RCT-0001.pdf"' in response.headers["content-disposition"]

    def test_draft_invoice_conflict(self, client, auth_headers, db_session, owner, acme):
        draft = InvoiceService(db_session).create_invoice(owner.id, InvoiceCreate(
            client_id=acme.id, items=[{"description": "X", "quantity": 1, "unit_price": 10}]
        ))
        response = client.post("/receipts/", json={"invoice_id": str(draft.id), "amount": "10"}, headers=auth_headers)
        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"
