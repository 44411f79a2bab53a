"""
Tests para el módulo de Facturas

- Creación con totales calculados y numeración automática
- Ciclo de vida vía API (enviar, ver, pagar, vencer, anular)
- Envío por email con la cola de Celery mockeada
- Aislamiento entre usuarios
"""

from datetime import date
from decimal import Decimal
from uuid import uuid4

import pytest

from invoicer.common.exceptions import InvalidTransition, NotFound, ValidationError
from invoicer.modules.clients.schemas import ClientCreate
from invoicer.modules.clients.service import ClientService
from invoicer.modules.invoices.models import InvoiceStatus
from invoicer.modules.invoices.schemas import InvoiceCreate, InvoiceUpdate
from invoicer.modules.invoices.service import InvoiceService
from invoicer.modules.quotes.models import Quote
from invoicer.modules.receipts.models import Receipt
from invoicer.modules.receipts.schemas import ReceiptCreate
from invoicer.modules.receipts.service import ReceiptService


# ===== FIXTURES =====

@pytest.fixture
def acme(db_session, owner):
    return ClientService(db_session).create_client(
        owner.id, ClientCreate(business_name="Acme Inc", email="billing@acme.com")
    )


@pytest.fixture
def invoice_payload(acme):
    return {
        "client_id": str(acme.id),
        "issue_date": "2025-01-10",
        "due_date": "2025-02-09",
        "tax_rate": "0.1",
        "items": [{"description": "Desarrollo", "quantity": "2", "unit_price": "100"}]
    }


@pytest.fixture
def created(client, auth_headers, invoice_payload):
    response = client.post("/invoices/", json=invoice_payload, headers=auth_headers)
    assert response.status_code == 201
    return response.json()


# ===== CREACIÓN =====

class TestInvoiceCreate:

    def test_totals_and_draft_status(self, created):
        assert created["status"] == "draft"
        assert created["invoice_number"] == "INV-0001"
        assert Decimal(created["subtotal"]) == Decimal("200.00")
        assert Decimal(created["tax_amount"]) == Decimal("20.00")
        assert Decimal(created["total_amount"]) == Decimal("220.00")
        assert len(created["items"]) == 1
        assert Decimal(created["items"][0]["amount"]) == Decimal("200.00")

    def test_sequential_numbers(self, client, auth_headers, invoice_payload, created):
        assert client.get("/invoices/next-number", headers=auth_headers).json()["next_number"] == "INV-0002"
        second = client.post("/invoices/", json=invoice_payload, headers=auth_headers).json()
        assert second["invoice_number"] == "INV-0002"

    def test_explicit_duplicate_number_conflicts(self, client, auth_headers, invoice_payload, created):
        invoice_payload["invoice_number"] = created["invoice_number"]
        response = client.post("/invoices/", json=invoice_payload, headers=auth_headers)
        assert response.status_code == 409
        assert response.json()["error"] == "conflict"

    def test_numbers_are_per_owner(self, client, other_headers, db_session, other_owner, created):
        other_client = ClientService(db_session).create_client(other_owner.id, ClientCreate(business_name="Globex"))
        response = client.post("/invoices/", json={
            "client_id": str(other_client.id),
            "items": [{"description": "Soporte", "quantity": 1, "unit_price": 50}]
        }, headers=other_headers)
        assert response.status_code == 201
        assert response.json()["invoice_number"] == "INV-0001"

    def test_explicit_tax_amount_overrides_rate(self, client, auth_headers, invoice_payload):
        invoice_payload["tax_amount"] = "5.00"
        data = client.post("/invoices/", json=invoice_payload, headers=auth_headers).json()
        assert data["tax_rate"] is None
        assert Decimal(data["total_amount"]) == Decimal("205.00")

    def test_default_due_date_from_payment_terms(self, db_session, owner, acme):
        invoice = InvoiceService(db_session).create_invoice(owner.id, InvoiceCreate(
            client_id=acme.id,
            issue_date=date(2025, 1, 1),
            items=[{"description": "Horas", "quantity": 1, "unit_price": 10}]
        ))
        assert invoice.due_date == date(2025, 1, 31)

    def test_due_date_before_issue_date(self, client, auth_headers, invoice_payload):
        invoice_payload["due_date"] = "2025-01-01"
        response = client.post("/invoices/", json=invoice_payload, headers=auth_headers)
        assert response.status_code == 422

    @pytest.mark.parametrize("field,value", [
        ("tax_rate", "1.5"),
        ("discount_amount", "-1"),
        ("currency", "EURO"),
    ])
    def test_invalid_values_rejected(self, client, auth_headers, invoice_payload, field, value):
        invoice_payload[field] = value
        response = client.post("/invoices/", json=invoice_payload, headers=auth_headers)
        assert response.status_code == 422

    def test_negative_quantity_rejected(self, client, auth_headers, invoice_payload):
        invoice_payload["items"][0]["quantity"] = "-1"
        assert client.post("/invoices/", json=invoice_payload, headers=auth_headers).status_code == 422

    def test_unknown_client(self, client, auth_headers, invoice_payload):
        invoice_payload["client_id"] = str(uuid4())
        assert client.post("/invoices/", json=invoice_payload, headers=auth_headers).status_code == 404

    def test_list_and_search(self, client, auth_headers, invoice_payload, created):
        invoice_payload["reference"] = "PO-778"
        client.post("/invoices/", json=invoice_payload, headers=auth_headers)

        data = client.get("/invoices/", headers=auth_headers).json()
        assert data["total"] == 2

        data = client.get("/invoices/", params={"search": "PO-7"}, headers=auth_headers).json()
        assert data["total"] == 1
        assert data["items"][0]["reference"] == "PO-778"

        data = client.get("/invoices/", params={"status": "sent"}, headers=auth_headers).json()
        assert data["total"] == 0


# ===== EDICIÓN =====

class TestInvoiceUpdate:

    def test_replace_items_recalculates(self, client, auth_headers, created):
        response = client.patch(f"/invoices/{created['id']}", json={
            "items": [
                {"description": "Desarrollo", "quantity": "3", "unit_price": "100"},
                {"description": "Hosting", "quantity": "1", "unit_price": "50"},
            ]
        }, headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert Decimal(data["subtotal"]) == Decimal("350.00")
        assert Decimal(data["total_amount"]) == Decimal("385.00")
        assert [item["position"] for item in data["items"]] == [0, 1]

    def test_clearing_rate_zeroes_amount(self, client, auth_headers, created):
        data = client.patch(f"/invoices/{created['id']}", json={"tax_rate": None}, headers=auth_headers).json()
        assert Decimal(data["tax_amount"]) == Decimal("0.00")
        assert Decimal(data["total_amount"]) == Decimal("200.00")

    def test_status_is_not_editable(self, client, auth_headers, created):
        response = client.patch(f"/invoices/{created['id']}", json={"status": "paid"}, headers=auth_headers)
        assert response.status_code == 422

    def test_null_client_rejected(self, db_session, owner, acme):
        service = InvoiceService(db_session)
        invoice = service.create_invoice(owner.id, InvoiceCreate(
            client_id=acme.id, items=[{"description": "X", "quantity": 1, "unit_price": 1}]
        ))
        with pytest.raises(ValidationError):
            service.update_document(owner.id, invoice.id, InvoiceUpdate(client_id=None))

    def test_terminal_invoice_not_editable(self, db_session, owner, acme):
        service = InvoiceService(db_session)
        invoice = service.create_invoice(owner.id, InvoiceCreate(
            client_id=acme.id, items=[{"description": "X", "quantity": 1, "unit_price": 1}]
        ))
        service.cancel(owner.id, invoice.id)
        with pytest.raises(ValidationError):
            service.update_document(owner.id, invoice.id, InvoiceUpdate(notes="tarde"))


# ===== CICLO DE VIDA =====

class TestInvoiceLifecycle:

    def test_send_then_paid(self, client, auth_headers, created):
        response = client.post(f"/invoices/{created['id']}/send", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "sent"
        assert response.json()["sent_at"] is not None

        response = client.post(f"/invoices/{created['id']}/paid", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "paid"
        assert response.json()["paid_at"] is not None

    def test_paid_cannot_go_back_to_sent(self, client, auth_headers, created, email_queue):
        client.post(f"/invoices/{created['id']}/send", headers=auth_headers)
        client.post(f"/invoices/{created['id']}/paid", headers=auth_headers)

        response = client.post(f"/invoices/{created['id']}/send", headers=auth_headers)
        assert response.status_code == 409
        assert response.json()["error"] == "invalid_transition"
        assert client.get(f"/invoices/{created['id']}", headers=auth_headers).json()["status"] == "paid"

    def test_draft_cannot_be_paid(self, client, auth_headers, created):
        response = client.post(f"/invoices/{created['id']}/paid", headers=auth_headers)
        assert response.status_code == 409

    def test_viewed_then_cancel(self, db_session, owner, acme):
        service = InvoiceService(db_session)
        invoice = service.create_invoice(owner.id, InvoiceCreate(
            client_id=acme.id, items=[{"description": "X", "quantity": 1, "unit_price": 1}]
        ))
        service.mark_sent(owner.id, invoice.id)
        service.mark_viewed(owner.id, invoice.id)
        cancelled = service.cancel(owner.id, invoice.id)
        assert cancelled.status == InvoiceStatus.CANCELLED
        assert cancelled.cancelled_at is not None

        with pytest.raises(InvalidTransition):
            service.mark_paid(owner.id, invoice.id)

    def test_overdue_requires_past_due_date(self, db_session, owner, acme):
        service = InvoiceService(db_session)
        invoice = service.create_invoice(owner.id, InvoiceCreate(
            client_id=acme.id,
            issue_date=date(2025, 1, 1),
            due_date=date(2025, 1, 31),
            items=[{"description": "X", "quantity": 1, "unit_price": 1}]
        ))
        service.mark_sent(owner.id, invoice.id)

        with pytest.raises(InvalidTransition):
            service.mark_overdue(owner.id, invoice.id, today=date(2025, 1, 31))
        overdue = service.mark_overdue(owner.id, invoice.id, today=date(2025, 2, 1))
        assert overdue.status == InvoiceStatus.OVERDUE

    def test_refresh_overdue(self, client, auth_headers, invoice_payload):
        sent = client.post("/invoices/", json=invoice_payload, headers=auth_headers).json()
        client.post(f"/invoices/{sent['id']}/send", headers=auth_headers)
        draft = client.post("/invoices/", json=invoice_payload, headers=auth_headers).json()

        response = client.post("/invoices/refresh-overdue", params={"today": "2025-03-01"}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["updated"] == 1
        assert response.json()["ids"] == [sent["id"]]

        assert client.get(f"/invoices/{sent['id']}", headers=auth_headers).json()["status"] == "overdue"
        assert client.get(f"/invoices/{draft['id']}", headers=auth_headers).json()["status"] == "draft"

        # Segunda pasada: nada que actualizar
        response = client.post("/invoices/refresh-overdue", params={"today": "2025-03-01"}, headers=auth_headers)
        assert response.json()["updated"] == 0


# ===== EMAIL / PDF =====

class TestInvoiceDelivery:

    def test_send_with_email_queues_task(self, client, auth_headers, created, email_queue):
        response = client.post(
            f"/invoices/{created['id']}/send", json={"send_email": True, "message": "Adjunto"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "sent"

        email_queue.assert_called_once()
        kwargs = email_queue.call_args.kwargs
        assert kwargs["to_email"] == "billing@acme.com"
        assert kwargs["filename"] == "acme-inc-invoice-INV-0001.pdf"
        assert kwargs["context"]["message"] == "Adjunto"
        assert kwargs["pdf_base64"]

    def test_resend_by_email_keeps_status(self, client, auth_headers, created, email_queue):
        client.post(f"/invoices/{created['id']}/send", headers=auth_headers)
        client.post(f"/invoices/{created['id']}/viewed", headers=auth_headers)

        response = client.post(f"/invoices/{created['id']}/send", json={"send_email": True}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["status"] == "viewed"
        email_queue.assert_called_once()

    def test_send_email_without_recipient(self, client, auth_headers, db_session, owner, email_queue):
        nomail = ClientService(db_session).create_client(owner.id, ClientCreate(business_name="Sin Email"))
        created = client.post("/invoices/", json={
            "client_id": str(nomail.id),
            "items": [{"description": "X", "quantity": 1, "unit_price": 1}]
        }, headers=auth_headers).json()

        response = client.post(f"/invoices/{created['id']}/send", json={"send_email": True}, headers=auth_headers)
        assert response.status_code == 422
        # El documento no cambia de estado si no se puede enviar
        assert client.get(f"/invoices/{created['id']}", headers=auth_headers).json()["status"] == "draft"
        email_queue.assert_not_called()

    def test_queue_failure_is_transient(self, client, auth_headers, created, email_queue):
        email_queue.side_effect = ConnectionError("redis down")
        response = client.post(f"/invoices/{created['id']}/send", json={"send_email": True}, headers=auth_headers)
        assert response.status_code == 503
        assert response.json()["error"] == "transient_error"

    def test_pdf_download(self, client, auth_headers, created):
        response = client.get(f"/invoices/{created['id']}/pdf", headers=auth_headers)
        assert response.status_code == 200
        assert response.headers["content-type"] == "application/pdf"
        assert 'filename="acme-inc-invoice-INV-0001.pdf"' in response.headers["content-disposition"]
        assert response.content.startswith(b"%PDF")


# ===== PAGOS / BORRADO / AISLAMIENTO =====

class TestInvoicePaymentsAndDelete:

    def test_payment_status(self, db_session, owner, acme):
        service = InvoiceService(db_session)
        invoice = service.create_invoice(owner.id, InvoiceCreate(
            client_id=acme.id, items=[{"description": "X", "quantity": 1, "unit_price": 300}]
        ))
        service.mark_sent(owner.id, invoice.id)
        ReceiptService(db_session).create_receipt(owner.id, ReceiptCreate(invoice_id=invoice.id, amount=Decimal("120")))

        status = service.payment_status(owner.id, invoice.id)
        assert status.amount_paid == Decimal("120")
        assert status.balance_due == Decimal("180.00")

    def test_delete_detaches_receipts(self, db_session, owner, acme):
        service = InvoiceService(db_session)
        invoice = service.create_invoice(owner.id, InvoiceCreate(
            client_id=acme.id, items=[{"description": "X", "quantity": 1, "unit_price": 300}]
        ))
        service.mark_sent(owner.id, invoice.id)
        receipt = ReceiptService(db_session).create_receipt(
            owner.id, ReceiptCreate(invoice_id=invoice.id, amount=Decimal("10"))
        )

        service.delete_document(owner.id, invoice.id)

        db_session.expire_all()
        assert db_session.query(Receipt).filter(Receipt.id == receipt.id).one().invoice_id is None
        assert db_session.query(Quote).count() == 0
        with pytest.raises(NotFound):
            service.get_document(owner.id, invoice.id)

    def test_other_owner_sees_nothing(self, client, other_headers, created):
        assert client.get(f"/invoices/{created['id']}", headers=other_headers).status_code == 404
        assert client.post(f"/invoices/{created['id']}/send", headers=other_headers).status_code == 404
        assert client.get(f"/invoices/{created['id']}/pdf", headers=other_headers).status_code == 404
        assert client.get("/invoices/", headers=other_headers).json()["total"] == 0
