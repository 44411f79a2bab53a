"""
Tests para el módulo de Clientes

- CRUD vía API scoped por usuario
- Aislamiento entre usuarios (otro usuario ve 404)
- Políticas de borrado orphan / restrict / cascade
- Resumen de facturación
"""

from decimal import Decimal
from uuid import uuid4

import pytest

from invoicer.common.exceptions import ConflictError, NotFound, ValidationError
from invoicer.modules.clients.models import Client
from invoicer.modules.clients.schemas import ClientCreate
from invoicer.modules.clients.service import ClientService
from invoicer.modules.invoices.models import Invoice
from invoicer.modules.invoices.schemas import InvoiceCreate
from invoicer.modules.invoices.service import InvoiceService
from invoicer.modules.projects.models import Project
from invoicer.modules.projects.schemas import ProjectCreate
from invoicer.modules.projects.service import ProjectService
from invoicer.modules.receipts.models import Receipt
from invoicer.modules.receipts.schemas import ReceiptCreate
from invoicer.modules.receipts.service import ReceiptService


# ===== FIXTURES =====

@pytest.fixture
def sample_client_data():
    """Datos de ejemplo para crear clientes"""
    return {
        "business_name": "Acme Inc",
        "contact_name": "Wile E. Coyote",
        "email": "billing@acme.com",
        "phone": "+1 555 0100",
        "city": "Phoenix",
        "country": "US",
        "tax_id": "99-1234567"
    }


@pytest.fixture
def acme_with_invoice(db_session, owner):
    """Cliente con un proyecto y una factura de 220"""
    client = ClientService(db_session).create_client(owner.id, ClientCreate(business_name="Acme Inc"))
    project = ProjectService(db_session).create_project(
        owner.id, ProjectCreate(name="Sitio web", client_id=client.id)
    )
    invoice = InvoiceService(db_session).create_invoice(owner.id, InvoiceCreate(
        client_id=client.id,
        project_id=project.id,
        tax_rate=Decimal("0.1"),
        items=[{"description": "Horas", "quantity": 2, "unit_price": 100}]
    ))
    return client, project, invoice


# ===== TESTS DE API =====

class TestClientApi:
    """CRUD de clientes vía HTTP"""

    def test_create_and_get(self, client, auth_headers, sample_client_data):
        response = client.post("/clients/", json=sample_client_data, headers=auth_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["business_name"] == "Acme Inc"
        assert data["status"] == "active"

        response = client.get(f"/clients/{data['id']}", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["email"] == "billing@acme.com"

    def test_requires_authentication(self, client):
        response = client.get("/clients/")
        assert response.status_code in (401, 403)

    def test_invalid_email_rejected(self, client, auth_headers):
        response = client.post(
            "/clients/", json={"business_name": "Bad", "email": "not-an-email"}, headers=auth_headers
        )
        assert response.status_code == 422

    def test_unknown_status_rejected(self, client, auth_headers):
        response = client.post(
            "/clients/", json={"business_name": "Bad", "status": "deleted"}, headers=auth_headers
        )
        assert response.status_code == 422

    def test_list_with_search(self, client, auth_headers):
        for name in ("Acme Inc", "Globex", "Initech"):
            client.post("/clients/", json={"business_name": name}, headers=auth_headers)

        response = client.get("/clients/", params={"search": "glob"}, headers=auth_headers)
        assert response.status_code == 200
        data = response.json()
        assert data["total"] == 1
        assert data["items"][0]["business_name"] == "Globex"

    def test_update(self, client, auth_headers, sample_client_data):
        created = client.post("/clients/", json=sample_client_data, headers=auth_headers).json()
        response = client.patch(
            f"/clients/{created['id']}", json={"status": "inactive", "city": "Tucson"}, headers=auth_headers
        )
        assert response.status_code == 200
        assert response.json()["status"] == "inactive"
        assert response.json()["city"] == "Tucson"

    def test_other_owner_gets_not_found(self, client, auth_headers, other_headers, sample_client_data):
        created = client.post("/clients/", json=sample_client_data, headers=auth_headers).json()

        response = client.get(f"/clients/{created['id']}", headers=other_headers)
        assert response.status_code == 404
        assert response.json()["error"] == "not_found"

        response = client.patch(f"/clients/{created['id']}", json={"city": "X"}, headers=other_headers)
        assert response.status_code == 404

        response = client.delete(f"/clients/{created['id']}", headers=other_headers)
        assert response.status_code == 404

        assert client.get("/clients/", headers=other_headers).json()["total"] == 0

    def test_delete(self, client, auth_headers, sample_client_data):
        created = client.post("/clients/", json=sample_client_data, headers=auth_headers).json()
        assert client.delete(f"/clients/{created['id']}", headers=auth_headers).status_code == 204
        assert client.get(f"/clients/{created['id']}", headers=auth_headers).status_code == 404


# ===== TESTS DE POLÍTICA DE BORRADO =====

class TestClientDeletePolicy:
    """Borrado de un cliente que tiene documentos"""

    def test_orphan_keeps_documents(self, db_session, owner, acme_with_invoice):
        client, project, invoice = acme_with_invoice
        ClientService(db_session).delete_client(owner.id, client.id, policy="orphan")

        assert db_session.query(Client).filter(Client.id == client.id).first() is None
        remaining = db_session.query(Invoice).filter(Invoice.id == invoice.id).first()
        assert remaining is not None
        assert remaining.client_id == client.id

    def test_orphan_document_still_exports_pdf(self, db_session, owner, acme_with_invoice):
        client, project, invoice = acme_with_invoice
        ClientService(db_session).delete_client(owner.id, client.id, policy="orphan")

        filename, pdf = InvoiceService(db_session).export_pdf(owner.id, invoice.id)
        assert filename.startswith("client-invoice-")
        assert pdf.startswith(b"%PDF")

    def test_restrict_refuses(self, db_session, owner, acme_with_invoice):
        client, project, invoice = acme_with_invoice
        with pytest.raises(ConflictError) as exc:
            ClientService(db_session).delete_client(owner.id, client.id, policy="restrict")
        assert "invoices: 1" in exc.value.detail
        assert db_session.query(Client).filter(Client.id == client.id).first() is not None

    def test_restrict_allows_client_without_documents(self, db_session, owner):
        service = ClientService(db_session)
        client = service.create_client(owner.id, ClientCreate(business_name="Lonely"))
        service.delete_client(owner.id, client.id, policy="restrict")
        assert db_session.query(Client).count() == 0

    def test_cascade_removes_documents(self, db_session, owner, acme_with_invoice):
        client, project, invoice = acme_with_invoice
        InvoiceService(db_session).mark_sent(owner.id, invoice.id)
        ReceiptService(db_session).create_receipt(
            owner.id, ReceiptCreate(invoice_id=invoice.id, amount=Decimal("50"))
        )

        ClientService(db_session).delete_client(owner.id, client.id, policy="cascade")

        assert db_session.query(Invoice).count() == 0
        assert db_session.query(Project).count() == 0
        assert db_session.query(Receipt).count() == 0

    def test_unknown_policy(self, db_session, owner, acme_with_invoice):
        client, _, _ = acme_with_invoice
        with pytest.raises(ValidationError):
            ClientService(db_session).delete_client(owner.id, client.id, policy="soft")

    def test_missing_client(self, db_session, owner):
        with pytest.raises(NotFound):
            ClientService(db_session).delete_client(owner.id, uuid4())


# ===== TESTS DE RESUMEN =====

class TestClientSummary:

    def test_summary_totals(self, db_session, owner, acme_with_invoice):
        client, _, invoice = acme_with_invoice
        service = ClientService(db_session)

        # Un borrador no cuenta como facturado
        summary = service.get_client_summary(owner.id, client.id)
        assert summary.invoice_count == 1
        assert summary.project_count == 1
        assert summary.total_invoiced == Decimal("0.00")

        InvoiceService(db_session).mark_sent(owner.id, invoice.id)
        ReceiptService(db_session).create_receipt(
            owner.id, ReceiptCreate(invoice_id=invoice.id, amount=Decimal("100"))
        )

        summary = service.get_client_summary(owner.id, client.id)
        assert summary.total_invoiced == Decimal("220.00")
        assert summary.total_received == Decimal("100.00")
        assert summary.outstanding == Decimal("120.00")
        assert summary.receipt_count == 1

    def test_summary_endpoint(self, client, auth_headers, db_session, owner, acme_with_invoice):
        acme, _, _ = acme_with_invoice
        response = client.get(f"/clients/{acme.id}/summary", headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["client"]["business_name"] == "Acme Inc"
