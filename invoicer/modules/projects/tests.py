"""
Tests para el módulo de Proyectos
"""

from decimal import Decimal

import pytest

from invoicer.common.exceptions import NotFound, ValidationError
from invoicer.modules.clients.schemas import ClientCreate
from invoicer.modules.clients.service import ClientService
from invoicer.modules.invoices.models import Invoice
from invoicer.modules.invoices.schemas import InvoiceCreate
from invoicer.modules.invoices.service import InvoiceService
from invoicer.modules.projects.schemas import ProjectCreate, ProjectUpdate
from invoicer.modules.projects.service import ProjectService


@pytest.fixture
def acme(db_session, owner):
    return ClientService(db_session).create_client(owner.id, ClientCreate(business_name="Acme Inc"))


class TestProjectApi:

    def test_create_with_default_currency(self, client, auth_headers, acme):
        response = client.post(
            "/projects/",
            json={"name": "Rediseño", "client_id": str(acme.id), "budget": "1500.00", "tags": ["web"]},
            headers=auth_headers
        )
        assert response.status_code == 201
        data = response.json()
        assert data["currency"] == "USD"
        assert data["status"] == "active"
        assert data["tags"] == ["web"]

    def test_create_uses_company_currency(self, client, auth_headers):
        client.put("/company/", json={"company_name": "Mi Estudio", "default_currency": "eur"}, headers=auth_headers)
        response = client.post("/projects/", json={"name": "Interno"}, headers=auth_headers)
        assert response.status_code == 201
        assert response.json()["currency"] == "EUR"

    def test_end_before_start_rejected(self, client, auth_headers):
        response = client.post(
            "/projects/",
            json={"name": "Mal", "start_date": "2025-02-01", "end_date": "2025-01-01"},
            headers=auth_headers
        )
        assert response.status_code == 422

    def test_client_of_other_owner_not_found(self, client, other_headers, acme):
        response = client.post(
            "/projects/", json={"name": "Ajeno", "client_id": str(acme.id)}, headers=other_headers
        )
        assert response.status_code == 404

    def test_list_filtered_by_client(self, client, auth_headers, acme):
        client.post("/projects/", json={"name": "A", "client_id": str(acme.id)}, headers=auth_headers)
        client.post("/projects/", json={"name": "B"}, headers=auth_headers)

        response = client.get("/projects/", params={"client_id": str(acme.id)}, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["total"] == 1
        assert response.json()["items"][0]["name"] == "A"


class TestProjectService:

    def test_update_validates_dates_against_stored_values(self, db_session, owner):
        service = ProjectService(db_session)
        project = service.create_project(owner.id, ProjectCreate(name="Fechas", start_date="2025-03-01"))

        with pytest.raises(ValidationError):
            service.update_project(owner.id, project.id, ProjectUpdate(end_date="2025-02-01"))

    def test_update_rejects_null_name(self, db_session, owner):
        service = ProjectService(db_session)
        project = service.create_project(owner.id, ProjectCreate(name="Nombre"))
        with pytest.raises(ValidationError):
            service.update_project(owner.id, project.id, ProjectUpdate(name=None))

    def test_delete_detaches_documents(self, db_session, owner, acme):
        service = ProjectService(db_session)
        project = service.create_project(owner.id, ProjectCreate(name="Web", client_id=acme.id))
        invoice = InvoiceService(db_session).create_invoice(owner.id, InvoiceCreate(
            client_id=acme.id,
            project_id=project.id,
            items=[{"description": "Diseño", "quantity": 1, "unit_price": Decimal("300")}]
        ))

        service.delete_project(owner.id, project.id)

        db_session.expire_all()
        stored = db_session.query(Invoice).filter(Invoice.id == invoice.id).one()
        assert stored.project_id is None
        with pytest.raises(NotFound):
            service.get_project(owner.id, project.id)

    def test_other_owner_cannot_read(self, db_session, owner, other_owner):
        project = ProjectService(db_session).create_project(owner.id, ProjectCreate(name="Privado"))
        with pytest.raises(NotFound):
            ProjectService(db_session).get_project(other_owner.id, project.id)
