"""
Tests del perfil de empresa
"""

from invoicer.modules.clients.schemas import ClientCreate
from invoicer.modules.clients.service import ClientService
from invoicer.modules.company.schemas import CompanyProfileUpdate
from invoicer.modules.company.service import CompanyService
from invoicer.modules.invoices.schemas import InvoiceCreate
from invoicer.modules.invoices.service import InvoiceService


class TestCompanyProfile:

    def test_not_configured(self, client, auth_headers):
        response = client.get("/company/", headers=auth_headers)
        assert response.status_code == 404

    def test_upsert_and_read(self, client, auth_headers):
        profile = {
            "company_name": "Estudio Norte",
            "email": "hola@norte.com",
            "default_currency": "cop",
            "default_payment_terms_days": 15
        }
        response = client.put("/company/", json=profile, headers=auth_headers)
        assert response.status_code == 200
        assert response.json()["default_currency"] == "COP"

        profile["company_name"] = "Estudio Norte SAS"
        client.put("/company/", json=profile, headers=auth_headers)

        response = client.get("/company/", headers=auth_headers)
        assert response.json()["company_name"] == "Estudio Norte SAS"

    def test_profile_is_per_user(self, client, auth_headers, other_headers):
        client.put("/company/", json={"company_name": "Solo mío"}, headers=auth_headers)
        assert client.get("/company/", headers=other_headers).status_code == 404

    def test_defaults_applied_to_new_invoices(self, db_session, owner):
        CompanyService(db_session).upsert_profile(owner.id, CompanyProfileUpdate(
            company_name="Estudio Norte",
            default_currency="eur",
            default_payment_terms_days=15,
            default_terms="Pago por transferencia",
            default_footer="Gracias por su confianza"
        ))
        acme = ClientService(db_session).create_client(owner.id, ClientCreate(business_name="Acme"))

        invoice = InvoiceService(db_session).create_invoice(owner.id, InvoiceCreate(
            client_id=acme.id,
            issue_date="2025-01-10",
            items=[{"description": "Consultoría", "quantity": 1, "unit_price": 100}]
        ))

        assert invoice.currency == "EUR"
        assert str(invoice.due_date) == "2025-01-25"
        assert invoice.terms == "Pago por transferencia"
        assert invoice.footer == "Gracias por su confianza"
