"""
Tests del back-office de administración

- Verificación de credenciales: mismo AuthFailure para cualquier fallo
- Token admin firmado y con expiración
- Roles admin / superadmin
- Vistas globales sobre los datos de todos los usuarios
"""

import hashlib
from datetime import timedelta
from decimal import Decimal

import pytest

from invoicer.common.exceptions import AuthFailure, ValidationError
from invoicer.modules.admin.models import AdminUser
from invoicer.modules.admin.schemas import AdminPasswordChange
from invoicer.modules.admin.security import generate_salt, hash_admin_password, hashes_match
from invoicer.modules.admin.service import AdminAuthService, AdminUserService
from invoicer.modules.auth.utils import create_access_token, create_admin_token, verify_token
from invoicer.modules.clients.schemas import ClientCreate
from invoicer.modules.clients.service import ClientService
from invoicer.modules.invoices.schemas import InvoiceCreate
from invoicer.modules.invoices.service import InvoiceService
from scripts.create_admin_user import create_admin as bootstrap_admin


ADMIN_PASSWORD = "Ops.Pass.2025"


@pytest.fixture
def admin(make_admin):
    return make_admin("ops", password=ADMIN_PASSWORD)


@pytest.fixture
def superadmin(make_admin):
    return make_admin("root", password=ADMIN_PASSWORD, role="superadmin")


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def admin_headers(admin) -> dict:
    return bearer(create_admin_token({"sub": str(admin.id), "role": admin.role}))


class TestAdminCredentials:

    def test_hash_is_sha256_of_password_and_salt(self):
        digest = hash_admin_password("secret", "abc")
        assert digest == hashlib.sha256(b"secretabc").hexdigest()
        assert hash_admin_password("secret", "abc") == digest
        assert hash_admin_password("secret", "abd") != digest

    def test_hashes_match(self):
        assert hashes_match("a" * 64, "a" * 64)
        assert not hashes_match("a" * 64, "b" * 64)

    def test_valid_credentials(self, db_session, admin):
        result = AdminAuthService(db_session).verify("ops", ADMIN_PASSWORD)
        assert result.id == admin.id
        assert result.last_login is not None

    @pytest.mark.parametrize("username,password", [
        ("ops", "wrong-password"),
        ("nobody", ADMIN_PASSWORD),
        ("", ""),
    ])
    def test_failures_are_indistinguishable(self, db_session, admin, username, password):
        with pytest.raises(AuthFailure) as exc:
            AdminAuthService(db_session).verify(username, password)
        assert exc.value.detail == AuthFailure().detail

    def test_bootstrap_admin_can_log_in(self, db_session):
        created = bootstrap_admin(db_session, "root", "Root@Invoicer.io", "Root.Pass1", "superadmin")
        assert created.email == "root@invoicer.io"

        result = AdminAuthService(db_session).verify("root", "Root.Pass1")
        assert result.id == created.id
        assert result.role == "superadmin"

    def test_bootstrap_rejects_invalid_email(self, db_session):
        with pytest.raises(SystemExit):
            bootstrap_admin(db_session, "root", "root@invoicer.local", "Root.Pass1", "superadmin")
        assert db_session.query(AdminUser).count() == 0

    def test_stored_email_is_not_revalidated(self, db_session):
        # Filas antiguas pueden tener dominios que EmailStr rechaza
        salt = generate_salt()
        db_session.add(AdminUser(
            username="legacy",
            email="legacy@invoicer.local",
            password_hash=hash_admin_password(ADMIN_PASSWORD, salt),
            salt=salt,
            role="admin"
        ))
        db_session.commit()

        result = AdminAuthService(db_session).verify("legacy", ADMIN_PASSWORD)
        assert result.email == "legacy@invoicer.local"

    def test_inactive_admin_rejected(self, db_session, make_admin):
        make_admin("retired", password=ADMIN_PASSWORD, is_active=False)
        with pytest.raises(AuthFailure) as exc:
            AdminAuthService(db_session).verify("retired", ADMIN_PASSWORD)
        assert exc.value.detail == AuthFailure().detail


class TestAdminToken:

    def test_login_returns_admin_token(self, client, admin):
        response = client.post("/admin/login", json={"username": "ops", "password": ADMIN_PASSWORD})
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["admin"]["username"] == "ops"

        payload = verify_token(data["access_token"], expected_type="admin")
        assert payload["sub"] == str(admin.id)
        assert payload["role"] == "admin"

        me = client.get("/admin/me", headers=bearer(data["access_token"]))
        assert me.status_code == 200
        assert me.json()["id"] == str(admin.id)

    def test_login_failure_is_generic(self, client, admin):
        wrong = client.post("/admin/login", json={"username": "ops", "password": "nope"})
        missing = client.post("/admin/login", json={"username": "ghost", "password": "nope"})
        assert wrong.status_code == missing.status_code == 401
        assert wrong.json() == missing.json()

    def test_expired_token(self, client, admin):
        token = create_admin_token({"sub": str(admin.id), "role": admin.role}, expires_delta=timedelta(seconds=-1))
        assert client.get("/admin/me", headers=bearer(token)).status_code == 401

    def test_tampered_token(self, client, admin):
        token = create_admin_token({"sub": str(admin.id), "role": admin.role})
        assert client.get("/admin/me", headers=bearer(token[:-2] + "xx")).status_code == 401

    def test_user_token_is_not_admin_token(self, client, owner, admin):
        token = create_access_token({"sub": str(owner.id), "email": owner.email})
        assert client.get("/admin/me", headers=bearer(token)).status_code == 401

    def test_deactivated_admin_loses_access(self, client, db_session, admin):
        headers = admin_headers(admin)
        admin.is_active = False
        db_session.commit()
        assert client.get("/admin/me", headers=headers).status_code == 401


class TestAdminUsers:

    def test_superadmin_creates_admin(self, client, superadmin):
        response = client.post("/admin/users", json={
            "username": "support",
            "email": "support@invoicer.io",
            "password": "Support.Pass1"
        }, headers=admin_headers(superadmin))
        assert response.status_code == 201
        assert response.json()["role"] == "admin"

        login = client.post("/admin/login", json={"username": "support", "password": "Support.Pass1"})
        assert login.status_code == 200

    def test_plain_admin_cannot_create(self, client, admin):
        response = client.post("/admin/users", json={
            "username": "support",
            "email": "support@invoicer.io",
            "password": "Support.Pass1"
        }, headers=admin_headers(admin))
        assert response.status_code == 403

    def test_duplicate_username(self, client, superadmin, admin):
        response = client.post("/admin/users", json={
            "username": "ops",
            "email": "other@invoicer.io",
            "password": "Support.Pass1"
        }, headers=admin_headers(superadmin))
        assert response.status_code == 409

    def test_cannot_deactivate_self(self, client, superadmin):
        response = client.patch(
            f"/admin/users/{superadmin.id}", json={"is_active": False}, headers=admin_headers(superadmin)
        )
        assert response.status_code == 422

    def test_cannot_delete_self(self, db_session, superadmin):
        with pytest.raises(ValidationError):
            AdminUserService(db_session).delete_admin(superadmin.id, superadmin.id)

    def test_change_own_password(self, db_session, admin):
        service = AdminUserService(db_session)
        old_salt = admin.salt
        service.change_password(admin.id, AdminPasswordChange(
            current_password=ADMIN_PASSWORD, new_password="Brand.New.Pass"
        ))
        db_session.refresh(admin)
        assert admin.salt != old_salt
        assert AdminAuthService(db_session).verify("ops", "Brand.New.Pass").id == admin.id

    def test_change_password_requires_current(self, db_session, admin):
        with pytest.raises(AuthFailure):
            AdminUserService(db_session).change_password(admin.id, AdminPasswordChange(
                current_password="wrong", new_password="Brand.New.Pass"
            ))

    def test_cannot_change_other_password(self, client, admin, superadmin):
        response = client.post(
            f"/admin/users/{admin.id}/password",
            json={"current_password": ADMIN_PASSWORD, "new_password": "Brand.New.Pass"},
            headers=admin_headers(superadmin)
        )
        assert response.status_code == 403


class TestAdminReports:

    @pytest.fixture
    def populated(self, db_session, owner, other_owner):
        for user, name, price in ((owner, "Acme", 100), (other_owner, "Globex", 50)):
            acme = ClientService(db_session).create_client(user.id, ClientCreate(business_name=name))
            service = InvoiceService(db_session)
            invoice = service.create_invoice(user.id, InvoiceCreate(
                client_id=acme.id, items=[{"description": "X", "quantity": 1, "unit_price": price}]
            ))
            service.mark_sent(user.id, invoice.id)

    def test_stats_span_all_users(self, client, admin, populated):
        response = client.get("/admin/stats", headers=admin_headers(admin))
        assert response.status_code == 200
        data = response.json()
        assert data["total_users"] == 2
        assert data["total_clients"] == 2
        assert data["total_invoices"] == 2
        assert Decimal(data["total_invoiced"]) == Decimal("150.00")
        assert data["invoices_by_status"]["sent"] == 2

    def test_global_invoice_list(self, client, admin, owner, populated):
        data = client.get("/admin/invoices", headers=admin_headers(admin)).json()
        assert data["total"] == 2
        assert {item["client_name"] for item in data["items"]} == {"Acme", "Globex"}

        data = client.get(
            "/admin/invoices", params={"user_id": str(owner.id)}, headers=admin_headers(admin)
        ).json()
        assert data["total"] == 1
        assert data["items"][0]["user_email"] == owner.email
        assert data["items"][0]["number"] == "INV-0001"

    def test_app_users_with_counts(self, client, admin, populated):
        data = client.get("/admin/app-users", params={"search": "owner"}, headers=admin_headers(admin)).json()
        assert data["total"] == 1
        assert data["items"][0]["client_count"] == 1
        assert data["items"][0]["invoice_count"] == 1

    def test_user_token_cannot_read_reports(self, client, auth_headers):
        assert client.get("/admin/stats", headers=auth_headers).status_code == 401
