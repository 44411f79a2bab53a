"""
Tests de autenticación de usuarios dueños de datos
"""

from invoicer.modules.auth.utils import create_access_token, create_refresh_token, verify_token


def register(client, email="ana@example.com", password="Ana.Pass.2025"):
    return client.post("/auth/register", json={"email": email, "password": password, "full_name": "Ana"})


def login(client, email="ana@example.com", password="Ana.Pass.2025"):
    return client.post("/auth/login", data={"username": email, "password": password})


class TestRegisterAndLogin:

    def test_register(self, client):
        response = register(client, email="Ana@Example.com")
        assert response.status_code == 201
        assert response.json()["email"] == "ana@example.com"
        assert "password" not in response.json()

    def test_duplicate_email(self, client):
        register(client)
        response = register(client, email="ANA@example.com")
        assert response.status_code == 409

    def test_short_password(self, client):
        assert register(client, password="short").status_code == 422

    def test_login_and_me(self, client):
        register(client)
        response = login(client)
        assert response.status_code == 200
        data = response.json()
        assert data["token_type"] == "bearer"
        assert data["refresh_token"]
        assert verify_token(data["access_token"], expected_type="access")["email"] == "ana@example.com"

        me = client.get("/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"})
        assert me.status_code == 200
        assert me.json()["last_login"] is not None

    def test_login_failures_are_generic(self, client):
        register(client)
        wrong_password = login(client, password="Nope.Nope.1")
        unknown_user = login(client, email="nadie@example.com")
        assert wrong_password.status_code == unknown_user.status_code == 401
        assert wrong_password.json() == unknown_user.json()

    def test_inactive_user_cannot_login(self, client, make_user):
        make_user("blocked@example.com", password="Blocked.Pass1", is_active=False)
        assert login(client, email="blocked@example.com", password="Blocked.Pass1").status_code == 401


class TestTokens:

    def test_refresh(self, client, owner):
        response = client.post("/auth/refresh", json={"refresh_token": create_refresh_token(str(owner.id))})
        assert response.status_code == 200
        assert response.json()["user"]["id"] == str(owner.id)

    def test_access_token_is_not_refresh_token(self, client, owner):
        token = create_access_token({"sub": str(owner.id)})
        assert client.post("/auth/refresh", json={"refresh_token": token}).status_code == 401

    def test_refresh_token_cannot_call_api(self, client, owner):
        token = create_refresh_token(str(owner.id))
        response = client.get("/auth/me", headers={"Authorization": f"Bearer {token}"})
        assert response.status_code == 401

    def test_garbage_token(self, client):
        response = client.get("/clients/", headers={"Authorization": "Bearer not-a-jwt"})
        assert response.status_code == 401


class TestProfileAndPassword:

    def test_update_profile(self, client, auth_headers):
        response = client.patch(
            "/auth/me", json={"first_name": "Ana", "last_name": "Ríos", "phone": "+57 300 0000"}, headers=auth_headers
        )
        assert response.status_code == 200
        data = response.json()
        assert data["full_name"] == "Ana Ríos"
        assert data["phone"] == "+57 300 0000"

        response = client.patch("/auth/me", json={"full_name": "Ana María Ríos"}, headers=auth_headers)
        assert response.json()["full_name"] == "Ana María Ríos"
        assert response.json()["first_name"] == "Ana"

    def test_email_cannot_be_changed_here(self, client, auth_headers):
        response = client.patch("/auth/me", json={"email": "otra@example.com"}, headers=auth_headers)
        assert response.status_code == 422

    def test_change_password(self, client, make_user):
        make_user("ana@example.com", password="Ana.Pass.2025")
        token = login(client).json()["access_token"]
        headers = {"Authorization": f"Bearer {token}"}

        response = client.post(
            "/auth/me/password",
            json={"current_password": "Ana.Pass.2025", "new_password": "Ana.Nueva.2026"},
            headers=headers
        )
        assert response.status_code == 204

        assert login(client).status_code == 401
        assert login(client, password="Ana.Nueva.2026").status_code == 200
        assert client.get("/auth/me", headers=headers).json()["last_password_change"] is not None

    def test_change_password_requires_current(self, client, make_user):
        make_user("ana@example.com", password="Ana.Pass.2025")
        headers = {"Authorization": f"Bearer {login(client).json()['access_token']}"}

        response = client.post(
            "/auth/me/password",
            json={"current_password": "Wrong.Pass.1", "new_password": "Ana.Nueva.2026"},
            headers=headers
        )
        assert response.status_code == 401
        assert response.json()["error"] == "auth_failure"
        assert login(client).status_code == 200

    def test_new_password_rules(self, client, make_user):
        make_user("ana@example.com", password="Ana.Pass.2025")
        headers = {"Authorization": f"Bearer {login(client).json()['access_token']}"}

        too_short = client.post(
            "/auth/me/password", json={"current_password": "Ana.Pass.2025", "new_password": "short"}, headers=headers
        )
        assert too_short.status_code == 422

        same = client.post(
            "/auth/me/password",
            json={"current_password": "Ana.Pass.2025", "new_password": "Ana.Pass.2025"},
            headers=headers
        )
        assert same.status_code == 422
        assert same.json()["error"] == "validation_error"
