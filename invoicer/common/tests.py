"""
Tests de la traducción de errores de dominio y del middleware
"""

from unittest.mock import patch

import pytest
from sqlalchemy.exc import IntegrityError, OperationalError

from invoicer.common.crud import store_errors
from invoicer.common.exceptions import ConflictError, NotFound, TransientError
from invoicer.modules.clients.crud import ClientCrud


class TestStoreErrors:

    def test_integrity_error_becomes_conflict(self, db_session):
        with pytest.raises(ConflictError):
            with store_errors(db_session, "crear cliente"):
                raise IntegrityError("INSERT", {}, Exception("duplicate key"))

    def test_operational_error_becomes_transient(self, db_session):
        with pytest.raises(TransientError):
            with store_errors(db_session, "listar clientes"):
                raise OperationalError("SELECT", {}, Exception("connection refused"))

    def test_domain_errors_pass_through(self, db_session):
        with pytest.raises(NotFound):
            with store_errors(db_session, "consultar cliente"):
                raise NotFound("Cliente no encontrado")

    def test_other_errors_propagate(self, db_session):
        with pytest.raises(KeyError):
            with store_errors(db_session, "consultar cliente"):
                raise KeyError("x")


class TestHttpErrorMapping:

    def test_not_found(self, client, auth_headers):
        response = client.get("/clients/00000000-0000-0000-0000-000000000000", headers=auth_headers)
        assert response.status_code == 404
        assert response.json() == {"detail": "Cliente no encontrado", "error": "not_found"}

    def test_database_unavailable(self, client, auth_headers):
        with patch.object(ClientCrud, "get_many", side_effect=OperationalError("SELECT", {}, Exception("down"))):
            response = client.get("/clients/", headers=auth_headers)
        assert response.status_code == 503
        assert response.json()["error"] == "transient_error"

    def test_malformed_id(self, client, auth_headers):
        assert client.get("/clients/not-a-uuid", headers=auth_headers).status_code == 422


class TestApp:

    def test_health(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    def test_security_headers(self, client):
        response = client.get("/")
        assert response.headers["X-Content-Type-Options"] == "nosniff"
        assert response.headers["X-Frame-Options"] == "DENY"
