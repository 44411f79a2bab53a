"""
Fixtures compartidas por los tests de todos los módulos.

Cada test usa una base SQLite en memoria nueva; el broker de Celery se
reemplaza por un mock para que ningún test necesite Redis ni SMTP.
"""
import os

os.environ["DATABASE_URL"] = "sqlite://"
os.environ["ENVIRONMENT"] = "test"
os.environ["DEBUG"] = "false"

from types import SimpleNamespace
from unittest.mock import patch

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from invoicer.database.database import Base, get_db
from invoicer.main import app
from invoicer.modules.admin.models import AdminUser
from invoicer.modules.admin.security import generate_salt, hash_admin_password
from invoicer.modules.auth.models import User
from invoicer.modules.auth.utils import create_access_token, hash_password
from invoicer.modules.email.tasks import send_document_email_task

OWNER_PASSWORD = "Owner.Pass1"
ADMIN_PASSWORD = "Admin.Pass1"


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def db_session(engine):
    TestingSession = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = TestingSession()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def make_user(db_session):
    def _make_user(email: str, password: str = OWNER_PASSWORD, is_active: bool = True) -> User:
        user = User(
            email=email,
            password=hash_password(password),
            full_name=email.split("@")[0].title(),
            is_active=is_active
        )
        db_session.add(user)
        db_session.commit()
        db_session.refresh(user)
        return user
    return _make_user


@pytest.fixture
def owner(make_user):
    return make_user("owner@example.com")


@pytest.fixture
def other_owner(make_user):
    return make_user("other@example.com")


@pytest.fixture
def make_admin(db_session):
    def _make_admin(username: str, password: str = ADMIN_PASSWORD, role: str = "admin", is_active: bool = True):
        salt = generate_salt()
        admin = AdminUser(
            username=username,
            email=f"{username}@invoicer.io",
            password_hash=hash_admin_password(password, salt),
            salt=salt,
            role=role,
            is_active=is_active
        )
        db_session.add(admin)
        db_session.commit()
        db_session.refresh(admin)
        return admin
    return _make_admin


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
def auth_headers(owner):
    return bearer(create_access_token({"sub": str(owner.id), "email": owner.email}))


@pytest.fixture
def other_headers(other_owner):
    return bearer(create_access_token({"sub": str(other_owner.id), "email": other_owner.email}))


@pytest.fixture
def email_queue():
    """Reemplaza el envío a Celery; expone el mock para inspeccionar llamadas"""
    with patch.object(send_document_email_task, "delay", return_value=SimpleNamespace(id="task-123")) as delay:
        yield delay


@pytest.fixture
def client(db_session, email_queue):
    def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()
