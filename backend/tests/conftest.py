import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["SMS_ENABLED"] = "false"
os.environ["NOTIFY_WEBHOOK_URL"] = ""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel, Session, create_engine

import models  # noqa: F401
from core.database import get_session
from main import app
from models.user import Role
from services.provisioning import DriverSignup, provision_driver
from helpers import ADMIN_EMAIL, CITIZEN_EMAIL, DRIVER_EMAIL, PASSWORD, make_identity, login


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    SQLModel.metadata.create_all(engine)
    yield engine
    SQLModel.metadata.drop_all(engine)


@pytest.fixture
def session(engine):
    with Session(engine) as session:
        yield session


@pytest.fixture
def client(engine):
    def _get_session():
        with Session(engine) as session:
            yield session

    app.dependency_overrides[get_session] = _get_session
    yield TestClient(app)
    app.dependency_overrides.clear()


@pytest.fixture
def admin(session):
    return make_identity(session, ADMIN_EMAIL, roles=[Role.admin])


@pytest.fixture
def citizen(session):
    return make_identity(session, CITIZEN_EMAIL)


@pytest.fixture
def driver(session, admin):
    return provision_driver(
        session,
        DriverSignup(
            email=DRIVER_EMAIL,
            password=PASSWORD,
            full_name="Ravi Kumar",
            phone="9123456789",
            license_number="KA01 2020 0012345",
            vehicle_number="ka-01-ab-1234",
        ),
        admin_id=admin.id,
    )


@pytest.fixture
def admin_headers(client, admin):
    return login(client, ADMIN_EMAIL, portal="admin")


@pytest.fixture
def citizen_headers(client, citizen):
    return login(client, CITIZEN_EMAIL)


@pytest.fixture
def driver_headers(client, driver):
    return login(client, DRIVER_EMAIL, portal="driver")


@pytest.fixture
def notifications(monkeypatch):
    """Records every assignment notification instead of delivering it."""
    sent = []

    def _hook(session, notice):
        sent.append(notice)
        return {"success": True}

    monkeypatch.setattr("services.lifecycle.notify_driver", _hook)
    return sent
