"""
Fixtures compartidas: base SQLite en memoria, cliente HTTP y usuarios por rol
"""

import os
import sys
import tempfile
from pathlib import Path

# La configuración se lee al importar config: definir el entorno antes
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ.setdefault("LOG_FILE", str(Path(tempfile.gettempdir()) / "travel_crm_test_logs.txt"))

# Agregar directorio raíz al PYTHONPATH para imports
sys.path.insert(0, str(Path(__file__).parent.parent))

import pytest
from fastapi.testclient import TestClient

from database.conexion import Base, SessionLocal, engine
from main import app
from models.cuenta_bancaria import BankAccount
from models.usuario import User, ROLE_ADMIN, ROLE_AGENT, ROLE_MANAGER
from utils.auth import create_user_token, get_password_hash


DEFAULT_PASSWORD = "Secret123"


@pytest.fixture(autouse=True)
def reset_db():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)
    yield


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture
def db():
    session = SessionLocal()
    yield session
    session.close()


@pytest.fixture
def crear_usuario(db):
    def _crear(email, role, manager=None, password=DEFAULT_PASSWORD, **extra):
        usuario = User(
            email=email,
            hashed_password=get_password_hash(password),
            first_name=extra.pop("first_name", email.split("@")[0].capitalize()),
            last_name=extra.pop("last_name", "Test"),
            country=extra.pop("country", "UA"),
            role=role,
            manager_id=manager.id if manager is not None else None,
            **extra
        )
        db.add(usuario)
        db.commit()
        db.refresh(usuario)
        return usuario
    return _crear


@pytest.fixture
def admin(crear_usuario):
    return crear_usuario("admin@agency.com", ROLE_ADMIN)


@pytest.fixture
def manager(crear_usuario):
    return crear_usuario("manager@agency.com", ROLE_MANAGER)


@pytest.fixture
def agent(crear_usuario, manager):
    return crear_usuario("agent@agency.com", ROLE_AGENT, manager=manager)


@pytest.fixture
def other_manager(crear_usuario):
    return crear_usuario("other.manager@agency.com", ROLE_MANAGER)


@pytest.fixture
def other_agent(crear_usuario, other_manager):
    return crear_usuario("other.agent@agency.com", ROLE_AGENT, manager=other_manager)


@pytest.fixture
def cuenta(db, manager):
    cuenta = BankAccount(
        manager_id=manager.id,
        bank_name="PrivatBank",
        swift="PBANUA2X",
        iban="UA213223130000026007233566001",
        holder_name="Agency LLC",
        identifier="main-uah",
    )
    db.add(cuenta)
    db.commit()
    db.refresh(cuenta)
    return cuenta


def auth_headers(usuario) -> dict:
    return {"Authorization": f"Bearer {create_user_token(usuario)}"}


def order_payload(**overrides) -> dict:
    payload = {
        "checkIn": "2025-07-10",
        "checkOut": "2025-07-15",
        "clientName": "Iryna Melnyk",
        "clientPhone": ["+380501112233"],
        "clientEmail": "iryna@example.com",
        "clientCountry": "UA",
        "guests": {"adults": 2, "children": [{"age": 7}]},
        "countryTravel": "Spain",
        "cityTravel": "Barcelona",
        "propertyName": "Casa Mar",
        "propertyNumber": "42",
        "officialPrice": "1000.00",
        "taxClean": "50.00",
        "discount": "100.00",
        "depositAmount": "300.00",
        "depositMethods": ["bank"],
    }
    payload.update(overrides)
    return payload
