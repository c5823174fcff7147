"""Pytest configuration and fixtures."""
from typing import Any, Callable, Dict, Generator

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from app.main import app
from app.core.database import Base, get_db

# In-memory database shared by every connection of a test
SQLALCHEMY_DATABASE_URL = "sqlite:///:memory:"

engine = create_engine(
    SQLALCHEMY_DATABASE_URL,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def override_get_db() -> Generator[Any, None, None]:
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


app.dependency_overrides[get_db] = override_get_db


@pytest.fixture
def test_db() -> Generator[None, None, None]:
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def db_session(test_db: None) -> Generator[Session, None, None]:
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(test_db: None) -> TestClient:
    return TestClient(app)


def register_broker(client: TestClient, email: str, name: str = "Corretor Teste") -> Dict[str, str]:
    """Registers a broker and returns Authorization headers for it."""
    response = client.post("/auth/register", json={"name": name, "email": email, "password": "senha123"})
    assert response.status_code == 201
    # Each test passes its headers explicitly
    client.cookies.clear()
    return {"Authorization": f"Bearer {response.json()['access_token']}"}


@pytest.fixture
def broker_headers(client: TestClient) -> Dict[str, str]:
    return register_broker(client, "corretor@comarc.com.br")


@pytest.fixture
def make_broker(client: TestClient) -> Callable[..., Dict[str, str]]:
    return lambda email, name="Corretor Teste": register_broker(client, email, name)


@pytest.fixture
def proposal_payload() -> Dict[str, Any]:
    """A flow that closes at exactly 100% of a R$ 500.000,00 property."""
    return {
        "propertyValue": 500000.0,
        "clientName": "Maria Souza",
        "deliveryDate": "2027-12-31",
        "empreendimento": "Residencial Aurora",
        "unidade": "Apto 1204",
        "downPayment": {
            "type": "percentage",
            "percentage": 10,
            "value": 50000,
            "installments": 3,
            "firstDueDate": "2025-01-10",
            "ato": {"type": "value", "value": 10000, "percentage": 2, "firstDueDate": "2025-01-05"},
        },
        "monthly": {
            "enabled": True,
            "count": 100,
            "type": "value",
            "value": 200000,
            "percentage": 40,
            "firstDueDate": "2025-02-10",
        },
        "semiannualReinforcement": {
            "enabled": True,
            "count": 6,
            "type": "value",
            "value": 60000,
            "percentage": 12,
            "firstDueDate": "2025-06-10",
        },
        "annualReinforcement": {
            "enabled": True,
            "count": 4,
            "type": "percentage",
            "percentage": 8,
            "value": 40000,
            "firstDueDate": "2025-12-10",
        },
        "keysPayment": {"type": "percentage", "percentage": 28, "value": 140000},
    }
