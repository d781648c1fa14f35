"""Pytest fixtures for testing"""

import pytest
from datetime import datetime, timezone
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from agency_ledger.api.main import create_app
from agency_ledger.infrastructure.database.models import Base, Customer, Policy, Vehicle
from agency_ledger.infrastructure.database.session import get_db
from agency_ledger.services.customer_service import CustomerService
from agency_ledger.services.ledger_service import LedgerService


# Test database
TEST_DATABASE_URL = "sqlite:///./test.db"
engine = create_engine(TEST_DATABASE_URL, connect_args={"check_same_thread": False})
TestingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db() -> Generator[Session, None, None]:
    """Create test database and session"""
    Base.metadata.create_all(bind=engine)
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture
def client(db: Session) -> TestClient:
    """Create FastAPI test client with test database"""
    app = create_app()

    def override_get_db():
        try:
            yield db
        finally:
            pass

    app.dependency_overrides[get_db] = override_get_db
    return TestClient(app)


@pytest.fixture
def ledger(db: Session) -> LedgerService:
    return LedgerService(db, actor="tester")


@pytest.fixture
def customer(db: Session) -> Customer:
    """Customer with one vehicle"""
    return CustomerService(db, actor="tester").register(
        {"first_name": "Dana", "last_name": "Levi", "national_id": "123456782", "agent_name": "Noa"},
        vehicles=[{"plate_number": "12-345-67", "model": "Corolla", "vehicle_type": "private"}],
    )


@pytest.fixture
def vehicle(customer: Customer) -> Vehicle:
    return customer.vehicles[0]


@pytest.fixture
def policy(ledger: LedgerService, customer: Customer, vehicle: Vehicle) -> Policy:
    """Policy of 1200 running 2024-01-01 .. 2025-01-01, nothing paid yet"""
    return ledger.create_policy(
        customer.id,
        vehicle.id,
        insurance_type="comprehensive",
        insurance_company="Harel",
        insurance_amount_cents=1200,
        insurance_start=datetime(2024, 1, 1, tzinfo=timezone.utc),
        insurance_end=datetime(2025, 1, 1, tzinfo=timezone.utc),
        agent_name="Noa",
    )


@pytest.fixture
def session_factory(db: Session) -> sessionmaker:
    """Opens further sessions on the test database, e.g. to simulate a concurrent writer"""
    return TestingSessionLocal
