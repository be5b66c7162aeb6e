"""Pytest fixtures for testing"""

import uuid
import pytest
from datetime import date
from decimal import Decimal
from typing import Generator
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, Session
from agency_billing.api.main import create_app
from agency_billing.domain.models import NewPayment, NewSchedule, ServiceType
from agency_billing.infrastructure.database.models import Base, RentalContract, RentalUnit, UnitOwner
from agency_billing.infrastructure.database.repositories import PaymentRepository, ScheduleRepository
from agency_billing.infrastructure.database.session import get_db


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
def agency_id() -> uuid.UUID:
    return uuid.uuid4()


@pytest.fixture
def headers(agency_id: uuid.UUID) -> dict:
    return {"X-Agency-ID": str(agency_id)}


@pytest.fixture
def make_contract(db: Session, agency_id: uuid.UUID):
    """Contract on a unit with (optionally) an active owner"""

    def _make(
        end_date: date | None = date(2025, 12, 31),
        status: str = "active",
        with_owner: bool = True,
        agency: uuid.UUID | None = None,
    ) -> RentalContract:
        agency = agency or agency_id
        unit = RentalUnit(agency_id=agency, condominium_id=uuid.uuid4(), unit_number="A-101")
        db.add(unit)
        db.flush()
        if with_owner:
            db.add(UnitOwner(agency_id=agency, unit_id=unit.id, owner_name="Laura Owner", is_active=True))
            db.add(UnitOwner(agency_id=agency, unit_id=unit.id, owner_name="Former Owner", is_active=False))
        contract = RentalContract(
            agency_id=agency,
            unit_id=unit.id,
            tenant_name="Tomas Tenant",
            status=status,
            start_date=date(2025, 1, 1),
            end_date=end_date,
        )
        db.add(contract)
        db.commit()
        return contract

    return _make


@pytest.fixture
def make_schedule(db: Session):
    def _make(
        contract: RentalContract,
        day_of_month: int = 31,
        amount: Decimal = Decimal("1000.00"),
        service_type: ServiceType = ServiceType.RENT,
        is_active: bool = True,
    ):
        schedule = ScheduleRepository(db).create_schedule(
            contract.agency_id,
            NewSchedule(
                contract_id=contract.id,
                service_type=service_type,
                amount=amount,
                day_of_month=day_of_month,
                currency="MXN",
                is_active=is_active,
            ),
        )
        db.commit()
        return schedule

    return _make


@pytest.fixture
def make_payment(db: Session):
    def _make(
        contract: RentalContract,
        due_date: date,
        schedule=None,
        amount: Decimal = Decimal("1000.00"),
        service_type: ServiceType = ServiceType.RENT,
    ):
        payment = PaymentRepository(db).create_payment(
            contract.agency_id,
            NewPayment(
                contract_id=contract.id,
                service_type=service_type,
                amount=amount,
                due_date=due_date,
                currency="MXN",
                schedule_id=schedule.id if schedule is not None else None,
            ),
        )
        db.commit()
        return payment

    return _make
