import os
import uuid
from decimal import Decimal

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("SECRET_KEY", "test-secret")

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from app.db.session import Base, get_db
from app.main import app as fastapi_app
from app.models.payment_transaction import PaymentTransaction  # noqa: F401
from app.models.profile import Profile  # noqa: F401
from app.models.ticket import Ticket
from app.models.trip import Trip
from app.models.user import User  # noqa: F401
from app.services.identity_provider import LocalIdentityProvider
from app.store.sql_store import SqlAlchemyDataStore


@pytest.fixture
def engine():
    """In-memory SQLite shared by every session of one test."""
    eng = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False)


@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def store(db):
    return SqlAlchemyDataStore(db)


@pytest.fixture
def provider(db):
    return LocalIdentityProvider(db)


@pytest.fixture
def create_trip(db):
    """Trip factory (factories as fixtures)."""

    def _factory(
        trip_id: str | None = None,
        price: str = "25.00",
        total_seats: int = 10,
        available_seats: int | None = None,
        seat_class: str = "economy",
    ) -> str:
        trip_id = trip_id or str(uuid.uuid4())
        db.add(Trip(
            id=trip_id,
            origin="Luanda",
            destination="Benguela",
            price_usd=Decimal(price),
            total_seats=total_seats,
            available_seats=total_seats if available_seats is None else available_seats,
            seat_class=seat_class,
            status="scheduled",
        ))
        db.commit()
        return trip_id

    return _factory


@pytest.fixture
def create_ticket(db):
    """Ticket written straight to the table, bypassing the booking workflow."""

    def _factory(
        trip_id: str,
        seat_number: str = "1",
        status: str = "active",
        payment_status: str = "pending",
        payment_method: str = "card",
        price: str = "25.00",
        payment_reference: str | None = None,
    ) -> str:
        ticket_id = str(uuid.uuid4())
        db.add(Ticket(
            id=ticket_id,
            ticket_number="NB-" + ticket_id[:8].upper(),
            trip_id=trip_id,
            passenger_id="P1",
            seat_number=seat_number,
            seat_class="economy",
            price_paid_usd=Decimal(price),
            status=status,
            payment_status=payment_status,
            payment_method=payment_method,
            payment_reference=payment_reference,
            qr_code_data=f"TKT-{trip_id}-{seat_number}",
        ))
        db.commit()
        return ticket_id

    return _factory


@pytest.fixture
def client(session_factory):
    def override_get_db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    fastapi_app.dependency_overrides[get_db] = override_get_db
    with TestClient(fastapi_app) as c:
        yield c
    fastapi_app.dependency_overrides.clear()
