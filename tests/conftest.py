import os
import tempfile
from datetime import datetime, timezone

_boot_dir = tempfile.mkdtemp(prefix="aerive-tests-")
os.environ["ENV"] = "test"
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["DATABASE_URL"] = f"sqlite:///{_boot_dir}/boot.db"
os.environ["BILLING_DATABASE_URL"] = ""
os.environ["CARD_ENCRYPTION_KEY"] = "test-card-encryption-key"
os.environ["CACHE_ENABLED"] = "false"
os.environ.pop("ACCEPT_TEST_CARDS", None)

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from app.core.security import create_access_token
from app.db.session import Base, get_db, get_ledger_db, make_engine
from app.main import app
from app.models.audit_log import AuditLog  # noqa: F401
from app.models.bill import Bill  # noqa: F401
from app.models.booking import Booking  # noqa: F401
from app.models.enums import ListingStatus
from app.models.listing import Car, Flight, Hotel
from app.models.user import User


def utc(*args) -> datetime:
    return datetime(*args, tzinfo=timezone.utc)


@pytest.fixture
def session_factory(tmp_path):
    engine = make_engine(f"sqlite:///{tmp_path}/kernel.db")
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def ledger_factory(tmp_path):
    # separate file: the ledger commits independently of the booking store
    engine = make_engine(f"sqlite:///{tmp_path}/ledger.db")
    Base.metadata.create_all(engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    s = session_factory()
    yield s
    s.close()


@pytest.fixture
def ledger(ledger_factory):
    s = ledger_factory()
    yield s
    s.close()


@pytest.fixture
def client(session_factory, ledger_factory):
    def _db():
        s = session_factory()
        try:
            yield s
        finally:
            s.close()

    def _ledger():
        s = ledger_factory()
        try:
            yield s
        finally:
            s.close()

    app.dependency_overrides[get_db] = _db
    app.dependency_overrides[get_ledger_db] = _ledger
    with TestClient(app, raise_server_exceptions=False) as c:
        yield c
    app.dependency_overrides.clear()


def auth(user_id: str, role: str = "traveler") -> dict:
    return {"Authorization": f"Bearer {create_access_token(user_id, role=role)}"}


def add_user(db, user_id: str = "USR-1", email: str | None = None) -> User:
    u = User(id=user_id, email=email or f"{user_id.lower()}@example.com", full_name="Test User",
             role="traveler", password_hash="x", is_active=True)
    db.add(u)
    db.commit()
    return u


def add_flight(db, listing_id: str = "FL-1", seats=None, **overrides) -> Flight:
    fields = dict(
        id=listing_id,
        provider_id="PRV-1",
        status=ListingStatus.ACTIVE,
        available_from=utc(2024, 1, 1),
        available_to=utc(2025, 12, 31, 23, 59, 59),
        flight_number="AE100",
        departure_airport="SFO",
        arrival_airport="JFK",
        departure_time="08:00",
        arrival_time="16:30",
        operating_days=["Monday", "Wednesday", "Friday"],
        duration_minutes=330,
        seat_classes=seats or [
            {"type": "Economy", "price": 200.0, "totalSeats": 3},
            {"type": "Business", "price": 650.0, "totalSeats": 1},
        ],
    )
    fields.update(overrides)
    f = Flight(**fields)
    db.add(f)
    db.commit()
    return f


def add_hotel(db, listing_id: str = "HT-1", rooms=None, **overrides) -> Hotel:
    fields = dict(
        id=listing_id,
        provider_id="PRV-1",
        status=ListingStatus.ACTIVE,
        available_from=utc(2024, 1, 1),
        available_to=utc(2025, 12, 31),
        name="Bayview",
        city="San Francisco",
        amenities=["WiFi"],
        room_types=rooms or [
            {"type": "Standard", "pricePerNight": 100.0, "inventoryCount": 2},
            {"type": "Suite", "pricePerNight": 250.0, "inventoryCount": 1},
        ],
    )
    fields.update(overrides)
    h = Hotel(**fields)
    db.add(h)
    db.commit()
    return h


def add_car(db, listing_id: str = "CAR-1", **overrides) -> Car:
    fields = dict(
        id=listing_id,
        provider_id="PRV-1",
        status=ListingStatus.ACTIVE,
        available_from=utc(2024, 1, 1),
        available_to=utc(2025, 12, 31),
        make="Toyota",
        model="Camry",
        car_type="Sedan",
        daily_price=50.0,
        city="San Francisco",
    )
    fields.update(overrides)
    c = Car(**fields)
    db.add(c)
    db.commit()
    return c
