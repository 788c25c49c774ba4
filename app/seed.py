import logging
from datetime import datetime, timedelta, timezone

from sqlalchemy.orm import Session
from sqlalchemy import text
from sqlalchemy.exc import OperationalError, ProgrammingError

from app.db.session import SessionLocal
from app.core.security import hash_password
from app.models.enums import ListingStatus
from app.models.listing import Car, Flight, Hotel
from app.models.user import User

logger = logging.getLogger(__name__)

ALL_WEEK = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]


def ensure_user(db: Session, user_id: str, email: str, password: str, role: str, name: str):
    u = db.query(User).filter(User.email == email).first()
    if u:
        return
    db.add(
        User(
            id=user_id,
            email=email,
            full_name=name,
            role=role,
            password_hash=hash_password(password),
            is_active=True,
        )
    )
    db.commit()


def ensure_listing(db: Session, model, listing_id: str, **fields):
    if db.get(model, listing_id):
        return
    db.add(model(id=listing_id, **fields))
    db.commit()


def run(db=None):
    if db is None:
        db = SessionLocal()
    try:
        # If migrations haven't been applied yet, seeding must not crash the API.
        try:
            db.execute(text("SELECT 1 FROM users LIMIT 1"))
        except (ProgrammingError, OperationalError):
            db.rollback()
            logger.warning("users table not found yet. Skipping seeding (run alembic upgrade head).")
            return

        ensure_user(db, "ADMIN-0001", "admin@aerive.dev", "admin12345", "admin", "Admin")
        ensure_user(db, "USR-0001", "traveler@aerive.dev", "traveler12345", "traveler", "Test Traveler")

        today = datetime.now(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        window = {
            "provider_id": "PRV-0001",
            "status": ListingStatus.ACTIVE,
            "available_from": today,
            "available_to": today + timedelta(days=365),
        }
        ensure_listing(
            db, Flight, "FL-SFO-JFK-100",
            flight_number="AE100",
            departure_airport="SFO",
            arrival_airport="JFK",
            departure_time="08:00",
            arrival_time="16:30",
            operating_days=ALL_WEEK,
            duration_minutes=330,
            seat_classes=[
                {"type": "Economy", "price": 199.0, "totalSeats": 120},
                {"type": "Business", "price": 649.0, "totalSeats": 24},
            ],
            **window,
        )
        ensure_listing(
            db, Hotel, "HT-SF-0001",
            name="Bayview Hotel",
            address="1 Market St",
            city="San Francisco",
            state="CA",
            zip_code="94105",
            star_rating=4,
            amenities=["WiFi", "Pool"],
            room_types=[
                {"type": "Standard", "pricePerNight": 150.0, "inventoryCount": 10},
                {"type": "Suite", "pricePerNight": 320.0, "inventoryCount": 2},
            ],
            **window,
        )
        ensure_listing(
            db, Car, "CAR-SF-0001",
            make="Toyota",
            model="Camry",
            car_type="Sedan",
            seats=5,
            daily_price=55.0,
            city="San Francisco",
            **window,
        )
        logger.info("Seed data ensured")
    finally:
        db.close()


if __name__ == "__main__":
    run()
