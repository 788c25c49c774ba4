from sqlalchemy import String, Integer, DateTime, JSON, Numeric
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from app.db.session import Base
from app.models.enums import ListingStatus, ListingType, str_enum


class ListingMixin:
    """Fields every listing variant carries. Declared capacity is read-only to the kernel."""

    id: Mapped[str] = mapped_column(String(40), primary_key=True)  # listingId
    provider_id: Mapped[str] = mapped_column(String(40), index=True)
    status: Mapped[ListingStatus] = mapped_column(str_enum(ListingStatus), default=ListingStatus.PENDING, index=True)
    available_from: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    available_to: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))


class Flight(ListingMixin, Base):
    __tablename__ = "flights"
    listing_type = ListingType.FLIGHT

    flight_number: Mapped[str] = mapped_column(String(20), default="")
    departure_airport: Mapped[str] = mapped_column(String(3))
    arrival_airport: Mapped[str] = mapped_column(String(3))
    departure_time: Mapped[str] = mapped_column(String(5))  # HH:MM
    arrival_time: Mapped[str] = mapped_column(String(5))    # HH:MM
    operating_days: Mapped[list] = mapped_column(JSON, default=list)  # ["Monday", ...]
    duration_minutes: Mapped[int] = mapped_column(Integer)
    # [{"type": "Economy", "price": 199.0, "totalSeats": 120}, ...]
    seat_classes: Mapped[list] = mapped_column(JSON, default=list)


class Hotel(ListingMixin, Base):
    __tablename__ = "hotels"
    listing_type = ListingType.HOTEL

    name: Mapped[str] = mapped_column(String(200))
    address: Mapped[str] = mapped_column(String(300), default="")
    city: Mapped[str] = mapped_column(String(120), index=True)
    state: Mapped[str] = mapped_column(String(60), default="")
    zip_code: Mapped[str] = mapped_column(String(10), default="")
    country: Mapped[str] = mapped_column(String(60), default="USA")
    star_rating: Mapped[int] = mapped_column(Integer, default=3)
    amenities: Mapped[list] = mapped_column(JSON, default=list)
    # [{"type": "Standard", "pricePerNight": 150.0, "inventoryCount": 10}, ...]
    room_types: Mapped[list] = mapped_column(JSON, default=list)


class Car(ListingMixin, Base):
    __tablename__ = "cars"
    listing_type = ListingType.CAR

    make: Mapped[str] = mapped_column(String(60))
    model: Mapped[str] = mapped_column(String(60))
    car_type: Mapped[str] = mapped_column(String(30))  # SUV, Sedan, Compact, Luxury, ...
    transmission: Mapped[str] = mapped_column(String(20), default="Automatic")
    seats: Mapped[int] = mapped_column(Integer, default=5)
    daily_price: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False))
    city: Mapped[str] = mapped_column(String(120), default="")


LISTING_MODELS = {
    ListingType.FLIGHT: Flight,
    ListingType.HOTEL: Hotel,
    ListingType.CAR: Car,
}
