"""
Derived availability.

remaining = declared capacity - sum(quantity) of Pending/Confirmed bookings that
overlap the requested window. There is no mutable counter; searches and holds
use the same functions.
"""

from datetime import datetime

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from app.core.errors import ValidationError
from app.core.timeutil import as_utc, day_bounds, weekday_name
from app.models.booking import Booking
from app.models.enums import ACTIVE_BOOKING_STATES, ListingType
from app.services import listing_service


def _held(db: Session, *conditions) -> int:
    stmt = select(func.coalesce(func.sum(Booking.quantity), 0)).where(
        Booking.status.in_(ACTIVE_BOOKING_STATES), *conditions
    )
    return int(db.execute(stmt).scalar_one())


def _require_window(listing, label: str):
    if listing.available_from is None or listing.available_to is None:
        raise ValidationError(f"{label} has no availability period")
    return as_utc(listing.available_from), as_utc(listing.available_to)


def check_flight_date(flight, travel_date: datetime) -> None:
    if travel_date is None:
        raise ValidationError("Travel date is required for flight bookings", field="travelDate")
    travel_date = as_utc(travel_date)
    start, end = _require_window(flight, "Flight")
    if travel_date < start or travel_date > end:
        raise ValidationError("Selected travel date is outside the flight's availability period", field="travelDate")
    day = weekday_name(travel_date)
    if flight.operating_days and day not in flight.operating_days:
        raise ValidationError(
            f"This flight does not operate on {day}. Operating days: {', '.join(flight.operating_days)}",
            field="travelDate",
        )


def flight_remaining(db: Session, flight, seat_type: str, travel_date: datetime) -> int:
    check_flight_date(flight, travel_date)
    declared = int(listing_service.seat_class(flight, seat_type).get("totalSeats", 0))
    day_start, day_end = day_bounds(travel_date)
    held = _held(
        db,
        Booking.listing_id == flight.id,
        Booking.listing_type == ListingType.FLIGHT,
        Booking.sub_type == seat_type,
        Booking.travel_date >= day_start,
        Booking.travel_date <= day_end,
    )
    return max(0, declared - held)


def check_stay(hotel, check_in: datetime, check_out: datetime) -> None:
    if check_in is None or check_out is None:
        raise ValidationError("Check-in and check-out dates are required for hotels", field="checkIn")
    check_in, check_out = as_utc(check_in), as_utc(check_out)
    if check_in >= check_out:
        raise ValidationError("Check-out date must be after check-in date", field="checkOut")
    start, end = _require_window(hotel, "Hotel")
    if check_in < start or check_out > end:
        raise ValidationError("Selected dates are outside the hotel's availability period", field="checkIn")


def hotel_remaining(db: Session, hotel, room: str, check_in: datetime, check_out: datetime) -> int:
    check_stay(hotel, check_in, check_out)
    declared = int(listing_service.room_type(hotel, room).get("inventoryCount", 0))
    # half-open overlap: a stay ending on another's check-in day does not collide
    held = _held(
        db,
        Booking.listing_id == hotel.id,
        Booking.listing_type == ListingType.HOTEL,
        Booking.sub_type == room,
        Booking.check_in < as_utc(check_out),
        Booking.check_out > as_utc(check_in),
    )
    return max(0, declared - held)


def check_rental(car, pickup: datetime, dropoff: datetime) -> None:
    if pickup is None or dropoff is None:
        raise ValidationError("Pick-up and drop-off dates are required for car rentals", field="pickupDate")
    pickup, dropoff = as_utc(pickup), as_utc(dropoff)
    if pickup >= dropoff:
        raise ValidationError("Drop-off date must be after pick-up date", field="returnDate")
    # listings without window bounds are always in window
    if car.available_from is not None and pickup < as_utc(car.available_from):
        raise ValidationError("Selected dates are outside the car's availability period", field="pickupDate")
    if car.available_to is not None and dropoff > as_utc(car.available_to):
        raise ValidationError("Selected dates are outside the car's availability period", field="returnDate")


def car_remaining(db: Session, car, pickup: datetime, dropoff: datetime) -> int:
    check_rental(car, pickup, dropoff)
    # closed overlap: sharing a pickup/return instant collides
    held = _held(
        db,
        Booking.listing_id == car.id,
        Booking.listing_type == ListingType.CAR,
        Booking.check_in <= as_utc(dropoff),
        Booking.check_out >= as_utc(pickup),
    )
    return 0 if held else 1


def remaining_for(db: Session, listing, sub_type: str | None = None, travel_date: datetime | None = None,
                  check_in: datetime | None = None, check_out: datetime | None = None) -> int:
    listing_type = listing.listing_type
    if listing_type == ListingType.FLIGHT:
        if not sub_type:
            raise ValidationError("Seat type is required for flight bookings", field="subType")
        return flight_remaining(db, listing, sub_type, travel_date)
    if listing_type == ListingType.HOTEL:
        if not sub_type:
            raise ValidationError("Room type is required for hotel bookings", field="subType")
        return hotel_remaining(db, listing, sub_type, check_in, check_out)
    return car_remaining(db, listing, check_in, check_out)


def availability(db: Session, listing_type: ListingType, listing_id: str, sub_type: str | None = None,
                 travel_date: datetime | None = None, check_in: datetime | None = None,
                 check_out: datetime | None = None) -> int:
    listing = listing_service.get_listing(db, listing_type, listing_id)
    return remaining_for(db, listing, sub_type, travel_date, check_in, check_out)
