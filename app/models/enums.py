import enum

import sqlalchemy as sa


class ListingType(str, enum.Enum):
    FLIGHT = "Flight"
    HOTEL = "Hotel"
    CAR = "Car"


class ListingStatus(str, enum.Enum):
    PENDING = "Pending"
    ACTIVE = "Active"
    INACTIVE = "Inactive"


class SeatClass(str, enum.Enum):
    ECONOMY = "Economy"
    BUSINESS = "Business"
    FIRST = "First"


class RoomType(str, enum.Enum):
    STANDARD = "Standard"
    SUITE = "Suite"
    DELUXE = "Deluxe"
    SINGLE = "Single"
    DOUBLE = "Double"
    PRESIDENTIAL = "Presidential"


class BookingStatus(str, enum.Enum):
    PENDING = "Pending"
    CONFIRMED = "Confirmed"
    CANCELLED = "Cancelled"
    FAILED = "Failed"


class BillStatus(str, enum.Enum):
    COMPLETED = "Completed"
    FAILED = "Failed"


# Bookings in these states hold inventory.
ACTIVE_BOOKING_STATES = (BookingStatus.PENDING, BookingStatus.CONFIRMED)
TERMINAL_BOOKING_STATES = (BookingStatus.CANCELLED, BookingStatus.FAILED)


def str_enum(enum_cls, length: int = 20):
    """Column type storing the enum's value strings (not member names)."""
    return sa.Enum(
        enum_cls,
        native_enum=False,
        length=length,
        validate_strings=True,
        values_callable=lambda e: [m.value for m in e],
    )
