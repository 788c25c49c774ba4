from sqlalchemy import String, Integer, DateTime, Numeric, Index
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from app.db.session import Base
from app.models.enums import BookingStatus, ListingType, str_enum

class Booking(Base):
    __tablename__ = "bookings"
    __table_args__ = (
        Index("ix_bookings_availability", "listing_id", "listing_type", "sub_type", "check_in", "check_out", "status"),
        Index("ix_bookings_user_status", "user_id", "status"),
    )

    id: Mapped[str] = mapped_column(String(40), primary_key=True)  # bookingId
    user_id: Mapped[str] = mapped_column(String(40), index=True)
    listing_id: Mapped[str] = mapped_column(String(40), index=True)
    listing_type: Mapped[ListingType] = mapped_column(str_enum(ListingType, 10))

    quantity: Mapped[int] = mapped_column(Integer, default=1)
    sub_type: Mapped[str] = mapped_column(String(20), nullable=True)  # seat class or room type

    travel_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)  # flights
    check_in: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)     # hotels, car pickup
    check_out: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=True)    # hotels, car return

    total_amount: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False))
    status: Mapped[BookingStatus] = mapped_column(str_enum(BookingStatus), default=BookingStatus.PENDING, index=True)

    billing_id: Mapped[str] = mapped_column(String(40), nullable=True, index=True)
    checkout_id: Mapped[str] = mapped_column(String(40), nullable=True, index=True)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc), index=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
