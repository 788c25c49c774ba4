from sqlalchemy import String, DateTime, Numeric, JSON
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, timezone
from app.db.session import Base
from app.models.enums import BillStatus, ListingType, str_enum

class Bill(Base):
    """One ledger row per booking; every booking paid together shares a billing_id."""

    __tablename__ = "bills"

    billing_id: Mapped[str] = mapped_column(String(40), primary_key=True, index=True)
    booking_id: Mapped[str] = mapped_column(String(40), primary_key=True, index=True)
    user_id: Mapped[str] = mapped_column(String(40), index=True)
    booking_type: Mapped[ListingType] = mapped_column(str_enum(ListingType, 10))
    checkout_id: Mapped[str] = mapped_column(String(40), index=True)
    transaction_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), index=True)
    total_amount: Mapped[float] = mapped_column(Numeric(10, 2, asdecimal=False))
    payment_method: Mapped[str] = mapped_column(String(50), default="Credit Card")
    transaction_status: Mapped[BillStatus] = mapped_column(str_enum(BillStatus), default=BillStatus.COMPLETED, index=True)
    invoice_details: Mapped[dict] = mapped_column(JSON, default=dict)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )
