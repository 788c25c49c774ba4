from dataclasses import dataclass
from datetime import datetime
from typing import Annotated, List, Literal, Optional, Union

from pydantic import AfterValidator, AliasChoices, BaseModel, Field

from app.core.timeutil import as_utc, isoformat
from app.models.enums import BookingStatus, ListingType, RoomType, SeatClass

UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


@dataclass
class HoldRequest:
    """A cart item normalised for the booking store: car pickup/return map onto check_in/check_out."""
    listing_type: ListingType
    listing_id: str
    quantity: int
    sub_type: Optional[str] = None
    travel_date: Optional[datetime] = None
    check_in: Optional[datetime] = None
    check_out: Optional[datetime] = None


class _CartItemBase(BaseModel):
    listingId: str = Field(min_length=1)
    quantity: int = Field(default=1, ge=1)


class FlightCartItem(_CartItemBase):
    listingType: Literal["Flight"]
    subType: SeatClass = Field(validation_alias=AliasChoices("subType", "seatType", "roomType"))
    travelDate: UTCDateTime

    def to_hold(self) -> HoldRequest:
        return HoldRequest(ListingType.FLIGHT, self.listingId, self.quantity,
                           sub_type=self.subType.value, travel_date=self.travelDate)


class HotelCartItem(_CartItemBase):
    listingType: Literal["Hotel"]
    subType: RoomType = Field(validation_alias=AliasChoices("subType", "roomType"))
    checkIn: UTCDateTime = Field(validation_alias=AliasChoices("checkIn", "checkInDate"))
    checkOut: UTCDateTime = Field(validation_alias=AliasChoices("checkOut", "checkOutDate"))

    def to_hold(self) -> HoldRequest:
        return HoldRequest(ListingType.HOTEL, self.listingId, self.quantity,
                           sub_type=self.subType.value, check_in=self.checkIn, check_out=self.checkOut)


class CarCartItem(_CartItemBase):
    listingType: Literal["Car"]
    pickupDate: UTCDateTime = Field(validation_alias=AliasChoices("pickupDate", "checkInDate", "checkIn"))
    returnDate: UTCDateTime = Field(validation_alias=AliasChoices("returnDate", "checkOutDate", "checkOut"))

    def to_hold(self) -> HoldRequest:
        return HoldRequest(ListingType.CAR, self.listingId, self.quantity,
                           check_in=self.pickupDate, check_out=self.returnDate)


CartItem = Annotated[Union[FlightCartItem, HotelCartItem, CarCartItem], Field(discriminator="listingType")]


class BookingOut(BaseModel):
    bookingId: str
    userId: str
    listingId: str
    listingType: ListingType
    quantity: int
    subType: Optional[str] = None
    travelDate: Optional[str] = None
    checkInDate: Optional[str] = None
    checkOutDate: Optional[str] = None
    totalAmount: float
    status: BookingStatus
    billingId: Optional[str] = None
    checkoutId: Optional[str] = None
    createdAt: Optional[str] = None
    updatedAt: Optional[str] = None

    @classmethod
    def from_model(cls, b) -> "BookingOut":
        return cls(
            bookingId=b.id,
            userId=b.user_id,
            listingId=b.listing_id,
            listingType=b.listing_type,
            quantity=b.quantity,
            subType=b.sub_type,
            travelDate=isoformat(b.travel_date),
            checkInDate=isoformat(b.check_in),
            checkOutDate=isoformat(b.check_out),
            totalAmount=float(b.total_amount),
            status=b.status,
            billingId=b.billing_id,
            checkoutId=b.checkout_id,
            createdAt=isoformat(b.created_at),
            updatedAt=isoformat(b.updated_at),
        )


class BookingListOut(BaseModel):
    count: int
    bookings: List[BookingOut]


class CancelOut(BaseModel):
    cancelledBookings: List[str]
    billingId: Optional[str] = None
    count: int


class FailBookingsIn(BaseModel):
    bookingIds: List[str] = Field(min_length=1)
    userId: Optional[str] = None


class FailBookingsOut(BaseModel):
    modifiedCount: int
    failedBookings: List[str]
    errors: Optional[List[dict]] = None


class ExpireIn(BaseModel):
    minutes: Optional[int] = Field(default=None, ge=1)


class ExpireOut(BaseModel):
    expiredIds: List[str]


class AvailabilityOut(BaseModel):
    listingId: str
    listingType: ListingType
    subType: Optional[str] = None
    remaining: int
    available: bool
