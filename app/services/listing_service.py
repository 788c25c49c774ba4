from sqlalchemy import select
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, ValidationError
from app.models.enums import ListingStatus, ListingType
from app.models.listing import LISTING_MODELS


def get_listing(db: Session, listing_type: ListingType, listing_id: str, lock: bool = False):
    """Fetch a listing. With lock=True the row is held FOR UPDATE until the caller's transaction ends,
    which serialises concurrent holds against the same listing."""
    model = LISTING_MODELS.get(ListingType(listing_type))
    if model is None:
        raise ValidationError("Invalid listing type", field="listingType")
    stmt = select(model).where(model.id == listing_id)
    if lock:
        stmt = stmt.with_for_update()
    listing = db.execute(stmt).scalar_one_or_none()
    if not listing:
        raise NotFoundError(f"{ListingType(listing_type).value} {listing_id}")
    return listing


def ensure_bookable(listing) -> None:
    if listing.status != ListingStatus.ACTIVE:
        raise ValidationError(f"Listing {listing.id} is not open for booking")


def seat_class(flight, seat_type: str) -> dict:
    for sc in flight.seat_classes or []:
        if sc.get("type") == seat_type:
            return sc
    offered = ", ".join(sc.get("type", "") for sc in flight.seat_classes or [])
    raise ValidationError(
        f"Seat type '{seat_type}' is not available on this flight. Available types: {offered}",
        field="subType",
    )


def room_type(hotel, room: str) -> dict:
    for rt in hotel.room_types or []:
        if rt.get("type") == room:
            return rt
    offered = ", ".join(rt.get("type", "") for rt in hotel.room_types or [])
    raise ValidationError(
        f"Room type '{room}' is not available at this hotel. Available types: {offered}",
        field="subType",
    )
