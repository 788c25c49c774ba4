from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.core.timeutil import as_utc
from app.db.session import get_db
from app.models.enums import ListingType
from app.schemas.booking import AvailabilityOut
from app.services import availability_service, booking_service, cache_service

router = APIRouter(prefix="/listings", tags=["listings"])


@router.get("/{listing_type}/{listing_id}/availability", response_model=AvailabilityOut)
def listing_availability(
    listing_type: ListingType,
    listing_id: str,
    subType: Optional[str] = None,
    travelDate: Optional[datetime] = None,
    checkIn: Optional[datetime] = None,
    checkOut: Optional[datetime] = None,
    db: Session = Depends(get_db),
):
    params = {"listingType": listing_type.value, "subType": subType,
              "travelDate": as_utc(travelDate), "checkIn": as_utc(checkIn), "checkOut": as_utc(checkOut)}
    # stale holds must not hide inventory from searches
    expired = booking_service.expire_stale_holds(db, listing_id=listing_id)

    key = cache_service.availability_key(listing_id, params)
    if not expired:
        cached = cache_service.get_json(key)
        if cached is not None:
            return cached

    remaining = availability_service.availability(
        db, listing_type, listing_id, sub_type=subType,
        travel_date=as_utc(travelDate), check_in=as_utc(checkIn), check_out=as_utc(checkOut),
    )
    out = AvailabilityOut(
        listingId=listing_id, listingType=listing_type, subType=subType,
        remaining=remaining, available=remaining > 0,
    )
    cache_service.set_json(key, out.model_dump(mode="json"))
    return out
