from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import INTERNAL_ROLES, Principal, ensure_self_or_admin, get_current_principal, require_roles
from app.core.errors import AuthorizationError
from app.db.session import get_db
from app.models.enums import BookingStatus
from app.schemas.booking import (
    BookingListOut,
    BookingOut,
    CancelOut,
    ExpireIn,
    ExpireOut,
    FailBookingsIn,
    FailBookingsOut,
)
from app.services import booking_service, cache_service

router = APIRouter(prefix="/bookings", tags=["bookings"])


@router.get("/user/{user_id}", response_model=BookingListOut)
def user_bookings(
    user_id: str,
    status: Optional[BookingStatus] = None,
    billingId: Optional[str] = None,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    ensure_self_or_admin(principal, user_id)
    key = cache_service.user_bookings_key(user_id, {"status": status, "billingId": billingId})
    cached = cache_service.get_json(key)
    if cached is not None:
        return cached

    bookings = booking_service.list_user_bookings(db, user_id, status=status, billing_id=billingId)
    out = BookingListOut(count=len(bookings), bookings=[BookingOut.from_model(b) for b in bookings])
    cache_service.set_json(key, out.model_dump(mode="json"))
    return out


@router.post("/fail", response_model=FailBookingsOut, response_model_exclude_none=True)
def fail_bookings(
    body: FailBookingsIn,
    principal: Principal = Depends(require_roles(*INTERNAL_ROLES)),
    db: Session = Depends(get_db),
):
    failed, errors = booking_service.fail_bookings(db, body.bookingIds, user_id=body.userId)
    return FailBookingsOut(modifiedCount=len(failed), failedBookings=failed, errors=errors or None)


@router.post("/expire", response_model=ExpireOut)
def expire_bookings(
    body: ExpireIn | None = None,
    principal: Principal = Depends(require_roles(*INTERNAL_ROLES)),
    db: Session = Depends(get_db),
):
    minutes = body.minutes if body else None
    return ExpireOut(expiredIds=booking_service.expire_stale_holds(db, minutes=minutes))


@router.get("/{booking_id}", response_model=BookingOut)
def get_booking(
    booking_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    booking = booking_service.get_booking(db, booking_id)
    if booking.user_id != principal.user_id and principal.role not in INTERNAL_ROLES:
        raise AuthorizationError("You can only view your own bookings")
    return BookingOut.from_model(booking)


@router.delete("/{booking_id}", response_model=CancelOut)
def cancel_booking(
    booking_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    cancelled, billing_id = booking_service.cancel_booking(db, booking_id, principal.user_id, is_admin=principal.is_admin)
    return CancelOut(cancelledBookings=cancelled, billingId=billing_id, count=len(cancelled))
