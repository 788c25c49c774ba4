import logging
import math
import uuid
from datetime import timedelta

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from app.core.config import settings
from app.core.errors import AuthorizationError, ConflictError, NotFoundError, ValidationError
from app.core.timeutil import DAY_SECONDS, as_utc, utcnow
from app.models.booking import Booking
from app.models.enums import ACTIVE_BOOKING_STATES, TERMINAL_BOOKING_STATES, BookingStatus, ListingType
from app.schemas.booking import HoldRequest
from app.services import availability_service, cache_service, listing_service
from app.services.audit_service import log_audit

logger = logging.getLogger(__name__)

HOLD_MINUTES = settings.HOLD_MINUTES

# Forward moves only. Failed and Cancelled are terminal.
TRANSITIONS = {
    BookingStatus.PENDING: {BookingStatus.CONFIRMED, BookingStatus.FAILED, BookingStatus.CANCELLED},
    BookingStatus.CONFIRMED: {BookingStatus.CANCELLED},
}


def make_booking_id() -> str:
    return "BK-" + uuid.uuid4().hex[:16].upper()


def ensure_transition(booking: Booking, target: BookingStatus) -> BookingStatus:
    current = BookingStatus(booking.status)
    if target not in TRANSITIONS.get(current, set()):
        raise ValidationError(f"Booking {booking.id} cannot move from {current.value} to {target.value}")
    return current


def transition(booking: Booking, target: BookingStatus) -> None:
    current = ensure_transition(booking, target)
    booking.status = target
    logger.info("Booking %s: %s -> %s", booking.id, current.value, target.value)


def _touched(bookings) -> None:
    cache_service.invalidate_booking_views(
        [b.listing_id for b in bookings],
        [b.user_id for b in bookings],
    )


def expire_stale_holds(db: Session, user_id: str | None = None, listing_id: str | None = None,
                       minutes: int | None = None, now=None) -> list[str]:
    """Move Pending bookings older than the hold horizon to Failed. Returns the expired ids."""
    cutoff = as_utc(now or utcnow()) - timedelta(minutes=minutes or HOLD_MINUTES)
    stmt = select(Booking).where(Booking.status == BookingStatus.PENDING, Booking.created_at <= cutoff)
    if user_id:
        stmt = stmt.where(Booking.user_id == user_id)
    if listing_id:
        stmt = stmt.where(Booking.listing_id == listing_id)

    stale = db.execute(stmt.with_for_update()).scalars().all()
    if not stale:
        return []
    for b in stale:
        transition(b, BookingStatus.FAILED)
        log_audit(db, actor_user_id=None, action="booking.expired", entity_type="booking", entity_id=b.id)
    db.commit()
    _touched(stale)
    logger.info("Expired %d stale hold(s): %s", len(stale), ", ".join(b.id for b in stale))
    return [b.id for b in stale]


def _span_units(start, end, label: str) -> int:
    units = math.ceil((as_utc(end) - as_utc(start)).total_seconds() / DAY_SECONDS)
    if units < 1:
        raise ValidationError(f"Booking must cover at least one {label}")
    return units


def price_for(listing, hold: HoldRequest) -> float:
    if hold.listing_type == ListingType.FLIGHT:
        unit = float(listing_service.seat_class(listing, hold.sub_type)["price"])
        return round(unit * hold.quantity, 2)
    if hold.listing_type == ListingType.HOTEL:
        nights = _span_units(hold.check_in, hold.check_out, "night")
        unit = float(listing_service.room_type(listing, hold.sub_type)["pricePerNight"])
        return round(unit * nights * hold.quantity, 2)
    days = _span_units(hold.check_in, hold.check_out, "day")
    return round(float(listing.daily_price) * days * hold.quantity, 2)


def _shortfall_message(hold: HoldRequest, remaining: int) -> str:
    if hold.listing_type == ListingType.FLIGHT:
        return f"Not enough seats available. Requested: {hold.quantity}, Available: {remaining}"
    if hold.listing_type == ListingType.HOTEL:
        return f"Not enough rooms available. Requested: {hold.quantity}, Available: {remaining}"
    return "Car is not available for the selected dates"


def create_booking(db: Session, user_id: str, hold: HoldRequest, checkout_id: str | None = None) -> Booking:
    if hold.quantity < 1:
        raise ValidationError("Quantity must be at least 1", field="quantity")

    expire_stale_holds(db, user_id=user_id, listing_id=hold.listing_id)

    try:
        # Transactional lock to prevent oversell
        listing = listing_service.get_listing(db, hold.listing_type, hold.listing_id, lock=True)
        listing_service.ensure_bookable(listing)
        remaining = availability_service.remaining_for(
            db, listing, hold.sub_type, hold.travel_date, hold.check_in, hold.check_out
        )
        if remaining < hold.quantity:
            raise ValidationError(_shortfall_message(hold, remaining), field="quantity")

        booking = Booking(
            id=make_booking_id(),
            user_id=user_id,
            listing_id=listing.id,
            listing_type=hold.listing_type,
            quantity=hold.quantity,
            sub_type=hold.sub_type,
            travel_date=as_utc(hold.travel_date),
            check_in=as_utc(hold.check_in),
            check_out=as_utc(hold.check_out),
            total_amount=price_for(listing, hold),
            status=BookingStatus.PENDING,
            checkout_id=checkout_id,
        )
        db.add(booking)
        log_audit(db, actor_user_id=user_id, action="booking.held", entity_type="booking", entity_id=booking.id,
                  details={"listingId": listing.id, "quantity": hold.quantity, "checkoutId": checkout_id})
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(booking)
    _touched([booking])
    logger.info("Booking %s held for user %s on %s %s (qty=%d)",
                booking.id, user_id, hold.listing_type.value, listing.id, hold.quantity)
    return booking


def get_booking(db: Session, booking_id: str) -> Booking:
    booking = db.get(Booking, booking_id)
    if not booking:
        raise NotFoundError("Booking")
    return booking


def get_bookings(db: Session, booking_ids: list[str], lock: bool = False) -> list[Booking]:
    """Load bookings in the given order. With lock=True the rows are held FOR UPDATE and re-read,
    so a status checked here cannot change before the caller commits."""
    stmt = select(Booking).where(Booking.id.in_(booking_ids))
    if lock:
        stmt = stmt.with_for_update().execution_options(populate_existing=True)
    found = {b.id: b for b in db.execute(stmt).scalars()}
    missing = [i for i in booking_ids if i not in found]
    if missing:
        raise NotFoundError(f"Booking {', '.join(missing)}")
    return [found[i] for i in booking_ids]


def list_user_bookings(db: Session, user_id: str, status: BookingStatus | None = None,
                       billing_id: str | None = None) -> list[Booking]:
    stmt = select(Booking).where(Booking.user_id == user_id)
    if status:
        stmt = stmt.where(Booking.status == status)
    if billing_id:
        stmt = stmt.where(Booking.billing_id == billing_id)
    return list(db.execute(stmt.order_by(Booking.created_at.desc())).scalars())


def confirm_bookings(db: Session, bookings: list[Booking], billing_id: str) -> None:
    """Attach the committed billing id and move every booking Pending -> Confirmed in one commit.

    The UPDATE only matches rows still Pending. If another payment or the expiry sweep
    got to any of them first, nothing is confirmed and ConflictError is raised.
    """
    ids = [b.id for b in bookings]
    for b in bookings:
        ensure_transition(b, BookingStatus.CONFIRMED)

    result = db.execute(
        update(Booking)
        .where(Booking.id.in_(ids), Booking.status == BookingStatus.PENDING)
        .values(status=BookingStatus.CONFIRMED, billing_id=billing_id)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount != len(ids):
        db.rollback()
        logger.warning("Confirm for billing %s matched %d of %d booking(s)", billing_id, result.rowcount, len(ids))
        raise ConflictError("Bookings changed state before they could be confirmed", field="bookingIds")

    for b in bookings:
        logger.info("Booking %s: Pending -> Confirmed", b.id)
        log_audit(db, actor_user_id=b.user_id, action="booking.confirmed", entity_type="booking", entity_id=b.id,
                  details={"billingId": billing_id})
    db.commit()
    _touched(bookings)


def fail_bookings(db: Session, booking_ids: list[str], user_id: str | None = None) -> tuple[list[str], list[dict]]:
    """Compensation: move Pending bookings to Failed. Replays leave state unchanged.

    Confirmed bookings are reported and left alone; only cancellation ends them.
    """
    rows = {
        b.id: b
        for b in db.execute(select(Booking).where(Booking.id.in_(booking_ids)).with_for_update()).scalars()
    }
    failed, errors = [], []
    for booking_id in dict.fromkeys(booking_ids):
        b = rows.get(booking_id)
        if b is None:
            errors.append({"bookingId": booking_id, "error": "Booking not found"})
            continue
        if user_id and b.user_id != user_id:
            errors.append({"bookingId": booking_id, "error": "Booking does not belong to user"})
            continue
        if b.status in TERMINAL_BOOKING_STATES:
            continue
        if b.status != BookingStatus.PENDING:
            errors.append({"bookingId": booking_id, "error": f"Booking is {BookingStatus(b.status).value}"})
            continue
        transition(b, BookingStatus.FAILED)
        log_audit(db, actor_user_id=user_id, action="booking.failed", entity_type="booking", entity_id=b.id)
        failed.append(b.id)

    db.commit()
    if failed:
        _touched([rows[i] for i in failed])
        logger.info("Failed %d booking(s): %s", len(failed), ", ".join(failed))
    return failed, errors


def cancel_booking(db: Session, booking_id: str, actor_id: str, is_admin: bool = False) -> tuple[list[str], str | None]:
    """Cancel a booking; every non-terminal booking sharing its billing id is cancelled with it."""
    booking = get_booking(db, booking_id)
    if booking.user_id != actor_id and not is_admin:
        raise AuthorizationError("You can only cancel your own bookings")
    if booking.status in TERMINAL_BOOKING_STATES:
        raise ValidationError(f"Booking is already {BookingStatus(booking.status).value.lower()}")

    if booking.billing_id:
        group = list(db.execute(
            select(Booking)
            .where(Booking.billing_id == booking.billing_id, Booking.status.in_(ACTIVE_BOOKING_STATES))
            .order_by(Booking.created_at, Booking.id)
            .with_for_update()
        ).scalars())
    else:
        group = [booking]

    for b in group:
        transition(b, BookingStatus.CANCELLED)
        log_audit(db, actor_user_id=actor_id, action="booking.cancelled", entity_type="booking", entity_id=b.id,
                  details={"billingId": b.billing_id, "requested": booking_id})
    db.commit()
    _touched(group)
    logger.info("Cancelled %s (billing_id=%s) at request of %s", [b.id for b in group], booking.billing_id, actor_id)
    return [b.id for b in group], booking.billing_id
