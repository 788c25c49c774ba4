"""
Checkout coordinator.

Phase 1 (hold) creates one Pending booking per cart item; phase 2 (payment)
validates the card, writes the ledger, then confirms. The booking store and the
ledger commit separately, so every exit path after the first write either
finishes or compensates through a Saga.
"""

import logging
import uuid

from sqlalchemy.orm import Session

from app.core.errors import AppError, ValidationError
from app.models.booking import Booking
from app.models.enums import BookingStatus
from app.schemas.checkout import CardData, PaymentRequest
from app.services import billing_service, booking_service, card_validation, card_vault
from app.services.audit_service import log_audit
from app.services.saga import Saga

logger = logging.getLogger(__name__)


def make_checkout_id() -> str:
    return "CHK-" + uuid.uuid4().hex[:16].upper()


def checkout(db: Session, user_id: str, items) -> dict:
    """Hold every cart item or none: partial holds are failed before the error surfaces."""
    checkout_id = make_checkout_id()
    created: list[Booking] = []
    errors: list[dict] = []

    saga = Saga(f"checkout {checkout_id}")
    saga.on_failure(
        "fail holds",
        lambda: booking_service.fail_bookings(db, [b.id for b in created], user_id=user_id),
        reset=db.rollback,
    )

    try:
        for index, item in enumerate(items):
            hold = item.to_hold()
            try:
                created.append(booking_service.create_booking(db, user_id, hold, checkout_id))
            except AppError as e:
                logger.info("Checkout %s: item %d (%s) rejected: %s", checkout_id, index, hold.listing_id, e.message)
                errors.append({
                    "index": index,
                    "listingId": hold.listing_id,
                    "listingType": hold.listing_type.value,
                    "error": e.message,
                })
        if errors:
            reasons = "; ".join(f"{e['listingType']} {e['listingId']}: {e['error']}" for e in errors)
            raise ValidationError(f"Some bookings failed: {reasons}", details=errors)
    except Exception:
        db.rollback()
        if created:
            saga.compensate()
        raise

    total = round(sum(float(b.total_amount) for b in created), 2)
    logger.info("Checkout %s: %d hold(s) for user %s, total=%.2f", checkout_id, len(created), user_id, total)
    return {"checkoutId": checkout_id, "userId": user_id, "bookings": created, "totalAmount": total}


def _load_for_payment(db: Session, req: PaymentRequest) -> list[Booking]:
    # row locks hold until confirm_bookings commits or pay rolls back
    bookings = booking_service.get_bookings(db, list(dict.fromkeys(req.bookingIds)), lock=True)
    for b in bookings:
        if b.user_id != req.userId:
            raise ValidationError(f"Booking {b.id} does not belong to this user", field="bookingIds")
        if b.checkout_id != req.checkoutId:
            raise ValidationError(f"Booking {b.id} is not part of checkout {req.checkoutId}", field="bookingIds")
        if b.status != BookingStatus.PENDING:
            raise ValidationError(
                f"Booking {b.id} is {BookingStatus(b.status).value}, only Pending bookings can be paid",
                field="bookingIds",
            )
    return bookings


def validate_payment_card(db: Session, user_id: str, card: CardData) -> card_validation.CardDetails:
    if card.cardId:
        saved = card_vault.get_card_for_payment(db, user_id, card.cardId)
        card_validation.validate_cvv(card.cvv)
        if not saved.zip_code:
            raise ValidationError("Saved card has no ZIP code on file", field="zipCode")
        if not card.zipCode:
            raise ValidationError("ZIP code is required to pay with a saved card", field="zipCode")
        if card_validation.zip5(card.zipCode) != card_validation.zip5(saved.zip_code):
            raise ValidationError(f"ZIP code {card.zipCode} does not match the card on file", field="zipCode")
        card_validation.validate_expiry(saved.expiry, message="Saved card has expired")
        return saved

    if not card.pan:
        raise ValidationError("Card number or saved card ID is required", field="cardNumber")
    pan = card_validation.validate_pan(card.pan)
    expiry = card_validation.validate_expiry(card.expiry)
    holder = card_validation.validate_holder(card.holder)
    card_validation.validate_cvv(card.cvv)
    zip_code = card_validation.validate_zip(card.zipCode)
    return card_validation.CardDetails(pan=pan, holder=holder, expiry=expiry, zip_code=zip_code)


def pay(db: Session, ledger: Session, req: PaymentRequest) -> dict:
    """
    Pay for the Pending bookings of one checkout.

    Ledger commit happens before any booking is Confirmed. On any failure the user's
    referenced bookings are failed and, if the ledger was already written, its rows
    are marked Failed.
    """
    saga = Saga(f"payment {req.checkoutId}")
    saga.on_failure(
        "fail bookings",
        lambda: booking_service.fail_bookings(db, req.bookingIds, user_id=req.userId),
        reset=db.rollback,
    )

    try:
        bookings = _load_for_payment(db, req)
        card = validate_payment_card(db, req.userId, req.cardData)

        billing_id = billing_service.make_billing_id()
        billing_service.write_bills(ledger, billing_id, req.userId, req.checkoutId, bookings, req.paymentMethod, card)
        saga.on_failure("mark ledger failed", lambda: billing_service.mark_failed(ledger, billing_id), reset=ledger.rollback)

        booking_service.confirm_bookings(db, bookings, billing_id)
    except Exception as e:
        db.rollback()
        logger.info("Payment for checkout %s failed: %s", req.checkoutId, e)
        saga.compensate()
        raise

    total = round(sum(float(b.total_amount) for b in bookings), 2)
    log_audit(db, actor_user_id=req.userId, action="checkout.paid", entity_type="checkout", entity_id=req.checkoutId,
              details={"billingId": billing_id, "bookingIds": [b.id for b in bookings], "last4": card.last4})
    db.commit()
    logger.info("Checkout %s paid: billing %s, %d booking(s), total=%.2f",
                req.checkoutId, billing_id, len(bookings), total)
    return {
        "billingId": billing_id,
        "checkoutId": req.checkoutId,
        "userId": req.userId,
        "totalAmount": total,
        "bookings": bookings,
    }
