"""
Saved-card vault.

Card numbers are stored encrypted (app.core.encryption) and only ever leave
this module masked as ****-****-****-L4. get_card_for_payment is the single
internal path to the plaintext and is used by the checkout payment step.
"""

import logging
import uuid

from sqlalchemy.orm import Session

from app.core import encryption
from app.core.errors import CardVaultError, ConflictError, NotFoundError, ValidationError
from app.core.timeutil import isoformat
from app.models.user import SavedCard, User
from app.services import card_validation
from app.services.audit_service import log_audit

logger = logging.getLogger(__name__)


def _get_user(db: Session, user_id: str) -> User:
    user = db.get(User, user_id)
    if not user:
        raise NotFoundError("User")
    return user


def _find_card(user: User, card_id: str) -> SavedCard:
    if not card_id:
        raise ValidationError("Card ID is required", field="cardId")
    for card in user.saved_cards:
        if card.id == card_id:
            return card
    raise NotFoundError("Credit card")


def _plain_number(card: SavedCard) -> str:
    if not encryption.is_encrypted(card.card_number):
        return card_validation.clean_pan(card.card_number)
    try:
        return encryption.decrypt(card.card_number)
    except encryption.DecryptionError:
        logger.error("Could not decrypt saved card %s", card.id)
        raise CardVaultError() from None


def _seal(user: User) -> None:
    """Encrypt any card still stored as plaintext before it is written back."""
    for card in user.saved_cards:
        if card.card_number and not encryption.is_encrypted(card.card_number):
            digits = card_validation.clean_pan(card.card_number)
            card.last4 = digits[-4:]
            card.card_number = encryption.encrypt(digits)


def masked(card: SavedCard) -> dict:
    last4 = _plain_number(card)[-4:]
    return {
        "cardId": card.id,
        "cardHolderName": card.holder_name,
        "expiryDate": card.expiry_date,
        "last4Digits": last4,
        "zipCode": card.zip_code,
        "cardNumber": encryption.mask_card_number(last4),
        "addedAt": isoformat(card.added_at),
    }


def _validated(pan: str, holder: str, expiry: str, zip_code: str) -> card_validation.CardDetails:
    if not pan or not holder or not expiry or not zip_code:
        raise ValidationError("Card number, holder name, expiry date, and ZIP code are required")
    return card_validation.validate_new_card(pan, holder, expiry, zip_code)


def _ensure_unique(user: User, details: card_validation.CardDetails, skip_card_id: str | None = None) -> None:
    for card in user.saved_cards:
        if card.id == skip_card_id:
            continue
        if card.last4 == details.last4 and card.expiry_date == details.expiry:
            raise ConflictError("This card is already saved", field="cardNumber")


def add_card(db: Session, user_id: str, pan: str, holder: str, expiry: str, zip_code: str) -> dict:
    details = _validated(pan, holder, expiry, zip_code)
    user = _get_user(db, user_id)
    _ensure_unique(user, details)

    card = SavedCard(
        id="CARD-" + uuid.uuid4().hex[:12].upper(),
        user_id=user.id,
        card_number=encryption.encrypt(details.pan),
        holder_name=details.holder,
        expiry_date=details.expiry,
        last4=details.last4,
        zip_code=details.zip_code,
    )
    user.saved_cards.append(card)
    _seal(user)
    log_audit(db, actor_user_id=user_id, action="card.added", entity_type="card", entity_id=card.id, details={"last4": card.last4})
    db.commit()
    logger.info("Saved card %s added for user %s (last4=%s)", card.id, user_id, card.last4)
    return masked(card)


def list_cards(db: Session, user_id: str) -> list[dict]:
    user = _get_user(db, user_id)
    return [masked(c) for c in user.saved_cards]


def get_card_for_payment(db: Session, user_id: str, card_id: str) -> card_validation.CardDetails:
    """Plaintext card for payment validation. Never serialise the result."""
    user = _get_user(db, user_id)
    card = _find_card(user, card_id)
    return card_validation.CardDetails(
        pan=_plain_number(card),
        holder=card.holder_name,
        expiry=card.expiry_date,
        zip_code=card.zip_code,
    )


def update_card(db: Session, user_id: str, card_id: str, pan: str, holder: str, expiry: str, zip_code: str) -> dict:
    details = _validated(pan, holder, expiry, zip_code)
    user = _get_user(db, user_id)
    card = _find_card(user, card_id)
    _ensure_unique(user, details, skip_card_id=card.id)

    card.card_number = details.pan  # sealed below
    card.holder_name = details.holder
    card.expiry_date = details.expiry
    card.zip_code = details.zip_code
    card.last4 = details.last4
    _seal(user)
    log_audit(db, actor_user_id=user_id, action="card.updated", entity_type="card", entity_id=card.id, details={"last4": card.last4})
    db.commit()
    logger.info("Saved card %s updated for user %s", card.id, user_id)
    return masked(card)


def delete_card(db: Session, user_id: str, card_id: str) -> None:
    user = _get_user(db, user_id)
    card = _find_card(user, card_id)
    user.saved_cards.remove(card)
    log_audit(db, actor_user_id=user_id, action="card.deleted", entity_type="card", entity_id=card_id)
    db.commit()
    logger.info("Saved card %s deleted for user %s", card_id, user_id)
