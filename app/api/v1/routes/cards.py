from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import Principal, ensure_self_or_admin, get_current_principal
from app.db.session import get_db
from app.schemas.cards import CardCreate, CardDelete, CardListOut, CardUpdate, MaskedCardOut
from app.services import card_vault

router = APIRouter(prefix="/users/{user_id}/cards", tags=["cards"])


@router.post("", response_model=MaskedCardOut, status_code=201)
def add_card(
    user_id: str,
    body: CardCreate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    ensure_self_or_admin(principal, user_id)
    return card_vault.add_card(db, user_id, body.cardNumber, body.cardHolderName, body.expiryDate, body.zipCode)


@router.get("", response_model=CardListOut)
def list_cards(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    ensure_self_or_admin(principal, user_id)
    return CardListOut(cards=card_vault.list_cards(db, user_id))


@router.put("", response_model=MaskedCardOut)
def update_card(
    user_id: str,
    body: CardUpdate,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    ensure_self_or_admin(principal, user_id)
    return card_vault.update_card(
        db, user_id, body.cardId, body.cardNumber, body.cardHolderName, body.expiryDate, body.zipCode
    )


@router.delete("")
def delete_card(
    user_id: str,
    body: CardDelete,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    ensure_self_or_admin(principal, user_id)
    card_vault.delete_card(db, user_id, body.cardId)
    return {"ok": True, "cardId": body.cardId}
