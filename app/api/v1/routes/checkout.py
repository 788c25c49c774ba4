from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import Principal, ensure_self_or_admin, get_current_principal
from app.db.session import get_db, get_ledger_db
from app.schemas.booking import BookingOut
from app.schemas.checkout import CheckoutOut, CheckoutRequest, PaymentOut, PaymentRequest
from app.services import checkout_service

router = APIRouter(tags=["checkout"])


@router.post("/checkout", response_model=CheckoutOut, status_code=201)
def checkout(
    body: CheckoutRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
):
    ensure_self_or_admin(principal, body.userId)
    result = checkout_service.checkout(db, body.userId, body.cartItems)
    return CheckoutOut(
        checkoutId=result["checkoutId"],
        userId=result["userId"],
        bookings=[BookingOut.from_model(b) for b in result["bookings"]],
        totalAmount=result["totalAmount"],
    )


@router.post("/payment", response_model=PaymentOut)
def payment(
    body: PaymentRequest,
    principal: Principal = Depends(get_current_principal),
    db: Session = Depends(get_db),
    ledger: Session = Depends(get_ledger_db),
):
    ensure_self_or_admin(principal, body.userId)
    result = checkout_service.pay(db, ledger, body)
    return PaymentOut(
        billingId=result["billingId"],
        checkoutId=result["checkoutId"],
        userId=result["userId"],
        totalAmount=result["totalAmount"],
        bookings=[BookingOut.from_model(b) for b in result["bookings"]],
    )
