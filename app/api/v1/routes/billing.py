from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from app.api.deps import INTERNAL_ROLES, Principal, ensure_self_or_admin, get_current_principal, require_roles
from app.core.errors import AuthorizationError
from app.db.session import get_ledger_db
from app.models.enums import BillStatus
from app.schemas.billing import BillListOut, BillOut, InvoiceOut
from app.services import billing_service

router = APIRouter(prefix="/billing", tags=["billing"])


def _owned(principal: Principal, bill: dict) -> dict:
    if bill["userId"] != principal.user_id and principal.role not in INTERNAL_ROLES:
        raise AuthorizationError("You can only view your own bills")
    return bill


@router.get("/search", response_model=BillListOut)
def search_bills(
    startDate: Optional[datetime] = None,
    endDate: Optional[datetime] = None,
    month: Optional[int] = None,
    year: Optional[int] = None,
    userId: Optional[str] = None,
    status: Optional[BillStatus] = None,
    principal: Principal = Depends(require_roles(*INTERNAL_ROLES)),
    ledger: Session = Depends(get_ledger_db),
):
    bills = billing_service.search_bills(
        ledger, start_date=startDate, end_date=endDate, month=month, year=year, user_id=userId, status=status
    )
    return BillListOut(count=len(bills), bills=bills)


@router.get("/user/{user_id}", response_model=BillListOut)
def user_bills(
    user_id: str,
    principal: Principal = Depends(get_current_principal),
    ledger: Session = Depends(get_ledger_db),
):
    ensure_self_or_admin(principal, user_id)
    bills = billing_service.bills_for_user(ledger, user_id)
    return BillListOut(count=len(bills), bills=bills)


@router.get("/{billing_id}/invoice", response_model=InvoiceOut)
def invoice(
    billing_id: str,
    principal: Principal = Depends(get_current_principal),
    ledger: Session = Depends(get_ledger_db),
):
    inv = billing_service.get_invoice(ledger, billing_id)
    _owned(principal, {"userId": inv["user"]["userId"]})
    return inv


@router.get("/{billing_id}", response_model=BillOut)
def get_bill(
    billing_id: str,
    principal: Principal = Depends(get_current_principal),
    ledger: Session = Depends(get_ledger_db),
):
    return _owned(principal, billing_service.get_bill(ledger, billing_id))
