"""
Billing ledger.

One row per booking; all rows written by one payment share a billing_id and
are presented on read as a single bill whose total is the sum of its rows.
"""

import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.core.errors import NotFoundError, TransactionError, ValidationError
from app.core.timeutil import as_utc, isoformat, utcnow
from app.models.bill import Bill
from app.models.booking import Booking
from app.models.enums import BillStatus, BookingStatus, ListingType
from app.services.card_validation import CardDetails

logger = logging.getLogger(__name__)


def make_billing_id() -> str:
    return "BILL-" + uuid.uuid4().hex[:16].upper()


def _booking_terms(b: Booking) -> dict:
    return {
        "bookingId": b.id,
        "listingId": b.listing_id,
        "listingType": ListingType(b.listing_type).value,
        "quantity": b.quantity,
        "subType": b.sub_type,
        "travelDate": isoformat(b.travel_date),
        "checkInDate": isoformat(b.check_in),
        "checkOutDate": isoformat(b.check_out),
        "totalAmount": float(b.total_amount),
        "bookingDate": isoformat(b.created_at),
    }


def write_bills(ledger: Session, billing_id: str, user_id: str, checkout_id: str, bookings: list[Booking],
                payment_method: str, card: CardDetails) -> list[Bill]:
    """Insert one Completed row per booking in a single transaction."""
    now = utcnow()
    shared = {
        "checkoutId": checkout_id,
        "cardHolderName": card.holder,
        "last4Digits": card.last4,
        "expiryDate": card.expiry,
        "zipCode": card.zip_code,
        "bookingCount": len(bookings),
        "totalAmount": round(sum(float(b.total_amount) for b in bookings), 2),
    }
    rows = [
        Bill(
            billing_id=billing_id,
            booking_id=b.id,
            user_id=user_id,
            booking_type=b.listing_type,
            checkout_id=checkout_id,
            transaction_date=now,
            total_amount=float(b.total_amount),
            payment_method=payment_method,
            transaction_status=BillStatus.COMPLETED,
            invoice_details={**shared, "booking": _booking_terms(b)},
        )
        for b in bookings
    ]
    try:
        ledger.add_all(rows)
        ledger.commit()
    except SQLAlchemyError as e:
        ledger.rollback()
        logger.error("Ledger write failed for %s: %s", billing_id, e)
        raise TransactionError("Billing record could not be written") from e

    logger.info("Ledger %s written: %d row(s), total=%.2f", billing_id, len(rows), shared["totalAmount"])
    return rows


def mark_failed(ledger: Session, billing_id: str) -> int:
    result = ledger.execute(
        update(Bill)
        .where(Bill.billing_id == billing_id)
        .values(transaction_status=BillStatus.FAILED, updated_at=utcnow())
    )
    ledger.commit()
    logger.info("Ledger %s marked Failed (%d row(s))", billing_id, result.rowcount)
    return result.rowcount


def _line_items(rows: list[Bill]) -> list[dict]:
    # Hotel rooms of one property collapse into one line; flights and cars are one line each.
    lines: dict[str, dict] = {}
    for row in rows:
        terms = (row.invoice_details or {}).get("booking", {})
        listing_id = terms.get("listingId")
        kind = ListingType(row.booking_type)
        key = f"hotel:{listing_id}" if kind == ListingType.HOTEL and listing_id else f"booking:{row.booking_id}"
        line = lines.setdefault(key, {
            "listingId": listing_id,
            "listingType": kind.value,
            "bookingIds": [],
            "subTypes": [],
            "amount": 0.0,
        })
        line["bookingIds"].append(row.booking_id)
        if terms.get("subType"):
            line["subTypes"].append(terms["subType"])
        line["amount"] = round(line["amount"] + float(row.total_amount), 2)
    return list(lines.values())


def _aggregate(rows: list[Bill], detailed: bool = True) -> dict:
    first = rows[0]
    bill = {
        "billingId": first.billing_id,
        "userId": first.user_id,
        "checkoutId": first.checkout_id,
        "transactionDate": isoformat(first.transaction_date),
        "totalAmount": round(sum(float(r.total_amount) for r in rows), 2),
        "paymentMethod": first.payment_method,
        "transactionStatus": BillStatus(first.transaction_status),
        "bookingIds": [r.booking_id for r in rows],
        "bookingCount": len(rows),
    }
    if detailed:
        bill["bookings"] = [
            (r.invoice_details or {}).get("booking")
            or {"bookingId": r.booking_id, "listingType": ListingType(r.booking_type).value}
            for r in rows
        ]
        bill["lineItems"] = _line_items(rows)
        shared = dict(first.invoice_details or {})
        shared.pop("booking", None)
        bill["invoiceDetails"] = shared
    return bill


def _group(rows) -> list[dict]:
    grouped: dict[str, list[Bill]] = {}
    for row in rows:
        grouped.setdefault(row.billing_id, []).append(row)
    return [_aggregate(r, detailed=False) for r in grouped.values()]


def _rows_for(ledger: Session, billing_id: str) -> list[Bill]:
    rows = list(ledger.execute(
        select(Bill).where(Bill.billing_id == billing_id).order_by(Bill.transaction_date, Bill.booking_id)
    ).scalars())
    if not rows:
        raise NotFoundError("Billing record")
    return rows


def get_bill(ledger: Session, billing_id: str) -> dict:
    return _aggregate(_rows_for(ledger, billing_id))


def bills_for_user(ledger: Session, user_id: str) -> list[dict]:
    rows = ledger.execute(
        select(Bill).where(Bill.user_id == user_id).order_by(Bill.transaction_date.desc(), Bill.booking_id)
    ).scalars()
    return _group(rows)


def month_range(month: int, year: int) -> tuple[datetime, datetime]:
    if not 1 <= month <= 12:
        raise ValidationError("Month must be between 1 and 12", field="month")
    start = datetime(year, month, 1, tzinfo=timezone.utc)
    end = datetime(year + 1, 1, 1, tzinfo=timezone.utc) if month == 12 else start.replace(month=month + 1)
    return start, end


def search_bills(ledger: Session, start_date: datetime | None = None, end_date: datetime | None = None,
                 month: int | None = None, year: int | None = None, user_id: str | None = None,
                 status: BillStatus | None = None) -> list[dict]:
    stmt = select(Bill)
    if start_date and end_date:
        stmt = stmt.where(Bill.transaction_date >= as_utc(start_date), Bill.transaction_date <= as_utc(end_date))
    elif month and year:
        start, end = month_range(month, year)
        stmt = stmt.where(Bill.transaction_date >= start, Bill.transaction_date < end)
    if user_id:
        stmt = stmt.where(Bill.user_id == user_id)
    if status:
        stmt = stmt.where(Bill.transaction_status == status)
    rows = ledger.execute(stmt.order_by(Bill.transaction_date.desc(), Bill.booking_id)).scalars()
    return _group(rows)


def get_invoice(ledger: Session, billing_id: str) -> dict:
    rows = _rows_for(ledger, billing_id)
    first = rows[0]
    total = round(sum(float(r.total_amount) for r in rows), 2)
    details = dict(first.invoice_details or {})
    details.pop("booking", None)
    return {
        "billingId": first.billing_id,
        "invoiceNumber": f"INV-{first.billing_id}",
        "transactionDate": isoformat(first.transaction_date),
        "user": {"userId": first.user_id},
        "bookings": [
            {"bookingId": r.booking_id, "type": ListingType(r.booking_type).value, "amount": float(r.total_amount)}
            for r in rows
        ],
        "payment": {
            "method": first.payment_method,
            "amount": total,
            "status": BillStatus(first.transaction_status).value,
        },
        "details": details,
    }


def find_orphaned_completed_rows(ledger: Session, db: Session) -> list[dict]:
    """Completed ledger rows whose booking is missing or never reached Confirmed.

    A cancelled booking keeps its Completed row (no refunds), so Cancelled is not an orphan.
    """
    rows = list(ledger.execute(select(Bill).where(Bill.transaction_status == BillStatus.COMPLETED)).scalars())
    if not rows:
        return []
    bookings = {
        b.id: b for b in db.execute(select(Booking).where(Booking.id.in_([r.booking_id for r in rows]))).scalars()
    }
    orphans = []
    for r in rows:
        b = bookings.get(r.booking_id)
        if b is None or b.status not in (BookingStatus.CONFIRMED, BookingStatus.CANCELLED) or b.billing_id != r.billing_id:
            orphans.append({
                "billingId": r.billing_id,
                "bookingId": r.booking_id,
                "bookingStatus": BookingStatus(b.status).value if b else None,
            })
    if orphans:
        logger.warning("Found %d Completed ledger row(s) without a confirmed booking", len(orphans))
    return orphans
