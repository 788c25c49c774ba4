import logging

from sqlalchemy.orm import Session
from sqlalchemy.exc import ProgrammingError
from app.db.session import BillingSessionLocal, SessionLocal
from app.services import billing_service, booking_service

logger = logging.getLogger(__name__)


def expire_holds(session_factory=SessionLocal):
    db: Session = session_factory()
    try:
        try:
            expired = booking_service.expire_stale_holds(db)
        except ProgrammingError:
            # DB not migrated yet; don't crash the worker.
            db.rollback()
            return {"skipped": True, "reason": "missing_tables"}
        return {"expired": len(expired)}
    finally:
        db.close()


def check_ledger(session_factory=SessionLocal, ledger_factory=BillingSessionLocal):
    db: Session = session_factory()
    ledger: Session = ledger_factory()
    try:
        try:
            orphans = billing_service.find_orphaned_completed_rows(ledger, db)
        except ProgrammingError:
            db.rollback()
            ledger.rollback()
            return {"skipped": True, "reason": "missing_tables"}
        for o in orphans:
            logger.error("Completed ledger row %s/%s has booking status %s",
                         o["billingId"], o["bookingId"], o["bookingStatus"])
        return {"orphaned": len(orphans)}
    finally:
        ledger.close()
        db.close()
