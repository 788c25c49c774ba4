from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from app.core.config import settings


class Base(DeclarativeBase):
    pass


def make_engine(url: str):
    kwargs = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
    return create_engine(url, **kwargs)


# Booking/listing/user store
engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Billing ledger: a separate engine so ledger commits are independent of booking transactions
billing_engine = engine if settings.BILLING_DATABASE_URL == settings.DATABASE_URL else make_engine(settings.BILLING_DATABASE_URL)
BillingSessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=billing_engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def get_ledger_db():
    db = BillingSessionLocal()
    try:
        yield db
    finally:
        db.close()
