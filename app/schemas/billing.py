from typing import List, Optional
from pydantic import BaseModel

from app.models.enums import BillStatus


class BillLineItem(BaseModel):
    listingId: Optional[str] = None
    listingType: str
    bookingIds: List[str]
    subTypes: List[str] = []
    amount: float


class BillOut(BaseModel):
    billingId: str
    userId: str
    checkoutId: str
    transactionDate: Optional[str] = None
    totalAmount: float
    paymentMethod: str
    transactionStatus: BillStatus
    bookingIds: List[str]
    bookingCount: int
    bookings: List[dict] = []
    lineItems: List[BillLineItem] = []
    invoiceDetails: Optional[dict] = None


class BillListOut(BaseModel):
    count: int
    bills: List[BillOut]


class InvoiceOut(BaseModel):
    billingId: str
    invoiceNumber: str
    transactionDate: Optional[str] = None
    user: dict
    bookings: List[dict]
    payment: dict
    details: Optional[dict] = None
