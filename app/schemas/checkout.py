from typing import List, Optional

from pydantic import AliasChoices, BaseModel, Field

from app.schemas.booking import BookingOut, CartItem


class CheckoutRequest(BaseModel):
    userId: str = Field(min_length=1)
    cartItems: List[CartItem] = Field(min_length=1)


class CheckoutOut(BaseModel):
    checkoutId: str
    userId: str
    bookings: List[BookingOut]
    totalAmount: float


class CardData(BaseModel):
    # Either a saved card (cardId + cvv + zipCode) or a new card (pan, holder, expiry, cvv, zipCode).
    # Field rules are checked by the payment validator so failures can compensate the checkout.
    cardId: Optional[str] = None
    pan: Optional[str] = Field(default=None, validation_alias=AliasChoices("pan", "cardNumber"))
    holder: Optional[str] = Field(default=None, validation_alias=AliasChoices("holder", "cardHolderName"))
    expiry: Optional[str] = Field(default=None, validation_alias=AliasChoices("expiry", "expiryDate"))
    cvv: Optional[str] = None
    zipCode: Optional[str] = None


class PaymentRequest(BaseModel):
    checkoutId: str = Field(min_length=1)
    userId: str = Field(min_length=1)
    bookingIds: List[str] = Field(min_length=1)
    paymentMethod: str = "Credit Card"
    cardData: CardData


class PaymentOut(BaseModel):
    billingId: str
    checkoutId: str
    userId: str
    totalAmount: float
    bookings: List[BookingOut]
