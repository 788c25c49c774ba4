from typing import List, Optional
from pydantic import BaseModel


class CardCreate(BaseModel):
    cardNumber: str
    cardHolderName: str
    expiryDate: str  # MM/YY
    zipCode: str


class CardUpdate(CardCreate):
    cardId: str


class CardDelete(BaseModel):
    cardId: str


class MaskedCardOut(BaseModel):
    """The only shape a saved card ever leaves the service in."""
    cardId: str
    cardHolderName: str
    expiryDate: str
    last4Digits: str
    zipCode: Optional[str] = None
    cardNumber: str  # ****-****-****-1234
    addedAt: Optional[str] = None


class CardListOut(BaseModel):
    cards: List[MaskedCardOut]
