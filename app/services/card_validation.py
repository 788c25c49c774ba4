"""Card field checks shared by the card vault and the payment step of checkout."""

import calendar
import re
from dataclasses import dataclass
from datetime import datetime, timezone

from app.core.config import settings
from app.core.errors import ValidationError
from app.core.timeutil import utcnow

# Recognised for development; they skip the Luhn check while ACCEPT_TEST_CARDS is on.
TEST_CARD_NUMBERS = frozenset({
    "1111111111111111",
    "4111111111111111",
    "5555555555554444",
    "4242424242424242",
    "4000000000000002",
    "4000000000009995",
})

EXPIRY_RE = re.compile(r"^(0[1-9]|1[0-2])/(\d{2})$")
ZIP_RE = re.compile(r"^\d{5}(-\d{4})?$")
CVV_RE = re.compile(r"^\d{3,4}$")


@dataclass
class CardDetails:
    pan: str
    holder: str
    expiry: str
    zip_code: str | None

    @property
    def last4(self) -> str:
        return self.pan[-4:]


def clean_pan(pan: str | None) -> str:
    return re.sub(r"\s+|-", "", pan or "")


def luhn_valid(digits: str) -> bool:
    total = 0
    for i, ch in enumerate(reversed(digits)):
        d = int(ch)
        if i % 2 == 1:
            d *= 2
            if d > 9:
                d -= 9
        total += d
    return total % 10 == 0


def is_test_card(pan: str) -> bool:
    return bool(settings.ACCEPT_TEST_CARDS) and pan in TEST_CARD_NUMBERS


def validate_pan(pan: str | None) -> str:
    digits = clean_pan(pan)
    if not digits.isdigit() or not 13 <= len(digits) <= 19:
        raise ValidationError("Invalid card number length", field="cardNumber")
    if not is_test_card(digits) and not luhn_valid(digits):
        raise ValidationError("Invalid card number (checksum failed)", field="cardNumber")
    return digits


def expiry_end(expiry: str) -> datetime:
    """Last instant of the expiry month, in UTC."""
    m = EXPIRY_RE.match(expiry or "")
    if not m:
        raise ValidationError("Expiry date must be in MM/YY format", field="expiryDate")
    month, year = int(m.group(1)), 2000 + int(m.group(2))
    last_day = calendar.monthrange(year, month)[1]
    return datetime(year, month, last_day, 23, 59, 59, 999999, tzinfo=timezone.utc)


def validate_expiry(expiry: str | None, now: datetime | None = None, message: str = "Card has expired") -> str:
    expiry = (expiry or "").strip()
    if expiry_end(expiry) < (now or utcnow()):
        raise ValidationError(message, field="expiryDate")
    return expiry


def validate_holder(holder: str | None) -> str:
    name = (holder or "").strip()
    if not 2 <= len(name) <= 100:
        raise ValidationError("Card holder name must be between 2 and 100 characters", field="cardHolderName")
    return name


def validate_zip(zip_code: str | None) -> str:
    z = (zip_code or "").strip()
    if not ZIP_RE.match(z):
        raise ValidationError("Invalid ZIP code format. Must be ##### or #####-####", field="zipCode")
    return z


def validate_cvv(cvv: str | None) -> str:
    if not cvv or not CVV_RE.match(str(cvv)):
        raise ValidationError("CVV is required and must be 3-4 digits", field="cvv")
    return str(cvv)


def zip5(zip_code: str | None) -> str:
    return re.sub(r"\D", "", zip_code or "")[:5]


def validate_new_card(pan: str | None, holder: str | None, expiry: str | None, zip_code: str | None) -> CardDetails:
    return CardDetails(
        pan=validate_pan(pan),
        expiry=validate_expiry(expiry),
        holder=validate_holder(holder),
        zip_code=validate_zip(zip_code),
    )
