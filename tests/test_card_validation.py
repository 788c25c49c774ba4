from datetime import datetime, timezone

import pytest

from app.core import encryption
from app.core.config import settings
from app.core.errors import ValidationError
from app.services import card_validation


def test_luhn_accepts_valid_and_rejects_invalid():
    assert card_validation.luhn_valid("4012888888881881")
    assert card_validation.luhn_valid("378282246310005")
    assert not card_validation.luhn_valid("4012888888881882")


def test_validate_pan_strips_spaces_and_dashes():
    assert card_validation.validate_pan("4012 8888-8888 1881") == "4012888888881881"


def test_validate_pan_length():
    with pytest.raises(ValidationError) as exc:
        card_validation.validate_pan("4012")
    assert exc.value.field == "cardNumber"


def test_validate_pan_checksum_failure():
    with pytest.raises(ValidationError, match="checksum"):
        card_validation.validate_pan("4012888888881882")


def test_test_card_bypasses_luhn_when_enabled(monkeypatch):
    monkeypatch.setattr(settings, "ACCEPT_TEST_CARDS", True)
    assert card_validation.validate_pan("1111111111111111") == "1111111111111111"


def test_test_card_rejected_when_disabled(monkeypatch):
    monkeypatch.setattr(settings, "ACCEPT_TEST_CARDS", False)
    with pytest.raises(ValidationError, match="checksum"):
        card_validation.validate_pan("1111111111111111")


def test_expiry_valid_through_end_of_month():
    now = datetime(2030, 5, 31, 23, 0, tzinfo=timezone.utc)
    assert card_validation.validate_expiry("05/30", now=now) == "05/30"
    with pytest.raises(ValidationError, match="expired"):
        card_validation.validate_expiry("04/30", now=now)


def test_expiry_format():
    with pytest.raises(ValidationError, match="MM/YY"):
        card_validation.validate_expiry("13/30")
    with pytest.raises(ValidationError, match="MM/YY"):
        card_validation.validate_expiry("2030-01")


@pytest.mark.parametrize("holder", ["A", "x" * 101, "  "])
def test_holder_length(holder):
    with pytest.raises(ValidationError):
        card_validation.validate_holder(holder)


def test_zip_and_cvv():
    assert card_validation.validate_zip("10001") == "10001"
    assert card_validation.validate_zip("10001-1234") == "10001-1234"
    with pytest.raises(ValidationError):
        card_validation.validate_zip("1000")
    assert card_validation.validate_cvv("1234") == "1234"
    with pytest.raises(ValidationError):
        card_validation.validate_cvv("12")
    assert card_validation.zip5("10001-1234") == "10001"


def test_encryption_round_trip_and_salted():
    a = encryption.encrypt("4012888888881881")
    b = encryption.encrypt("4012888888881881")
    assert a != b
    assert a.count(":") == 3
    assert encryption.decrypt(a) == "4012888888881881"


def test_decrypt_with_wrong_key_fails():
    stored = encryption.encrypt("4012888888881881")
    with pytest.raises(encryption.DecryptionError):
        encryption.decrypt(stored, secret="some-other-key")


def test_mask_card_number():
    assert encryption.mask_card_number("4012888888881881") == "****-****-****-1881"
    assert encryption.mask_card_number("12") == "****-****-****-****"
