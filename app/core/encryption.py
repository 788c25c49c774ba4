"""
Card number encryption.

AES-256-GCM with a per-record 16-byte IV and 64-byte salt. The content key is
derived from CARD_ENCRYPTION_KEY with PBKDF2-SHA512 (100,000 iterations).
Stored form: hex(salt):hex(iv):hex(tag):hex(ciphertext).
"""

import os
import re

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from app.core.config import settings

IV_LENGTH = 16
SALT_LENGTH = 64
TAG_LENGTH = 16
KEY_LENGTH = 32
PBKDF2_ITERATIONS = 100_000


class DecryptionError(Exception):
    pass


def _derive_key(salt: bytes, secret: str | None = None) -> bytes:
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA512(),
        length=KEY_LENGTH,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive((secret or settings.CARD_ENCRYPTION_KEY).encode("utf-8"))


def is_encrypted(value: str | None) -> bool:
    """Stored values without the ':' separator are legacy plaintext."""
    return bool(value) and ":" in value


def encrypt(plaintext: str, secret: str | None = None) -> str:
    if not plaintext:
        raise ValueError("nothing to encrypt")
    salt = os.urandom(SALT_LENGTH)
    iv = os.urandom(IV_LENGTH)
    sealed = AESGCM(_derive_key(salt, secret)).encrypt(iv, plaintext.encode("utf-8"), None)
    # AESGCM appends the tag to the ciphertext
    ct, tag = sealed[:-TAG_LENGTH], sealed[-TAG_LENGTH:]
    return ":".join(part.hex() for part in (salt, iv, tag, ct))


def decrypt(stored: str, secret: str | None = None) -> str:
    parts = (stored or "").split(":")
    if len(parts) != 4:
        raise DecryptionError("invalid encrypted data format")
    try:
        salt, iv, tag, ct = (bytes.fromhex(p) for p in parts)
        plain = AESGCM(_derive_key(salt, secret)).decrypt(iv, ct + tag, None)
    except (ValueError, InvalidTag) as e:
        raise DecryptionError("decryption failed") from e
    return plain.decode("utf-8")


def mask_card_number(card_number: str | None) -> str:
    digits = re.sub(r"\D", "", card_number or "")
    if len(digits) < 4:
        return "****-****-****-****"
    return "****-****-****-" + digits[-4:]
