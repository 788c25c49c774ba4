import re

import pytest

from app.core import encryption
from app.core.errors import CardVaultError, ConflictError, NotFoundError
from app.models.user import SavedCard
from app.services import card_vault

from conftest import add_user, auth

MASK = re.compile(r"^\*{4}-\*{4}-\*{4}-\d{4}$")
CARD = {"cardNumber": "4012888888881881", "cardHolderName": "Ada Lovelace", "expiryDate": "12/35", "zipCode": "10001"}


def test_add_card_stores_ciphertext_and_returns_mask(client, db):
    add_user(db, "USR-1")
    r = client.post("/api/v1/users/USR-1/cards", json=CARD, headers=auth("USR-1"))
    assert r.status_code == 201
    body = r.json()
    assert MASK.match(body["cardNumber"])
    assert body["last4Digits"] == "1881"
    assert "4012888888881881" not in r.text

    stored = db.query(SavedCard).one()
    assert encryption.is_encrypted(stored.card_number)
    assert encryption.decrypt(stored.card_number) == "4012888888881881"


def test_list_cards_is_masked(client, db):
    add_user(db, "USR-1")
    client.post("/api/v1/users/USR-1/cards", json=CARD, headers=auth("USR-1"))
    r = client.get("/api/v1/users/USR-1/cards", headers=auth("USR-1"))
    assert r.status_code == 200
    cards = r.json()["cards"]
    assert len(cards) == 1
    assert all(MASK.match(c["cardNumber"]) for c in cards)
    assert "4012888888881881" not in r.text


def test_duplicate_card_conflicts(client, db):
    add_user(db, "USR-1")
    client.post("/api/v1/users/USR-1/cards", json=CARD, headers=auth("USR-1"))
    r = client.post("/api/v1/users/USR-1/cards", json=CARD, headers=auth("USR-1"))
    assert r.status_code == 409
    assert r.json()["error"]["code"] == "CONFLICT_ERROR"


def test_invalid_card_is_rejected_with_field(client, db):
    add_user(db, "USR-1")
    r = client.post("/api/v1/users/USR-1/cards", json={**CARD, "cardNumber": "4012888888881882"},
                    headers=auth("USR-1"))
    assert r.status_code == 400
    body = r.json()
    assert body["success"] is False
    assert body["error"]["field"] == "cardNumber"


def test_cannot_touch_another_users_cards(client, db):
    add_user(db, "USR-1")
    r = client.get("/api/v1/users/USR-1/cards", headers=auth("USR-2"))
    assert r.status_code == 403
    r = client.get("/api/v1/users/USR-1/cards", headers=auth("ADMIN-1", role="admin"))
    assert r.status_code == 200


def test_missing_token_is_401(client, db):
    add_user(db, "USR-1")
    r = client.get("/api/v1/users/USR-1/cards")
    assert r.status_code == 401
    assert r.json()["error"]["code"] == "AUTHENTICATION_ERROR"


def test_update_and_delete_card(client, db):
    add_user(db, "USR-1")
    card_id = client.post("/api/v1/users/USR-1/cards", json=CARD, headers=auth("USR-1")).json()["cardId"]

    r = client.put("/api/v1/users/USR-1/cards", headers=auth("USR-1"),
                   json={**CARD, "cardId": card_id, "cardNumber": "378282246310005", "zipCode": "94102"})
    assert r.status_code == 200
    assert r.json()["cardNumber"] == "****-****-****-0005"
    assert r.json()["zipCode"] == "94102"

    r = client.request("DELETE", "/api/v1/users/USR-1/cards", headers=auth("USR-1"), json={"cardId": card_id})
    assert r.status_code == 200
    assert db.query(SavedCard).count() == 0

    r = client.request("DELETE", "/api/v1/users/USR-1/cards", headers=auth("USR-1"), json={"cardId": card_id})
    assert r.status_code == 404


def test_legacy_plaintext_card_is_sealed_on_next_save(db):
    user = add_user(db, "USR-1")
    user.saved_cards.append(SavedCard(id="CARD-OLD", card_number="4111 1111 1111 1111", holder_name="Old Card",
                                      expiry_date="12/35", last4="1111", zip_code="10001"))
    db.commit()

    listed = card_vault.list_cards(db, "USR-1")
    assert listed[0]["cardNumber"] == "****-****-****-1111"

    card_vault.add_card(db, "USR-1", "4012888888881881", "Ada Lovelace", "12/35", "10001")
    legacy = db.get(SavedCard, "CARD-OLD")
    assert encryption.is_encrypted(legacy.card_number)
    assert encryption.decrypt(legacy.card_number) == "4111111111111111"


def test_undecryptable_card_raises_vault_error(db):
    user = add_user(db, "USR-1")
    user.saved_cards.append(SavedCard(id="CARD-BAD", card_number=encryption.encrypt("4012888888881881", secret="other"),
                                      holder_name="Ada", expiry_date="12/35", last4="1881", zip_code="10001"))
    db.commit()
    with pytest.raises(CardVaultError):
        card_vault.get_card_for_payment(db, "USR-1", "CARD-BAD")


def test_unknown_user_and_card(db):
    with pytest.raises(NotFoundError):
        card_vault.list_cards(db, "NOPE")
    add_user(db, "USR-1")
    with pytest.raises(NotFoundError):
        card_vault.get_card_for_payment(db, "USR-1", "CARD-MISSING")


def test_duplicate_detection_is_by_last4_and_expiry(db):
    add_user(db, "USR-1")
    card_vault.add_card(db, "USR-1", "4012888888881881", "Ada Lovelace", "12/35", "10001")
    card_vault.add_card(db, "USR-1", "4012888888881881", "Ada Lovelace", "11/35", "10001")
    with pytest.raises(ConflictError):
        card_vault.add_card(db, "USR-1", "4012 8888 8888 1881", "Ada L", "11/35", "10001")
