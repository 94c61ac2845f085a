import threading
from datetime import datetime, timedelta, timezone

import bcrypt
import jwt
import pytest
from sqlalchemy import select
from sqlalchemy.exc import OperationalError

from civicpulse.config import settings
from civicpulse.database import session_scope
from civicpulse.errors import AccountNotFound, StorageUnavailable
from civicpulse.models.account import AccountEntry
from civicpulse.services import accounts as accounts_module
from civicpulse.services.accounts import account_store
from civicpulse.services.tokens import TokenError, create_reset_token, decode_reset_token


def _verified_token(client, delivery, identifier="user@example.com"):
    client.post("/api/auth/otp/request", json={"identifier": identifier})
    response = client.post(
        "/api/auth/otp/verify",
        json={"identifier": identifier, "code": delivery.last_code},
    )
    return response.json()["reset_token"]


def _stored_account(email="user@example.com"):
    with session_scope() as session:
        return session.execute(
            select(AccountEntry).where(AccountEntry.email == email)
        ).scalar_one()


def _password_matches(password, email="user@example.com"):
    stored = _stored_account(email).password_hash
    return stored is not None and bcrypt.checkpw(
        password.encode("utf-8"), stored.encode("ascii")
    )


def _reset(client, token, password):
    return client.post(
        "/api/auth/password/reset",
        json={"reset_token": token, "new_password": password},
    )


def test_reset_token_round_trip():
    token = create_reset_token("user@example.com", 3)
    data = decode_reset_token(token)
    assert data.identifier == "user@example.com"
    assert data.version == 3


def test_reset_token_rejects_other_types():
    token = jwt.encode(
        {"sub": "user@example.com", "type": "access", "ver": 0, "iat": 0, "exp": 4102444800},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(TokenError, match="Invalid token type"):
        decode_reset_token(token)


def test_reset_token_requires_version():
    token = jwt.encode(
        {"sub": "user@example.com", "type": "password_reset", "exp": 4102444800},
        settings.jwt_secret,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(TokenError, match="version"):
        decode_reset_token(token)


def test_reset_token_expires():
    issued = datetime.now(timezone.utc) - timedelta(minutes=settings.reset_token_expire_minutes + 1)
    token = create_reset_token("user@example.com", 0, now=issued)
    with pytest.raises(TokenError, match="expired"):
        decode_reset_token(token)


def test_password_reset_sets_password_once(client, delivery, account):
    token = _verified_token(client, delivery)

    response = _reset(client, token, "new-secret-pass")
    assert response.status_code == 200
    assert response.json() == {"ok": True, "message": "Password updated"}
    assert _password_matches("new-secret-pass")
    assert not _password_matches("wrong-pass")
    assert _stored_account().password_version == 1

    reused = _reset(client, token, "another-pass")
    assert reused.status_code == 401
    assert reused.json() == {"detail": "Reset token has already been used"}
    assert _password_matches("new-secret-pass")


def test_token_issued_right_after_reset_is_accepted(client, delivery, account):
    # Both tokens fall inside the same second; only the version tells them apart.
    first = _verified_token(client, delivery)
    assert _reset(client, first, "first-secret-pass").status_code == 200

    second = _verified_token(client, delivery)
    response = _reset(client, second, "second-secret-pass")

    assert response.status_code == 200
    assert _password_matches("second-secret-pass")
    assert _stored_account().password_version == 2


def test_outstanding_token_is_void_after_another_reset(client, delivery, account):
    older = _verified_token(client, delivery)
    newer = _verified_token(client, delivery)
    assert _reset(client, newer, "newer-secret-pass").status_code == 200

    assert _reset(client, older, "older-secret-pass").status_code == 401
    assert _password_matches("newer-secret-pass")


def test_concurrent_resets_with_one_token_succeed_once(account):
    workers = 6
    barrier = threading.Barrier(workers)
    outcomes = []
    lock = threading.Lock()

    def attempt(index):
        barrier.wait()
        result = account_store.reset_password("user@example.com", f"password-{index}", 0)
        with lock:
            outcomes.append((index, result))

    threads = [threading.Thread(target=attempt, args=(i,)) for i in range(workers)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    winners = [index for index, result in outcomes if result]
    assert len(outcomes) == workers
    assert len(winners) == 1
    assert _password_matches(f"password-{winners[0]}")
    assert _stored_account().password_version == 1


def test_reset_password_unknown_account():
    with pytest.raises(AccountNotFound):
        account_store.reset_password("ghost@example.com", "new-secret-pass", 0)


def test_reset_password_storage_unavailable(account, monkeypatch):
    def broken_scope():
        raise OperationalError("UPDATE accounts", {}, Exception("connection refused"))

    monkeypatch.setattr(accounts_module, "session_scope", broken_scope)

    with pytest.raises(StorageUnavailable):
        account_store.reset_password("user@example.com", "new-secret-pass", 0)


def test_password_reset_rejects_garbage_token(client):
    response = _reset(client, "not-a-real-token", "new-secret-pass")
    assert response.status_code == 401


def test_password_reset_unknown_account(client):
    token = create_reset_token("ghost@example.com", 0)
    response = _reset(client, token, "new-secret-pass")
    assert response.status_code == 404


def test_password_reset_validates_length(client, account):
    token = create_reset_token("user@example.com", 0)
    response = _reset(client, token, "short")
    assert response.status_code == 422


def test_password_reset_limits_encoded_length(client, account):
    token = create_reset_token("user@example.com", 0)

    # 40 characters, 80 bytes in UTF-8.
    response = _reset(client, token, "é" * 40)

    assert response.status_code == 422
    assert _stored_account().password_hash is None

    assert _reset(client, token, "é" * 36).status_code == 200
    assert _password_matches("é" * 36)
