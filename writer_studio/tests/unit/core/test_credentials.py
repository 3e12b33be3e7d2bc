from datetime import datetime, timedelta, timezone
from unittest.mock import AsyncMock

import jwt
import pytest
from sqlalchemy.exc import OperationalError

from writer_studio.core.credentials import (
    TOKEN_REJECTED,
    CredentialVerifier,
    InMemoryUserStore,
    hash_password,
    verify_password,
)
from writer_studio.core.errors import BadRequestError, ServerError, UnauthorizedError

SECRET = "unit-secret"


@pytest.fixture
def store():
    store = InMemoryUserStore()
    store.add("alice", "correct", role="writer", writer_id=7, rounds=4)
    return store


@pytest.fixture
def verifier(store):
    return CredentialVerifier(store, secret_key=SECRET)


def test_hash_password_is_salted():
    first = hash_password("pw", rounds=4)
    second = hash_password("pw", rounds=4)
    assert first != second
    assert verify_password("pw", first)
    assert verify_password("pw", second)
    assert not verify_password("other", first)


def test_verify_password_rejects_non_bcrypt_hash():
    assert verify_password("correct", "correct") is False


@pytest.mark.asyncio
async def test_login_issues_token_valid_for_24_hours(verifier):
    response = await verifier.login("alice", "correct")

    assert response.success is True
    assert response.username == "alice"
    assert response.role == "writer"
    claims = jwt.decode(response.token, SECRET, algorithms=["HS256"])
    assert claims["exp"] - claims["iat"] == 24 * 3600
    assert claims["username"] == "alice"
    assert claims["role"] == "writer"
    assert claims["sub"] == "1"


@pytest.mark.asyncio
@pytest.mark.parametrize("username,password", [(None, "x"), ("alice", None), ("", ""), ("alice", "")])
async def test_login_requires_both_fields(verifier, username, password):
    with pytest.raises(BadRequestError) as exc_info:
        await verifier.login(username, password)
    assert exc_info.value.message == "Username and password required"


@pytest.mark.asyncio
async def test_login_failure_is_identical_for_unknown_user_and_wrong_password(verifier):
    with pytest.raises(UnauthorizedError) as unknown:
        await verifier.login("nobody", "correct")
    with pytest.raises(UnauthorizedError) as wrong:
        await verifier.login("alice", "wrong")

    assert unknown.value.message == wrong.value.message == "Invalid credentials"
    assert unknown.value.status_code == wrong.value.status_code == 401


@pytest.mark.asyncio
async def test_login_store_failure_is_server_error():
    store = AsyncMock()
    store.get_by_username.side_effect = OperationalError("SELECT", {}, Exception("connection refused"))
    verifier = CredentialVerifier(store, secret_key=SECRET)

    with pytest.raises(ServerError) as exc_info:
        await verifier.login("alice", "correct")
    assert exc_info.value.message == "Server error"


@pytest.mark.asyncio
async def test_verify_returns_profile_of_stored_record(verifier):
    token = (await verifier.login("alice", "correct")).token

    profile = await verifier.verify(token)

    assert profile.id == 1
    assert profile.username == "alice"
    assert profile.role == "writer"
    assert profile.writer_id == 7


@pytest.mark.asyncio
async def test_token_valid_until_expiry_then_rejected(verifier, store):
    alice = await store.get_by_username("alice")
    now = datetime.now(timezone.utc)

    almost_expired = verifier.issue_token(alice, issued_at=now - timedelta(hours=23, minutes=59))
    assert (await verifier.verify(almost_expired)).username == "alice"

    expired = verifier.issue_token(alice, issued_at=now - timedelta(hours=24, minutes=1))
    with pytest.raises(UnauthorizedError) as exc_info:
        await verifier.verify(expired)
    assert exc_info.value.message == TOKEN_REJECTED


@pytest.mark.asyncio
async def test_tampered_token_is_rejected(verifier):
    token = (await verifier.login("alice", "correct")).token
    header, payload, signature = token.split(".")
    tampered = ".".join([header, payload, signature[::-1]])

    with pytest.raises(UnauthorizedError):
        await verifier.verify(tampered)


@pytest.mark.asyncio
async def test_token_signed_with_other_key_is_rejected(store):
    foreign = CredentialVerifier(store, secret_key="someone-else")
    token = foreign.issue_token(await store.get_by_username("alice"))

    with pytest.raises(UnauthorizedError):
        await CredentialVerifier(store, secret_key=SECRET).verify(token)


@pytest.mark.asyncio
@pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
async def test_missing_or_malformed_token_is_rejected(verifier, token):
    with pytest.raises(UnauthorizedError) as exc_info:
        await verifier.verify(token)
    assert exc_info.value.message == TOKEN_REJECTED


@pytest.mark.asyncio
async def test_token_for_deleted_account_is_rejected(verifier, store):
    token = (await verifier.login("alice", "correct")).token
    store.remove(1)

    with pytest.raises(UnauthorizedError):
        await verifier.verify(token)


@pytest.mark.asyncio
async def test_token_with_non_numeric_subject_is_rejected(verifier):
    now = int(datetime.now(timezone.utc).timestamp())
    token = jwt.encode(
        {"sub": "alice", "username": "alice", "role": "writer", "iat": now, "exp": now + 60},
        SECRET,
        algorithm="HS256",
    )

    with pytest.raises(UnauthorizedError):
        await verifier.verify(token)
