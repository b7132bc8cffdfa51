from datetime import UTC, datetime, timedelta

import pytest
from jose import ExpiredSignatureError, JWTError

from almond.core.security import PasswordHasher, decode_token, encode_token

from .conftest import list_sessions

SECRET = "unit-test-secret"


def test_token_carries_identity_and_timing_claims():
    issued_at = datetime.now(UTC).replace(microsecond=0)

    token = encode_token("user-1", SECRET, timedelta(hours=1), issued_at=issued_at)
    claims = decode_token(token, SECRET)

    assert claims["id"] == "user-1"
    assert claims["iat"] == int(issued_at.timestamp())
    assert claims["exp"] == claims["iat"] + 3600
    assert claims["jti"]


def test_tokens_minted_in_the_same_second_differ():
    issued_at = datetime.now(UTC)

    first = encode_token("user-1", SECRET, timedelta(days=60), issued_at=issued_at)
    second = encode_token("user-1", SECRET, timedelta(days=60), issued_at=issued_at)

    assert first != second


def test_expired_token_raises_expired_signature():
    token = encode_token("user-1", SECRET, timedelta(days=1), issued_at=datetime.now(UTC) - timedelta(days=2))

    with pytest.raises(ExpiredSignatureError):
        decode_token(token, SECRET)


def test_token_signed_with_another_secret_is_rejected():
    token = encode_token("user-1", "another-secret", timedelta(hours=1))

    with pytest.raises(JWTError):
        decode_token(token, SECRET)


def test_password_hash_round_trip(hasher):
    hashed = hasher.hash("s3cret-pass")

    assert hashed != "s3cret-pass"
    assert hasher.verify("s3cret-pass", hashed)
    assert not hasher.verify("wrong-pass", hashed)
    assert not hasher.verify("s3cret-pass", None)


def test_hasher_uses_configured_cost(settings):
    hasher = PasswordHasher.from_settings(settings.model_copy(update={"BCRYPT_ROUNDS": 5}))

    assert hasher.hash("s3cret-pass").startswith("$2b$05$")


# --- TokenService ---


@pytest.mark.anyio
async def test_issue_tokens_inserts_a_new_session_per_pair(session, token_service, make_user, settings):
    user = await make_user()

    first = await token_service.issue_tokens(user, ip_address="10.0.0.1")
    second = await token_service.issue_tokens(user)

    sessions = await list_sessions(session, user.id)
    assert {s.refresh_token for s in sessions} == {first.refresh_token, second.refresh_token}
    assert decode_token(first.access_token, settings.ACCESS_TOKEN_SECRET)["id"] == user.id
    assert decode_token(first.refresh_token, settings.REFRESH_TOKEN_SECRET)["id"] == user.id


@pytest.mark.anyio
async def test_access_and_refresh_tokens_use_separate_secrets(token_service, make_user, settings):
    user = await make_user()
    pair = await token_service.issue_tokens(user)

    with pytest.raises(JWTError):
        decode_token(pair.access_token, settings.REFRESH_TOKEN_SECRET)
    with pytest.raises(JWTError):
        decode_token(pair.refresh_token, settings.ACCESS_TOKEN_SECRET)


@pytest.mark.anyio
async def test_logout_removes_only_the_matching_session(session, token_service, make_user):
    user = await make_user()
    kept = await token_service.issue_tokens(user)
    dropped = await token_service.issue_tokens(user)

    await token_service.logout(dropped.refresh_token)

    sessions = await list_sessions(session, user.id)
    assert [s.refresh_token for s in sessions] == [kept.refresh_token]


@pytest.mark.anyio
async def test_revoke_all_drops_every_session(session, token_service, make_user):
    user = await make_user()
    other = await make_user()
    await token_service.issue_tokens(user)
    await token_service.issue_tokens(user)
    survivor = await token_service.issue_tokens(other)

    assert await token_service.revoke_all(user.id) == 2
    await session.commit()

    assert await list_sessions(session, user.id) == []
    assert [s.refresh_token for s in await list_sessions(session, other.id)] == [survivor.refresh_token]
