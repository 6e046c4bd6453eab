from datetime import datetime, timedelta, timezone

import jwt as pyjwt
import pytest

from sessionguard.core.config import Settings
from sessionguard.core.exceptions import InvalidToken
from sessionguard.core.time import parse_duration
from sessionguard.services.token_service import (
    TokenCodec,
    generate_token_family,
    generate_verification_token,
    hash_token,
)


@pytest.mark.parametrize(
    "value,expected",
    [
        ("15m", timedelta(minutes=15)),
        ("7d", timedelta(days=7)),
        ("24h", timedelta(hours=24)),
        ("30s", timedelta(seconds=30)),
    ],
)
def test_parse_duration_units(value, expected):
    assert parse_duration(value, timedelta(0)) == expected


@pytest.mark.parametrize("value", ["", None, "15", "m15", "1w", "1.5h", "-3d", "15 m"])
def test_parse_duration_falls_back_to_default(value):
    assert parse_duration(value, timedelta(days=7)) == timedelta(days=7)


def test_unrecognized_ttl_uses_kind_default():
    codec = TokenCodec(Settings(access_token_ttl="soon", refresh_token_ttl="later", verification_token_ttl="x"))
    assert codec.access_ttl == timedelta(minutes=15)
    assert codec.refresh_ttl == timedelta(days=7)
    assert codec.verification_ttl == timedelta(hours=24)


def test_access_token_claims(codec, settings):
    token = codec.create_access_token(user_id="u1", token_version=3)
    raw = pyjwt.decode(token, settings.jwt_access_secret, algorithms=["HS256"])
    assert raw["userId"] == "u1"
    assert raw["tokenVersion"] == 3
    assert raw["type"] == "access"
    assert raw["exp"] - raw["iat"] == 15 * 60
    assert "tokenFamily" not in raw


def test_refresh_token_claims(codec, settings):
    token = codec.create_refresh_token(user_id="u1", token_family="fam", token_version=0)
    raw = pyjwt.decode(token, settings.jwt_refresh_secret, algorithms=["HS256"])
    assert {k: raw[k] for k in ("userId", "tokenFamily", "tokenVersion", "type")} == {
        "userId": "u1",
        "tokenFamily": "fam",
        "tokenVersion": 0,
        "type": "refresh",
    }
    assert raw["exp"] - raw["iat"] == 7 * 24 * 60 * 60


def test_verify_round_trip(codec):
    payload = codec.verify_refresh_token(codec.create_refresh_token(user_id="u1", token_family="f", token_version=2))
    assert payload["tokenFamily"] == "f"
    assert payload["tokenVersion"] == 2


def test_refresh_tokens_minted_together_are_distinct(codec):
    a = codec.create_refresh_token(user_id="u1", token_family="f", token_version=0)
    b = codec.create_refresh_token(user_id="u1", token_family="f", token_version=0)
    assert a != b
    assert hash_token(a) != hash_token(b)


def test_access_token_rejected_as_refresh(codec, settings):
    # Same secret for both kinds so only the type check can fail
    shared = Settings(jwt_access_secret=settings.jwt_access_secret, jwt_refresh_secret=settings.jwt_access_secret)
    shared_codec = TokenCodec(shared)
    access = shared_codec.create_access_token(user_id="u1", token_version=0)
    with pytest.raises(InvalidToken, match="type"):
        shared_codec.verify_refresh_token(access)


def test_refresh_token_rejected_as_access(codec):
    refresh = codec.create_refresh_token(user_id="u1", token_family="f", token_version=0)
    with pytest.raises(InvalidToken):
        codec.verify_access_token(refresh)


def test_bad_signature_is_invalid(codec):
    forged = pyjwt.encode(
        {"userId": "u1", "tokenFamily": "f", "tokenVersion": 0, "type": "refresh"},
        "some-other-secret-0123456789abcdef0123",
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        codec.verify_refresh_token(forged)


def test_expired_token_is_invalid(codec, settings):
    past = datetime.now(timezone.utc) - timedelta(hours=1)
    expired = pyjwt.encode(
        {"userId": "u1", "tokenVersion": 0, "type": "access", "exp": int(past.timestamp())},
        settings.jwt_access_secret,
        algorithm="HS256",
    )
    with pytest.raises(InvalidToken):
        codec.verify_access_token(expired)


def test_garbage_is_invalid(codec):
    with pytest.raises(InvalidToken):
        codec.verify_refresh_token("not-a-jwt")


def test_helpers_shape():
    assert len(hash_token("abc")) == 64
    assert hash_token("abc") == hash_token("abc")
    assert len(generate_token_family()) == 32
    assert len(generate_verification_token()) == 64
    assert generate_verification_token() != generate_verification_token()


def test_refresh_token_expiry_uses_ttl(codec):
    now = datetime(2030, 1, 1)
    assert codec.refresh_token_expiry(now) == datetime(2030, 1, 8)
    assert codec.verification_expiry(now) == datetime(2030, 1, 2)
