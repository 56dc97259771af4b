"""Unit tests for auth/tokens.py -- the JWT codec.

Covers:
- access round-trip returns the issued subject, email and type
- expired, bad-signature, wrong-issuer, wrong-audience and garbage tokens are told apart
- tokens missing aud, exp or iss are rejected
- type mismatch in both directions
- decode_unsafe() reads claims of a token it could not verify
- a missing signing secret fails at construction
"""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
from jose import jwt

from auth.errors import (
    ConfigurationError,
    TokenError,
    TokenExpiredError,
    TokenInvalidError,
    TokenTypeError,
    UnauthorizedError,
    UnauthorizedReason,
)
from auth.tokens import AUDIENCE, ISSUER, TokenCodec


def test_access_round_trip(codec: TokenCodec) -> None:
    token = codec.issue_access(7, "alice@example.com")
    claims = codec.verify(token, "access")
    assert claims.subject_id == 7
    assert claims.email == "alice@example.com"
    assert claims.type == "access"
    assert claims.expires_at is not None
    remaining = claims.expires_at - datetime.now(timezone.utc)
    assert timedelta(minutes=14) < remaining <= timedelta(minutes=15)


def test_refresh_round_trip_uses_refresh_lifetime(codec: TokenCodec) -> None:
    claims = codec.verify(codec.issue_refresh(7, "alice@example.com"), "refresh")
    assert claims.type == "refresh"
    assert claims.expires_at - datetime.now(timezone.utc) > timedelta(days=6)


def test_tokens_issued_back_to_back_differ(codec: TokenCodec) -> None:
    assert codec.issue_access(1, "a@b.co") != codec.issue_access(1, "a@b.co")


def test_expired_token(secret_key: str) -> None:
    codec = TokenCodec(secret_key, access_ttl_seconds=-10)
    token = codec.issue_access(1, "a@b.co")
    with pytest.raises(TokenExpiredError) as exc_info:
        codec.verify(token, "access")
    assert exc_info.value.reason is UnauthorizedReason.expired


def test_bad_signature(codec: TokenCodec) -> None:
    other = TokenCodec("another-secret-key-that-is-also-long-enough")
    with pytest.raises(TokenInvalidError) as exc_info:
        codec.verify(other.issue_access(1, "a@b.co"), "access")
    assert exc_info.value.reason is UnauthorizedReason.malformed


def test_wrong_issuer_is_invalid(codec: TokenCodec, secret_key: str) -> None:
    payload = {
        "sub": "1",
        "email": "a@b.co",
        "type": "access",
        "iss": "someone-else",
        "aud": AUDIENCE,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
    }
    token = jwt.encode(payload, secret_key, algorithm="HS256")
    with pytest.raises(TokenInvalidError):
        codec.verify(token, "access")


def _signed(secret_key: str, **overrides) -> str:
    payload = {
        "sub": "1",
        "email": "a@b.co",
        "type": "refresh",
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
    }
    payload.update(overrides)
    return jwt.encode({k: v for k, v in payload.items() if v is not None}, secret_key, algorithm="HS256")


def test_wrong_audience_is_invalid(codec: TokenCodec, secret_key: str) -> None:
    with pytest.raises(TokenInvalidError):
        codec.verify(_signed(secret_key, aud="someone-else"), "refresh")


@pytest.mark.parametrize("claim", ["aud", "exp", "iss"])
def test_missing_registered_claim_is_invalid(codec: TokenCodec, secret_key: str, claim: str) -> None:
    with pytest.raises(TokenInvalidError):
        codec.verify(_signed(secret_key, **{claim: None}), "refresh")


def test_fully_claimed_token_verifies(codec: TokenCodec, secret_key: str) -> None:
    claims = codec.verify(_signed(secret_key), "refresh")
    assert claims.subject_id == 1
    assert claims.expires_at > datetime.now(timezone.utc)


def test_missing_claims_is_invalid(codec: TokenCodec, secret_key: str) -> None:
    payload = {
        "sub": "not-a-number",
        "type": "access",
        "iss": ISSUER,
        "aud": AUDIENCE,
        "exp": datetime.now(timezone.utc) + timedelta(minutes=5),
    }
    token = jwt.encode(payload, secret_key, algorithm="HS256")
    with pytest.raises(TokenInvalidError):
        codec.verify(token, "access")


@pytest.mark.parametrize("garbage", ["", "not.a.jwt", "abc"])
def test_garbage_is_invalid(codec: TokenCodec, garbage: str) -> None:
    with pytest.raises(TokenInvalidError):
        codec.verify(garbage, "access")


def test_type_mismatch(codec: TokenCodec) -> None:
    with pytest.raises(TokenTypeError) as exc_info:
        codec.verify(codec.issue_access(1, "a@b.co"), "refresh")
    assert exc_info.value.reason is UnauthorizedReason.type_mismatch

    with pytest.raises(TokenTypeError):
        codec.verify(codec.issue_refresh(1, "a@b.co"), "access")


def test_token_errors_are_unauthorized() -> None:
    assert issubclass(TokenExpiredError, TokenError)
    assert issubclass(TokenError, UnauthorizedError)


def test_decode_unsafe_ignores_signature(codec: TokenCodec) -> None:
    other = TokenCodec("another-secret-key-that-is-also-long-enough")
    claims = codec.decode_unsafe(other.issue_refresh(3, "c@d.io"))
    assert claims["sub"] == "3"
    assert claims["type"] == "refresh"
    assert codec.decode_unsafe("garbage") is None


def test_missing_secret_is_fatal() -> None:
    with pytest.raises(ConfigurationError):
        TokenCodec("")
