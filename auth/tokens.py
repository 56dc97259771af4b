"""
auth/tokens.py -- JWT access and refresh tokens.

Security design decisions:
  JWT: python-jose with HS256. Every token carries sub (account id), email,
       type ("access" | "refresh"), iss, aud, iat, exp and a random jti. The
       jti keeps two tokens minted in the same second distinct.

  Verification raises instead of returning None so the caller can tell the
       three failure kinds apart:
         TokenExpiredError  -- signature fine, exp in the past
         TokenInvalidError  -- bad signature, wrong iss/aud, garbage input,
                               missing claims
         TokenTypeError     -- valid token of the other type
       All three are UnauthorizedError subclasses; the route layer maps them
       to 401 with the reason as the error code.

  SECRET_KEY: passed into the constructor by the composition root. A missing
       key is a ConfigurationError at construction time, never a per-request
       failure.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

from jose import ExpiredSignatureError, JWTError, jwt

from auth.errors import ConfigurationError, TokenExpiredError, TokenInvalidError, TokenTypeError
from auth.models import ACCESS, REFRESH, TOKEN_TYPES, TokenClaims

if TYPE_CHECKING:
    from core.config import Settings

_ALGORITHM = "HS256"

ISSUER = "authentication-api"
AUDIENCE = "authentication-client"

# jose skips the aud/exp checks when the claim is absent unless required.
_REQUIRED_CLAIMS = {"require_aud": True, "require_iss": True, "require_exp": True, "require_sub": True}


class TokenCodec:
    """Sign and verify bearer tokens.

    Usage:
        codec = TokenCodec(secret_key, access_ttl_seconds=900)
        token = codec.issue_access(42, "alice@example.com")
        claims = codec.verify(token, "access")
    """

    def __init__(
        self,
        secret_key: str,
        access_ttl_seconds: int = 15 * 60,
        refresh_ttl_seconds: int = 7 * 24 * 3600,
    ) -> None:
        if not secret_key:
            raise ConfigurationError("Token signing secret is not configured.")
        self._secret_key = secret_key
        self.access_ttl_seconds = access_ttl_seconds
        self.refresh_ttl_seconds = refresh_ttl_seconds

    @classmethod
    def from_settings(cls, settings: Settings) -> TokenCodec:
        return cls(
            settings.secret_key,
            access_ttl_seconds=settings.access_token_expire_seconds,
            refresh_ttl_seconds=settings.refresh_token_expire_seconds,
        )

    # ------------------------------------------------------------------
    # Issue
    # ------------------------------------------------------------------

    def issue_access(self, account_id: int, email: str) -> str:
        return self._encode(account_id, email, ACCESS, self.access_ttl_seconds)

    def issue_refresh(self, account_id: int, email: str) -> str:
        return self._encode(account_id, email, REFRESH, self.refresh_ttl_seconds)

    def _encode(self, account_id: int, email: str, token_type: str, ttl_seconds: int) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            # jose validates sub as a string
            "sub": str(account_id),
            "email": email,
            "type": token_type,
            "iss": ISSUER,
            "aud": AUDIENCE,
            "iat": now,
            "exp": now + timedelta(seconds=ttl_seconds),
            "jti": uuid.uuid4().hex,
        }
        return jwt.encode(payload, self._secret_key, algorithm=_ALGORITHM)

    # ------------------------------------------------------------------
    # Verify
    # ------------------------------------------------------------------

    def verify(self, token: str, expected_type: str) -> TokenClaims:
        """Verify signature, issuer, audience, expiry and token type.

        Raises TokenExpiredError, TokenInvalidError or TokenTypeError.
        """
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[_ALGORITHM],
                audience=AUDIENCE,
                issuer=ISSUER,
                options=_REQUIRED_CLAIMS,
            )
        except ExpiredSignatureError as exc:
            raise TokenExpiredError("Token has expired.") from exc
        except JWTError as exc:
            raise TokenInvalidError("Token is invalid.") from exc

        claims = _payload_to_claims(payload)
        if claims.type != expected_type:
            raise TokenTypeError(f"Token type mismatch. Expected: {expected_type}, got: {claims.type}.")
        return claims

    def decode_unsafe(self, token: str) -> dict | None:
        """Return the claims WITHOUT checking signature or expiry.

        Diagnostic use only (logging what a rejected token claimed to be).
        Never base an authentication decision on this.
        """
        try:
            return jwt.get_unverified_claims(token)
        except JWTError:
            return None


def _payload_to_claims(payload: dict) -> TokenClaims:
    try:
        subject_id = int(payload["sub"])
        email = payload["email"]
        token_type = payload["type"]
    except (KeyError, TypeError, ValueError) as exc:
        raise TokenInvalidError("Token is missing required claims.") from exc
    if not isinstance(email, str) or token_type not in TOKEN_TYPES:
        raise TokenInvalidError("Token is missing required claims.")
    exp = payload.get("exp")
    if not isinstance(exp, (int, float)):
        raise TokenInvalidError("Token is missing required claims.")
    expires_at = datetime.fromtimestamp(exp, tz=timezone.utc)
    return TokenClaims(subject_id=subject_id, email=email, type=token_type, expires_at=expires_at)
