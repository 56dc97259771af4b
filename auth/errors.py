"""
auth/errors.py -- Typed failures raised by the authentication core.

Every expected failure (bad input, duplicate email, bad credentials, bad
token, missing account) is an AuthError subclass carrying an ErrorKind. The
HTTP layer maps kinds to status codes in a single exception handler, so the
core never imports fastapi.

UnauthorizedError additionally carries an UnauthorizedReason. The message for
credential failures is uniform (no account enumeration) while the reason keeps
expired / malformed / type-mismatch tokens apart for logs and clients.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    invalid_input = "invalid_input"
    conflict = "conflict"
    unauthorized = "unauthorized"
    not_found = "not_found"
    fatal = "fatal"


class UnauthorizedReason(str, Enum):
    bad_credentials = "bad_credentials"
    missing_token = "missing_token"
    expired = "expired"
    malformed = "malformed"
    type_mismatch = "type_mismatch"
    account_not_found = "account_not_found"
    session_mismatch = "session_mismatch"


class AuthError(Exception):
    """Base class for every failure the auth core raises on purpose."""

    kind: ErrorKind = ErrorKind.fatal

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidInputError(AuthError):
    kind = ErrorKind.invalid_input


class ConflictError(AuthError):
    kind = ErrorKind.conflict


class NotFoundError(AuthError):
    kind = ErrorKind.not_found


class UnauthorizedError(AuthError):
    kind = ErrorKind.unauthorized
    default_reason = UnauthorizedReason.bad_credentials

    def __init__(self, message: str, reason: UnauthorizedReason | None = None) -> None:
        super().__init__(message)
        self.reason = reason or self.default_reason


class TokenError(UnauthorizedError):
    """A bearer token failed verification. Subclasses pin the reason."""

    default_reason = UnauthorizedReason.malformed


class TokenExpiredError(TokenError):
    default_reason = UnauthorizedReason.expired


class TokenInvalidError(TokenError):
    default_reason = UnauthorizedReason.malformed


class TokenTypeError(TokenError):
    default_reason = UnauthorizedReason.type_mismatch


class FatalError(AuthError):
    """Process-level failure. Not recoverable by retrying the request."""

    kind = ErrorKind.fatal


class ConfigurationError(FatalError):
    pass
