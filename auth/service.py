"""
auth/service.py -- Registration, login, refresh, logout and profile.

AuthService composes the store, the password hasher and the token codec. It
is constructed once by the composition root and holds nothing else, so every
request is independent; all session state lives in the accounts table.

Session model:
  Each account has at most one live refresh token (accounts.refresh_token).
    register / login -> issue a new pair, overwrite the stored refresh token
    refresh          -> presented token must equal the stored one exactly;
                        only a new access token is issued (no rotation)
    logout           -> clear the stored token
  Any earlier refresh token stops working the moment the column changes.

Concurrency:
  The refresh compare is a read only, with no lock around it. Two concurrent
  refreshes with the same token both succeed. A login racing a refresh can
  invalidate the in-flight refresh; the client re-authenticates.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging
import re

from sqlalchemy.exc import IntegrityError

from auth.errors import (
    ConflictError,
    InvalidInputError,
    NotFoundError,
    TokenError,
    UnauthorizedError,
    UnauthorizedReason,
)
from auth.models import REFRESH, Account, AccountView, AuthResult, RefreshResult
from auth.passwords import MAX_PASSWORD_BYTES, PasswordHasher
from auth.store import AccountStore
from auth.tokens import TokenCodec

logger = logging.getLogger("authapi.auth")

EMAIL_RE = re.compile(r"^[^\s@]+@[^\s@]+\.[^\s@]+$")
MIN_PASSWORD_LENGTH = 8

# Same message for unknown email and wrong password (no account enumeration).
_BAD_CREDENTIALS = "Invalid email or password."


# ---------------------------------------------------------------------------
# Input validation (shared with auth/accounts.py)
# ---------------------------------------------------------------------------


def require_credentials(email: str | None, password: str | None) -> None:
    if not email or not password:
        raise InvalidInputError("Email and password are required.")


def validate_email(email: str) -> None:
    if not EMAIL_RE.match(email):
        raise InvalidInputError("Invalid email format.")


def validate_password(password: str) -> None:
    if len(password) < MIN_PASSWORD_LENGTH:
        raise InvalidInputError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters.")
    if len(password.encode("utf-8")) > MAX_PASSWORD_BYTES:
        raise InvalidInputError(f"Password must be at most {MAX_PASSWORD_BYTES} bytes.")


def to_view(account: Account) -> AccountView:
    """Strip password_hash and refresh_token from a full Account."""
    return AccountView(
        id=account.id,
        email=account.email,
        name=account.name,
        created_at=account.created_at,
        updated_at=account.updated_at,
    )


# ---------------------------------------------------------------------------
# Service
# ---------------------------------------------------------------------------


class AuthService:
    def __init__(self, store: AccountStore, hasher: PasswordHasher, codec: TokenCodec) -> None:
        self.store = store
        self.hasher = hasher
        self.codec = codec

    def register(self, email: str | None, password: str | None, name: str | None = None) -> AuthResult:
        """Create an account and open its first session.

        Input checks run before the store is touched. A concurrent insert that
        slips past the existence check still fails on the UNIQUE constraint
        and surfaces as ConflictError.
        """
        require_credentials(email, password)
        validate_email(email)
        validate_password(password)

        if self.store.find_by_email(email) is not None:
            raise ConflictError("Email is already in use.")

        try:
            account = self.store.create(email, self.hasher.hash(password), name=name or None)
        except IntegrityError as exc:
            raise ConflictError("Email is already in use.") from exc

        result = self._open_session(account)
        logger.info("Registered account id=%s", account.id)
        return result

    def login(self, email: str | None, password: str | None) -> AuthResult:
        """Check credentials and replace the account's session with a new one.

        bcrypt runs whether or not the email exists so response time does not
        reveal which emails are registered.
        """
        require_credentials(email, password)

        account = self.store.find_by_email(email)
        if account is None:
            self.hasher.verify_dummy(password)
            logger.warning("Login rejected: unknown email")
            raise UnauthorizedError(_BAD_CREDENTIALS)
        if not self.hasher.verify(password, account.password_hash):
            logger.warning("Login rejected: bad password for account id=%s", account.id)
            raise UnauthorizedError(_BAD_CREDENTIALS)

        result = self._open_session(account)
        logger.info("Login succeeded for account id=%s", account.id)
        return result

    def refresh_access_token(self, refresh_token: str | None) -> RefreshResult:
        """Exchange the account's current refresh token for a new access token.

        The refresh token itself is not rotated and stays valid until the next
        login, logout, or its own expiry.
        """
        if not refresh_token:
            raise InvalidInputError("Refresh token is required.")

        try:
            claims = self.codec.verify(refresh_token, REFRESH)
        except TokenError as exc:
            unverified = self.codec.decode_unsafe(refresh_token) or {}
            logger.warning("Refresh rejected (%s) for sub=%s", exc.reason.value, unverified.get("sub"))
            raise

        account = self.store.find_by_id_including_session(claims.subject_id)
        if account is None:
            logger.warning("Refresh rejected: account id=%s no longer exists", claims.subject_id)
            raise UnauthorizedError("Account not found.", reason=UnauthorizedReason.account_not_found)

        if account.refresh_token != refresh_token:
            logger.warning("Refresh rejected: token is not the current session for account id=%s", account.id)
            raise UnauthorizedError("Refresh token is no longer valid.", reason=UnauthorizedReason.session_mismatch)

        return RefreshResult(access_token=self.codec.issue_access(account.id, account.email))

    def logout(self, account_id: int) -> None:
        """Clear the account's session. Safe to call repeatedly."""
        self.store.update_session(account_id, None)
        logger.info("Logged out account id=%s", account_id)

    def get_profile(self, account_id: int) -> AccountView:
        account = self.store.find_by_id(account_id)
        if account is None:
            raise NotFoundError("Account not found.")
        return account

    def _open_session(self, account: Account) -> AuthResult:
        access_token = self.codec.issue_access(account.id, account.email)
        refresh_token = self.codec.issue_refresh(account.id, account.email)
        self.store.update_session(account.id, refresh_token)
        view = self.store.find_by_id(account.id) or to_view(account)
        return AuthResult(account=view, access_token=access_token, refresh_token=refresh_token)
