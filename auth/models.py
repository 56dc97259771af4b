"""
auth/models.py -- Domain dataclasses for authentication entities.

Pattern: Data class (pure data container, zero logic). Stores and services do
the work; these only own the shape.

Account is the full persisted record and is only handed around inside auth/.
AccountView is the public projection -- everything that crosses the service
boundary uses it, so password_hash and refresh_token cannot leak by accident.

Layer rule: no imports from api/.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

ACCESS = "access"
REFRESH = "refresh"
TOKEN_TYPES = (ACCESS, REFRESH)


@dataclass
class Account:
    """A registered account, including the sensitive columns.

    refresh_token is the single live session. None means "no active session";
    a new login overwrites it and logout clears it.
    """

    email: str
    password_hash: str
    id: int | None = None
    name: str | None = None
    refresh_token: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class AccountView:
    """Public projection of an Account. Safe to serialize."""

    id: int
    email: str
    name: str | None = None
    created_at: str | None = None
    updated_at: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    """Verified identity claims carried by an access or refresh token."""

    subject_id: int
    email: str
    type: str  # "access" | "refresh"
    expires_at: datetime


@dataclass(frozen=True)
class AuthResult:
    """Returned by register and login."""

    account: AccountView
    access_token: str
    refresh_token: str


@dataclass(frozen=True)
class RefreshResult:
    access_token: str
