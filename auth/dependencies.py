"""
auth/dependencies.py -- FastAPI Depends() helpers for authentication.

Access tokens arrive as "Authorization: Bearer <token>". Verification is
stateless: a valid access token identifies the caller without a DB lookup.

try_get_current_identity() is the soft variant (returns None on failure).
get_current_identity() raises UnauthorizedError, which the app-level handler
renders as 401 with the failure reason as the error code.

The services themselves are built once in the lifespan and read from
app.state here, so routes never construct collaborators.

Layer rule: auth/dependencies.py may import from fastapi (for Request)
because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import Request

from auth.accounts import AccountService
from auth.errors import TokenError, UnauthorizedError, UnauthorizedReason
from auth.models import ACCESS, TokenClaims
from auth.service import AuthService
from auth.tokens import TokenCodec


def get_bearer_token(request: Request) -> str | None:
    """Return the token from a well-formed Bearer header, else None."""
    auth_header = request.headers.get("Authorization", "")
    scheme, _, token = auth_header.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        return None
    return token.strip()


def try_get_current_identity(request: Request) -> TokenClaims | None:
    """Verify the Bearer access token if one is present.

    Never raises -- an invalid or missing token just means "no identity".
    """
    token = get_bearer_token(request)
    if token is None:
        return None
    codec: TokenCodec = request.app.state.token_codec
    try:
        return codec.verify(token, ACCESS)
    except TokenError:
        return None


def get_current_identity(request: Request) -> TokenClaims:
    """Require a valid access token.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(identity: TokenClaims = Depends(get_current_identity)): ...
    """
    token = get_bearer_token(request)
    if token is None:
        raise UnauthorizedError("Access token not provided.", reason=UnauthorizedReason.missing_token)
    codec: TokenCodec = request.app.state.token_codec
    return codec.verify(token, ACCESS)


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_account_service(request: Request) -> AccountService:
    return request.app.state.account_service
