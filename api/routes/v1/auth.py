"""
api/routes/v1/auth.py -- Authentication REST endpoints.

Routes:
  POST /api/v1/auth/register   -- create account; access token in body, refresh token in cookie
  POST /api/v1/auth/login      -- password login; same response shape as register
  POST /api/v1/auth/refresh    -- new access token from the refresh cookie (or JSON body)
  POST /api/v1/auth/logout     -- ends the session; clears the refresh cookie (requires auth)
  GET  /api/v1/auth/profile    -- current account (requires auth)

Token transport:
  The access token is returned in the JSON body. The refresh token is only
  ever sent as an httpOnly, SameSite=Strict cookie whose max_age matches the
  token's own lifetime, so page scripts cannot read it.

Security:
  Cache-Control: no-store on every response that carries a token.
  Failures are raised as auth.errors exceptions and rendered by the handler
  in api/main.py; routes never build error bodies themselves.
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from api.models import (
    AccessTokenResponse,
    AccountResponse,
    AuthResponse,
    LoginRequest,
    MessageResponse,
    RefreshRequest,
    RegisterRequest,
)
from auth.dependencies import get_auth_service, get_current_identity
from auth.models import AuthResult, TokenClaims
from auth.service import AuthService

REFRESH_COOKIE = "refresh_token"

# Auth policy:
# - POST /api/v1/auth/register:  public
# - POST /api/v1/auth/login:     public
# - POST /api/v1/auth/refresh:   public -- the refresh token is the credential
# - POST /api/v1/auth/logout:    requires access token (get_current_identity)
# - GET  /api/v1/auth/profile:   requires access token (get_current_identity)
router = APIRouter()


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_refresh_cookie(request: Request, response, token: str) -> None:
    """Write the refresh token as an httpOnly, SameSite=Strict cookie.

    max_age follows the codec's refresh lifetime so cookie and token expire together.
    secure is on when SECURE_COOKIES=true (production behind HTTPS).
    """
    response.set_cookie(
        REFRESH_COOKIE,
        value=token,
        httponly=True,
        samesite="strict",
        secure=request.app.state.settings.secure_cookies,
        max_age=request.app.state.token_codec.refresh_ttl_seconds,
    )


def clear_refresh_cookie(request: Request, response) -> None:
    response.delete_cookie(
        REFRESH_COOKIE,
        httponly=True,
        samesite="strict",
        secure=request.app.state.settings.secure_cookies,
    )


def _auth_response(request: Request, result: AuthResult, status_code: int) -> JSONResponse:
    resp = JSONResponse(
        status_code=status_code,
        content=AuthResponse(
            user=AccountResponse.from_view(result.account),
            access_token=result.access_token,
            expires_in=request.app.state.token_codec.access_ttl_seconds,
        ).model_dump(),
    )
    set_refresh_cookie(request, resp, result.refresh_token)
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/register", response_model=AuthResponse, status_code=201)
def register(
    request: Request,
    body: RegisterRequest,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Create an account and start its session."""
    result = service.register(body.email, body.password, body.name)
    return _auth_response(request, result, status_code=201)


@router.post("/auth/login", response_model=AuthResponse)
def login(
    request: Request,
    body: LoginRequest,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Authenticate with email and password.

    Wrong email and wrong password return the same 401 bad_credentials body.
    Any refresh token issued before this login stops working.
    """
    result = service.login(body.email, body.password)
    return _auth_response(request, result, status_code=200)


@router.post("/auth/refresh", response_model=AccessTokenResponse)
def refresh(
    request: Request,
    body: Optional[RefreshRequest] = None,
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """Issue a new access token for the current session.

    Reads the refresh token from the cookie first, then from the JSON body.
    The refresh token itself is not rotated.
    """
    token = request.cookies.get(REFRESH_COOKIE) or (body.refresh_token if body else None)
    result = service.refresh_access_token(token)
    resp = JSONResponse(
        content=AccessTokenResponse(
            access_token=result.access_token,
            expires_in=request.app.state.token_codec.access_ttl_seconds,
        ).model_dump()
    )
    resp.headers["Cache-Control"] = "no-store"
    return resp


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.post("/auth/logout", response_model=MessageResponse)
def logout(
    request: Request,
    identity: TokenClaims = Depends(get_current_identity),
    service: AuthService = Depends(get_auth_service),
) -> JSONResponse:
    """End the session: the stored refresh token is cleared and the cookie deleted."""
    service.logout(identity.subject_id)
    resp = JSONResponse(content=MessageResponse(message="Logged out.").model_dump())
    clear_refresh_cookie(request, resp)
    return resp


@router.get("/auth/profile", response_model=AccountResponse)
def profile(
    identity: TokenClaims = Depends(get_current_identity),
    service: AuthService = Depends(get_auth_service),
) -> AccountResponse:
    """Return the account behind the presented access token."""
    return AccountResponse.from_view(service.get_profile(identity.subject_id))
