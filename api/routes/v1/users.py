"""
api/routes/v1/users.py -- Account management REST endpoints.

Routes:
  GET    /api/v1/users          -- list accounts
  GET    /api/v1/users/{id}     -- one account (404 if missing)
  POST   /api/v1/users          -- create account without opening a session
  PUT    /api/v1/users/{id}     -- partial update of email / name / password
  DELETE /api/v1/users/{id}     -- delete account

Every route requires a valid access token. There are no roles: any
authenticated caller may manage accounts.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Response

from api.models import AccountCreate, AccountResponse, AccountUpdate
from auth.accounts import AccountService
from auth.dependencies import get_account_service, get_current_identity

router = APIRouter(dependencies=[Depends(get_current_identity)])


@router.get("/users", response_model=list[AccountResponse])
def list_accounts(service: AccountService = Depends(get_account_service)) -> list[AccountResponse]:
    return [AccountResponse.from_view(a) for a in service.list_accounts()]


@router.get("/users/{account_id}", response_model=AccountResponse)
def get_account(account_id: int, service: AccountService = Depends(get_account_service)) -> AccountResponse:
    return AccountResponse.from_view(service.get_account(account_id))


@router.post("/users", response_model=AccountResponse, status_code=201)
def create_account(
    body: AccountCreate,
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    """Create an account. No tokens are issued; the new owner logs in separately."""
    return AccountResponse.from_view(service.create_account(body.email, body.password, body.name))


@router.put("/users/{account_id}", response_model=AccountResponse)
def update_account(
    account_id: int,
    body: AccountUpdate,
    service: AccountService = Depends(get_account_service),
) -> AccountResponse:
    updated = service.update_account(account_id, email=body.email, name=body.name, password=body.password)
    return AccountResponse.from_view(updated)


@router.delete("/users/{account_id}", status_code=204)
def delete_account(account_id: int, service: AccountService = Depends(get_account_service)) -> Response:
    service.delete_account(account_id)
    return Response(status_code=204)
