"""
auth/accounts.py -- Account management (list / get / create / update / delete).

Unlike AuthService.register(), create_account() opens no session and issues
no tokens -- it is the admin-panel path for adding an account on someone's
behalf. Validation rules are the same ones registration uses.

The session column is never writable from here; only AuthService moves it.

Layer rule: no imports from api/.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from auth.errors import ConflictError, InvalidInputError, NotFoundError
from auth.models import AccountView
from auth.passwords import PasswordHasher
from auth.service import require_credentials, to_view, validate_email, validate_password
from auth.store import AccountStore

logger = logging.getLogger("authapi.auth")


class AccountService:
    def __init__(self, store: AccountStore, hasher: PasswordHasher) -> None:
        self.store = store
        self.hasher = hasher

    def list_accounts(self) -> list[AccountView]:
        return self.store.list_accounts()

    def get_account(self, account_id: int) -> AccountView:
        account = self.store.find_by_id(account_id)
        if account is None:
            raise NotFoundError("Account not found.")
        return account

    def create_account(self, email: str | None, password: str | None, name: str | None = None) -> AccountView:
        require_credentials(email, password)
        validate_email(email)
        validate_password(password)

        if self.store.find_by_email(email) is not None:
            raise ConflictError("Email is already in use.")
        try:
            account = self.store.create(email, self.hasher.hash(password), name=name or None)
        except IntegrityError as exc:
            raise ConflictError("Email is already in use.") from exc

        logger.info("Created account id=%s", account.id)
        return to_view(account)

    def update_account(
        self,
        account_id: int,
        email: str | None = None,
        name: str | None = None,
        password: str | None = None,
    ) -> AccountView:
        """Apply a partial update. Fields left as None are not touched."""
        current = self.get_account(account_id)

        updates: dict = {}
        if email is not None and email != current.email:
            validate_email(email)
            if self.store.find_by_email(email) is not None:
                raise ConflictError("Email is already in use.")
            updates["email"] = email
        if name is not None:
            updates["name"] = name
        if password is not None:
            validate_password(password)
            updates["password_hash"] = self.hasher.hash(password)

        if not updates:
            raise InvalidInputError("No fields to update.")

        try:
            updated = self.store.update(account_id, **updates)
        except IntegrityError as exc:
            raise ConflictError("Email is already in use.") from exc
        if updated is None:
            raise NotFoundError("Account not found.")

        logger.info("Updated account id=%s fields=%s", account_id, sorted(updates))
        return updated

    def delete_account(self, account_id: int) -> None:
        if not self.store.delete(account_id):
            raise NotFoundError("Account not found.")
        logger.info("Deleted account id=%s", account_id)
