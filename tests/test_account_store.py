"""Unit tests for auth/store.py -- AccountStore persistence.

Covers:
- create() stores an account with no session and unique email
- find_by_id() returns the public projection only
- update_session() overwrites and clears the refresh token
- update() whitelists fields and bumps updated_at
- delete() and ping()
"""

import pytest
from sqlalchemy.exc import IntegrityError

from auth.models import Account, AccountView
from auth.store import AccountStore


def test_create_and_find_by_email(store: AccountStore) -> None:
    created = store.create("alice@example.com", "hash", name="Alice")
    assert created.id is not None
    assert created.refresh_token is None

    found = store.find_by_email("alice@example.com")
    assert isinstance(found, Account)
    assert found.id == created.id
    assert found.password_hash == "hash"
    assert found.name == "Alice"
    assert found.created_at == found.updated_at


def test_email_lookup_is_exact_match(store: AccountStore) -> None:
    store.create("alice@example.com", "hash")
    assert store.find_by_email("Alice@Example.com") is None
    assert store.find_by_email("missing@example.com") is None


def test_duplicate_email_raises_integrity_error(store: AccountStore) -> None:
    store.create("dup@example.com", "hash")
    with pytest.raises(IntegrityError):
        store.create("dup@example.com", "other-hash")


def test_find_by_id_is_public_projection(store: AccountStore) -> None:
    created = store.create("bob@example.com", "hash")
    store.update_session(created.id, "some-refresh-token")

    view = store.find_by_id(created.id)
    assert isinstance(view, AccountView)
    assert view.email == "bob@example.com"
    assert not hasattr(view, "password_hash")
    assert not hasattr(view, "refresh_token")
    assert store.find_by_id(99999) is None


def test_update_session_overwrites_and_clears(store: AccountStore) -> None:
    account = store.create("carol@example.com", "hash")

    assert store.update_session(account.id, "first") is True
    assert store.find_by_id_including_session(account.id).refresh_token == "first"

    store.update_session(account.id, "second")
    assert store.find_by_id_including_session(account.id).refresh_token == "second"

    store.update_session(account.id, None)
    assert store.find_by_id_including_session(account.id).refresh_token is None

    assert store.update_session(99999, "x") is False


def test_update_profile_fields(store: AccountStore) -> None:
    account = store.create("dave@example.com", "hash")
    updated = store.update(account.id, name="Dave", email="david@example.com")
    assert updated.name == "Dave"
    assert updated.email == "david@example.com"
    assert updated.updated_at >= account.updated_at
    assert store.update(99999, name="nobody") is None


def test_update_rejects_unknown_fields(store: AccountStore) -> None:
    account = store.create("erin@example.com", "hash")
    with pytest.raises(ValueError):
        store.update(account.id, refresh_token="sneaky")


def test_list_and_delete(store: AccountStore) -> None:
    first = store.create("one@example.com", "hash")
    second = store.create("two@example.com", "hash")
    assert [a.id for a in store.list_accounts()] == [first.id, second.id]

    assert store.delete(first.id) is True
    assert store.delete(first.id) is False
    assert [a.email for a in store.list_accounts()] == ["two@example.com"]


def test_ping(store: AccountStore) -> None:
    assert store.ping() is True
