"""Tests for AccountService."""

import pytest

from portfolio_tracker.domain.errors import AlreadyExistsError, InvalidInputError, NotFoundError
from portfolio_tracker.domain.models.account import AccountRole


def test_create_and_lookup(accounts):
    account = accounts.create_account("Carol@Example.com", "Carol", None)

    assert account.id is not None
    assert account.enabled
    assert account.role == AccountRole.USER
    assert account.created_at is not None
    assert accounts.get_account_by_email("carol@example.com").id == account.id


def test_duplicate_email_case_insensitive(accounts, user):
    with pytest.raises(AlreadyExistsError):
        accounts.create_account("ALICE@example.com")


@pytest.mark.parametrize("email", ["", "no-at-sign", "a@b", "two@@example.com", "sp ace@example.com"])
def test_malformed_email(accounts, email):
    with pytest.raises(InvalidInputError):
        accounts.create_account(email)


def test_update_toggle_delete(accounts, user):
    updated = accounts.update_account(user.id, "Alicia", "Doe", AccountRole.ADMIN)
    assert updated.first_name == "Alicia"
    assert updated.is_admin

    disabled = accounts.toggle_enabled(user.id)
    assert not disabled.enabled
    assert accounts.toggle_enabled(user.id).enabled

    accounts.delete_account(user.id)
    with pytest.raises(NotFoundError):
        accounts.get_account(user.id)


def test_listing(accounts, user, other_user):
    accounts.create_account("root@example.com", role=AccountRole.ADMIN)

    assert accounts.count_accounts() == 3
    assert [a.email for a in accounts.list_regular_accounts()] == [user.email, other_user.email]
    assert len(accounts.list_accounts()) == 3


def test_unknown_account(accounts):
    with pytest.raises(NotFoundError):
        accounts.get_account(404)
    with pytest.raises(NotFoundError):
        accounts.update_account(404, None, None, AccountRole.USER)
