"""Tests for the role based access policy."""

import pytest

from portfolio_tracker.domain.errors import AccessDeniedError
from portfolio_tracker.domain.models.account import Account, AccountRole
from portfolio_tracker.domain.policy import Operation, ensure_allowed, is_allowed

USER = Account(id=1, email="u@example.com")
ADMIN = Account(id=2, email="a@example.com", role=AccountRole.ADMIN)
DISABLED_ADMIN = Account(id=3, email="d@example.com", role=AccountRole.ADMIN, enabled=False)


@pytest.mark.parametrize("operation", list(Operation))
def test_admin_may_do_everything(operation):
    assert is_allowed(ADMIN, operation, owner_id=99)


@pytest.mark.parametrize("operation", list(Operation))
def test_disabled_account_is_denied(operation):
    assert not is_allowed(DISABLED_ADMIN, operation, owner_id=DISABLED_ADMIN.id)


def test_user_scoped_to_own_portfolio():
    assert is_allowed(USER, Operation.TRADE, owner_id=1)
    assert is_allowed(USER, Operation.VIEW_PORTFOLIO, owner_id=1)
    assert not is_allowed(USER, Operation.TRADE, owner_id=2)
    assert not is_allowed(USER, Operation.VIEW_PORTFOLIO)


def test_user_catalog_rights():
    assert is_allowed(USER, Operation.VIEW_STOCKS)
    for operation in (Operation.MANAGE_STOCKS, Operation.REFRESH_PRICES, Operation.MANAGE_ACCOUNTS):
        assert not is_allowed(USER, operation, owner_id=1)


def test_ensure_allowed_raises():
    ensure_allowed(USER, Operation.TRADE, owner_id=1)
    with pytest.raises(AccessDeniedError, match="MANAGE_ACCOUNTS"):
        ensure_allowed(USER, Operation.MANAGE_ACCOUNTS)
    with pytest.raises(AccessDeniedError, match="anonymous"):
        ensure_allowed(None, Operation.VIEW_STOCKS)
