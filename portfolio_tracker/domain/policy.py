# portfolio_tracker/domain/policy.py

"""
Rol tabanlı yetki kontrolü.

Her uç noktada tekrar eden rol kontrolleri yerine tek bir politika fonksiyonu:
    is_allowed(account, operation, owner_id) -> bool

Ledger ve Aggregator bu modülü çağırmaz; çağıran katman (controller,
scheduler, script) işlemi dispatch etmeden önce ensure_allowed(...) kullanır.
"""

from __future__ import annotations

from enum import Enum
from typing import FrozenSet, Optional

from portfolio_tracker.domain.errors import AccessDeniedError
from portfolio_tracker.domain.models.account import Account


class Operation(str, Enum):
    VIEW_STOCKS = "VIEW_STOCKS"
    VIEW_PORTFOLIO = "VIEW_PORTFOLIO"
    TRADE = "TRADE"
    MANAGE_STOCKS = "MANAGE_STOCKS"
    REFRESH_PRICES = "REFRESH_PRICES"
    MANAGE_ACCOUNTS = "MANAGE_ACCOUNTS"


# USER rolü sadece kendi portföyü üzerinde çalışabilir
_OWNER_SCOPED: FrozenSet[Operation] = frozenset({Operation.VIEW_PORTFOLIO, Operation.TRADE})
_USER_GLOBAL: FrozenSet[Operation] = frozenset({Operation.VIEW_STOCKS})


def is_allowed(
    account: Optional[Account],
    operation: Operation,
    owner_id: Optional[int] = None,
) -> bool:
    if account is None or not account.enabled:
        return False
    if account.is_admin:
        return True
    if operation in _USER_GLOBAL:
        return True
    if operation in _OWNER_SCOPED:
        return owner_id is not None and owner_id == account.id
    return False


def ensure_allowed(
    account: Optional[Account],
    operation: Operation,
    owner_id: Optional[int] = None,
) -> None:
    if not is_allowed(account, operation, owner_id):
        who = account.email if account is not None else "anonymous"
        raise AccessDeniedError(f"{who} is not allowed to {operation.value}")
