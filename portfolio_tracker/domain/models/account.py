# portfolio_tracker/domain/models/account.py

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Optional


class AccountRole(str, Enum):
    USER = "USER"
    ADMIN = "ADMIN"


@dataclass(frozen=True)
class Account:
    """
    'accounts' tablosunun domain karşılığı.
    Kimlik doğrulama (parola, token) bu çekirdeğin dışında kalır;
    burada sadece kapsam (scope) ve rol bilgisi tutulur.
    """
    id: Optional[int]
    email: str
    role: AccountRole = AccountRole.USER
    enabled: bool = True
    first_name: Optional[str] = None
    last_name: Optional[str] = None
    created_at: Optional[datetime] = None

    @property
    def is_admin(self) -> bool:
        return self.role == AccountRole.ADMIN
