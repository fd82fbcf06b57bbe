# portfolio_tracker/domain/services_interfaces/i_account_repo.py

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import List, Optional

from portfolio_tracker.domain.models.account import Account


class IAccountRepository(ABC):
    """
    'accounts' tablosuna erişim için soyut arayüz (AccountDirectory).
    """

    @abstractmethod
    def get_by_id(self, account_id: int) -> Optional[Account]:
        raise NotImplementedError

    @abstractmethod
    def get_by_email(self, email: str) -> Optional[Account]:
        """E-posta büyük/küçük harf duyarsız karşılaştırılır."""
        raise NotImplementedError

    @abstractmethod
    def exists_by_email(self, email: str) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_all(self) -> List[Account]:
        raise NotImplementedError

    @abstractmethod
    def save(self, account: Account) -> Account:
        """id None ise insert, değilse update."""
        raise NotImplementedError

    @abstractmethod
    def delete(self, account_id: int) -> None:
        raise NotImplementedError
