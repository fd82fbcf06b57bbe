# portfolio_tracker/domain/services_interfaces/i_transaction_repo.py

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from portfolio_tracker.domain.models.performance import MonthlySummary
from portfolio_tracker.domain.models.transaction import Transaction


class ITransactionRepository(ABC):
    """
    'transactions' tablosu için soyut arayüz.

    Append-only: update / delete operasyonu yoktur.
    """

    # --------- READ (Query) operasyonları --------- #

    @abstractmethod
    def get_by_id(self, transaction_id: int) -> Optional[Transaction]:
        raise NotImplementedError

    @abstractmethod
    def get_by_user_id(self, user_id: int) -> List[Transaction]:
        """Kullanıcının tüm işlemleri, transaction_date artan."""
        raise NotImplementedError

    @abstractmethod
    def get_page_by_user_id(self, user_id: int, page: int, size: int) -> List[Transaction]:
        """transaction_date azalan sırada sayfalı liste (page 0'dan başlar)."""
        raise NotImplementedError

    @abstractmethod
    def get_by_user_and_stock(self, user_id: int, stock_id: int) -> List[Transaction]:
        """transaction_date azalan."""
        raise NotImplementedError

    @abstractmethod
    def get_by_user_and_date_range(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
    ) -> List[Transaction]:
        """start <= transaction_date <= end, transaction_date azalan."""
        raise NotImplementedError

    @abstractmethod
    def count_by_user_id(self, user_id: int) -> int:
        raise NotImplementedError

    # --------- Toplam sorguları --------- #

    @abstractmethod
    def get_total_buy_amount(self, user_id: int) -> Decimal:
        """SUM(quantity * price) BUY işlemleri için; yoksa 0."""
        raise NotImplementedError

    @abstractmethod
    def get_total_sell_amount(self, user_id: int) -> Decimal:
        raise NotImplementedError

    @abstractmethod
    def get_total_buy_fees(self, user_id: int) -> Decimal:
        raise NotImplementedError

    @abstractmethod
    def get_total_sell_fees(self, user_id: int) -> Decimal:
        raise NotImplementedError

    @abstractmethod
    def get_monthly_summary(self, user_id: int) -> List[MonthlySummary]:
        """
        (yıl, ay) bazında BUY ve SELL tutarları, kronolojik artan.
        """
        raise NotImplementedError

    # --------- WRITE (Command) operasyonları --------- #

    @abstractmethod
    def add(self, transaction: Transaction) -> Transaction:
        """
        Yeni bir işlem kaydı ekler.
        Dönüş: id ve created_at dolu Transaction.
        """
        raise NotImplementedError
