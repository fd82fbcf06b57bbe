# portfolio_tracker/domain/services_interfaces/i_position_repo.py

from __future__ import annotations

from abc import ABC, abstractmethod
from decimal import Decimal
from typing import List, Optional

from portfolio_tracker.domain.models.performance import SectorValue, ValuationTotals
from portfolio_tracker.domain.models.position import Position


class IPositionRepository(ABC):
    """
    'positions' tablosuna erişim için soyut arayüz.

    Aggregator'ın ihtiyaç duyduğu toplamlar (sektör toplamı, en büyük
    pozisyonlar, getiri eşiği) belleğe yükleyip filtrelemek yerine
    repository seviyesinde sorgu olarak tanımlıdır.
    """

    # --------- READ operasyonları --------- #

    @abstractmethod
    def get_by_id(self, position_id: int) -> Optional[Position]:
        raise NotImplementedError

    @abstractmethod
    def get_by_user_and_stock(self, user_id: int, stock_id: int) -> Optional[Position]:
        """(user_id, stock_id) çifti için tek pozisyon; yoksa None."""
        raise NotImplementedError

    @abstractmethod
    def get_by_user_id(self, user_id: int) -> List[Position]:
        raise NotImplementedError

    @abstractmethod
    def count_by_user_id(self, user_id: int) -> int:
        raise NotImplementedError

    # --------- Aggregation sorguları --------- #

    @abstractmethod
    def get_total_value(self, user_id: int) -> Decimal:
        """
        SUM(quantity * current_price); fiyatı olmayan hisseler katkı yapmaz.
        Pozisyon yoksa 0.
        """
        raise NotImplementedError

    @abstractmethod
    def get_valuation_totals(self, user_id: int) -> ValuationTotals:
        """
        Fiyatı bilinen pozisyonlar için:
          total_value = SUM(quantity * current_price)
          total_cost  = SUM(quantity * average_cost)
        """
        raise NotImplementedError

    @abstractmethod
    def get_sector_values(self, user_id: int) -> List[SectorValue]:
        """
        Sektörü NULL olmayan hisseler için sektör bazında SUM(quantity * current_price).
        """
        raise NotImplementedError

    @abstractmethod
    def get_largest_by_value(self, user_id: int, limit: int) -> List[Position]:
        """
        quantity > 0 olan pozisyonlar, quantity * current_price'a göre azalan.
        """
        raise NotImplementedError

    @abstractmethod
    def get_with_gain_above(self, user_id: int, threshold: Decimal) -> List[Position]:
        """
        current_price / average_cost - 1 > threshold olan pozisyonlar.
        threshold oran olarak verilir (0.10 = %10). average_cost == 0 hariç tutulur.
        """
        raise NotImplementedError

    # --------- WRITE operasyonları --------- #

    @abstractmethod
    def save(self, position: Position) -> Position:
        """
        id None ise insert, değilse update.
        Pozisyonlar normal akışta silinmez; bu yüzden delete metodu yok.
        """
        raise NotImplementedError
