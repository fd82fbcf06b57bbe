# portfolio_tracker/domain/services_interfaces/i_stock_repo.py

from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from portfolio_tracker.domain.models.stock import Stock


class IStockRepository(ABC):
    """
    'stocks' tablosuna erişim için soyut arayüz.

    Amaç:
      - Uygulama & servis katmanı bu interface'e göre programlar.
      - MySQL / in-memory implementasyonları bu interface'i uygular.
    """

    # ---------- READ operasyonları ---------- #

    @abstractmethod
    def get_all(self) -> List[Stock]:
        """Tüm stock kayıtlarını ticker sırasıyla döner."""
        raise NotImplementedError

    @abstractmethod
    def get_by_id(self, stock_id: int) -> Optional[Stock]:
        """Bulunamazsa None."""
        raise NotImplementedError

    @abstractmethod
    def get_by_ticker(self, ticker: str) -> Optional[Stock]:
        """
        Ticker ile arar, büyük/küçük harf duyarsız.
        Bulunamazsa None.
        """
        raise NotImplementedError

    @abstractmethod
    def exists_by_ticker(self, ticker: str) -> bool:
        """Büyük/küçük harf duyarsız varlık kontrolü."""
        raise NotImplementedError

    @abstractmethod
    def get_top_by_price(self, limit: int) -> List[Stock]:
        """
        Fiyatı olan hisseleri fiyata göre azalan sırada, en fazla limit kadar döner.
        """
        raise NotImplementedError

    @abstractmethod
    def search(self, query: str) -> List[Stock]:
        """
        Ticker veya isim içinde query geçen hisseler (büyük/küçük harf duyarsız).
        """
        raise NotImplementedError

    @abstractmethod
    def get_stale(self, cutoff: datetime) -> List[Stock]:
        """
        Fiyatı hiç çekilmemiş ya da last_updated < cutoff olan hisseler.
        """
        raise NotImplementedError

    # ---------- WRITE operasyonları ---------- #

    @abstractmethod
    def save(self, stock: Stock) -> Stock:
        """
        id None ise insert, değilse update.
        Dönüş: id'si dolu Stock objesi.
        """
        raise NotImplementedError

    @abstractmethod
    def update_price(
        self,
        stock_id: int,
        price: Decimal,
        updated_at: datetime,
    ) -> Optional[Stock]:
        """
        Sadece current_price ve last_updated alanlarını günceller.
        Diğer alanlara eş zamanlı yapılan değişiklikleri ezmemek için ayrı metot.
        Kayıt yoksa None.
        """
        raise NotImplementedError

    @abstractmethod
    def delete(self, stock_id: int) -> None:
        raise NotImplementedError
