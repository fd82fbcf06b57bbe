# portfolio_tracker/application/services/price_cache.py

from __future__ import annotations

import threading
from collections import OrderedDict
from typing import Callable, Optional

from loguru import logger

from portfolio_tracker.domain.models.stock import Stock


class PriceCache:
    """
    StockCatalog önündeki sınırlı (LRU) ve thread-safe ticker → Stock önbelleği.

    - Anahtar her zaman büyük harfli ticker.
    - Miss durumunda get_or_load() ile tembel doldurulur.
    - Katalogdaki her yazma işlemi ilgili anahtarı invalidate eder; clear() hepsini siler.
    - Tamamen performans amaçlıdır: eş zamanlı bir yazma tamamlanana kadar
      okunan değer eski olabilir.

    Yükleme lock dışında yapılır. Yükleme sürerken aynı anahtar invalidate
    edilirse, yüklenen (artık eski) değer cache'e yazılmaz.
    """

    def __init__(self, max_entries: int = 1024) -> None:
        if max_entries <= 0:
            raise ValueError("max_entries must be positive")
        self._max_entries = max_entries
        self._entries: "OrderedDict[str, Stock]" = OrderedDict()
        self._generation = 0
        self._lock = threading.Lock()

    @staticmethod
    def _key(ticker: str) -> str:
        return ticker.strip().upper()

    # --------- Okuma --------- #

    def get(self, ticker: str) -> Optional[Stock]:
        key = self._key(ticker)
        with self._lock:
            stock = self._entries.get(key)
            if stock is not None:
                self._entries.move_to_end(key)
            return stock

    def get_or_load(
        self,
        ticker: str,
        loader: Callable[[str], Optional[Stock]],
    ) -> Optional[Stock]:
        key = self._key(ticker)
        with self._lock:
            cached = self._entries.get(key)
            if cached is not None:
                self._entries.move_to_end(key)
                return cached
            generation = self._generation

        stock = loader(key)
        if stock is None:
            return None

        with self._lock:
            if self._generation == generation:
                self._store(key, stock)
        return stock

    # --------- Yazma --------- #

    def put(self, stock: Stock) -> None:
        with self._lock:
            self._store(self._key(stock.ticker), stock)

    def _store(self, key: str, stock: Stock) -> None:
        self._entries[key] = stock
        self._entries.move_to_end(key)
        while len(self._entries) > self._max_entries:
            self._entries.popitem(last=False)

    def invalidate(self, ticker: str) -> None:
        with self._lock:
            self._generation += 1
            self._entries.pop(self._key(ticker), None)

    def clear(self) -> None:
        with self._lock:
            self._generation += 1
            self._entries.clear()
        logger.info("Stock cache cleared")

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, ticker: str) -> bool:
        with self._lock:
            return self._key(ticker) in self._entries
