# portfolio_tracker/infrastructure/memory/memory_store.py

from __future__ import annotations

import itertools
import threading
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Dict, Generator, Iterator

from portfolio_tracker.domain.models.account import Account
from portfolio_tracker.domain.models.position import Position
from portfolio_tracker.domain.models.stock import Stock
from portfolio_tracker.domain.models.transaction import Transaction
from portfolio_tracker.domain.services_interfaces.i_unit_of_work import IUnitOfWork


@dataclass
class InMemoryStore:
    """
    Process içi tablo seti. Testlerde ve DB'siz çalıştırmada MySQL yerine kullanılır.

    Domain objeleri frozen dataclass olduğu için saklanan kayıtlar dışarıdan
    değiştirilemez; her yazma işlemi lock altında tek adımda yapılır.
    """
    accounts: Dict[int, Account] = field(default_factory=dict)
    stocks: Dict[int, Stock] = field(default_factory=dict)
    positions: Dict[int, Position] = field(default_factory=dict)
    transactions: Dict[int, Transaction] = field(default_factory=dict)
    lock: threading.RLock = field(default_factory=threading.RLock)
    _ids: Dict[str, Iterator[int]] = field(default_factory=dict)

    def next_id(self, table: str) -> int:
        with self.lock:
            if table not in self._ids:
                self._ids[table] = itertools.count(1)
            return next(self._ids[table])


class InMemoryUnitOfWork(IUnitOfWork):
    """
    In-memory store SERIALIZABLE izolasyon sağlamaz: her repository çağrısı
    kendi başına atomiktir ama read-modify-write dizisi korunmaz.
    Aynı (user, stock) çiftine gelen yazmaları LedgerService'in anahtar
    bazlı kilidi serialize eder; bu sınıf sadece sözleşmeyi tamamlar.
    """

    @contextmanager
    def serializable(self) -> Generator[None, None, None]:
        yield
