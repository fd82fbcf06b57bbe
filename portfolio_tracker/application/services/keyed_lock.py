# portfolio_tracker/application/services/keyed_lock.py

from __future__ import annotations

import threading
from contextlib import contextmanager
from typing import Dict, Generator, Hashable, List


class KeyedLock:
    """
    Anahtar başına bir mutex. Aynı anahtarı isteyen thread'ler sıraya girer,
    farklı anahtarlar birbirini beklemez.

        with locks.hold((user_id, stock_id)):
            ...

    Kullanılmayan kilitler referans sayısı sıfıra inince atılır; sözlük
    sadece o an tutulan / beklenen anahtarlar kadar büyür.
    """

    def __init__(self) -> None:
        self._guard = threading.Lock()
        # key -> [lock, kullanan/bekleyen sayısı]
        self._entries: Dict[Hashable, List] = {}

    @contextmanager
    def hold(self, key: Hashable) -> Generator[None, None, None]:
        with self._guard:
            entry = self._entries.get(key)
            if entry is None:
                entry = [threading.Lock(), 0]
                self._entries[key] = entry
            entry[1] += 1

        lock: threading.Lock = entry[0]
        lock.acquire()
        try:
            yield
        finally:
            lock.release()
            with self._guard:
                entry[1] -= 1
                if entry[1] == 0:
                    del self._entries[key]

    def __len__(self) -> int:
        with self._guard:
            return len(self._entries)
