# portfolio_tracker/application/services/paced_batch.py

from __future__ import annotations

import threading
from typing import Generic, Iterable, Iterator, Optional, TypeVar

from loguru import logger

T = TypeVar("T")


class PacedBatch(Generic[T]):
    """
    Hız limitli bir dış servise karşı iş listesini dolaşan, iptal edilebilir iterator.

    Her batch_size öğeden sonra (son öğeden sonra değil) pause_seconds kadar
    bekler. Bekleme threading.Event.wait ile yapılır: cancel_event set
    edildiğinde hem öğeler arasında hem de bekleme sırasında anında durur.
    Hiçbir kilit tutulmaz; çağıran taraf zaten işlenen öğelerin sonucunu korur.

        batch = PacedBatch(stocks, batch_size=5, pause_seconds=60, cancel_event=stop)
        for stock in batch:
            ...
        if batch.cancelled:
            ...
    """

    def __init__(
        self,
        items: Iterable[T],
        batch_size: int,
        pause_seconds: float,
        cancel_event: Optional[threading.Event] = None,
    ) -> None:
        if batch_size <= 0:
            raise ValueError("batch_size must be positive")
        if pause_seconds < 0:
            raise ValueError("pause_seconds cannot be negative")
        self._items = list(items)
        self._batch_size = batch_size
        self._pause_seconds = pause_seconds
        self._cancel_event = cancel_event or threading.Event()
        self.cancelled = False
        self.pauses = 0
        self.processed = 0

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[T]:
        for index, item in enumerate(self._items):
            if self._cancel_event.is_set():
                self._mark_cancelled(index)
                return

            if index and index % self._batch_size == 0:
                logger.info(
                    f"Pausing {self._pause_seconds}s for rate limit "
                    f"after {index}/{len(self._items)} items"
                )
                self.pauses += 1
                if self._cancel_event.wait(self._pause_seconds):
                    self._mark_cancelled(index)
                    return

            self.processed += 1
            yield item

    def _mark_cancelled(self, index: int) -> None:
        self.cancelled = True
        logger.warning(f"Paced batch cancelled, {len(self._items) - index} items left unprocessed")
