# portfolio_tracker/domain/models/quote.py

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal


@dataclass(frozen=True)
class Quote:
    """
    Quote provider'dan gelen anlık fiyat bilgisi.
    """
    symbol: str
    price: Decimal
    open: Decimal
    high: Decimal
    low: Decimal
    previous_close: Decimal
    change: Decimal
    change_percent: Decimal
    volume: int
    timestamp: datetime
