# portfolio_tracker/domain/models/stock.py

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import Optional


@dataclass(frozen=True)
class Stock:
    """
    'stocks' tablosunun domain karşılığı.

    Not:
      - ticker her zaman büyük harfle saklanır; eşsizlik kontrolü
        büyük/küçük harf duyarsızdır.
      - current_price henüz hiç fiyat çekilmediyse None olabilir.
      - last_updated her create/update işleminde set edilir.
    """
    id: Optional[int]
    ticker: str                         # Örn: "AAPL"
    name: str
    exchange: str
    currency: str = "USD"
    sector: Optional[str] = None
    industry: Optional[str] = None
    current_price: Optional[Decimal] = None
    last_updated: Optional[datetime] = None

    @property
    def has_price(self) -> bool:
        return self.current_price is not None
