# portfolio_tracker/domain/models/transaction.py

from __future__ import annotations
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from enum import Enum
from typing import Optional

from portfolio_tracker.domain.numeric import ZERO


class TransactionType(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


@dataclass(frozen=True)
class Transaction:
    """
    Tek bir alım/satım işlemini temsil eder.
    DB'deki transactions tablosunun domain karşılığıdır.

    Oluşturulduktan sonra değişmez (append-only); geçmiş hareketlerin
    tek doğruluk kaynağı budur.
    """
    id: Optional[int]
    user_id: int
    stock_id: int
    position_id: int
    type: TransactionType
    quantity: Decimal
    price: Decimal
    fee: Decimal
    transaction_date: datetime
    created_at: Optional[datetime] = None

    @property
    def value(self) -> Decimal:
        """
        İşlemin ücretsiz tutarı = quantity * price
        """
        return self.quantity * self.price

    @property
    def total_cost(self) -> Decimal:
        """
        BUY: value + fee, SELL: value - fee
        """
        fee = self.fee if self.fee is not None else ZERO
        if self.type == TransactionType.BUY:
            return self.value + fee
        return self.value - fee

    # ---- Factory metotları ---- #

    @classmethod
    def create_buy(
        cls,
        user_id: int,
        stock_id: int,
        position_id: int,
        quantity: Decimal,
        price: Decimal,
        fee: Decimal,
        transaction_date: datetime,
    ) -> "Transaction":
        """
        Yeni bir alış kaydı (id henüz yok, repository ekledikten sonra gelir).
        """
        return cls(
            id=None,
            user_id=user_id,
            stock_id=stock_id,
            position_id=position_id,
            type=TransactionType.BUY,
            quantity=quantity,
            price=price,
            fee=fee,
            transaction_date=transaction_date,
        )

    @classmethod
    def create_sell(
        cls,
        user_id: int,
        stock_id: int,
        position_id: int,
        quantity: Decimal,
        price: Decimal,
        fee: Decimal,
        transaction_date: datetime,
    ) -> "Transaction":
        """
        Yeni bir satış kaydı. Quantity yine pozitif girilir; yön type üzerinden.
        """
        return cls(
            id=None,
            user_id=user_id,
            stock_id=stock_id,
            position_id=position_id,
            type=TransactionType.SELL,
            quantity=quantity,
            price=price,
            fee=fee,
            transaction_date=transaction_date,
        )
