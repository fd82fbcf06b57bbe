# portfolio_tracker/domain/models/position.py

from __future__ import annotations
from dataclasses import dataclass, replace
from datetime import datetime
from decimal import Decimal
from typing import Optional

from portfolio_tracker.domain.errors import InsufficientHoldingsError
from portfolio_tracker.domain.numeric import (
    HUNDRED,
    ZERO,
    quantize_percent,
    quantize_price,
    quantize_quantity,
)


@dataclass(frozen=True)
class Position:
    """
    Bir kullanıcının tek bir hissedeki güncel pozisyonu.
    (user_id, stock_id) çifti başına en fazla bir kayıt vardır.

    - quantity: eldeki toplam adet (>= 0, 6 hane)
    - average_cost: adet ağırlıklı alış fiyatı (4 hane, komisyon hariç)
    - quantity sıfıra inse bile kayıt silinmez, geçmiş olarak kalır.
    """
    id: Optional[int]
    user_id: int
    stock_id: int
    quantity: Decimal
    average_cost: Decimal
    first_purchased: datetime
    last_transaction: datetime
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    # --------- Temel hesaplamalar --------- #

    @property
    def total_cost(self) -> Decimal:
        """Eldeki adetlerin maliyet toplamı = quantity * average_cost."""
        return self.quantity * self.average_cost

    @property
    def is_open(self) -> bool:
        return self.quantity > ZERO

    def current_value(self, current_price: Optional[Decimal]) -> Optional[Decimal]:
        """Güncel fiyata göre piyasa değeri; fiyat yoksa None."""
        if current_price is None:
            return None
        return current_price * self.quantity

    def unrealized_gain(self, current_price: Optional[Decimal]) -> Optional[Decimal]:
        value = self.current_value(current_price)
        if value is None:
            return None
        return value - self.total_cost

    def percentage_return(self, current_price: Optional[Decimal]) -> Optional[Decimal]:
        """
        Gerçekleşmemiş getiri yüzdesi. Maliyet sıfırsa tanımsız (None).
        """
        gain = self.unrealized_gain(current_price)
        cost = self.total_cost
        if gain is None or cost == ZERO:
            return None
        return quantize_percent(gain * HUNDRED / cost)

    # --------- Alım / satım uygulama --------- #

    @classmethod
    def open(
        cls,
        user_id: int,
        stock_id: int,
        quantity: Decimal,
        price: Decimal,
        timestamp: datetime,
    ) -> "Position":
        """
        (user, stock) çifti için ilk BUY: ortalama maliyet = alış fiyatı.
        """
        return cls(
            id=None,
            user_id=user_id,
            stock_id=stock_id,
            quantity=quantize_quantity(quantity),
            average_cost=quantize_price(price),
            first_purchased=timestamp,
            last_transaction=timestamp,
        )

    def apply_buy(self, quantity: Decimal, price: Decimal, timestamp: datetime) -> "Position":
        """
        Weighted average cost:
            yeni_adet = eski_adet + adet
            yeni_ort  = (eski_adet * eski_ort + adet * fiyat) / yeni_adet   (HALF_UP, 4 hane)
        first_purchased değişmez.
        """
        new_quantity = quantize_quantity(self.quantity + quantity)
        existing_value = self.quantity * self.average_cost
        new_average = quantize_price((existing_value + quantity * price) / new_quantity)
        return replace(
            self,
            quantity=new_quantity,
            average_cost=new_average,
            last_transaction=timestamp,
        )

    def apply_sell(self, ticker: str, quantity: Decimal, timestamp: datetime) -> "Position":
        """
        Satış sadece adedi düşürür; ortalama maliyet (cost basis) değişmez.
        """
        if self.quantity < quantity:
            raise InsufficientHoldingsError(ticker, self.quantity, quantity)
        return replace(
            self,
            quantity=quantize_quantity(self.quantity - quantity),
            last_transaction=timestamp,
        )
