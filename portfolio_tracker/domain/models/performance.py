# portfolio_tracker/domain/models/performance.py

from __future__ import annotations
from dataclasses import asdict, dataclass, field
from decimal import Decimal
from typing import Dict, List

from portfolio_tracker.domain.numeric import ZERO


@dataclass(frozen=True)
class ValuationTotals:
    """
    Fiyatı bilinen pozisyonlar üzerinden toplam piyasa değeri ve maliyet.
    Repository seviyesinde tek sorgu ile hesaplanır.
    """
    total_value: Decimal = ZERO
    total_cost: Decimal = ZERO


@dataclass(frozen=True)
class SectorValue:
    sector: str
    value: Decimal


@dataclass(frozen=True)
class MonthlySummary:
    """(yıl, ay) kovası için BUY ve SELL tutarları."""
    year: int
    month: int
    buy_amount: Decimal
    sell_amount: Decimal


@dataclass(frozen=True)
class PerformanceMetrics:
    total_value: Decimal
    total_cost: Decimal
    total_gain: Decimal
    percentage_return: Decimal
    total_investment: Decimal
    total_sales: Decimal
    total_buy_fees: Decimal
    total_sell_fees: Decimal
    total_fees: Decimal
    # Satılan lotların maliyetiyle netleştirilmez: total_sales - total_buy_fees - total_sell_fees
    realized_gain: Decimal

    def to_dict(self) -> Dict[str, Decimal]:
        return asdict(self)


@dataclass(frozen=True)
class PortfolioSummary:
    total_positions: int
    portfolio_value: Decimal
    metrics: PerformanceMetrics
    sector_allocation: Dict[str, Decimal] = field(default_factory=dict)
    monthly: List[MonthlySummary] = field(default_factory=list)
