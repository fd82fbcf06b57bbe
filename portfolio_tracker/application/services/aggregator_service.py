# portfolio_tracker/application/services/aggregator_service.py

from __future__ import annotations

from decimal import Decimal
from typing import Dict, List

from portfolio_tracker.domain.errors import InvalidInputError
from portfolio_tracker.domain.models.performance import (
    MonthlySummary,
    PerformanceMetrics,
    PortfolioSummary,
)
from portfolio_tracker.domain.models.position import Position
from portfolio_tracker.domain.numeric import HUNDRED, ZERO, percent_of, to_decimal
from portfolio_tracker.domain.services_interfaces.i_position_repo import IPositionRepository
from portfolio_tracker.domain.services_interfaces.i_transaction_repo import ITransactionRepository


class AggregatorService:
    """
    Ledger durumu üzerinde salt-okunur portföy hesaplamaları ("şu an" itibarıyla).

    Okumalar unit of work dışında yapılır; eş zamanlı bir alım/satım sırasında
    hesaplanan özet anlık olarak eski olabilir ama asla bozuk olmaz.
    """

    def __init__(
        self,
        position_repo: IPositionRepository,
        transaction_repo: ITransactionRepository,
    ) -> None:
        self._position_repo = position_repo
        self._transaction_repo = transaction_repo

    # --------- Değer / performans --------- #

    def portfolio_value(self, user_id: int) -> Decimal:
        """
        Σ quantity * current_price. Fiyatı olmayan hisseler katkı vermez,
        pozisyonu olmayan kullanıcı için 0 döner.
        """
        return self._position_repo.get_total_value(user_id)

    def performance_metrics(self, user_id: int) -> PerformanceMetrics:
        totals = self._position_repo.get_valuation_totals(user_id)
        total_gain = totals.total_value - totals.total_cost

        total_investment = self._transaction_repo.get_total_buy_amount(user_id)
        total_sales = self._transaction_repo.get_total_sell_amount(user_id)
        buy_fees = self._transaction_repo.get_total_buy_fees(user_id)
        sell_fees = self._transaction_repo.get_total_sell_fees(user_id)

        return PerformanceMetrics(
            total_value=totals.total_value,
            total_cost=totals.total_cost,
            total_gain=total_gain,
            percentage_return=percent_of(total_gain, totals.total_cost),
            total_investment=total_investment,
            total_sales=total_sales,
            total_buy_fees=buy_fees,
            total_sell_fees=sell_fees,
            total_fees=buy_fees + sell_fees,
            realized_gain=total_sales - buy_fees - sell_fees,
        )

    def sector_allocation(self, user_id: int) -> Dict[str, Decimal]:
        """
        { sektör: yüzde } (HALF_UP, 2 hane). Toplam değer 0 ise boş dict.
        """
        sector_values = self._position_repo.get_sector_values(user_id)
        total = sum((sv.value for sv in sector_values), ZERO)
        if total == ZERO:
            return {}
        return {sv.sector: percent_of(sv.value, total) for sv in sector_values}

    # --------- Pozisyon filtreleri --------- #

    def largest_positions(self, user_id: int, limit: int) -> List[Position]:
        if limit <= 0:
            raise InvalidInputError("limit must be positive")
        return self._position_repo.get_largest_by_value(user_id, limit)

    def positions_with_gain_above(self, user_id: int, gain_percent) -> List[Position]:
        """
        current_price / average_cost - 1 > gain_percent / 100 olan pozisyonlar.
        Maliyeti sıfır olanlar hariç.
        """
        try:
            threshold = to_decimal(gain_percent) / HUNDRED
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc
        return self._position_repo.get_with_gain_above(user_id, threshold)

    # --------- İşlem özetleri --------- #

    def monthly_transaction_summary(self, user_id: int) -> List[MonthlySummary]:
        return self._transaction_repo.get_monthly_summary(user_id)

    def portfolio_summary(self, user_id: int) -> PortfolioSummary:
        return PortfolioSummary(
            total_positions=self._position_repo.count_by_user_id(user_id),
            portfolio_value=self.portfolio_value(user_id),
            metrics=self.performance_metrics(user_id),
            sector_allocation=self.sector_allocation(user_id),
            monthly=self.monthly_transaction_summary(user_id),
        )
