"""Tests for AggregatorService: valuation, performance, allocation, filters."""

from datetime import datetime
from decimal import Decimal

import pytest

from portfolio_tracker.domain.errors import InvalidInputError


@pytest.fixture
def balanced_portfolio(ledger, catalog, user, aapl, jpm):
    """A: value 1600 / cost 1500, B: value 900 / cost 1000."""
    ledger.buy(user.id, "AAPL", 10, 150, fee="2.00", timestamp=datetime(2024, 1, 15))
    ledger.buy(user.id, "JPM", 10, 100, fee="1.00", timestamp=datetime(2024, 2, 10))
    catalog.update_stock_price_by_ticker("AAPL", 160)
    catalog.update_stock_price_by_ticker("JPM", 90)
    return user


class TestPerformance:
    def test_balanced_scenario(self, aggregator, balanced_portfolio):
        metrics = aggregator.performance_metrics(balanced_portfolio.id)

        assert metrics.total_value == Decimal("2500")
        assert metrics.total_cost == Decimal("2500")
        assert metrics.total_gain == Decimal("0")
        assert metrics.percentage_return == Decimal("0.00")
        assert metrics.total_investment == Decimal("2500")
        assert metrics.total_buy_fees == Decimal("3.00")
        assert metrics.total_fees == Decimal("3.00")
        assert metrics.realized_gain == Decimal("-3.00")

    def test_no_positions_is_zero_not_error(self, aggregator, user):
        assert aggregator.portfolio_value(user.id) == Decimal("0")
        metrics = aggregator.performance_metrics(user.id)
        assert metrics.total_cost == Decimal("0")
        assert metrics.percentage_return == Decimal("0.00")

    def test_closed_position_has_zero_cost(self, aggregator, ledger, user, aapl):
        ledger.buy(user.id, "AAPL", 5, 100)
        ledger.sell(user.id, "AAPL", 5, 120, fee=1)

        metrics = aggregator.performance_metrics(user.id)
        assert metrics.total_cost == Decimal("0")
        assert metrics.percentage_return == Decimal("0.00")
        assert metrics.total_sales == Decimal("600")
        assert metrics.realized_gain == Decimal("599")

    def test_unpriced_stock_contributes_nothing(self, aggregator, ledger, catalog, user, aapl):
        catalog.create_stock("NEW", "Newco", "NYSE", "USD")
        ledger.buy(user.id, "NEW", 3, 10)
        ledger.buy(user.id, "AAPL", 1, 150)

        assert aggregator.portfolio_value(user.id) == Decimal("150")
        assert aggregator.performance_metrics(user.id).total_cost == Decimal("150")

    def test_positive_return_rounded(self, aggregator, ledger, catalog, user, aapl):
        ledger.buy(user.id, "AAPL", 3, 100)
        catalog.update_stock_price_by_ticker("AAPL", "133.3333")

        metrics = aggregator.performance_metrics(user.id)
        assert metrics.percentage_return == Decimal("33.33")


class TestAllocation:
    def test_sector_allocation_sums_to_hundred(self, aggregator, balanced_portfolio):
        allocation = aggregator.sector_allocation(balanced_portfolio.id)

        assert allocation == {"Technology": Decimal("64.00"), "Financial Services": Decimal("36.00")}
        assert abs(sum(allocation.values()) - Decimal("100")) <= Decimal("0.02")

    def test_thirds_round_within_tolerance(self, aggregator, ledger, catalog, user, aapl, jpm):
        catalog.create_stock("XOM", "Exxon", "NYSE", "USD", "Energy")
        catalog.update_stock_price_by_ticker("XOM", 100)
        catalog.update_stock_price_by_ticker("AAPL", 100)
        catalog.update_stock_price_by_ticker("JPM", 100)
        for ticker in ("AAPL", "JPM", "XOM"):
            ledger.buy(user.id, ticker, 1, 100)

        allocation = aggregator.sector_allocation(user.id)
        assert set(allocation.values()) == {Decimal("33.33")}
        assert abs(sum(allocation.values()) - Decimal("100")) <= Decimal("0.02")

    def test_empty_when_no_value(self, aggregator, user):
        assert aggregator.sector_allocation(user.id) == {}

    def test_stock_without_sector_is_left_out(self, aggregator, ledger, catalog, user, aapl):
        catalog.create_stock("ETF1", "Some Fund", "NYSE", "USD")
        catalog.update_stock_price_by_ticker("ETF1", 50)
        ledger.buy(user.id, "ETF1", 2, 50)
        ledger.buy(user.id, "AAPL", 1, 150)

        assert aggregator.sector_allocation(user.id) == {"Technology": Decimal("100.00")}


class TestFilters:
    def test_largest_positions(self, aggregator, balanced_portfolio, ledger):
        largest = aggregator.largest_positions(balanced_portfolio.id, 1)
        assert len(largest) == 1
        assert largest[0].average_cost == Decimal("150")

        ledger.sell(balanced_portfolio.id, "AAPL", 10, 160)
        remaining = aggregator.largest_positions(balanced_portfolio.id, 5)
        assert [p.average_cost for p in remaining] == [Decimal("100")]

    def test_largest_positions_rejects_bad_limit(self, aggregator, user):
        with pytest.raises(InvalidInputError):
            aggregator.largest_positions(user.id, 0)

    def test_positions_with_gain_above(self, aggregator, balanced_portfolio):
        winners = aggregator.positions_with_gain_above(balanced_portfolio.id, 5)
        assert [p.average_cost for p in winners] == [Decimal("150")]

        assert aggregator.positions_with_gain_above(balanced_portfolio.id, "6.67") == []
        assert len(aggregator.positions_with_gain_above(balanced_portfolio.id, -20)) == 2


class TestSummaries:
    def test_monthly_summary_ascending(self, aggregator, ledger, user, aapl):
        ledger.buy(user.id, "AAPL", 2, 100, timestamp=datetime(2024, 3, 5))
        ledger.buy(user.id, "AAPL", 1, 100, timestamp=datetime(2023, 12, 31))
        ledger.sell(user.id, "AAPL", 1, 120, timestamp=datetime(2024, 3, 20))

        summary = aggregator.monthly_transaction_summary(user.id)
        assert [(m.year, m.month) for m in summary] == [(2023, 12), (2024, 3)]
        assert summary[1].buy_amount == Decimal("200")
        assert summary[1].sell_amount == Decimal("120")

    def test_portfolio_summary(self, aggregator, balanced_portfolio):
        summary = aggregator.portfolio_summary(balanced_portfolio.id)

        assert summary.total_positions == 2
        assert summary.portfolio_value == Decimal("2500")
        assert summary.metrics.total_gain == Decimal("0")
        assert len(summary.monthly) == 2
        assert summary.metrics.to_dict()["total_value"] == Decimal("2500")
