"""Tests for LedgerService: buy/sell application, validation, retries."""

from contextlib import contextmanager
from datetime import datetime, timedelta
from decimal import Decimal

import pytest

from portfolio_tracker.application.services import ledger_service as ledger_module
from portfolio_tracker.application.services.keyed_lock import KeyedLock
from portfolio_tracker.application.services.ledger_service import LedgerService
from portfolio_tracker.domain.errors import (
    ConcurrencyConflictError,
    InsufficientHoldingsError,
    InvalidInputError,
    NotFoundError,
)
from portfolio_tracker.domain.models.transaction import TransactionType
from portfolio_tracker.domain.services_interfaces.i_unit_of_work import IUnitOfWork


class FlakyUnitOfWork(IUnitOfWork):
    """Fails the first ``failures`` scopes with a conflict, like a deadlocked storage."""

    def __init__(self, failures):
        self.failures = failures
        self.attempts = 0

    @contextmanager
    def serializable(self):
        self.attempts += 1
        if self.attempts <= self.failures:
            raise ConcurrencyConflictError("deadlock")
        yield


def _ledger_with(uow, account_repo, stock_repo, position_repo, transaction_repo, max_retries=3):
    return LedgerService(
        account_repo=account_repo,
        stock_repo=stock_repo,
        position_repo=position_repo,
        transaction_repo=transaction_repo,
        unit_of_work=uow,
        max_retries=max_retries,
        retry_backoff=0,
    )


class TestBuySellScenario:
    def test_buy_buy_sell_oversell(self, ledger, user, aapl):
        ledger.buy(user.id, "AAPL", 10, "150.00")
        position = ledger.get_user_positions(user.id)[0]
        assert position.quantity == Decimal("10")
        assert position.average_cost == Decimal("150.00")

        ledger.buy(user.id, "AAPL", 5, "160.00")
        position = ledger.get_position(position.id)
        assert position.quantity == Decimal("15")
        assert abs(position.average_cost - Decimal("153.33")) <= Decimal("0.01")
        assert position.average_cost == Decimal("153.3333")

        ledger.sell(user.id, "AAPL", 5, "160.00")
        position = ledger.get_position(position.id)
        assert position.quantity == Decimal("10")
        assert position.average_cost == Decimal("153.3333")

        with pytest.raises(InsufficientHoldingsError):
            ledger.sell(user.id, "AAPL", 20, "160.00")

    def test_buy_returns_transaction_referencing_position(self, ledger, user, aapl):
        when = datetime(2024, 3, 1, 10, 30)
        tx = ledger.buy(user.id, "aapl", "2.5", "100.10", fee="1.25", timestamp=when)

        assert tx.id is not None
        assert tx.type == TransactionType.BUY
        assert tx.quantity == Decimal("2.5")
        assert tx.price == Decimal("100.10")
        assert tx.fee == Decimal("1.25")
        assert tx.transaction_date == when
        assert tx.created_at is not None
        assert ledger.get_position(tx.position_id).stock_id == aapl.id

    def test_first_purchased_kept_across_buys(self, ledger, user, aapl):
        first = datetime(2024, 1, 2)
        second = datetime(2024, 2, 3)
        ledger.buy(user.id, "AAPL", 1, 100, timestamp=first)
        ledger.buy(user.id, "AAPL", 1, 110, timestamp=second)

        position = ledger.get_user_positions(user.id)[0]
        assert position.first_purchased == first
        assert position.last_transaction == second

    def test_average_cost_is_weighted_mean(self, ledger, user, aapl):
        lots = [("3", "101.17"), ("0.5", "99.99"), ("12", "120.00"), ("7.25", "88.8888")]
        for quantity, price in lots:
            ledger.buy(user.id, "AAPL", quantity, price)

        total_quantity = sum(Decimal(q) for q, _ in lots)
        weighted = sum(Decimal(q) * Decimal(p) for q, p in lots) / total_quantity
        position = ledger.get_user_positions(user.id)[0]

        assert position.quantity == total_quantity
        assert abs(position.average_cost - weighted) <= Decimal("0.0001")

    def test_sell_to_zero_keeps_position(self, ledger, user, aapl):
        ledger.buy(user.id, "AAPL", 4, 100)
        tx = ledger.sell(user.id, "AAPL", 4, 120, fee="0.50")

        position = ledger.get_position(tx.position_id)
        assert position.quantity == Decimal("0")
        assert position.average_cost == Decimal("100")
        assert not position.is_open
        assert tx.total_cost == Decimal("479.50")


class TestFailedSellLeavesNoTrace:
    def test_oversell_does_not_mutate(self, ledger, user, aapl, store):
        ledger.buy(user.id, "AAPL", 10, 150)
        positions_before = dict(store.positions)
        transactions_before = dict(store.transactions)

        with pytest.raises(InsufficientHoldingsError) as excinfo:
            ledger.sell(user.id, "AAPL", "10.000001", 150)

        assert excinfo.value.held == Decimal("10")
        assert store.positions == positions_before
        assert store.transactions == transactions_before

    def test_sell_without_position_is_not_found(self, ledger, user, aapl, store):
        with pytest.raises(NotFoundError):
            ledger.sell(user.id, "AAPL", 1, 150)
        assert store.positions == {}
        assert store.transactions == {}


class TestValidation:
    @pytest.mark.parametrize(
        "quantity, price, fee",
        [
            (0, 10, 0),
            (-1, 10, 0),
            (1, 0, 0),
            (1, -5, 0),
            (1, 10, -1),
            ("abc", 10, 0),
            ("NaN", 10, 0),
            ("0.0000001", 10, 0),
        ],
    )
    def test_rejects_bad_numbers(self, ledger, user, aapl, quantity, price, fee):
        with pytest.raises(InvalidInputError):
            ledger.buy(user.id, "AAPL", quantity, price, fee=fee)

    def test_rejects_blank_ticker(self, ledger, user):
        with pytest.raises(InvalidInputError):
            ledger.buy(user.id, "   ", 1, 10)

    def test_unknown_account_and_stock(self, ledger, user, aapl):
        with pytest.raises(NotFoundError):
            ledger.buy(999, "AAPL", 1, 10)
        with pytest.raises(NotFoundError):
            ledger.buy(user.id, "MSFT", 1, 10)

    def test_quantity_rounded_to_six_places(self, ledger, user, aapl):
        tx = ledger.buy(user.id, "AAPL", "1.2345675", 10)
        assert tx.quantity == Decimal("1.234568")

    def test_price_rounding_to_zero_is_rejected(self, ledger, user, aapl, position_repo, transaction_repo):
        with pytest.raises(InvalidInputError):
            ledger.buy(user.id, "AAPL", 1, "0.00001")
        assert position_repo.get_by_user_id(user.id) == []
        assert transaction_repo.get_by_user_id(user.id) == []

    def test_price_and_fee_rounded_to_four_places(self, ledger, user, aapl):
        tx = ledger.buy(user.id, "AAPL", 2, "100.123456", fee="0.00005")
        assert tx.price == Decimal("100.1235")
        assert tx.fee == Decimal("0.0001")
        assert ledger.get_position(tx.position_id).average_cost == Decimal("100.1235")


class TestRetries:
    def test_conflict_is_retried(self, account_repo, stock_repo, position_repo, transaction_repo, user, aapl):
        uow = FlakyUnitOfWork(failures=2)
        ledger = _ledger_with(uow, account_repo, stock_repo, position_repo, transaction_repo)

        ledger.buy(user.id, "AAPL", 1, 100)

        assert uow.attempts == 3
        assert len(transaction_repo.get_by_user_id(user.id)) == 1

    def test_conflict_reraised_after_max_retries(
        self, account_repo, stock_repo, position_repo, transaction_repo, user, aapl
    ):
        uow = FlakyUnitOfWork(failures=10)
        ledger = _ledger_with(uow, account_repo, stock_repo, position_repo, transaction_repo, max_retries=2)

        with pytest.raises(ConcurrencyConflictError):
            ledger.buy(user.id, "AAPL", 1, 100)
        assert uow.attempts == 3
        assert transaction_repo.get_by_user_id(user.id) == []

    def test_business_errors_are_not_retried(
        self, account_repo, stock_repo, position_repo, transaction_repo, user, aapl
    ):
        uow = FlakyUnitOfWork(failures=0)
        ledger = _ledger_with(uow, account_repo, stock_repo, position_repo, transaction_repo)

        with pytest.raises(NotFoundError):
            ledger.sell(user.id, "AAPL", 1, 100)
        assert uow.attempts == 1

    def test_backoff_runs_without_holding_the_pair_lock(
        self, monkeypatch, account_repo, stock_repo, position_repo, transaction_repo, user, aapl
    ):
        locks = KeyedLock()
        uow = FlakyUnitOfWork(failures=2)
        ledger = LedgerService(
            account_repo=account_repo,
            stock_repo=stock_repo,
            position_repo=position_repo,
            transaction_repo=transaction_repo,
            unit_of_work=uow,
            locks=locks,
            retry_backoff=0.5,
        )
        held_during_sleep = []
        monkeypatch.setattr(ledger_module.time, "sleep", lambda seconds: held_during_sleep.append(len(locks)))

        ledger.buy(user.id, "AAPL", 1, 100)

        assert held_during_sleep == [0, 0]
        assert uow.attempts == 3


class TestReads:
    def test_transaction_queries(self, ledger, user, other_user, aapl, jpm):
        base = datetime(2024, 5, 1)
        ledger.buy(user.id, "AAPL", 1, 100, timestamp=base)
        ledger.buy(user.id, "JPM", 2, 200, timestamp=base + timedelta(days=1))
        ledger.sell(user.id, "AAPL", 1, 110, timestamp=base + timedelta(days=2))
        ledger.buy(other_user.id, "AAPL", 5, 100, timestamp=base)

        history = ledger.get_user_transactions(user.id)
        assert [t.transaction_date for t in history] == sorted(t.transaction_date for t in history)
        assert ledger.count_user_transactions(user.id) == 3

        first_page = ledger.get_paginated_transactions(user.id, 0, 2)
        assert [t.type for t in first_page] == [TransactionType.SELL, TransactionType.BUY]
        assert len(ledger.get_paginated_transactions(user.id, 1, 2)) == 1

        aapl_history = ledger.get_stock_transactions(user.id, aapl.id)
        assert [t.type for t in aapl_history] == [TransactionType.SELL, TransactionType.BUY]

        in_range = ledger.get_transactions_in_date_range(
            user.id, base + timedelta(hours=1), base + timedelta(days=1, hours=1)
        )
        assert [t.stock_id for t in in_range] == [jpm.id]

    def test_bad_page_and_range(self, ledger, user):
        with pytest.raises(InvalidInputError):
            ledger.get_paginated_transactions(user.id, -1, 10)
        with pytest.raises(InvalidInputError):
            ledger.get_paginated_transactions(user.id, 0, 0)
        with pytest.raises(InvalidInputError):
            ledger.get_transactions_in_date_range(user.id, datetime(2024, 2, 1), datetime(2024, 1, 1))

    def test_unknown_position(self, ledger):
        with pytest.raises(NotFoundError):
            ledger.get_position(42)
