"""Shared test fixtures: in-memory repositories, a scripted quote provider, seeded stocks."""

from datetime import datetime
from decimal import Decimal

import pytest

from portfolio_tracker.application.services.account_service import AccountService
from portfolio_tracker.application.services.aggregator_service import AggregatorService
from portfolio_tracker.application.services.ledger_service import LedgerService
from portfolio_tracker.application.services.price_cache import PriceCache
from portfolio_tracker.application.services.stock_catalog_service import StockCatalogService
from portfolio_tracker.domain.errors import QuoteUnavailableError
from portfolio_tracker.domain.models.quote import Quote
from portfolio_tracker.domain.services_interfaces.i_quote_provider import IQuoteProvider
from portfolio_tracker.infrastructure.memory.memory_store import InMemoryStore, InMemoryUnitOfWork
from portfolio_tracker.infrastructure.memory.repositories import (
    InMemoryAccountRepository,
    InMemoryPositionRepository,
    InMemoryStockRepository,
    InMemoryTransactionRepository,
)


class FakeQuoteProvider(IQuoteProvider):
    """Serves prices from a dict; tickers in ``failing`` raise, counts every call."""

    def __init__(self, prices=None, failing=None, overviews=None):
        self.prices = {k: Decimal(str(v)) for k, v in (prices or {}).items()}
        self.failing = dict(failing or {})
        self.overviews = dict(overviews or {})
        self.calls = []

    def get_quote(self, ticker):
        self.calls.append(ticker)
        if ticker in self.failing:
            error = self.failing[ticker]
            if isinstance(error, Exception):
                raise error
            raise QuoteUnavailableError(ticker, error)
        if ticker not in self.prices:
            raise QuoteUnavailableError(ticker, "unknown symbol")
        price = self.prices[ticker]
        return Quote(
            symbol=ticker,
            price=price,
            open=price,
            high=price,
            low=price,
            previous_close=price,
            change=Decimal("0"),
            change_percent=Decimal("0.00"),
            volume=1000,
            timestamp=datetime.now(),
        )

    def get_overview(self, ticker):
        if ticker not in self.overviews:
            raise QuoteUnavailableError(ticker, "no overview")
        return self.overviews[ticker]


@pytest.fixture
def store():
    return InMemoryStore()


@pytest.fixture
def account_repo(store):
    return InMemoryAccountRepository(store)


@pytest.fixture
def stock_repo(store):
    return InMemoryStockRepository(store)


@pytest.fixture
def position_repo(store):
    return InMemoryPositionRepository(store)


@pytest.fixture
def transaction_repo(store):
    return InMemoryTransactionRepository(store)


@pytest.fixture
def quotes():
    return FakeQuoteProvider()


@pytest.fixture
def accounts(account_repo):
    return AccountService(account_repo)


@pytest.fixture
def catalog(stock_repo, quotes):
    return StockCatalogService(
        stock_repo,
        quotes,
        price_cache=PriceCache(max_entries=16),
        refresh_batch_size=2,
        refresh_pause_seconds=0,
    )


@pytest.fixture
def ledger(account_repo, stock_repo, position_repo, transaction_repo):
    return LedgerService(
        account_repo=account_repo,
        stock_repo=stock_repo,
        position_repo=position_repo,
        transaction_repo=transaction_repo,
        unit_of_work=InMemoryUnitOfWork(),
        retry_backoff=0,
    )


@pytest.fixture
def aggregator(position_repo, transaction_repo):
    return AggregatorService(position_repo, transaction_repo)


@pytest.fixture
def user(accounts):
    return accounts.create_account("alice@example.com", "Alice", "Doe")


@pytest.fixture
def other_user(accounts):
    return accounts.create_account("bob@example.com", "Bob", "Roe")


@pytest.fixture
def aapl(catalog):
    stock = catalog.create_stock("aapl", "Apple Inc.", "NASDAQ", "USD", "Technology", "Consumer Electronics")
    return catalog.update_stock_price(stock.id, "150.00")


@pytest.fixture
def jpm(catalog):
    stock = catalog.create_stock("JPM", "JPMorgan Chase", "NYSE", "USD", "Financial Services", "Banks")
    return catalog.update_stock_price(stock.id, "200.00")
