# portfolio_tracker/app.py

from __future__ import annotations

import threading
from dataclasses import dataclass
from typing import Optional

from loguru import logger

from portfolio_tracker.application.services.account_service import AccountService
from portfolio_tracker.application.services.aggregator_service import AggregatorService
from portfolio_tracker.application.services.keyed_lock import KeyedLock
from portfolio_tracker.application.services.ledger_service import LedgerService
from portfolio_tracker.application.services.price_cache import PriceCache
from portfolio_tracker.application.services.price_refresh_scheduler import PriceRefreshScheduler
from portfolio_tracker.application.services.stock_catalog_service import StockCatalogService
from portfolio_tracker.config.logging_config import configure_logging
from portfolio_tracker.config.settings_loader import AppSettings, load_settings
from portfolio_tracker.domain.services_interfaces.i_account_repo import IAccountRepository
from portfolio_tracker.domain.services_interfaces.i_position_repo import IPositionRepository
from portfolio_tracker.domain.services_interfaces.i_quote_provider import IQuoteProvider
from portfolio_tracker.domain.services_interfaces.i_stock_repo import IStockRepository
from portfolio_tracker.domain.services_interfaces.i_transaction_repo import ITransactionRepository
from portfolio_tracker.domain.services_interfaces.i_unit_of_work import IUnitOfWork
from portfolio_tracker.infrastructure.db.account_repository import MySQLAccountRepository
from portfolio_tracker.infrastructure.db.mysql_connection import (
    MySQLConnectionProvider,
    MySQLUnitOfWork,
)
from portfolio_tracker.infrastructure.db.position_repository import MySQLPositionRepository
from portfolio_tracker.infrastructure.db.stock_repository import MySQLStockRepository
from portfolio_tracker.infrastructure.db.transaction_repository import MySQLTransactionRepository
from portfolio_tracker.infrastructure.market_data.yfinance_client import YFinanceQuoteProvider
from portfolio_tracker.infrastructure.memory.memory_store import InMemoryStore, InMemoryUnitOfWork
from portfolio_tracker.infrastructure.memory.repositories import (
    InMemoryAccountRepository,
    InMemoryPositionRepository,
    InMemoryStockRepository,
    InMemoryTransactionRepository,
)


@dataclass
class Services:
    accounts: AccountService
    catalog: StockCatalogService
    ledger: LedgerService
    aggregator: AggregatorService
    scheduler: PriceRefreshScheduler


def _wire(
    settings: AppSettings,
    account_repo: IAccountRepository,
    stock_repo: IStockRepository,
    position_repo: IPositionRepository,
    transaction_repo: ITransactionRepository,
    unit_of_work: IUnitOfWork,
    quote_provider: IQuoteProvider,
) -> Services:
    catalog = StockCatalogService(
        stock_repo,
        quote_provider,
        price_cache=PriceCache(settings.price_cache_size),
        refresh_batch_size=settings.refresh_batch_size,
        refresh_pause_seconds=settings.refresh_pause_seconds,
    )
    ledger = LedgerService(
        account_repo=account_repo,
        stock_repo=stock_repo,
        position_repo=position_repo,
        transaction_repo=transaction_repo,
        unit_of_work=unit_of_work,
        locks=KeyedLock(),
        max_retries=settings.ledger_max_retries,
    )
    return Services(
        accounts=AccountService(account_repo),
        catalog=catalog,
        ledger=ledger,
        aggregator=AggregatorService(position_repo, transaction_repo),
        scheduler=PriceRefreshScheduler(
            catalog,
            hour=settings.refresh_cron_hour,
            minute=settings.refresh_cron_minute,
        ),
    )


def build_mysql_services(
    settings: AppSettings,
    quote_provider: Optional[IQuoteProvider] = None,
) -> Services:
    # 1) DB connection pool
    conn_provider = MySQLConnectionProvider(settings.mysql)

    # 2) Repositories + unit of work
    return _wire(
        settings,
        account_repo=MySQLAccountRepository(conn_provider),
        stock_repo=MySQLStockRepository(conn_provider),
        position_repo=MySQLPositionRepository(conn_provider),
        transaction_repo=MySQLTransactionRepository(conn_provider),
        unit_of_work=MySQLUnitOfWork(conn_provider),
        # 3) Market data (yfinance)
        quote_provider=quote_provider or YFinanceQuoteProvider(timeout=settings.quote_timeout),
    )


def build_in_memory_services(
    settings: AppSettings,
    quote_provider: IQuoteProvider,
    store: Optional[InMemoryStore] = None,
) -> Services:
    """DB'siz çalıştırma (testler, demo) için aynı servisleri in-memory store ile kurar."""
    store = store or InMemoryStore()
    return _wire(
        settings,
        account_repo=InMemoryAccountRepository(store),
        stock_repo=InMemoryStockRepository(store),
        position_repo=InMemoryPositionRepository(store),
        transaction_repo=InMemoryTransactionRepository(store),
        unit_of_work=InMemoryUnitOfWork(),
        quote_provider=quote_provider,
    )


def main() -> None:
    settings = load_settings()
    configure_logging(settings.log_level)

    services = build_mysql_services(settings)
    services.scheduler.start()
    logger.info(f"Next price refresh at {services.scheduler.next_run_time()}")

    try:
        threading.Event().wait()
    except KeyboardInterrupt:
        logger.info("Interrupted, stopping")
    finally:
        services.scheduler.shutdown()


if __name__ == "__main__":
    main()
