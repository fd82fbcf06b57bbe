# portfolio_tracker/application/services/ledger_service.py

from __future__ import annotations

import time
from datetime import datetime
from decimal import Decimal
from typing import Callable, List, Optional, Tuple

from loguru import logger

from portfolio_tracker.domain.errors import (
    ConcurrencyConflictError,
    InvalidInputError,
    NotFoundError,
)
from portfolio_tracker.domain.models.account import Account
from portfolio_tracker.domain.models.position import Position
from portfolio_tracker.domain.models.stock import Stock
from portfolio_tracker.domain.models.transaction import Transaction
from portfolio_tracker.domain.numeric import ZERO, quantize_price, quantize_quantity, to_decimal
from portfolio_tracker.domain.services_interfaces.i_account_repo import IAccountRepository
from portfolio_tracker.domain.services_interfaces.i_position_repo import IPositionRepository
from portfolio_tracker.domain.services_interfaces.i_stock_repo import IStockRepository
from portfolio_tracker.domain.services_interfaces.i_transaction_repo import ITransactionRepository
from portfolio_tracker.domain.services_interfaces.i_unit_of_work import IUnitOfWork
from .keyed_lock import KeyedLock


class LedgerService:
    """
    Alım/satım işlemlerini Position + Transaction deposuna atomik olarak uygulayan servis.

    Aynı (user_id, stock_id) çifti için read-modify-write sırası
    (pozisyonu oku → yeni adet/maliyet → pozisyonu yaz → transaction ekle)
    hem KeyedLock hem de serializable unit of work içinde çalışır.
    Farklı çiftler birbirini beklemez.

    Storage katmanı ConcurrencyConflictError verirse işlem max_retries
    kadar yeniden denenir; iş kuralı hataları asla yeniden denenmez.
    """

    def __init__(
        self,
        account_repo: IAccountRepository,
        stock_repo: IStockRepository,
        position_repo: IPositionRepository,
        transaction_repo: ITransactionRepository,
        unit_of_work: IUnitOfWork,
        locks: Optional[KeyedLock] = None,
        max_retries: int = 3,
        retry_backoff: float = 0.05,
    ) -> None:
        self._account_repo = account_repo
        self._stock_repo = stock_repo
        self._position_repo = position_repo
        self._transaction_repo = transaction_repo
        self._uow = unit_of_work
        self._locks = locks or KeyedLock()
        self._max_retries = max_retries
        self._retry_backoff = retry_backoff

    # --------- Alım / satım --------- #

    def buy(
        self,
        user_id: int,
        ticker: str,
        quantity,
        price,
        fee=ZERO,
        timestamp: Optional[datetime] = None,
    ) -> Transaction:
        """
        BUY: pozisyon yoksa açılır, varsa ağırlıklı ortalama maliyet yeniden hesaplanır.
        Oluşturulan Transaction döner.
        """
        qty, px, fee_value = self._validate_trade(ticker, quantity, price, fee)
        when = timestamp or datetime.now()
        account, stock = self._resolve(user_id, ticker)

        def apply() -> Transaction:
            position = self._position_repo.get_by_user_and_stock(account.id, stock.id)
            if position is None:
                position = Position.open(account.id, stock.id, qty, px, when)
            else:
                position = position.apply_buy(qty, px, when)

            saved = self._position_repo.save(position)
            logger.info(
                f"Updated position for user {account.id}, {stock.ticker}: "
                f"quantity={saved.quantity}, average_cost={saved.average_cost}"
            )
            return self._transaction_repo.add(
                Transaction.create_buy(
                    account.id, stock.id, saved.id, qty, px, fee_value, when
                )
            )

        transaction = self._run_serialized(account.id, stock, apply)
        logger.info(
            f"Created BUY transaction for user {account.id}: {qty} {stock.ticker} @ {px}"
        )
        return transaction

    def sell(
        self,
        user_id: int,
        ticker: str,
        quantity,
        price,
        fee=ZERO,
        timestamp: Optional[datetime] = None,
    ) -> Transaction:
        """
        SELL: pozisyon zorunlu, adet yetmezse InsufficientHoldingsError.
        Ortalama maliyet değişmez; adet sıfıra inse de pozisyon silinmez.
        """
        qty, px, fee_value = self._validate_trade(ticker, quantity, price, fee)
        when = timestamp or datetime.now()
        account, stock = self._resolve(user_id, ticker)

        def apply() -> Transaction:
            position = self._position_repo.get_by_user_and_stock(account.id, stock.id)
            if position is None:
                raise NotFoundError(
                    f"No position found for user {account.id} and {stock.ticker}"
                )

            saved = self._position_repo.save(position.apply_sell(stock.ticker, qty, when))
            logger.info(
                f"Updated position for user {account.id}, {stock.ticker}: "
                f"quantity={saved.quantity}"
            )
            return self._transaction_repo.add(
                Transaction.create_sell(
                    account.id, stock.id, saved.id, qty, px, fee_value, when
                )
            )

        transaction = self._run_serialized(account.id, stock, apply)
        logger.info(
            f"Created SELL transaction for user {account.id}: {qty} {stock.ticker} @ {px}"
        )
        return transaction

    # --------- Yardımcılar --------- #

    @staticmethod
    def _validate_trade(ticker: str, quantity, price, fee) -> Tuple[Decimal, Decimal, Decimal]:
        if ticker is None or not str(ticker).strip():
            raise InvalidInputError("Ticker is required")

        try:
            qty = to_decimal(quantity)
            px = to_decimal(price)
            fee_value = to_decimal(fee if fee is not None else ZERO)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc

        if qty <= ZERO:
            raise InvalidInputError(f"Quantity must be positive: {quantity}")
        if px <= ZERO:
            raise InvalidInputError(f"Price must be positive: {price}")
        if fee_value < ZERO:
            raise InvalidInputError(f"Fee cannot be negative: {fee}")

        qty = quantize_quantity(qty)
        if qty <= ZERO:
            raise InvalidInputError(f"Quantity rounds to zero: {quantity}")
        px = quantize_price(px)
        if px <= ZERO:
            raise InvalidInputError(f"Price rounds to zero: {price}")
        fee_value = quantize_price(fee_value)
        return qty, px, fee_value

    def _resolve(self, user_id: int, ticker: str) -> Tuple[Account, Stock]:
        account = self._account_repo.get_by_id(user_id)
        if account is None:
            raise NotFoundError(f"Account not found: {user_id}")

        stock = self._stock_repo.get_by_ticker(ticker.strip())
        if stock is None:
            raise NotFoundError(f"Stock not found: {ticker}")
        return account, stock

    def _run_serialized(
        self,
        user_id: int,
        stock: Stock,
        apply: Callable[[], Transaction],
    ) -> Transaction:
        attempt = 0
        while True:
            attempt += 1
            try:
                with self._locks.hold((user_id, stock.id)):
                    with self._uow.serializable():
                        return apply()
            except ConcurrencyConflictError:
                if attempt > self._max_retries:
                    logger.error(
                        f"Giving up on user {user_id}, {stock.ticker} "
                        f"after {attempt} attempts"
                    )
                    raise
                logger.warning(
                    f"Concurrency conflict for user {user_id}, {stock.ticker}; "
                    f"retry {attempt}/{self._max_retries}"
                )
            # pair lock is released before the backoff
            time.sleep(self._retry_backoff * attempt)

    # --------- Okuma --------- #

    def get_user_positions(self, user_id: int) -> List[Position]:
        return self._position_repo.get_by_user_id(user_id)

    def get_position(self, position_id: int) -> Position:
        position = self._position_repo.get_by_id(position_id)
        if position is None:
            raise NotFoundError(f"Position not found: {position_id}")
        return position

    def get_user_transactions(self, user_id: int) -> List[Transaction]:
        return self._transaction_repo.get_by_user_id(user_id)

    def get_paginated_transactions(self, user_id: int, page: int, size: int) -> List[Transaction]:
        """En yeni işlem önce; page 0'dan başlar."""
        if page < 0 or size <= 0:
            raise InvalidInputError("page must be >= 0 and size must be positive")
        return self._transaction_repo.get_page_by_user_id(user_id, page, size)

    def get_stock_transactions(self, user_id: int, stock_id: int) -> List[Transaction]:
        return self._transaction_repo.get_by_user_and_stock(user_id, stock_id)

    def get_transactions_in_date_range(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
    ) -> List[Transaction]:
        if start > end:
            raise InvalidInputError("start must not be after end")
        return self._transaction_repo.get_by_user_and_date_range(user_id, start, end)

    def count_user_transactions(self, user_id: int) -> int:
        return self._transaction_repo.count_by_user_id(user_id)
