# portfolio_tracker/infrastructure/memory/repositories.py

from __future__ import annotations

from collections import defaultdict
from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from portfolio_tracker.domain.models.account import Account
from portfolio_tracker.domain.models.performance import (
    MonthlySummary,
    SectorValue,
    ValuationTotals,
)
from portfolio_tracker.domain.models.position import Position
from portfolio_tracker.domain.models.stock import Stock
from portfolio_tracker.domain.models.transaction import Transaction, TransactionType
from portfolio_tracker.domain.numeric import ZERO
from portfolio_tracker.domain.services_interfaces.i_account_repo import IAccountRepository
from portfolio_tracker.domain.services_interfaces.i_position_repo import IPositionRepository
from portfolio_tracker.domain.services_interfaces.i_stock_repo import IStockRepository
from portfolio_tracker.domain.services_interfaces.i_transaction_repo import ITransactionRepository
from .memory_store import InMemoryStore


class InMemoryStockRepository(IStockRepository):

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def _snapshot(self) -> List[Stock]:
        with self._store.lock:
            return sorted(self._store.stocks.values(), key=lambda s: s.ticker)

    # ---------- READ operasyonları ---------- #

    def get_all(self) -> List[Stock]:
        return self._snapshot()

    def get_by_id(self, stock_id: int) -> Optional[Stock]:
        with self._store.lock:
            return self._store.stocks.get(stock_id)

    def get_by_ticker(self, ticker: str) -> Optional[Stock]:
        wanted = ticker.strip().upper()
        for stock in self._snapshot():
            if stock.ticker.upper() == wanted:
                return stock
        return None

    def exists_by_ticker(self, ticker: str) -> bool:
        return self.get_by_ticker(ticker) is not None

    def get_top_by_price(self, limit: int) -> List[Stock]:
        priced = [s for s in self._snapshot() if s.current_price is not None]
        priced.sort(key=lambda s: s.current_price, reverse=True)
        return priced[:limit]

    def search(self, query: str) -> List[Stock]:
        needle = query.strip().lower()
        return [
            s for s in self._snapshot()
            if needle in s.ticker.lower() or needle in (s.name or "").lower()
        ]

    def get_stale(self, cutoff: datetime) -> List[Stock]:
        return [
            s for s in self._snapshot()
            if s.current_price is None or s.last_updated is None or s.last_updated < cutoff
        ]

    # ---------- WRITE operasyonları ---------- #

    def save(self, stock: Stock) -> Stock:
        with self._store.lock:
            if stock.id is None:
                stock = replace(stock, id=self._store.next_id("stocks"))
            self._store.stocks[stock.id] = stock
        return stock

    def update_price(
        self,
        stock_id: int,
        price: Decimal,
        updated_at: datetime,
    ) -> Optional[Stock]:
        with self._store.lock:
            current = self._store.stocks.get(stock_id)
            if current is None:
                return None
            updated = replace(current, current_price=price, last_updated=updated_at)
            self._store.stocks[stock_id] = updated
        return updated

    def delete(self, stock_id: int) -> None:
        with self._store.lock:
            self._store.stocks.pop(stock_id, None)


class InMemoryPositionRepository(IPositionRepository):

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def _user_positions(self, user_id: int) -> List[Tuple[Position, Optional[Stock]]]:
        """Pozisyonları hisseleriyle birlikte (JOIN karşılığı) döner."""
        with self._store.lock:
            return [
                (p, self._store.stocks.get(p.stock_id))
                for p in sorted(self._store.positions.values(), key=lambda p: p.id)
                if p.user_id == user_id
            ]

    def _priced(self, user_id: int) -> List[Tuple[Position, Stock]]:
        return [
            (p, s) for p, s in self._user_positions(user_id)
            if s is not None and s.current_price is not None
        ]

    # --------- READ operasyonları --------- #

    def get_by_id(self, position_id: int) -> Optional[Position]:
        with self._store.lock:
            return self._store.positions.get(position_id)

    def get_by_user_and_stock(self, user_id: int, stock_id: int) -> Optional[Position]:
        with self._store.lock:
            for position in self._store.positions.values():
                if position.user_id == user_id and position.stock_id == stock_id:
                    return position
        return None

    def get_by_user_id(self, user_id: int) -> List[Position]:
        return [p for p, _ in self._user_positions(user_id)]

    def count_by_user_id(self, user_id: int) -> int:
        return len(self._user_positions(user_id))

    # --------- Aggregation sorguları --------- #

    def get_total_value(self, user_id: int) -> Decimal:
        return sum((p.quantity * s.current_price for p, s in self._priced(user_id)), ZERO)

    def get_valuation_totals(self, user_id: int) -> ValuationTotals:
        priced = self._priced(user_id)
        return ValuationTotals(
            total_value=sum((p.quantity * s.current_price for p, s in priced), ZERO),
            total_cost=sum((p.quantity * p.average_cost for p, _ in priced), ZERO),
        )

    def get_sector_values(self, user_id: int) -> List[SectorValue]:
        sums: Dict[str, Decimal] = defaultdict(lambda: ZERO)
        for position, stock in self._priced(user_id):
            if stock.sector is None:
                continue
            sums[stock.sector] += position.quantity * stock.current_price
        return [SectorValue(sector=k, value=v) for k, v in sorted(sums.items())]

    def get_largest_by_value(self, user_id: int, limit: int) -> List[Position]:
        def value_of(item: Tuple[Position, Optional[Stock]]) -> Decimal:
            position, stock = item
            price = stock.current_price if stock and stock.current_price is not None else ZERO
            return position.quantity * price

        open_positions = [item for item in self._user_positions(user_id) if item[0].quantity > ZERO]
        open_positions.sort(key=lambda item: (-value_of(item), item[0].id))
        return [p for p, _ in open_positions[:limit]]

    def get_with_gain_above(self, user_id: int, threshold: Decimal) -> List[Position]:
        return [
            p for p, s in self._priced(user_id)
            if p.average_cost > ZERO and s.current_price / p.average_cost - 1 > threshold
        ]

    # --------- WRITE operasyonları --------- #

    def save(self, position: Position) -> Position:
        now = datetime.now()
        with self._store.lock:
            if position.id is None:
                position = replace(
                    position,
                    id=self._store.next_id("positions"),
                    created_at=now,
                    updated_at=now,
                )
            else:
                position = replace(position, updated_at=now)
            self._store.positions[position.id] = position
        return position


class InMemoryTransactionRepository(ITransactionRepository):

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def _user_transactions(self, user_id: int) -> List[Transaction]:
        with self._store.lock:
            rows = [t for t in self._store.transactions.values() if t.user_id == user_id]
        return sorted(rows, key=lambda t: (t.transaction_date, t.id))

    def _sum(self, user_id: int, tx_type: TransactionType, fees: bool) -> Decimal:
        total = ZERO
        for t in self._user_transactions(user_id):
            if t.type != tx_type:
                continue
            total += (t.fee or ZERO) if fees else t.value
        return total

    # --------- READ operasyonları --------- #

    def get_by_id(self, transaction_id: int) -> Optional[Transaction]:
        with self._store.lock:
            return self._store.transactions.get(transaction_id)

    def get_by_user_id(self, user_id: int) -> List[Transaction]:
        return self._user_transactions(user_id)

    def get_page_by_user_id(self, user_id: int, page: int, size: int) -> List[Transaction]:
        newest_first = list(reversed(self._user_transactions(user_id)))
        start = page * size
        return newest_first[start:start + size]

    def get_by_user_and_stock(self, user_id: int, stock_id: int) -> List[Transaction]:
        return [
            t for t in reversed(self._user_transactions(user_id))
            if t.stock_id == stock_id
        ]

    def get_by_user_and_date_range(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
    ) -> List[Transaction]:
        return [
            t for t in reversed(self._user_transactions(user_id))
            if start <= t.transaction_date <= end
        ]

    def count_by_user_id(self, user_id: int) -> int:
        return len(self._user_transactions(user_id))

    # --------- Toplam sorguları --------- #

    def get_total_buy_amount(self, user_id: int) -> Decimal:
        return self._sum(user_id, TransactionType.BUY, fees=False)

    def get_total_sell_amount(self, user_id: int) -> Decimal:
        return self._sum(user_id, TransactionType.SELL, fees=False)

    def get_total_buy_fees(self, user_id: int) -> Decimal:
        return self._sum(user_id, TransactionType.BUY, fees=True)

    def get_total_sell_fees(self, user_id: int) -> Decimal:
        return self._sum(user_id, TransactionType.SELL, fees=True)

    def get_monthly_summary(self, user_id: int) -> List[MonthlySummary]:
        buckets: Dict[Tuple[int, int], List[Decimal]] = {}
        for t in self._user_transactions(user_id):
            key = (t.transaction_date.year, t.transaction_date.month)
            amounts = buckets.setdefault(key, [ZERO, ZERO])
            if t.type == TransactionType.BUY:
                amounts[0] += t.value
            else:
                amounts[1] += t.value

        return [
            MonthlySummary(year=y, month=m, buy_amount=buy, sell_amount=sell)
            for (y, m), (buy, sell) in sorted(buckets.items())
        ]

    # --------- WRITE operasyonları --------- #

    def add(self, transaction: Transaction) -> Transaction:
        with self._store.lock:
            saved = replace(
                transaction,
                id=self._store.next_id("transactions"),
                created_at=datetime.now(),
            )
            self._store.transactions[saved.id] = saved
        return saved


class InMemoryAccountRepository(IAccountRepository):

    def __init__(self, store: InMemoryStore) -> None:
        self._store = store

    def get_by_id(self, account_id: int) -> Optional[Account]:
        with self._store.lock:
            return self._store.accounts.get(account_id)

    def get_by_email(self, email: str) -> Optional[Account]:
        wanted = email.strip().lower()
        with self._store.lock:
            for account in self._store.accounts.values():
                if account.email.lower() == wanted:
                    return account
        return None

    def exists_by_email(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def get_all(self) -> List[Account]:
        with self._store.lock:
            return sorted(self._store.accounts.values(), key=lambda a: a.id)

    def save(self, account: Account) -> Account:
        with self._store.lock:
            if account.id is None:
                account = replace(
                    account,
                    id=self._store.next_id("accounts"),
                    created_at=account.created_at or datetime.now(),
                )
            self._store.accounts[account.id] = account
        return account

    def delete(self, account_id: int) -> None:
        with self._store.lock:
            self._store.accounts.pop(account_id, None)
