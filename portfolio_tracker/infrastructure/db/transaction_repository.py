# portfolio_tracker/infrastructure/db/transaction_repository.py

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from portfolio_tracker.domain.models.performance import MonthlySummary
from portfolio_tracker.domain.models.transaction import Transaction, TransactionType
from portfolio_tracker.domain.services_interfaces.i_transaction_repo import ITransactionRepository
from ._sql import db_str, dec
from .mysql_connection import MySQLConnectionProvider

_COLUMNS = """
    id, user_id, stock_id, position_id, transaction_type, quantity, price,
    fee, transaction_date, created_at
"""


class MySQLTransactionRepository(ITransactionRepository):
    """
    ITransactionRepository'nin MySQL implementasyonu.
    transactions tablosuna erişir; sadece INSERT ve SELECT yapar.
    """

    def __init__(self, connection_provider: MySQLConnectionProvider) -> None:
        self._cp = connection_provider

    # ---------- Row → Domain Mapper ---------- #

    def _row_to_transaction(self, row: dict) -> Transaction:
        """
        MySQL dict cursor row'unu Transaction domain objesine çevirir.
        fee kolonu NULL olabilir → 0.
        """
        return Transaction(
            id=row["id"],
            user_id=row["user_id"],
            stock_id=row["stock_id"],
            position_id=row["position_id"],
            type=TransactionType(row["transaction_type"]),
            quantity=dec(row["quantity"]),
            price=dec(row["price"]),
            fee=dec(row.get("fee")),
            transaction_date=row["transaction_date"],
            created_at=row.get("created_at"),
        )

    def _fetch_all(self, sql: str, params: tuple) -> List[Transaction]:
        with self._cp.get_connection() as conn:
            cursor = conn.cursor(dictionary=True)
            cursor.execute(sql, params)
            rows = cursor.fetchall()

        return [self._row_to_transaction(r) for r in rows]

    def _sum(self, sql: str, user_id: int) -> Decimal:
        with self._cp.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, (user_id,))
            row = cursor.fetchone()
        return dec(row[0] if row else None)

    # ---------- READ operasyonları ---------- #

    def get_by_id(self, transaction_id: int) -> Optional[Transaction]:
        sql = f"SELECT {_COLUMNS} FROM transactions WHERE id = %s"
        rows = self._fetch_all(sql, (transaction_id,))
        return rows[0] if rows else None

    def get_by_user_id(self, user_id: int) -> List[Transaction]:
        sql = f"""
            SELECT {_COLUMNS}
            FROM transactions
            WHERE user_id = %s
            ORDER BY transaction_date, id
        """
        return self._fetch_all(sql, (user_id,))

    def get_page_by_user_id(self, user_id: int, page: int, size: int) -> List[Transaction]:
        sql = f"""
            SELECT {_COLUMNS}
            FROM transactions
            WHERE user_id = %s
            ORDER BY transaction_date DESC, id DESC
            LIMIT %s OFFSET %s
        """
        return self._fetch_all(sql, (user_id, size, page * size))

    def get_by_user_and_stock(self, user_id: int, stock_id: int) -> List[Transaction]:
        sql = f"""
            SELECT {_COLUMNS}
            FROM transactions
            WHERE user_id = %s AND stock_id = %s
            ORDER BY transaction_date DESC, id DESC
        """
        return self._fetch_all(sql, (user_id, stock_id))

    def get_by_user_and_date_range(
        self,
        user_id: int,
        start: datetime,
        end: datetime,
    ) -> List[Transaction]:
        sql = f"""
            SELECT {_COLUMNS}
            FROM transactions
            WHERE user_id = %s AND transaction_date BETWEEN %s AND %s
            ORDER BY transaction_date DESC, id DESC
        """
        return self._fetch_all(sql, (user_id, start, end))

    def count_by_user_id(self, user_id: int) -> int:
        sql = "SELECT COUNT(*) FROM transactions WHERE user_id = %s"
        with self._cp.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, (user_id,))
            row = cursor.fetchone()
        return int(row[0]) if row else 0

    # ---------- Toplam sorguları ---------- #

    def get_total_buy_amount(self, user_id: int) -> Decimal:
        sql = """
            SELECT SUM(CASE WHEN transaction_type = 'BUY' THEN quantity * price ELSE 0 END)
            FROM transactions
            WHERE user_id = %s
        """
        return self._sum(sql, user_id)

    def get_total_sell_amount(self, user_id: int) -> Decimal:
        sql = """
            SELECT SUM(CASE WHEN transaction_type = 'SELL' THEN quantity * price ELSE 0 END)
            FROM transactions
            WHERE user_id = %s
        """
        return self._sum(sql, user_id)

    def get_total_buy_fees(self, user_id: int) -> Decimal:
        sql = """
            SELECT SUM(CASE WHEN transaction_type = 'BUY' THEN COALESCE(fee, 0) ELSE 0 END)
            FROM transactions
            WHERE user_id = %s
        """
        return self._sum(sql, user_id)

    def get_total_sell_fees(self, user_id: int) -> Decimal:
        sql = """
            SELECT SUM(CASE WHEN transaction_type = 'SELL' THEN COALESCE(fee, 0) ELSE 0 END)
            FROM transactions
            WHERE user_id = %s
        """
        return self._sum(sql, user_id)

    def get_monthly_summary(self, user_id: int) -> List[MonthlySummary]:
        sql = """
            SELECT YEAR(transaction_date) AS y,
                   MONTH(transaction_date) AS m,
                   SUM(CASE WHEN transaction_type = 'BUY' THEN quantity * price ELSE 0 END),
                   SUM(CASE WHEN transaction_type = 'SELL' THEN quantity * price ELSE 0 END)
            FROM transactions
            WHERE user_id = %s
            GROUP BY y, m
            ORDER BY y, m
        """
        with self._cp.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, (user_id,))
            rows = cursor.fetchall()

        return [
            MonthlySummary(
                year=int(year),
                month=int(month),
                buy_amount=dec(buy_amount),
                sell_amount=dec(sell_amount),
            )
            for year, month, buy_amount, sell_amount in rows
        ]

    # ---------- WRITE operasyonları ---------- #

    def add(self, transaction: Transaction) -> Transaction:
        created_at = datetime.now()
        sql = """
            INSERT INTO transactions
                (user_id, stock_id, position_id, transaction_type, quantity,
                 price, fee, transaction_date, created_at)
            VALUES (%s, %s, %s, %s, %s, %s, %s, %s, %s)
        """
        with self._cp.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(
                sql,
                (
                    transaction.user_id,
                    transaction.stock_id,
                    transaction.position_id,
                    transaction.type.value,
                    db_str(transaction.quantity),
                    db_str(transaction.price),
                    db_str(transaction.fee),
                    transaction.transaction_date,
                    created_at,
                ),
            )
            transaction_id = cursor.lastrowid

        # Yeni id ile Transaction objesini geri dönderiyoruz (immutable dataclass → replace).
        return replace(transaction, id=transaction_id, created_at=created_at)
