# portfolio_tracker/infrastructure/db/stock_repository.py

from __future__ import annotations

from dataclasses import replace
from datetime import datetime
from decimal import Decimal
from typing import List, Optional

from portfolio_tracker.domain.models.stock import Stock
from portfolio_tracker.domain.services_interfaces.i_stock_repo import IStockRepository
from ._sql import db_str, dec_or_none, like_pattern
from .mysql_connection import MySQLConnectionProvider

_COLUMNS = """
    id, ticker, name, exchange, currency, sector, industry,
    current_price, last_updated
"""


class MySQLStockRepository(IStockRepository):
    """
    IStockRepository'nin MySQL implementasyonu.
    'stocks' tablosuna erişir.
    """

    def __init__(self, connection_provider: MySQLConnectionProvider) -> None:
        self._cp = connection_provider

    # ---------- Row → Domain Mapper ---------- #

    def _row_to_stock(self, row: dict) -> Stock:
        return Stock(
            id=row["id"],
            ticker=row["ticker"],
            name=row["name"],
            exchange=row["exchange"],
            currency=row.get("currency", "USD"),
            sector=row.get("sector"),
            industry=row.get("industry"),
            current_price=dec_or_none(row.get("current_price")),
            last_updated=row.get("last_updated"),
        )

    def _fetch_all(self, sql: str, params: tuple = ()) -> List[Stock]:
        with self._cp.get_connection() as conn:
            cursor = conn.cursor(dictionary=True)
            cursor.execute(sql, params)
            rows = cursor.fetchall()

        return [self._row_to_stock(r) for r in rows]

    def _fetch_one(self, sql: str, params: tuple) -> Optional[Stock]:
        with self._cp.get_connection() as conn:
            cursor = conn.cursor(dictionary=True)
            cursor.execute(sql, params)
            row = cursor.fetchone()

        if row is None:
            return None
        return self._row_to_stock(row)

    # ---------- READ operasyonları ---------- #

    def get_all(self) -> List[Stock]:
        sql = f"SELECT {_COLUMNS} FROM stocks ORDER BY ticker"
        return self._fetch_all(sql)

    def get_by_id(self, stock_id: int) -> Optional[Stock]:
        sql = f"SELECT {_COLUMNS} FROM stocks WHERE id = %s"
        return self._fetch_one(sql, (stock_id,))

    def get_by_ticker(self, ticker: str) -> Optional[Stock]:
        sql = f"SELECT {_COLUMNS} FROM stocks WHERE UPPER(ticker) = UPPER(%s)"
        return self._fetch_one(sql, (ticker.strip(),))

    def exists_by_ticker(self, ticker: str) -> bool:
        sql = "SELECT 1 FROM stocks WHERE UPPER(ticker) = UPPER(%s) LIMIT 1"
        with self._cp.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, (ticker.strip(),))
            row = cursor.fetchone()
        return row is not None

    def get_top_by_price(self, limit: int) -> List[Stock]:
        sql = f"""
            SELECT {_COLUMNS}
            FROM stocks
            WHERE current_price IS NOT NULL
            ORDER BY current_price DESC, ticker
            LIMIT %s
        """
        return self._fetch_all(sql, (limit,))

    def search(self, query: str) -> List[Stock]:
        pattern = like_pattern(query)
        sql = f"""
            SELECT {_COLUMNS}
            FROM stocks
            WHERE LOWER(ticker) LIKE %s OR LOWER(name) LIKE %s
            ORDER BY ticker
        """
        return self._fetch_all(sql, (pattern, pattern))

    def get_stale(self, cutoff: datetime) -> List[Stock]:
        sql = f"""
            SELECT {_COLUMNS}
            FROM stocks
            WHERE current_price IS NULL OR last_updated < %s
            ORDER BY ticker
        """
        return self._fetch_all(sql, (cutoff,))

    # ---------- WRITE operasyonları ---------- #

    def save(self, stock: Stock) -> Stock:
        if stock.id is None:
            sql = """
                INSERT INTO stocks
                    (ticker, name, exchange, currency, sector, industry,
                     current_price, last_updated)
                VALUES (%s, %s, %s, %s, %s, %s, %s, %s)
            """
            params = (
                stock.ticker,
                stock.name,
                stock.exchange,
                stock.currency,
                stock.sector,
                stock.industry,
                db_str(stock.current_price),
                stock.last_updated,
            )
        else:
            sql = """
                UPDATE stocks
                SET ticker = %s,
                    name = %s,
                    exchange = %s,
                    currency = %s,
                    sector = %s,
                    industry = %s,
                    current_price = %s,
                    last_updated = %s
                WHERE id = %s
            """
            params = (
                stock.ticker,
                stock.name,
                stock.exchange,
                stock.currency,
                stock.sector,
                stock.industry,
                db_str(stock.current_price),
                stock.last_updated,
                stock.id,
            )

        with self._cp.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, params)
            stock_id = cursor.lastrowid if stock.id is None else stock.id

        if stock.id is None:
            return replace(stock, id=stock_id)
        return stock

    def update_price(
        self,
        stock_id: int,
        price: Decimal,
        updated_at: datetime,
    ) -> Optional[Stock]:
        sql = """
            UPDATE stocks
            SET current_price = %s,
                last_updated = %s
            WHERE id = %s
        """
        with self._cp.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, (db_str(price), updated_at, stock_id))

        return self.get_by_id(stock_id)

    def delete(self, stock_id: int) -> None:
        sql = "DELETE FROM stocks WHERE id = %s"
        with self._cp.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, (stock_id,))
