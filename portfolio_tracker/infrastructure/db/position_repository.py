# portfolio_tracker/infrastructure/db/position_repository.py

from __future__ import annotations

from dataclasses import replace
from decimal import Decimal
from typing import List, Optional

from portfolio_tracker.domain.models.performance import SectorValue, ValuationTotals
from portfolio_tracker.domain.models.position import Position
from portfolio_tracker.domain.services_interfaces.i_position_repo import IPositionRepository
from ._sql import db_str, dec
from .mysql_connection import MySQLConnectionProvider

_COLUMNS = """
    p.id, p.user_id, p.stock_id, p.quantity, p.average_cost,
    p.first_purchased, p.last_transaction, p.notes, p.created_at, p.updated_at
"""


class MySQLPositionRepository(IPositionRepository):
    """
    IPositionRepository'nin MySQL implementasyonu.
    positions tablosuna (ve değer hesapları için stocks tablosuna) erişir.
    """

    def __init__(self, connection_provider: MySQLConnectionProvider) -> None:
        self._cp = connection_provider

    # ---------- Row → Domain Mapper ---------- #

    def _row_to_position(self, row: dict) -> Position:
        return Position(
            id=row["id"],
            user_id=row["user_id"],
            stock_id=row["stock_id"],
            quantity=dec(row["quantity"]),
            average_cost=dec(row["average_cost"]),
            first_purchased=row["first_purchased"],
            last_transaction=row["last_transaction"],
            notes=row.get("notes"),
            created_at=row.get("created_at"),
            updated_at=row.get("updated_at"),
        )

    def _fetch_all(self, sql: str, params: tuple) -> List[Position]:
        with self._cp.get_connection() as conn:
            cursor = conn.cursor(dictionary=True)
            cursor.execute(sql, params)
            rows = cursor.fetchall()

        return [self._row_to_position(r) for r in rows]

    def _fetch_one(self, sql: str, params: tuple) -> Optional[Position]:
        with self._cp.get_connection() as conn:
            cursor = conn.cursor(dictionary=True)
            cursor.execute(sql, params)
            row = cursor.fetchone()

        if row is None:
            return None
        return self._row_to_position(row)

    def _scalar(self, sql: str, params: tuple):
        with self._cp.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, params)
            row = cursor.fetchone()
        return row[0] if row else None

    # ---------- READ operasyonları ---------- #

    def get_by_id(self, position_id: int) -> Optional[Position]:
        sql = f"SELECT {_COLUMNS} FROM positions p WHERE p.id = %s"
        return self._fetch_one(sql, (position_id,))

    def get_by_user_and_stock(self, user_id: int, stock_id: int) -> Optional[Position]:
        sql = f"""
            SELECT {_COLUMNS}
            FROM positions p
            WHERE p.user_id = %s AND p.stock_id = %s
        """
        return self._fetch_one(sql, (user_id, stock_id))

    def get_by_user_id(self, user_id: int) -> List[Position]:
        sql = f"""
            SELECT {_COLUMNS}
            FROM positions p
            WHERE p.user_id = %s
            ORDER BY p.id
        """
        return self._fetch_all(sql, (user_id,))

    def count_by_user_id(self, user_id: int) -> int:
        sql = "SELECT COUNT(*) FROM positions WHERE user_id = %s"
        return int(self._scalar(sql, (user_id,)) or 0)

    # ---------- Aggregation sorguları ---------- #

    def get_total_value(self, user_id: int) -> Decimal:
        sql = """
            SELECT SUM(p.quantity * s.current_price)
            FROM positions p
            JOIN stocks s ON s.id = p.stock_id
            WHERE p.user_id = %s AND s.current_price IS NOT NULL
        """
        return dec(self._scalar(sql, (user_id,)))

    def get_valuation_totals(self, user_id: int) -> ValuationTotals:
        sql = """
            SELECT SUM(p.quantity * s.current_price),
                   SUM(p.quantity * p.average_cost)
            FROM positions p
            JOIN stocks s ON s.id = p.stock_id
            WHERE p.user_id = %s AND s.current_price IS NOT NULL
        """
        with self._cp.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, (user_id,))
            row = cursor.fetchone()

        if row is None:
            return ValuationTotals()
        total_value, total_cost = row
        return ValuationTotals(total_value=dec(total_value), total_cost=dec(total_cost))

    def get_sector_values(self, user_id: int) -> List[SectorValue]:
        sql = """
            SELECT s.sector, SUM(p.quantity * s.current_price)
            FROM positions p
            JOIN stocks s ON s.id = p.stock_id
            WHERE p.user_id = %s
              AND s.sector IS NOT NULL
              AND s.current_price IS NOT NULL
            GROUP BY s.sector
            ORDER BY s.sector
        """
        with self._cp.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, (user_id,))
            rows = cursor.fetchall()

        return [SectorValue(sector=sector, value=dec(value)) for sector, value in rows]

    def get_largest_by_value(self, user_id: int, limit: int) -> List[Position]:
        sql = f"""
            SELECT {_COLUMNS}
            FROM positions p
            JOIN stocks s ON s.id = p.stock_id
            WHERE p.user_id = %s AND p.quantity > 0
            ORDER BY (p.quantity * COALESCE(s.current_price, 0)) DESC, p.id
            LIMIT %s
        """
        return self._fetch_all(sql, (user_id, limit))

    def get_with_gain_above(self, user_id: int, threshold: Decimal) -> List[Position]:
        sql = f"""
            SELECT {_COLUMNS}
            FROM positions p
            JOIN stocks s ON s.id = p.stock_id
            WHERE p.user_id = %s
              AND p.average_cost > 0
              AND s.current_price IS NOT NULL
              AND s.current_price / p.average_cost - 1 > %s
            ORDER BY p.id
        """
        return self._fetch_all(sql, (user_id, db_str(threshold)))

    # ---------- WRITE operasyonları ---------- #

    def save(self, position: Position) -> Position:
        if position.id is None:
            sql = """
                INSERT INTO positions
                    (user_id, stock_id, quantity, average_cost,
                     first_purchased, last_transaction, notes)
                VALUES (%s, %s, %s, %s, %s, %s, %s)
            """
            params = (
                position.user_id,
                position.stock_id,
                db_str(position.quantity),
                db_str(position.average_cost),
                position.first_purchased,
                position.last_transaction,
                position.notes,
            )
        else:
            sql = """
                UPDATE positions
                SET quantity = %s,
                    average_cost = %s,
                    last_transaction = %s,
                    notes = %s
                WHERE id = %s
            """
            params = (
                db_str(position.quantity),
                db_str(position.average_cost),
                position.last_transaction,
                position.notes,
                position.id,
            )

        with self._cp.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, params)
            position_id = cursor.lastrowid if position.id is None else position.id

        if position.id is None:
            return replace(position, id=position_id)
        return position
