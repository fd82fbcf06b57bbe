"""Tests for the MySQL connection provider and a repository against a fake pool."""

from datetime import datetime
from decimal import Decimal

import mysql.connector
import pytest
from mysql.connector import errorcode

from portfolio_tracker.domain.errors import ConcurrencyConflictError
from portfolio_tracker.infrastructure.db import mysql_connection
from portfolio_tracker.infrastructure.db._sql import like_pattern
from portfolio_tracker.infrastructure.db.mysql_connection import (
    MySQLConfig,
    MySQLConnectionProvider,
    MySQLUnitOfWork,
)
from portfolio_tracker.infrastructure.db.stock_repository import MySQLStockRepository


class FakeCursor:
    def __init__(self, conn, dictionary=False):
        self._conn = conn
        self.dictionary = dictionary

    def execute(self, sql, params=()):
        self._conn.executed.append((" ".join(sql.split()), params))

    def fetchone(self):
        return self._conn.rows[0] if self._conn.rows else None

    def fetchall(self):
        return list(self._conn.rows)


class FakeConnection:
    def __init__(self):
        self.events = []
        self.executed = []
        self.rows = []

    def cursor(self, dictionary=False):
        return FakeCursor(self, dictionary)

    def start_transaction(self, isolation_level=None):
        self.events.append(("start", isolation_level))

    def commit(self):
        self.events.append("commit")

    def rollback(self):
        self.events.append("rollback")

    def close(self):
        self.events.append("close")


class FakePool:
    def __init__(self, **kwargs):
        self.kwargs = kwargs
        self.handed_out = []

    def get_connection(self):
        conn = FakeConnection()
        self.handed_out.append(conn)
        return conn


@pytest.fixture
def provider(monkeypatch):
    monkeypatch.setattr(mysql_connection.pooling, "MySQLConnectionPool", FakePool)
    return MySQLConnectionProvider(
        MySQLConfig(host="db", port=3306, user="u", password="p", database="ledger", pool_size=2)
    )


def _pool(provider):
    return provider._pool


def test_pool_built_from_config(provider):
    assert _pool(provider).kwargs["pool_name"] == "portfolio_pool"
    assert _pool(provider).kwargs["pool_size"] == 2
    assert _pool(provider).kwargs["database"] == "ledger"


def test_get_connection_commits_and_closes(provider):
    with provider.get_connection():
        pass
    assert _pool(provider).handed_out[0].events == ["commit", "close"]


def test_get_connection_rolls_back_on_error(provider):
    with pytest.raises(RuntimeError):
        with provider.get_connection():
            raise RuntimeError("boom")
    assert _pool(provider).handed_out[0].events == ["rollback", "close"]


def test_transaction_binds_one_connection(provider):
    with provider.transaction() as outer:
        with provider.get_connection() as inner:
            assert inner is outer
        with provider.transaction() as nested:
            assert nested is outer

    assert len(_pool(provider).handed_out) == 1
    assert outer.events == [("start", "SERIALIZABLE"), "commit", "close"]


@pytest.mark.parametrize("errno", [errorcode.ER_LOCK_DEADLOCK, errorcode.ER_LOCK_WAIT_TIMEOUT])
def test_lock_errors_become_conflicts(provider, errno):
    with pytest.raises(ConcurrencyConflictError):
        with MySQLUnitOfWork(provider).serializable():
            raise mysql.connector.Error(msg="lock", errno=errno)

    conn = _pool(provider).handed_out[0]
    assert conn.events == [("start", "SERIALIZABLE"), "rollback", "close"]
    with provider.get_connection() as fresh:
        assert fresh is not conn


def test_other_mysql_errors_propagate(provider):
    with pytest.raises(mysql.connector.Error) as excinfo:
        with provider.transaction():
            raise mysql.connector.Error(msg="dup", errno=errorcode.ER_DUP_ENTRY)
    assert not isinstance(excinfo.value, ConcurrencyConflictError)


def test_stock_repository_maps_rows(provider):
    repo = MySQLStockRepository(provider)
    row = {
        "id": 7,
        "ticker": "AAPL",
        "name": "Apple",
        "exchange": "NASDAQ",
        "currency": "USD",
        "sector": "Technology",
        "industry": None,
        "current_price": Decimal("189.9900"),
        "last_updated": datetime(2024, 6, 1, 1, 0),
    }

    with provider.transaction() as conn:
        conn.rows = [row]
        stock = repo.get_by_ticker(" aapl ")

    assert stock.id == 7
    assert stock.current_price == Decimal("189.99")
    sql, params = conn.executed[0]
    assert "UPPER(ticker) = UPPER(%s)" in sql
    assert params == ("aapl",)


def test_like_pattern_escapes_wildcards():
    assert like_pattern("50%_A") == "%50\\%\\_a%"
