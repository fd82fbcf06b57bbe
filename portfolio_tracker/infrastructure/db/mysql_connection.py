# portfolio_tracker/infrastructure/db/mysql_connection.py

from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Generator, Optional

import mysql.connector
from mysql.connector import errorcode, pooling
from loguru import logger

from portfolio_tracker.domain.errors import ConcurrencyConflictError
from portfolio_tracker.domain.services_interfaces.i_unit_of_work import IUnitOfWork

# InnoDB'nin iki yazarı serialize edemediğini bildiren hata kodları
_CONFLICT_ERRNOS = frozenset({
    errorcode.ER_LOCK_DEADLOCK,
    errorcode.ER_LOCK_WAIT_TIMEOUT,
})


@dataclass
class MySQLConfig:
    host: str
    port: int
    user: str
    password: str
    database: str
    pool_name: str = "portfolio_pool"
    pool_size: int = 5


class MySQLConnectionProvider:
    """
    MySQL connection pool wrapper.
    Uygulamanın tamamında tek bir instance kullanılır.

    transaction() bloğu içindeyken bağlantı o thread'e bağlanır; aynı
    thread'deki repository çağrıları get_connection() ile aynı bağlantıyı
    (dolayısıyla aynı transaction'ı) kullanır ve commit'i blok sahibine bırakır.
    """

    def __init__(self, config: MySQLConfig) -> None:
        self._config = config
        self._pool: Optional[pooling.MySQLConnectionPool] = None
        self._local = threading.local()
        self._init_pool()

    def _init_pool(self) -> None:
        self._pool = pooling.MySQLConnectionPool(
            pool_name=self._config.pool_name,
            pool_size=self._config.pool_size,
            pool_reset_session=True,
            host=self._config.host,
            port=self._config.port,
            user=self._config.user,
            password=self._config.password,
            database=self._config.database,
        )

    def _bound_connection(self):
        return getattr(self._local, "conn", None)

    @contextmanager
    def get_connection(self) -> Generator[mysql.connector.MySQLConnection, None, None]:
        """
        with provider.get_connection() as conn: şeklinde kullan.
        Açık bir transaction() varsa onun bağlantısı döner (commit yapılmaz).
        """
        bound = self._bound_connection()
        if bound is not None:
            yield bound
            return

        if self._pool is None:
            self._init_pool()

        conn = self._pool.get_connection()
        try:
            yield conn
            conn.commit()
        except Exception:
            conn.rollback()
            raise
        finally:
            conn.close()

    @contextmanager
    def transaction(
        self,
        isolation_level: str = "SERIALIZABLE",
    ) -> Generator[mysql.connector.MySQLConnection, None, None]:
        """
        Tek bağlantı üzerinde açık transaction. İç içe çağrılırsa dıştaki
        transaction'a katılır.

        Deadlock / lock wait timeout → ConcurrencyConflictError.
        """
        bound = self._bound_connection()
        if bound is not None:
            yield bound
            return

        if self._pool is None:
            self._init_pool()

        conn = self._pool.get_connection()
        self._local.conn = conn
        try:
            conn.start_transaction(isolation_level=isolation_level)
            yield conn
            conn.commit()
        except mysql.connector.Error as exc:
            conn.rollback()
            if exc.errno in _CONFLICT_ERRNOS:
                logger.warning(f"Storage conflict (errno={exc.errno}): {exc.msg}")
                raise ConcurrencyConflictError(str(exc)) from exc
            raise
        except Exception:
            conn.rollback()
            raise
        finally:
            self._local.conn = None
            conn.close()


class MySQLUnitOfWork(IUnitOfWork):
    """
    IUnitOfWork'ün MySQL implementasyonu: SERIALIZABLE izolasyonlu transaction.
    """

    def __init__(self, connection_provider: MySQLConnectionProvider) -> None:
        self._cp = connection_provider

    @contextmanager
    def serializable(self) -> Generator[None, None, None]:
        with self._cp.transaction("SERIALIZABLE"):
            yield
