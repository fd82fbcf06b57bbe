# portfolio_tracker/infrastructure/db/account_repository.py

from __future__ import annotations

from dataclasses import replace
from typing import List, Optional

from portfolio_tracker.domain.models.account import Account, AccountRole
from portfolio_tracker.domain.services_interfaces.i_account_repo import IAccountRepository
from .mysql_connection import MySQLConnectionProvider

_COLUMNS = "id, email, role, enabled, first_name, last_name, created_at"


class MySQLAccountRepository(IAccountRepository):
    """
    IAccountRepository'nin MySQL implementasyonu.
    'accounts' tablosuna erişir.
    """

    def __init__(self, connection_provider: MySQLConnectionProvider) -> None:
        self._cp = connection_provider

    # ---------- Row → Domain Mapper ---------- #

    def _row_to_account(self, row: dict) -> Account:
        return Account(
            id=row["id"],
            email=row["email"],
            role=AccountRole(row["role"]),
            enabled=bool(row["enabled"]),
            first_name=row.get("first_name"),
            last_name=row.get("last_name"),
            created_at=row.get("created_at"),
        )

    def _fetch_one(self, sql: str, params: tuple) -> Optional[Account]:
        with self._cp.get_connection() as conn:
            cursor = conn.cursor(dictionary=True)
            cursor.execute(sql, params)
            row = cursor.fetchone()

        if row is None:
            return None
        return self._row_to_account(row)

    # ---------- READ operasyonları ---------- #

    def get_by_id(self, account_id: int) -> Optional[Account]:
        return self._fetch_one(f"SELECT {_COLUMNS} FROM accounts WHERE id = %s", (account_id,))

    def get_by_email(self, email: str) -> Optional[Account]:
        return self._fetch_one(
            f"SELECT {_COLUMNS} FROM accounts WHERE LOWER(email) = LOWER(%s)",
            (email.strip(),),
        )

    def exists_by_email(self, email: str) -> bool:
        return self.get_by_email(email) is not None

    def get_all(self) -> List[Account]:
        sql = f"SELECT {_COLUMNS} FROM accounts ORDER BY id"
        with self._cp.get_connection() as conn:
            cursor = conn.cursor(dictionary=True)
            cursor.execute(sql)
            rows = cursor.fetchall()

        return [self._row_to_account(r) for r in rows]

    # ---------- WRITE operasyonları ---------- #

    def save(self, account: Account) -> Account:
        if account.id is None:
            sql = """
                INSERT INTO accounts (email, role, enabled, first_name, last_name)
                VALUES (%s, %s, %s, %s, %s)
            """
            params = (
                account.email,
                account.role.value,
                account.enabled,
                account.first_name,
                account.last_name,
            )
        else:
            sql = """
                UPDATE accounts
                SET email = %s,
                    role = %s,
                    enabled = %s,
                    first_name = %s,
                    last_name = %s
                WHERE id = %s
            """
            params = (
                account.email,
                account.role.value,
                account.enabled,
                account.first_name,
                account.last_name,
                account.id,
            )

        with self._cp.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute(sql, params)
            account_id = cursor.lastrowid if account.id is None else account.id

        if account.id is None:
            return replace(account, id=account_id)
        return account

    def delete(self, account_id: int) -> None:
        with self._cp.get_connection() as conn:
            cursor = conn.cursor()
            cursor.execute("DELETE FROM accounts WHERE id = %s", (account_id,))
