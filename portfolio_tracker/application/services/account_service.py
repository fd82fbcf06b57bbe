# portfolio_tracker/application/services/account_service.py

from __future__ import annotations

import re
from dataclasses import replace
from typing import List, Optional

from loguru import logger

from portfolio_tracker.domain.errors import AlreadyExistsError, InvalidInputError, NotFoundError
from portfolio_tracker.domain.models.account import Account, AccountRole
from portfolio_tracker.domain.services_interfaces.i_account_repo import IAccountRepository

_EMAIL_RE = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


class AccountService:
    """
    Hesap dizini (AccountDirectory) servisi.
    Ledger ve Aggregator hesapları sadece kapsam (user_id) için kullanır;
    parola / oturum işleri bu servisin dışındadır.
    """

    def __init__(self, account_repo: IAccountRepository) -> None:
        self._account_repo = account_repo

    # ---------- Okuma ---------- #

    def get_account(self, account_id: int) -> Account:
        account = self._account_repo.get_by_id(account_id)
        if account is None:
            raise NotFoundError(f"User not found: {account_id}")
        return account

    def get_account_by_email(self, email: str) -> Account:
        account = self._account_repo.get_by_email(email)
        if account is None:
            raise NotFoundError(f"User not found: {email}")
        return account

    def list_accounts(self) -> List[Account]:
        return self._account_repo.get_all()

    def list_regular_accounts(self) -> List[Account]:
        return [a for a in self._account_repo.get_all() if a.role == AccountRole.USER]

    def count_accounts(self) -> int:
        return len(self._account_repo.get_all())

    # ---------- Yazma ---------- #

    def create_account(
        self,
        email: str,
        first_name: Optional[str] = None,
        last_name: Optional[str] = None,
        role: AccountRole = AccountRole.USER,
    ) -> Account:
        """
        Yeni hesap açar.

        Args:
            email: Benzersiz e-posta (büyük/küçük harf duyarsız)
            role: USER veya ADMIN

        Raises:
            InvalidInputError: e-posta formatı hatalıysa
            AlreadyExistsError: e-posta zaten kayıtlıysa
        """
        email = (email or "").strip()
        if not _EMAIL_RE.match(email):
            raise InvalidInputError(f"Invalid email: {email!r}")
        if self._account_repo.exists_by_email(email):
            raise AlreadyExistsError("Email already in use")

        account = self._account_repo.save(
            Account(
                id=None,
                email=email,
                role=role,
                enabled=True,
                first_name=first_name,
                last_name=last_name,
            )
        )
        logger.info(f"Created new user: {email}")
        return account

    def update_account(
        self,
        account_id: int,
        first_name: Optional[str],
        last_name: Optional[str],
        role: AccountRole,
    ) -> Account:
        account = self.get_account(account_id)
        updated = self._account_repo.save(
            replace(account, first_name=first_name, last_name=last_name, role=role)
        )
        logger.info(f"Updated user: {account.email}")
        return updated

    def toggle_enabled(self, account_id: int) -> Account:
        account = self.get_account(account_id)
        updated = self._account_repo.save(replace(account, enabled=not account.enabled))
        logger.info(
            f"Toggled enabled status for user: {account.email}, new status: {updated.enabled}"
        )
        return updated

    def delete_account(self, account_id: int) -> None:
        account = self.get_account(account_id)
        self._account_repo.delete(account_id)
        logger.info(f"Deleted user: {account.email}")
