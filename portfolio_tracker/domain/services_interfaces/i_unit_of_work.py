# portfolio_tracker/domain/services_interfaces/i_unit_of_work.py

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import ContextManager


class IUnitOfWork(ABC):
    """
    Birden fazla repository çağrısını tek bir storage transaction'ı içinde
    toplayan sınır.

        with uow.serializable():
            position = position_repo.get_by_user_and_stock(...)
            position_repo.save(...)
            transaction_repo.add(...)

    Blok hatasız biterse commit, hata olursa rollback. Storage katmanı iki
    yazarı serialize edemezse ConcurrencyConflictError yükseltilir.
    """

    @abstractmethod
    def serializable(self) -> ContextManager[None]:
        raise NotImplementedError
