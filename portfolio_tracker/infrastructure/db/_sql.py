# portfolio_tracker/infrastructure/db/_sql.py

from __future__ import annotations

from decimal import Decimal
from typing import Any, Optional

from portfolio_tracker.domain.numeric import ZERO, to_decimal


def dec(value: Any) -> Decimal:
    """
    MySQL DECIMAL kolonları Decimal döner, SUM(...) boş kümede NULL döner;
    ikisini de Decimal'e çevirir.
    """
    if value is None:
        return ZERO
    return to_decimal(value)


def dec_or_none(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return to_decimal(value)


def db_str(value: Optional[Decimal]) -> Optional[str]:
    """Decimal'i hassasiyet kaybı olmadan parametre olarak gönder."""
    if value is None:
        return None
    return str(value)


def like_pattern(query: str) -> str:
    """LIKE içinde kullanıcı girdisini kaçışlayıp %...% ile sarar."""
    escaped = (
        query.lower()
        .replace("\\", "\\\\")
        .replace("%", "\\%")
        .replace("_", "\\_")
    )
    return f"%{escaped}%"
