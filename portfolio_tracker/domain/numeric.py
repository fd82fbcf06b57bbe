# portfolio_tracker/domain/numeric.py

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any

ZERO = Decimal("0")
HUNDRED = Decimal("100")

QUANTITY_STEP = Decimal("0.000001")   # positions.quantity DECIMAL(19, 6)
PRICE_STEP = Decimal("0.0001")        # prices / average_cost DECIMAL(19, 4)
PERCENT_STEP = Decimal("0.01")


def to_decimal(value: Any) -> Decimal:
    """
    DB / yfinance / kullanıcıdan gelen int, float, str değerleri güvenli şekilde
    Decimal'e çevirir. float önce str'ye çevrilir ki ikili gösterim hatası taşınmasın.
    """
    if isinstance(value, Decimal):
        result = value
    else:
        if isinstance(value, float):
            value = repr(value)
        try:
            result = Decimal(str(value).strip())
        except (InvalidOperation, ValueError) as exc:
            raise ValueError(f"Not a decimal value: {value!r}") from exc
    if not result.is_finite():
        raise ValueError(f"Not a finite decimal value: {value!r}")
    return result


def quantize_quantity(value: Decimal) -> Decimal:
    return value.quantize(QUANTITY_STEP, rounding=ROUND_HALF_UP)


def quantize_price(value: Decimal) -> Decimal:
    return value.quantize(PRICE_STEP, rounding=ROUND_HALF_UP)


def quantize_percent(value: Decimal) -> Decimal:
    return value.quantize(PERCENT_STEP, rounding=ROUND_HALF_UP)


def percent_of(part: Decimal, whole: Decimal) -> Decimal:
    """part / whole * 100, HALF_UP 2 hane. whole == 0 ise 0 döner."""
    if whole == ZERO:
        return quantize_percent(ZERO)
    return quantize_percent(part * HUNDRED / whole)
