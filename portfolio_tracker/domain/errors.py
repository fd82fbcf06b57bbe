# portfolio_tracker/domain/errors.py

from __future__ import annotations


class PortfolioError(Exception):
    """Base class for every business-rule failure raised by the core."""


class NotFoundError(PortfolioError, LookupError):
    """Unknown account, stock, position id or ticker."""


class AlreadyExistsError(PortfolioError):
    """Duplicate ticker (stocks) or duplicate email (accounts)."""


class InvalidInputError(PortfolioError, ValueError):
    """Non-positive quantity/price, negative fee, malformed ticker or email."""


class InsufficientHoldingsError(PortfolioError):
    """A SELL asked for more than the position holds."""

    def __init__(self, ticker: str, held, requested) -> None:
        super().__init__(
            f"Insufficient shares to sell {ticker}: held={held}, requested={requested}"
        )
        self.ticker = ticker
        self.held = held
        self.requested = requested


class QuoteUnavailableError(PortfolioError):
    """The quote provider failed or returned something unusable."""

    def __init__(self, ticker: str, reason: str) -> None:
        super().__init__(f"Quote unavailable for {ticker}: {reason}")
        self.ticker = ticker
        self.reason = reason


class ConcurrencyConflictError(PortfolioError):
    """
    Storage katmanı iki yazarı serialize edemedi (deadlock, lock wait timeout,
    serialization failure). Ledger bu hatayı sınırlı sayıda yeniden dener.
    """


class AccessDeniedError(PortfolioError):
    """The account is not allowed to run the requested operation."""
