# portfolio_tracker/application/services/stock_catalog_service.py

from __future__ import annotations

import re
import threading
from collections import defaultdict
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Dict, List, Mapping, Optional

from loguru import logger

from portfolio_tracker.domain.errors import (
    AlreadyExistsError,
    InvalidInputError,
    NotFoundError,
    QuoteUnavailableError,
)
from portfolio_tracker.domain.models.quote import Quote
from portfolio_tracker.domain.models.stock import Stock
from portfolio_tracker.domain.numeric import ZERO, quantize_price, to_decimal
from portfolio_tracker.domain.services_interfaces.i_quote_provider import IQuoteProvider
from portfolio_tracker.domain.services_interfaces.i_stock_repo import IStockRepository
from .paced_batch import PacedBatch
from .price_cache import PriceCache

_TICKER_RE = re.compile(r"^(?=.*[A-Z0-9])[A-Z0-9.\-^=]{1,20}$")


def normalize_ticker(ticker: str) -> str:
    """
    Ticker'ı büyük harfe çevirip doğrular (1-20 karakter; harf, rakam, . - ^ =).
    """
    value = (ticker or "").strip().upper()
    if not _TICKER_RE.match(value):
        raise InvalidInputError(f"Malformed ticker: {ticker!r}")
    return value


@dataclass
class RefreshReport:
    """
    Toplu fiyat güncellemesi sonrası özet.

    - updated: fiyatı başarıyla güncellenen hisseler
    - skipped: { ticker: hata nedeni }
    - cancelled: iterasyon iptal ile yarıda kaldıysa True
    """
    updated: List[Stock] = field(default_factory=list)
    skipped: Dict[str, str] = field(default_factory=dict)
    cancelled: bool = False

    @property
    def updated_count(self) -> int:
        return len(self.updated)


class StockCatalogService:
    """
    Hisse referans verisinin (stocks) sahibi olan application servisi.

    - CRUD + arama
    - PriceCache üzerinden ticker okuma; her yazma işlemi cache'i invalidate eder
    - Quote provider'dan tekil / toplu fiyat yenileme
    """

    def __init__(
        self,
        stock_repo: IStockRepository,
        quote_provider: IQuoteProvider,
        price_cache: Optional[PriceCache] = None,
        refresh_batch_size: int = 5,
        refresh_pause_seconds: float = 60.0,
    ) -> None:
        self._stock_repo = stock_repo
        self._quote_provider = quote_provider
        self._cache = price_cache or PriceCache()
        self._refresh_batch_size = refresh_batch_size
        self._refresh_pause_seconds = refresh_pause_seconds

    @property
    def cache(self) -> PriceCache:
        return self._cache

    # ---------- Okuma ---------- #

    def get_all_stocks(self) -> List[Stock]:
        return self._stock_repo.get_all()

    def get_stock_by_id(self, stock_id: int) -> Optional[Stock]:
        return self._stock_repo.get_by_id(stock_id)

    def get_stock_by_ticker(self, ticker: str) -> Optional[Stock]:
        """Önce cache, yoksa repository (bulunursa cache'e yazılır)."""
        return self._cache.get_or_load(ticker, self._stock_repo.get_by_ticker)

    def search_stocks(self, query: str) -> List[Stock]:
        if not query or not query.strip():
            return []
        return self._stock_repo.search(query.strip())

    def get_top_stocks_by_price(self, limit: int) -> List[Stock]:
        if limit <= 0:
            raise InvalidInputError("limit must be positive")
        return self._stock_repo.get_top_by_price(limit)

    def get_stocks_needing_update(self, minutes_threshold: int) -> List[Stock]:
        """Fiyatı hiç çekilmemiş ya da son minutes_threshold dakikada güncellenmemiş hisseler."""
        cutoff = datetime.now() - timedelta(minutes=minutes_threshold)
        return self._stock_repo.get_stale(cutoff)

    def get_average_price_by_sector(self) -> Dict[str, Decimal]:
        prices: Dict[str, List[Decimal]] = defaultdict(list)
        for stock in self._stock_repo.get_all():
            if stock.sector is not None and stock.current_price is not None:
                prices[stock.sector].append(stock.current_price)

        return {
            sector: quantize_price(sum(values, ZERO) / len(values))
            for sector, values in prices.items()
        }

    # ---------- Yardımcılar ---------- #

    def _require_by_id(self, stock_id: int) -> Stock:
        stock = self._stock_repo.get_by_id(stock_id)
        if stock is None:
            raise NotFoundError(f"Stock not found: {stock_id}")
        return stock

    def _require_by_ticker(self, ticker: str) -> Stock:
        stock = self._stock_repo.get_by_ticker(ticker)
        if stock is None:
            raise NotFoundError(f"Stock not found: {ticker}")
        return stock

    @staticmethod
    def _validate_price(price) -> Decimal:
        try:
            value = to_decimal(price)
        except ValueError as exc:
            raise InvalidInputError(str(exc)) from exc
        if value <= ZERO:
            raise InvalidInputError(f"Price must be positive: {price}")
        value = quantize_price(value)
        if value <= ZERO:
            raise InvalidInputError(f"Price rounds to zero: {price}")
        return value

    # ---------- Yazma ---------- #

    def create_stock(
        self,
        ticker: str,
        name: str,
        exchange: str,
        currency: str,
        sector: Optional[str] = None,
        industry: Optional[str] = None,
    ) -> Stock:
        symbol = normalize_ticker(ticker)
        if self._stock_repo.exists_by_ticker(symbol):
            raise AlreadyExistsError(f"Stock with ticker {symbol} already exists")

        saved = self._stock_repo.save(
            Stock(
                id=None,
                ticker=symbol,
                name=name,
                exchange=exchange,
                currency=currency,
                sector=sector,
                industry=industry,
                last_updated=datetime.now(),
            )
        )
        self._cache.invalidate(symbol)
        logger.info(f"Created new stock: {symbol}")
        return saved

    def update_stock(
        self,
        stock_id: int,
        name: str,
        exchange: str,
        sector: Optional[str],
        industry: Optional[str],
        currency: str,
    ) -> Stock:
        stock = self._require_by_id(stock_id)
        updated = self._stock_repo.save(
            replace(
                stock,
                name=name,
                exchange=exchange,
                sector=sector,
                industry=industry,
                currency=currency,
                last_updated=datetime.now(),
            )
        )
        self._cache.invalidate(stock.ticker)
        logger.info(f"Updated stock: {stock.ticker}")
        return updated

    def update_stock_price(self, stock_id: int, price) -> Stock:
        value = self._validate_price(price)
        stock = self._require_by_id(stock_id)
        return self._set_price(stock, value)

    def update_stock_price_by_ticker(self, ticker: str, price) -> Stock:
        value = self._validate_price(price)
        stock = self._require_by_ticker(ticker)
        return self._set_price(stock, value)

    def _set_price(self, stock: Stock, price: Decimal) -> Stock:
        updated = self._stock_repo.update_price(stock.id, price, datetime.now())
        self._cache.invalidate(stock.ticker)
        if updated is None:
            raise NotFoundError(f"Stock not found: {stock.ticker}")
        logger.info(f"Updated price for {stock.ticker}: {price}")
        return updated

    def batch_update_prices(self, prices: Mapping[str, object]) -> List[Stock]:
        """
        { ticker: fiyat } map'indeki hisseleri günceller; bilinmeyen ticker'lar atlanır.
        Fiyatların hepsi yazmadan önce doğrulanır; biri geçersizse hiçbir şey yazılmaz.
        """
        validated = {ticker: self._validate_price(price) for ticker, price in prices.items()}

        updated: List[Stock] = []
        for ticker, price in validated.items():
            stock = self._stock_repo.get_by_ticker(ticker)
            if stock is None:
                logger.warning(f"Batch price update skipped unknown ticker {ticker}")
                continue
            updated.append(self._set_price(stock, price))

        logger.info(f"Batch updated prices for {len(updated)} stocks")
        return updated

    def delete_stock(self, stock_id: int) -> None:
        stock = self._require_by_id(stock_id)
        self._stock_repo.delete(stock_id)
        self._cache.invalidate(stock.ticker)
        logger.info(f"Deleted stock: {stock.ticker}")

    def clear_cache(self) -> None:
        """Bir sonraki okumada taze veri gelmesi için cache'i boşaltır."""
        self._cache.clear()

    # ---------- Quote provider ---------- #

    def _fetch_quote(self, ticker: str) -> Quote:
        try:
            quote = self._quote_provider.get_quote(ticker)
        except QuoteUnavailableError:
            raise
        except Exception as exc:
            raise QuoteUnavailableError(ticker, str(exc)) from exc

        if quote is None or quote.price is None or quote.price <= ZERO:
            raise QuoteUnavailableError(ticker, "missing or non-positive price")
        return quote

    def _apply_quote(self, stock: Stock, quote: Quote) -> Stock:
        updated = self._stock_repo.update_price(stock.id, quantize_price(quote.price), datetime.now())
        if updated is None:
            self._cache.invalidate(stock.ticker)
            raise NotFoundError(f"Stock not found: {stock.ticker}")
        self._cache.invalidate(stock.ticker)
        self._cache.put(updated)
        return updated

    def refresh_one(self, ticker: str) -> Stock:
        """
        Tek bir hissenin fiyatını provider'dan yeniler.
        Provider hatasında QuoteUnavailableError yükselir ve hisse değişmez.
        """
        stock = self._require_by_ticker(ticker)
        try:
            quote = self._fetch_quote(stock.ticker)
        except QuoteUnavailableError as exc:
            logger.error(f"Failed to refresh price for {stock.ticker}: {exc.reason}")
            raise

        updated = self._apply_quote(stock, quote)
        logger.info(f"Refreshed price for {stock.ticker}: {quote.price}")
        return updated

    def refresh_all(self, cancel_event: Optional[threading.Event] = None) -> RefreshReport:
        """
        Tüm hisseleri sırayla yeniler; provider hız limiti için her
        refresh_batch_size çağrıdan sonra refresh_pause_seconds bekler.

        Ticker bazlı hatalar toplanır (RefreshReport.skipped), batch durmaz.
        cancel_event set edilirse kalan hisseler dokunulmadan bırakılır.
        """
        stocks = self._stock_repo.get_all()
        report = RefreshReport()
        logger.info(f"Starting price refresh for {len(stocks)} stocks")

        batch = PacedBatch(
            stocks,
            batch_size=self._refresh_batch_size,
            pause_seconds=self._refresh_pause_seconds,
            cancel_event=cancel_event,
        )
        for stock in batch:
            try:
                quote = self._fetch_quote(stock.ticker)
                report.updated.append(self._apply_quote(stock, quote))
                logger.info(f"Refreshed price for {stock.ticker}: {quote.price}")
            except QuoteUnavailableError as exc:
                logger.error(f"Failed to refresh price for {stock.ticker}: {exc.reason}")
                report.skipped[stock.ticker] = exc.reason
            except NotFoundError as exc:
                logger.warning(f"Stock {stock.ticker} disappeared during refresh")
                report.skipped[stock.ticker] = str(exc)
            except Exception as exc:
                # storage errors stay per-ticker; the rest of the batch still runs
                logger.exception(f"Unexpected error refreshing {stock.ticker}")
                report.skipped[stock.ticker] = str(exc)

        report.cancelled = batch.cancelled
        if report.skipped:
            logger.warning(
                f"Skipped {len(report.skipped)} stocks: {', '.join(sorted(report.skipped))}"
            )
        logger.info(
            f"Completed price refresh: {report.updated_count} updated, "
            f"{len(report.skipped)} skipped, cancelled={report.cancelled}"
        )
        return report

    def add_stock_from_provider(self, ticker: str) -> Stock:
        """
        Hisse zaten varsa onu döner; yoksa provider'dan overview + quote çekip oluşturur.
        """
        symbol = normalize_ticker(ticker)
        existing = self._stock_repo.get_by_ticker(symbol)
        if existing is not None:
            return existing

        quote = self._fetch_quote(symbol)
        try:
            overview = self._quote_provider.get_overview(symbol)
        except QuoteUnavailableError:
            raise
        except Exception as exc:
            raise QuoteUnavailableError(symbol, str(exc)) from exc

        saved = self._stock_repo.save(
            Stock(
                id=None,
                ticker=symbol,
                name=overview.get("Name") or symbol,
                exchange=overview.get("Exchange") or "Unknown",
                sector=overview.get("Sector") or "Unknown",
                industry=overview.get("Industry") or "Unknown",
                currency=overview.get("Currency") or "USD",
                current_price=quantize_price(quote.price),
                last_updated=datetime.now(),
            )
        )
        self._cache.invalidate(symbol)
        logger.info(f"Added new stock from quote provider: {symbol}")
        return saved
