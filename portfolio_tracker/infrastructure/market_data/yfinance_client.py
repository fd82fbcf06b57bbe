# portfolio_tracker/infrastructure/market_data/yfinance_client.py

from __future__ import annotations

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict

import pandas as pd
import yfinance as yf
from loguru import logger

from portfolio_tracker.domain.errors import QuoteUnavailableError
from portfolio_tracker.domain.models.quote import Quote
from portfolio_tracker.domain.numeric import ZERO, percent_of, quantize_price, to_decimal
from portfolio_tracker.domain.services_interfaces.i_quote_provider import IQuoteProvider

# yfinance .info anahtarı → overview anahtarı
_OVERVIEW_FIELDS = {
    "Name": ("longName", "shortName"),
    "Exchange": ("exchange", "fullExchangeName"),
    "Sector": ("sector",),
    "Industry": ("industry",),
    "Currency": ("currency", "financialCurrency"),
}


class YFinanceQuoteProvider(IQuoteProvider):
    """
    IQuoteProvider arayüzünü yfinance ile implemente eden sınıf.

    Notlar:
      - Son iki günlük bar kullanılır: son bar → price/open/high/low/volume,
        bir önceki barın kapanışı → previous_close.
      - yfinance'in fırlattığı her hata (ağ, timeout, JSON) QuoteUnavailableError'a
        çevrilir; timeout süresi constructor'dan gelir.
    """

    def __init__(self, timeout: int = 10, history_period: str = "5d") -> None:
        self._timeout = timeout
        self._history_period = history_period

    # ----------------- Yardımcı metotlar ----------------- #

    def _to_decimal(self, value) -> Decimal:
        """
        yfinance/pandas'dan gelen float/np.float tiplerini güvenli şekilde Decimal'e çevir.
        """
        return to_decimal(float(value))

    def _history(self, ticker: str) -> pd.DataFrame:
        try:
            df = yf.Ticker(ticker).history(
                period=self._history_period,
                interval="1d",
                auto_adjust=False,
                timeout=self._timeout,
            )
        except Exception as exc:
            logger.error(f"Error fetching quote for {ticker}: {exc}")
            raise QuoteUnavailableError(ticker, str(exc)) from exc

        if df is None or df.empty or "Close" not in df.columns:
            raise QuoteUnavailableError(ticker, "no price data returned")

        df = df.dropna(subset=["Close"])
        if df.empty:
            raise QuoteUnavailableError(ticker, "no price data returned")
        return df

    # ----------------- Anlık fiyat ----------------- #

    def get_quote(self, ticker: str) -> Quote:
        df = self._history(ticker)
        last = df.iloc[-1]

        try:
            price = self._to_decimal(last["Close"])
            open_ = self._to_decimal(last["Open"])
            high = self._to_decimal(last["High"])
            low = self._to_decimal(last["Low"])
            if len(df) > 1:
                previous_close = self._to_decimal(df["Close"].iloc[-2])
            else:
                previous_close = open_
            volume_val = last.get("Volume")
            volume = 0 if volume_val is None or pd.isna(volume_val) else int(volume_val)
        except (KeyError, TypeError, ValueError) as exc:
            raise QuoteUnavailableError(ticker, f"malformed price data: {exc}") from exc

        if price <= ZERO:
            raise QuoteUnavailableError(ticker, f"non-positive price {price}")

        change = price - previous_close
        return Quote(
            symbol=ticker.upper(),
            price=quantize_price(price),
            open=quantize_price(open_),
            high=quantize_price(high),
            low=quantize_price(low),
            previous_close=quantize_price(previous_close),
            change=quantize_price(change),
            change_percent=percent_of(change, previous_close),
            volume=volume,
            timestamp=datetime.now(),
        )

    # ----------------- Şirket bilgisi ----------------- #

    def get_overview(self, ticker: str) -> Dict[str, Any]:
        try:
            info = yf.Ticker(ticker).info
        except Exception as exc:
            logger.error(f"Error fetching company overview for {ticker}: {exc}")
            raise QuoteUnavailableError(ticker, str(exc)) from exc

        if not info:
            raise QuoteUnavailableError(ticker, "empty company overview")

        overview: Dict[str, Any] = {"Symbol": ticker.upper()}
        for key, candidates in _OVERVIEW_FIELDS.items():
            for candidate in candidates:
                value = info.get(candidate)
                if value:
                    overview[key] = value
                    break
        return overview
