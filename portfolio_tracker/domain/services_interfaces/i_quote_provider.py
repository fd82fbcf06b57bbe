# portfolio_tracker/domain/services_interfaces/i_quote_provider.py

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Dict

from portfolio_tracker.domain.models.quote import Quote


class IQuoteProvider(ABC):
    """
    Piyasa verisi (quote) sağlayıcılarını soyutlayan arayüz.

        - YFinanceQuoteProvider → gerçek senaryo
        - FakeQuoteProvider     → unit test

    Hata sözleşmesi: her türlü sağlayıcı hatası (ağ, timeout, boş/bozuk
    cevap) QuoteUnavailableError olarak yükseltilir; çağıran taraf
    süresiz beklemez.
    """

    @abstractmethod
    def get_quote(self, ticker: str) -> Quote:
        """Tek bir ticker için anlık fiyat bilgisi."""
        raise NotImplementedError

    @abstractmethod
    def get_overview(self, ticker: str) -> Dict[str, Any]:
        """
        Şirket bilgileri. En az şu anahtarları doldurmaya çalışır:
            Name, Exchange, Sector, Industry, Currency
        """
        raise NotImplementedError
