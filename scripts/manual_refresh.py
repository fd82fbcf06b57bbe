# scripts/manual_refresh.py

import os
import sys
import threading

# Proje ana dizinini Python yoluna ekle (kurulum yapılmadan çalıştırılabilsin)
current_dir = os.path.dirname(os.path.abspath(__file__))
project_root = os.path.abspath(os.path.join(current_dir, ".."))
sys.path.append(project_root)

from loguru import logger

from portfolio_tracker.app import build_mysql_services
from portfolio_tracker.config.logging_config import configure_logging
from portfolio_tracker.config.settings_loader import load_settings
from portfolio_tracker.domain.errors import NotFoundError, QuoteUnavailableError


def refresh_process(tickers):
    """
    Ticker verilmişse sadece onları, verilmemişse tüm hisseleri yeniler.
    Ctrl+C bir sonraki hisseden önce (ya da bekleme sırasında) durdurur.
    """
    settings = load_settings()
    configure_logging(settings.log_level)
    services = build_mysql_services(settings)
    catalog = services.catalog

    if tickers:
        for ticker in tickers:
            try:
                stock = catalog.refresh_one(ticker)
                logger.info(f"{stock.ticker}: {stock.current_price}")
            except (NotFoundError, QuoteUnavailableError) as exc:
                logger.error(f"{ticker}: {exc}")
        return

    cancel_event = threading.Event()
    worker = threading.Thread(
        target=lambda: _report(catalog.refresh_all(cancel_event=cancel_event)),
        name="manual-refresh",
    )
    worker.start()
    try:
        while worker.is_alive():
            worker.join(timeout=0.5)
    except KeyboardInterrupt:
        logger.warning("Cancelling refresh, waiting for the current stock to finish")
        cancel_event.set()
        worker.join()


def _report(report):
    for ticker, reason in sorted(report.skipped.items()):
        logger.warning(f"- {ticker}: {reason}")
    logger.info(
        f"Updated {report.updated_count} stocks, skipped {len(report.skipped)}"
        + (" (cancelled)" if report.cancelled else "")
    )


if __name__ == "__main__":
    refresh_process([t.upper() for t in sys.argv[1:]])
