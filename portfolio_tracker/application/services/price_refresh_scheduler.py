# portfolio_tracker/application/services/price_refresh_scheduler.py

from __future__ import annotations

import threading
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger
from loguru import logger

from .stock_catalog_service import RefreshReport, StockCatalogService

JOB_ID = "refresh_all_prices"


class PriceRefreshScheduler:
    """
    Tüm hisse fiyatlarını cron ile (varsayılan her gün 01:00) yenileyen arka plan işi.

    - Aynı anda en fazla bir refresh çalışır (max_instances=1, coalesce=True).
    - shutdown() önce cancel event'i set eder; çalışan refresh öğeler arasında
      ya da bekleme sırasında durur, o ana kadar güncellenenler kalıcıdır.
    """

    def __init__(
        self,
        catalog: StockCatalogService,
        hour: int = 1,
        minute: int = 0,
        timezone: Optional[str] = None,
    ) -> None:
        self._catalog = catalog
        self._hour = hour
        self._minute = minute
        self._cancel_event = threading.Event()
        self._scheduler = BackgroundScheduler(timezone=timezone) if timezone else BackgroundScheduler()
        self.last_report: Optional[RefreshReport] = None

    @property
    def cancel_event(self) -> threading.Event:
        return self._cancel_event

    @property
    def running(self) -> bool:
        return self._scheduler.running

    def start(self) -> None:
        self._cancel_event.clear()
        self._scheduler.add_job(
            self.run_now,
            trigger=CronTrigger(hour=self._hour, minute=self._minute),
            id=JOB_ID,
            max_instances=1,
            coalesce=True,
            replace_existing=True,
        )
        self._scheduler.start()
        logger.info(f"Price refresh scheduled daily at {self._hour:02d}:{self._minute:02d}")

    def next_run_time(self):
        job = self._scheduler.get_job(JOB_ID)
        return job.next_run_time if job is not None else None

    def run_now(self) -> RefreshReport:
        logger.info("Starting scheduled price refresh")
        report = self._catalog.refresh_all(cancel_event=self._cancel_event)
        self.last_report = report
        return report

    def shutdown(self, wait: bool = True) -> None:
        self._cancel_event.set()
        if self._scheduler.running:
            self._scheduler.shutdown(wait=wait)
        logger.info("Price refresh scheduler shut down")
