# portfolio_tracker/config/settings_loader.py

from __future__ import annotations
import os
from dataclasses import dataclass
from typing import Optional

from dotenv import load_dotenv

from portfolio_tracker.infrastructure.db.mysql_connection import MySQLConfig


@dataclass(frozen=True)
class AppSettings:
    """
    Uygulamanın tüm ayarları. MySQL kısmı MySQLConfig olarak ayrı tutulur.
    """
    mysql: MySQLConfig
    quote_timeout: int = 10
    refresh_batch_size: int = 5
    refresh_pause_seconds: int = 60
    refresh_cron_hour: int = 1
    refresh_cron_minute: int = 0
    price_cache_size: int = 1024
    ledger_max_retries: int = 3
    log_level: str = "INFO"


def _env_int(name: str, default: int, minimum: Optional[int] = None) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if minimum is not None and value < minimum:
        raise ValueError(f"{name} must be >= {minimum}, got {value}")
    return value


def load_settings(env_file: Optional[str] = None) -> AppSettings:
    """
    .env dosyasını okuyarak AppSettings nesnesi oluşturur.
    Ortamda zaten tanımlı değişkenler .env'dekileri ezer.
    """
    if env_file is not None:
        load_dotenv(env_file)
    else:
        load_dotenv()  # .env otomatik yukarıya doğru taranır

    mysql = MySQLConfig(
        host=os.getenv("DB_HOST", "localhost"),
        port=_env_int("DB_PORT", 3306, minimum=1),
        user=os.getenv("DB_USER", "root"),
        password=os.getenv("DB_PASSWORD", ""),
        database=os.getenv("DB_NAME", "portfolio_tracker"),
        pool_name=os.getenv("POOL_NAME", "portfolio_pool"),
        pool_size=_env_int("POOL_SIZE", 5, minimum=1),
    )

    return AppSettings(
        mysql=mysql,
        quote_timeout=_env_int("QUOTE_TIMEOUT", 10, minimum=1),
        refresh_batch_size=_env_int("REFRESH_BATCH_SIZE", 5, minimum=1),
        refresh_pause_seconds=_env_int("REFRESH_PAUSE_SECONDS", 60, minimum=0),
        refresh_cron_hour=_env_int("REFRESH_CRON_HOUR", 1, minimum=0),
        refresh_cron_minute=_env_int("REFRESH_CRON_MINUTE", 0, minimum=0),
        price_cache_size=_env_int("PRICE_CACHE_SIZE", 1024, minimum=1),
        ledger_max_retries=_env_int("LEDGER_MAX_RETRIES", 3, minimum=0),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )
