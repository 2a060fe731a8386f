# laundry/config.py

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

load_dotenv(Path(__file__).resolve().parent.parent / ".env")


def _get_int(name: str, fallback: int) -> int:
    raw_value = os.getenv(name)
    if not raw_value:
        return fallback
    try:
        return int(raw_value)
    except ValueError:
        raise RuntimeError(f"Environment variable {name} must be an integer, got {raw_value!r}")


@dataclass(frozen=True)
class Settings:
    database_url: str = os.getenv("DATABASE_URL", "sqlite:///db.sqlite")
    app_timezone: str = os.getenv("APP_TIMEZONE", "UTC")
    log_level: str = os.getenv("LOG_LEVEL", "INFO").upper()
    order_list_max_limit: int = _get_int("ORDER_LIST_MAX_LIMIT", 200)
    view_cache_max_entries: int = _get_int("VIEW_CACHE_MAX_ENTRIES", 512)
    # echo=True prints every SQL statement
    sql_echo: bool = os.getenv("SQL_ECHO", "false").lower() == "true"


settings = Settings()
