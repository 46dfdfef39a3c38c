"""
Settings loaded from the environment.

Values are read from a `.env` file at the project root (if present) and then
from the process environment.

Environment variables:
- SUPABASE_URL: Supabase project URL
- SUPABASE_KEY: Supabase API key (server-side key only)
- TAX_RATE: purchase tax rate as a decimal fraction (default 0.18)
- STOCK_COLUMN: product column holding the on-hand counter (default stock_quantity)
- STOCK_UPDATE_MAX_ATTEMPTS: compare-and-set attempts per stock update (default 3)
- LOG_LEVEL: root log level for the API process (default INFO)
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from functools import lru_cache
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

_DEFAULT_ENV_PATH = Path(__file__).parent.parent / ".env"


@dataclass(frozen=True, slots=True)
class Settings:
    supabase_url: Optional[str] = None
    supabase_key: Optional[str] = None
    tax_rate: Decimal = Decimal("0.18")
    stock_column: str = "stock_quantity"
    stock_update_max_attempts: int = 3
    log_level: str = "INFO"


def _decimal_env(name: str, default: Decimal) -> Decimal:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return Decimal(raw.strip())
    except InvalidOperation:
        raise ValueError(f"{name} must be a decimal number, got {raw!r}") from None


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        value = int(raw.strip())
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 1:
        raise ValueError(f"{name} must be >= 1, got {value}")
    return value


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """
    Build Settings from the `.env` file and the process environment.

    Variables already present in the environment take precedence over the file.
    """

    load_dotenv(dotenv_path=env_file or _DEFAULT_ENV_PATH)

    return Settings(
        supabase_url=os.getenv("SUPABASE_URL"),
        supabase_key=os.getenv("SUPABASE_KEY"),
        tax_rate=_decimal_env("TAX_RATE", Decimal("0.18")),
        stock_column=os.getenv("STOCK_COLUMN") or "stock_quantity",
        stock_update_max_attempts=_int_env("STOCK_UPDATE_MAX_ATTEMPTS", 3),
        log_level=(os.getenv("LOG_LEVEL") or "INFO").upper(),
    )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Process-wide settings, loaded once."""
    return load_settings()


__all__ = ["Settings", "load_settings", "get_settings"]
