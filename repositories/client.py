"""
Supabase client initialization.

This module contains *only* the database connection setup. Repository modules
call `get_supabase()` to obtain the shared client; it is created on first use
from the SUPABASE_URL / SUPABASE_KEY settings (see config.settings).
"""

from __future__ import annotations

from typing import Optional

# The dependency is `supabase` (supabase-py): `pip install supabase`.
from supabase import Client, create_client  # type: ignore[import-not-found]

from config.settings import get_settings

_client: Optional[Client] = None


def get_supabase() -> Client:
    """Return the process-wide Supabase client, creating it on first use."""

    global _client
    if _client is not None:
        return _client

    settings = get_settings()

    if not settings.supabase_url:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_URL. "
            "Set SUPABASE_URL to your Supabase project URL."
        )

    if not settings.supabase_key:
        raise RuntimeError(
            "Missing environment variable: SUPABASE_KEY. "
            "Set SUPABASE_KEY to your Supabase API key."
        )

    _client = create_client(settings.supabase_url, settings.supabase_key)
    return _client


__all__ = ["get_supabase"]
