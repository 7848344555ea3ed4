"""Supabase client for the booking core."""

import logging
from functools import lru_cache
from supabase import create_client, Client
from ..config import settings


@lru_cache()
def get_supabase_client() -> Client | None:
    """Get cached Supabase client instance.

    Returns:
        Supabase Client instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    if not settings.supabase_url or not settings.supabase_key:
        logging.debug("Supabase credentials not configured (missing URL or key)")
        return None

    try:
        return create_client(settings.supabase_url, settings.supabase_key)
    except Exception as e:
        logging.error(f"Failed to create Supabase client: {e}")
        return None


def fetch_rows(table: str) -> list[dict] | None:
    """Select every row of ``table``. Returns None when the database is unavailable or empty."""
    client = get_supabase_client()
    if not client:
        return None
    try:
        response = client.table(table).select("*").execute()
    except Exception as e:
        logging.debug(f"Query on '{table}' failed, falling back to file: {e}")
        return None
    if not response.data:
        return None
    return list(response.data)
