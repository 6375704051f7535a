"""Supabase client for the Python backend."""

import logging

from supabase import AsyncClient, acreate_client

from ..config import settings

_client: AsyncClient | None = None


async def get_supabase_client() -> AsyncClient | None:
    """Get cached async Supabase client instance.

    Returns:
        AsyncClient instance if configured, None otherwise.
        Note: This does not test the connection - actual queries may fail with network errors.
    """
    global _client
    if not settings.supabase_configured:
        logging.debug("Supabase credentials not configured (missing URL or key)")
        return None

    if _client is None:
        try:
            _client = await acreate_client(settings.supabase_url, settings.supabase_key)
        except Exception as e:
            logging.error(f"Failed to create Supabase client: {e}")
            return None
    return _client
