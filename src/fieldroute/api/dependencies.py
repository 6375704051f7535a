"""Request-scoped dependencies: the store and the acting profile."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Header, HTTPException, status

from ..db.supabase import get_supabase_client
from ..models.domain import Profile
from ..persistence.memory import InMemoryStore
from ..persistence.store import FieldStore
from ..persistence.supabase_store import SupabaseStore

logger = logging.getLogger(__name__)

_fallback_store: Optional[InMemoryStore] = None


async def get_store() -> FieldStore:
    """Supabase when configured, otherwise a process-local in-memory store."""
    global _fallback_store
    client = await get_supabase_client()
    if client is not None:
        return SupabaseStore(client)
    if _fallback_store is None:
        logger.warning("Supabase credentials not configured; using in-memory store, data will not survive a restart")
        _fallback_store = InMemoryStore()
    return _fallback_store


async def get_current_actor(
    x_actor_id: Optional[str] = Header(default=None, description="Authenticated profile id."),
    store: FieldStore = Depends(get_store),
) -> Profile:
    if not x_actor_id or not x_actor_id.strip():
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-Actor-Id header.")
    actor = await store.get_profile(x_actor_id.strip())
    if actor is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unknown actor.")
    if not actor.is_active:
        logger.warning(f"Blocked account {actor.id} attempted a request")
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Account is blocked.")
    return actor
