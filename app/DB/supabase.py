"""Unified async Supabase client (single entry point).

Import using: from app.DB.supabase import get_supabase

Repositories never reach for this module directly; endpoints hand the client
to them through ``Depends(get_supabase)`` so tests can override it.
"""
from __future__ import annotations

import asyncio
from typing import Optional
from supabase import AsyncClient, create_async_client
from app.core.config import get_settings

_client: Optional[AsyncClient] = None
_lock = asyncio.Lock()


async def get_supabase() -> AsyncClient:
    """Return a cached `AsyncClient` instance (lazy-created)."""
    global _client
    if _client is not None:
        return _client
    async with _lock:
        if _client is None:
            settings = get_settings()
            # Service role lets the backend write progress rows and call the reward RPC.
            key = settings.supabase_service_role_key or settings.supabase_key
            try:
                _client = await create_async_client(settings.supabase_url, key)
            except Exception as exc:  # pragma: no cover (network/init failure)
                raise RuntimeError("Could not create Supabase async client") from exc
    return _client


__all__ = ["get_supabase"]
