from __future__ import annotations

import asyncio
import logging
import os
import time
from typing import Any, Dict, List, Optional

logger = logging.getLogger("db.repository")


class PersistenceError(RuntimeError):
    """A Supabase read/write failed or timed out."""

    def __init__(self, op: str, cause: Exception | str):
        self.op = op
        self.cause = cause
        super().__init__(f"supabase_{op}_failed: {cause}")


class SupabaseRepository:
    """Shared plumbing for repositories built on the async Supabase client.

    The client is passed in (per request via FastAPI dependencies, or a fake in
    tests) instead of being fetched from a module-level singleton.
    """

    def __init__(self, client: Any):
        self.client = client

    async def _exec(self, awaitable, op: str):
        timeout = float(os.getenv("SUPABASE_QUERY_TIMEOUT", "5"))
        t0 = time.perf_counter()
        try:
            resp = await asyncio.wait_for(awaitable, timeout=timeout)
        except asyncio.TimeoutError as exc:
            raise PersistenceError(op, f"timed out after {timeout}s") from exc
        except PersistenceError:
            raise
        except Exception as exc:
            raise PersistenceError(op, exc) from exc
        ms = int((time.perf_counter() - t0) * 1000)
        if ms > 50:
            logger.info("supabase_%s_ms=%d", op, ms)
        return resp

    @staticmethod
    def _rows(resp: Any) -> List[Dict[str, Any]]:
        data = getattr(resp, "data", None) if resp is not None else None
        if not data:
            return []
        if isinstance(data, dict):
            return [data]
        return list(data)

    @classmethod
    def _first(cls, resp: Any) -> Optional[Dict[str, Any]]:
        rows = cls._rows(resp)
        return rows[0] if rows else None
