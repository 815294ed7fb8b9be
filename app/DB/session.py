#app\DB\session.py
"""Session forge.

The request path talks to Supabase over PostgREST; a direct SQLAlchemy
engine is only needed for the health probe and migrations, so it is created
lazily and only when DATABASE_URL is configured.
"""

from __future__ import annotations

import logging
import os
import time
from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine

from app.core.config import get_settings

logger = logging.getLogger("db.session")


@lru_cache()
def get_engine() -> Optional[Engine]:
    runtime_url = get_settings().get_database_url()
    if not runtime_url:
        return None

    connect_args = {"sslmode": "require"} if "sslmode=" not in runtime_url else {}
    # Tunables (clamped to expose issues faster)
    _pool_size = int(os.getenv("DB_POOL_SIZE", "5"))
    _max_overflow = int(os.getenv("DB_MAX_OVERFLOW", "5"))
    _pool_timeout = int(os.getenv("DB_POOL_TIMEOUT", "5"))
    _connect_timeout = int(os.getenv("DB_CONNECT_TIMEOUT", "5"))
    connect_args = {**connect_args, "connect_timeout": _connect_timeout}

    return create_engine(
        runtime_url,
        pool_pre_ping=True,
        pool_size=_pool_size,
        max_overflow=_max_overflow,
        pool_timeout=_pool_timeout,
        pool_recycle=300,
        echo=get_settings().debug,
        connect_args=connect_args,
    )


def ping_database() -> dict:
    """Run ``SELECT 1`` and report status/latency for /healthz."""
    engine = get_engine()
    if engine is None:
        return {"status": "missing-config"}
    try:
        start = time.perf_counter()
        with engine.connect().execution_options(isolation_level="AUTOCOMMIT") as conn:
            conn.execute(text("SELECT 1"))
        return {"status": "ok", "latency_ms": round((time.perf_counter() - start) * 1000, 2)}
    except Exception as e:
        logger.warning("db_ping_failed error=%s", e)
        return {"status": f"error:{type(e).__name__}"}
