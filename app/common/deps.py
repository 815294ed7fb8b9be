"""Shared FastAPI dependencies for authentication and request context."""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import Depends, Request
from pydantic import BaseModel

from app.Auth.deps import Claims, get_current_claims, get_optional_claims


logger = logging.getLogger("auth.deps")


class CurrentUser(BaseModel):
    """Minimal user identity shared across endpoints."""
    id: str
    email: Optional[str] = None
    role: str = "authenticated"


def _user_from_claims(request: Request, claims: Claims) -> CurrentUser:
    email = claims.get("email") or (claims.get("user_metadata") or {}).get("email")
    current = CurrentUser(id=str(claims["sub"]), email=email, role=claims.get("role") or "authenticated")
    request.state.current_user = current
    logger.info(
        "auth_resolved user_id=%s role=%s request_id=%s path=%s",
        current.id,
        current.role,
        getattr(request.state, "request_id", None),
        request.url.path,
    )
    return current


async def get_current_user(request: Request, claims: Claims = Depends(get_current_claims)) -> CurrentUser:
    """Resolve the authenticated caller from the verified Supabase JWT."""
    cached: CurrentUser | None = getattr(request.state, "current_user", None)
    if cached is not None:
        return cached
    return _user_from_claims(request, claims)


async def get_optional_user(
    request: Request, claims: Optional[Claims] = Depends(get_optional_claims)
) -> Optional[CurrentUser]:
    if claims is None:
        return None
    return _user_from_claims(request, claims)
