import logging
from functools import lru_cache
from typing import Any, Optional, TypedDict

from fastapi import HTTPException, Request, status
from jose import JWTError

from app.core.config import get_settings
from .jwks_cache import JWKSCache

ACCESS_COOKIE_NAME = "access_token"

logger = logging.getLogger("auth")


def _unauthenticated(reason: str) -> HTTPException:
    logger.info("auth.rejected reason=%s", reason)
    return HTTPException(status.HTTP_401_UNAUTHORIZED, "unauthenticated")


class Claims(TypedDict, total=False):
    sub: str
    email: str
    role: str
    user_metadata: dict[str, Any]


@lru_cache()
def get_jwks() -> JWKSCache:
    settings = get_settings()
    return JWKSCache(
        settings.jwks_url,
        ttl_seconds=3600,
        jwt_secret=settings.supabase_jwt_secret,
        anon_key=settings.supabase_anon_key,
    )


def _extract_bearer_or_cookie(request: Request) -> str | None:
    auth = request.headers.get("Authorization", "")
    if auth.startswith("Bearer "):
        return auth.removeprefix("Bearer ").strip() or None
    return request.cookies.get(ACCESS_COOKIE_NAME)


async def _verify(token: str) -> Claims:
    try:
        claims = await get_jwks().verify(token)
    except JWTError as e:
        raise _unauthenticated(f"invalid_token: {e}")
    except Exception as e:
        raise _unauthenticated(f"verification_failed: {e}")
    if not claims.get("sub"):
        raise _unauthenticated("missing_sub")
    return claims  # type: ignore[return-value]


async def get_current_claims(request: Request) -> Claims:
    token = _extract_bearer_or_cookie(request)
    if not token:
        raise _unauthenticated("missing_token")
    return await _verify(token)


async def get_optional_claims(request: Request) -> Optional[Claims]:
    """Like ``get_current_claims`` but anonymous callers get ``None``.

    A token that is present but invalid is still rejected.
    """
    token = _extract_bearer_or_cookie(request)
    if not token:
        return None
    return await _verify(token)
