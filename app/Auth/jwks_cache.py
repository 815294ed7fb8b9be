import logging
import time
from typing import Any, Dict, List, Optional

import httpx
from jose import jwt

logger = logging.getLogger("auth.jwks")

_FETCH_TIMEOUT = httpx.Timeout(connect=3, read=5, write=5, pool=5)


class JWKSCache:
    """Verify Supabase access tokens.

    HS* tokens (legacy projects) are checked against the shared JWT secret;
    asymmetric tokens against the project's JWKS, fetched lazily and kept for
    ``ttl_seconds``. An unknown ``kid`` forces one refetch (key rotation).
    """

    def __init__(
        self,
        jwks_url: str,
        ttl_seconds: int = 3600,
        *,
        jwt_secret: str = "",
        anon_key: str = "",
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.jwks_url = jwks_url
        self.ttl = ttl_seconds
        self.jwt_secret = jwt_secret
        self.anon_key = anon_key
        self._transport = transport
        self._jwks: Optional[Dict[str, Any]] = None
        self._fetched_at = 0.0

    def _candidate_urls(self) -> List[str]:
        # Supabase deployments expose the key set under different paths.
        urls = [self.jwks_url]
        if self.jwks_url.endswith("/certs"):
            base = self.jwks_url[: -len("certs")]
            urls += [base + ".well-known/jwks.json", base + "jwks"]
        return urls

    def _expired(self) -> bool:
        return self._jwks is None or (time.time() - self._fetched_at) > self.ttl

    async def _fetch(self) -> Dict[str, Any]:
        if not self.jwks_url:
            raise RuntimeError("JWKS URL not configured (SUPABASE_URL missing)")
        headers = {"apikey": self.anon_key, "Authorization": f"Bearer {self.anon_key}"} if self.anon_key else {}
        urls = self._candidate_urls()
        last_exc: Optional[Exception] = None
        async with httpx.AsyncClient(timeout=_FETCH_TIMEOUT, transport=self._transport) as client:
            for url in urls:
                try:
                    resp = await client.get(url, headers=headers)
                except httpx.HTTPError as exc:
                    last_exc = exc
                    continue
                if resp.status_code == 404:
                    continue
                try:
                    resp.raise_for_status()
                except httpx.HTTPStatusError as exc:
                    last_exc = exc
                    continue
                if url != self.jwks_url:
                    logger.info("jwks.url_fallback from=%s to=%s", self.jwks_url, url)
                    self.jwks_url = url
                return resp.json()
        if last_exc:
            raise last_exc
        raise RuntimeError(f"Failed to fetch JWKS. Tried: {urls}")

    async def get(self, force: bool = False) -> Dict[str, Any]:
        if force or self._expired():
            self._jwks = await self._fetch()
            self._fetched_at = time.time()
        return self._jwks  # type: ignore[return-value]

    @staticmethod
    def _find_key(jwks: Dict[str, Any], kid: Optional[str]) -> Optional[Dict[str, Any]]:
        if not kid:
            return None
        return next((k for k in jwks.get("keys", []) if k.get("kid") == kid), None)

    async def verify(self, token: str, audience: str | None = None) -> dict:
        header = jwt.get_unverified_header(token)
        alg = header.get("alg", "")
        options = {"verify_aud": audience is not None}

        if alg.startswith("HS"):
            if not self.jwt_secret:
                raise ValueError("HS token but SUPABASE_JWT_SECRET not configured")
            return jwt.decode(token, self.jwt_secret, algorithms=[alg], audience=audience, options=options)

        kid = header.get("kid")
        key = self._find_key(await self.get(), kid)
        if key is None and kid:
            key = self._find_key(await self.get(force=True), kid)
        if key is None:
            available = [k.get("kid") for k in (self._jwks or {}).get("keys", [])]
            raise ValueError(f"Signing key not found (alg={alg}, kid={kid}, available={available})")
        return jwt.decode(token, key, algorithms=[key.get("alg", alg)], audience=audience, options=options)
