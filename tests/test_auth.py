import json

import httpx
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from fastapi.testclient import TestClient
from jose import JWTError, jwk, jwt

from app.Auth import deps as auth_deps
from app.Auth.jwks_cache import JWKSCache
from app.DB.supabase import get_supabase
from app.main import app
from fakesupabase import PS_101

pytestmark = pytest.mark.anyio("asyncio")

SECRET = "super-secret-jwt-key-for-tests"
USER_ID = "11111111-1111-1111-1111-111111111111"


def _hs_token(claims, secret=SECRET):
    return jwt.encode(claims, secret, algorithm="HS256")


def _rsa_pair(kid):
    private = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    private_pem = private.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.NoEncryption(),
    )
    public_pem = private.public_key().public_bytes(
        serialization.Encoding.PEM,
        serialization.PublicFormat.SubjectPublicKeyInfo,
    )
    public_jwk = jwk.construct(public_pem, "RS256").to_dict()
    public_jwk.update({"kid": kid, "alg": "RS256", "use": "sig"})
    return private_pem, public_jwk


async def test_hs256_token_verified_with_secret():
    cache = JWKSCache("", jwt_secret=SECRET)
    claims = await cache.verify(_hs_token({"sub": USER_ID, "role": "authenticated"}))
    assert claims["sub"] == USER_ID


async def test_hs256_token_with_wrong_secret_rejected():
    cache = JWKSCache("", jwt_secret=SECRET)
    with pytest.raises(JWTError):
        await cache.verify(_hs_token({"sub": USER_ID}, secret="other-secret"))


async def test_hs256_without_configured_secret():
    cache = JWKSCache("")
    with pytest.raises(ValueError):
        await cache.verify(_hs_token({"sub": USER_ID}))


async def test_rs256_token_verified_against_jwks_with_fallback_url():
    private_pem, public_jwk = _rsa_pair("key-1")
    seen = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request.url.path)
        if request.url.path.endswith("/certs"):
            return httpx.Response(404)
        return httpx.Response(200, content=json.dumps({"keys": [public_jwk]}))

    cache = JWKSCache(
        "https://project.supabase.co/auth/v1/certs",
        transport=httpx.MockTransport(handler),
    )
    token = jwt.encode({"sub": USER_ID}, private_pem, algorithm="RS256", headers={"kid": "key-1"})

    claims = await cache.verify(token)

    assert claims["sub"] == USER_ID
    assert seen == ["/auth/v1/certs", "/auth/v1/.well-known/jwks.json"]
    assert cache.jwks_url.endswith("/.well-known/jwks.json")

    # cached: no further fetch
    await cache.verify(token)
    assert len(seen) == 2


async def test_unknown_kid_refreshes_once_then_fails():
    private_pem, public_jwk = _rsa_pair("key-1")
    fetches = []

    def handler(request: httpx.Request) -> httpx.Response:
        fetches.append(request.url.path)
        return httpx.Response(200, content=json.dumps({"keys": [public_jwk]}))

    cache = JWKSCache("https://project.supabase.co/auth/v1/certs", transport=httpx.MockTransport(handler))
    token = jwt.encode({"sub": USER_ID}, private_pem, algorithm="RS256", headers={"kid": "rotated"})

    with pytest.raises(ValueError, match="Signing key not found"):
        await cache.verify(token)
    assert len(fetches) == 2


@pytest.fixture
def hs_app(monkeypatch, db):
    monkeypatch.setattr(auth_deps, "get_jwks", lambda: JWKSCache("", jwt_secret=SECRET))

    async def override_get_supabase():
        return db

    app.dependency_overrides[get_supabase] = override_get_supabase
    yield TestClient(app)
    app.dependency_overrides.clear()


def test_bearer_token_reaches_endpoint(hs_app):
    token = _hs_token({"sub": USER_ID, "email": "learner@example.com"})
    resp = hs_app.post(
        "/api/exercise/start",
        json={"practiceSetId": PS_101},
        headers={"Authorization": f"Bearer {token}"},
    )
    assert resp.status_code == 200
    assert resp.json()["attemptNo"] == 1


def test_cookie_token_accepted(hs_app):
    cookie = f"{auth_deps.ACCESS_COOKIE_NAME}={_hs_token({'sub': USER_ID})}"
    resp = hs_app.get("/api/progress/lessons/101/unlock", headers={"Cookie": cookie})
    assert resp.status_code == 200
    assert resp.json()["isLocked"] is False


def test_token_without_sub_rejected(hs_app):
    token = _hs_token({"role": "authenticated"})
    resp = hs_app.get("/api/progress/zones/1", headers={"Authorization": f"Bearer {token}"})
    assert resp.status_code == 401
    assert resp.json() == {"success": False, "error": "unauthenticated"}


def test_bad_token_on_optional_route_still_rejected(hs_app):
    resp = hs_app.get("/api/progress/lessons/101/unlock", headers={"Authorization": "Bearer not-a-jwt"})
    assert resp.status_code == 401
