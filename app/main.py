"""FastAPI Heartbeat. Lean."""

from __future__ import annotations

import logging
import uuid
from datetime import datetime, timezone
from time import perf_counter
from typing import Any, Dict

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, PlainTextResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from app.common.schemas import ErrorResponse
from app.core.config import get_settings
from app.DB.base import list_models
from app.DB.session import ping_database
from app.features.chat.endpoints import router as chat_router
from app.features.exercise.endpoints import router as exercise_router
from app.features.progress.endpoints import router as progress_router

from app.DB import models as _models  # noqa: F401  (registers mappers for list_models)

_settings = get_settings()
logging.basicConfig(
    level=getattr(logging, _settings.log_level, logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = FastAPI(title=_settings.app_name, version=_settings.app_version, debug=_settings.debug)
_START_TIME = datetime.now(timezone.utc)

request_logger = logging.getLogger("request")


# ------------------------
# CORS Setup
# ------------------------
app.add_middleware(
    CORSMiddleware,
    allow_origins=_settings.allow_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# ------------------------
# Custom Middlewares
# ------------------------
@app.middleware("http")
async def request_id_middleware(request: Request, call_next):
    incoming = request.headers.get("X-Request-Id") or request.headers.get("X-Request-ID")
    req_id = incoming or str(uuid.uuid4())
    request.state.request_id = req_id
    request_logger.info("request.start", extra={"request_id": req_id, "path": request.url.path, "method": request.method})
    response = await call_next(request)
    response.headers["X-Request-Id"] = req_id
    request_logger.info(
        "request.end", extra={"request_id": req_id, "path": request.url.path, "status_code": response.status_code}
    )
    return response


@app.middleware("http")
async def timing_middleware(request: Request, call_next):
    t0 = perf_counter()
    resp = await call_next(request)
    dt = int((perf_counter() - t0) * 1000)
    request_logger.info("%s %s %dms %s", request.method, request.url.path, dt, resp.status_code)
    return resp


# ------------------------
# Error envelope
# ------------------------
def _is_api(request: Request) -> bool:
    return request.url.path.startswith("/api/")


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    headers = getattr(exc, "headers", None)
    if not _is_api(request):
        return JSONResponse({"detail": exc.detail}, status_code=exc.status_code, headers=headers)
    body = ErrorResponse(error=str(exc.detail)).model_dump(exclude_none=True)
    return JSONResponse(body, status_code=exc.status_code, headers=headers)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    request_logger.info("request.invalid path=%s errors=%s", request.url.path, len(exc.errors()))
    if not _is_api(request):
        return JSONResponse({"detail": jsonable_encoder(exc.errors())}, status_code=422)
    fields = [".".join(str(p) for p in err.get("loc", ()) if p != "body") for err in exc.errors()]
    body = ErrorResponse(error="invalid_request", details={"fields": fields}).model_dump(exclude_none=True)
    return JSONResponse(body, status_code=400)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    request_logger.error("request.unhandled path=%s error=%s", request.url.path, exc, exc_info=exc)
    if not _is_api(request):
        return PlainTextResponse("Internal Server Error", status_code=500)
    body = ErrorResponse(error="internal_error").model_dump(exclude_none=True)
    return JSONResponse(body, status_code=500)


# ------------------------
# Routers
# ------------------------
app.include_router(exercise_router)
app.include_router(progress_router)
app.include_router(chat_router)


# ------------------------
# Meta endpoints
# ------------------------
@app.get("/", tags=["meta"], summary="API Root")
async def root():
    return {
        "name": _settings.app_name,
        "status": "ok",
        "docs": "/docs",
        "redoc": "/redoc",
        "health": "/healthz",
    }


@app.get("/healthz", tags=["meta"], summary="Liveness / readiness probe")
async def healthz() -> Dict[str, Any]:
    now = datetime.now(timezone.utc)
    uptime_seconds = (now - _START_TIME).total_seconds()
    database = ping_database()
    tags = sorted({t for r in app.routes for t in getattr(r, "tags", [])})

    return {
        "status": "ok" if database["status"] in ("ok", "missing-config") else "degraded",
        "time_utc": now.isoformat(),
        "uptime_seconds": round(uptime_seconds, 2),
        "version": _settings.app_version,
        "environment": "debug" if _settings.debug else "prod",
        "components": {
            "database": database,
            "supabase": "configured" if _settings.supabase_url else "missing-config",
            "llm": "configured" if _settings.llm_configured else "missing-config",
        },
        "counts": {"routes": len(app.routes), "models": len(list_models())},
        "tags": tags,
    }
