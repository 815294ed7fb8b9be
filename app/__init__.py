"""Vietlearn backend package.

``app.app`` resolves to the FastAPI application lazily, so tooling that only
needs settings or models (alembic, scripts) does not build the app."""

from __future__ import annotations

__all__ = ["app"]


def __getattr__(name: str):
    if name == "app":
        from .main import app as fastapi_app
        return fastapi_app
    raise AttributeError(f"module {__name__} has no attribute {name!r}")
