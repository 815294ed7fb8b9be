"""ORM nexus."""

from __future__ import annotations

from sqlalchemy.orm import DeclarativeBase


class Base(DeclarativeBase):
    """Base mold."""
    pass


def list_models() -> list[str]:
    """List mapped model names."""
    return sorted(mapper.class_.__name__ for mapper in Base.registry.mappers)
