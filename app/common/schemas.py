from __future__ import annotations
from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel
from typing import Optional, Dict, Any


class CamelModel(BaseModel):
    """Wire models under /api speak camelCase; Python code keeps snake_case."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ERROR AND STATUS SCHEMAS

class ErrorResponse(CamelModel):
    """Standard error envelope"""
    success: bool = False
    error: str
    details: Optional[Dict[str, Any]] = None
