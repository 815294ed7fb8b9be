from __future__ import annotations

from typing import List, Optional

from pydantic import Field

from app.common.schemas import CamelModel
from .query_analyzer import SearchType


class AnalyzeQueryRequest(CamelModel):
    query: str = Field(min_length=1, max_length=2000)
    contextualize: bool = False


class QueryIntentSchema(CamelModel):
    search_type: SearchType
    confidence: float
    keywords: List[str] = Field(default_factory=list)
    reasoning: str = ""


class ContextualizedQuery(CamelModel):
    keywords: List[str] = Field(default_factory=list)
    contextualized_query: str
    explanation: str = ""
    fallback: bool = False
    variations: List[str] = Field(default_factory=list)


class AnalyzeQueryResponse(CamelModel):
    success: bool = True
    intent: QueryIntentSchema
    keywords: List[str] = Field(default_factory=list)
    suggestions: List[str] = Field(default_factory=list)
    optimized_query: str
    contextualized: Optional[ContextualizedQuery] = None
