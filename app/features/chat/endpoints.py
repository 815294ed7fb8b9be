from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from app.common.deps import CurrentUser, get_current_user
from .keyword_extractor import KeywordExtractor
from .query_analyzer import analyze_query, extract_keywords, optimize_query_for_search, suggest_refinements
from .schemas import AnalyzeQueryRequest, AnalyzeQueryResponse, ContextualizedQuery, QueryIntentSchema

logger = logging.getLogger("chat")

router = APIRouter(prefix="/api/chat", tags=["chat"])


def get_keyword_extractor() -> KeywordExtractor:
    return KeywordExtractor()


@router.post(
    "/analyze",
    response_model=AnalyzeQueryResponse,
    summary="Route a learner question to the grammar or folklore corpus",
    description=(
        "Rule-based intent classification. With contextualize=true the query is also expanded "
        "by the LLM keyword extractor (falls back to plain keyword extraction when the LLM is unavailable)."
    ),
)
async def analyze(
    payload: AnalyzeQueryRequest,
    current_user: CurrentUser = Depends(get_current_user),
    extractor: KeywordExtractor = Depends(get_keyword_extractor),
):
    intent = analyze_query(payload.query)
    logger.info(
        "chat.analyze user_id=%s search_type=%s confidence=%.2f",
        current_user.id,
        intent.search_type.value,
        intent.confidence,
    )
    contextualized = None
    if payload.contextualize:
        extraction = await extractor.extract(payload.query)
        variations = [] if extraction.fallback else await extractor.generate_query_variations(extraction.keywords)
        contextualized = ContextualizedQuery(
            keywords=extraction.keywords,
            contextualized_query=extraction.contextualized_query,
            explanation=extraction.explanation,
            fallback=extraction.fallback,
            variations=variations,
        )
    return AnalyzeQueryResponse(
        intent=QueryIntentSchema(
            search_type=intent.search_type,
            confidence=intent.confidence,
            keywords=intent.keywords,
            reasoning=intent.reasoning,
        ),
        keywords=extract_keywords(payload.query),
        suggestions=suggest_refinements(payload.query, intent),
        optimized_query=optimize_query_for_search(payload.query, intent),
        contextualized=contextualized,
    )
