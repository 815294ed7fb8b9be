from __future__ import annotations

import json
import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from app.core.config import get_settings
from .query_analyzer import tokenize

logger = logging.getLogger("chat.keyword_extractor")

FALLBACK_STOP_WORDS = frozenset(
    {
        "what", "is", "are", "the", "a", "an", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "how", "why", "when", "where",
        "explain", "vietnamese", "grammar", "trong", "là", "gì", "như", "với",
    }
)
FALLBACK_MAX_KEYWORDS = 8
MAX_VARIATIONS = 3

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")
_NUMBERING = re.compile(r"^\d+[.)]\s*")

EXTRACT_PROMPT = """Bạn là chuyên gia ngữ pháp tiếng Việt. Phân tích câu hỏi và trích xuất từ khóa chính để tìm kiếm.

Câu hỏi: "{query}"

Nhiệm vụ:
1. Trích xuất 5-10 từ khóa quan trọng (bao gồm cả tiếng Việt và tiếng Anh nếu có)
2. Tạo một đoạn văn ngắn (2-4 câu) mô tả ngữ cảnh của các từ khóa này
3. Giải thích ngắn gọn tại sao các từ khóa này quan trọng

Định dạng đầu ra (JSON):
{{
  "keywords": ["từ khóa 1", "từ khóa 2", "keyword 3", "keyword 4"],
  "contextualizedQuery": "Đoạn văn ngắn mô tả ngữ cảnh (2-4 câu, kết hợp tiếng Việt và tiếng Anh)",
  "explanation": "Giải thích ngắn gọn về các từ khóa"
}}

Ví dụ:
Câu hỏi: "What is chủ ngữ in Vietnamese?"
Đầu ra:
{{
  "keywords": ["chủ ngữ", "subject", "thành phần câu", "sentence structure", "cú pháp", "syntax"],
  "contextualizedQuery": "Chủ ngữ (subject in English) là thành phần chính của câu trong ngữ pháp tiếng Việt. Nó chỉ người hoặc vật thực hiện hành động. Liên quan đến cấu trúc câu và cú pháp.",
  "explanation": "Các từ khóa bao gồm thuật ngữ tiếng Việt (chủ ngữ), tiếng Anh (subject), và các khái niệm liên quan."
}}

Bây giờ hãy phân tích câu hỏi trên và trả về JSON."""

VARIATIONS_PROMPT = """Từ danh sách từ khóa sau, tạo 2-3 cách diễn đạt khác nhau để tìm kiếm trong tài liệu ngữ pháp.

Từ khóa: {keywords}

Yêu cầu:
- Mỗi cách diễn đạt là câu hoàn chỉnh (15-30 từ)
- Kết hợp từ khóa một cách tự nhiên
- Sử dụng ngữ cảnh ngữ pháp học
- Bao gồm cả thuật ngữ tiếng Việt và tiếng Anh

Định dạng: Trả về 2-3 câu, mỗi câu một dòng, không đánh số.

Bây giờ tạo 2-3 cách diễn đạt cho các từ khóa trên:"""


class LLMUnavailable(RuntimeError):
    pass


@dataclass
class KeywordExtractionResult:
    keywords: List[str] = field(default_factory=list)
    contextualized_query: str = ""
    explanation: str = ""
    fallback: bool = False


def fallback_keywords(query: str) -> List[str]:
    words = [w for w in tokenize(query, 1, FALLBACK_STOP_WORDS) if len(w) > 3]
    return words[:FALLBACK_MAX_KEYWORDS]


def fallback_result(query: str) -> KeywordExtractionResult:
    return KeywordExtractionResult(
        keywords=fallback_keywords(query),
        contextualized_query=query,
        explanation="Fallback to simple keyword extraction due to LLM error",
        fallback=True,
    )


def parse_extraction(text: str) -> Optional[KeywordExtractionResult]:
    """Pull the first JSON object out of a model reply; None when it is unusable."""
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return None
    try:
        data = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    if not isinstance(data, dict):
        return None
    keywords = data.get("keywords")
    if not isinstance(keywords, list) or not keywords:
        return None
    context = data.get("contextualizedQuery")
    if not isinstance(context, str) or not context:
        return None
    return KeywordExtractionResult(
        keywords=[str(k) for k in keywords],
        contextualized_query=context,
        explanation=data.get("explanation") or "No explanation provided",
    )


def parse_variations(text: str) -> List[str]:
    lines = (_NUMBERING.sub("", line).strip() for line in (text or "").split("\n"))
    return [line for line in lines if 20 < len(line) < 200][:MAX_VARIATIONS]


class KeywordExtractor:
    """Keyword extraction and query rewriting backed by an OpenAI-compatible chat endpoint."""

    def __init__(
        self,
        *,
        api_key: Optional[str] = None,
        base_url: Optional[str] = None,
        model: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        settings = get_settings()
        self.api_key = api_key if api_key is not None else settings.openrouter_api_key
        self.base_url = (base_url or settings.openrouter_base_url).rstrip("/")
        self.model = model or settings.openrouter_model
        self.timeout = timeout if timeout is not None else settings.llm_timeout_seconds
        self._transport = transport

    async def _complete(self, prompt: str, max_tokens: int) -> str:
        if not self.api_key:
            raise LLMUnavailable("OPENROUTER_API_KEY is not configured")
        payload: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "max_tokens": max_tokens,
        }
        headers = {"Authorization": f"Bearer {self.api_key}", "Content-Type": "application/json"}
        async with httpx.AsyncClient(timeout=self.timeout, transport=self._transport) as client:
            resp = await client.post(f"{self.base_url}/chat/completions", json=payload, headers=headers)
            resp.raise_for_status()
            body = resp.json()
        try:
            return body["choices"][0]["message"]["content"] or ""
        except (KeyError, IndexError, TypeError) as exc:
            raise LLMUnavailable(f"Unexpected completion payload: {exc}") from exc

    async def extract(self, query: str) -> KeywordExtractionResult:
        try:
            text = await self._complete(EXTRACT_PROMPT.format(query=query), max_tokens=500)
        except (httpx.HTTPError, LLMUnavailable, ValueError) as exc:
            logger.warning("keywords.llm_failed error=%s", exc)
            return fallback_result(query)

        result = parse_extraction(text)
        if result is None:
            logger.warning("keywords.unparseable_reply query=%s", query[:80])
            return fallback_result(query)
        logger.info("keywords.extracted count=%s", len(result.keywords))
        return result

    async def generate_query_variations(self, keywords: List[str]) -> List[str]:
        if not keywords:
            return []
        try:
            text = await self._complete(VARIATIONS_PROMPT.format(keywords=", ".join(keywords)), max_tokens=300)
        except (httpx.HTTPError, LLMUnavailable, ValueError) as exc:
            logger.warning("keywords.variations_failed error=%s", exc)
            return []
        variations = parse_variations(text)
        logger.info("keywords.variations count=%s", len(variations))
        return variations
