import json

import httpx
import pytest

from app.features.chat.keyword_extractor import (
    KeywordExtractor,
    fallback_keywords,
    parse_extraction,
    parse_variations,
)

pytestmark = pytest.mark.anyio("asyncio")


def _completion(content):
    return httpx.Response(200, content=json.dumps({"choices": [{"message": {"content": content}}]}))


def _extractor(handler, api_key="test-key"):
    return KeywordExtractor(
        api_key=api_key,
        base_url="https://llm.test/api/v1",
        model="test-model",
        timeout=2,
        transport=httpx.MockTransport(handler),
    )


async def test_extract_parses_json_reply():
    captured = {}

    def handler(request: httpx.Request) -> httpx.Response:
        captured["url"] = str(request.url)
        captured["auth"] = request.headers.get("Authorization")
        captured["body"] = json.loads(request.content)
        return _completion(
            'Sure! {"keywords": ["chủ ngữ", "subject"], '
            '"contextualizedQuery": "Chủ ngữ is the subject of a sentence.", "explanation": "core term"}'
        )

    result = await _extractor(handler).extract("What is chủ ngữ?")

    assert result.fallback is False
    assert result.keywords == ["chủ ngữ", "subject"]
    assert result.contextualized_query == "Chủ ngữ is the subject of a sentence."
    assert captured["url"] == "https://llm.test/api/v1/chat/completions"
    assert captured["auth"] == "Bearer test-key"
    assert captured["body"]["model"] == "test-model"
    assert captured["body"]["max_tokens"] == 500
    assert "What is chủ ngữ?" in captured["body"]["messages"][0]["content"]


async def test_extract_falls_back_on_http_error():
    result = await _extractor(lambda request: httpx.Response(503)).extract(
        "Explain the Vietnamese classifier system please"
    )
    assert result.fallback is True
    assert result.keywords == ["classifier", "system", "please"]
    assert result.contextualized_query == "Explain the Vietnamese classifier system please"


async def test_extract_falls_back_on_unusable_reply():
    result = await _extractor(lambda request: _completion("no json here")).extract("tones and particles")
    assert result.fallback is True
    assert result.keywords == ["tones", "particles"]


async def test_extract_without_api_key_never_calls_out():
    calls = []

    def handler(request):
        calls.append(request)
        return _completion("{}")

    result = await _extractor(handler, api_key="").extract("proverbs about patience")
    assert result.fallback is True
    assert calls == []


async def test_variations_filtered_and_capped():
    reply = "\n".join(
        [
            "1. Chủ ngữ và vị ngữ là các thành phần cốt lõi của câu tiếng Việt.",
            "short line",
            "2) Subject and predicate form the backbone of Vietnamese sentence structure.",
            "Cú pháp câu tiếng Việt xoay quanh quan hệ giữa chủ ngữ và vị ngữ.",
            "A fourth perfectly fine sentence that should be dropped by the cap.",
        ]
    )
    variations = await _extractor(lambda request: _completion(reply)).generate_query_variations(["chủ ngữ"])
    assert len(variations) == 3
    assert variations[0].startswith("Chủ ngữ")
    assert variations[1].startswith("Subject")


async def test_variations_empty_input_or_failure():
    extractor = _extractor(lambda request: httpx.Response(500))
    assert await extractor.generate_query_variations([]) == []
    assert await extractor.generate_query_variations(["tone"]) == []


def test_parse_extraction_rejects_bad_shapes():
    assert parse_extraction('{"keywords": [], "contextualizedQuery": "x"}') is None
    assert parse_extraction('{"keywords": ["a"]}') is None
    assert parse_extraction("{not json}") is None
    parsed = parse_extraction('{"keywords": ["a"], "contextualizedQuery": "ctx"}')
    assert parsed.explanation == "No explanation provided"


def test_parse_variations_length_bounds():
    assert parse_variations("x" * 20 + "\n" + "y" * 21 + "\n" + "z" * 200) == ["y" * 21]


def test_fallback_keywords_limit():
    query = " ".join(f"word{i}" for i in range(12))
    assert fallback_keywords(query) == [f"word{i}" for i in range(8)]
    assert fallback_keywords("what is the grammar trong tiếng") == ["tiếng"]
