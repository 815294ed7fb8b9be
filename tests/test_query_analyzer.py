import pytest

from app.features.chat.query_analyzer import (
    QueryIntent,
    SearchType,
    analyze_query,
    extract_keywords,
    optimize_query_for_search,
    suggest_refinements,
)


def test_grammar_question_routes_to_grammar():
    intent = analyze_query("What is the difference between chủ ngữ and vị ngữ?")
    assert intent.search_type is SearchType.grammar
    assert intent.confidence == 1.0
    assert set(intent.keywords) == {"what is", "difference between", "chủ ngữ"}
    assert intent.reasoning == "Strong grammar indicators (3 matches)"


def test_proverb_request_routes_to_folklore():
    intent = analyze_query("Find a proverb about family")
    assert intent.search_type is SearchType.folklore
    # "proverb" also contains the grammar keyword "verb"
    assert intent.confidence == pytest.approx(6 / 7)
    assert "family" in intent.keywords


def test_no_signal_searches_both():
    intent = analyze_query("hello there")
    assert intent.search_type is SearchType.both
    assert intent.confidence == 0.3
    assert intent.keywords == []


def test_mixed_signal_searches_both():
    intent = analyze_query("Vietnamese culture and sentence structure")
    assert intent.search_type is SearchType.both
    assert intent.confidence == 0.5
    assert intent.reasoning == "Mixed indicators (grammar: 4, folklore: 4)"
    assert intent.keywords == ["sentence", "structure", "culture", "vietnamese culture"]


def test_patterns_are_case_insensitive():
    assert analyze_query("TELL ME A VIETNAMESE SAYING").search_type is SearchType.folklore


def test_extract_keywords():
    assert extract_keywords("How do I use the particle 'nhé' in Vietnamese?") == [
        "use",
        "particle",
        "nhé",
        "vietnamese",
    ]
    assert extract_keywords("proverb, proverb; family!") == ["proverb", "family"]
    assert extract_keywords("") == []


def test_suggestions_for_low_confidence():
    query = "hello there"
    suggestions = suggest_refinements(query, analyze_query(query))
    assert len(suggestions) == 1
    assert suggestions[0].startswith("Try being more specific")


def test_suggestions_for_grammar_without_language():
    query = "What is the difference between chủ ngữ and vị ngữ?"
    assert suggest_refinements(query, analyze_query(query)) == [
        'Add "Vietnamese" to specify the language context'
    ]


def test_suggestions_for_weak_folklore():
    suggestions = suggest_refinements("family", QueryIntent(SearchType.folklore, 0.66))
    assert any("proverb" in s for s in suggestions)


def test_optimize_expands_abbreviations():
    intent = QueryIntent(SearchType.grammar, 0.9)
    assert optimize_query_for_search("  vn grammar rules ", intent) == "Vietnamese grammar rules"
    assert optimize_query_for_search("VI tones via drills", intent) == "Vietnamese tones via drills"


def test_optimize_prefixes_weak_grammar_queries():
    assert optimize_query_for_search("xin chao", QueryIntent(SearchType.both, 0.3)) == "Vietnamese grammar xin chao"
    assert optimize_query_for_search("ca dao", QueryIntent(SearchType.folklore, 0.3)) == "ca dao"
