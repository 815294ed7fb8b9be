from __future__ import annotations

"""
Query intent routing for the Vietnamese RAG assistant.

Scoring:
	- +1 for every indicator keyword found in the lowercased query
	- +2 for every indicator regex that matches
	- a side holding >= 65% of the total score wins (grammar / folklore)
	- otherwise, or with no signal at all, search both corpora
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Pattern, Sequence


class SearchType(str, Enum):
    grammar = "grammar"
    folklore = "folklore"
    both = "both"


CONFIDENCE_THRESHOLD = 0.65
NO_SIGNAL_CONFIDENCE = 0.3
KEYWORD_WEIGHT = 1
PATTERN_WEIGHT = 2


@dataclass
class QueryIntent:
    search_type: SearchType
    confidence: float
    keywords: List[str] = field(default_factory=list)
    reasoning: str = ""


GRAMMAR_KEYWORDS: Sequence[str] = (
    # English grammar terms
    "grammar", "syntax", "sentence", "structure", "tense", "verb", "noun",
    "adjective", "adverb", "pronoun", "particle", "classifier", "conjunction",
    "preposition", "clause", "phrase", "subject", "object", "predicate",
    "modifier", "complement", "aspect", "mood", "voice",
    # Vietnamese grammar terms, with and without diacritics
    "chu ngu", "chủ ngữ", "tuc tu", "tục từ", "trang ngu", "trạng ngữ",
    "bo ngu", "bổ ngữ", "dinh ngu", "định ngữ", "dai tu", "đại từ",
    "dong tu", "động từ", "tinh tu", "tính từ", "danh tu", "danh từ",
    "pho tu", "phó từ", "lien tu", "liên từ", "gioi tu", "giới từ",
    # Question shapes
    "how to use", "how do you", "when to use", "what is", "what are",
    "explain", "difference between", "usage of", "rule", "rules for",
)

GRAMMAR_PATTERNS: Sequence[Pattern[str]] = (
    re.compile(r"\b(how|when|what|why)\s+(to\s+)?(use|say|form|make|construct)\b", re.I),
    re.compile(r"\b(grammar|grammatical|syntax|syntactic)\b", re.I),
    re.compile(r"\b(sentence\s+structure|word\s+order)\b", re.I),
    re.compile(r"\b(tense|aspect|mood|voice)\b", re.I),
    re.compile(r"\bexplain\s+['\"`]?\w+['\"`]?\s+(in\s+vietnamese)?\b", re.I),
)

FOLKLORE_KEYWORDS: Sequence[str] = (
    # English folklore terms
    "proverb", "proverbs", "saying", "sayings", "idiom", "idioms",
    "folk song", "folk songs", "folksong", "folksongs",
    "expression", "expressions", "phrase", "phrases",
    "wisdom", "traditional", "cultural", "culture",
    "vietnamese culture", "vietnamese saying", "vietnamese proverb",
    # Vietnamese folklore terms
    "tuc ngu", "tục ngữ", "ca dao", "thanh ngu", "thành ngữ",
    "dieu ca", "điệu ca", "tho ca", "thơ ca", "dan gian", "dân gian",
    # Themes proverbs are usually searched by
    "perseverance", "hard work", "family", "filial piety", "friendship",
    "love", "nature", "patience", "virtue", "education",
    "respect", "gratitude", "loyalty", "honesty", "kindness",
)

FOLKLORE_PATTERNS: Sequence[Pattern[str]] = (
    re.compile(r"\b(proverb|saying|idiom)\s+(about|on|related to)\b", re.I),
    re.compile(r"\b(traditional|cultural|folk)\s+(saying|proverb|song|wisdom|expression)\b", re.I),
    re.compile(
        r"\b(tell me|show me|find|search for|give me)\s+(a|some)?\s*(vietnamese)?\s*(proverb|saying|idiom)",
        re.I,
    ),
    re.compile(r"\b(vietnamese\s+)?(culture|cultural|tradition|traditional)\b", re.I),
    re.compile(r"\b(folk\s*song|ca\s*dao|tục\s*ngữ|thành\s*ngữ)\b", re.I),
)

STOP_WORDS = frozenset(
    {
        "a", "an", "the", "is", "are", "was", "were", "be", "been", "being",
        "have", "has", "had", "do", "does", "did", "will", "would", "could",
        "should", "may", "might", "can", "about", "in", "on", "at", "to", "for",
        "of", "with", "by", "from", "what", "when", "where", "how", "why",
    }
)

_NON_WORD = re.compile(r"[^\w\s]")


def _score(query: str, lowered: str, keywords: Sequence[str], patterns: Sequence[Pattern[str]]) -> tuple[int, List[str]]:
    found = [kw for kw in keywords if kw in lowered]
    score = KEYWORD_WEIGHT * len(found)
    score += PATTERN_WEIGHT * sum(1 for pattern in patterns if pattern.search(query))
    return score, found


def analyze_query(query: str) -> QueryIntent:
    """Pick the corpus (grammar chunks, folklore chunks or both) for a question."""
    lowered = query.lower().strip()
    grammar_score, grammar_found = _score(query, lowered, GRAMMAR_KEYWORDS, GRAMMAR_PATTERNS)
    folklore_score, folklore_found = _score(query, lowered, FOLKLORE_KEYWORDS, FOLKLORE_PATTERNS)

    total = grammar_score + folklore_score
    if total == 0:
        return QueryIntent(
            search_type=SearchType.both,
            confidence=NO_SIGNAL_CONFIDENCE,
            keywords=[],
            reasoning="No clear indicators - searching both databases",
        )

    grammar_confidence = grammar_score / total
    folklore_confidence = folklore_score / total

    if grammar_confidence >= CONFIDENCE_THRESHOLD:
        return QueryIntent(
            search_type=SearchType.grammar,
            confidence=grammar_confidence,
            keywords=grammar_found,
            reasoning=f"Strong grammar indicators ({grammar_score} matches)",
        )

    if folklore_confidence >= CONFIDENCE_THRESHOLD:
        return QueryIntent(
            search_type=SearchType.folklore,
            confidence=folklore_confidence,
            keywords=folklore_found,
            reasoning=f"Strong folklore indicators ({folklore_score} matches)",
        )

    return QueryIntent(
        search_type=SearchType.both,
        confidence=max(grammar_confidence, folklore_confidence),
        keywords=grammar_found + folklore_found,
        reasoning=f"Mixed indicators (grammar: {grammar_score}, folklore: {folklore_score})",
    )


def tokenize(query: str, min_length: int, stop_words: frozenset) -> List[str]:
    words = _NON_WORD.sub(" ", query.lower()).split()
    # dict.fromkeys keeps first-seen order while dropping repeats
    return list(dict.fromkeys(w for w in words if len(w) >= min_length and w not in stop_words))


def extract_keywords(query: str) -> List[str]:
    return tokenize(query, 3, STOP_WORDS)


def suggest_refinements(query: str, intent: QueryIntent) -> List[str]:
    suggestions: List[str] = []
    if intent.confidence < 0.5:
        suggestions.append(
            'Try being more specific: "Explain Vietnamese grammar rule for..." or "Find a proverb about..."'
        )
    if intent.search_type is SearchType.grammar and "vietnamese" not in query.lower():
        suggestions.append('Add "Vietnamese" to specify the language context')
    if intent.search_type is SearchType.folklore and intent.confidence < 0.7:
        suggestions.append('Use keywords like "proverb", "saying", "folk song", or "idiom" for better results')
    return suggestions


_ABBREVIATIONS = re.compile(r"\b(vn|vi)\b", re.I)


def optimize_query_for_search(query: str, intent: QueryIntent) -> str:
    optimized = _ABBREVIATIONS.sub("Vietnamese", query.strip())
    if intent.confidence < 0.5 and intent.search_type in (SearchType.grammar, SearchType.both):
        optimized = f"Vietnamese grammar {optimized}"
    return optimized
