"""Tests for the retry suggestion generator."""

import pytest

from pipelines.survey.suggester import (
    GENERIC_FALLBACK,
    SuggestionGenerator,
    build_suggestions,
    find_keyword,
)


def test_keyword_query_gets_subdomain_and_state_variants() -> None:
    suggestions = build_suggestions("Statute of limitations for fraud", "NY", "Timeout")
    assert suggestions[0] == "civil fraud statute of limitations"
    assert "New York Statute of limitations for fraud statute" in suggestions
    assert len(suggestions) == 3


def test_query_without_keyword_gets_generic_fallback() -> None:
    suggestions = build_suggestions("zoning variance", "CA", "Network Error")
    assert GENERIC_FALLBACK in suggestions
    assert any("California" in s for s in suggestions)
    assert 1 <= len(suggestions) <= 3


def test_no_result_failure_puts_broad_phrasing_first() -> None:
    suggestions = build_suggestions("zoning variance", "CA", "No statute data available for California")
    assert suggestions[0] == GENERIC_FALLBACK


@pytest.mark.parametrize("query", ["", "   ", "a b", "fraud", "x" * 300])
def test_suggestions_never_empty_and_at_most_three(query: str) -> None:
    suggestions = build_suggestions(query, "TX", "")
    assert 1 <= len(suggestions) <= 3
    assert len(set(s.lower() for s in suggestions)) == len(suggestions)


def test_unknown_jurisdiction_uses_code() -> None:
    suggestions = build_suggestions("zoning variance", "zz", "")
    assert any(s.startswith("ZZ ") for s in suggestions)


def test_find_keyword_ignores_punctuation() -> None:
    assert find_keyword("What about theft?") == "theft"
    assert find_keyword("zoning") is None


@pytest.mark.asyncio
async def test_generator_suggest_is_async_and_bounded() -> None:
    generator = SuggestionGenerator(delay_seconds=0)
    suggestions = await generator.suggest("fraud", "AL", None)
    assert 1 <= len(suggestions) <= 3
