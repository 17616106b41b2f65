"""Suggestion generator: alternative phrasings to retry a failed jurisdiction with.

Heuristic, not model-driven: a keyword -> legal subdomain table narrows the
query, the state name qualifies it, and a generic fallback covers queries with
no recognizable keyword. Never fails, never returns an empty list.
"""

import asyncio

from loguru import logger

from data.schemas.jurisdiction import get_jurisdiction
from data.schemas.statute import MAX_SUGGESTIONS

GENERIC_FALLBACK = "Fraud statute of limitations"
MIN_KEYWORD_LENGTH = 4

# keyword -> query narrowed to one legal subdomain
SUBDOMAINS: dict[str, str] = {
    "fraud": "civil fraud statute of limitations",
    "theft": "grand theft felony threshold",
    "larceny": "grand larceny felony threshold",
    "stealing": "grand theft felony threshold",
    "possession": "adverse possession required years",
    "negligence": "negligence personal injury time limit",
    "injury": "personal injury statute of limitations",
    "malpractice": "medical malpractice statute of limitations",
    "contract": "breach of written contract limitations period",
    "defamation": "defamation libel slander time limit",
    "assault": "civil assault and battery time limit",
    "property": "real property recovery limitations period",
    "wage": "unpaid wage claim filing deadline",
    "eviction": "residential eviction notice period",
    "custody": "child custody modification standard",
}

NO_RESULT_MARKERS = ("no statute", "not found", "no result", "ambiguous")


def find_keyword(query: str) -> str | None:
    """First word of the query that maps to a known legal subdomain."""
    for word in (query or "").lower().split():
        word = word.strip(".,;:?!\"'()")
        if word in SUBDOMAINS:
            return word
    return None


def _dedupe(items: list[str]) -> list[str]:
    seen: set[str] = set()
    out: list[str] = []
    for item in items:
        key = item.strip().lower()
        if key and key not in seen:
            seen.add(key)
            out.append(item.strip())
    return out


def build_suggestions(original_query: str, jurisdiction: str, failure_context: str = "") -> list[str]:
    """
    Build up to three retry phrasings.

    Args:
        original_query: The user's query as typed.
        jurisdiction: 2-letter code of the failed jurisdiction.
        failure_context: Error message of the failure.

    Returns:
        1-3 suggestions, most specific first.
    """
    query = " ".join((original_query or "").split())
    state = get_jurisdiction(jurisdiction)
    state_name = state.name if state else str(jurisdiction).upper()

    keyword = find_keyword(query)
    suggestions: list[str] = []
    if keyword:
        suggestions.append(SUBDOMAINS[keyword])
    elif any(len(w) >= MIN_KEYWORD_LENGTH for w in query.split()):
        suggestions.append(f"{query} statute of limitations")
    if query:
        suggestions.append(f"{state_name} {query} statute")
    if keyword:
        suggestions.append(f"{keyword} civil penalty")
    else:
        suggestions.append(GENERIC_FALLBACK)

    # Nothing matched: a broader phrasing is the most useful first retry
    if any(marker in (failure_context or "").lower() for marker in NO_RESULT_MARKERS) and not keyword:
        suggestions.insert(0, suggestions.pop())

    suggestions = _dedupe(suggestions)[:MAX_SUGGESTIONS]
    return suggestions or [GENERIC_FALLBACK]


class SuggestionGenerator:
    """Async wrapper adding a small, bounded latency to the heuristic."""

    def __init__(self, delay_seconds: float = 0.6):
        self.delay_seconds = max(0.0, delay_seconds)

    async def suggest(self, original_query: str, jurisdiction: str, failure_context: str = "") -> list[str]:
        """Return 1-3 alternative queries for a failed jurisdiction."""
        if self.delay_seconds:
            await asyncio.sleep(self.delay_seconds)
        suggestions = build_suggestions(original_query, jurisdiction, failure_context)
        logger.debug("[{}] {} retry suggestions after: {}", jurisdiction, len(suggestions), (failure_context or "")[:80])
        return suggestions
