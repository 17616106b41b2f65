"""Jurisdiction query builder: one free-text query -> 50 state-tuned boolean queries.

Louisiana is a civil-law jurisdiction and names some concepts differently from
the 49 common-law states; the thesaurus below carries those substitutions.
"""

import re

from data.schemas.jurisdiction import JURISDICTIONS, Jurisdiction

PROXIMITY_CONNECTIVE = " /s "
MIN_TOKEN_LENGTH = 3

# term -> {jurisdiction code: replacement}; states not listed keep the term as is.
# Longer terms come first so "statute of limitations" is replaced before "limitation".
THESAURUS: dict[str, dict[str, str]] = {
    "statute of limitations": {"LA": "liberative prescription"},
    "limitations period": {"LA": "prescriptive period"},
    "limitation": {"LA": "prescription"},
    "adverse possession": {"LA": "acquisitive prescription"},
    "common law": {"LA": "civil law"},
}

_TERM_PATTERNS: dict[str, re.Pattern] = {
    term: re.compile(rf"\b{re.escape(term)}\b") for term in THESAURUS
}


def expand_term(term: str, jurisdiction_code: str) -> str:
    """Return the jurisdiction's word for a legal term (the term itself if none)."""
    return THESAURUS.get(term.lower(), {}).get(jurisdiction_code, term)


def apply_thesaurus(query: str, jurisdiction_code: str) -> str:
    """Substitute jurisdiction-specific terminology into a lower-cased query."""
    for term, pattern in _TERM_PATTERNS.items():
        replacement = expand_term(term, jurisdiction_code)
        if replacement == term:
            continue
        query = pattern.sub(replacement, query)
    return query


def tokenize(query: str) -> list[str]:
    """Significant words of a query (longer than two characters)."""
    return [w for w in query.split() if len(w) >= MIN_TOKEN_LENGTH]


def build_query(user_query: str, jurisdiction: Jurisdiction) -> str:
    """
    Build the boolean search query for one jurisdiction.

    Example:
        "Statute of limitations for fraud" in NY ->
        "(statute /s limitations /s for /s fraud) AND (Consolidated Laws)"
    """
    query = apply_thesaurus((user_query or "").lower(), jurisdiction.code)
    boolean_query = PROXIMITY_CONNECTIVE.join(tokenize(query))
    qualifier = jurisdiction.code_qualifier
    if qualifier:
        return f"({boolean_query}) AND ({qualifier})"
    return boolean_query


def build_queries(user_query: str) -> dict[str, str]:
    """
    Expand one user query into a query per jurisdiction.

    Total and deterministic: always returns exactly one entry for each of the
    50 jurisdiction codes, in the fixed jurisdiction order.

    Args:
        user_query: Natural-language legal query.

    Returns:
        Mapping of jurisdiction code to boolean search string.
    """
    return {j.code: build_query(user_query, j) for j in JURISDICTIONS}
