"""
Prompts for AI-assisted statute retrieval and content verification.
Instructs Claude to answer with a single JSON object so the reply can be validated.
"""

from data.schemas.jurisdiction import Jurisdiction
from data.schemas.statute import Statute

RETRIEVAL_SYSTEM_PROMPT = """You are a legal research assistant that locates US state statutes.

CRITICAL RULES:
1. Answer with exactly ONE JSON object and nothing else.
2. Cite the statute in the standard citation format for the state.
3. Prefer the official state legislature website as the source URL.
4. If you cannot identify a specific statute, set "citation" to "None found" and "confidence" to 0.
5. Never invent section numbers. A lower confidence is better than a fabricated citation.

JSON fields: citation (string), text_excerpt (string), effective_date (YYYY-MM-DD or "Unknown"),
confidence (integer 0-100), source_url (string or null)."""

VERIFICATION_SYSTEM_PROMPT = """You are a skeptical legal verification assistant. Flag anything suspicious.

Answer with exactly ONE JSON object with these fields:
- supports_query (boolean): true only if the text directly addresses the legal question.
- citation_format_valid (boolean): true if the citation follows proper format for the state.
- looks_like_legal_text (boolean): false for 404 pages, advertisements, navigation menus or gibberish.
- is_potentially_repealed (boolean): true if the text mentions repealed, superseded, or a future effective date.
- confidence_reasoning (string): 1-2 sentences explaining the decision.

When in doubt, flag as suspicious. False positives are better than missing bad data."""


def build_retrieval_prompt(jurisdiction: Jurisdiction, query: str) -> str:
    """
    Build the user prompt for one jurisdiction's statute lookup.

    Args:
        jurisdiction: Target state.
        query: Jurisdiction-tuned boolean query.

    Returns:
        Prompt string.
    """
    parts: list[str] = [
        f"STATE: {jurisdiction.name} ({jurisdiction.code})",
        f"OFFICIAL LEGISLATURE: {jurisdiction.legislature_url}",
    ]
    if jurisdiction.terms:
        parts.append(f"STATE CODES: {', '.join(jurisdiction.terms)}")
    if jurisdiction.civil_law:
        parts.append("NOTE: This is a civil-law jurisdiction; use its civil-law terminology.")
    parts.append(f"\nSEARCH QUERY: {query}")
    parts.append("\nFind the controlling statute for this query and return the JSON object.")
    return "\n".join(parts)


def build_verification_prompt(statute: Statute, query: str) -> str:
    """Build the user prompt asking Claude to audit a retrieved statute."""
    return "\n".join(
        [
            f"USER QUERY: {query or '(not provided)'}",
            f"STATE: {statute.jurisdiction}",
            f'CITATION: "{statute.citation}"',
            "",
            "TEXT TO VERIFY:",
            '"""',
            statute.text_excerpt,
            '"""',
        ]
    )
