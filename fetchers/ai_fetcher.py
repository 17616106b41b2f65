"""AI-assisted backend: Claude retrieves and summarizes a state's statute.

Failure reasons (timeout, bad key, quota) propagate as distinct FetchError
subclasses rather than one generic error.
"""

from pydantic import BaseModel, Field, ValidationError

from data.schemas.jurisdiction import Jurisdiction
from data.schemas.statute import Statute
from fetchers.base_fetcher import StatuteFetcher
from fetchers.claude_client import ClaudeJSONClient
from fetchers.errors import NoResultError
from prompts.statute_prompts import RETRIEVAL_SYSTEM_PROMPT, build_retrieval_prompt

NO_RESULT_CITATIONS = {"", "none found", "unknown", "n/a"}


class StatuteExtraction(BaseModel):
    """Shape Claude is asked to return."""

    citation: str = ""
    text_excerpt: str = ""
    effective_date: str = "Unknown"
    confidence: int = Field(0, ge=0, le=100)
    source_url: str | None = None


class AIAssistedFetcher(StatuteFetcher):
    """Statute lookup through the Claude messages API."""

    name = "ai-assisted"

    def __init__(self, client: ClaudeJSONClient):
        self.client = client

    async def _fetch(self, jurisdiction: Jurisdiction, query: str) -> Statute:
        obj = await self.client.complete_json(
            RETRIEVAL_SYSTEM_PROMPT,
            build_retrieval_prompt(jurisdiction, query),
            jurisdiction=jurisdiction.code,
        )
        try:
            extraction = StatuteExtraction.model_validate(obj)
        except ValidationError as e:
            raise NoResultError(f"Malformed statute record for {jurisdiction.code}: {e.error_count()} invalid fields", jurisdiction.code) from e

        if extraction.citation.strip().lower() in NO_RESULT_CITATIONS:
            raise NoResultError(f'No statute found for "{query}" in {jurisdiction.name}', jurisdiction.code)

        return Statute(
            jurisdiction=jurisdiction.code,
            citation=extraction.citation.strip(),
            text_excerpt=extraction.text_excerpt.strip(),
            effective_date=extraction.effective_date or "Unknown",
            confidence_score=extraction.confidence,
            source_url=extraction.source_url or jurisdiction.legislature_url,
        )

    async def aclose(self) -> None:
        await self.client.aclose()
