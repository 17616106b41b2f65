"""
Base class for statute backends.

A fetcher answers one jurisdiction's query and nothing else: it never writes
to the session store. Recording the outcome is the scheduler's job.
"""

from abc import ABC, abstractmethod

from loguru import logger

from data.schemas.jurisdiction import Jurisdiction, require_jurisdiction
from data.schemas.statute import Statute, build_search_url


class StatuteFetcher(ABC):
    """
    Abstract backend for single-jurisdiction statute lookups.

    Subclasses implement ``_fetch``; ``fetch`` resolves the jurisdiction,
    fills the fallback search link and logs the outcome.
    """

    name: str = "base"
    # True when the backend classifies trust itself and the verifier is skipped
    assigns_trust: bool = False

    async def fetch(self, jurisdiction: str, query: str) -> Statute:
        """
        Fetch a candidate statute for one jurisdiction.

        Args:
            jurisdiction: 2-letter state code.
            query: Jurisdiction-tuned search query.

        Returns:
            Statute candidate.

        Raises:
            FetchError: Subclass naming the failure class.
            ValueError: Unknown jurisdiction code.
        """
        state = require_jurisdiction(jurisdiction)
        logger.debug("[{}] {} fetch: {}", state.code, self.name, query[:80])
        statute = await self._fetch(state, query)
        if statute.fallback_search_url is None:
            statute = statute.model_copy(update={"fallback_search_url": build_search_url(statute.citation)})
        logger.debug("[{}] {} returned {} (confidence {})", state.code, self.name, statute.citation, statute.confidence_score)
        return statute

    @abstractmethod
    async def _fetch(self, jurisdiction: Jurisdiction, query: str) -> Statute:
        """
        Backend-specific lookup.

        Args:
            jurisdiction: Resolved jurisdiction metadata.
            query: Jurisdiction-tuned search query.

        Returns:
            Statute candidate.
        """
        ...

    async def aclose(self) -> None:
        """Release network resources held by the backend."""
        return None
