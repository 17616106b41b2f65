"""Trust verifier: classifies a retrieved statute as verified, unverified, or suspicious.

Two inputs feed the classification:
- source authority: a pure predicate on the source URL's hostname;
- content consistency: "appears repealed" and "appears hallucinated" flags from
  a content checker (simulated in demo deployments, Claude in real ones).

Content problems always win over source authority.
"""

import asyncio
import random
from abc import ABC, abstractmethod
from urllib.parse import urlparse

from loguru import logger
from pydantic import BaseModel, Field

from config.settings import SurveySettings, VerifierMode
from data.schemas.statute import Statute, TrustLevel, TrustVerification
from fetchers.claude_client import ClaudeJSONClient
from prompts.statute_prompts import VERIFICATION_SYSTEM_PROMPT, build_verification_prompt

AUTHORITATIVE_SUFFIXES: tuple[str, ...] = (".gov", ".us", ".mil")

MSG_HALLUCINATED = "Content does not appear to be legal statute text - possible hallucination or error page"
MSG_REPEALED = "Statute may be repealed or superseded - requires manual verification"
MSG_NOT_OFFICIAL = "Source is not from an official government domain"
MSG_VERIFIED = "Verified: text supports query from official government source"
MSG_CHECK_FAILED = "Verification unavailable - treated as unverified"


def is_authoritative_url(url: str | None) -> bool:
    """True if the URL's hostname ends with a recognized government suffix."""
    if not url:
        return False
    try:
        hostname = (urlparse(url.strip()).hostname or "").lower().rstrip(".")
    except ValueError:
        return False
    if not hostname or "." not in hostname:
        return False
    return any(hostname.endswith(suffix) for suffix in AUTHORITATIVE_SUFFIXES)


class ContentCheck(BaseModel):
    """Content-consistency flags; the two booleans are independent."""

    is_repealed: bool = False
    is_hallucinated: bool = False
    reasoning: str = Field("", description="Checker's explanation, if any")


def classify(is_official_source: bool, check: ContentCheck) -> TrustLevel:
    """Apply trust precedence: content problems, then source authority, then verified."""
    if check.is_repealed or check.is_hallucinated:
        return TrustLevel.suspicious
    if not is_official_source:
        return TrustLevel.unverified
    return TrustLevel.verified


def _rationale(is_official_source: bool, check: ContentCheck) -> str:
    if check.is_hallucinated:
        message = MSG_HALLUCINATED
    elif check.is_repealed:
        message = MSG_REPEALED
    elif not is_official_source:
        message = MSG_NOT_OFFICIAL
    else:
        message = MSG_VERIFIED
    if check.reasoning:
        return f"{message}. {check.reasoning}"
    return message


class ContentChecker(ABC):
    """Strategy deciding whether statute text looks repealed or hallucinated."""

    @abstractmethod
    async def check(self, statute: Statute, query: str = "") -> ContentCheck:
        ...

    async def aclose(self) -> None:
        return None


class SimulatedContentChecker(ContentChecker):
    """Random stand-in classifier for demo deployments (no model calls)."""

    def __init__(
        self,
        rng: random.Random | None = None,
        repealed_rate: float = 0.05,
        hallucinated_rate: float = 0.05,
        delay_range: tuple[float, float] = (0.1, 0.3),
    ):
        self._rng = rng or random.Random()
        self.repealed_rate = repealed_rate
        self.hallucinated_rate = hallucinated_rate
        self.delay_range = delay_range

    async def check(self, statute: Statute, query: str = "") -> ContentCheck:
        rng = random.Random(self._rng.getrandbits(64))
        delay = rng.uniform(*self.delay_range)
        if delay > 0:
            await asyncio.sleep(delay)
        repealed = rng.random() < self.repealed_rate
        hallucinated = rng.random() < self.hallucinated_rate
        if repealed:
            reasoning = "[SIMULATED] Text contains repeal indicators - flagged for review."
        elif hallucinated:
            reasoning = "[SIMULATED] Text does not appear to be legal statute content."
        else:
            reasoning = ""
        return ContentCheck(is_repealed=repealed, is_hallucinated=hallucinated, reasoning=reasoning)


class LLMVerification(BaseModel):
    """Shape Claude is asked to return when auditing a statute."""

    supports_query: bool = False
    citation_format_valid: bool = False
    looks_like_legal_text: bool = False
    is_potentially_repealed: bool = False
    confidence_reasoning: str = ""


class LLMContentChecker(ContentChecker):
    """Asks Claude to audit the statute text against the citation and query."""

    def __init__(self, client: ClaudeJSONClient):
        self.client = client

    async def check(self, statute: Statute, query: str = "") -> ContentCheck:
        obj = await self.client.complete_json(
            VERIFICATION_SYSTEM_PROMPT,
            build_verification_prompt(statute, query),
            jurisdiction=statute.jurisdiction,
            max_tokens=512,
        )
        result = LLMVerification.model_validate(obj)
        hallucinated = not (result.looks_like_legal_text and result.supports_query and result.citation_format_valid)
        return ContentCheck(
            is_repealed=result.is_potentially_repealed,
            is_hallucinated=hallucinated,
            reasoning=result.confidence_reasoning.strip(),
        )

    async def aclose(self) -> None:
        await self.client.aclose()


class TrustVerifier:
    """
    Assigns a trust level and rationale to a statute.

    ``verify`` never raises: if the content checker fails, the statute is
    reported unverified instead of being lost.
    """

    def __init__(self, checker: ContentChecker | None = None):
        self.checker = checker or SimulatedContentChecker()

    async def verify(self, statute: Statute, query: str = "") -> TrustVerification:
        """
        Verify one statute.

        Args:
            statute: Candidate statute.
            query: Original user query, for relevance checks.

        Returns:
            TrustVerification with trust level, rationale and the underlying flags.
        """
        is_official = is_authoritative_url(statute.source_url)
        try:
            check = await self.checker.check(statute, query)
        except Exception as e:
            logger.warning("[{}] Content check failed, treating as unverified: {}", statute.jurisdiction, e)
            return TrustVerification(
                trust_level=TrustLevel.unverified,
                rationale=MSG_CHECK_FAILED,
                is_official_source=is_official,
            )

        trust_level = classify(is_official, check)
        if trust_level != TrustLevel.verified:
            logger.debug("[{}] Trust downgraded to {}", statute.jurisdiction, trust_level.value)
        return TrustVerification(
            trust_level=trust_level,
            rationale=_rationale(is_official, check),
            is_official_source=is_official,
            is_repealed=check.is_repealed,
            is_hallucinated=check.is_hallucinated,
        )

    async def aclose(self) -> None:
        await self.checker.aclose()


def get_verifier(settings: SurveySettings, rng: random.Random | None = None) -> TrustVerifier:
    """Build the verifier selected by ``settings.verifier_mode``."""
    if VerifierMode(settings.verifier_mode) == VerifierMode.llm:
        client = ClaudeJSONClient(
            api_key=settings.anthropic_api_key,
            model=settings.claude_model,
            timeout=settings.request_timeout_seconds,
        )
        return TrustVerifier(LLMContentChecker(client))
    return TrustVerifier(SimulatedContentChecker(rng=rng))
