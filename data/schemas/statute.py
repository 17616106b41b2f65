"""
Pydantic v2 models for per-jurisdiction survey results.

A result slot holds a ResultEntry: either a StatuteResult (kind="ok") wrapping a
Statute, or a FailureResult (kind="error") wrapping a FetchFailure. Consumers
branch on ``kind``, never on the runtime type of the payload.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Literal, Union
from urllib.parse import quote_plus

from pydantic import BaseModel, Field

from data.schemas.jurisdiction import JurisdictionCode

MAX_SUGGESTIONS = 3
# Unverified/suspicious results at or above this confidence still display as success.
DISPLAY_CONFIDENCE_OVERRIDE = 70

StatuteStatus = Literal["idle", "loading", "success", "suspicious", "error"]


class TrustLevel(str, Enum):
    """Trust classification assigned to a successful result."""

    verified = "verified"
    unverified = "unverified"
    suspicious = "suspicious"


def build_search_url(citation: str) -> str:
    """Web search URL for a citation, used when a backend gives no fallback link."""
    return f"https://www.google.com/search?q={quote_plus(citation)}"


class Statute(BaseModel):
    """A candidate answer for one jurisdiction."""

    jurisdiction: JurisdictionCode
    citation: str = Field(..., description="Legal citation, e.g. 'N.Y. C.P.L.R. § 213'")
    text_excerpt: str = Field("", description="Relevant excerpt of the statute text")
    effective_date: str = Field("Unknown", description="ISO date or 'Unknown'")
    confidence_score: int = Field(..., ge=0, le=100)
    source_url: str = Field(..., description="Canonical source URL")
    fallback_search_url: str | None = Field(None, description="Search link for manual verification")
    trust_level: TrustLevel = TrustLevel.unverified

    model_config = {"frozen": True}

    def with_trust(self, trust_level: TrustLevel) -> "Statute":
        """Return a copy carrying the given trust level."""
        return self.model_copy(update={"trust_level": trust_level})


class FetchFailure(BaseModel):
    """Recorded failure for one jurisdiction, with retry phrasings."""

    message: str = Field(..., min_length=1)
    suggestions: list[str] = Field(default_factory=list, max_length=MAX_SUGGESTIONS)

    model_config = {"frozen": True}


class StatuteResult(BaseModel):
    """Success variant of a result slot."""

    kind: Literal["ok"] = "ok"
    statute: Statute

    model_config = {"frozen": True}


class FailureResult(BaseModel):
    """Failure variant of a result slot."""

    kind: Literal["error"] = "error"
    failure: FetchFailure

    model_config = {"frozen": True}


ResultEntry = Annotated[Union[StatuteResult, FailureResult], Field(discriminator="kind")]


class TrustVerification(BaseModel):
    """Outcome of a trust check; folded into the Statute, never stored alone."""

    trust_level: TrustLevel
    rationale: str
    is_official_source: bool = False
    is_repealed: bool = False
    is_hallucinated: bool = False
    verified_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))


def statute_status(entry: StatuteResult | FailureResult | None, survey_running: bool = False) -> StatuteStatus:
    """
    Display status for one jurisdiction's slot.

    Failures are 'error'; verified results are 'success'; unverified or
    suspicious results are 'success' only with confidence >= 70.
    """
    if entry is None:
        return "loading" if survey_running else "idle"
    if entry.kind == "error":
        return "error"
    statute = entry.statute
    if statute.trust_level == TrustLevel.verified:
        return "success"
    if statute.confidence_score >= DISPLAY_CONFIDENCE_OVERRIDE:
        return "success"
    return "suspicious"


def status_label(status: StatuteStatus) -> str:
    """Human readable label for a display status."""
    labels = {
        "success": "Verified",
        "suspicious": "Unverified",
        "error": "Error",
        "loading": "Verifying...",
    }
    return labels.get(status, "Pending")
