"""
Pydantic v2 models for survey sessions and completion notifications.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Literal

from pydantic import BaseModel, Field

from data.schemas.jurisdiction import ALL_JURISDICTION_CODES, JurisdictionCode
from data.schemas.statute import ResultEntry


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class SurveyStatus(str, Enum):
    """Lifecycle of a survey. Everything except running is terminal."""

    running = "running"
    completed = "completed"
    failed = "failed"
    cancelled = "cancelled"

    @property
    def is_terminal(self) -> bool:
        return self is not SurveyStatus.running


class SurveySession(BaseModel):
    """
    One end-to-end run of a query across all jurisdictions.

    ``results`` has no key for a jurisdiction that has not been attempted yet.
    Counts are written once, at completion.
    """

    id: int = Field(..., ge=1)
    query: str = Field(..., min_length=1)
    status: SurveyStatus = SurveyStatus.running
    started_at: datetime = Field(default_factory=utcnow)
    completed_at: datetime | None = None
    results: dict[JurisdictionCode, ResultEntry] = Field(default_factory=dict)
    success_count: int = Field(default=0, ge=0)
    error_count: int = Field(default=0, ge=0)

    @property
    def attempted(self) -> int:
        return len(self.results)

    @property
    def percent_complete(self) -> int:
        """Share of jurisdictions with a recorded entry, 0-100."""
        return round(len(self.results) / len(ALL_JURISDICTION_CODES) * 100)


class SurveyNotification(BaseModel):
    """Event handed to the UI layer when a survey reaches a terminal state."""

    survey_id: int
    kind: Literal["success", "error", "info"] = "info"
    title: str
    description: str
    created_at: datetime = Field(default_factory=utcnow)
