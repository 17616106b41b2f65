"""
StateSurvey data schemas: Pydantic v2 models for jurisdictions, statutes, and survey sessions.
"""

from data.schemas.jurisdiction import (
    ALL_JURISDICTION_CODES,
    JURISDICTIONS,
    Jurisdiction,
    JurisdictionCode,
    get_jurisdiction,
    require_jurisdiction,
)
from data.schemas.statute import (
    FailureResult,
    FetchFailure,
    ResultEntry,
    Statute,
    StatuteResult,
    TrustLevel,
    TrustVerification,
    statute_status,
)
from data.schemas.survey import SurveyNotification, SurveySession, SurveyStatus

__all__ = [
    "ALL_JURISDICTION_CODES",
    "JURISDICTIONS",
    "FailureResult",
    "FetchFailure",
    "Jurisdiction",
    "JurisdictionCode",
    "ResultEntry",
    "Statute",
    "StatuteResult",
    "SurveyNotification",
    "SurveySession",
    "SurveyStatus",
    "TrustLevel",
    "TrustVerification",
    "get_jurisdiction",
    "require_jurisdiction",
    "statute_status",
]
