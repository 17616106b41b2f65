"""Survey orchestration: query expansion, batch scheduling, retry suggestions."""

from pipelines.survey.errors import MaxConcurrentSurveysError, SessionNotFoundError
from pipelines.survey.query_builder import build_queries, build_query
from pipelines.survey.scheduler import SurveyHandle, SurveyScheduler, partition
from pipelines.survey.suggester import SuggestionGenerator, build_suggestions

__all__ = [
    "MaxConcurrentSurveysError",
    "SessionNotFoundError",
    "SuggestionGenerator",
    "SurveyHandle",
    "SurveyScheduler",
    "build_queries",
    "build_query",
    "build_suggestions",
    "partition",
]
