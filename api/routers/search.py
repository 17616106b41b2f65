"""Single-jurisdiction statute search: one backend call, no session."""

from fastapi import APIRouter, Depends, status
from fastapi.responses import JSONResponse
from loguru import logger
from pydantic import BaseModel, Field

from config.settings import BackendMode, SurveySettings
from data.schemas.jurisdiction import JurisdictionCode
from data.schemas.statute import Statute
from fetchers.errors import (
    BackendTimeoutError,
    BackendUnavailableError,
    FetchError,
    InvalidCredentialError,
    NoResultError,
    RateLimitError,
)
from fetchers.fetcher_factory import get_fetcher

from ..dependencies import get_settings

router = APIRouter()

# Most specific class first
ERROR_STATUS: list[tuple[type[FetchError], int]] = [
    (InvalidCredentialError, status.HTTP_401_UNAUTHORIZED),
    (RateLimitError, status.HTTP_429_TOO_MANY_REQUESTS),
    (NoResultError, status.HTTP_404_NOT_FOUND),
    (BackendTimeoutError, status.HTTP_504_GATEWAY_TIMEOUT),
    (BackendUnavailableError, status.HTTP_502_BAD_GATEWAY),
]


def status_for_error(error: FetchError) -> int:
    """HTTP status for a fetch failure; unclassified failures are 502."""
    for error_class, code in ERROR_STATUS:
        if isinstance(error, error_class):
            return code
    return status.HTTP_502_BAD_GATEWAY


class SearchRequest(BaseModel):
    """One jurisdiction's lookup."""

    jurisdiction_code: JurisdictionCode
    query: str = Field(..., min_length=1, description="Search query for this jurisdiction")
    backend_mode: BackendMode | None = Field(None, description="Backend override (default: configured mode)")


class SearchResponse(BaseModel):
    success: bool
    data: Statute | None = None
    error: str | None = None


@router.post("/", response_model=SearchResponse)
async def search(request: SearchRequest, settings: SurveySettings = Depends(get_settings)) -> SearchResponse | JSONResponse:
    """
    Fetch one jurisdiction's statute with the selected backend.

    Failures return ``success: false`` with 401 (bad credential), 429 (rate
    limited), 404 (no result), 504 (timeout) or 502 (backend unavailable).
    """
    snapshot = settings.snapshot(backend_mode=request.backend_mode or settings.backend_mode)
    fetcher = get_fetcher(snapshot)
    try:
        statute = await fetcher.fetch(request.jurisdiction_code, request.query)
    except FetchError as e:
        code = status_for_error(e)
        logger.warning("Search {} failed ({}): {}", request.jurisdiction_code, code, e.message)
        headers = {}
        if isinstance(e, RateLimitError) and e.retry_after is not None:
            headers["Retry-After"] = str(int(e.retry_after))
        return JSONResponse(
            status_code=code,
            content=SearchResponse(success=False, error=e.message).model_dump(mode="json"),
            headers=headers,
        )
    finally:
        await fetcher.aclose()
    return SearchResponse(success=True, data=statute)
