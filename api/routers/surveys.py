"""Survey API routes: start, inspect, cancel, retry and delete 50-state surveys."""

from fastapi import APIRouter, Depends, HTTPException, Query, status
from loguru import logger
from pydantic import BaseModel, Field

from config.settings import BackendMode
from data.schemas.statute import FailureResult, StatuteResult
from data.schemas.survey import SurveyNotification, SurveySession
from data.storage.session_store import SessionNotFoundError, SessionStore
from pipelines.survey.errors import MaxConcurrentSurveysError
from pipelines.survey.scheduler import SurveyScheduler

from ..dependencies import get_scheduler, get_store

router = APIRouter()


class SurveyRequest(BaseModel):
    query: str = Field(..., min_length=1, description="Natural-language legal query")
    backend_mode: BackendMode | None = Field(None, description="Backend override for this survey")


class SurveyStarted(BaseModel):
    session_id: int
    status: str = "running"


class RetryRequest(BaseModel):
    query: str | None = Field(None, description="Replacement query, e.g. one of the suggestions")


class SurveySummary(BaseModel):
    """Session without per-jurisdiction results, for list views."""

    id: int
    query: str
    status: str
    percent_complete: int
    success_count: int
    error_count: int


def _summary(session: SurveySession) -> SurveySummary:
    return SurveySummary(
        id=session.id,
        query=session.query,
        status=session.status.value,
        percent_complete=session.percent_complete,
        success_count=session.success_count,
        error_count=session.error_count,
    )


def _not_found(e: SessionNotFoundError) -> HTTPException:
    return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))


@router.post("/", response_model=SurveyStarted, status_code=status.HTTP_202_ACCEPTED)
async def start_survey(
    request: SurveyRequest,
    scheduler: SurveyScheduler = Depends(get_scheduler),
) -> SurveyStarted:
    """Start a survey in the background; poll GET /{id} for progress."""
    settings = None
    if request.backend_mode is not None:
        settings = scheduler.settings.snapshot(backend_mode=request.backend_mode)
    try:
        handle = scheduler.start_survey(request.query, settings=settings)
    except MaxConcurrentSurveysError as e:
        raise HTTPException(status_code=status.HTTP_429_TOO_MANY_REQUESTS, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))
    return SurveyStarted(session_id=handle.session_id)


@router.get("/", response_model=list[SurveySummary])
async def list_surveys(
    limit: int = Query(50, ge=1, le=50),
    store: SessionStore = Depends(get_store),
) -> list[SurveySummary]:
    """List surveys, newest first."""
    return [_summary(s) for s in store.list_sessions()[:limit]]


@router.get("/notifications", response_model=list[SurveyNotification])
async def list_notifications(store: SessionStore = Depends(get_store)) -> list[SurveyNotification]:
    """Completion and cancellation events, oldest first."""
    return list(store.notifications)


@router.get("/{session_id}", response_model=SurveySession)
async def get_survey(session_id: int, store: SessionStore = Depends(get_store)) -> SurveySession:
    """Full session including per-jurisdiction results recorded so far."""
    try:
        return store.get(session_id)
    except SessionNotFoundError as e:
        raise _not_found(e)


@router.post("/{session_id}/cancel")
async def cancel_survey(session_id: int, scheduler: SurveyScheduler = Depends(get_scheduler)) -> dict:
    """Request cancellation; the batch in flight still completes."""
    try:
        cancelled = scheduler.cancel(session_id)
    except SessionNotFoundError as e:
        raise _not_found(e)
    return {"session_id": session_id, "cancelled": cancelled}


@router.post("/{session_id}/retry/{jurisdiction_code}")
async def retry_jurisdiction(
    session_id: int,
    jurisdiction_code: str,
    request: RetryRequest | None = None,
    scheduler: SurveyScheduler = Depends(get_scheduler),
) -> StatuteResult | FailureResult:
    """Re-run one jurisdiction, overwriting its entry. Counts are not changed."""
    try:
        return await scheduler.retry_jurisdiction(
            session_id,
            jurisdiction_code,
            query=request.query if request else None,
        )
    except SessionNotFoundError as e:
        raise _not_found(e)
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@router.delete("/{session_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_survey(session_id: int, store: SessionStore = Depends(get_store)) -> None:
    """Delete a finished survey; running surveys must be cancelled first."""
    try:
        session = store.get(session_id)
    except SessionNotFoundError as e:
        raise _not_found(e)
    if not session.status.is_terminal:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Cancel the survey before deleting it")
    store.delete_session(session_id)
    logger.info("Deleted survey #{}", session_id)
