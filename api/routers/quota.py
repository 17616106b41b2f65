"""Quota pre-flight route for the configured backend."""

from fastapi import APIRouter, Depends
from fastapi.concurrency import run_in_threadpool

from config.settings import SurveySettings
from fetchers.quota_guard import QuotaCheckResult, check_quota

from ..dependencies import get_settings

router = APIRouter()


@router.get("/", response_model=QuotaCheckResult)
async def quota(settings: SurveySettings = Depends(get_settings)) -> QuotaCheckResult:
    """Check that the configured backend's key is valid and has quota."""
    return await run_in_threadpool(check_quota, settings)
