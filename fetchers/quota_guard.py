"""Quota guard: pre-flight check that the configured backend's key has quota.

Run before starting a survey so a dead key fails once, not fifty times.
Synchronous (requests), like the rest of the pre-survey tooling.
"""

import requests
from loguru import logger
from pydantic import BaseModel, Field

from config.settings import BackendMode, SurveySettings

ANTHROPIC_MODELS_URL = "https://api.anthropic.com/v1/models"
OPENSTATES_JURISDICTIONS_URL = "https://v3.openstates.org/jurisdictions"
LEGISCAN_URL = "https://api.legiscan.com/"
ANTHROPIC_VERSION = "2023-06-01"
DEFAULT_RETRY_AFTER_MS = 60_000


class QuotaCheckResult(BaseModel):
    """Outcome of a quota pre-flight check."""

    ok: bool
    provider: str
    message: str
    retry_after_ms: int | None = Field(None, ge=0)


def _retry_after_ms(response: requests.Response) -> int:
    value = response.headers.get("Retry-After")
    try:
        return int(float(value) * 1000) if value else DEFAULT_RETRY_AFTER_MS
    except ValueError:
        return DEFAULT_RETRY_AFTER_MS


def _interpret(response: requests.Response, provider: str) -> QuotaCheckResult:
    status = response.status_code
    if status == 429:
        return QuotaCheckResult(
            ok=False,
            provider=provider,
            message=f"{provider} API rate limited. Wait a moment or check your billing.",
            retry_after_ms=_retry_after_ms(response),
        )
    if status in (401, 403):
        return QuotaCheckResult(ok=False, provider=provider, message=f"Invalid {provider} API key")
    if status == 402:
        return QuotaCheckResult(ok=False, provider=provider, message=f"{provider} billing issue - check your payment method")
    if not response.ok:
        return QuotaCheckResult(ok=False, provider=provider, message=f"{provider} API error: {response.reason}")
    return QuotaCheckResult(ok=True, provider=provider, message=f"{provider} API ready")


def _request(url: str, provider: str, timeout: float, **kwargs) -> QuotaCheckResult:
    try:
        response = requests.get(url, timeout=timeout, **kwargs)
    except requests.exceptions.RequestException as e:
        logger.warning("{} quota check failed: {}", provider, e)
        return QuotaCheckResult(ok=False, provider=provider, message=f"{provider} check failed: {e}")
    return _interpret(response, provider)


def check_anthropic_quota(api_key: str | None, timeout: float = 10.0) -> QuotaCheckResult:
    """List models with the key; the cheapest authenticated call."""
    if not api_key:
        return QuotaCheckResult(ok=False, provider="Anthropic", message="No Anthropic API key provided")
    return _request(
        ANTHROPIC_MODELS_URL,
        "Anthropic",
        timeout,
        headers={"x-api-key": api_key, "anthropic-version": ANTHROPIC_VERSION},
    )


def check_openstates_quota(api_key: str | None, timeout: float = 10.0) -> QuotaCheckResult:
    if not api_key:
        return QuotaCheckResult(ok=False, provider="Open States", message="No Open States API key provided")
    return _request(
        OPENSTATES_JURISDICTIONS_URL,
        "Open States",
        timeout,
        headers={"X-API-KEY": api_key},
        params={"classification": "state", "per_page": 1},
    )


def check_legiscan_quota(api_key: str | None, timeout: float = 10.0) -> QuotaCheckResult:
    if not api_key:
        return QuotaCheckResult(ok=False, provider="LegiScan", message="No LegiScan API key provided")
    try:
        response = requests.get(
            LEGISCAN_URL,
            params={"key": api_key, "op": "getSessionList", "state": "CA"},
            timeout=timeout,
        )
    except requests.exceptions.RequestException as e:
        logger.warning("LegiScan quota check failed: {}", e)
        return QuotaCheckResult(ok=False, provider="LegiScan", message=f"LegiScan check failed: {e}")
    result = _interpret(response, "LegiScan")
    if not result.ok:
        return result
    # LegiScan reports key and quota problems in a 200 body
    try:
        data = response.json()
    except ValueError:
        return QuotaCheckResult(ok=False, provider="LegiScan", message="LegiScan returned a non-JSON response")
    if data.get("status") == "ERROR":
        message = (data.get("alert") or {}).get("message") or "Unknown error"
        return QuotaCheckResult(ok=False, provider="LegiScan", message=f"LegiScan API error: {message}")
    return result


def check_quota(settings: SurveySettings) -> QuotaCheckResult:
    """
    Run the pre-flight check for the configured backend.

    Args:
        settings: Survey settings snapshot.

    Returns:
        QuotaCheckResult for the active provider (always ok for the simulated backend).
    """
    mode = BackendMode(settings.backend_mode)
    if mode == BackendMode.simulated:
        return QuotaCheckResult(ok=True, provider="simulated", message="Simulated backend needs no quota")
    if mode == BackendMode.ai_assisted:
        result = check_anthropic_quota(settings.anthropic_api_key, settings.request_timeout_seconds)
    elif settings.openstates_api_key:
        result = check_openstates_quota(settings.openstates_api_key, settings.request_timeout_seconds)
    elif settings.legiscan_api_key:
        result = check_legiscan_quota(settings.legiscan_api_key, settings.request_timeout_seconds)
    else:
        result = QuotaCheckResult(
            ok=False,
            provider="structured-api",
            message="Structured API mode requires an Open States or LegiScan API key",
        )
    logger.info("Quota check ({}): {}", result.provider, result.message)
    return result
