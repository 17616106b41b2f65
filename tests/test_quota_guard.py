"""Tests for the quota pre-flight check (requests.get is mocked)."""

from unittest.mock import MagicMock, patch

import requests

from config.settings import BackendMode, SurveySettings
from fetchers.quota_guard import DEFAULT_RETRY_AFTER_MS, check_anthropic_quota, check_legiscan_quota, check_quota


def mock_response(status: int, headers: dict | None = None, json_data: dict | None = None) -> MagicMock:
    response = MagicMock()
    response.status_code = status
    response.ok = status < 400
    response.reason = "reason"
    response.headers = headers or {}
    response.json.return_value = json_data or {}
    return response


def test_simulated_backend_always_ok() -> None:
    with patch("fetchers.quota_guard.requests.get") as m:
        result = check_quota(SurveySettings())
    assert result.ok is True
    m.assert_not_called()


def test_anthropic_missing_key() -> None:
    result = check_anthropic_quota(None)
    assert result.ok is False
    assert "No Anthropic API key" in result.message


def test_anthropic_rate_limited_reports_retry_after() -> None:
    with patch("fetchers.quota_guard.requests.get", return_value=mock_response(429, {"Retry-After": "5"})):
        result = check_anthropic_quota("sk-test")
    assert result.ok is False
    assert result.retry_after_ms == 5000


def test_rate_limit_without_header_uses_default() -> None:
    with patch("fetchers.quota_guard.requests.get", return_value=mock_response(429)):
        result = check_anthropic_quota("sk-test")
    assert result.retry_after_ms == DEFAULT_RETRY_AFTER_MS


def test_invalid_key_and_billing() -> None:
    with patch("fetchers.quota_guard.requests.get", return_value=mock_response(401)):
        assert "Invalid" in check_anthropic_quota("sk-test").message
    with patch("fetchers.quota_guard.requests.get", return_value=mock_response(402)):
        assert "billing" in check_anthropic_quota("sk-test").message


def test_network_error_is_not_ok() -> None:
    with patch("fetchers.quota_guard.requests.get", side_effect=requests.exceptions.ConnectionError("down")):
        result = check_anthropic_quota("sk-test")
    assert result.ok is False
    assert "check failed" in result.message


def test_check_quota_routes_to_configured_provider() -> None:
    settings = SurveySettings(backend_mode=BackendMode.structured_api, openstates_api_key="os")
    with patch("fetchers.quota_guard.requests.get", return_value=mock_response(200)) as m:
        result = check_quota(settings)
    assert result.ok is True
    assert result.provider == "Open States"
    assert m.call_args.kwargs["headers"] == {"X-API-KEY": "os"}


def test_structured_api_without_keys() -> None:
    result = check_quota(SurveySettings(backend_mode=BackendMode.structured_api))
    assert result.ok is False


def test_legiscan_error_in_body() -> None:
    body = {"status": "ERROR", "alert": {"message": "Query limit exceeded"}}
    with patch("fetchers.quota_guard.requests.get", return_value=mock_response(200, json_data=body)):
        result = check_legiscan_quota("ls")
    assert result.ok is False
    assert "Query limit exceeded" in result.message
