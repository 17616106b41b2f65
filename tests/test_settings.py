"""Tests for survey settings and environment loading."""

import pytest
from pydantic import ValidationError

from config.settings import BackendMode, SurveySettings, VerifierMode, load_settings


def test_defaults() -> None:
    s = SurveySettings()
    assert s.backend_mode == BackendMode.simulated
    assert s.batch_size == 5
    assert s.max_concurrent_surveys == 5
    assert s.auto_verify is True


def test_settings_are_frozen() -> None:
    s = SurveySettings()
    with pytest.raises(ValidationError):
        s.batch_size = 10


def test_snapshot_is_independent_copy() -> None:
    s = SurveySettings()
    snap = s.snapshot(backend_mode=BackendMode.ai_assisted)
    assert snap.backend_mode == BackendMode.ai_assisted
    assert s.backend_mode == BackendMode.simulated


def test_load_settings_from_env(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("SURVEY_BACKEND_MODE", "structured-api")
    monkeypatch.setenv("OPENSTATES_API_KEY", "os-key")
    monkeypatch.setenv("SURVEY_AUTO_VERIFY", "no")
    monkeypatch.setenv("SURVEY_BATCH_SIZE", "10")
    monkeypatch.setenv("SURVEY_VERIFIER_MODE", "llm")
    s = load_settings(env_file=tmp_path / "missing.env")
    assert s.backend_mode == BackendMode.structured_api
    assert s.openstates_api_key == "os-key"
    assert s.auto_verify is False
    assert s.batch_size == 10
    assert s.verifier_mode == VerifierMode.llm


def test_invalid_batch_size_rejected(monkeypatch: pytest.MonkeyPatch, tmp_path) -> None:
    monkeypatch.setenv("SURVEY_BATCH_SIZE", "0")
    with pytest.raises(ValidationError):
        load_settings(env_file=tmp_path / "missing.env")


def test_api_keys_hidden_from_repr() -> None:
    assert "secret" not in repr(SurveySettings(anthropic_api_key="secret"))
