"""Shared API state: settings, session store and survey scheduler singletons."""

from config.settings import SurveySettings, load_settings
from data.storage.session_store import SessionStore
from pipelines.survey.scheduler import SurveyScheduler

_settings: SurveySettings | None = None
_store: SessionStore | None = None
_scheduler: SurveyScheduler | None = None


def get_settings() -> SurveySettings:
    """Return settings loaded once from the environment."""
    global _settings
    if _settings is None:
        _settings = load_settings()
    return _settings


def get_store() -> SessionStore:
    """Return the process-wide session store."""
    global _store
    if _store is None:
        _store = SessionStore()
    return _store


def get_scheduler() -> SurveyScheduler:
    """Return the process-wide scheduler (one concurrency ledger per process)."""
    global _scheduler
    if _scheduler is None:
        _scheduler = SurveyScheduler(get_store(), settings=get_settings())
    return _scheduler


def reset() -> None:
    """Drop the singletons (settings are re-read on next use)."""
    global _settings, _store, _scheduler
    _settings = None
    _store = None
    _scheduler = None
