"""Survey configuration."""

from config.settings import (
    BackendMode,
    SimulationTuning,
    SurveySettings,
    VerifierMode,
    load_settings,
)

__all__ = [
    "BackendMode",
    "SimulationTuning",
    "SurveySettings",
    "VerifierMode",
    "load_settings",
]
