"""
Survey settings: backend selection, credentials, and scheduler tuning.

Loaded from environment variables (and a project-root .env via python-dotenv).
The scheduler takes a frozen snapshot at survey start, so editing settings
while a survey runs never changes that survey's backend.
"""

import os
from enum import Enum
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel, Field

_ENV_PATH = Path(__file__).resolve().parent.parent / ".env"

DEFAULT_CLAUDE_MODEL = "claude-sonnet-4-6"
MAX_CONCURRENT_SURVEYS = 5
DEFAULT_BATCH_SIZE = 5


class BackendMode(str, Enum):
    """Strategy used to answer a single jurisdiction's query."""

    simulated = "simulated"
    ai_assisted = "ai-assisted"
    structured_api = "structured-api"


class VerifierMode(str, Enum):
    """Content-consistency check used by the trust verifier."""

    simulated = "simulated"
    llm = "llm"


class SimulationTuning(BaseModel):
    """Demo tuning for the simulated backend: latency range and outcome split."""

    min_delay_seconds: float = Field(0.8, ge=0.0)
    max_delay_seconds: float = Field(2.5, ge=0.0)
    failure_rate: float = Field(0.20, ge=0.0, le=1.0)
    ambiguous_rate: float = Field(0.15, ge=0.0, le=1.0)

    model_config = {"frozen": True}


class SurveySettings(BaseModel):
    """Immutable settings snapshot read once at survey start."""

    backend_mode: BackendMode = BackendMode.simulated
    anthropic_api_key: str | None = Field(None, repr=False)
    claude_model: str = DEFAULT_CLAUDE_MODEL
    openstates_api_key: str | None = Field(None, repr=False)
    legiscan_api_key: str | None = Field(None, repr=False)
    auto_verify: bool = True
    verifier_mode: VerifierMode = VerifierMode.simulated
    batch_size: int = Field(DEFAULT_BATCH_SIZE, ge=1, le=50)
    inter_batch_delay_seconds: float = Field(0.0, ge=0.0)
    max_concurrent_surveys: int = Field(MAX_CONCURRENT_SURVEYS, ge=1)
    request_timeout_seconds: float = Field(30.0, gt=0.0)
    simulation: SimulationTuning = Field(default_factory=SimulationTuning)

    model_config = {"frozen": True}

    def snapshot(self, **overrides) -> "SurveySettings":
        """Independent copy, optionally with fields replaced."""
        return self.model_copy(update=overrides, deep=True)


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None or value.strip() == "":
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def load_settings(env_file: Path | None = None) -> SurveySettings:
    """
    Build settings from the environment.

    Args:
        env_file: Optional .env path; defaults to the project root .env.

    Returns:
        SurveySettings snapshot. Invalid values raise pydantic.ValidationError.
    """
    load_dotenv(dotenv_path=env_file or _ENV_PATH)
    return SurveySettings(
        backend_mode=os.getenv("SURVEY_BACKEND_MODE", BackendMode.simulated.value),
        anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
        claude_model=os.getenv("CLAUDE_MODEL", DEFAULT_CLAUDE_MODEL),
        openstates_api_key=os.getenv("OPENSTATES_API_KEY") or None,
        legiscan_api_key=os.getenv("LEGISCAN_API_KEY") or None,
        auto_verify=_env_bool("SURVEY_AUTO_VERIFY", True),
        verifier_mode=os.getenv("SURVEY_VERIFIER_MODE", VerifierMode.simulated.value),
        batch_size=int(os.getenv("SURVEY_BATCH_SIZE", str(DEFAULT_BATCH_SIZE))),
        inter_batch_delay_seconds=float(os.getenv("SURVEY_INTER_BATCH_DELAY", "0")),
    )
