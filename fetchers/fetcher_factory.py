"""Fetcher factory: map a settings snapshot to one backend instance.

One backend is selected per survey; mixing backends inside a survey is not supported.
"""

import random

from loguru import logger

from config.settings import BackendMode, SurveySettings
from fetchers.ai_fetcher import AIAssistedFetcher
from fetchers.api_fetcher import StructuredApiFetcher
from fetchers.base_fetcher import StatuteFetcher
from fetchers.claude_client import ClaudeJSONClient
from fetchers.simulated_fetcher import SimulatedFetcher


def get_fetcher(settings: SurveySettings, rng: random.Random | None = None) -> StatuteFetcher:
    """
    Return the backend selected by ``settings.backend_mode``.

    Args:
        settings: Survey settings snapshot.
        rng: Random source for the simulated backend.

    Returns:
        StatuteFetcher instance.
    """
    mode = BackendMode(settings.backend_mode)
    logger.debug("Selecting {} backend", mode.value)
    if mode == BackendMode.simulated:
        return SimulatedFetcher(tuning=settings.simulation, rng=rng)
    if mode == BackendMode.ai_assisted:
        client = ClaudeJSONClient(
            api_key=settings.anthropic_api_key,
            model=settings.claude_model,
            timeout=settings.request_timeout_seconds,
        )
        return AIAssistedFetcher(client)
    return StructuredApiFetcher(
        openstates_api_key=settings.openstates_api_key,
        legiscan_api_key=settings.legiscan_api_key,
        timeout=settings.request_timeout_seconds,
    )
