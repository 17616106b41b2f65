"""Statute backends: simulated, AI-assisted, and structured API."""

from fetchers.ai_fetcher import AIAssistedFetcher
from fetchers.api_fetcher import StructuredApiFetcher
from fetchers.base_fetcher import StatuteFetcher
from fetchers.errors import (
    BackendTimeoutError,
    BackendUnavailableError,
    FetchError,
    InvalidCredentialError,
    NoResultError,
    RateLimitError,
)
from fetchers.fetcher_factory import get_fetcher
from fetchers.simulated_fetcher import SimulatedFetcher

__all__ = [
    "AIAssistedFetcher",
    "BackendTimeoutError",
    "BackendUnavailableError",
    "FetchError",
    "InvalidCredentialError",
    "NoResultError",
    "RateLimitError",
    "SimulatedFetcher",
    "StatuteFetcher",
    "StructuredApiFetcher",
    "get_fetcher",
]
