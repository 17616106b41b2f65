"""Trust guardrails for retrieved statutes."""

from guardrails.trust_verifier import (
    ContentCheck,
    ContentChecker,
    LLMContentChecker,
    SimulatedContentChecker,
    TrustVerifier,
    classify,
    get_verifier,
    is_authoritative_url,
)

__all__ = [
    "ContentCheck",
    "ContentChecker",
    "LLMContentChecker",
    "SimulatedContentChecker",
    "TrustVerifier",
    "classify",
    "get_verifier",
    "is_authoritative_url",
]
