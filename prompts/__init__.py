"""Prompt templates for statute retrieval and verification."""

from prompts.statute_prompts import (
    RETRIEVAL_SYSTEM_PROMPT,
    VERIFICATION_SYSTEM_PROMPT,
    build_retrieval_prompt,
    build_verification_prompt,
)

__all__ = [
    "RETRIEVAL_SYSTEM_PROMPT",
    "VERIFICATION_SYSTEM_PROMPT",
    "build_retrieval_prompt",
    "build_verification_prompt",
]
