"""Claude client wrapper returning JSON objects and raising typed FetchErrors.

Shared by the AI-assisted backend and the LLM content checker.
"""

import json
import re
from typing import Any

import anthropic
from anthropic import AsyncAnthropic
from loguru import logger

from fetchers.errors import (
    BackendTimeoutError,
    BackendUnavailableError,
    FetchError,
    InvalidCredentialError,
    NoResultError,
    RateLimitError,
)

_JSON_OBJECT = re.compile(r"\{.*\}", re.DOTALL)


def _retry_after(error: anthropic.APIStatusError) -> float | None:
    try:
        value = error.response.headers.get("retry-after")
        return float(value) if value else None
    except (AttributeError, ValueError):
        return None


def map_anthropic_error(error: Exception, jurisdiction: str | None = None) -> FetchError:
    """Translate an Anthropic SDK exception into the matching FetchError subclass."""
    if isinstance(error, anthropic.APITimeoutError):
        return BackendTimeoutError("Claude API request timed out", jurisdiction)
    if isinstance(error, anthropic.APIConnectionError):
        return BackendUnavailableError(f"Could not reach Claude API: {error}", jurisdiction)
    if isinstance(error, (anthropic.AuthenticationError, anthropic.PermissionDeniedError)):
        return InvalidCredentialError("Invalid or unauthorized Anthropic API key", jurisdiction)
    if isinstance(error, anthropic.RateLimitError):
        return RateLimitError("Claude API rate limit or quota exhausted", jurisdiction, _retry_after(error))
    if isinstance(error, anthropic.APIStatusError):
        if error.status_code >= 500:
            return BackendUnavailableError(f"Claude API error {error.status_code}", jurisdiction)
        return FetchError(f"Claude API error {error.status_code}: {error.message}", jurisdiction)
    return FetchError(f"Claude API call failed: {error}", jurisdiction)


def parse_json_object(text: str) -> dict[str, Any] | None:
    """Extract the first JSON object from a model reply, or None."""
    match = _JSON_OBJECT.search(text or "")
    if not match:
        return None
    try:
        obj = json.loads(match.group(0))
    except json.JSONDecodeError:
        return None
    return obj if isinstance(obj, dict) else None


class ClaudeJSONClient:
    """Thin async wrapper around the Anthropic messages API."""

    def __init__(
        self,
        api_key: str | None,
        model: str,
        timeout: float = 30.0,
        client: AsyncAnthropic | None = None,
    ):
        """
        Initialize the client.

        Args:
            api_key: Anthropic API key; calls raise InvalidCredentialError when missing.
            model: Claude model name.
            timeout: Per-request timeout in seconds.
            client: Pre-built AsyncAnthropic (tests inject a mock).
        """
        self.model = model
        self._api_key = api_key
        self._client = client
        if self._client is None and api_key:
            self._client = AsyncAnthropic(api_key=api_key, timeout=timeout)
        if self._client is None:
            logger.warning("ANTHROPIC_API_KEY not set - Claude API calls will fail")

    async def complete_json(
        self,
        system: str,
        prompt: str,
        jurisdiction: str | None = None,
        max_tokens: int = 1024,
    ) -> dict[str, Any]:
        """
        Send one prompt and return the JSON object in the reply.

        Raises:
            InvalidCredentialError: No API key configured.
            NoResultError: Reply held no JSON object.
            FetchError: Any other mapped API failure.
        """
        if self._client is None:
            raise InvalidCredentialError("AI-assisted mode requires an Anthropic API key", jurisdiction)
        try:
            message = await self._client.messages.create(
                model=self.model,
                max_tokens=max_tokens,
                system=system,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            raise map_anthropic_error(e, jurisdiction) from e

        text = message.content[0].text if message.content else ""
        obj = parse_json_object(text)
        if obj is None:
            raise NoResultError("Model reply did not contain a statute record", jurisdiction)
        return obj

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.close()
