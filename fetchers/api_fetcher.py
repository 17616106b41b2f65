"""Structured API backend: Open States v3, or LegiScan when only that key is set.

Failures surface through each API's status codes and are mapped onto the
same FetchError classes as the other backends.
"""

import httpx
from loguru import logger

from data.schemas.jurisdiction import Jurisdiction
from data.schemas.statute import Statute
from fetchers.base_fetcher import StatuteFetcher
from fetchers.errors import (
    BackendTimeoutError,
    BackendUnavailableError,
    FetchError,
    InvalidCredentialError,
    NoResultError,
    RateLimitError,
)

OPENSTATES_URL = "https://v3.openstates.org/bills"
LEGISCAN_URL = "https://api.legiscan.com/"
OPENSTATES_CONFIDENCE = 95
LEGISCAN_DEFAULT_CONFIDENCE = 90


def raise_for_api_status(response: httpx.Response, provider: str, jurisdiction: str | None = None) -> None:
    """
    Raise the FetchError matching an HTTP error status; return for 2xx.

    Args:
        response: HTTP response.
        provider: API name used in messages.
        jurisdiction: State code for error context.
    """
    status = response.status_code
    if response.is_success:
        return
    if status in (401, 403):
        raise InvalidCredentialError(f"Invalid {provider} API key", jurisdiction)
    if status == 429:
        retry_after = response.headers.get("Retry-After")
        try:
            seconds = float(retry_after) if retry_after else None
        except ValueError:
            seconds = None
        raise RateLimitError(f"{provider} API rate limited", jurisdiction, seconds)
    if status == 402:
        raise RateLimitError(f"{provider} API quota or credits exhausted", jurisdiction)
    if status >= 500:
        raise BackendUnavailableError(f"{provider} API unavailable (HTTP {status})", jurisdiction)
    raise FetchError(f"{provider} API error: HTTP {status} {response.reason_phrase}", jurisdiction)


class StructuredApiFetcher(StatuteFetcher):
    """Statute lookup through a structured legal-data API."""

    name = "structured-api"

    def __init__(
        self,
        openstates_api_key: str | None = None,
        legiscan_api_key: str | None = None,
        timeout: float = 30.0,
        client: httpx.AsyncClient | None = None,
    ):
        """
        Initialize the backend.

        Args:
            openstates_api_key: Open States key (preferred when both are set).
            legiscan_api_key: LegiScan key.
            timeout: HTTP timeout in seconds.
            client: Pre-built AsyncClient (tests pass one with a MockTransport).
        """
        self.openstates_api_key = openstates_api_key
        self.legiscan_api_key = legiscan_api_key
        self._client = client or httpx.AsyncClient(
            timeout=timeout,
            headers={"User-Agent": "StateSurvey/1.0", "Accept": "application/json"},
        )
        if not (openstates_api_key or legiscan_api_key):
            logger.warning("No Open States or LegiScan key set - structured API calls will fail")

    @property
    def provider(self) -> str:
        if self.openstates_api_key:
            return "Open States"
        if self.legiscan_api_key:
            return "LegiScan"
        return "none"

    async def _fetch(self, jurisdiction: Jurisdiction, query: str) -> Statute:
        if self.openstates_api_key:
            return await self._fetch_openstates(jurisdiction, query)
        if self.legiscan_api_key:
            return await self._fetch_legiscan(jurisdiction, query)
        raise InvalidCredentialError(
            "Structured API mode requires an Open States or LegiScan API key",
            jurisdiction.code,
        )

    async def _get(self, url: str, params: dict, headers: dict | None, provider: str, code: str) -> httpx.Response:
        try:
            response = await self._client.get(url, params=params, headers=headers)
        except httpx.TimeoutException as e:
            raise BackendTimeoutError(f"{provider} API request timed out", code) from e
        except httpx.TransportError as e:
            raise BackendUnavailableError(f"Could not reach {provider} API: {e}", code) from e
        raise_for_api_status(response, provider, code)
        return response

    async def _fetch_openstates(self, jurisdiction: Jurisdiction, query: str) -> Statute:
        code = jurisdiction.code
        response = await self._get(
            OPENSTATES_URL,
            params={"jurisdiction": jurisdiction.name, "q": query, "sort": "updated_desc", "per_page": 1},
            headers={"X-API-KEY": self.openstates_api_key},
            provider="Open States",
            code=code,
        )
        results = response.json().get("results") or []
        if not results:
            raise NoResultError(f'No statutes found for "{query}" in {code} via Open States', code)
        bill = results[0]
        return Statute(
            jurisdiction=code,
            citation=bill.get("identifier") or "Unknown Citation",
            text_excerpt=bill.get("title") or "No text available",
            effective_date=(bill.get("updated_at") or "Unknown")[:10],
            confidence_score=OPENSTATES_CONFIDENCE,
            source_url=bill.get("openstates_url") or f"https://openstates.org/{code.lower()}/",
        )

    async def _fetch_legiscan(self, jurisdiction: Jurisdiction, query: str) -> Statute:
        code = jurisdiction.code
        response = await self._get(
            LEGISCAN_URL,
            params={"key": self.legiscan_api_key, "op": "getSearch", "state": code, "query": query},
            headers=None,
            provider="LegiScan",
            code=code,
        )
        data = response.json()
        if data.get("status") == "ERROR":
            message = (data.get("alert") or {}).get("message") or "Unknown error"
            if "key" in message.lower():
                raise InvalidCredentialError(f"LegiScan API error: {message}", code)
            raise FetchError(f"LegiScan API error: {message}", code)

        # searchresult is an object keyed "0", "1", ... plus a "summary" entry
        search = data.get("searchresult") or {}
        first_key = next((k for k in search if k != "summary" and k.isdigit()), None)
        doc = search.get(first_key) if first_key is not None else None
        if not doc:
            raise NoResultError(f'No statutes found for "{query}" in {code} via LegiScan', code)

        relevance = doc.get("relevance", LEGISCAN_DEFAULT_CONFIDENCE)
        return Statute(
            jurisdiction=code,
            citation=doc.get("bill_number") or "Unknown Citation",
            text_excerpt=doc.get("title") or "No text available",
            effective_date=doc.get("last_action_date") or "Unknown",
            confidence_score=max(0, min(100, int(relevance))),
            source_url=doc.get("url") or f"https://legiscan.com/{code}/bill/{doc.get('bill_number', '')}",
        )

    async def aclose(self) -> None:
        await self._client.aclose()
