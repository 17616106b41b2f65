"""Fetch errors raised by statute backends.

Each subclass names one failure class so callers can tell retryable
conditions (timeout, network, quota) from terminal ones (bad credential).
"""


class FetchError(Exception):
    """A single jurisdiction's fetch failed."""

    retryable = False

    def __init__(self, message: str, jurisdiction: str | None = None):
        super().__init__(message)
        self.message = message
        self.jurisdiction = jurisdiction


class BackendTimeoutError(FetchError):
    """Upstream did not answer within the backend's own timeout."""

    retryable = True


class BackendUnavailableError(FetchError):
    """Network failure or upstream 5xx."""

    retryable = True


class InvalidCredentialError(FetchError):
    """Missing, invalid, or unauthorized API key."""


class RateLimitError(FetchError):
    """Rate limit or quota exhausted."""

    retryable = True

    def __init__(self, message: str, jurisdiction: str | None = None, retry_after: float | None = None):
        super().__init__(message, jurisdiction)
        self.retry_after = retry_after


class NoResultError(FetchError):
    """Upstream answered but had no usable statute."""
