"""Errors raised to callers of the survey scheduler.

Per-jurisdiction failures never appear here; they are recorded as data.
"""

from data.storage.session_store import SessionNotFoundError


class MaxConcurrentSurveysError(RuntimeError):
    """Pre-flight rejection: the running-survey ceiling is reached. No session was created."""

    def __init__(self, running: int, limit: int):
        super().__init__(
            f"Maximum of {limit} concurrent surveys reached ({running} running). "
            "Wait for one to finish or cancel it."
        )
        self.running = running
        self.limit = limit


__all__ = ["MaxConcurrentSurveysError", "SessionNotFoundError"]
