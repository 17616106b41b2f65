"""Storage layer: in-process survey session store with JSON history."""

from data.storage.session_store import SessionNotFoundError, SessionStore

__all__ = ["SessionNotFoundError", "SessionStore"]
