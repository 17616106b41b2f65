"""Session store: in-process, observable record of survey sessions.

Writers (one scheduler per session, many concurrent jurisdiction dispatches)
and readers (API, CLI, subscribers) share one lock; reads return snapshots so
a reader can iterate a session's results while dispatches keep writing.
"""

import json
import threading
from collections.abc import Callable
from pathlib import Path

from loguru import logger

from data.schemas.statute import FailureResult, StatuteResult
from data.schemas.survey import SurveyNotification, SurveySession, SurveyStatus, utcnow

FIRST_SESSION_ID = 101
MAX_HISTORY = 50

Subscriber = Callable[[int], None]


class SessionNotFoundError(KeyError):
    """Raised when a session id is not in the store."""

    def __init__(self, session_id: int):
        super().__init__(session_id)
        self.session_id = session_id

    def __str__(self) -> str:
        return f"Survey session #{self.session_id} not found"


class SessionStore:
    """
    Mutable record of survey sessions keyed by id.

    Every mutation is visible to the next read and is announced to subscribers
    with the affected session id.
    """

    def __init__(self, max_history: int = MAX_HISTORY):
        """
        Initialize an empty store.

        Args:
            max_history: Maximum sessions retained; oldest finished sessions are dropped first.
        """
        self.max_history = max_history
        self._lock = threading.RLock()
        self._sessions: dict[int, SurveySession] = {}
        self._next_id = FIRST_SESSION_ID
        self._subscribers: list[Subscriber] = []
        self.notifications: list[SurveyNotification] = []

    # ---- reads ----

    def get(self, session_id: int) -> SurveySession:
        """Return a snapshot of the session; raises SessionNotFoundError."""
        with self._lock:
            return self._require(session_id).model_copy(deep=True)

    def get_status(self, session_id: int) -> SurveyStatus:
        """Current status without copying the session."""
        with self._lock:
            return self._require(session_id).status

    def exists(self, session_id: int) -> bool:
        with self._lock:
            return session_id in self._sessions

    def list_sessions(self) -> list[SurveySession]:
        """Snapshots of all sessions, newest first."""
        with self._lock:
            return [s.model_copy(deep=True) for s in sorted(self._sessions.values(), key=lambda s: -s.id)]

    def running_count(self) -> int:
        """Number of sessions currently running (the concurrency ledger)."""
        with self._lock:
            return sum(1 for s in self._sessions.values() if s.status == SurveyStatus.running)

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)

    # ---- writes ----

    def create_session(self, query: str) -> int:
        """Create a running session and return its id."""
        with self._lock:
            session_id = self._next_id
            self._next_id += 1
            self._sessions[session_id] = SurveySession(id=session_id, query=query)
            self._trim_history()
        logger.debug("Created survey session #{} for query '{}'", session_id, query[:50])
        self._notify(session_id)
        return session_id

    def create_session_within_limit(self, query: str, max_running: int) -> int | None:
        """
        Create a session only if fewer than ``max_running`` sessions are running.

        The count and the insert happen under one lock acquisition so simultaneous
        starts cannot overshoot the ceiling.

        Returns:
            New session id, or None when the ceiling is reached.
        """
        with self._lock:
            if self.running_count() >= max_running:
                return None
            return self.create_session(query)

    def set_result(
        self,
        session_id: int,
        jurisdiction: str,
        entry: StatuteResult | FailureResult,
        overwrite: bool = False,
    ) -> bool:
        """
        Record one jurisdiction's entry.

        An existing entry is only replaced when ``overwrite`` is True (explicit retry).

        Returns:
            True if the entry was written.
        """
        with self._lock:
            session = self._require(session_id)
            if jurisdiction in session.results and not overwrite:
                logger.warning(
                    "Ignoring second write for {} in survey #{} (entry already recorded)",
                    jurisdiction,
                    session_id,
                )
                return False
            session.results[jurisdiction] = entry
        self._notify(session_id)
        return True

    def set_status(
        self,
        session_id: int,
        status: SurveyStatus,
        success_count: int | None = None,
        error_count: int | None = None,
    ) -> bool:
        """
        Move a running session to a terminal status, optionally recording counts.

        Terminal states are final: a second transition is ignored.

        Returns:
            True if the transition happened.
        """
        status = SurveyStatus(status)
        if not status.is_terminal:
            raise ValueError("Sessions can only transition to a terminal status")
        with self._lock:
            session = self._require(session_id)
            if session.status.is_terminal:
                logger.warning(
                    "Survey #{} already {}; ignoring transition to {}",
                    session_id,
                    session.status.value,
                    status.value,
                )
                return False
            session.status = status
            session.completed_at = utcnow()
            if success_count is not None:
                session.success_count = success_count
            if error_count is not None:
                session.error_count = error_count
            self.notifications.append(self._notification_for(session))
        logger.info("Survey #{} -> {}", session_id, status.value)
        self._notify(session_id)
        return True

    def mark_cancelled(self, session_id: int) -> bool:
        """Request cancellation; a no-op for sessions already finished."""
        return self.set_status(session_id, SurveyStatus.cancelled)

    def delete_session(self, session_id: int) -> None:
        with self._lock:
            self._require(session_id)
            del self._sessions[session_id]
        self._notify(session_id)

    # ---- observation ----

    def subscribe(self, callback: Subscriber) -> Callable[[], None]:
        """
        Register a callback invoked with the session id after every mutation.

        Returns:
            A function that removes the subscription.
        """
        with self._lock:
            self._subscribers.append(callback)

        def unsubscribe() -> None:
            with self._lock:
                if callback in self._subscribers:
                    self._subscribers.remove(callback)

        return unsubscribe

    def _notify(self, session_id: int) -> None:
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(session_id)
            except Exception as e:
                logger.warning("Session subscriber failed for survey #{}: {}", session_id, e)

    # ---- persistence ----

    def save(self, path: Path) -> None:
        """Write all sessions to a JSON history file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        data = [s.model_dump(mode="json") for s in self.list_sessions()]
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
        logger.info("Saved {} survey sessions to {}", len(data), path)

    def load(self, path: Path) -> int:
        """
        Load sessions from a JSON history file, replacing current contents.

        Sessions saved while running cannot resume; they are loaded as failed.

        Returns:
            Number of sessions loaded.
        """
        path = Path(path)
        if not path.exists():
            logger.warning("Survey history not found: {}", path)
            return 0
        with open(path, encoding="utf-8") as f:
            raw = json.load(f)
        sessions = [SurveySession.model_validate(item) for item in raw]
        with self._lock:
            self._sessions = {}
            for session in sessions:
                if session.status == SurveyStatus.running:
                    session.status = SurveyStatus.failed
                    session.completed_at = utcnow()
                    logger.warning("Survey #{} was interrupted; loaded as failed", session.id)
                self._sessions[session.id] = session
            self._next_id = max([FIRST_SESSION_ID - 1, *self._sessions]) + 1
            self._trim_history()
        logger.info("Loaded {} survey sessions from {}", len(sessions), path)
        return len(sessions)

    # ---- internals ----

    def _require(self, session_id: int) -> SurveySession:
        session = self._sessions.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    def _trim_history(self) -> None:
        excess = len(self._sessions) - self.max_history
        if excess <= 0:
            return
        finished = sorted(
            (s.id for s in self._sessions.values() if s.status.is_terminal),
        )
        for session_id in finished[:excess]:
            del self._sessions[session_id]

    @staticmethod
    def _notification_for(session: SurveySession) -> SurveyNotification:
        if session.status == SurveyStatus.completed:
            return SurveyNotification(
                survey_id=session.id,
                kind="success",
                title=f"Survey #{session.id} Completed",
                description=f"{session.success_count} states found, {session.error_count} errors.",
            )
        if session.status == SurveyStatus.cancelled:
            return SurveyNotification(
                survey_id=session.id,
                kind="info",
                title=f"Survey #{session.id} Cancelled",
                description="The 50-state survey was stopped by the user.",
            )
        return SurveyNotification(
            survey_id=session.id,
            kind="error",
            title=f"Survey #{session.id} Failed",
            description="The survey stopped unexpectedly; partial results were kept.",
        )
