"""Survey scheduler: fan one query out to 50 jurisdictions in sequential batches.

Each jurisdiction in a batch is dispatched concurrently (fetch -> verify ->
record); batches run one after another so at most ``batch_size`` backend calls
are in flight per survey. Per-jurisdiction failures are recorded as data and
never abort the survey. Cancellation is cooperative and checked between batches.
"""

import asyncio
import random
import time

from loguru import logger

from config.settings import BackendMode, SurveySettings
from data.schemas.jurisdiction import ALL_JURISDICTION_CODES, require_jurisdiction
from data.schemas.statute import FailureResult, FetchFailure, Statute, StatuteResult, TrustLevel
from data.schemas.survey import SurveySession, SurveyStatus
from data.storage.session_store import SessionNotFoundError, SessionStore
from fetchers.base_fetcher import StatuteFetcher
from fetchers.fetcher_factory import get_fetcher
from guardrails.trust_verifier import TrustVerifier, get_verifier
from pipelines.survey.errors import MaxConcurrentSurveysError
from pipelines.survey.query_builder import build_queries, build_query
from pipelines.survey.suggester import GENERIC_FALLBACK, SuggestionGenerator

ResultEntryValue = StatuteResult | FailureResult


def partition(codes: tuple[str, ...] | list[str], batch_size: int) -> list[list[str]]:
    """Split codes into consecutive batches, preserving order."""
    if batch_size < 1:
        raise ValueError("batch_size must be >= 1")
    return [list(codes[i : i + batch_size]) for i in range(0, len(codes), batch_size)]


class SurveyContext:
    """Per-survey collaborators built from one settings snapshot."""

    def __init__(
        self,
        settings: SurveySettings,
        fetcher: StatuteFetcher,
        verifier: TrustVerifier | None,
        owns_fetcher: bool,
        owns_verifier: bool,
    ):
        self.settings = settings
        self.fetcher = fetcher
        self.verifier = verifier
        self.owns_fetcher = owns_fetcher
        self.owns_verifier = owns_verifier

    async def aclose(self) -> None:
        if self.owns_fetcher:
            await self.fetcher.aclose()
        if self.owns_verifier and self.verifier is not None:
            await self.verifier.aclose()


class SurveyHandle:
    """
    Handle to a scheduled survey.

    ``cancel()`` requests cooperative cancellation: the batch in flight finishes
    and is recorded, later batches are skipped.
    """

    def __init__(self, scheduler: "SurveyScheduler", session_id: int, task: asyncio.Task):
        self._scheduler = scheduler
        self.session_id = session_id
        self.task = task

    def cancel(self) -> bool:
        """Mark the session cancelled. Returns False if it had already finished."""
        return self._scheduler.cancel(self.session_id)

    def done(self) -> bool:
        return self.task.done()

    async def wait(self) -> SurveySession:
        """Wait for the survey to reach a terminal state and return a snapshot."""
        await asyncio.shield(self.task)
        return self._scheduler.store.get(self.session_id)


class SurveyScheduler:
    """
    Drives survey sessions in a SessionStore to a terminal state.

    Collaborators not passed in are built per survey from the settings snapshot
    (``get_fetcher`` / ``get_verifier``), so a settings change never affects a
    survey that is already running.
    """

    def __init__(
        self,
        store: SessionStore,
        settings: SurveySettings | None = None,
        fetcher: StatuteFetcher | None = None,
        verifier: TrustVerifier | None = None,
        suggester: SuggestionGenerator | None = None,
        max_concurrent: int | None = None,
        rng: random.Random | None = None,
    ):
        """
        Initialize the scheduler.

        Args:
            store: Session store written as dispatches resolve.
            settings: Default settings; each survey takes its own snapshot.
            fetcher: Backend override (tests); otherwise built from settings.
            verifier: Trust verifier override; otherwise built from settings.
            suggester: Suggestion generator for failed jurisdictions.
            max_concurrent: Running-survey ceiling; default from settings (5).
            rng: Seed source for the simulated backend and content checker.
        """
        self.store = store
        self.settings = settings or SurveySettings()
        self.fetcher = fetcher
        self.verifier = verifier
        self.suggester = suggester or SuggestionGenerator()
        self.max_concurrent = max_concurrent or self.settings.max_concurrent_surveys
        self.rng = rng
        self._handles: dict[int, SurveyHandle] = {}
        self._snapshots: dict[int, SurveySettings] = {}

    # ---- survey lifecycle ----

    def start_survey(self, query: str, settings: SurveySettings | None = None) -> SurveyHandle:
        """
        Create a running session and schedule it on the current event loop.

        Args:
            query: Natural-language legal query.
            settings: Settings to snapshot for this survey (default: scheduler settings).

        Returns:
            SurveyHandle for the new session.

        Raises:
            ValueError: Empty query.
            MaxConcurrentSurveysError: Ceiling reached; no session was created.
        """
        query = self._validate_query(query)
        # Raises RuntimeError outside a running loop, before any session exists.
        loop = asyncio.get_running_loop()
        snapshot = (settings or self.settings).snapshot()
        session_id = self.store.create_session_within_limit(query, self.max_concurrent)
        if session_id is None:
            running = self.store.running_count()
            logger.warning("Rejected survey '{}': {} of {} surveys running", query[:50], running, self.max_concurrent)
            raise MaxConcurrentSurveysError(running, self.max_concurrent)
        self._snapshots[session_id] = snapshot
        logger.info("Started survey #{} ({}): {}", session_id, snapshot.backend_mode.value, query[:80])

        task = loop.create_task(
            self.run_survey(query, session_id, settings=snapshot),
            name=f"survey-{session_id}",
        )
        handle = SurveyHandle(self, session_id, task)
        self._handles[session_id] = handle
        task.add_done_callback(lambda _: self._forget(session_id))
        return handle

    async def run_survey(
        self,
        query: str,
        session_id: int,
        backend_mode: BackendMode | str | None = None,
        settings: SurveySettings | None = None,
    ) -> None:
        """
        Drive an existing running session to a terminal state.

        Errors are recorded into the session; only the concurrency pre-flight
        and malformed input raise.

        Args:
            query: Natural-language legal query.
            session_id: Session created by start_survey or store.create_session.
            backend_mode: Backend override for this survey.
            settings: Settings snapshot (default: scheduler settings).
        """
        query = self._validate_query(query)
        snapshot = settings or self._snapshots.get(session_id) or self.settings.snapshot()
        if backend_mode is not None:
            snapshot = snapshot.snapshot(backend_mode=BackendMode(backend_mode))
        self._snapshots[session_id] = snapshot

        running = self.store.running_count()
        if running > self.max_concurrent:
            self.store.set_status(session_id, SurveyStatus.failed)
            logger.warning("Survey #{} rejected: {} surveys running (max {})", session_id, running, self.max_concurrent)
            raise MaxConcurrentSurveysError(running, self.max_concurrent)

        ctx = self._build_context(snapshot)
        successes = 0
        errors = 0
        start = time.perf_counter()
        try:
            queries = build_queries(query)
            batches = partition(ALL_JURISDICTION_CODES, snapshot.batch_size)
            for index, batch in enumerate(batches, start=1):
                if self._is_cancelled(session_id):
                    logger.info("Survey #{} cancelled before batch {}/{}", session_id, index, len(batches))
                    return
                logger.debug("Survey #{} batch {}/{}: {}", session_id, index, len(batches), ",".join(batch))
                outcomes = await asyncio.gather(
                    *(self._dispatch(ctx, session_id, query, code, queries[code]) for code in batch)
                )
                successes += sum(1 for ok in outcomes if ok)
                errors += sum(1 for ok in outcomes if not ok)
                if index < len(batches) and snapshot.inter_batch_delay_seconds > 0:
                    await asyncio.sleep(snapshot.inter_batch_delay_seconds)

            if self._is_cancelled(session_id):
                logger.info("Survey #{} cancelled after its last batch", session_id)
                return
            self.store.set_status(
                session_id,
                SurveyStatus.completed,
                success_count=successes,
                error_count=errors,
            )
            logger.info(
                "Survey #{} completed in {:.1f}s ({} ok, {} errors)",
                session_id,
                time.perf_counter() - start,
                successes,
                errors,
            )
        except Exception as e:
            logger.exception("Survey #{} failed: {}", session_id, e)
            try:
                self.store.set_status(session_id, SurveyStatus.failed, success_count=successes, error_count=errors)
            except SessionNotFoundError:
                logger.info("Survey #{} was deleted before it could be marked failed", session_id)
        finally:
            await ctx.aclose()

    def cancel(self, session_id: int) -> bool:
        """
        Request cancellation of a running survey.

        Returns:
            True if the session moved to cancelled; False if it had already finished.
        """
        cancelled = self.store.mark_cancelled(session_id)
        if cancelled:
            logger.info("Cancellation requested for survey #{}", session_id)
        return cancelled

    def get_handle(self, session_id: int) -> SurveyHandle | None:
        return self._handles.get(session_id)

    async def wait_all(self) -> None:
        """Wait for every scheduled survey task to finish."""
        tasks = [h.task for h in self._handles.values() if not h.task.done()]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

    # ---- single-jurisdiction retry ----

    async def retry_jurisdiction(self, session_id: int, jurisdiction: str, query: str | None = None) -> ResultEntryValue:
        """
        Re-run one jurisdiction and overwrite its entry.

        Session status and aggregate counts are left untouched.

        Args:
            session_id: Existing session.
            jurisdiction: 2-letter state code.
            query: Replacement query (e.g. a suggestion); defaults to the session query.

        Returns:
            The entry written to the session.

        Raises:
            SessionNotFoundError: Unknown session.
            ValueError: Unknown jurisdiction or empty query.
        """
        session = self.store.get(session_id)
        state = require_jurisdiction(jurisdiction)
        user_query = self._validate_query(query if query is not None else session.query)
        snapshot = self._snapshots.get(session_id) or self.settings.snapshot()

        ctx = self._build_context(snapshot)
        try:
            entry = await self._resolve(ctx, session_id, user_query, state.code, build_query(user_query, state))
        finally:
            await ctx.aclose()
        self.store.set_result(session_id, state.code, entry, overwrite=True)
        logger.info("Retried {} in survey #{}: {}", state.code, session_id, entry.kind)
        return entry

    # ---- dispatch ----

    async def _dispatch(self, ctx: SurveyContext, session_id: int, user_query: str, code: str, query: str) -> bool:
        """Resolve one jurisdiction and record it immediately. Returns True on success."""
        entry = await self._resolve(ctx, session_id, user_query, code, query)
        try:
            self.store.set_result(session_id, code, entry)
        except SessionNotFoundError:
            logger.info("[{}] Survey #{} was deleted, dropping result", code, session_id)
        return entry.kind == "ok"

    async def _resolve(
        self,
        ctx: SurveyContext,
        session_id: int,
        user_query: str,
        code: str,
        query: str,
    ) -> ResultEntryValue:
        try:
            statute = await ctx.fetcher.fetch(code, query)
        except Exception as e:
            message = getattr(e, "message", None) or str(e) or e.__class__.__name__
            logger.warning("[{}] Survey #{} fetch failed: {}", code, session_id, message)
            suggestions = await self._suggest(user_query, code, message)
            return FailureResult(failure=FetchFailure(message=message, suggestions=suggestions))

        if ctx.verifier is not None and not ctx.fetcher.assigns_trust:
            statute = await self._verify(ctx.verifier, statute, user_query)
        return StatuteResult(statute=statute)

    async def _verify(self, verifier: TrustVerifier, statute: Statute, user_query: str) -> Statute:
        try:
            verification = await verifier.verify(statute, user_query)
        except Exception as e:
            logger.warning("[{}] Verifier error, keeping statute as unverified: {}", statute.jurisdiction, e)
            return statute.with_trust(TrustLevel.unverified)
        return statute.with_trust(verification.trust_level)

    async def _suggest(self, user_query: str, code: str, message: str) -> list[str]:
        try:
            suggestions = await self.suggester.suggest(user_query, code, message)
        except Exception as e:
            logger.warning("[{}] Suggestion generator failed: {}", code, e)
            return [GENERIC_FALLBACK]
        return suggestions or [GENERIC_FALLBACK]

    # ---- helpers ----

    def _build_context(self, snapshot: SurveySettings) -> SurveyContext:
        fetcher = self.fetcher
        owns_fetcher = fetcher is None
        if fetcher is None:
            fetcher = get_fetcher(snapshot, rng=self.rng)
        verifier = None
        owns_verifier = False
        if snapshot.auto_verify:
            verifier = self.verifier
            if verifier is None:
                verifier = get_verifier(snapshot, rng=self.rng)
                owns_verifier = True
        return SurveyContext(snapshot, fetcher, verifier, owns_fetcher, owns_verifier)

    def _is_cancelled(self, session_id: int) -> bool:
        # A deleted session counts as cancelled.
        try:
            return self.store.get_status(session_id) == SurveyStatus.cancelled
        except SessionNotFoundError:
            return True

    def _forget(self, session_id: int) -> None:
        """Drop the finished task and any snapshots whose session left the store."""
        self._handles.pop(session_id, None)
        for sid in [s for s in self._snapshots if not self.store.exists(s)]:
            del self._snapshots[sid]

    @staticmethod
    def _validate_query(query: str) -> str:
        query = " ".join((query or "").split())
        if not query:
            raise ValueError("Survey query must not be empty")
        return query
