"""Tests for the survey scheduler: batching, failure isolation, cancellation, ceiling, retry."""

import asyncio
import random
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from config.settings import SimulationTuning, SurveySettings
from data.schemas.jurisdiction import ALL_JURISDICTION_CODES, Jurisdiction
from data.schemas.statute import Statute, TrustLevel
from data.schemas.survey import SurveyStatus
from data.storage.session_store import SessionNotFoundError, SessionStore
from fetchers.base_fetcher import StatuteFetcher
from fetchers.errors import BackendTimeoutError, InvalidCredentialError
from fetchers.simulated_fetcher import SimulatedFetcher
from guardrails.trust_verifier import ContentCheck, ContentChecker, TrustVerifier
from pipelines.survey.errors import MaxConcurrentSurveysError
from pipelines.survey.scheduler import SurveyScheduler, partition
from pipelines.survey.suggester import SuggestionGenerator

QUERY = "Statute of limitations for fraud"
FIRST_BATCH = list(ALL_JURISDICTION_CODES[:5])


class StubFetcher(StatuteFetcher):
    """Backend that succeeds with authoritative sources unless told otherwise."""

    name = "stub"

    def __init__(self, fail_for: set[str] | None = None, gate: asyncio.Event | None = None, gate_codes: set[str] | None = None):
        self.fail_for = fail_for or set()
        self.gate = gate
        self.gate_codes = gate_codes
        self.calls: list[str] = []
        self.queries: list[str] = []
        self.in_flight = 0
        self.max_in_flight = 0

    async def _fetch(self, jurisdiction: Jurisdiction, query: str) -> Statute:
        code = jurisdiction.code
        self.calls.append(code)
        self.queries.append(query)
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.gate is not None and (self.gate_codes is None or code in self.gate_codes):
                await self.gate.wait()
            await asyncio.sleep(0)
            if code in self.fail_for:
                raise BackendTimeoutError(f"Timeout waiting for {code} legislature server", code)
            return Statute(
                jurisdiction=code,
                citation=f"{code} Code § 1.1",
                text_excerpt="The limitation period is 3 years.",
                effective_date="2024-01-01",
                confidence_score=90,
                source_url=f"https://legislature.{code.lower()}.gov/statutes",
                trust_level=TrustLevel.unverified,
            )
        finally:
            self.in_flight -= 1


class FixedChecker(ContentChecker):
    def __init__(self, repealed: bool = False):
        self.repealed = repealed

    async def check(self, statute: Statute, query: str = "") -> ContentCheck:
        return ContentCheck(is_repealed=self.repealed)


def make_scheduler(
    fetcher: StatuteFetcher | None = None,
    store: SessionStore | None = None,
    verifier: TrustVerifier | None = None,
    **settings,
) -> SurveyScheduler:
    return SurveyScheduler(
        store if store is not None else SessionStore(),
        settings=SurveySettings(**settings),
        fetcher=fetcher if fetcher is not None else StubFetcher(),
        verifier=verifier if verifier is not None else TrustVerifier(FixedChecker()),
        suggester=SuggestionGenerator(delay_seconds=0),
    )


async def wait_until(predicate, attempts: int = 1000) -> None:
    for _ in range(attempts):
        if predicate():
            return
        await asyncio.sleep(0)
    raise AssertionError("condition not reached")


def test_partition_preserves_order() -> None:
    batches = partition(ALL_JURISDICTION_CODES, 5)
    assert len(batches) == 10
    assert batches[0] == FIRST_BATCH
    assert [c for b in batches for c in b] == list(ALL_JURISDICTION_CODES)
    assert [len(b) for b in partition(ALL_JURISDICTION_CODES, 7)] == [7] * 7 + [1]
    with pytest.raises(ValueError):
        partition(ALL_JURISDICTION_CODES, 0)


@pytest.mark.asyncio
async def test_all_success_scenario() -> None:
    scheduler = make_scheduler()
    session = await scheduler.start_survey(QUERY).wait()
    assert session.status == SurveyStatus.completed
    assert session.success_count == 50
    assert session.error_count == 0
    assert session.completed_at is not None
    assert set(session.results) == set(ALL_JURISDICTION_CODES)
    assert all(e.kind == "ok" and e.statute.trust_level == TrustLevel.verified for e in session.results.values())


@pytest.mark.asyncio
async def test_one_deterministic_failure_scenario() -> None:
    tuning = SimulationTuning(min_delay_seconds=0, max_delay_seconds=0, failure_rate=0, ambiguous_rate=0)
    fetcher = SimulatedFetcher(tuning=tuning, rng=random.Random(1), fail_for=["WY"])
    session = await make_scheduler(fetcher).start_survey(QUERY).wait()
    assert session.status == SurveyStatus.completed
    assert session.success_count == 49
    assert session.error_count == 1
    failed = session.results["WY"]
    assert failed.kind == "error"
    assert 1 <= len(failed.failure.suggestions) <= 3


@pytest.mark.asyncio
async def test_sibling_failure_does_not_abort_batch() -> None:
    fetcher = StubFetcher(fail_for={FIRST_BATCH[0]})
    session = await make_scheduler(fetcher).start_survey(QUERY).wait()
    assert session.results[FIRST_BATCH[0]].kind == "error"
    assert all(session.results[c].kind == "ok" for c in FIRST_BATCH[1:])
    assert session.results[FIRST_BATCH[0]].failure.message.startswith("Timeout")


@pytest.mark.asyncio
@pytest.mark.parametrize("batch_size", [1, 5, 7, 50])
async def test_in_flight_calls_bounded_by_batch_size(batch_size: int) -> None:
    fetcher = StubFetcher()
    session = await make_scheduler(fetcher, batch_size=batch_size).start_survey(QUERY).wait()
    assert session.success_count == 50
    assert fetcher.max_in_flight == batch_size
    assert fetcher.calls == list(ALL_JURISDICTION_CODES)


@pytest.mark.asyncio
async def test_batches_run_in_sequence() -> None:
    gate = asyncio.Event()
    fetcher = StubFetcher(gate=gate, gate_codes=set(FIRST_BATCH))
    handle = make_scheduler(fetcher).start_survey(QUERY)
    await wait_until(lambda: len(fetcher.calls) == 5)
    for _ in range(20):
        await asyncio.sleep(0)
    assert fetcher.calls == FIRST_BATCH
    gate.set()
    session = await handle.wait()
    assert session.status == SurveyStatus.completed


@pytest.mark.asyncio
async def test_cancel_after_first_batch_keeps_only_first_batch() -> None:
    gate = asyncio.Event()
    fetcher = StubFetcher(gate=gate, gate_codes=set(FIRST_BATCH))
    scheduler = make_scheduler(fetcher)
    handle = scheduler.start_survey(QUERY)
    await wait_until(lambda: len(fetcher.calls) == 5)

    assert handle.cancel() is True
    gate.set()
    session = await handle.wait()

    assert session.status == SurveyStatus.cancelled
    assert set(session.results) == set(FIRST_BATCH)
    assert session.success_count == 0
    assert session.error_count == 0
    assert fetcher.calls == FIRST_BATCH
    assert handle.cancel() is False


@pytest.mark.asyncio
async def test_cancel_before_first_batch_records_nothing() -> None:
    fetcher = StubFetcher()
    scheduler = make_scheduler(fetcher)
    handle = scheduler.start_survey(QUERY)
    scheduler.cancel(handle.session_id)
    session = await handle.wait()
    assert session.status == SurveyStatus.cancelled
    assert session.results == {}
    assert fetcher.calls == []


@pytest.mark.asyncio
async def test_sixth_survey_rejected_without_creating_session() -> None:
    gate = asyncio.Event()
    store = SessionStore()
    scheduler = make_scheduler(StubFetcher(gate=gate), store=store)
    handles = [scheduler.start_survey(f"query {i}") for i in range(5)]
    await asyncio.sleep(0)
    assert store.running_count() == 5

    before = len(store)
    with pytest.raises(MaxConcurrentSurveysError) as exc_info:
        scheduler.start_survey("one too many")
    assert len(store) == before
    assert exc_info.value.limit == 5

    for h in handles:
        h.cancel()
    gate.set()
    await scheduler.wait_all()
    assert store.running_count() == 0
    scheduler.start_survey("fits again")
    await scheduler.wait_all()


@pytest.mark.asyncio
async def test_counts_equal_attempted_dispatches() -> None:
    tuning = SimulationTuning(min_delay_seconds=0, max_delay_seconds=0)
    fetcher = SimulatedFetcher(tuning=tuning, rng=random.Random(2024))
    session = await make_scheduler(fetcher).start_survey(QUERY).wait()
    assert session.success_count + session.error_count == len(session.results) == 50
    assert session.error_count == sum(1 for e in session.results.values() if e.kind == "error")


@pytest.mark.asyncio
async def test_progress_visible_per_jurisdiction() -> None:
    store = SessionStore()
    scheduler = make_scheduler(store=store)
    seen: list[int] = []
    store.subscribe(lambda sid: seen.append(store.get(sid).attempted))
    await scheduler.start_survey(QUERY).wait()
    assert list(range(1, 51)) == sorted(set(seen) - {0})


@pytest.mark.asyncio
async def test_repealed_content_marks_suspicious() -> None:
    scheduler = make_scheduler(verifier=TrustVerifier(FixedChecker(repealed=True)))
    session = await scheduler.start_survey(QUERY).wait()
    assert all(e.statute.trust_level == TrustLevel.suspicious for e in session.results.values())


@pytest.mark.asyncio
async def test_verifier_error_falls_back_to_unverified() -> None:
    verifier = MagicMock(spec=TrustVerifier)
    verifier.verify = AsyncMock(side_effect=RuntimeError("verifier crashed"))
    session = await make_scheduler(verifier=verifier).start_survey(QUERY).wait()
    assert session.success_count == 50
    assert all(e.statute.trust_level == TrustLevel.unverified for e in session.results.values())


@pytest.mark.asyncio
async def test_auto_verify_off_skips_verifier() -> None:
    verifier = MagicMock(spec=TrustVerifier)
    verifier.verify = AsyncMock()
    session = await make_scheduler(verifier=verifier, auto_verify=False).start_survey(QUERY).wait()
    verifier.verify.assert_not_called()
    assert session.results["CA"].statute.trust_level == TrustLevel.unverified


@pytest.mark.asyncio
async def test_suggester_error_still_records_failure() -> None:
    scheduler = make_scheduler(StubFetcher(fail_for={"TX"}))
    scheduler.suggester = MagicMock()
    scheduler.suggester.suggest = AsyncMock(side_effect=RuntimeError("boom"))
    session = await scheduler.start_survey(QUERY).wait()
    assert session.results["TX"].failure.suggestions
    assert session.error_count == 1


@pytest.mark.asyncio
async def test_credential_error_message_is_preserved() -> None:
    class BadKeyFetcher(StubFetcher):
        async def _fetch(self, jurisdiction: Jurisdiction, query: str) -> Statute:
            raise InvalidCredentialError("Invalid Open States API key", jurisdiction.code)

    session = await make_scheduler(BadKeyFetcher()).start_survey(QUERY).wait()
    assert session.status == SurveyStatus.completed
    assert session.error_count == 50
    assert session.results["AL"].failure.message == "Invalid Open States API key"


@pytest.mark.asyncio
async def test_empty_query_rejected_before_session() -> None:
    store = SessionStore()
    scheduler = make_scheduler(store=store)
    with pytest.raises(ValueError):
        scheduler.start_survey("   ")
    assert len(store) == 0


@pytest.mark.asyncio
async def test_unexpected_error_marks_session_failed() -> None:
    scheduler = make_scheduler()
    with patch("pipelines.survey.scheduler.build_queries", side_effect=RuntimeError("bad table")):
        session = await scheduler.start_survey(QUERY).wait()
    assert session.status == SurveyStatus.failed
    assert scheduler.store.notifications[-1].kind == "error"


@pytest.mark.asyncio
async def test_run_survey_on_existing_session() -> None:
    store = SessionStore()
    scheduler = make_scheduler(store=store)
    sid = store.create_session(QUERY)
    await scheduler.run_survey(QUERY, sid)
    assert store.get(sid).status == SurveyStatus.completed


@pytest.mark.asyncio
async def test_run_survey_preflight_over_ceiling() -> None:
    store = SessionStore()
    scheduler = SurveyScheduler(store, fetcher=StubFetcher(), max_concurrent=1)
    store.create_session("a")
    sid = store.create_session("b")
    with pytest.raises(MaxConcurrentSurveysError):
        await scheduler.run_survey("b", sid)
    assert store.get(sid).results == {}


@pytest.mark.asyncio
async def test_settings_change_does_not_affect_running_survey() -> None:
    fetcher = StubFetcher()
    scheduler = make_scheduler(fetcher, batch_size=5)
    handle = scheduler.start_survey(QUERY)
    scheduler.settings = scheduler.settings.snapshot(batch_size=50)
    await handle.wait()
    assert fetcher.max_in_flight == 5


@pytest.mark.asyncio
async def test_retry_overwrites_entry_without_changing_counts() -> None:
    fetcher = StubFetcher(fail_for={"WY"})
    scheduler = make_scheduler(fetcher)
    session = await scheduler.start_survey(QUERY).wait()
    assert session.results["WY"].kind == "error"

    fetcher.fail_for = set()
    entry = await scheduler.retry_jurisdiction(session.id, "wy", query="civil fraud statute of limitations")
    assert entry.kind == "ok"

    after = scheduler.store.get(session.id)
    assert after.results["WY"] == entry
    assert after.success_count == 49
    assert after.error_count == 1
    assert after.status == SurveyStatus.completed
    assert fetcher.queries[-1].startswith("(civil /s fraud")


@pytest.mark.asyncio
async def test_retry_errors() -> None:
    scheduler = make_scheduler()
    with pytest.raises(SessionNotFoundError):
        await scheduler.retry_jurisdiction(999, "CA")
    sid = scheduler.store.create_session(QUERY)
    with pytest.raises(ValueError):
        await scheduler.retry_jurisdiction(sid, "XX")


def test_start_survey_without_event_loop_creates_no_session() -> None:
    store = SessionStore()
    scheduler = make_scheduler(store=store)
    for _ in range(6):
        with pytest.raises(RuntimeError):
            scheduler.start_survey(QUERY)
    assert len(store) == 0
    assert store.running_count() == 0


@pytest.mark.asyncio
async def test_session_deleted_during_last_batch_does_not_crash() -> None:
    gate = asyncio.Event()
    store = SessionStore()
    fetcher = StubFetcher(gate=gate, gate_codes=set(FIRST_BATCH))
    scheduler = make_scheduler(fetcher, store=store)
    handle = scheduler.start_survey(QUERY)
    await wait_until(lambda: len(fetcher.calls) == 5)

    handle.cancel()
    store.delete_session(handle.session_id)
    gate.set()
    await asyncio.wait_for(asyncio.shield(handle.task), timeout=5)

    assert handle.task.exception() is None
    assert not store.exists(handle.session_id)
    assert fetcher.calls == FIRST_BATCH


@pytest.mark.asyncio
async def test_finished_surveys_release_handles_and_snapshots() -> None:
    store = SessionStore(max_history=3)
    scheduler = make_scheduler(store=store)
    ids = []
    for i in range(6):
        handle = scheduler.start_survey(f"query {i}")
        await handle.wait()
        ids.append(handle.session_id)
        await wait_until(lambda: scheduler.get_handle(handle.session_id) is None)

    assert scheduler._handles == {}
    assert set(scheduler._snapshots) <= set(ids[-3:])

    # The snapshot of a retained session is still used for retries.
    entry = await scheduler.retry_jurisdiction(ids[-1], "CA")
    assert entry.kind == "ok"
