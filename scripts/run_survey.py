"""CLI to run one 50-state statute survey and print the per-state results."""

import argparse
import asyncio
import random
import sys
from pathlib import Path

# Project root
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from loguru import logger
from config.settings import BackendMode, load_settings
from data.schemas.jurisdiction import ALL_JURISDICTION_CODES
from data.schemas.statute import status_label, statute_status
from data.schemas.survey import SurveySession
from data.storage.session_store import SessionStore
from fetchers.quota_guard import check_quota
from pipelines.survey.scheduler import SurveyScheduler


def print_session(session: SurveySession) -> None:
    """Print one line per jurisdiction followed by a summary."""
    running = not session.status.is_terminal
    for code in ALL_JURISDICTION_CODES:
        entry = session.results.get(code)
        label = status_label(statute_status(entry, running))
        if entry is None:
            print(f"  {code}  {label:<12}")
        elif entry.kind == "ok":
            s = entry.statute
            print(f"  {code}  {label:<12} {s.citation:<28} {s.confidence_score:>3}%  {s.trust_level.value}")
        else:
            print(f"  {code}  {label:<12} {entry.failure.message}")
            for suggestion in entry.failure.suggestions:
                print(f"        try: {suggestion}")
    print(
        f"\nSurvey #{session.id} {session.status.value}: "
        f"{session.success_count} found, {session.error_count} errors, "
        f"{session.percent_complete}% attempted"
    )


async def _run(query: str, scheduler: SurveyScheduler) -> SurveySession:
    handle = scheduler.start_survey(query)
    try:
        return await handle.wait()
    except asyncio.CancelledError:
        handle.cancel()
        raise


def main() -> None:
    parser = argparse.ArgumentParser(
        description="Run a 50-state statute survey for one legal query."
    )
    parser.add_argument(
        "--query",
        type=str,
        required=True,
        help='Legal query, e.g. "Statute of limitations for fraud".',
    )
    parser.add_argument(
        "--backend",
        type=str,
        choices=[m.value for m in BackendMode],
        default=None,
        help="Backend override (default: SURVEY_BACKEND_MODE or simulated).",
    )
    parser.add_argument(
        "--batch-size",
        type=int,
        default=None,
        help="Jurisdictions dispatched concurrently per batch (default: 5).",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Seed for the simulated backend and content checker.",
    )
    parser.add_argument(
        "--no-verify",
        action="store_true",
        help="Skip the trust verification pass.",
    )
    parser.add_argument(
        "--check-quota",
        action="store_true",
        help="Check the backend's API quota before starting and abort if it fails.",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Write the session to this JSON history file.",
    )
    args = parser.parse_args()

    overrides: dict = {}
    if args.backend:
        overrides["backend_mode"] = BackendMode(args.backend)
    if args.batch_size is not None:
        if args.batch_size < 1:
            parser.error("--batch-size must be >= 1")
        overrides["batch_size"] = args.batch_size
    if args.no_verify:
        overrides["auto_verify"] = False
    settings = load_settings().snapshot(**overrides)

    if args.check_quota:
        result = check_quota(settings)
        print(f"Quota check ({result.provider}): {result.message}")
        if not result.ok:
            sys.exit(1)

    rng = random.Random(args.seed) if args.seed is not None else None
    store = SessionStore()
    scheduler = SurveyScheduler(store, settings=settings, rng=rng)
    logger.info("Running survey with {} backend, batch size {}", settings.backend_mode.value, settings.batch_size)

    try:
        session = asyncio.run(_run(args.query, scheduler))
    except ValueError as e:
        parser.error(str(e))
    except KeyboardInterrupt:
        print("\nSurvey interrupted.")
        sys.exit(130)

    print_session(session)
    if args.output:
        store.save(Path(args.output))
        print(f"Saved survey history to {args.output}")


if __name__ == "__main__":
    main()
