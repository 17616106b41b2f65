"""Simulated backend: emulates an unreliable legislature lookup without any I/O.

Outcomes are a three-way split (failure / ambiguous / normal) drawn from an
injected random source, so a seeded generator reproduces a whole survey.
"""

import asyncio
import random
from collections.abc import Iterable
from urllib.parse import quote_plus

from loguru import logger

from config.settings import SimulationTuning
from data.schemas.jurisdiction import Jurisdiction
from data.schemas.statute import Statute, TrustLevel
from fetchers.base_fetcher import StatuteFetcher
from fetchers.errors import BackendTimeoutError, BackendUnavailableError, FetchError

AMBIGUOUS_CONFIDENCE = 45


class SimulatedFetcher(StatuteFetcher):
    """
    Demo backend with artificial latency and random failures.

    Each call draws from its own generator seeded from the injected source,
    so concurrent calls do not share a random stream.
    """

    name = "simulated"
    assigns_trust = True

    def __init__(
        self,
        tuning: SimulationTuning | None = None,
        rng: random.Random | None = None,
        fail_for: Iterable[str] = (),
    ):
        """
        Initialize the simulated backend.

        Args:
            tuning: Latency range and outcome probabilities.
            rng: Seed source; a fresh unseeded generator when omitted.
            fail_for: Jurisdiction codes that always fail (deterministic test hook).
        """
        self.tuning = tuning or SimulationTuning()
        if self.tuning.failure_rate + self.tuning.ambiguous_rate > 1.0:
            raise ValueError("failure_rate + ambiguous_rate must not exceed 1.0")
        if self.tuning.min_delay_seconds > self.tuning.max_delay_seconds:
            raise ValueError("min_delay_seconds must not exceed max_delay_seconds")
        self._rng = rng or random.Random()
        self.fail_for = {code.upper() for code in fail_for}

    def _call_rng(self) -> random.Random:
        return random.Random(self._rng.getrandbits(64))

    async def _fetch(self, jurisdiction: Jurisdiction, query: str) -> Statute:
        rng = self._call_rng()
        delay = rng.uniform(self.tuning.min_delay_seconds, self.tuning.max_delay_seconds)
        if delay > 0:
            await asyncio.sleep(delay)

        code = jurisdiction.code
        if code in self.fail_for:
            raise FetchError(f"No statute data available for {jurisdiction.name}", code)

        roll = rng.random()
        if roll < self.tuning.failure_rate:
            logger.debug("[{}] simulated failure (roll {:.2f})", code, roll)
            if rng.random() > 0.5:
                raise BackendUnavailableError("Network Error: Connection reset by peer", code)
            raise BackendTimeoutError("Timeout waiting for upstream legislature server", code)

        if roll < self.tuning.failure_rate + self.tuning.ambiguous_rate:
            return Statute(
                jurisdiction=code,
                citation=f"{code} Code § ???",
                text_excerpt=(
                    f'[AMBIGUOUS] Search returned partial matches for "{query}" but no definitive '
                    "statute could be cited. Requires manual review."
                ),
                effective_date="Unknown",
                confidence_score=AMBIGUOUS_CONFIDENCE,
                source_url=f"https://legislature.{code.lower()}.gov/search?q={quote_plus(query)}",
                trust_level=rng.choice([TrustLevel.suspicious, TrustLevel.unverified]),
            )

        years = rng.choice([2, 5])
        return Statute(
            jurisdiction=code,
            citation=f"{code} Code § {rng.randint(1, 999)}.{rng.randint(1, 99)}",
            text_excerpt=(
                f"The limitation period for {query} in {jurisdiction.name} is {years} years "
                "from the date of discovery..."
            ),
            effective_date="2024-01-01",
            confidence_score=rng.randint(80, 99),
            source_url=f"https://legislature.{code.lower()}.gov/statutes",
            trust_level=TrustLevel.verified,
        )
