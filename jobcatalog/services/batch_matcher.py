from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Sequence
from datetime import datetime
from typing import Any

from jobcatalog.config import settings
from jobcatalog.schemas.match import MatchResult
from jobcatalog.schemas.resume import ResumeProfile
from jobcatalog.services.matcher import MatchRanker

logger = logging.getLogger(__name__)


def rank_results(results: list[MatchResult]) -> list[MatchResult]:
    """Highest percentage first; ties go to the most recently posted job."""
    return sorted(
        results,
        key=lambda result: (result.match_percentage, result.posted_at or datetime.min),
        reverse=True,
    )


class BatchMatchOrchestrator:
    def __init__(self, ranker: MatchRanker | None = None, batch_size: int | None = None) -> None:
        self.ranker = ranker or MatchRanker()
        self.batch_size = max(1, batch_size or settings.match_batch_size)

    def score_one(self, profile: ResumeProfile, job: Any) -> MatchResult:
        return self.ranker.score(profile, job)

    async def match_all(
        self,
        profile: ResumeProfile,
        jobs: Sequence[Any],
        cancel_event: asyncio.Event | None = None,
    ) -> list[MatchResult]:
        results: list[MatchResult] = []
        async for batch in self.iter_batches(profile, jobs, cancel_event):
            results.extend(result for result in batch if result.match_percentage > 0)

        ranked = rank_results(results)
        logger.info("Matched %d of %d jobs", len(ranked), len(jobs))
        return ranked

    async def iter_batches(
        self,
        profile: ResumeProfile,
        jobs: Sequence[Any],
        cancel_event: asyncio.Event | None = None,
    ) -> AsyncIterator[list[MatchResult]]:
        for start in range(0, len(jobs), self.batch_size):
            if cancel_event is not None and cancel_event.is_set():
                logger.info("Matching cancelled after %d of %d jobs", start, len(jobs))
                return

            batch = jobs[start : start + self.batch_size]
            outcomes = await asyncio.gather(
                *(asyncio.to_thread(self.score_one, profile, job) for job in batch),
                return_exceptions=True,
            )

            scored: list[MatchResult] = []
            for job, outcome in zip(batch, outcomes):
                if isinstance(outcome, asyncio.CancelledError):
                    raise outcome
                if isinstance(outcome, Exception):
                    logger.error("Failed to score job %s: %s", getattr(job, "id", "?"), outcome)
                    continue
                scored.append(outcome)
            yield scored
