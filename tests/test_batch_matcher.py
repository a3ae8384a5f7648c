import asyncio
import threading
import time
from datetime import datetime
from types import SimpleNamespace

from jobcatalog.schemas.match import MatchResult
from jobcatalog.schemas.resume import ResumeProfile
from jobcatalog.services.batch_matcher import BatchMatchOrchestrator, rank_results


class StubRanker:
    """Scores each job with its preset percentage, failing where asked."""

    def __init__(self, delay=0.0, on_score=None):
        self.delay = delay
        self.on_score = on_score
        self.active = 0
        self.max_active = 0
        self.scored = []
        self._lock = threading.Lock()

    def score(self, profile, job):
        with self._lock:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            self.scored.append(job.id)
        try:
            if self.delay:
                time.sleep(self.delay)
            if self.on_score:
                self.on_score(job)
            if job.fail:
                raise ValueError("bad job")
            return MatchResult(job_id=job.id, match_percentage=job.pct, posted_at=job.posted_at)
        finally:
            with self._lock:
                self.active -= 1


def _job(job_id, pct, day=1, fail=False):
    return SimpleNamespace(id=job_id, pct=pct, posted_at=datetime(2024, 1, day), fail=fail)


def test_results_sorted_by_percentage_then_recency():
    jobs = [_job("a", 50, day=1), _job("b", 80, day=1), _job("c", 50, day=9), _job("d", 65, day=3)]
    orchestrator = BatchMatchOrchestrator(StubRanker(), batch_size=2)

    results = asyncio.run(orchestrator.match_all(ResumeProfile(), jobs))

    assert [result.job_id for result in results] == ["b", "d", "c", "a"]


def test_failed_and_zero_scores_are_omitted():
    jobs = [_job("a", 70), _job("b", 0), _job("c", 90, fail=True), _job("d", 40)]
    orchestrator = BatchMatchOrchestrator(StubRanker(), batch_size=3)

    results = asyncio.run(orchestrator.match_all(ResumeProfile(), jobs))

    assert [result.job_id for result in results] == ["a", "d"]


def test_concurrency_is_bounded_by_batch_size():
    ranker = StubRanker(delay=0.02)
    jobs = [_job(str(index), 50) for index in range(7)]

    results = asyncio.run(BatchMatchOrchestrator(ranker, batch_size=3).match_all(ResumeProfile(), jobs))

    assert len(results) == 7
    assert 1 <= ranker.max_active <= 3


def test_cancellation_stops_before_next_batch():
    async def scenario():
        cancel_event = asyncio.Event()
        loop = asyncio.get_running_loop()
        ranker = StubRanker(on_score=lambda job: loop.call_soon_threadsafe(cancel_event.set))
        jobs = [_job(str(index), 50) for index in range(6)]
        results = await BatchMatchOrchestrator(ranker, batch_size=2).match_all(
            ResumeProfile(), jobs, cancel_event=cancel_event
        )
        return ranker, results

    ranker, results = asyncio.run(scenario())

    assert len(ranker.scored) == 2
    assert len(results) == 2


def test_batches_are_yielded_in_order():
    async def scenario():
        orchestrator = BatchMatchOrchestrator(StubRanker(), batch_size=2)
        jobs = [_job(str(index), 10 * index + 10) for index in range(5)]
        return [[result.job_id for result in batch] async for batch in orchestrator.iter_batches(ResumeProfile(), jobs)]

    assert asyncio.run(scenario()) == [["0", "1"], ["2", "3"], ["4"]]


def test_rank_results_puts_undated_jobs_last_on_ties():
    results = rank_results(
        [
            MatchResult(job_id="undated", match_percentage=60),
            MatchResult(job_id="dated", match_percentage=60, posted_at=datetime(2024, 5, 1)),
        ]
    )

    assert [result.job_id for result in results] == ["dated", "undated"]
