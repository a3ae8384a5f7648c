from __future__ import annotations

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass, field

from sqlalchemy.orm import Session, sessionmaker

from jobcatalog.config import settings
from jobcatalog.database import SessionLocal
from jobcatalog.models import ScrapeRun
from jobcatalog.models.job import utcnow
from jobcatalog.schemas.job import ScrapeRunOut
from jobcatalog.schemas.listing import Listing
from jobcatalog.services.crawl_controller import STOP_CANCELLED, CrawlController, CrawlReport
from jobcatalog.services.job_store import JobStore, SaveSummary
from jobcatalog.services.page_fetcher import PageFetcher
from jobcatalog.services.query_expansion import QueryExpander

logger = logging.getLogger(__name__)


@dataclass
class _RunHandle:
    task: asyncio.Task
    cancel_event: asyncio.Event = field(default_factory=asyncio.Event)


class CrawlTaskManager:
    """Runs crawl-and-persist jobs as supervised asyncio tasks recorded in ``scrape_runs``."""

    def __init__(
        self,
        fetcher: PageFetcher,
        session_factory: sessionmaker | Callable[[], Session] = SessionLocal,
        controller_factory: Callable[[PageFetcher], CrawlController] | None = None,
        expander: QueryExpander | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.session_factory = session_factory
        self.controller_factory = controller_factory or (lambda f: CrawlController(f))
        self.expander = expander
        self._runs: dict[int, _RunHandle] = {}

    async def start(
        self,
        query: str,
        location: str = "",
        max_pages: int | None = None,
        expand: bool = False,
    ) -> int:
        controller = self.controller_factory(self.fetcher)
        run_id = self._create_run(query, location, controller.board.name)

        if expand:
            expander = self.expander or QueryExpander()
            terms = expander.scraping_terms(query)
        else:
            terms = [query]

        cancel_event = asyncio.Event()
        task = asyncio.create_task(
            self._run(run_id, controller, terms, location, max_pages, cancel_event),
            name=f"crawl-run-{run_id}",
        )
        self._runs[run_id] = _RunHandle(task=task, cancel_event=cancel_event)
        task.add_done_callback(lambda _task: self._runs.pop(run_id, None))
        logger.info("Started crawl run %d for %s", run_id, terms)
        return run_id

    def status(self, run_id: int) -> ScrapeRunOut | None:
        db = self.session_factory()
        try:
            run = db.query(ScrapeRun).filter(ScrapeRun.id == run_id).first()
            return ScrapeRunOut.model_validate(run) if run else None
        finally:
            db.close()

    def cancel(self, run_id: int) -> bool:
        handle = self._runs.get(run_id)
        if handle is None or handle.task.done():
            return False
        handle.cancel_event.set()
        logger.info("Cancellation requested for crawl run %d", run_id)
        return True

    async def wait(self, run_id: int) -> ScrapeRunOut | None:
        handle = self._runs.get(run_id)
        if handle is not None:
            await asyncio.shield(handle.task)
        return self.status(run_id)

    async def _run(
        self,
        run_id: int,
        controller: CrawlController,
        terms: list[str],
        location: str,
        max_pages: int | None,
        cancel_event: asyncio.Event,
    ) -> None:
        started = time.monotonic()
        self._update_run(run_id, status="running")
        reports: list[CrawlReport] = []
        totals = SaveSummary()

        try:
            for term in terms:
                if cancel_event.is_set():
                    break
                report = await controller.crawl(term, location, max_pages, cancel_event=cancel_event)
                reports.append(report)
                if report.listings:
                    saved = await asyncio.to_thread(self._persist, report.listings)
                    totals.added += saved.added
                    totals.updated += saved.updated
                    totals.skipped += saved.skipped
                self._update_run(
                    run_id,
                    pages_fetched=sum(r.pages_fetched for r in reports),
                    listings_found=sum(len(r.listings) for r in reports),
                    jobs_added=totals.added,
                    jobs_updated=totals.updated,
                    jobs_skipped=totals.skipped,
                )
        except asyncio.CancelledError:
            self._finish_run(run_id, "cancelled", started, "task cancelled")
            raise
        except Exception as exc:
            logger.exception("Crawl run %d failed", run_id)
            self._finish_run(run_id, "failed", started, str(exc))
            return

        status, error = self._final_status(reports, cancel_event)
        self._finish_run(run_id, status, started, error)
        logger.info(
            "Crawl run %d %s: %d added, %d updated, %d skipped",
            run_id,
            status,
            totals.added,
            totals.updated,
            totals.skipped,
        )

    def _final_status(self, reports: list[CrawlReport], cancel_event: asyncio.Event) -> tuple[str, str | None]:
        errors = [report.error for report in reports if report.error]
        if cancel_event.is_set() or any(report.stop_reason == STOP_CANCELLED for report in reports):
            return "cancelled", None
        if errors:
            collected = any(report.listings for report in reports)
            return ("partial" if collected else "failed"), "; ".join(errors)
        return "completed", None

    def _persist(self, listings: list[Listing]) -> SaveSummary:
        db = self.session_factory()
        try:
            return JobStore(db).save_listings(listings)
        finally:
            db.close()

    def _create_run(self, query: str, location: str, site: str) -> int:
        db = self.session_factory()
        try:
            run = ScrapeRun(query=query, location=location, site=site or settings.job_board_site, status="pending")
            db.add(run)
            db.commit()
            return run.id
        finally:
            db.close()

    def _update_run(self, run_id: int, **values) -> None:
        db = self.session_factory()
        try:
            db.query(ScrapeRun).filter(ScrapeRun.id == run_id).update(values)
            db.commit()
        finally:
            db.close()

    def _finish_run(self, run_id: int, status: str, started: float, error: str | None) -> None:
        self._update_run(
            run_id,
            status=status,
            error_message=error,
            completed_at=utcnow(),
            duration_ms=int((time.monotonic() - started) * 1000),
        )
