from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass, field
from datetime import timedelta

from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session
from tenacity import Retrying, retry_if_exception, stop_after_attempt, wait_fixed

from jobcatalog.config import settings
from jobcatalog.errors import PersistenceError
from jobcatalog.models import Job, JobSource
from jobcatalog.models.job import utcnow
from jobcatalog.schemas.job import JobFilter
from jobcatalog.schemas.listing import Listing, Source
from jobcatalog.services.dedup import DeduplicationKeyer

logger = logging.getLogger(__name__)

JOB_FIELDS = (
    "title",
    "company",
    "location",
    "work_mode",
    "experience_level",
    "category",
    "description_snippet",
    "description_full",
    "posted_text",
)


def is_lock_error(exc: BaseException) -> bool:
    if not isinstance(exc, OperationalError):
        return False
    message = str(exc.orig if exc.orig is not None else exc).lower()
    return "locked" in message or "busy" in message


@dataclass
class SaveSummary:
    added: int = 0
    updated: int = 0
    skipped: int = 0
    job_ids: list[str] = field(default_factory=list)


class JobStore:
    def __init__(
        self,
        db: Session,
        keyer: DeduplicationKeyer | None = None,
        retry_attempts: int | None = None,
        retry_wait_seconds: float | None = None,
    ) -> None:
        self.db = db
        self.keyer = keyer or DeduplicationKeyer()
        self.retry_attempts = retry_attempts or settings.persist_retry_attempts
        self.retry_wait_seconds = (
            settings.persist_retry_wait_seconds if retry_wait_seconds is None else retry_wait_seconds
        )

    def find_job_by_url(self, url: str) -> Job | None:
        if not url:
            return None
        return (
            self.db.query(Job)
            .join(JobSource, JobSource.job_id == Job.id)
            .filter(JobSource.url == url)
            .first()
        )

    def find_job_by_id(self, job_id: str) -> Job | None:
        return self.db.query(Job).filter(Job.id == job_id).first()

    def upsert_job(self, listing: Listing, job_id: str | None = None) -> tuple[Job, bool]:
        """Insert or refresh the job for ``listing``; the caller owns the commit."""
        job_id = job_id or self.keyer.job_id(listing)
        existing = self.find_job_by_id(job_id)
        if existing:
            self._refresh(existing, listing)
            return existing, False

        now = utcnow()
        job = Job(
            id=job_id,
            posted_at=listing.source.posted_at,
            created_at=now,
            updated_at=now,
            **{name: getattr(listing, name) for name in JOB_FIELDS},
        )
        self.db.add(job)
        self.db.flush()
        return job, True

    def upsert_source(self, job_id: str, source: Source, fallback_external_id: str | None = None) -> JobSource:
        external_id = (source.external_id or fallback_external_id or "").strip()[:255]
        if not external_id:
            raise PersistenceError(f"source for job {job_id} has no external id")

        existing = (
            self.db.query(JobSource)
            .filter(
                JobSource.job_id == job_id,
                JobSource.site == source.site,
                JobSource.external_id == external_id,
            )
            .first()
        )
        if existing:
            if source.url and existing.url != source.url:
                existing.url = source.url[:1000]
            return existing

        row = JobSource(
            job_id=job_id,
            site=source.site,
            url=(source.url or None) and source.url[:1000],
            external_id=external_id,
            posted_at=source.posted_at,
            created_at=utcnow(),
        )
        self.db.add(row)
        self.db.flush()
        return row

    def list_jobs(self, filters: JobFilter | None = None) -> list[Job]:
        filters = filters or JobFilter()
        query = self.db.query(Job)

        if filters.query:
            pattern = f"%{filters.query.strip()}%"
            query = query.filter(
                or_(
                    Job.title.ilike(pattern),
                    Job.company.ilike(pattern),
                    Job.description_snippet.ilike(pattern),
                    Job.description_full.ilike(pattern),
                )
            )
        if filters.location:
            query = query.filter(Job.location.ilike(f"%{filters.location.strip()}%"))
        if filters.category:
            query = query.filter(Job.category == filters.category)
        if filters.work_mode:
            query = query.filter(Job.work_mode.in_(filters.work_mode))
        if filters.experience_level:
            query = query.filter(Job.experience_level.in_(filters.experience_level))
        if filters.posted_within_days is not None:
            query = query.filter(Job.posted_at >= utcnow() - timedelta(days=filters.posted_within_days))
        if filters.site:
            query = query.filter(Job.sources.any(JobSource.site == filters.site))

        return (
            query.order_by(Job.posted_at.desc(), Job.updated_at.desc(), Job.id)
            .offset(filters.offset)
            .limit(filters.limit)
            .all()
        )

    def iter_jobs(self, filters: JobFilter | None = None, page_size: int = 500) -> Iterator[Job]:
        """Every job matching ``filters``, fetched page by page past the ``limit`` cap."""
        filters = filters or JobFilter()
        offset = filters.offset
        while True:
            page = self.list_jobs(filters.model_copy(update={"offset": offset, "limit": page_size}))
            yield from page
            if len(page) < page_size:
                return
            offset += page_size

    def save_listings(self, listings: list[Listing]) -> SaveSummary:
        """Persist a crawl batch in one transaction with a savepoint per listing."""
        summary = SaveSummary()
        for listing in listings:
            try:
                job_id, created = self._save_with_retry(listing)
            except OperationalError as exc:
                if not is_lock_error(exc):
                    raise
                summary.skipped += 1
                logger.error(
                    "Skipping %r at %s after %d locked attempts: %s",
                    listing.title,
                    listing.company,
                    self.retry_attempts,
                    exc,
                )
                continue
            except IntegrityError as exc:
                summary.skipped += 1
                logger.warning("Skipping conflicting listing %r at %s: %s", listing.title, listing.company, exc)
                continue

            summary.job_ids.append(job_id)
            if created:
                summary.added += 1
            else:
                summary.updated += 1

        try:
            self.db.commit()
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise PersistenceError(f"failed to commit {len(listings)} listings: {exc}") from exc

        logger.info(
            "Saved listings: %d added, %d updated, %d skipped",
            summary.added,
            summary.updated,
            summary.skipped,
        )
        return summary

    def purge_stale_jobs(self, max_age_days: int | None = None) -> int:
        days = settings.max_job_age_days if max_age_days is None else max_age_days
        cutoff = utcnow() - timedelta(days=days)
        stale = self.db.query(Job).filter(Job.updated_at < cutoff).all()
        for job in stale:
            self.db.delete(job)
        self.db.commit()
        logger.info("Purged %d jobs not seen for %d days", len(stale), days)
        return len(stale)

    def _save_with_retry(self, listing: Listing) -> tuple[str, bool]:
        retrying = Retrying(
            stop=stop_after_attempt(max(1, self.retry_attempts)),
            wait=wait_fixed(self.retry_wait_seconds),
            retry=retry_if_exception(is_lock_error),
            reraise=True,
        )
        for attempt in retrying:
            with attempt:
                return self._save_one(listing)
        raise PersistenceError(f"no save attempt made for {listing.title!r}")

    def _save_one(self, listing: Listing) -> tuple[str, bool]:
        with self.db.begin_nested():
            dedup_key = self.keyer.derive_key(listing)
            job_id = self.keyer.job_id(listing)

            existing = self.find_job_by_url(listing.source.url or "") or self.find_job_by_id(job_id)
            if existing:
                self._refresh(existing, listing)
                self.upsert_source(existing.id, listing.source, fallback_external_id=dedup_key)
                logger.debug("Refreshed existing job %s for %r", existing.id, listing.title)
                return existing.id, False

            job, created = self.upsert_job(listing, job_id)
            self.upsert_source(job.id, listing.source, fallback_external_id=dedup_key)
            return job.id, created

    def _refresh(self, job: Job, listing: Listing) -> None:
        for name in ("location", "description_snippet", "description_full", "posted_text"):
            value = getattr(listing, name)
            if value:
                setattr(job, name, value)
        job.updated_at = utcnow()
        self.db.flush()
