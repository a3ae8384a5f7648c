from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, String, Text

from jobcatalog.database import Base
from jobcatalog.models.job import utcnow

RUN_STATUSES = ("pending", "running", "completed", "partial", "failed", "cancelled")


class ScrapeRun(Base):
    __tablename__ = "scrape_runs"

    id = Column(Integer, primary_key=True, index=True)
    query = Column(String(255), nullable=False)
    location = Column(String(255), default="")
    site = Column(String(50), nullable=False)
    status = Column(String(20), nullable=False, default="pending")
    pages_fetched = Column(Integer, nullable=False, default=0)
    listings_found = Column(Integer, nullable=False, default=0)
    jobs_added = Column(Integer, nullable=False, default=0)
    jobs_updated = Column(Integer, nullable=False, default=0)
    jobs_skipped = Column(Integer, nullable=False, default=0)
    error_message = Column(Text)
    started_at = Column(DateTime, default=utcnow)
    completed_at = Column(DateTime)
    duration_ms = Column(Integer)
