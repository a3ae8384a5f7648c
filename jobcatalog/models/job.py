from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Index, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import relationship

from jobcatalog.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Job(Base):
    __tablename__ = "jobs"
    __table_args__ = (
        Index("idx_jobs_category", "category"),
        Index("idx_jobs_posted_at", "posted_at"),
        Index("idx_jobs_updated_at", "updated_at"),
    )

    id = Column(String(128), primary_key=True)
    title = Column(String(500), nullable=False)
    company = Column(String(255), nullable=False, default="Unknown")
    location = Column(String(255), default="")
    work_mode = Column(String(20), nullable=False, default="On-site")
    experience_level = Column(String(20), nullable=False, default="Mid")
    category = Column(String(50), nullable=False, default="general")
    description_snippet = Column(Text, default="")
    description_full = Column(Text, default="")
    posted_text = Column(String(255), default="")
    posted_at = Column(DateTime, default=utcnow)
    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, nullable=False)

    sources = relationship(
        "JobSource",
        back_populates="job",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="JobSource.id",
    )


class JobSource(Base):
    __tablename__ = "job_sources"
    __table_args__ = (
        UniqueConstraint("job_id", "site", "external_id", name="uq_job_source_site_external"),
        Index("idx_job_sources_url", "url"),
    )

    id = Column(Integer, primary_key=True, index=True)
    job_id = Column(String(128), ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False, index=True)
    site = Column(String(50), nullable=False)
    url = Column(String(1000))
    external_id = Column(String(255), nullable=False)
    posted_at = Column(DateTime, default=utcnow)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    job = relationship("Job", back_populates="sources")
