from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class JobFilter(BaseModel):
    query: str | None = None
    location: str | None = None
    category: str | None = None
    work_mode: list[str] | None = None
    experience_level: list[str] | None = None
    posted_within_days: int | None = Field(default=None, ge=0)
    site: str | None = None
    limit: int = Field(default=100, ge=1, le=1000)
    offset: int = Field(default=0, ge=0)


class SourceOut(BaseModel):
    site: str
    url: str | None = None
    external_id: str
    posted_at: datetime | None = None

    class Config:
        from_attributes = True


class JobOut(BaseModel):
    id: str
    title: str
    company: str
    location: str | None = None
    work_mode: str
    experience_level: str
    category: str
    description_snippet: str | None = None
    description_full: str | None = None
    posted_text: str | None = None
    posted_at: datetime | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None
    sources: list[SourceOut] = []

    class Config:
        from_attributes = True


class ScrapeRunOut(BaseModel):
    id: int
    query: str
    location: str | None = None
    site: str
    status: str
    pages_fetched: int = 0
    listings_found: int = 0
    jobs_added: int = 0
    jobs_updated: int = 0
    jobs_skipped: int = 0
    error_message: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int | None = None

    class Config:
        from_attributes = True
