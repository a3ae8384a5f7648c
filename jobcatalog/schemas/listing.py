from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from jobcatalog.models.job import utcnow

WorkMode = Literal["Remote", "Hybrid", "On-site"]
ExperienceLevel = Literal["Internship", "Junior", "Mid", "Senior", "Lead"]


class Source(BaseModel):
    site: str
    url: str | None = None
    external_id: str | None = None
    posted_at: datetime = Field(default_factory=utcnow)


class Listing(BaseModel):
    title: str = Field(min_length=1)
    company: str = "Unknown"
    location: str = ""
    description_snippet: str = ""
    description_full: str = ""
    posted_text: str = ""
    work_mode: WorkMode = "On-site"
    experience_level: ExperienceLevel = "Mid"
    category: str = "general"
    source: Source

    @field_validator("title")
    @classmethod
    def _strip_title(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("title must not be blank")
        return value

    @field_validator("company")
    @classmethod
    def _default_company(cls, value: str) -> str:
        return value.strip() or "Unknown"
