from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class MatchResult(BaseModel):
    job_id: str
    category_match: float = Field(default=0.0, ge=0.0, le=1.0)
    skills_matched: list[str] = Field(default_factory=list)
    skills_missing: list[str] = Field(default_factory=list)
    technologies_matched: list[str] = Field(default_factory=list)
    technologies_missing: list[str] = Field(default_factory=list)
    semantic_score: float = Field(default=0.0, ge=0.0, le=1.0)
    overall_score: float = Field(default=0.0, ge=0.0, le=1.0)
    match_percentage: int = Field(default=0, ge=0, le=100)
    match_reasons: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    posted_at: datetime | None = None
