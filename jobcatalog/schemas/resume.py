from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

from jobcatalog.schemas.listing import ExperienceLevel

Category = Literal[
    "data",
    "frontend",
    "backend",
    "fullstack",
    "mobile",
    "devops",
    "cloud",
    "cybersecurity",
    "general",
]


class ResumeProfile(BaseModel):
    skills: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)
    experience_level: ExperienceLevel = "Internship"
    years_of_experience: float = 0.0
    category: Category = "general"
    summary_text: str = ""
    raw_text: str = ""
    experience_entries: list[str] = Field(default_factory=list)
    education: list[str] = Field(default_factory=list)
    low_confidence: bool = False
