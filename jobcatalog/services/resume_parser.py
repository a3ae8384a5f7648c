from __future__ import annotations

import logging
import re
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from jobcatalog.schemas.resume import ResumeProfile
from jobcatalog.services.categorizer import CategoryClassifier
from jobcatalog.services.terms import term_pattern, unique
from jobcatalog.taxonomy import MatchingConfig, load_matching_config

logger = logging.getLogger(__name__)

MIN_TEXT_LENGTH = 50


@dataclass(frozen=True)
class ExtractionRule:
    """One ordered extraction step: a pattern, the group to read and how to clean it."""

    name: str
    pattern: re.Pattern[str]
    group: int = 0
    normalizer: Callable[[str], list[str]] = lambda value: [value.strip().lower()]

    def apply(self, text: str) -> list[str]:
        found: list[str] = []
        for match in self.pattern.finditer(text):
            found.extend(self.normalizer(match.group(self.group)))
        return [value for value in found if value]


class ResumeParser:
    def __init__(
        self,
        config: MatchingConfig | None = None,
        classifier: CategoryClassifier | None = None,
    ) -> None:
        self.config = config or load_matching_config()
        self.classifier = classifier or CategoryClassifier(self.config)
        self.skill_rules = self._build_skill_rules()
        self.technology_rules = self._build_technology_rules()
        self.years_rules = [
            ExtractionRule(f"years_{index}", re.compile(pattern, re.IGNORECASE), group=1, normalizer=_digits)
            for index, pattern in enumerate(self.config.experience.years_patterns)
        ]
        self.entry_prefix = re.compile(self.config.experience.entry_title_prefix or r"(?!)", re.IGNORECASE)
        self.entry_terms = re.compile(self.config.experience.entry_title_terms or r"(?!)", re.IGNORECASE)

    def parse_file(self, file_path: str | Path) -> ResumeProfile:
        raw_text = Path(file_path).read_text(encoding="utf-8", errors="ignore")
        return self.parse_text(raw_text)

    def parse_text(self, raw_text: str) -> ResumeProfile:
        text = raw_text or ""
        skills = self._extract_skills(text)
        technologies = self._extract_technologies(text)
        entries = self._extract_experience(text)
        years = self._extract_years(text, len(entries))
        level = self._experience_level(years)
        category = self.classifier.classify(text, skills, technologies)

        low_confidence = len(text.strip()) < MIN_TEXT_LENGTH or not (skills or technologies)
        if low_confidence:
            logger.warning(
                "Low-confidence resume profile: %d chars, %d skills, %d technologies",
                len(text.strip()),
                len(skills),
                len(technologies),
            )
        logger.info(
            "Parsed resume: %d skills, %d technologies, %s level, category %s",
            len(skills),
            len(technologies),
            level,
            category,
        )

        return ResumeProfile(
            skills=skills,
            technologies=technologies,
            experience_level=level,
            years_of_experience=years,
            category=category,
            summary_text=self._summary(text, skills, technologies, level),
            raw_text=text,
            experience_entries=entries,
            education=self._extract_education(text),
            low_confidence=low_confidence,
        )

    def _build_skill_rules(self) -> list[ExtractionRule]:
        skills = self.config.skills
        rules: list[ExtractionRule] = []
        if skills.phrase_pattern:
            rules.append(
                ExtractionRule(
                    "skill_phrase",
                    re.compile(skills.phrase_pattern, re.IGNORECASE),
                    group=1,
                    normalizer=self._split_phrase,
                )
            )
        for term in skills.technical + skills.soft:
            rules.append(ExtractionRule(f"skill:{term}", term_pattern(term), normalizer=_lower))
        return rules

    def _build_technology_rules(self) -> list[ExtractionRule]:
        technologies = self.config.technologies
        rules = [
            ExtractionRule(f"tech:{term}", term_pattern(term), normalizer=_lower)
            for term in technologies.all_terms()
        ]
        for alias, canonical in technologies.aliases.items():
            rules.append(
                ExtractionRule(f"alias:{alias}", term_pattern(alias), normalizer=lambda _v, c=canonical: [c])
            )
        return rules

    def _extract_skills(self, text: str) -> list[str]:
        lowered = text.lower()
        found: list[str] = []
        for rule in self.skill_rules:
            source = text if rule.name == "skill_phrase" else lowered
            found.extend(rule.apply(source))
        return unique(found)[: self.config.skills.max_skills]

    def _extract_technologies(self, text: str) -> list[str]:
        lowered = text.lower()
        found: list[str] = []
        for rule in self.technology_rules:
            found.extend(rule.apply(lowered))
        return unique(found)

    def _extract_years(self, text: str, entry_count: int) -> float:
        for rule in self.years_rules:
            for value in rule.apply(text):
                years = int(value)
                if 0 < years < 50:
                    return float(years)
                break

        experience = self.config.experience
        if entry_count:
            return min(entry_count * experience.years_per_entry, experience.estimated_years_cap)
        return 0.0

    def _experience_level(self, years: float) -> str:
        if years <= 0:
            return "Internship"
        for bucket in self.config.experience.levels:
            if years < bucket.below:
                return bucket.level
        return "Lead"

    def _extract_experience(self, text: str) -> list[str]:
        entries: list[str] = []
        for line in text.splitlines():
            stripped = line.strip()
            if not stripped:
                continue
            if self.entry_prefix.search(stripped) or self.entry_terms.search(stripped):
                entries.append(stripped[:200])
        return entries[: self.config.experience.max_entries]

    def _extract_education(self, text: str) -> list[str]:
        keywords = self.config.experience.education_keywords
        education = [
            line.strip()[:200]
            for line in text.splitlines()
            if any(keyword in line.lower() for keyword in keywords)
        ]
        return education[: self.config.experience.max_education]

    def _summary(self, text: str, skills: list[str], technologies: list[str], level: str) -> str:
        return (
            f"{level} professional with expertise in {', '.join(skills[:10])}. "
            f"Proficient in {', '.join(technologies[:10])}. "
            f"{text[:500]}"
        )

    def _split_phrase(self, value: str) -> list[str]:
        min_length = self.config.skills.min_length
        parts = (part.strip().lower() for part in re.split(r"[,;&|]", value))
        return [part for part in parts if len(part) >= min_length and len(part) <= 40]


def _lower(value: str) -> list[str]:
    return [value.strip().lower()]


def _digits(value: str) -> list[str]:
    return [value] if value.isdigit() else []
