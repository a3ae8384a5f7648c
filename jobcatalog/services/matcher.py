from __future__ import annotations

import logging
from typing import Any

from jobcatalog.schemas.match import MatchResult
from jobcatalog.schemas.resume import ResumeProfile
from jobcatalog.services.categorizer import CategoryClassifier
from jobcatalog.services.semantic import SemanticSimilarityScorer
from jobcatalog.services.terms import contains_term, unique
from jobcatalog.taxonomy import MatchingConfig, load_matching_config

logger = logging.getLogger(__name__)


class MatchRanker:
    """Scores one resume profile against one job.

    ``job`` may be any object exposing ``id``, ``title``, ``category``,
    ``description_snippet``, ``description_full`` and ``posted_at``: the ORM
    ``Job`` and the ``JobOut`` read model both qualify.
    """

    def __init__(
        self,
        config: MatchingConfig | None = None,
        classifier: CategoryClassifier | None = None,
        semantic: SemanticSimilarityScorer | None = None,
    ) -> None:
        self.config = config or load_matching_config()
        self.scoring = self.config.scoring
        self.classifier = classifier or CategoryClassifier(self.config)
        self.semantic = semantic or SemanticSimilarityScorer(config=self.config)

    def score(self, profile: ResumeProfile, job: Any) -> MatchResult:
        title = job.title or ""
        snippet = job.description_snippet or ""
        full = job.description_full or ""
        job_text = f"{title} {snippet} {full}".lower()

        skills = unique([skill.lower() for skill in profile.skills])
        technologies = unique([tech.lower() for tech in profile.technologies])
        skills_matched = [skill for skill in skills if contains_term(job_text, skill)]
        technologies_matched = [tech for tech in technologies if contains_term(job_text, tech)]

        category_match = self.classifier.category_match(profile.category, job.category, title)
        semantic_score = self.semantic.score(
            profile.summary_text or profile.raw_text[:500],
            title,
            snippet or full,
        )

        result = MatchResult(
            job_id=str(job.id),
            category_match=category_match,
            skills_matched=skills_matched,
            skills_missing=[skill for skill in skills if skill not in skills_matched],
            technologies_matched=technologies_matched,
            technologies_missing=[tech for tech in technologies if tech not in technologies_matched],
            semantic_score=semantic_score,
            posted_at=getattr(job, "posted_at", None),
        )

        if not self._passes_gate(len(skills_matched), len(technologies_matched), semantic_score):
            logger.debug("Job %s excluded: no skill, technology or strong semantic overlap", result.job_id)
            return result

        skill_ratio = len(skills_matched) / max(len(skills), 1)
        technology_ratio = len(technologies_matched) / max(len(technologies), 1)
        percentage = self.combine(
            category_match,
            semantic_score,
            skill_ratio,
            technology_ratio,
            has_skills=bool(skills_matched),
            has_technologies=bool(technologies_matched),
        )
        if percentage < self._publish_threshold(category_match):
            logger.debug("Job %s excluded below publish threshold (%d%%)", result.job_id, percentage)
            return result
        percentage = self._apply_ceiling(percentage, semantic_score, skill_ratio, technology_ratio)

        result.match_percentage = percentage
        result.overall_score = percentage / 100
        result.match_reasons = self._reasons(result, profile.category)
        if percentage < 100:
            result.suggestions = self._suggestions(result, profile, job, job_text)
        return result

    def combine(
        self,
        category_match: float,
        semantic_score: float,
        skill_ratio: float,
        technology_ratio: float,
        has_skills: bool = True,
        has_technologies: bool = True,
    ) -> int:
        """Weighted percentage clamped to 0..100, before the publish threshold and ceiling."""
        weights = self.scoring.weights
        exponent = self.scoring.ratio_exponent
        base = (
            category_match * weights.category
            + self.scoring.adjust_semantic(semantic_score) * weights.semantic
            + (skill_ratio**exponent) * weights.skills
            + (technology_ratio**exponent) * weights.technologies
        )
        multiplier = self._bonus_multiplier(
            category_match, semantic_score, skill_ratio, technology_ratio, has_skills, has_technologies
        )
        return max(0, min(100, round(100 * base * multiplier)))

    def _apply_ceiling(
        self, percentage: int, semantic_score: float, skill_ratio: float, technology_ratio: float
    ) -> int:
        ceiling = self.scoring.ceiling
        if (
            skill_ratio >= ceiling.skill_ratio_min
            and technology_ratio >= ceiling.technology_ratio_min
            and semantic_score >= ceiling.semantic_min
        ):
            return max(percentage, ceiling.floor)
        return percentage

    def _bonus_multiplier(
        self,
        category_match: float,
        semantic_score: float,
        skill_ratio: float,
        technology_ratio: float,
        has_skills: bool,
        has_technologies: bool,
    ) -> float:
        bonuses = self.scoring.bonuses
        multiplier = 1.0
        if category_match >= bonuses.category_strong.min:
            multiplier += bonuses.category_strong.bonus
        elif category_match >= bonuses.category_related.min:
            multiplier += bonuses.category_related.bonus
        elif category_match < bonuses.category_weak.below:
            multiplier = bonuses.category_weak.multiplier

        if has_skills and has_technologies:
            multiplier += bonuses.skills_and_technologies
        if skill_ratio >= bonuses.skill_ratio.min:
            multiplier += bonuses.skill_ratio.bonus
        if technology_ratio >= bonuses.technology_ratio.min:
            multiplier += bonuses.technology_ratio.bonus
        if semantic_score >= bonuses.semantic.min:
            multiplier += bonuses.semantic.bonus

        all_round = bonuses.all_round
        if (
            category_match >= all_round.category_min
            and skill_ratio >= all_round.skill_ratio_min
            and technology_ratio >= all_round.technology_ratio_min
        ):
            multiplier += all_round.bonus
        return multiplier

    def _passes_gate(self, skills_matched: int, technologies_matched: int, semantic_score: float) -> bool:
        return skills_matched > 0 or technologies_matched > 0 or semantic_score > self.scoring.gate_semantic_min

    def _publish_threshold(self, category_match: float) -> int:
        threshold = self.scoring.publish_threshold
        return threshold.aligned if category_match >= threshold.category_min else threshold.unaligned

    def _reasons(self, result: MatchResult, profile_category: str) -> list[str]:
        reasons: list[str] = []
        bonuses = self.scoring.bonuses
        if result.category_match >= bonuses.category_strong.min:
            reasons.append(f"Strong match for your {profile_category} background")
        elif result.category_match >= bonuses.category_related.min:
            reasons.append(f"Closely related to your {profile_category} background")

        if result.skills_matched:
            reasons.append(f"Matches your skills: {', '.join(result.skills_matched[:5])}")
        if result.technologies_matched:
            reasons.append(f"Uses technologies you know: {', '.join(result.technologies_matched[:5])}")

        if result.semantic_score > 0.7:
            reasons.append("High semantic similarity to your background")
        elif result.semantic_score > 0.5:
            reasons.append("Good semantic alignment with your experience")

        return reasons or ["Some overlap with your background"]

    def _suggestions(self, result: MatchResult, profile: ResumeProfile, job: Any, job_text: str) -> list[str]:
        suggestions: list[str] = []
        known = {term.lower() for term in profile.technologies + profile.skills}
        wanted = [
            term
            for term in self.config.technologies.all_terms()
            if term not in known and contains_term(job_text, term)
        ]
        if wanted:
            suggestions.append(f"This role also asks for: {', '.join(wanted[:5])}")

        if result.category_match < self.scoring.bonuses.category_related.min:
            suggestions.append(
                f"This is a {job.category} role; highlight any {job.category} experience you have"
            )
        if result.semantic_score < 0.5:
            suggestions.append("Describe your experience using the wording of this job description")
        return suggestions
