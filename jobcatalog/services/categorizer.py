from __future__ import annotations

import logging

from jobcatalog.services.terms import contains_term, find_terms
from jobcatalog.taxonomy import MatchingConfig, load_matching_config

logger = logging.getLogger(__name__)

GENERAL = "general"


class CategoryClassifier:
    def __init__(self, config: MatchingConfig | None = None) -> None:
        self.config = config or load_matching_config()

    def classify(
        self,
        text: str,
        skills: list[str] | None = None,
        technologies: list[str] | None = None,
        title: str = "",
    ) -> str:
        skill_set = {skill.lower() for skill in skills or []}
        tech_set = {tech.lower() for tech in technologies or []}
        all_text = " ".join([text.lower(), " ".join(sorted(skill_set)), " ".join(sorted(tech_set))])

        weights = self._category_weights(all_text, skill_set | tech_set, title.lower())
        best, best_weight = GENERAL, 0
        for category, weight in weights.items():
            if weight > best_weight:
                best, best_weight = category, weight

        if best_weight < self.config.classification.minimum_weight:
            best = self._fallback_category(sorted(tech_set))
        logger.debug("Category weights %s -> %s", weights, best)
        return best

    def classify_job(self, title: str, description: str = "") -> str:
        text = f"{title} {description}"
        technologies = find_terms(text, self.config.technologies.all_terms())
        return self.classify(text, technologies=technologies, title=title)

    def category_match(self, profile_category: str, job_category: str, job_title: str = "") -> float:
        scores = self.config.category_match
        profile_category = (profile_category or GENERAL).lower()
        job_category = (job_category or GENERAL).lower()

        if profile_category == job_category:
            return scores.same
        related = scores.related_score(profile_category, job_category)
        if related is not None:
            return related
        if GENERAL in (profile_category, job_category):
            return scores.general

        rule = self.config.categories.get(profile_category)
        title = job_title.lower()
        if rule and title and any(contains_term(title, keyword) for keyword in rule.keywords):
            return scores.title_keyword
        return scores.unrelated

    def _category_weights(self, all_text: str, listed: set[str], title: str) -> dict[str, int]:
        rules = self.config.classification
        weights: dict[str, int] = {}
        for category, rule in self.config.categories.items():
            weight = 0
            for keyword in rule.keywords:
                if contains_term(all_text, keyword):
                    weight += rules.keyword_weight
                if title and contains_term(title, keyword):
                    weight += rules.keyword_weight
            for tech in rule.technologies:
                if tech in listed:
                    weight += rules.technology_weight
                elif contains_term(all_text, tech):
                    weight += rules.mention_weight
            weights[category] = weight

        fullstack = self.config.categories.get("fullstack")
        if fullstack is not None:
            has_keyword = any(contains_term(all_text, keyword) for keyword in fullstack.keywords)
            if (
                weights.get("frontend", 0) > rules.fullstack_floor
                and weights.get("backend", 0) > rules.fullstack_floor
                and not has_keyword
            ):
                weights["fullstack"] += rules.fullstack_boost
        return weights

    def _fallback_category(self, technologies: list[str]) -> str:
        markers = self.config.classification.fallback_markers
        counts = {
            category: sum(1 for tech in technologies if any(marker in tech for marker in category_markers))
            for category, category_markers in markers.items()
        }
        frontend = counts.get("frontend", 0)
        backend = counts.get("backend", 0)
        data = counts.get("data", 0)

        if frontend > 2 and backend > 1:
            return "fullstack"
        if frontend > backend and frontend > data:
            return "frontend"
        if backend > frontend and backend > data:
            return "backend"
        if data > 2:
            return "data"
        return GENERAL
