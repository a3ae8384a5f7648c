from __future__ import annotations

from dataclasses import dataclass, field

from jobcatalog.services.terms import unique
from jobcatalog.taxonomy import MatchingConfig, RoleMapping, load_matching_config


@dataclass
class QueryExpansion:
    search_terms: list[str]
    categories: list[str] = field(default_factory=list)
    related_roles: list[str] = field(default_factory=list)


class QueryExpander:
    """Turns a role query into synonyms and related roles from the taxonomy."""

    def __init__(self, config: MatchingConfig | None = None, max_terms: int = 5, max_related: int = 5) -> None:
        self.roles = (config or load_matching_config()).roles
        self.max_terms = max_terms
        self.max_related = max_related

    def expand(self, query: str) -> QueryExpansion:
        normalized = query.lower().strip()
        if not normalized:
            return QueryExpansion(search_terms=[query])

        exact = self._exact_role(normalized)
        if exact is not None:
            return QueryExpansion(
                search_terms=unique([exact.primary, *exact.synonyms, *exact.related]),
                categories=list(exact.categories),
                related_roles=list(exact.related),
            )

        partial = [
            role for role in self.roles if any(normalized in name for name in self._names(role))
        ]
        if partial:
            return QueryExpansion(
                search_terms=unique([term for role in partial for term in (role.primary, *role.synonyms)]),
                categories=unique([category for role in partial for category in role.categories]),
                related_roles=unique([related for role in partial for related in role.related]),
            )
        return QueryExpansion(search_terms=[query])

    def scraping_terms(self, query: str) -> list[str]:
        expansion = self.expand(query)
        return unique([query.strip(), *expansion.search_terms[:3]])[: self.max_terms]

    def related_roles(self, query: str) -> list[str]:
        return self.expand(query).related_roles[: self.max_related]

    def is_relevant(self, job_title: str, query: str) -> bool:
        title = job_title.lower()
        return any(term.lower() in title for term in self.expand(query).search_terms)

    def _exact_role(self, normalized: str) -> RoleMapping | None:
        # A role's own name beats a synonym, which beats a mention as another role's relative.
        for names in (
            lambda role: [role.primary],
            lambda role: role.synonyms,
            lambda role: role.related,
        ):
            for role in self.roles:
                if normalized in names(role):
                    return role
        return None

    def _names(self, role: RoleMapping) -> list[str]:
        return [role.primary, *role.synonyms, *role.related]
