from __future__ import annotations

import re
from functools import lru_cache


@lru_cache(maxsize=4096)
def term_pattern(term: str) -> re.Pattern[str]:
    # Plain \b fails on terms such as "c#", ".net" or "ci/cd".
    return re.compile(rf"(?<![a-z0-9]){re.escape(term.lower())}(?![a-z0-9])")


def contains_term(text: str, term: str) -> bool:
    if not term:
        return False
    return term_pattern(term).search(text) is not None


def find_terms(text: str, terms: list[str]) -> list[str]:
    lowered = text.lower()
    return [term for term in terms if contains_term(lowered, term)]


def unique(items: list[str]) -> list[str]:
    return list(dict.fromkeys(item for item in items if item))
