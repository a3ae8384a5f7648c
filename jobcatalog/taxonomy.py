from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from jobcatalog.config import settings
from jobcatalog.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = Path(__file__).parent / "data" / "matching.yaml"
SUPPORTED_VERSIONS = {1}


class Weights(BaseModel):
    category: float = 0.40
    semantic: float = 0.25
    skills: float = 0.20
    technologies: float = 0.15


class SemanticAdjustment(BaseModel):
    above: float
    factor: float
    inclusive: bool = False

    def applies(self, value: float) -> bool:
        return value >= self.above if self.inclusive else value > self.above


class ThresholdBonus(BaseModel):
    min: float
    bonus: float


class WeakCategory(BaseModel):
    below: float = 0.3
    multiplier: float = 0.5


class AllRoundBonus(BaseModel):
    category_min: float = 0.9
    skill_ratio_min: float = 0.6
    technology_ratio_min: float = 0.6
    bonus: float = 0.15


class Bonuses(BaseModel):
    category_strong: ThresholdBonus = ThresholdBonus(min=0.9, bonus=0.20)
    category_related: ThresholdBonus = ThresholdBonus(min=0.7, bonus=0.10)
    category_weak: WeakCategory = WeakCategory()
    skills_and_technologies: float = 0.10
    skill_ratio: ThresholdBonus = ThresholdBonus(min=0.7, bonus=0.06)
    technology_ratio: ThresholdBonus = ThresholdBonus(min=0.7, bonus=0.06)
    semantic: ThresholdBonus = ThresholdBonus(min=0.8, bonus=0.08)
    all_round: AllRoundBonus = AllRoundBonus()


class PublishThreshold(BaseModel):
    category_min: float = 0.5
    aligned: int = 30
    unaligned: int = 40


class Ceiling(BaseModel):
    skill_ratio_min: float = 0.75
    technology_ratio_min: float = 0.75
    semantic_min: float = 0.75
    floor: int = 95


class ScoringConfig(BaseModel):
    weights: Weights = Weights()
    ratio_exponent: float = 1.2
    semantic_adjustment: list[SemanticAdjustment] = Field(default_factory=list)
    bonuses: Bonuses = Bonuses()
    gate_semantic_min: float = 0.6
    publish_threshold: PublishThreshold = PublishThreshold()
    ceiling: Ceiling = Ceiling()

    def adjust_semantic(self, value: float) -> float:
        for rule in self.semantic_adjustment:
            if rule.applies(value):
                return min(1.0, value * rule.factor)
        return min(1.0, value)


class SemanticConfig(BaseModel):
    title_token_min_length: int = 4
    title_token_boost: float = 0.15
    weak_signal_below: float = 0.4
    weak_signal_factor: float = 0.5
    description_chars: int = 200
    job_text_chars: int = 512


class CategoryRule(BaseModel):
    keywords: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)


class ClassificationConfig(BaseModel):
    keyword_weight: int = 2
    technology_weight: int = 3
    mention_weight: int = 1
    fullstack_floor: int = 5
    fullstack_boost: int = 10
    minimum_weight: int = 3
    fallback_markers: dict[str, list[str]] = Field(default_factory=dict)


class RelatedCategories(BaseModel):
    pair: tuple[str, str]
    score: float


class CategoryMatchConfig(BaseModel):
    same: float = 1.0
    general: float = 0.5
    title_keyword: float = 0.7
    unrelated: float = 0.1
    related: list[RelatedCategories] = Field(default_factory=list)

    def related_score(self, left: str, right: str) -> float | None:
        for entry in self.related:
            if {left, right} == set(entry.pair):
                return entry.score
        return None


class SkillsConfig(BaseModel):
    max_skills: int = 30
    min_length: int = 3
    phrase_pattern: str = ""
    technical: list[str] = Field(default_factory=list)
    soft: list[str] = Field(default_factory=list)


class TechnologyConfig(BaseModel):
    frameworks: list[str] = Field(default_factory=list)
    databases: list[str] = Field(default_factory=list)
    cloud: list[str] = Field(default_factory=list)
    tools: list[str] = Field(default_factory=list)
    languages: list[str] = Field(default_factory=list)
    aliases: dict[str, str] = Field(default_factory=dict)

    def all_terms(self) -> list[str]:
        merged = self.languages + self.frameworks + self.databases + self.cloud + self.tools
        return list(dict.fromkeys(term.lower() for term in merged))


class LevelBucket(BaseModel):
    below: float
    level: str


class ExperienceConfig(BaseModel):
    years_patterns: list[str] = Field(default_factory=list)
    years_per_entry: float = 2.5
    estimated_years_cap: float = 15
    max_entries: int = 10
    entry_title_prefix: str = ""
    entry_title_terms: str = ""
    levels: list[LevelBucket] = Field(default_factory=list)
    education_keywords: list[str] = Field(default_factory=list)
    max_education: int = 5


class RoleMapping(BaseModel):
    primary: str
    synonyms: list[str] = Field(default_factory=list)
    related: list[str] = Field(default_factory=list)
    categories: list[str] = Field(default_factory=list)


class MatchingConfig(BaseModel):
    version: int
    scoring: ScoringConfig = ScoringConfig()
    semantic: SemanticConfig = SemanticConfig()
    categories: dict[str, CategoryRule] = Field(default_factory=dict)
    classification: ClassificationConfig = ClassificationConfig()
    category_match: CategoryMatchConfig = CategoryMatchConfig()
    skills: SkillsConfig = SkillsConfig()
    technologies: TechnologyConfig = TechnologyConfig()
    experience: ExperienceConfig = ExperienceConfig()
    roles: list[RoleMapping] = Field(default_factory=list)


def load_matching_config(path: str | Path | None = None) -> MatchingConfig:
    """Read a versioned matching taxonomy from YAML.

    Without an explicit path, ``MATCHING_CONFIG_PATH`` is used when set, else the
    bundled ``data/matching.yaml``.
    """
    if path is None and not settings.matching_config_path:
        return _default_config()
    return _read_config(Path(path or settings.matching_config_path))


@lru_cache(maxsize=1)
def _default_config() -> MatchingConfig:
    return _read_config(DEFAULT_CONFIG_PATH)


def _read_config(path: Path) -> MatchingConfig:
    try:
        raw = yaml.safe_load(path.read_text(encoding="utf-8"))
    except OSError as exc:
        raise ConfigError(f"cannot read matching config {path}: {exc}") from exc
    except yaml.YAMLError as exc:
        raise ConfigError(f"invalid YAML in {path}: {exc}") from exc

    if not isinstance(raw, dict):
        raise ConfigError(f"matching config {path} must be a mapping")
    version = raw.get("version")
    if version not in SUPPORTED_VERSIONS:
        raise ConfigError(f"unsupported matching config version {version!r} in {path}")

    try:
        config = MatchingConfig.model_validate(raw)
    except ValidationError as exc:
        raise ConfigError(f"invalid matching config {path}: {exc}") from exc
    logger.debug("Loaded matching config v%s from %s", config.version, path)
    return config
