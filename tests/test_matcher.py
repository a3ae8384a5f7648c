import pytest

from jobcatalog.schemas.job import JobOut
from jobcatalog.schemas.resume import ResumeProfile
from jobcatalog.services.matcher import MatchRanker


class FixedSemantic:
    def __init__(self, value=0.0):
        self.value = value

    def score(self, query, job_title, job_description=""):
        return self.value


def _ranker(semantic=0.0):
    return MatchRanker(semantic=FixedSemantic(semantic))


def _job(job_id="jora_1", title="Frontend Developer", category="frontend", snippet=""):
    return JobOut(
        id=job_id,
        title=title,
        company="Acme",
        work_mode="On-site",
        experience_level="Mid",
        category=category,
        description_snippet=snippet,
    )


def test_end_to_end_frontend_match():
    profile = ResumeProfile(skills=["react", "node"], technologies=["typescript"], category="frontend")

    result = _ranker().score(profile, _job(snippet="React and TypeScript"))

    assert result.match_percentage == 87
    assert result.overall_score == pytest.approx(0.87)
    assert result.skills_matched == ["react"]
    assert result.skills_missing == ["node"]
    assert result.technologies_matched == ["typescript"]
    assert result.match_reasons[0] == "Strong match for your frontend background"
    assert "Matches your skills: react" in result.match_reasons
    assert "Uses technologies you know: typescript" in result.match_reasons


def test_skill_ratio_is_monotonic():
    ranker = _ranker()
    ratios = [0.0, 0.25, 0.5, 0.75, 1.0]

    scores = [ranker.combine(0.8, 0.5, ratio, 0.5) for ratio in ratios]

    assert scores == sorted(scores)
    assert scores[-1] > scores[0]


def test_semantic_score_is_monotonic():
    ranker = _ranker()
    values = [0.0, 0.3, 0.49, 0.5, 0.6, 0.61, 0.7, 0.71, 0.9]

    scores = [ranker.combine(0.5, value, 0.5, 0.5) for value in values]

    assert scores == sorted(scores)


def test_category_alignment_dominates():
    ranker = _ranker()

    aligned = ranker.combine(1.0, 0.5, 0.5, 0.5)
    unrelated = ranker.combine(0.1, 0.5, 0.5, 0.5)

    assert aligned > 80
    assert unrelated < 25


def test_category_sensitivity_across_signal_grid():
    ranker = _ranker()
    grid = [step / 10 for step in range(11)]

    for semantic in grid:
        for skill_ratio in grid:
            for tech_ratio in grid:
                flags = {"has_skills": skill_ratio > 0, "has_technologies": tech_ratio > 0}
                high = ranker.combine(0.9, semantic, skill_ratio, tech_ratio, **flags)
                low = ranker.combine(0.2, semantic, skill_ratio, tech_ratio, **flags)
                assert high >= 1.5 * low, (semantic, skill_ratio, tech_ratio, high, low)


def test_combine_leaves_ceiling_to_scoring():
    assert _ranker().combine(0.1, 0.8, 0.8, 0.8) == 42


def test_strong_signals_raise_published_score_to_ceiling_floor():
    profile = ResumeProfile(skills=["react"], technologies=["typescript"], category="data")
    job = _job(title="React Developer", snippet="React and TypeScript")

    result = _ranker(semantic=0.8).score(profile, job)

    assert result.category_match == 0.1
    assert result.match_percentage == 95


def test_ceiling_does_not_rescue_jobs_below_publish_threshold():
    profile = ResumeProfile(
        skills=["react", "css", "html", "kotlin"],
        technologies=["react", "typescript", "vue", "swift"],
        category="data",
    )
    job = _job(title="React Developer", snippet="React, CSS, HTML, TypeScript and Vue")

    result = _ranker(semantic=0.75).score(profile, job)

    assert len(result.skills_matched) == 3
    assert len(result.technologies_matched) == 3
    assert result.match_percentage == 0


def test_percentage_is_clamped():
    assert _ranker().combine(1.0, 1.0, 1.0, 1.0) == 100


def test_no_overlap_and_weak_semantic_is_excluded():
    profile = ResumeProfile(skills=["python"], technologies=["django"], category="backend")

    result = _ranker(semantic=0.6).score(profile, _job(title="Barista", category="general", snippet="Coffee"))

    assert result.match_percentage == 0
    assert result.match_reasons == []


def test_strong_semantic_alone_passes_the_gate():
    ranker = _ranker()

    assert not ranker._passes_gate(0, 0, 0.6)
    assert ranker._passes_gate(0, 0, 0.61)
    assert ranker._passes_gate(1, 0, 0.0)


def test_low_score_below_publish_threshold_is_excluded():
    profile = ResumeProfile(skills=["sql", "python", "spark", "react"], category="data")

    result = _ranker().score(profile, _job(title="React Developer", snippet="React and CSS"))

    assert result.skills_matched == ["react"]
    assert result.match_percentage == 0


def test_suggestions_name_missing_technologies():
    profile = ResumeProfile(skills=["react", "kotlin"], technologies=["react"], category="frontend")

    result = _ranker().score(profile, _job(title="React Developer", snippet="Using Docker and AWS"))

    assert 0 < result.match_percentage < 100
    assert result.suggestions[0] == "This role also asks for: aws, docker"
    assert "Describe your experience using the wording of this job description" in result.suggestions


def test_skills_match_on_word_boundaries():
    profile = ResumeProfile(skills=["go", "java"], category="backend")
    job = _job(title="Backend Developer", category="backend", snippet="JavaScript and Google Cloud")

    result = _ranker().score(profile, job)

    assert result.skills_matched == []
