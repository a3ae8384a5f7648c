import re

import pytest

from jobcatalog.services.resume_parser import ExtractionRule, ResumeParser

FRONTEND_RESUME = """
Jane Citizen
Senior Frontend Developer at Canva
Frontend Engineer at Atlassian
Skills: React, TypeScript, CSS, leadership
6 years of experience building user interface components with React and TypeScript.
Bachelor of Computer Science, University of Sydney
"""


def test_parse_text_extracts_frontend_profile():
    profile = ResumeParser().parse_text(FRONTEND_RESUME)

    assert {"react", "typescript", "css", "leadership"} <= set(profile.skills)
    assert {"react", "typescript"} <= set(profile.technologies)
    assert profile.years_of_experience == 6
    assert profile.experience_level == "Senior"
    assert profile.category == "frontend"
    assert profile.low_confidence is False
    assert len(profile.experience_entries) == 2
    assert profile.education == ["Bachelor of Computer Science, University of Sydney"]


def test_summary_mentions_level_skills_and_technologies():
    profile = ResumeParser().parse_text(FRONTEND_RESUME)

    assert profile.summary_text.startswith("Senior professional with expertise in")
    assert "Proficient in" in profile.summary_text
    assert "react" in profile.summary_text


def test_aliases_map_to_canonical_technologies():
    text = "Backend engineer working with nodejs, postgres and k8s on microservices for payments."
    profile = ResumeParser().parse_text(text)

    assert {"node", "postgresql", "kubernetes"} <= set(profile.technologies)
    assert "nodejs" not in profile.technologies


def test_terms_match_on_word_boundaries():
    text = "Organised community events and managed a golf club budget across many regions."
    profile = ResumeParser().parse_text(text)

    assert "go" not in profile.technologies
    assert "go" not in profile.skills


def test_years_estimated_from_experience_entries():
    text = "\n".join(
        [
            "Software Engineer at Acme",
            "Backend Developer at Initech",
            "Data Analyst at Globex",
            "Worked with Python and SQL on reporting pipelines.",
        ]
    )
    profile = ResumeParser().parse_text(text)

    assert profile.years_of_experience == 7.5
    assert profile.experience_level == "Senior"


def test_estimated_years_are_capped():
    text = "\n".join(f"Software Engineer at Company {index}" for index in range(12))
    profile = ResumeParser().parse_text(text + "\nPython developer with SQL experience.")

    assert len(profile.experience_entries) == 10
    assert profile.years_of_experience == 15
    assert profile.experience_level == "Lead"


@pytest.mark.parametrize(
    ("years", "level"),
    [(0, "Internship"), (1, "Junior"), (3, "Mid"), (6, "Senior"), (9, "Lead")],
)
def test_experience_level_buckets(years, level):
    assert ResumeParser()._experience_level(years) == level


def test_fullstack_when_frontend_and_backend_are_both_strong():
    text = (
        "Engineer building user interface work in React, TypeScript and CSS, "
        "plus backend API services on Node, Express and Django with REST and GraphQL."
    )
    profile = ResumeParser().parse_text(text)

    assert profile.category == "fullstack"


def test_short_resume_is_low_confidence():
    profile = ResumeParser().parse_text("Hello, I am looking for work.")

    assert profile.low_confidence is True
    assert profile.category == "general"
    assert profile.experience_level == "Internship"


def test_skills_are_capped():
    terms = [
        "javascript", "typescript", "python", "java", "rust", "php", "ruby", "react", "vue",
        "angular", "node", "express", "svelte", "html", "css", "sass", "redux", "tailwind",
        "sql", "mongodb", "postgresql", "mysql", "redis", "kafka", "aws", "azure", "docker",
        "kubernetes", "terraform", "git", "jenkins", "linux", "bash", "graphql",
    ]
    profile = ResumeParser().parse_text("Experienced with " + " ".join(terms))

    assert len(profile.skills) == 30


def test_parse_file_reads_text(tmp_path):
    path = tmp_path / "resume.txt"
    path.write_text(FRONTEND_RESUME, encoding="utf-8")

    profile = ResumeParser().parse_file(path)

    assert profile.category == "frontend"


def test_extraction_rule_applies_group_and_normalizer():
    rule = ExtractionRule(
        "languages",
        re.compile(r"languages:\s*([^\n]+)", re.IGNORECASE),
        group=1,
        normalizer=lambda value: [part.strip().lower() for part in value.split("/")],
    )

    assert rule.apply("Languages: English / French\nOther") == ["english", "french"]
    assert rule.apply("nothing here") == []
