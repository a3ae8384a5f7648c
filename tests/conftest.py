from __future__ import annotations

import math
import re
import zlib

import pytest
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from jobcatalog.database import Base, build_engine
from jobcatalog.errors import PageFetchError
from jobcatalog.models import Job, JobSource, ScrapeRun  # noqa: F401


def build_card(
    job_id: str | None,
    title: str = "Frontend Developer",
    company: str = "Acme",
    location: str = "Sydney NSW",
    snippet: str = "Build interfaces with React and TypeScript",
) -> str:
    href = f'href="/job/{job_id}"' if job_id else ""
    return (
        '<article data-automation="job-card">'
        f'<h3><a data-automation="job-title" {href}>{title}</a></h3>'
        f'<span data-automation="job-company">{company}</span>'
        f'<span data-automation="job-location">{location}</span>'
        f'<p data-automation="job-short-description">{snippet}</p>'
        '<span data-automation="job-date">2d ago</span>'
        "</article>"
    )


def build_page(cards: list[str]) -> str:
    return f'<html><body><div data-automation="job-list">{"".join(cards)}</div></body></html>'


class FakeFetcher:
    """Serves canned pages in call order and records requested URLs."""

    def __init__(self, pages: list[str], fail_on: set[int] | None = None) -> None:
        self.pages = pages
        self.fail_on = fail_on or set()
        self.calls: list[str] = []

    async def fetch_rendered_html(self, url, options):
        self.calls.append(url)
        page = len(self.calls)
        if page in self.fail_on:
            raise PageFetchError(url, "timed out")
        if page <= len(self.pages):
            return self.pages[page - 1]
        return "<html><body></body></html>"


class FakeEmbedder:
    """Bag-of-words vectors hashed into a fixed number of buckets."""

    def __init__(self, dims: int = 64) -> None:
        self.dims = dims
        self.calls = 0

    def embed(self, text: str) -> list[float]:
        self.calls += 1
        vector = [0.0] * self.dims
        for word in re.findall(r"[a-z]+", text.lower()):
            vector[zlib.crc32(word.encode()) % self.dims] += 1.0
        norm = math.sqrt(sum(v * v for v in vector)) or 1.0
        return [v / norm for v in vector]


@pytest.fixture
def make_card():
    return build_card


@pytest.fixture
def make_page():
    return build_page


@pytest.fixture
def session_factory():
    engine = build_engine("sqlite://", poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    factory = sessionmaker(autocommit=False, autoflush=False, bind=engine)
    yield factory
    engine.dispose()


@pytest.fixture
def db_session(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def fake_embedder():
    return FakeEmbedder()


@pytest.fixture
def fetcher_factory():
    return FakeFetcher
