from __future__ import annotations

import logging
import re
from datetime import datetime
from typing import Any
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from jobcatalog.config import settings
from jobcatalog.models.job import utcnow
from jobcatalog.schemas.listing import Listing, Source
from jobcatalog.services.categorizer import CategoryClassifier

logger = logging.getLogger(__name__)

CARD_SELECTORS = (
    '[data-automation="job-card"]',
    ".job-card",
    ".job-item",
    'article[data-testid="job-card"]',
    'div[class*="job"]',
    'a[href*="/job/"]',
)
TITLE_SELECTORS = ('[data-automation="job-title"]', 'a[href*="/job/"]', "h2 a, h3 a, .title a", "a")
COMPANY_SELECTORS = ('[data-automation="job-company"]', '.job-company, .company, .employer, [class*="company"]')
LOCATION_SELECTORS = ('[data-automation="job-location"]', '.job-location, .location, [class*="location"]')
DESCRIPTION_SELECTORS = (
    '[data-automation="job-short-description"]',
    ".job-abstract, .job-snippet, .job-description, .description",
)
POSTED_SELECTORS = ('[data-automation="job-date"]', ".job-listed-date, time, .date")
EXTERNAL_ID_PATTERN = re.compile(r"job/(\d+)|jk=([A-Za-z0-9]+)")


class ListingExtractor:
    def __init__(
        self,
        base_url: str | None = None,
        site: str | None = None,
        classifier: CategoryClassifier | None = None,
    ) -> None:
        self.base_url = (base_url or settings.job_board_base_url).rstrip("/")
        self.site = site or settings.job_board_site
        self.classifier = classifier or CategoryClassifier()

    def extract(self, html: str, observed_at: datetime | None = None) -> list[Listing]:
        soup = BeautifulSoup(html or "", "html.parser")
        cards = self._collect_cards(soup)
        if not cards:
            logger.info("No job cards found (html length %d)", len(html or ""))
            return []

        observed_at = observed_at or utcnow()
        listings: list[Listing] = []
        for index, card in enumerate(cards):
            listing = self._parse_card(card, observed_at)
            if listing is None:
                logger.debug("Skipping card %d without a title", index)
                continue
            listings.append(listing)
        return listings

    def _collect_cards(self, soup: BeautifulSoup) -> list[Any]:
        for selector in CARD_SELECTORS:
            cards = soup.select(selector)
            if cards:
                logger.debug("Found %d cards using selector %s", len(cards), selector)
                return cards
        return []

    def _parse_card(self, card: Any, observed_at: datetime) -> Listing | None:
        title_el = self._first(card, TITLE_SELECTORS)
        if title_el is None and card.name == "a":
            title_el = card
        title = title_el.get_text(" ", strip=True)[:500] if title_el is not None else ""
        if not title:
            return None

        link_el = title_el if title_el.name == "a" else (
            title_el.find("a", href=True) or card.select_one('a[href*="/job/"]')
        )
        url = self._normalize_url(link_el.get("href", "") if link_el is not None else "")
        company = self._text(card, COMPANY_SELECTORS)[:255] or "Unknown"
        location = self._text(card, LOCATION_SELECTORS)[:255]
        description = self._text(card, DESCRIPTION_SELECTORS)
        posted_text = self._text(card, POSTED_SELECTORS)[:255]
        haystack = f"{title} {description}"

        return Listing(
            title=title,
            company=company,
            location=location,
            description_snippet=description[:2000],
            posted_text=posted_text,
            work_mode=self._infer_work_mode(haystack),
            experience_level=self._infer_experience_level(haystack),
            category=self.classifier.classify_job(title, description),
            source=Source(
                site=self.site,
                url=url or None,
                external_id=self._external_id(url, card) or None,
                posted_at=observed_at,
            ),
        )

    def _first(self, card: Any, selectors: tuple[str, ...]) -> Any | None:
        for selector in selectors:
            found = card.select_one(selector)
            if found is not None:
                return found
        return None

    def _text(self, card: Any, selectors: tuple[str, ...]) -> str:
        element = self._first(card, selectors)
        return element.get_text(" ", strip=True) if element is not None else ""

    def _external_id(self, url: str, card: Any) -> str:
        match = EXTERNAL_ID_PATTERN.search(url or "")
        if match:
            return match.group(1) or match.group(2)
        for attr in ("data-job-id", "data-jk"):
            value = card.get(attr)
            if value:
                return str(value).strip()
        return ""

    def _normalize_url(self, href: str) -> str:
        if not href:
            return ""
        href = href.strip()
        if href.startswith("//"):
            return f"https:{href}"
        if href.startswith("http://") or href.startswith("https://"):
            return href
        if href.startswith("?"):
            return f"{self.base_url}{href}"
        return urljoin(f"{self.base_url}/", href)

    def _infer_work_mode(self, text: str) -> str:
        token = text.lower().replace("-", " ")
        if "hybrid" in token:
            return "Hybrid"
        if any(part in token for part in ("remote", "wfh", "work from home", "fully distributed")):
            return "Remote"
        return "On-site"

    def _infer_experience_level(self, text: str) -> str:
        token = text.lower()
        if any(part in token for part in ("senior", "lead", "principal", "architect")):
            return "Senior"
        if any(part in token for part in ("junior", "graduate", "entry")):
            return "Junior"
        return "Mid"
