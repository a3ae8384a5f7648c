from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from urllib.parse import urlencode

from jobcatalog.config import settings
from jobcatalog.errors import PageFetchError
from jobcatalog.schemas.listing import Listing
from jobcatalog.services.dedup import DeduplicationKeyer, SeenKeys
from jobcatalog.services.listing_extractor import ListingExtractor
from jobcatalog.services.page_fetcher import FetchOptions, PageFetcher

logger = logging.getLogger(__name__)

STOP_MAX_PAGES = "max_pages"
STOP_END_OF_RESULTS = "end_of_results"
STOP_FETCH_FAILED = "fetch_failed"
STOP_PAGINATION_STALLED = "pagination_stalled"
STOP_CANCELLED = "cancelled"


@dataclass
class JobBoard:
    name: str
    base_url: str
    search_path: str = "/j"
    query_param: str = "q"
    location_param: str = "l"
    page_param: str = "pn"
    extra_params: dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_settings(cls) -> JobBoard:
        return cls(
            name=settings.job_board_site,
            base_url=settings.job_board_base_url.rstrip("/"),
            extra_params={"a": "14d", "sp": "facet_listed_date"},
        )

    def page_url(self, query: str, location: str = "", page: int = 1) -> str:
        params: dict[str, str] = {self.query_param: query}
        if location:
            params[self.location_param] = location
        params.update(self.extra_params)
        if page > 1:
            params[self.page_param] = str(page)
        return f"{self.base_url}{self.search_path}?{urlencode(params)}"


@dataclass
class CrawlReport:
    query: str
    location: str = ""
    listings: list[Listing] = field(default_factory=list)
    pages_fetched: int = 0
    duplicates_skipped: int = 0
    stop_reason: str = STOP_MAX_PAGES
    error: str | None = None
    pagination_suspect: bool = False

    @property
    def partial(self) -> bool:
        return self.error is not None


class CrawlController:
    def __init__(
        self,
        fetcher: PageFetcher,
        extractor: ListingExtractor | None = None,
        keyer: DeduplicationKeyer | None = None,
        board: JobBoard | None = None,
        fetch_options: FetchOptions | None = None,
        delay_seconds: float | None = None,
        stalled_page_limit: int = 2,
        stalled_min_listings: int = 10,
        abort_on_stalled: bool | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.board = board or JobBoard.from_settings()
        self.extractor = extractor or ListingExtractor(base_url=self.board.base_url, site=self.board.name)
        self.keyer = keyer or DeduplicationKeyer()
        self.fetch_options = fetch_options or FetchOptions()
        self.delay_seconds = settings.scrape_delay_seconds if delay_seconds is None else delay_seconds
        self.stalled_page_limit = stalled_page_limit
        self.stalled_min_listings = stalled_min_listings
        self.abort_on_stalled = (
            settings.abort_on_stalled_pagination if abort_on_stalled is None else abort_on_stalled
        )

    async def scrape(self, query: str, location: str = "", max_pages: int | None = None) -> list[Listing]:
        report = await self.crawl(query, location, max_pages)
        return report.listings

    async def crawl(
        self,
        query: str,
        location: str = "",
        max_pages: int | None = None,
        cancel_event: asyncio.Event | None = None,
    ) -> CrawlReport:
        max_pages = max(1, max_pages or settings.max_scrape_pages)
        report = CrawlReport(query=query, location=location)
        seen = self.keyer.new_session()
        stalled_pages = 0

        for page in range(1, max_pages + 1):
            if cancel_event is not None and cancel_event.is_set():
                report.stop_reason = STOP_CANCELLED
                break
            if page > 1 and self.delay_seconds > 0:
                await asyncio.sleep(self.delay_seconds)

            url = self.board.page_url(query, location, page)
            logger.info("%s: fetching page %d: %s", self.board.name, page, url)
            try:
                html = await self.fetcher.fetch_rendered_html(url, self.fetch_options)
            except PageFetchError as exc:
                logger.error(
                    "%s: page %d failed, keeping %d listings collected so far: %s",
                    self.board.name,
                    page,
                    len(report.listings),
                    exc,
                )
                report.error = str(exc)
                report.stop_reason = STOP_FETCH_FAILED
                break
            report.pages_fetched += 1

            page_listings = self.extractor.extract(html)
            if not page_listings:
                logger.info("%s: no listings on page %d, stopping pagination", self.board.name, page)
                report.stop_reason = STOP_END_OF_RESULTS
                break

            added = self._collect(page_listings, seen, report, page)
            logger.info(
                "%s: page %d added %d new, skipped %d duplicates",
                self.board.name,
                page,
                added,
                len(page_listings) - added,
            )

            if added:
                stalled_pages = 0
                continue

            logger.warning(
                "%s: all %d listings on page %d were duplicates",
                self.board.name,
                len(page_listings),
                page,
            )
            stalled_pages = stalled_pages + 1 if len(page_listings) >= self.stalled_min_listings else 0
            if stalled_pages >= self.stalled_page_limit:
                report.pagination_suspect = True
                logger.warning(
                    "%s: %d consecutive duplicate pages, pagination looks broken (first url %s)",
                    self.board.name,
                    stalled_pages,
                    page_listings[0].source.url,
                )
                if self.abort_on_stalled:
                    report.stop_reason = STOP_PAGINATION_STALLED
                    break

        logger.info(
            "%s: crawl for %r finished with %d listings over %d pages (%s)",
            self.board.name,
            query,
            len(report.listings),
            report.pages_fetched,
            report.stop_reason,
        )
        return report

    def _collect(self, page_listings: list[Listing], seen: SeenKeys, report: CrawlReport, page: int) -> int:
        added = 0
        for listing in page_listings:
            key = self.keyer.derive_key(listing)
            if seen.add(key):
                report.listings.append(listing)
                added += 1
            else:
                report.duplicates_skipped += 1
                logger.debug(
                    "Skipping duplicate on page %d: %s at %s (key %s)",
                    page,
                    listing.title,
                    listing.company,
                    key,
                )
        return added
