from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

import httpx
from playwright.async_api import Error as PlaywrightError
from playwright.async_api import async_playwright
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from jobcatalog.config import settings
from jobcatalog.errors import PageFetchError

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,image/avif,image/webp,*/*;q=0.8",
    "Accept-Language": "en-AU,en;q=0.9",
}


@dataclass
class FetchOptions:
    user_agent: str = field(default_factory=lambda: settings.scraper_user_agent)
    viewport: dict[str, int] = field(default_factory=lambda: {"width": 1440, "height": 900})
    headers: dict[str, str] = field(default_factory=lambda: dict(DEFAULT_HEADERS))
    timeout: float = field(default_factory=lambda: settings.page_fetch_timeout_seconds)


class PageFetcher(Protocol):
    async def fetch_rendered_html(self, url: str, options: FetchOptions) -> str:
        ...


def looks_like_challenge(content: str) -> bool:
    if not content:
        return False
    lowered = content.lower()
    return (
        "cf-chl-opt" in lowered
        or "cdn-cgi/challenge-platform" in lowered
        or "just a moment..." in lowered
        or "enable javascript and cookies to continue" in lowered
    )


class HttpPageFetcher:
    """Plain HTTP fetcher for boards that render listings server-side."""

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        self._client = client

    async def fetch_rendered_html(self, url: str, options: FetchOptions) -> str:
        try:
            response = await self._get(url, options)
        except httpx.HTTPError as exc:
            raise PageFetchError(url, f"{type(exc).__name__}: {exc}") from exc

        if response.status_code >= 400:
            raise PageFetchError(url, f"HTTP {response.status_code}")
        if looks_like_challenge(response.text):
            raise PageFetchError(url, "bot challenge page")
        return response.text

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(min=1, max=8),
        retry=retry_if_exception_type(httpx.TransportError),
        reraise=True,
    )
    async def _get(self, url: str, options: FetchOptions) -> httpx.Response:
        headers = {**options.headers, "User-Agent": options.user_agent}
        if self._client is not None:
            return await self._client.get(url, headers=headers, timeout=options.timeout)
        async with httpx.AsyncClient(timeout=options.timeout, follow_redirects=True) as client:
            return await client.get(url, headers=headers)


class PlaywrightPageFetcher:
    """Headless chromium fetcher; every fetch runs in its own browser context."""

    def __init__(self, headless: bool = True, settle_ms: int = 2500) -> None:
        self.headless = headless
        self.settle_ms = settle_ms
        self._playwright: Any = None
        self._browser: Any = None

    async def __aenter__(self) -> PlaywrightPageFetcher:
        await self._ensure_browser()
        return self

    async def __aexit__(self, *_exc: object) -> None:
        await self.close()

    async def fetch_rendered_html(self, url: str, options: FetchOptions) -> str:
        try:
            browser = await self._ensure_browser()
            context = await browser.new_context(
                user_agent=options.user_agent,
                viewport=options.viewport,
                extra_http_headers=options.headers,
            )
            try:
                page = await context.new_page()
                await page.goto(url, wait_until="domcontentloaded", timeout=options.timeout * 1000)
                await page.wait_for_timeout(self.settle_ms)
                html_content = await page.content()
            finally:
                await context.close()
        except PlaywrightError as exc:
            raise PageFetchError(url, f"{type(exc).__name__}: {exc}") from exc

        if looks_like_challenge(html_content):
            raise PageFetchError(url, "bot challenge page")
        return html_content

    async def close(self) -> None:
        if self._browser is not None:
            await self._browser.close()
            self._browser = None
        if self._playwright is not None:
            await self._playwright.stop()
            self._playwright = None

    async def _ensure_browser(self) -> Any:
        if self._browser is None:
            self._playwright = await async_playwright().start()
            self._browser = await self._playwright.chromium.launch(
                headless=self.headless,
                args=["--no-sandbox", "--disable-dev-shm-usage"],
            )
            logger.info("Launched headless chromium")
        return self._browser
