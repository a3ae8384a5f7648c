import asyncio

import httpx
import pytest

from jobcatalog.errors import PageFetchError
from jobcatalog.services.page_fetcher import FetchOptions, HttpPageFetcher, looks_like_challenge


def _fetch(handler, url="https://au.jora.com/j?q=developer", options=None):
    async def scenario():
        async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
            return await HttpPageFetcher(client).fetch_rendered_html(url, options or FetchOptions())

    return asyncio.run(scenario())


def test_fetch_returns_html_and_sends_user_agent():
    seen = {}

    def handler(request):
        seen["user_agent"] = request.headers["User-Agent"]
        return httpx.Response(200, text="<html><body>jobs</body></html>")

    html = _fetch(handler, options=FetchOptions(user_agent="catalog-test/1.0"))

    assert "jobs" in html
    assert seen["user_agent"] == "catalog-test/1.0"


def test_http_error_status_raises_page_fetch_error():
    with pytest.raises(PageFetchError, match="HTTP 503"):
        _fetch(lambda request: httpx.Response(503, text="busy"))


def test_challenge_page_raises_page_fetch_error():
    page = "<html><title>Just a moment...</title><script src='/cdn-cgi/challenge-platform/x.js'></script></html>"

    with pytest.raises(PageFetchError, match="bot challenge"):
        _fetch(lambda request: httpx.Response(200, text=page))


def test_looks_like_challenge():
    assert looks_like_challenge("Please enable JavaScript and cookies to continue")
    assert not looks_like_challenge('<div data-automation="job-card">Developer</div>')
    assert not looks_like_challenge("")
