from __future__ import annotations

import hashlib
import logging
import re

from jobcatalog.schemas.listing import Listing

logger = logging.getLogger(__name__)

URL_ID_PATTERNS = (
    re.compile(r"/job/(\d+)"),
    re.compile(r"jk=([A-Za-z0-9]+)"),
)
_SHORT_TOKEN = re.compile(r"^[a-z0-9]{1,64}$")


class SeenKeys:
    """Session-scoped set of dedup keys already emitted by one crawl."""

    def __init__(self) -> None:
        self._keys: set[str] = set()

    def add(self, key: str) -> bool:
        if key in self._keys:
            return False
        self._keys.add(key)
        return True

    def __contains__(self, key: object) -> bool:
        return key in self._keys

    def __len__(self) -> int:
        return len(self._keys)


class DeduplicationKeyer:
    def derive_key(self, listing: Listing) -> str:
        url = (listing.source.url or "").strip()
        if url:
            url_id = self.id_from_url(url)
            if url_id:
                return url_id
            return url.lower()

        external_id = (listing.source.external_id or "").strip()
        if external_id:
            return external_id.lower()

        return self._content_hash(listing.title, listing.company)

    def job_id(self, listing: Listing) -> str:
        key = self.derive_key(listing)
        token = key if _SHORT_TOKEN.match(key) else hashlib.sha1(key.encode("utf-8")).hexdigest()[:20]
        return f"{self._slugify(listing.source.site)}_{token}"

    def new_session(self) -> SeenKeys:
        return SeenKeys()

    def id_from_url(self, url: str) -> str:
        for pattern in URL_ID_PATTERNS:
            match = pattern.search(url)
            if match:
                return match.group(1).lower()
        return ""

    def _content_hash(self, title: str, company: str) -> str:
        normalized = f"{self._normalize_text(title)}|{self._normalize_text(company)}"
        return hashlib.sha1(normalized.encode("utf-8")).hexdigest()[:20]

    def _normalize_text(self, value: str) -> str:
        return re.sub(r"\s+", " ", (value or "").strip()).lower()

    def _slugify(self, value: str) -> str:
        return re.sub(r"[^a-z0-9]+", "-", (value or "").strip().lower()).strip("-") or "site"
