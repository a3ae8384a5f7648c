from __future__ import annotations


class JobCatalogError(Exception):
    pass


class ConfigError(JobCatalogError):
    pass


class PageFetchError(JobCatalogError):
    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class PersistenceError(JobCatalogError):
    pass


class EmbeddingUnavailable(JobCatalogError):
    pass
