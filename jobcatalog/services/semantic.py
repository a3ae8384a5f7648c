from __future__ import annotations

import logging
import math
import re
import threading
from typing import Any, Protocol

from jobcatalog.config import settings
from jobcatalog.errors import EmbeddingUnavailable
from jobcatalog.taxonomy import MatchingConfig, load_matching_config

logger = logging.getLogger(__name__)


class EmbeddingProvider(Protocol):
    def embed(self, text: str) -> list[float]:
        ...


class HuggingFaceEmbedder:
    """Sentence-transformers embeddings through langchain, loaded on first use."""

    def __init__(self, model_name: str | None = None) -> None:
        self.model_name = model_name or settings.embedding_model_name
        self._model: Any = None
        self._failed: str | None = None
        self._lock = threading.Lock()

    @property
    def available(self) -> bool:
        return self._failed is None

    def embed(self, text: str) -> list[float]:
        return list(self._load().embed_query(text))

    def _load(self) -> Any:
        if self._failed is not None:
            raise EmbeddingUnavailable(self._failed)
        with self._lock:
            if self._model is None:
                self._model = self._build_model()
        return self._model

    def _build_model(self) -> Any:
        try:
            from langchain_community.embeddings import HuggingFaceEmbeddings
        except ImportError as exc:
            self._failed = f"langchain_community is not installed: {exc}"
            raise EmbeddingUnavailable(self._failed) from exc

        try:
            model = HuggingFaceEmbeddings(
                model_name=self.model_name,
                encode_kwargs={"normalize_embeddings": True},
            )
        except (ImportError, OSError, ValueError) as exc:
            self._failed = f"cannot load {self.model_name}: {exc}"
            raise EmbeddingUnavailable(self._failed) from exc
        logger.info("Loaded embedding model %s", self.model_name)
        return model


class SemanticSimilarityScorer:
    def __init__(
        self,
        provider: EmbeddingProvider | None = None,
        config: MatchingConfig | None = None,
        query_cache_size: int = 64,
    ) -> None:
        self.provider = provider
        self.config = (config or load_matching_config()).semantic
        self.query_cache_size = query_cache_size
        self._query_cache: dict[str, list[float]] = {}
        self._cache_lock = threading.Lock()

    def score(self, query: str, job_title: str, job_description: str = "") -> float:
        if self.provider is None or not query.strip():
            return 0.0

        job_text = self.job_text(job_title, job_description)
        try:
            query_vector = self._query_embedding(query)
            job_vector = self.provider.embed(job_text)
        except EmbeddingUnavailable as exc:
            logger.warning("Embedding provider unavailable, semantic score is 0: %s", exc)
            return 0.0
        except Exception as exc:
            logger.error("Embedding failed for %r, semantic score is 0: %s", job_title, exc)
            return 0.0

        similarity = self._cosine_similarity(query_vector, job_vector)
        normalized = (similarity + 1.0) / 2.0
        normalized = min(1.0, normalized + self._title_boost(query, job_title))
        if normalized < self.config.weak_signal_below:
            normalized *= self.config.weak_signal_factor
        return max(0.0, min(1.0, normalized))

    def job_text(self, job_title: str, job_description: str = "") -> str:
        snippet = (job_description or "")[: self.config.description_chars].strip()
        return f"{job_title} {snippet}".strip()[: self.config.job_text_chars]

    def _title_boost(self, query: str, job_title: str) -> float:
        title = job_title.lower()
        tokens = {
            token
            for token in re.split(r"\s+", query.lower())
            if len(token) >= self.config.title_token_min_length
        }
        hits = sum(1 for token in tokens if token in title)
        return hits * self.config.title_token_boost

    def _query_embedding(self, query: str) -> list[float]:
        with self._cache_lock:
            cached = self._query_cache.get(query)
        if cached is not None:
            return cached

        vector = self.provider.embed(query)
        with self._cache_lock:
            if len(self._query_cache) >= self.query_cache_size:
                self._query_cache.pop(next(iter(self._query_cache)))
            self._query_cache[query] = vector
        return vector

    def _cosine_similarity(self, left: list[float], right: list[float]) -> float:
        if not left or not right or len(left) != len(right):
            return 0.0
        dot = sum(a * b for a, b in zip(left, right))
        left_norm = math.sqrt(sum(a * a for a in left))
        right_norm = math.sqrt(sum(b * b for b in right))
        if left_norm == 0 or right_norm == 0:
            return 0.0
        return dot / (left_norm * right_norm)
