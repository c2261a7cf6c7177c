"""Caching wrapper around an Embedder that stores results in SQLite."""

from __future__ import annotations

from content_engine.embeddings.cache import EmbeddingCache
from content_engine.observability.logger import get_logger
from content_engine.protocols.embedder import Embedder

logger = get_logger("cached_embedder")


class CachedEmbedder:
    """Wraps any Embedder, checks EmbeddingCache first, calls delegate for misses."""

    def __init__(self, delegate: Embedder, cache: EmbeddingCache) -> None:
        self._delegate = delegate
        self._cache = cache

    @property
    def dimensions(self) -> int:
        return self._delegate.dimensions

    @property
    def model(self) -> str:
        return self._delegate.model

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        if not texts:
            return []

        cached = await self._cache.get_batch(texts)
        miss_indices = [i for i in range(len(texts)) if i not in cached]

        if not miss_indices:
            logger.debug("embed_texts_all_cached", count=len(texts))
            return [cached[i] for i in range(len(texts))]

        miss_texts = [texts[i] for i in miss_indices]
        miss_embeddings = await self._delegate.embed_texts(miss_texts)
        await self._cache.put_batch(miss_texts, miss_embeddings)

        result: list[list[float]] = [cached.get(i, []) for i in range(len(texts))]
        for idx, emb in zip(miss_indices, miss_embeddings):
            result[idx] = emb

        logger.info(
            "embed_texts_with_cache",
            total=len(texts),
            hits=len(texts) - len(miss_indices),
            misses=len(miss_indices),
        )
        return result

    async def embed_query(self, query: str) -> list[float]:
        embeddings = await self.embed_texts([query])
        return embeddings[0]
