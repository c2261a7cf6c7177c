"""Tests for CachedEmbedder wrapper and the hashing embedder."""

from __future__ import annotations

import tempfile
from pathlib import Path

import numpy as np
import pytest

from content_engine.embeddings.cache import EmbeddingCache
from content_engine.embeddings.cached_embedder import CachedEmbedder
from content_engine.embeddings.hashing_embedder import HashingEmbedder


class CountingEmbedder:
    """Fake embedder that tracks call counts."""

    def __init__(self) -> None:
        self.embed_texts_calls = 0
        self.texts_seen: list[str] = []

    @property
    def dimensions(self) -> int:
        return 3

    @property
    def model(self) -> str:
        return "counting"

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        self.embed_texts_calls += 1
        self.texts_seen.extend(texts)
        return [[float(len(t)), 1.0, 0.0] for t in texts]

    async def embed_query(self, query: str) -> list[float]:
        return (await self.embed_texts([query]))[0]


@pytest.fixture
async def embedder_pair():
    tmp = tempfile.mkdtemp()
    cache = EmbeddingCache(str(Path(tmp) / "cache.db"), namespace="counting")
    await cache.initialize()
    delegate = CountingEmbedder()
    embedder = CachedEmbedder(delegate=delegate, cache=cache)
    return embedder, delegate


async def test_embed_query_caches(embedder_pair):
    embedder, delegate = embedder_pair
    result1 = await embedder.embed_query("hello")
    result2 = await embedder.embed_query("hello")
    assert result1 == result2
    assert delegate.embed_texts_calls == 1


async def test_embed_texts_only_sends_misses(embedder_pair):
    embedder, delegate = embedder_pair
    await embedder.embed_texts(["a", "bb"])
    result = await embedder.embed_texts(["bb", "ccc", "a"])
    assert delegate.texts_seen == ["a", "bb", "ccc"]
    assert [r[0] for r in result] == [2.0, 3.0, 1.0]


async def test_embed_texts_empty(embedder_pair):
    embedder, delegate = embedder_pair
    assert await embedder.embed_texts([]) == []
    assert delegate.embed_texts_calls == 0


async def test_cache_is_namespaced_by_model(tmp_dir):
    db_path = str(Path(tmp_dir) / "cache.db")
    first = EmbeddingCache(db_path, namespace="model-a")
    await first.initialize()
    await first.put_batch(["text"], [[1.0, 2.0]])
    second = EmbeddingCache(db_path, namespace="model-b")
    assert await second.get_batch(["text"]) == {}
    assert await first.get_batch(["text"]) == {0: [1.0, 2.0]}


async def test_hashing_embedder_is_deterministic_and_normalised():
    embedder = HashingEmbedder(dimensions=16)
    a1 = await embedder.embed_query("payments launch review")
    a2 = await embedder.embed_query("Payments launch review")
    other = await embedder.embed_query("mobile onboarding copy")
    assert a1 == a2
    assert len(a1) == 16
    assert np.linalg.norm(a1) == pytest.approx(1.0, abs=1e-5)
    assert np.dot(a1, a2) > np.dot(a1, other)
    assert len(await embedder.embed_query("!!!")) == 16
