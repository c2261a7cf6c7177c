"""SQLite-backed embedding cache keyed by model and text hash."""

from __future__ import annotations

import hashlib
import json

import aiosqlite

CREATE_CACHE_TABLE = """
CREATE TABLE IF NOT EXISTS embedding_cache (
    text_hash TEXT PRIMARY KEY,
    embedding TEXT NOT NULL
)
"""


class EmbeddingCache:
    def __init__(self, db_path: str, namespace: str = "") -> None:
        self._db_path = db_path
        # Vectors from different models never share a cache entry
        self._namespace = namespace

    async def initialize(self) -> None:
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(CREATE_CACHE_TABLE)
            await db.commit()

    async def get_batch(self, texts: list[str]) -> dict[int, list[float]]:
        """Return {index: embedding} for texts that are cached."""
        if not texts:
            return {}
        hash_to_indices: dict[str, list[int]] = {}
        for i, text in enumerate(texts):
            hash_to_indices.setdefault(self._hash(text), []).append(i)
        placeholders = ",".join("?" for _ in hash_to_indices)

        result: dict[int, list[float]] = {}
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                f"SELECT text_hash, embedding FROM embedding_cache WHERE text_hash IN ({placeholders})",
                list(hash_to_indices),
            ) as cursor:
                async for row in cursor:
                    vector = json.loads(row[1])
                    for idx in hash_to_indices.get(row[0], []):
                        result[idx] = vector
        return result

    async def put_batch(self, texts: list[str], embeddings: list[list[float]]) -> None:
        if not texts:
            return
        rows = [(self._hash(t), json.dumps(e)) for t, e in zip(texts, embeddings)]
        async with aiosqlite.connect(self._db_path) as db:
            await db.executemany(
                "INSERT OR REPLACE INTO embedding_cache (text_hash, embedding) VALUES (?, ?)",
                rows,
            )
            await db.commit()

    def _hash(self, text: str) -> str:
        return hashlib.sha256(f"{self._namespace}\x00{text}".encode("utf-8")).hexdigest()
