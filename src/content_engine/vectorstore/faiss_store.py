"""FAISS vector store with string-key ID mapping, removal and persistence."""

from __future__ import annotations

import asyncio
import json
import os
from pathlib import Path

import faiss
import numpy as np

from content_engine.observability.logger import get_logger

logger = get_logger("faiss_store")


class FAISSVectorStore:
    """Exact cosine search: inner product over L2-normalised vectors.

    Keys are strings such as ``"input:12"``; re-adding a key replaces its vector.
    """

    def __init__(self, dimensions: int, index_path: str | None = None) -> None:
        self._dimensions = dimensions
        self._index_path = index_path
        self._index = faiss.IndexIDMap(faiss.IndexFlatIP(dimensions))
        self._id_to_key: dict[int, str] = {}
        self._key_to_int: dict[str, int] = {}
        self._next_id: int = 0
        self._write_lock = asyncio.Lock()

        if index_path:
            self._try_load(index_path)

    def _try_load(self, path: str) -> None:
        index_file = os.path.join(path, "index.faiss")
        mapping_file = os.path.join(path, "id_mapping.json")
        if os.path.exists(index_file) and os.path.exists(mapping_file):
            index = faiss.read_index(index_file)
            if index.d != self._dimensions:
                logger.warning(
                    "faiss_dimension_mismatch", expected=self._dimensions, found=index.d, path=path
                )
                return
            self._index = index
            with open(mapping_file) as f:
                data = json.load(f)
            self._id_to_key = {int(k): v for k, v in data["id_to_key"].items()}
            self._key_to_int = data["key_to_int"]
            self._next_id = data["next_id"]
            logger.info("faiss_loaded", size=self._index.ntotal, path=path)

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def size(self) -> int:
        return self._index.ntotal

    def contains(self, key: str) -> bool:
        return key in self._key_to_int

    def add(self, keys: list[str], embeddings: np.ndarray) -> None:
        if len(keys) == 0:
            return
        embeddings = np.array(embeddings, dtype=np.float32).reshape(len(keys), -1)
        faiss.normalize_L2(embeddings)
        existing = [self._key_to_int[k] for k in keys if k in self._key_to_int]
        if existing:
            self._index.remove_ids(np.array(existing, dtype=np.int64))
        int_ids = self._assign_int_ids(keys)
        self._index.add_with_ids(embeddings, np.array(int_ids, dtype=np.int64))
        logger.debug("faiss_added", count=len(keys), replaced=len(existing), total=self._index.ntotal)

    async def add_safe(self, keys: list[str], embeddings: np.ndarray) -> None:
        async with self._write_lock:
            await asyncio.to_thread(self.add, keys, embeddings)

    def remove(self, keys: list[str]) -> int:
        int_ids = [self._key_to_int.pop(k) for k in keys if k in self._key_to_int]
        for idx in int_ids:
            self._id_to_key.pop(idx, None)
        if not int_ids:
            return 0
        removed = self._index.remove_ids(np.array(int_ids, dtype=np.int64))
        logger.debug("faiss_removed", count=int(removed), total=self._index.ntotal)
        return int(removed)

    def search(
        self, query_embedding: np.ndarray, top_k: int | None = None, prefix: str | None = None
    ) -> list[tuple[str, float]]:
        """Return (key, cosine similarity) pairs, best first.

        ``top_k=None`` scores the whole index; ``prefix`` keeps only keys of one owner kind.
        """
        if self._index.ntotal == 0:
            return []
        query_embedding = np.array(query_embedding, dtype=np.float32).reshape(1, -1)
        faiss.normalize_L2(query_embedding)
        k = self._index.ntotal if top_k is None else min(top_k, self._index.ntotal)
        scores, indices = self._index.search(query_embedding, k)
        results = []
        for idx, score in zip(indices[0], scores[0]):
            idx = int(idx)
            if idx == -1:
                continue
            key = self._id_to_key.get(idx)
            if key and (prefix is None or key.startswith(prefix)):
                results.append((key, float(score)))
        return results

    def save(self, path: str | None = None) -> None:
        path = path or self._index_path
        if not path:
            return
        Path(path).mkdir(parents=True, exist_ok=True)
        faiss.write_index(self._index, os.path.join(path, "index.faiss"))
        with open(os.path.join(path, "id_mapping.json"), "w") as f:
            json.dump(
                {
                    "id_to_key": self._id_to_key,
                    "key_to_int": self._key_to_int,
                    "next_id": self._next_id,
                },
                f,
            )
        logger.info("faiss_saved", path=path, size=self._index.ntotal)

    def reset(self) -> None:
        self._index = faiss.IndexIDMap(faiss.IndexFlatIP(self._dimensions))
        self._id_to_key.clear()
        self._key_to_int.clear()
        self._next_id = 0

    def _assign_int_ids(self, keys: list[str]) -> list[int]:
        int_ids = []
        for key in keys:
            if key in self._key_to_int:
                int_ids.append(self._key_to_int[key])
            else:
                self._id_to_key[self._next_id] = key
                self._key_to_int[key] = self._next_id
                int_ids.append(self._next_id)
                self._next_id += 1
        return int_ids
