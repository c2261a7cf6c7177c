"""Deterministic offline embedder based on feature hashing of word tokens."""

from __future__ import annotations

import hashlib
import re

import numpy as np

TOKEN_RE = re.compile(r"\w+")


class HashingEmbedder:
    """Texts sharing words get similar vectors; no network and no model download.

    Used for seeding development data and for offline runs.
    """

    def __init__(self, dimensions: int = 1536, model: str = "feature-hashing") -> None:
        self._dimensions = dimensions
        self._model = model

    @property
    def dimensions(self) -> int:
        return self._dimensions

    @property
    def model(self) -> str:
        return self._model

    async def embed_texts(self, texts: list[str]) -> list[list[float]]:
        return [self._embed(text) for text in texts]

    async def embed_query(self, query: str) -> list[float]:
        return self._embed(query)

    def _embed(self, text: str) -> list[float]:
        vector = np.zeros(self._dimensions, dtype=np.float32)
        for token in TOKEN_RE.findall(text.lower()):
            digest = hashlib.md5(token.encode("utf-8")).digest()
            index = int.from_bytes(digest[:4], "little") % self._dimensions
            vector[index] += 1.0 if digest[4] & 1 else -1.0
        norm = float(np.linalg.norm(vector))
        if norm == 0.0:
            # Texts without word tokens still need a valid direction
            vector[0] = 1.0
            norm = 1.0
        return (vector / norm).tolist()
