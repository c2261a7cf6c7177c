"""Embeds inputs and outputs, stores one vector per owner and keeps FAISS in sync."""

from __future__ import annotations

import numpy as np

from content_engine.config.settings import Settings
from content_engine.exceptions import EmbeddingError, NotFoundError
from content_engine.models.domain import Embedding
from content_engine.observability.logger import get_logger
from content_engine.protocols.embedder import Embedder
from content_engine.storage.sqlite_content_store import SQLiteContentStore
from content_engine.vectorstore.faiss_store import FAISSVectorStore

logger = get_logger("embedding_service")


def l2_normalize(vector: list[float]) -> list[float]:
    arr = np.asarray(vector, dtype=np.float32)
    norm = float(np.linalg.norm(arr))
    if norm == 0.0:
        raise EmbeddingError("Cannot normalise a zero vector")
    return (arr / norm).tolist()


class EmbeddingService:
    def __init__(
        self,
        embedder: Embedder,
        store: SQLiteContentStore,
        vector_store: FAISSVectorStore,
        settings: Settings,
    ) -> None:
        self._embedder = embedder
        self._store = store
        self._vector_store = vector_store
        self._dimensions = settings.embedding_dimensions

    async def embed_input(self, input_id: int, force: bool = False) -> Embedding:
        item = await self._store.get_input(input_id)
        if item is None:
            raise NotFoundError(f"Input {input_id} not found")
        return await self._embed(input_id, "input", item.content, force)

    async def embed_output(self, output_id: int, force: bool = False) -> Embedding:
        output = await self._store.get_output(output_id)
        if output is None:
            raise NotFoundError(f"Output {output_id} not found")
        return await self._embed(output_id, "output", output.content, force)

    async def _embed(self, owner_id: int, owner_kind: str, text: str, force: bool) -> Embedding:
        if not force:
            existing = await self._store.get_embedding(owner_id, owner_kind)
            if existing is not None:
                return existing

        vectors = await self._embedder.embed_texts([text])
        if not vectors or len(vectors[0]) != self._dimensions:
            found = len(vectors[0]) if vectors else 0
            raise EmbeddingError(
                f"Embedding for {owner_kind} {owner_id} has {found} dimensions, "
                f"expected {self._dimensions}"
            )

        embedding = await self._store.upsert_embedding(
            Embedding(
                owner_id=owner_id,
                owner_kind=owner_kind,
                vector=l2_normalize(vectors[0]),
                model=self._embedder.model,
                dimensions=self._dimensions,
            )
        )
        await self._vector_store.add_safe(
            [embedding.key], np.array([embedding.vector], dtype=np.float32)
        )
        logger.info(
            "embedding_stored",
            owner_kind=owner_kind,
            owner_id=owner_id,
            model=embedding.model,
            replaced=force,
        )
        return embedding

    async def rebuild_index(self) -> int:
        """Reload the vector index from the embeddings table."""
        embeddings = [
            e for e in await self._store.list_embeddings() if e.dimensions == self._dimensions
        ]
        self._vector_store.reset()
        if embeddings:
            await self._vector_store.add_safe(
                [e.key for e in embeddings],
                np.array([e.vector for e in embeddings], dtype=np.float32),
            )
        logger.info("vector_index_rebuilt", size=self._vector_store.size)
        return len(embeddings)
