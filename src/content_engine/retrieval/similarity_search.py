"""Nearest-neighbour exemplar retrieval over input embeddings."""

from __future__ import annotations

import numpy as np

from content_engine.config.settings import Settings
from content_engine.models.domain import Exemplar
from content_engine.models.schemas import RetrievalFilters
from content_engine.observability.logger import get_logger
from content_engine.observability.metrics import log_retrieval_metrics
from content_engine.storage.sqlite_content_store import SQLiteContentStore
from content_engine.vectorstore.faiss_store import FAISSVectorStore

logger = get_logger("retrieval")

INPUT_KEY_PREFIX = "input:"


class RetrievalService:
    def __init__(
        self,
        store: SQLiteContentStore,
        vector_store: FAISSVectorStore,
        settings: Settings,
    ) -> None:
        self._store = store
        self._vector_store = vector_store
        self._min_positive_confidence = settings.retrieval_min_confidence
        self._default_limit = settings.retrieval_default_limit

    async def find_similar(
        self,
        input_id: int,
        filters: RetrievalFilters | None = None,
        limit: int | None = None,
    ) -> list[Exemplar]:
        """Past (input, output, feedback) triples whose input is closest to ``input_id``."""
        candidates = await self.candidates(input_id, filters)
        results = candidates[: limit or self._default_limit]
        log_retrieval_metrics(
            input_id=input_id,
            candidates=len(candidates),
            returned=len(results),
            top_scores=[e.similarity for e in results],
        )
        return results

    async def candidates(
        self, input_id: int, filters: RetrievalFilters | None = None
    ) -> list[Exemplar]:
        """Every qualifying exemplar, ordered but not truncated."""
        filters = filters or RetrievalFilters()
        embedding = await self._store.get_embedding(input_id, "input")
        if embedding is None:
            logger.debug("retrieval_skipped_no_embedding", input_id=input_id)
            return []

        hits = self._vector_store.search(
            np.asarray(embedding.vector, dtype=np.float32), prefix=INPUT_KEY_PREFIX
        )
        similarity: dict[int, float] = {}
        for key, score in hits:
            owner_id = int(key[len(INPUT_KEY_PREFIX):])
            if owner_id == input_id:
                continue
            if filters.min_similarity is not None and score < filters.min_similarity:
                continue
            similarity[owner_id] = score
        if not similarity:
            return []

        rows = await self._store.find_exemplars(
            list(similarity),
            output_type=filters.output_type,
            action=filters.action,
            min_confidence=filters.min_confidence,
            min_quality_score=filters.min_quality_score,
            context=filters.context,
        )

        positive_only = filters.action is None or filters.positive_feedback_only
        exemplars = [
            Exemplar(input=item, output=output, feedback=feedback, similarity=similarity[item.id])
            for item, output, feedback in rows
            if not positive_only or self._is_positive(feedback.action, feedback.confidence)
        ]
        exemplars.sort(key=lambda e: (-e.similarity, -e.feedback.created_at.timestamp()))
        return exemplars

    def _is_positive(self, action: str, confidence: float) -> bool:
        return action == "accept" and confidence >= self._min_positive_confidence
