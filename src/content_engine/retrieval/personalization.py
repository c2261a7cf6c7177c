"""Exemplar retrieval biased towards a user's own feedback history."""

from __future__ import annotations

import time
from collections import Counter
from collections.abc import Callable

from content_engine.config.settings import Settings
from content_engine.models.domain import Exemplar, UserFeedbackPattern
from content_engine.models.schemas import RetrievalFilters
from content_engine.observability.logger import get_logger
from content_engine.retrieval.similarity_search import RetrievalService
from content_engine.scoring.personalization import PersonalizationScorer
from content_engine.storage.sqlite_content_store import SQLiteContentStore

logger = get_logger("personalization")

DEFAULT_AVERAGE_CONFIDENCE = 0.8
MIN_PERSONALIZED_CONFIDENCE = 0.6
CONFIDENCE_SLACK = 0.2


class PersonalizedRetriever:
    def __init__(
        self,
        retrieval: RetrievalService,
        store: SQLiteContentStore,
        settings: Settings,
        scorer: PersonalizationScorer | None = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self._retrieval = retrieval
        self._store = store
        self._scorer = scorer or PersonalizationScorer()
        self._ttl = settings.personalization_cache_ttl_seconds
        self._default_limit = settings.personalized_default_limit
        self._clock = clock
        self._patterns: dict[int, tuple[float, UserFeedbackPattern]] = {}

    async def find_personalized(
        self,
        input_id: int,
        user_id: int,
        filters: RetrievalFilters | None = None,
        limit: int | None = None,
    ) -> list[Exemplar]:
        pattern = await self.user_pattern(user_id)
        biased = self._bias_filters(filters or RetrievalFilters(), pattern)

        exemplars = await self._retrieval.candidates(input_id, biased)
        for exemplar in exemplars:
            exemplar.personalization_score = self._scorer.score(exemplar, pattern)
            exemplar.combined_score = self._scorer.combine(
                exemplar.similarity, exemplar.personalization_score
            )
        exemplars.sort(key=lambda e: e.combined_score, reverse=True)
        results = exemplars[: limit or self._default_limit]

        logger.info(
            "personalized_retrieval",
            input_id=input_id,
            user_id=user_id,
            candidates=len(exemplars),
            returned=len(results),
            output_type=biased.output_type,
            min_confidence=biased.min_confidence,
        )
        return results

    async def user_pattern(self, user_id: int) -> UserFeedbackPattern:
        cached = self._patterns.get(user_id)
        now = self._clock()
        if cached is not None and cached[0] > now:
            return cached[1]

        history = await self._store.list_feedback_with_output_types(user_id)
        type_counts = Counter(output_type for f, output_type in history if f.action == "accept")
        confidences = [f.confidence for f, _ in history]
        pattern = UserFeedbackPattern(
            user_id=user_id,
            preferred_output_types=[t for t, _ in type_counts.most_common()],
            average_confidence=(
                sum(confidences) / len(confidences) if confidences else DEFAULT_AVERAGE_CONFIDENCE
            ),
            action_distribution=dict(Counter(f.action for f, _ in history)),
            total_feedback=len(history),
        )
        self._patterns[user_id] = (now + self._ttl, pattern)
        return pattern

    def invalidate(self, user_id: int | None = None) -> None:
        if user_id is None:
            self._patterns.clear()
        else:
            self._patterns.pop(user_id, None)

    @staticmethod
    def _bias_filters(filters: RetrievalFilters, pattern: UserFeedbackPattern) -> RetrievalFilters:
        updates: dict = {}
        if filters.output_type is None and pattern.preferred_output_types:
            updates["output_type"] = pattern.preferred_output_types[0]
        floor = max(MIN_PERSONALIZED_CONFIDENCE, pattern.average_confidence - CONFIDENCE_SLACK)
        updates["min_confidence"] = max(floor, filters.min_confidence or 0.0)
        return filters.model_copy(update=updates)
