"""Aggregate views over captured feedback."""

from __future__ import annotations

from collections import Counter
from datetime import datetime, timedelta, timezone

import numpy as np

from content_engine.config.constants import ACTION_QUALITY_MULTIPLIERS, FEEDBACK_ACTIONS
from content_engine.models.domain import Feedback
from content_engine.models.schemas import (
    FeedbackAnalytics,
    FeedbackPatterns,
    FeedbackQualityReport,
    FeedbackQualityScore,
    FeedbackTrends,
    TrendBucket,
)
from content_engine.observability.logger import get_logger
from content_engine.storage.sqlite_content_store import SQLiteContentStore

logger = get_logger("feedback_analytics")

TREND_TOLERANCE = 0.1
DEFAULT_TREND_WINDOW_DAYS = 30


def _rate(count: int, total: int) -> float:
    return round(count / total * 100, 2) if total else 0.0


def _mean(values: list[float]) -> float:
    return float(np.mean(values)) if values else 0.0


def overall_trend(totals: list[int]) -> str:
    """Compare the mean of the later half of the series against the earlier half."""
    if len(totals) < 2:
        return "stable"
    middle = len(totals) // 2
    first = _mean(totals[:middle])
    second = _mean(totals[middle:])
    if second > first * (1 + TREND_TOLERANCE):
        return "increasing"
    if second < first * (1 - TREND_TOLERANCE):
        return "decreasing"
    return "stable"


class FeedbackAnalyticsService:
    def __init__(self, store: SQLiteContentStore) -> None:
        self._store = store

    async def generate_feedback_analytics(
        self,
        user_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> FeedbackAnalytics:
        feedback = await self._store.list_feedback(user_id=user_id, start=start, end=end)
        total = len(feedback)
        actions = Counter(f.action for f in feedback)
        kinds = Counter(f.kind for f in feedback)

        return FeedbackAnalytics(
            total_feedback=total,
            acceptance_rate=_rate(actions["accept"], total),
            edit_rate=_rate(actions["edit"], total),
            rejection_rate=_rate(actions["reject"], total),
            average_confidence=round(_mean([f.confidence for f in feedback]), 2),
            inline_count=kinds["inline"],
            behavioral_count=kinds["behavioral"],
            action_distribution={action: actions[action] for action in FEEDBACK_ACTIONS},
        )

    async def analyze_feedback_trends(
        self,
        period: str = "day",
        start: datetime | None = None,
        end: datetime | None = None,
    ) -> FeedbackTrends:
        if period not in ("day", "month"):
            raise ValueError(f"Unsupported trend period: {period}")
        end = end or datetime.now(timezone.utc)
        start = start or end - timedelta(days=DEFAULT_TREND_WINDOW_DAYS)

        bucket_format = "%Y-%m-%d" if period == "day" else "%Y-%m"
        grouped: dict[str, list[Feedback]] = {}
        for item in await self._store.list_feedback(start=start, end=end):
            grouped.setdefault(item.created_at.strftime(bucket_format), []).append(item)

        buckets = [
            TrendBucket(
                period=label,
                total=len(items),
                actions=dict(Counter(f.action for f in items)),
                average_confidence=round(_mean([f.confidence for f in items]), 2),
            )
            for label, items in sorted(grouped.items())
        ]
        trend = overall_trend([b.total for b in buckets])
        logger.debug("feedback_trends_analyzed", period=period, buckets=len(buckets), trend=trend)
        return FeedbackTrends(period=period, buckets=buckets, overall_trend=trend)

    async def aggregate_feedback_patterns(self, output_id: int) -> FeedbackPatterns:
        feedback = await self._store.list_feedback(output_id=output_id)
        return FeedbackPatterns(
            output_id=output_id,
            total_feedback=len(feedback),
            action_counts=dict(Counter(f.action for f in feedback)),
            average_confidence=round(_mean([f.confidence for f in feedback]), 2),
            has_corrections=any(f.corrected_content for f in feedback),
            edit_reasons=[f.metadata["edit_reason"] for f in feedback if f.metadata.get("edit_reason")],
            rejection_reasons=[
                f.metadata["rejection_reason"] for f in feedback if f.metadata.get("rejection_reason")
            ],
        )

    async def calculate_feedback_quality_scores(self, ids: list[int]) -> FeedbackQualityReport:
        found = {f.id: f for f in await self._store.list_feedback(ids=ids)}
        # Requested order is preserved; unknown ids are dropped.
        feedback = [found[i] for i in ids if i in found]
        if not feedback:
            return FeedbackQualityReport()

        scores = [
            FeedbackQualityScore(
                feedback_id=f.id,
                quality_score=round(f.confidence * ACTION_QUALITY_MULTIPLIERS.get(f.action, 1.0), 2),
                confidence=f.confidence,
                action=f.action,
            )
            for f in feedback
        ]
        confidences = [f.confidence for f in feedback]
        consistency = 1.0 if len(confidences) < 2 else max(0.0, 1.0 - float(np.std(confidences)))

        return FeedbackQualityReport(
            scores=scores,
            average_quality=round(_mean([s.quality_score for s in scores]), 2),
            confidence_consistency=round(consistency, 4),
            action_diversity=round(len({f.action for f in feedback}) / len(FEEDBACK_ACTIONS), 4),
        )
