"""Metric recording helpers."""

from __future__ import annotations

from content_engine.observability.logger import get_logger

logger = get_logger("metrics")


def log_gateway_metrics(
    provider: str,
    model: str,
    tokens_used: int,
    cost: float,
    duration_ms: float,
) -> None:
    logger.info(
        "gateway_metrics",
        provider=provider,
        model=model,
        tokens_used=tokens_used,
        cost=round(cost, 6),
        duration_ms=round(duration_ms, 2),
    )


def log_match_metrics(
    content_id: int | None,
    exact: int,
    fuzzy: int,
    new: int,
    tasks: int,
) -> None:
    logger.info(
        "match_metrics",
        content_id=content_id,
        exact=exact,
        fuzzy=fuzzy,
        new=new,
        confirmation_tasks=tasks,
    )


def log_retrieval_metrics(
    input_id: int,
    candidates: int,
    returned: int,
    top_scores: list[float],
) -> None:
    logger.info(
        "retrieval_metrics",
        input_id=input_id,
        candidates=candidates,
        returned=returned,
        top_scores=[round(s, 4) for s in top_scores[:5]],
    )


def log_latency(trace_id: str, stage: str, duration_ms: float) -> None:
    logger.info(
        "latency",
        trace_id=trace_id,
        stage=stage,
        duration_ms=round(duration_ms, 2),
    )
