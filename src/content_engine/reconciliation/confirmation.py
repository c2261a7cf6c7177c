"""Ranked confirmation tasks for match results that need a human decision."""

from __future__ import annotations

from content_engine.config.constants import PRIORITY_ORDER
from content_engine.models.domain import ConfirmationTask, MatchResults


def generate_confirmation_tasks(
    match_results: MatchResults,
    low_confidence_threshold: float = 0.6,
    new_entity_threshold: float = 0.8,
) -> list[ConfirmationTask]:
    tasks: list[ConfirmationTask] = []

    for match in match_results.fuzzy_matches:
        if match.identity_conflict:
            tasks.append(
                ConfirmationTask(
                    task_type="review_identity_conflict",
                    priority="high",
                    entity_type=match.entity_type,
                    entity=match.entity,
                    suggested_matches=list(match.candidates),
                    confidence=match.confidence,
                    action_required="confirm_or_create_new",
                )
            )
        elif match.confidence < low_confidence_threshold:
            tasks.append(
                ConfirmationTask(
                    task_type="confirm_entity_match",
                    priority="medium",
                    entity_type=match.entity_type,
                    entity=match.entity,
                    suggested_matches=list(match.candidates),
                    confidence=match.confidence,
                    action_required="confirm_or_create_new",
                )
            )

    for match in match_results.new_entities:
        if match.confidence > new_entity_threshold:
            tasks.append(
                ConfirmationTask(
                    task_type="confirm_new_entity",
                    priority="low",
                    entity_type=match.entity_type,
                    entity=match.entity,
                    suggested_matches=[],
                    confidence=match.confidence,
                    action_required="confirm_creation",
                )
            )

    # sorted() is stable, so insertion order holds within a tier
    return sorted(tasks, key=lambda t: PRIORITY_ORDER[t.priority])
