"""Deterministic confidence for a feedback signal."""

from __future__ import annotations

from content_engine.config.constants import (
    EXPLICIT_ACTION_CONFIDENCE,
    PASSIVE_ACTION_CONFIDENCE,
    SIGNAL_FALLBACK_CONFIDENCE,
)

QUICK_COMPLETION_SECONDS = 1800
SLOW_COMPLETION_SECONDS = 7200
SLOW_EDIT_SECONDS = 30.0


class FeedbackConfidenceScorer:
    """score = base(action, signal_type), adjusted for decision latency, experience
    and completion speed.

    Explicit signals know accept/reject/edit and passive signals know the task
    actions; anything else gets the signal family's fallback base. The result is
    clamped to [0, 1] and rounded to one decimal.
    """

    def score(self, scenario: dict) -> float:
        action = scenario.get("action", "")
        signal_type = scenario.get("signal_type") or "explicit"
        bases = EXPLICIT_ACTION_CONFIDENCE if signal_type == "explicit" else PASSIVE_ACTION_CONFIDENCE
        fallback = SIGNAL_FALLBACK_CONFIDENCE["explicit" if signal_type == "explicit" else "passive"]
        score = bases.get(action, fallback)

        time_to_action = scenario.get("time_to_action")
        if action == "edit" and time_to_action is not None and time_to_action > SLOW_EDIT_SECONDS:
            score = EXPLICIT_ACTION_CONFIDENCE["edit"]

        experience = scenario.get("user_experience")
        if experience == "expert":
            score = min(1.0, score + 0.1)
        elif experience == "beginner":
            score = max(0.1, score - 0.1)

        completion_time = scenario.get("completion_time")
        if action == "task_completed" and completion_time is not None:
            if completion_time < QUICK_COMPLETION_SECONDS:
                score = min(1.0, score + 0.1)
            elif completion_time > SLOW_COMPLETION_SECONDS:
                score = max(0.5, score - 0.1)

        return max(0.0, min(1.0, round(score, 1)))
