"""Personalisation score: PS = 0.4*type_preference + 0.3*confidence_alignment + 0.3*action_frequency."""

from __future__ import annotations

from content_engine.models.domain import Exemplar, UserFeedbackPattern

W_TYPE_PREFERENCE = 0.4
W_CONFIDENCE_ALIGNMENT = 0.3
W_ACTION_FREQUENCY = 0.3


class PersonalizationScorer:
    def score(self, exemplar: Exemplar, pattern: UserFeedbackPattern) -> float:
        score = 0.0

        # Output type preference, weighted by rank in the user's history
        preferred = pattern.preferred_output_types
        if exemplar.output.output_type in preferred:
            rank = preferred.index(exemplar.output.output_type)
            score += W_TYPE_PREFERENCE * (1 - rank / len(preferred))

        alignment = 1 - abs(exemplar.feedback.confidence - pattern.average_confidence)
        score += W_CONFIDENCE_ALIGNMENT * alignment

        score += W_ACTION_FREQUENCY * pattern.action_frequency(exemplar.feedback.action)

        return max(0.0, min(1.0, score))

    def combine(self, similarity: float, personalization: float) -> float:
        return (similarity + personalization) / 2
