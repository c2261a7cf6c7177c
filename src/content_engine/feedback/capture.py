"""Capture of explicit (inline) and passive (behavioral) feedback on generated outputs."""

from __future__ import annotations

import json
from collections.abc import Callable
from datetime import datetime, timezone

from pydantic import ValidationError as PydanticValidationError

from content_engine.config.constants import FEEDBACK_ACTIONS
from content_engine.config.settings import Settings
from content_engine.exceptions import (
    ContentEngineError,
    NotFoundError,
    RateLimitExceeded,
    ValidationError,
)
from content_engine.models.domain import Feedback
from content_engine.models.schemas import (
    BatchFeedbackResult,
    BatchItemError,
    BatchItemSuccess,
    FeedbackScenario,
    FeedbackSubmission,
)
from content_engine.observability.logger import get_logger
from content_engine.protocols.counter import CounterStore
from content_engine.scoring.confidence import FeedbackConfidenceScorer
from content_engine.storage.sqlite_content_store import SQLiteContentStore

logger = get_logger("feedback")

REQUIRED_FIELDS = ("output_id", "user_id", "action")
ROOT_METADATA_FIELDS = (
    "corrected_content",
    "original_content",
    "edit_reason",
    "rejection_reason",
    "time_spent",
)
SCENARIO_FIELDS = ("time_to_action", "completion_time", "user_experience")


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _field_errors(error: PydanticValidationError, prefix: str = "") -> dict[str, str]:
    return {
        prefix + (".".join(str(part) for part in err["loc"]) or "payload"): err["msg"]
        for err in error.errors()
    }


class FeedbackService:
    def __init__(
        self,
        store: SQLiteContentStore,
        counters: CounterStore,
        settings: Settings,
        scorer: FeedbackConfidenceScorer | None = None,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._store = store
        self._counters = counters
        self._settings = settings
        self._scorer = scorer or FeedbackConfidenceScorer()
        self._clock = clock

    async def capture_inline(self, data: dict) -> Feedback:
        return await self._capture(data, kind="inline", signal_type="explicit")

    async def capture_passive(self, data: dict) -> Feedback:
        return await self._capture(data, kind="behavioral", signal_type="passive")

    async def _capture(self, data: dict, kind: str, signal_type: str) -> Feedback:
        submission = self.validate(data)
        metadata = self._prepare_metadata(submission)

        if await self._store.get_output(submission.output_id) is None:
            raise ValidationError({"output_id": f"Output {submission.output_id} not found"})

        await self._check_rate_limit(submission.user_id)

        confidence = submission.confidence
        if confidence is None:
            confidence = self._scorer.score(self._scenario(submission, signal_type))

        feedback = await self._store.add_feedback(
            Feedback(
                output_id=submission.output_id,
                user_id=submission.user_id,
                kind=kind,
                action=submission.action,
                signal_type=signal_type,
                confidence=confidence,
                metadata=metadata,
                created_at=self._clock(),
            )
        )
        logger.info(
            "feedback_captured",
            feedback_id=feedback.id,
            output_id=feedback.output_id,
            user_id=feedback.user_id,
            kind=kind,
            action=feedback.action,
            confidence=feedback.confidence,
        )
        return feedback

    def validate(self, data: dict) -> FeedbackSubmission:
        if not isinstance(data, dict):
            raise ValidationError({"payload": "Feedback payload must be an object"})

        errors: dict[str, str] = {}
        for name in REQUIRED_FIELDS:
            if data.get(name) in (None, ""):
                errors[name] = "This field is required"
        action = data.get("action")
        if "action" not in errors and action not in FEEDBACK_ACTIONS:
            errors["action"] = (
                f"Invalid action '{action}'. Expected one of: {', '.join(FEEDBACK_ACTIONS)}"
            )
        if errors:
            raise ValidationError(errors)

        try:
            submission = FeedbackSubmission.model_validate(data)
        except PydanticValidationError as e:
            raise ValidationError(_field_errors(e)) from e

        # Scenario fields nested in metadata get the same types as top-level ones
        nested = {name: submission.metadata[name] for name in SCENARIO_FIELDS if name in submission.metadata}
        if nested:
            try:
                scenario = FeedbackScenario.model_validate(nested)
            except PydanticValidationError as e:
                raise ValidationError(_field_errors(e, prefix="metadata.")) from e
            for name in SCENARIO_FIELDS:
                if getattr(submission, name) is None:
                    setattr(submission, name, getattr(scenario, name))

        if submission.action == "edit" and not submission.correction_text():
            raise ValidationError(
                {"corrected_content": "Edit feedback requires corrected_content in metadata or root level"}
            )
        return submission

    def _prepare_metadata(self, submission: FeedbackSubmission) -> dict:
        metadata = dict(submission.metadata)
        if submission.context is not None:
            metadata["context"] = submission.context
        for name in ROOT_METADATA_FIELDS:
            value = getattr(submission, name)
            if value is not None:
                metadata[name] = value
        metadata["timestamp"] = self._clock().isoformat()

        size = len(json.dumps(metadata).encode("utf-8"))
        if size > self._settings.feedback_max_metadata_bytes:
            raise ValidationError(
                {
                    "metadata": f"Metadata payload too large ({size} bytes). "
                    f"Maximum allowed: {self._settings.feedback_max_metadata_bytes}"
                }
            )
        return metadata

    @staticmethod
    def _scenario(submission: FeedbackSubmission, signal_type: str) -> dict:
        scenario: dict = {"action": submission.action, "signal_type": signal_type}
        for name in SCENARIO_FIELDS:
            value = getattr(submission, name)
            if value is not None:
                scenario[name] = value
        return scenario

    async def _check_rate_limit(self, user_id: int) -> None:
        key = f"feedback_rate_limit:{user_id}"
        count = await self._counters.increment(key, self._settings.feedback_rate_window_seconds)
        if count > self._settings.feedback_rate_limit:
            logger.warning("feedback_rate_limited", user_id=user_id, count=count)
            raise RateLimitExceeded(
                f"Feedback rate limit of {self._settings.feedback_rate_limit} per "
                f"{self._settings.feedback_rate_window_seconds}s exceeded for user {user_id}",
                key=key,
                limit=self._settings.feedback_rate_limit,
            )

    async def process_batch_feedback(self, items: list[dict]) -> BatchFeedbackResult:
        successful: list[BatchItemSuccess] = []
        errors: list[BatchItemError] = []

        for index, item in enumerate(items):
            try:
                if isinstance(item, dict) and item.get("type", "inline") != "inline":
                    feedback = await self.capture_passive(item)
                else:
                    feedback = await self.capture_inline(item)
                successful.append(BatchItemSuccess(index=index, feedback_id=feedback.id))
            except ContentEngineError as e:
                errors.append(
                    BatchItemError(
                        index=index,
                        error=str(e),
                        data=item if isinstance(item, dict) else {},
                    )
                )

        logger.info(
            "feedback_batch_processed",
            total=len(items),
            success_count=len(successful),
            error_count=len(errors),
        )
        return BatchFeedbackResult(
            success=not errors,
            successful=successful,
            errors=errors,
            total_processed=len(items),
            success_count=len(successful),
            error_count=len(errors),
        )

    async def mark_output_integrated(self, output_id: int) -> None:
        if not await self._store.mark_output_integrated(output_id):
            raise NotFoundError(f"Output {output_id} not found")
        logger.info("output_feedback_integrated", output_id=output_id)

    async def learning_record(self, feedback_id: int) -> dict:
        """The (input, output, feedback, features) record consumed by the learning loop."""
        feedback = await self._store.get_feedback(feedback_id)
        if feedback is None:
            raise NotFoundError(f"Feedback {feedback_id} not found")
        output = await self._store.get_output(feedback.output_id)
        if output is None:
            raise NotFoundError(f"Output {feedback.output_id} not found")
        content = await self._store.get_input(output.input_id)
        if content is None:
            raise NotFoundError(f"Input {output.input_id} not found")

        return {
            "feedback_id": feedback.id,
            "input_content": content.content,
            "output_content": output.content,
            "feedback_action": feedback.action,
            "confidence": feedback.confidence,
            "metadata": feedback.metadata,
            "learning_features": {
                "input_length": len(content.content),
                "output_length": len(output.content),
                "action_type": feedback.action,
                "confidence_level": feedback.confidence,
                "feedback_type": feedback.kind,
                "time_to_feedback": feedback.metadata.get("time_to_feedback"),
            },
        }
