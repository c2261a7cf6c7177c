"""Pydantic models for structured payloads crossing component boundaries."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

from content_engine.config.constants import ACTION_ITEM_PRIORITIES

FeedbackAction = Literal["accept", "edit", "reject", "task_completed", "task_deleted", "time_spent"]


# --- Extracted entities ---


class ExtractedEntity(BaseModel):
    confidence: float = 0.5
    context: str = ""

    model_config = {"extra": "ignore"}

    @field_validator("confidence", mode="before")
    @classmethod
    def _clamp_confidence(cls, v):
        if v is None:
            return 0.5
        return max(0.0, min(1.0, float(v)))

    @field_validator("context", mode="before")
    @classmethod
    def _context_text(cls, v):
        return "" if v is None else str(v)


class StakeholderEntity(ExtractedEntity):
    name: str | None = None
    email: str | None = None
    title: str | None = None
    department: str | None = None
    company: str | None = None


class WorkstreamEntity(ExtractedEntity):
    name: str | None = None
    description: str | None = None


class ReleaseEntity(ExtractedEntity):
    name: str | None = None
    version: str | None = None
    target_date: str | None = None

    @model_validator(mode="after")
    def _name_from_version(self) -> ReleaseEntity:
        if not self.name and self.version:
            self.name = self.version
        return self


class ActionItemEntity(ExtractedEntity):
    text: str
    assignee: str | None = None
    priority: Literal["low", "medium", "high"] = "medium"
    due_date: str | None = None

    @field_validator("priority", mode="before")
    @classmethod
    def _normalize_priority(cls, v):
        v = str(v or "medium").lower()
        return v if v in ACTION_ITEM_PRIORITIES else "medium"


class MeetingEntity(ExtractedEntity):
    title: str
    date: str | None = None
    attendees: list[str] = Field(default_factory=list)


class DecisionEntity(ExtractedEntity):
    text: str
    made_by: str | None = None


class EntityBundle(BaseModel):
    stakeholders: list[StakeholderEntity] = Field(default_factory=list)
    workstreams: list[WorkstreamEntity] = Field(default_factory=list)
    releases: list[ReleaseEntity] = Field(default_factory=list)
    action_items: list[ActionItemEntity] = Field(default_factory=list)
    meetings: list[MeetingEntity] = Field(default_factory=list)
    decisions: list[DecisionEntity] = Field(default_factory=list)
    summary: str = ""

    def items(self) -> list[ExtractedEntity]:
        return [
            *self.stakeholders,
            *self.workstreams,
            *self.releases,
            *self.action_items,
            *self.meetings,
            *self.decisions,
        ]

    def is_empty(self) -> bool:
        return not self.items()

    def mean_confidence(self) -> float | None:
        items = self.items()
        if not items:
            return None
        return sum(i.confidence for i in items) / len(items)


# --- Completion gateway ---


class CompletionOptions(BaseModel):
    provider: str | None = None
    model: str | None = None
    max_tokens: int = 1000
    temperature: float = 0.7
    complexity: Literal["low", "medium", "high"] | None = None
    method: str = "complete"
    user_id: int | None = None


class ProviderCompletion(BaseModel):
    """Raw result returned by a single provider call."""

    content: str
    model: str
    input_tokens: int = 0
    output_tokens: int = 0
    cost: float = 0.0

    @property
    def tokens_used(self) -> int:
        return self.input_tokens + self.output_tokens


class CompletionResult(BaseModel):
    content: str
    tokens_used: int
    cost: float
    metadata: dict = Field(default_factory=dict)


class UsageStats(BaseModel):
    period: Literal["today", "week", "month"]
    total_requests: int
    total_cost: float
    total_tokens: int
    success_rate: float
    average_latency_ms: float
    cost_by_provider: dict[str, float] = Field(default_factory=dict)
    requests_by_status: dict[str, int] = Field(default_factory=dict)


# --- Feedback ---


class FeedbackScenario(BaseModel):
    """Signal fields the confidence scorer reads, at top level or inside ``metadata``."""

    time_to_action: float | None = None
    completion_time: float | None = None
    user_experience: Literal["beginner", "intermediate", "expert"] | None = None

    model_config = {"extra": "ignore"}


class FeedbackSubmission(FeedbackScenario):
    output_id: int
    user_id: int
    action: FeedbackAction
    confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    corrected_content: str | None = None
    original_content: str | None = None
    edit_reason: str | None = None
    rejection_reason: str | None = None
    time_spent: float | None = None
    context: str | None = None
    metadata: dict = Field(default_factory=dict)

    model_config = {"extra": "ignore"}

    def correction_text(self) -> str | None:
        return self.corrected_content or self.metadata.get("corrected_content")


class BatchItemSuccess(BaseModel):
    index: int
    feedback_id: int


class BatchItemError(BaseModel):
    index: int
    error: str
    data: dict = Field(default_factory=dict)


class BatchFeedbackResult(BaseModel):
    success: bool
    successful: list[BatchItemSuccess] = Field(default_factory=list)
    errors: list[BatchItemError] = Field(default_factory=list)
    total_processed: int = 0
    success_count: int = 0
    error_count: int = 0


class FeedbackAnalytics(BaseModel):
    total_feedback: int
    acceptance_rate: float
    edit_rate: float
    rejection_rate: float
    average_confidence: float
    inline_count: int
    behavioral_count: int
    action_distribution: dict[str, int] = Field(default_factory=dict)


class TrendBucket(BaseModel):
    period: str
    total: int
    actions: dict[str, int] = Field(default_factory=dict)
    average_confidence: float = 0.0


class FeedbackTrends(BaseModel):
    period: Literal["day", "month"]
    buckets: list[TrendBucket] = Field(default_factory=list)
    overall_trend: Literal["increasing", "decreasing", "stable"] = "stable"


class FeedbackPatterns(BaseModel):
    output_id: int
    total_feedback: int
    action_counts: dict[str, int] = Field(default_factory=dict)
    average_confidence: float = 0.0
    has_corrections: bool = False
    edit_reasons: list[str] = Field(default_factory=list)
    rejection_reasons: list[str] = Field(default_factory=list)


class FeedbackQualityScore(BaseModel):
    feedback_id: int
    quality_score: float
    confidence: float
    action: str


class FeedbackQualityReport(BaseModel):
    scores: list[FeedbackQualityScore] = Field(default_factory=list)
    average_quality: float = 0.0
    confidence_consistency: float = 0.0
    action_diversity: float = 0.0


# --- Retrieval ---


class RetrievalFilters(BaseModel):
    output_type: str | None = None
    action: FeedbackAction | None = None
    min_confidence: float | None = Field(default=None, ge=0.0, le=1.0)
    min_quality_score: float | None = None
    min_similarity: float | None = None
    context: str | None = None
    positive_feedback_only: bool = False


class RagPromptConfig(BaseModel):
    template: Literal["default", "custom"] = "default"
    custom_template: str | None = None
    max_examples: int = 3
    include_metadata: bool = False


# --- Pipeline ---


class BatchProcessFailure(BaseModel):
    index: int
    error: str
    error_type: str


class BatchProcessingResult(BaseModel):
    successful: list[dict] = Field(default_factory=list)
    failed: list[BatchProcessFailure] = Field(default_factory=list)
    total_processed: int = 0
    success_count: int = 0
    error_count: int = 0
