"""Core domain objects used throughout the system."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class ContentItem:
    user_id: int
    content: str
    content_type: str
    source: str = "manual"
    metadata: dict = field(default_factory=dict)
    id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class GeneratedOutput:
    input_id: int
    content: str
    output_type: str
    ai_model: str | None = None
    quality_score: float | None = None
    version: int = 1
    parent_output_id: int | None = None
    feedback_integrated: bool = False
    feedback_count: int = 0
    metadata: dict = field(default_factory=dict)
    id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class Feedback:
    output_id: int
    user_id: int
    kind: str  # "inline", "behavioral"
    action: str
    signal_type: str  # "explicit", "passive"
    confidence: float
    metadata: dict = field(default_factory=dict)
    id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def corrected_content(self) -> str | None:
        return self.metadata.get("corrected_content")


@dataclass
class Embedding:
    owner_id: int
    owner_kind: str  # "input", "output"
    vector: list[float]
    model: str
    dimensions: int
    normalized: bool = True
    id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)

    @property
    def key(self) -> str:
        return f"{self.owner_kind}:{self.owner_id}"


@dataclass
class AiJob:
    provider: str
    model: str
    method: str
    prompt_hash: str
    prompt_length: int
    estimated_cost: float
    options: dict = field(default_factory=dict)
    status: str = "processing"  # "processing", "completed", "failed"
    user_id: int | None = None
    tokens_used: int | None = None
    cost: float | None = None
    response_length: int | None = None
    error_message: str | None = None
    duration_ms: float | None = None
    id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)
    completed_at: datetime | None = None


@dataclass
class Stakeholder:
    user_id: int
    name: str
    email: str | None = None
    title: str | None = None
    department: str | None = None
    company: str | None = None
    notes: str | None = None
    id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class Workstream:
    user_id: int
    name: str
    description: str | None = None
    id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class Release:
    user_id: int
    name: str
    version: str | None = None
    description: str | None = None
    target_date: str | None = None
    id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)


DomainRecord = Stakeholder | Workstream | Release


@dataclass
class EntityAssociation:
    content_id: int
    entity_type: str  # "stakeholder", "workstream", "release"
    entity_id: int
    confidence: float
    context: str = ""
    id: int | None = None


@dataclass
class ActionItemRecord:
    content_id: int
    user_id: int
    text: str
    priority: str = "medium"
    status: str = "open"
    due_date: str | None = None
    assignee_stakeholder_id: int | None = None
    confidence: float = 0.5
    context: str = ""
    id: int | None = None
    created_at: datetime = field(default_factory=_utcnow)


@dataclass
class MatchCandidate:
    record: Any
    score: float


@dataclass
class EntityMatch:
    entity_type: str
    entity: Any
    match_type: str  # "exact", "fuzzy", "new"
    confidence: float
    candidates: list[Any] = field(default_factory=list)
    identity_conflict: bool = False

    @property
    def best(self) -> Any | None:
        return self.candidates[0] if self.candidates else None


@dataclass
class MatchResults:
    exact_matches: list[EntityMatch] = field(default_factory=list)
    fuzzy_matches: list[EntityMatch] = field(default_factory=list)
    new_entities: list[EntityMatch] = field(default_factory=list)

    def add(self, match: EntityMatch) -> None:
        if match.match_type == "exact":
            self.exact_matches.append(match)
        elif match.match_type == "fuzzy":
            self.fuzzy_matches.append(match)
        else:
            self.new_entities.append(match)

    def merge(self, other: MatchResults) -> None:
        self.exact_matches.extend(other.exact_matches)
        self.fuzzy_matches.extend(other.fuzzy_matches)
        self.new_entities.extend(other.new_entities)

    def for_type(self, entity_type: str) -> list[EntityMatch]:
        return [
            m
            for m in self.exact_matches + self.fuzzy_matches + self.new_entities
            if m.entity_type == entity_type
        ]

    def summary(self) -> dict[str, int]:
        return {
            "exact": len(self.exact_matches),
            "fuzzy": len(self.fuzzy_matches),
            "new": len(self.new_entities),
        }


@dataclass
class ConfirmationTask:
    task_type: str  # "confirm_entity_match", "confirm_new_entity", "review_identity_conflict"
    priority: str  # "high", "medium", "low"
    entity_type: str
    entity: Any
    suggested_matches: list[Any]
    confidence: float
    action_required: str


@dataclass
class Exemplar:
    input: ContentItem
    output: GeneratedOutput
    feedback: Feedback
    similarity: float
    personalization_score: float | None = None
    combined_score: float | None = None

    @property
    def rank_score(self) -> float:
        return self.combined_score if self.combined_score is not None else self.similarity


@dataclass
class UserFeedbackPattern:
    user_id: int
    preferred_output_types: list[str]
    average_confidence: float
    action_distribution: dict[str, int]
    total_feedback: int

    def action_frequency(self, action: str) -> float:
        if self.total_feedback == 0:
            return 0.0
        return self.action_distribution.get(action, 0) / self.total_feedback


@dataclass
class ProcessingResult:
    content_item: ContentItem
    output: GeneratedOutput | None
    entities: Any
    match_results: MatchResults
    confirmation_tasks: list[ConfirmationTask]
    exemplars_used: int = 0
    timings: dict[str, float] = field(default_factory=dict)

    def to_dict(self) -> dict:
        return {
            "content_id": self.content_item.id,
            "output_id": self.output.id if self.output else None,
            "entities": self.entities.model_dump(),
            "matches": self.match_results.summary(),
            "confirmation_tasks": [
                {
                    "type": t.task_type,
                    "priority": t.priority,
                    "entity_type": t.entity_type,
                    "confidence": t.confidence,
                    "action_required": t.action_required,
                }
                for t in self.confirmation_tasks
            ],
            "exemplars_used": self.exemplars_used,
            "timings": self.timings,
        }
