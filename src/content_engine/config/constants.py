"""Fixed allow-lists and lookup tables shared across components."""

from __future__ import annotations

SUPPORTED_CONTENT_TYPES: frozenset[str] = frozenset(
    {"brain_dump", "email", "slack", "document", "meeting_notes", "teams", "file"}
)

OUTPUT_TYPES: frozenset[str] = frozenset(
    {"checklist", "summary", "action_items", "entity_extraction", "email_draft", "report"}
)

# Base confidence per feedback action, by the signal family it belongs to
EXPLICIT_ACTION_CONFIDENCE: dict[str, float] = {"accept": 1.0, "reject": 1.0, "edit": 0.7}
PASSIVE_ACTION_CONFIDENCE: dict[str, float] = {
    "task_completed": 0.9,
    "task_deleted": 0.8,
    "time_spent": 0.6,
}
FEEDBACK_ACTIONS: dict[str, float] = {**EXPLICIT_ACTION_CONFIDENCE, **PASSIVE_ACTION_CONFIDENCE}

# Base for an action reported outside its own signal family
SIGNAL_FALLBACK_CONFIDENCE: dict[str, float] = {"explicit": 0.8, "passive": 0.7}

# Quality multiplier applied to feedback confidence
ACTION_QUALITY_MULTIPLIERS: dict[str, float] = {
    "accept": 1.0,
    "edit": 0.9,
    "reject": 0.7,
}

MATCHABLE_ENTITY_TYPES = ("stakeholder", "workstream", "release")

PRIORITY_ORDER: dict[str, int] = {"high": 0, "medium": 1, "low": 2}

ACTION_ITEM_PRIORITIES = ("low", "medium", "high")

JOB_STATUSES = ("processing", "completed", "failed")
