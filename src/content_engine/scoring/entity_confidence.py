"""Heuristic confidence for an extracted entity that matched no existing record."""

from __future__ import annotations


def new_entity_confidence(entity) -> float:
    """0.5 base, +0.2 name, +0.3 email, +0.1 organisational context; capped at 1.0."""
    confidence = 0.5
    if getattr(entity, "name", None):
        confidence += 0.2
    if getattr(entity, "email", None):
        confidence += 0.3
    if getattr(entity, "company", None) or getattr(entity, "department", None):
        confidence += 0.1
    return round(min(confidence, 1.0), 2)
