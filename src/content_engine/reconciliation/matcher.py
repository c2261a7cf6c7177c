"""Tiered exact/fuzzy reconciliation of extracted entities against existing records."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass

from content_engine.config.settings import Settings
from content_engine.models.domain import (
    EntityMatch,
    MatchCandidate,
    MatchResults,
    Release,
    Stakeholder,
    Workstream,
)
from content_engine.models.schemas import (
    EntityBundle,
    ReleaseEntity,
    StakeholderEntity,
    WorkstreamEntity,
)
from content_engine.observability.logger import get_logger
from content_engine.protocols.domain_store import DomainRecordStore
from content_engine.reconciliation.similarity import same_identity, similarity
from content_engine.scoring.entity_confidence import new_entity_confidence

logger = get_logger("matcher")


@dataclass
class RecordScore:
    score: float
    exact: bool = False
    conflict: bool = False


def score_stakeholder(entity: StakeholderEntity, record: Stakeholder) -> RecordScore:
    # Email is authoritative: equal emails are exact, conflicting emails rule
    # out an exact name match and leave only name similarity.
    conflict = False
    if entity.email and record.email:
        if same_identity(entity.email, record.email):
            return RecordScore(1.0, exact=True)
        conflict = True
    if not conflict and same_identity(entity.name, record.name):
        return RecordScore(1.0, exact=True)
    return RecordScore(similarity(entity.name, record.name), conflict=conflict)


def score_workstream(entity: WorkstreamEntity, record: Workstream) -> RecordScore:
    if same_identity(entity.name, record.name):
        return RecordScore(1.0, exact=True)
    return RecordScore(similarity(entity.name, record.name))


def score_release(entity: ReleaseEntity, record: Release) -> RecordScore:
    if same_identity(entity.version, record.version):
        return RecordScore(1.0, exact=True)
    if same_identity(entity.name, record.name):
        return RecordScore(1.0, exact=True)
    return RecordScore(similarity(entity.name, record.name))


def classify(
    entity_type: str,
    entity,
    records: list,
    scorer,
    threshold: float,
) -> EntityMatch:
    """Score one candidate against every record and pick its tier."""
    exact: list = []
    fuzzy: list[tuple[MatchCandidate, bool]] = []
    for record in records:
        result = scorer(entity, record)
        if result.exact:
            exact.append(record)
        elif result.score >= threshold:
            fuzzy.append((MatchCandidate(record=record, score=result.score), result.conflict))

    if exact:
        return EntityMatch(
            entity_type=entity_type,
            entity=entity,
            match_type="exact",
            confidence=1.0,
            candidates=sorted(exact, key=lambda r: r.id or 0),
        )

    if fuzzy:
        best = max(candidate.score for candidate, _ in fuzzy)
        tied = [(c, conflict) for c, conflict in fuzzy if c.score == best]
        tied.sort(key=lambda pair: pair[0].record.id or 0)
        return EntityMatch(
            entity_type=entity_type,
            entity=entity,
            match_type="fuzzy",
            confidence=round(best, 4),
            candidates=[c.record for c, _ in tied],
            identity_conflict=any(conflict for _, conflict in tied),
        )

    return EntityMatch(
        entity_type=entity_type,
        entity=entity,
        match_type="new",
        confidence=new_entity_confidence(entity),
    )


class EntityMatcher:
    def __init__(self, store: DomainRecordStore, settings: Settings) -> None:
        self._store = store
        self._threshold = settings.fuzzy_match_threshold

    async def match(
        self,
        bundle: EntityBundle,
        user_id: int,
        threshold: float | None = None,
    ) -> MatchResults:
        threshold = self._threshold if threshold is None else threshold

        # Each family reads its own record scope, so the loops run concurrently.
        per_type = await asyncio.gather(
            self._match_family(
                "stakeholder",
                bundle.stakeholders,
                self._store.list_stakeholders,
                user_id,
                score_stakeholder,
                threshold,
            ),
            self._match_family(
                "workstream",
                bundle.workstreams,
                self._store.list_workstreams,
                user_id,
                score_workstream,
                threshold,
            ),
            self._match_family(
                "release",
                bundle.releases,
                self._store.list_releases,
                user_id,
                score_release,
                threshold,
            ),
        )

        results = MatchResults()
        for family in per_type:
            results.merge(family)

        logger.info("entities_matched", user_id=user_id, threshold=threshold, **results.summary())
        return results

    async def _match_family(
        self, entity_type, entities, loader, user_id, scorer, threshold
    ) -> MatchResults:
        results = MatchResults()
        if not entities:
            return results
        records = await loader(user_id)
        for entity in entities:
            results.add(classify(entity_type, entity, records, scorer, threshold))
        return results
