"""Creates missing domain records and links entities to their source content."""

from __future__ import annotations

from content_engine.config.constants import MATCHABLE_ENTITY_TYPES
from content_engine.config.settings import Settings
from content_engine.exceptions import ContentInvalidError, PersistenceError
from content_engine.models.domain import (
    ActionItemRecord,
    ConfirmationTask,
    ContentItem,
    EntityAssociation,
    EntityMatch,
    MatchResults,
    Release,
    Stakeholder,
    Workstream,
)
from content_engine.models.schemas import EntityBundle
from content_engine.observability.logger import get_logger
from content_engine.protocols.domain_store import DomainRecordStore
from content_engine.reconciliation.similarity import normalize_text

logger = get_logger("linker")


class RelationshipLinker:
    """Persists one content item's reconciled entities.

    Each entity family is written in its own transaction, so a failed family
    never rolls back another. Within a family, a single failing entity is
    logged and skipped.
    """

    def __init__(self, store: DomainRecordStore, settings: Settings) -> None:
        self._store = store
        self._link_threshold = settings.low_confidence_threshold

    async def persist(
        self,
        bundle: EntityBundle,
        match_results: MatchResults,
        content_item: ContentItem,
    ) -> ContentItem:
        if content_item.id is None:
            raise PersistenceError("Content item must be stored before linking entities")

        counts: dict[str, int] = {}
        for entity_type in MATCHABLE_ENTITY_TYPES:
            counts[entity_type] = await self._persist_family(
                entity_type, match_results.for_type(entity_type), content_item
            )
        counts["action_item"] = await self._persist_action_items(bundle, content_item)

        logger.info("entities_persisted", content_id=content_item.id, **counts)
        return content_item

    async def _persist_family(
        self, entity_type: str, matches: list[EntityMatch], content_item: ContentItem
    ) -> int:
        if not matches:
            return 0
        linked = 0
        created: dict[str, object] = {}
        try:
            async with self._store.transaction() as db:
                for match in matches:
                    try:
                        if await self._link_match(match, content_item, created, db):
                            linked += 1
                    except PersistenceError as e:
                        logger.warning(
                            "entity_persist_failed",
                            entity_type=entity_type,
                            content_id=content_item.id,
                            error=str(e),
                        )
        except PersistenceError as e:
            logger.error(
                "entity_family_persist_failed",
                entity_type=entity_type,
                content_id=content_item.id,
                error=str(e),
            )
            return 0
        return linked

    async def _link_match(
        self,
        match: EntityMatch,
        content_item: ContentItem,
        created: dict[str, object],
        db,
    ) -> bool:
        context = getattr(match.entity, "context", "") or ""

        if match.match_type == "exact":
            await self._attach(match.entity_type, match.best, 1.0, context, content_item, db)
            return True

        if match.match_type == "fuzzy":
            # Conflicts and weak matches wait for a confirmation task.
            if match.identity_conflict or match.confidence < self._link_threshold:
                return False
            await self._attach(
                match.entity_type, match.best, match.confidence, context, content_item, db
            )
            return True

        key = self._identity_key(match.entity_type, match.entity)
        if key is None:
            logger.warning(
                "entity_skipped_without_name",
                entity_type=match.entity_type,
                content_id=content_item.id,
            )
            return False

        record = created.get(key)
        confidence = match.confidence
        if record is None:
            record = await self._find_existing(match.entity_type, match.entity, content_item.user_id)
            if record is not None:
                confidence = 1.0
            else:
                record = await self._create(match.entity_type, match.entity, content_item.user_id, db)
                logger.info(
                    "entity_created",
                    entity_type=match.entity_type,
                    entity_id=record.id,
                    content_id=content_item.id,
                )
            created[key] = record
        await self._attach(match.entity_type, record, confidence, context, content_item, db)
        return True

    async def _persist_action_items(self, bundle: EntityBundle, content_item: ContentItem) -> int:
        if not bundle.action_items:
            return 0
        stored = 0
        try:
            async with self._store.transaction() as db:
                for item in bundle.action_items:
                    try:
                        assignee_id = None
                        if item.assignee:
                            assignee = await self._store.find_stakeholder(
                                content_item.user_id, item.assignee, None
                            )
                            assignee_id = assignee.id if assignee else None
                        await self._store.add_action_item(
                            ActionItemRecord(
                                content_id=content_item.id,
                                user_id=content_item.user_id,
                                text=item.text,
                                priority=item.priority,
                                due_date=item.due_date,
                                assignee_stakeholder_id=assignee_id,
                                confidence=item.confidence,
                                context=item.context,
                            ),
                            db=db,
                        )
                        stored += 1
                    except PersistenceError as e:
                        logger.warning(
                            "action_item_persist_failed", content_id=content_item.id, error=str(e)
                        )
        except PersistenceError as e:
            logger.error(
                "entity_family_persist_failed",
                entity_type="action_item",
                content_id=content_item.id,
                error=str(e),
            )
            return 0
        return stored

    async def resolve_confirmation(
        self, task: ConfirmationTask, decision: dict, content_item: ContentItem
    ):
        """Apply a user's answer to a confirmation task and return the linked record."""
        action = decision.get("action")
        context = getattr(task.entity, "context", "") or ""

        if task.task_type in ("confirm_entity_match", "review_identity_conflict"):
            if action == "confirm_match":
                entity_id = decision.get("selected_entity_id")
                if entity_id is None:
                    raise ContentInvalidError("confirm_match requires selected_entity_id")
                record = await self._store.get_record(
                    task.entity_type, content_item.user_id, int(entity_id)
                )
                if record is None:
                    raise ContentInvalidError(
                        f"{task.entity_type} {entity_id} not found for this user"
                    )
                await self._attach(task.entity_type, record, 1.0, context, content_item)
                return record
            if action == "create_new":
                return await self._create_and_attach(task, content_item, context)

        if task.task_type == "confirm_new_entity" and action == "confirm_creation":
            return await self._create_and_attach(task, content_item, context)

        raise ContentInvalidError(
            f"Invalid action '{action}' for confirmation task '{task.task_type}'"
        )

    async def _create_and_attach(self, task: ConfirmationTask, content_item: ContentItem, context: str):
        if self._identity_key(task.entity_type, task.entity) is None:
            raise ContentInvalidError(f"Cannot create a {task.entity_type} without a name")
        async with self._store.transaction() as db:
            record = await self._create(task.entity_type, task.entity, content_item.user_id, db)
            await self._attach(task.entity_type, record, task.confidence, context, content_item, db)
        logger.info(
            "confirmation_resolved",
            task_type=task.task_type,
            entity_type=task.entity_type,
            entity_id=record.id,
        )
        return record

    async def _attach(
        self,
        entity_type: str,
        record,
        confidence: float,
        context: str,
        content_item: ContentItem,
        db=None,
    ) -> None:
        await self._store.attach(
            EntityAssociation(
                content_id=content_item.id,
                entity_type=entity_type,
                entity_id=record.id,
                confidence=confidence,
                context=context,
            ),
            db=db,
        )

    async def _find_existing(self, entity_type: str, entity, user_id: int):
        if entity_type == "stakeholder":
            return await self._store.find_stakeholder(user_id, entity.name, entity.email)
        if entity_type == "workstream":
            return await self._store.find_workstream(user_id, entity.name)
        return await self._store.find_release(user_id, entity.name, entity.version)

    async def _create(self, entity_type: str, entity, user_id: int, db):
        # Only extracted fields are written; anything missing stays None.
        if entity_type == "stakeholder":
            return await self._store.create_stakeholder(
                Stakeholder(
                    user_id=user_id,
                    name=entity.name,
                    email=entity.email,
                    title=entity.title,
                    department=entity.department,
                    company=entity.company,
                ),
                db=db,
            )
        if entity_type == "workstream":
            return await self._store.create_workstream(
                Workstream(user_id=user_id, name=entity.name, description=entity.description),
                db=db,
            )
        return await self._store.create_release(
            Release(
                user_id=user_id,
                name=entity.name,
                version=entity.version,
                target_date=entity.target_date,
            ),
            db=db,
        )

    @staticmethod
    def _identity_key(entity_type: str, entity) -> str | None:
        name = normalize_text(getattr(entity, "name", None))
        if not name:
            return None
        if entity_type == "stakeholder" and entity.email:
            return f"{entity_type}:email:{normalize_text(entity.email)}"
        return f"{entity_type}:name:{name}"
