"""SQLite-backed, user-scoped store for stakeholders, workstreams and releases."""

from __future__ import annotations

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime

import aiosqlite

from content_engine.exceptions import PersistenceError
from content_engine.models.domain import (
    ActionItemRecord,
    EntityAssociation,
    Release,
    Stakeholder,
    Workstream,
)
from content_engine.reconciliation.similarity import same_identity
from content_engine.storage.migrations import initialize_domain_db


class SQLiteDomainStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_domain_db(self._db_path)

    @asynccontextmanager
    async def transaction(self) -> AsyncIterator[aiosqlite.Connection]:
        """One unit of work: committed on success, rolled back on error."""
        try:
            async with aiosqlite.connect(self._db_path) as db:
                db.row_factory = aiosqlite.Row
                try:
                    yield db
                except BaseException:
                    await db.rollback()
                    raise
                else:
                    await db.commit()
        except aiosqlite.Error as e:
            raise PersistenceError(f"Domain store transaction failed: {e}") from e

    @asynccontextmanager
    async def _connection(self, db: aiosqlite.Connection | None) -> AsyncIterator[aiosqlite.Connection]:
        if db is None:
            async with self.transaction() as own:
                yield own
            return
        try:
            yield db
        except aiosqlite.Error as e:
            raise PersistenceError(f"Domain store write failed: {e}") from e

    # --- Listing ---

    async def list_stakeholders(self, user_id: int) -> list[Stakeholder]:
        rows = await self._fetch_all("SELECT * FROM stakeholders WHERE user_id = ? ORDER BY id", user_id)
        return [self._row_to_stakeholder(row) for row in rows]

    async def list_workstreams(self, user_id: int) -> list[Workstream]:
        rows = await self._fetch_all("SELECT * FROM workstreams WHERE user_id = ? ORDER BY id", user_id)
        return [self._row_to_workstream(row) for row in rows]

    async def list_releases(self, user_id: int) -> list[Release]:
        rows = await self._fetch_all("SELECT * FROM releases WHERE user_id = ? ORDER BY id", user_id)
        return [self._row_to_release(row) for row in rows]

    # --- Identity lookups ---

    async def find_stakeholder(
        self, user_id: int, name: str | None, email: str | None
    ) -> Stakeholder | None:
        records = await self.list_stakeholders(user_id)
        if email:
            for record in records:
                if same_identity(record.email, email):
                    return record
        if name:
            for record in records:
                conflicting = bool(email and record.email) and not same_identity(record.email, email)
                if not conflicting and same_identity(record.name, name):
                    return record
        return None

    async def find_workstream(self, user_id: int, name: str) -> Workstream | None:
        for record in await self.list_workstreams(user_id):
            if same_identity(record.name, name):
                return record
        return None

    async def find_release(
        self, user_id: int, name: str | None, version: str | None
    ) -> Release | None:
        records = await self.list_releases(user_id)
        if version:
            for record in records:
                if same_identity(record.version, version):
                    return record
        if name:
            for record in records:
                if same_identity(record.name, name):
                    return record
        return None

    async def get_record(self, entity_type: str, user_id: int, entity_id: int):
        table = {"stakeholder": "stakeholders", "workstream": "workstreams", "release": "releases"}[
            entity_type
        ]
        rows = await self._fetch_all(
            f"SELECT * FROM {table} WHERE id = ? AND user_id = ?", entity_id, user_id
        )
        if not rows:
            return None
        converter = {
            "stakeholder": self._row_to_stakeholder,
            "workstream": self._row_to_workstream,
            "release": self._row_to_release,
        }[entity_type]
        return converter(rows[0])

    # --- Creation ---

    async def create_stakeholder(self, record: Stakeholder, db=None) -> Stakeholder:
        async with self._connection(db) as conn:
            cursor = await conn.execute(
                "INSERT INTO stakeholders (user_id, name, email, title, department, company, notes, "
                "created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    record.user_id,
                    record.name,
                    record.email,
                    record.title,
                    record.department,
                    record.company,
                    record.notes,
                    record.created_at.isoformat(),
                ),
            )
            record.id = cursor.lastrowid
        return record

    async def create_workstream(self, record: Workstream, db=None) -> Workstream:
        async with self._connection(db) as conn:
            cursor = await conn.execute(
                "INSERT INTO workstreams (user_id, name, description, created_at) VALUES (?, ?, ?, ?)",
                (record.user_id, record.name, record.description, record.created_at.isoformat()),
            )
            record.id = cursor.lastrowid
        return record

    async def create_release(self, record: Release, db=None) -> Release:
        async with self._connection(db) as conn:
            cursor = await conn.execute(
                "INSERT INTO releases (user_id, name, version, description, target_date, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    record.user_id,
                    record.name,
                    record.version,
                    record.description,
                    record.target_date,
                    record.created_at.isoformat(),
                ),
            )
            record.id = cursor.lastrowid
        return record

    # --- Links ---

    async def attach(self, association: EntityAssociation, db=None) -> None:
        """Link an entity to a content item; a repeated link keeps the higher confidence."""
        async with self._connection(db) as conn:
            await conn.execute(
                "INSERT INTO content_entities (content_id, entity_type, entity_id, confidence, context) "
                "VALUES (?, ?, ?, ?, ?) ON CONFLICT(content_id, entity_type, entity_id) DO UPDATE SET "
                "confidence = MAX(content_entities.confidence, excluded.confidence), "
                "context = excluded.context",
                (
                    association.content_id,
                    association.entity_type,
                    association.entity_id,
                    association.confidence,
                    association.context,
                ),
            )

    async def add_action_item(self, item: ActionItemRecord, db=None) -> ActionItemRecord:
        async with self._connection(db) as conn:
            cursor = await conn.execute(
                "INSERT INTO action_items (content_id, user_id, text, priority, status, due_date, "
                "assignee_stakeholder_id, confidence, context, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    item.content_id,
                    item.user_id,
                    item.text,
                    item.priority,
                    item.status,
                    item.due_date,
                    item.assignee_stakeholder_id,
                    item.confidence,
                    item.context,
                    item.created_at.isoformat(),
                ),
            )
            item.id = cursor.lastrowid
        return item

    async def list_associations(self, content_id: int) -> list[EntityAssociation]:
        rows = await self._fetch_all(
            "SELECT * FROM content_entities WHERE content_id = ? ORDER BY id", content_id
        )
        return [
            EntityAssociation(
                id=row["id"],
                content_id=row["content_id"],
                entity_type=row["entity_type"],
                entity_id=row["entity_id"],
                confidence=row["confidence"],
                context=row["context"],
            )
            for row in rows
        ]

    async def list_action_items(self, content_id: int) -> list[ActionItemRecord]:
        rows = await self._fetch_all(
            "SELECT * FROM action_items WHERE content_id = ? ORDER BY id", content_id
        )
        return [
            ActionItemRecord(
                id=row["id"],
                content_id=row["content_id"],
                user_id=row["user_id"],
                text=row["text"],
                priority=row["priority"],
                status=row["status"],
                due_date=row["due_date"],
                assignee_stakeholder_id=row["assignee_stakeholder_id"],
                confidence=row["confidence"],
                context=row["context"],
                created_at=datetime.fromisoformat(row["created_at"]),
            )
            for row in rows
        ]

    async def _fetch_all(self, query: str, *params) -> list[aiosqlite.Row]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(query, params) as cursor:
                return await cursor.fetchall()

    @staticmethod
    def _row_to_stakeholder(row: aiosqlite.Row) -> Stakeholder:
        return Stakeholder(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            email=row["email"],
            title=row["title"],
            department=row["department"],
            company=row["company"],
            notes=row["notes"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    @staticmethod
    def _row_to_workstream(row: aiosqlite.Row) -> Workstream:
        return Workstream(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            description=row["description"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )

    @staticmethod
    def _row_to_release(row: aiosqlite.Row) -> Release:
        return Release(
            id=row["id"],
            user_id=row["user_id"],
            name=row["name"],
            version=row["version"],
            description=row["description"],
            target_date=row["target_date"],
            created_at=datetime.fromisoformat(row["created_at"]),
        )
