"""SQLite-backed store for inputs, outputs, feedback and embeddings."""

from __future__ import annotations

import json
from datetime import datetime

import aiosqlite

from content_engine.models.domain import ContentItem, Embedding, Feedback, GeneratedOutput
from content_engine.storage.migrations import initialize_content_db

EXEMPLAR_SELECT = """
SELECT
    i.id AS i_id, i.user_id AS i_user_id, i.content AS i_content,
    i.content_type AS i_content_type, i.source AS i_source,
    i.metadata AS i_metadata, i.created_at AS i_created_at,
    o.id AS o_id, o.input_id AS o_input_id, o.content AS o_content,
    o.output_type AS o_output_type, o.ai_model AS o_ai_model,
    o.quality_score AS o_quality_score, o.version AS o_version,
    o.parent_output_id AS o_parent_output_id,
    o.feedback_integrated AS o_feedback_integrated,
    o.feedback_count AS o_feedback_count, o.metadata AS o_metadata,
    o.created_at AS o_created_at,
    f.id AS f_id, f.output_id AS f_output_id, f.user_id AS f_user_id,
    f.kind AS f_kind, f.action AS f_action, f.signal_type AS f_signal_type,
    f.confidence AS f_confidence, f.metadata AS f_metadata,
    f.created_at AS f_created_at
FROM inputs i
JOIN outputs o ON o.input_id = i.id
JOIN feedback f ON f.output_id = o.id
"""


class SQLiteContentStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_content_db(self._db_path)

    # --- Inputs ---

    async def save_input(self, item: ContentItem) -> ContentItem:
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(
                "INSERT INTO inputs (user_id, content, content_type, source, metadata, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?)",
                (
                    item.user_id,
                    item.content,
                    item.content_type,
                    item.source,
                    json.dumps(item.metadata),
                    item.created_at.isoformat(),
                ),
            )
            await db.commit()
            item.id = cursor.lastrowid
        return item

    async def get_input(self, input_id: int) -> ContentItem | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute("SELECT * FROM inputs WHERE id = ?", (input_id,)) as cursor:
                row = await cursor.fetchone()
                return self._row_to_input(row) if row else None

    async def count_inputs(self) -> int:
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute("SELECT COUNT(*) FROM inputs") as cursor:
                row = await cursor.fetchone()
                return row[0] if row else 0

    # --- Outputs ---

    async def save_output(self, output: GeneratedOutput) -> GeneratedOutput:
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(
                "INSERT INTO outputs (input_id, content, output_type, ai_model, quality_score, version, "
                "parent_output_id, feedback_integrated, feedback_count, metadata, created_at) "
                "VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    output.input_id,
                    output.content,
                    output.output_type,
                    output.ai_model,
                    output.quality_score,
                    output.version,
                    output.parent_output_id,
                    int(output.feedback_integrated),
                    output.feedback_count,
                    json.dumps(output.metadata),
                    output.created_at.isoformat(),
                ),
            )
            await db.commit()
            output.id = cursor.lastrowid
        return output

    async def get_output(self, output_id: int) -> GeneratedOutput | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute("SELECT * FROM outputs WHERE id = ?", (output_id,)) as cursor:
                row = await cursor.fetchone()
                return self._row_to_output(row) if row else None

    async def list_outputs(self, input_id: int) -> list[GeneratedOutput]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM outputs WHERE input_id = ? ORDER BY version", (input_id,)
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_output(row) for row in rows]

    async def mark_output_integrated(self, output_id: int) -> bool:
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(
                "UPDATE outputs SET feedback_integrated = 1 WHERE id = ?", (output_id,)
            )
            await db.commit()
            return cursor.rowcount > 0

    # --- Feedback ---

    async def add_feedback(self, feedback: Feedback) -> Feedback:
        """Insert feedback and bump the output's running count in one transaction."""
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(
                "INSERT INTO feedback (output_id, user_id, kind, action, signal_type, confidence, "
                "metadata, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    feedback.output_id,
                    feedback.user_id,
                    feedback.kind,
                    feedback.action,
                    feedback.signal_type,
                    feedback.confidence,
                    json.dumps(feedback.metadata),
                    feedback.created_at.isoformat(),
                ),
            )
            await db.execute(
                "UPDATE outputs SET feedback_count = feedback_count + 1 WHERE id = ?",
                (feedback.output_id,),
            )
            await db.commit()
            feedback.id = cursor.lastrowid
        return feedback

    async def get_feedback(self, feedback_id: int) -> Feedback | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute("SELECT * FROM feedback WHERE id = ?", (feedback_id,)) as cursor:
                row = await cursor.fetchone()
                return self._row_to_feedback(row) if row else None

    async def list_feedback(
        self,
        user_id: int | None = None,
        output_id: int | None = None,
        start: datetime | None = None,
        end: datetime | None = None,
        ids: list[int] | None = None,
    ) -> list[Feedback]:
        clauses: list[str] = []
        params: list = []
        if user_id is not None:
            clauses.append("user_id = ?")
            params.append(user_id)
        if output_id is not None:
            clauses.append("output_id = ?")
            params.append(output_id)
        if start is not None:
            clauses.append("created_at >= ?")
            params.append(start.isoformat())
        if end is not None:
            clauses.append("created_at <= ?")
            params.append(end.isoformat())
        if ids is not None:
            if not ids:
                return []
            clauses.append(f"id IN ({','.join('?' for _ in ids)})")
            params.extend(ids)
        where = f" WHERE {' AND '.join(clauses)}" if clauses else ""
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                f"SELECT * FROM feedback{where} ORDER BY created_at, id", params
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_feedback(row) for row in rows]

    async def list_feedback_with_output_types(self, user_id: int) -> list[tuple[Feedback, str]]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT f.*, o.output_type AS output_type FROM feedback f "
                "JOIN outputs o ON o.id = f.output_id WHERE f.user_id = ? ORDER BY f.created_at, f.id",
                (user_id,),
            ) as cursor:
                rows = await cursor.fetchall()
                return [(self._row_to_feedback(row), row["output_type"]) for row in rows]

    # --- Embeddings ---

    async def upsert_embedding(self, embedding: Embedding) -> Embedding:
        """Store the single embedding for an owner, replacing any previous one wholesale."""
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "INSERT INTO embeddings (owner_id, owner_kind, vector, model, dimensions, normalized, "
                "created_at) VALUES (?, ?, ?, ?, ?, ?, ?) "
                "ON CONFLICT(owner_id, owner_kind) DO UPDATE SET vector = excluded.vector, "
                "model = excluded.model, dimensions = excluded.dimensions, "
                "normalized = excluded.normalized, created_at = excluded.created_at "
                "RETURNING id",
                (
                    embedding.owner_id,
                    embedding.owner_kind,
                    json.dumps(embedding.vector),
                    embedding.model,
                    embedding.dimensions,
                    int(embedding.normalized),
                    embedding.created_at.isoformat(),
                ),
            ) as cursor:
                row = await cursor.fetchone()
            await db.commit()
            embedding.id = row[0]
        return embedding

    async def get_embedding(self, owner_id: int, owner_kind: str) -> Embedding | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM embeddings WHERE owner_id = ? AND owner_kind = ?",
                (owner_id, owner_kind),
            ) as cursor:
                row = await cursor.fetchone()
                return self._row_to_embedding(row) if row else None

    async def list_embeddings(self, owner_kind: str | None = None) -> list[Embedding]:
        query = "SELECT * FROM embeddings"
        params: tuple = ()
        if owner_kind is not None:
            query += " WHERE owner_kind = ?"
            params = (owner_kind,)
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(query + " ORDER BY id", params) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_embedding(row) for row in rows]

    # --- Retrieval join ---

    async def find_exemplars(
        self,
        input_ids: list[int],
        output_type: str | None = None,
        action: str | None = None,
        min_confidence: float | None = None,
        min_quality_score: float | None = None,
        context: str | None = None,
    ) -> list[tuple[ContentItem, GeneratedOutput, Feedback]]:
        """Join inputs through outputs to feedback, applying the exemplar filters."""
        if not input_ids:
            return []
        clauses = [f"i.id IN ({','.join('?' for _ in input_ids)})"]
        params: list = list(input_ids)
        if output_type is not None:
            clauses.append("o.output_type = ?")
            params.append(output_type)
        if action is not None:
            clauses.append("f.action = ?")
            params.append(action)
        if min_confidence is not None:
            clauses.append("f.confidence >= ?")
            params.append(min_confidence)
        if min_quality_score is not None:
            clauses.append("o.quality_score >= ?")
            params.append(min_quality_score)
        if context is not None:
            clauses.append("json_extract(f.metadata, '$.context') = ?")
            params.append(context)

        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                EXEMPLAR_SELECT + " WHERE " + " AND ".join(clauses), params
            ) as cursor:
                rows = await cursor.fetchall()
        return [
            (
                self._row_to_input(row, "i_"),
                self._row_to_output(row, "o_"),
                self._row_to_feedback(row, "f_"),
            )
            for row in rows
        ]

    @staticmethod
    def _row_to_input(row: aiosqlite.Row, prefix: str = "") -> ContentItem:
        return ContentItem(
            id=row[f"{prefix}id"],
            user_id=row[f"{prefix}user_id"],
            content=row[f"{prefix}content"],
            content_type=row[f"{prefix}content_type"],
            source=row[f"{prefix}source"],
            metadata=json.loads(row[f"{prefix}metadata"]),
            created_at=datetime.fromisoformat(row[f"{prefix}created_at"]),
        )

    @staticmethod
    def _row_to_output(row: aiosqlite.Row, prefix: str = "") -> GeneratedOutput:
        return GeneratedOutput(
            id=row[f"{prefix}id"],
            input_id=row[f"{prefix}input_id"],
            content=row[f"{prefix}content"],
            output_type=row[f"{prefix}output_type"],
            ai_model=row[f"{prefix}ai_model"],
            quality_score=row[f"{prefix}quality_score"],
            version=row[f"{prefix}version"],
            parent_output_id=row[f"{prefix}parent_output_id"],
            feedback_integrated=bool(row[f"{prefix}feedback_integrated"]),
            feedback_count=row[f"{prefix}feedback_count"],
            metadata=json.loads(row[f"{prefix}metadata"]),
            created_at=datetime.fromisoformat(row[f"{prefix}created_at"]),
        )

    @staticmethod
    def _row_to_feedback(row: aiosqlite.Row, prefix: str = "") -> Feedback:
        return Feedback(
            id=row[f"{prefix}id"],
            output_id=row[f"{prefix}output_id"],
            user_id=row[f"{prefix}user_id"],
            kind=row[f"{prefix}kind"],
            action=row[f"{prefix}action"],
            signal_type=row[f"{prefix}signal_type"],
            confidence=row[f"{prefix}confidence"],
            metadata=json.loads(row[f"{prefix}metadata"]),
            created_at=datetime.fromisoformat(row[f"{prefix}created_at"]),
        )

    @staticmethod
    def _row_to_embedding(row: aiosqlite.Row) -> Embedding:
        return Embedding(
            id=row["id"],
            owner_id=row["owner_id"],
            owner_kind=row["owner_kind"],
            vector=json.loads(row["vector"]),
            model=row["model"],
            dimensions=row["dimensions"],
            normalized=bool(row["normalized"]),
            created_at=datetime.fromisoformat(row["created_at"]),
        )
