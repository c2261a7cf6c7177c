"""SQLite-backed ledger of completion jobs, used for cost limits and usage stats."""

from __future__ import annotations

import json
from datetime import datetime, timezone

import aiosqlite

from content_engine.models.domain import AiJob
from content_engine.storage.migrations import initialize_job_db


class SQLiteJobStore:
    def __init__(self, db_path: str) -> None:
        self._db_path = db_path

    async def initialize(self) -> None:
        await initialize_job_db(self._db_path)

    async def create(self, job: AiJob) -> AiJob:
        async with aiosqlite.connect(self._db_path) as db:
            cursor = await db.execute(
                "INSERT INTO ai_jobs (provider, model, method, prompt_hash, prompt_length, options, "
                "status, estimated_cost, user_id, created_at) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)",
                (
                    job.provider,
                    job.model,
                    job.method,
                    job.prompt_hash,
                    job.prompt_length,
                    json.dumps(job.options),
                    job.status,
                    job.estimated_cost,
                    job.user_id,
                    job.created_at.isoformat(),
                ),
            )
            await db.commit()
            job.id = cursor.lastrowid
        return job

    async def mark_completed(
        self,
        job: AiJob,
        tokens_used: int,
        cost: float,
        response_length: int,
        duration_ms: float,
    ) -> AiJob:
        job.status = "completed"
        job.tokens_used = tokens_used
        job.cost = cost
        job.response_length = response_length
        job.duration_ms = duration_ms
        job.completed_at = datetime.now(timezone.utc)
        async with aiosqlite.connect(self._db_path) as db:
            await db.execute(
                "UPDATE ai_jobs SET status = ?, tokens_used = ?, cost = ?, response_length = ?, "
                "duration_ms = ?, completed_at = ? WHERE id = ?",
                (
                    job.status,
                    tokens_used,
                    cost,
                    response_length,
                    duration_ms,
                    job.completed_at.isoformat(),
                    job.id,
                ),
            )
            await db.commit()
        return job

    async def mark_failed(self, job: AiJob, error_message: str, duration_ms: float) -> AiJob:
        job.status = "failed"
        job.error_message = error_message
        job.duration_ms = duration_ms
        job.completed_at = datetime.now(timezone.utc)
        async with aiosqlite.connect(self._db_path) as db:
            # A failed call spends nothing; drop the reservation from the ledger.
            await db.execute(
                "UPDATE ai_jobs SET status = ?, error_message = ?, duration_ms = ?, "
                "completed_at = ?, cost = 0 WHERE id = ?",
                (job.status, error_message, duration_ms, job.completed_at.isoformat(), job.id),
            )
            await db.commit()
        return job

    async def get(self, job_id: int) -> AiJob | None:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute("SELECT * FROM ai_jobs WHERE id = ?", (job_id,)) as cursor:
                row = await cursor.fetchone()
                return self._row_to_job(row) if row else None

    async def spend_since(self, since: datetime) -> float:
        """Ledger spend since ``since``; in-flight jobs count at their estimate."""
        async with aiosqlite.connect(self._db_path) as db:
            async with db.execute(
                "SELECT COALESCE(SUM(COALESCE(cost, estimated_cost)), 0) FROM ai_jobs "
                "WHERE created_at >= ?",
                (since.isoformat(),),
            ) as cursor:
                row = await cursor.fetchone()
                return float(row[0]) if row else 0.0

    async def list_since(self, since: datetime) -> list[AiJob]:
        async with aiosqlite.connect(self._db_path) as db:
            db.row_factory = aiosqlite.Row
            async with db.execute(
                "SELECT * FROM ai_jobs WHERE created_at >= ? ORDER BY created_at", (since.isoformat(),)
            ) as cursor:
                rows = await cursor.fetchall()
                return [self._row_to_job(row) for row in rows]

    @staticmethod
    def _row_to_job(row: aiosqlite.Row) -> AiJob:
        return AiJob(
            id=row["id"],
            provider=row["provider"],
            model=row["model"],
            method=row["method"],
            prompt_hash=row["prompt_hash"],
            prompt_length=row["prompt_length"],
            options=json.loads(row["options"]),
            status=row["status"],
            estimated_cost=row["estimated_cost"],
            tokens_used=row["tokens_used"],
            cost=row["cost"],
            response_length=row["response_length"],
            error_message=row["error_message"],
            duration_ms=row["duration_ms"],
            user_id=row["user_id"],
            created_at=datetime.fromisoformat(row["created_at"]),
            completed_at=(
                datetime.fromisoformat(row["completed_at"]) if row["completed_at"] else None
            ),
        )
