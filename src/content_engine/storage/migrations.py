"""Idempotent database schema creation."""

from __future__ import annotations

import aiosqlite

INPUTS_TABLE = """
CREATE TABLE IF NOT EXISTS inputs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    content TEXT NOT NULL,
    content_type TEXT NOT NULL,
    source TEXT NOT NULL DEFAULT 'manual',
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL
)
"""

OUTPUTS_TABLE = """
CREATE TABLE IF NOT EXISTS outputs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    input_id INTEGER NOT NULL,
    content TEXT NOT NULL,
    output_type TEXT NOT NULL,
    ai_model TEXT,
    quality_score REAL,
    version INTEGER NOT NULL DEFAULT 1,
    parent_output_id INTEGER,
    feedback_integrated INTEGER NOT NULL DEFAULT 0,
    feedback_count INTEGER NOT NULL DEFAULT 0,
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL,
    FOREIGN KEY (input_id) REFERENCES inputs(id),
    FOREIGN KEY (parent_output_id) REFERENCES outputs(id)
)
"""

FEEDBACK_TABLE = """
CREATE TABLE IF NOT EXISTS feedback (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    output_id INTEGER NOT NULL,
    user_id INTEGER NOT NULL,
    kind TEXT NOT NULL,
    action TEXT NOT NULL,
    signal_type TEXT NOT NULL,
    confidence REAL NOT NULL CHECK (confidence >= 0.0 AND confidence <= 1.0),
    metadata TEXT NOT NULL DEFAULT '{}',
    created_at TEXT NOT NULL,
    FOREIGN KEY (output_id) REFERENCES outputs(id)
)
"""

EMBEDDINGS_TABLE = """
CREATE TABLE IF NOT EXISTS embeddings (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    owner_id INTEGER NOT NULL,
    owner_kind TEXT NOT NULL CHECK (owner_kind IN ('input', 'output')),
    vector TEXT NOT NULL,
    model TEXT NOT NULL,
    dimensions INTEGER NOT NULL,
    normalized INTEGER NOT NULL DEFAULT 1,
    created_at TEXT NOT NULL,
    UNIQUE (owner_id, owner_kind)
)
"""

AI_JOBS_TABLE = """
CREATE TABLE IF NOT EXISTS ai_jobs (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    provider TEXT NOT NULL,
    model TEXT NOT NULL,
    method TEXT NOT NULL,
    prompt_hash TEXT NOT NULL,
    prompt_length INTEGER NOT NULL,
    options TEXT NOT NULL DEFAULT '{}',
    status TEXT NOT NULL,
    estimated_cost REAL NOT NULL DEFAULT 0,
    tokens_used INTEGER,
    cost REAL,
    response_length INTEGER,
    error_message TEXT,
    duration_ms REAL,
    user_id INTEGER,
    created_at TEXT NOT NULL,
    completed_at TEXT
)
"""

COUNTERS_TABLE = """
CREATE TABLE IF NOT EXISTS counters (
    key TEXT PRIMARY KEY,
    value INTEGER NOT NULL,
    expires_at REAL NOT NULL
)
"""

STAKEHOLDERS_TABLE = """
CREATE TABLE IF NOT EXISTS stakeholders (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    email TEXT,
    title TEXT,
    department TEXT,
    company TEXT,
    notes TEXT,
    created_at TEXT NOT NULL
)
"""

WORKSTREAMS_TABLE = """
CREATE TABLE IF NOT EXISTS workstreams (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    description TEXT,
    created_at TEXT NOT NULL
)
"""

RELEASES_TABLE = """
CREATE TABLE IF NOT EXISTS releases (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    user_id INTEGER NOT NULL,
    name TEXT NOT NULL,
    version TEXT,
    description TEXT,
    target_date TEXT,
    created_at TEXT NOT NULL
)
"""

CONTENT_ENTITIES_TABLE = """
CREATE TABLE IF NOT EXISTS content_entities (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    content_id INTEGER NOT NULL,
    entity_type TEXT NOT NULL,
    entity_id INTEGER NOT NULL,
    confidence REAL NOT NULL,
    context TEXT NOT NULL DEFAULT '',
    UNIQUE (content_id, entity_type, entity_id),
    FOREIGN KEY (content_id) REFERENCES inputs(id)
)
"""

ACTION_ITEMS_TABLE = """
CREATE TABLE IF NOT EXISTS action_items (
    id INTEGER PRIMARY KEY AUTOINCREMENT,
    content_id INTEGER NOT NULL,
    user_id INTEGER NOT NULL,
    text TEXT NOT NULL,
    priority TEXT NOT NULL DEFAULT 'medium',
    status TEXT NOT NULL DEFAULT 'open',
    due_date TEXT,
    assignee_stakeholder_id INTEGER,
    confidence REAL NOT NULL DEFAULT 0.5,
    context TEXT NOT NULL DEFAULT '',
    created_at TEXT NOT NULL,
    FOREIGN KEY (content_id) REFERENCES inputs(id),
    FOREIGN KEY (assignee_stakeholder_id) REFERENCES stakeholders(id)
)
"""

INDEXES = [
    "CREATE INDEX IF NOT EXISTS idx_outputs_input_id ON outputs(input_id)",
    "CREATE INDEX IF NOT EXISTS idx_feedback_output_id ON feedback(output_id)",
    "CREATE INDEX IF NOT EXISTS idx_feedback_user_created ON feedback(user_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_feedback_action_conf ON feedback(action, confidence)",
    "CREATE INDEX IF NOT EXISTS idx_ai_jobs_created_at ON ai_jobs(created_at)",
    "CREATE INDEX IF NOT EXISTS idx_stakeholders_user ON stakeholders(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_workstreams_user ON workstreams(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_releases_user ON releases(user_id)",
    "CREATE INDEX IF NOT EXISTS idx_content_entities_content ON content_entities(content_id)",
]


async def initialize_content_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(INPUTS_TABLE)
        await db.execute(OUTPUTS_TABLE)
        await db.execute(FEEDBACK_TABLE)
        await db.execute(EMBEDDINGS_TABLE)
        for statement in INDEXES[:4]:
            await db.execute(statement)
        await db.commit()


async def initialize_job_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(AI_JOBS_TABLE)
        await db.execute(INDEXES[4])
        await db.commit()


async def initialize_counter_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(COUNTERS_TABLE)
        await db.commit()


async def initialize_domain_db(db_path: str) -> None:
    async with aiosqlite.connect(db_path) as db:
        await db.execute(INPUTS_TABLE)
        await db.execute(STAKEHOLDERS_TABLE)
        await db.execute(WORKSTREAMS_TABLE)
        await db.execute(RELEASES_TABLE)
        await db.execute(CONTENT_ENTITIES_TABLE)
        await db.execute(ACTION_ITEMS_TABLE)
        for statement in INDEXES[5:]:
            await db.execute(statement)
        await db.commit()
