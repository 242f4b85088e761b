"""SQLite schema for the task store (code-first approach)."""

import logging

from taskpulse.core import db_client


logger = logging.getLogger(__name__)


# Central list of all tables in the schema
TABLES = ["users", "tasks"]

_SCHEMA_STATEMENTS = [
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL UNIQUE,
        token_version INTEGER NOT NULL DEFAULT 0
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL DEFAULT '',
        project_id TEXT,
        assignee_id TEXT,
        status TEXT NOT NULL DEFAULT 'pending'
            CHECK (status IN ('pending', 'in_progress', 'completed', 'cancelled')),
        priority TEXT NOT NULL DEFAULT 'medium'
            CHECK (priority IN ('low', 'medium', 'high', 'urgent')),
        complexity INTEGER NOT NULL DEFAULT 5 CHECK (complexity BETWEEN 1 AND 10),
        created_at TEXT NOT NULL,
        completed_at TEXT,
        CHECK ((status = 'completed') = (completed_at IS NOT NULL))
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_tasks_assignee_created ON tasks (assignee_id, created_at)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_status ON tasks (status)",
]


async def init_db(*, db_path: str | None = None) -> None:
    """Create all tables and indexes if they do not exist yet."""
    conn = await db_client.get_connection(db_path=db_path)
    for statement in _SCHEMA_STATEMENTS:
        await conn.execute(statement)
    await conn.commit()
    logger.info("Schema initialized", extra={"tables": TABLES})
