"""SQLite task store with typed, parameterized reads."""

import asyncio
import logging
import threading
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any

import aiosqlite
from pydantic import ValidationError

from taskpulse.core.config import settings
from taskpulse.domain.task import Task
from taskpulse.domain.task_query import TaskQuery, to_db_timestamp
from taskpulse.domain.user import User


logger = logging.getLogger(__name__)

_TASK_COLUMNS = (
    "id",
    "title",
    "project_id",
    "assignee_id",
    "status",
    "priority",
    "complexity",
    "created_at",
    "completed_at",
)
_WRITABLE_TASK_COLUMNS = frozenset(_TASK_COLUMNS) - {"id"}
_SORTABLE_TASK_COLUMNS = frozenset({"id", "created_at", "completed_at", "priority", "status", "complexity"})


class DatabaseError(RuntimeError):
    """Raised when the task store cannot be read or written."""


class RecordNotFoundError(KeyError):
    """Raised when a record does not exist."""


def get_db_path(db_path: str | None = None) -> Path:
    """Get the resolved SQLite database file path."""
    path_str = db_path or settings.sqlite_db_path
    return Path(path_str).resolve()


def _to_db_value(value: Any) -> Any:  # noqa: ANN401
    if isinstance(value, datetime):
        return to_db_timestamp(value)
    if isinstance(value, Enum):
        return value.value
    return value


def _row_to_dict(cursor: aiosqlite.Cursor, row: Any) -> dict[str, Any]:  # noqa: ANN401
    columns = [description[0] for description in cursor.description]
    return dict(zip(columns, row, strict=True))


_db_connections: dict[tuple[int, int, str], aiosqlite.Connection] = {}
_db_lock = asyncio.Lock()


async def get_connection(*, db_path: str | None = None) -> aiosqlite.Connection:
    """Get or create a cached connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop = asyncio.get_running_loop()
    loop_id = id(loop)
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    if cache_key in _db_connections:
        return _db_connections[cache_key]

    async with _db_lock:
        # Double-check after acquiring lock
        if cache_key in _db_connections:
            return _db_connections[cache_key]

        path.parent.mkdir(parents=True, exist_ok=True)

        conn = await aiosqlite.connect(str(path))
        await conn.execute("PRAGMA foreign_keys = ON")
        await conn.execute("PRAGMA journal_mode = WAL")

        _db_connections[cache_key] = conn

        logger.info(
            "Created new SQLite connection",
            extra={"db_path": str(path), "thread_id": thread_id, "loop_id": loop_id},
        )
        return conn


async def close_connection(*, db_path: str | None = None) -> None:
    """Close the cached SQLite connection for the current thread, loop, and db path."""
    thread_id = threading.get_ident()
    loop_id = id(asyncio.get_running_loop())
    path = get_db_path(db_path)
    cache_key = (thread_id, loop_id, str(path))

    async with _db_lock:
        conn = _db_connections.pop(cache_key, None)
        if conn is None:
            return
        await conn.close()
        logger.info("Closed SQLite connection", extra={"db_path": str(path)})


async def init_db(*, db_path: str | None = None) -> None:
    """Initialize the database schema by delegating to schema.init_db()."""
    schema = __import__("taskpulse.core.schema", fromlist=["init_db"])
    await schema.init_db(db_path=db_path)


async def create_user(*, username: str, db_path: str | None = None) -> User:
    """Insert a user and return it."""
    try:
        conn = await get_connection(db_path=db_path)
        cursor = await conn.execute("INSERT INTO users (username) VALUES (?)", (username,))
        await conn.commit()
        user_id = str(cursor.lastrowid)
    except aiosqlite.Error as e:
        logger.error("create_user_failed", extra={"username": username, "error": str(e)})
        msg = f"Failed to create user {username}: {e}"
        raise DatabaseError(msg) from e

    logger.info("Created user", extra={"user_id": user_id})
    return await get_user(user_id=user_id, db_path=db_path)


async def get_user(*, user_id: str, db_path: str | None = None) -> User:
    """Fetch a user by ID, raising RecordNotFoundError if absent."""
    try:
        conn = await get_connection(db_path=db_path)
        cursor = await conn.execute("SELECT id, username, token_version FROM users WHERE id = ?", (int(user_id),))
        row = await cursor.fetchone()
    except (aiosqlite.Error, ValueError) as e:
        logger.error("get_user_failed", extra={"user_id": user_id, "error": str(e)})
        msg = f"Failed to get user {user_id}: {e}"
        raise DatabaseError(msg) from e

    if row is None:
        msg = f"User not found: {user_id}"
        raise RecordNotFoundError(msg)
    return User.model_validate(_row_to_dict(cursor, row))


async def list_users(*, db_path: str | None = None) -> list[User]:
    """Return every user ordered by ID."""
    try:
        conn = await get_connection(db_path=db_path)
        cursor = await conn.execute("SELECT id, username, token_version FROM users ORDER BY id ASC")
        rows = await cursor.fetchall()
        users = [User.model_validate(_row_to_dict(cursor, row)) for row in rows]
    except (aiosqlite.Error, ValidationError) as e:
        logger.error("list_users_failed", extra={"error": str(e)})
        msg = f"Failed to list users: {e}"
        raise DatabaseError(msg) from e

    logger.info("Listed users", extra={"count": len(users)})
    return users


async def create_task(*, data: dict[str, Any], db_path: str | None = None) -> Task:
    """Insert a task and return it with its assigned ID."""
    unknown = set(data) - _WRITABLE_TASK_COLUMNS
    if unknown:
        msg = f"Unknown task fields: {sorted(unknown)}"
        raise ValueError(msg)

    columns = list(data.keys())
    placeholders = ", ".join("?" for _ in columns)
    query = f"INSERT INTO tasks ({', '.join(columns)}) VALUES ({placeholders})"  # noqa: S608 - columns are whitelisted

    try:
        conn = await get_connection(db_path=db_path)
        cursor = await conn.execute(query, [_to_db_value(data[c]) for c in columns])
        await conn.commit()
        task_id = str(cursor.lastrowid)
    except aiosqlite.Error as e:
        logger.error("create_task_failed", extra={"error": str(e)})
        msg = f"Failed to create task: {e}"
        raise DatabaseError(msg) from e

    logger.info("Created task", extra={"task_id": task_id})
    return await get_task(task_id=task_id, db_path=db_path)


async def get_task(*, task_id: str, db_path: str | None = None) -> Task:
    """Fetch a task by ID, raising RecordNotFoundError if absent."""
    query = f"SELECT {', '.join(_TASK_COLUMNS)} FROM tasks WHERE id = ?"  # noqa: S608 - fixed column list
    try:
        conn = await get_connection(db_path=db_path)
        cursor = await conn.execute(query, (int(task_id),))
        row = await cursor.fetchone()
    except (aiosqlite.Error, ValueError) as e:
        logger.error("get_task_failed", extra={"task_id": task_id, "error": str(e)})
        msg = f"Failed to get task {task_id}: {e}"
        raise DatabaseError(msg) from e

    if row is None:
        msg = f"Task not found: {task_id}"
        raise RecordNotFoundError(msg)
    return Task.model_validate(_row_to_dict(cursor, row))


async def update_task(*, task_id: str, data: dict[str, Any], db_path: str | None = None) -> Task:
    """Write the given task columns and return the updated task."""
    if not data:
        msg = "Empty update payload"
        raise ValueError(msg)

    unknown = set(data) - _WRITABLE_TASK_COLUMNS
    if unknown:
        msg = f"Unknown task fields: {sorted(unknown)}"
        raise ValueError(msg)

    set_clause = ", ".join(f"{key} = ?" for key in data)
    values = [_to_db_value(v) for v in data.values()]
    values.append(int(task_id))

    try:
        conn = await get_connection(db_path=db_path)
        cursor = await conn.execute(f"UPDATE tasks SET {set_clause} WHERE id = ?", values)  # noqa: S608 - columns are whitelisted
        await conn.commit()
    except aiosqlite.Error as e:
        logger.error("update_task_failed", extra={"task_id": task_id, "error": str(e)})
        msg = f"Failed to update task {task_id}: {e}"
        raise DatabaseError(msg) from e

    if cursor.rowcount == 0:
        msg = f"Task not found: {task_id}"
        raise RecordNotFoundError(msg)

    logger.info("Updated task", extra={"task_id": task_id, "fields": sorted(data)})
    return await get_task(task_id=task_id, db_path=db_path)


async def find_tasks(
    query: TaskQuery,
    *,
    page: int | None = None,
    per_page: int | None = None,
    sort: str = "id",
    db_path: str | None = None,
) -> list[Task]:
    """Return tasks matching a typed query, optionally paginated.

    Args:
        query: Typed predicate; rendered with bound parameters only
        page: 1-based page number; requires per_page
        per_page: Page size; all matches are returned when omitted
        sort: Column name, prefixed with "-" for descending order
        db_path: Override database path

    Raises:
        DatabaseError: If the store cannot be read or holds an invalid row
    """
    descending = sort.startswith("-")
    sort_column = sort.lstrip("-")
    if sort_column not in _SORTABLE_TASK_COLUMNS:
        msg = f"Unsupported sort column: {sort_column}"
        raise ValueError(msg)

    where_clause, params = query.to_sql()
    sql = f"SELECT {', '.join(_TASK_COLUMNS)} FROM tasks"  # noqa: S608 - fixed column list
    if where_clause:
        sql += f" WHERE {where_clause}"
    sql += f" ORDER BY {sort_column} {'DESC' if descending else 'ASC'}, id ASC"

    bound: list[Any] = list(params)
    if per_page is not None:
        offset = ((page or 1) - 1) * per_page
        sql += " LIMIT ? OFFSET ?"
        bound.extend([per_page, offset])

    try:
        conn = await get_connection(db_path=db_path)
        cursor = await conn.execute(sql, bound)
        rows = await cursor.fetchall()
        tasks = [Task.model_validate(_row_to_dict(cursor, row)) for row in rows]
    except (aiosqlite.Error, ValidationError) as e:
        logger.error("find_tasks_failed", extra={"error": str(e)})
        msg = f"Failed to query tasks: {e}"
        raise DatabaseError(msg) from e

    logger.debug("Found tasks", extra={"count": len(tasks), "page": page})
    return tasks


async def count_tasks(query: TaskQuery, *, db_path: str | None = None) -> int:
    """Count tasks matching a typed query."""
    where_clause, params = query.to_sql()
    sql = "SELECT COUNT(*) FROM tasks"
    if where_clause:
        sql += f" WHERE {where_clause}"

    try:
        conn = await get_connection(db_path=db_path)
        cursor = await conn.execute(sql, params)
        row = await cursor.fetchone()
    except aiosqlite.Error as e:
        logger.error("count_tasks_failed", extra={"error": str(e)})
        msg = f"Failed to count tasks: {e}"
        raise DatabaseError(msg) from e

    return int(row[0]) if row else 0
