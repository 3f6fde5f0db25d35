from __future__ import annotations

import logging
import os
import sqlite3
from contextlib import contextmanager
from datetime import date
from typing import Any, Generator, List, Optional, Sequence

from .errors import ConflictError, StoreError
from .models import Priority, TaskEntity, UserEntity
from .repositories import TaskRepository, UserRepository

logger = logging.getLogger(__name__)

# SQLite INTEGER is a signed 64-bit value
_MIN_ROWID = -(2**63)
_MAX_ROWID = 2**63 - 1


def _storable(*values: Any) -> bool:
    """False if any int argument cannot be bound as an SQLite INTEGER."""
    return all(
        _MIN_ROWID <= v <= _MAX_ROWID for v in values if isinstance(v, int) and not isinstance(v, bool)
    )


_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS users (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        username TEXT NOT NULL,
        password_hash TEXT NOT NULL
    )
    """,
    "CREATE UNIQUE INDEX IF NOT EXISTS idx_users_username ON users(username)",
    """
    CREATE TABLE IF NOT EXISTS tasks (
        id INTEGER PRIMARY KEY AUTOINCREMENT,
        title TEXT NOT NULL,
        description TEXT NULL,
        category TEXT NOT NULL,
        priority TEXT NOT NULL DEFAULT 'LOW',
        completed INTEGER NOT NULL DEFAULT 0,
        created_date TEXT NOT NULL,
        due_date TEXT NULL,
        owner_id INTEGER NOT NULL REFERENCES users(id)
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_tasks_owner_completed ON tasks(owner_id, completed)",
    "CREATE INDEX IF NOT EXISTS idx_tasks_owner_created ON tasks(owner_id, created_date)",
)


class _SQLiteStore:
    """
    Shared connection handling: one connection per operation, committed on
    success and rolled back on failure. Driver errors surface as StoreError.
    """

    def __init__(self, db_path: str) -> None:
        os.makedirs(os.path.dirname(db_path) or ".", exist_ok=True)
        self._db_path = db_path
        self._init_db()

    @contextmanager
    def _conn(self) -> Generator[sqlite3.Connection, None, None]:
        try:
            conn = sqlite3.connect(self._db_path)
        except sqlite3.Error as e:
            logger.exception("Could not open database %s", self._db_path)
            raise StoreError("Storage unavailable") from e
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA foreign_keys = ON")
            yield conn
            conn.commit()
        except sqlite3.Error as e:
            conn.rollback()
            logger.exception("Database operation failed")
            raise StoreError("Storage operation failed") from e
        except BaseException:
            conn.rollback()
            raise
        finally:
            conn.close()

    def _init_db(self) -> None:
        with self._conn() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)


class SQLiteUserRepository(_SQLiteStore, UserRepository):
    """
    SQLite user store. The UNIQUE index on username is the authoritative
    guard against duplicate registrations.
    """

    @staticmethod
    def _row_to_entity(row: sqlite3.Row) -> UserEntity:
        return {
            "id": int(row["id"]),
            "username": str(row["username"]),
            "password_hash": str(row["password_hash"]),
        }

    def find_by_id(self, user_id: int) -> Optional[UserEntity]:
        if not _storable(user_id):
            return None
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            return self._row_to_entity(row) if row else None

    def find_by_username(self, username: str) -> Optional[UserEntity]:
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM users WHERE username = ?", (username,)).fetchone()
            return self._row_to_entity(row) if row else None

    def exists_by_username(self, username: str) -> bool:
        with self._conn() as conn:
            row = conn.execute("SELECT 1 FROM users WHERE username = ? LIMIT 1", (username,)).fetchone()
            return row is not None

    def save(self, user: UserEntity) -> UserEntity:
        with self._conn() as conn:
            try:
                if user["id"] is None:
                    cur = conn.execute(
                        "INSERT INTO users (username, password_hash) VALUES (?, ?)",
                        (user["username"], user["password_hash"]),
                    )
                    user_id = cur.lastrowid
                else:
                    conn.execute(
                        "UPDATE users SET username = ?, password_hash = ? WHERE id = ?",
                        (user["username"], user["password_hash"], user["id"]),
                    )
                    user_id = user["id"]
            except sqlite3.IntegrityError as e:
                raise ConflictError(f"Username already exists: {user['username']}") from e
            row = conn.execute("SELECT * FROM users WHERE id = ?", (user_id,)).fetchone()
            if row is None:
                raise StoreError(f"User {user_id} vanished during save")
            return self._row_to_entity(row)


class SQLiteTaskRepository(_SQLiteStore, TaskRepository):
    """
    SQLite task store. Dates are stored as ISO8601 text.
    """

    @staticmethod
    def _row_to_entity(row: sqlite3.Row) -> TaskEntity:
        def parse_date(s: Optional[str]) -> Optional[date]:
            if s is None:
                return None
            return date.fromisoformat(s)

        return {
            "id": int(row["id"]),
            "title": str(row["title"]),
            "description": row["description"],
            "category": str(row["category"]),
            "priority": Priority(row["priority"]),
            "completed": bool(row["completed"]),
            "created_date": parse_date(row["created_date"]),  # type: ignore[typeddict-item]
            "due_date": parse_date(row["due_date"]),
            "owner_id": int(row["owner_id"]),
        }

    def _query(self, where: str, params: Sequence[Any], order: str = "id ASC") -> List[TaskEntity]:
        if not _storable(*params):
            return []
        with self._conn() as conn:
            rows = conn.execute(f"SELECT * FROM tasks WHERE {where} ORDER BY {order}", params).fetchall()
            return [self._row_to_entity(r) for r in rows]

    def find_by_id(self, task_id: int) -> Optional[TaskEntity]:
        if not _storable(task_id):
            return None
        with self._conn() as conn:
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            return self._row_to_entity(row) if row else None

    def save(self, task: TaskEntity) -> TaskEntity:
        values = (
            task["title"],
            task["description"],
            task["category"],
            Priority(task["priority"]).value,
            1 if task["completed"] else 0,
            task["created_date"].isoformat(),
            task["due_date"].isoformat() if task["due_date"] else None,
            task["owner_id"],
        )
        if not _storable(task["id"], task["owner_id"]):
            raise StoreError(f"Task id {task['id']} or owner id {task['owner_id']} is out of range")
        with self._conn() as conn:
            if task["id"] is None:
                cur = conn.execute(
                    """
                    INSERT INTO tasks (title, description, category, priority, completed,
                        created_date, due_date, owner_id)
                    VALUES (?, ?, ?, ?, ?, ?, ?, ?)
                    """,
                    values,
                )
                task_id = cur.lastrowid
            else:
                conn.execute(
                    """
                    UPDATE tasks
                    SET title = ?, description = ?, category = ?, priority = ?, completed = ?,
                        created_date = ?, due_date = ?, owner_id = ?
                    WHERE id = ?
                    """,
                    (*values, task["id"]),
                )
                task_id = task["id"]
            row = conn.execute("SELECT * FROM tasks WHERE id = ?", (task_id,)).fetchone()
            if row is None:
                raise StoreError(f"Task {task_id} vanished during save")
            return self._row_to_entity(row)

    def delete(self, task: TaskEntity) -> None:
        if task["id"] is None or not _storable(task["id"]):
            return
        with self._conn() as conn:
            conn.execute("DELETE FROM tasks WHERE id = ?", (task["id"],))

    def find_by_owner(self, owner_id: int) -> List[TaskEntity]:
        return self._query("owner_id = ?", (owner_id,))

    def find_by_owner_order_by_created_desc(self, owner_id: int) -> List[TaskEntity]:
        return self._query("owner_id = ?", (owner_id,), order="created_date DESC, id ASC")

    def find_by_owner_and_completed(self, owner_id: int, completed: bool) -> List[TaskEntity]:
        return self._query("owner_id = ? AND completed = ?", (owner_id, 1 if completed else 0))

    def count_by_owner_and_completed(self, owner_id: int, completed: bool) -> int:
        if not _storable(owner_id):
            return 0
        with self._conn() as conn:
            row = conn.execute(
                "SELECT COUNT(*) AS cnt FROM tasks WHERE owner_id = ? AND completed = ?",
                (owner_id, 1 if completed else 0),
            ).fetchone()
            return int(row["cnt"]) if row else 0

    def find_by_owner_and_priority(self, owner_id: int, priority: Priority) -> List[TaskEntity]:
        return self._query("owner_id = ? AND priority = ?", (owner_id, Priority(priority).value))

    def find_by_owner_and_category(self, owner_id: int, category: str) -> List[TaskEntity]:
        # SQLite '=' on TEXT is case-sensitive under the default BINARY collation
        return self._query("owner_id = ? AND category = ?", (owner_id, category))
