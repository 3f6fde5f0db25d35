from __future__ import annotations

from abc import ABC, abstractmethod
from threading import RLock
from typing import Dict, List, Optional, Tuple

from .errors import ConflictError, StoreError
from .models import Priority, TaskEntity, UserEntity
from .settings import Settings, get_settings


# PUBLIC_INTERFACE
class UserRepository(ABC):
    """Abstract contract for user storage. Usernames are unique at this layer."""

    @abstractmethod
    def find_by_id(self, user_id: int) -> Optional[UserEntity]:
        """Return a user by id, or None if not found."""

    @abstractmethod
    def find_by_username(self, username: str) -> Optional[UserEntity]:
        """Return a user by exact username, or None if not found."""

    @abstractmethod
    def exists_by_username(self, username: str) -> bool:
        """Return True if a user with this exact username exists."""

    @abstractmethod
    def save(self, user: UserEntity) -> UserEntity:
        """
        Insert the user when its id is None, otherwise update it by id.
        Raises ConflictError if the username is already taken by another user.
        """


# PUBLIC_INTERFACE
class TaskRepository(ABC):
    """Abstract contract for task storage. Every query is scoped by owner."""

    @abstractmethod
    def find_by_id(self, task_id: int) -> Optional[TaskEntity]:
        """Return a task by id regardless of owner, or None if not found."""

    @abstractmethod
    def save(self, task: TaskEntity) -> TaskEntity:
        """Insert the task when its id is None, otherwise update it by id."""

    @abstractmethod
    def delete(self, task: TaskEntity) -> None:
        """Remove the task. Removing an already-absent task is a no-op."""

    @abstractmethod
    def find_by_owner(self, owner_id: int) -> List[TaskEntity]:
        """All tasks of the owner in insertion order."""

    @abstractmethod
    def find_by_owner_order_by_created_desc(self, owner_id: int) -> List[TaskEntity]:
        """All tasks of the owner, newest created_date first, ties in insertion order."""

    @abstractmethod
    def find_by_owner_and_completed(self, owner_id: int, completed: bool) -> List[TaskEntity]:
        """Tasks of the owner with exactly this completed value."""

    @abstractmethod
    def count_by_owner_and_completed(self, owner_id: int, completed: bool) -> int:
        """Number of tasks of the owner with exactly this completed value."""

    @abstractmethod
    def find_by_owner_and_priority(self, owner_id: int, priority: Priority) -> List[TaskEntity]:
        """Tasks of the owner with exactly this priority."""

    @abstractmethod
    def find_by_owner_and_category(self, owner_id: int, category: str) -> List[TaskEntity]:
        """Tasks of the owner whose category equals this label (case-sensitive)."""


class InMemoryUserRepository(UserRepository):
    """
    Thread-safe in-memory user store suitable for testing and default runtime.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[int, UserEntity] = {}
        self._next_id = 1

    def find_by_id(self, user_id: int) -> Optional[UserEntity]:
        with self._lock:
            item = self._items.get(user_id)
            return None if item is None else item.copy()

    def find_by_username(self, username: str) -> Optional[UserEntity]:
        with self._lock:
            for item in self._items.values():
                if item["username"] == username:
                    return item.copy()
            return None

    def exists_by_username(self, username: str) -> bool:
        return self.find_by_username(username) is not None

    def save(self, user: UserEntity) -> UserEntity:
        with self._lock:
            # Uniqueness is checked under the lock, like a UNIQUE index would be
            for other in self._items.values():
                if other["username"] == user["username"] and other["id"] != user["id"]:
                    raise ConflictError(f"Username already exists: {user['username']}")

            stored = user.copy()
            if stored["id"] is None:
                stored["id"] = self._next_id
                self._next_id += 1
            elif stored["id"] not in self._items:
                raise StoreError(f"User {stored['id']} vanished during save")
            self._items[stored["id"]] = stored
            return stored.copy()


class InMemoryTaskRepository(TaskRepository):
    """
    Thread-safe in-memory task store suitable for testing and default runtime.

    Dict insertion order doubles as task insertion order.
    """

    def __init__(self) -> None:
        self._lock = RLock()
        self._items: Dict[int, TaskEntity] = {}
        self._next_id = 1

    def _select(self, owner_id: int, **filters: object) -> List[TaskEntity]:
        with self._lock:
            return [
                t.copy()
                for t in self._items.values()
                if t["owner_id"] == owner_id and all(t[k] == v for k, v in filters.items())  # type: ignore[literal-required]
            ]

    def find_by_id(self, task_id: int) -> Optional[TaskEntity]:
        with self._lock:
            item = self._items.get(task_id)
            return None if item is None else item.copy()

    def save(self, task: TaskEntity) -> TaskEntity:
        with self._lock:
            stored = task.copy()
            if stored["id"] is None:
                stored["id"] = self._next_id
                self._next_id += 1
            elif stored["id"] not in self._items:
                # Updating a deleted task must not bring it back
                raise StoreError(f"Task {stored['id']} vanished during save")
            self._items[stored["id"]] = stored
            return stored.copy()

    def delete(self, task: TaskEntity) -> None:
        if task["id"] is None:
            return
        with self._lock:
            self._items.pop(task["id"], None)

    def find_by_owner(self, owner_id: int) -> List[TaskEntity]:
        return self._select(owner_id)

    def find_by_owner_order_by_created_desc(self, owner_id: int) -> List[TaskEntity]:
        # sorted() is stable, so equal dates keep insertion order
        return sorted(self._select(owner_id), key=lambda t: t["created_date"], reverse=True)

    def find_by_owner_and_completed(self, owner_id: int, completed: bool) -> List[TaskEntity]:
        return self._select(owner_id, completed=completed)

    def count_by_owner_and_completed(self, owner_id: int, completed: bool) -> int:
        return len(self._select(owner_id, completed=completed))

    def find_by_owner_and_priority(self, owner_id: int, priority: Priority) -> List[TaskEntity]:
        return self._select(owner_id, priority=Priority(priority))

    def find_by_owner_and_category(self, owner_id: int, category: str) -> List[TaskEntity]:
        return self._select(owner_id, category=category)


# PUBLIC_INTERFACE
def get_repositories(settings: Optional[Settings] = None) -> Tuple[UserRepository, TaskRepository]:
    """
    Return the configured (user, task) repositories.
    - memory: in-memory stores (default)
    - sqlite: SQLite stores sharing one database file
    """
    settings = settings or get_settings()
    if settings.persistence_backend == "sqlite":
        from .db import SQLiteTaskRepository, SQLiteUserRepository

        return (
            SQLiteUserRepository(settings.sqlite_db_path),
            SQLiteTaskRepository(settings.sqlite_db_path),
        )
    return InMemoryUserRepository(), InMemoryTaskRepository()
