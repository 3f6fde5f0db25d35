from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional, TypedDict


# PUBLIC_INTERFACE
class Priority(str, Enum):
    """Task priority levels. LOW is the default for new tasks."""

    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


# PUBLIC_INTERFACE
class UserEntity(TypedDict):
    """
    A registered user as held by the storage backends.

    Fields:
    - id: Unique integer identifier (None until first saved)
    - username: Unique, non-empty login name
    - password_hash: One-way hash of the password; plaintext is never stored
    """

    id: Optional[int]
    username: str
    password_hash: str


# PUBLIC_INTERFACE
class TaskEntity(TypedDict):
    """
    A to-do item owned by exactly one user.

    Fields:
    - id: Unique integer identifier (None until first saved)
    - title: Short title (non-empty, trimmed on input via schemas)
    - description: Optional free text
    - category: Required free-text label
    - priority: LOW, MEDIUM or HIGH
    - completed: Completion flag, changed only by toggling
    - created_date: Day the task was created; never changes afterwards
    - due_date: Optional due day
    - owner_id: Id of the owning user; never reassigned
    """

    id: Optional[int]
    title: str
    description: Optional[str]
    category: str
    priority: Priority
    completed: bool
    created_date: date
    due_date: Optional[date]
    owner_id: int


# PUBLIC_INTERFACE
@dataclass(frozen=True)
class Principal:
    """
    The resolved identity of the acting user.

    Carries just what credential checking and ownership checks need.
    """

    id: int
    username: str
    password_hash: str

    @classmethod
    def from_user(cls, user: UserEntity) -> "Principal":
        if user["id"] is None:
            raise ValueError("cannot build a principal from an unsaved user")
        return cls(id=user["id"], username=user["username"], password_hash=user["password_hash"])
