from __future__ import annotations

from datetime import date, datetime
from typing import List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import Priority

DueDateInput = Union[date, datetime, str]


def _parse_due_date(value: Optional[DueDateInput]) -> Optional[date]:
    """
    Normalize due_date input into a date.
    - None or a blank string means "no due date".
    - A datetime is truncated to its date.
    - A string must be an ISO8601 date or datetime.
    """
    if value is None:
        return None

    if isinstance(value, datetime):
        return value.date()

    if isinstance(value, date):
        return value

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            return date.fromisoformat(s)
        except ValueError:
            try:
                return datetime.fromisoformat(s).date()
            except ValueError as e:
                raise ValueError(
                    "Invalid due_date format. Use an ISO8601 date (e.g., '2025-01-31')."
                ) from e

    raise ValueError("Invalid type for due_date; expected date, datetime, or ISO8601 string.")


def _required_text(v: str, field: str, max_length: int) -> str:
    s = v.strip()
    if not (1 <= len(s) <= max_length):
        raise ValueError(f"{field} length must be between 1 and {max_length} characters")
    return s


# PUBLIC_INTERFACE
class RegisterRequest(BaseModel):
    """
    Registration form. Password policy is applied by the account layer so that
    the length rule produces the same error shape whatever the entry point.
    """

    model_config = ConfigDict(
        json_schema_extra={"example": {"username": "alice", "password": "pass1234"}}
    )

    username: str = Field(..., description="Unique login name", max_length=50)
    password: str = Field(..., description="Plaintext password (at least 4 characters)")


# PUBLIC_INTERFACE
class LoginRequest(BaseModel):
    """Credentials presented at login."""

    username: str = Field(..., description="Login name")
    password: str = Field(..., description="Plaintext password")


# PUBLIC_INTERFACE
class UserOut(BaseModel):
    """Public view of a user. Never includes the password hash."""

    id: int = Field(..., description="Unique identifier of the user")
    username: str = Field(..., description="Login name")


# PUBLIC_INTERFACE
class TaskDraft(BaseModel):
    """
    Client-editable fields of a task, used both to create and to replace one.

    Unknown keys (id, owner_id, created_date, completed, ...) are ignored:
    those fields are controlled by the server.
    """

    model_config = ConfigDict(
        extra="ignore",
        json_schema_extra={
            "example": {
                "title": "Buy milk",
                "description": "2 litres, semi-skimmed",
                "category": "errand",
                "priority": "LOW",
                "due_date": "2025-02-01",
            }
        },
    )

    title: str = Field(..., description="Short title for the task", min_length=1)
    description: Optional[str] = Field(default=None, description="Optional detailed description")
    category: str = Field(..., description="Free-text category label", min_length=1)
    priority: Priority = Field(default=Priority.LOW, description="LOW, MEDIUM or HIGH")
    due_date: Optional[date] = Field(default=None, description="Optional due date (ISO8601 date)")

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..200 length.
        """
        return _required_text(v, "title", 200)

    @field_validator("category")
    @classmethod
    def validate_category(cls, v: str) -> str:
        """
        Strip whitespace and enforce 1..100 length.
        """
        return _required_text(v, "category", 100)

    @field_validator("due_date", mode="before")
    @classmethod
    def parse_due_date(cls, v: Optional[DueDateInput]) -> Optional[date]:
        return _parse_due_date(v)


# PUBLIC_INTERFACE
class TaskOut(BaseModel):
    """
    Schema returned by the API for a task.
    """

    model_config = ConfigDict(
        json_schema_extra={
            "example": {
                "id": 7,
                "title": "Buy milk",
                "description": None,
                "category": "errand",
                "priority": "LOW",
                "completed": False,
                "created_date": "2025-01-25",
                "due_date": None,
                "owner_id": 1,
            }
        }
    )

    id: int = Field(..., description="Unique identifier of the task")
    title: str
    description: Optional[str] = None
    category: str
    priority: Priority
    completed: bool
    created_date: date = Field(..., description="Day the task was created")
    due_date: Optional[date] = None
    owner_id: int = Field(..., description="Id of the owning user")


# PUBLIC_INTERFACE
class TaskListOut(BaseModel):
    """Envelope for task listings."""

    items: List[TaskOut] = Field(..., description="Tasks matching the query")
    total: int = Field(..., description="Number of items returned")


# PUBLIC_INTERFACE
class TaskStats(BaseModel):
    """Completion counters for one user."""

    total: int
    completed: int
    pending: int
    completion_rate: float = Field(..., description="Completed share in percent, rounded to 2 decimals")


# PUBLIC_INTERFACE
class ProfileOut(BaseModel):
    user: UserOut
    stats: TaskStats


# PUBLIC_INTERFACE
class DashboardOut(ProfileOut):
    high_priority: int
    medium_priority: int
    low_priority: int
