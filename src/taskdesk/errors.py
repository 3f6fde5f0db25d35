"""
Typed failures raised by the taskdesk core.

The presentation layer maps each kind to an HTTP response; nothing in the core
retries or swallows them.
"""
from __future__ import annotations


class TaskDeskError(Exception):
    """Base class for every failure the core reports to its caller."""


class NotFoundError(TaskDeskError):
    """The addressed entity does not exist."""


class ForbiddenError(TaskDeskError):
    """The entity exists but does not belong to the acting user."""


class ConflictError(TaskDeskError):
    """A uniqueness rule was violated (e.g. a taken username)."""


class InputValidationError(TaskDeskError):
    """Input was rejected before reaching the store."""


class StoreError(TaskDeskError):
    """The persistence layer failed in a way not otherwise classified."""


class InvalidCredentialsError(TaskDeskError):
    """
    Authentication failed.

    Raised both for unknown usernames and for wrong passwords so callers
    cannot tell the two apart.
    """

    def __init__(self, message: str = "Invalid username or password") -> None:
        super().__init__(message)


class TaskAccessError(TaskDeskError):
    """A task addressed by id is not accessible to the acting user."""

    def __init__(self, task_id: int, message: str) -> None:
        super().__init__(message)
        self.task_id = task_id


class TaskNotFoundError(TaskAccessError, NotFoundError):
    def __init__(self, task_id: int) -> None:
        super().__init__(task_id, f"Task {task_id} not found")


class TaskForbiddenError(TaskAccessError, ForbiddenError):
    def __init__(self, task_id: int) -> None:
        super().__init__(task_id, f"Task {task_id} belongs to another user")
