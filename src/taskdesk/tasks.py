from __future__ import annotations

import logging
from datetime import date
from typing import Callable, List, Optional

from .errors import TaskForbiddenError, TaskNotFoundError
from .models import Principal, Priority, TaskEntity
from .repositories import TaskRepository
from .schemas import TaskDraft

logger = logging.getLogger(__name__)


# PUBLIC_INTERFACE
class TaskService:
    """
    Ownership-checked task operations.

    Every method takes the acting user. Operations that address a task by id
    go through get_by_id, which raises TaskNotFoundError when the id is
    unknown and TaskForbiddenError when the task belongs to someone else.
    Both derive from TaskAccessError for callers that report them alike.
    """

    def __init__(self, tasks: TaskRepository, clock: Optional[Callable[[], date]] = None) -> None:
        self._tasks = tasks
        self._today = clock or date.today

    def create(self, draft: TaskDraft, owner: Principal) -> TaskEntity:
        """
        Store a new pending task. Owner and created_date are always set here,
        never taken from the client.
        """
        task: TaskEntity = {
            "id": None,
            "title": draft.title,
            "description": draft.description,
            "category": draft.category,
            "priority": draft.priority,
            "completed": False,
            "created_date": self._today(),
            "due_date": draft.due_date,
            "owner_id": owner.id,
        }
        saved = self._tasks.save(task)
        logger.debug("User id=%s created task id=%s", owner.id, saved["id"])
        return saved

    def get_by_id(self, task_id: int, owner: Principal) -> TaskEntity:
        task = self._tasks.find_by_id(task_id)
        if task is None:
            raise TaskNotFoundError(task_id)
        if task["owner_id"] != owner.id:
            logger.warning("User id=%s denied access to task id=%s", owner.id, task_id)
            raise TaskForbiddenError(task_id)
        return task

    def update(self, task_id: int, owner: Principal, changes: TaskDraft) -> TaskEntity:
        """
        Overwrite title, description, category, priority and due_date.
        id, owner, created_date and completed are left as stored.
        """
        task = self.get_by_id(task_id, owner)
        task["title"] = changes.title
        task["description"] = changes.description
        task["category"] = changes.category
        task["priority"] = changes.priority
        task["due_date"] = changes.due_date
        return self._tasks.save(task)

    def delete(self, task_id: int, owner: Principal) -> None:
        task = self.get_by_id(task_id, owner)
        self._tasks.delete(task)
        logger.debug("User id=%s deleted task id=%s", owner.id, task_id)

    def toggle_complete(self, task_id: int, owner: Principal) -> TaskEntity:
        """Flip the completed flag. The only way completion ever changes."""
        task = self.get_by_id(task_id, owner)
        task["completed"] = not task["completed"]
        return self._tasks.save(task)

    def list_by_owner(self, owner: Principal) -> List[TaskEntity]:
        """Newest first by created_date; same-day tasks in creation order."""
        return self._tasks.find_by_owner_order_by_created_desc(owner.id)

    def list_by_owner_and_completed(self, owner: Principal, completed: bool) -> List[TaskEntity]:
        return self._tasks.find_by_owner_and_completed(owner.id, completed)

    def count_completed(self, owner: Principal) -> int:
        return self._tasks.count_by_owner_and_completed(owner.id, True)

    def count_pending(self, owner: Principal) -> int:
        return self._tasks.count_by_owner_and_completed(owner.id, False)

    def list_by_owner_and_priority(self, owner: Principal, priority: Priority) -> List[TaskEntity]:
        return self._tasks.find_by_owner_and_priority(owner.id, priority)

    def list_by_owner_and_category(self, owner: Principal, category: str) -> List[TaskEntity]:
        return self._tasks.find_by_owner_and_category(owner.id, category)
