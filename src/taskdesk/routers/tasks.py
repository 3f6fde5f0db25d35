from __future__ import annotations

from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status

from ..auth import get_current_principal
from ..dependencies import get_task_service
from ..models import Principal, Priority, TaskEntity
from ..schemas import TaskDraft, TaskListOut, TaskOut, TaskStats
from ..tasks import TaskService
from ..utils import stats_envelope

router = APIRouter(
    prefix="/api/v1/tasks",
    tags=["tasks"],
)

_NOT_ACCESSIBLE = {"description": "Task not found or not owned by the current user"}


def _envelope(items: List[TaskEntity]) -> TaskListOut:
    return TaskListOut(items=[TaskOut(**t) for t in items], total=len(items))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.post(
    "/",
    response_model=TaskOut,
    status_code=status.HTTP_201_CREATED,
    summary="Create Task",
    description="Create a task owned by the current user. Owner and creation date are set by the server.",
    responses={
        201: {"description": "Task created successfully"},
        422: {"description": "Validation error"},
    },
)
def create_task(
    payload: TaskDraft,
    principal: Principal = Depends(get_current_principal),
    tasks: TaskService = Depends(get_task_service),
) -> TaskOut:
    created = tasks.create(payload, principal)
    return TaskOut(**created)  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.get(
    "/",
    response_model=TaskListOut,
    summary="List Tasks",
    description=(
        "List the current user's tasks.\n\n"
        "Query parameters (at most one):\n"
        "- completed: exact completion status\n"
        "- priority: LOW, MEDIUM or HIGH\n"
        "- category: exact, case-sensitive category label\n\n"
        "Without a filter, tasks are returned newest first."
    ),
    responses={
        200: {"description": "List retrieved successfully"},
        400: {"description": "More than one filter given"},
    },
)
def list_tasks(
    completed: Optional[bool] = Query(None, description="Filter by completion status"),
    priority: Optional[Priority] = Query(None, description="Filter by priority"),
    category: Optional[str] = Query(None, description="Filter by category (exact match)"),
    principal: Principal = Depends(get_current_principal),
    tasks: TaskService = Depends(get_task_service),
) -> TaskListOut:
    given = [f for f in (completed, priority, category) if f is not None]
    if len(given) > 1:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Use at most one of completed, priority, category",
        )

    if completed is not None:
        items = tasks.list_by_owner_and_completed(principal, completed)
    elif priority is not None:
        items = tasks.list_by_owner_and_priority(principal, priority)
    elif category is not None:
        items = tasks.list_by_owner_and_category(principal, category)
    else:
        items = tasks.list_by_owner(principal)
    return _envelope(items)


# PUBLIC_INTERFACE
@router.get("/completed", response_model=TaskListOut, summary="List Completed Tasks")
def list_completed(
    principal: Principal = Depends(get_current_principal),
    tasks: TaskService = Depends(get_task_service),
) -> TaskListOut:
    return _envelope(tasks.list_by_owner_and_completed(principal, True))


# PUBLIC_INTERFACE
@router.get("/pending", response_model=TaskListOut, summary="List Pending Tasks")
def list_pending(
    principal: Principal = Depends(get_current_principal),
    tasks: TaskService = Depends(get_task_service),
) -> TaskListOut:
    return _envelope(tasks.list_by_owner_and_completed(principal, False))


# PUBLIC_INTERFACE
@router.get("/stats", response_model=TaskStats, summary="Task Statistics")
def task_stats(
    principal: Principal = Depends(get_current_principal),
    tasks: TaskService = Depends(get_task_service),
) -> TaskStats:
    return TaskStats(**stats_envelope(tasks.count_completed(principal), tasks.count_pending(principal)))


# PUBLIC_INTERFACE
@router.get(
    "/{task_id}",
    response_model=TaskOut,
    summary="Get Task",
    responses={200: {"description": "Task found"}, 404: _NOT_ACCESSIBLE},
)
def get_task(
    task_id: int,
    principal: Principal = Depends(get_current_principal),
    tasks: TaskService = Depends(get_task_service),
) -> TaskOut:
    return TaskOut(**tasks.get_by_id(task_id, principal))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.put(
    "/{task_id}",
    response_model=TaskOut,
    summary="Update Task",
    description=(
        "Replace title, description, category, priority and due date. "
        "Completion status, owner and creation date are not changed."
    ),
    responses={200: {"description": "Task updated"}, 404: _NOT_ACCESSIBLE},
)
def update_task(
    task_id: int,
    payload: TaskDraft,
    principal: Principal = Depends(get_current_principal),
    tasks: TaskService = Depends(get_task_service),
) -> TaskOut:
    return TaskOut(**tasks.update(task_id, principal, payload))  # type: ignore[arg-type]


# PUBLIC_INTERFACE
@router.delete(
    "/{task_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete Task",
    responses={204: {"description": "Task deleted"}, 404: _NOT_ACCESSIBLE},
)
def delete_task(
    task_id: int,
    principal: Principal = Depends(get_current_principal),
    tasks: TaskService = Depends(get_task_service),
) -> Response:
    tasks.delete(task_id, principal)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


# PUBLIC_INTERFACE
@router.post(
    "/{task_id}/toggle",
    response_model=TaskOut,
    summary="Toggle Completion",
    description="Flip the task between pending and completed.",
    responses={200: {"description": "Task toggled"}, 404: _NOT_ACCESSIBLE},
)
def toggle_task(
    task_id: int,
    principal: Principal = Depends(get_current_principal),
    tasks: TaskService = Depends(get_task_service),
) -> TaskOut:
    return TaskOut(**tasks.toggle_complete(task_id, principal))  # type: ignore[arg-type]
