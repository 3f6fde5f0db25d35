from __future__ import annotations

from fastapi import APIRouter, Depends

from ..auth import get_current_principal
from ..dependencies import get_task_service
from ..models import Principal, Priority
from ..schemas import DashboardOut, ProfileOut, TaskStats, UserOut
from ..tasks import TaskService
from ..utils import stats_envelope

router = APIRouter(
    prefix="/api/v1/users",
    tags=["users"],
)


def _stats(tasks: TaskService, principal: Principal) -> TaskStats:
    return TaskStats(**stats_envelope(tasks.count_completed(principal), tasks.count_pending(principal)))


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=ProfileOut,
    summary="Profile",
    description="The logged-in user with task completion statistics.",
)
def profile(
    principal: Principal = Depends(get_current_principal),
    tasks: TaskService = Depends(get_task_service),
) -> ProfileOut:
    return ProfileOut(
        user=UserOut(id=principal.id, username=principal.username),
        stats=_stats(tasks, principal),
    )


# PUBLIC_INTERFACE
@router.get(
    "/me/dashboard",
    response_model=DashboardOut,
    summary="Dashboard",
    description="Profile statistics plus a per-priority breakdown of the user's tasks.",
)
def dashboard(
    principal: Principal = Depends(get_current_principal),
    tasks: TaskService = Depends(get_task_service),
) -> DashboardOut:
    return DashboardOut(
        user=UserOut(id=principal.id, username=principal.username),
        stats=_stats(tasks, principal),
        high_priority=len(tasks.list_by_owner_and_priority(principal, Priority.HIGH)),
        medium_priority=len(tasks.list_by_owner_and_priority(principal, Priority.MEDIUM)),
        low_priority=len(tasks.list_by_owner_and_priority(principal, Priority.LOW)),
    )
