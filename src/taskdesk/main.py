from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.middleware.sessions import SessionMiddleware

from .accounts import AuthenticationService, UserAccountService
from .auth import requires_identity, session_username
from .errors import (
    ConflictError,
    InputValidationError,
    InvalidCredentialsError,
    NotFoundError,
    StoreError,
    TaskAccessError,
    TaskDeskError,
)
from .logging_setup import setup_logging
from .repositories import TaskRepository, UserRepository, get_repositories
from .routers import auth as auth_router
from .routers import tasks as tasks_router
from .routers import users as users_router
from .security import PasswordHasher
from .settings import Settings, get_settings
from .tasks import TaskService

logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "health", "description": "Service health and status endpoints."},
    {"name": "auth", "description": "Registration and session login/logout."},
    {"name": "users", "description": "Profile and dashboard statistics for the logged-in user."},
    {
        "name": "tasks",
        "description": "Ownership-checked CRUD for tasks with status, priority and category filters.",
    },
]


def _error(status_code: int, error: str, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"error": error, "message": message})


def _install_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
        """
        Return a consistent JSON structure for request validation errors.

        Response format:
            {
                "error": "ValidationError",
                "detail": [... pydantic/fastapi error details ...],
                "message": "Request validation failed"
            }
        """
        return JSONResponse(
            status_code=422,
            content={
                "error": "ValidationError",
                "message": "Request validation failed",
                "detail": exc.errors(),
            },
        )

    @app.exception_handler(TaskDeskError)
    async def domain_exception_handler(request: Request, exc: TaskDeskError) -> JSONResponse:
        # Missing and foreign tasks look the same from outside
        if isinstance(exc, TaskAccessError):
            return _error(404, "NotFound", "Task not found")
        if isinstance(exc, InvalidCredentialsError):
            return _error(401, "InvalidCredentials", str(exc))
        if isinstance(exc, NotFoundError):
            return _error(404, "NotFound", str(exc))
        if isinstance(exc, ConflictError):
            return _error(409, "Conflict", str(exc))
        if isinstance(exc, InputValidationError):
            return _error(422, "ValidationError", str(exc))
        if isinstance(exc, StoreError):
            return _error(503, "StoreFailure", "Storage is unavailable, please retry later")
        logger.error("Unmapped domain error: %r", exc)
        return _error(500, "InternalError", "Unexpected error")


# PUBLIC_INTERFACE
def create_app(
    settings: Optional[Settings] = None,
    *,
    users: Optional[UserRepository] = None,
    tasks: Optional[TaskRepository] = None,
) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Settings to use; loaded from the environment when omitted.
        users: User repository override (both overrides must be given together).
        tasks: Task repository override.

    Raises:
        ValueError: If only one of ``users`` and ``tasks`` is given.
    """
    settings = settings or get_settings()
    setup_logging(settings.log_level)

    if (users is None) != (tasks is None):
        raise ValueError("users and tasks repositories must be given together")
    if users is None or tasks is None:
        users, tasks = get_repositories(settings)

    app = FastAPI(
        title="TaskDesk",
        description="Backend API service for multi-user task tracking with session authentication.",
        version="0.1.0",
        openapi_tags=openapi_tags,
    )

    hasher = PasswordHasher(rounds=settings.bcrypt_rounds)
    app.state.settings = settings
    app.state.account_service = UserAccountService(users, hasher)
    app.state.auth_service = AuthenticationService(users, hasher)
    app.state.task_service = TaskService(tasks)

    # Registered first so it runs inside SessionMiddleware and can read the session
    @app.middleware("http")
    async def enforce_access_rules(request: Request, call_next):
        if request.method != "OPTIONS" and requires_identity(request.url.path):
            if session_username(request) is None:
                return JSONResponse(status_code=401, content={"detail": "Not authenticated"})
        return await call_next(request)

    app.add_middleware(
        SessionMiddleware,
        secret_key=settings.session_secret_key,
        session_cookie="taskdesk_session",
        max_age=settings.session_max_age,
        same_site="lax",
    )

    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    _install_exception_handlers(app)

    # PUBLIC_INTERFACE
    @app.get("/", summary="Health Check", tags=["health"])
    def health_check():
        """
        Health check endpoint.

        Returns:
            A JSON object indicating service health.
        """
        return {"message": "Healthy", "backend": settings.persistence_backend}

    app.include_router(auth_router.router)
    app.include_router(users_router.router)
    app.include_router(tasks_router.router)

    logger.info("TaskDesk app created (backend=%s)", settings.persistence_backend)
    return app


app = create_app()
