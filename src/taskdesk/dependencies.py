"""
FastAPI dependencies exposing the services wired by create_app().
"""
from __future__ import annotations

from fastapi import Request

from .accounts import AuthenticationService, UserAccountService
from .tasks import TaskService


def get_account_service(request: Request) -> UserAccountService:
    return request.app.state.account_service


def get_auth_service(request: Request) -> AuthenticationService:
    return request.app.state.auth_service


def get_task_service(request: Request) -> TaskService:
    return request.app.state.task_service
