import os
from datetime import date

import pytest
from fastapi.testclient import TestClient

# Ensure we default to memory backend for tests to avoid filesystem dependencies
os.environ.setdefault("PERSISTENCE_BACKEND", "memory")
os.environ.setdefault("BCRYPT_ROUNDS", "4")

from taskdesk.accounts import AuthenticationService, UserAccountService  # noqa: E402
from taskdesk.main import create_app  # noqa: E402
from taskdesk.models import Principal  # noqa: E402
from taskdesk.repositories import InMemoryTaskRepository, InMemoryUserRepository  # noqa: E402
from taskdesk.security import PasswordHasher  # noqa: E402
from taskdesk.settings import Settings  # noqa: E402
from taskdesk.tasks import TaskService  # noqa: E402


class FakeClock:
    """Callable returning a settable 'today'."""

    def __init__(self, today: date) -> None:
        self.today = today

    def __call__(self) -> date:
        return self.today


@pytest.fixture()
def hasher() -> PasswordHasher:
    # Lowest bcrypt cost keeps the suite fast
    return PasswordHasher(rounds=4)


@pytest.fixture()
def user_repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture()
def task_repo() -> InMemoryTaskRepository:
    return InMemoryTaskRepository()


@pytest.fixture()
def accounts(user_repo, hasher) -> UserAccountService:
    return UserAccountService(user_repo, hasher)


@pytest.fixture()
def auth_service(user_repo, hasher) -> AuthenticationService:
    return AuthenticationService(user_repo, hasher)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock(date(2025, 3, 10))


@pytest.fixture()
def task_service(task_repo, clock) -> TaskService:
    return TaskService(task_repo, clock=clock)


@pytest.fixture()
def alice(accounts) -> Principal:
    return Principal.from_user(accounts.register("alice", "pass1234"))


@pytest.fixture()
def bob(accounts) -> Principal:
    return Principal.from_user(accounts.register("bob", "hunter22"))


@pytest.fixture()
def settings() -> Settings:
    return Settings(
        persistence_backend="memory",
        sqlite_db_path="./data/unused.db",
        cors_allow_origins=["*"],
        session_secret_key="test-secret-key",
        session_max_age=3600,
        bcrypt_rounds=4,
        log_level="DEBUG",
    )


@pytest.fixture()
def app(settings):
    return create_app(settings)


@pytest.fixture()
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture()
def make_client(app):
    """Factory for extra clients with their own cookie jar (one per user)."""

    def _make() -> TestClient:
        return TestClient(app)

    return _make
