from datetime import date

import pytest

from taskdesk.db import SQLiteTaskRepository, SQLiteUserRepository
from taskdesk.errors import ConflictError, StoreError, TaskNotFoundError
from taskdesk.models import Priority, Principal
from taskdesk.repositories import InMemoryTaskRepository, InMemoryUserRepository, get_repositories
from taskdesk.tasks import TaskService


@pytest.fixture()
def db_path(tmp_path):
    return str(tmp_path / "nested" / "taskdesk.db")


@pytest.fixture()
def users(db_path):
    return SQLiteUserRepository(db_path)


@pytest.fixture()
def tasks(db_path, users):
    return SQLiteTaskRepository(db_path)


@pytest.fixture()
def owner_id(users):
    return users.save({"id": None, "username": "alice", "password_hash": "$2b$04$hash"})["id"]


def make_task(owner_id, **overrides):
    task = {
        "id": None,
        "title": "Buy milk",
        "description": None,
        "category": "errand",
        "priority": Priority.LOW,
        "completed": False,
        "created_date": date(2025, 3, 10),
        "due_date": None,
        "owner_id": owner_id,
    }
    task.update(overrides)
    return task


class TestSQLiteUsers:
    def test_save_and_find(self, users):
        saved = users.save({"id": None, "username": "alice", "password_hash": "h"})
        assert saved["id"] is not None
        assert users.find_by_id(saved["id"]) == saved
        assert users.find_by_username("alice") == saved
        assert users.find_by_username("ALICE") is None
        assert users.exists_by_username("alice") is True
        assert users.exists_by_username("bob") is False

    def test_unique_username_enforced_by_store(self, users):
        users.save({"id": None, "username": "alice", "password_hash": "h1"})
        with pytest.raises(ConflictError):
            users.save({"id": None, "username": "alice", "password_hash": "h2"})

    def test_update_by_id(self, users):
        saved = users.save({"id": None, "username": "alice", "password_hash": "h1"})
        saved["password_hash"] = "h2"
        users.save(saved)
        assert users.find_by_username("alice")["password_hash"] == "h2"

    def test_data_survives_new_repository_instance(self, db_path, users):
        users.save({"id": None, "username": "alice", "password_hash": "h"})
        assert SQLiteUserRepository(db_path).exists_by_username("alice")


class TestSQLiteTasks:
    def test_round_trip_preserves_types(self, tasks, owner_id):
        saved = tasks.save(make_task(owner_id, priority=Priority.HIGH, due_date=date(2025, 4, 1), description="x"))
        loaded = tasks.find_by_id(saved["id"])
        assert loaded == saved
        assert loaded["priority"] is Priority.HIGH
        assert loaded["created_date"] == date(2025, 3, 10)
        assert loaded["due_date"] == date(2025, 4, 1)
        assert loaded["completed"] is False

    def test_update_and_delete(self, tasks, owner_id):
        saved = tasks.save(make_task(owner_id))
        saved["completed"] = True
        tasks.save(saved)
        assert tasks.find_by_id(saved["id"])["completed"] is True
        tasks.delete(saved)
        assert tasks.find_by_id(saved["id"]) is None
        # Deleting again is harmless
        tasks.delete(saved)

    def test_order_by_created_desc_with_stable_ties(self, tasks, owner_id):
        tasks.save(make_task(owner_id, title="old", created_date=date(2025, 3, 1)))
        tasks.save(make_task(owner_id, title="new-a", created_date=date(2025, 3, 5)))
        tasks.save(make_task(owner_id, title="new-b", created_date=date(2025, 3, 5)))
        titles = [t["title"] for t in tasks.find_by_owner_order_by_created_desc(owner_id)]
        assert titles == ["new-a", "new-b", "old"]

    def test_filters_and_counts_are_owner_scoped(self, users, tasks, owner_id):
        other = users.save({"id": None, "username": "bob", "password_hash": "h"})["id"]
        tasks.save(make_task(owner_id, category="Work", completed=True))
        tasks.save(make_task(owner_id, category="work", priority=Priority.MEDIUM))
        tasks.save(make_task(other, category="work", completed=True))

        assert len(tasks.find_by_owner(owner_id)) == 2
        assert tasks.count_by_owner_and_completed(owner_id, True) == 1
        assert tasks.count_by_owner_and_completed(owner_id, False) == 1
        assert len(tasks.find_by_owner_and_completed(owner_id, True)) == 1
        assert [t["category"] for t in tasks.find_by_owner_and_category(owner_id, "work")] == ["work"]
        assert len(tasks.find_by_owner_and_priority(owner_id, Priority.MEDIUM)) == 1
        assert tasks.find_by_owner_and_priority(other, Priority.MEDIUM) == []

    def test_unknown_owner_is_a_store_failure(self, tasks):
        with pytest.raises(StoreError):
            tasks.save(make_task(owner_id=9999))

    def test_ids_beyond_integer_range_are_missing(self, tasks, owner_id):
        huge = 2**64
        tasks.save(make_task(owner_id))
        assert tasks.find_by_id(huge) is None
        assert tasks.find_by_id(-huge) is None
        assert tasks.find_by_owner(huge) == []
        assert tasks.find_by_owner_order_by_created_desc(huge) == []
        assert tasks.find_by_owner_and_completed(huge, False) == []
        assert tasks.count_by_owner_and_completed(huge, False) == 0
        # Removing an id that can never exist is a no-op
        tasks.delete(make_task(owner_id, id=huge))
        assert len(tasks.find_by_owner(owner_id)) == 1

    def test_service_reports_huge_id_as_not_found(self, tasks, owner_id):
        alice = Principal(id=owner_id, username="alice", password_hash="$2b$04$hash")
        with pytest.raises(TaskNotFoundError):
            TaskService(tasks).get_by_id(2**64, alice)


def test_unopenable_database_is_a_store_failure(tmp_path):
    with pytest.raises(StoreError):
        SQLiteUserRepository(str(tmp_path))


def test_get_repositories_selects_backend(settings, tmp_path):
    from dataclasses import replace

    users, tasks = get_repositories(settings)
    assert isinstance(users, InMemoryUserRepository)
    assert isinstance(tasks, InMemoryTaskRepository)

    sqlite_settings = replace(settings, persistence_backend="sqlite", sqlite_db_path=str(tmp_path / "t.db"))
    users, tasks = get_repositories(sqlite_settings)
    assert isinstance(users, SQLiteUserRepository)
    assert isinstance(tasks, SQLiteTaskRepository)


@pytest.fixture(params=["memory", "sqlite"])
def backend(request, tmp_path):
    if request.param == "memory":
        return InMemoryUserRepository(), InMemoryTaskRepository()
    path = str(tmp_path / "backend.db")
    return SQLiteUserRepository(path), SQLiteTaskRepository(path)


class TestSaveAfterDelete:
    def test_deleted_task_is_not_brought_back(self, backend):
        users, tasks = backend
        owner = users.save({"id": None, "username": "alice", "password_hash": "h"})["id"]
        saved = tasks.save(make_task(owner))
        loaded = tasks.find_by_id(saved["id"])
        tasks.delete(saved)

        loaded["completed"] = True
        with pytest.raises(StoreError):
            tasks.save(loaded)
        assert tasks.find_by_id(saved["id"]) is None
        assert tasks.find_by_owner(owner) == []

    def test_unknown_user_id_is_not_inserted(self, backend):
        users, _ = backend
        with pytest.raises(StoreError):
            users.save({"id": 42, "username": "ghost", "password_hash": "h"})
        assert users.find_by_id(42) is None
        assert users.exists_by_username("ghost") is False

    def test_toggle_racing_a_delete_fails(self, backend, monkeypatch):
        users, tasks = backend
        owner = users.save({"id": None, "username": "alice", "password_hash": "h"})
        alice = Principal.from_user(owner)
        service = TaskService(tasks)
        task_id = tasks.save(make_task(owner["id"]))["id"]

        original_find = tasks.find_by_id

        def find_then_delete(task_id):
            # Another request deletes the task right after this one loaded it
            found = original_find(task_id)
            if found is not None:
                tasks.delete(found)
            return found

        monkeypatch.setattr(tasks, "find_by_id", find_then_delete)
        with pytest.raises(StoreError):
            service.toggle_complete(task_id, alice)
        monkeypatch.undo()
        assert tasks.find_by_id(task_id) is None
