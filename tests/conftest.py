"""Pytest configuration and shared fixtures for GoalTracker tests.

Repositories and services run against a throwaway SQLite file per test; API
tests build a full app on an in-memory database through ``TestConfig``.
"""

from __future__ import annotations

import tempfile
from pathlib import Path

import pytest
from sqlmodel import SQLModel, create_engine

from goaltracker import create_app
from goaltracker.config import TestConfig
from goaltracker.infra.database import create_session_factory
from goaltracker.infra.repositories import SQLModelGoalRepository, SQLModelTaskRepository
from goaltracker.models import Goal, Task, User
from goaltracker.services.goals import GoalService
from goaltracker.services.hierarchy import HierarchyPropagator
from goaltracker.services.tasks import TaskService
from goaltracker.services.users import UserService

# =============================================================================
# Database Fixtures
# =============================================================================


@pytest.fixture(scope="function")
def db_engine():
    """Create an isolated SQLite database file for each test."""

    with tempfile.NamedTemporaryFile(suffix=".db", delete=False) as f:
        db_path = Path(f.name)

    engine = create_engine(f"sqlite:///{db_path}", echo=False)
    SQLModel.metadata.create_all(engine)

    yield engine

    engine.dispose()
    db_path.unlink(missing_ok=True)


@pytest.fixture(scope="function")
def session_factory(db_engine):
    """Commit-on-success session factory, as wired by the app."""

    return create_session_factory(db_engine)


# =============================================================================
# Services
# =============================================================================


@pytest.fixture
def user_service(session_factory) -> UserService:
    return UserService(session_factory)


@pytest.fixture
def goal_repo(session_factory) -> SQLModelGoalRepository:
    return SQLModelGoalRepository(session_factory)


@pytest.fixture
def task_repo(session_factory) -> SQLModelTaskRepository:
    return SQLModelTaskRepository(session_factory)


@pytest.fixture
def propagator(goal_repo) -> HierarchyPropagator:
    return HierarchyPropagator(goal_repo)


@pytest.fixture
def goal_service(goal_repo, task_repo, propagator) -> GoalService:
    return GoalService(goal_repo, task_repo, propagator)


@pytest.fixture
def task_service(task_repo, goal_repo) -> TaskService:
    return TaskService(task_repo, goal_repo)


# =============================================================================
# Test Data Factories
# =============================================================================


@pytest.fixture
def user(user_service) -> User:
    """Default owner for goals and tasks."""

    return user_service.ensure_user("auth0|tester", email="tester@example.com", name="Tester")


@pytest.fixture
def other_user(user_service) -> User:
    return user_service.ensure_user("auth0|someone-else")


@pytest.fixture
def goal_factory(goal_service, user):
    """Factory for creating goals through the service (placement rules apply)."""

    def _create_goal(title: str = "Test Goal", owner: User | None = None, **fields) -> Goal:
        owner = owner or user
        return goal_service.create_goal({"title": title, **fields}, user_id=owner.id)

    return _create_goal


@pytest.fixture
def task_factory(task_service, user):
    """Factory for creating tasks, optionally linked to goals."""

    def _create_task(
        title: str = "Test Task",
        goal_ids: tuple[int, ...] = (),
        owner: User | None = None,
        **fields,
    ) -> Task:
        owner = owner or user
        detail = task_service.create_task(
            {"title": title, **fields}, user_id=owner.id, goal_ids=goal_ids
        )
        return detail.task

    return _create_task


@pytest.fixture
def yearly_chain(goal_factory):
    """YEARLY -> MONTHLY -> WEEKLY goals, returned top-down."""

    yearly = goal_factory("Year", scope="YEARLY")
    monthly = goal_factory("Month", scope="MONTHLY", parent_id=yearly.id)
    weekly = goal_factory("Week", scope="WEEKLY", parent_id=monthly.id)
    return yearly, monthly, weekly


# =============================================================================
# Application
# =============================================================================


@pytest.fixture
def app(tmp_path, monkeypatch):
    """App wired to a fresh in-memory database."""

    monkeypatch.setenv("GOALTRACKER_DATA_DIR", str(tmp_path))
    monkeypatch.delenv("GOALTRACKER_TEST_DATABASE_URL", raising=False)
    monkeypatch.delenv("GOALTRACKER_API_PREFIX", raising=False)
    monkeypatch.delenv("GOALTRACKER_AUTH_SUBJECT_HEADER", raising=False)
    application = create_app(config=TestConfig())
    yield application


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_headers():
    return {"X-Auth-Subject": "auth0|api-tester", "X-Auth-Email": "api@example.com"}
