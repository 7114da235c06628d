"""Database and service wiring for the Flask application."""

from __future__ import annotations

from flask import Flask, current_app

from .config import BaseConfig
from .infra.database import SessionFactory, bootstrap_database
from .infra.repositories import SQLModelGoalRepository, SQLModelTaskRepository
from .logging_config import get_logger
from .services.goals import GoalService
from .services.hierarchy import HierarchyPropagator
from .services.tasks import TaskService
from .services.users import UserService

logger = get_logger(__name__)

EXTENSION_KEY = "goaltracker"


def init_db(app: Flask) -> None:
    """Create the engine, ensure the schema exists and attach the services."""

    config: BaseConfig = app.config["GOALTRACKER_CONFIG"]
    engine, session_factory = bootstrap_database(config)

    goals_repo = SQLModelGoalRepository(session_factory)
    tasks_repo = SQLModelTaskRepository(session_factory)
    propagator = HierarchyPropagator(goals_repo)

    app.extensions[EXTENSION_KEY] = {
        "engine": engine,
        "session_factory": session_factory,
        "users": UserService(session_factory),
        "goals": GoalService(goals_repo, tasks_repo, propagator),
        "tasks": TaskService(tasks_repo, goals_repo),
    }
    logger.info("Database ready", extra={"database_url": engine.url.render_as_string(hide_password=True)})


def get_service(name: str):
    """Return a service registered on the current application."""

    state = current_app.extensions.get(EXTENSION_KEY)
    if state is None:  # pragma: no cover - only hit when init_db was skipped
        raise RuntimeError("GoalTracker services not initialized")
    return state[name]


def get_session_factory() -> SessionFactory:
    return get_service("session_factory")
