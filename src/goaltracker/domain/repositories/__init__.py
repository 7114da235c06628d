"""Repository protocol definitions for domain layer."""

from .goal import GoalRepository
from .task import TaskRepository

__all__ = [
    "GoalRepository",
    "TaskRepository",
]
