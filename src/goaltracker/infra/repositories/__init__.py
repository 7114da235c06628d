"""Concrete repository implementations using SQLModel."""

from .goal import SQLModelGoalRepository
from .task import SQLModelTaskRepository

__all__ = [
    "SQLModelGoalRepository",
    "SQLModelTaskRepository",
]
