"""Service module exports."""

from . import dates, goals, hierarchy, progress, results, tasks, users

__all__ = [
    "dates",
    "goals",
    "hierarchy",
    "progress",
    "results",
    "tasks",
    "users",
]
