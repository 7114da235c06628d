"""Task repository protocol."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Protocol

from ...models.task import Task


class TaskRepository(Protocol):
    """Repository for tasks and their goal links."""

    def get_by_id(self, task_id: int, *, user_id: int) -> Optional[Task]:
        """Retrieve a task by ID."""
        ...

    def list_all(self, *, user_id: int) -> list[Task]:
        """List all tasks, newest first."""
        ...

    def list_scheduled_on(self, day: date, *, user_id: int) -> list[Task]:
        """List tasks scheduled on a calendar day."""
        ...

    def list_unscheduled(self, *, user_id: int, goal_id: int | None = None) -> list[Task]:
        """List open tasks without a scheduled date."""
        ...

    def list_in_range(
        self, start: date, end: date, *, user_id: int, goal_id: int | None = None
    ) -> list[Task]:
        """List tasks scheduled within an inclusive date range."""
        ...

    def create(self, task: Task, *, user_id: int, goal_ids: Iterable[int] = ()) -> Task:
        """Create a task and link it to the given goals."""
        ...

    def bulk_create(self, tasks: list[Task], goal_id: int, *, user_id: int) -> list[Task]:
        """Create several tasks linked to one goal in a single transaction."""
        ...

    def update(self, task: Task, *, user_id: int) -> Task:
        """Persist changes to an existing task."""
        ...

    def delete(self, task_id: int, *, user_id: int) -> list[int]:
        """Delete a task and its links; return the goal IDs it was linked to."""
        ...

    # Goal link operations
    def link(self, task_id: int, goal_id: int) -> bool:
        """Link a task to a goal; return False when the link already existed."""
        ...

    def unlink(self, task_id: int, goal_id: int) -> bool:
        """Remove a link; return False when there was nothing to remove."""
        ...

    def linked_goals(self, task_ids: Iterable[int], *, user_id: int) -> dict[int, list[dict]]:
        """Map task IDs to ``{"id", "title", "scope"}`` dicts of their linked goals."""
        ...
