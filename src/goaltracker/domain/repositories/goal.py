"""Goal repository protocol."""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional, Protocol

from ...models.goal import Goal, Progress
from ...models.task import Task


class GoalRepository(Protocol):
    """Repository for goals, their hierarchy and progress log."""

    def get_by_id(self, goal_id: int, *, user_id: int) -> Optional[Goal]:
        """Retrieve a goal by ID."""
        ...

    def list_goals(
        self,
        *,
        user_id: int,
        include_completed: bool = False,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
    ) -> list[Goal]:
        """List goals, newest first."""
        ...

    def list_all(self, *, user_id: int) -> list[Goal]:
        """List every goal owned by the user."""
        ...

    def list_roots(self, *, user_id: int) -> list[Goal]:
        """List goals without a parent."""
        ...

    def list_by_scope(self, scope: str, *, user_id: int) -> list[Goal]:
        """List goals at one hierarchy level."""
        ...

    def list_children(self, goal_id: int, *, user_id: int) -> list[Goal]:
        """List direct children of a goal."""
        ...

    def list_overlapping(
        self, start: date, end: date, *, user_id: int, scope: str | None = None
    ) -> list[Goal]:
        """List goals whose start/end window intersects an inclusive date range."""
        ...

    def list_linked_tasks(self, goal_id: int, *, user_id: int) -> list[Task]:
        """List tasks linked to a goal."""
        ...

    def create(self, goal: Goal, *, user_id: int) -> Goal:
        """Create a new goal."""
        ...

    def update(self, goal: Goal, *, user_id: int) -> Goal:
        """Persist changes to an existing goal."""
        ...

    def delete(self, goal_id: int, *, user_id: int) -> list[int]:
        """Delete a goal, orphaning its children; return the orphaned child IDs."""
        ...

    # Progress log operations
    def append_progress(
        self, entry: Progress, *, user_id: int, increment_current: bool
    ) -> tuple[Progress, Goal]:
        """Append a log entry, optionally adding its value to ``current_value``."""
        ...

    def list_progress(
        self, goal_id: int, *, user_id: int, limit: int | None = None
    ) -> list[Progress]:
        """List log entries for a goal, newest first."""
        ...

    # Hierarchy operations
    def set_completion(
        self, goal_id: int, completed: bool, *, user_id: int, at: datetime | None
    ) -> Goal:
        """Flip the explicit completion flag."""
        ...

    def set_rollup(self, goal_id: int, percent: float, *, user_id: int) -> Goal:
        """Persist a recomputed child rollup percentage."""
        ...
