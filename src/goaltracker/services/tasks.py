"""Task store: CRUD, scheduling queries, completion toggling and goal links."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any, Iterable

from ..domain.repositories import GoalRepository, TaskRepository
from ..logging_config import get_logger
from ..models.goal import Progress, ProgressMode
from ..models.task import Task, TaskPriority
from .dates import utcnow, validate_time_of_day
from .results import NotFoundError

logger = get_logger(__name__)

UNSCHEDULED_CALENDAR_LIMIT = 50

TASK_FIELDS = (
    "title",
    "description",
    "size",
    "is_completed",
    "scheduled_date",
    "scheduled_time",
    "estimated_duration_minutes",
    "estimated_completion_date",
    "category",
    "priority",
)


@dataclass(slots=True)
class TaskDetail:
    task: Task
    goals: list[dict] = field(default_factory=list)


@dataclass(slots=True)
class CalendarTasks:
    tasks: list[TaskDetail]
    unscheduled: list[TaskDetail] | None = None


def _normalize_fields(changes: dict[str, Any]) -> dict[str, Any]:
    unknown = set(changes) - set(TASK_FIELDS)
    if unknown:
        raise ValueError(f"Unknown task field(s): {', '.join(sorted(unknown))}")

    normalized = dict(changes)
    if "title" in normalized:
        title = (normalized["title"] or "").strip()
        if not title:
            raise ValueError("Title is required.")
        normalized["title"] = title
    if "size" in normalized:
        if normalized["size"] is None or normalized["size"] < 1:
            raise ValueError("Size must be at least 1.")
    if normalized.get("scheduled_time") is not None:
        normalized["scheduled_time"] = validate_time_of_day(normalized["scheduled_time"])
    duration = normalized.get("estimated_duration_minutes")
    if duration is not None and duration < 1:
        raise ValueError("Estimated duration must be at least one minute.")
    if normalized.get("priority") is not None:
        try:
            normalized["priority"] = TaskPriority(normalized["priority"]).value
        except ValueError as exc:
            allowed = ", ".join(member.value for member in TaskPriority)
            raise ValueError(f"Invalid priority; expected one of {allowed}.") from exc
    return normalized


class TaskService:
    """Explicit task store; every mutation returns the canonical task."""

    def __init__(self, tasks: TaskRepository, goals: GoalRepository):
        self.tasks = tasks
        self.goals = goals

    def _detail(self, task: Task, *, user_id: int) -> TaskDetail:
        goals = self.tasks.linked_goals([task.id], user_id=user_id).get(task.id, [])
        return TaskDetail(task=task, goals=goals)

    def _details(self, tasks: Iterable[Task], *, user_id: int) -> list[TaskDetail]:
        rows = list(tasks)
        links = self.tasks.linked_goals([task.id for task in rows], user_id=user_id)
        return [TaskDetail(task=task, goals=links.get(task.id, [])) for task in rows]

    def require_task(self, task_id: int, *, user_id: int) -> Task:
        task = self.tasks.get_by_id(task_id, user_id=user_id)
        if task is None:
            raise NotFoundError("task", task_id)
        return task

    def _require_goal(self, goal_id: int, *, user_id: int) -> None:
        if self.goals.get_by_id(goal_id, user_id=user_id) is None:
            raise NotFoundError("goal", goal_id)

    # Queries -----------------------------------------------------------------

    def get_task(self, task_id: int, *, user_id: int) -> TaskDetail:
        return self._detail(self.require_task(task_id, user_id=user_id), user_id=user_id)

    def list_tasks(self, *, user_id: int) -> list[TaskDetail]:
        return self._details(self.tasks.list_all(user_id=user_id), user_id=user_id)

    def scheduled_on(self, day: date, *, user_id: int) -> list[TaskDetail]:
        return self._details(self.tasks.list_scheduled_on(day, user_id=user_id), user_id=user_id)

    def unscheduled(self, *, user_id: int) -> list[TaskDetail]:
        return self._details(self.tasks.list_unscheduled(user_id=user_id), user_id=user_id)

    def calendar_tasks(
        self,
        start: date,
        end: date,
        *,
        user_id: int,
        include_unscheduled: bool = False,
        goal_id: int | None = None,
    ) -> CalendarTasks:
        """Tasks scheduled in ``[start, end]``, optionally with open unscheduled ones."""

        if end < start:
            raise ValueError("endDate cannot be before startDate.")
        scheduled = self.tasks.list_in_range(start, end, user_id=user_id, goal_id=goal_id)
        result = CalendarTasks(tasks=self._details(scheduled, user_id=user_id))
        if include_unscheduled:
            unscheduled = self.tasks.list_unscheduled(user_id=user_id, goal_id=goal_id)
            result.unscheduled = self._details(
                unscheduled[:UNSCHEDULED_CALENDAR_LIMIT], user_id=user_id
            )
        return result

    # Mutations -----------------------------------------------------------------

    def create_task(
        self, fields: dict[str, Any], *, user_id: int, goal_ids: Iterable[int] = ()
    ) -> TaskDetail:
        values = _normalize_fields({key: value for key, value in fields.items() if value is not None})
        if "title" not in values:
            raise ValueError("Title is required.")
        goal_ids = list(dict.fromkeys(goal_ids))
        for goal_id in goal_ids:
            self._require_goal(goal_id, user_id=user_id)

        task = Task(user_id=user_id, **values)
        if task.is_completed:
            task.completed_at = utcnow()
        created = self.tasks.create(task, user_id=user_id, goal_ids=goal_ids)
        logger.info("Task created", extra={"task_id": created.id, "goal_ids": goal_ids})
        return self._detail(created, user_id=user_id)

    def update_task(self, task_id: int, changes: dict[str, Any], *, user_id: int) -> TaskDetail:
        """Partial update; toggling ``is_completed`` sets or clears ``completed_at``."""

        task = self.require_task(task_id, user_id=user_id)
        values = _normalize_fields(changes)
        toggled = False
        if "is_completed" in values:
            completed = bool(values["is_completed"])
            values["is_completed"] = completed
            if completed != task.is_completed:
                task.completed_at = utcnow() if completed else None
                toggled = True
        for key, value in values.items():
            setattr(task, key, value)

        updated = self.tasks.update(task, user_id=user_id)
        logger.info("Task updated", extra={"task_id": task_id, "fields": sorted(values)})
        if toggled:
            self._log_task_change(updated, user_id=user_id)
        return self._detail(updated, user_id=user_id)

    def _log_task_change(self, task: Task, *, user_id: int) -> None:
        """Write a signed size entry to each linked TASK_BASED goal's activity log."""

        action = "completed" if task.is_completed else "reopened"
        delta = float(task.size if task.is_completed else -task.size)
        linked = self.tasks.linked_goals([task.id], user_id=user_id).get(task.id, [])
        for link in linked:
            goal = self.goals.get_by_id(link["id"], user_id=user_id)
            if goal is None or ProgressMode(goal.progress_mode) is not ProgressMode.TASK_BASED:
                continue
            entry = Progress(
                goal_id=goal.id,
                value=delta,
                date=utcnow(),
                note=f'Task "{task.title}" {action}',
            )
            self.goals.append_progress(entry, user_id=user_id, increment_current=False)
        logger.debug("Task activity logged", extra={"task_id": task.id, "goals": len(linked)})

    def delete_task(self, task_id: int, *, user_id: int) -> list[int]:
        """Delete a task; its goal links go with it. Returns the unlinked goal IDs."""

        self.require_task(task_id, user_id=user_id)
        goal_ids = self.tasks.delete(task_id, user_id=user_id)
        logger.info("Task deleted", extra={"task_id": task_id, "goal_ids": goal_ids})
        return goal_ids

    def toggle_complete(self, task_id: int, *, user_id: int) -> TaskDetail:
        task = self.require_task(task_id, user_id=user_id)
        return self.update_task(task_id, {"is_completed": not task.is_completed}, user_id=user_id)

    def link_goal(self, task_id: int, goal_id: int, *, user_id: int) -> TaskDetail:
        """Link a task to a goal; linking an existing pair is a no-op."""

        task = self.require_task(task_id, user_id=user_id)
        self._require_goal(goal_id, user_id=user_id)
        if self.tasks.link(task_id, goal_id):
            logger.info("Task linked", extra={"task_id": task_id, "goal_id": goal_id})
        else:
            logger.debug("Task already linked", extra={"task_id": task_id, "goal_id": goal_id})
        return self._detail(task, user_id=user_id)

    def unlink_goal(self, task_id: int, goal_id: int, *, user_id: int) -> TaskDetail:
        """Remove a task/goal link; unlinking an absent pair is a no-op."""

        task = self.require_task(task_id, user_id=user_id)
        self._require_goal(goal_id, user_id=user_id)
        if self.tasks.unlink(task_id, goal_id):
            logger.info("Task unlinked", extra={"task_id": task_id, "goal_id": goal_id})
        return self._detail(task, user_id=user_id)


__all__ = ["CalendarTasks", "TaskDetail", "TaskService"]
