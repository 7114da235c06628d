"""SQLModel implementation of Task repository."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable, Iterable, Optional

from sqlmodel import Session, select

from ...domain.errors import NotFoundError
from ...models.goal import Goal
from ...models.task import GoalTask, Task


class SQLModelTaskRepository:
    """SQLModel-based task repository implementation."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    @staticmethod
    def _owned(session: Session, task_id: int, user_id: int) -> Optional[Task]:
        return session.exec(
            select(Task).where(Task.id == task_id, Task.user_id == user_id)
        ).first()

    def get_by_id(self, task_id: int, *, user_id: int) -> Optional[Task]:
        """Retrieve a task by ID."""
        with self.session_factory() as session:
            obj = self._owned(session, task_id, user_id)
            if obj:
                session.expunge(obj)
            return obj

    def list_all(self, *, user_id: int) -> list[Task]:
        """List all tasks, newest first."""
        with self.session_factory() as session:
            statement = (
                select(Task)
                .where(Task.user_id == user_id)
                .order_by(Task.created_at.desc(), Task.id.desc())  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_scheduled_on(self, day: date, *, user_id: int) -> list[Task]:
        """List tasks scheduled on a calendar day, oldest first."""
        with self.session_factory() as session:
            statement = (
                select(Task)
                .where(Task.user_id == user_id)
                .where(Task.scheduled_date == day)
                .order_by(Task.created_at, Task.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_unscheduled(self, *, user_id: int, goal_id: int | None = None) -> list[Task]:
        """List open tasks without a scheduled date, newest first."""
        with self.session_factory() as session:
            statement = (
                select(Task)
                .where(Task.user_id == user_id)
                .where(Task.scheduled_date == None)  # noqa: E711
                .where(Task.is_completed == False)  # noqa: E712
            )
            if goal_id is not None:
                statement = statement.join(GoalTask, GoalTask.task_id == Task.id).where(  # type: ignore
                    GoalTask.goal_id == goal_id
                )
            statement = statement.order_by(Task.created_at.desc(), Task.id.desc())  # type: ignore
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_in_range(
        self, start: date, end: date, *, user_id: int, goal_id: int | None = None
    ) -> list[Task]:
        """List tasks scheduled within an inclusive date range."""
        with self.session_factory() as session:
            statement = (
                select(Task)
                .where(Task.user_id == user_id)
                .where(Task.scheduled_date >= start)
                .where(Task.scheduled_date <= end)
            )
            if goal_id is not None:
                statement = statement.join(GoalTask, GoalTask.task_id == Task.id).where(  # type: ignore
                    GoalTask.goal_id == goal_id
                )
            statement = statement.order_by(Task.scheduled_date, Task.scheduled_time, Task.id)  # type: ignore
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create(self, task: Task, *, user_id: int, goal_ids: Iterable[int] = ()) -> Task:
        """Create a task and link it to the given goals."""
        with self.session_factory() as session:
            task.user_id = user_id
            session.add(task)
            session.flush()
            for goal_id in dict.fromkeys(goal_ids):
                session.add(GoalTask(goal_id=goal_id, task_id=task.id))
            session.commit()
            session.refresh(task)
            session.expunge(task)
            return task

    def bulk_create(self, tasks: list[Task], goal_id: int, *, user_id: int) -> list[Task]:
        """Create several tasks linked to one goal in a single transaction."""
        with self.session_factory() as session:
            for task in tasks:
                task.user_id = user_id
                session.add(task)
            session.flush()
            for task in tasks:
                session.add(GoalTask(goal_id=goal_id, task_id=task.id))
            session.commit()
            for task in tasks:
                session.refresh(task)
            session.expunge_all()
            return tasks

    def update(self, task: Task, *, user_id: int) -> Task:
        """Persist changes to an existing task."""
        with self.session_factory() as session:
            if self._owned(session, task.id, user_id) is None:
                raise NotFoundError("task", task.id)
            task.user_id = user_id
            task.updated_at = datetime.now(timezone.utc)
            merged = session.merge(task)
            session.commit()
            session.refresh(merged)
            session.expunge(merged)
            return merged

    def delete(self, task_id: int, *, user_id: int) -> list[int]:
        """Delete a task and its links; return the goal IDs it was linked to."""
        with self.session_factory() as session:
            task = self._owned(session, task_id, user_id)
            if task is None:
                return []
            links = list(session.exec(select(GoalTask).where(GoalTask.task_id == task_id)).all())
            goal_ids = [link.goal_id for link in links]
            for link in links:
                session.delete(link)
            session.flush()
            session.delete(task)
            session.commit()
            return goal_ids

    # Goal link operations
    def link(self, task_id: int, goal_id: int) -> bool:
        """Link a task to a goal; return False when the link already existed."""
        with self.session_factory() as session:
            if session.get(GoalTask, (goal_id, task_id)) is not None:
                return False
            session.add(GoalTask(goal_id=goal_id, task_id=task_id))
            session.commit()
            return True

    def unlink(self, task_id: int, goal_id: int) -> bool:
        """Remove a link; return False when there was nothing to remove."""
        with self.session_factory() as session:
            link = session.get(GoalTask, (goal_id, task_id))
            if link is None:
                return False
            session.delete(link)
            session.commit()
            return True

    def linked_goals(self, task_ids: Iterable[int], *, user_id: int) -> dict[int, list[dict]]:
        """Map task IDs to ``{"id", "title", "scope"}`` dicts of their linked goals."""
        ids = list(task_ids)
        result: dict[int, list[dict]] = {task_id: [] for task_id in ids}
        if not ids:
            return result
        with self.session_factory() as session:
            statement = (
                select(GoalTask.task_id, Goal.id, Goal.title, Goal.scope)
                .join(Goal, Goal.id == GoalTask.goal_id)  # type: ignore
                .where(Goal.user_id == user_id)
                .where(GoalTask.task_id.in_(ids))  # type: ignore
                .order_by(Goal.id)  # type: ignore
            )
            for task_id, goal_id, title, scope in session.exec(statement).all():
                result.setdefault(task_id, []).append({"id": goal_id, "title": title, "scope": scope})
        return result
