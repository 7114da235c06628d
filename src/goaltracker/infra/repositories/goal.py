"""SQLModel implementation of Goal repository."""

from __future__ import annotations

from datetime import date, datetime, timezone
from typing import Callable, Optional

from sqlalchemy import or_
from sqlmodel import Session, select

from ...domain.errors import NotFoundError
from ...models.goal import Goal, Progress
from ...models.task import GoalTask, Task


class SQLModelGoalRepository:
    """SQLModel-based goal repository implementation."""

    def __init__(self, session_factory: Callable[[], Session]):
        """Initialize with a session factory."""
        self.session_factory = session_factory

    @staticmethod
    def _owned(session: Session, goal_id: int, user_id: int) -> Optional[Goal]:
        return session.exec(
            select(Goal).where(Goal.id == goal_id, Goal.user_id == user_id)
        ).first()

    def _require(self, session: Session, goal_id: int, user_id: int) -> Goal:
        goal = self._owned(session, goal_id, user_id)
        if goal is None:
            raise NotFoundError("goal", goal_id)
        return goal

    def get_by_id(self, goal_id: int, *, user_id: int) -> Optional[Goal]:
        """Retrieve a goal by ID."""
        with self.session_factory() as session:
            obj = self._owned(session, goal_id, user_id)
            if obj:
                session.expunge(obj)
            return obj

    def list_goals(
        self,
        *,
        user_id: int,
        include_completed: bool = False,
        created_from: datetime | None = None,
        created_to: datetime | None = None,
    ) -> list[Goal]:
        """List goals, newest first."""
        with self.session_factory() as session:
            statement = select(Goal).where(Goal.user_id == user_id)
            if not include_completed:
                statement = statement.where(Goal.is_completed == False)  # noqa: E712
            if created_from is not None:
                statement = statement.where(Goal.created_at >= created_from)
            if created_to is not None:
                statement = statement.where(Goal.created_at <= created_to)
            statement = statement.order_by(Goal.created_at.desc(), Goal.id.desc())  # type: ignore

            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_all(self, *, user_id: int) -> list[Goal]:
        """List every goal owned by the user."""
        with self.session_factory() as session:
            rows = list(
                session.exec(
                    select(Goal).where(Goal.user_id == user_id).order_by(Goal.id)  # type: ignore
                ).all()
            )
            session.expunge_all()
            return rows

    def list_roots(self, *, user_id: int) -> list[Goal]:
        """List goals without a parent."""
        with self.session_factory() as session:
            statement = (
                select(Goal)
                .where(Goal.user_id == user_id)
                .where(Goal.parent_id == None)  # noqa: E711
                .order_by(Goal.created_at.desc(), Goal.id.desc())  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_by_scope(self, scope: str, *, user_id: int) -> list[Goal]:
        """List goals at one hierarchy level."""
        with self.session_factory() as session:
            statement = (
                select(Goal)
                .where(Goal.user_id == user_id)
                .where(Goal.scope == scope)
                .order_by(Goal.created_at.desc(), Goal.id.desc())  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_children(self, goal_id: int, *, user_id: int) -> list[Goal]:
        """List direct children of a goal."""
        with self.session_factory() as session:
            statement = (
                select(Goal)
                .where(Goal.user_id == user_id)
                .where(Goal.parent_id == goal_id)
                .order_by(Goal.created_at.desc(), Goal.id.desc())  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_overlapping(
        self, start: date, end: date, *, user_id: int, scope: str | None = None
    ) -> list[Goal]:
        """List goals whose start/end window intersects an inclusive date range."""
        with self.session_factory() as session:
            statement = (
                select(Goal)
                .where(Goal.user_id == user_id)
                .where(Goal.start_date <= end)
                .where(or_(Goal.end_date == None, Goal.end_date >= start))  # noqa: E711
            )
            if scope is not None:
                statement = statement.where(Goal.scope == scope)
            statement = statement.order_by(Goal.start_date, Goal.id)  # type: ignore
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def list_linked_tasks(self, goal_id: int, *, user_id: int) -> list[Task]:
        """List tasks linked to a goal."""
        with self.session_factory() as session:
            statement = (
                select(Task)
                .join(GoalTask, GoalTask.task_id == Task.id)  # type: ignore
                .where(GoalTask.goal_id == goal_id)
                .where(Task.user_id == user_id)
                .order_by(Task.created_at, Task.id)  # type: ignore
            )
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    def create(self, goal: Goal, *, user_id: int) -> Goal:
        """Create a new goal."""
        with self.session_factory() as session:
            goal.user_id = user_id
            session.add(goal)
            session.commit()
            session.refresh(goal)
            session.expunge(goal)
            return goal

    def update(self, goal: Goal, *, user_id: int) -> Goal:
        """Persist changes to an existing goal."""
        with self.session_factory() as session:
            self._require(session, goal.id, user_id)
            goal.user_id = user_id
            goal.updated_at = datetime.now(timezone.utc)
            merged = session.merge(goal)
            session.commit()
            session.refresh(merged)
            session.expunge(merged)
            return merged

    def delete(self, goal_id: int, *, user_id: int) -> list[int]:
        """Delete a goal, orphaning its children; return the orphaned child IDs."""
        with self.session_factory() as session:
            goal = self._owned(session, goal_id, user_id)
            if goal is None:
                return []

            orphaned: list[int] = []
            for child in session.exec(select(Goal).where(Goal.parent_id == goal_id)).all():
                child.parent_id = None
                session.add(child)
                orphaned.append(child.id)
            for link in session.exec(select(GoalTask).where(GoalTask.goal_id == goal_id)).all():
                session.delete(link)
            for entry in session.exec(select(Progress).where(Progress.goal_id == goal_id)).all():
                session.delete(entry)
            session.flush()

            session.delete(goal)
            session.commit()
            return orphaned

    # Progress log operations
    def append_progress(
        self, entry: Progress, *, user_id: int, increment_current: bool
    ) -> tuple[Progress, Goal]:
        """Append a log entry, optionally adding its value to ``current_value``."""
        with self.session_factory() as session:
            goal = self._require(session, entry.goal_id, user_id)
            session.add(entry)
            if increment_current:
                goal.current_value = (goal.current_value or 0.0) + entry.value
                goal.updated_at = datetime.now(timezone.utc)
                session.add(goal)
            session.commit()
            session.refresh(entry)
            session.refresh(goal)
            session.expunge_all()
            return entry, goal

    def list_progress(
        self, goal_id: int, *, user_id: int, limit: int | None = None
    ) -> list[Progress]:
        """List log entries for a goal, newest first."""
        with self.session_factory() as session:
            statement = (
                select(Progress)
                .join(Goal, Goal.id == Progress.goal_id)  # type: ignore
                .where(Goal.user_id == user_id)
                .where(Progress.goal_id == goal_id)
                .order_by(Progress.date.desc(), Progress.id.desc())  # type: ignore
            )
            if limit is not None:
                statement = statement.limit(limit)
            rows = list(session.exec(statement).all())
            session.expunge_all()
            return rows

    # Hierarchy operations
    def set_completion(
        self, goal_id: int, completed: bool, *, user_id: int, at: datetime | None
    ) -> Goal:
        """Flip the explicit completion flag."""
        with self.session_factory() as session:
            goal = self._require(session, goal_id, user_id)
            goal.is_completed = completed
            goal.completed_at = at if completed else None
            goal.updated_at = datetime.now(timezone.utc)
            session.add(goal)
            session.commit()
            session.refresh(goal)
            session.expunge(goal)
            return goal

    def set_rollup(self, goal_id: int, percent: float, *, user_id: int) -> Goal:
        """Persist a recomputed child rollup percentage."""
        with self.session_factory() as session:
            goal = self._require(session, goal_id, user_id)
            goal.rollup_percent = percent
            goal.updated_at = datetime.now(timezone.utc)
            session.add(goal)
            session.commit()
            session.refresh(goal)
            session.expunge(goal)
            return goal
