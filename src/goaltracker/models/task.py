"""Task list and goal link tables."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover - import guard for circular dependency
    from .goal import Goal
    from .user import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class TaskPriority(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Task(SQLModel, table=True):
    """A unit of work that can be scheduled and counted toward goals."""

    __tablename__: ClassVar[str] = "task"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    title: str = Field(nullable=False, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    size: int = Field(default=1, nullable=False, description="Effort units (legacy: days)")
    is_completed: bool = Field(default=False, nullable=False, index=True)
    completed_at: Optional[datetime] = Field(default=None)
    scheduled_date: Optional[date] = Field(default=None, index=True)
    scheduled_time: Optional[str] = Field(default=None, max_length=5, description="HH:MM")
    estimated_duration_minutes: Optional[int] = Field(default=None)
    estimated_completion_date: Optional[date] = Field(default=None)
    category: Optional[str] = Field(default=None, max_length=64)
    priority: Optional[str] = Field(default=None, max_length=8)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False, index=True)
    updated_at: datetime = Field(default_factory=_utcnow, nullable=False)

    goal_tasks: list["GoalTask"] = Relationship(
        back_populates="task",
        sa_relationship=relationship("GoalTask", back_populates="task"),
    )
    user: "User" = Relationship(sa_relationship=relationship("User", back_populates="tasks"))


class GoalTask(SQLModel, table=True):
    """Association table linking tasks and goals many-to-many."""

    __tablename__: ClassVar[str] = "goal_task"

    goal_id: int = Field(foreign_key="goal.id", primary_key=True)
    task_id: int = Field(foreign_key="task.id", primary_key=True)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)

    goal: "Goal" = Relationship(
        back_populates="goal_tasks",
        sa_relationship=relationship("Goal", back_populates="goal_tasks"),
    )
    task: "Task" = Relationship(
        back_populates="goal_tasks",
        sa_relationship=relationship("Task", back_populates="goal_tasks"),
    )
