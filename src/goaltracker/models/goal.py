"""Goal hierarchy and progress log data structures."""

from __future__ import annotations

from datetime import date, datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, ClassVar, Optional

from sqlalchemy.orm import relationship
from sqlmodel import Field, Relationship, SQLModel

if TYPE_CHECKING:  # pragma: no cover
    from .task import GoalTask
    from .user import User


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class GoalType(str, Enum):
    """What kind of outcome a goal measures."""

    TOTAL_TARGET = "TOTAL_TARGET"
    FREQUENCY = "FREQUENCY"
    HABIT = "HABIT"
    COMPLETION = "COMPLETION"


class ProgressMode(str, Enum):
    """Aggregation strategy used to derive a goal's completion percentage."""

    TASK_BASED = "TASK_BASED"
    MANUAL_TOTAL = "MANUAL_TOTAL"
    HABIT = "HABIT"


class GoalScope(str, Enum):
    """Hierarchy level of a goal."""

    YEARLY = "YEARLY"
    MONTHLY = "MONTHLY"
    WEEKLY = "WEEKLY"
    STANDALONE = "STANDALONE"


class FrequencyType(str, Enum):
    """Period window for HABIT goals."""

    DAILY = "DAILY"
    WEEKLY = "WEEKLY"
    MONTHLY = "MONTHLY"


# Child scope -> the only scope its parent may have.
PARENT_SCOPE: dict[GoalScope, GoalScope] = {
    GoalScope.MONTHLY: GoalScope.YEARLY,
    GoalScope.WEEKLY: GoalScope.MONTHLY,
}


class Goal(SQLModel, table=True):
    """A user goal placed in the yearly/monthly/weekly hierarchy."""

    __tablename__: ClassVar[str] = "goal"

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: int = Field(foreign_key="user.id", nullable=False, index=True)
    title: str = Field(nullable=False, max_length=200)
    description: Optional[str] = Field(default=None, max_length=2000)
    type: str = Field(default=GoalType.TOTAL_TARGET.value, max_length=16)
    progress_mode: str = Field(default=ProgressMode.TASK_BASED.value, max_length=16)
    target_value: Optional[float] = Field(default=None)
    current_value: float = Field(default=0.0, nullable=False)
    step_size: float = Field(default=1.0, nullable=False)
    frequency_target: Optional[int] = Field(default=None)
    frequency_type: Optional[str] = Field(default=None, max_length=16)
    scope: str = Field(default=GoalScope.STANDALONE.value, max_length=16, index=True)
    parent_id: Optional[int] = Field(default=None, foreign_key="goal.id", index=True)
    custom_data_label: Optional[str] = Field(default=None, max_length=80)
    start_date: date = Field(default_factory=date.today, nullable=False)
    end_date: Optional[date] = Field(default=None)
    is_completed: bool = Field(default=False, nullable=False, index=True)
    completed_at: Optional[datetime] = Field(default=None)
    rollup_percent: Optional[float] = Field(
        default=None, description="Last child rollup persisted by the hierarchy propagator"
    )
    created_at: datetime = Field(default_factory=_utcnow, nullable=False, index=True)
    updated_at: datetime = Field(default_factory=_utcnow, nullable=False)

    parent: Optional["Goal"] = Relationship(
        back_populates="children",
        sa_relationship=relationship("Goal", back_populates="children", remote_side="Goal.id"),
    )
    children: list["Goal"] = Relationship(
        back_populates="parent",
        sa_relationship=relationship("Goal", back_populates="parent"),
    )
    goal_tasks: list["GoalTask"] = Relationship(
        back_populates="goal",
        sa_relationship=relationship("GoalTask", back_populates="goal"),
    )
    progress: list["Progress"] = Relationship(
        back_populates="goal",
        sa_relationship=relationship("Progress", back_populates="goal"),
    )
    user: "User" = Relationship(sa_relationship=relationship("User", back_populates="goals"))


class Progress(SQLModel, table=True):
    """Append-only progress log entry recorded against a goal."""

    __tablename__: ClassVar[str] = "progress"

    id: Optional[int] = Field(default=None, primary_key=True)
    goal_id: int = Field(foreign_key="goal.id", nullable=False, index=True)
    value: float = Field(nullable=False)
    date: datetime = Field(default_factory=_utcnow, nullable=False, index=True)
    note: Optional[str] = Field(default=None, max_length=500)
    custom_data: Optional[str] = Field(default=None, max_length=500)
    created_at: datetime = Field(default_factory=_utcnow, nullable=False)

    goal: "Goal" = Relationship(
        back_populates="progress",
        sa_relationship=relationship("Goal", back_populates="progress"),
    )
