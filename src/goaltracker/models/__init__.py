"""SQLModel table exports."""

from .goal import FrequencyType, Goal, GoalScope, GoalType, Progress, ProgressMode
from .task import GoalTask, Task, TaskPriority
from .user import User

__all__ = [
    "FrequencyType",
    "Goal",
    "GoalScope",
    "GoalTask",
    "GoalType",
    "Progress",
    "ProgressMode",
    "Task",
    "TaskPriority",
    "User",
]
