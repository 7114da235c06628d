"""Goal progress aggregation.

A goal's completion percentage is never stored as the source of truth; it is
derived on read from whichever signal the goal's ``progress_mode`` selects:

* ``TASK_BASED``: linked task counts and effort (``size``), falling back to a
  pro-rata rollup of completed child goals, then to the manual formula.
* ``MANUAL_TOTAL``: logged running total against ``target_value``.
* ``HABIT``: positive log entries inside the current frequency window.

Everything here is pure so it can be reused by the API, the hierarchy
propagator and the CLI without touching the database.
"""

from __future__ import annotations

import calendar
import math
from dataclasses import dataclass
from datetime import date, timedelta
from typing import Any, Iterable, Optional

from ..models.goal import FrequencyType, Goal, Progress, ProgressMode
from ..models.task import Task
from .dates import format_date_only


def _ratio(numerator: float, denominator: float) -> float:
    """Return numerator / denominator, or 0.0 when the denominator is empty."""

    if not denominator:
        return 0.0
    return numerator / denominator


def _clamp_percent(value: float) -> float:
    if math.isnan(value):
        return 0.0
    return max(0.0, min(value, 100.0))


@dataclass(slots=True)
class TaskTotals:
    total_count: int = 0
    completed_count: int = 0
    total_size: int = 0
    completed_size: int = 0

    @property
    def count_ratio(self) -> float:
        return _ratio(self.completed_count, self.total_count)

    @property
    def size_ratio(self) -> float:
        return _ratio(self.completed_size, self.total_size)

    def to_dict(self) -> dict[str, Any]:
        return {
            "totalCount": self.total_count,
            "completedCount": self.completed_count,
            "totalSize": self.total_size,
            "completedSize": self.completed_size,
            "countPercent": round(self.count_ratio * 100, 2),
            "sizePercent": round(self.size_ratio * 100, 2),
        }


@dataclass(slots=True)
class ChildTotals:
    total_count: int = 0
    completed_count: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {"totalCount": self.total_count, "completedCount": self.completed_count}


@dataclass(slots=True)
class HabitWindow:
    frequency_type: FrequencyType
    start: date
    end: date
    count: int
    target: Optional[int]

    def to_dict(self) -> dict[str, Any]:
        return {
            "frequencyType": self.frequency_type.value,
            "start": format_date_only(self.start),
            "end": format_date_only(self.end),
            "count": self.count,
            "target": self.target,
        }


@dataclass(slots=True)
class ProgressSummary:
    mode: ProgressMode
    percent_complete: float
    task_totals: Optional[TaskTotals] = None
    child_totals: Optional[ChildTotals] = None
    current_value: float = 0.0
    target_value: Optional[float] = None
    habit_window: Optional[HabitWindow] = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value,
            "percentComplete": round(self.percent_complete, 2),
            "taskTotals": self.task_totals.to_dict() if self.task_totals else None,
            "childTotals": self.child_totals.to_dict() if self.child_totals else None,
            "manualTotals": {
                "currentValue": self.current_value,
                "targetValue": self.target_value,
            },
            "habitWindow": self.habit_window.to_dict() if self.habit_window else None,
        }


def compute_task_totals(tasks: Iterable[Task]) -> TaskTotals:
    """Sum task counts and effort for the tasks linked to a goal."""

    totals = TaskTotals()
    for task in tasks:
        size = task.size or 1
        totals.total_count += 1
        totals.total_size += size
        if task.is_completed:
            totals.completed_count += 1
            totals.completed_size += size
    return totals


def compute_child_totals(children: Iterable[Goal]) -> ChildTotals:
    totals = ChildTotals()
    for child in children:
        totals.total_count += 1
        if child.is_completed:
            totals.completed_count += 1
    return totals


def manual_percent(current_value: float, target_value: Optional[float]) -> float:
    """Percentage of ``target_value`` reached; 0 for open-ended goals."""

    if not target_value or target_value <= 0:
        return 0.0
    return _clamp_percent(current_value / target_value * 100)


def habit_period(frequency_type: FrequencyType, today: date) -> tuple[date, date]:
    """Return the inclusive ``(start, end)`` of the period containing ``today``."""

    if frequency_type is FrequencyType.DAILY:
        return today, today
    if frequency_type is FrequencyType.WEEKLY:
        start = today - timedelta(days=today.weekday())
        return start, start + timedelta(days=6)
    last_day = calendar.monthrange(today.year, today.month)[1]
    return today.replace(day=1), today.replace(day=last_day)


def compute_habit_window(
    goal: Goal, entries: Iterable[Progress], *, today: date
) -> HabitWindow:
    """Count check-ins inside the goal's current window.

    A negative entry cancels one earlier check-in; the count never drops below zero.
    """

    frequency_type = FrequencyType(goal.frequency_type or FrequencyType.WEEKLY.value)
    start, end = habit_period(frequency_type, today)
    net = 0
    for entry in entries:
        if entry.value and start <= entry.date.date() <= end:
            net += 1 if entry.value > 0 else -1
    count = max(net, 0)
    return HabitWindow(
        frequency_type=frequency_type,
        start=start,
        end=end,
        count=count,
        target=goal.frequency_target,
    )


def compute_progress_summary(
    goal: Goal,
    *,
    tasks: Iterable[Task] = (),
    children: Iterable[Goal] = (),
    entries: Iterable[Progress] = (),
    today: date | None = None,
) -> ProgressSummary:
    """Derive a goal's :class:`ProgressSummary` from its related rows."""

    today = today or date.today()
    mode = ProgressMode(goal.progress_mode)
    summary = ProgressSummary(
        mode=mode,
        percent_complete=0.0,
        current_value=goal.current_value or 0.0,
        target_value=goal.target_value,
    )

    if mode is ProgressMode.TASK_BASED:
        summary.task_totals = compute_task_totals(tasks)
        summary.child_totals = compute_child_totals(children)
        if summary.task_totals.total_count:
            totals = summary.task_totals
            percent = (totals.count_ratio + totals.size_ratio) / 2 * 100
        elif summary.child_totals.total_count:
            percent = _ratio(summary.child_totals.completed_count, summary.child_totals.total_count) * 100
        else:
            percent = manual_percent(summary.current_value, goal.target_value)
    elif mode is ProgressMode.MANUAL_TOTAL:
        percent = manual_percent(summary.current_value, goal.target_value)
    else:
        summary.habit_window = compute_habit_window(goal, entries, today=today)
        window = summary.habit_window
        percent = _ratio(window.count, window.target or 0) * 100

    summary.percent_complete = _clamp_percent(percent)
    return summary


def compute_rollup_percent(children: Iterable[Goal]) -> float:
    """Pro-rata share of completed children: each contributes ``1 / len(children)``."""

    totals = compute_child_totals(children)
    return _clamp_percent(_ratio(totals.completed_count, totals.total_count) * 100)


__all__ = [
    "ChildTotals",
    "HabitWindow",
    "ProgressSummary",
    "TaskTotals",
    "compute_child_totals",
    "compute_habit_window",
    "compute_progress_summary",
    "compute_rollup_percent",
    "compute_task_totals",
    "habit_period",
    "manual_percent",
]
