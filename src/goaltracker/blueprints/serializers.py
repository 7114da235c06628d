"""camelCase JSON views of goals, tasks and progress entries."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Iterable, Optional

from ..models.goal import Goal, Progress
from ..models.task import Task
from ..services.dates import as_utc, format_date_only
from ..services.goals import GoalDetail
from ..services.results import CompletionResult
from ..services.tasks import TaskDetail


def _timestamp(value: Optional[datetime]) -> Optional[str]:
    if value is None:
        return None
    return as_utc(value).isoformat().replace("+00:00", "Z")


def _date(value) -> Optional[str]:
    return format_date_only(value) if value is not None else None


def goal_brief(goal: Goal) -> dict[str, Any]:
    return {"id": goal.id, "title": goal.title, "scope": goal.scope}


def goal_to_dict(goal: Goal) -> dict[str, Any]:
    return {
        "id": goal.id,
        "title": goal.title,
        "description": goal.description,
        "type": goal.type,
        "progressMode": goal.progress_mode,
        "targetValue": goal.target_value,
        "currentValue": goal.current_value,
        "stepSize": goal.step_size,
        "frequencyTarget": goal.frequency_target,
        "frequencyType": goal.frequency_type,
        "scope": goal.scope,
        "parentId": goal.parent_id,
        "customDataLabel": goal.custom_data_label,
        "startDate": _date(goal.start_date),
        "endDate": _date(goal.end_date),
        "isCompleted": goal.is_completed,
        "completedAt": _timestamp(goal.completed_at),
        "rollupPercent": goal.rollup_percent,
        "createdAt": _timestamp(goal.created_at),
        "updatedAt": _timestamp(goal.updated_at),
    }


def task_to_dict(task: Task, goals: Optional[Iterable[dict]] = None) -> dict[str, Any]:
    payload = {
        "id": task.id,
        "title": task.title,
        "description": task.description,
        "size": task.size,
        "isCompleted": task.is_completed,
        "completedAt": _timestamp(task.completed_at),
        "scheduledDate": _date(task.scheduled_date),
        "scheduledTime": task.scheduled_time,
        "estimatedDurationMinutes": task.estimated_duration_minutes,
        "estimatedCompletionDate": _date(task.estimated_completion_date),
        "category": task.category,
        "priority": task.priority,
        "createdAt": _timestamp(task.created_at),
        "updatedAt": _timestamp(task.updated_at),
    }
    if goals is not None:
        payload["goals"] = list(goals)
    return payload


def task_detail_to_dict(detail: TaskDetail) -> dict[str, Any]:
    return task_to_dict(detail.task, detail.goals)


def progress_to_dict(entry: Progress) -> dict[str, Any]:
    return {
        "id": entry.id,
        "goalId": entry.goal_id,
        "value": entry.value,
        "date": _timestamp(entry.date),
        "note": entry.note,
        "customData": entry.custom_data,
        "createdAt": _timestamp(entry.created_at),
    }


def goal_detail_to_dict(detail: GoalDetail) -> dict[str, Any]:
    """Serialize a goal detail; only the related rows the view loaded are included."""

    payload = goal_to_dict(detail.goal)
    payload["parent"] = goal_brief(detail.parent) if detail.parent is not None else None
    payload["children"] = [goal_detail_to_dict(child) for child in detail.children]
    payload["tasks"] = [task_to_dict(task) for task in detail.tasks]
    payload["recentProgress"] = [progress_to_dict(entry) for entry in detail.recent_progress]
    if detail.summary is not None:
        summary = detail.summary.to_dict()
        payload["progressSummary"] = summary
        payload["percentComplete"] = summary["percentComplete"]
    return payload


def completion_to_dict(result: CompletionResult) -> dict[str, Any]:
    return {
        "success": result.success,
        "message": result.message,
        "changed": result.changed,
        "goal": goal_to_dict(result.goal),
        "parentRollup": result.parent_rollup.to_dict() if result.parent_rollup else None,
        "rollupError": result.rollup_error,
        "invalidate": list(result.invalidate),
    }


__all__ = [
    "completion_to_dict",
    "goal_brief",
    "goal_detail_to_dict",
    "goal_to_dict",
    "progress_to_dict",
    "task_detail_to_dict",
    "task_to_dict",
]
