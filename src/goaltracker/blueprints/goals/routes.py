"""Goal routes."""

from __future__ import annotations

from flask import jsonify

from . import bp
from ...auth import current_user_id
from ...extensions import get_service
from ..api import query_date, query_flag
from ..serializers import (
    completion_to_dict,
    goal_detail_to_dict,
    goal_to_dict,
    progress_to_dict,
    task_to_dict,
)
from .forms import BulkTaskForm, GoalCreateForm, GoalUpdateForm, ProgressForm


def _goals():
    return get_service("goals")


@bp.get("")
def list_goals():
    """Goals created in ``[startDate, endDate]`` (current year by default)."""

    details = _goals().list_goals(
        user_id=current_user_id(),
        include_completed=query_flag("completed"),
        start_date=query_date("startDate"),
        end_date=query_date("endDate"),
    )
    return jsonify([goal_detail_to_dict(detail) for detail in details])


@bp.post("")
def create_goal():
    form = GoalCreateForm.from_request()
    user_id = current_user_id()
    goal = _goals().create_goal(form.to_fields(), user_id=user_id)
    payload = goal_detail_to_dict(_goals().get_goal(goal.id, user_id=user_id))
    invalidate = ["goals"] + ([f"goal:{goal.parent_id}"] if goal.parent_id else [])
    return jsonify({"goal": payload, "invalidate": invalidate}), 201


@bp.get("/tree")
def goal_tree():
    """Root goals with nested children and their progress summaries."""

    roots = _goals().goal_tree(user_id=current_user_id())
    return jsonify([goal_detail_to_dict(node) for node in roots])


@bp.get("/scope/<scope>")
def goals_by_scope(scope: str):
    details = _goals().goals_by_scope(scope.upper(), user_id=current_user_id())
    return jsonify([goal_detail_to_dict(detail) for detail in details])


@bp.get("/<int:goal_id>")
def get_goal(goal_id: int):
    detail = _goals().get_goal(goal_id, user_id=current_user_id())
    return jsonify(goal_detail_to_dict(detail))


@bp.put("/<int:goal_id>")
def update_goal(goal_id: int):
    form = GoalUpdateForm.from_request()
    user_id = current_user_id()
    previous = _goals().require_goal(goal_id, user_id=user_id)
    goal = _goals().update_goal(goal_id, form.to_fields(), user_id=user_id)

    invalidate = ["goals", f"goal:{goal_id}"]
    for parent_id in {previous.parent_id, goal.parent_id} - {None}:
        invalidate.append(f"goal:{parent_id}")
    payload = goal_detail_to_dict(_goals().get_goal(goal_id, user_id=user_id))
    return jsonify({"goal": payload, "invalidate": invalidate})


@bp.delete("/<int:goal_id>")
def delete_goal(goal_id: int):
    """Delete a goal; its children survive as root goals."""

    user_id = current_user_id()
    goal = _goals().require_goal(goal_id, user_id=user_id)
    orphaned = _goals().delete_goal(goal_id, user_id=user_id)

    invalidate = ["goals", "tasks", f"goal:{goal_id}"]
    if goal.parent_id:
        invalidate.append(f"goal:{goal.parent_id}")
    invalidate += [f"goal:{child_id}" for child_id in orphaned]
    return jsonify(
        {
            "message": "Goal deleted",
            "orphanedChildIds": orphaned,
            "invalidate": invalidate,
        }
    )


@bp.post("/<int:goal_id>/progress")
def log_progress(goal_id: int):
    form = ProgressForm.from_request()
    user_id = current_user_id()
    entry, goal = _goals().log_progress(
        goal_id,
        form.value,
        user_id=user_id,
        note=form.note,
        logged_at=form.logged_at,
        custom_data=form.custom_data,
    )
    summary = _goals().summarize(goal, user_id=user_id)
    return (
        jsonify(
            {
                "progress": progress_to_dict(entry),
                "goal": goal_to_dict(goal),
                "progressSummary": summary.to_dict(),
                "invalidate": ["goals", f"goal:{goal_id}"],
            }
        ),
        201,
    )


@bp.get("/<int:goal_id>/activities")
def goal_activities(goal_id: int):
    entries = _goals().goal_activities(goal_id, user_id=current_user_id())
    return jsonify([progress_to_dict(entry) for entry in entries])


@bp.get("/<int:goal_id>/tasks")
def goal_tasks(goal_id: int):
    detail = _goals().goal_tasks(goal_id, user_id=current_user_id())
    return jsonify(
        {
            "goal": goal_to_dict(detail.goal),
            "tasks": [task_to_dict(task) for task in detail.tasks],
            "children": [goal_to_dict(child.goal) for child in detail.children],
        }
    )


@bp.post("/<int:goal_id>/bulk-tasks")
def bulk_create_tasks(goal_id: int):
    """Create many tasks at once, all linked to the goal."""

    form = BulkTaskForm.from_request()
    user_id = current_user_id()
    if form.pattern is not None:
        created = _goals().bulk_create_from_pattern(
            goal_id,
            form.pattern,
            form.count,
            user_id=user_id,
            scheduled_date=form.scheduled_date,
            size=form.size,
        )
    else:
        drafts = [draft.model_dump() for draft in form.tasks]
        created = _goals().bulk_create_tasks(goal_id, drafts, user_id=user_id)
    return (
        jsonify(
            {
                "tasks": [task_to_dict(task) for task in created],
                "count": len(created),
                "invalidate": ["goals", "tasks", f"goal:{goal_id}"],
            }
        ),
        201,
    )


@bp.post("/<int:goal_id>/complete")
def complete_goal(goal_id: int):
    result = _goals().complete_goal(goal_id, user_id=current_user_id())
    return jsonify(completion_to_dict(result))


@bp.post("/<int:goal_id>/uncomplete")
def uncomplete_goal(goal_id: int):
    result = _goals().uncomplete_goal(goal_id, user_id=current_user_id())
    return jsonify(completion_to_dict(result))


@bp.get("/<int:goal_id>/summary")
def goal_summary(goal_id: int):
    """Progress summary only, for lightweight polling."""

    user_id = current_user_id()
    goal = _goals().require_goal(goal_id, user_id=user_id)
    summary = _goals().summarize(goal, user_id=user_id, today=query_date("asOf"))
    return jsonify(summary.to_dict())
