"""Task routes."""

from __future__ import annotations

from flask import jsonify

from . import bp
from ...auth import current_user_id
from ...extensions import get_service
from ...services.dates import parse_date_only
from ..serializers import task_detail_to_dict
from .forms import GoalLinkForm, TaskCreateForm, TaskUpdateForm


def _tasks():
    return get_service("tasks")


def _task_response(detail, *, status: int = 200, extra_keys=()):
    invalidate = ["tasks", f"task:{detail.task.id}", "goals"]
    invalidate += [f"goal:{goal['id']}" for goal in detail.goals]
    invalidate += [key for key in extra_keys if key not in invalidate]
    return jsonify({"task": task_detail_to_dict(detail), "invalidate": invalidate}), status


@bp.get("")
def list_tasks():
    details = _tasks().list_tasks(user_id=current_user_id())
    return jsonify([task_detail_to_dict(detail) for detail in details])


@bp.post("")
def create_task():
    form = TaskCreateForm.from_request()
    detail = _tasks().create_task(
        form.to_fields(exclude=("goal_ids",)),
        user_id=current_user_id(),
        goal_ids=form.goal_ids,
    )
    return _task_response(detail, status=201)


@bp.get("/<int:task_id>")
def get_task(task_id: int):
    return jsonify(task_detail_to_dict(_tasks().get_task(task_id, user_id=current_user_id())))


@bp.put("/<int:task_id>")
def update_task(task_id: int):
    form = TaskUpdateForm.from_request()
    detail = _tasks().update_task(task_id, form.to_fields(), user_id=current_user_id())
    return _task_response(detail)


@bp.delete("/<int:task_id>")
def delete_task(task_id: int):
    """Delete a task together with its goal links."""

    goal_ids = _tasks().delete_task(task_id, user_id=current_user_id())
    invalidate = ["tasks", f"task:{task_id}", "goals"] + [f"goal:{goal_id}" for goal_id in goal_ids]
    return jsonify({"message": "Task deleted", "invalidate": invalidate})


@bp.post("/<int:task_id>/complete")
def toggle_complete(task_id: int):
    detail = _tasks().toggle_complete(task_id, user_id=current_user_id())
    return _task_response(detail)


@bp.get("/scheduled/<day>")
def scheduled_on(day: str):
    details = _tasks().scheduled_on(parse_date_only(day), user_id=current_user_id())
    return jsonify([task_detail_to_dict(detail) for detail in details])


@bp.get("/unscheduled/list")
def unscheduled():
    details = _tasks().unscheduled(user_id=current_user_id())
    return jsonify([task_detail_to_dict(detail) for detail in details])


@bp.post("/<int:task_id>/link-goal")
def link_goal(task_id: int):
    form = GoalLinkForm.from_request()
    detail = _tasks().link_goal(task_id, form.goal_id, user_id=current_user_id())
    return _task_response(detail)


@bp.post("/<int:task_id>/unlink-goal")
def unlink_goal(task_id: int):
    form = GoalLinkForm.from_request()
    detail = _tasks().unlink_goal(task_id, form.goal_id, user_id=current_user_id())
    return _task_response(detail, extra_keys=[f"goal:{form.goal_id}"])
