"""Calendar routes."""

from __future__ import annotations

from flask import jsonify, request

from . import bp
from ...auth import current_user_id
from ...extensions import get_service
from ..api import query_date, query_flag
from ..serializers import goal_detail_to_dict, task_detail_to_dict


def _required_range() -> tuple:
    start, end = query_date("startDate"), query_date("endDate")
    if start is None or end is None:
        raise ValueError("startDate and endDate are required.")
    return start, end


@bp.get("/tasks")
def calendar_tasks():
    """Tasks scheduled in the range, optionally with unscheduled open tasks."""

    start, end = _required_range()
    goal_id = request.args.get("parentGoalId", type=int)
    result = get_service("tasks").calendar_tasks(
        start,
        end,
        user_id=current_user_id(),
        include_unscheduled=query_flag("includeUnscheduled"),
        goal_id=goal_id,
    )
    payload = {"tasks": [task_detail_to_dict(detail) for detail in result.tasks]}
    if result.unscheduled is not None:
        payload["unscheduledTasks"] = [task_detail_to_dict(detail) for detail in result.unscheduled]
    return jsonify(payload)


@bp.get("/goals")
def calendar_goals():
    """Goals whose start/end window overlaps the range."""

    start, end = _required_range()
    scope = request.args.get("scope", "").strip().upper() or None
    details = get_service("goals").goals_in_range(
        start, end, user_id=current_user_id(), scope=scope
    )
    return jsonify([goal_detail_to_dict(detail) for detail in details])
