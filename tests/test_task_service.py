"""Tests for the task store, scheduling queries and goal links."""

from __future__ import annotations

from datetime import date

import pytest
from sqlmodel import select

from goaltracker.models import GoalTask
from goaltracker.services.results import NotFoundError
from goaltracker.services.tasks import UNSCHEDULED_CALENDAR_LIMIT


def _link_rows(session_factory, task_id: int) -> list[GoalTask]:
    with session_factory() as session:
        rows = list(session.exec(select(GoalTask).where(GoalTask.task_id == task_id)).all())
        session.expunge_all()
        return rows


class TestCrud:
    def test_create_with_links(self, task_service, goal_factory, user):
        first = goal_factory("A")
        second = goal_factory("B")
        detail = task_service.create_task(
            {"title": "Write", "size": 2, "priority": "HIGH", "scheduled_time": "09:30"},
            user_id=user.id,
            goal_ids=[first.id, second.id, first.id],
        )

        assert detail.task.priority == "HIGH"
        assert [goal["id"] for goal in detail.goals] == [first.id, second.id]

    def test_create_with_foreign_goal_rejected(self, task_service, goal_factory, other_user, user):
        foreign = goal_factory("Theirs", owner=other_user)
        with pytest.raises(NotFoundError):
            task_service.create_task({"title": "Sneaky"}, user_id=user.id, goal_ids=[foreign.id])

    @pytest.mark.parametrize(
        "fields, message",
        [
            ({"title": ""}, "Title"),
            ({"title": "X", "size": 0}, "Size"),
            ({"title": "X", "scheduled_time": "25:00"}, "time"),
            ({"title": "X", "priority": "URGENT"}, "priority"),
            ({"title": "X", "estimated_duration_minutes": 0}, "duration"),
        ],
    )
    def test_validation(self, task_service, user, fields, message):
        with pytest.raises(ValueError, match=message):
            task_service.create_task(fields, user_id=user.id)

    def test_update_partial(self, task_service, task_factory, user):
        task = task_factory("Draft", category="writing", scheduled_date=date(2024, 1, 5))
        detail = task_service.update_task(task.id, {"scheduled_date": None}, user_id=user.id)
        assert detail.task.scheduled_date is None
        assert detail.task.category == "writing"

    def test_delete_removes_links(self, task_service, goal_service, task_factory, goal_factory, session_factory, user):
        goal = goal_factory("G")
        task = task_factory("T", goal_ids=(goal.id,))

        goal_ids = task_service.delete_task(task.id, user_id=user.id)

        assert goal_ids == [goal.id]
        assert _link_rows(session_factory, task.id) == []
        assert goal_service.goal_tasks(goal.id, user_id=user.id).tasks == []
        with pytest.raises(NotFoundError):
            task_service.get_task(task.id, user_id=user.id)


class TestCompletion:
    def test_toggle_sets_and_clears_completed_at(self, task_service, task_factory, user):
        task = task_factory("Flip")

        done = task_service.toggle_complete(task.id, user_id=user.id).task
        assert done.is_completed is True
        assert done.completed_at is not None

        reopened = task_service.toggle_complete(task.id, user_id=user.id).task
        assert reopened.is_completed is False
        assert reopened.completed_at is None

    def test_completing_task_moves_goal_progress(self, task_service, goal_service, goal_factory, task_factory, user):
        goal = goal_factory("Ship")
        first = task_factory("One", goal_ids=(goal.id,))
        task_factory("Two", goal_ids=(goal.id,))

        task_service.toggle_complete(first.id, user_id=user.id)

        assert goal_service.get_goal(goal.id, user_id=user.id).summary.percent_complete == 50

    def test_toggle_logged_on_task_based_goals(self, task_service, goal_service, goal_factory, task_factory, user):
        tracked = goal_factory("Ship")
        manual = goal_factory("Pages", progress_mode="MANUAL_TOTAL", target_value=10)
        task = task_factory("Draft", goal_ids=(tracked.id, manual.id), size=3)

        task_service.toggle_complete(task.id, user_id=user.id)
        entries = goal_service.goal_activities(tracked.id, user_id=user.id)
        assert [(entry.value, entry.note) for entry in entries] == [(3, 'Task "Draft" completed')]

        task_service.toggle_complete(task.id, user_id=user.id)
        entries = goal_service.goal_activities(tracked.id, user_id=user.id)
        assert sorted(entry.value for entry in entries) == [-3, 3]
        assert any(entry.note == 'Task "Draft" reopened' for entry in entries)

        assert goal_service.goal_activities(manual.id, user_id=user.id) == []
        assert goal_service.require_goal(manual.id, user_id=user.id).current_value == 0

    def test_update_without_toggle_logs_nothing(self, task_service, goal_service, goal_factory, task_factory, user):
        goal = goal_factory("Ship")
        task = task_factory("Draft", goal_ids=(goal.id,))

        task_service.update_task(task.id, {"title": "Final draft"}, user_id=user.id)

        assert goal_service.goal_activities(goal.id, user_id=user.id) == []


class TestLinks:
    def test_link_is_idempotent(self, task_service, task_factory, goal_factory, session_factory, user):
        goal = goal_factory("G")
        task = task_factory("T")

        task_service.link_goal(task.id, goal.id, user_id=user.id)
        detail = task_service.link_goal(task.id, goal.id, user_id=user.id)

        assert len(_link_rows(session_factory, task.id)) == 1
        assert [linked["id"] for linked in detail.goals] == [goal.id]

    def test_unlink_is_idempotent(self, task_service, task_factory, goal_factory, user):
        goal = goal_factory("G")
        task = task_factory("T", goal_ids=(goal.id,))

        task_service.unlink_goal(task.id, goal.id, user_id=user.id)
        detail = task_service.unlink_goal(task.id, goal.id, user_id=user.id)

        assert detail.goals == []

    def test_link_to_missing_goal(self, task_service, task_factory, user):
        task = task_factory("T")
        with pytest.raises(NotFoundError):
            task_service.link_goal(task.id, 999, user_id=user.id)


class TestScheduling:
    def test_scheduled_on_day(self, task_service, task_factory, user):
        today = task_factory("Today", scheduled_date=date(2024, 3, 1))
        task_factory("Tomorrow", scheduled_date=date(2024, 3, 2))

        details = task_service.scheduled_on(date(2024, 3, 1), user_id=user.id)

        assert [detail.task.id for detail in details] == [today.id]

    def test_unscheduled_excludes_completed(self, task_service, task_factory, user):
        open_task = task_factory("Someday")
        task_factory("Done", is_completed=True)
        task_factory("Dated", scheduled_date=date(2024, 3, 1))

        details = task_service.unscheduled(user_id=user.id)

        assert [detail.task.id for detail in details] == [open_task.id]

    def test_calendar_range_and_goal_filter(self, task_service, task_factory, goal_factory, user):
        goal = goal_factory("G")
        inside = task_factory("In", scheduled_date=date(2024, 3, 5), goal_ids=(goal.id,))
        task_factory("Unlinked", scheduled_date=date(2024, 3, 6))
        task_factory("Out", scheduled_date=date(2024, 4, 1), goal_ids=(goal.id,))

        result = task_service.calendar_tasks(
            date(2024, 3, 1), date(2024, 3, 31), user_id=user.id, goal_id=goal.id
        )

        assert [detail.task.id for detail in result.tasks] == [inside.id]
        assert result.unscheduled is None

    def test_calendar_unscheduled_is_capped(self, task_service, goal_service, goal_factory, user):
        goal = goal_factory("Backlog")
        goal_service.bulk_create_from_pattern(goal.id, "Item {n}", 60, user_id=user.id)

        result = task_service.calendar_tasks(
            date(2024, 3, 1), date(2024, 3, 31), user_id=user.id, include_unscheduled=True
        )

        assert result.tasks == []
        assert len(result.unscheduled) == UNSCHEDULED_CALENDAR_LIMIT

    def test_calendar_rejects_inverted_range(self, task_service, user):
        with pytest.raises(ValueError):
            task_service.calendar_tasks(date(2024, 3, 2), date(2024, 3, 1), user_id=user.id)
