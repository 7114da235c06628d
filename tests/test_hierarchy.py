"""Tests for hierarchy placement rules and completion propagation."""

from __future__ import annotations

import pytest

from goaltracker.models import GoalScope
from goaltracker.services.hierarchy import validate_placement
from goaltracker.services.results import NotFoundError


class TestPlacement:
    def test_monthly_under_yearly(self, goal_factory):
        yearly = goal_factory("Year", scope="YEARLY")
        monthly = goal_factory("Month", scope="MONTHLY", parent_id=yearly.id)
        assert monthly.parent_id == yearly.id

    def test_weekly_under_yearly_rejected(self, goal_factory):
        yearly = goal_factory("Year", scope="YEARLY")
        with pytest.raises(ValueError, match="parent must be MONTHLY"):
            goal_factory("Week", scope="WEEKLY", parent_id=yearly.id)

    @pytest.mark.parametrize("scope", ["YEARLY", "STANDALONE"])
    def test_top_level_scopes_take_no_parent(self, goal_factory, scope):
        yearly = goal_factory("Year", scope="YEARLY")
        with pytest.raises(ValueError, match="cannot have a parent"):
            goal_factory("Nested", scope=scope, parent_id=yearly.id)

    def test_unknown_parent(self, goal_factory):
        with pytest.raises(NotFoundError):
            goal_factory("Orphan", scope="MONTHLY", parent_id=9999)

    def test_other_users_parent_is_not_found(self, goal_factory, other_user):
        foreign = goal_factory("Theirs", scope="YEARLY", owner=other_user)
        with pytest.raises(NotFoundError):
            goal_factory("Mine", scope="MONTHLY", parent_id=foreign.id)

    def test_rescoping_parent_with_children_rejected(self, goal_service, yearly_chain, user):
        yearly, monthly, _ = yearly_chain
        with pytest.raises(ValueError, match="cannot keep"):
            goal_service.update_goal(monthly.id, {"scope": "WEEKLY", "parent_id": None}, user_id=user.id)

    def test_goal_cannot_parent_itself(self, goal_service, goal_factory, user):
        monthly = goal_factory("Month", scope="MONTHLY")
        with pytest.raises(ValueError):
            goal_service.update_goal(monthly.id, {"parent_id": monthly.id}, user_id=user.id)

    def test_pure_check_without_parent(self):
        validate_placement(GoalScope.WEEKLY, None)


class TestCompletion:
    def test_complete_then_uncomplete_rolls_parent(self, goal_service, goal_factory, user):
        yearly = goal_factory("G1", scope="YEARLY")
        child = goal_factory("G2", scope="MONTHLY", parent_id=yearly.id)

        done = goal_service.complete_goal(child.id, user_id=user.id)
        assert done.changed is True
        assert done.goal.is_completed is True
        assert done.goal.completed_at is not None
        assert done.parent_rollup.rollup_percent == 100
        assert goal_service.get_goal(yearly.id, user_id=user.id).summary.percent_complete == 100
        assert f"goal:{yearly.id}" in done.invalidate

        undone = goal_service.uncomplete_goal(child.id, user_id=user.id)
        assert undone.goal.is_completed is False
        assert undone.goal.completed_at is None
        assert undone.parent_rollup.rollup_percent == 0
        assert goal_service.get_goal(yearly.id, user_id=user.id).summary.percent_complete == 0

    def test_rollup_is_pro_rata(self, goal_service, goal_factory, user):
        yearly = goal_factory("Year", scope="YEARLY")
        months = [goal_factory(f"M{i}", scope="MONTHLY", parent_id=yearly.id) for i in range(4)]

        goal_service.complete_goal(months[0].id, user_id=user.id)
        result = goal_service.complete_goal(months[1].id, user_id=user.id)

        assert result.parent_rollup.rollup_percent == pytest.approx(50.0)
        assert goal_service.require_goal(yearly.id, user_id=user.id).rollup_percent == pytest.approx(50.0)

    def test_repeat_completion_is_noop(self, goal_service, goal_factory, user):
        goal = goal_factory("Once")
        first = goal_service.complete_goal(goal.id, user_id=user.id)
        second = goal_service.complete_goal(goal.id, user_id=user.id)

        assert second.success is True
        assert second.changed is False
        assert "no-op" in second.message
        assert second.goal.completed_at == first.goal.completed_at

    def test_uncomplete_open_goal_is_noop(self, goal_service, goal_factory, user):
        goal = goal_factory("Open")
        result = goal_service.uncomplete_goal(goal.id, user_id=user.id)
        assert result.changed is False
        assert result.goal.is_completed is False

    def test_rollup_failure_keeps_child_completed(
        self, goal_service, goal_repo, yearly_chain, user, monkeypatch
    ):
        _, monthly, weekly = yearly_chain

        def broken_rollup(*args, **kwargs):
            raise RuntimeError("database is locked")

        monkeypatch.setattr(goal_repo, "set_rollup", broken_rollup)
        result = goal_service.complete_goal(weekly.id, user_id=user.id)

        assert result.success is True
        assert result.parent_rollup is None
        assert "database is locked" in result.rollup_error
        assert goal_service.require_goal(weekly.id, user_id=user.id).is_completed is True
        assert goal_service.require_goal(monthly.id, user_id=user.id).rollup_percent in (None, 0)

    def test_missing_goal(self, goal_service, user):
        with pytest.raises(NotFoundError):
            goal_service.complete_goal(12345, user_id=user.id)

    def test_recompute_all(self, goal_service, yearly_chain, goal_repo, user):
        yearly, monthly, weekly = yearly_chain
        goal_repo.set_completion(weekly.id, True, user_id=user.id, at=None)

        rollups = goal_service.propagator.recompute_all(user_id=user.id)

        assert rollups == {yearly.id: 0.0, monthly.id: 100.0}

    def test_child_completion_logged_on_parent(self, goal_service, goal_factory, user):
        yearly = goal_factory("Year", scope="YEARLY")
        child = goal_factory("Spring", scope="MONTHLY", parent_id=yearly.id)

        goal_service.complete_goal(child.id, user_id=user.id)
        entries = goal_service.goal_activities(yearly.id, user_id=user.id)
        assert [entry.value for entry in entries] == [1]
        assert entries[0].note == 'Subgoal "Spring" marked as completed'

        goal_service.uncomplete_goal(child.id, user_id=user.id)
        entries = goal_service.goal_activities(yearly.id, user_id=user.id)
        assert sorted(entry.value for entry in entries) == [-1, 1]
        assert any(entry.note == 'Subgoal "Spring" marked as incomplete' for entry in entries)
        assert goal_service.require_goal(yearly.id, user_id=user.id).current_value == 0

    def test_noop_completion_writes_no_entry(self, goal_service, goal_factory, user):
        yearly = goal_factory("Year", scope="YEARLY")
        child = goal_factory("Month", scope="MONTHLY", parent_id=yearly.id)

        goal_service.complete_goal(child.id, user_id=user.id)
        goal_service.complete_goal(child.id, user_id=user.id)

        assert len(goal_service.goal_activities(yearly.id, user_id=user.id)) == 1

    def test_habit_parent_counts_child_completions(self, goal_service, goal_factory, user):
        yearly = goal_factory(
            "Habit year",
            scope="YEARLY",
            type="HABIT",
            progress_mode="HABIT",
            frequency_type="MONTHLY",
            frequency_target=4,
        )
        child = goal_factory("Month", scope="MONTHLY", parent_id=yearly.id)

        goal_service.complete_goal(child.id, user_id=user.id)
        assert goal_service.get_goal(yearly.id, user_id=user.id).summary.habit_window.count == 1

        goal_service.uncomplete_goal(child.id, user_id=user.id)
        assert goal_service.get_goal(yearly.id, user_id=user.id).summary.habit_window.count == 0
