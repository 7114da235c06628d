"""Unit tests for the SQLModel repository implementations."""

from datetime import date, datetime, timezone

from goaltracker.models import Goal, Progress, Task


def _goal(user_id: int, title: str, **fields) -> Goal:
    return Goal(user_id=user_id, title=title, **fields)


def test_goal_repository_crud(goal_repo, user):
    created = goal_repo.create(_goal(user.id, "Write"), user_id=user.id)
    assert created.id is not None

    fetched = goal_repo.get_by_id(created.id, user_id=user.id)
    assert fetched.title == "Write"

    fetched.title = "Write daily"
    updated = goal_repo.update(fetched, user_id=user.id)
    assert updated.title == "Write daily"
    assert updated.updated_at >= updated.created_at

    assert goal_repo.delete(created.id, user_id=user.id) == []
    assert goal_repo.get_by_id(created.id, user_id=user.id) is None


def test_goal_repository_scopes_by_user(goal_repo, user, other_user):
    mine = goal_repo.create(_goal(user.id, "Mine"), user_id=user.id)
    goal_repo.create(_goal(other_user.id, "Theirs"), user_id=other_user.id)

    assert [goal.id for goal in goal_repo.list_all(user_id=user.id)] == [mine.id]
    assert goal_repo.get_by_id(mine.id, user_id=other_user.id) is None
    assert goal_repo.delete(mine.id, user_id=other_user.id) == []
    assert goal_repo.get_by_id(mine.id, user_id=user.id) is not None


def test_append_progress_increments_only_when_asked(goal_repo, user):
    goal = goal_repo.create(_goal(user.id, "Pages"), user_id=user.id)
    when = datetime(2024, 2, 1, tzinfo=timezone.utc)

    _, unchanged = goal_repo.append_progress(
        Progress(goal_id=goal.id, value=5, date=when), user_id=user.id, increment_current=False
    )
    _, bumped = goal_repo.append_progress(
        Progress(goal_id=goal.id, value=5, date=when), user_id=user.id, increment_current=True
    )

    assert unchanged.current_value == 0
    assert bumped.current_value == 5
    assert len(goal_repo.list_progress(goal.id, user_id=user.id)) == 2
    assert len(goal_repo.list_progress(goal.id, user_id=user.id, limit=1)) == 1


def test_overlapping_filters_scope(goal_repo, user):
    yearly = goal_repo.create(
        _goal(user.id, "Year", scope="YEARLY", start_date=date(2024, 1, 1), end_date=date(2024, 12, 31)),
        user_id=user.id,
    )
    goal_repo.create(_goal(user.id, "Loose", start_date=date(2024, 1, 1)), user_id=user.id)

    rows = goal_repo.list_overlapping(date(2024, 6, 1), date(2024, 6, 30), user_id=user.id, scope="YEARLY")

    assert [goal.id for goal in rows] == [yearly.id]


def test_task_repository_links(task_repo, goal_repo, user):
    goal = goal_repo.create(_goal(user.id, "G"), user_id=user.id)
    task = task_repo.create(Task(user_id=user.id, title="T"), user_id=user.id, goal_ids=[goal.id])

    assert task_repo.link(task.id, goal.id) is False
    assert task_repo.unlink(task.id, goal.id) is True
    assert task_repo.unlink(task.id, goal.id) is False
    assert task_repo.linked_goals([task.id], user_id=user.id) == {task.id: []}
    assert task_repo.link(task.id, goal.id) is True
    assert task_repo.linked_goals([task.id], user_id=user.id)[task.id] == [
        {"id": goal.id, "title": "G", "scope": "STANDALONE"}
    ]


def test_task_range_orders_by_day_then_time(task_repo, user):
    late = task_repo.create(
        Task(user_id=user.id, title="Late", scheduled_date=date(2024, 3, 1), scheduled_time="18:00"),
        user_id=user.id,
    )
    early = task_repo.create(
        Task(user_id=user.id, title="Early", scheduled_date=date(2024, 3, 1), scheduled_time="08:00"),
        user_id=user.id,
    )
    next_day = task_repo.create(
        Task(user_id=user.id, title="Next", scheduled_date=date(2024, 3, 2)), user_id=user.id
    )

    rows = task_repo.list_in_range(date(2024, 3, 1), date(2024, 3, 2), user_id=user.id)

    assert [task.id for task in rows] == [early.id, late.id, next_day.id]
