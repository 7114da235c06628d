"""Flask CLI commands for GoalTracker."""

from __future__ import annotations

from datetime import date, timedelta

import click

from .logging_config import get_logger

logger = get_logger(__name__)


def seed_demo(users, goals, *, sub: str) -> dict[str, int]:
    """Create a YEARLY -> MONTHLY -> WEEKLY chain with a few linked tasks."""

    user = users.ensure_user(sub, name="Demo User")
    today = date.today()
    week_start = today - timedelta(days=today.weekday())

    yearly = goals.create_goal(
        {
            "title": f"Read 24 books in {today.year}",
            "scope": "YEARLY",
            "start_date": date(today.year, 1, 1),
            "end_date": date(today.year, 12, 31),
        },
        user_id=user.id,
    )
    monthly = goals.create_goal(
        {
            "title": f"Read 2 books in {today:%B}",
            "scope": "MONTHLY",
            "parent_id": yearly.id,
            "start_date": today.replace(day=1),
        },
        user_id=user.id,
    )
    weekly = goals.create_goal(
        {
            "title": "Read 100 pages this week",
            "scope": "WEEKLY",
            "parent_id": monthly.id,
            "progress_mode": "MANUAL_TOTAL",
            "target_value": 100,
            "step_size": 10,
            "start_date": week_start,
            "end_date": week_start + timedelta(days=6),
        },
        user_id=user.id,
    )
    habit = goals.create_goal(
        {
            "title": "Meditate",
            "type": "HABIT",
            "progress_mode": "HABIT",
            "frequency_target": 5,
            "frequency_type": "WEEKLY",
        },
        user_id=user.id,
    )
    tasks = goals.bulk_create_from_pattern(
        monthly.id, "Book {n}", 2, user_id=user.id, scheduled_date=today
    )
    return {
        "user_id": user.id,
        "goals": len([yearly, monthly, weekly, habit]),
        "tasks": len(tasks),
    }


def recompute_rollups(users, goals) -> int:
    """Recompute every parent rollup for every user; returns the goals touched."""

    touched = 0
    for user in users.list_users():
        touched += len(goals.propagator.recompute_all(user_id=user.id))
    return touched


def init_app(app) -> None:
    """Register CLI commands on the Flask app."""

    @app.cli.command("goaltracker-seed")
    @click.option("--subject", default=None, help="Identity subject that owns the demo data")
    def goaltracker_seed(subject: str | None) -> None:
        """Seed a demo goal hierarchy."""

        from .extensions import get_service

        sub = subject or app.config["GOALTRACKER_CONFIG"].DEV_SUBJECT
        click.echo(f"Seeding demo data for {sub}...")
        counts = seed_demo(get_service("users"), get_service("goals"), sub=sub)
        logger.info("Demo data seeded", extra=counts)
        click.echo(f"Created {counts['goals']} goals and {counts['tasks']} tasks.")

    @app.cli.command("goaltracker-rollup")
    def goaltracker_rollup() -> None:
        """Recompute stored parent rollups from child completion flags."""

        from .extensions import get_service

        touched = recompute_rollups(get_service("users"), get_service("goals"))
        click.echo(f"Recomputed {touched} parent rollups.")
