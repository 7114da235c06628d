"""Tests for the Flask CLI commands."""

from __future__ import annotations

from goaltracker.extensions import get_service


def test_seed_creates_hierarchy(app):
    result = app.test_cli_runner().invoke(args=["goaltracker-seed", "--subject", "auth0|demo"])

    assert result.exit_code == 0, result.output
    assert "Created 4 goals and 2 tasks." in result.output
    with app.app_context():
        user = get_service("users").get_by_sub("auth0|demo")
        tree = get_service("goals").goal_tree(user_id=user.id)
    yearly = next(node for node in tree if node.goal.scope == "YEARLY")
    assert yearly.children[0].goal.scope == "MONTHLY"
    assert yearly.children[0].children[0].goal.scope == "WEEKLY"


def test_rollup_recomputes_parents(app):
    runner = app.test_cli_runner()
    runner.invoke(args=["goaltracker-seed"])

    result = runner.invoke(args=["goaltracker-rollup"])

    assert result.exit_code == 0, result.output
    assert "Recomputed 2 parent rollups." in result.output
