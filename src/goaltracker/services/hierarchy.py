"""Goal hierarchy rules and completion propagation."""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

from ..domain.repositories import GoalRepository
from ..logging_config import get_logger
from ..models.goal import PARENT_SCOPE, Goal, GoalScope, Progress, ProgressMode
from .dates import utcnow
from .progress import compute_progress_summary, compute_rollup_percent
from .results import CompletionResult, NotFoundError, ParentRollup

logger = get_logger(__name__)


def validate_placement(
    scope: GoalScope,
    parent: Optional[Goal],
    *,
    goal_id: int | None = None,
    child_scopes: Iterable[str] = (),
) -> None:
    """Enforce YEARLY -> MONTHLY -> WEEKLY nesting; STANDALONE stays flat.

    Raises:
        ValueError: when ``parent`` is not exactly one level above ``scope`` or
            an existing child would no longer fit under ``scope``.
    """

    if parent is not None:
        if goal_id is not None and parent.id == goal_id:
            raise ValueError("A goal cannot be its own parent.")
        expected = PARENT_SCOPE.get(scope)
        if expected is None:
            raise ValueError(f"{scope.value} goals cannot have a parent goal.")
        if parent.scope != expected.value:
            raise ValueError(
                f"A {scope.value} goal's parent must be {expected.value}, not {parent.scope}."
            )

    for child_scope in child_scopes:
        if PARENT_SCOPE.get(GoalScope(child_scope)) is not scope:
            raise ValueError(
                f"A {scope.value} goal cannot keep a {child_scope} child goal."
            )


class HierarchyPropagator:
    """Keeps parent rollups consistent with their children's completion flags.

    The child's state change is committed on its own before the parent is
    recomputed, so a rollup failure is reported but never reverts the child.
    """

    def __init__(self, goals: GoalRepository):
        self.goals = goals

    def complete_goal(self, goal_id: int, *, user_id: int) -> CompletionResult:
        return self._set_completion(goal_id, True, user_id=user_id)

    def uncomplete_goal(self, goal_id: int, *, user_id: int) -> CompletionResult:
        return self._set_completion(goal_id, False, user_id=user_id)

    def _set_completion(self, goal_id: int, completed: bool, *, user_id: int) -> CompletionResult:
        goal = self.goals.get_by_id(goal_id, user_id=user_id)
        if goal is None:
            raise NotFoundError("goal", goal_id)

        label = "completed" if completed else "incomplete"
        if goal.is_completed == completed:
            return CompletionResult(
                success=True,
                message=f"Goal was already marked as {label} (no-op)",
                goal=goal,
                changed=False,
            )

        goal = self.goals.set_completion(
            goal_id, completed, user_id=user_id, at=utcnow() if completed else None
        )
        logger.info(
            "Goal marked %s",
            label,
            extra={"goal_id": goal_id, "parent_id": goal.parent_id},
        )
        result = CompletionResult(
            success=True,
            message=f"Goal marked as {label}",
            goal=goal,
            invalidate=["goals", f"goal:{goal_id}"],
        )

        if goal.parent_id is not None:
            result.invalidate.append(f"goal:{goal.parent_id}")
            try:
                self._log_child_change(goal, completed, user_id=user_id)
                result.parent_rollup = self.recompute_parent(goal.parent_id, user_id=user_id)
            except Exception as exc:  # child state stays committed
                logger.exception(
                    "Parent rollup failed",
                    extra={"goal_id": goal_id, "parent_id": goal.parent_id},
                )
                result.rollup_error = f"Parent goal progress could not be updated: {exc}"
        return result

    def _log_child_change(self, child: Goal, completed: bool, *, user_id: int) -> None:
        """Record a +1 or -1 entry on the parent's activity log."""

        label = "completed" if completed else "incomplete"
        entry = Progress(
            goal_id=child.parent_id,
            value=1.0 if completed else -1.0,
            date=utcnow(),
            note=f'Subgoal "{child.title}" marked as {label}',
        )
        self.goals.append_progress(entry, user_id=user_id, increment_current=False)

    def recompute_parent(self, parent_id: int, *, user_id: int) -> ParentRollup:
        """Recompute and persist a parent's pro-rata child rollup."""

        parent = self.goals.get_by_id(parent_id, user_id=user_id)
        if parent is None:
            raise NotFoundError("goal", parent_id)

        children = self.goals.list_children(parent_id, user_id=user_id)
        rollup = compute_rollup_percent(children)
        parent = self.goals.set_rollup(parent_id, rollup, user_id=user_id)

        tasks = []
        entries = []
        mode = ProgressMode(parent.progress_mode)
        if mode is ProgressMode.TASK_BASED:
            tasks = self.goals.list_linked_tasks(parent_id, user_id=user_id)
        elif mode is ProgressMode.HABIT:
            entries = self.goals.list_progress(parent_id, user_id=user_id)
        summary = compute_progress_summary(
            parent, tasks=tasks, children=children, entries=entries, today=date.today()
        )
        logger.debug(
            "Parent rollup recomputed",
            extra={"goal_id": parent_id, "rollup_percent": rollup},
        )
        return ParentRollup(
            goal_id=parent_id,
            rollup_percent=rollup,
            percent_complete=summary.percent_complete,
        )

    def refresh_parent(self, parent_id: int | None, *, user_id: int) -> Optional[ParentRollup]:
        """Best-effort rollup after structural changes (child created, moved or deleted)."""

        if parent_id is None:
            return None
        try:
            return self.recompute_parent(parent_id, user_id=user_id)
        except NotFoundError:
            return None
        except Exception:
            logger.exception("Parent rollup failed", extra={"parent_id": parent_id})
            return None

    def recompute_all(self, *, user_id: int) -> dict[int, float]:
        """Recompute the rollup of every goal that has children."""

        parent_ids = {
            goal.parent_id
            for goal in self.goals.list_all(user_id=user_id)
            if goal.parent_id is not None
        }
        return {
            parent_id: self.recompute_parent(parent_id, user_id=user_id).rollup_percent
            for parent_id in sorted(parent_ids)
        }


__all__ = ["HierarchyPropagator", "validate_placement"]
