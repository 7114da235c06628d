"""Goal store: CRUD, progress logging, tree views and bulk task creation."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import date, datetime, time, timezone
from typing import Any, Iterable, Optional

from ..domain.repositories import GoalRepository, TaskRepository
from ..logging_config import get_logger
from ..models.goal import FrequencyType, Goal, GoalScope, GoalType, Progress, ProgressMode
from ..models.task import Task
from .dates import utcnow
from .hierarchy import HierarchyPropagator, validate_placement
from .progress import ProgressSummary, compute_progress_summary
from .results import CompletionResult, NotFoundError

logger = get_logger(__name__)

TITLE_PLACEHOLDER = "{n}"
MIN_BULK_TASKS = 1
MAX_BULK_TASKS = 100
TREE_DEPTH = 3
RECENT_PROGRESS_LIMIT = 5

# Fields callers may set through create/update payloads.
GOAL_FIELDS = (
    "title",
    "description",
    "type",
    "progress_mode",
    "target_value",
    "step_size",
    "frequency_target",
    "frequency_type",
    "scope",
    "parent_id",
    "custom_data_label",
    "start_date",
    "end_date",
)


def expand_title_pattern(pattern: str, count: int) -> list[str]:
    """Expand ``"Book {n}"`` into ``["Book 1", ..., "Book <count>"]``."""

    if TITLE_PLACEHOLDER not in pattern:
        raise ValueError(f"Title pattern must contain the {TITLE_PLACEHOLDER} placeholder.")
    if not MIN_BULK_TASKS <= count <= MAX_BULK_TASKS:
        raise ValueError(f"Count must be between {MIN_BULK_TASKS} and {MAX_BULK_TASKS}.")
    return [pattern.replace(TITLE_PLACEHOLDER, str(index)) for index in range(1, count + 1)]


@dataclass(slots=True)
class GoalDetail:
    """A goal together with whatever related rows a view needs."""

    goal: Goal
    parent: Optional[Goal] = None
    children: list["GoalDetail"] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    recent_progress: list[Progress] = field(default_factory=list)
    summary: Optional[ProgressSummary] = None


def _normalize_fields(changes: dict[str, Any]) -> dict[str, Any]:
    """Coerce enum-valued fields and drop keys that are not goal attributes."""

    unknown = set(changes) - set(GOAL_FIELDS)
    if unknown:
        raise ValueError(f"Unknown goal field(s): {', '.join(sorted(unknown))}")

    normalized = dict(changes)
    enum_fields = {
        "type": GoalType,
        "progress_mode": ProgressMode,
        "scope": GoalScope,
        "frequency_type": FrequencyType,
    }
    for key, enum_cls in enum_fields.items():
        value = normalized.get(key)
        if value is None:
            continue
        try:
            normalized[key] = enum_cls(value).value
        except ValueError as exc:
            allowed = ", ".join(member.value for member in enum_cls)
            raise ValueError(f"Invalid {key} {value!r}; expected one of {allowed}.") from exc

    if "title" in normalized:
        title = (normalized["title"] or "").strip()
        if not title:
            raise ValueError("Title is required.")
        normalized["title"] = title
    return normalized


def _check_values(goal: Goal) -> None:
    if goal.target_value is not None and goal.target_value < 0:
        raise ValueError("Target value cannot be negative.")
    if goal.step_size is None or goal.step_size <= 0:
        raise ValueError("Step size must be greater than zero.")
    if goal.frequency_target is not None and goal.frequency_target < 1:
        raise ValueError("Frequency target must be at least 1.")
    if goal.end_date is not None and goal.start_date and goal.end_date < goal.start_date:
        raise ValueError("End date cannot be before the start date.")


class GoalService:
    """Explicit goal store used by the API and CLI in place of ambient caches."""

    def __init__(
        self,
        goals: GoalRepository,
        tasks: TaskRepository,
        propagator: HierarchyPropagator | None = None,
    ):
        self.goals = goals
        self.tasks = tasks
        self.propagator = propagator or HierarchyPropagator(goals)

    # Lookups -----------------------------------------------------------------

    def require_goal(self, goal_id: int, *, user_id: int) -> Goal:
        goal = self.goals.get_by_id(goal_id, user_id=user_id)
        if goal is None:
            raise NotFoundError("goal", goal_id)
        return goal

    def summarize(
        self,
        goal: Goal,
        *,
        user_id: int,
        tasks: list[Task] | None = None,
        children: list[Goal] | None = None,
        today: date | None = None,
    ) -> ProgressSummary:
        """Compute a goal's progress summary, loading only what its mode needs."""

        mode = ProgressMode(goal.progress_mode)
        entries: list[Progress] = []
        if mode is ProgressMode.TASK_BASED:
            if tasks is None:
                tasks = self.goals.list_linked_tasks(goal.id, user_id=user_id)
            if children is None:
                children = self.goals.list_children(goal.id, user_id=user_id)
        elif mode is ProgressMode.HABIT:
            entries = self.goals.list_progress(goal.id, user_id=user_id)
        return compute_progress_summary(
            goal, tasks=tasks or [], children=children or [], entries=entries, today=today
        )

    def get_goal(self, goal_id: int, *, user_id: int) -> GoalDetail:
        """Full detail view: parent, children, linked tasks and progress summary."""

        goal = self.require_goal(goal_id, user_id=user_id)
        parent = (
            self.goals.get_by_id(goal.parent_id, user_id=user_id) if goal.parent_id else None
        )
        children = self.goals.list_children(goal_id, user_id=user_id)
        tasks = self.goals.list_linked_tasks(goal_id, user_id=user_id)
        return GoalDetail(
            goal=goal,
            parent=parent,
            children=[GoalDetail(goal=child) for child in children],
            tasks=tasks,
            summary=self.summarize(goal, user_id=user_id, tasks=tasks, children=children),
        )

    def list_goals(
        self,
        *,
        user_id: int,
        include_completed: bool = False,
        start_date: date | None = None,
        end_date: date | None = None,
    ) -> list[GoalDetail]:
        """Goals created inside ``[start_date, end_date]``; defaults to the current year."""

        today = date.today()
        start_date = start_date or date(today.year, 1, 1)
        end_date = end_date or date(today.year, 12, 31)
        rows = self.goals.list_goals(
            user_id=user_id,
            include_completed=include_completed,
            created_from=datetime.combine(start_date, time.min, tzinfo=timezone.utc),
            created_to=datetime.combine(end_date, time.max, tzinfo=timezone.utc),
        )
        parents = self._parents_for(rows, user_id=user_id)
        return [GoalDetail(goal=goal, parent=parents.get(goal.parent_id)) for goal in rows]

    def goals_by_scope(self, scope: str, *, user_id: int) -> list[GoalDetail]:
        scope_value = _normalize_fields({"scope": scope})["scope"]
        rows = self.goals.list_by_scope(scope_value, user_id=user_id)
        parents = self._parents_for(rows, user_id=user_id)
        details = []
        for goal in rows:
            children = self.goals.list_children(goal.id, user_id=user_id)
            tasks = self.goals.list_linked_tasks(goal.id, user_id=user_id)
            details.append(
                GoalDetail(
                    goal=goal,
                    parent=parents.get(goal.parent_id),
                    children=[GoalDetail(goal=child) for child in children],
                    tasks=tasks,
                    recent_progress=self.goals.list_progress(
                        goal.id, user_id=user_id, limit=RECENT_PROGRESS_LIMIT
                    ),
                    summary=self.summarize(goal, user_id=user_id, tasks=tasks, children=children),
                )
            )
        return details

    def goal_tree(self, *, user_id: int) -> list[GoalDetail]:
        """Root goals with nested children, each node summarized."""

        by_parent: dict[int, list[Goal]] = {}
        for goal in self.goals.list_all(user_id=user_id):
            if goal.parent_id is not None:
                by_parent.setdefault(goal.parent_id, []).append(goal)
        for siblings in by_parent.values():
            siblings.sort(key=lambda item: (item.created_at, item.id), reverse=True)

        def build(goal: Goal, depth: int) -> GoalDetail:
            children = by_parent.get(goal.id, [])
            tasks = self.goals.list_linked_tasks(goal.id, user_id=user_id)
            node = GoalDetail(
                goal=goal,
                tasks=tasks,
                summary=self.summarize(goal, user_id=user_id, tasks=tasks, children=children),
            )
            if depth < TREE_DEPTH:
                node.children = [build(child, depth + 1) for child in children]
            return node

        roots = []
        for root in self.goals.list_roots(user_id=user_id):
            node = build(root, 0)
            node.recent_progress = self.goals.list_progress(
                root.id, user_id=user_id, limit=RECENT_PROGRESS_LIMIT
            )
            roots.append(node)
        return roots

    def goal_tasks(self, goal_id: int, *, user_id: int) -> GoalDetail:
        """Linked tasks and direct children of a goal."""

        goal = self.require_goal(goal_id, user_id=user_id)
        return GoalDetail(
            goal=goal,
            tasks=self.goals.list_linked_tasks(goal_id, user_id=user_id),
            children=[
                GoalDetail(goal=child)
                for child in self.goals.list_children(goal_id, user_id=user_id)
            ],
        )

    def goal_activities(self, goal_id: int, *, user_id: int) -> list[Progress]:
        """The goal's progress log, newest first."""

        self.require_goal(goal_id, user_id=user_id)
        return self.goals.list_progress(goal_id, user_id=user_id)

    def goals_in_range(
        self, start: date, end: date, *, user_id: int, scope: str | None = None
    ) -> list[GoalDetail]:
        """Goals active at some point inside ``[start, end]`` for calendar views."""

        if end < start:
            raise ValueError("endDate cannot be before startDate.")
        if scope is not None:
            scope = _normalize_fields({"scope": scope})["scope"]
        rows = self.goals.list_overlapping(start, end, user_id=user_id, scope=scope)
        parents = self._parents_for(rows, user_id=user_id)
        details = []
        for goal in rows:
            tasks = self.goals.list_linked_tasks(goal.id, user_id=user_id)
            details.append(GoalDetail(goal=goal, parent=parents.get(goal.parent_id), tasks=tasks))
        return details

    def _parents_for(self, goals: Iterable[Goal], *, user_id: int) -> dict[int, Goal]:
        parents: dict[int, Goal] = {}
        for parent_id in {goal.parent_id for goal in goals if goal.parent_id is not None}:
            parent = self.goals.get_by_id(parent_id, user_id=user_id)
            if parent is not None:
                parents[parent_id] = parent
        return parents

    # Mutations -------------------------------------------------------------------

    def create_goal(self, fields: dict[str, Any], *, user_id: int) -> Goal:
        """Validate placement and persist a new goal."""

        values = _normalize_fields({key: value for key, value in fields.items() if value is not None})
        if "title" not in values:
            raise ValueError("Title is required.")

        goal = Goal(user_id=user_id, **values)
        parent = None
        if goal.parent_id is not None:
            parent = self.goals.get_by_id(goal.parent_id, user_id=user_id)
            if parent is None:
                raise NotFoundError("goal", goal.parent_id)
        validate_placement(GoalScope(goal.scope), parent)
        _check_values(goal)

        created = self.goals.create(goal, user_id=user_id)
        logger.info(
            "Goal created",
            extra={"goal_id": created.id, "scope": created.scope, "parent_id": created.parent_id},
        )
        self.propagator.refresh_parent(created.parent_id, user_id=user_id)
        return created

    def update_goal(self, goal_id: int, changes: dict[str, Any], *, user_id: int) -> Goal:
        """Apply a partial update; only keys present in ``changes`` are touched."""

        goal = self.require_goal(goal_id, user_id=user_id)
        previous_parent_id = goal.parent_id
        values = _normalize_fields(changes)
        for key, value in values.items():
            setattr(goal, key, value)
        if goal.step_size is None:
            goal.step_size = 1.0

        if {"scope", "parent_id"} & values.keys():
            parent = None
            if goal.parent_id is not None:
                parent = self.goals.get_by_id(goal.parent_id, user_id=user_id)
                if parent is None:
                    raise NotFoundError("goal", goal.parent_id)
            children = self.goals.list_children(goal_id, user_id=user_id)
            validate_placement(
                GoalScope(goal.scope),
                parent,
                goal_id=goal_id,
                child_scopes=[child.scope for child in children],
            )
        _check_values(goal)

        updated = self.goals.update(goal, user_id=user_id)
        logger.info("Goal updated", extra={"goal_id": goal_id, "fields": sorted(values)})
        if previous_parent_id != updated.parent_id:
            self.propagator.refresh_parent(previous_parent_id, user_id=user_id)
            self.propagator.refresh_parent(updated.parent_id, user_id=user_id)
        return updated

    def delete_goal(self, goal_id: int, *, user_id: int) -> list[int]:
        """Delete a goal and return the IDs of children that were orphaned."""

        goal = self.require_goal(goal_id, user_id=user_id)
        orphaned = self.goals.delete(goal_id, user_id=user_id)
        logger.info("Goal deleted", extra={"goal_id": goal_id, "orphaned_children": orphaned})
        self.propagator.refresh_parent(goal.parent_id, user_id=user_id)
        return orphaned

    def log_progress(
        self,
        goal_id: int,
        value: float,
        *,
        user_id: int,
        note: str | None = None,
        logged_at: datetime | None = None,
        custom_data: str | None = None,
    ) -> tuple[Progress, Goal]:
        """Append a progress entry; MANUAL_TOTAL goals accumulate it into ``current_value``."""

        goal = self.require_goal(goal_id, user_id=user_id)
        if value is None or not math.isfinite(value) or value == 0:
            raise ValueError("Progress value must be a non-zero number.")
        if goal.custom_data_label and not (custom_data or "").strip():
            raise ValueError(f"{goal.custom_data_label} is required when logging progress.")

        entry = Progress(
            goal_id=goal_id,
            value=value,
            date=logged_at or utcnow(),
            note=(note or "").strip() or None,
            custom_data=(custom_data or "").strip() or None,
        )
        is_manual = ProgressMode(goal.progress_mode) is ProgressMode.MANUAL_TOTAL
        entry, goal = self.goals.append_progress(entry, user_id=user_id, increment_current=is_manual)
        logger.info(
            "Progress logged",
            extra={"goal_id": goal_id, "value": value, "current_value": goal.current_value},
        )
        return entry, goal

    def complete_goal(self, goal_id: int, *, user_id: int) -> CompletionResult:
        return self.propagator.complete_goal(goal_id, user_id=user_id)

    def uncomplete_goal(self, goal_id: int, *, user_id: int) -> CompletionResult:
        return self.propagator.uncomplete_goal(goal_id, user_id=user_id)

    def bulk_create_tasks(
        self, goal_id: int, drafts: list[dict[str, Any]], *, user_id: int
    ) -> list[Task]:
        """Create ``drafts`` (``title``, ``scheduled_date``, ``size``) linked to the goal."""

        self.require_goal(goal_id, user_id=user_id)
        if not MIN_BULK_TASKS <= len(drafts) <= MAX_BULK_TASKS:
            raise ValueError(f"Provide between {MIN_BULK_TASKS} and {MAX_BULK_TASKS} tasks.")

        tasks = []
        for index, draft in enumerate(drafts, start=1):
            title = (draft.get("title") or "").strip()
            if not title:
                raise ValueError(f"Task {index} is missing a title.")
            size = draft.get("size") or 1
            if size < 1:
                raise ValueError(f"Task {index} size must be at least 1.")
            tasks.append(
                Task(
                    user_id=user_id,
                    title=title,
                    scheduled_date=draft.get("scheduled_date"),
                    size=size,
                )
            )

        created = self.tasks.bulk_create(tasks, goal_id, user_id=user_id)
        logger.info("Bulk tasks created", extra={"goal_id": goal_id, "count": len(created)})
        return created

    def bulk_create_from_pattern(
        self,
        goal_id: int,
        pattern: str,
        count: int,
        *,
        user_id: int,
        scheduled_date: date | None = None,
        size: int = 1,
    ) -> list[Task]:
        titles = expand_title_pattern(pattern, count)
        drafts = [{"title": title, "scheduled_date": scheduled_date, "size": size} for title in titles]
        return self.bulk_create_tasks(goal_id, drafts, user_id=user_id)


__all__ = ["GoalDetail", "GoalService", "expand_title_pattern"]
