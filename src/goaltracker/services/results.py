"""Result and error types shared by the goal and task services."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from ..domain.errors import NotFoundError
from ..models.goal import Goal


@dataclass(slots=True)
class ParentRollup:
    goal_id: int
    rollup_percent: float
    percent_complete: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "goalId": self.goal_id,
            "rollupPercent": round(self.rollup_percent, 2),
            "percentComplete": round(self.percent_complete, 2),
        }


@dataclass(slots=True)
class CompletionResult:
    """Outcome of a complete/uncomplete command.

    ``goal`` is always the committed child state; ``rollup_error`` is set when
    the parent could not be recomputed, which never reverts the child.
    """

    success: bool
    message: str
    goal: Goal
    changed: bool = True
    parent_rollup: Optional[ParentRollup] = None
    rollup_error: Optional[str] = None
    invalidate: list[str] = field(default_factory=list)


__all__ = ["CompletionResult", "NotFoundError", "ParentRollup"]
