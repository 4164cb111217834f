"""Per-person effort totals used as the greedy balancing metric."""

from __future__ import annotations

from collections.abc import Sequence
from typing import TypeVar

from .models import AssignmentMap

T = TypeVar("T")


def current_load_minutes(day: str, name: str, assignments: AssignmentMap) -> int:
    # effort is defaulted when rules are loaded, never here
    return sum(task.effort for task in assignments.tasks_for(day, name))


def sort_by_load(candidates: Sequence[T], day: str, assignments: AssignmentMap) -> list[T]:
    """Ascending by load; ``sorted`` is stable so ties keep roster order."""
    return sorted(candidates, key=lambda s: current_load_minutes(day, s.name, assignments))


def least_loaded(candidates: Sequence[T], day: str, assignments: AssignmentMap) -> T | None:
    ordered = sort_by_load(candidates, day, assignments)
    return ordered[0] if ordered else None
