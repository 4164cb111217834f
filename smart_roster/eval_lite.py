"""Lightweight worklist evaluation for one day.

Computes balance and rule-compliance metrics from an assignment map and the
day's active staff. All functions are pure: nothing is loaded or saved here.
"""

from __future__ import annotations

import statistics
from collections import Counter
from typing import Any, Sequence

from worklist_core.distributor import DistributionResult
from worklist_core.load import current_load_minutes
from worklist_core.models import AssignmentMap
from worklist_core.roster import ActiveStaff
from worklist_core.time_utils import DEFAULT_HEURISTICS, ShiftHeuristics, is_time_compatible

# only these types go through the time-window check when distributed
_WINDOWED_TYPES = ("skilled", "general")


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _load_gini(minutes: Sequence[int]) -> float:
    """0 when every person carries the same minutes, towards 1 when one person carries all."""
    n = len(minutes)
    total = sum(minutes)
    if n == 0 or total <= 0:
        return 0.0
    pair_gaps = sum(abs(a - b) for a in minutes for b in minutes)
    return pair_gaps / (2 * n * total)


def _load_summary(minutes: Sequence[int]) -> dict[str, float]:
    """Total, spread and centre of the per-person load in minutes."""
    if not minutes:
        return {"total": 0, "mean": 0, "median": 0, "std": 0, "min": 0, "max": 0, "spread": 0}
    return {
        "total": sum(minutes),
        "mean": round(statistics.mean(minutes), 1),
        "median": statistics.median(minutes),
        "std": round(statistics.pstdev(minutes), 1),
        "min": min(minutes),
        "max": max(minutes),
        "spread": max(minutes) - min(minutes),
    }


# ---------------------------------------------------------------------------
# Metric functions
# ---------------------------------------------------------------------------


def _duplicate_violations(day: str, assignments: AssignmentMap) -> list[dict[str, Any]]:
    out = []
    for name in assignments.staff_keys(day):
        counts = Counter(t.rule_id for t in assignments.tasks_for(day, name) if t.rule.type != "manual")
        for rule_id, n in sorted(counts.items()):
            if n > 1:
                out.append({"staff": name, "rule_id": rule_id, "count": n})
    return out


def _time_window_violations(
    day: str,
    assignments: AssignmentMap,
    staff: Sequence[ActiveStaff],
    heuristics: ShiftHeuristics,
) -> list[dict[str, Any]]:
    out = []
    for person in staff:
        for task in assignments.tasks_for(day, person.name):
            if task.rule.type not in _WINDOWED_TYPES or not task.rule.due_time:
                continue
            if not is_time_compatible(task.rule.due_time, person.start, person.end, heuristics):
                out.append(
                    {
                        "staff": person.name,
                        "rule_id": task.rule_id,
                        "task": task.rule.name,
                        "due": task.rule.due_time,
                        "shift": person.raw_time,
                    }
                )
    return out


# ---------------------------------------------------------------------------
# Public entry point
# ---------------------------------------------------------------------------


def evaluate_day(
    source: DistributionResult | AssignmentMap,
    day: str | None = None,
    active_staff: Sequence[ActiveStaff] | None = None,
    *,
    heuristics: ShiftHeuristics = DEFAULT_HEURISTICS,
) -> dict[str, Any]:
    """Compute balance and compliance metrics for one day's worklists.

    Accepts either a ``DistributionResult`` or a plain map plus the day's
    active staff.
    """
    if isinstance(source, DistributionResult):
        assignments = source.assignments
        day = day or source.day
        staff = list(active_staff if active_staff is not None else source.active_staff)
    else:
        if day is None:
            raise ValueError("day is required when evaluating a bare assignment map")
        assignments = source
        staff = list(active_staff or [])

    loads = {s.name: current_load_minutes(day, s.name, assignments) for s in staff}
    load_values = list(loads.values())
    type_counts = Counter(
        t.rule.type for name in assignments.staff_keys(day) for t in assignments.tasks_for(day, name)
    )

    return {
        "day": day,
        "staff_count": len(staff),
        "load_minutes": _load_summary(load_values),
        "gini": round(_load_gini(load_values), 4),
        "per_staff": [
            {"staff": name, "load_minutes": load}
            for name, load in sorted(loads.items(), key=lambda kv: -kv[1])
        ],
        "coverage": {
            "idle_staff": [name for name, load in loads.items() if load == 0],
            "covered_pct": round(
                sum(1 for v in loads.values() if v > 0) / max(1, len(loads)) * 100, 1
            ),
        },
        "duplicate_violations": _duplicate_violations(day, assignments),
        "time_window_violations": _time_window_violations(day, assignments, staff, heuristics),
        "tasks_by_type": dict(type_counts.most_common()),
    }
