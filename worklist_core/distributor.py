"""Multi-pass auto-distribution of catalog tasks across one day's staff.

Passes run in a fixed order and share one in-progress worklist, so every pass
sees the load created by the passes before it:

  1. all_staff    -- every active person gets one instance
  2. skilled      -- fallback chain in rank order, then least-loaded
  3. shift_based  -- one instance per shift bucket (Open/Mid/Close/Overnight)
  4. general      -- preferred names first, the rest by least load
  5. gap fill     -- anyone still empty gets department support

The day is built on its own and spliced into a copy of the existing map only
once every pass has finished; the caller's map is never mutated.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import date
from typing import Any
from uuid import uuid4

from .catalog import GAP_FILL_ID_BASE, GAP_FILL_ID_MAX
from .load import current_load_minutes, least_loaded
from .models import AssignedTask, AssignmentMap, Schedule, TaskRule, renamed
from .names import names_match
from .roster import ActiveStaff, active_staff_for_day
from .rules import priority_sort, rules_active_on
from .time_utils import DEFAULT_HEURISTICS, SHIFT_CATEGORIES, ShiftHeuristics, is_time_compatible

logger = logging.getLogger(__name__)

STATUS_COMPLETED = "completed"
STATUS_NO_RULES = "no_rules"
STATUS_NO_STAFF = "no_staff"

GAP_FILL_CODE = "GEN"
GAP_FILL_NAME = "General Department Support"
GAP_FILL_EFFORT = 60


def new_instance_id() -> str:
    return uuid4().hex[:12]


@dataclass
class DistributionResult:
    status: str
    day: str
    assignments: AssignmentMap
    active_staff: list[ActiveStaff]
    rules_considered: int = 0
    tasks_assigned: int = 0
    unassigned: list[dict[str, Any]] = field(default_factory=list)

    @property
    def staff_count(self) -> int:
        return len(self.active_staff)

    @property
    def ambiguous_staff(self) -> list[str]:
        return [s.name for s in self.active_staff if s.ambiguous]

    def summary(self) -> dict[str, Any]:
        return {
            "status": self.status,
            "day": self.day,
            "staff_count": self.staff_count,
            "rules_considered": self.rules_considered,
            "tasks_assigned": self.tasks_assigned,
            "unassigned": list(self.unassigned),
            "ambiguous_staff": self.ambiguous_staff,
            "load_by_staff": {
                s.name: current_load_minutes(self.day, s.name, self.assignments) for s in self.active_staff
            },
        }


@dataclass
class _RunState:
    day: str
    work: AssignmentMap
    heuristics: ShiftHeuristics
    id_factory: Callable[[], str]
    tasks_assigned: int = 0
    unassigned: list[dict[str, Any]] = field(default_factory=list)

    def holds(self, name: str, rule: TaskRule) -> bool:
        return any(t.rule_id == rule.id for t in self.work.tasks_for(self.day, name))

    def assign(self, name: str, rule: TaskRule) -> bool:
        task = AssignedTask(rule=rule, instance_id=self.id_factory())
        if not self.work.add(self.day, name, task):
            logger.debug("Rule %s already on %s's list, not duplicated", rule.id, name)
            return False
        logger.debug("Assigning [%s] %s -> %s", rule.code, rule.name, name)
        self.tasks_assigned += 1
        return True

    def leave_unassigned(self, rule: TaskRule, reason: str) -> None:
        logger.debug("Leaving [%s] %s unassigned: %s", rule.code, rule.name, reason)
        self.unassigned.append({"rule_id": rule.id, "code": rule.code, "name": rule.name, "reason": reason})


def _compatible(state: _RunState, rule: TaskRule, person: ActiveStaff) -> bool:
    return is_time_compatible(rule.due_time, person.start, person.end, state.heuristics)


def _eligible(state: _RunState, rule: TaskRule, staff: Sequence[ActiveStaff]) -> list[ActiveStaff]:
    return [s for s in staff if _compatible(state, rule, s) and not state.holds(s.name, rule)]


def _preferred_match(state: _RunState, rule: TaskRule, staff: Sequence[ActiveStaff]) -> ActiveStaff | None:
    """First chain entry (in rank order) that is working and time-compatible."""
    for preferred in rule.fallback_chain:
        for person in staff:
            if not names_match(person.name, preferred):
                continue
            if _compatible(state, rule, person) and not state.holds(person.name, rule):
                return person
    return None


def _all_staff_pass(state: _RunState, rules: Sequence[TaskRule], staff: Sequence[ActiveStaff]) -> None:
    for rule in rules:
        for person in staff:
            state.assign(person.name, rule)


def _skilled_pass(state: _RunState, rules: Sequence[TaskRule], staff: Sequence[ActiveStaff]) -> None:
    for rule in rules:
        person = _preferred_match(state, rule, staff)
        if person is None:
            person = least_loaded(_eligible(state, rule, staff), state.day, state.work)
        if person is None:
            state.leave_unassigned(rule, "no_compatible_staff")
            continue
        state.assign(person.name, rule)


def _shift_pass(state: _RunState, rules: Sequence[TaskRule], staff: Sequence[ActiveStaff]) -> None:
    buckets = {cat: [s for s in staff if s.category == cat] for cat in SHIFT_CATEGORIES}
    for rule in rules:
        for cat in SHIFT_CATEGORIES:
            group = [s for s in buckets[cat] if not state.holds(s.name, rule)]
            person = least_loaded(group, state.day, state.work)
            if person is not None:
                state.assign(person.name, renamed(rule, f"{rule.name} ({cat})"))


def _general_pass(state: _RunState, rules: Sequence[TaskRule], staff: Sequence[ActiveStaff]) -> None:
    pool = [r for r in rules if not r.fallback_chain]
    preferred = [r for r in rules if r.fallback_chain]
    logger.debug("General split: %d preferred / %d pool", len(preferred), len(pool))

    for rule in preferred:
        person = _preferred_match(state, rule, staff)
        if person is None:
            logger.debug("Preferred task %r had no active match, moving to pool", rule.name)
            pool.append(rule)
            continue
        state.assign(person.name, rule)

    # least load is re-read for every rule, so the order adapts as lists grow
    for rule in pool:
        person = least_loaded(_eligible(state, rule, staff), state.day, state.work)
        if person is None:
            state.leave_unassigned(rule, "no_compatible_staff")
            continue
        state.assign(person.name, rule)


def _gap_fill_pass(state: _RunState, staff: Sequence[ActiveStaff]) -> None:
    filled = 0
    for person in staff:
        if current_load_minutes(state.day, person.name, state.work) > 0:
            continue
        filler = TaskRule(
            id=min(GAP_FILL_ID_BASE + filled, GAP_FILL_ID_MAX),
            code=GAP_FILL_CODE,
            name=GAP_FILL_NAME,
            type="general",
            effort=GAP_FILL_EFFORT,
        )
        logger.debug("Fill gap: assigning generic support to %s", person.name)
        state.assign(person.name, filler)
        filled += 1


def distribute(
    day: str,
    schedule: Schedule,
    catalog: Sequence[TaskRule],
    existing: AssignmentMap | None = None,
    *,
    date_of_month: int | None = None,
    heuristics: ShiftHeuristics = DEFAULT_HEURISTICS,
    id_factory: Callable[[], str] = new_instance_id,
) -> DistributionResult:
    existing = existing if existing is not None else AssignmentMap()
    if date_of_month is None:
        date_of_month = date.today().day

    staff = active_staff_for_day(schedule, day, heuristics)
    logger.info("Auto distribute %s: %d active staff", day, len(staff))
    if not staff:
        return DistributionResult(
            status=STATUS_NO_STAFF,
            day=day,
            assignments=existing.copy(),
            active_staff=[],
        )

    rules = priority_sort(rules_active_on(catalog, day, date_of_month))
    logger.info("Rules active for %s: %d of %d", day, len(rules), len(catalog))

    state = _RunState(day=day, work=AssignmentMap(), heuristics=heuristics, id_factory=id_factory)

    _all_staff_pass(state, [r for r in rules if r.type == "all_staff"], staff)
    _skilled_pass(state, [r for r in rules if r.type == "skilled"], staff)
    _shift_pass(state, [r for r in rules if r.type == "shift_based"], staff)
    _general_pass(state, [r for r in rules if r.type == "general"], staff)
    _gap_fill_pass(state, staff)

    result_map = existing.copy()
    result_map.replace_day(day, state.work.day(day))

    status = STATUS_COMPLETED if rules else STATUS_NO_RULES
    logger.info(
        "Distributed %d tasks across %d staff for %s (%d unassigned)",
        state.tasks_assigned, len(staff), day, len(state.unassigned),
    )
    return DistributionResult(
        status=status,
        day=day,
        assignments=result_map,
        active_staff=staff,
        rules_considered=len(rules),
        tasks_assigned=state.tasks_assigned,
        unassigned=state.unassigned,
    )
