"""Operator-facing operations on top of a ``RosterRepository``.

Every mutating call loads what it needs, changes a copy and saves once, so a
failed operation never leaves a half-written worklist behind.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import replace
from typing import Any
from uuid import uuid4

from worklist_core.catalog import MANUAL_TASK_ID, PRIORITY_PINNED_IDS
from worklist_core.distributor import (
    STATUS_NO_RULES,
    STATUS_NO_STAFF,
    DistributionResult,
    distribute,
    new_instance_id,
)
from worklist_core.load import current_load_minutes
from worklist_core.models import (
    DAY_LABELS,
    DEFAULT_EFFORT,
    OFF_MARKER,
    AssignedTask,
    AssignmentMap,
    Schedule,
    StaffMember,
    TaskRule,
    TeamMember,
    ensure_day,
    load_catalog,
)
from worklist_core.roster import ActiveStaff, active_staff_for_day
from worklist_core.time_utils import DEFAULT_HEURISTICS, ShiftHeuristics, format_hhmm

from .storage import AutoSaver, RosterRepository

logger = logging.getLogger(__name__)

MANUAL_CODE = "MAN"
HUDDLE_FOCUS_LIMIT = 3
LEAD_ROLE_MARKERS = ("Lead", "Sup")
PLACEHOLDER_STAFF_NAME = "New Staff"

# skilled first, manual last, everything else in between
_DISPLAY_RANK = {"skilled": 1, "manual": 5}


def _display_rank(task: AssignedTask) -> int:
    if task.rule.code == MANUAL_CODE:
        return 5
    return _DISPLAY_RANK.get(task.rule.type, 3)


class WorklistService:
    def __init__(
        self,
        repo: RosterRepository,
        heuristics: ShiftHeuristics = DEFAULT_HEURISTICS,
        id_factory: Callable[[], str] | None = None,
        schedule_saver: AutoSaver | None = None,
    ):
        self.repo = repo
        self.heuristics = heuristics
        self.id_factory = id_factory or new_instance_id
        self.schedule_saver = schedule_saver
        self._draft: Schedule | None = None
        self.last_result: DistributionResult | None = None

    # -- roster --

    def schedule(self) -> Schedule:
        """The roster, including cell edits still waiting on the autosave."""
        if self._draft is not None:
            return self._draft
        return self.repo.get_schedule()

    def replace_schedule(self, schedule: Schedule) -> None:
        if self.schedule_saver is not None:
            self.schedule_saver.cancel()
        self._draft = None
        self.repo.save_schedule(schedule)

    def set_shift(self, name: str, day: str, value: str) -> StaffMember:
        """Edit one roster cell; saved through the debounced saver when present."""
        day = ensure_day(day)
        schedule = self.schedule()
        member = schedule.find(name)
        if member is None:
            raise KeyError(f"no roster row named {name!r}")
        member.shifts[day] = (value or "").strip() or OFF_MARKER
        if self.schedule_saver is None:
            self.repo.save_schedule(schedule)
        else:
            self._draft = schedule
            self.schedule_saver.schedule(schedule)
        return member

    def add_staff_row(self, name: str = "New Staff", role: str = "Stock") -> StaffMember:
        schedule = self.schedule()
        if schedule.find(name) is not None:
            raise ValueError(f"roster already has a row named {name!r}")
        member = schedule.add_row(name, role)
        self.replace_schedule(schedule)
        return member

    def remove_staff_row(self, name: str) -> bool:
        """Remove a roster row. Existing worklists stay keyed under the old name."""
        schedule = self.schedule()
        if not schedule.remove_row(name):
            return False
        self.replace_schedule(schedule)
        logger.info("Removed roster row %r", name)
        return True

    def flush(self) -> None:
        if self.schedule_saver is not None:
            self.schedule_saver.flush()
        self._draft = None

    def active_staff(self, day: str) -> list[ActiveStaff]:
        return active_staff_for_day(self.schedule(), ensure_day(day), self.heuristics)

    def describe_staff(self, day: str) -> list[dict[str, Any]]:
        return [
            {
                "name": s.name,
                "role": s.role,
                "shift": s.raw_time,
                "label": s.label,
                "category": s.category,
                "start": format_hhmm(s.start),
                "end": format_hhmm(s.end),
                "spillover": s.is_spillover,
                "ambiguous": s.ambiguous,
            }
            for s in self.active_staff(day)
        ]

    # -- distribution --

    def auto_distribute(self, day: str, *, confirm: bool = False, date_of_month: int | None = None) -> dict[str, Any]:
        day = ensure_day(day)
        self.last_result = None
        schedule = self.schedule()
        staff = active_staff_for_day(schedule, day, self.heuristics)
        if not staff:
            return {
                "status": STATUS_NO_STAFF,
                "day": day,
                "message": (
                    f"No working staff detected for {DAY_LABELS[day]}. "
                    "Please check the schedule to ensure shifts are entered correctly."
                ),
            }
        if not confirm:
            return {
                "status": "confirmation_required",
                "day": day,
                "staff_count": len(staff),
                "message": f"This replaces every task on {DAY_LABELS[day]}. Re-run with confirm=true.",
            }

        try:
            result = distribute(
                day,
                schedule,
                self.repo.get_catalog(),
                self.repo.get_assignments(),
                date_of_month=date_of_month,
                heuristics=self.heuristics,
                id_factory=self.id_factory,
            )
            if result.status == STATUS_NO_STAFF:
                return {"status": result.status, "day": day, "message": "No working staff detected."}
            self.repo.save_assignments(result.assignments)
            self.last_result = result
        except Exception as exc:
            logger.exception("Auto distribute failed for %s", day)
            return {"status": "failed", "day": day, "message": f"Distribution error: {exc}"}

        summary = result.summary()
        if result.status == STATUS_NO_RULES:
            summary["message"] = (
                f"No tasks found for {DAY_LABELS[day]}. Check the task frequency settings "
                "(weekly tasks default to Friday)."
            )
        else:
            summary["message"] = f"Distributed {result.tasks_assigned} tasks across {result.staff_count} staff members."
        if result.ambiguous_staff:
            summary["message"] += f" Check AM/PM for: {', '.join(result.ambiguous_staff)}."
        return summary

    def clear_day(self, day: str, *, confirm: bool = False) -> dict[str, Any]:
        day = ensure_day(day)
        if not confirm:
            return {"status": "confirmation_required", "day": day, "message": "Clear all tasks for this day?"}
        assignments = self.repo.get_assignments()
        removed = assignments.clear_day(day)
        self.repo.save_assignments(assignments)
        logger.info("Cleared %d worklists on %s", removed, day)
        return {"status": "cleared", "day": day, "worklists_removed": removed}

    # -- single-task edits --

    def add_manual_task(self, day: str, name: str, text: str, effort: int = DEFAULT_EFFORT) -> AssignedTask:
        day = ensure_day(day)
        text = (text or "").strip()
        if not text:
            raise ValueError("manual task text is empty")
        rule = TaskRule(
            id=MANUAL_TASK_ID,
            code=MANUAL_CODE,
            name=text,
            type="manual",
            effort=effort if effort and effort > 0 else DEFAULT_EFFORT,
        )
        task = AssignedTask(rule=rule, instance_id=self.id_factory())
        assignments = self.repo.get_assignments()
        assignments.append(day, name, task)
        self.repo.save_assignments(assignments)
        return task

    def delete_task(self, day: str, name: str, instance_id: str) -> AssignedTask:
        assignments = self.repo.get_assignments()
        task = assignments.remove(ensure_day(day), name, instance_id)
        self.repo.save_assignments(assignments)
        return task

    def move_task(self, day: str, from_name: str, to_name: str, instance_id: str) -> AssignedTask:
        assignments = self.repo.get_assignments()
        task = assignments.move(ensure_day(day), from_name, to_name, instance_id)
        self.repo.save_assignments(assignments)
        return task

    def toggle_complete(self, day: str, name: str, instance_id: str) -> AssignedTask:
        day = ensure_day(day)
        assignments = self.repo.get_assignments()
        current = next((t for t in assignments.tasks_for(day, name) if t.instance_id == instance_id), None)
        if current is None:
            raise KeyError(f"task instance not found: {day}/{name}/{instance_id}")
        task = assignments.set_complete(day, name, instance_id, not current.is_complete)
        self.repo.save_assignments(assignments)
        return task

    # -- views --

    def worklists(self, day: str) -> list[dict[str, Any]]:
        day = ensure_day(day)
        assignments = self.repo.get_assignments()
        out = []
        for person in self.active_staff(day):
            tasks = sorted(assignments.tasks_for(day, person.name), key=_display_rank)
            load = current_load_minutes(day, person.name, assignments)
            out.append(
                {
                    "name": person.name,
                    "role": person.role,
                    "label": person.label,
                    "category": person.category,
                    "spillover": person.is_spillover,
                    "load_minutes": load,
                    "estimated_hours": round(load / 60, 1),
                    "tasks": [t.to_dict() for t in tasks],
                }
            )
        return out

    def adopt_ai_tasks(self, day: str, rules: list[TaskRule]) -> dict[str, Any]:
        """Hand AI-suggested tasks to the shift lead, or the first person working."""
        day = ensure_day(day)
        staff = self.active_staff(day)
        if not staff:
            raise ValueError("No staff to assign these tasks to.")
        lead = next((s for s in staff if any(m in s.role for m in LEAD_ROLE_MARKERS)), staff[0])
        assignments = self.repo.get_assignments()
        for rule in rules:
            assignments.append(day, lead.name, AssignedTask(rule=rule, instance_id=self.id_factory()))
        self.repo.save_assignments(assignments)
        return {"assigned_to": lead.name, "count": len(rules)}

    def huddle(self, day: str, generator: Callable[[str, int, list[str]], str]) -> dict[str, Any]:
        day = ensure_day(day)
        staff = self.active_staff(day)
        if not staff:
            raise ValueError("No staff scheduled for today")
        focus = [r.name for r in self.repo.get_catalog() if r.id in PRIORITY_PINNED_IDS][:HUDDLE_FOCUS_LIMIT]
        return {
            "day": day,
            "headcount": len(staff),
            "focus_areas": focus,
            "script": generator(DAY_LABELS[day], len(staff), focus),
        }

    # -- team sync --

    def add_team_to_schedule(self) -> list[str]:
        schedule = self.schedule()
        existing = {m.name for m in schedule.shifts}
        added = []
        for member in self.repo.get_team():
            if not member.is_active or member.name in existing:
                continue
            row = schedule.add_row(member.name, member.role)
            row.id = member.id
            row.is_manual = False
            existing.add(member.name)
            added.append(member.name)
        if added:
            self.replace_schedule(schedule)
        return added

    def import_schedule_to_team(self) -> list[str]:
        team = self.repo.get_team()
        existing = {m.name.lower() for m in team}
        added = []
        for row in self.schedule().shifts:
            if row.name == PLACEHOLDER_STAFF_NAME or row.name.lower() in existing:
                continue
            team.append(TeamMember(id=row.id or uuid4().hex[:12], name=row.name, role=row.role))
            existing.add(row.name.lower())
            added.append(row.name)
        if added:
            self.repo.save_team(team)
        return added

    # -- catalog editing --

    def upsert_rule(self, rule: TaskRule | dict[str, Any]) -> TaskRule:
        if not isinstance(rule, TaskRule):
            rule = TaskRule.from_dict(rule)
        catalog = self.repo.get_catalog()
        for idx, existing in enumerate(catalog):
            if existing.id == rule.id:
                catalog[idx] = rule
                break
        else:
            catalog.append(rule)
        self.repo.save_catalog(load_catalog(catalog, strict=True))
        return rule

    def delete_rule(self, rule_id: int) -> bool:
        catalog = self.repo.get_catalog()
        kept = [r for r in catalog if r.id != rule_id]
        if len(kept) == len(catalog):
            return False
        self.repo.save_catalog(kept)
        return True

    def add_fallback(self, rule_id: int, name: str) -> TaskRule:
        rule = self._rule(rule_id)
        name = name.strip()
        if not name or name in rule.fallback_chain:
            return rule
        return self.upsert_rule(replace(rule, fallback_chain=(*rule.fallback_chain, name)))

    def remove_fallback(self, rule_id: int, index: int) -> TaskRule:
        rule = self._rule(rule_id)
        chain = list(rule.fallback_chain)
        if not 0 <= index < len(chain):
            raise IndexError(f"rule {rule_id} has no fallback at position {index}")
        del chain[index]
        return self.upsert_rule(replace(rule, fallback_chain=tuple(chain)))

    def _rule(self, rule_id: int) -> TaskRule:
        for rule in self.repo.get_catalog():
            if rule.id == rule_id:
                return rule
        raise KeyError(f"unknown task rule id {rule_id}")

    def assignments(self) -> AssignmentMap:
        return self.repo.get_assignments()
