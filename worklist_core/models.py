"""Typed roster, catalog and assignment entities.

Loose JSON records are defaulted once, in ``from_dict``; the engine never
re-applies defaults on its own.
"""

from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field, replace
from datetime import date
from typing import Any, Iterable

logger = logging.getLogger(__name__)

DAY_KEYS = ("sun", "mon", "tue", "wed", "thu", "fri", "sat")

DAY_LABELS = {
    "sun": "Sunday",
    "mon": "Monday",
    "tue": "Tuesday",
    "wed": "Wednesday",
    "thu": "Thursday",
    "fri": "Friday",
    "sat": "Saturday",
}

TASK_TYPES = ("skilled", "general", "shift_based", "all_staff", "manual")
FREQUENCIES = ("daily", "weekly", "monthly")

DEFAULT_EFFORT = 30
OFF_MARKER = "OFF"


class CatalogError(ValueError):
    """Raised when a task catalog cannot be adopted as-is."""


def previous_day(day: str) -> str:
    idx = DAY_KEYS.index(day)
    return DAY_KEYS[idx - 1]


def day_key_for(d: date) -> str:
    # date.weekday(): Monday == 0
    return DAY_KEYS[(d.weekday() + 1) % 7]


def ensure_day(day: str) -> str:
    text = str(day or "").strip().lower()
    if text == "today":
        return day_key_for(date.today())
    key = text[:3]
    if key not in DAY_KEYS:
        raise ValueError(f"Unknown day key: {day!r}. Choose from {DAY_KEYS}")
    return key


def _first(row: dict[str, Any], *keys: str, default: Any = None) -> Any:
    for key in keys:
        if key in row and row[key] is not None:
            return row[key]
    return default


def _as_int(value: Any) -> int | None:
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return None


def _day_list(values: Any) -> list[str]:
    if not values:
        return []
    if isinstance(values, str):
        values = values.replace("|", ",").split(",")
    out: list[str] = []
    for v in values:
        key = str(v).strip().lower()[:3]
        if key in DAY_KEYS and key not in out:
            out.append(key)
    return out


@dataclass
class StaffMember:
    name: str
    role: str = "Stock"
    shifts: dict[str, str] = field(default_factory=dict)
    id: str | None = None
    is_manual: bool = False

    def __post_init__(self) -> None:
        for day in DAY_KEYS:
            if not self.shifts.get(day):
                self.shifts[day] = OFF_MARKER

    def shift_for(self, day: str) -> str:
        return self.shifts.get(day) or OFF_MARKER

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> StaffMember:
        name = str(_first(row, "name", "employee_name", "member_name", default="")).strip()
        role = str(_first(row, "role", "title", default="") or "").strip() or "Stock"
        shifts = {}
        for day in DAY_KEYS:
            raw = _first(row, day, f"{day}_shift", default="")
            shifts[day] = str(raw).strip() or OFF_MARKER
        row_id = _first(row, "id", "shift_id")
        return cls(
            name=name,
            role=role,
            shifts=shifts,
            id=str(row_id) if row_id is not None else None,
            is_manual=bool(_first(row, "isManual", "is_manual", default=False)),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"name": self.name, "role": self.role}
        if self.id is not None:
            out["id"] = self.id
        for day in DAY_KEYS:
            out[day] = self.shift_for(day)
        if self.is_manual:
            out["isManual"] = True
        return out


@dataclass
class Schedule:
    week_period: str = "New Week"
    shifts: list[StaffMember] = field(default_factory=list)

    def find(self, name: str) -> StaffMember | None:
        for member in self.shifts:
            if member.name == name:
                return member
        return None

    def add_row(self, name: str = "New Staff", role: str = "Stock") -> StaffMember:
        member = StaffMember(name=name, role=role, is_manual=True)
        self.shifts.append(member)
        return member

    def remove_row(self, name: str) -> bool:
        """Drop the row named ``name``. Assignments keyed by that name are not touched."""
        kept = [m for m in self.shifts if m.name != name]
        removed = len(kept) != len(self.shifts)
        self.shifts = kept
        return removed

    @classmethod
    def from_dict(cls, payload: dict[str, Any] | None) -> Schedule:
        payload = payload or {}
        rows = payload.get("shifts") or []
        return cls(
            week_period=str(payload.get("week_period") or "New Week"),
            shifts=[StaffMember.from_dict(r) for r in rows if isinstance(r, dict)],
        )

    def to_dict(self) -> dict[str, Any]:
        return {"week_period": self.week_period, "shifts": [m.to_dict() for m in self.shifts]}


@dataclass(frozen=True)
class TaskRule:
    id: int
    code: str
    name: str
    type: str = "general"
    fallback_chain: tuple[str, ...] = ()
    due_time: str = ""
    effort: int = DEFAULT_EFFORT
    frequency: str = "daily"
    frequency_day: str | None = None
    frequency_date: int | None = None
    excluded_days: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> TaskRule:
        rule_id = _as_int(_first(row, "id"))
        if rule_id is None:
            raise CatalogError(f"Task rule without a numeric id: {row!r}")

        task_type = str(_first(row, "type", default="general") or "general").strip().lower()
        if task_type not in TASK_TYPES:
            logger.warning("Rule %s has unknown type %r, treating as general", rule_id, task_type)
            task_type = "general"

        effort = _as_int(_first(row, "effort"))
        if effort is None or effort <= 0:
            effort = DEFAULT_EFFORT

        frequency = str(_first(row, "frequency", default="daily") or "daily").strip().lower()
        if frequency not in FREQUENCIES:
            frequency = "daily"

        freq_day = _day_list([_first(row, "frequencyDay", "frequency_day", default="")])
        chain = _first(row, "fallbackChain", "fallback_chain", default=[]) or []
        if isinstance(chain, str):
            chain = [c for c in chain.split("|")]

        return cls(
            id=rule_id,
            code=str(_first(row, "code", default="") or "").strip(),
            name=str(_first(row, "name", "title", default="") or "").strip(),
            type=task_type,
            fallback_chain=tuple(str(c).strip() for c in chain if str(c).strip()),
            due_time=str(_first(row, "dueTime", "due_time", "time_window", "timing", default="") or "").strip(),
            effort=effort,
            frequency=frequency,
            frequency_day=freq_day[0] if freq_day else None,
            frequency_date=_as_int(_first(row, "frequencyDate", "frequency_date")),
            excluded_days=tuple(_day_list(_first(row, "excludedDays", "excluded_days", default=[]))),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "id": self.id,
            "code": self.code,
            "name": self.name,
            "type": self.type,
            "fallbackChain": list(self.fallback_chain),
            "effort": self.effort,
            "frequency": self.frequency,
        }
        if self.due_time:
            out["dueTime"] = self.due_time
        if self.frequency_day:
            out["frequencyDay"] = self.frequency_day
        if self.frequency_date is not None:
            out["frequencyDate"] = self.frequency_date
        if self.excluded_days:
            out["excludedDays"] = list(self.excluded_days)
        return out


@dataclass
class AssignedTask:
    rule: TaskRule
    instance_id: str
    is_complete: bool = False

    @property
    def rule_id(self) -> int:
        return self.rule.id

    @property
    def effort(self) -> int:
        return self.rule.effort

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> AssignedTask:
        return cls(
            rule=TaskRule.from_dict(row),
            instance_id=str(_first(row, "instanceId", "instance_id", default="")),
            is_complete=bool(_first(row, "isComplete", "is_complete", default=False)),
        )

    def to_dict(self) -> dict[str, Any]:
        out = self.rule.to_dict()
        out["instanceId"] = self.instance_id
        if self.is_complete:
            out["isComplete"] = True
        return out


@dataclass
class TeamMember:
    id: str
    name: str
    role: str = "Stock"
    is_active: bool = True
    email: str | None = None
    phone: str | None = None

    @classmethod
    def from_dict(cls, row: dict[str, Any]) -> TeamMember:
        name = _first(row, "name", default="")
        if not name:
            first = str(_first(row, "first_name", default="") or "").strip()
            last = str(_first(row, "last_name", default="") or "").strip()
            name = f"{first} {last}".strip()
        return cls(
            id=str(_first(row, "id", "member_id", default=name)),
            name=str(name).strip(),
            role=str(_first(row, "role", "title", default="Stock") or "Stock"),
            is_active=bool(_first(row, "isActive", "is_active", "active", default=True)),
            email=_first(row, "email"),
            phone=_first(row, "phone", "phone_number"),
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"id": self.id, "name": self.name, "role": self.role, "isActive": self.is_active}
        if self.email:
            out["email"] = self.email
        if self.phone:
            out["phone"] = self.phone
        return out


DaySubMap = dict[str, list[AssignedTask]]


class AssignmentMap:
    """Per-day worklists: day -> staff name -> ordered task list."""

    def __init__(self, days: dict[str, DaySubMap] | None = None):
        self._days: dict[str, DaySubMap] = {}
        for day, sub in (days or {}).items():
            self._days[day] = {name: list(tasks) for name, tasks in sub.items()}

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, AssignmentMap):
            return NotImplemented
        return self._days == other._days

    def __contains__(self, key: tuple[str, str]) -> bool:
        day, name = key
        return name in self._days.get(day, {})

    def copy(self) -> AssignmentMap:
        return AssignmentMap(copy.deepcopy(self._days))

    def days(self) -> list[str]:
        return [d for d in DAY_KEYS if self._days.get(d)]

    def day(self, day: str) -> DaySubMap:
        return {name: list(tasks) for name, tasks in self._days.get(day, {}).items()}

    def staff_keys(self, day: str) -> list[str]:
        return list(self._days.get(day, {}))

    def tasks_for(self, day: str, name: str) -> list[AssignedTask]:
        return self._days.get(day, {}).get(name, [])

    def replace_day(self, day: str, sub_map: DaySubMap) -> None:
        self._days[day] = {name: list(tasks) for name, tasks in sub_map.items()}

    def clear_day(self, day: str) -> int:
        removed = len(self._days.get(day, {}))
        self._days.pop(day, None)
        return removed

    def add(self, day: str, name: str, task: AssignedTask) -> bool:
        tasks = self._days.setdefault(day, {}).setdefault(name, [])
        if any(t.rule_id == task.rule_id for t in tasks):
            return False
        tasks.append(task)
        return True

    def append(self, day: str, name: str, task: AssignedTask) -> None:
        # manual additions bypass the per-rule guard
        self._days.setdefault(day, {}).setdefault(name, []).append(task)

    def _find(self, day: str, name: str, instance_id: str) -> tuple[list[AssignedTask], int]:
        tasks = self._days.get(day, {}).get(name, [])
        for idx, task in enumerate(tasks):
            if task.instance_id == instance_id:
                return tasks, idx
        raise KeyError(f"task instance not found: {day}/{name}/{instance_id}")

    def remove(self, day: str, name: str, instance_id: str) -> AssignedTask:
        tasks, idx = self._find(day, name, instance_id)
        return tasks.pop(idx)

    def move(self, day: str, src: str, dst: str, instance_id: str) -> AssignedTask:
        tasks, idx = self._find(day, src, instance_id)
        task = tasks.pop(idx)
        self.append(day, dst, task)
        return task

    def set_complete(self, day: str, name: str, instance_id: str, done: bool = True) -> AssignedTask:
        tasks, idx = self._find(day, name, instance_id)
        tasks[idx].is_complete = done
        return tasks[idx]

    def to_flat(self) -> dict[str, list[dict[str, Any]]]:
        out: dict[str, list[dict[str, Any]]] = {}
        for day, sub in self._days.items():
            for name, tasks in sub.items():
                out[f"{day}-{name}"] = [t.to_dict() for t in tasks]
        return out

    @classmethod
    def from_flat(cls, payload: dict[str, Any] | None) -> AssignmentMap:
        amap = cls()
        for key, rows in (payload or {}).items():
            day, sep, name = str(key).partition("-")
            if not sep or day not in DAY_KEYS or not name:
                logger.warning("Skipping malformed assignment key %r", key)
                continue
            tasks = []
            for row in rows or []:
                try:
                    tasks.append(AssignedTask.from_dict(row))
                except CatalogError as exc:
                    logger.warning("Dropping unreadable task under %r: %s", key, exc)
            amap._days.setdefault(day, {})[name] = tasks
        return amap


def load_catalog(rows: Iterable[dict[str, Any]], *, strict: bool = False) -> list[TaskRule]:
    """Turn raw catalog rows into rules, enforcing unique ids.

    Tolerant mode keeps the first rule for a repeated id and logs the rest;
    strict mode raises ``CatalogError`` instead.
    """
    rules: list[TaskRule] = []
    seen: set[int] = set()
    for row in rows or []:
        if isinstance(row, TaskRule):
            rule = row
        else:
            try:
                rule = TaskRule.from_dict(row)
            except CatalogError:
                if strict:
                    raise
                logger.warning("Skipping catalog row without id: %r", row)
                continue
        if rule.id in seen:
            if strict:
                raise CatalogError(f"Duplicate task id {rule.id} ({rule.name!r})")
            logger.warning("Duplicate task id %s (%r) ignored; first definition wins", rule.id, rule.name)
            continue
        seen.add(rule.id)
        rules.append(rule)
    return rules


def renamed(rule: TaskRule, name: str) -> TaskRule:
    return replace(rule, name=name)
