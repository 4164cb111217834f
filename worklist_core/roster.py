"""Resolve who is working on a given day, including overnight spillover."""

from __future__ import annotations

from dataclasses import dataclass

from .models import Schedule, StaffMember, previous_day
from .time_utils import (
    DEFAULT_HEURISTICS,
    OFF,
    OVERNIGHT,
    ShiftHeuristics,
    parse_shift_start_end,
    parse_shift_time,
)


@dataclass(frozen=True)
class ActiveStaff:
    member: StaffMember
    raw_time: str
    label: str
    category: str
    start: int | None
    end: int | None
    is_spillover: bool = False
    ambiguous: bool = False

    @property
    def name(self) -> str:
        return self.member.name

    @property
    def role(self) -> str:
        return self.member.role


def _today_entry(member: StaffMember, day: str, heuristics: ShiftHeuristics) -> ActiveStaff | None:
    raw = member.shift_for(day)
    parsed = parse_shift_time(raw, member.role, heuristics=heuristics)
    if parsed.category == OFF:
        return None
    start, end = parse_shift_start_end(raw, member.role, heuristics)
    return ActiveStaff(
        member=member,
        raw_time=raw,
        label=parsed.label,
        category=parsed.category,
        start=start,
        end=end,
        ambiguous=parsed.ambiguous,
    )


def _spillover_entry(member: StaffMember, day: str, heuristics: ShiftHeuristics) -> ActiveStaff | None:
    raw = member.shift_for(previous_day(day))
    parsed = parse_shift_time(raw, member.role, is_spillover=True, heuristics=heuristics)
    if parsed.category != OVERNIGHT:
        return None
    _, prev_end = parse_shift_start_end(raw, member.role, heuristics)
    # the part of the shift that falls after midnight
    end = prev_end - 2400 if prev_end is not None and prev_end > 2400 else 0
    return ActiveStaff(
        member=member,
        raw_time=raw,
        label=parsed.label,
        category=OVERNIGHT,
        start=0,
        end=end,
        is_spillover=True,
        ambiguous=parsed.ambiguous,
    )


def active_staff_for_day(
    schedule: Schedule,
    day: str,
    heuristics: ShiftHeuristics = DEFAULT_HEURISTICS,
) -> list[ActiveStaff]:
    """Staff working ``day``, spillover rows first, one entry per name.

    Someone finishing an overnight shift and also starting a fresh shift today
    keeps the spillover position but is described by today's shift.
    """
    merged: dict[str, ActiveStaff] = {}

    for member in schedule.shifts:
        entry = _spillover_entry(member, day, heuristics)
        if entry is not None and member.name not in merged:
            merged[member.name] = entry

    for member in schedule.shifts:
        entry = _today_entry(member, day, heuristics)
        if entry is None:
            continue
        existing = merged.get(member.name)
        if existing is None or existing.is_spillover:
            merged[member.name] = entry

    return list(merged.values())
