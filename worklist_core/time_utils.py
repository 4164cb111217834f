"""Shift-time parsing, shift categories and due-time compatibility.

Free-form roster strings ("5:30", "10:00PM-6:00AM", "LOANED OUT") are read
into 24-hour values. A zero-padded start ("06:00") or an unsuffixed end
hour of 13-23 ("5:00-13:30") is read as 24-hour notation. Otherwise, when no
AM/PM suffix is given, the hour is inferred from a retail-grocery heuristic;
every threshold lives in ``ShiftHeuristics`` so it can be overridden. Parsing
never raises: anything unreadable is OFF.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, fields, replace
from typing import Any, NamedTuple

OPEN = "Open"
MID = "Mid"
CLOSE = "Close"
OVERNIGHT = "Overnight"
OFF = "OFF"

SHIFT_CATEGORIES = (OPEN, MID, CLOSE, OVERNIGHT)

CLOSING = "closing"

_TIME_RE = re.compile(r"(\d{1,4})(?::(\d{2}))?\s*(?:(AM|PM|A|P)(?![A-Z]))?", re.IGNORECASE)
_RANGE_SPLIT_RE = re.compile(r"\s*(?:-|–|—|\bto\b)\s*", re.IGNORECASE)


@dataclass(frozen=True)
class ShiftHeuristics:
    off_words: tuple[str, ...] = ("OFF", "LOAN", "VAC", "SICK", "PTO", "HOLIDAY")
    off_tokens: tuple[str, ...] = ("X", "O", "0", "-")
    early_role_keywords: tuple[str, ...] = (
        "stock", "flow", "baker", "open", "truck", "merch",
        "receiving", "lead", "supervisor", "manager", "director",
    )
    pm_hours: tuple[int, int] = (1, 3)
    ambiguous_hours: tuple[int, int] = (4, 6)
    am_hours: tuple[int, int] = (7, 11)
    overnight_from: int = 20
    overnight_until: int = 3
    open_hours: tuple[int, int] = (4, 6)
    close_hours: tuple[int, int] = (16, 19)
    closing_cutoff: int = 1800
    deadline_cutoff: int = 2200

    def with_overrides(self, overrides: dict[str, Any]) -> ShiftHeuristics:
        known = {f.name: f for f in fields(self)}
        changes: dict[str, Any] = {}
        for key, value in (overrides or {}).items():
            if key not in known:
                raise ValueError(f"Unknown shift heuristic {key!r}. Known: {sorted(known)}")
            current = getattr(self, key)
            if isinstance(current, tuple):
                changes[key] = tuple(int(v) if isinstance(current[0], int) else str(v) for v in value)
            else:
                changes[key] = int(value)
        return replace(self, **changes)


DEFAULT_HEURISTICS = ShiftHeuristics()


@dataclass(frozen=True)
class ParsedShift:
    start_hour: int | None
    minute: int
    label: str
    category: str
    ambiguous: bool = False

    @property
    def is_working(self) -> bool:
        return self.category != OFF


def _in_band(value: int, band: tuple[int, int]) -> bool:
    return band[0] <= value <= band[1]


def is_off(raw: str | None, heuristics: ShiftHeuristics = DEFAULT_HEURISTICS) -> bool:
    if raw is None or not str(raw).strip():
        return True
    upper = str(raw).upper()
    clean = re.sub(r"[^A-Z0-9:\-]", "", upper)
    if clean in {t.upper() for t in heuristics.off_tokens}:
        return True
    return any(word.upper() in upper for word in heuristics.off_words)


def is_early_role(role: str | None, heuristics: ShiftHeuristics = DEFAULT_HEURISTICS) -> bool:
    role_norm = str(role or "").lower()
    return any(keyword.lower() in role_norm for keyword in heuristics.early_role_keywords)


def _apply_suffix(hour: int, suffix: str) -> int:
    if suffix.startswith("P") and hour != 12:
        return hour + 12
    if suffix.startswith("A") and hour == 12:
        return 0
    return hour


def resolve_hour(
    hour: int,
    suffix: str | None,
    role: str | None,
    heuristics: ShiftHeuristics = DEFAULT_HEURISTICS,
) -> tuple[int, bool]:
    """Return ``(hour_24, ambiguous)`` for a clock hour read off a roster."""
    if suffix:
        return _apply_suffix(hour, suffix.upper()), False
    if hour == 0 or hour >= 13:
        return hour, False
    if _in_band(hour, heuristics.pm_hours):
        return hour + 12, False
    if _in_band(hour, heuristics.ambiguous_hours):
        if is_early_role(role, heuristics):
            return hour, True
        return hour + 12, True
    return hour, False


def categorize(hour_24: int, heuristics: ShiftHeuristics = DEFAULT_HEURISTICS) -> str:
    if hour_24 >= heuristics.overnight_from or hour_24 <= heuristics.overnight_until:
        return OVERNIGHT
    if _in_band(hour_24, heuristics.open_hours):
        return OPEN
    if _in_band(hour_24, heuristics.close_hours):
        return CLOSE
    return MID


class _Clock(NamedTuple):
    hour: int
    minute: int
    suffix: str | None
    padded: bool


def _read_clock(text: str) -> _Clock | None:
    m = _TIME_RE.search(text or "")
    if not m:
        return None
    digits = m.group(1)
    if m.group(2) is None and len(digits) > 2:
        # military style "530" / "1300"
        hour_digits, minute = digits[:-2], int(digits[-2:])
    else:
        hour_digits, minute = digits, int(m.group(2) or 0)
    hour = int(hour_digits)
    if hour > 24 or minute > 59:
        return None
    padded = len(hour_digits) == 2 and hour_digits.startswith("0")
    return _Clock(hour % 24, minute, m.group(3) or None, padded)


def _split_range(raw: str) -> tuple[str, str | None]:
    parts = _RANGE_SPLIT_RE.split(str(raw).strip(), maxsplit=1)
    return parts[0], (parts[1] if len(parts) > 1 else None)


def _is_24_hour(start: _Clock, end: _Clock | None) -> bool:
    """A zero-padded start, or an unsuffixed end hour of 13-23, marks 24-hour notation."""
    if start.suffix:
        return False
    if start.padded:
        return True
    return end is not None and not end.suffix and 13 <= end.hour <= 23


def _resolve_start(
    start: _Clock,
    end: _Clock | None,
    role: str | None,
    heuristics: ShiftHeuristics,
) -> tuple[int, bool]:
    if _is_24_hour(start, end):
        return start.hour, False
    return resolve_hour(start.hour, start.suffix, role, heuristics)


def _display(hour_24: int, minute: int) -> str:
    display_h = 12 if hour_24 % 12 == 0 else hour_24 % 12
    am_pm = "PM" if 12 <= hour_24 < 24 else "AM"
    return f"{display_h}:{minute:02d}{am_pm}"


def parse_shift_time(
    raw: str | None,
    role: str | None = "",
    is_spillover: bool = False,
    heuristics: ShiftHeuristics = DEFAULT_HEURISTICS,
) -> ParsedShift:
    if is_off(raw, heuristics):
        return ParsedShift(None, 0, OFF, OFF)

    start_text, end_text = _split_range(str(raw))
    clock = _read_clock(start_text)
    if clock is None:
        return ParsedShift(None, 0, str(raw).strip(), OFF)

    end_clock = _read_clock(end_text) if end_text is not None else None
    hour_24, ambiguous = _resolve_start(clock, end_clock, role, heuristics)
    minute = clock.minute
    category = categorize(hour_24, heuristics)
    label = _display(hour_24, minute)

    if is_spillover:
        # only an overnight start carries into the next day
        category = OVERNIGHT if category == OVERNIGHT else OFF
        label = f"{label} (Prev)"

    return ParsedShift(hour_24, minute, label, category, ambiguous)


def parse_shift_start_end(
    raw: str | None,
    role: str | None = "",
    heuristics: ShiftHeuristics = DEFAULT_HEURISTICS,
) -> tuple[int | None, int | None]:
    """Return ``(start, end)`` as HHMM integers, e.g. ``(530, 1300)``.

    The end is pushed past the start in 12-hour steps, so an overnight
    ``"10:00PM-6:00AM"`` becomes ``(2200, 3000)``. Missing parts are None.
    """
    if is_off(raw, heuristics):
        return None, None

    start_text, end_text = _split_range(str(raw))
    start_clock = _read_clock(start_text)
    if start_clock is None:
        return None, None

    end_clock = _read_clock(end_text) if end_text is not None else None
    hour_24, _ = _resolve_start(start_clock, end_clock, role, heuristics)
    start = hour_24 * 100 + start_clock.minute

    if end_clock is None:
        return start, None

    end_hour = end_clock.hour
    if end_clock.suffix:
        end_hour = _apply_suffix(end_hour, end_clock.suffix.upper())
    end = end_hour * 100 + end_clock.minute
    while end < start:
        end += 1200
    return start, end


def parse_due_time(label: str | None, heuristics: ShiftHeuristics = DEFAULT_HEURISTICS) -> int | str | None:
    """HHMM for clock labels, ``CLOSING`` for closing labels, None for anytime."""
    text = str(label or "").strip()
    if not text:
        return None
    if "clos" in text.lower():
        return CLOSING
    clock = _read_clock(text)
    if clock is None:
        return None
    hour_24, _ = _resolve_start(clock, None, "", heuristics)
    return hour_24 * 100 + clock.minute


def is_time_compatible(
    due_time: str | None,
    start: int | None,
    end: int | None,
    heuristics: ShiftHeuristics = DEFAULT_HEURISTICS,
) -> bool:
    due = parse_due_time(due_time, heuristics)
    if due is None:
        return True
    if due == CLOSING:
        return end is not None and end >= heuristics.closing_cutoff
    if start is None:
        return False
    if due < heuristics.deadline_cutoff and start >= due:
        return False
    return True


def format_hhmm(value: int | None) -> str:
    if value is None:
        return ""
    hours, minutes = divmod(int(value), 100)
    return f"{hours % 24:02d}:{minutes:02d}"
