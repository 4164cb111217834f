"""Read catalog and schedule CSV files into typed entities."""

from __future__ import annotations

import csv
from pathlib import Path

from ..models import Schedule, StaffMember, TaskRule, load_catalog
from .schemas import SCHEDULE_COLS, pipe_split, to_int, to_int_or_none


def load_catalog_csv(path: Path, *, strict: bool = False) -> list[TaskRule]:
    """Read a task catalog CSV.

    ``fallback_chain`` and ``excluded_days`` are pipe-separated. Duplicate ids
    follow ``load_catalog``: first wins, or ``CatalogError`` when strict.
    """
    rows = []
    for row in _read_csv(Path(path)):
        rows.append(
            {
                "id": to_int_or_none(row.get("id")),
                "code": row.get("code", ""),
                "name": row.get("name", ""),
                "type": row.get("type") or "general",
                "fallback_chain": pipe_split(row.get("fallback_chain")),
                "due_time": row.get("due_time", ""),
                "effort": to_int(row.get("effort")),
                "frequency": row.get("frequency") or "daily",
                "frequency_day": row.get("frequency_day") or None,
                "frequency_date": to_int_or_none(row.get("frequency_date")),
                "excluded_days": pipe_split(row.get("excluded_days")),
            }
        )
    return load_catalog(rows, strict=strict)


def load_schedule_csv(path: Path, week_period: str | None = None) -> Schedule:
    """Read a roster CSV (name, role, sun..sat) into a ``Schedule``."""
    path = Path(path)
    raw = _read_csv(path)
    if raw:
        missing = [c for c in ("name",) if c not in raw[0]]
        if missing:
            raise ValueError(f"{path.name} is missing columns: {missing}; expected {SCHEDULE_COLS}")
    members = [StaffMember.from_dict(row) for row in raw if (row.get("name") or "").strip()]
    return Schedule(week_period=week_period or path.stem, shifts=members)


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


def _read_csv(path: Path) -> list[dict[str, str]]:
    """Read a CSV file into a list of dicts via csv.DictReader."""
    if not path.exists():
        raise FileNotFoundError(f"Required file not found: {path}")
    with open(path, newline="", encoding="utf-8") as f:
        return list(csv.DictReader(f))
