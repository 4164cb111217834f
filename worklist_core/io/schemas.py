"""Column constants, pipe helpers, and type coercion for CSV I/O."""

from __future__ import annotations

from ..models import DAY_KEYS

# ---------------------------------------------------------------------------
# Input CSV column names
# ---------------------------------------------------------------------------

CATALOG_COLS = [
    "id",
    "code",
    "name",
    "type",
    "fallback_chain",
    "due_time",
    "effort",
    "frequency",
    "frequency_day",
    "frequency_date",
    "excluded_days",
]

SCHEDULE_COLS = [
    "name",
    "role",
    *DAY_KEYS,
]

# ---------------------------------------------------------------------------
# Output column names
# ---------------------------------------------------------------------------

WORKLIST_COLS = [
    "staff",
    "shift",
    "category",
    "code",
    "task",
    "effort",
    "due",
    "done",
]

UNASSIGNED_COLS = [
    "rule_id",
    "code",
    "name",
    "reason",
]

# ---------------------------------------------------------------------------
# Pipe-separated field helpers
# ---------------------------------------------------------------------------

PIPE = "|"


def pipe_join(values: list | tuple | None) -> str:
    """Join a list into a pipe-separated string. Empty/None -> empty string."""
    if not values:
        return ""
    return PIPE.join(str(v) for v in values if v is not None and str(v).strip())


def pipe_split(value: str | None) -> list[str]:
    """Split a pipe-separated string into a list. Empty/None -> empty list."""
    if not value or not str(value).strip():
        return []
    return [v.strip() for v in str(value).split(PIPE) if v.strip()]


# ---------------------------------------------------------------------------
# Type coercion helpers for reading CSV values
# ---------------------------------------------------------------------------


def to_int(value: str | None, default: int = 0) -> int:
    """Coerce a CSV string to int. Empty/None -> default."""
    if value is None or str(value).strip() == "":
        return default
    try:
        return int(float(value))
    except (ValueError, TypeError):
        return default


def to_int_or_none(value: str | None) -> int | None:
    if value is None or str(value).strip() == "":
        return None
    try:
        return int(float(value))
    except (ValueError, TypeError):
        return None


def fmt_bool(value: bool) -> str:
    return "TRUE" if value else "FALSE"
