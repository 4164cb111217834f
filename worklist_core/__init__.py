"""Shared task auto-distribution logic for the service and MCP layers."""

from .catalog import DEFAULT_TASK_DB, PRIORITY_PINNED_IDS
from .distributor import DistributionResult, distribute
from .load import current_load_minutes, least_loaded
from .models import (
    AssignedTask,
    AssignmentMap,
    CatalogError,
    Schedule,
    StaffMember,
    TaskRule,
    TeamMember,
    load_catalog,
)
from .names import find_staff_by_name, names_match
from .roster import ActiveStaff, active_staff_for_day
from .rules import priority_sort, rules_active_on
from .time_utils import DEFAULT_HEURISTICS, ShiftHeuristics, is_time_compatible, parse_shift_time

# io module: lazy xlsx re-export (avoids importing openpyxl at import time)
from .io import load_catalog_csv, load_schedule_csv, render_worklists_xlsx, write_day_summary

__all__ = [
    "DEFAULT_HEURISTICS",
    "DEFAULT_TASK_DB",
    "PRIORITY_PINNED_IDS",
    "ActiveStaff",
    "AssignedTask",
    "AssignmentMap",
    "CatalogError",
    "DistributionResult",
    "Schedule",
    "ShiftHeuristics",
    "StaffMember",
    "TaskRule",
    "TeamMember",
    "active_staff_for_day",
    "current_load_minutes",
    "distribute",
    "find_staff_by_name",
    "is_time_compatible",
    "least_loaded",
    "load_catalog",
    "load_catalog_csv",
    "load_schedule_csv",
    "names_match",
    "parse_shift_time",
    "priority_sort",
    "render_worklists_xlsx",
    "rules_active_on",
    "write_day_summary",
]
