"""Render per-day worklists to a multi-sheet XLSX workbook."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Sequence

from ..models import DAY_KEYS, DAY_LABELS, AssignmentMap
from ..roster import ActiveStaff
from .schemas import UNASSIGNED_COLS, WORKLIST_COLS, fmt_bool


def _get_openpyxl():
    try:
        from openpyxl import Workbook
        from openpyxl.styles import Font, PatternFill
        return Workbook, Font, PatternFill
    except ImportError as exc:
        raise ImportError("openpyxl is required for XLSX export: pip install openpyxl") from exc


def _style_headers(worksheets):
    """Apply bold + blue fill to header row of each worksheet."""
    _, Font, PatternFill = _get_openpyxl()
    header_font = Font(bold=True)
    header_fill = PatternFill(start_color="D9E1F2", end_color="D9E1F2", fill_type="solid")
    for ws in worksheets:
        for cell in ws[1]:
            cell.font = header_font
            cell.fill = header_fill


def _worklist_rows(
    day: str,
    assignments: AssignmentMap,
    staff: Sequence[ActiveStaff],
) -> list[dict[str, Any]]:
    rows: list[dict[str, Any]] = []
    listed: set[str] = set()
    for person in staff:
        listed.add(person.name)
        for task in assignments.tasks_for(day, person.name):
            rows.append(_task_row(person.name, person.label, person.category, task))
    # worklists for people no longer on the roster still get exported
    for name in assignments.staff_keys(day):
        if name in listed:
            continue
        for task in assignments.tasks_for(day, name):
            rows.append(_task_row(name, "", "", task))
    return rows


def _task_row(name: str, shift: str, category: str, task) -> dict[str, Any]:
    return {
        "staff": name,
        "shift": shift,
        "category": category,
        "code": task.rule.code,
        "task": task.rule.name,
        "effort": task.effort,
        "due": task.rule.due_time,
        "done": fmt_bool(task.is_complete),
    }


def render_worklists_xlsx(
    assignments: AssignmentMap,
    active_staff_by_day: dict[str, Sequence[ActiveStaff]],
    path: Path,
    *,
    unassigned: Sequence[dict[str, Any]] | None = None,
) -> Path:
    """One sheet per day with assignments, plus an optional Unassigned sheet.

    Returns the path to the written file.
    """
    Workbook, Font, PatternFill = _get_openpyxl()

    wb = Workbook()
    wb.remove(wb.active)
    all_sheets = []

    for day in DAY_KEYS:
        if day not in active_staff_by_day and not assignments.staff_keys(day):
            continue
        ws = wb.create_sheet(DAY_LABELS[day])
        ws.append(WORKLIST_COLS)
        for row in _worklist_rows(day, assignments, active_staff_by_day.get(day, [])):
            ws.append([row.get(c, "") for c in WORKLIST_COLS])
        all_sheets.append(ws)

    if unassigned:
        ws_unassigned = wb.create_sheet("Unassigned")
        ws_unassigned.append(UNASSIGNED_COLS)
        for u in unassigned:
            ws_unassigned.append([u.get(c, "") for c in UNASSIGNED_COLS])
        all_sheets.append(ws_unassigned)

    if not all_sheets:
        ws = wb.create_sheet("Worklists")
        ws.append(WORKLIST_COLS)
        all_sheets.append(ws)

    _style_headers(all_sheets)
    for ws in all_sheets:
        for column, width in zip("ABCDEFGH", (22, 14, 11, 8, 40, 8, 12, 7)):
            ws.column_dimensions[column].width = width

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    wb.save(path)
    return path
