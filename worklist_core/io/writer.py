"""Write catalog CSVs and per-day distribution summaries.

Row-level worklists live in the XLSX export; ``summary.json`` carries the
aggregate counts a dashboard needs without re-reading the assignment map.
"""

from __future__ import annotations

import csv
import json
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from ..models import TaskRule
from .schemas import CATALOG_COLS, pipe_join

if TYPE_CHECKING:
    from ..distributor import DistributionResult


def _catalog_row(rule: TaskRule) -> dict[str, object]:
    return {
        "id": rule.id,
        "code": rule.code,
        "name": rule.name,
        "type": rule.type,
        "fallback_chain": pipe_join(rule.fallback_chain),
        "due_time": rule.due_time,
        "effort": rule.effort,
        "frequency": rule.frequency,
        "frequency_day": rule.frequency_day or "",
        "frequency_date": "" if rule.frequency_date is None else rule.frequency_date,
        "excluded_days": pipe_join(rule.excluded_days),
    }


def write_catalog_csv(rules: Iterable[TaskRule], path: Path) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=CATALOG_COLS)
        writer.writeheader()
        for rule in rules:
            writer.writerow(_catalog_row(rule))
    return path


def _type_counts(result: DistributionResult) -> dict[str, int]:
    counts: dict[str, int] = {}
    for tasks in result.assignments.day(result.day).values():
        for task in tasks:
            counts[task.rule.type] = counts.get(task.rule.type, 0) + 1
    return dict(sorted(counts.items()))


def write_day_summary(result: DistributionResult, directory: Path) -> dict[str, Path]:
    """Write ``summary.json`` for one distribution run.

    Returns {"summary.json": Path(...)}.
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    summary = result.summary()
    summary["tasks_by_type"] = _type_counts(result)
    summary["staff"] = [
        {
            "name": s.name,
            "role": s.role,
            "shift": s.label,
            "category": s.category,
            "spillover": s.is_spillover,
        }
        for s in result.active_staff
    ]

    summary_path = directory / "summary.json"
    summary_path.write_text(
        json.dumps(summary, indent=2, ensure_ascii=False, default=str) + "\n",
        encoding="utf-8",
    )
    return {"summary.json": summary_path}
