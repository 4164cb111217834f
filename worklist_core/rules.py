"""Pick the catalog rules that are live on a given day."""

from __future__ import annotations

import logging
from collections.abc import Iterable, Sequence

from .catalog import PRIORITY_PINNED_IDS
from .models import TaskRule

logger = logging.getLogger(__name__)

DEFAULT_WEEKLY_DAY = "fri"
FRONT_OF_HOUSE_PREFIXES = ("T", "W")


def skip_reason(rule: TaskRule, day: str, date_of_month: int) -> str | None:
    if day in rule.excluded_days:
        return f"excluded on {day}"
    if rule.frequency == "weekly":
        target = rule.frequency_day or DEFAULT_WEEKLY_DAY
        if target != day:
            return f"weekly on {target}"
    elif rule.frequency == "monthly":
        if not rule.frequency_date:
            return "monthly without a date"
        if rule.frequency_date != date_of_month:
            return f"monthly on date {rule.frequency_date}"
    return None


def rules_active_on(catalog: Iterable[TaskRule], day: str, date_of_month: int) -> list[TaskRule]:
    live: list[TaskRule] = []
    for rule in catalog:
        reason = skip_reason(rule, day, date_of_month)
        if reason:
            logger.debug("Skipping %r: %s (today is %s, date %s)", rule.name, reason, day, date_of_month)
            continue
        live.append(rule)
    return live


def priority_rank(rule: TaskRule, pinned_ids: Sequence[int] = PRIORITY_PINNED_IDS) -> int:
    if rule.id in pinned_ids:
        return 0
    if rule.code.upper().startswith(FRONT_OF_HOUSE_PREFIXES):
        return 1
    return 2


def priority_sort(rules: Iterable[TaskRule], pinned_ids: Sequence[int] = PRIORITY_PINNED_IDS) -> list[TaskRule]:
    return sorted(rules, key=lambda r: priority_rank(r, pinned_ids))
