"""Remote persistence over Supabase's PostgREST endpoint.

Rows are read loosely (``title``/``name``, ``dueTime``/``due_time``/``timing``,
``mon``/``mon_shift`` ...) because the tables have been populated by several
clients over time. Repository reads and writes raise on HTTP errors, so a
table that could not be read is never mistaken for an empty one.
"""

from __future__ import annotations

import logging
from time import sleep
from typing import Any

import httpx

from worklist_core.catalog import DEFAULT_TASK_DB
from worklist_core.models import DAY_KEYS, AssignedTask, AssignmentMap, CatalogError, Schedule, StaffMember, TaskRule, TeamMember, load_catalog

from .config import SupabaseConfig
from .storage import team_from_schedule

logger = logging.getLogger(__name__)

TASKS_TABLE = "tasks"
PLANNED_SHIFTS_TABLE = "planned_shifts"
WEEKLY_SCHEDULE_TABLE = "weekly_schedule"
ASSIGNMENTS_TABLE = "assignments"
MEMBERS_TABLE = "members"

CURRENT_WEEK_ID = "current"


class SupabaseRestClient:
    def __init__(self, cfg: SupabaseConfig, *, timeout_s: float = 30.0, retries: int = 3):
        self.base_url = f"{cfg.url.rstrip('/')}/rest/v1"
        self.anon_key = cfg.anon_key
        self.timeout_s = timeout_s
        self.retries = max(1, retries)

    def _headers(self, prefer: str | None = None) -> dict[str, str]:
        headers = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {self.anon_key}",
            "Accept": "application/json",
        }
        if prefer:
            headers["Prefer"] = prefer
        return headers

    def _request(
        self,
        method: str,
        table: str,
        *,
        params: dict[str, Any] | None = None,
        json_body: Any = None,
        prefer: str | None = None,
    ) -> httpx.Response:
        url = f"{self.base_url}/{table}"
        last_exc: Exception | None = None
        for attempt in range(self.retries):
            try:
                resp = httpx.request(
                    method,
                    url,
                    headers=self._headers(prefer),
                    params=params,
                    json=json_body,
                    timeout=self.timeout_s,
                )
                if resp.status_code >= 500 and attempt < self.retries - 1:
                    sleep(2**attempt)
                    continue
                resp.raise_for_status()
                return resp
            except (httpx.TimeoutException, httpx.ConnectError) as exc:
                last_exc = exc
                if attempt < self.retries - 1:
                    sleep(2**attempt)
                    continue
                raise
        if last_exc:
            raise last_exc
        raise RuntimeError("request failed without an explicit exception")

    def fetch_table(self, table: str, *, strict: bool = False) -> list[dict[str, Any]]:
        """GET every row. Errors yield an empty list unless ``strict``."""
        try:
            resp = self._request("GET", table, params={"select": "*"})
        except httpx.HTTPError as exc:
            if strict:
                raise
            logger.warning("Failed to fetch %s from Supabase: %s", table, exc)
            return []
        data = resp.json()
        return data if isinstance(data, list) else []

    def upsert_rows(self, table: str, rows: list[dict[str, Any]]) -> list[dict[str, Any]]:
        if not rows:
            return []
        resp = self._request(
            "POST",
            table,
            json_body=rows,
            prefer="resolution=merge-duplicates,return=representation",
        )
        data = resp.json() if resp.content else []
        return data if isinstance(data, list) else []

    def delete_rows(self, table: str, ids: list[str | int]) -> None:
        if not ids:
            return
        in_list = ",".join(f'"{i}"' if isinstance(i, str) else str(i) for i in ids)
        self._request("DELETE", table, params={"id": f"in.({in_list})"})


def _task_row(rule: TaskRule) -> dict[str, Any]:
    return {
        "id": rule.id,
        "code": rule.code,
        "name": rule.name,
        "type": rule.type,
        "fallback_chain": list(rule.fallback_chain),
        "due_time": rule.due_time or None,
        "effort": rule.effort,
        "frequency": rule.frequency,
        "frequency_day": rule.frequency_day,
        "frequency_date": rule.frequency_date,
        "excluded_days": list(rule.excluded_days),
    }


def _shift_row(member: StaffMember) -> dict[str, Any]:
    row: dict[str, Any] = {"id": member.id or member.name, "name": member.name, "role": member.role}
    for day in DAY_KEYS:
        row[day] = member.shift_for(day)
    row["is_manual"] = member.is_manual
    return row


def _assignment_key(row: dict[str, Any]) -> tuple[str, str] | None:
    day = str(row.get("day_key") or row.get("day") or row.get("dayKey") or "").lower()[:3]
    name = row.get("employee_name") or row.get("employee") or row.get("member_name") or row.get("name")
    if day not in DAY_KEYS or not name:
        return None
    return day, str(name)


class SupabaseRepository:
    def __init__(self, client: SupabaseRestClient):
        self.client = client

    def _fetch(self, table: str) -> list[dict[str, Any]]:
        # an unreadable table must never pass for an empty one
        return self.client.fetch_table(table, strict=True)

    # -- schedule --

    def get_schedule(self) -> Schedule:
        weeks = self._fetch(WEEKLY_SCHEDULE_TABLE)
        weeks.sort(key=lambda r: str(r.get("created_at") or ""), reverse=True)
        week_period = (weeks[0].get("week_period") or weeks[0].get("name")) if weeks else None
        shifts = [StaffMember.from_dict(r) for r in self._fetch(PLANNED_SHIFTS_TABLE)]
        return Schedule(week_period=week_period or "New Week", shifts=[s for s in shifts if s.name])

    def save_schedule(self, schedule: Schedule) -> None:
        self.client.upsert_rows(WEEKLY_SCHEDULE_TABLE, [{"id": CURRENT_WEEK_ID, "week_period": schedule.week_period}])
        rows = [_shift_row(m) for m in schedule.shifts]
        self.client.upsert_rows(PLANNED_SHIFTS_TABLE, rows)
        keep = {r["id"] for r in rows}
        stale = [r["id"] for r in self._fetch(PLANNED_SHIFTS_TABLE) if r.get("id") not in keep]
        self.client.delete_rows(PLANNED_SHIFTS_TABLE, stale)

    # -- catalog --

    def get_catalog(self) -> list[TaskRule]:
        rows = self._fetch(TASKS_TABLE)
        if not rows:
            return list(DEFAULT_TASK_DB)
        return load_catalog(rows)

    def save_catalog(self, rules: list[TaskRule]) -> None:
        self.client.upsert_rows(TASKS_TABLE, [_task_row(r) for r in rules])
        keep = {r.id for r in rules}
        stale = []
        for row in self._fetch(TASKS_TABLE):
            try:
                row_id = int(row.get("id"))
            except (TypeError, ValueError):
                continue
            if row_id not in keep:
                stale.append(row_id)
        self.client.delete_rows(TASKS_TABLE, stale)

    # -- assignments --

    def get_assignments(self) -> AssignmentMap:
        amap = AssignmentMap()
        for row in self._fetch(ASSIGNMENTS_TABLE):
            key = _assignment_key(row)
            if key is None:
                logger.warning("Skipping assignment row without day/name: %r", row.get("id"))
                continue
            day, name = key
            for task_row in row.get("tasks") or row.get("payload") or []:
                try:
                    task = AssignedTask.from_dict(task_row)
                except CatalogError as exc:
                    logger.warning("Dropping unreadable task under %r: %s", row.get("id"), exc)
                    continue
                amap.append(day, name, task)
        return amap

    def save_assignments(self, assignments: AssignmentMap) -> None:
        rows = []
        for day in assignments.days():
            for name in assignments.staff_keys(day):
                rows.append(
                    {
                        "id": f"{day}-{name}",
                        "day_key": day,
                        "employee_name": name,
                        "tasks": [t.to_dict() for t in assignments.tasks_for(day, name)],
                    }
                )
        self.client.upsert_rows(ASSIGNMENTS_TABLE, rows)
        keep = {r["id"] for r in rows}
        stale = [r["id"] for r in self._fetch(ASSIGNMENTS_TABLE) if r.get("id") not in keep]
        self.client.delete_rows(ASSIGNMENTS_TABLE, stale)

    # -- team --

    def get_team(self) -> list[TeamMember]:
        rows = self._fetch(MEMBERS_TABLE)
        if not rows:
            return team_from_schedule(self.get_schedule())
        return [TeamMember.from_dict(r) for r in rows]

    def save_team(self, team: list[TeamMember]) -> None:
        self.client.upsert_rows(
            MEMBERS_TABLE,
            [
                {"id": m.id, "name": m.name, "role": m.role, "is_active": m.is_active, "email": m.email, "phone": m.phone}
                for m in team
            ],
        )
