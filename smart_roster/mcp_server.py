"""smart-roster MCP server.

Exposes tools for roster and task-catalog editing, daily worklist
auto-distribution, single-task edits, evaluation, AI roster/workplace scans
and JSON backups.
"""
from __future__ import annotations

import argparse
import atexit
import hmac
import logging
import os
from pathlib import Path
from typing import Any

from mcp.server.fastmcp import FastMCP

from worklist_core.io import load_catalog_csv, load_schedule_csv, render_worklists_xlsx, write_day_summary
from worklist_core.models import Schedule, ensure_day

from .config import get_supabase_config, http_config, load_env, load_heuristics, runtime_config
from .service import WorklistService
from .storage import AutoSaver, FileRepository, RosterRepository
from .storage import export_bundle as _export_bundle
from .storage import import_bundle as _import_bundle

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "smart-roster",
    host=os.getenv("HOST", "127.0.0.1"),
    port=int(os.getenv("PORT", "8000")),
    instructions=(
        "Daily task worklists for a retail store team. "
        "Reads the weekly roster and the task catalog, auto-distributes the "
        "day's tasks across working staff, and supports manual edits. "
        "Distribution and clearing need confirm=true because they replace a whole day."
    ),
)

_ENV_FILE: str | None = None
_SERVICE: WorklistService | None = None


def _repository() -> RosterRepository:
    cfg = runtime_config()
    if cfg.backend == "supabase":
        from .supabase_store import SupabaseRepository, SupabaseRestClient

        return SupabaseRepository(SupabaseRestClient(get_supabase_config()))
    return FileRepository(cfg.data_dir)


def _service() -> WorklistService:
    global _SERVICE
    if _SERVICE is None:
        load_env(_ENV_FILE or os.getenv("SMART_ROSTER_ENV_FILE"))
        cfg = runtime_config()
        repo = _repository()
        saver = AutoSaver(repo.save_schedule, name="schedule autosave")
        atexit.register(saver.flush)
        _SERVICE = WorklistService(repo, heuristics=load_heuristics(cfg), schedule_saver=saver)
    return _SERVICE


def _report_dir(day: str) -> Path:
    return runtime_config().data_dir / "reports" / day


# -- Roster --

@mcp.tool()
def get_schedule() -> dict[str, Any]:
    """Return the weekly roster: week_period plus one row per staff member (sun..sat shift strings)."""
    return _service().schedule().to_dict()


@mcp.tool()
def save_schedule(schedule: dict[str, Any]) -> dict[str, Any]:
    """Replace the weekly roster. Rows need name, role and sun..sat shift strings ("OFF" when off)."""
    parsed = Schedule.from_dict(schedule)
    _service().replace_schedule(parsed)
    return {"week_period": parsed.week_period, "rows": len(parsed.shifts)}


@mcp.tool()
def set_shift(name: str, day: str, value: str) -> dict[str, Any]:
    """Edit a single roster cell, e.g. set_shift("Jane Smith", "mon", "5:00AM-1:30PM")."""
    member = _service().set_shift(name, day, value)
    return member.to_dict()


@mcp.tool()
def add_roster_row(name: str, role: str = "Stock") -> dict[str, Any]:
    """Append a roster row for a new person, off every day until shifts are set."""
    return _service().add_staff_row(name, role).to_dict()


@mcp.tool()
def remove_roster_row(name: str) -> dict[str, Any]:
    """Remove a person's roster row. Their existing worklists are kept."""
    return {"name": name, "removed": _service().remove_staff_row(name)}


@mcp.tool()
def import_schedule_csv(path: str, week_period: str | None = None) -> dict[str, Any]:
    """Replace the roster from a CSV with columns name, role, sun..sat."""
    schedule = load_schedule_csv(Path(path), week_period=week_period)
    _service().replace_schedule(schedule)
    return {"week_period": schedule.week_period, "rows": len(schedule.shifts)}


@mcp.tool()
def active_staff(day: str) -> list[dict[str, Any]]:
    """Who works on a day (including overnight carry-over), with parsed label, category and AM/PM doubts."""
    return _service().describe_staff(day)


@mcp.tool()
def sync_team(direction: str = "schedule_to_team") -> dict[str, Any]:
    """Sync roster and team list by name: 'schedule_to_team' or 'team_to_schedule'."""
    svc = _service()
    if direction == "schedule_to_team":
        added = svc.import_schedule_to_team()
    elif direction == "team_to_schedule":
        added = svc.add_team_to_schedule()
    else:
        raise ValueError("direction must be 'schedule_to_team' or 'team_to_schedule'")
    return {"direction": direction, "added": added}


# -- Task catalog --

@mcp.tool()
def list_rules(task_type: str | None = None) -> list[dict[str, Any]]:
    """List task rules in the catalog, optionally filtered by type."""
    rules = _service().repo.get_catalog()
    return [r.to_dict() for r in rules if task_type is None or r.type == task_type]


@mcp.tool()
def upsert_rule(rule: dict[str, Any]) -> dict[str, Any]:
    """Create or replace a task rule (matched by id)."""
    return _service().upsert_rule(rule).to_dict()


@mcp.tool()
def delete_rule(rule_id: int) -> dict[str, Any]:
    """Remove a task rule from the catalog."""
    return {"rule_id": rule_id, "deleted": _service().delete_rule(rule_id)}


@mcp.tool()
def edit_fallback(rule_id: int, add: str | None = None, remove_index: int | None = None) -> dict[str, Any]:
    """Append a name to a rule's fallback chain, or drop the entry at remove_index."""
    svc = _service()
    if add:
        return svc.add_fallback(rule_id, add).to_dict()
    if remove_index is not None:
        return svc.remove_fallback(rule_id, remove_index).to_dict()
    raise ValueError("pass add or remove_index")


@mcp.tool()
def import_catalog_csv(path: str) -> dict[str, Any]:
    """Replace the task catalog from a CSV (pipe-separated fallback_chain / excluded_days)."""
    rules = load_catalog_csv(Path(path), strict=True)
    _service().repo.save_catalog(rules)
    return {"rules": len(rules)}


# -- Worklists --

@mcp.tool()
def get_worklists(day: str) -> list[dict[str, Any]]:
    """Each working person's tasks for a day with load in minutes."""
    return _service().worklists(day)


@mcp.tool()
def auto_distribute(day: str, confirm: bool = False, date_of_month: int | None = None) -> dict[str, Any]:
    """Replace a day's worklists with a fresh auto-distribution.

    Needs confirm=true. Returns counts, unassigned rules and staff whose
    AM/PM was guessed. A summary.json is written under the data dir.
    """
    svc = _service()
    summary = svc.auto_distribute(day, confirm=confirm, date_of_month=date_of_month)
    if svc.last_result is not None and summary.get("status") in ("completed", "no_rules"):
        paths = write_day_summary(svc.last_result, _report_dir(svc.last_result.day))
        summary["summary_path"] = str(paths["summary.json"])
    return summary


@mcp.tool()
def clear_day(day: str, confirm: bool = False) -> dict[str, Any]:
    """Remove every worklist for a day. Needs confirm=true."""
    return _service().clear_day(day, confirm=confirm)


@mcp.tool()
def add_manual_task(day: str, name: str, text: str, effort: int = 30) -> dict[str, Any]:
    """Append a free-text task to one person's list."""
    return _service().add_manual_task(day, name, text, effort).to_dict()


@mcp.tool()
def delete_task(day: str, name: str, instance_id: str) -> dict[str, Any]:
    """Delete one task instance from a person's list."""
    return _service().delete_task(day, name, instance_id).to_dict()


@mcp.tool()
def move_task(day: str, from_name: str, to_name: str, instance_id: str) -> dict[str, Any]:
    """Move one task instance to another person's list."""
    return _service().move_task(day, from_name, to_name, instance_id).to_dict()


@mcp.tool()
def toggle_task_complete(day: str, name: str, instance_id: str) -> dict[str, Any]:
    """Flip the done flag of one task instance."""
    return _service().toggle_complete(day, name, instance_id).to_dict()


@mcp.tool()
def export_worklists(path: str, days: list[str] | None = None) -> dict[str, Any]:
    """Write worklists to an XLSX workbook, one sheet per day."""
    svc = _service()
    keys = [ensure_day(d) for d in days] if days else svc.assignments().days()
    staff_by_day = {d: svc.active_staff(d) for d in keys}
    target = render_worklists_xlsx(svc.assignments(), staff_by_day, Path(path))
    return {"path": str(target), "days": keys}


# -- Evaluation --

@mcp.tool()
def evaluate_day(day: str) -> dict[str, Any]:
    """Load balance (mean/std/gini), idle staff, duplicate and time-window violations for a day."""
    from .eval_lite import evaluate_day as _evaluate_day

    svc = _service()
    day = ensure_day(day)
    return _evaluate_day(svc.assignments(), day, svc.active_staff(day), heuristics=svc.heuristics)


# -- AI helpers --

@mcp.tool()
def daily_huddle(day: str) -> dict[str, Any]:
    """Write a short pre-shift huddle speech featuring the pinned priority tasks."""
    from .assistant import generate_huddle

    return _service().huddle(day, generate_huddle)


@mcp.tool()
def scan_schedule(image_path: str, adopt: bool = False) -> dict[str, Any]:
    """Read a roster photo/scan into a schedule. With adopt=true it replaces the saved roster."""
    from .assistant import extract_schedule_from_image

    schedule = extract_schedule_from_image(Path(image_path))
    if adopt:
        _service().replace_schedule(schedule)
    return {"adopted": adopt, "schedule": schedule.to_dict()}


@mcp.tool()
def analyze_workplace(image_path: str, adopt_day: str | None = None) -> dict[str, Any]:
    """Suggest 3-5 tasks from a store photo. With adopt_day they go to that day's lead."""
    from .assistant import analyze_workplace_image

    rules = analyze_workplace_image(Path(image_path))
    result: dict[str, Any] = {"tasks": [r.to_dict() for r in rules]}
    if adopt_day:
        result["adopted"] = _service().adopt_ai_tasks(adopt_day, rules)
    return result


# -- Backup --

@mcp.tool()
def export_bundle(path: str) -> dict[str, Any]:
    """Write schedule, catalog, worklists and team to one JSON backup file."""
    svc = _service()
    svc.flush()
    return {"path": str(_export_bundle(svc.repo, Path(path)))}


@mcp.tool()
def import_bundle(path: str) -> dict[str, Any]:
    """Restore from a JSON backup; the catalog is validated before anything is written."""
    svc = _service()
    svc.flush()
    return {"adopted": _import_bundle(svc.repo, Path(path))}


# -- Server entrypoints --

def _build_http_app(api_key: str | None):
    """Streamable-http MCP app with an open /health route and bearer auth on the rest."""
    from starlette.middleware.base import BaseHTTPMiddleware
    from starlette.responses import JSONResponse
    from starlette.routing import Route

    class RequireBearer(BaseHTTPMiddleware):
        async def dispatch(self, request, call_next):
            if request.url.path == "/health":
                return await call_next(request)
            scheme, _, token = request.headers.get("authorization", "").partition(" ")
            if scheme.lower() != "bearer" or not hmac.compare_digest(token.encode(), api_key.encode()):
                return JSONResponse({"error": "unauthorized"}, status_code=401)
            return await call_next(request)

    async def health(request):
        return JSONResponse({"status": "ok", "backend": runtime_config().backend})

    app = mcp.streamable_http_app()
    if api_key:
        app.add_middleware(RequireBearer)
    else:
        logger.warning("No SMART_ROSTER_API_KEY set; the HTTP transport accepts every request")
    app.routes.append(Route("/health", health))
    return app


async def _run_http() -> None:
    import uvicorn

    load_env(_ENV_FILE or os.getenv("SMART_ROSTER_ENV_FILE"))
    cfg = http_config()
    app = _build_http_app(cfg.api_key)
    logger.info("Serving MCP over streamable-http on %s:%d", cfg.host, cfg.port)
    await uvicorn.Server(uvicorn.Config(app, host=cfg.host, port=cfg.port, log_level="info")).serve()


def main() -> None:
    global _ENV_FILE

    parser = argparse.ArgumentParser(description="Run smart-roster MCP server")
    parser.add_argument("--env-file", default=None, help="Path to .env file")
    parser.add_argument(
        "--transport",
        default=None,
        choices=["stdio", "sse", "streamable-http"],
        help="MCP transport (default: streamable-http when PORT is set, else stdio)",
    )
    parser.add_argument("--log-level", default=os.getenv("LOG_LEVEL", "INFO"), help="Python logging level")
    args = parser.parse_args()
    _ENV_FILE = args.env_file

    logging.basicConfig(
        level=getattr(logging, str(args.log_level).upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    transport = args.transport
    if transport is None:
        transport = "streamable-http" if os.getenv("PORT") else "stdio"

    if transport == "streamable-http":
        import anyio
        anyio.run(_run_http)
    else:
        mcp.run(transport=transport)


if __name__ == "__main__":
    main()
