"""JSON-file persistence for the roster, catalog, worklists and team.

Each document lives in its own file under the data directory and is replaced
atomically on save. ``export_bundle``/``import_bundle`` move all four
documents as a single backup file.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable, Protocol

from worklist_core.catalog import DEFAULT_TASK_DB
from worklist_core.models import AssignmentMap, Schedule, TaskRule, TeamMember, load_catalog

logger = logging.getLogger(__name__)

SCHEDULE_FILE = "schedule.json"
CATALOG_FILE = "task_db.json"
ASSIGNMENTS_FILE = "assignments.json"
TEAM_FILE = "team.json"

BUNDLE_KEYS = ("schedule", "taskDB", "assignments", "team")


class RosterRepository(Protocol):
    def get_schedule(self) -> Schedule: ...

    def save_schedule(self, schedule: Schedule) -> None: ...

    def get_catalog(self) -> list[TaskRule]: ...

    def save_catalog(self, rules: list[TaskRule]) -> None: ...

    def get_assignments(self) -> AssignmentMap: ...

    def save_assignments(self, assignments: AssignmentMap) -> None: ...

    def get_team(self) -> list[TeamMember]: ...

    def save_team(self, team: list[TeamMember]) -> None: ...


def _json_dump(path: Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as fh:
            json.dump(payload, fh, indent=2, ensure_ascii=False)
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise


def _json_load(path: Path) -> Any:
    with path.open("r", encoding="utf-8") as fh:
        return json.load(fh)


def team_from_schedule(schedule: Schedule) -> list[TeamMember]:
    return [
        TeamMember(id=m.id or m.name, name=m.name, role=m.role, is_active=True)
        for m in schedule.shifts
    ]


class FileRepository:
    def __init__(self, data_dir: Path):
        self.data_dir = Path(data_dir)
        self.data_dir.mkdir(parents=True, exist_ok=True)

    def _path(self, name: str) -> Path:
        return self.data_dir / name

    def _load(self, name: str) -> Any | None:
        path = self._path(name)
        if not path.exists():
            return None
        return _json_load(path)

    # -- schedule --

    def get_schedule(self) -> Schedule:
        payload = self._load(SCHEDULE_FILE)
        return Schedule.from_dict(payload) if payload is not None else Schedule()

    def save_schedule(self, schedule: Schedule) -> None:
        _json_dump(self._path(SCHEDULE_FILE), schedule.to_dict())

    # -- catalog --

    def get_catalog(self) -> list[TaskRule]:
        payload = self._load(CATALOG_FILE)
        if payload is None:
            return list(DEFAULT_TASK_DB)
        return load_catalog(payload)

    def save_catalog(self, rules: list[TaskRule]) -> None:
        _json_dump(self._path(CATALOG_FILE), [r.to_dict() for r in rules])

    # -- assignments --

    def get_assignments(self) -> AssignmentMap:
        return AssignmentMap.from_flat(self._load(ASSIGNMENTS_FILE))

    def save_assignments(self, assignments: AssignmentMap) -> None:
        _json_dump(self._path(ASSIGNMENTS_FILE), assignments.to_flat())

    # -- team --

    def get_team(self) -> list[TeamMember]:
        payload = self._load(TEAM_FILE)
        if payload is None:
            return team_from_schedule(self.get_schedule())
        return [TeamMember.from_dict(row) for row in payload if isinstance(row, dict)]

    def save_team(self, team: list[TeamMember]) -> None:
        _json_dump(self._path(TEAM_FILE), [m.to_dict() for m in team])

    # -- backup --

    def export_bundle(self, path: Path) -> Path:
        return export_bundle(self, path)

    def import_bundle(self, path: Path) -> list[str]:
        return import_bundle(self, path)


def export_bundle(repo: RosterRepository, path: Path) -> Path:
    bundle = {
        "schedule": repo.get_schedule().to_dict(),
        "taskDB": [r.to_dict() for r in repo.get_catalog()],
        "assignments": repo.get_assignments().to_flat(),
        "team": [m.to_dict() for m in repo.get_team()],
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }
    path = Path(path)
    _json_dump(path, bundle)
    logger.info("Exported backup to %s", path)
    return path


def import_bundle(repo: RosterRepository, path: Path) -> list[str]:
    """Adopt every document present in a backup file.

    All present keys are parsed before anything is written, so a bad
    catalog (e.g. duplicate ids) leaves the store untouched.
    """
    payload = _json_load(Path(path))
    if not isinstance(payload, dict):
        raise ValueError(f"Backup file must hold a JSON object: {path}")

    parsed: dict[str, Any] = {}
    if payload.get("schedule"):
        parsed["schedule"] = Schedule.from_dict(payload["schedule"])
    if payload.get("taskDB"):
        parsed["taskDB"] = load_catalog(payload["taskDB"], strict=True)
    if payload.get("assignments"):
        parsed["assignments"] = AssignmentMap.from_flat(payload["assignments"])
    if payload.get("team"):
        parsed["team"] = [TeamMember.from_dict(row) for row in payload["team"] if isinstance(row, dict)]

    if "schedule" in parsed:
        repo.save_schedule(parsed["schedule"])
    if "taskDB" in parsed:
        repo.save_catalog(parsed["taskDB"])
    if "assignments" in parsed:
        repo.save_assignments(parsed["assignments"])
    if "team" in parsed:
        repo.save_team(parsed["team"])

    adopted = [k for k in BUNDLE_KEYS if k in parsed]
    logger.info("Imported backup %s: %s", path, adopted)
    return adopted


class AutoSaver:
    """Debounced background save.

    Each ``schedule`` call restarts the timer; only the last value is written.
    Failures are logged, never raised to the caller. ``cancel`` waits for a
    save already in progress, and a value superseded by a later ``schedule``
    or ``cancel`` is never written.
    """

    def __init__(self, save: Callable[[Any], None], delay_s: float = 1.0, name: str = "autosave"):
        self._save = save
        self.delay_s = delay_s
        self.name = name
        self._lock = threading.Lock()
        self._save_lock = threading.Lock()
        self._generation = 0
        self._timer: threading.Timer | None = None
        self._pending: Any = None
        self._has_pending = False

    def schedule(self, value: Any) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
            self._pending = value
            self._has_pending = True
            self._generation += 1
            self._timer = threading.Timer(self.delay_s, self.flush)
            self._timer.daemon = True
            self._timer.start()

    def flush(self) -> bool:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            if not self._has_pending:
                return False
            value = self._pending
            generation = self._generation
            self._pending = None
            self._has_pending = False
        with self._save_lock:
            with self._lock:
                if generation != self._generation:
                    logger.debug("%s skipped a superseded value", self.name)
                    return False
            try:
                self._save(value)
            except Exception:
                logger.exception("%s failed", self.name)
                return False
        return True

    def cancel(self) -> None:
        with self._lock:
            if self._timer is not None:
                self._timer.cancel()
                self._timer = None
            self._pending = None
            self._has_pending = False
            self._generation += 1
        # block until a save that already started has landed
        with self._save_lock:
            pass

    @property
    def pending(self) -> bool:
        return self._has_pending
