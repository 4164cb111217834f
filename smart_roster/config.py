from __future__ import annotations

import json
import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from worklist_core.time_utils import DEFAULT_HEURISTICS, ShiftHeuristics

logger = logging.getLogger(__name__)

BACKENDS = ("file", "supabase")
DEFAULT_MODEL = "claude-sonnet-4-20250514"


@dataclass(frozen=True)
class SupabaseConfig:
    url: str
    anon_key: str


@dataclass(frozen=True)
class HttpConfig:
    host: str
    port: int
    api_key: str | None


@dataclass(frozen=True)
class RuntimeConfig:
    data_dir: Path
    backend: str
    heuristics_file: Path | None
    early_roles: tuple[str, ...] | None
    anthropic_model: str


def load_env(dotenv_path: str | Path | None = None) -> None:
    path = Path(dotenv_path) if dotenv_path else None
    if path and path.exists():
        load_dotenv(path)
        return
    load_dotenv()


def runtime_config() -> RuntimeConfig:
    data_dir = Path(os.getenv("SMART_ROSTER_DATA_DIR", "./roster_data")).expanduser().resolve()
    backend = os.getenv("SMART_ROSTER_BACKEND", "file").strip().lower() or "file"
    if backend not in BACKENDS:
        raise ValueError(f"Unknown SMART_ROSTER_BACKEND {backend!r}. Choose from {BACKENDS}")

    heuristics_file = os.getenv("SMART_ROSTER_HEURISTICS_FILE", "").strip()
    early_roles = os.getenv("SMART_ROSTER_EARLY_ROLES", "").strip()

    return RuntimeConfig(
        data_dir=data_dir,
        backend=backend,
        heuristics_file=Path(heuristics_file).expanduser() if heuristics_file else None,
        early_roles=tuple(r.strip() for r in early_roles.split(",") if r.strip()) or None,
        anthropic_model=os.getenv("ANTHROPIC_MODEL", DEFAULT_MODEL),
    )


def get_supabase_config() -> SupabaseConfig:
    url = os.getenv("SUPABASE_URL", "").strip()
    anon_key = os.getenv("SUPABASE_ANON_KEY", "").strip()
    if not url or not anon_key:
        missing = [name for name, value in (("SUPABASE_URL", url), ("SUPABASE_ANON_KEY", anon_key)) if not value]
        raise ValueError(
            f"Missing Supabase credentials: {', '.join(missing)}. "
            "Set them or use SMART_ROSTER_BACKEND=file."
        )
    return SupabaseConfig(url=url.rstrip("/"), anon_key=anon_key)


def http_config() -> HttpConfig:
    """Bind address and bearer token for the streamable-http transport."""
    raw_port = os.getenv("PORT", "8080").strip()
    try:
        port = int(raw_port)
    except ValueError:
        raise ValueError(f"PORT must be an integer, got {raw_port!r}") from None
    api_key = (os.getenv("SMART_ROSTER_API_KEY") or os.getenv("MCP_API_KEY") or "").strip()
    return HttpConfig(host=os.getenv("HOST", "0.0.0.0"), port=port, api_key=api_key or None)


def load_heuristic_overrides(path: Path | None) -> dict[str, Any]:
    if path is None:
        return {}
    if not path.exists():
        raise FileNotFoundError(f"Heuristics file not found: {path}")
    with path.open("r", encoding="utf-8") as fh:
        payload = json.load(fh)
    if not isinstance(payload, dict):
        raise ValueError(f"Heuristics file must hold a JSON object: {path}")
    return payload


def load_heuristics(cfg: RuntimeConfig | None = None) -> ShiftHeuristics:
    """Shift-parsing thresholds with the file and env overrides applied."""
    cfg = cfg or runtime_config()
    overrides = load_heuristic_overrides(cfg.heuristics_file)
    if cfg.early_roles:
        overrides["early_role_keywords"] = list(cfg.early_roles)
    if overrides:
        logger.info("Shift heuristic overrides: %s", sorted(overrides))
    return DEFAULT_HEURISTICS.with_overrides(overrides)
