"""Claude-backed helpers: roster OCR, workplace task suggestions, huddle text.

All three are opaque collaborators of the worklist service. Nothing they
return is adopted until it parsed cleanly into roster/catalog entities.
"""

from __future__ import annotations

import base64
import json
import logging
import mimetypes
import os
import re
import time
from pathlib import Path
from typing import Any

from worklist_core.catalog import AI_TASK_ID_BASE
from worklist_core.models import DAY_KEYS, DEFAULT_EFFORT, OFF_MARKER, Schedule, StaffMember, TaskRule

from .config import DEFAULT_MODEL

logger = logging.getLogger(__name__)

AI_TASK_ID_MAX = 8999
HUDDLE_FALLBACK = "Team, let's focus on safety and customers today! (AI Offline)"
IMPORTED_WEEK_PERIOD = "Imported Schedule"


class NoShiftsFoundError(ValueError):
    """The roster image produced no employee rows."""


_SCHEDULE_PROMPT = """\
You are a data extraction assistant for a retail roster system.
Analyze this image of a weekly staff schedule.

Return a JSON object with:
1. "week_period": the date range shown (e.g. "Nov 30 - Dec 7").
2. "shifts": one object per employee row:
   {{"name": "...", "role": "...", {day_fields}}}

Rules:
- Role: Lead, Stock, Overnight, Supervisor ... Use "Stock" when unclear.
- Keep 12-hour times and PRESERVE AM/PM suffixes exactly as printed.
- Format each day as "Start-End" (e.g. "7:00AM-3:00PM", "10:00PM-6:00AM").
- Use "OFF" for days off and "LOANED OUT" for loaned cells.
- Only when no suffix is printed, return plain H:MM (e.g. "5:00-1:00").

Return ONLY JSON."""

_WORKPLACE_PROMPT = """\
You are a retail operations expert. Analyze this image of a store area.
Identify 3-5 specific, actionable tasks to improve it (stocking, cleaning,
safety, organizing). Be specific to what you see; no generic advice.

Return a JSON array of objects:
{"code": "short code such as CLN or STK", "name": "actionable task", "type": "general", "effort": minutes}"""

_HUDDLE_PROMPT = """\
Write a high-energy, 30-second pre-shift huddle speech for a retail team.
Day: {day}
Staff count: {headcount}
Focus areas: {focus}

Keep it professional but motivating. Plain text, no markdown."""


# ---------------------------------------------------------------------------
# Anthropic client helpers
# ---------------------------------------------------------------------------

def _get_client():
    import anthropic
    api_key = os.getenv("ANTHROPIC_API_KEY")
    if not api_key:
        raise RuntimeError("ANTHROPIC_API_KEY not set")
    return anthropic.Anthropic(api_key=api_key, timeout=120.0)


def _get_model() -> str:
    return os.getenv("ANTHROPIC_MODEL", DEFAULT_MODEL)


def _call_llm(content: str | list[dict[str, Any]], *, max_tokens: int = 4096, client=None) -> str:
    """Call the Anthropic API with 3-attempt retry on 429/529."""
    import anthropic

    client = client or _get_client()
    model = _get_model()

    for attempt in range(3):
        try:
            message = client.messages.create(
                model=model,
                max_tokens=max_tokens,
                messages=[{"role": "user", "content": content}],
            )
            return message.content[0].text if message.content else ""
        except anthropic.APIStatusError as exc:
            if exc.status_code in (429, 529) and attempt < 2:
                wait = 2 ** (attempt + 1)
                logger.warning("API %s, retrying in %ds ...", exc.status_code, wait)
                time.sleep(wait)
            else:
                raise
    return ""


def _extract_json(text: str) -> Any:
    """Extract the first JSON object or array from LLM response text."""
    m = re.search(r"```(?:json)?\s*\n(.*?)```", text, re.DOTALL)
    if m:
        return json.loads(m.group(1).strip())
    depth = 0
    start = None
    for i, ch in enumerate(text):
        if ch in "{[":
            if depth == 0:
                start = i
            depth += 1
        elif ch in "}]":
            depth -= 1
            if depth == 0 and start is not None:
                return json.loads(text[start : i + 1])
    raise ValueError("No JSON object found in LLM response")


def _image_block(path: Path) -> dict[str, Any]:
    path = Path(path)
    media_type = mimetypes.guess_type(path.name)[0] or "image/png"
    data = base64.standard_b64encode(path.read_bytes()).decode("ascii")
    return {"type": "image", "source": {"type": "base64", "media_type": media_type, "data": data}}


# ---------------------------------------------------------------------------
# Roster OCR
# ---------------------------------------------------------------------------

def schedule_from_payload(payload: Any) -> Schedule:
    """Hydrate an extracted roster: role defaults to Stock, missing days to OFF."""
    if not isinstance(payload, dict):
        raise NoShiftsFoundError("AI response is not a roster object")
    rows = payload.get("shifts")
    if not isinstance(rows, list):
        rows = []
    stamp = int(time.time() * 1000)
    members = []
    for i, row in enumerate(rows):
        if not isinstance(row, dict) or not str(row.get("name") or "").strip():
            continue
        member = StaffMember.from_dict(row)
        member.id = str(stamp + i)
        members.append(member)
    if not members:
        raise NoShiftsFoundError("No shifts found in the roster image. Ensure the image is clear.")
    return Schedule(week_period=str(payload.get("week_period") or IMPORTED_WEEK_PERIOD), shifts=members)


def extract_schedule_from_image(path: Path, *, client=None) -> Schedule:
    prompt = _SCHEDULE_PROMPT.format(day_fields=", ".join(f'"{d}": "Start-End or {OFF_MARKER}"' for d in DAY_KEYS))
    raw = _call_llm([_image_block(path), {"type": "text", "text": prompt}], max_tokens=8192, client=client)
    schedule = schedule_from_payload(_extract_json(raw))
    logger.info("Roster scan %s: %d rows (%s)", Path(path).name, len(schedule.shifts), schedule.week_period)
    return schedule


# ---------------------------------------------------------------------------
# Workplace analysis
# ---------------------------------------------------------------------------

def rules_from_payload(payload: Any) -> list[TaskRule]:
    if isinstance(payload, dict):
        payload = payload.get("tasks") or []
    if not isinstance(payload, list):
        raise ValueError("AI response is not a task list")
    rules = []
    for i, row in enumerate(r for r in payload if isinstance(r, dict)):
        name = str(row.get("name") or "").strip()
        if not name:
            continue
        try:
            effort = int(row.get("effort") or DEFAULT_EFFORT)
        except (TypeError, ValueError):
            effort = DEFAULT_EFFORT
        rules.append(
            TaskRule(
                id=min(AI_TASK_ID_BASE + i, AI_TASK_ID_MAX),
                code=str(row.get("code") or "AI").strip().upper()[:6],
                name=name,
                type="general",
                effort=effort if effort > 0 else DEFAULT_EFFORT,
            )
        )
    return rules


def analyze_workplace_image(path: Path, *, client=None) -> list[TaskRule]:
    raw = _call_llm([_image_block(path), {"type": "text", "text": _WORKPLACE_PROMPT}], client=client)
    rules = rules_from_payload(_extract_json(raw))
    logger.info("Workplace scan %s: %d suggested tasks", Path(path).name, len(rules))
    return rules


# ---------------------------------------------------------------------------
# Huddle
# ---------------------------------------------------------------------------

def generate_huddle(day_label: str, headcount: int, focus_areas: list[str], *, client=None) -> str:
    prompt = _HUDDLE_PROMPT.format(
        day=day_label,
        headcount=headcount,
        focus=", ".join(focus_areas) or "General Service & Speed",
    )
    try:
        text = _call_llm(prompt, max_tokens=1024, client=client).strip()
    except Exception:
        logger.exception("Huddle generation failed, using fallback text")
        return HUDDLE_FALLBACK
    return text or "Let's have a great shift team!"
