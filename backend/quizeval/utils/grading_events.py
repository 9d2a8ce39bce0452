"""Structured grading event log.

Events are always logged; when `GRADING_EVENTS_DIR` is set they are also
appended to `grading_events.jsonl` next to a small aggregate stats file.
"""

from __future__ import annotations

import json
import logging
import os
from datetime import datetime, timezone
from pathlib import Path
from threading import Lock
from typing import Optional

_WRITE_LOCK = Lock()
_LOGGER = logging.getLogger("quizeval.events")

_EMPTY_STATS = {
    "total_submissions": 0,
    "total_questions": 0,
    "configuration_errors": 0,
    "pending_reviews": 0,
    "last_error": "",
}


def _events_root() -> Optional[Path]:
    raw = os.getenv("GRADING_EVENTS_DIR", "").strip()
    if not raw:
        return None
    root = Path(raw).expanduser().resolve()
    root.mkdir(parents=True, exist_ok=True)
    return root


def get_grading_stats() -> dict:
    """Return the current aggregate stats snapshot."""
    root = _events_root()
    stats_file = root / "grading_stats.json" if root else None
    if not stats_file or not stats_file.exists():
        return dict(_EMPTY_STATS)
    try:
        return json.loads(stats_file.read_text(encoding="utf-8"))
    except (OSError, ValueError):
        return dict(_EMPTY_STATS)


def record_grading_event(event: dict) -> None:
    """Log `event` and, when enabled, persist it and update the stats."""
    payload = dict(event)
    payload.setdefault("timestamp", datetime.now(timezone.utc).isoformat())
    _LOGGER.info("grading_event %s", json.dumps(payload, ensure_ascii=True, default=str))
    root = _events_root()
    if root is None:
        return
    with _WRITE_LOCK:
        with (root / "grading_events.jsonl").open("a", encoding="utf-8") as fh:
            fh.write(json.dumps(payload, ensure_ascii=True, default=str) + "\n")
        _update_stats(root / "grading_stats.json", payload)


def _update_stats(stats_file: Path, event: dict) -> None:
    stats = dict(_EMPTY_STATS)
    if stats_file.exists():
        try:
            stats.update(json.loads(stats_file.read_text(encoding="utf-8")))
        except ValueError:
            pass

    kind = event.get("event")
    if kind == "configuration_error":
        stats["configuration_errors"] += 1
        stats["last_error"] = str(event.get("error", ""))
    elif kind == "submission_graded":
        stats["total_submissions"] += 1
        stats["total_questions"] += int(event.get("questions", 0))
        stats["pending_reviews"] += int(event.get("pending_reviews", 0))
    stats["updated_at"] = datetime.now(timezone.utc).isoformat()
    stats_file.write_text(json.dumps(stats, ensure_ascii=True, indent=2), encoding="utf-8")
