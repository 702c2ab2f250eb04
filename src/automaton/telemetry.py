"""Telemetry for provisioning and state-versioning runs.

Each CLI run gets a run id; every sandbox or state-repo milestone in that run
is appended to a JSONL file as one event:

  {"timestamp": <float>, "run_id": <str>, "type": <event>, "sandbox_id": <str>, "data": <object>}
"""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Literal, get_args

EventType = Literal[
    "sandbox_ready",
    "state_synced",
    "state_repo_initialized",
    "state_committed",
]

EVENT_TYPES: frozenset[str] = frozenset(get_args(EventType))


@dataclass(frozen=True)
class TelemetrySink:
    """Append-only JSONL sink for automaton lifecycle events."""

    enabled: bool
    path: Path

    def record(
        self,
        run_id: str,
        event_type: EventType,
        sandbox_id: str,
        data: dict[str, Any] | None = None,
    ) -> None:
        if event_type not in EVENT_TYPES:
            raise ValueError(f"Unknown event type: {event_type}. Must be one of {sorted(EVENT_TYPES)}")
        if not self.enabled:
            return

        self.path.parent.mkdir(parents=True, exist_ok=True)
        entry = {
            "timestamp": time.time(),
            "run_id": run_id,
            "type": event_type,
            "sandbox_id": sandbox_id,
            "data": data or {},
        }
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(json.dumps(entry, ensure_ascii=False) + "\n")


def new_run_id() -> str:
    return uuid.uuid4().hex[:12]


def read_events(
    telemetry_path: Path | str,
    limit: int | None = None,
    event_type: str | None = None,
    sandbox_id: str | None = None,
) -> list[dict[str, Any]]:
    """Read events back, oldest first, optionally filtered; malformed lines are skipped.

    ``limit`` applies after filtering.
    """
    path = Path(telemetry_path).expanduser()
    if not path.exists():
        return []
    events: list[dict[str, Any]] = []
    with open(path, encoding="utf-8") as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                event = json.loads(line)
            except json.JSONDecodeError:
                continue
            if not isinstance(event, dict):
                continue
            if event_type is not None and event.get("type") != event_type:
                continue
            if sandbox_id is not None and event.get("sandbox_id") != sandbox_id:
                continue
            events.append(event)
    if limit is not None:
        return events[-limit:] if limit > 0 else []
    return events
