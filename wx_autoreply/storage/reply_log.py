"""Global outcome log, newest entry first."""

from __future__ import annotations

import threading
from datetime import datetime
from pathlib import Path

from wx_autoreply.storage.models import OutcomeLogEntry
from wx_autoreply.utils.helpers import ensure_dir, read_json, start_of_day_ms, write_json

MAX_ENTRIES = 200


class OutcomeLog:
    """Bounded reply outcome log persisted to workspace/reply_logs.json."""

    def __init__(self, workspace: Path, max_entries: int = MAX_ENTRIES):
        self.path = ensure_dir(workspace) / "reply_logs.json"
        self.max_entries = max_entries
        self._lock = threading.Lock()

    def _read(self) -> list[OutcomeLogEntry]:
        raw = read_json(self.path, [])
        if not isinstance(raw, list):
            return []
        entries: list[OutcomeLogEntry] = []
        for item in raw:
            if isinstance(item, dict):
                try:
                    entries.append(OutcomeLogEntry.model_validate(item))
                except ValueError:
                    continue
        return entries

    def entries(self) -> list[OutcomeLogEntry]:
        with self._lock:
            return self._read()

    def append(self, entry: OutcomeLogEntry) -> None:
        """Prepend an entry and trim the tail beyond capacity."""
        with self._lock:
            entries = self._read()
            entries.insert(0, entry)
            del entries[self.max_entries:]
            write_json(self.path, [e.model_dump() for e in entries])

    def clear(self) -> None:
        with self._lock:
            self.path.unlink(missing_ok=True)

    def today_success_count(self, now: datetime | None = None) -> int:
        """Count successful entries stamped on or after local midnight."""
        since = start_of_day_ms(now)
        return sum(1 for e in self.entries() if e.success and e.timestamp >= since)
