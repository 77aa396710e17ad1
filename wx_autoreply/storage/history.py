"""Bounded per-correspondent conversation windows."""

from __future__ import annotations

import threading
from pathlib import Path

from wx_autoreply.storage.models import ChatTurn
from wx_autoreply.utils.helpers import ensure_dir, read_json, write_json

MAX_TURNS = 20


class ConversationStore:
    """Store the most recent chat turns for each correspondent in workspace/chat_history."""

    def __init__(self, workspace: Path, max_turns: int = MAX_TURNS):
        self.history_dir = ensure_dir(workspace / "chat_history")
        self.max_turns = max_turns
        self._lock = threading.Lock()

    def _path(self, contact_id: str) -> Path:
        return self.history_dir / f"{contact_id}.json"

    def _read(self, contact_id: str) -> list[ChatTurn]:
        raw = read_json(self._path(contact_id), [])
        if not isinstance(raw, list):
            return []
        turns: list[ChatTurn] = []
        for item in raw:
            if isinstance(item, dict):
                try:
                    turns.append(ChatTurn.model_validate(item))
                except ValueError:
                    continue
        return turns

    def get(self, contact_id: str) -> list[ChatTurn]:
        """Return the window in chronological order; unknown ids read as empty."""
        with self._lock:
            return self._read(contact_id)

    def append(self, contact_id: str, turn: ChatTurn) -> list[ChatTurn]:
        """Append a turn, evicting the oldest while the window exceeds its capacity."""
        with self._lock:
            turns = self._read(contact_id)
            turns.append(turn)
            while len(turns) > self.max_turns:
                turns.pop(0)
            write_json(self._path(contact_id), [t.model_dump() for t in turns])
            return turns

    def clear(self, contact_id: str) -> None:
        with self._lock:
            self._path(contact_id).unlink(missing_ok=True)
