"""Filesystem and time helpers shared across modules."""

from __future__ import annotations

import json
import os
import time
from datetime import datetime
from pathlib import Path
from typing import Any

PRIMARY_DATA_DIR = ".wx-autoreply"
DATA_DIR_ENV = "WX_AUTOREPLY_DATA_DIR"


def ensure_dir(path: Path) -> Path:
    """Ensure a directory exists, returning it."""
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_path() -> Path:
    """Resolve the active data directory (env override, else ~/.wx-autoreply)."""
    override = (os.environ.get(DATA_DIR_ENV) or "").strip()
    if override:
        candidate = Path(override).expanduser()
        if not candidate.is_absolute():
            candidate = Path.home() / candidate
        return ensure_dir(candidate)
    return ensure_dir(Path.home() / PRIMARY_DATA_DIR)


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def start_of_day_ms(now: datetime | None = None) -> int:
    """Epoch milliseconds of local midnight for the given (or current) moment."""
    moment = now or datetime.now()
    midnight = moment.replace(hour=0, minute=0, second=0, microsecond=0)
    return int(midnight.timestamp() * 1000)


def read_json(path: Path, default: Any) -> Any:
    """Read a JSON file, returning ``default`` when missing or unreadable."""
    try:
        if not path.exists():
            return default
        return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, json.JSONDecodeError):
        return default


def write_json(path: Path, payload: Any) -> bool:
    """Write JSON through a temp file and atomic replace."""
    tmp_path = path.with_suffix(path.suffix + ".tmp")
    try:
        tmp_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
        tmp_path.replace(path)
        return True
    except OSError:
        return False
