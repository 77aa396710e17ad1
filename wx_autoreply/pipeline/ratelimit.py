"""Per-sender sliding rate window and daily reply counter."""

from __future__ import annotations

import threading
from collections.abc import Callable
from datetime import date, datetime

from wx_autoreply.utils.helpers import now_ms

RATE_WINDOW_MS = 60_000


class RateTracker:
    """
    Thread-safe send accounting.

    Each sender keeps the timestamps (epoch ms) of its recent sends; entries older than
    the trailing 60 s are pruned lazily on ``can_send``. The daily counter only grows
    within a calendar day and restarts from zero when the local date changes.
    """

    def __init__(
        self,
        max_per_minute: int,
        daily_count: int = 0,
        *,
        clock: Callable[[], int] = now_ms,
        today: Callable[[], date] = lambda: datetime.now().date(),
    ):
        self.max_per_minute = max_per_minute
        self._clock = clock
        self._today = today
        self._windows: dict[str, list[int]] = {}
        self._daily_count = max(0, int(daily_count))
        self._day = today()
        self._lock = threading.Lock()

    def can_send(self, sender: str, *, now: int | None = None, limit: int | None = None) -> bool:
        """True when fewer than ``limit`` sends fall within the trailing window."""
        current = self._clock() if now is None else now
        cap = self.max_per_minute if limit is None else limit
        cutoff = current - RATE_WINDOW_MS
        with self._lock:
            window = self._windows.setdefault(sender, [])
            window[:] = [ts for ts in window if ts >= cutoff]
            return len(window) < cap

    def record(self, sender: str, *, now: int | None = None) -> None:
        current = self._clock() if now is None else now
        with self._lock:
            self._windows.setdefault(sender, []).append(current)

    def window(self, sender: str) -> list[int]:
        with self._lock:
            return list(self._windows.get(sender, []))

    def _roll_day_locked(self) -> None:
        today = self._today()
        if today != self._day:
            self._day = today
            self._daily_count = 0

    @property
    def daily_count(self) -> int:
        with self._lock:
            self._roll_day_locked()
            return self._daily_count

    def record_success(self) -> int:
        """Count one successful reply for today; returns the new total."""
        with self._lock:
            self._roll_day_locked()
            self._daily_count += 1
            return self._daily_count
