"""Event types carried on the notification bus."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

SendFn = Callable[[dict[str, str]], Awaitable[None] | None]


@dataclass
class ReplyAction:
    """A reply-capable notification action: free-text input slots plus a send target."""

    title: str
    input_keys: list[str]
    send: SendFn

    @property
    def accepts_text(self) -> bool:
        return bool(self.input_keys)


@dataclass
class NotificationEvent:
    """Raw notification as delivered by the host."""

    package: str
    title: str | None
    text: str | None
    actions: list[ReplyAction] = field(default_factory=list)
    key: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)

    def reply_action(self) -> ReplyAction | None:
        """First action exposing at least one free-text input."""
        return next((a for a in self.actions if a.accepts_text), None)
