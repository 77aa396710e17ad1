"""Notification filtering and (sender, text) extraction."""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass

from loguru import logger

from wx_autoreply.bus.events import NotificationEvent
from wx_autoreply.config.schema import IntakeConfig


@dataclass(frozen=True)
class ExtractedMessage:
    sender: str
    text: str


class NotificationExtractor:
    """Pattern tables deciding which notifications carry a direct text message."""

    def __init__(
        self,
        source_package: str,
        group_title_pattern: str,
        placeholder_markers: Iterable[str],
    ):
        self.source_package = source_package
        self.group_title = re.compile(group_title_pattern, re.DOTALL)
        self.placeholder_markers = tuple(m for m in placeholder_markers if m)

    @classmethod
    def from_config(cls, config: IntakeConfig) -> NotificationExtractor:
        return cls(config.source_package, config.group_title_pattern, config.placeholder_markers)

    def is_source(self, event: NotificationEvent) -> bool:
        return event.package == self.source_package

    def is_group_title(self, title: str) -> bool:
        return self.group_title.fullmatch(title) is not None

    def is_placeholder(self, text: str) -> bool:
        return any(marker in text for marker in self.placeholder_markers)

    def extract_sender(self, event: NotificationEvent) -> str | None:
        title = (event.title or "").strip()
        if not title:
            return None
        if self.is_group_title(title):
            logger.debug(f"Group conversation skipped: {title}")
            return None
        return title

    def extract_message(self, event: NotificationEvent) -> str | None:
        text = event.text or ""
        if not text.strip():
            return None
        if self.is_placeholder(text):
            logger.debug(f"Non-text message skipped: {text}")
            return None
        return text

    def extract(self, event: NotificationEvent) -> ExtractedMessage | None:
        """Return (sender, text) for an admissible event, otherwise None."""
        if not self.is_source(event):
            return None
        sender = self.extract_sender(event)
        if sender is None:
            return None
        text = self.extract_message(event)
        if text is None:
            return None
        return ExtractedMessage(sender=sender, text=text)
