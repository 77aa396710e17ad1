"""Bounded inbound queue between the host callback and the reply pipeline."""

from __future__ import annotations

import asyncio

from loguru import logger

from wx_autoreply.bus.events import NotificationEvent


class NotificationBus:
    """
    Inbound notification queue.

    ``publish_nowait`` never blocks: a full queue drops the event. Calls from a thread
    other than the bound event loop are marshalled onto it.
    """

    def __init__(self, maxsize: int = 64):
        self.inbound: asyncio.Queue[NotificationEvent] = asyncio.Queue(maxsize=maxsize)
        self.dropped = 0
        self._loop: asyncio.AbstractEventLoop | None = None

    def bind_loop(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop or asyncio.get_running_loop()

    def publish_nowait(self, event: NotificationEvent) -> None:
        loop = self._loop
        if loop is not None and not loop.is_closed():
            try:
                running = asyncio.get_running_loop()
            except RuntimeError:
                running = None
            if running is not loop:
                loop.call_soon_threadsafe(self._offer, event)
                return
        self._offer(event)

    def _offer(self, event: NotificationEvent) -> None:
        try:
            self.inbound.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            logger.warning(f"Inbound queue full, dropping notification from {event.package}")

    async def consume(self) -> NotificationEvent:
        return await self.inbound.get()

    @property
    def inbound_size(self) -> int:
        return self.inbound.qsize()
