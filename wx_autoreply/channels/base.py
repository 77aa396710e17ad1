"""Base channel interface for notification sources."""

from abc import ABC, abstractmethod
from typing import Any

from wx_autoreply.bus.events import NotificationEvent
from wx_autoreply.bus.queue import NotificationBus


class BaseChannel(ABC):
    """
    Abstract base class for notification sources.

    A channel listens to the host, turns each posted notification into a
    ``NotificationEvent`` whose reply actions route back through the channel, and
    publishes it to the bus without blocking.
    """

    name: str = "base"

    def __init__(self, config: Any, bus: NotificationBus):
        """
        Initialize the channel.

        Args:
            config: Channel-specific configuration.
            bus: The notification bus to publish into.
        """
        self.config = config
        self.bus = bus
        self._running = False

    @abstractmethod
    async def start(self) -> None:
        """
        Start the channel and begin listening for notifications.

        This should be a long-running async task that connects to the host and
        forwards notifications via _handle_notification().
        """
        pass

    @abstractmethod
    async def stop(self) -> None:
        """Stop the channel and clean up resources."""
        pass

    def _handle_notification(self, event: NotificationEvent) -> None:
        """Enqueue a notification for the pipeline; never blocks."""
        self.bus.publish_nowait(event)

    @property
    def is_running(self) -> bool:
        """Check if the channel is running."""
        return self._running
