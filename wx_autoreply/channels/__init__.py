"""Notification channels feeding the bus."""

from wx_autoreply.channels.base import BaseChannel
from wx_autoreply.channels.bridge import NotificationBridgeChannel

__all__ = ["BaseChannel", "NotificationBridgeChannel"]
