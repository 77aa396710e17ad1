"""Notification bus decoupling host intake from the reply pipeline."""

from wx_autoreply.bus.events import NotificationEvent, ReplyAction
from wx_autoreply.bus.queue import NotificationBus

__all__ = ["NotificationBus", "NotificationEvent", "ReplyAction"]
