"""Persisted state: contacts, conversation windows and the outcome log."""

from wx_autoreply.storage.contacts import ContactStore
from wx_autoreply.storage.history import ConversationStore
from wx_autoreply.storage.models import ChatTurn, Correspondent, OutcomeLogEntry
from wx_autoreply.storage.reply_log import OutcomeLog

__all__ = [
    "ChatTurn",
    "ContactStore",
    "ConversationStore",
    "Correspondent",
    "OutcomeLog",
    "OutcomeLogEntry",
]
