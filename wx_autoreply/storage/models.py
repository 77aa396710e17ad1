"""Persisted record types."""

import uuid

from pydantic import BaseModel, ConfigDict, Field

from wx_autoreply.utils.helpers import now_ms

DEFAULT_STYLE = "朋友之间随意聊天，回复简短自然"


def _new_id() -> str:
    return str(uuid.uuid4())


class Correspondent(BaseModel):
    """A whitelisted contact the service may answer."""
    id: str = Field(default_factory=_new_id)
    name: str  # matched against the notification sender
    enabled: bool = True
    style: str = DEFAULT_STYLE
    created_at: int = Field(default_factory=now_ms)


class ChatTurn(BaseModel):
    """One message in a correspondent's conversation window."""
    role: str  # "user" or "assistant"
    content: str
    timestamp: int = Field(default_factory=now_ms)

    model_config = ConfigDict(frozen=True)


class OutcomeLogEntry(BaseModel):
    """Result of one reply attempt."""
    id: str = Field(default_factory=_new_id)
    contact_name: str
    received_message: str
    replied_message: str
    timestamp: int = Field(default_factory=now_ms)
    success: bool = True
