"""ChatML prompt assembly for reply generation."""

from __future__ import annotations

from collections.abc import Iterable

from wx_autoreply.storage.models import ChatTurn

IM_START = "<|im_start|>"
IM_END = "<|im_end|>"
ROLE_MARKERS = (IM_START, IM_END)
ASSISTANT_ROLE = "assistant"

_KNOWN_ROLES = {"user", ASSISTANT_ROLE}

PERSONA_RULES = (
    "Rules:\n"
    "1. Output only the reply itself, no quotation marks and no explanations\n"
    "2. Keep it short and natural, like a real person texting\n"
    "3. Interjections and casual words are fine\n"
    "4. Avoid formal language\n"
    "5. Keep the reply to 1-3 sentences\n"
)


def _block(role: str, content: str) -> str:
    return f"{IM_START}{role}\n{content}{IM_END}\n"


def build_prompt(
    contact_name: str,
    style: str,
    history: Iterable[ChatTurn],
    new_message: str,
) -> str:
    """
    Build the generation prompt.

    Layout: persona/system block, one block per known-role history turn in order,
    the new user message, then an open assistant block for the model to continue.
    """
    system = (
        f'You are the user, chatting on WeChat with "{contact_name}".\n'
        f"Reply style: {style}\n"
        f"{PERSONA_RULES}"
    )
    parts = [_block("system", system)]
    for turn in history:
        if turn.role in _KNOWN_ROLES:
            parts.append(_block(turn.role, turn.content))
    parts.append(_block("user", new_message))
    parts.append(f"{IM_START}{ASSISTANT_ROLE}\n")
    return "".join(parts)
