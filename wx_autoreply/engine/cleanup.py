"""Post-generation reply cleanup."""

from __future__ import annotations

import re

from wx_autoreply.engine.prompt import ASSISTANT_ROLE, IM_END, ROLE_MARKERS

MAX_REPLY_CHARS = 200
SENTENCE_ENDINGS = "。！？~～.!?"
QUOTE_PAIRS = {'"': '"', "'": "'", "“": "”", "‘": "’", "「": "」"}

_ROLE_WORD = re.compile(rf"(?<![A-Za-z]){ASSISTANT_ROLE}(?![A-Za-z])")


def _strip_quotes(text: str) -> str:
    if len(text) >= 2 and QUOTE_PAIRS.get(text[0]) == text[-1]:
        return text[1:-1]
    return text


def _truncate(text: str) -> str:
    if len(text) <= MAX_REPLY_CHARS:
        return text
    head = text[:MAX_REPLY_CHARS]
    cut = max(head.rfind(mark) for mark in SENTENCE_ENDINGS)
    if cut > 0:
        return head[: cut + 1]
    return head


def _clean_once(text: str) -> str:
    cleaned = text.strip()
    end = cleaned.find(IM_END)
    if end >= 0:
        cleaned = cleaned[:end]
    for marker in ROLE_MARKERS:
        cleaned = cleaned.replace(marker, "")
    cleaned = _ROLE_WORD.sub("", cleaned)
    cleaned = _strip_quotes(cleaned.strip())
    cleaned = _truncate(cleaned)
    return cleaned.strip()


def clean_response(text: str) -> str:
    """
    Normalize raw model output into a sendable reply.

    Cuts at the first closing role marker, strips leftover role markers and the bare
    assistant tag, unwraps one layer of matching quotes and caps length at a sentence
    boundary. Passes repeat until the text stops changing, so the result is a fixed point.
    """
    current = text or ""
    while True:
        cleaned = _clean_once(current)
        if cleaned == current:
            return cleaned
        current = cleaned
