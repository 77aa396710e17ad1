"""Hand generated replies to the host reply action."""

from __future__ import annotations

import inspect

from wx_autoreply.bus.events import ReplyAction
from wx_autoreply.errors import DeliveryError


async def deliver(action: ReplyAction, text: str) -> None:
    """Fill every free-text input of ``action`` with ``text`` and invoke it."""
    if not action.input_keys:
        raise DeliveryError(f"action '{action.title}' exposes no text input")
    results = {key: text for key in action.input_keys}
    try:
        outcome = action.send(results)
        if inspect.isawaitable(outcome):
            await outcome
    except Exception as e:
        raise DeliveryError(str(e) or type(e).__name__) from e
