import asyncio

import pytest

from wx_autoreply.bus.events import ReplyAction
from wx_autoreply.errors import DeliveryError
from wx_autoreply.pipeline.delivery import deliver


def test_fills_every_text_input():
    captured: list[dict[str, str]] = []
    action = ReplyAction(title="Reply", input_keys=["a", "b"], send=captured.append)

    asyncio.run(deliver(action, "在的"))

    assert captured == [{"a": "在的", "b": "在的"}]


def test_action_without_inputs_is_rejected():
    action = ReplyAction(title="Archive", input_keys=[], send=lambda results: None)

    with pytest.raises(DeliveryError):
        asyncio.run(deliver(action, "hi"))


def test_send_errors_are_wrapped():
    async def _send(results):
        raise ConnectionError("bridge gone")

    action = ReplyAction(title="Reply", input_keys=["text"], send=_send)

    with pytest.raises(DeliveryError, match="bridge gone"):
        asyncio.run(deliver(action, "hi"))
