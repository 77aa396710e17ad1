"""Test doubles for the llama.cpp session and the reply client."""

from __future__ import annotations

import threading
import time
from typing import Any

EOS = 0
VOCAB: dict[int, bytes] = {
    1: b"Hi",
    2: b" there",
    3: b"!",
    4: b"<|im_end|>",
    5: "你".encode("utf-8")[:2],
    6: "你".encode("utf-8")[2:],
    7: b"<|im_",
    8: b"end|>",
    9: b'"OK, see you"',
}


class FakeLlama:
    """Mimics the slice of ``llama_cpp.Llama`` the engine drives."""

    def __init__(
        self,
        script: list[int] | None = None,
        *,
        context: int = 64,
        prompt_tokens: int = 8,
        fail_eval_on: int | None = None,
        eval_delay: float = 0.0,
        **kwargs: Any,
    ):
        self.kwargs = kwargs
        self.script = list(script or [])
        self.context = context
        self.prompt_tokens = prompt_tokens
        self.fail_eval_on = fail_eval_on
        self.eval_delay = eval_delay
        self.eval_calls: list[list[int]] = []
        self.sample_kwargs: list[dict[str, Any]] = []
        self.reset_calls = 0
        self.closed = False
        self.active = 0
        self.max_active = 0
        self._guard = threading.Lock()
        self._cursor = 0

    def reset(self) -> None:
        self.reset_calls += 1
        self._cursor = 0

    def tokenize(self, text: bytes, add_bos: bool = True, special: bool = False) -> list[int]:
        assert isinstance(text, bytes)
        return list(range(100, 100 + self.prompt_tokens))

    def n_ctx(self) -> int:
        return self.context

    def eval(self, tokens: list[int]) -> None:
        with self._guard:
            self.active += 1
            self.max_active = max(self.max_active, self.active)
        try:
            if self.eval_delay:
                time.sleep(self.eval_delay)
            self.eval_calls.append(list(tokens))
            if self.fail_eval_on is not None and len(self.eval_calls) == self.fail_eval_on:
                raise RuntimeError("llama_decode returned 1")
        finally:
            with self._guard:
                self.active -= 1

    def sample(self, **kwargs: Any) -> int:
        self.sample_kwargs.append(kwargs)
        if self._cursor >= len(self.script):
            return EOS
        token = self.script[self._cursor]
        self._cursor += 1
        return token

    def detokenize(self, tokens: list[int], prev_tokens: Any = None, special: bool = False) -> bytes:
        return b"".join(VOCAB[t] for t in tokens)

    def token_eos(self) -> int:
        return EOS

    def close(self) -> None:
        self.closed = True


class FakeModelFactory:
    """Callable passed as ``model_factory``; records every created session."""

    def __init__(self, **llama_kwargs: Any):
        self.llama_kwargs = llama_kwargs
        self.created: list[FakeLlama] = []
        self.error: Exception | None = None

    def __call__(self, **kwargs: Any) -> FakeLlama:
        if self.error is not None:
            raise self.error
        llm = FakeLlama(**self.llama_kwargs, **kwargs)
        self.created.append(llm)
        return llm


class FakeReplyClient:
    def __init__(self, reply: str = "好的", ready: bool = True):
        self.reply = reply
        self.ready = ready
        self.calls: list[dict[str, Any]] = []

    def is_ready(self) -> bool:
        return self.ready

    async def generate_reply(self, contact_name, style, history, new_message) -> str:
        self.calls.append(
            {
                "contact_name": contact_name,
                "style": style,
                "history": list(history),
                "new_message": new_message,
            }
        )
        return self.reply
