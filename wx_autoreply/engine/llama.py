"""Single-flight local inference engine on top of llama.cpp."""

from __future__ import annotations

import threading
from collections.abc import Callable
from enum import Enum
from pathlib import Path
from typing import Any

from loguru import logger

from wx_autoreply.engine.prompt import IM_END
from wx_autoreply.errors import DecodeError, LoadError, TokenizeError

DEFAULT_THREADS = 4
DEFAULT_CTX_SIZE = 2048
DEFAULT_MAX_TOKENS = 256
DEFAULT_TEMPERATURE = 0.7

ModelFactory = Callable[..., Any]


class EngineState(str, Enum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    LOADED = "loaded"
    GENERATING = "generating"


def _default_model_factory(**kwargs: Any) -> Any:
    from llama_cpp import LLAMA_DEFAULT_SEED, Llama

    return Llama(seed=LLAMA_DEFAULT_SEED, verbose=False, **kwargs)


class InferenceEngine:
    """
    Owns one llama.cpp model session.

    Lifecycle: UNLOADED -> LOADING -> LOADED, and LOADED -> GENERATING -> LOADED for
    every call to ``generate``. A failed load returns to UNLOADED. All state
    transitions and decode calls happen under one lock, so at most one generation
    runs against the session and load/unload never interleave with it.

    The session object is whatever ``model_factory`` returns; it must expose the
    ``llama_cpp.Llama`` surface used here: ``reset``, ``tokenize``, ``eval``,
    ``sample``, ``detokenize``, ``token_eos``, ``n_ctx`` and ``close``.
    """

    def __init__(self, model_factory: ModelFactory | None = None):
        self._model_factory = model_factory or _default_model_factory
        self._lock = threading.Lock()
        self._llm: Any = None
        self._model_path: str | None = None
        self._state = EngineState.UNLOADED

    @property
    def state(self) -> EngineState:
        return self._state

    @property
    def model_path(self) -> str | None:
        return self._model_path

    def is_loaded(self) -> bool:
        return self._llm is not None and self._state in {EngineState.LOADED, EngineState.GENERATING}

    def load(
        self,
        model_path: str,
        n_threads: int = DEFAULT_THREADS,
        n_ctx: int = DEFAULT_CTX_SIZE,
    ) -> bool:
        """Load a GGUF model, replacing any current session. Returns success."""
        with self._lock:
            self._release_locked()
            self._state = EngineState.LOADING
            logger.info(f"Loading model: {model_path}")
            try:
                self._llm = self._open(model_path, n_threads, n_ctx)
            except LoadError as e:
                logger.error(f"Model load failed: {e}")
                self._llm = None
                self._state = EngineState.UNLOADED
                return False
            self._model_path = model_path
            self._state = EngineState.LOADED
            logger.info("Model loaded")
            return True

    def _open(self, model_path: str, n_threads: int, n_ctx: int) -> Any:
        path = Path(model_path)
        if not path.is_file():
            raise LoadError(f"model file not found: {model_path}")
        threads = max(1, int(n_threads))
        try:
            return self._model_factory(
                model_path=str(path),
                n_ctx=int(n_ctx),
                n_batch=int(n_ctx),
                n_threads=threads,
                n_threads_batch=threads,
            )
        except Exception as e:
            raise LoadError(str(e) or type(e).__name__) from e

    def unload(self) -> None:
        """Release the session; waits for any in-flight generation."""
        with self._lock:
            self._release_locked()
        logger.info("Model session released")

    def _release_locked(self) -> None:
        llm, self._llm = self._llm, None
        self._model_path = None
        self._state = EngineState.UNLOADED
        if llm is None:
            return
        close = getattr(llm, "close", None)
        if close is None:
            return
        try:
            close()
        except Exception as e:
            logger.warning(f"Error closing model session: {e}")

    def generate(
        self,
        prompt: str,
        max_tokens: int = DEFAULT_MAX_TOKENS,
        temperature: float = DEFAULT_TEMPERATURE,
    ) -> str:
        """
        Run one autoregressive completion of ``prompt``.

        Returns an empty string when no session is loaded, tokenization fails or the
        prefill decode fails. A decode failure during sampling ends generation early
        and returns the text produced so far.
        """
        with self._lock:
            if self._llm is None or self._state != EngineState.LOADED:
                logger.error("Generate called without a loaded model")
                return ""
            self._state = EngineState.GENERATING
            try:
                return self._generate_locked(self._llm, prompt, max_tokens, temperature)
            finally:
                self._state = EngineState.LOADED

    def _generate_locked(self, llm: Any, prompt: str, max_tokens: int, temperature: float) -> str:
        # History lives in the prompt, never in cache state: start from an empty cache.
        llm.reset()

        try:
            tokens = self._tokenize(llm, prompt)
        except TokenizeError as e:
            logger.error(f"Tokenize failed: {e}")
            return ""
        logger.debug(f"Prompt tokens: {len(tokens)}")

        try:
            self._decode(llm, tokens)
        except DecodeError as e:
            logger.error(f"Prompt decode failed: {e}")
            return ""

        marker = IM_END.encode("utf-8")
        eos = llm.token_eos()
        output = bytearray()
        for step in range(max(0, int(max_tokens))):
            token = llm.sample(temp=float(temperature), top_k=0, top_p=1.0, min_p=0.0)
            if token == eos:
                logger.debug("End-of-generation token sampled")
                break
            output.extend(llm.detokenize([token], special=True))
            cut = output.find(marker)
            if cut >= 0:
                del output[cut:]
                break
            try:
                self._decode(llm, [token])
            except DecodeError as e:
                logger.warning(f"Decode failed at token {step}: {e}")
                break

        text = output.decode("utf-8", errors="ignore")
        logger.debug(f"Generated {len(text)} chars")
        return text

    def _tokenize(self, llm: Any, prompt: str) -> list[int]:
        try:
            tokens = list(llm.tokenize(prompt.encode("utf-8"), add_bos=True, special=True))
        except Exception as e:
            raise TokenizeError(str(e)) from e
        capacity = int(llm.n_ctx())
        if len(tokens) > capacity:
            raise TokenizeError(f"prompt needs {len(tokens)} tokens, context holds {capacity}")
        return tokens

    def _decode(self, llm: Any, tokens: list[int]) -> None:
        try:
            llm.eval(tokens)
        except Exception as e:
            raise DecodeError(str(e)) from e
