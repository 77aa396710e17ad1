"""Host-facing reply client wrapping the inference engine."""

from __future__ import annotations

import asyncio
from collections.abc import Sequence

from loguru import logger

from wx_autoreply.config.schema import Config
from wx_autoreply.engine.cleanup import clean_response
from wx_autoreply.engine.llama import InferenceEngine
from wx_autoreply.engine.models import ModelStore
from wx_autoreply.engine.prompt import build_prompt
from wx_autoreply.storage.models import ChatTurn


class LocalReplyClient:
    """
    Offline reply generation for the pipeline.

    Blocking engine calls run on worker threads; the engine's own lock keeps them
    single-flight. ``generate_reply`` never raises.
    """

    def __init__(
        self,
        config: Config,
        engine: InferenceEngine | None = None,
        model_store: ModelStore | None = None,
    ):
        self.config = config
        self.engine = engine or InferenceEngine()
        self.model_store = model_store or ModelStore(config.model.models_path)

    @property
    def default_reply(self) -> str:
        return self.config.reply.default_reply

    def is_ready(self) -> bool:
        return self.engine.is_loaded()

    async def initialize(self) -> bool:
        """Load the selected model unless a session is already loaded."""
        if self.engine.is_loaded():
            return True
        model_id = self.config.model.selected_model_id
        model_path = self.model_store.path_by_id(model_id)
        if model_path is None:
            logger.error(f"Model not downloaded: {model_id}")
            return False
        return await asyncio.to_thread(
            self.engine.load,
            model_path,
            self.config.model.inference_threads,
            self.config.model.context_length,
        )

    async def wait_until_ready(self, interval: float = 30.0) -> None:
        """Retry ``initialize`` every ``interval`` seconds until a model is loaded."""
        while not await self.initialize():
            await asyncio.sleep(interval)
        logger.info(f"Model ready: {self.engine.model_path}")

    async def generate_reply(
        self,
        contact_name: str,
        style: str,
        history: Sequence[ChatTurn],
        new_message: str,
    ) -> str:
        """Generate a cleaned reply; any failure yields the default acknowledgement."""
        try:
            if not self.is_ready() and not await self.initialize():
                logger.error("Inference engine not ready, using default reply")
                return self.default_reply
            prompt = build_prompt(contact_name, style, history, new_message)
            logger.debug(f"Prompt length: {len(prompt)}")
            raw = await asyncio.to_thread(
                self.engine.generate,
                prompt,
                self.config.model.max_tokens,
                self.config.model.temperature,
            )
            cleaned = clean_response(raw)
            return cleaned or self.default_reply
        except Exception as e:
            logger.error(f"Reply generation failed: {e}")
            return self.default_reply

    async def release(self) -> None:
        await asyncio.to_thread(self.engine.unload)
