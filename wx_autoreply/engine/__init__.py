"""Local inference: prompt assembly, llama.cpp session, cleanup and model storage."""

from wx_autoreply.engine.cleanup import clean_response
from wx_autoreply.engine.client import LocalReplyClient
from wx_autoreply.engine.llama import EngineState, InferenceEngine
from wx_autoreply.engine.models import AVAILABLE_MODELS, ModelInfo, ModelStore
from wx_autoreply.engine.prompt import build_prompt

__all__ = [
    "AVAILABLE_MODELS",
    "EngineState",
    "InferenceEngine",
    "LocalReplyClient",
    "ModelInfo",
    "ModelStore",
    "build_prompt",
    "clean_response",
]
