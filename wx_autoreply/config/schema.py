"""Configuration schema using Pydantic."""

from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from wx_autoreply.utils.helpers import get_data_path

DEFAULT_PLACEHOLDER_MARKERS = [
    "[图片]",
    "[语音]",
    "[视频]",
    "[文件]",
    "[位置]",
    "[链接]",
    "[名片]",
    "[音乐]",
    "[表情]",
    "[动画表情]",
    "[红包]",
    "[转账]",
    "[image]",
    "[voice]",
    "[video]",
    "[file]",
    "[location]",
    "[link]",
    "[sticker]",
    "[red packet]",
    "[transfer]",
]


def _default_workspace() -> str:
    """Default workspace under active data directory."""
    return str(get_data_path() / "workspace")


def _default_models_dir() -> str:
    return str(get_data_path() / "models")


class ReplyConfig(BaseModel):
    """Reply policy: master switch, pacing, quotas and content filter."""
    enabled: bool = False
    min_delay_seconds: int = 2
    max_delay_seconds: int = 6
    max_daily_replies: int = 100
    max_per_minute: int = 3
    work_hour_start: int = Field(default=8, ge=0, le=23)
    work_hour_end: int = Field(default=23, ge=0, le=23)
    sensitive_words: str = "转账,密码,银行卡,红包,验证码,付款,支付"  # comma-delimited
    default_reply: str = "在的"
    max_workers: int = 2

    def sensitive_word_list(self) -> list[str]:
        """Split the delimited sensitive-word string into non-empty terms."""
        return [word.strip() for word in self.sensitive_words.split(",") if word.strip()]

    def contains_sensitive_word(self, message: str) -> bool:
        return any(word in message for word in self.sensitive_word_list())

    def is_within_work_hours(self, now: datetime | None = None) -> bool:
        """Inclusive hour window; start > end wraps across midnight."""
        hour = (now or datetime.now()).hour
        start, end = self.work_hour_start, self.work_hour_end
        if start <= end:
            return start <= hour <= end
        return hour >= start or hour <= end


class ModelConfig(BaseModel):
    """Local model selection and inference parameters."""
    selected_model_id: str = "qwen2.5-1.5b-q4"
    inference_threads: int = 4
    context_length: int = 2048
    max_tokens: int = 256
    temperature: float = 0.7
    models_dir: str = Field(default_factory=_default_models_dir)

    @property
    def models_path(self) -> Path:
        return Path(self.models_dir).expanduser()


class IntakeConfig(BaseModel):
    """Notification intake filters."""
    source_package: str = "com.tencent.mm"
    group_title_pattern: str = r".*\(\d+\).*"  # e.g. "Family (3)"
    placeholder_markers: list[str] = Field(
        default_factory=lambda: list(DEFAULT_PLACEHOLDER_MARKERS)
    )
    queue_size: int = 64


class BridgeConfig(BaseModel):
    """Device notification bridge (WebSocket) configuration."""
    enabled: bool = False
    bridge_url: str = "ws://localhost:3002"
    bridge_token: str = ""


class Config(BaseSettings):
    """Root configuration for wx-autoreply."""
    workspace: str = Field(default_factory=_default_workspace)
    reply: ReplyConfig = Field(default_factory=ReplyConfig)
    model: ModelConfig = Field(default_factory=ModelConfig)
    intake: IntakeConfig = Field(default_factory=IntakeConfig)
    bridge: BridgeConfig = Field(default_factory=BridgeConfig)

    @property
    def workspace_path(self) -> Path:
        """Get expanded workspace path."""
        return Path(self.workspace).expanduser()

    model_config = SettingsConfigDict(
        env_prefix="WX_AUTOREPLY_",
        env_nested_delimiter="__",
    )
