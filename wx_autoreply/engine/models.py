"""Local GGUF model catalog and on-disk storage."""

from __future__ import annotations

from collections.abc import Callable
from pathlib import Path

import httpx
from loguru import logger
from pydantic import BaseModel

from wx_autoreply.utils.helpers import ensure_dir


class ModelInfo(BaseModel):
    """A downloadable model preset."""
    id: str
    name: str
    description: str
    file_name: str
    download_url: str
    size_bytes: int


AVAILABLE_MODELS: list[ModelInfo] = [
    ModelInfo(
        id="qwen2.5-1.5b-q4",
        name="Qwen2.5 1.5B (recommended)",
        description="Best Chinese chat quality for its size, about 1 GB",
        file_name="qwen2.5-1.5b-instruct-q4_k_m.gguf",
        download_url=(
            "https://huggingface.co/Qwen/Qwen2.5-1.5B-Instruct-GGUF/resolve/main/"
            "qwen2.5-1.5b-instruct-q4_k_m.gguf"
        ),
        size_bytes=1_100_000_000,
    ),
    ModelInfo(
        id="qwen2.5-0.5b-q4",
        name="Qwen2.5 0.5B (light)",
        description="Smallest footprint, about 400 MB, weaker replies",
        file_name="qwen2.5-0.5b-instruct-q4_k_m.gguf",
        download_url=(
            "https://huggingface.co/Qwen/Qwen2.5-0.5B-Instruct-GGUF/resolve/main/"
            "qwen2.5-0.5b-instruct-q4_k_m.gguf"
        ),
        size_bytes=400_000_000,
    ),
    ModelInfo(
        id="qwen2.5-3b-q4",
        name="Qwen2.5 3B (quality)",
        description="Best replies, about 2 GB, needs 6 GB+ RAM",
        file_name="qwen2.5-3b-instruct-q4_k_m.gguf",
        download_url=(
            "https://huggingface.co/Qwen/Qwen2.5-3B-Instruct-GGUF/resolve/main/"
            "qwen2.5-3b-instruct-q4_k_m.gguf"
        ),
        size_bytes=2_000_000_000,
    ),
]


def find_model(model_id: str) -> ModelInfo | None:
    return next((m for m in AVAILABLE_MODELS if m.id == model_id), None)


def format_size(num_bytes: int) -> str:
    if num_bytes < 1024:
        return f"{num_bytes} B"
    if num_bytes < 1024 * 1024:
        return f"{num_bytes // 1024} KB"
    if num_bytes < 1024 * 1024 * 1024:
        return f"{num_bytes // 1024 // 1024} MB"
    return f"{num_bytes / 1024 / 1024 / 1024:.1f} GB"


class ModelStore:
    """Resolve, download and delete model files under one directory."""

    def __init__(self, models_dir: Path):
        self.models_dir = ensure_dir(models_dir)

    def _file(self, info: ModelInfo) -> Path:
        return self.models_dir / info.file_name

    def model_path(self, info: ModelInfo) -> str | None:
        """Absolute path of the model file if present and non-empty."""
        path = self._file(info)
        if path.is_file() and path.stat().st_size > 0:
            return str(path.resolve())
        return None

    def path_by_id(self, model_id: str) -> str | None:
        info = find_model(model_id)
        return self.model_path(info) if info else None

    def is_downloaded(self, info: ModelInfo) -> bool:
        # Published sizes are approximate; allow 10% slack.
        path = self._file(info)
        return path.is_file() and path.stat().st_size > info.size_bytes * 0.9

    def downloaded_models(self) -> list[ModelInfo]:
        return [m for m in AVAILABLE_MODELS if self.is_downloaded(m)]

    def delete(self, info: ModelInfo) -> bool:
        path = self._file(info)
        if not path.exists():
            return True
        try:
            path.unlink()
            return True
        except OSError as e:
            logger.error(f"Failed to delete model {path}: {e}")
            return False

    def used_bytes(self) -> int:
        return sum(p.stat().st_size for p in self.models_dir.iterdir() if p.is_file())

    def download(
        self,
        info: ModelInfo,
        on_progress: Callable[[int, int], None] | None = None,
        *,
        client: httpx.Client | None = None,
        chunk_size: int = 1024 * 1024,
    ) -> bool:
        """Stream a model file into place, reporting (downloaded, total) bytes."""
        target = self._file(info)
        tmp_path = target.with_name(target.name + ".tmp")
        owns_client = client is None
        http = client or httpx.Client(
            follow_redirects=True,
            timeout=httpx.Timeout(60.0, read=1800.0),
        )
        logger.info(f"Downloading {info.name} from {info.download_url}")
        try:
            with http.stream("GET", info.download_url) as response:
                response.raise_for_status()
                total = int(response.headers.get("content-length") or 0)
                downloaded = 0
                with open(tmp_path, "wb") as handle:
                    for chunk in response.iter_bytes(chunk_size):
                        handle.write(chunk)
                        downloaded += len(chunk)
                        if on_progress:
                            on_progress(downloaded, total)
            tmp_path.replace(target)
            logger.info(f"Model saved to {target}")
            return True
        except (httpx.HTTPError, OSError) as e:
            logger.error(f"Model download failed: {e}")
            tmp_path.unlink(missing_ok=True)
            return False
        finally:
            if owns_client:
                http.close()
